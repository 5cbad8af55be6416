# product_research/config/settings.py

"""Central configuration for the product_research pipeline."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

from product_research.errors import ConfigurationMissing

load_dotenv()


class Settings:
    """Central configuration for the product_research pipeline."""

    # --- Credentials (resolved once per process) ---
    RAKUTEN_APP_ID: str = os.getenv("RAKUTEN_APP_ID", "")
    YAHOO_APP_ID: str = os.getenv("YAHOO_APP_ID", "")
    GOOGLE_API_KEY: str = os.getenv("GOOGLE_API_KEY", "")
    GOOGLE_SEARCH_ENGINE_ID: str = os.getenv("GOOGLE_SEARCH_ENGINE_ID", "")
    SCREENSHOTONE_ACCESS_KEY: str = os.getenv("SCREENSHOTONE_ACCESS_KEY", "")
    DIFFBOT_TOKEN: str = os.getenv("DIFFBOT_TOKEN", "")
    STORAGE_FOLDER: str = os.getenv("STORAGE_FOLDER", "")

    SECRET_NAMES: list[str] = [
        "RAKUTEN_APP_ID",
        "YAHOO_APP_ID",
        "GOOGLE_API_KEY",
        "GOOGLE_SEARCH_ENGINE_ID",
        "SCREENSHOTONE_ACCESS_KEY",
        "DIFFBOT_TOKEN",
        "STORAGE_FOLDER",
    ]

    # --- HTTP ---
    REQUEST_TIMEOUT: int = 30           # Seconds per search/extraction call
    CAPTURE_TIMEOUT: int = 90           # Must exceed the provider-side timeout
    MAX_RETRIES: int = 3                # Search calls only
    RETRY_DELAY: float = 1.0
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"

    # --- Aggregation ---
    SEARCH_LIMIT: int = 10
    DESCRIPTION_MAX_CHARS: int = 300

    # --- Capture ---
    CAPTURE_QUOTA: int = 3              # Per platform, per run
    CAPTURE_MAX_RANK: int = 3
    CAPTURE_INTERVAL: float = 2.0       # Seconds between capture calls
    CAPTURE_FAILURE: str = "SKIP: capture failed"
    CAPTURE_OPTIONS: dict[str, str | int | bool] = {
        "full_page": True,
        "format": "pdf",
        "block_ads": True,
        "wait_until": "networkidle2",
        "timeout": 60,
        "navigation_timeout": 30,
        "delay": 3,
        "viewport_width": 1280,
        "viewport_height": 1024,
        "response_type": "json",
    }

    # --- Enrichment ---
    ENRICH_PLATFORM: str = "google"
    ENRICH_INTERVAL: float = 12.5       # ~5 requests/minute ceiling
    FRESHNESS_DAYS: int = 7
    ERROR_MAX_CHARS: int = 100
    REVIEW_MAX_CHARS: int = 200
    MAX_REVIEWS: int = 3
    MAX_IMAGES: int = 12
    EXTRACTION_FIELDS: list[str] = [
        "title", "price", "offerPrice", "offerPriceDetails",
        "regularPrice", "regularPriceDetails", "priceCurrency",
        "availability", "brand", "sku", "seller",
        "images", "variants", "category", "breadcrumb",
        "aggregateRating", "reviews",
    ]

    # --- Endpoints ---
    RAKUTEN_SEARCH_API: str = (
        "https://app.rakuten.co.jp/services/api/IchibaItem/Search/20220601"
    )
    YAHOO_ITEM_API: str = (
        "https://shopping.yahooapis.jp/ShoppingWebService/V3/itemSearch"
    )
    GOOGLE_SEARCH_API: str = "https://www.googleapis.com/customsearch/v1"
    CAPTURE_API: str = "https://api.screenshotone.com/take"
    EXTRACTION_API: str = "https://api.diffbot.com/v3/product"

    # --- Report ---
    REPORT_FONT: str = "HeiseiKakuGo-W5"

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    WORKBOOK_PATH: Path = DATA_DIR / "workbook.db"
    OUTPUT_DIR: Path = BASE_DIR / "output"
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Logging ---
    CONSOLE_LOG_LEVEL: str = os.getenv("CONSOLE_LOG_LEVEL", "WARNING")
    LOG_RETENTION: int = 30             # Run logs kept in LOGS_DIR

    # --- Sources (declaration order is aggregation order) ---
    AVAILABLE_SOURCES: list[dict[str, str]] = [
        {
            "id": "rakuten",
            "label": "Rakuten Ichiba",
            "adapter": "product_research.sources.rakuten_source.RakutenSource",
            "credentials": "RAKUTEN_APP_ID",
        },
        {
            "id": "yahoo",
            "label": "Yahoo! Shopping",
            "adapter": "product_research.sources.yahoo_source.YahooSource",
            "credentials": "YAHOO_APP_ID",
        },
        {
            "id": "google",
            "label": "Google Search",
            "adapter": "product_research.sources.google_source.GoogleSource",
            "credentials": "GOOGLE_API_KEY,GOOGLE_SEARCH_ENGINE_ID",
        },
    ]

    @classmethod
    def require(cls, name: str) -> str:
        """Return a configured secret or raise ConfigurationMissing."""
        value = str(getattr(cls, name, "") or "")
        if not value:
            raise ConfigurationMissing(name)
        return value

    @classmethod
    def config_status(cls) -> dict[str, bool]:
        """Report which named secrets are set, without their values."""
        return {
            name: bool(getattr(cls, name, ""))
            for name in cls.SECRET_NAMES
        }

    @classmethod
    def label_for(cls, source_id: str) -> str:
        """Return the display label for a source id."""
        for src in cls.AVAILABLE_SOURCES:
            if src["id"] == source_id:
                return src["label"]
        return source_id
