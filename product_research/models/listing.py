# product_research/models/listing.py

"""Aggregated search listing model and its tabular layout."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from urllib.parse import urlsplit, urlunsplit


class Platform(str, Enum):
    """Originating search provider of a listing."""

    RAKUTEN = "rakuten"
    YAHOO = "yahoo"
    GOOGLE = "google"

    @classmethod
    def parse(cls, value: Any) -> "Platform | None":
        """Map a stored cell value back to a Platform, or None."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return None


# Column names of a freshly aggregated batch, in order
COL_COLLECTED_AT = "Collected At"
COL_PLATFORM = "Platform"
COL_RANK = "Rank"
COL_NAME = "Name"
COL_PRICE = "Price"
COL_URL = "URL"
COL_SHOP = "Shop"
COL_REVIEW_COUNT = "Review Count"
COL_REVIEW_AVG = "Review Avg"
COL_CAPTURE = "Capture URL"
COL_DESCRIPTION = "Description"

LISTING_COLUMNS: list[str] = [
    COL_COLLECTED_AT,
    COL_PLATFORM,
    COL_RANK,
    COL_NAME,
    COL_PRICE,
    COL_URL,
    COL_SHOP,
    COL_REVIEW_COUNT,
    COL_REVIEW_AVG,
    COL_CAPTURE,
    COL_DESCRIPTION,
]


def is_http_url(value: Any) -> bool:
    """True for a non-empty absolute http(s) URL."""
    if not isinstance(value, str) or not value.strip():
        return False
    parts = urlsplit(value.strip())
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def strip_query(url: str) -> str:
    """Drop query string and fragment (volatile tracking parameters)."""
    parts = urlsplit(url.strip())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def to_number(value: Any) -> float | None:
    """Coerce a payload value to float; blanks and junk become None."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_int(value: Any) -> int | None:
    """Coerce a payload value to int; blanks and junk become None."""
    number = to_number(value)
    return int(number) if number is not None else None


def _blank_none(value: Any) -> Any:
    return "" if value is None else value


@dataclass
class ProductListing:
    """One aggregated search result, created once per aggregation run."""

    platform: Platform
    rank: int
    collected_at: datetime
    name: str = ""
    price: float | None = None
    url: str = ""
    shop_name: str = ""
    review_count: int | None = None
    review_avg: float | None = None
    description: str = ""

    def to_row(self) -> list[Any]:
        """Serialise to cell values ordered like LISTING_COLUMNS."""
        return [
            self.collected_at.isoformat(timespec="seconds"),
            self.platform.value,
            self.rank,
            self.name,
            _blank_none(self.price),
            self.url,
            self.shop_name,
            _blank_none(self.review_count),
            _blank_none(self.review_avg),
            "",
            self.description,
        ]

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ProductListing | None":
        """Rebuild a listing from a stored row; None if not a listing."""
        platform = Platform.parse(row.get(COL_PLATFORM))
        rank = to_int(row.get(COL_RANK))
        if platform is None or rank is None:
            return None
        raw_ts = str(row.get(COL_COLLECTED_AT) or "")
        try:
            collected_at = datetime.fromisoformat(raw_ts)
        except ValueError:
            collected_at = datetime.min
        return cls(
            platform=platform,
            rank=rank,
            collected_at=collected_at,
            name=str(row.get(COL_NAME) or ""),
            price=to_number(row.get(COL_PRICE)),
            url=str(row.get(COL_URL) or ""),
            shop_name=str(row.get(COL_SHOP) or ""),
            review_count=to_int(row.get(COL_REVIEW_COUNT)),
            review_avg=to_number(row.get(COL_REVIEW_AVG)),
            description=str(row.get(COL_DESCRIPTION) or ""),
        )
