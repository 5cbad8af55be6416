# product_research/sources/google_source.py

"""Adapter for Google Custom Search (optional credentials)."""

from datetime import datetime
from typing import Any
from urllib.parse import urlsplit

from product_research.config.settings import Settings
from product_research.models.listing import Platform, ProductListing
from product_research.sources.base_source import BaseSource

_MAX_NUM = 10  # Custom Search caps num at 10


def extract_domain(url: str) -> str:
    """Host name of *url* without a leading ``www.``."""
    host = urlsplit(url).hostname or ""
    if not host:
        return url
    return host[4:] if host.startswith("www.") else host


class GoogleSource(BaseSource):
    """Google Custom Search JSON API.

    Credentials are optional: without both the API key and the search
    engine id the source contributes zero listings, and an upstream
    failure is logged instead of failing the aggregation.  Search
    results carry no price or review data.
    """

    PLATFORM = Platform.GOOGLE
    ENDPOINT = Settings.GOOGLE_SEARCH_API
    CREDENTIALS = ("GOOGLE_API_KEY", "GOOGLE_SEARCH_ENGINE_ID")
    CREDENTIALS_REQUIRED = False

    def _build_params(self, keyword: str, limit: int) -> dict[str, Any]:
        return {
            "key": self.settings.GOOGLE_API_KEY,
            "cx": self.settings.GOOGLE_SEARCH_ENGINE_ID,
            "q": keyword,
            "num": min(limit, _MAX_NUM),
            "lr": "lang_ja",
            "safe": "medium",
        }

    def _items(self, data: dict[str, Any]) -> list[Any]:
        # Zero hits come back without an "items" key
        return list(data.get("items") or [])

    def _parse_item(
        self, item: dict[str, Any], rank: int, collected_at: datetime,
    ) -> ProductListing:
        link = str(item.get("link") or "")
        return ProductListing(
            platform=self.PLATFORM,
            rank=rank,
            collected_at=collected_at,
            name=str(item.get("title") or ""),
            url=link,
            shop_name=extract_domain(link) if link else "",
            description=self._excerpt(item.get("snippet")),
        )
