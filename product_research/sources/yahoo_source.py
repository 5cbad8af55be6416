# product_research/sources/yahoo_source.py

"""Adapter for the Yahoo! Shopping itemSearch v3 API."""

from datetime import datetime
from typing import Any

from product_research.config.settings import Settings
from product_research.models.listing import (
    Platform,
    ProductListing,
    to_int,
    to_number,
)
from product_research.sources.base_source import BaseSource


class YahooSource(BaseSource):
    """Yahoo! Shopping item search (mandatory app id)."""

    PLATFORM = Platform.YAHOO
    ENDPOINT = Settings.YAHOO_ITEM_API
    CREDENTIALS = ("YAHOO_APP_ID",)
    CREDENTIALS_REQUIRED = True

    def _build_params(self, keyword: str, limit: int) -> dict[str, Any]:
        return {
            "appid": self.settings.YAHOO_APP_ID,
            "query": keyword,
            "results": limit,
            "sort": "-score",
        }

    def _items(self, data: dict[str, Any]) -> list[Any]:
        return list(data.get("hits") or [])

    def _parse_item(
        self, item: dict[str, Any], rank: int, collected_at: datetime,
    ) -> ProductListing:
        seller = item.get("seller") or {}
        review = item.get("review") or {}
        if not isinstance(seller, dict):
            seller = {}
        if not isinstance(review, dict):
            review = {}
        return ProductListing(
            platform=self.PLATFORM,
            rank=rank,
            collected_at=collected_at,
            name=str(item.get("name") or ""),
            price=to_number(item.get("price")),
            url=str(item.get("url") or ""),
            shop_name=str(seller.get("name") or ""),
            review_count=to_int(review.get("count")),
            review_avg=to_number(review.get("rate")),
            description=self._excerpt(
                item.get("description") or item.get("explanation")
            ),
        )
