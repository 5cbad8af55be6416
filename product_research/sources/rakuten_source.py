# product_research/sources/rakuten_source.py

"""Adapter for the Rakuten Ichiba item search API."""

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

_ELEMENTS = [
    "itemName", "itemPrice", "itemUrl", "shopName",
    "reviewCount", "reviewAverage", "itemCaption",
]


class RakutenSource(BaseSource):
    """Rakuten Ichiba search (``formatVersion=2``, mandatory app id)."""

    PLATFORM = Platform.RAKUTEN
    ENDPOINT = Settings.RAKUTEN_SEARCH_API
    CREDENTIALS = ("RAKUTEN_APP_ID",)
    CREDENTIALS_REQUIRED = True

    def _build_params(self, keyword: str, limit: int) -> dict[str, Any]:
        return {
            "applicationId": self.settings.RAKUTEN_APP_ID,
            "keyword": keyword,
            "hits": limit,
            "sort": "standard",
            "formatVersion": 2,
            "elements": ",".join(_ELEMENTS),
        }

    def _items(self, data: dict[str, Any]) -> list[Any]:
        items = data.get("Items") or []
        # formatVersion=1 wraps every item as {"Item": {...}}
        return [
            it.get("Item", it) if isinstance(it, dict) else it
            for it in items
        ]

    def _parse_item(
        self, item: dict[str, Any], rank: int, collected_at: datetime,
    ) -> ProductListing:
        return ProductListing(
            platform=self.PLATFORM,
            rank=rank,
            collected_at=collected_at,
            name=str(item.get("itemName") or ""),
            price=to_number(item.get("itemPrice")),
            url=str(item.get("itemUrl") or ""),
            shop_name=str(item.get("shopName") or ""),
            review_count=to_int(item.get("reviewCount")),
            review_avg=to_number(item.get("reviewAverage")),
            description=self._excerpt(item.get("itemCaption")),
        )
