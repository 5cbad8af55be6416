# product_research/services/aggregator.py

"""Runs every search source for one keyword and concatenates results."""

import importlib
import logging
from dataclasses import dataclass, field
from typing import Any

from product_research.config.settings import Settings
from product_research.models.listing import ProductListing

logger = logging.getLogger("product_research.aggregator")


@dataclass
class AggregationResult:
    """One batch of listings for a keyword."""

    keyword: str
    listings: list[ProductListing] = field(
        default_factory=lambda: list[ProductListing]()
    )
    counts: dict[str, int] = field(
        default_factory=lambda: dict[str, int]()
    )
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )

    @property
    def total(self) -> int:
        """Number of listings in the batch."""
        return len(self.listings)


def _load_adapter_class(dotted_path: str) -> type[Any]:
    """Dynamically import a source adapter class from its dotted path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


class Aggregator:
    """Calls each source in declaration order with the same limit.

    Results are concatenated, never re-ranked: cross-platform order is
    declaration order and intra-platform order is the adapter's rank.
    A mandatory-credential source that fails aborts the aggregation.
    """

    def __init__(
        self,
        sources: list[dict[str, str]] | None = None,
        limit: int | None = None,
    ) -> None:
        self.sources = (
            sources if sources is not None else Settings.AVAILABLE_SOURCES
        )
        self.limit = limit or Settings.SEARCH_LIMIT

    def aggregate(self, keyword: str) -> AggregationResult:
        """Fetch, concatenate and count listings for *keyword*."""
        keyword = keyword.strip()
        if not keyword:
            msg = "keyword must not be empty"
            raise ValueError(msg)

        result = AggregationResult(keyword=keyword)
        for src in self.sources:
            adapter = _load_adapter_class(src["adapter"])()
            listings: list[ProductListing] = adapter.search(
                keyword, self.limit
            )
            result.listings.extend(listings)
            result.counts[src["id"]] = len(listings)

            last_error = getattr(adapter, "last_error", None)
            if last_error:
                result.errors.append(f"{src['label']}: {last_error}")

        logger.info(
            "Aggregated %d listings for '%s' (%s)",
            result.total,
            keyword,
            ", ".join(f"{k}={v}" for k, v in result.counts.items()),
        )
        return result
