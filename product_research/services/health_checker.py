# product_research/services/health_checker.py

"""One-result probes against every configured search source."""

import asyncio
import logging
import time
from dataclasses import dataclass

from product_research.config.settings import Settings
from product_research.services.aggregator import _load_adapter_class

logger = logging.getLogger("product_research.health")

_PROBE_KEYWORD = "test"
_SLOW_MS = 5000
_MESSAGE_MAX = 80

OK = "ok"
SLOW = "slow"
DOWN = "down"
UNCONFIGURED = "unconfigured"


@dataclass
class HealthResult:
    """Outcome of probing one source."""

    source_id: str
    status: str
    latency_ms: float
    message: str

    @property
    def is_down(self) -> bool:
        return self.status == DOWN


def missing_credentials(source: dict[str, str]) -> list[str]:
    """Names from the source's ``credentials`` entry that are unset."""
    names = [n.strip() for n in source.get("credentials", "").split(",")]
    return [n for n in names if n and not getattr(Settings, n, "")]


def probe_source(source: dict[str, str]) -> HealthResult:
    """Search *source* for a single listing and classify the response.

    A source with unset credentials is reported without any request.
    Adapters that swallow errors into ``last_error`` count as down.
    """
    source_id = source["id"]
    try:
        adapter = _load_adapter_class(source["adapter"])()
    except Exception as exc:
        return HealthResult(source_id, DOWN, 0.0, f"Failed to load adapter: {exc}")

    missing = missing_credentials(source)
    if missing:
        return HealthResult(
            source_id, UNCONFIGURED, 0.0, f"{', '.join(missing)} not set",
        )

    start = time.monotonic()
    try:
        listings = adapter.search(_PROBE_KEYWORD, 1)
        error = getattr(adapter, "last_error", None)
    except Exception as exc:
        listings, error = [], exc
    elapsed_ms = (time.monotonic() - start) * 1000

    if error:
        status, message = DOWN, str(error)[:_MESSAGE_MAX]
    elif elapsed_ms > _SLOW_MS:
        status, message = SLOW, "High latency"
    else:
        status, message = OK, f"{len(listings)} result(s)"
    return HealthResult(source_id, status, elapsed_ms, message)


class HealthChecker:
    """Probes all sources concurrently, one worker thread each."""

    def __init__(self, sources: list[dict[str, str]] | None = None) -> None:
        self.sources = (
            sources if sources is not None else Settings.AVAILABLE_SOURCES
        )

    async def check_all(self) -> list[HealthResult]:
        """Return one result per source, in declaration order."""
        results: list[HealthResult] = list(await asyncio.gather(*(
            asyncio.to_thread(probe_source, src) for src in self.sources
        )))
        for r in results:
            logger.info(
                "Health %s: %s (%.0fms) %s",
                r.source_id,
                r.status,
                r.latency_ms,
                r.message,
            )
        return results
