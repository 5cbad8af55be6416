# product_research/services/enrichment_engine.py

"""Adds deep product details to search-engine rows of a batch."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from product_research.config.settings import Settings
from product_research.models.detail import (
    D_ERROR,
    D_FETCHED_AT,
    DetailRecord,
    truncate,
)
from product_research.models.listing import (
    COL_NAME,
    COL_PLATFORM,
    COL_RANK,
    COL_URL,
    Platform,
    is_http_url,
    to_int,
)
from product_research.services.extraction_client import ExtractionClient
from product_research.services.pacer import Pacer
from product_research.storage.record_store import RecordStore, SchemaRegistry

logger = logging.getLogger("product_research.enrichment")


def parse_fetched_at(value: Any) -> datetime | None:
    """Read a freshness stamp as naive local time.

    Unparseable values count as absent.  Stamps carrying a UTC offset
    are converted to local time so they compare with ``datetime.now()``.
    """
    if isinstance(value, datetime):
        stamp = value
    elif not value:
        return None
    else:
        try:
            stamp = datetime.fromisoformat(str(value))
        except ValueError:
            return None
    if stamp.tzinfo is not None:
        stamp = stamp.astimezone().replace(tzinfo=None)
    return stamp


def is_fresh(value: Any, now: datetime) -> bool:
    """True when the row was fetched less than FRESHNESS_DAYS ago."""
    fetched_at = parse_fetched_at(value)
    if fetched_at is None:
        return False
    return now - fetched_at < timedelta(days=Settings.FRESHNESS_DAYS)


@dataclass
class EnrichmentOutcome:
    """Details or the error for one attempted row."""

    row: int
    rank: int | None
    title: str
    url: str
    fetched_at: datetime
    detail: DetailRecord | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.detail is not None

    def error_cell(self) -> str:
        """Value persisted to the error column."""
        if self.error is None:
            return ""
        return f"ERR: {truncate(self.error, Settings.ERROR_MAX_CHARS)}"


@dataclass
class EnrichmentRun:
    outcomes: list[EnrichmentOutcome] = field(
        default_factory=lambda: list[EnrichmentOutcome]()
    )
    skipped_fresh: int = 0

    @property
    def enriched(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def errored(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)


class EnrichmentEngine:
    """Fetches details for every stale google row, one row at a time.

    Rows fetched within FRESHNESS_DAYS are left alone.  Every attempted
    row gets a new ``D_FetchedAt`` stamp, success or failure, so a
    failing URL is not retried until it goes stale.  Failures are
    contained per row; only a missing token aborts the run.
    """

    def __init__(
        self,
        client: ExtractionClient | None = None,
        pacer: Pacer | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._client = client
        self.pacer = pacer or Pacer("enrichment", Settings.ENRICH_INTERVAL)
        self._now = now

    def _clock(self) -> datetime:
        return (self._now or datetime.now)()

    def _resolve_client(self) -> ExtractionClient:
        if self._client is None:
            self._client = ExtractionClient(Settings.require("DIFFBOT_TOKEN"))
        return self._client

    def enrich_row(
        self, client: ExtractionClient, row: int, values: dict[str, Any],
    ) -> EnrichmentOutcome:
        """Fetch and normalise one row without touching the store."""
        url = str(values.get(COL_URL) or "")
        fetched_at = self._clock()
        outcome = EnrichmentOutcome(
            row=row,
            rank=to_int(values.get(COL_RANK)),
            title=str(values.get(COL_NAME) or ""),
            url=url,
            fetched_at=fetched_at,
        )
        try:
            payload = client.extract(url)
            outcome.detail = DetailRecord.from_payload(payload, fetched_at)
        except Exception as exc:
            logger.warning(
                "Enrichment failed for row %d (%s): %s",
                row,
                url,
                exc,
                exc_info=True,
            )
            outcome.error = str(exc) or exc.__class__.__name__
        return outcome

    def _persist(
        self,
        store: RecordStore,
        registry: SchemaRegistry,
        outcome: EnrichmentOutcome,
    ) -> None:
        if outcome.detail is not None:
            for column, value in outcome.detail.to_columns().items():
                registry.ensure(column)
                store.write_cell(outcome.row, column, value)
        store.write_cell(outcome.row, D_ERROR, outcome.error_cell())
        store.write_cell(
            outcome.row, D_FETCHED_AT, outcome.fetched_at.isoformat(),
        )

    def run(self, store: RecordStore) -> EnrichmentRun:
        """Enrich stale eligible rows of *store* in row order."""
        client = self._resolve_client()
        registry = SchemaRegistry(store)
        registry.require(COL_URL, COL_PLATFORM)
        registry.ensure(D_FETCHED_AT)
        registry.ensure(D_ERROR)

        run = EnrichmentRun()
        for row, values in store.data_rows():
            platform = Platform.parse(values.get(COL_PLATFORM))
            if platform is None or platform.value != Settings.ENRICH_PLATFORM:
                continue
            if not is_http_url(values.get(COL_URL)):
                continue
            if is_fresh(values.get(D_FETCHED_AT), self._clock()):
                run.skipped_fresh += 1
                continue

            outcome = self.enrich_row(client, row, values)
            self._persist(store, registry, outcome)
            run.outcomes.append(outcome)
            self.pacer.pause()

        logger.info(
            "Enrichment finished: %d enriched, %d errors, %d fresh",
            run.enriched,
            run.errored,
            run.skipped_fresh,
        )
        return run
