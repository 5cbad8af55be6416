# product_research/services/capture_scheduler.py

"""Captures the top-ranked listings of every platform, paced and isolated."""

import logging
from dataclasses import dataclass, field

from product_research.config.settings import Settings
from product_research.models.listing import (
    COL_CAPTURE,
    COL_PLATFORM,
    COL_RANK,
    COL_URL,
    Platform,
    is_http_url,
    strip_query,
    to_int,
)
from product_research.services.capture_client import CaptureClient
from product_research.services.pacer import Pacer
from product_research.storage.file_storage import FileStorage
from product_research.storage.record_store import RecordStore, SchemaRegistry

logger = logging.getLogger("product_research.capture")


@dataclass
class CaptureOutcome:
    """Result of one attempted capture."""

    row: int
    platform: str
    url: str
    reference: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """True when an artifact was stored."""
        return self.reference is not None


@dataclass
class CaptureRun:
    """All attempts of one scheduler run plus the per-platform quota."""

    outcomes: list[CaptureOutcome] = field(
        default_factory=lambda: list[CaptureOutcome]()
    )
    quota: dict[str, int] = field(
        default_factory=lambda: {p.value: 0 for p in Platform}
    )

    @property
    def captured(self) -> int:
        """Number of successful captures."""
        return sum(self.quota.values())

    @property
    def failed(self) -> int:
        """Number of attempted rows that got the failure sentinel."""
        return sum(1 for o in self.outcomes if not o.ok)


class CaptureScheduler:
    """Selects up to CAPTURE_QUOTA rows per platform and captures them.

    A row is eligible when its platform is recognised, its rank is in
    ``[1, CAPTURE_MAX_RANK]``, its platform's quota is not used up, its
    capture cell is still empty and its URL is absolute http(s).  Each
    attempted row gets either the stored file URL or the failure
    sentinel, and the pacer pauses after every attempt.
    """

    def __init__(
        self,
        client: CaptureClient | None = None,
        pacer: Pacer | None = None,
        storage: FileStorage | None = None,
    ) -> None:
        self._client = client
        self._storage = storage
        self.pacer = pacer or Pacer("capture", Settings.CAPTURE_INTERVAL)

    def _resolve_client(self) -> CaptureClient:
        if self._client is None:
            self._client = CaptureClient(
                Settings.require("SCREENSHOTONE_ACCESS_KEY"),
                self._storage,
            )
        return self._client

    def _capture_row(
        self, client: CaptureClient, row: int, platform: Platform, url: str,
    ) -> CaptureOutcome:
        target = strip_query(url)
        try:
            stored = client.capture(target)
        except Exception as exc:
            logger.warning(
                "Capture failed for row %d (%s): %s",
                row,
                target,
                exc,
                exc_info=True,
            )
            return CaptureOutcome(
                row=row, platform=platform.value, url=target, error=str(exc),
            )
        return CaptureOutcome(
            row=row, platform=platform.value, url=target, reference=stored.url,
        )

    def run(self, store: RecordStore) -> CaptureRun:
        """Capture eligible rows of *store* and write back the results."""
        registry = SchemaRegistry(store)
        registry.require(COL_URL, COL_RANK, COL_PLATFORM)
        client = self._resolve_client()
        registry.ensure(COL_CAPTURE)

        run = CaptureRun()
        attempts = {p.value: 0 for p in Platform}
        quota_cap = Settings.CAPTURE_QUOTA

        for row, values in store.data_rows():
            platform = Platform.parse(values.get(COL_PLATFORM))
            rank = to_int(values.get(COL_RANK))
            url = values.get(COL_URL)
            if platform is None or rank is None:
                continue
            if not 1 <= rank <= Settings.CAPTURE_MAX_RANK:
                continue
            if (
                run.quota[platform.value] >= quota_cap
                or attempts[platform.value] >= quota_cap
            ):
                continue
            if values.get(COL_CAPTURE):
                continue
            if not is_http_url(url):
                continue

            attempts[platform.value] += 1
            outcome = self._capture_row(client, row, platform, str(url))
            store.write_cell(
                row,
                COL_CAPTURE,
                outcome.reference or Settings.CAPTURE_FAILURE,
            )
            if outcome.ok:
                run.quota[platform.value] += 1
            run.outcomes.append(outcome)
            self.pacer.pause()

        logger.info(
            "Capture finished: %d captured, %d failed (%s)",
            run.captured,
            run.failed,
            ", ".join(f"{k}={v}" for k, v in run.quota.items()),
        )
        return run
