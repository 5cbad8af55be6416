# product_research/services/pipeline.py

"""Runs the research stages for one keyword, in order."""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from product_research.models.listing import LISTING_COLUMNS
from product_research.services.aggregator import AggregationResult, Aggregator
from product_research.services.capture_scheduler import (
    CaptureRun,
    CaptureScheduler,
)
from product_research.services.enrichment_engine import (
    EnrichmentEngine,
    EnrichmentRun,
)
from product_research.services.report_compiler import (
    ReportCompiler,
    entries_from_store,
)
from product_research.storage.file_storage import FileStorage, StoredFile
from product_research.storage.record_store import (
    MemoryRecordStore,
    RecordStore,
)
from product_research.storage.sheet_db import SheetDB

logger = logging.getLogger("product_research.pipeline")

Notifier = Callable[[str], None]

STAGES = ("capture", "enrich", "report", "export")

_BATCH_RE = re.compile(r"^results_(?P<keyword>.+)_\d{8}_\d{6}(?:_\d+)?$")


def batch_name_for(keyword: str, when: datetime | None = None) -> str:
    """Name of the batch created for *keyword* at *when*."""
    stamp = (when or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"results_{keyword}_{stamp}"


def keyword_from_batch(name: str) -> str:
    """Recover the keyword from a batch name (the name itself if foreign)."""
    match = _BATCH_RE.match(name)
    return match.group("keyword") if match else name


@dataclass
class PipelineResult:
    """Everything one run produced, threaded back to the caller."""

    keyword: str
    batch_name: str
    aggregation: AggregationResult | None = None
    capture: CaptureRun | None = None
    enrichment: EnrichmentRun | None = None
    report: StoredFile | None = None
    export: StoredFile | None = None


class ResearchPipeline:
    """Aggregate, persist, capture, enrich and report for one keyword.

    With a :class:`SheetDB` every batch is a persisted sheet that later
    runs can reopen stage by stage; without one batches live in memory
    for the lifetime of the pipeline.  Any exception escaping a run is
    notified once and re-raised.
    """

    def __init__(
        self,
        workbook: SheetDB | None = None,
        storage: FileStorage | None = None,
        aggregator: Aggregator | None = None,
        capture: CaptureScheduler | None = None,
        enrichment: EnrichmentEngine | None = None,
        compiler: ReportCompiler | None = None,
        notify: Notifier | None = None,
    ) -> None:
        self.workbook = workbook
        self._storage = storage
        self.aggregator = aggregator or Aggregator()
        self.capture = capture or CaptureScheduler(storage=storage)
        self.enrichment = enrichment or EnrichmentEngine()
        self.compiler = compiler or ReportCompiler(storage)
        self._notify = notify
        self._memory: dict[str, MemoryRecordStore] = {}

    @property
    def storage(self) -> FileStorage:
        if self._storage is None:
            self._storage = FileStorage()
        return self._storage

    def notify(self, message: str) -> None:
        """Log a progress message and forward it to the notifier."""
        logger.info(message)
        if self._notify is not None:
            self._notify(message)

    # ── Batches ──────────────────────────────────────────

    def _has_batch(self, name: str) -> bool:
        if self.workbook is not None:
            return self.workbook.has_sheet(name)
        return name in self._memory

    def create_batch(self, keyword: str) -> tuple[str, RecordStore]:
        """Create an empty batch with the listing header."""
        base = batch_name_for(keyword)
        name, suffix = base, 1
        while self._has_batch(name):
            suffix += 1
            name = f"{base}_{suffix}"
        if self.workbook is not None:
            return name, self.workbook.create_sheet(name, LISTING_COLUMNS)
        store = MemoryRecordStore(LISTING_COLUMNS)
        self._memory[name] = store
        return name, store

    def open_batch(self, name: str) -> RecordStore:
        """Reopen a batch by name; KeyError if unknown."""
        if self.workbook is not None:
            return self.workbook.open_sheet(name)
        return self._memory[name]

    # ── Stages ───────────────────────────────────────────

    def capture_stage(self, store: RecordStore) -> CaptureRun:
        self.notify("Capturing top listings...")
        run = self.capture.run(store)
        self.notify(
            f"Capture done: {run.captured} captured, {run.failed} failed"
        )
        return run

    def enrich_stage(self, store: RecordStore) -> EnrichmentRun:
        self.notify("Fetching product details...")
        run = self.enrichment.run(store)
        self.notify(
            f"Details done: {run.enriched} fetched, {run.errored} errors, "
            f"{run.skipped_fresh} still fresh"
        )
        return run

    def report_stage(
        self, store: RecordStore, keyword: str,
    ) -> StoredFile | None:
        """Compile the report from persisted rows; None when empty."""
        entries = entries_from_store(store)
        if not entries:
            self.notify("No search-engine results to report")
            return None
        self.notify(f"Compiling report for {len(entries)} items...")
        stored = self.compiler.compile(keyword, entries)
        self.notify(f"Report saved: {stored.url}")
        return stored

    def export_stage(self, store: RecordStore, name: str) -> StoredFile:
        stored = self.storage.export_csv(store, name)
        self.notify(f"Exported {store.row_count()} rows: {stored.url}")
        return stored

    # ── Entry points ─────────────────────────────────────

    def _run(
        self, keyword: str, capture: bool, enrich: bool, report: bool,
    ) -> PipelineResult:
        keyword = keyword.strip()
        if not keyword:
            msg = "keyword must not be empty"
            raise ValueError(msg)

        self.notify(f"Searching '{keyword}'...")
        aggregation = self.aggregator.aggregate(keyword)
        for error in aggregation.errors:
            self.notify(f"Warning: {error}")

        name, store = self.create_batch(keyword)
        store.append_rows([
            listing.to_row() for listing in aggregation.listings
        ])
        result = PipelineResult(
            keyword=keyword, batch_name=name, aggregation=aggregation,
        )
        self.notify(f"Saved {aggregation.total} listings to '{name}'")

        if capture:
            result.capture = self.capture_stage(store)
        if enrich:
            result.enrichment = self.enrich_stage(store)
        if report:
            result.report = self.report_stage(store, keyword)
        self.notify("Done")
        return result

    def run(
        self,
        keyword: str,
        *,
        capture: bool = True,
        enrich: bool = True,
        report: bool = True,
    ) -> PipelineResult:
        """Run the enabled stages for *keyword* in sequence."""
        try:
            return self._run(keyword, capture, enrich, report)
        except Exception as exc:
            logger.error(
                "Run for '%s' failed: %s", keyword, exc, exc_info=True,
            )
            self.notify(f"Error: {exc}")
            raise

    def run_stage(self, batch_name: str, stage: str) -> PipelineResult:
        """Re-run one stage against an existing batch."""
        if stage not in STAGES:
            msg = f"Unknown stage '{stage}' (expected one of {', '.join(STAGES)})"
            raise ValueError(msg)
        keyword = keyword_from_batch(batch_name)
        result = PipelineResult(keyword=keyword, batch_name=batch_name)
        try:
            store = self.open_batch(batch_name)
            if stage == "capture":
                result.capture = self.capture_stage(store)
            elif stage == "enrich":
                result.enrichment = self.enrich_stage(store)
            elif stage == "report":
                result.report = self.report_stage(store, keyword)
            else:
                result.export = self.export_stage(store, batch_name)
        except Exception as exc:
            logger.error(
                "Stage '%s' on '%s' failed: %s",
                stage,
                batch_name,
                exc,
                exc_info=True,
            )
            self.notify(f"Error: {exc}")
            raise
        return result
