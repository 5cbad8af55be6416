# tests/test_pipeline.py

"""End-to-end tests for the research pipeline with faked providers."""

import json
import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

from product_research.config.settings import Settings
from product_research.errors import ConfigurationMissing
from product_research.models.detail import D_ERROR, D_FETCHED_AT, D_TITLE
from product_research.models.listing import (
    COL_CAPTURE,
    COL_PLATFORM,
    Platform,
    ProductListing,
)
from product_research.services.aggregator import AggregationResult, Aggregator
from product_research.services.capture_client import CaptureClient
from product_research.services.capture_scheduler import CaptureScheduler
from product_research.services.enrichment_engine import EnrichmentEngine
from product_research.services.extraction_client import ExtractionClient
from product_research.services.pacer import Pacer
from product_research.services.pipeline import (
    ResearchPipeline,
    batch_name_for,
    keyword_from_batch,
)
from product_research.storage.file_storage import FileStorage, StoredFile
from product_research.storage.sheet_db import SheetDB

FIXTURES_DIR = Path(__file__).parent / "fixtures"
NOW = datetime(2026, 10, 19, 10, 0, 0)


def _product() -> dict[str, Any]:
    with open(FIXTURES_DIR / "diffbot_product.json", encoding="utf-8") as f:
        return json.load(f)["objects"][0]


def _aggregation(keyword: str = "headphones") -> AggregationResult:
    result = AggregationResult(keyword=keyword)
    for platform, count in (
        (Platform.RAKUTEN, 10), (Platform.YAHOO, 10), (Platform.GOOGLE, 2),
    ):
        for rank in range(1, count + 1):
            result.listings.append(ProductListing(
                platform=platform,
                rank=rank,
                collected_at=NOW,
                name=f"{platform.value}-{rank}",
                price=1000.0 + rank if platform != Platform.GOOGLE else None,
                url=f"https://{platform.value}.example/{rank}?ref=kw",
            ))
        result.counts[platform.value] = count
    return result


class PipelineTestCase(unittest.TestCase):
    """Wires a pipeline to a temporary workbook and fake providers."""

    def setUp(self) -> None:
        tmp = Path(tempfile.mkdtemp())
        self.storage = FileStorage(tmp / "output")
        self.workbook = SheetDB(tmp / "data" / "workbook.db")
        self.addCleanup(self.workbook.close)

        self.aggregator = MagicMock(spec=Aggregator)
        self.aggregator.aggregate.return_value = _aggregation()

        self.capture_client = MagicMock(spec=CaptureClient)
        self.capture_client.capture.side_effect = self._fake_capture
        self.extraction_client = MagicMock(spec=ExtractionClient)
        self.extraction_client.extract.return_value = _product()

        self.sleep = MagicMock()
        self.messages: list[str] = []

    def _fake_capture(self, url: str) -> StoredFile:
        return self.storage.save("shot.pdf", url.encode("utf-8"))

    def _pipeline(self, workbook: SheetDB | None = None) -> ResearchPipeline:
        return ResearchPipeline(
            workbook=workbook,
            storage=self.storage,
            aggregator=self.aggregator,
            capture=CaptureScheduler(
                client=self.capture_client,
                pacer=Pacer("capture", Settings.CAPTURE_INTERVAL, sleep=self.sleep),
            ),
            enrichment=EnrichmentEngine(
                client=self.extraction_client,
                pacer=Pacer("enrichment", Settings.ENRICH_INTERVAL, sleep=self.sleep),
                now=lambda: NOW,
            ),
            notify=self.messages.append,
        )


class TestResearchPipeline(PipelineTestCase):

    def test_full_run(self) -> None:
        result = self._pipeline(self.workbook).run("headphones")

        self.assertTrue(result.batch_name.startswith("results_headphones_"))
        store = self.workbook.open_sheet(result.batch_name)
        self.assertEqual(store.row_count(), 22)

        # Top three per platform captured, query strings dropped
        self.assertEqual(result.capture.captured, 8)
        captured_urls = [c.args[0] for c in self.capture_client.capture.call_args_list]
        self.assertNotIn("https://rakuten.example/1?ref=kw", captured_urls)
        self.assertIn("https://rakuten.example/1", captured_urls)
        filled = [
            values[COL_PLATFORM]
            for _row, values in store.data_rows() if values[COL_CAPTURE]
        ]
        self.assertEqual(filled.count("rakuten"), 3)
        self.assertEqual(filled.count("google"), 2)

        # Only google rows are enriched
        self.assertEqual(result.enrichment.enriched, 2)
        self.assertEqual(self.extraction_client.extract.call_count, 2)
        google_rows = [
            values for _row, values in store.data_rows()
            if values[COL_PLATFORM] == "google"
        ]
        self.assertTrue(all(v[D_TITLE] == "WH-1000XM5" for v in google_rows))
        self.assertTrue(all(v[D_FETCHED_AT] == NOW.isoformat() for v in google_rows))

        # 8 capture pauses plus 2 enrichment pauses
        self.assertEqual(self.sleep.call_count, 10)

        self.assertIsNotNone(result.report)
        self.assertTrue(result.report.path.read_bytes().startswith(b"%PDF"))

    def test_progress_messages(self) -> None:
        self._pipeline(self.workbook).run("headphones")

        self.assertEqual(self.messages[0], "Searching 'headphones'...")
        self.assertTrue(any(m.startswith("Saved 22 listings") for m in self.messages))
        self.assertIn("Capture done: 8 captured, 0 failed", self.messages)
        self.assertTrue(any(m.startswith("Report saved: file://") for m in self.messages))
        self.assertEqual(self.messages[-1], "Done")

    def test_aggregation_warnings_forwarded(self) -> None:
        aggregation = _aggregation()
        aggregation.errors.append("Google: 403 Forbidden")
        self.aggregator.aggregate.return_value = aggregation

        self._pipeline(self.workbook).run(
            "headphones", capture=False, enrich=False, report=False,
        )

        self.assertIn("Warning: Google: 403 Forbidden", self.messages)

    def test_disabled_stages_skipped(self) -> None:
        result = self._pipeline(self.workbook).run(
            "headphones", capture=False, enrich=False, report=False,
        )
        self.assertIsNone(result.capture)
        self.assertIsNone(result.enrichment)
        self.assertIsNone(result.report)
        self.capture_client.capture.assert_not_called()
        self.extraction_client.extract.assert_not_called()

    def test_no_google_rows_skips_report(self) -> None:
        aggregation = _aggregation()
        aggregation.listings = [
            x for x in aggregation.listings if x.platform != Platform.GOOGLE
        ]
        self.aggregator.aggregate.return_value = aggregation

        result = self._pipeline(self.workbook).run("headphones", capture=False)

        self.assertIsNone(result.report)
        self.assertIn("No search-engine results to report", self.messages)

    def test_enrichment_failure_reported_not_raised(self) -> None:
        self.extraction_client.extract.side_effect = [
            _product(), RuntimeError("page timed out"),
        ]
        result = self._pipeline(self.workbook).run("headphones", capture=False)

        store = self.workbook.open_sheet(result.batch_name)
        errors = [
            values[D_ERROR] for _row, values in store.data_rows()
            if values[COL_PLATFORM] == "google"
        ]
        self.assertEqual(errors, ["", "ERR: page timed out"])
        self.assertIsNotNone(result.report)

    def test_error_notified_and_reraised(self) -> None:
        pipeline = self._pipeline(self.workbook)
        pipeline.enrichment = EnrichmentEngine(
            pacer=Pacer("enrichment", 12.5, sleep=self.sleep),
        )
        with patch.object(Settings, "DIFFBOT_TOKEN", ""):
            with self.assertRaises(ConfigurationMissing):
                pipeline.run("headphones", capture=False)

        self.assertTrue(self.messages[-1].startswith("Error: DIFFBOT_TOKEN"))

    def test_empty_keyword(self) -> None:
        with self.assertRaises(ValueError):
            self._pipeline(self.workbook).run("   ")
        self.assertEqual(self.messages, ["Error: keyword must not be empty"])
        self.aggregator.aggregate.assert_not_called()

    def test_memory_mode(self) -> None:
        pipeline = self._pipeline()
        result = pipeline.run("headphones", capture=False, enrich=False)

        store = pipeline.open_batch(result.batch_name)
        self.assertEqual(store.row_count(), 22)
        self.assertEqual(self.workbook.list_sheets(), [])

    @patch("product_research.services.pipeline.batch_name_for")
    def test_batch_name_collision(self, mock_name: MagicMock) -> None:
        mock_name.return_value = "results_headphones_20261019_100000"
        pipeline = self._pipeline(self.workbook)

        first = pipeline.run("headphones", capture=False, enrich=False, report=False)
        second = pipeline.run("headphones", capture=False, enrich=False, report=False)
        third = pipeline.run("headphones", capture=False, enrich=False, report=False)

        self.assertEqual(first.batch_name, "results_headphones_20261019_100000")
        self.assertEqual(second.batch_name, "results_headphones_20261019_100000_2")
        self.assertEqual(third.batch_name, "results_headphones_20261019_100000_3")


class TestRunStage(PipelineTestCase):

    def _stored_batch(self) -> str:
        result = self._pipeline(self.workbook).run(
            "headphones", capture=False, enrich=False, report=False,
        )
        self.messages.clear()
        return result.batch_name

    def test_enrich_then_report(self) -> None:
        name = self._stored_batch()
        pipeline = self._pipeline(self.workbook)

        enriched = pipeline.run_stage(name, "enrich")
        reported = pipeline.run_stage(name, "report")

        self.assertEqual(enriched.enrichment.enriched, 2)
        self.assertEqual(reported.keyword, "headphones")
        self.assertIn("detail_report_headphones_", reported.report.name)

    def test_rerun_enrich_skips_fresh_rows(self) -> None:
        name = self._stored_batch()
        pipeline = self._pipeline(self.workbook)

        pipeline.run_stage(name, "enrich")
        again = pipeline.run_stage(name, "enrich")

        self.assertEqual(again.enrichment.skipped_fresh, 2)
        self.assertEqual(self.extraction_client.extract.call_count, 2)

    def test_capture_rerun_leaves_captured_rows(self) -> None:
        name = self._stored_batch()
        pipeline = self._pipeline(self.workbook)

        pipeline.run_stage(name, "capture")
        again = pipeline.run_stage(name, "capture")

        self.assertEqual(again.capture.captured, 0)
        self.assertEqual(self.capture_client.capture.call_count, 8)

    def test_export(self) -> None:
        name = self._stored_batch()
        result = self._pipeline(self.workbook).run_stage(name, "export")

        self.assertTrue(result.export.path.exists())
        lines = result.export.path.read_text(encoding="utf-8-sig").splitlines()
        self.assertEqual(len(lines), 23)

    def test_unknown_stage(self) -> None:
        with self.assertRaises(ValueError):
            self._pipeline(self.workbook).run_stage("results_x_20261019_100000", "dance")

    def test_unknown_batch_notified(self) -> None:
        with self.assertRaises(KeyError):
            self._pipeline(self.workbook).run_stage(
                "results_nothing_20261019_100000", "report",
            )
        self.assertTrue(self.messages[-1].startswith("Error:"))


class TestBatchNames(unittest.TestCase):

    def test_batch_name_for(self) -> None:
        self.assertEqual(
            batch_name_for("headphones", NOW), "results_headphones_20261019_100000",
        )

    def test_keyword_from_batch(self) -> None:
        self.assertEqual(
            keyword_from_batch("results_noise cancelling_20261019_100000"),
            "noise cancelling",
        )
        self.assertEqual(
            keyword_from_batch("results_headphones_20261019_100000_2"),
            "headphones",
        )
        self.assertEqual(keyword_from_batch("my_sheet"), "my_sheet")


if __name__ == "__main__":
    unittest.main()
