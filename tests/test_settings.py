# tests/test_settings.py

"""Tests for the Settings configuration class."""

import unittest
from pathlib import Path
from unittest.mock import patch

from product_research.config.settings import Settings
from product_research.errors import ConfigurationMissing


class TestSettings(unittest.TestCase):
    """Verify Settings constants and source registry."""

    def test_request_timeout_is_positive_int(self) -> None:
        """REQUEST_TIMEOUT must be a positive integer."""
        self.assertIsInstance(Settings.REQUEST_TIMEOUT, int)
        self.assertGreater(Settings.REQUEST_TIMEOUT, 0)

    def test_capture_timeout_exceeds_provider_timeout(self) -> None:
        """The HTTP timeout must outlast the provider-side render timeout."""
        self.assertGreater(
            Settings.CAPTURE_TIMEOUT,
            int(Settings.CAPTURE_OPTIONS["timeout"]),
        )

    def test_max_retries_is_positive(self) -> None:
        """MAX_RETRIES must be >= 1."""
        self.assertGreaterEqual(Settings.MAX_RETRIES, 1)

    def test_pacing_intervals(self) -> None:
        self.assertEqual(Settings.CAPTURE_INTERVAL, 2.0)
        self.assertEqual(Settings.ENRICH_INTERVAL, 12.5)

    def test_capture_limits(self) -> None:
        self.assertEqual(Settings.CAPTURE_QUOTA, 3)
        self.assertEqual(Settings.CAPTURE_MAX_RANK, 3)

    def test_search_limit_is_ten(self) -> None:
        self.assertEqual(Settings.SEARCH_LIMIT, 10)

    def test_capture_options_request_full_page_pdf(self) -> None:
        self.assertTrue(Settings.CAPTURE_OPTIONS["full_page"])
        self.assertEqual(Settings.CAPTURE_OPTIONS["format"], "pdf")
        self.assertEqual(Settings.CAPTURE_OPTIONS["response_type"], "json")

    def test_available_sources_declaration_order(self) -> None:
        """Aggregation order is rakuten, yahoo, google."""
        ids = [s["id"] for s in Settings.AVAILABLE_SOURCES]
        self.assertEqual(ids, ["rakuten", "yahoo", "google"])

    def test_each_source_has_required_keys(self) -> None:
        """Every source must have id, label, adapter and credentials."""
        for src in Settings.AVAILABLE_SOURCES:
            with self.subTest(src=src.get("id", "?")):
                self.assertIn("id", src)
                self.assertIn("label", src)
                self.assertIn("adapter", src)
                self.assertIn("credentials", src)

    def test_source_ids_are_unique(self) -> None:
        """No duplicate source ids."""
        ids = [s["id"] for s in Settings.AVAILABLE_SOURCES]
        self.assertEqual(len(ids), len(set(ids)))

    def test_source_credentials_are_known_secrets(self) -> None:
        for src in Settings.AVAILABLE_SOURCES:
            for name in src["credentials"].split(","):
                with self.subTest(name=name):
                    self.assertIn(name, Settings.SECRET_NAMES)

    def test_paths_are_path_objects(self) -> None:
        """All directory settings must be Path instances."""
        for attr in ("BASE_DIR", "DATA_DIR", "OUTPUT_DIR", "LOGS_DIR"):
            with self.subTest(attr=attr):
                self.assertIsInstance(getattr(Settings, attr), Path)
        self.assertEqual(Settings.WORKBOOK_PATH.parent, Settings.DATA_DIR)

    def test_require_returns_configured_value(self) -> None:
        with patch.object(Settings, "DIFFBOT_TOKEN", "tok-123"):
            self.assertEqual(Settings.require("DIFFBOT_TOKEN"), "tok-123")

    def test_require_raises_when_missing(self) -> None:
        with patch.object(Settings, "DIFFBOT_TOKEN", ""):
            with self.assertRaises(ConfigurationMissing) as ctx:
                Settings.require("DIFFBOT_TOKEN")
        self.assertEqual(ctx.exception.name, "DIFFBOT_TOKEN")
        self.assertIn("DIFFBOT_TOKEN", str(ctx.exception))

    def test_config_status_never_exposes_values(self) -> None:
        with patch.object(Settings, "YAHOO_APP_ID", "secret-value"), \
                patch.object(Settings, "RAKUTEN_APP_ID", ""):
            status = Settings.config_status()
        self.assertEqual(set(status), set(Settings.SECRET_NAMES))
        self.assertIs(status["YAHOO_APP_ID"], True)
        self.assertIs(status["RAKUTEN_APP_ID"], False)
        self.assertNotIn("secret-value", repr(status))

    def test_label_for(self) -> None:
        self.assertEqual(Settings.label_for("google"), "Google Search")
        self.assertEqual(Settings.label_for("unknown"), "unknown")


if __name__ == "__main__":
    unittest.main()
