# tests/test_rakuten_source.py

"""Tests for the Rakuten source adapter using mocked HTTP responses."""

import json
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from product_research.config.settings import Settings
from product_research.errors import ConfigurationMissing, UpstreamHttpError
from product_research.models.listing import Platform
from product_research.sources.rakuten_source import RakutenSource

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class TestRakutenSource(unittest.TestCase):
    """Tests for the Rakuten adapter using mocked HTTP responses."""

    def setUp(self) -> None:
        patcher = patch.object(Settings, "RAKUTEN_APP_ID", "app-123")
        patcher.start()
        self.addCleanup(patcher.stop)

    def _make_mock_response(
        self, fixture_name: str, status_code: int = 200,
    ) -> MagicMock:
        """Create a mock response from a fixture JSON file."""
        mock_resp = MagicMock()
        mock_resp.status_code = status_code
        with open(FIXTURES_DIR / fixture_name, encoding="utf-8") as f:
            data = json.load(f)
        mock_resp.json.return_value = data
        mock_resp.text = json.dumps(data)
        return mock_resp

    @patch("product_research.sources.base_source.curl_requests.Session")
    def test_search_returns_ranked_listings(
        self, mock_session_cls: MagicMock,
    ) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        mock_session.get.return_value = self._make_mock_response(
            "rakuten_search.json"
        )

        listings = RakutenSource().search("ヘッドホン", 10)

        self.assertEqual(len(listings), 3)
        self.assertEqual([x.rank for x in listings], [1, 2, 3])
        self.assertTrue(all(x.platform is Platform.RAKUTEN for x in listings))

    @patch("product_research.sources.base_source.curl_requests.Session")
    def test_fields_parsed_correctly(
        self, mock_session_cls: MagicMock,
    ) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        mock_session.get.return_value = self._make_mock_response(
            "rakuten_search.json"
        )

        first = RakutenSource().search("ヘッドホン", 10)[0]
        self.assertEqual(first.price, 3980.0)
        self.assertEqual(first.shop_name, "オーディオ専門店A")
        self.assertEqual(first.review_count, 1523)
        self.assertEqual(first.review_avg, 4.43)
        self.assertIn("scid=af_pc", first.url)
        self.assertEqual(first.description, "最大36時間再生。IPX5防水。")

    @patch("product_research.sources.base_source.curl_requests.Session")
    def test_wrapped_item_and_missing_fields(
        self, mock_session_cls: MagicMock,
    ) -> None:
        """formatVersion=1 wrappers are unwrapped, gaps become blanks."""
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        mock_session.get.return_value = self._make_mock_response(
            "rakuten_search.json"
        )

        listings = RakutenSource().search("ヘッドホン", 10)
        self.assertEqual(listings[1].name, "ヘッドホン 有線 高音質")
        self.assertEqual(listings[1].price, 2480.0)
        self.assertIsNone(listings[2].price)
        self.assertEqual(listings[2].description, "")
        self.assertIsNone(listings[2].review_count)

    @patch("product_research.sources.base_source.curl_requests.Session")
    def test_request_params(self, mock_session_cls: MagicMock) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        mock_session.get.return_value = self._make_mock_response(
            "rakuten_search.json"
        )

        RakutenSource().search("  ヘッドホン ", 10)

        _, kwargs = mock_session.get.call_args
        params = kwargs["params"]
        self.assertEqual(params["applicationId"], "app-123")
        self.assertEqual(params["keyword"], "ヘッドホン")
        self.assertEqual(params["hits"], "10")
        self.assertEqual(params["formatVersion"], "2")
        self.assertEqual(kwargs["timeout"], Settings.REQUEST_TIMEOUT)

    @patch("product_research.sources.base_source.curl_requests.Session")
    def test_limit_truncates(self, mock_session_cls: MagicMock) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        mock_session.get.return_value = self._make_mock_response(
            "rakuten_search.json"
        )

        listings = RakutenSource().search("ヘッドホン", 2)
        self.assertEqual(len(listings), 2)

    @patch("product_research.sources.base_source.curl_requests.Session")
    def test_zero_results(self, mock_session_cls: MagicMock) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        resp = MagicMock(status_code=200)
        resp.json.return_value = {"count": 0, "Items": []}
        mock_session.get.return_value = resp

        self.assertEqual(RakutenSource().search("zzz", 10), [])

    @patch("product_research.sources.base_source.curl_requests.Session")
    def test_missing_app_id_is_fatal(
        self, mock_session_cls: MagicMock,
    ) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        with patch.object(Settings, "RAKUTEN_APP_ID", ""):
            with self.assertRaises(ConfigurationMissing):
                RakutenSource().search("ヘッドホン", 10)
        mock_session.get.assert_not_called()

    @patch("product_research.sources.base_source.curl_requests.Session")
    def test_server_error_propagates_after_retries(
        self, mock_session_cls: MagicMock,
    ) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        mock_session.get.return_value = MagicMock(
            status_code=503, text="unavailable",
        )

        with self.assertRaises(UpstreamHttpError) as ctx:
            RakutenSource().search("ヘッドホン", 10)
        self.assertEqual(ctx.exception.status, 503)
        self.assertEqual(mock_session.get.call_count, Settings.MAX_RETRIES)


if __name__ == "__main__":
    unittest.main()
