# tests/test_listing_model.py

"""Tests for the ProductListing model and URL/number helpers."""

import unittest
from datetime import datetime

from product_research.models.listing import (
    COL_CAPTURE,
    COL_NAME,
    COL_PLATFORM,
    COL_PRICE,
    COL_RANK,
    LISTING_COLUMNS,
    Platform,
    ProductListing,
    is_http_url,
    strip_query,
    to_int,
    to_number,
)

COLLECTED = datetime(2026, 10, 1, 9, 30, 0)


def _listing(**overrides: object) -> ProductListing:
    fields: dict[str, object] = {
        "platform": Platform.YAHOO,
        "rank": 2,
        "collected_at": COLLECTED,
        "name": "ヘッドホン",
        "price": 12800.0,
        "url": "https://store.example.jp/item.html",
        "shop_name": "Store X",
        "review_count": 87,
        "review_avg": 4.2,
        "description": "軽量",
    }
    fields.update(overrides)
    return ProductListing(**fields)  # type: ignore[arg-type]


class TestPlatform(unittest.TestCase):

    def test_parse_known_values(self) -> None:
        self.assertIs(Platform.parse("rakuten"), Platform.RAKUTEN)
        self.assertIs(Platform.parse(Platform.GOOGLE), Platform.GOOGLE)

    def test_parse_unknown_returns_none(self) -> None:
        self.assertIsNone(Platform.parse("amazon"))
        self.assertIsNone(Platform.parse(""))
        self.assertIsNone(Platform.parse(None))


class TestHelpers(unittest.TestCase):

    def test_is_http_url(self) -> None:
        self.assertTrue(is_http_url("https://a.example/x"))
        self.assertTrue(is_http_url("http://a.example"))
        self.assertFalse(is_http_url("ftp://a.example/x"))
        self.assertFalse(is_http_url("/relative/path"))
        self.assertFalse(is_http_url(""))
        self.assertFalse(is_http_url(None))

    def test_strip_query_drops_query_and_fragment(self) -> None:
        self.assertEqual(
            strip_query("https://a.example/p/1?scid=af&x=1#top"),
            "https://a.example/p/1",
        )

    def test_strip_query_keeps_clean_url(self) -> None:
        url = "https://a.example/p/1"
        self.assertEqual(strip_query(url), url)

    def test_to_number(self) -> None:
        self.assertEqual(to_number("3980"), 3980.0)
        self.assertEqual(to_number(4.5), 4.5)
        self.assertIsNone(to_number(""))
        self.assertIsNone(to_number(None))
        self.assertIsNone(to_number("n/a"))
        self.assertIsNone(to_number(True))

    def test_to_int(self) -> None:
        self.assertEqual(to_int("3"), 3)
        self.assertEqual(to_int(3.0), 3)
        self.assertIsNone(to_int(""))


class TestProductListing(unittest.TestCase):

    def test_to_row_matches_column_order(self) -> None:
        row = _listing().to_row()
        self.assertEqual(len(row), len(LISTING_COLUMNS))
        cells = dict(zip(LISTING_COLUMNS, row))
        self.assertEqual(cells[COL_PLATFORM], "yahoo")
        self.assertEqual(cells[COL_RANK], 2)
        self.assertEqual(cells[COL_NAME], "ヘッドホン")
        self.assertEqual(cells[COL_CAPTURE], "")
        self.assertEqual(cells["Collected At"], "2026-10-01T09:30:00")

    def test_to_row_blanks_missing_numbers(self) -> None:
        row = _listing(price=None, review_count=None, review_avg=None)
        cells = dict(zip(LISTING_COLUMNS, row.to_row()))
        self.assertEqual(cells[COL_PRICE], "")
        self.assertEqual(cells["Review Count"], "")

    def test_from_row_restores_listing(self) -> None:
        original = _listing()
        row = dict(zip(LISTING_COLUMNS, original.to_row()))
        self.assertEqual(ProductListing.from_row(row), original)

    def test_from_row_rejects_non_listing(self) -> None:
        self.assertIsNone(ProductListing.from_row({COL_PLATFORM: "x"}))
        self.assertIsNone(
            ProductListing.from_row({COL_PLATFORM: "google", COL_RANK: ""})
        )


if __name__ == "__main__":
    unittest.main()
