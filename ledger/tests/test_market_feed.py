from decimal import Decimal
from unittest.mock import Mock, patch

import requests
from django.test import SimpleTestCase

from ledger.market_feed import MarketFetchError, fetch_market_benchmarks


def _response(payload):
    mock_response = Mock()
    mock_response.raise_for_status.return_value = None
    mock_response.json.return_value = payload
    return mock_response


class MarketFeedTests(SimpleTestCase):
    @patch("ledger.market_feed.requests.get")
    def test_fetch_market_benchmarks_parses_records(self, mock_get):
        mock_get.return_value = _response(
            {
                "benchmarks": [
                    {
                        "industry": "Technology",
                        "seniority_level": "Senior",
                        "median_income": "140000",
                        "percentile_curve": [[90, 190000], [50, 140000], [10, 90000]],
                        "role_level_growth": "0.075",
                        "source": "survey",
                    },
                    {
                        "industry": "Healthcare",
                        "median_income": 85000,
                        "percentiles": [{"percentile": 50, "income": 85000}],
                    },
                ]
            }
        )

        records = fetch_market_benchmarks("https://example.com/benchmarks.json")

        self.assertEqual([record.industry for record in records], ["Healthcare", "Technology"])
        technology = records[1]
        self.assertEqual(technology.median_income, Decimal("140000"))
        self.assertEqual(technology.percentile_curve[0], (Decimal("10"), Decimal("90000")))
        self.assertEqual(technology.role_level_growth, Decimal("0.075"))
        self.assertIsNone(technology.cpi_adjusted_growth)
        self.assertEqual(technology.metadata["source"], "survey")
        self.assertEqual(records[0].seniority_level, "")
        self.assertEqual(mock_get.call_args[0][0], "https://example.com/benchmarks.json")

    @patch("ledger.market_feed.requests.get")
    def test_rows_without_industry_are_skipped(self, mock_get):
        mock_get.return_value = _response(
            [{"industry": "", "median_income": "1"}, {"industry": "Mining", "median_income": "125000"}]
        )
        records = fetch_market_benchmarks("https://example.com/feed")
        self.assertEqual(len(records), 1)

    @patch("ledger.market_feed.requests.get")
    def test_unknown_seniority_is_rejected(self, mock_get):
        mock_get.return_value = _response([{"industry": "Mining", "seniority": "Wizard", "median_income": "1"}])
        with self.assertRaises(MarketFetchError):
            fetch_market_benchmarks("https://example.com/feed")

    @patch("ledger.market_feed.requests.get")
    def test_missing_median_is_rejected(self, mock_get):
        mock_get.return_value = _response([{"industry": "Mining"}])
        with self.assertRaises(MarketFetchError):
            fetch_market_benchmarks("https://example.com/feed")

    @patch("ledger.market_feed.requests.get")
    def test_bad_curve_is_rejected(self, mock_get):
        mock_get.return_value = _response([{"industry": "Mining", "median_income": "1", "percentile_curve": [[150, 1]]}])
        with self.assertRaises(MarketFetchError):
            fetch_market_benchmarks("https://example.com/feed")

    @patch("ledger.market_feed.requests.get")
    def test_unsupported_payload_is_rejected(self, mock_get):
        mock_get.return_value = _response({"unexpected": True})
        with self.assertRaises(MarketFetchError):
            fetch_market_benchmarks("https://example.com/feed")

    @patch("ledger.market_feed.requests.get")
    def test_network_errors_are_wrapped(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("down")
        with self.assertRaises(MarketFetchError):
            fetch_market_benchmarks("https://example.com/feed")

    def test_missing_url_is_rejected(self):
        with self.assertRaises(MarketFetchError):
            fetch_market_benchmarks("")
