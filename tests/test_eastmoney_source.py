import unittest
from unittest.mock import MagicMock, patch

import requests

from stockwatch.errors import FetchError
from stockwatch.integrations.eastmoney import EastmoneySource, parse_eastmoney_payload, to_secid


def _json_response(payload) -> MagicMock:
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = payload
    return response


MOUTAI_PAYLOAD = {
    "rc": 0,
    "data": {
        "f43": 175500,
        "f44": 176000,
        "f45": 174500,
        "f46": 174100,
        "f57": "600519",
        "f58": "贵州茅台",
        "f60": 174000,
        "f170": 86,
    },
}


class TestEastmoneyParser(unittest.TestCase):
    def test_secid_mapping(self):
        self.assertEqual(to_secid("sh", "600519"), "1.600519")
        self.assertEqual(to_secid("sz", "000001"), "0.000001")
        self.assertEqual(to_secid("bj", "430047"), "1.430047")

    def test_money_fields_are_divided_by_100(self):
        quote = parse_eastmoney_payload(MOUTAI_PAYLOAD, market="sh", code="600519", timestamp=1)

        self.assertEqual(quote.price, 1755.0)
        self.assertEqual(quote.high, 1760.0)
        self.assertEqual(quote.low, 1745.0)
        self.assertEqual(quote.prev_close, 1740.0)
        self.assertAlmostEqual(quote.change, 15.0)
        self.assertAlmostEqual(quote.percent, 15.0 / 1740.0)
        self.assertEqual(quote.name, "贵州茅台")
        self.assertEqual(quote.id, "sh600519")
        self.assertEqual(quote.source, "eastmoney")

    def test_missing_data_and_suspended_rows_are_skipped(self):
        self.assertIsNone(parse_eastmoney_payload({"data": None}, market="sh", code="600519", timestamp=1))
        suspended = {"data": dict(MOUTAI_PAYLOAD["data"], f43="-")}
        self.assertIsNone(parse_eastmoney_payload(suspended, market="sh", code="600519", timestamp=1))


class TestEastmoneySource(unittest.TestCase):
    def test_fetch_issues_one_request_per_stock(self):
        session = MagicMock()
        session.get.side_effect = [_json_response(MOUTAI_PAYLOAD), _json_response({"data": None})]
        source = EastmoneySource(session=session, base_url="http://example.test")

        quotes = source.fetch([("sh", "600519"), ("sz", "000001")])

        self.assertEqual([q.id for q in quotes], ["sh600519"])
        self.assertEqual(session.get.call_count, 2)
        first_call = session.get.call_args_list[0]
        self.assertEqual(first_call.args[0], "http://example.test/api/qt/stock/get")
        self.assertEqual(
            first_call.kwargs["params"],
            {"secid": "1.600519", "fields": "f43,f44,f45,f46,f57,f58,f60,f170"},
        )
        self.assertEqual(first_call.kwargs["timeout"], 5)
        self.assertEqual(session.get.call_args_list[1].kwargs["params"]["secid"], "0.000001")

    def test_single_stock_failure_is_skipped(self):
        session = MagicMock()
        session.get.side_effect = [requests.ConnectionError("reset"), _json_response(MOUTAI_PAYLOAD)]
        source = EastmoneySource(session=session)

        quotes = source.fetch([("sz", "000001"), ("sh", "600519")])

        self.assertEqual([q.id for q in quotes], ["sh600519"])

    def test_invalid_json_counts_as_item_failure(self):
        bad = MagicMock()
        bad.raise_for_status.return_value = None
        bad.json.side_effect = ValueError("Expecting value")
        session = MagicMock()
        session.get.side_effect = [bad, _json_response(MOUTAI_PAYLOAD)]

        quotes = EastmoneySource(session=session).fetch([("sz", "000001"), ("sh", "600519")])

        self.assertEqual(len(quotes), 1)

    def test_suspended_stock_is_logged_and_skipped(self):
        suspended = {"rc": 0, "data": {"f43": 0, "f57": "600000", "f58": "浦发银行", "f60": 0}}
        session = MagicMock()
        session.get.side_effect = [_json_response(suspended), _json_response(MOUTAI_PAYLOAD)]

        with patch("builtins.print") as mock_print:
            quotes = EastmoneySource(session=session).fetch([("sh", "600000"), ("sh", "600519")])

        self.assertEqual([q.id for q in quotes], ["sh600519"])
        mock_print.assert_called_once_with("[SOURCE][row_skip] source=eastmoney code=sh600000", flush=True)

    def test_all_requests_failing_raises_fetch_error(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("network down")

        with self.assertRaises(FetchError) as ctx:
            EastmoneySource(session=session).fetch([("sh", "600519"), ("sz", "000001")])

        self.assertEqual(ctx.exception.source, "eastmoney")
        self.assertEqual(session.get.call_count, 2)

    def test_empty_batch_makes_no_request(self):
        session = MagicMock()
        self.assertEqual(EastmoneySource(session=session).fetch([]), [])
        session.get.assert_not_called()


if __name__ == "__main__":
    unittest.main()
