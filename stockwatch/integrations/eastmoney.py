from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from stockwatch.errors import FetchError
from stockwatch.integrations.base import REQUEST_TIMEOUT_SEC, build_quote, now_ms, to_float
from stockwatch.schemas.quote import Quote

# f43 price, f44 high, f45 low, f46 open, f57 code, f58 name, f60 prev close,
# f170 percent*100; money fields are in cents
_FIELDS = "f43,f44,f45,f46,f57,f58,f60,f170"
_SECID_MARKETS = {"sh": "1", "sz": "0"}


def to_secid(market: str, code: str) -> str:
    return f"{_SECID_MARKETS.get(market, '1')}.{code}"


def _cents(data: Dict[str, Any], key: str) -> float:
    value = to_float(data.get(key))
    if value is None:
        return 0.0
    return value / 100.0


def parse_eastmoney_payload(
    payload: Any,
    *,
    market: str,
    code: str,
    timestamp: int,
) -> Quote | None:
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        return None

    return build_quote(
        market=market,
        code=code,
        name=str(data.get("f58") or ""),
        price=_cents(data, "f43"),
        prev_close=_cents(data, "f60"),
        high=_cents(data, "f44"),
        low=_cents(data, "f45"),
        timestamp=timestamp,
        source=EastmoneySource.name,
    )


class EastmoneySource:
    """Eastmoney single-stock JSON endpoint; no batch API, one request per stock.

    A failed request only drops that stock. When every request of a non-empty
    batch fails, `fetch` raises the last FetchError so the outage counts toward
    source failover instead of looking like an empty watchlist.
    """

    name = "eastmoney"
    BASE_URL = "http://push2.eastmoney.com"

    def __init__(self, session: Optional[Any] = None, base_url: Optional[str] = None) -> None:
        self.session = session or requests
        self.base_url = base_url or self.BASE_URL

    def fetch_single(self, market: str, code: str, timestamp: int) -> Quote | None:
        try:
            response = self.session.get(
                f"{self.base_url}/api/qt/stock/get",
                params={"secid": to_secid(market, code), "fields": _FIELDS},
                timeout=REQUEST_TIMEOUT_SEC,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise FetchError(self.name, exc) from exc

        return parse_eastmoney_payload(payload, market=market, code=code, timestamp=timestamp)

    def fetch(self, stocks: list[tuple[str, str]]) -> list[Quote]:
        if not stocks:
            return []

        ts = now_ms()
        out: list[Quote] = []
        failures: list[FetchError] = []
        for market, code in stocks:
            try:
                quote = self.fetch_single(market, code, ts)
            except FetchError as exc:
                print(
                    f"[SOURCE][item_fetch_error] source={self.name} code={market}{code} error={exc.cause}",
                    flush=True,
                )
                failures.append(exc)
                continue
            if quote is None:
                print(f"[SOURCE][row_skip] source={self.name} code={market}{code}", flush=True)
                continue
            out.append(quote)

        # every request failed: treat as a source-level failure
        if len(failures) == len(stocks):
            raise failures[-1]
        return out
