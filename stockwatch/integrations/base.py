from __future__ import annotations

import time
from typing import Any, Protocol, runtime_checkable

from stockwatch.schemas.quote import Quote

REQUEST_TIMEOUT_SEC = 5


@runtime_checkable
class QuoteSource(Protocol):
    """One provider-specific fetch-and-parse implementation."""

    name: str

    def fetch(self, stocks: list[tuple[str, str]]) -> list[Quote]:
        """Return normalized quotes for (market, code) pairs, raise FetchError on call failure."""
        ...


def detect_market(code: str) -> str:
    """6xxxxx -> sh, 0xxxxx/3xxxxx -> sz, anything else -> sh."""
    if code.startswith("6"):
        return "sh"
    if code.startswith(("0", "3")):
        return "sz"
    return "sh"


def make_stock_id(market: str, code: str) -> str:
    return f"{market}{code}"


def market_from_id(full_id: str) -> str:
    if full_id.startswith("sz"):
        return "sz"
    return "sh"


def now_ms() -> int:
    return int(time.time() * 1000)


def to_float(value: Any) -> float | None:
    try:
        if value is None or value == "":
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


def build_quote(
    *,
    market: str,
    code: str,
    name: str,
    price: float,
    prev_close: float,
    high: float,
    low: float,
    timestamp: int,
    source: str,
) -> Quote | None:
    # zero price or prev close means halted or not listed
    if price <= 0.0 or prev_close <= 0.0:
        return None

    change = price - prev_close
    percent = change / prev_close
    return Quote(
        id=make_stock_id(market, code),
        code=code,
        market=market,
        name=name,
        price=price,
        prev_close=prev_close,
        change=change,
        percent=percent,
        high=high,
        low=low,
        timestamp=timestamp,
        source=source,
    )


def extract_quoted_row(line: str, id_marker: str) -> tuple[str, str] | None:
    """Split `<prefix><marker><id>="<data>";` into (id, data); None when malformed or empty."""
    marker_at = line.find(id_marker)
    if marker_at < 0:
        return None
    id_start = marker_at + len(id_marker)
    id_end = line.find("=", id_start)
    if id_end < 0:
        return None
    full_id = line[id_start:id_end]

    data_start = line.find('"') + 1
    data_end = line.rfind('"')
    if data_start <= 0 or data_start >= data_end:
        return None
    return full_id, line[data_start:data_end]
