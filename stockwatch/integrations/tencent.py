from __future__ import annotations

from typing import Any, Optional

import requests

from stockwatch.errors import FetchError
from stockwatch.integrations.base import (
    REQUEST_TIMEOUT_SEC,
    build_quote,
    extract_quoted_row,
    make_stock_id,
    market_from_id,
    now_ms,
    to_float,
)
from stockwatch.schemas.quote import Quote

_MIN_FIELDS = 33
_HIGH_INDEX = 33
_LOW_INDEX = 34


def _field_or(fields: list[str], index: int, default: float) -> float:
    if index >= len(fields):
        return default
    value = to_float(fields[index])
    return default if value is None else value


def parse_tencent_line(line: str, timestamp: int) -> Quote | None:
    """Parse one `v_sh600519="1~name~600519~price~prev_close~...";` row.

    Fields: [0] market id, [1] name, [2] code, [3] price, [4] prev close,
    [5] open, [33] high, [34] low.
    """
    row = extract_quoted_row(line, "v_")
    if row is None:
        return None
    full_id, data = row

    fields = data.split("~")
    if len(fields) < _MIN_FIELDS:
        return None

    price = to_float(fields[3])
    prev_close = to_float(fields[4])
    if price is None or prev_close is None:
        return None

    return build_quote(
        market=market_from_id(full_id),
        code=fields[2],
        name=fields[1],
        price=price,
        prev_close=prev_close,
        high=_field_or(fields, _HIGH_INDEX, price),
        low=_field_or(fields, _LOW_INDEX, price),
        timestamp=timestamp,
        source=TencentSource.name,
    )


class TencentSource:
    """Tencent quote endpoint, tilde separated rows."""

    name = "tencent"
    BASE_URL = "http://qt.gtimg.cn"

    def __init__(self, session: Optional[Any] = None, base_url: Optional[str] = None) -> None:
        self.session = session or requests
        self.base_url = base_url or self.BASE_URL

    def _get_text(self, codes: str) -> str:
        try:
            response = self.session.get(
                f"{self.base_url}/q={codes}",
                timeout=REQUEST_TIMEOUT_SEC,
            )
            response.raise_for_status()
            response.encoding = "gbk"
            return response.text
        except (requests.RequestException, UnicodeDecodeError) as exc:
            raise FetchError(self.name, exc) from exc

    def fetch(self, stocks: list[tuple[str, str]]) -> list[Quote]:
        if not stocks:
            return []

        codes = ",".join(make_stock_id(market, code) for market, code in stocks)
        text = self._get_text(codes)
        ts = now_ms()

        out: list[Quote] = []
        for line in text.splitlines():
            if not line.strip():
                continue
            quote = parse_tencent_line(line, ts)
            if quote is None:
                print(f"[SOURCE][row_skip] source={self.name} line={line.strip()}", flush=True)
                continue
            out.append(quote)
        return out
