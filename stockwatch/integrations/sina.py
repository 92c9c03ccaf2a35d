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


def parse_sina_line(line: str, timestamp: int) -> Quote | None:
    """Parse one `var hq_str_sh600519="name,open,prev_close,price,high,low,...";` row."""
    row = extract_quoted_row(line, "hq_str_")
    if row is None:
        # empty payload: suspended or unknown code
        return None
    full_id, data = row

    fields = data.split(",")
    if len(fields) < 6:
        return None

    name = fields[0]
    numbers = [to_float(v) for v in fields[1:6]]
    if any(v is None for v in numbers):
        return None
    _open, prev_close, price, high, low = numbers

    return build_quote(
        market=market_from_id(full_id),
        code=full_id[2:],
        name=name,
        price=price,
        prev_close=prev_close,
        high=high,
        low=low,
        timestamp=timestamp,
        source=SinaSource.name,
    )


class SinaSource:
    """Sina Finance batch quote endpoint, comma separated rows."""

    name = "sina"
    BASE_URL = "https://hq.sinajs.cn"

    def __init__(self, session: Optional[Any] = None, base_url: Optional[str] = None) -> None:
        self.session = session or requests
        self.base_url = base_url or self.BASE_URL

    def _get_text(self, codes: str) -> str:
        try:
            response = self.session.get(
                f"{self.base_url}/list={codes}",
                headers={"Referer": "https://finance.sina.com.cn"},
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
            quote = parse_sina_line(line, ts)
            if quote is None:
                print(f"[SOURCE][row_skip] source={self.name} line={line.strip()}", flush=True)
                continue
            out.append(quote)
        return out
