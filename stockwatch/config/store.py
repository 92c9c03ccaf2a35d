from __future__ import annotations

import threading

from stockwatch.config.settings import Settings
from stockwatch.integrations.base import detect_market, make_stock_id
from stockwatch.schemas.config import AppConfig, StockEntry


def parse_stock_symbol(symbol: str, alias: str = "", market: str | None = None) -> StockEntry:
    """`sh600519` keeps its prefix, a bare `600519` gets its market detected.

    An explicit `market` must agree with any prefix on the symbol. The code
    itself has to be all digits.
    """
    value = symbol.strip().lower()
    prefix = value[:2] if value[:2] in ("sh", "sz") else None
    code = value[2:] if prefix else value
    if market and prefix and prefix != market:
        raise ValueError(f"market mismatch: {symbol!r} vs {market}")
    market = market or prefix or detect_market(code)
    if not code or not code.isdigit():
        raise ValueError(f"invalid stock symbol: {symbol!r}")
    return StockEntry(id=make_stock_id(market, code), code=code, market=market, alias=alias)


class ConfigStore:
    """In-memory watchlist and app settings; readers always get a deep copy."""

    def __init__(self, config: AppConfig | None = None) -> None:
        self._lock = threading.Lock()
        self._config = config or AppConfig()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConfigStore":
        stocks: list[StockEntry] = []
        seen: set[str] = set()
        for symbol in settings.STOCKWATCH_SYMBOLS:
            try:
                entry = parse_stock_symbol(symbol)
            except ValueError as exc:
                print(f"[CONFIG][symbol_skip] symbol={symbol} reason={exc}", flush=True)
                continue
            if entry.id in seen:
                continue
            seen.add(entry.id)
            stocks.append(entry)
        return cls(
            AppConfig(
                refresh_interval_ms=settings.STOCKWATCH_REFRESH_INTERVAL_MS,
                data_sources=list(settings.STOCKWATCH_DATA_SOURCES),
                stocks=stocks,
            )
        )

    def get(self) -> AppConfig:
        with self._lock:
            return self._config.model_copy(deep=True)

    def update(self, config: AppConfig) -> None:
        validated = AppConfig.model_validate(config.model_dump())
        with self._lock:
            self._config = validated
        print(
            f"[CONFIG][config_update] stocks={len(validated.stocks)} "
            f"data_sources={','.join(validated.data_sources)} "
            f"refresh_interval_ms={validated.refresh_interval_ms}",
            flush=True,
        )

    def update_app(
        self,
        *,
        refresh_interval_ms: int | None = None,
        data_sources: list[str] | None = None,
    ) -> AppConfig:
        config = self.get()
        if refresh_interval_ms is not None:
            config.refresh_interval_ms = refresh_interval_ms
        if data_sources is not None:
            config.data_sources = list(data_sources)
        self.update(config)
        return self.get()

    def add_stock(self, stock: StockEntry) -> None:
        with self._lock:
            if any(s.id == stock.id for s in self._config.stocks):
                raise ValueError("STOCK_ALREADY_EXISTS")
            self._config.stocks.append(stock.model_copy())

    def remove_stock(self, stock_id: str) -> None:
        with self._lock:
            self._config.stocks = [s for s in self._config.stocks if s.id != stock_id]

    def reorder_stocks(self, ids: list[str]) -> None:
        """Keep only listed ids, in the given order; unknown ids are ignored."""
        with self._lock:
            by_id = {s.id: s for s in self._config.stocks}
            self._config.stocks = [by_id[i] for i in ids if i in by_id]

    def set_visible(self, stock_id: str, visible: bool) -> StockEntry:
        with self._lock:
            for stock in self._config.stocks:
                if stock.id == stock_id:
                    stock.visible = visible
                    return stock.model_copy()
        raise KeyError("STOCK_NOT_FOUND")
