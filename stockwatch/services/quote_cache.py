from __future__ import annotations

import time
from typing import Any

from stockwatch.schemas.quote import ErrorEvent, Quote, SourceSwitchedEvent
from stockwatch.services.poller import (
    EVENT_ERROR,
    EVENT_PROVIDER_SWITCHED,
    EVENT_QUOTES_UPDATED,
)


class QuoteCache:
    def __init__(self) -> None:
        self._rows: dict[str, Quote] = {}

    def upsert(self, quote: Quote) -> None:
        self._rows[quote.id] = quote

    def get(self, stock_id: str) -> Quote | None:
        return self._rows.get(stock_id)

    def list_many(self, stock_ids: list[str]) -> list[Quote]:
        out: list[Quote] = []
        for s in stock_ids:
            row = self.get(s)
            if row:
                out.append(row)
        return out

    def list_all(self) -> list[Quote]:
        return list(self._rows.values())

    def clear(self) -> None:
        self._rows.clear()


class QuoteEventSink:
    """Default poller consumer: poller event -> cache update + counters."""

    def __init__(self, cache: QuoteCache, stale_after_sec: int = 30) -> None:
        self.cache = cache
        self.stale_after_sec = stale_after_sec
        self.reset()

    def reset(self) -> None:
        self.quote_batches = 0
        self.upserts = 0
        self.source_switches = 0
        self.errors = 0
        self.last_update_ts: int | None = None
        self.last_switch: dict | None = None
        self.last_error: str | None = None

    def on_event(self, event: str, payload: Any) -> None:
        if event == EVENT_QUOTES_UPDATED:
            self.on_quotes(payload)
        elif event == EVENT_PROVIDER_SWITCHED:
            self.on_source_switched(payload)
        elif event == EVENT_ERROR:
            self.on_error(payload)
        else:
            print(f"[QUOTE][unknown_event] event={event}", flush=True)

    def on_quotes(self, quotes: list[Quote]) -> None:
        for quote in quotes:
            self.cache.upsert(quote)
            self.upserts += 1
        self.quote_batches += 1
        self.last_update_ts = int(time.time())

    def on_source_switched(self, event: SourceSwitchedEvent) -> None:
        self.source_switches += 1
        self.last_switch = event.model_dump(by_alias=True)
        print(f"[QUOTE][source_switched] from={event.from_source} to={event.to_source}", flush=True)

    def on_error(self, event: ErrorEvent) -> None:
        self.errors += 1
        self.last_error = event.message
        print(f"[QUOTE][fetch_error] code={event.code} message={event.message}", flush=True)

    def metrics(self, now: int | None = None) -> dict:
        ref = int(time.time()) if now is None else now
        fresh = False
        if self.last_update_ts is not None:
            fresh = (ref - self.last_update_ts) <= self.stale_after_sec

        return {
            "cached_quotes": len(self.cache.list_all()),
            "quote_batches": self.quote_batches,
            "upserts": self.upserts,
            "source_switches": self.source_switches,
            "errors": self.errors,
            "last_update_ts": self.last_update_ts,
            "data_fresh": fresh,
            "last_switch": self.last_switch,
            "last_error": self.last_error,
        }


quote_cache = QuoteCache()
quote_event_sink = QuoteEventSink(quote_cache)
