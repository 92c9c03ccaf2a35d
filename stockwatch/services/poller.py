from __future__ import annotations

import threading
import time
from typing import Any, Callable

from stockwatch.errors import SourceSwitched
from stockwatch.schemas.quote import ErrorEvent, SourceSwitchedEvent
from stockwatch.services.source_manager import DEFAULT_MAX_FAILURES, SourceManager

EVENT_QUOTES_UPDATED = "quotes-updated"
EVENT_PROVIDER_SWITCHED = "provider-switched"
EVENT_ERROR = "error"
FETCH_ERROR_CODE = "FETCH_ERROR"


class TickTimer:
    """Fixed-rate ticker; the first tick fires immediately.

    A tick that is already overdue (slow fetch) fires at once, and the
    schedule restarts from that moment.
    """

    def __init__(
        self,
        interval_ms: int,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        self.interval_ms = interval_ms
        self._clock = clock
        self._sleep_fn = sleep_fn
        self._next_at: float | None = None

    def wait(self) -> None:
        now = self._clock()
        if self._next_at is None:
            self._next_at = now
        delay = self._next_at - now
        if delay > 0:
            self._sleep_fn(delay)
        fired_at = max(self._next_at, now)
        self._next_at = fired_at + self.interval_ms / 1000.0


class Poller:
    """Polling loop: config snapshot -> source manager -> emit(event, payload).

    `is_running` and `is_paused` are plain flags set from other threads and
    read once per tick, so pause/resume/stop take effect on the next tick.
    """

    def __init__(
        self,
        config_store,
        emit: Callable[[str, Any], None],
        *,
        manager_factory: Callable[[list[str]], SourceManager] | None = None,
        max_failures: int = DEFAULT_MAX_FAILURES,
        clock: Callable[[], float] = time.monotonic,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config_store = config_store
        self.emit = emit
        self.max_failures = max_failures
        self._manager_factory = manager_factory or (
            lambda names: SourceManager.from_names(names, max_failures=self.max_failures)
        )
        self._clock = clock
        self._sleep_fn = sleep_fn

        self.is_paused = False
        self.is_running = False
        self.ticks = 0
        self._thread: threading.Thread | None = None
        self._started = False

        self.current_sources: list[str] = []
        self.source_manager: SourceManager | None = None
        self.timer: TickTimer | None = None

    def set_paused(self, paused: bool) -> None:
        self.is_paused = bool(paused)

    def start(self) -> None:
        # stop is terminal for this instance
        if self.is_running or self._started:
            return
        self._started = True
        self.is_running = True
        self._thread = threading.Thread(target=self.run, daemon=True, name="quote-poller")
        print("[POLLER][poller_start] thread=quote-poller", flush=True)
        self._thread.start()

    def stop(self) -> None:
        self.is_running = False

    def join(self, timeout: float | None = None) -> None:
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)

    def _new_timer(self, interval_ms: int) -> TickTimer:
        return TickTimer(interval_ms, clock=self._clock, sleep_fn=self._sleep_fn)

    def _emit(self, event: str, payload: Any) -> None:
        try:
            self.emit(event, payload)
        except Exception as exc:
            print(f"[POLLER][emit_error] event={event} error={exc}", flush=True)

    def run(self) -> None:
        """Run the loop in the calling thread until stop() is observed."""
        if not self._started:
            self._started = True
            self.is_running = True
        config = self.config_store.get()
        self.current_sources = list(config.data_sources)
        self.source_manager = self._manager_factory(self.current_sources)
        self.timer = self._new_timer(config.refresh_interval_ms)

        while True:
            self.timer.wait()
            if not self.is_running:
                break
            if self.is_paused:
                continue
            self.ticks += 1
            try:
                self.tick()
            except Exception as exc:
                print(f"[POLLER][tick_error] error={exc}", flush=True)

        print(f"[POLLER][poller_stop] ticks={self.ticks}", flush=True)

    def tick(self) -> None:
        """One unpaused iteration: steps after the timer fired."""
        config = self.config_store.get()

        if self.source_manager is None or config.data_sources != self.current_sources:
            print(
                "[POLLER][sources_changed] "
                f"old={','.join(self.current_sources)} new={','.join(config.data_sources)}",
                flush=True,
            )
            self.current_sources = list(config.data_sources)
            self.source_manager = self._manager_factory(self.current_sources)

        stocks = config.visible_stocks()
        if stocks:
            self._fetch_and_emit(stocks)

        new_interval = self.config_store.get().refresh_interval_ms
        if self.timer is None or new_interval != self.timer.interval_ms:
            print(f"[POLLER][interval_changed] refresh_interval_ms={new_interval}", flush=True)
            self.timer = self._new_timer(new_interval)

    def _fetch_and_emit(self, stocks: list[tuple[str, str]]) -> None:
        try:
            quotes = self.source_manager.fetch(stocks)
        except SourceSwitched as switched:
            self._emit(
                EVENT_PROVIDER_SWITCHED,
                SourceSwitchedEvent(from_source=switched.from_source, to_source=switched.to_source),
            )
            return
        except Exception as exc:
            self._emit(
                EVENT_ERROR,
                ErrorEvent(code=FETCH_ERROR_CODE, message=f"fetch failed: {exc}"),
            )
            return

        if quotes:
            self._emit(EVENT_QUOTES_UPDATED, quotes)

    def status(self) -> dict:
        manager = self.source_manager
        return {
            "running": self.is_running,
            "paused": self.is_paused,
            "active_source": manager.active_name if manager else None,
            "data_sources": list(self.current_sources),
            "fail_count": manager.fail_count if manager else 0,
            "ticks": self.ticks,
            "refresh_interval_ms": self.timer.interval_ms if self.timer else None,
        }
