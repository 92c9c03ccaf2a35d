from __future__ import annotations

from typing import Any, Callable, Optional

from stockwatch.errors import SourceSwitched
from stockwatch.integrations.base import QuoteSource
from stockwatch.integrations.eastmoney import EastmoneySource
from stockwatch.integrations.sina import SinaSource
from stockwatch.integrations.tencent import TencentSource
from stockwatch.schemas.quote import Quote

SOURCE_REGISTRY: dict[str, Callable[..., QuoteSource]] = {
    SinaSource.name: SinaSource,
    TencentSource.name: TencentSource,
    EastmoneySource.name: EastmoneySource,
}
DEFAULT_SOURCE = SinaSource.name
DEFAULT_MAX_FAILURES = 3


def build_sources(names: list[str], *, session: Optional[Any] = None) -> list[QuoteSource]:
    """Instantiate sources in config order; unknown names are skipped, never empty."""
    sources: list[QuoteSource] = []
    for name in names:
        factory = SOURCE_REGISTRY.get(name)
        if factory is None:
            print(f"[SOURCE][unknown_source] name={name}", flush=True)
            continue
        sources.append(factory(session=session))

    if not sources:
        sources.append(SOURCE_REGISTRY[DEFAULT_SOURCE](session=session))
    return sources


class SourceManager:
    """Single active quote source with failover after consecutive failures."""

    def __init__(
        self,
        sources: list[QuoteSource],
        *,
        max_failures: int = DEFAULT_MAX_FAILURES,
    ) -> None:
        if not sources:
            sources = build_sources([])
        self.sources = list(sources)
        self.max_failures = max_failures
        self.active_index = 0
        self.fail_count = 0

    @classmethod
    def from_names(
        cls,
        names: list[str],
        *,
        max_failures: int = DEFAULT_MAX_FAILURES,
        session: Optional[Any] = None,
    ) -> "SourceManager":
        return cls(build_sources(names, session=session), max_failures=max_failures)

    @property
    def active_name(self) -> str:
        return self.sources[self.active_index].name

    @property
    def source_names(self) -> list[str]:
        return [s.name for s in self.sources]

    def fetch(self, stocks: list[tuple[str, str]]) -> list[Quote]:
        """Fetch from the active source.

        Raises the source error unchanged while under the failure threshold
        (or when only one source exists). On reaching the threshold the next
        source becomes active and SourceSwitched is raised instead.
        """
        source = self.sources[self.active_index]
        try:
            quotes = source.fetch(stocks)
        except Exception as exc:
            self.fail_count += 1
            print(
                f"[SOURCE][fetch_error] source={source.name} "
                f"fail_count={self.fail_count}/{self.max_failures} error={exc}",
                flush=True,
            )
            if self.fail_count >= self.max_failures and len(self.sources) > 1:
                old_name = self.active_name
                self.active_index = (self.active_index + 1) % len(self.sources)
                self.fail_count = 0
                new_name = self.active_name
                print(f"[SOURCE][source_switched] from={old_name} to={new_name}", flush=True)
                raise SourceSwitched(old_name, new_name) from exc
            raise

        self.fail_count = 0
        return quotes
