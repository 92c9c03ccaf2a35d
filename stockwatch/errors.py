from __future__ import annotations


class FetchError(Exception):
    """Whole-call failure of one quote source (transport, status, body)."""

    def __init__(self, source: str, cause: Exception | str) -> None:
        self.source = source
        self.cause = cause
        super().__init__(f"{source}: {cause}")


class SourceSwitched(Exception):
    """Raised by the source manager after it already failed over."""

    def __init__(self, from_source: str, to_source: str) -> None:
        self.from_source = from_source
        self.to_source = to_source
        super().__init__(f"source_switched:{from_source}:{to_source}")
