"""Port: progress sink — implemented by whatever host triggers a scan."""

from __future__ import annotations

from typing import Protocol


class ProgressSink(Protocol):
    """Receives coarse milestones during a scan.  Purely informational."""

    def report(self, message: str, increment: int) -> None:
        """Record *message* and advance the progress bar by *increment* percent."""
        ...


class NullProgress:
    """Sink used when the caller does not care about progress."""

    def report(self, message: str, increment: int) -> None:
        return None
