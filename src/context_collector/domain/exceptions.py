"""Domain exception hierarchy.

Only :class:`RootUnavailableError` and :class:`InvalidBudgetError` ever reach
the caller.  The remaining errors are raised inside a single stage (ignore
loading, manifest parsing) and caught there, so the scan always completes.
"""

from __future__ import annotations


class ContextCollectorError(Exception):
    """Base exception for the entire application."""


# ── Caller-facing errors ────────────────────────────────────────────────────


class RootUnavailableError(ContextCollectorError):
    """The project root does not exist or cannot be read."""


class InvalidBudgetError(ContextCollectorError):
    """A budget value was rejected before optimisation began."""


# ── Stage-local errors (logged and skipped) ─────────────────────────────────


class IgnoreSourceError(ContextCollectorError):
    """An ignore file could not be read or compiled."""


class ManifestError(ContextCollectorError):
    """The project manifest exists but could not be parsed."""
