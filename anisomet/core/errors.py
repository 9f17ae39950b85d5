"""Exception types raised by metric-field operations."""
from __future__ import annotations


class MetricError(Exception):
    """Base class for anisomet errors."""


class MetricPreconditionError(MetricError, ValueError):
    """An input violated a documented precondition; no output was produced."""


class MetricConvergenceError(MetricError, RuntimeError):
    """The target-count scaling loop did not converge within its iteration cap."""

    def __init__(self, message, stats=None):
        super().__init__(message)
        self.stats = stats


def check(condition, message: str) -> None:
    """Raise MetricPreconditionError with ``message`` unless ``condition`` holds."""
    if not condition:
        raise MetricPreconditionError(message)


__all__ = ['MetricError', 'MetricPreconditionError', 'MetricConvergenceError', 'check']
