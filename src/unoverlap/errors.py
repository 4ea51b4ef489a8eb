"""
Exception taxonomy for the overlap-resolution engine.

Only ``OverlapGuaranteeViolation`` and ``StrategyCancelled`` are raised by
library code outside the resolver; the resolver recovers from every other
error locally and reports degraded quality through ``LayoutResult.success``.
"""

from __future__ import annotations

from typing import Optional


class LayoutError(Exception):
    """Base class for layout engine errors."""


class StrategyTimeout(LayoutError):
    """A single strategy attempt exceeded its time slice."""

    def __init__(self, strategy: str, timeout: float):
        super().__init__(f"Strategy {strategy} timed out after {timeout * 1000:.0f}ms")
        self.strategy = strategy
        self.timeout = timeout


class StrategyCancelled(LayoutError):
    """Raised inside a strategy whose cancel event was set."""

    def __init__(self, strategy: str):
        super().__init__(f"Strategy {strategy} was cancelled")
        self.strategy = strategy


class StrategyException(LayoutError):
    """Wraps an unexpected error raised by a strategy."""

    def __init__(self, strategy: str, cause: Optional[BaseException] = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Strategy {strategy} failed{detail}")
        self.strategy = strategy
        self.__cause__ = cause


class NoValidLayout(LayoutError):
    """Every strategy failed or timed out."""

    def __init__(self, attempted: int = 0):
        super().__init__("No valid layout found")
        self.attempted = attempted


class OverlapGuaranteeViolation(LayoutError):
    """A layout that must be overlap-free still contains overlaps."""

    def __init__(self, overlap_count: int):
        super().__init__(f"Layout still has {overlap_count} overlapping node pairs")
        self.overlap_count = overlap_count
