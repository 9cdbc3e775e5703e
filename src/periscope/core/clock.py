# src/periscope/core/clock.py
"""Clock abstraction for testable window logic.

This module provides a Clock protocol that abstracts time access, so the
collector's entry timestamps and window boundaries can be driven
deterministically.

Production code uses SystemClock (the default).
Tests and the replay command use ManualClock to control time advancement.
"""

from __future__ import annotations

import math
import time
from typing import Protocol


class Clock(Protocol):
    """Abstract monotonic clock.

    Implementations:
    - SystemClock: Uses time.monotonic() (production)
    - ManualClock: Returns controllable times (testing, replay)
    """

    def monotonic(self) -> float:
        """Return monotonic time in seconds.

        Must never go backwards; window boundaries are computed by
        subtracting a duration from this value.
        """
        ...


class SystemClock:
    """Production clock using time.monotonic().

    Immune to NTP/system time changes, which matters because windows are
    measured as differences between two readings.
    """

    def monotonic(self) -> float:
        """Return system monotonic time."""
        return time.monotonic()


class ManualClock:
    """Controllable clock.

    Allows tests and event replay to advance time programmatically
    without sleep().

    Example:
        clock = ManualClock(start=0.0)
        collector = DeadLettersCollector(10, clock=clock)

        collector.record(EventCategory.UNHANDLED, "a")  # Recorded at t=0
        collector.flush()
        clock.advance(0.5)  # Advance 500ms
    """

    def __init__(self, start: float = 0.0) -> None:
        """Initialize manual clock at a given time.

        Args:
            start: Initial monotonic time value (default 0.0).

        Raises:
            ValueError: If start is not finite.
        """
        if not math.isfinite(start):
            raise ValueError(f"Clock start must be finite, got {start}")
        self._current = start

    def monotonic(self) -> float:
        """Return current manual time."""
        return self._current

    def advance(self, seconds: float) -> None:
        """Advance time by specified seconds.

        Raises:
            ValueError: If seconds is negative or not finite.
        """
        if not math.isfinite(seconds):
            raise ValueError(f"Cannot advance time by a non-finite amount: {seconds}")
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._current += seconds

    def set(self, value: float) -> None:
        """Move time forward to an absolute value.

        Raises:
            ValueError: If value is not finite or is earlier than the
                current time.
        """
        # NaN compares False against everything and would slip past the check below
        if not math.isfinite(value):
            raise ValueError(f"Cannot set monotonic clock to a non-finite value: {value}")
        if value < self._current:
            raise ValueError(f"Cannot move monotonic clock backwards: {value} < {self._current}")
        self._current = value


# Default clock for production use
DEFAULT_CLOCK: Clock = SystemClock()
