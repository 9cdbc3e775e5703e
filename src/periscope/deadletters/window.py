# src/periscope/deadletters/window.py
"""Windowed counting over a bounded buffer.

A window query asks "how many events of this category in the last D
milliseconds?". The buffer only retains a bounded history, so the answer
carries a flag saying whether it is provably complete.

Completeness argument:
    Eviction only ever removes the oldest retained entry. If the oldest
    survivor is at or before the window start, nothing inside the window
    can have been evicted, and the count is exact. Otherwise (or when the
    buffer is empty) the count is reported as a minimum estimate.

    Ties: when the oldest survivor sits exactly on the window start, an
    evicted entry with the same timestamp would also belong in the window.
    The newest evicted timestamp is checked so such a count is still
    reported as a minimum estimate.
"""

from dataclasses import dataclass
from typing import Any

from periscope.deadletters.buffer import CategoryBuffer


@dataclass(frozen=True, slots=True)
class WindowResult:
    """Count of in-window entries for one category.

    Attributes:
        count: Number of retained entries inside the window
        is_minimum_estimate: True when entries inside the window may have been
            evicted (or the observed history does not reach the window start)
    """

    count: int
    is_minimum_estimate: bool

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "is_minimum_estimate": self.is_minimum_estimate}


# Returned for non-positive windows: nothing counted, nothing proven
NO_EVIDENCE = WindowResult(count=0, is_minimum_estimate=True)


def estimate_window(buffer: CategoryBuffer, window_ms: int, now: float) -> WindowResult:
    """Count entries recorded within the trailing window ending at now.

    Args:
        buffer: Buffer to inspect (not modified)
        window_ms: Window length in milliseconds
        now: Monotonic seconds marking the window end. Callers computing
            several categories for one response must pass the same value.

    Returns:
        WindowResult with the in-window count and the estimate flag.

    Example:
        >>> estimate_window(buffer, window_ms=300, now=clock.monotonic())
        WindowResult(count=1, is_minimum_estimate=False)
    """
    if window_ms <= 0:
        return NO_EVIDENCE

    threshold = now - window_ms / 1000.0
    count = buffer.count_since(threshold)
    oldest = buffer.oldest_timestamp()
    evicted = buffer.newest_evicted_timestamp()
    is_minimum_estimate = oldest is None or oldest > threshold or (evicted is not None and evicted >= threshold)
    return WindowResult(count=count, is_minimum_estimate=is_minimum_estimate)
