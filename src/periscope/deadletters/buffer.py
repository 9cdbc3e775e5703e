# src/periscope/deadletters/buffer.py
"""Bounded per-category buffer of timestamped entries.

Key design decisions:
- Ring buffer via deque(maxlen=N): automatic oldest-first eviction
- Eviction counted by checking was_full BEFORE append (deque evicts during)
- Aggregate logging every N evictions, not one line per eviction
- Entries stored oldest -> newest; snapshots are handed out newest first
"""

from collections import deque
from dataclasses import dataclass
from typing import Any

from periscope.contracts.defaults import INTERNAL_DEFAULTS
from periscope.contracts.enums import EventCategory
from periscope.core.logging import get_logger
from periscope.deadletters.errors import InvalidCapacityError

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Timestamped:
    """A recorded value and the monotonic instant it was recorded at.

    Attributes:
        value: Opaque payload forwarded by the ingestion adapter
        timestamp: Monotonic seconds from the collector's clock
    """

    value: Any
    timestamp: float


class CategoryBuffer:
    """Fixed-capacity FIFO of Timestamped entries for one event category.

    Because eviction always removes the globally oldest entry, if any entry
    older than some instant T survives then every entry at or after T has
    survived too. The window estimator relies on this.

    Thread Safety:
        NOT thread-safe. The DeadLettersCollector owns every buffer and only
        touches it from its worker thread.

    Example:
        buffer = CategoryBuffer(EventCategory.UNHANDLED, capacity=5)
        buffer.insert(Timestamped("a", 1.0))
        buffer.snapshot_newest_first()
    """

    _LOG_INTERVAL = int(INTERNAL_DEFAULTS["buffer"]["eviction_log_interval"])

    def __init__(self, category: EventCategory, capacity: int) -> None:
        """Initialize an empty buffer.

        Args:
            category: Event category this buffer holds (used in logs)
            capacity: Maximum number of retained entries

        Raises:
            InvalidCapacityError: If capacity < 1.
        """
        if capacity < 1:
            raise InvalidCapacityError(capacity)
        self._category = category
        self._entries: deque[Timestamped] = deque(maxlen=capacity)
        self._recorded_count = 0
        self._evicted_count = 0
        self._newest_evicted_timestamp: float | None = None
        self._last_logged_eviction_count = 0

    @property
    def category(self) -> EventCategory:
        return self._category

    @property
    def capacity(self) -> int:
        # maxlen is always set in __init__
        return self._entries.maxlen  # type: ignore[return-value]

    @property
    def recorded_count(self) -> int:
        """Total number of entries ever inserted."""
        return self._recorded_count

    @property
    def evicted_count(self) -> int:
        """Number of entries removed to make room for newer ones."""
        return self._evicted_count

    def insert(self, entry: Timestamped) -> None:
        """Append entry, evicting the oldest one if the buffer is full."""
        was_full = len(self._entries) == self._entries.maxlen
        if was_full:
            # deque drops this entry during append
            self._newest_evicted_timestamp = self._entries[0].timestamp
        self._entries.append(entry)
        self._recorded_count += 1
        if was_full:
            # deque auto-dropped the oldest item
            self._evicted_count += 1
            if self._evicted_count - self._last_logged_eviction_count >= self._LOG_INTERVAL:
                logger.info(
                    "Dead letters buffer evicting oldest entries",
                    category=self._category.value,
                    evicted_since_last_log=self._evicted_count - self._last_logged_eviction_count,
                    evicted_total=self._evicted_count,
                    capacity=self._entries.maxlen,
                )
                self._last_logged_eviction_count = self._evicted_count

    def snapshot_newest_first(self) -> tuple[Timestamped, ...]:
        """Return retained entries, most recent first, as a new tuple."""
        return tuple(reversed(self._entries))

    def oldest_timestamp(self) -> float | None:
        """Timestamp of the oldest retained entry, or None if empty."""
        if not self._entries:
            return None
        return self._entries[0].timestamp

    def newest_evicted_timestamp(self) -> float | None:
        """Timestamp of the most recently evicted entry, or None if nothing was evicted.

        Only differs from "just before oldest_timestamp()" when timestamps tie.
        """
        return self._newest_evicted_timestamp

    def count_since(self, threshold: float) -> int:
        """Number of retained entries with timestamp >= threshold."""
        return sum(1 for entry in self._entries if entry.timestamp >= threshold)

    def __len__(self) -> int:
        return len(self._entries)
