# src/periscope/deadletters/snapshots.py
"""Query results returned by the dead letters collector.

Both types are immutable copies taken at one instant. They can be handed to
any number of readers without synchronization.
"""

from dataclasses import dataclass
from typing import Any

from periscope.contracts.enums import EventCategory
from periscope.deadletters.buffer import Timestamped
from periscope.deadletters.window import WindowResult


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Retained entries per category, newest first."""

    dead_letters: tuple[Timestamped, ...]
    unhandled: tuple[Timestamped, ...]
    dropped: tuple[Timestamped, ...]

    def for_category(self, category: EventCategory) -> tuple[Timestamped, ...]:
        match category:
            case EventCategory.DEAD_LETTER:
                return self.dead_letters
            case EventCategory.UNHANDLED:
                return self.unhandled
            case EventCategory.DROPPED:
                return self.dropped

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        """Serialize for display, keyed by category value."""
        return {category.value: [_entry_to_dict(entry) for entry in self.for_category(category)] for category in EventCategory}


@dataclass(frozen=True, slots=True)
class WindowSnapshot:
    """Window results per category, all computed against one instant.

    Attributes:
        window_ms: The requested window length in milliseconds
    """

    dead_letters: WindowResult
    unhandled: WindowResult
    dropped: WindowResult
    window_ms: int

    def for_category(self, category: EventCategory) -> WindowResult:
        match category:
            case EventCategory.DEAD_LETTER:
                return self.dead_letters
            case EventCategory.UNHANDLED:
                return self.unhandled
            case EventCategory.DROPPED:
                return self.dropped

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"window_ms": self.window_ms}
        for category in EventCategory:
            result[category.value] = self.for_category(category).to_dict()
        return result


def _entry_to_dict(entry: Timestamped) -> dict[str, Any]:
    to_dict = getattr(entry.value, "to_dict", None)
    value = to_dict() if callable(to_dict) else entry.value
    return {"timestamp": entry.timestamp, "value": value}
