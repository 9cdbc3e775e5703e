# src/periscope/contracts/events.py
"""Delivery-failure events published by the host runtime.

The runtime decides whether a message was dead, unhandled or dropped and
publishes one of the events below on its event stream. The ingestion adapter
turns each into a DeliveryInfo payload for the collector.

Event types:
- DeadLetter: recipient no longer exists
- UnhandledMessage: recipient alive but had no matching behavior
- Dropped: recipient's inbound queue was full
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class DeliveryFailure:
    """Base class for runtime delivery-failure notifications.

    Attributes:
        message: The original message that failed delivery
        sender: Sending actor reference, if known
        recipient: Intended recipient reference, if known
        occurred_at: Runtime-side monotonic instant of the failure, if reported
    """

    message: Any
    sender: Any = None
    recipient: Any = None
    occurred_at: float | None = None


@dataclass(frozen=True, slots=True)
class DeadLetter(DeliveryFailure):
    """Message could not be delivered because its recipient is gone."""


@dataclass(frozen=True, slots=True)
class UnhandledMessage(DeliveryFailure):
    """Message reached a live recipient that had no handler for it."""


@dataclass(frozen=True, slots=True)
class Dropped(DeliveryFailure):
    """Message discarded because the recipient's mailbox was saturated.

    Attributes:
        reason: Runtime-supplied explanation (e.g. "mailbox full")
    """

    reason: str | None = None


@dataclass(frozen=True, slots=True)
class DeliveryInfo:
    """Payload recorded by the collector for every classified event.

    The collector treats this as opaque; it exists so snapshots can show
    what was sent, by whom, to whom.
    """

    message: Any
    sender: Any = None
    recipient: Any = None
    reason: str | None = None
    occurred_at: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for display. Opaque values are rendered with repr-like str()."""
        return {
            "message": _render(self.message),
            "sender": _render(self.sender),
            "recipient": _render(self.recipient),
            "reason": self.reason,
            "occurred_at": self.occurred_at,
        }


def _render(value: Any) -> Any:
    if value is None or isinstance(value, str | int | float | bool):
        return value
    return str(value)
