# src/periscope/deadletters/adapter.py
"""Ingestion adapter: runtime delivery-failure events -> collector records.

This is the replaceable boundary between a host runtime and the collector.
It knows the runtime's event types; the collector does not. Classification
is an exhaustive match over a closed set of event types:

- DeadLetter        -> EventCategory.DEAD_LETTER
- UnhandledMessage  -> EventCategory.UNHANDLED
- Dropped           -> EventCategory.DROPPED

Anything else is unclassifiable: the adapter logs it, counts it, and drops
it. The collector never sees it.
"""

from __future__ import annotations

import math
import threading
from collections.abc import Mapping
from typing import Any

from periscope.contracts.enums import EventCategory
from periscope.contracts.events import (
    DeadLetter,
    DeliveryFailure,
    DeliveryInfo,
    Dropped,
    UnhandledMessage,
)
from periscope.core.events import EventBusProtocol
from periscope.core.logging import get_logger
from periscope.deadletters.collector import DeadLettersCollector
from periscope.deadletters.errors import UnclassifiableEventError

logger = get_logger(__name__)

# Event types the adapter subscribes to on the runtime event stream
SUBSCRIBED_EVENT_TYPES: tuple[type[DeliveryFailure], ...] = (DeadLetter, UnhandledMessage, Dropped)

# Serialized "kind" tag -> raw event type, used by parse_raw_event()
_KIND_TO_EVENT_TYPE: dict[str, type[DeliveryFailure]] = {
    EventCategory.DEAD_LETTER.value: DeadLetter,
    EventCategory.UNHANDLED.value: UnhandledMessage,
    EventCategory.DROPPED.value: Dropped,
}


def classify(event: object) -> EventCategory:
    """Map a raw runtime event to its category.

    Raises:
        UnclassifiableEventError: If event is not one of the known types.
    """
    match event:
        case DeadLetter():
            return EventCategory.DEAD_LETTER
        case UnhandledMessage():
            return EventCategory.UNHANDLED
        case Dropped():
            return EventCategory.DROPPED
        case _:
            raise UnclassifiableEventError(f"Unknown delivery-failure event type: {type(event).__name__}")


def to_delivery_info(event: DeliveryFailure) -> DeliveryInfo:
    """Build the payload forwarded to the collector."""
    return DeliveryInfo(
        message=event.message,
        sender=event.sender,
        recipient=event.recipient,
        reason=event.reason if isinstance(event, Dropped) else None,
        occurred_at=event.occurred_at,
    )


def parse_raw_event(raw: Mapping[str, Any]) -> DeliveryFailure:
    """Build a raw runtime event from its serialized form.

    Expected keys: "kind" (dead_letter | unhandled | dropped), "message",
    and optionally "sender", "recipient", "reason" (dropped only), "at".

    Raises:
        UnclassifiableEventError: If the mapping is malformed.
    """
    if not isinstance(raw, Mapping):
        raise UnclassifiableEventError(f"Raw event must be a mapping, got {type(raw).__name__}")
    kind = raw.get("kind")
    if kind not in _KIND_TO_EVENT_TYPE:
        raise UnclassifiableEventError(f"Unknown event kind: {kind!r}")
    if "message" not in raw:
        raise UnclassifiableEventError(f"Event of kind {kind!r} has no message")

    occurred_at = raw.get("at")
    if occurred_at is not None:
        if isinstance(occurred_at, bool) or not isinstance(occurred_at, int | float):
            raise UnclassifiableEventError(f"Event 'at' must be a number, got {occurred_at!r}")
        # json.loads accepts NaN and Infinity
        if not math.isfinite(occurred_at):
            raise UnclassifiableEventError(f"Event 'at' must be finite, got {occurred_at!r}")

    common: dict[str, Any] = {
        "message": raw["message"],
        "sender": raw.get("sender"),
        "recipient": raw.get("recipient"),
        "occurred_at": None if occurred_at is None else float(occurred_at),
    }
    if kind == EventCategory.DROPPED.value:
        return Dropped(reason=raw.get("reason"), **common)
    return _KIND_TO_EVENT_TYPE[kind](**common)


class IngestionAdapter:
    """Subscribes to a runtime event stream and feeds a collector.

    Example:
        >>> adapter = IngestionAdapter(collector)
        >>> adapter.subscribe(bus)
        >>> bus.emit(DeadLetter(message="ping", recipient="worker-1"))
        >>> adapter.unsubscribe()
    """

    def __init__(self, collector: DeadLettersCollector) -> None:
        self._collector = collector
        self._bus: EventBusProtocol | None = None
        self._discarded_count = 0
        self._discarded_lock = threading.Lock()

    @property
    def discarded_count(self) -> int:
        """Events that could not be classified and were dropped at this boundary."""
        with self._discarded_lock:
            return self._discarded_count

    @property
    def subscribed(self) -> bool:
        return self._bus is not None

    def subscribe(self, bus: EventBusProtocol) -> None:
        """Start receiving delivery-failure events from bus.

        Raises:
            RuntimeError: If already subscribed to a bus.
        """
        if self._bus is not None:
            raise RuntimeError("IngestionAdapter is already subscribed")
        for event_type in SUBSCRIBED_EVENT_TYPES:
            bus.subscribe(event_type, self.ingest)
        self._bus = bus
        logger.debug("Ingestion adapter subscribed", event_types=[t.__name__ for t in SUBSCRIBED_EVENT_TYPES])

    def unsubscribe(self) -> None:
        """Stop receiving events. No-op if not subscribed."""
        if self._bus is None:
            return
        for event_type in SUBSCRIBED_EVENT_TYPES:
            self._bus.unsubscribe(event_type, self.ingest)
        self._bus = None
        logger.debug("Ingestion adapter unsubscribed", discarded=self.discarded_count)

    def ingest(self, event: object) -> None:
        """Classify event and record it, or log and discard it.

        Raises:
            NotRunningError: If the collector was closed while this adapter
                was still subscribed.
        """
        match event:
            case DeadLetter() | UnhandledMessage() | Dropped() as failure:
                self._collector.record(classify(failure), to_delivery_info(failure))
            case _:
                self._discard(
                    f"Unknown delivery-failure event type: {type(event).__name__}",
                    event_type=type(event).__name__,
                )

    def _discard(self, reason: str, *, event_type: str) -> None:
        with self._discarded_lock:
            self._discarded_count += 1
            discarded_total = self._discarded_count
        logger.warning(
            "Discarding unclassifiable delivery-failure event",
            event_type=event_type,
            reason=reason,
            discarded_total=discarded_total,
        )
