# src/periscope/core/events.py
"""In-process event stream for the host runtime.

The runtime publishes delivery-failure events here; diagnostic components
such as the ingestion adapter subscribe by event type. Dispatch is
synchronous and in subscription order.
"""

import threading
from collections.abc import Callable
from typing import Any, Protocol, TypeVar

T = TypeVar("T")


class EventBusProtocol(Protocol):
    """Protocol for event stream implementations."""

    def subscribe(self, event_type: type[T], handler: Callable[[T], None]) -> None:
        """Subscribe a handler to an event type."""
        ...

    def unsubscribe(self, event_type: type[T], handler: Callable[[T], None]) -> None:
        """Remove a previously subscribed handler."""
        ...

    def emit(self, event: T) -> None:
        """Emit an event to all subscribers."""
        ...


class EventBus:
    """Simple synchronous event bus.

    Handlers are looked up by the exact type of the emitted event. Handler
    exceptions propagate to the emitter.

    Thread Safety:
        subscribe/unsubscribe/emit may be called from any thread. emit()
        copies the handler list under the lock and calls handlers outside it,
        so a handler may unsubscribe itself.

    Example:
        bus = EventBus()
        bus.subscribe(DeadLetter, handler)
        bus.emit(DeadLetter(message="ping", recipient="worker-1"))
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Callable[[Any], None]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: type[T], handler: Callable[[T], None]) -> None:
        """Subscribe a handler to an event type.

        Args:
            event_type: The event class to subscribe to
            handler: Callable that receives the event instance
        """
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: type[T], handler: Callable[[T], None]) -> None:
        """Remove a handler. Unknown handlers are ignored.

        Args:
            event_type: The event class the handler was subscribed to
            handler: The handler passed to subscribe()
        """
        with self._lock:
            handlers = self._subscribers.get(event_type)
            if handlers is None:
                return
            if handler in handlers:
                handlers.remove(handler)
            if not handlers:
                del self._subscribers[event_type]

    def subscriber_count(self, event_type: type) -> int:
        """Number of handlers currently subscribed to event_type."""
        with self._lock:
            return len(self._subscribers.get(event_type, ()))

    def emit(self, event: T) -> None:
        """Emit an event to all subscribers of its type.

        Events with no subscribers are silently ignored.
        """
        with self._lock:
            handlers = list(self._subscribers.get(type(event), ()))
        for handler in handlers:
            handler(event)
