# src/periscope/deadletters/collector.py
"""DeadLettersCollector: the serialization point for dead letter diagnostics.

The collector owns one CategoryBuffer per EventCategory and is the only
thing that ever touches them:
1. record() enqueues an entry for the worker thread (fire-and-forget)
2. ask_snapshot() / ask_window() enqueue a query and return a Future
3. The worker applies operations strictly in arrival order
4. Query results are immutable copies, safe to share

Design principles:
- One worker thread, one ordered inbox: no locks around buffers
- Entry timestamps are read inside the worker, so insertion order and
  timestamp order always agree
- Window queries read the clock once and reuse that instant for all
  three categories
- Operations after close() raise NotRunningError, never vanish silently

Thread Safety:
    record(), ask_*(), flush() and close() may be called from any thread.
    _submit_lock makes the "still running?" check and the enqueue atomic, so
    nothing lands in the inbox behind the shutdown sentinel. Buffers are
    only accessed from the worker thread. health_metrics reads are
    approximately consistent.
"""

from __future__ import annotations

import queue
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any

from periscope.contracts.defaults import INTERNAL_DEFAULTS
from periscope.contracts.enums import EventCategory
from periscope.core.clock import DEFAULT_CLOCK, Clock
from periscope.core.logging import get_logger
from periscope.deadletters.buffer import CategoryBuffer, Timestamped
from periscope.deadletters.errors import InvalidCapacityError, NotRunningError
from periscope.deadletters.snapshots import Snapshot, WindowSnapshot
from periscope.deadletters.window import estimate_window

logger = get_logger(__name__)


# =============================================================================
# Inbox operations
# =============================================================================


@dataclass(frozen=True, slots=True)
class _Record:
    category: EventCategory
    payload: Any


@dataclass(frozen=True, slots=True)
class _GetSnapshot:
    reply: Future[Snapshot] = field(default_factory=Future)


@dataclass(frozen=True, slots=True)
class _CalculateForWindow:
    window_ms: int
    reply: Future[WindowSnapshot] = field(default_factory=Future)


_Operation = _Record | _GetSnapshot | _CalculateForWindow


class DeadLettersCollector:
    """Bounded, query-able record of dead, unhandled and dropped messages.

    Example:
        >>> collector = DeadLettersCollector(capacity=10)
        >>> collector.record(EventCategory.DEAD_LETTER, info)
        >>> collector.calculate_for_window(40_000).dead_letters.count
        1
        >>> collector.close()
    """

    def __init__(self, capacity: int, *, clock: Clock | None = None) -> None:
        """Create the buffers and start the worker thread.

        Args:
            capacity: Entries retained per category, applied to all three
                and immutable afterwards.
            clock: Monotonic time source. Defaults to the system clock.

        Raises:
            InvalidCapacityError: If capacity < 1. No thread is started.
        """
        if capacity < 1:
            raise InvalidCapacityError(capacity)

        self._capacity = capacity
        self._clock = clock if clock is not None else DEFAULT_CLOCK
        self._buffers: dict[EventCategory, CategoryBuffer] = {
            category: CategoryBuffer(category, capacity) for category in EventCategory
        }

        # Thread coordination
        self._inbox: queue.Queue[_Operation | None] = queue.Queue()
        self._submit_lock = threading.Lock()
        self._stopped = False
        self._worker_ready = threading.Event()

        # Non-daemon so close() is the only way the worker ends
        self._worker = threading.Thread(
            target=self._process_loop,
            name="deadletters-collector",
            daemon=False,
        )
        self._worker.start()
        self._worker_ready.wait(timeout=float(INTERNAL_DEFAULTS["collector"]["ready_timeout_seconds"]))
        logger.debug("Dead letters collector started", capacity=capacity)

    # -------------------------------------------------------------------------
    # Worker side
    # -------------------------------------------------------------------------

    def _process_loop(self) -> None:
        """Worker thread: apply inbox operations one at a time, in order.

        Runs until the shutdown sentinel (None) is received.
        """
        self._worker_ready.set()

        while True:
            operation = self._inbox.get()
            try:
                if operation is None:
                    break
                self._apply(operation)
            finally:
                # Always mark done so flush() never hangs
                self._inbox.task_done()

    def _apply(self, operation: _Operation) -> None:
        match operation:
            case _Record(category=category, payload=payload):
                try:
                    self._buffers[category].insert(Timestamped(payload, self._clock.monotonic()))
                except Exception:
                    logger.exception("Failed to record dead letters entry", category=str(category))
            case _GetSnapshot(reply=reply):
                if reply.set_running_or_notify_cancel():
                    try:
                        reply.set_result(self._take_snapshot())
                    except Exception as e:
                        reply.set_exception(e)
            case _CalculateForWindow(window_ms=window_ms, reply=reply):
                if reply.set_running_or_notify_cancel():
                    try:
                        reply.set_result(self._take_window_snapshot(window_ms))
                    except Exception as e:
                        reply.set_exception(e)

    def _take_snapshot(self) -> Snapshot:
        return Snapshot(
            dead_letters=self._buffers[EventCategory.DEAD_LETTER].snapshot_newest_first(),
            unhandled=self._buffers[EventCategory.UNHANDLED].snapshot_newest_first(),
            dropped=self._buffers[EventCategory.DROPPED].snapshot_newest_first(),
        )

    def _take_window_snapshot(self, window_ms: int) -> WindowSnapshot:
        # One reading shared by all categories keeps their boundaries identical
        now = self._clock.monotonic()
        return WindowSnapshot(
            dead_letters=estimate_window(self._buffers[EventCategory.DEAD_LETTER], window_ms, now),
            unhandled=estimate_window(self._buffers[EventCategory.UNHANDLED], window_ms, now),
            dropped=estimate_window(self._buffers[EventCategory.DROPPED], window_ms, now),
            window_ms=window_ms,
        )

    # -------------------------------------------------------------------------
    # Caller side
    # -------------------------------------------------------------------------

    def _submit(self, operation: _Operation, name: str) -> None:
        with self._submit_lock:
            if self._stopped:
                raise NotRunningError(name)
            self._inbox.put(operation)

    def record(self, category: EventCategory, payload: Any) -> None:
        """Record one event. Fire-and-forget.

        The entry is timestamped when the worker applies it.

        Raises:
            NotRunningError: If the collector has been closed.
        """
        self._submit(_Record(EventCategory(category), payload), "record")

    def ask_snapshot(self) -> Future[Snapshot]:
        """Request a snapshot of all buffers.

        The result reflects every record() submitted before this call.

        Raises:
            NotRunningError: If the collector has been closed.
        """
        operation = _GetSnapshot()
        self._submit(operation, "get_snapshot")
        return operation.reply

    def ask_window(self, window_ms: int) -> Future[WindowSnapshot]:
        """Request per-category counts over the trailing window_ms milliseconds.

        Raises:
            NotRunningError: If the collector has been closed.
        """
        operation = _CalculateForWindow(int(window_ms))
        self._submit(operation, "calculate_for_window")
        return operation.reply

    def get_snapshot(self, timeout: float | None = None) -> Snapshot:
        """Blocking form of ask_snapshot().

        Raises:
            NotRunningError: If the collector has been closed.
            TimeoutError: If no answer arrives within timeout seconds. The
                collector still completes the query and discards the result.
        """
        return self.ask_snapshot().result(timeout=timeout)

    def calculate_for_window(self, window_ms: int, timeout: float | None = None) -> WindowSnapshot:
        """Blocking form of ask_window().

        Raises:
            NotRunningError: If the collector has been closed.
            TimeoutError: If no answer arrives within timeout seconds.
        """
        return self.ask_window(window_ms).result(timeout=timeout)

    def flush(self) -> None:
        """Block until every operation submitted so far has been applied."""
        self._inbox.join()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def running(self) -> bool:
        return not self._stopped

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Return collector health metrics for monitoring.

        - recorded / evicted / retained: per-category counters
        - inbox_depth: operations waiting for the worker
        - capacity: per-category buffer capacity

        Thread Safety:
            Reads are approximately consistent; counters may lag the worker
            slightly, which is acceptable for operational monitoring.
        """
        return {
            "running": self.running,
            "capacity": self._capacity,
            "inbox_depth": self._inbox.qsize(),
            "recorded": {c.value: b.recorded_count for c, b in self._buffers.items()},
            "evicted": {c.value: b.evicted_count for c, b in self._buffers.items()},
            "retained": {c.value: len(b) for c, b in self._buffers.items()},
        }

    def close(self) -> None:
        """Stop accepting operations and shut the worker down.

        Operations submitted before close() are still applied, so pending
        queries are answered. Safe to call more than once.
        """
        with self._submit_lock:
            if self._stopped:
                return
            self._stopped = True
            self._inbox.put(None)

        self._worker.join(timeout=float(INTERNAL_DEFAULTS["collector"]["join_timeout_seconds"]))
        if self._worker.is_alive():
            logger.error("Dead letters collector worker did not exit cleanly within timeout")

        logger.info("Dead letters collector closed", **self.health_metrics)

    def __enter__(self) -> DeadLettersCollector:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
