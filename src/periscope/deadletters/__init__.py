# src/periscope/deadletters/__init__.py
"""Dead letters diagnostics.

Observes three kinds of exceptional message delivery and keeps a bounded,
query-able record of each:

- dead letters: recipient no longer exists
- unhandled: recipient had no behavior for the message
- dropped: recipient's mailbox was full

Components:
- buffer: CategoryBuffer, a fixed-capacity FIFO of Timestamped entries
- window: estimate_window() with its completeness flag
- snapshots: Snapshot and WindowSnapshot query results
- collector: DeadLettersCollector, the single serialization point
- adapter: IngestionAdapter, runtime events -> collector records
- factory: create_collector / start_monitoring / stop_monitoring
- errors: InvalidCapacityError, NotRunningError, UnclassifiableEventError

Usage:
    from periscope.deadletters import DeadLettersCollector, IngestionAdapter

    collector = DeadLettersCollector(capacity=100)
    adapter = IngestionAdapter(collector)
    adapter.subscribe(bus)

    window = collector.calculate_for_window(60_000)
    if not window.unhandled.is_minimum_estimate:
        print(f"exactly {window.unhandled.count} unhandled in the last minute")
"""

from periscope.deadletters.adapter import IngestionAdapter, classify, parse_raw_event
from periscope.deadletters.buffer import CategoryBuffer, Timestamped
from periscope.deadletters.collector import DeadLettersCollector
from periscope.deadletters.errors import (
    InvalidCapacityError,
    NotRunningError,
    UnclassifiableEventError,
)
from periscope.deadletters.factory import create_collector, start_monitoring, stop_monitoring
from periscope.deadletters.snapshots import Snapshot, WindowSnapshot
from periscope.deadletters.window import WindowResult, estimate_window

__all__ = [
    "CategoryBuffer",
    "DeadLettersCollector",
    "IngestionAdapter",
    "InvalidCapacityError",
    "NotRunningError",
    "Snapshot",
    "Timestamped",
    "UnclassifiableEventError",
    "WindowResult",
    "WindowSnapshot",
    "classify",
    "create_collector",
    "estimate_window",
    "parse_raw_event",
    "start_monitoring",
    "stop_monitoring",
]
