# src/periscope/deadletters/factory.py
"""Wiring helpers: settings -> collector, collector + adapter -> event stream.

Usage:
    from periscope.core.config import load_settings
    from periscope.deadletters.factory import start_monitoring, stop_monitoring

    settings = load_settings(Path("periscope.yaml"))
    collector, adapter = start_monitoring(bus, settings.collector)
    ...
    stop_monitoring(adapter, collector)
"""

from __future__ import annotations

from periscope.core.clock import Clock
from periscope.core.config import CollectorSettings
from periscope.core.events import EventBusProtocol
from periscope.core.logging import get_logger
from periscope.deadletters.adapter import IngestionAdapter
from periscope.deadletters.collector import DeadLettersCollector

logger = get_logger(__name__)


def create_collector(settings: CollectorSettings, *, clock: Clock | None = None) -> DeadLettersCollector:
    """Create a running collector sized from settings."""
    return DeadLettersCollector(settings.capacity, clock=clock)


def start_monitoring(
    bus: EventBusProtocol,
    settings: CollectorSettings,
    *,
    clock: Clock | None = None,
) -> tuple[DeadLettersCollector, IngestionAdapter]:
    """Create a collector and subscribe an adapter feeding it from bus."""
    collector = create_collector(settings, clock=clock)
    adapter = IngestionAdapter(collector)
    adapter.subscribe(bus)
    logger.info("Dead letters monitoring started", capacity=settings.capacity)
    return collector, adapter


def stop_monitoring(adapter: IngestionAdapter, collector: DeadLettersCollector) -> None:
    """Unsubscribe first so no event reaches a closed collector, then close it."""
    adapter.unsubscribe()
    collector.close()
