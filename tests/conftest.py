"""Shared test fixtures and helpers.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/

Collector fixtures:
    Every collector created through `make_collector` is closed at teardown,
    so a failing test never leaves a non-daemon worker thread behind.
"""

import os
from collections.abc import Callable, Iterator

import pytest
from hypothesis import Phase, Verbosity, settings

from periscope.core.clock import ManualClock
from periscope.deadletters.collector import DeadLettersCollector

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Worker threads make timing vary
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Collector Fixtures
# =============================================================================


@pytest.fixture
def clock() -> ManualClock:
    """Manual clock starting at t=100s (leaves room for negative thresholds)."""
    return ManualClock(start=100.0)


@pytest.fixture
def make_collector(clock: ManualClock) -> Iterator[Callable[..., DeadLettersCollector]]:
    """Factory for collectors driven by the shared manual clock."""
    created: list[DeadLettersCollector] = []

    def _make(capacity: int = 10, **kwargs: object) -> DeadLettersCollector:
        kwargs.setdefault("clock", clock)
        collector = DeadLettersCollector(capacity, **kwargs)  # type: ignore[arg-type]
        created.append(collector)
        return collector

    yield _make

    for collector in created:
        collector.close()
