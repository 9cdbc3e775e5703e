# src/periscope/contracts/defaults.py
"""Internal default values, NOT exposed in settings.

These are implementation details that operators shouldn't need to tune.
Documented here so there is a single place to find them.
"""

from typing import Final

INTERNAL_DEFAULTS: Final[dict[str, dict[str, int | float | bool | str]]] = {
    "buffer": {
        # Log one aggregate line per this many evictions, not one per eviction
        "eviction_log_interval": 100,
    },
    "collector": {
        # Upper bound on waiting for the worker thread during close()
        "join_timeout_seconds": 5.0,
        # Upper bound on waiting for the worker thread to signal readiness
        "ready_timeout_seconds": 5.0,
    },
}

