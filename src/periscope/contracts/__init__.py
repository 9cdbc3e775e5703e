"""Shared contracts that cross the runtime <-> collector boundary.

Everything here is plain data: enums, raw runtime events and internal
defaults. No module in contracts imports from deadletters or core.
"""

from periscope.contracts.enums import EventCategory
from periscope.contracts.events import (
    DeadLetter,
    DeliveryFailure,
    DeliveryInfo,
    Dropped,
    UnhandledMessage,
)

__all__ = [
    "DeadLetter",
    "DeliveryFailure",
    "DeliveryInfo",
    "Dropped",
    "EventCategory",
    "UnhandledMessage",
]
