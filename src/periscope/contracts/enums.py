# src/periscope/contracts/enums.py
"""Closed enumerations used across subsystem boundaries."""

from enum import StrEnum


class EventCategory(StrEnum):
    """Category of an exceptional message-delivery event.

    The set is closed: every raw runtime event maps to exactly one of these,
    and the collector keeps one buffer per member.
    """

    DEAD_LETTER = "dead_letter"
    UNHANDLED = "unhandled"
    DROPPED = "dropped"
