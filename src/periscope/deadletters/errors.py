# src/periscope/deadletters/errors.py
"""Dead letters collector exceptions.

The core has a deliberately small error taxonomy: a bad capacity is
rejected at construction, and operations after shutdown are refused.
Everything else in the core is an in-memory computation that cannot fail
once its inputs are valid.
"""


class InvalidCapacityError(ValueError):
    """Raised when a buffer or collector is created with capacity < 1.

    Attributes:
        capacity: The rejected capacity value
    """

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        super().__init__(f"capacity must be >= 1, got {capacity}")


class NotRunningError(RuntimeError):
    """Raised when an operation reaches a collector that has been closed.

    Attributes:
        operation: Name of the refused operation
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Dead letters collector is not running; refused {operation}")


class UnclassifiableEventError(ValueError):
    """Raised when a raw runtime event cannot be mapped to a category.

    Only the ingestion adapter catches this: it logs and discards the event
    so it never reaches the collector.
    """
