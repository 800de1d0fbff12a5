from .memory_event import (  # noqa: F401
    EventMetadata,
    EventValidationError,
    MemoryEvent,
    MemoryEventType,
)

__all__ = [
    "EventMetadata",
    "EventValidationError",
    "MemoryEvent",
    "MemoryEventType",
]
