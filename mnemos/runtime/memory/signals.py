"""
Signals - Named subscriber lists for pipeline observability

Components expose a ``SignalHub`` and emit named signals (``graph_updated``,
``event_received``, ...) to every connected handler in connection order.
Handlers are plain callables; a handler that raises is logged and does not
prevent the remaining handlers from running, so observers can never break the
component that emits.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, DefaultDict, List, Union

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class Signal(str, Enum):
    GRAPH_UPDATED = "graph_updated"
    EVENT_RECEIVED = "event_received"
    EVENT_PROCESSED = "event_processed"
    EVENT_ERROR = "event_error"
    EVENT_DROPPED = "event_dropped"
    LEARNING_TRIGGER = "learning_trigger"
    UPDATE_ERROR = "update_error"
    CRITICAL_EVENT_PROCESSED = "critical_event_processed"
    CRITICAL_EVENT_ERROR = "critical_event_error"
    PROCESSOR_REGISTERED = "processor_registered"
    # event stream outputs
    DATA = "data"
    BATCH = "batch"


SignalName = Union[Signal, str]


def _key(name: SignalName) -> str:
    return name.value if isinstance(name, Signal) else str(name)


class SignalHub:
    def __init__(self) -> None:
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)

    def connect(self, name: SignalName, handler: Handler) -> Handler:
        """Subscribe ``handler`` to ``name``; returns the handler for later ``disconnect``."""
        self._handlers[_key(name)].append(handler)
        return handler

    def disconnect(self, name: SignalName, handler: Handler) -> bool:
        handlers = self._handlers.get(_key(name))
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        return True

    def receivers(self, name: SignalName) -> int:
        return len(self._handlers.get(_key(name), ()))

    def emit(self, name: SignalName, *args: Any) -> int:
        """Call every handler of ``name`` with ``args``; returns how many were called."""
        key = _key(name)
        handlers = list(self._handlers.get(key, ()))
        for handler in handlers:
            try:
                handler(*args)
            except Exception:
                logger.exception(f"Signal handler for '{key}' raised")
        return len(handlers)


__all__ = ["Handler", "Signal", "SignalHub", "SignalName"]
