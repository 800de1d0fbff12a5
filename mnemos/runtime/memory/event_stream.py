"""
Event Stream - Filtered, transformed, buffered view over submissions

Subscribes to the pipeline's ``event_received`` signal. Each new submission
passes ``filter`` then ``transform``; without a buffer size every item is
emitted as ``data``, otherwise items accumulate and a ``batch`` (list) is
emitted each time the buffer fills. ``flush()`` emits a partial batch.
Retries are not re-delivered to streams.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional

from ...config.events import MemoryEvent
from .signals import Handler, Signal, SignalHub, SignalName


EventFilter = Callable[[MemoryEvent], bool]
EventTransform = Callable[[MemoryEvent], Any]


class EventStream:
    def __init__(
        self,
        source: SignalHub,
        *,
        filter: Optional[EventFilter] = None,
        transform: Optional[EventTransform] = None,
        buffer_size: Optional[int] = None,
    ) -> None:
        if buffer_size is not None and buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")
        self._source = source
        self._filter = filter
        self._transform = transform
        self.buffer_size = buffer_size
        self.signals = SignalHub()
        self._buffer: List[Any] = []
        self._closed = False
        source.connect(Signal.EVENT_RECEIVED, self._handle_event)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def on(self, name: SignalName, handler: Handler) -> Handler:
        """Subscribe to ``data`` or ``batch`` output."""
        return self.signals.connect(name, handler)

    def off(self, name: SignalName, handler: Handler) -> bool:
        return self.signals.disconnect(name, handler)

    def flush(self) -> None:
        if self._buffer:
            batch, self._buffer = self._buffer, []
            self.signals.emit(Signal.BATCH, batch)

    def close(self) -> None:
        """Stop listening to the pipeline; buffered items are flushed first."""
        if self._closed:
            return
        self.flush()
        self._source.disconnect(Signal.EVENT_RECEIVED, self._handle_event)
        self._closed = True

    def _handle_event(self, event: MemoryEvent) -> None:
        if self._filter is not None and not self._filter(event):
            return
        item = self._transform(event) if self._transform is not None else event

        if not self.buffer_size:
            self.signals.emit(Signal.DATA, item)
            return
        self._buffer.append(item)
        if len(self._buffer) >= self.buffer_size:
            self.flush()


__all__ = ["EventFilter", "EventStream", "EventTransform"]
