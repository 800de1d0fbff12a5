"""
Telemetry Collection - Pipeline Performance Spans

WHAT: Lightweight spans around batch drains and per-event processing
WHERE: mnemos/runtime/memory/telemetry.py - observability layer
WHO: MemoryEventPipeline (``memory.process_batch``, ``memory.process_event``)
TIME: Zero-overhead when disabled, <0.1ms overhead when enabled

A span closes with ``duration_ms`` and ``success``. Processors report failure
through a ProcessingResult instead of raising, so callers flag those spans
with ``mark_failed``. The client decides where completed spans go.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class TelemetrySpan(AbstractContextManager["TelemetrySpan"]):
    def __init__(
        self,
        client: "TelemetryClient",
        name: str,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._client = client
        self.name = name
        self.attributes: Dict[str, Any] = dict(attributes or {})
        self._started = 0.0

    def __enter__(self) -> "TelemetrySpan":
        self._started = time.perf_counter()
        return self

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def mark_failed(self, error: Optional[BaseException] = None) -> None:
        self.attributes["success"] = False
        if error is not None:
            self.attributes["error"] = type(error).__name__

    def __exit__(self, exc_type, exc, exc_tb) -> bool:
        if exc is not None:
            self.mark_failed(exc)
        self.attributes.setdefault("success", True)
        self.attributes["duration_ms"] = (time.perf_counter() - self._started) * 1000.0
        self._client.emit_span(self.name, self.attributes)
        return False


class TelemetryClient:
    """Base telemetry client; override `emit_span` for custom sinks."""

    def span(self, name: str, *, attributes: Optional[Dict[str, Any]] = None) -> TelemetrySpan:
        return TelemetrySpan(self, name, attributes)

    def emit_span(self, name: str, attributes: Dict[str, Any]) -> None:
        raise NotImplementedError


@dataclass(slots=True)
class NoOpTelemetryClient(TelemetryClient):
    """Discards spans (pipeline default)."""

    def emit_span(self, name: str, attributes: Dict[str, Any]) -> None:  # noqa: D401 - intentionally empty
        pass


class LoggingTelemetryClient(TelemetryClient):
    def __init__(self, level: int = logging.DEBUG) -> None:
        self.level = level

    def emit_span(self, name: str, attributes: Dict[str, Any]) -> None:
        payload = {k: attributes[k] for k in sorted(attributes)}
        logger.log(self.level, f"[telemetry] {name}: {payload}")


class RecordingTelemetryClient(TelemetryClient):
    """Keeps the most recent spans and aggregates them per span name."""

    def __init__(self, capacity: int = 1000) -> None:
        self.spans: Deque[Tuple[str, Dict[str, Any]]] = deque(maxlen=capacity)

    def emit_span(self, name: str, attributes: Dict[str, Any]) -> None:
        self.spans.append((name, dict(attributes)))

    def named(self, name: str) -> List[Dict[str, Any]]:
        return [attrs for span_name, attrs in self.spans if span_name == name]

    def summary(self) -> Dict[str, Dict[str, float]]:
        """``{name: {count, failures, avg_ms, max_ms}}`` over the retained spans."""
        out: Dict[str, Dict[str, float]] = {}
        for name, attrs in self.spans:
            entry = out.setdefault(name, {"count": 0, "failures": 0, "avg_ms": 0.0, "max_ms": 0.0})
            duration = float(attrs.get("duration_ms", 0.0))
            entry["count"] += 1
            entry["failures"] += 0 if attrs.get("success", True) else 1
            entry["avg_ms"] += (duration - entry["avg_ms"]) / entry["count"]
            entry["max_ms"] = max(entry["max_ms"], duration)
        return out


__all__ = [
    "LoggingTelemetryClient",
    "NoOpTelemetryClient",
    "RecordingTelemetryClient",
    "TelemetryClient",
    "TelemetrySpan",
]
