"""
Event Processors - Per-type handlers turning events into memory updates

WHAT: Processor registration contract, built-in processors, default processor
WHERE: mnemos/runtime/memory/processors.py - dispatch targets of the pipeline
WHO: MemoryEventPipeline dispatching dequeued events by ``event.type``
TIME: Dominated by extraction + embedding for code-bearing events

Built-in processors (intrinsic priority in parentheses):
- code_generation (0.8): extract + merge into the graph, system1 ``codePatterns``
- bug_fix (0.9): ``bugPatterns`` on both systems, ``pattern_detected``/``train`` trigger
- team_interaction (0.6): system1 ``teamPatterns``
- mode_change (0.7): system2 ``currentMode`` update, ``threshold_reached``/``adapt`` trigger

Every other type goes to ``DefaultEventProcessor``: text payloads are merged
into the graph, the raw event lands in system1 ``pastInteractions``,
reasoning lands in system2 ``reasoningTraces``, and repeated same-type events
within a session raise a ``pattern_detected`` trigger.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Deque, Dict, List, Optional

from ...config.events import MemoryEvent, MemoryEventType
from .extraction import EntityExtractor
from .knowledge_graph import KnowledgeGraph
from .models import GraphUpdate, LearningTrigger, MemoryUpdate, ProcessingResult

logger = logging.getLogger(__name__)

ProcessFn = Callable[[MemoryEvent], Awaitable[ProcessingResult]]


@dataclass(slots=True)
class EventProcessor:
    """Registration record: which event type, how urgent, and the coroutine to run."""

    type: str
    priority: float
    process: ProcessFn


class SessionPatternDetector:
    """Flags repeated same-type events within a session's sliding time window."""

    def __init__(self, *, window_seconds: float = 60.0, min_events: int = 3, buffer_size: int = 100) -> None:
        self.window_seconds = window_seconds
        self.min_events = min_events
        self.buffer_size = buffer_size
        self._buffers: Dict[str, Deque[MemoryEvent]] = {}

    def observe(self, event: MemoryEvent) -> bool:
        """True when ``min_events`` earlier same-type events fall inside the window.

        A triggering event is not buffered; any other event is.
        """

        buffer = self._buffers.setdefault(event.session_id, deque(maxlen=self.buffer_size))
        similar = 0
        for previous in buffer:
            if previous.type != event.type:
                continue
            if (event.timestamp - previous.timestamp).total_seconds() < self.window_seconds:
                similar += 1
        if similar >= self.min_events:
            return True
        buffer.append(event)
        return False

    def buffered(self, session_id: str) -> int:
        return len(self._buffers.get(session_id, ()))


def _code_from(event: MemoryEvent) -> str:
    data = event.data
    if isinstance(data, str):
        return data
    if isinstance(data, dict) and isinstance(data.get("code"), str):
        return data["code"]
    raise ValueError(f"code_generation event {event.id} carries no code text")


class DefaultEventProcessor:
    """Fallback for event types without a registered processor."""

    def __init__(
        self,
        graph: KnowledgeGraph,
        extractor: EntityExtractor,
        detector: Optional[SessionPatternDetector] = None,
    ) -> None:
        self.graph = graph
        self.extractor = extractor
        self.detector = detector or SessionPatternDetector()

    async def __call__(self, event: MemoryEvent) -> ProcessingResult:
        memory_updates: List[MemoryUpdate] = []
        graph_updates: List[GraphUpdate] = []
        learning_triggers: List[LearningTrigger] = []

        if isinstance(event.data, str):
            extraction = await self.extractor.extract(event.data)
            if extraction.entities:
                self.graph.add_to_graph(extraction)
                graph_updates.append(GraphUpdate(operation="add_node", data=extraction))

        memory_updates.append(
            MemoryUpdate(
                type="system1",
                operation="add",
                target="pastInteractions",
                data=event,
                metadata={"timestamp": event.timestamp},
            )
        )
        if event.reasoning is not None:
            memory_updates.append(
                MemoryUpdate(
                    type="system2",
                    operation="add",
                    target="reasoningTraces",
                    data=event.reasoning,
                    metadata={"eventId": event.id},
                )
            )

        if self.detector.observe(event):
            logger.debug(f"Repetition pattern detected for session {event.session_id} ({event.type})")
            learning_triggers.append(LearningTrigger(type="pattern_detected", data=event, action="adapt"))

        return ProcessingResult(
            success=True,
            memory_updates=memory_updates,
            graph_updates=graph_updates,
            learning_triggers=learning_triggers,
        )


def build_default_processors(graph: KnowledgeGraph, extractor: EntityExtractor) -> List[EventProcessor]:
    """Processors registered on every pipeline at construction."""

    async def code_generation(event: MemoryEvent) -> ProcessingResult:
        code = _code_from(event)
        extraction = await extractor.extract(code, {"type": MemoryEventType.code_generation.value})
        graph.add_to_graph(extraction)
        return ProcessingResult(
            success=True,
            memory_updates=[
                MemoryUpdate(
                    type="system1",
                    operation="add",
                    target="codePatterns",
                    data={"code": code, "entities": extraction.entities},
                )
            ],
            graph_updates=[GraphUpdate(operation="add_node", data=extraction)],
        )

    async def bug_fix(event: MemoryEvent) -> ProcessingResult:
        return ProcessingResult(
            success=True,
            memory_updates=[MemoryUpdate(type="both", operation="add", target="bugPatterns", data=event.data)],
            learning_triggers=[LearningTrigger(type="pattern_detected", data=event.data, action="train")],
        )

    async def team_interaction(event: MemoryEvent) -> ProcessingResult:
        return ProcessingResult(
            success=True,
            memory_updates=[MemoryUpdate(type="system1", operation="add", target="teamPatterns", data=event.data)],
        )

    async def mode_change(event: MemoryEvent) -> ProcessingResult:
        return ProcessingResult(
            success=True,
            memory_updates=[MemoryUpdate(type="system2", operation="update", target="currentMode", data=event.data)],
            learning_triggers=[LearningTrigger(type="threshold_reached", data=event.data, action="adapt")],
        )

    return [
        EventProcessor(type=MemoryEventType.code_generation.value, priority=0.8, process=code_generation),
        EventProcessor(type=MemoryEventType.bug_fix.value, priority=0.9, process=bug_fix),
        EventProcessor(type=MemoryEventType.team_interaction.value, priority=0.6, process=team_interaction),
        EventProcessor(type=MemoryEventType.mode_change.value, priority=0.7, process=mode_change),
    ]


__all__ = [
    "DefaultEventProcessor",
    "EventProcessor",
    "ProcessFn",
    "SessionPatternDetector",
    "build_default_processors",
]
