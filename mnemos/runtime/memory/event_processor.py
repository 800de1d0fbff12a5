"""
Event Pipeline - Priority-ordered, batched memory event processing

WHAT: Accepts MemoryEvents, prioritises, batches, dispatches, applies results, retries
WHERE: mnemos/runtime/memory/event_processor.py - top of the runtime stack
WHO: Producers of development activity (code generation, bug fixes, team/session events)
TIME: One batch of up to ``batch_size`` events per ``processing_interval_ms``

Event lifecycle:
    received → queued → (batch-drained | immediate-if-critical) → dispatched
             → applied | retried | dropped

Scheduling is cooperative (single event loop). A batch fans out all of its
processors with ``asyncio.gather`` and awaits them jointly; a boolean guard
keeps a second drain from starting while one is in flight, but submissions
may interleave with an in-flight drain. Critical events are processed on the
caller's context *and* keep their queued copy: they are seen twice, and
consumers needing exactly-once must dedupe by event id.

Error classes:
- validation: ``EventValidationError`` raised to the submitter, never queued
- processing: processor exceptions become failed results; bounded retries,
  then ``event_dropped``
- store: each memory update is isolated; failures emit ``update_error``
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from ...config.events import EventValidationError, MemoryEvent
from ...config.settings import EventProcessingConfig
from .event_stream import EventFilter, EventStream, EventTransform
from .extraction import EntityExtractor
from .knowledge_graph import KnowledgeGraph
from .memory_store import DualMemoryStore
from .models import ProcessingResult
from .processors import DefaultEventProcessor, EventProcessor, SessionPatternDetector, build_default_processors
from .signals import Signal, SignalHub
from .telemetry import NoOpTelemetryClient, TelemetryClient

logger = logging.getLogger(__name__)

PRIORITY_BUCKETS: Dict[str, float] = {
    "critical": 0.95,
    "high": 0.75,
    "medium": 0.5,
    "low": 0.25,
}
BASE_PRIORITY = 0.5
CONFIDENCE_BOOST_THRESHOLD = 0.8
CONFIDENCE_BOOST = 1.2
EWMA_ALPHA = 0.1


class PipelineNotRunningError(RuntimeError):
    """Raised when the periodic loop is started without a running event loop."""


@dataclass(slots=True)
class QueuedEvent:
    event: MemoryEvent
    priority: float
    retries: int = 0


class EventPriorityQueue:
    """Highest priority first; FIFO among equal priorities."""

    def __init__(self) -> None:
        self._items: List[QueuedEvent] = []

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def enqueue(self, entry: QueuedEvent) -> None:
        # Insert before the first strictly lower priority entry
        for index, existing in enumerate(self._items):
            if existing.priority < entry.priority:
                self._items.insert(index, entry)
                return
        self._items.append(entry)

    def dequeue(self) -> Optional[QueuedEvent]:
        return self._items.pop(0) if self._items else None

    def peek(self) -> Optional[QueuedEvent]:
        return self._items[0] if self._items else None

    def snapshot(self) -> List[QueuedEvent]:
        return list(self._items)


@dataclass(slots=True)
class EventStatistics:
    total_events: int = 0
    events_by_type: Dict[str, int] = field(default_factory=dict)
    average_processing_time_ms: float = 0.0
    success_rate: float = 1.0
    queue_size: int = 0
    last_processed_time: Optional[datetime] = None
    processed: int = 0
    failed: int = 0
    retried: int = 0
    dropped: int = 0


class MemoryEventPipeline:
    """Event-driven synchronisation of the knowledge graph and the dual memory store."""

    def __init__(
        self,
        memory_store: DualMemoryStore,
        graph: Optional[KnowledgeGraph] = None,
        *,
        extractor: Optional[EntityExtractor] = None,
        config: Optional[EventProcessingConfig] = None,
        telemetry: Optional[TelemetryClient] = None,
    ) -> None:
        self.config = config or EventProcessingConfig()
        self.graph = graph or KnowledgeGraph()
        self.extractor = extractor or EntityExtractor(self.graph.embedder, config=self.graph.config)
        self.memory_store = memory_store
        self.signals = SignalHub()
        self._telemetry = telemetry or NoOpTelemetryClient()
        self._queue = EventPriorityQueue()
        self._processors: Dict[str, EventProcessor] = {}
        self._default_processor = DefaultEventProcessor(
            self.graph,
            self.extractor,
            SessionPatternDetector(
                window_seconds=self.config.pattern_window_seconds,
                min_events=self.config.pattern_min_events,
                buffer_size=self.config.pattern_buffer_size,
            ),
        )
        self._statistics = EventStatistics()
        self._draining = False
        self._task: Optional[asyncio.Task[None]] = None
        self._inflight: Optional[asyncio.Future[int]] = None

        for processor in build_default_processors(self.graph, self.extractor):
            self.register_processor(processor)

    # ------------------ properties ------------------
    @property
    def telemetry(self) -> TelemetryClient:
        return self._telemetry

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def draining(self) -> bool:
        return self._draining

    # ------------------ registration ------------------
    def register_processor(self, processor: EventProcessor) -> None:
        """Register (or replace) the processor for ``processor.type``."""
        self._processors[processor.type] = processor
        self.signals.emit(Signal.PROCESSOR_REGISTERED, processor.type)

    def processor_for(self, event_type: str) -> Optional[EventProcessor]:
        return self._processors.get(event_type)

    # ------------------ submission ------------------
    async def submit_event(self, event: Union[MemoryEvent, Mapping[str, Any]]) -> None:
        """Validate, prioritise and enqueue ``event``; critical events also run immediately.

        Raises:
            EventValidationError: if the event is structurally invalid
        """

        parsed = MemoryEvent.parse(event)
        priority = self.calculate_priority(parsed)
        self._queue.enqueue(QueuedEvent(event=parsed, priority=priority))

        stats = self._statistics
        stats.total_events += 1
        stats.events_by_type[parsed.type] = stats.events_by_type.get(parsed.type, 0) + 1
        stats.queue_size = len(self._queue)
        logger.debug(f"Queued event {parsed.id} ({parsed.type}) at priority {priority:.3f}")

        self.signals.emit(Signal.EVENT_RECEIVED, parsed)

        if priority >= self.config.priority_thresholds.critical:
            await self._process_immediate(parsed)

    def calculate_priority(self, event: MemoryEvent) -> float:
        priority = PRIORITY_BUCKETS.get(event.metadata.priority, BASE_PRIORITY)
        processor = self._processors.get(event.type)
        if processor is not None:
            priority = max(priority, processor.priority)
        if event.metadata.confidence > CONFIDENCE_BOOST_THRESHOLD:
            priority = min(1.0, priority * CONFIDENCE_BOOST)
        return priority

    def create_event_stream(
        self,
        *,
        filter: Optional[EventFilter] = None,
        transform: Optional[EventTransform] = None,
        buffer_size: Optional[int] = None,
    ) -> EventStream:
        return EventStream(self.signals, filter=filter, transform=transform, buffer_size=buffer_size)

    def get_statistics(self) -> EventStatistics:
        stats = self._statistics
        return replace(stats, events_by_type=dict(stats.events_by_type), queue_size=len(self._queue))

    # ------------------ processing ------------------
    async def process_event(self, event: MemoryEvent) -> ProcessingResult:
        """Dispatch ``event`` to its processor; exceptions become failed results."""

        processor = self._processors.get(event.type)
        name = processor.type if processor is not None else "default"
        with self._telemetry.span(
            "memory.process_event",
            attributes={"event_id": event.id, "event_type": event.type, "processor": name},
        ) as span:
            try:
                if processor is None:
                    result = await self._default_processor(event)
                else:
                    result = await processor.process(event)
            except Exception as exc:
                logger.warning(f"Processor '{name}' failed for event {event.id}: {exc}")
                result = ProcessingResult.failure(exc)
            if not result.success:
                span.mark_failed(result.error)
        return result

    async def process_batch(self) -> int:
        """Drain up to ``batch_size`` events; returns how many were dequeued."""

        if self._draining or not self._queue:
            return 0

        self._draining = True
        started = time.perf_counter()
        try:
            batch: List[QueuedEvent] = []
            while self._queue and len(batch) < self.config.batch_size:
                entry = self._queue.dequeue()
                if entry is not None:
                    batch.append(entry)

            with self._telemetry.span("memory.process_batch", attributes={"batch_size": len(batch)}) as span:
                results = await asyncio.gather(*(self.process_event(entry.event) for entry in batch))

                successes = 0
                for entry, result in zip(batch, results):
                    if result.success:
                        successes += 1
                        await self.apply_result(result)
                        self.signals.emit(Signal.EVENT_PROCESSED, entry.event, result)
                    else:
                        self.signals.emit(Signal.EVENT_ERROR, entry.event, result.error)
                        self._retry_or_drop(entry, result.error)
                span.set_attribute("successes", successes)

            elapsed_ms = (time.perf_counter() - started) * 1000.0
            self._update_statistics(len(batch), successes, elapsed_ms)
            return len(batch)
        finally:
            self._draining = False
            self._statistics.queue_size = len(self._queue)

    async def apply_result(self, result: ProcessingResult) -> None:
        """Apply memory updates per target system, then emit learning triggers."""

        for update in result.memory_updates:
            targets = ("system1", "system2") if update.type == "both" else (update.type,)
            for system in targets:
                try:
                    if system == "system1":
                        await self.memory_store.update_system1(update)
                    elif system == "system2":
                        await self.memory_store.update_system2(update)
                    else:
                        raise ValueError(f"Unknown memory system: {system}")
                except Exception as exc:
                    logger.warning(f"Memory update {system}.{update.target} failed: {exc}")
                    self.signals.emit(Signal.UPDATE_ERROR, update, exc)

        for trigger in result.learning_triggers or ():
            self.signals.emit(Signal.LEARNING_TRIGGER, trigger)

    async def _process_immediate(self, event: MemoryEvent) -> None:
        result = await self.process_event(event)
        if result.success:
            await self.apply_result(result)
            self.signals.emit(Signal.CRITICAL_EVENT_PROCESSED, event, result)
        else:
            self.signals.emit(Signal.CRITICAL_EVENT_ERROR, event, result.error)

    def _retry_or_drop(self, entry: QueuedEvent, error: Optional[BaseException]) -> None:
        stats = self._statistics
        if entry.retries < self.config.max_retries:
            stats.retried += 1
            # Requeue without touching submission counters or streams
            self._queue.enqueue(replace(entry, retries=entry.retries + 1))
            logger.debug(f"Retrying event {entry.event.id} (attempt {entry.retries + 1}/{self.config.max_retries})")
            return
        stats.dropped += 1
        logger.warning(f"Dropping event {entry.event.id} after {entry.retries} retries: {error}")
        self.signals.emit(Signal.EVENT_DROPPED, entry.event, error)

    def _update_statistics(self, batch_size: int, successes: int, elapsed_ms: float) -> None:
        stats = self._statistics
        stats.processed += successes
        stats.failed += batch_size - successes
        rate = successes / batch_size if batch_size else 1.0
        stats.success_rate = stats.success_rate * (1 - EWMA_ALPHA) + rate * EWMA_ALPHA
        stats.average_processing_time_ms = (
            stats.average_processing_time_ms * (1 - EWMA_ALPHA) + elapsed_ms * EWMA_ALPHA
        )
        stats.last_processed_time = datetime.now(timezone.utc)

    # ------------------ lifecycle ------------------
    def start(self) -> None:
        """Start the periodic drain loop on the running event loop."""

        if self.running:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise PipelineNotRunningError("start() requires a running asyncio event loop") from exc
        self._task = loop.create_task(self._run(), name="mnemos-event-pipeline")
        logger.info(
            f"Event pipeline started (batch_size={self.config.batch_size}, "
            f"interval_ms={self.config.processing_interval_ms})"
        )

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        # A dispatched batch always runs to completion
        inflight, self._inflight = self._inflight, None
        if inflight is not None and not inflight.done():
            try:
                await inflight
            except Exception:
                logger.exception("Batch drain failed")
        logger.info(f"Event pipeline stopped ({len(self._queue)} events still queued)")

    async def _run(self) -> None:
        interval = self.config.processing_interval
        while True:
            await asyncio.sleep(interval)
            self._inflight = asyncio.ensure_future(self.process_batch())
            try:
                await asyncio.shield(self._inflight)
            except Exception:
                logger.exception("Batch drain failed")

    async def __aenter__(self) -> "MemoryEventPipeline":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, exc_tb) -> None:
        await self.stop()


__all__ = [
    "EventPriorityQueue",
    "EventStatistics",
    "EventValidationError",
    "MemoryEventPipeline",
    "PipelineNotRunningError",
    "QueuedEvent",
]
