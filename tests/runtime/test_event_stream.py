import asyncio
from datetime import datetime, timezone

import pytest

from mnemos.config.events import EventMetadata, MemoryEvent
from mnemos.runtime.memory.event_processor import MemoryEventPipeline
from mnemos.runtime.memory.memory_store import InMemoryDualMemoryStore
from mnemos.runtime.memory.processors import EventProcessor
from mnemos.runtime.memory.signals import Signal, SignalHub
from mnemos.runtime.memory.event_stream import EventStream


def make_event(event_id, event_type="code_review"):
    return MemoryEvent(
        id=event_id,
        type=event_type,
        timestamp=datetime.now(timezone.utc),
        session_id="s1",
        data={"n": event_id},
        metadata=EventMetadata(confidence=0.5, source="ide", priority="low"),
    )


def _submit_all(pipeline, events):
    async def scenario():
        for event in events:
            await pipeline.submit_event(event)

    asyncio.run(scenario())


def test_buffered_stream_emits_full_batches_of_matching_events():
    pipeline = MemoryEventPipeline(InMemoryDualMemoryStore())
    stream = pipeline.create_event_stream(filter=lambda e: e.type == "code_review", buffer_size=2)
    batches = []
    stream.on(Signal.BATCH, batches.append)

    _submit_all(
        pipeline,
        [
            make_event("r1", "code_review"),
            make_event("d1", "deploy"),
            make_event("r2", "code_review"),
            make_event("d2", "deploy"),
        ],
    )

    assert len(batches) == 1
    assert [e.id for e in batches[0]] == ["r1", "r2"]
    assert stream.pending == 0


def test_unbuffered_stream_emits_transformed_items():
    pipeline = MemoryEventPipeline(InMemoryDualMemoryStore())
    stream = pipeline.create_event_stream(transform=lambda e: e.id.upper())
    items = []
    stream.on("data", items.append)

    _submit_all(pipeline, [make_event("a"), make_event("b", "deploy")])
    assert items == ["A", "B"]


def test_flush_and_close():
    hub = SignalHub()
    stream = EventStream(hub, buffer_size=3)
    batches = []
    stream.on(Signal.BATCH, batches.append)

    hub.emit(Signal.EVENT_RECEIVED, make_event("x"))
    assert stream.pending == 1
    stream.close()
    assert [[e.id for e in batch] for batch in batches] == [["x"]]
    assert stream.closed

    hub.emit(Signal.EVENT_RECEIVED, make_event("y"))
    assert stream.pending == 0
    assert hub.receivers(Signal.EVENT_RECEIVED) == 0


def test_invalid_buffer_size():
    with pytest.raises(ValueError):
        EventStream(SignalHub(), buffer_size=0)


def test_retries_are_not_redelivered_to_streams():
    pipeline = MemoryEventPipeline(InMemoryDualMemoryStore())

    async def explode(event):
        raise RuntimeError("nope")

    pipeline.register_processor(EventProcessor(type="flaky", priority=0.1, process=explode))
    stream = pipeline.create_event_stream()
    items = []
    stream.on(Signal.DATA, items.append)

    async def scenario():
        await pipeline.submit_event(make_event("once", "flaky"))
        while pipeline.queue_size:
            await pipeline.process_batch()

    asyncio.run(scenario())
    assert [e.id for e in items] == ["once"]
