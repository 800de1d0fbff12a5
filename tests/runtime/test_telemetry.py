import asyncio
import logging
from datetime import datetime, timezone

import pytest

from mnemos.config.events import EventMetadata, MemoryEvent
from mnemos.runtime.memory.event_processor import MemoryEventPipeline
from mnemos.runtime.memory.memory_store import InMemoryDualMemoryStore
from mnemos.runtime.memory.processors import EventProcessor
from mnemos.runtime.memory.telemetry import (
    LoggingTelemetryClient,
    NoOpTelemetryClient,
    RecordingTelemetryClient,
    TelemetryClient,
)


def _event(event_id, event_type):
    return MemoryEvent(
        id=event_id,
        type=event_type,
        timestamp=datetime.now(timezone.utc),
        metadata=EventMetadata(confidence=0.5, source="test", priority="low"),
    )


def test_pipeline_spans_record_success_and_failure():
    telemetry = RecordingTelemetryClient()
    pipeline = MemoryEventPipeline(InMemoryDualMemoryStore(), telemetry=telemetry)

    async def explode(event):
        raise RuntimeError("broken")

    pipeline.register_processor(EventProcessor(type="flaky", priority=0.1, process=explode))

    async def scenario():
        await pipeline.submit_event(_event("ok", "learning_update"))
        await pipeline.submit_event(_event("bad", "flaky"))
        await pipeline.process_batch()

    asyncio.run(scenario())

    event_spans = {attrs["event_id"]: attrs for attrs in telemetry.named("memory.process_event")}
    assert event_spans["ok"]["success"] is True
    assert event_spans["ok"]["processor"] == "default"
    assert event_spans["bad"]["success"] is False
    assert event_spans["bad"]["error"] == "RuntimeError"
    assert event_spans["bad"]["processor"] == "flaky"

    (batch_span,) = telemetry.named("memory.process_batch")
    assert batch_span["batch_size"] == 2
    assert batch_span["successes"] == 1
    assert batch_span["duration_ms"] >= 0

    summary = telemetry.summary()
    assert summary["memory.process_event"]["count"] == 2
    assert summary["memory.process_event"]["failures"] == 1


def test_span_marks_exceptions_as_failures():
    telemetry = RecordingTelemetryClient(capacity=1)
    with pytest.raises(KeyError):
        with telemetry.span("lookup"):
            raise KeyError("missing")
    ((name, attrs),) = telemetry.spans
    assert name == "lookup"
    assert attrs["success"] is False
    assert attrs["error"] == "KeyError"


def test_logging_client_emits_log_record(caplog):
    client = LoggingTelemetryClient(level=logging.INFO)
    with caplog.at_level(logging.INFO, logger="mnemos.runtime.memory.telemetry"):
        with client.span("memory.process_batch", attributes={"batch_size": 3}):
            pass
    assert any("memory.process_batch" in record.getMessage() for record in caplog.records)


def test_noop_and_base_clients():
    with NoOpTelemetryClient().span("anything") as span:
        span.set_attribute("k", "v")
    with pytest.raises(NotImplementedError):
        with TelemetryClient().span("unimplemented"):
            pass
