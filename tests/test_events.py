"""Tests for roundtable/events.py event types and sinks."""

import asyncio
import io
import json

import pytest

from roundtable.events import (
    CallbackSink,
    DebateComplete,
    DebateMessage,
    EventBus,
    EventLog,
    FanOutSink,
    MessageChunk,
    NdjsonSink,
    QueueSink,
    Status,
    TransportError,
    TypingStart,
)


def test_event_wire_shape():
    event = MessageChunk(persona_id="director", text="Open tight.", timestamp=1700000000.5)
    assert event.to_dict() == {
        "type": "message_chunk",
        "data": {"persona_id": "director", "text": "Open tight."},
        "timestamp": 1700000000500,
    }


def test_event_without_payload():
    assert DebateComplete(timestamp=1.0).to_dict() == {"type": "debate_complete", "data": {}, "timestamp": 1000}


def test_to_json_keeps_unicode():
    line = DebateMessage(from_id="director", to_id="cinematographer", text="Café reveal, slow").to_json()
    assert "Café" in line
    assert json.loads(line)["data"]["to_id"] == "cinematographer"


def test_equality_ignores_timestamp():
    assert TypingStart(persona_id="editor", timestamp=1.0) == TypingStart(persona_id="editor", timestamp=2.0)


async def test_event_log_filters():
    log = EventLog()
    await log.emit(Status(message="Creative team assembling...", stage="initialization"))
    await log.emit(TypingStart(persona_id="director", name="Director"))
    assert log.types() == ["status", "typing_start"]
    assert len(log.of_type(TypingStart)) == 1


async def test_callback_sink_accepts_sync_and_async():
    seen: list[str] = []

    async def async_cb(event):
        seen.append("async:" + event.type)

    await CallbackSink(lambda e: seen.append("sync:" + e.type)).emit(DebateComplete())
    await CallbackSink(async_cb).emit(DebateComplete())
    assert seen == ["sync:debate_complete", "async:debate_complete"]


async def test_queue_sink_terminates_with_none():
    queue: asyncio.Queue = asyncio.Queue()
    sink = QueueSink(queue)
    await sink.emit(DebateComplete())
    await sink.close()
    await sink.close()

    assert (await queue.get()).type == "debate_complete"
    assert await queue.get() is None
    assert queue.empty()

    with pytest.raises(TransportError):
        await sink.emit(DebateComplete())


async def test_ndjson_sink_writes_one_line_per_event():
    buf = io.StringIO()
    sink = NdjsonSink(buf)
    await sink.emit(Status(message="Creative team assembling...", stage="initialization"))
    await sink.emit(DebateComplete())

    lines = buf.getvalue().splitlines()
    assert [json.loads(line)["type"] for line in lines] == ["status", "debate_complete"]


async def test_fan_out_sink_delivers_to_all():
    a, b = EventLog(), EventLog()
    await FanOutSink(a, b).emit(DebateComplete())
    assert a.types() == b.types() == ["debate_complete"]


async def test_bus_keeps_order_and_log():
    sink = EventLog()
    bus = EventBus(sink)
    for i in range(3):
        await bus.emit(MessageChunk(persona_id="editor", text=str(i)))
    assert [e.text for e in bus.log] == ["0", "1", "2"]
    assert sink.events == bus.log


async def test_bus_wraps_sink_failure_as_transport_error():
    def broken(event):
        raise BrokenPipeError("client disconnected")

    bus = EventBus(CallbackSink(broken))
    with pytest.raises(TransportError, match="client disconnected") as exc_info:
        await bus.emit(DebateComplete())
    assert isinstance(exc_info.value.__cause__, BrokenPipeError)


async def test_bus_passes_transport_error_through():
    queue: asyncio.Queue = asyncio.Queue()
    sink = QueueSink(queue)
    await sink.close()
    with pytest.raises(TransportError, match="closed"):
        await EventBus(sink).emit(DebateComplete())
