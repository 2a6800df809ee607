"""Typed progress events, event sinks and the per-session event bus.

Every event serializes to ``{"type", "data", "timestamp"}``, one JSON object
per line when written as NDJSON. The transport that carries those lines to a
client (chunked HTTP, SSE, websocket) belongs to the caller.
"""

import asyncio
import dataclasses
import inspect
import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import ClassVar, TextIO

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """The event sink rejected delivery (e.g. the client disconnected)."""


@dataclass(frozen=True)
class Event:
    type: ClassVar[str] = "event"

    timestamp: float = field(default_factory=time.time, kw_only=True, compare=False)

    def data(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in dataclasses.fields(self)
            if f.name != "timestamp"
        }

    def to_dict(self) -> dict:
        return {"type": self.type, "data": self.data(), "timestamp": int(self.timestamp * 1000)}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


@dataclass(frozen=True)
class Status(Event):
    type: ClassVar[str] = "status"
    message: str
    stage: str


@dataclass(frozen=True)
class TypingStart(Event):
    type: ClassVar[str] = "typing_start"
    persona_id: str
    name: str = ""


@dataclass(frozen=True)
class TypingStop(Event):
    type: ClassVar[str] = "typing_stop"
    persona_id: str
    name: str = ""


@dataclass(frozen=True)
class MessageChunk(Event):
    type: ClassVar[str] = "message_chunk"
    persona_id: str
    text: str


@dataclass(frozen=True)
class MessageComplete(Event):
    type: ClassVar[str] = "message_complete"
    persona_id: str
    full_text: str


@dataclass(frozen=True)
class AgentError(Event):
    type: ClassVar[str] = "agent_error"
    persona_id: str
    reason: str


@dataclass(frozen=True)
class DebateStart(Event):
    type: ClassVar[str] = "debate_start"
    challenger_id: str
    responder_id: str


@dataclass(frozen=True)
class DebateChunk(Event):
    type: ClassVar[str] = "debate_chunk"
    speaker_id: str
    text: str


@dataclass(frozen=True)
class DebateMessage(Event):
    type: ClassVar[str] = "debate_message"
    from_id: str
    to_id: str
    text: str


@dataclass(frozen=True)
class DebateComplete(Event):
    type: ClassVar[str] = "debate_complete"


@dataclass(frozen=True)
class DebateError(Event):
    type: ClassVar[str] = "debate_error"
    reason: str


@dataclass(frozen=True)
class SynthesisStart(Event):
    type: ClassVar[str] = "synthesis_start"


@dataclass(frozen=True)
class SynthesisChunk(Event):
    type: ClassVar[str] = "synthesis_chunk"
    text: str


@dataclass(frozen=True)
class SynthesisComplete(Event):
    type: ClassVar[str] = "synthesis_complete"
    final_prompt: str


@dataclass(frozen=True)
class SynthesisError(Event):
    type: ClassVar[str] = "synthesis_error"
    reason: str


@dataclass(frozen=True)
class ShotsChunk(Event):
    type: ClassVar[str] = "shots_chunk"
    text: str


@dataclass(frozen=True)
class ShotsComplete(Event):
    type: ClassVar[str] = "shots_complete"
    shot_list: str


class EventSink(ABC):
    """Receives the ordered event stream of one session."""

    @abstractmethod
    async def emit(self, event: Event) -> None:
        ...


class EventLog(EventSink):
    """Append-only in-memory sink."""

    def __init__(self) -> None:
        self._events: list[Event] = []

    async def emit(self, event: Event) -> None:
        self._events.append(event)

    @property
    def events(self) -> list[Event]:
        return list(self._events)

    def types(self) -> list[str]:
        return [e.type for e in self._events]

    def of_type(self, event_cls: type[Event]) -> list[Event]:
        return [e for e in self._events if isinstance(e, event_cls)]


class CallbackSink(EventSink):
    """Adapts a plain or async callable."""

    def __init__(self, callback: Callable[[Event], Awaitable[None] | None]) -> None:
        self._callback = callback

    async def emit(self, event: Event) -> None:
        result = self._callback(event)
        if inspect.isawaitable(result):
            await result


class QueueSink(EventSink):
    """Feeds an ``asyncio.Queue``; ``None`` is put after the last event by ``close()``."""

    def __init__(self, queue: asyncio.Queue) -> None:
        self._queue = queue
        self._closed = False

    async def emit(self, event: Event) -> None:
        if self._closed:
            raise TransportError("Queue sink is closed")
        await self._queue.put(event)

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            await self._queue.put(None)


class NdjsonSink(EventSink):
    """Writes one JSON object per line to a text stream."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    async def emit(self, event: Event) -> None:
        self._stream.write(event.to_json() + "\n")
        self._stream.flush()


class FanOutSink(EventSink):
    """Delivers every event to several sinks in order."""

    def __init__(self, *sinks: EventSink) -> None:
        self._sinks = sinks

    async def emit(self, event: Event) -> None:
        for sink in self._sinks:
            await sink.emit(event)


class EventBus:
    """Orders the events of one session and forwards them to the caller's sink.

    Keeps its own append-only log. Any failure raised by the sink is
    reported as ``TransportError``.
    """

    def __init__(self, sink: EventSink) -> None:
        self._sink = sink
        self._log: list[Event] = []

    @property
    def log(self) -> list[Event]:
        return list(self._log)

    async def emit(self, event: Event) -> None:
        self._log.append(event)
        try:
            await self._sink.emit(event)
        except TransportError:
            raise
        except Exception as exc:
            logger.warning("Event sink rejected %s: %s", event.type, exc)
            raise TransportError(f"Event sink rejected '{event.type}': {exc}") from exc
