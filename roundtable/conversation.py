"""Round 1, conversational half: personas speak one at a time, streamed.

Sequential by necessity: each prompt names the personas who already spoke.
"""

import logging
from contextlib import aclosing
from dataclasses import dataclass

from roundtable.events import (
    AgentError,
    EventBus,
    MessageChunk,
    MessageComplete,
    TypingStart,
    TypingStop,
)
from roundtable.models import ConversationalResult, SamplingParams
from roundtable.personas import Persona, PromptContext
from roundtable.pipeline import fold_sequential
from roundtable.providers.base import ModelGateway, ProviderError

logger = logging.getLogger(__name__)

_SENTENCE_TERMINATORS = (".", "!", "?")


class SentenceChunker:
    """Buffers streamed deltas and releases them at sentence boundaries."""

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, delta: str) -> str | None:
        """Add a delta; return the buffered sentence once it holds a terminator."""
        self._buffer += delta
        if any(t in self._buffer for t in _SENTENCE_TERMINATORS):
            return self._take()
        return None

    def flush(self) -> str | None:
        return self._take()

    def _take(self) -> str | None:
        text, self._buffer = self._buffer.strip(), ""
        return text or None


@dataclass(frozen=True)
class SpeakerLog:
    """Accumulator folded through the phase. Never mutated in place."""

    results: tuple[ConversationalResult, ...] = ()
    completed_names: tuple[str, ...] = ()

    def record(self, result: ConversationalResult, speaker_name: str | None = None) -> "SpeakerLog":
        names = self.completed_names + (speaker_name,) if speaker_name else self.completed_names
        return SpeakerLog(results=self.results + (result,), completed_names=names)


async def speak(
    persona: Persona,
    ctx: PromptContext,
    gateway: ModelGateway,
    bus: EventBus,
    params: SamplingParams,
    timeout_sec: float,
) -> ConversationalResult:
    """One persona's full streamed turn, bracketed by typing events.

    Provider failures are contained: they produce ``AgentError`` and an
    empty result. Anything else (cancellation, transport) propagates.
    """
    pid = persona.id.value
    await bus.emit(TypingStart(persona_id=pid, name=persona.name))
    try:
        prompt = persona.conversational_prompt(ctx)
        logger.debug("%s conversational prompt: %d chars", persona.name, len(prompt))

        chunker = SentenceChunker()
        parts: list[str] = []
        async with aclosing(gateway.stream_complete(prompt, params, timeout_sec)) as stream:
            async for delta in stream:
                parts.append(delta)
                sentence = chunker.feed(delta)
                if sentence:
                    await bus.emit(MessageChunk(persona_id=pid, text=sentence))
        remainder = chunker.flush()
        if remainder:
            await bus.emit(MessageChunk(persona_id=pid, text=remainder))

        full_text = "".join(parts)
        await bus.emit(MessageComplete(persona_id=pid, full_text=full_text))
        await bus.emit(TypingStop(persona_id=pid, name=persona.name))
        return ConversationalResult(persona_id=persona.id, text=full_text)
    except ProviderError as exc:
        logger.warning("%s failed to respond: %s", persona.name, exc)
        await bus.emit(AgentError(persona_id=pid, reason=str(exc)))
        await bus.emit(TypingStop(persona_id=pid, name=persona.name))
        return ConversationalResult(persona_id=persona.id, text="", error=str(exc))


async def run_conversational_phase(
    personas: list[Persona],
    ctx: PromptContext,
    gateway: ModelGateway,
    bus: EventBus,
    params: SamplingParams,
    timeout_sec: float,
) -> list[ConversationalResult]:
    """Visit personas in order; always returns one result per persona."""

    async def step(log: SpeakerLog, persona: Persona) -> SpeakerLog:
        turn_ctx = PromptContext(
            brief=ctx.brief,
            platform=ctx.platform,
            context=ctx.context,
            prior_speakers=log.completed_names,
        )
        result = await speak(persona, turn_ctx, gateway, bus, params, timeout_sec)
        return log.record(result, None if result.error else persona.name)

    log = await fold_sequential(personas, step, SpeakerLog())

    failed = sum(1 for r in log.results if r.error)
    logger.info(
        "Conversational phase complete: %d/%d personas responded",
        len(personas) - failed,
        len(personas),
    )
    return list(log.results)
