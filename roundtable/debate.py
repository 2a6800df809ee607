"""Round 2: scripted challenge/response between two personas, each leg streamed."""

import logging
from contextlib import aclosing

from config.config_loader import PromptsConfig
from roundtable.events import (
    DebateChunk,
    DebateComplete,
    DebateError,
    DebateMessage,
    DebateStart,
    EventBus,
)
from roundtable.models import DebateExchange, SamplingParams
from roundtable.personas import Persona
from roundtable.providers.base import ModelGateway, ProviderError

logger = logging.getLogger(__name__)


async def _stream_leg(
    speaker: Persona,
    prompt: str,
    system: str,
    gateway: ModelGateway,
    bus: EventBus,
    params: SamplingParams,
    timeout_sec: float,
) -> str:
    """Stream one leg, emitting a DebateChunk per delta. Returns the full text."""
    parts: list[str] = []
    async with aclosing(gateway.stream_complete(prompt, params, timeout_sec, system=system)) as stream:
        async for delta in stream:
            parts.append(delta)
            await bus.emit(DebateChunk(speaker_id=speaker.id.value, text=delta))
    return "".join(parts)


async def run_debate(
    brief: str,
    challenger: Persona,
    responder: Persona,
    gateway: ModelGateway,
    bus: EventBus,
    prompts: PromptsConfig,
    params: SamplingParams,
    timeout_sec: float,
) -> DebateExchange:
    """Run both legs in order; the response prompt embeds the challenge text.

    The debate is advisory: a failing leg emits ``DebateError`` and the
    returned exchange carries the error instead of raising.
    """
    names = {"challenger": challenger.name, "responder": responder.name}
    challenge_text = ""
    response_text = ""

    await bus.emit(DebateStart(challenger_id=challenger.id.value, responder_id=responder.id.value))
    try:
        challenge_text = await _stream_leg(
            challenger,
            prompts.challenge.format(brief=brief, **names),
            prompts.challenge_system.format(**names),
            gateway,
            bus,
            params,
            timeout_sec,
        )
        await bus.emit(
            DebateMessage(from_id=challenger.id.value, to_id=responder.id.value, text=challenge_text)
        )

        response_text = await _stream_leg(
            responder,
            prompts.response.format(challenge=challenge_text, **names),
            prompts.response_system.format(**names),
            gateway,
            bus,
            params,
            timeout_sec,
        )
        await bus.emit(
            DebateMessage(from_id=responder.id.value, to_id=challenger.id.value, text=response_text)
        )
    except ProviderError as exc:
        logger.warning("Debate %s vs %s failed: %s", challenger.name, responder.name, exc)
        await bus.emit(DebateError(reason=str(exc)))
        return DebateExchange(
            challenger_id=challenger.id,
            responder_id=responder.id,
            challenge_text=challenge_text,
            response_text=response_text,
            error=str(exc),
        )

    await bus.emit(DebateComplete())
    logger.info("Debate complete: %s challenged %s", challenger.name, responder.name)
    return DebateExchange(
        challenger_id=challenger.id,
        responder_id=responder.id,
        challenge_text=challenge_text,
        response_text=response_text,
    )
