"""Round 1, technical half: hidden analyses, all personas at once."""

import logging

from roundtable.models import ConversationalResult, Round1Entry, SamplingParams, TechnicalResult
from roundtable.personas import Persona, PromptContext
from roundtable.pipeline import fan_out
from roundtable.providers.base import ModelGateway, ProviderError

logger = logging.getLogger(__name__)


async def _analyze(
    persona: Persona,
    ctx: PromptContext,
    gateway: ModelGateway,
    params: SamplingParams,
    timeout_sec: float,
) -> TechnicalResult:
    """Never raises ProviderError; failures come back as an errored result."""
    try:
        text = await gateway.complete(persona.technical_prompt(ctx), params, timeout_sec)
    except ProviderError as exc:
        logger.warning("Technical analysis failed for %s: %s", persona.name, exc)
        return TechnicalResult(persona_id=persona.id, text="", error=str(exc))
    return TechnicalResult(persona_id=persona.id, text=text)


async def run_technical_phase(
    personas: list[Persona],
    ctx: PromptContext,
    gateway: ModelGateway,
    params: SamplingParams,
    timeout_sec: float,
) -> list[TechnicalResult]:
    """Fan out one ``complete()`` per persona and join them all.

    Emits no events. Wall-clock time is bounded by the slowest call.
    Results come back in ``personas`` order.
    """
    results = await fan_out(
        personas,
        lambda persona: _analyze(persona, ctx, gateway, params, timeout_sec),
    )
    by_id = {r.persona_id: r for r in results}

    logger.info(
        "Technical phase complete: %d/%d analyses succeeded",
        sum(1 for r in results if not r.error),
        len(personas),
    )
    return [by_id[p.id] for p in personas]


def merge_round1(
    personas: list[Persona],
    conversational: list[ConversationalResult],
    technical: list[TechnicalResult],
) -> list[Round1Entry]:
    """Join both halves of Round 1 by persona id, in persona order."""
    conv_by_id = {r.persona_id: r for r in conversational}
    tech_by_id = {r.persona_id: r for r in technical}
    entries: list[Round1Entry] = []
    for persona in personas:
        conv = conv_by_id.get(persona.id)
        tech = tech_by_id.get(persona.id)
        entries.append(
            Round1Entry(
                persona_id=persona.id,
                name=persona.name,
                conversational=conv.text if conv else "",
                technical=tech.text if tech else "",
                conversational_error=conv.error if conv else "No conversational result",
                technical_error=tech.error if tech else "No technical result",
            )
        )
    return entries
