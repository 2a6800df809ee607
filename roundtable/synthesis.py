"""Final synthesis: merge technical analyses into the fixed-section prompt, then the shot list."""

import logging
import re
from contextlib import aclosing

from config.config_loader import PromptsConfig
from roundtable import events
from roundtable.context import (
    render_brief,
    render_character_context,
    render_dialogue,
    render_requested_shots,
    render_user_direction,
    render_voice_profiles,
)
from roundtable.events import EventBus
from roundtable.models import RequestedShot, RoundtableRequest, Round1Entry, SamplingParams, SynthesisResult
from roundtable.providers.base import ModelGateway, ProviderError

logger = logging.getLogger(__name__)

_SHORT_FORM_PLATFORMS = {"tiktok", "instagram"}


class SynthesisError(Exception):
    """Synthesis or shot list failed. Fatal to the session."""


def _header_pattern(header: str) -> re.Pattern[str]:
    """Header at a line start; tolerates numbering, markdown decoration, case and spacing around '/'."""
    body = ""
    for token in re.split(r"(\s*/\s*|\s+)", header.strip()):
        if "/" in token:
            body += r"[ \t]*/[ \t]*"
        elif token.isspace():
            body += r"[ \t]+"
        else:
            body += re.escape(token)
    number = r"(?:\d{1,2}[.)][ \t]*)?"
    return re.compile(
        rf"^[ \t]*(?:#{{1,6}}[ \t]*)?{number}(?:\*\*|__)?[ \t]*{number}{body}[ \t]*(?:\*\*|__)?[ \t]*(?::|$)",
        re.IGNORECASE | re.MULTILINE,
    )


def parse_sections(text: str, headers: list[str]) -> dict[str, str]:
    """Split ``text`` into the contracted sections.

    Each header must appear, in order, at the start of a line. Returns
    header -> body text.

    Raises:
        SynthesisError: A header is missing or out of order.
    """
    positions: list[tuple[str, int, int]] = []
    cursor = 0
    for header in headers:
        match = _header_pattern(header).search(text, cursor)
        if match is None:
            raise SynthesisError(f"Synthesis output is missing section '{header}' (or it is out of order)")
        positions.append((header, match.start(), match.end()))
        cursor = match.end()

    sections: dict[str, str] = {}
    for i, (header, _, body_start) in enumerate(positions):
        body_end = positions[i + 1][1] if i + 1 < len(positions) else len(text)
        sections[header] = text[body_start:body_end].strip()
    return sections


def target_duration(platform: str) -> str:
    if platform.strip().lower() in _SHORT_FORM_PLATFORMS:
        return "4-8s for short-form"
    return "8-12s for standard"


def format_insights(round1: list[Round1Entry]) -> str:
    """Technical text of every persona; failed analyses contribute an empty string."""
    return "\n\n".join(f"{entry.name}: {entry.technical}" for entry in round1)


def build_synthesis_prompts(
    request: RoundtableRequest,
    round1: list[Round1Entry],
    prompts: PromptsConfig,
    sections: list[str],
) -> tuple[str, str]:
    """Returns (system, user) prompts for the synthesis call."""
    context = request.context
    context_block = (
        render_character_context(context)
        + render_voice_profiles(context)
        + (f"\n\nCONTINUITY NOTES:\n{context.continuity_notes}" if context.continuity_notes else "")
        + render_dialogue(context)
        + render_user_direction(request)
    )
    system = prompts.synthesis_system.format(
        sections="\n".join(f"**{header}**" for header in sections),
    )
    user = prompts.synthesis.format(
        brief=render_brief(request),
        platform=request.platform,
        duration=target_duration(request.platform),
        context_block=context_block,
        insights=format_insights(round1),
    )
    return system, user


async def synthesize(
    request: RoundtableRequest,
    round1: list[Round1Entry],
    gateway: ModelGateway,
    bus: EventBus,
    prompts: PromptsConfig,
    sections: list[str],
    params: SamplingParams,
    timeout_sec: float,
    chunk_chars: int = 50,
) -> SynthesisResult:
    """Stream the synthesis, buffering chunks to at least ``chunk_chars`` characters.

    Emits SynthesisStart, SynthesisChunk*, SynthesisComplete. On failure emits
    SynthesisError and raises ``SynthesisError``.
    """
    system, user = build_synthesis_prompts(request, round1, prompts, sections)
    logger.info("Running synthesis via %s", gateway.name())
    logger.debug("Synthesis prompt: %d chars", len(system) + len(user))

    await bus.emit(events.SynthesisStart())
    parts: list[str] = []
    buffer = ""
    try:
        async with aclosing(gateway.stream_complete(user, params, timeout_sec, system=system)) as stream:
            async for delta in stream:
                parts.append(delta)
                buffer += delta
                if len(buffer) >= chunk_chars:
                    await bus.emit(events.SynthesisChunk(text=buffer))
                    buffer = ""
        if buffer:
            await bus.emit(events.SynthesisChunk(text=buffer))

        final_prompt = "".join(parts)
        parsed = parse_sections(final_prompt, sections)
    except (ProviderError, SynthesisError) as exc:
        logger.error("Synthesis failed: %s", exc)
        await bus.emit(events.SynthesisError(reason=str(exc)))
        raise SynthesisError(str(exc)) from exc

    await bus.emit(events.SynthesisComplete(final_prompt=final_prompt))
    return SynthesisResult(final_prompt=final_prompt, sections=parsed)


async def generate_shot_list(
    final_prompt: str,
    gateway: ModelGateway,
    bus: EventBus,
    prompts: PromptsConfig,
    params: SamplingParams,
    timeout_sec: float,
    requested: list[RequestedShot] | None = None,
) -> str:
    """Stream the numbered, timecoded shot list derived from ``final_prompt``.

    When the user supplied ``requested`` shots they are passed along to be
    refined rather than replaced.

    Emits ShotsChunk per delta and ShotsComplete. On failure emits
    SynthesisError and raises ``SynthesisError``.
    """
    prompt = prompts.shots.format(final_prompt=final_prompt)
    if requested:
        prompt += f"\n\nUSER'S REQUESTED SHOT LIST (refine and improve it):\n{render_requested_shots(requested)}"
    parts: list[str] = []
    try:
        stream = gateway.stream_complete(
            prompt,
            params,
            timeout_sec,
            system=prompts.shots_system,
        )
        async with aclosing(stream):
            async for delta in stream:
                parts.append(delta)
                await bus.emit(events.ShotsChunk(text=delta))
    except ProviderError as exc:
        logger.error("Shot list failed: %s", exc)
        await bus.emit(events.SynthesisError(reason=f"Shot list failed: {exc}"))
        raise SynthesisError(f"Shot list failed: {exc}") from exc

    shot_list = "".join(parts)
    await bus.emit(events.ShotsComplete(shot_list=shot_list))
    return shot_list
