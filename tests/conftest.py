"""Shared pytest fixtures."""

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

import pytest

from config.config_loader import DEFAULT_SECTIONS, PromptsConfig, RoundtableConfig
from roundtable.models import (
    CharacterProfile,
    ContextBundle,
    RoundtableRequest,
    SamplingParams,
    SettingProfile,
)
from roundtable.providers.base import AgentProviderError, ModelGateway

CANNED_REMARK = "Love this brief. We open tight on the bottle! Then we let it breathe"
CANNED_TECHNICAL = "Technical notes: 35mm prime, slow dolly in, soft key light."
CANNED_CHALLENGE = "What if we skip the macro shots and stay handheld?"
CANNED_RESPONSE = "Handheld works for the reveal, but the texture needs a locked macro."
CANNED_SHOTS = '1. 0.00–2.40 — "Reveal" (85mm, slow dolly in)\nBottle emerges. Purpose: hook.'
CANNED_SYNTHESIS = "\n\n".join(f"**{header}**\nDetails for {header.lower()}." for header in DEFAULT_SECTIONS)

KINDS = {"conversational", "technical", "challenge", "response", "synthesis", "shots"}


@dataclass
class GatewayCall:
    kind: str          # "conversational", "technical", "challenge", "response", "synthesis", "shots"
    prompt: str
    system: str | None
    streamed: bool


def classify(prompt: str, system: str | None, streamed: bool) -> str:
    """Map a call onto the pipeline step that issued it (test prompt markers)."""
    if system:
        for marker, kind in (
            ("CHALLENGE", "challenge"),
            ("RESPOND", "response"),
            ("SYNTHESIZE", "synthesis"),
            ("SHOT LIST", "shots"),
        ):
            if system.startswith(marker):
                return kind
    return "conversational" if streamed else "technical"


def _words(text: str) -> list[str]:
    """Split into word-sized deltas that concatenate back to ``text``."""
    parts = text.split(" ")
    return [p + " " for p in parts[:-1]] + [parts[-1]]


@dataclass(eq=False)
class StubGateway(ModelGateway):
    """Deterministic gateway scripted per call kind.

    ``responses`` overrides the canned text per kind; ``failures`` maps a
    kind (or a prompt substring) to the exception raised; ``delays`` maps a
    prompt substring to seconds slept before answering.
    """

    provider_name: str = "stub"
    responses: dict[str, str] = field(default_factory=dict)
    failures: dict[str, Exception] = field(default_factory=dict)
    delays: dict[str, float] = field(default_factory=dict)
    calls: list[GatewayCall] = field(default_factory=list)
    open_streams: int = 0
    closed_streams: int = 0

    def name(self) -> str:
        return self.provider_name

    def model_string(self) -> str:
        return "stub-model"

    def _text_for(self, kind: str) -> str:
        canned = {
            "conversational": CANNED_REMARK,
            "technical": CANNED_TECHNICAL,
            "challenge": CANNED_CHALLENGE,
            "response": CANNED_RESPONSE,
            "synthesis": CANNED_SYNTHESIS,
            "shots": CANNED_SHOTS,
        }
        return self.responses.get(kind, canned[kind])

    def _failure_for(self, kind: str, prompt: str) -> Exception | None:
        if kind in self.failures:
            return self.failures[kind]
        for needle, exc in self.failures.items():
            if needle not in KINDS and needle in prompt:
                return exc
        return None

    async def _delay(self, prompt: str) -> None:
        for needle, seconds in self.delays.items():
            if needle in prompt:
                await asyncio.sleep(seconds)
                return

    async def _complete(self, prompt: str, params: SamplingParams, system: str | None) -> str:
        kind = classify(prompt, system, streamed=False)
        self.calls.append(GatewayCall(kind, prompt, system, streamed=False))
        await self._delay(prompt)
        failure = self._failure_for(kind, prompt)
        if failure is not None:
            raise failure
        return self._text_for(kind)

    async def _stream(self, prompt: str, params: SamplingParams, system: str | None) -> AsyncIterator[str]:
        kind = classify(prompt, system, streamed=True)
        self.calls.append(GatewayCall(kind, prompt, system, streamed=True))
        self.open_streams += 1
        try:
            await self._delay(prompt)
            failure = self._failure_for(kind, prompt)
            if failure is not None:
                raise failure
            for delta in _words(self._text_for(kind)):
                await asyncio.sleep(0)
                yield delta
        finally:
            self.closed_streams += 1

    def kinds(self) -> list[str]:
        return [c.kind for c in self.calls]


def provider_error(message: str = "API error") -> AgentProviderError:
    return AgentProviderError("stub", message)


@pytest.fixture
def stub_gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        challenge_system="CHALLENGE as {challenger} against {responder}.",
        challenge="Brief: {brief}. The {responder} wants composition. Concern?",
        response_system="RESPOND as {responder} to {challenger}.",
        response='The {challenger} said: "{challenge}"',
        synthesis_system="SYNTHESIZE using these sections in order:\n{sections}",
        synthesis=(
            "Original Brief: {brief}\nPlatform: {platform}\nDuration: {duration}"
            "{context_block}\n\nTeam Insights:\n{insights}"
        ),
        shots_system="SHOT LIST: numbered, timecoded, lens and movement.",
        shots="Shot list for:\n{final_prompt}",
    )


@pytest.fixture
def sample_roundtable_config() -> RoundtableConfig:
    return RoundtableConfig(timeout_sec=5.0)


@pytest.fixture
def sample_request() -> RoundtableRequest:
    return RoundtableRequest(brief="Unboxing video for a skincare serum", platform="tiktok")


@pytest.fixture
def rich_context() -> ContextBundle:
    return ContextBundle(
        visual_template="Soft pastel studio, top light.",
        characters=[
            CharacterProfile(
                name="ORIN",
                description="mid-40s engineer, weathered hands",
                voice_profile={"tone": "measured", "accent": "earthy Midwestern drawl"},
            ),
            CharacterProfile(name="SOL", prompt_block="SOL: androgynous ship AI, soft blue glow"),
        ],
        settings=[SettingProfile(name="Archive Bay", description="dim server racks")],
        screenplay_excerpt="ORIN\nCome on, Sol... what're you hiding in there?\n\nSOL\n(calm)\nYou are accessing restricted archives.",
        continuity_notes="Orin wears the same grease-stained jacket as episode 2.",
    )

