"""Tests for roundtable/personas.py registry and prompt builders."""

import pytest

from roundtable.models import PersonaId
from roundtable.personas import (
    REGISTRY,
    Cinematographer,
    Director,
    Editor,
    PersonaNotFoundError,
    PlatformExpert,
    PromptContext,
    get_persona,
    get_personas,
)


@pytest.fixture
def ctx() -> PromptContext:
    return PromptContext(brief="Unboxing video for a skincare serum", platform="tiktok")


def test_registry_has_five_personas_in_speaking_order():
    ids = [p.id for p in get_personas()]
    assert ids == [
        PersonaId.DIRECTOR,
        PersonaId.CINEMATOGRAPHER,
        PersonaId.EDITOR,
        PersonaId.COLORIST,
        PersonaId.PLATFORM_EXPERT,
    ]


def test_registry_order_is_stable():
    assert [p.id for p in get_personas()] == [p.id for p in get_personas()]
    assert get_personas()[0] is REGISTRY[PersonaId.DIRECTOR]


def test_get_persona_accepts_string_and_enum():
    assert get_persona("editor") is get_persona(PersonaId.EDITOR)


def test_get_persona_unknown_raises():
    with pytest.raises(PersonaNotFoundError):
        get_persona("sound_designer")


def test_get_persona_not_found_is_key_error():
    with pytest.raises(KeyError):
        get_persona("nobody")


def test_get_personas_subset_keeps_given_order():
    personas = get_personas(["colorist", "director"])
    assert [p.name for p in personas] == ["Colorist", "Director"]


@pytest.mark.parametrize("persona", list(REGISTRY.values()), ids=lambda p: p.id.value)
def test_every_prompt_contains_brief_and_context(persona, ctx):
    with_context = PromptContext(brief=ctx.brief, platform=ctx.platform, context="\n\nVISUAL TEMPLATE:\nPastel")
    for prompt in (persona.conversational_prompt(with_context), persona.technical_prompt(with_context)):
        assert ctx.brief in prompt
        assert prompt.endswith("VISUAL TEMPLATE:\nPastel")


def test_director_references_all_prior_speakers(ctx):
    later = PromptContext(ctx.brief, ctx.platform, prior_speakers=("Cinematographer", "Editor"))
    prompt = Director().conversational_prompt(later)
    assert "Cinematographer, Editor have already shared" in prompt


def test_director_first_speaker_has_no_build_on_line(ctx):
    assert "Previous insights" not in Director().conversational_prompt(ctx)


def test_cinematographer_builds_on_last_speaker(ctx):
    later = PromptContext(ctx.brief, ctx.platform, prior_speakers=("Director", "Editor"))
    assert "Building on what Editor said" in Cinematographer().conversational_prompt(later)


def test_editor_references_last_two_speakers(ctx):
    later = PromptContext(ctx.brief, ctx.platform, prior_speakers=("Director", "Cinematographer", "Colorist"))
    assert "Cinematographer and Colorist" in Editor().conversational_prompt(later)


def test_platform_expert_uses_platform(ctx):
    expert = PlatformExpert()
    assert "tiktok Platform Expert" in expert.conversational_prompt(ctx)
    technical = expert.technical_prompt(ctx)
    assert "You are a tiktok platform expert" in technical
    assert "requirements for tiktok" in technical


def test_conversational_and_technical_prompts_differ(ctx):
    for persona in get_personas():
        assert persona.conversational_prompt(ctx) != persona.technical_prompt(ctx)
