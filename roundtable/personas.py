"""Persona registry: one class per roundtable persona, in speaking order."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from roundtable.models import PersonaId


class PersonaNotFoundError(KeyError):
    """Raised for an id that is not in the registry."""


@dataclass(frozen=True)
class PromptContext:
    brief: str
    platform: str
    context: str = ""                       # rendered ContextBundle
    prior_speakers: tuple[str, ...] = ()    # names of personas that already spoke


class Persona(ABC):
    """A named role with fixed expertise and two prompt builders."""

    id: PersonaId
    name: str
    role: str
    expertise: str
    personality: str

    @abstractmethod
    def conversational_prompt(self, ctx: PromptContext) -> str:
        """Prompt for the streamed, user-facing meeting remark."""
        ...

    @abstractmethod
    def technical_prompt(self, ctx: PromptContext) -> str:
        """Prompt for the hidden technical analysis fed to synthesis."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id.value!r})"


def _meeting_prompt(intro: str, personality: str, task: str, rules: list[str], ctx: PromptContext, tail: str = "") -> str:
    bullet_rules = "\n".join(f"- {r}" for r in rules)
    return (
        f"You are {intro} in a collaborative video production meeting.\n\n"
        f"PERSONALITY: {personality}\n\n"
        f"TASK: {task}\n\n"
        f"{bullet_rules}\n\n"
        f"Brief: {ctx.brief}{tail}\n\n"
        "Respond ONLY with your conversational thoughts, nothing else."
        f"{ctx.context}"
    )


class Director(Persona):
    id = PersonaId.DIRECTOR
    name = "Director"
    role = "Creative Director"
    expertise = "Creative vision, storytelling, and overall narrative direction"
    personality = "Visionary, passionate, big-picture thinker who speaks with inspiration about storytelling."
    personality_intro = "an enthusiastic Creative Director"

    def conversational_prompt(self, ctx: PromptContext) -> str:
        tail = ""
        if ctx.prior_speakers:
            tail = (
                f"\n\nPrevious insights to build on: {', '.join(ctx.prior_speakers)} "
                "have already shared their thoughts."
            )
        return _meeting_prompt(
            self.personality_intro,
            self.personality,
            "Analyze this video brief and share your creative vision as if speaking to your team.",
            [
                "Speak in 3-5 SHORT sentences (1-2 sentences per thought)",
                "Be enthusiastic and paint the emotional vision",
                f"Reference other team members if they've spoken: {', '.join(ctx.prior_speakers)}",
                "Each sentence should be a complete thought that can stand alone",
            ],
            ctx,
            tail,
        )

    def technical_prompt(self, ctx: PromptContext) -> str:
        return (
            "You are a creative director. Provide technical narrative specs: story structure "
            "(three-act, vignette, montage), emotional beat timing and progression, character "
            "motivation and arc, visual metaphors or symbolic elements, wardrobe/prop storytelling "
            "function, location narrative purpose, and sound design narrative role. Focus on story "
            f"mechanics. Brief: {ctx.brief}{ctx.context}"
        )


class Cinematographer(Persona):
    id = PersonaId.CINEMATOGRAPHER
    name = "Cinematographer"
    role = "Director of Photography"
    expertise = "Visual composition, camera work, and shot design"
    personality = "Technical, detail-oriented, visual-focused. Speaks methodically about camera and composition."
    personality_intro = "a precise Cinematographer"

    def conversational_prompt(self, ctx: PromptContext) -> str:
        building_on = f'Building on what {ctx.prior_speakers[-1]} said, ' if ctx.prior_speakers else ""
        return _meeting_prompt(
            self.personality_intro,
            self.personality,
            "Analyze this brief and share your visual approach as if speaking to your team.",
            [
                "Speak in 2-4 SHORT sentences (1-2 sentences per thought)",
                f'Reference the previous speaker if there is one: "{building_on}"',
                "Focus on HOW you'll capture the vision visually",
                "Each sentence should be a complete thought",
            ],
            ctx,
        )

    def technical_prompt(self, ctx: PromptContext) -> str:
        return (
            "You are a cinematographer. Provide precise technical specs: specific focal lengths "
            "(e.g., 24mm, 35mm, 50mm, 85mm), lens type (spherical/anamorphic primes or zooms), "
            "filtration (Black Pro-Mist rating, ND strength, CPL), camera movements with speed "
            "(slow dolly, tracking shot, handheld shake), framing rules (rule of thirds, headroom, "
            f"lead room), and composition notes. Use professional terminology. Brief: {ctx.brief}{ctx.context}"
        )


class Editor(Persona):
    id = PersonaId.EDITOR
    name = "Editor"
    role = "Video Editor"
    expertise = "Pacing, transitions, and flow"
    personality = "Rhythm-focused, practical, audience-aware. Speaks with energy about pacing."
    personality_intro = "an energetic Video Editor"

    def conversational_prompt(self, ctx: PromptContext) -> str:
        return _meeting_prompt(
            self.personality_intro,
            self.personality,
            "Analyze this brief and share your editing approach as if speaking to your team.",
            [
                "Speak in 2-4 SHORT sentences (1-2 sentences per thought)",
                f'Reference previous speakers: "{" and ".join(ctx.prior_speakers[-2:])}"',
                "Focus on RHYTHM, PACING, and audience retention",
                "Each sentence should be a complete thought",
            ],
            ctx,
        )

    def technical_prompt(self, ctx: PromptContext) -> str:
        return (
            "You are a video editor. Provide precise editing specs: exact shot duration ranges "
            "(e.g., 2.5-4.0s per cut), transition types with timing (dissolve 0.5s, cut, J/L cut), "
            "pacing rhythm (slow/medium/fast with BPM if applicable), sound design sync points, flow "
            "structure (linear, rhythmic, montage), and cut motivation. Use editorial terminology. "
            f"Brief: {ctx.brief}{ctx.context}"
        )


class Colorist(Persona):
    id = PersonaId.COLORIST
    name = "Colorist"
    role = "Color Grading Specialist"
    expertise = "Color grading, mood, and visual atmosphere"
    personality = "Poetic, sensory, mood-focused. Speaks artistically about color and atmosphere."
    personality_intro = "an artistic Colorist"

    def conversational_prompt(self, ctx: PromptContext) -> str:
        return _meeting_prompt(
            self.personality_intro,
            self.personality,
            "Analyze this brief and share your color approach as if speaking to your team.",
            [
                "Speak in 2-4 SHORT sentences (1-2 sentences per thought)",
                "Reference the Director's emotional vision or the Cinematographer's visual approach",
                "Focus on MOOD, ATMOSPHERE, and emotional color impact",
                "Each sentence should be a complete thought",
            ],
            ctx,
        )

    def technical_prompt(self, ctx: PromptContext) -> str:
        return (
            "You are a colorist. Provide precise grading specs: Highlights (color cast, lift/gain), "
            "Mids (balance, tint direction), Blacks (lift level, color treatment), specific LUT "
            "recommendations, color palette with tonal range assignments, contrast curve approach, "
            "saturation strategy per channel, and atmospheric color effects. Use colorist "
            f"terminology. Brief: {ctx.brief}{ctx.context}"
        )


class PlatformExpert(Persona):
    """Platform-specific persona; both prompts depend on ``ctx.platform``."""

    id = PersonaId.PLATFORM_EXPERT
    name = "Platform Expert"
    role = "Platform Specialist"
    expertise = "Platform-specific optimization and best practices"
    personality = "Data-driven, tactical, audience-focused. Speaks strategically about viewer behavior."

    def conversational_prompt(self, ctx: PromptContext) -> str:
        return _meeting_prompt(
            f"a strategic {ctx.platform} Platform Expert",
            self.personality,
            "Analyze this brief and share your platform strategy as if speaking to your team.",
            [
                "Speak in 3-5 SHORT sentences (1-2 sentences per thought)",
                "Reference how you'll optimize what the team has discussed",
                f"Focus on {ctx.platform}-specific hooks, timing, and audience retention",
                "Each sentence should be a complete thought",
            ],
            ctx,
        )

    def technical_prompt(self, ctx: PromptContext) -> str:
        return (
            f"You are a {ctx.platform} platform expert. Provide TECHNICAL specs only: optimal "
            "duration (in seconds), aspect ratio (e.g., 9:16, 16:9, 1:1), frame rate, resolution, "
            f"and technical format requirements for {ctx.platform}. NO marketing tactics, hashtags, "
            f"or posting times. Brief: {ctx.brief}{ctx.context}"
        )


REGISTRY: dict[PersonaId, Persona] = {
    persona.id: persona
    for persona in (Director(), Cinematographer(), Editor(), Colorist(), PlatformExpert())
}


def get_persona(persona_id: PersonaId | str) -> Persona:
    """Look up a persona by id or id string."""
    try:
        return REGISTRY[PersonaId(persona_id)]
    except (KeyError, ValueError):
        raise PersonaNotFoundError(persona_id) from None


def get_personas(ids: list[PersonaId | str] | None = None) -> list[Persona]:
    """Personas in speaking order: registry order, or the order of ``ids``."""
    if ids is None:
        return list(REGISTRY.values())
    return [get_persona(i) for i in ids]
