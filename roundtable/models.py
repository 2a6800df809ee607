"""Pure dataclasses for the agent roundtable pipeline. No logic, no deps."""

from dataclasses import dataclass, field
from enum import Enum


class PersonaId(str, Enum):
    DIRECTOR = "director"
    CINEMATOGRAPHER = "cinematographer"
    EDITOR = "editor"
    COLORIST = "colorist"
    PLATFORM_EXPERT = "platform_expert"


@dataclass(frozen=True)
class CharacterProfile:
    name: str
    description: str = ""
    prompt_block: str = ""     # locked description, used verbatim when set
    voice_profile: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SettingProfile:
    name: str
    description: str = ""


@dataclass(frozen=True)
class StyleDirectives:
    camera_style: str | None = None
    lighting_mood: str | None = None
    color_palette: str | None = None
    overall_tone: str | None = None


@dataclass(frozen=True)
class ContextBundle:
    visual_template: str | None = None
    characters: list[CharacterProfile] = field(default_factory=list)
    settings: list[SettingProfile] = field(default_factory=list)
    screenplay_excerpt: str | None = None
    style: StyleDirectives | None = None
    continuity_notes: str | None = None


@dataclass(frozen=True)
class RequestedShot:
    """A shot the user already has in mind; the team refines it."""

    order: int
    timing: str        # e.g. "0-4s"
    description: str
    camera: str = ""
    lighting: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class RoundtableRequest:
    brief: str
    platform: str
    context: ContextBundle = field(default_factory=ContextBundle)
    additional_guidance: str | None = None
    prompt_edits: str | None = None     # user edits to a previous final prompt
    shot_list: list[RequestedShot] = field(default_factory=list)


@dataclass(frozen=True)
class SamplingParams:
    temperature: float
    max_tokens: int


@dataclass(frozen=True)
class ConversationalResult:
    persona_id: PersonaId
    text: str
    error: str | None = None


@dataclass(frozen=True)
class TechnicalResult:
    persona_id: PersonaId
    text: str
    error: str | None = None


@dataclass(frozen=True)
class Round1Entry:
    persona_id: PersonaId
    name: str
    conversational: str
    technical: str
    conversational_error: str | None = None
    technical_error: str | None = None

    @property
    def error(self) -> str | None:
        return self.conversational_error or self.technical_error


@dataclass(frozen=True)
class DebateExchange:
    challenger_id: PersonaId
    responder_id: PersonaId
    challenge_text: str = ""
    response_text: str = ""
    error: str | None = None


@dataclass(frozen=True)
class SynthesisResult:
    final_prompt: str
    shot_list: str = ""
    sections: dict[str, str] = field(default_factory=dict)


class SessionStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class SessionResult:
    request: RoundtableRequest
    round1: list[Round1Entry]
    debate: DebateExchange | None
    synthesis: SynthesisResult | None
    status: SessionStatus
    failure_reason: str | None = None
    duration_sec: float = 0.0
