"""Load settings.yaml into typed dataclasses. Validates API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from roundtable.models import SamplingParams

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

DEFAULT_PERSONAS: list[str] = [
    "director",
    "cinematographer",
    "editor",
    "colorist",
    "platform_expert",
]

DEFAULT_DEBATE_PAIR: tuple[str, str] = ("director", "cinematographer")

DEFAULT_SECTIONS: list[str] = [
    "Story & Direction",
    "Format & Look",
    "Lenses & Filtration",
    "Grade/Palette",
    "Lighting & Atmosphere",
    "Location & Framing",
    "Wardrobe/Props/Extras",
    "Sound",
    "Optimized Shot List",
    "Camera Notes",
    "Finishing",
]

DEFAULT_SAMPLING: dict[str, SamplingParams] = {
    "conversational": SamplingParams(temperature=0.8, max_tokens=300),
    "technical": SamplingParams(temperature=0.7, max_tokens=500),
    "debate": SamplingParams(temperature=0.8, max_tokens=150),
    "synthesis": SamplingParams(temperature=0.5, max_tokens=2000),
    "shots": SamplingParams(temperature=0.5, max_tokens=800),
}


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    base_url: str | None = None


@dataclass
class PromptsConfig:
    challenge_system: str
    challenge: str
    response_system: str
    response: str
    synthesis_system: str
    synthesis: str
    shots_system: str
    shots: str


@dataclass
class RoundtableConfig:
    personas: list[str] = field(default_factory=lambda: list(DEFAULT_PERSONAS))
    debate_pair: tuple[str, str] = DEFAULT_DEBATE_PAIR
    timeout_sec: float = 60.0
    sections: list[str] = field(default_factory=lambda: list(DEFAULT_SECTIONS))
    synthesis_chunk_chars: int = 50
    sampling: dict[str, SamplingParams] = field(default_factory=lambda: dict(DEFAULT_SAMPLING))


@dataclass
class DefaultsConfig:
    provider: str
    synthesis_provider: str
    platform: str
    output_dir: Path


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    roundtable: RoundtableConfig
    prompts: PromptsConfig
    available_providers: set[str] = field(default_factory=set)


def _load_sampling(raw: dict | None) -> dict[str, SamplingParams]:
    sampling = dict(DEFAULT_SAMPLING)
    for call_kind, params in (raw or {}).items():
        base = sampling.get(call_kind, SamplingParams(temperature=0.7, max_tokens=500))
        sampling[call_kind] = SamplingParams(
            temperature=float(params.get("temperature", base.temperature)),
            max_tokens=int(params.get("max_tokens", base.max_tokens)),
        )
    return sampling


def _load_roundtable(raw: dict | None) -> RoundtableConfig:
    raw = raw or {}
    pair = raw.get("debate_pair", list(DEFAULT_DEBATE_PAIR))
    if len(pair) != 2:
        raise ValueError(f"debate_pair must name exactly two personas, got {pair!r}")
    return RoundtableConfig(
        personas=[str(p) for p in raw.get("personas", DEFAULT_PERSONAS)],
        debate_pair=(str(pair[0]), str(pair[1])),
        timeout_sec=float(raw.get("timeout_sec", 60)),
        sections=[str(s) for s in raw.get("sections", DEFAULT_SECTIONS)],
        synthesis_chunk_chars=int(raw.get("synthesis_chunk_chars", 50)),
        sampling=_load_sampling(raw.get("sampling")),
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs missing API keys but does not raise; callers check
    available_providers before building gateways.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        provider=str(defaults_raw["provider"]),
        synthesis_provider=str(defaults_raw.get("synthesis_provider", defaults_raw["provider"])),
        platform=str(defaults_raw.get("platform", "tiktok")),
        output_dir=Path(defaults_raw["output_dir"]),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        challenge_system=prompts_raw["challenge_system"],
        challenge=prompts_raw["challenge"],
        response_system=prompts_raw["response_system"],
        response=prompts_raw["response"],
        synthesis_system=prompts_raw["synthesis_system"],
        synthesis=prompts_raw["synthesis"],
        shots_system=prompts_raw["shots_system"],
        shots=prompts_raw["shots"],
    )

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            base_url=model_raw.get("base_url"),
        )
        models[provider_name] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s (set %s in .env)",
                provider_name,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        roundtable=_load_roundtable(raw.get("roundtable")),
        prompts=prompts,
        available_providers=available_providers,
    )
