"""Brief files: markdown body is the brief, YAML front matter carries the context."""

from pathlib import Path

import frontmatter

from roundtable.models import (
    CharacterProfile,
    ContextBundle,
    RequestedShot,
    RoundtableRequest,
    SettingProfile,
    StyleDirectives,
)


def _character(raw: dict | str) -> CharacterProfile:
    if isinstance(raw, str):
        return CharacterProfile(name=raw)
    return CharacterProfile(
        name=str(raw["name"]),
        description=str(raw.get("description", "")),
        prompt_block=str(raw.get("prompt_block", "")),
        voice_profile={str(k): str(v) for k, v in (raw.get("voice_profile") or {}).items()},
    )


def _setting(raw: dict | str) -> SettingProfile:
    if isinstance(raw, str):
        return SettingProfile(name=raw)
    return SettingProfile(name=str(raw["name"]), description=str(raw.get("description", "")))


def _shot(raw: dict, position: int) -> RequestedShot:
    return RequestedShot(
        order=int(raw.get("order", position)),
        timing=str(raw.get("timing", "")),
        description=str(raw.get("description", "")),
        camera=str(raw.get("camera", "")),
        lighting=raw.get("lighting"),
        notes=raw.get("notes"),
    )


def context_from_metadata(metadata: dict) -> ContextBundle:
    """Build a ContextBundle from front matter keys; unknown keys are ignored."""
    style_raw = metadata.get("style") or {}
    style = StyleDirectives(
        camera_style=style_raw.get("camera_style"),
        lighting_mood=style_raw.get("lighting_mood"),
        color_palette=style_raw.get("color_palette"),
        overall_tone=style_raw.get("overall_tone"),
    ) if style_raw else None
    return ContextBundle(
        visual_template=metadata.get("visual_template"),
        characters=[_character(c) for c in metadata.get("characters") or []],
        settings=[_setting(s) for s in metadata.get("settings") or []],
        screenplay_excerpt=metadata.get("screenplay"),
        style=style,
        continuity_notes=metadata.get("continuity_notes"),
    )


def parse_brief_file(file_path: Path, default_platform: str) -> RoundtableRequest:
    """Parse a markdown brief with optional YAML front matter.

    Recognized keys: platform, visual_template, screenplay, continuity_notes,
    style (camera_style, lighting_mood, color_palette, overall_tone),
    characters (name, description, prompt_block, voice_profile),
    settings (name, description), additional_guidance, prompt_edits and
    shot_list (order, timing, description, camera, lighting, notes; order
    defaults to the list position). Without front matter the whole file is the
    brief and ``default_platform`` is used.
    """
    post = frontmatter.load(str(file_path))
    metadata = dict(post.metadata)
    return RoundtableRequest(
        brief=post.content.strip(),
        platform=str(metadata.get("platform", default_platform)),
        context=context_from_metadata(metadata),
        additional_guidance=metadata.get("additional_guidance"),
        prompt_edits=metadata.get("prompt_edits"),
        shot_list=[_shot(s, i) for i, s in enumerate(metadata.get("shot_list") or [], start=1)],
    )
