"""Render a request's brief and ContextBundle into the prompt text every persona consumes."""

import re

from roundtable.models import CharacterProfile, ContextBundle, RequestedShot, RoundtableRequest

_VOICE_KEYS = ("tone", "pitch", "pace", "accent", "mannerisms", "vocal_quirks")

# "ORIN: Come on" / "ORIN (V.O.): "Come on""
_INLINE_LINE = re.compile(r"^\s*-?\s*([A-Z][A-Z0-9 .'_-]{0,40}?)\s*(?:\([^)]*\))?\s*:\s*(.+?)\s*$")
# Screenplay cue: a line holding only an upper-case character name
_CUE_LINE = re.compile(r"^\s*([A-Z][A-Z0-9 .'_-]{0,40}?)\s*(?:\([^)]*\))?\s*$")
_SCENE_HEADING = re.compile(r"^\s*(INT\.|EXT\.|INT/EXT|EST\.|CUT TO|FADE )")
_NOT_SPEAKERS = {"DIALOGUE", "SCENE", "ACTION", "NOTE"}
_ARTICLES = {"THE", "A", "AN"}
_MAX_CUE_WORDS = 3


def character_block(character: CharacterProfile) -> str:
    if character.prompt_block:
        return character.prompt_block
    return f"{character.name}: {character.description}".strip().rstrip(":")


def render_character_context(context: ContextBundle) -> str:
    if not context.characters:
        return ""
    blocks = "\n\n".join(character_block(c) for c in context.characters)
    return (
        f"\n\nCHARACTERS IN THIS VIDEO:\n{blocks}\n\n"
        "IMPORTANT: The character descriptions above are LOCKED. "
        "Use them exactly as provided for consistency across videos.\n\n"
    )


def render_context(context: ContextBundle) -> str:
    """Concatenate the optional context blocks into one string.

    Returns "" when the bundle is empty. Every non-empty block starts with a
    blank line so the result can be appended directly to a prompt.
    """
    parts: list[str] = []
    if context.visual_template:
        parts.append(f"\n\nVISUAL TEMPLATE:\n{context.visual_template}")
    parts.append(render_character_context(context))
    if context.screenplay_excerpt:
        parts.append(f"\n\nEPISODE SCREENPLAY CONTEXT:\n{context.screenplay_excerpt}")
    if context.settings:
        lines = "\n".join(f"- {s.name}: {s.description}" for s in context.settings)
        parts.append(f"\n\nSETTINGS:\n{lines}")
    if context.style:
        style = context.style
        directives = ", ".join(
            f"{label}: {value}"
            for label, value in (
                ("Camera", style.camera_style),
                ("Lighting", style.lighting_mood),
                ("Colors", style.color_palette),
                ("Tone", style.overall_tone),
            )
            if value
        )
        if directives:
            parts.append(f"\n\nSTYLE DIRECTIVES: {directives}")
    return "".join(parts)


def shot_line(shot: RequestedShot, with_notes: bool = True) -> str:
    line = f"Shot {shot.order} ({shot.timing}): {shot.description}"
    if shot.camera:
        line += f" | Camera: {shot.camera}"
    if shot.lighting:
        line += f" | Lighting: {shot.lighting}"
    if with_notes and shot.notes:
        line += f" | Notes: {shot.notes}"
    return line


def render_requested_shots(shots: list[RequestedShot], with_notes: bool = True) -> str:
    return "\n".join(shot_line(s, with_notes) for s in sorted(shots, key=lambda s: s.order))


def render_brief(request: RoundtableRequest) -> str:
    """The brief every persona sees: user guidance and requested shots appended."""
    brief = request.brief
    if request.additional_guidance:
        brief += f"\n\nADDITIONAL CREATIVE GUIDANCE:\n{request.additional_guidance}"
    if request.shot_list:
        brief += f"\n\nREQUESTED SHOT LIST:\n{render_requested_shots(request.shot_list)}"
    return brief


def render_user_direction(request: RoundtableRequest) -> str:
    """Synthesis-only block for the user's prompt edits and shot structure, or ""."""
    parts: list[str] = []
    if request.prompt_edits:
        parts.append(
            f"\n\nUSER'S DIRECT PROMPT EDITS:\n{request.prompt_edits}\n\n"
            "IMPORTANT: Respect the user's edits in the final prompt."
        )
    if request.shot_list:
        parts.append(
            f"\n\nUSER'S REQUESTED SHOT LIST:\n{render_requested_shots(request.shot_list, with_notes=False)}\n\n"
            "IMPORTANT: Incorporate this shot structure into the final prompt."
        )
    return "".join(parts)


def voice_profile_line(character: CharacterProfile) -> str | None:
    values = [character.voice_profile.get(k, "").strip() for k in _VOICE_KEYS]
    values = [v for v in values if v]
    if not values:
        return None
    return f"{character.name}: {', '.join(values)}"


def render_voice_profiles(context: ContextBundle) -> str:
    lines = [line for c in context.characters if (line := voice_profile_line(c))]
    if not lines:
        return ""
    return "\n\nCHARACTER VOICE PROFILES:\n" + "\n".join(lines)


def _speaker_keys(characters: list[CharacterProfile]) -> set[str]:
    """Upper-case full names and first names of the known characters."""
    keys: set[str] = set()
    for character in characters:
        name = character.name.strip().upper()
        if name:
            keys.update((name, name.split()[0]))
    return keys


def _speaker_name(name: str, speakers: set[str]) -> str | None:
    """``name`` when it can be a speaker, None for an upper-case action beat."""
    name = name.strip()
    words = name.split()
    if not any(ch.isalpha() for ch in name) or name.endswith((".", "!", "?")):
        return None
    if speakers:
        return name if name.upper() in speakers or words[0].upper() in speakers else None
    if len(words) > _MAX_CUE_WORDS or (len(words) > 2 and words[0] in _ARTICLES):
        return None
    return name


def extract_dialogue(screenplay: str | None, speakers: set[str] | None = None) -> list[tuple[str, str]]:
    """Pull (CHARACTER, line) pairs out of a screenplay excerpt.

    Understands inline ``NAME: line`` dialogue and classic screenplay layout
    (an upper-case cue line followed by the spoken lines). Parentheticals and
    scene headings are skipped; quotes around a line are dropped.

    With ``speakers`` (upper-case names) only those characters count as cues.
    Without it, upper-case lines of more than three words, or ending in
    punctuation, are read as action beats rather than cues.
    """
    if not screenplay:
        return []
    speakers = speakers or set()

    dialogue: list[tuple[str, str]] = []
    speaker: str | None = None
    spoken: list[str] = []

    def flush() -> None:
        nonlocal speaker, spoken
        if speaker and spoken:
            dialogue.append((speaker, " ".join(spoken)))
        speaker, spoken = None, []

    for raw in screenplay.splitlines():
        line = raw.strip()
        if not line or _SCENE_HEADING.match(line):
            flush()
            continue
        inline = _INLINE_LINE.match(line)
        if inline and inline.group(1).strip() not in _NOT_SPEAKERS:
            name = _speaker_name(inline.group(1), speakers)
            if name:
                flush()
                dialogue.append((name, inline.group(2).strip().strip('"“”')))
                continue
        cue = _CUE_LINE.match(line)
        if cue:
            flush()
            speaker = _speaker_name(cue.group(1), speakers)
            continue
        if speaker and not (line.startswith("(") and line.endswith(")")):
            spoken.append(line.strip('"“”'))
    flush()
    return dialogue


def render_dialogue(context: ContextBundle) -> str:
    """Screenplay dialogue as ``- CHARACTER: "line"`` rows, or ""."""
    lines = extract_dialogue(context.screenplay_excerpt, _speaker_keys(context.characters))
    if not lines:
        return ""
    rows = "\n".join(f'- {name}: "{text}"' for name, text in lines)
    return f"\n\nSCREENPLAY DIALOGUE (render verbatim, do not paraphrase):\n{rows}"
