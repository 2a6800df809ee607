"""Rich console output and markdown file save for roundtable sessions."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from roundtable.events import (
    AgentError,
    DebateError,
    DebateMessage,
    DebateStart,
    Event,
    MessageComplete,
    ShotsComplete,
    Status,
    SynthesisComplete,
    SynthesisError,
    SynthesisStart,
    TypingStart,
)
from roundtable.models import Round1Entry, SessionResult, SessionStatus
from roundtable.context import render_requested_shots
from roundtable.personas import get_persona

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _preview(text: str, words: int = 50) -> str:
    """Return first N words of a text."""
    all_words = text.split()
    preview = " ".join(all_words[:words])
    if len(all_words) > words:
        preview += "..."
    return preview


def _persona_name(persona_id: str) -> str:
    return get_persona(persona_id).name


def render_event(event: Event) -> None:
    """Print the milestones of the live event stream; chunk events are skipped."""
    if isinstance(event, Status):
        console.print(f"[bold cyan]{event.message}[/bold cyan]")
    elif isinstance(event, TypingStart):
        console.print(f"[dim]{event.name} is typing...[/dim]")
    elif isinstance(event, MessageComplete):
        title = f"[bold]{_persona_name(event.persona_id)}[/bold]"
        console.print(Panel(Text(event.full_text), title=title, border_style="dim"))
    elif isinstance(event, AgentError):
        console.print(f"[red]{_persona_name(event.persona_id)} failed:[/red] {escape(event.reason)}")
    elif isinstance(event, DebateStart):
        console.print(Rule(
            f"[bold magenta]{_persona_name(event.challenger_id)} challenges "
            f"{_persona_name(event.responder_id)}[/bold magenta]"
        ))
    elif isinstance(event, DebateMessage):
        console.print(f"[bold]{_persona_name(event.from_id)}:[/bold] {escape(event.text)}")
    elif isinstance(event, DebateError):
        console.print(f"[yellow]Debate skipped:[/yellow] {escape(event.reason)}")
    elif isinstance(event, SynthesisStart):
        console.print("[bold cyan]Synthesizing team insights into final prompt...[/bold cyan]")
    elif isinstance(event, SynthesisComplete):
        console.print("[green]OK[/green] Final prompt ready")
    elif isinstance(event, ShotsComplete):
        console.print("[green]OK[/green] Shot list ready")
    elif isinstance(event, SynthesisError):
        console.print(f"[bold red]Synthesis failed:[/bold red] {escape(event.reason)}")


def print_round1_summary(round1: list[Round1Entry]) -> None:
    """Print a brief summary of each persona's technical analysis."""
    console.print(Rule("[bold cyan]Round 1 Technical Analyses[/bold cyan]"))
    for entry in round1:
        body = Text(_preview(entry.technical)) if entry.technical else Text(entry.technical_error or "", style="red")
        console.print(Panel(body, title=f"[bold]{entry.name}[/bold]", border_style="dim"))


def print_synthesis(result: SessionResult) -> None:
    """Print the final prompt and shot list using Rich markdown."""
    console.print(Rule("[bold green]Final Prompt[/bold green]"))
    console.print(
        Text(
            f"Status: {result.status.value} | Duration: {result.duration_sec:.1f}s | "
            f"Platform: {result.request.platform}",
            style="dim",
        )
    )
    if result.synthesis is None:
        console.print(f"[bold red]No final prompt:[/bold red] {escape(result.failure_reason or '')}")
        return
    console.print(Markdown(result.synthesis.final_prompt))
    if result.synthesis.shot_list:
        console.print(Rule("[bold green]Shot List[/bold green]"))
        console.print(Markdown(result.synthesis.shot_list))


def save_to_file(result: SessionResult, output_dir: Path, slug_override: str | None = None) -> Path:
    """Save the full session transcript as a markdown file.

    Args:
        result: The finished SessionResult (completed or failed).
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the brief. Useful for brief files.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(result.request.brief)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    responded = sum(1 for e in result.round1 if not e.error)
    lines: list[str] = [
        f"# Agent Roundtable: {result.request.brief[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Platform:** {result.request.platform}",
        f"**Personas:** {', '.join(e.name for e in result.round1)} ({responded}/{len(result.round1)} without errors)",
        f"**Status:** {result.status.value}",
        f"**Duration:** {result.duration_sec:.1f}s",
    ]
    if result.status is SessionStatus.FAILED:
        lines.append(f"**Failure:** {result.failure_reason}")
    request = result.request
    if request.additional_guidance:
        lines += ["", "**Additional guidance:**", "", request.additional_guidance]
    if request.prompt_edits:
        lines += ["", "**Prompt edits:**", "", request.prompt_edits]
    if request.shot_list:
        lines += ["", "**Requested shots:**", "", render_requested_shots(request.shot_list)]
    lines += ["", "---", "", "## Round 1", ""]

    for entry in result.round1:
        lines.append(f"### {entry.name}")
        lines.append("")
        lines.append(entry.conversational or f"*Conversational error: {entry.conversational_error}*")
        lines.append("")
        lines.append("**Technical analysis**")
        lines.append("")
        lines.append(entry.technical or f"*Technical error: {entry.technical_error}*")
        lines.append("")

    if result.debate is not None:
        debate = result.debate
        challenger = _persona_name(debate.challenger_id)
        responder = _persona_name(debate.responder_id)
        lines += [f"## Round 2: {challenger} vs {responder}", ""]
        if debate.challenge_text:
            lines += [f"**{challenger}:** {debate.challenge_text}", ""]
        if debate.response_text:
            lines += [f"**{responder}:** {debate.response_text}", ""]
        if debate.error:
            lines += [f"*Debate error: {debate.error}*", ""]

    if result.synthesis is not None:
        lines += ["## Final Prompt", "", result.synthesis.final_prompt, ""]
        if result.synthesis.shot_list:
            lines += ["## Shot List", "", result.synthesis.shot_list, ""]

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Session saved to: %s", filepath)
    return filepath
