"""Click CLI: run a roundtable session from a brief and save the transcript."""

import asyncio
import logging
import sys
from contextlib import ExitStack
from dataclasses import replace
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from config.config_loader import AppConfig, load_config
from roundtable.briefs import parse_brief_file
from roundtable.engine import InvalidRequestError, RoundtableEngine
from roundtable.events import CallbackSink, EventSink, FanOutSink, NdjsonSink, TransportError
from roundtable.healthcheck import run_health_checks
from roundtable.models import RoundtableRequest, SessionResult, SessionStatus
from roundtable.output import print_round1_summary, print_synthesis, render_event, save_to_file
from roundtable.providers.base import ModelGateway
from roundtable.providers.factory import build_available_gateways

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _select_gateways(
    gateways: dict[str, ModelGateway],
    provider: str,
    synthesis_provider: str,
) -> tuple[ModelGateway, ModelGateway]:
    """Returns (round gateway, synthesis gateway).

    Falls back to the round gateway when the synthesis provider is unavailable.
    Exits when the round provider itself is unavailable.
    """
    if provider not in gateways:
        available = ", ".join(sorted(gateways)) or "none"
        console.print(
            f"[bold red]Error:[/bold red] Provider '{provider}' is not available "
            f"(available: {available}). Check API keys in .env or use --provider."
        )
        sys.exit(1)
    gateway = gateways[provider]
    if synthesis_provider not in gateways:
        logger.warning("Synthesis provider '%s' unavailable, using '%s'", synthesis_provider, provider)
        return gateway, gateway
    return gateway, gateways[synthesis_provider]


def _check_gateways(gateways: list[ModelGateway], timeout_sec: float) -> None:
    """Run health checks, print results, and ask user what to do on failures."""
    console.print("\n[bold]Checking providers...[/bold]")
    results = asyncio.run(run_health_checks(gateways, timeout_sec))

    failed = [health for health in results if not health.ok]
    for health in results:
        if health.ok:
            console.print(f"  [green]OK  [/green] {health.name} ({health.model}) [dim]{health.latency_sec:.2f}s[/dim]")
        else:
            short_err = health.error.splitlines()[0][:120] if health.error else "unknown error"
            console.print(f"  [red]FAIL[/red] {health.name}: {escape(short_err)}")

    if not failed:
        console.print()
        return

    names = ", ".join(health.name for health in failed)
    console.print(f"\n[yellow]{len(failed)} provider(s) failed:[/yellow] {names}")
    if not click.confirm("Continue anyway? Failed calls will be recorded as persona errors.", default=False):
        sys.exit(0)
    console.print()


async def _run_session(
    request: RoundtableRequest,
    config: AppConfig,
    gateway: ModelGateway,
    synthesis_gateway: ModelGateway,
    events_path: Path | None,
) -> SessionResult:
    engine = RoundtableEngine(
        gateway,
        config.prompts,
        config=config.roundtable,
        synthesis_gateway=synthesis_gateway,
    )
    with ExitStack() as stack:
        sink: EventSink = CallbackSink(render_event)
        if events_path is not None:
            events_path.parent.mkdir(parents=True, exist_ok=True)
            stream = stack.enter_context(events_path.open("w", encoding="utf-8"))
            sink = FanOutSink(sink, NdjsonSink(stream))
        return await engine.run(request, sink)


@click.command()
@click.argument("brief", required=False)
@click.option("--file", "brief_file", type=click.Path(exists=True, dir_okay=False),
              help="Read brief (and front matter context) from a .md file")
@click.option("--platform", default=None, help="Target platform (default: from config or front matter)")
@click.option("--guidance", default=None, help="Extra creative guidance appended to the brief")
@click.option("--provider", default=None, help="Provider for Round 1 and the debate (default: from config)")
@click.option("--synthesis-provider", default=None, help="Provider for synthesis and shot list (default: from config)")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--events", "events_path", default=None, type=click.Path(dir_okay=False),
              help="Also write the event stream to this NDJSON file")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def main(
    brief: str | None,
    brief_file: str | None,
    platform: str | None,
    guidance: str | None,
    provider: str | None,
    synthesis_provider: str | None,
    output_path: str | None,
    events_path: str | None,
    verbose: bool,
    skip_health_check: bool,
) -> None:
    """Agent Roundtable -- five AI personas turn a brief into a shot-ready video prompt.

    \b
    Examples:
      python -m roundtable.cli "Unboxing video for a skincare serum" --platform tiktok
      python -m roundtable.cli --file brief.md --events session.ndjson
      python -m roundtable.cli "Trail running montage" --provider claude --synthesis-provider openai
    """
    # Model output may contain characters the Windows console codepage cannot encode.
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {escape(str(exc))}")
        sys.exit(1)

    if brief_file:
        request = parse_brief_file(Path(brief_file), default_platform=config.defaults.platform)
        if platform:
            request = replace(request, platform=platform)
        if guidance:
            request = replace(request, additional_guidance=guidance)
        slug = Path(brief_file).stem
    elif brief:
        request = RoundtableRequest(
            brief=brief,
            platform=platform or config.defaults.platform,
            additional_guidance=guidance,
        )
        slug = None
    else:
        console.print("[bold red]Error:[/bold red] Provide a BRIEF argument or --file.")
        sys.exit(1)

    gateways = build_available_gateways(config)
    if not gateways:
        console.print("[bold red]Error:[/bold red] No providers available. Check API keys in .env.")
        sys.exit(1)

    gateway, synthesis_gateway = _select_gateways(
        gateways,
        provider or config.defaults.provider,
        synthesis_provider or config.defaults.synthesis_provider,
    )

    if not skip_health_check:
        _check_gateways([gateway, synthesis_gateway], config.roundtable.timeout_sec)

    console.print(f"\n[bold cyan]Agent Roundtable[/bold cyan]: {len(config.roundtable.personas)} personas")
    console.print(f"Gateway: {gateway.name()} ({gateway.model_string()})")
    console.print(f"Synthesizer: {synthesis_gateway.name()} ({synthesis_gateway.model_string()})")
    console.print(f"Brief: [italic]{escape(request.brief[:80])}{'...' if len(request.brief) > 80 else ''}[/italic]\n")

    try:
        result = asyncio.run(
            _run_session(
                request,
                config,
                gateway,
                synthesis_gateway,
                Path(events_path) if events_path else None,
            )
        )
    except InvalidRequestError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        sys.exit(1)
    except TransportError as exc:
        logger.error("Session abandoned: %s", exc)
        console.print(f"[bold red]Event delivery failed:[/bold red] {escape(str(exc))}")
        sys.exit(1)

    print_round1_summary(result.round1)
    print_synthesis(result)

    effective_output = Path(output_path) if output_path else config.defaults.output_dir
    saved_path = save_to_file(result, effective_output, slug_override=slug)
    console.print(f"\n[dim]Saved to: {saved_path}[/dim]")

    if result.status is SessionStatus.FAILED:
        sys.exit(1)


if __name__ == "__main__":
    main()
