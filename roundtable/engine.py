"""Roundtable session driver: runs the phase pipeline and assembles the SessionResult."""

import asyncio
import logging
import time
from dataclasses import dataclass, field

from config.config_loader import PromptsConfig, RoundtableConfig
from roundtable.context import render_brief, render_context
from roundtable.conversation import run_conversational_phase
from roundtable.debate import run_debate
from roundtable.events import EventBus, EventSink, Status
from roundtable.models import (
    ConversationalResult,
    DebateExchange,
    Round1Entry,
    RoundtableRequest,
    SamplingParams,
    SessionResult,
    SessionStatus,
    SynthesisResult,
)
from roundtable.personas import Persona, PersonaNotFoundError, PromptContext, get_persona, get_personas
from roundtable.pipeline import ConcurrencyMode, Phase, run_phase
from roundtable.providers.base import ModelGateway
from roundtable.synthesis import SynthesisError, generate_shot_list, synthesize
from roundtable.technical import merge_round1, run_technical_phase

logger = logging.getLogger(__name__)


class InvalidRequestError(ValueError):
    """The request or the roundtable configuration cannot start a session."""


class SessionCancelledError(Exception):
    """The caller cancelled the session; no result is produced."""


@dataclass
class _Session:
    """Mutable state of one run. Each field is written once by its phase."""

    request: RoundtableRequest
    bus: EventBus
    prompt_ctx: PromptContext
    conversational: list[ConversationalResult] = field(default_factory=list)
    round1: list[Round1Entry] = field(default_factory=list)
    debate: DebateExchange | None = None
    synthesis: SynthesisResult | None = None


class RoundtableEngine:
    """Drives personas through Round 1, the debate, synthesis and the shot list.

    One engine can run many sessions; nothing is shared between them except
    the gateways, which are safe for concurrent use.
    """

    def __init__(
        self,
        gateway: ModelGateway,
        prompts: PromptsConfig,
        config: RoundtableConfig | None = None,
        synthesis_gateway: ModelGateway | None = None,
    ) -> None:
        self._gateway = gateway
        self._synthesis_gateway = synthesis_gateway or gateway
        self._prompts = prompts
        self._config = config or RoundtableConfig()
        try:
            self._personas: list[Persona] = get_personas(self._config.personas)
            self._challenger = get_persona(self._config.debate_pair[0])
            self._responder = get_persona(self._config.debate_pair[1])
        except PersonaNotFoundError as exc:
            raise InvalidRequestError(f"Unknown persona in roundtable config: {exc}") from exc
        if not self._personas:
            raise InvalidRequestError("Roundtable config names no personas")
        if self._challenger.id == self._responder.id:
            raise InvalidRequestError("Debate pair must name two different personas")
        self.phases: tuple[Phase, ...] = (
            Phase("conversation", "round1_start", ConcurrencyMode.SEQUENTIAL, False, self._conversation),
            Phase("technical", "round1_technical", ConcurrencyMode.FAN_OUT, False, self._technical),
            Phase("debate", "round2_start", ConcurrencyMode.SEQUENTIAL, False, self._debate),
            Phase("synthesis", "synthesis_start", ConcurrencyMode.SEQUENTIAL, True, self._synthesis),
            Phase("shots", "shots_start", ConcurrencyMode.SEQUENTIAL, True, self._shots),
        )

    @property
    def personas(self) -> list[Persona]:
        return list(self._personas)

    def _sampling(self, call_kind: str) -> SamplingParams:
        return self._config.sampling[call_kind]

    async def run(
        self,
        request: RoundtableRequest,
        sink: EventSink,
        cancel: asyncio.Event | None = None,
    ) -> SessionResult:
        """Run one session to completion or failure.

        Returns a SessionResult with status COMPLETED or FAILED (synthesis or
        shot list failure). Setting ``cancel`` or cancelling the calling task
        stops the pipeline and cancels in-flight gateway calls.

        Raises:
            InvalidRequestError: Blank brief or platform.
            SessionCancelledError: ``cancel`` was set.
            TransportError: The sink rejected an event; the session is abandoned.
        """
        if not request.brief.strip():
            raise InvalidRequestError("brief is required")
        if not request.platform.strip():
            raise InvalidRequestError("platform is required")

        if cancel is None:
            return await self._run_pipeline(request, sink)

        pipeline = asyncio.ensure_future(self._run_pipeline(request, sink))
        watcher = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({pipeline, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not pipeline.done():
                pipeline.cancel()
            watcher.cancel()
            await asyncio.gather(pipeline, watcher, return_exceptions=True)

        if pipeline.cancelled():
            logger.info("Session cancelled by caller")
            raise SessionCancelledError("Session cancelled by caller")
        return pipeline.result()

    async def _run_pipeline(self, request: RoundtableRequest, sink: EventSink) -> SessionResult:
        start = time.monotonic()
        bus = EventBus(sink)
        session = _Session(
            request=request,
            bus=bus,
            prompt_ctx=PromptContext(
                brief=render_brief(request),
                platform=request.platform,
                context=render_context(request.context),
            ),
        )
        logger.info(
            "Roundtable started: %d personas, platform=%s, debate=%s vs %s",
            len(self._personas),
            request.platform,
            self._challenger.name,
            self._responder.name,
        )
        await bus.emit(Status(message="Creative team assembling...", stage="initialization"))

        status = SessionStatus.COMPLETED
        failure_reason: str | None = None
        for phase in self.phases:
            try:
                await run_phase(phase, session)
            except SynthesisError as exc:
                if not phase.fatal:
                    raise
                status = SessionStatus.FAILED
                failure_reason = str(exc)
                logger.error("Session failed in phase %s: %s", phase.name, exc)
                break

        duration = time.monotonic() - start
        logger.info("Roundtable %s in %.1fs", status.value, duration)
        return SessionResult(
            request=request,
            round1=session.round1,
            debate=session.debate,
            synthesis=session.synthesis,
            status=status,
            failure_reason=failure_reason,
            duration_sec=duration,
        )

    async def _conversation(self, session: _Session) -> None:
        session.conversational = await run_conversational_phase(
            self._personas,
            session.prompt_ctx,
            self._gateway,
            session.bus,
            self._sampling("conversational"),
            self._config.timeout_sec,
        )

    async def _technical(self, session: _Session) -> None:
        technical = await run_technical_phase(
            self._personas,
            session.prompt_ctx,
            self._gateway,
            self._sampling("technical"),
            self._config.timeout_sec,
        )
        session.round1 = merge_round1(self._personas, session.conversational, technical)

    async def _debate(self, session: _Session) -> None:
        session.debate = await run_debate(
            session.prompt_ctx.brief,
            self._challenger,
            self._responder,
            self._gateway,
            session.bus,
            self._prompts,
            self._sampling("debate"),
            self._config.timeout_sec,
        )

    async def _synthesis(self, session: _Session) -> None:
        session.synthesis = await synthesize(
            session.request,
            session.round1,
            self._synthesis_gateway,
            session.bus,
            self._prompts,
            self._config.sections,
            self._sampling("synthesis"),
            self._config.timeout_sec,
            chunk_chars=self._config.synthesis_chunk_chars,
        )

    async def _shots(self, session: _Session) -> None:
        shot_list = await generate_shot_list(
            session.synthesis.final_prompt,
            self._synthesis_gateway,
            session.bus,
            self._prompts,
            self._sampling("shots"),
            self._config.timeout_sec,
            requested=session.request.shot_list,
        )
        session.synthesis = SynthesisResult(
            final_prompt=session.synthesis.final_prompt,
            shot_list=shot_list,
            sections=session.synthesis.sections,
        )


async def start_roundtable(
    request: RoundtableRequest,
    sink: EventSink,
    gateway: ModelGateway,
    prompts: PromptsConfig,
    config: RoundtableConfig | None = None,
    synthesis_gateway: ModelGateway | None = None,
    cancel: asyncio.Event | None = None,
) -> SessionResult:
    """Convenience wrapper: build an engine and run one session."""
    engine = RoundtableEngine(gateway, prompts, config=config, synthesis_gateway=synthesis_gateway)
    return await engine.run(request, sink, cancel=cancel)
