"""Tests for roundtable/debate.py (Round 2)."""

from roundtable.debate import run_debate
from roundtable.events import DebateChunk, DebateMessage, EventBus, EventLog
from roundtable.models import PersonaId, SamplingParams
from roundtable.personas import Cinematographer, Director

from tests.conftest import CANNED_CHALLENGE, CANNED_RESPONSE, StubGateway, provider_error

PARAMS = SamplingParams(temperature=0.8, max_tokens=150)
BRIEF = "Unboxing video for a skincare serum"


async def _run(gateway, prompts, log=None):
    return await run_debate(
        BRIEF, Director(), Cinematographer(), gateway, EventBus(log or EventLog()), prompts, PARAMS, 5.0
    )


async def test_debate_event_order(sample_prompts_config):
    log = EventLog()
    exchange = await _run(StubGateway(), sample_prompts_config, log)

    types = log.types()
    assert types[0] == "debate_start"
    assert types[-1] == "debate_complete"
    assert types.count("debate_message") == 2
    first_msg = types.index("debate_message")
    assert set(types[1:first_msg]) == {"debate_chunk"}

    assert exchange.challenge_text == CANNED_CHALLENGE
    assert exchange.response_text == CANNED_RESPONSE
    assert exchange.error is None


async def test_chunks_attributed_to_speaker(sample_prompts_config):
    log = EventLog()
    await _run(StubGateway(), sample_prompts_config, log)

    speakers = [e.speaker_id for e in log.of_type(DebateChunk)]
    split = speakers.index("cinematographer")
    assert set(speakers[:split]) == {"director"}
    assert set(speakers[split:]) == {"cinematographer"}
    assert "".join(e.text for e in log.of_type(DebateChunk)[:split]) == CANNED_CHALLENGE


async def test_messages_are_addressed(sample_prompts_config):
    log = EventLog()
    await _run(StubGateway(), sample_prompts_config, log)

    challenge, response = log.of_type(DebateMessage)
    assert (challenge.from_id, challenge.to_id) == ("director", "cinematographer")
    assert (response.from_id, response.to_id) == ("cinematographer", "director")
    assert response.text == CANNED_RESPONSE


async def test_response_prompt_embeds_challenge(sample_prompts_config):
    gateway = StubGateway()
    await _run(gateway, sample_prompts_config)

    challenge_call, response_call = gateway.calls
    assert BRIEF in challenge_call.prompt
    assert challenge_call.system == "CHALLENGE as Director against Cinematographer."
    assert CANNED_CHALLENGE in response_call.prompt
    assert response_call.system == "RESPOND as Cinematographer to Director."


async def test_challenge_failure_skips_response(sample_prompts_config):
    gateway = StubGateway(failures={"challenge": provider_error("timed out")})
    log = EventLog()

    exchange = await _run(gateway, sample_prompts_config, log)

    assert log.types() == ["debate_start", "debate_error"]
    assert gateway.kinds() == ["challenge"]
    assert exchange.challenger_id is PersonaId.DIRECTOR
    assert exchange.challenge_text == ""
    assert "timed out" in exchange.error


async def test_response_failure_keeps_challenge(sample_prompts_config):
    gateway = StubGateway(failures={"response": provider_error()})
    log = EventLog()

    exchange = await _run(gateway, sample_prompts_config, log)

    assert log.types()[-1] == "debate_error"
    assert len(log.of_type(DebateMessage)) == 1
    assert exchange.challenge_text == CANNED_CHALLENGE
    assert exchange.response_text == ""
