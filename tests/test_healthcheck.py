"""Unit tests for roundtable/healthcheck.py, no real API calls."""

from unittest.mock import AsyncMock

import roundtable.healthcheck as hc
from roundtable.healthcheck import GatewayHealth, run_health_checks
from roundtable.providers.base import ProviderError

from tests.conftest import StubGateway


async def test_all_gateways_pass():
    """All gateways succeed -> all marked ok, sorted by name."""
    results = await run_health_checks([StubGateway("gemini"), StubGateway("claude")])

    assert [h.name for h in results] == ["claude", "gemini"]
    assert all(h.ok for h in results)
    assert results[0].model == "stub-model"
    assert results[0].latency_sec >= 0


async def test_one_gateway_fails():
    """A gateway that raises is reported with the provider's message."""
    grok = StubGateway("grok")
    grok.complete = AsyncMock(side_effect=ProviderError("grok", "403 Forbidden"))

    results = await run_health_checks([StubGateway("claude"), grok])

    claude, failed = results
    assert claude.ok
    assert failed == GatewayHealth("grok", "stub-model", failed.latency_sec, "403 Forbidden")
    assert not failed.ok


async def test_ping_is_unstreamed():
    gateway = StubGateway("openai")
    await run_health_checks([gateway])

    (call,) = gateway.calls
    assert call.streamed is False
    assert call.prompt == hc.PING_PROMPT


async def test_shared_gateway_pinged_once():
    """The same gateway used for rounds and synthesis is only pinged once."""
    gateway = StubGateway("openai")

    results = await run_health_checks([gateway, gateway])

    assert len(results) == 1
    assert len(gateway.calls) == 1


async def test_empty_gateways():
    assert await run_health_checks([]) == []


async def test_session_timeout_bounds_the_ping():
    """A gateway that hangs past the session timeout is marked as failed."""
    gateway = StubGateway("slow", delays={hc.PING_PROMPT: 9999})

    results = await run_health_checks([gateway], timeout_sec=0.05)

    (health,) = results
    assert not health.ok
    assert "timed out after 0.05s" in health.error


async def test_ping_timeout_capped(monkeypatch):
    monkeypatch.setattr(hc, "MAX_PING_SEC", 0.05)
    gateway = StubGateway("slow", delays={hc.PING_PROMPT: 9999})

    (health,) = await run_health_checks([gateway], timeout_sec=60.0)

    assert "timed out after 0.05s" in health.error


async def test_failure_logged(caplog):
    gateway = StubGateway("claude")
    gateway.complete = AsyncMock(side_effect=ProviderError("claude", "401 Unauthorized"))

    with caplog.at_level("WARNING", logger="roundtable.healthcheck"):
        await run_health_checks([gateway])

    assert "Health check failed for claude" in caplog.text
