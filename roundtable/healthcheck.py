"""Gateway health checks: ping the session's gateways before any persona speaks."""

import asyncio
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass

from roundtable.models import SamplingParams
from roundtable.providers.base import ModelGateway, ProviderError

logger = logging.getLogger(__name__)

PING_PROMPT = "Reply with the word OK only."
MAX_PING_SEC = 15.0
_PING_PARAMS = SamplingParams(temperature=0.0, max_tokens=5)


@dataclass(frozen=True)
class GatewayHealth:
    name: str
    model: str
    latency_sec: float
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def ping(gateway: ModelGateway, timeout_sec: float) -> GatewayHealth:
    """One unstreamed completion through the gateway's own deadline handling."""
    start = time.monotonic()
    try:
        await gateway.complete(PING_PROMPT, _PING_PARAMS, timeout_sec)
    except ProviderError as exc:
        logger.warning("Health check failed for %s: %s", gateway.name(), exc)
        return GatewayHealth(gateway.name(), gateway.model_string(), time.monotonic() - start, exc.message)
    latency = time.monotonic() - start
    logger.debug("Health check ok for %s in %.2fs", gateway.name(), latency)
    return GatewayHealth(gateway.name(), gateway.model_string(), latency)


async def run_health_checks(
    gateways: Iterable[ModelGateway],
    timeout_sec: float = MAX_PING_SEC,
) -> list[GatewayHealth]:
    """Ping each distinct gateway in parallel.

    The ping deadline is ``timeout_sec`` (normally the session's per-call
    timeout) capped at MAX_PING_SEC. A gateway passed twice, e.g. as both the
    round and the synthesis gateway, is pinged once.

    Returns:
        One GatewayHealth per gateway, sorted by name.
    """
    distinct = list(dict.fromkeys(gateways))
    timeout = min(timeout_sec, MAX_PING_SEC)
    results = await asyncio.gather(*(ping(g, timeout) for g in distinct))
    return sorted(results, key=lambda health: health.name)
