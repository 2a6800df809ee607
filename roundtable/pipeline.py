"""Phase descriptors and the two concurrency modes phases run under."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
Acc = TypeVar("Acc")
R = TypeVar("R")


class ConcurrencyMode(str, Enum):
    SEQUENTIAL = "sequential"   # fold: each step sees the accumulator of the previous one
    FAN_OUT = "fan_out"         # every step issued at once, joined when all finish


@dataclass(frozen=True)
class Phase:
    name: str
    stage: str
    mode: ConcurrencyMode
    fatal: bool
    step: Callable[[Any], Awaitable[None]]


async def fold_sequential(
    items: Iterable[T],
    step: Callable[[Acc, T], Awaitable[Acc]],
    initial: Acc,
) -> Acc:
    """Run ``step`` over ``items`` strictly one after another."""
    acc = initial
    for item in items:
        acc = await step(acc, item)
    return acc


async def fan_out(items: Iterable[T], step: Callable[[T], Awaitable[R]]) -> list[R]:
    """Issue ``step`` for every item before awaiting any, then join all.

    Results keep the order of ``items``. Steps are expected to contain their
    own failures; an exception escaping a step cancels the others.
    """
    tasks = [asyncio.ensure_future(step(item)) for item in items]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def run_phase(phase: Phase, session: Any) -> None:
    """Run one phase and log its mode and duration."""
    logger.info("Phase %s [%s] started (%s)", phase.name, phase.stage, phase.mode.value)
    start = time.monotonic()
    try:
        await phase.step(session)
    finally:
        logger.info("Phase %s finished in %.2fs", phase.name, time.monotonic() - start)
