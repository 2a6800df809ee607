"""Tests for roundtable/pipeline.py concurrency helpers."""

import asyncio
import time

import pytest

from roundtable.pipeline import ConcurrencyMode, Phase, fan_out, fold_sequential, run_phase


async def test_fold_sequential_threads_accumulator():
    seen: list[tuple] = []

    async def step(acc: tuple, item: str) -> tuple:
        seen.append(acc)
        await asyncio.sleep(0)
        return acc + (item,)

    result = await fold_sequential(["a", "b", "c"], step, ())

    assert result == ("a", "b", "c")
    assert seen == [(), ("a",), ("a", "b")]


async def test_fold_sequential_empty_returns_initial():
    async def step(acc, item):
        raise AssertionError("not called")

    assert await fold_sequential([], step, 42) == 42


async def test_fan_out_issues_all_before_awaiting():
    started: list[int] = []
    gate = asyncio.Event()

    async def step(i: int) -> int:
        started.append(i)
        if len(started) == 3:
            gate.set()
        await gate.wait()
        return i * 10

    assert await asyncio.wait_for(fan_out([1, 2, 3], step), timeout=1.0) == [10, 20, 30]


async def test_fan_out_keeps_input_order():
    async def step(delay: float) -> float:
        await asyncio.sleep(delay)
        return delay

    assert await fan_out([0.03, 0.01, 0.02], step) == [0.03, 0.01, 0.02]


async def test_fan_out_time_is_bounded_by_slowest():
    async def step(delay: float) -> None:
        await asyncio.sleep(delay)

    start = time.monotonic()
    await fan_out([0.1, 0.1, 0.1, 0.1], step)
    assert time.monotonic() - start < 0.3


async def test_fan_out_escaping_error_cancels_siblings():
    cancelled: list[int] = []

    async def step(i: int) -> int:
        if i == 0:
            raise RuntimeError("boom")
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            cancelled.append(i)
            raise
        return i

    with pytest.raises(RuntimeError, match="boom"):
        await fan_out([0, 1, 2], step)
    assert sorted(cancelled) == [1, 2]


async def test_run_phase_invokes_step():
    calls: list[object] = []

    async def step(session: object) -> None:
        calls.append(session)

    phase = Phase("demo", "demo_start", ConcurrencyMode.SEQUENTIAL, False, step)
    session = object()
    await run_phase(phase, session)
    assert calls == [session]


async def test_run_phase_propagates_errors():
    async def step(session):
        raise ValueError("bad phase")

    phase = Phase("demo", "demo_start", ConcurrencyMode.FAN_OUT, True, step)
    with pytest.raises(ValueError, match="bad phase"):
        await run_phase(phase, None)
