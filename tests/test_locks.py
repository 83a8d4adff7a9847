"""Keyed lock tests"""
import asyncio

import pytest

from utils.locks import KeyedLock


@pytest.mark.asyncio
async def test_same_key_runs_in_order():
    locks = KeyedLock()
    events = []

    async def work(name, delay):
        async with locks.hold("1001"):
            events.append(f"{name} start")
            await asyncio.sleep(delay)
            events.append(f"{name} end")

    await asyncio.gather(work("a", 0.02), work("b", 0))

    assert events == ["a start", "a end", "b start", "b end"]
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_different_keys_run_concurrently():
    locks = KeyedLock()
    inside = asyncio.Event()

    async def first():
        async with locks.hold("1001"):
            await asyncio.wait_for(inside.wait(), 1)

    async def second():
        async with locks.hold("1002"):
            inside.set()

    await asyncio.gather(first(), second())
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_lock_released_on_error():
    locks = KeyedLock()

    with pytest.raises(ValueError):
        async with locks.hold("1001"):
            raise ValueError("boom")

    assert len(locks) == 0
