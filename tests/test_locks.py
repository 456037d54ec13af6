"""Tests for the keyed lock registry."""

import asyncio

import pytest

from appserver.locks import KeyedLockRegistry


@pytest.mark.asyncio
async def test_same_key_is_exclusive():
    registry = KeyedLockRegistry()
    events = []

    async def worker(name):
        async with registry.hold("entry"):
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert events in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])


@pytest.mark.asyncio
async def test_different_keys_do_not_contend():
    registry = KeyedLockRegistry()
    inside = asyncio.Event()
    release = asyncio.Event()

    async def holder():
        async with registry.hold("first"):
            inside.set()
            await release.wait()

    task = asyncio.create_task(holder())
    await inside.wait()

    async with registry.hold("second"):
        assert registry.active_keys() == 2

    release.set()
    await task


@pytest.mark.asyncio
async def test_locks_are_dropped_when_released():
    registry = KeyedLockRegistry()

    async with registry.hold("entry"):
        assert registry.active_keys() == 1

    assert registry.active_keys() == 0


@pytest.mark.asyncio
async def test_lock_released_on_error():
    registry = KeyedLockRegistry()

    with pytest.raises(RuntimeError):
        async with registry.hold("entry"):
            raise RuntimeError("boom")

    assert registry.active_keys() == 0
    async with registry.hold("entry"):
        pass
