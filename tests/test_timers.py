"""Tests for the asyncio timer service and the liveness guard."""

from __future__ import annotations

import asyncio
import gc

from fakes import FakeOwner

from ptyfeed.timers import AsyncioTimerService, guarded


async def test_asyncio_timer_fires_after_delay() -> None:
    fired = asyncio.Event()
    timers = AsyncioTimerService()
    timers.schedule(0.01, fired.set)
    await asyncio.wait_for(fired.wait(), timeout=1.0)


async def test_cancelled_timer_never_fires() -> None:
    calls: list[str] = []
    timers = AsyncioTimerService()
    handle = timers.schedule(0.01, lambda: calls.append("fired"))
    timers.cancel(handle)
    timers.cancel(handle)
    timers.cancel(None)
    await asyncio.sleep(0.05)
    assert calls == []
    assert handle.cancelled()


def test_guarded_runs_while_owner_alive() -> None:
    owner = FakeOwner()
    calls: list[int] = []
    run = guarded(owner, lambda: calls.append(1))
    run()
    owner.alive = False
    run()
    assert calls == [1]


def test_guarded_skips_once_owner_is_gone() -> None:
    owner = FakeOwner()
    calls: list[int] = []
    run = guarded(owner, lambda: calls.append(1))
    del owner
    gc.collect()
    run()
    assert calls == []


def test_guarded_without_owner_always_runs() -> None:
    calls: list[int] = []
    guarded(None, lambda: calls.append(1))()
    assert calls == [1]
