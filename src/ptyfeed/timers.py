"""One-shot timer service and the owning-context liveness guard.

The send queue never reaches for a global scheduler: a ``TimerService`` is
injected at construction so tests can drive a manual clock instead of the
event loop.
"""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class TimerService(Protocol):
    """Schedule and cancel one-shot callbacks.

    A cancelled callback must never run, even if its deadline has passed.
    """

    def schedule(self, delay: float, callback: Callable[[], object]) -> TimerHandle: ...

    def cancel(self, handle: TimerHandle | None) -> None: ...


class LivenessContext(Protocol):
    """The object that owns a queue (a session, a buffer)."""

    @property
    def alive(self) -> bool: ...


class AsyncioTimerService:
    """``TimerService`` on top of ``loop.call_later``."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, delay: float, callback: Callable[[], object]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)

    def cancel(self, handle: TimerHandle | None) -> None:
        if handle is not None:
            handle.cancel()


def guarded(
    context: LivenessContext | None,
    callback: Callable[[], object],
) -> Callable[[], None]:
    """Wrap *callback* so it only runs while *context* exists and is alive.

    The context is held weakly; a timer must not keep a torn-down session
    reachable.
    """
    if context is None:

        def _run() -> None:
            callback()

        return _run

    ref = weakref.ref(context)

    def _run_if_alive() -> None:
        owner = ref()
        if owner is None or not owner.alive:
            return
        callback()

    return _run_if_alive
