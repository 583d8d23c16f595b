"""Shared test fixtures for ptyfeed."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from fakes import FakeChannel, FakeOwner, ManualTimers

from ptyfeed.config import PacingConfig
from ptyfeed.send_queue import SendQueue


@pytest.fixture()
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture()
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture()
def owner() -> FakeOwner:
    return FakeOwner()


@pytest.fixture()
def make_queue(
    channel: FakeChannel,
    timers: ManualTimers,
    owner: FakeOwner,
) -> Callable[..., SendQueue]:
    """Build a queue wired to the fake channel, manual clock and owner."""

    def _make(**kwargs: Any) -> SendQueue:
        kwargs.setdefault("timers", timers)
        kwargs.setdefault("context", owner)
        kwargs.setdefault("config", PacingConfig())
        return SendQueue(channel, **kwargs)

    return _make


@pytest.fixture()
def queue(make_queue: Callable[..., SendQueue]) -> SendQueue:
    return make_queue()
