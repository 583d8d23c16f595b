"""Tests for PtyChannel using plain pipes in place of a PTY master."""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import suppress
from unittest.mock import MagicMock

import pytest

from ptyfeed.channel import PtyChannel


@pytest.fixture()
def pipe() -> Iterator[tuple[int, int]]:
    r, w = os.pipe()
    yield r, w
    for fd in (r, w):
        with suppress(OSError):
            os.close(fd)


def test_send_writes_all_bytes(pipe: tuple[int, int]) -> None:
    r, w = pipe
    channel = PtyChannel(w)
    channel.send(b"echo hi\n")
    assert os.read(r, 100) == b"echo hi\n"


def test_not_live_after_process_exit(pipe: tuple[int, int]) -> None:
    _, w = pipe
    process = MagicMock()
    process.returncode = None
    channel = PtyChannel(w, process=process)
    assert channel.is_live()
    process.returncode = 0
    assert not channel.is_live()


def test_send_on_closed_channel_is_noop(pipe: tuple[int, int]) -> None:
    r, w = pipe
    channel = PtyChannel(w)
    channel.close()
    channel.send(b"dropped")
    os.set_blocking(r, False)
    with pytest.raises(BlockingIOError):
        os.read(r, 100)


def test_write_error_closes_channel(pipe: tuple[int, int]) -> None:
    r, w = pipe
    os.close(r)
    channel = PtyChannel(w)
    channel.send(b"nobody reads this")
    assert not channel.is_live()


def test_poll_reports_and_forwards_pending_output(pipe: tuple[int, int]) -> None:
    r, w = pipe
    received: list[bytes] = []
    channel = PtyChannel(r, on_output=received.append)
    assert channel.poll_available_output(0) is False
    os.write(w, b"$ ")
    assert channel.poll_available_output(0) is True
    assert received == [b"$ "]


def test_poll_on_eof_reports_nothing(pipe: tuple[int, int]) -> None:
    r, w = pipe
    os.close(w)
    received: list[bytes] = []
    channel = PtyChannel(r, on_output=received.append)
    assert channel.poll_available_output(0) is False
    assert received == []


def test_poll_on_closed_channel() -> None:
    channel = PtyChannel(-1)
    channel.close()
    assert channel.poll_available_output(0) is False


def test_read_returns_pending_output(pipe: tuple[int, int]) -> None:
    r, w = pipe
    os.write(w, b"prompt> ")
    assert PtyChannel(r).read() == b"prompt> "


def test_read_after_error_or_close_is_empty() -> None:
    channel = PtyChannel(-1)
    assert channel.read() == b""
    channel.close()
    assert channel.read() == b""
