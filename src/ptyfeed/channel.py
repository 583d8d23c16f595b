"""Channel to a subprocess: a writable PTY master with a last-chance poll.

Dependencies: (none, leaf module)
Wired in: session.py → PtySession
"""

from __future__ import annotations

import asyncio
import logging
import os
import select
from collections.abc import Callable
from typing import Protocol

_log = logging.getLogger(__name__)

_READ_SIZE: int = 4096


class Channel(Protocol):
    """What the send queue needs from the subprocess handle."""

    def is_live(self) -> bool: ...

    def send(self, data: bytes) -> None: ...

    def poll_available_output(self, max_wait: float) -> bool: ...


class PtyChannel:
    """``Channel`` writing to a PTY master file descriptor.

    The channel does not own the fd; whoever spawned the process closes it.
    Output picked up by ``poll_available_output`` is handed to *on_output*
    exactly as if the event loop had delivered it.
    """

    def __init__(
        self,
        master_fd: int,
        *,
        process: asyncio.subprocess.Process | None = None,
        on_output: Callable[[bytes], None] | None = None,
    ) -> None:
        self._master_fd: int | None = master_fd
        self._process = process
        self._on_output = on_output

    @property
    def master_fd(self) -> int | None:
        return self._master_fd

    def is_live(self) -> bool:
        if self._master_fd is None:
            return False
        return self._process is None or self._process.returncode is None

    def send(self, data: bytes) -> None:
        if not self.is_live():
            return
        assert self._master_fd is not None
        view = memoryview(data)
        while view:
            try:
                written = os.write(self._master_fd, view)
            except OSError as exc:
                _log.debug("PTY write failed with %s; closing channel", type(exc).__name__)
                self.close()
                return
            view = view[written:]

    def poll_available_output(self, max_wait: float) -> bool:
        if self._master_fd is None:
            return False
        try:
            ready, _, _ = select.select([self._master_fd], [], [], max(0.0, max_wait))
        except (OSError, ValueError):
            return False
        if not ready:
            return False
        data = self.read()
        if not data:
            return False
        if self._on_output is not None:
            self._on_output(data)
        return True

    def read(self, size: int = _READ_SIZE) -> bytes:
        """Read whatever output is ready; b"" once the PTY is closed or gone."""
        if self._master_fd is None:
            return b""
        try:
            return os.read(self._master_fd, size)
        except OSError:
            return b""

    def close(self) -> None:
        """Stop writing. The fd itself is left for its owner to close."""
        self._master_fd = None
