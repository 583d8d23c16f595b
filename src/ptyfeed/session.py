"""A subprocess on a PTY with paced input: the owning context of a send queue.

``PtySession`` watches the PTY master for output, keeps a bounded copy of it,
and reports every arrival to its ``SendQueue`` so the next string goes out
once the subprocess has gone quiet. Closing the session cancels the queue;
timer callbacks check ``alive`` before touching it.

Dependencies: channel, config, producer, send_queue, timers, transcript
Wired in: cli.py → _run()
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import pty
from collections.abc import Callable, Iterable
from pathlib import Path
from types import TracebackType

from ptyfeed.channel import PtyChannel
from ptyfeed.config import PacingConfig
from ptyfeed.producer import Sequence, as_producer
from ptyfeed.send_queue import SendQueue
from ptyfeed.timers import AsyncioTimerService, TimerService
from ptyfeed.transcript import Transcript

_log = logging.getLogger(__name__)

_CLOSE_GRACE_SECONDS: float = 2.0

OutputListener = Callable[[bytes], None]


class PtySession:
    """Own a PTY subprocess, its channel and its send queue."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        master_fd: int,
        *,
        config: PacingConfig | None = None,
        transcript: Transcript | None = None,
        timers: TimerService | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._process = process
        self._master_fd = master_fd
        self.config = config or PacingConfig()
        self._transcript = transcript
        self._output = bytearray()
        self._listeners: list[OutputListener] = []
        self._closed = False
        self._reading = False
        self.sent_count = 0
        self.timeout_count = 0
        self.channel = PtyChannel(
            master_fd,
            process=process,
            on_output=self._handle_output,
        )
        self.queue = SendQueue(
            self.channel,
            timers=timers or AsyncioTimerService(self._loop),
            context=self,
            config=self.config,
            sink=self,
        )
        self._loop.add_reader(master_fd, self._on_readable)
        self._reading = True

    @classmethod
    async def start(
        cls,
        command: str,
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        config: PacingConfig | None = None,
        transcript: Path | None = None,
    ) -> PtySession:
        """Run *command* through the shell with a fresh PTY as its terminal.

        The child leads its own session so the PTY becomes its controlling
        terminal. ``OSError`` from ``openpty`` or the spawn propagates.
        """
        master_fd, slave_fd = pty.openpty()
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                cwd=cwd,
                env=env,
                start_new_session=True,
            )
        except OSError:
            _log.debug("Could not start %r on a PTY", command, exc_info=True)
            os.close(master_fd)
            raise
        finally:
            # Only the child keeps the terminal side open.
            os.close(slave_fd)
        _log.info("Started %r on a PTY (pid %s)", command, process.pid)
        return cls(
            process,
            master_fd,
            config=config,
            transcript=Transcript(transcript) if transcript is not None else None,
        )

    # -- state ---------------------------------------------------------------

    @property
    def alive(self) -> bool:
        return not self._closed

    @property
    def process(self) -> asyncio.subprocess.Process:
        return self._process

    @property
    def output(self) -> bytes:
        return bytes(self._output)

    @property
    def text(self) -> str:
        return self._output.decode(self.config.encoding, errors="replace")

    def add_listener(self, listener: OutputListener) -> None:
        self._listeners.append(listener)

    # -- input ---------------------------------------------------------------

    def send(self, text: str | bytes) -> None:
        self.queue.append_string(text)

    def send_lines(self, lines: Iterable[str]) -> None:
        """Send each line followed by the configured line ending."""
        ending = self.config.line_ending
        self.queue.append(Sequence(line.rstrip("\r\n") + ending for line in lines))

    def feed(self, source: object) -> None:
        """Queue a producer, generator, iterable of strings, or a single string."""
        self.queue.append(as_producer(source))

    async def wait_idle(self, timeout: float | None = None) -> None:
        """Wait until every queued string has been sent (or abandoned)."""
        async with asyncio.timeout(timeout):
            while not self.queue.is_empty():
                await asyncio.sleep(self.config.debounce_delay or 0.01)

    async def wait(self, timeout: float | None = None) -> int:
        """Wait for the subprocess to exit and return its exit code."""
        return await asyncio.wait_for(self._process.wait(), timeout=timeout)

    # -- output --------------------------------------------------------------

    def _on_readable(self) -> None:
        data = self.channel.read()
        if not data:
            _log.info("PTY output closed; abandoning pending input")
            self._stop_reading()
            self.queue.cancel()
            return
        self._handle_output(data)

    def _handle_output(self, data: bytes) -> None:
        self._output.extend(data)
        overflow = len(self._output) - self.config.max_output_bytes
        if overflow > 0:
            del self._output[:overflow]
        for listener in self._listeners:
            listener(data)
        self.queue.schedule_dispatch()

    def _stop_reading(self) -> None:
        if self._reading:
            self._reading = False
            with contextlib.suppress(ValueError, OSError):
                self._loop.remove_reader(self._master_fd)

    # -- send sink -----------------------------------------------------------

    def sent(self, data: bytes) -> None:
        self.sent_count += 1
        if self._transcript is not None:
            self._transcript.sent(data)

    def timed_out(self) -> None:
        self.timeout_count += 1
        if self._transcript is not None:
            self._transcript.timed_out()

    # -- teardown ------------------------------------------------------------

    def close(self) -> None:
        """Cancel pending input, stop reading and release the PTY. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self.queue.cancel()
        self._stop_reading()
        self.channel.close()
        if self._process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self._process.terminate()
        with contextlib.suppress(OSError):
            os.close(self._master_fd)

    async def aclose(self) -> int | None:
        """Close and reap the subprocess, killing it if it ignores SIGTERM."""
        self.close()
        try:
            return await asyncio.wait_for(self._process.wait(), timeout=_CLOSE_GRACE_SECONDS)
        except TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                self._process.kill()
            return await self._process.wait()

    async def __aenter__(self) -> PtySession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
