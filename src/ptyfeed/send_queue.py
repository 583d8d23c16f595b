"""Paced send queue for a subprocess channel.

The queue holds at most one active producer and sends one string at a time.
After each send it arms a watchdog; output from the subprocess (reported via
``schedule_dispatch``) debounces into the next dispatch, and if no output
arrives before the watchdog fires, the producer is resumed with ``TIMEOUT``
so it can decide to retry, skip or stop.

State machine::

    IDLE --append--> AWAITING_ACK --schedule_dispatch--> DEBOUNCE_PENDING
    DEBOUNCE_PENDING --debounce fires--> AWAITING_ACK | IDLE
    AWAITING_ACK --watchdog fires--> AWAITING_ACK | IDLE
    any --cancel--> CANCELLED

Dependencies: producer, timers, config
Wired in: session.py → PtySession
"""

from __future__ import annotations

import enum
import functools
import logging
import weakref
from typing import Protocol

from ptyfeed.channel import Channel
from ptyfeed.config import PacingConfig
from ptyfeed.producer import ACK, ENDED, TIMEOUT, Chain, Producer, Single, Yielded
from ptyfeed.timers import LivenessContext, TimerHandle, TimerService, guarded

_log = logging.getLogger(__name__)


class QueueState(enum.Enum):
    IDLE = "idle"
    AWAITING_ACK = "awaiting_ack"
    DEBOUNCE_PENDING = "debounce_pending"
    CANCELLED = "cancelled"


class SendSink(Protocol):
    """Diagnostics receiver; has no effect on pacing."""

    def sent(self, data: bytes) -> None: ...

    def timed_out(self) -> None: ...


class SendQueue:
    """Flow-controlled delivery of producer output to one channel."""

    def __init__(
        self,
        channel: Channel | None,
        *,
        timers: TimerService,
        context: LivenessContext | None = None,
        config: PacingConfig | None = None,
        sink: SendSink | None = None,
    ) -> None:
        self._channel_ref: weakref.ref[Channel] | None = (
            weakref.ref(channel) if channel is not None else None
        )
        self._timers = timers
        self._context = context
        self._config = config or PacingConfig()
        self._sink = sink
        self._producer: Producer | None = None
        self._watchdog: TimerHandle | None = None
        self._watchdog_generation = 0
        self._debounce: TimerHandle | None = None
        self._cancelled = False

    @property
    def state(self) -> QueueState:
        if self._cancelled:
            return QueueState.CANCELLED
        if self._producer is None:
            return QueueState.IDLE
        if self._debounce is not None:
            return QueueState.DEBOUNCE_PENDING
        return QueueState.AWAITING_ACK

    def is_empty(self) -> bool:
        return self._producer is None

    def append(self, producer: Producer | None) -> None:
        """Queue *producer* behind whatever is in flight.

        On an idle queue the first string goes out before this returns.
        """
        if producer is None:
            return
        if not isinstance(producer, Producer):
            msg = f"Expected a Producer, got {type(producer).__name__}"
            raise TypeError(msg)
        if self._cancelled:
            _log.debug("Ignoring append to a cancelled send queue")
            return
        if self._producer is None:
            self._producer = producer
            self.dispatch()
        else:
            self._producer = Chain(self._producer, producer)

    def append_string(self, text: str | bytes) -> None:
        if not isinstance(text, str | bytes):
            msg = f"Expected str or bytes, got {type(text).__name__}"
            raise TypeError(msg)
        if not text:
            return
        self.append(Single(text))

    def dispatch(self, resume: object = ACK) -> None:
        """Resume the active producer and send its next non-empty string."""
        self._cancel_watchdog()
        self._cancel_debounce()
        if self._producer is None:
            return
        limit = self._config.max_empty_yields
        empty = 0
        step = self._producer.next(resume)
        while isinstance(step, Yielded) and not step.value:
            empty += 1
            if limit is not None and empty >= limit:
                _log.error(
                    "Producer yielded %d empty strings in a row; discarding it",
                    empty,
                )
                if not (isinstance(self._producer, Chain) and self._producer.skip_current()):
                    self._producer = None
                    return
                empty = 0
            step = self._producer.next(ACK)
        if step is ENDED:
            self._producer = None
            _log.debug("Send sequence finished; queue idle")
            return
        assert isinstance(step, Yielded)
        self._arm_watchdog()
        self._send(step.value)

    def schedule_dispatch(self) -> None:
        """Report subprocess output; dispatch once it has gone quiet."""
        self._cancel_watchdog()
        self._cancel_debounce()
        if self._producer is None or self._cancelled:
            return
        self._debounce = self._timers.schedule(
            self._config.debounce_delay,
            guarded(self._context, self._on_debounce),
        )

    def cancel(self) -> None:
        """Tear down: forget the channel, disarm timers, abandon the producer."""
        self._cancelled = True
        self._channel_ref = None
        self._cancel_watchdog()
        self._cancel_debounce()
        self._producer = None

    def _live_channel(self) -> Channel | None:
        channel = self._channel_ref() if self._channel_ref is not None else None
        if channel is None or not channel.is_live():
            return None
        return channel

    def _send(self, value: str | bytes) -> None:
        data = value.encode(self._config.encoding) if isinstance(value, str) else value
        channel = self._live_channel()
        if channel is None:
            _log.debug("Channel not live; dropped %r", data)
            return
        _log.debug("Sending %r", data)
        channel.send(data)
        self._notify_sink("sent", data)

    def _arm_watchdog(self) -> None:
        self._watchdog_generation += 1
        callback = functools.partial(self._on_watchdog, self._watchdog_generation)
        self._watchdog = self._timers.schedule(
            self._config.watchdog_delay,
            guarded(self._context, callback),
        )

    def _cancel_watchdog(self) -> None:
        if self._watchdog is not None:
            self._timers.cancel(self._watchdog)
            self._watchdog = None

    def _cancel_debounce(self) -> None:
        if self._debounce is not None:
            self._timers.cancel(self._debounce)
            self._debounce = None

    def _on_debounce(self) -> None:
        if self._cancelled:
            return
        self._debounce = None
        self.dispatch()

    def _on_watchdog(self, generation: int) -> None:
        if self._cancelled or self._watchdog is None:
            return
        if generation != self._watchdog_generation:
            return
        channel = self._live_channel()
        if channel is not None and channel.poll_available_output(self._config.poll_max_wait):
            _log.debug("Watchdog found unprocessed output; leaving it to the arrival path")
            if self._watchdog is not None and generation == self._watchdog_generation:
                # Nothing reported the output; keep guarding the same send.
                self._arm_watchdog()
            return
        self._watchdog = None
        _log.warning(
            "No output within %.2fs of the last send; resuming with timeout",
            self._config.watchdog_delay,
        )
        self._notify_sink("timed_out")
        self.dispatch(TIMEOUT)

    def _notify_sink(self, event: str, *args: bytes) -> None:
        if self._sink is None:
            return
        try:
            getattr(self._sink, event)(*args)
        except Exception:
            _log.warning("Send sink failed to record %s", event, exc_info=True)


def create(
    channel: Channel | None,
    *,
    timers: TimerService,
    context: LivenessContext | None = None,
    config: PacingConfig | None = None,
    sink: SendSink | None = None,
) -> SendQueue:
    """Return an idle queue bound to *channel*."""
    return SendQueue(channel, timers=timers, context=context, config=config, sink=sink)
