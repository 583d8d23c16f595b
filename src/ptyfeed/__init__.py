"""Paced input for subprocesses on a pseudo-terminal.

Public API: SendQueue, create, QueueState, PacingConfig, load_config,
    PtySession, PtyChannel, AsyncioTimerService, guarded,
    ACK, TIMEOUT, ENDED, Yielded, Producer, single, chain,
    from_iterable, from_generator
"""

from ptyfeed.channel import Channel, PtyChannel
from ptyfeed.config import PacingConfig, load_config
from ptyfeed.producer import (
    ACK,
    ENDED,
    TIMEOUT,
    Producer,
    Yielded,
    chain,
    from_generator,
    from_iterable,
    single,
)
from ptyfeed.send_queue import QueueState, SendQueue, create
from ptyfeed.session import PtySession
from ptyfeed.timers import AsyncioTimerService, TimerService, guarded

__all__ = [
    "ACK",
    "ENDED",
    "TIMEOUT",
    "AsyncioTimerService",
    "Channel",
    "PacingConfig",
    "Producer",
    "PtyChannel",
    "PtySession",
    "QueueState",
    "SendQueue",
    "TimerService",
    "Yielded",
    "chain",
    "create",
    "from_generator",
    "from_iterable",
    "guarded",
    "load_config",
    "single",
]
