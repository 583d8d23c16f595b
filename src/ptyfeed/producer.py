"""Suspendable producers: pull-based sources of strings for the send queue.

A producer is driven one step at a time with ``next(resume)``. Each step
either yields a string (``Yielded``) or reports that the sequence is over
(``ENDED``). The resume value tells the producer what happened since its
previous yield: ``ACK`` for normal progress, ``TIMEOUT`` when the send
queue's watchdog gave up waiting for output.

Dependencies: (none, leaf module)
Wired in: send_queue.py → SendQueue.append(), session.py → PtySession.feed()
"""

from __future__ import annotations

import enum
from collections.abc import Generator, Iterable, Iterator
from dataclasses import dataclass
from typing import Final, Protocol, runtime_checkable


class Resume(enum.Enum):
    """Value fed back into a suspended producer."""

    ACK = "ack"
    TIMEOUT = "timeout"

    def __repr__(self) -> str:
        return self.name


ACK: Final = Resume.ACK
TIMEOUT: Final = Resume.TIMEOUT


@dataclass(frozen=True, slots=True)
class Yielded:
    """One step's output. An empty value is skipped by the queue."""

    value: str | bytes


class Ended:
    """Marker returned once a producer has nothing more to send."""

    _instance: Ended | None = None

    def __new__(cls) -> Ended:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ENDED"


ENDED: Final = Ended()

Step = Yielded | Ended

_MISSING: Final = object()


@runtime_checkable
class Producer(Protocol):
    """Anything the send queue can drive.

    The first call starts the producer and its resume value carries no
    information. After returning ``ENDED`` a producer keeps returning it.
    """

    def next(self, resume: object = ACK) -> Step: ...


def _check_value(value: object) -> str | bytes:
    if not isinstance(value, str | bytes):
        msg = f"Producers must yield str or bytes, got {type(value).__name__}"
        raise TypeError(msg)
    return value


class Single:
    """Yield one value, then end."""

    __slots__ = ("_value", "_done")

    def __init__(self, value: str | bytes) -> None:
        self._value = _check_value(value)
        self._done = False

    def next(self, resume: object = ACK) -> Step:
        if self._done:
            return ENDED
        self._done = True
        return Yielded(self._value)

    def __repr__(self) -> str:
        return f"Single({self._value!r})"


class Sequence:
    """Yield every item of an iterable in order, ignoring resume values."""

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[str | bytes]) -> None:
        self._items: Iterator[str | bytes] | None = iter(items)

    def next(self, resume: object = ACK) -> Step:
        if self._items is None:
            return ENDED
        item = next(self._items, _MISSING)
        if item is _MISSING:
            self._items = None
            return ENDED
        return Yielded(_check_value(item))


class GeneratorProducer:
    """Adapt a native generator to the ``Producer`` protocol.

    The generator receives each resume value through ``send()``, so retry
    logic reads naturally::

        def typed_command(cmd):
            while (yield cmd) is TIMEOUT:
                pass
    """

    __slots__ = ("_gen", "_started")

    def __init__(self, gen: Generator[str | bytes, object, object]) -> None:
        if not isinstance(gen, Generator):
            msg = f"Expected a generator, got {type(gen).__name__}"
            raise TypeError(msg)
        self._gen: Generator[str | bytes, object, object] | None = gen
        self._started = False

    def next(self, resume: object = ACK) -> Step:
        if self._gen is None:
            return ENDED
        try:
            value = self._gen.send(resume if self._started else None)
        except StopIteration:
            self._gen = None
            return ENDED
        self._started = True
        return Yielded(_check_value(value))


class Chain:
    """Drain ``first`` completely, then ``second``.

    The chain is a two-state variant: delegating to ``first`` until it ends,
    then to ``second``. Chains nested on either side are flattened lazily so
    each step touches a single leaf producer, however many times a busy
    queue was appended to.
    """

    __slots__ = ("_first", "_second", "_on_second")

    def __init__(self, first: Producer, second: Producer) -> None:
        self._first: Producer | None = first
        self._second = second
        self._on_second = False

    def next(self, resume: object = ACK) -> Step:
        while True:
            self._flatten()
            if self._on_second:
                return self._second.next(resume)
            assert self._first is not None
            step = self._first.next(resume)
            if step is not ENDED:
                return step
            # Start the second producer in the same step.
            self._first = None
            self._on_second = True

    def skip_current(self) -> bool:
        """Abandon the producer being drained and report whether one follows it."""
        self._flatten()
        if self._on_second:
            return False
        self._first = None
        self._on_second = True
        return True

    def _flatten(self) -> None:
        while True:
            if self._on_second:
                inner = self._second
                if not isinstance(inner, Chain):
                    return
                self._first, self._second = inner._first, inner._second
                self._on_second = inner._on_second
            elif isinstance(self._first, Chain):
                inner = self._first
                if inner._on_second:
                    self._first = inner._second
                else:
                    assert inner._first is not None
                    self._first = inner._first
                    self._second = Chain(inner._second, self._second)
            else:
                return


def single(value: str | bytes) -> Single:
    """Return a producer yielding exactly ``value``."""
    return Single(value)


def chain(first: Producer, second: Producer) -> Chain:
    """Return a producer yielding everything ``first`` yields, then ``second``."""
    return Chain(first, second)


def from_iterable(items: Iterable[str | bytes]) -> Sequence:
    return Sequence(items)


def from_generator(gen: Generator[str | bytes, object, object]) -> GeneratorProducer:
    return GeneratorProducer(gen)


def as_producer(source: object) -> Producer:
    """Coerce a string, generator, iterable or producer into a ``Producer``."""
    if isinstance(source, str | bytes):
        return Single(source)
    if isinstance(source, Producer):
        return source
    if isinstance(source, Generator):
        return GeneratorProducer(source)
    if isinstance(source, Iterable):
        return Sequence(source)
    msg = f"Cannot send {type(source).__name__}"
    raise TypeError(msg)
