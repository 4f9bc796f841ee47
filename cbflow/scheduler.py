"""Explicit "run this later" objects

Callback-style code usually leans on an ambient event loop to run a
continuation "on the next tick". We don't have one. Instead, every combinator
which needs to defer work is passed a Scheduler, and defers work by calling
`Scheduler.soon`. A combinator explicitly selects which object is responsible
for running its continuations, simply by being handed that object.

A Scheduler runs continuations in the order they were submitted, and never
runs a continuation on the stack of the call that submitted it. This bounds
stack depth for long chains of callbacks, and lets unrelated work interleave
fairly.

"""
from __future__ import annotations
import abc
import collections
import math
import trio
import typing as t

import logging
logger = logging.getLogger(__name__)

__all__ = [
    "Scheduler",
    "TrioScheduler",
    "DequeScheduler",
]

Thunk = t.Tuple[t.Callable[..., None], t.Tuple[t.Any, ...]]

class Scheduler:
    "Something which accepts continuations and runs them later, in FIFO order."
    @abc.abstractmethod
    def soon(self, fn: t.Callable[..., None], *args: t.Any) -> None:
        "Arrange for `fn(*args)` to be called later; never calls it immediately."
        pass

class TrioScheduler(Scheduler):
    """A Scheduler which runs continuations from a task in a trio nursery

    We don't just call nursery.start_soon for each continuation, because trio
    deliberately doesn't run newly-started tasks in the order they were started.
    Instead, a single task pulls continuations out of an unbounded memory
    channel and runs them one after another.

    If a continuation raises, the runner task raises, and the exception
    propagates out of the nursery like any other trio task failure.

    """
    def __init__(self, send: trio.MemorySendChannel) -> None:
        "To make this, use TrioScheduler.make"
        self._send = send

    @classmethod
    def make(cls, nursery: trio.Nursery) -> TrioScheduler:
        send, receive = trio.open_memory_channel[Thunk](math.inf)
        nursery.start_soon(cls._run, receive)
        return cls(send)

    @staticmethod
    async def _run(receive: trio.MemoryReceiveChannel) -> None:
        async with receive:
            async for fn, args in receive:
                fn(*args)
        logger.debug("TrioScheduler._run: channel closed, exiting")

    def soon(self, fn: t.Callable[..., None], *args: t.Any) -> None:
        self._send.send_nowait((fn, args))

    def close(self) -> None:
        "Stop accepting continuations; the runner exits once the queued ones have run."
        self._send.close()

class DequeScheduler(Scheduler):
    """A Scheduler driven by hand, for synchronous hosts and deterministic tests

    Nothing runs until the owner calls `run_pending`.

    """
    def __init__(self) -> None:
        self.pending: t.Deque[Thunk] = collections.deque()

    def soon(self, fn: t.Callable[..., None], *args: t.Any) -> None:
        self.pending.append((fn, args))

    def run_pending(self) -> int:
        "Run continuations, including ones submitted while running, until none are left."
        count = 0
        while self.pending:
            fn, args = self.pending.popleft()
            fn(*args)
            count += 1
        return count
