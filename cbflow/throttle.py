"""Capping the number of concurrent calls to a callback-style function

Calls beyond the cap aren't rejected; they're queued, and started in the order
they arrived as earlier calls finish.

"""
from __future__ import annotations
from cbflow.scheduler import Scheduler
from dataclasses import dataclass
import collections
import functools
import typing as t

import logging
logger = logging.getLogger(__name__)

__all__ = [
    "throttled",
    "throttle",
]

F = t.TypeVar('F', bound=t.Callable[..., None])

@dataclass
class Deferred:
    "A call which arrived while we were at capacity; `args` still ends with its callback."
    args: t.Tuple[t.Any, ...]
    kwargs: t.Dict[str, t.Any]

def throttled(scheduler: Scheduler, fn: F, max: int) -> F:
    """Return a version of `fn` which has at most `max` calls running at a time.

    When a call finishes, its result is passed to its caller on the next turn of
    `scheduler`, and then queued calls are started, oldest first, until we're
    back at capacity.

    The finished call releases its slot only after its callback returns, so a
    callback which immediately calls us again is counted as if the finished
    call were still running.

    """
    if max < 1:
        raise ValueError("max must be at least 1", max)
    name = getattr(fn, '__qualname__', repr(fn))
    remaining = 0
    pending: t.Deque[Deferred] = collections.deque()

    @functools.wraps(fn)
    def wrapper(*args: t.Any, **kwargs: t.Any) -> None:
        nonlocal remaining
        if remaining >= max:
            logger.debug("throttled(%s): at capacity %d, queueing behind %d others",
                         name, max, len(pending))
            pending.append(Deferred(args, kwargs))
            return
        *fn_args, callback = args

        def finish(result: t.Tuple[t.Any, ...]) -> None:
            nonlocal remaining
            try:
                callback(*result)
            finally:
                remaining -= 1
                while remaining < max and pending:
                    deferred = pending.popleft()
                    wrapper(*deferred.args, **deferred.kwargs)

        def done(*result: t.Any) -> None:
            scheduler.soon(finish, result)

        remaining += 1
        fn(*fn_args, done, **kwargs)
    return t.cast(F, wrapper)

def throttle(scheduler: Scheduler, target: object, name: str, max: int) -> None:
    "Replace the method `name` of `target` with a throttled version."
    setattr(target, name, throttled(scheduler, getattr(target, name), max))
