"Retrying a callback-style function which fails"
from __future__ import annotations
from cbflow.scheduler import Scheduler
import functools
import typing as t

import logging
logger = logging.getLogger(__name__)

__all__ = [
    "retry",
]

F = t.TypeVar('F', bound=t.Callable[..., None])

def retry(scheduler: Scheduler, retries: int, fn: F) -> F:
    """Return a version of `fn` which is called again, up to `retries` more times, when it fails.

    Each call to the returned function gets its own budget of `retries`. Retries
    happen on a fresh turn of `scheduler`, with exactly the same arguments.
    Once the budget runs out, the last error is passed to the caller unchanged.

    If `fn` is a bound method, the retries are made on the same object.

    """
    if retries < 0:
        raise ValueError("retries must not be negative", retries)
    @functools.wraps(fn)
    def wrapper(*args: t.Any, **kwargs: t.Any) -> None:
        *fn_args, callback = args
        remaining = retries
        attempt = 0

        def run_attempt() -> None:
            nonlocal attempt
            attempt += 1
            fn(*fn_args, inner, **kwargs)

        def inner(error: t.Any=None, *rest: t.Any) -> None:
            nonlocal remaining
            if error is not None and remaining > 0:
                remaining -= 1
                logger.debug("retry(%s): attempt %d failed with %r, %d retries left",
                             getattr(fn, '__qualname__', fn), attempt, error, remaining)
                scheduler.soon(run_attempt)
                return
            callback(error, *rest)

        run_attempt()
    return t.cast(F, wrapper)
