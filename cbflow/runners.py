"""Running a callback-style function over many items

`parallel` and `sequential` take a callback-style `each`, called as
`each(item, done)`, where `done(error)` must be called exactly once; and a
final `callback(error)`, which is also called exactly once.

Neither supports cancellation: once an error is reported, we stop starting new
items, but items which are already running keep running, and whatever they
report is ignored.

"""
from __future__ import annotations
from cbflow.scheduler import Scheduler
import typing as t

import logging
logger = logging.getLogger(__name__)

__all__ = [
    "parallel",
    "sequential",
]

T = t.TypeVar('T')
Done = t.Callable[..., None]

def parallel(scheduler: Scheduler, items: t.Sequence[T],
             each: t.Callable[[T, Done], None],
             callback: t.Callable[..., None],
             *, concurrency: t.Optional[int]=None,
) -> None:
    """Call `each` on all `items`, with at most `concurrency` running at once.

    With no `concurrency`, everything is started immediately. Otherwise, the
    first `concurrency` items are started immediately, and each time one
    finishes successfully, the next item is started on the next turn of
    `scheduler`.

    The first error reported is passed to `callback`; no more items are started
    after that.

    """
    length = len(items)
    if concurrency is None:
        concurrency = length
    elif concurrency < 1:
        raise ValueError("concurrency must be at least 1", concurrency)
    if not length:
        return callback(None)
    pending = length
    pos = 0
    failed = False

    def next_item() -> None:
        nonlocal pos
        if failed or pos >= length:
            return
        item = items[pos]
        pos += 1
        each(item, done)

    def done(error: t.Any=None, *_: t.Any) -> None:
        nonlocal pending, failed
        if failed:
            logger.debug("parallel: discarding result after failure: %s", error)
            return
        if error is not None:
            failed = True
            callback(error)
            return
        pending -= 1
        if not pending:
            callback(None)
            return
        scheduler.soon(next_item)

    for _ in range(min(concurrency, length)):
        next_item()

def sequential(scheduler: Scheduler, items: t.Sequence[T],
               each: t.Callable[[T, Done], None],
               callback: t.Callable[..., None],
) -> None:
    """Call `each` on `items` one at a time, in order, stopping at the first error.

    Each item after the first is started on a fresh turn of `scheduler`, so a
    long list of synchronously-completing items doesn't grow the stack.

    """
    length = len(items)
    if not length:
        return callback(None)
    pos = 0

    def next_item() -> None:
        nonlocal pos
        item = items[pos]
        pos += 1
        each(item, done)

    def done(error: t.Any=None, *_: t.Any) -> None:
        if error is not None:
            logger.debug("sequential: item %d of %d failed, bailing out", pos, length)
            return callback(error)
        if pos >= length:
            return callback(None)
        scheduler.soon(next_item)

    next_item()
