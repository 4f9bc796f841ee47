"""Moving between callback style and trio coroutines

The combinators in this package all speak callback style. Trio code speaks
direct style. `shift` connects the two: it passes the current trio task's
continuation, as a callback-accepting object, to some function, and suspends
the task until that continuation is resumed. So instead of:

```
def cb(error, data):
  if error is None:
    more_work(data)
lookup(key, cb)
```

a trio task can write:

```
data = await call(lookup, key)
more_work(data)
```

`callback_style` goes the other way, turning a trio coroutine function into a
callback-style function that can be handed to `parallel`, `retry`, `throttled`
and friends.

Our `shift` is single-shot, and only works directly under trio.

"""
from __future__ import annotations
from dataclasses import dataclass
import functools
import outcome
import trio
import typing as t

import logging
logger = logging.getLogger(__name__)

__all__ = [
    "CallbackError",
    "TrioContinuation",
    "shift",
    "call",
    "callback_style",
]

T = t.TypeVar('T')

class CallbackError(Exception):
    "A callback reported an error value which isn't an exception; it's in `error`."
    def __init__(self, error: t.Any) -> None:
        super().__init__(error)
        self.error = error

@dataclass(eq=False)
class TrioContinuation(t.Generic[T]):
    """The rest of a trio task's computation, waiting for a value of type T

    This must be resumed exactly once, with `send`, `throw`, or `resume`.

    """
    task: trio.lowlevel.Task
    on_stack: bool = True
    cancelled: bool = False
    resumed: bool = False
    saved: t.Optional[outcome.Outcome] = None

    def resume(self, value: outcome.Outcome) -> None:
        if self.resumed:
            raise RuntimeError("continuation was already resumed", self.task)
        self.resumed = True
        if self.cancelled:
            # discard the result - nobody is waiting for it any more
            logger.debug("TrioContinuation(%s): resumed after cancellation", self.task)
            return
        if self.on_stack:
            # The function passed to shift resumed us before returning; the task
            # is still running, so it can't be rescheduled. shift will pick this
            # up instead.
            logger.debug("TrioContinuation(%s): immediately resumed with %s", self.task, value)
            self.saved = value
            return
        logger.debug("TrioContinuation(%s): resuming with %s", self.task, value)
        trio.lowlevel.reschedule(self.task, value)

    def send(self, value: T) -> None:
        return self.resume(outcome.Value(value))

    def throw(self, exn: BaseException) -> None:
        return self.resume(outcome.Error(exn))

    def is_cancelled(self) -> bool:
        return self.cancelled

    def __call__(self, value: T) -> None:
        return self.send(value)

async def shift(func: t.Callable[[TrioContinuation[T]], t.Any]) -> T:
    """Call `func` with the current task's continuation, and wait for it to be resumed.

    If this task is cancelled while waiting, the cancellation goes through, and
    whatever the continuation is later resumed with is thrown away.

    """
    cont = TrioContinuation[T](trio.lowlevel.current_task())
    try:
        func(cont)
    except BaseException:
        cont.cancelled = True
        raise
    finally:
        cont.on_stack = False
    if cont.saved is not None:
        return cont.saved.unwrap()
    def abort(raise_cancel: t.Any) -> trio.lowlevel.Abort:
        cont.cancelled = True
        return trio.lowlevel.Abort.SUCCEEDED
    return await trio.lowlevel.wait_task_rescheduled(abort)

def _collapse(results: t.Tuple[t.Any, ...]) -> t.Any:
    if not results:
        return None
    elif len(results) == 1:
        return results[0]
    else:
        return results

async def call(fn: t.Callable[..., None], *args: t.Any, **kwargs: t.Any) -> t.Any:
    """Call the callback-style `fn` and wait for its callback.

    Returns None, the single result, or a tuple of results, depending on how
    many results the callback was passed. Raises the error if there was one.

    """
    def register(cont: TrioContinuation[t.Any]) -> None:
        def callback(error: t.Any=None, *results: t.Any) -> None:
            if error is None:
                cont.send(_collapse(results))
            elif isinstance(error, BaseException):
                cont.throw(error)
            else:
                cont.throw(CallbackError(error))
        fn(*args, callback, **kwargs)
    return await shift(register)

def callback_style(nursery: trio.Nursery,
                   afn: t.Callable[..., t.Awaitable[t.Any]]) -> t.Callable[..., None]:
    """Turn the trio coroutine function `afn` into a callback-style function.

    Each call starts `afn` as a new task in `nursery`; when it finishes, the
    callback gets `(None, return_value)`, or the exception it raised.
    Cancellation and other non-Exception BaseExceptions aren't reported through
    the callback; they propagate into the nursery as usual.

    """
    @functools.wraps(afn)
    def wrapper(*args: t.Any, **kwargs: t.Any) -> None:
        *fn_args, callback = args
        async def run() -> None:
            result = await outcome.acapture(afn, *fn_args, **kwargs)
            if isinstance(result, outcome.Value):
                callback(None, result.value)
            elif isinstance(result.error, Exception):
                callback(result.error)
            else:
                result.unwrap()
        nursery.start_soon(run)
    return wrapper
