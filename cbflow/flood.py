"""Coalescing concurrent identical calls

If a slow lookup is called ten times with the same arguments while the first
call is still running, there's no reason to run it ten times: everyone wants the
same answer. `flood_protect` runs it once and hands the result to all ten
callers, in the order they called.

"""
from __future__ import annotations
from cbflow.digest import serialize_args
import functools
import typing as t

import logging
logger = logging.getLogger(__name__)

__all__ = [
    "flood_protect",
    "flood_protection",
]

F = t.TypeVar('F', bound=t.Callable[..., None])

def flood_protect(fn: F, name: t.Optional[str]=None) -> F:
    """Return a version of `fn` which runs at most once at a time per distinct set of arguments.

    Calls which arrive while an identical call is in flight are not run; their
    callbacks are queued and receive whatever the in-flight call produces,
    errors included.

    Each returned function has its own record of in-flight calls, so protecting
    two methods of one object keeps them independent. `name` defaults to the
    function's name and is only used to build keys and log messages.

    """
    if name is None:
        name = getattr(fn, '__name__', repr(fn))
    waiting: t.Dict[str, t.List[t.Callable[..., None]]] = {}

    @functools.wraps(fn)
    def wrapper(*args: t.Any, **kwargs: t.Any) -> None:
        *fn_args, callback = args
        key = name + ':' + serialize_args(fn_args, kwargs)
        if key in waiting:
            logger.debug("flood_protect(%s): coalescing into in-flight call, %d waiting",
                         name, len(waiting[key]))
            waiting[key].append(callback)
            return
        callbacks = [callback]
        waiting[key] = callbacks

        def done(*result: t.Any) -> None:
            # Removed before fanning out, so that a waiter which calls us again
            # starts a fresh call rather than joining this finished one.
            del waiting[key]
            first_exn: t.Optional[BaseException] = None
            for cb in callbacks:
                try:
                    cb(*result)
                except Exception as e:
                    logger.debug("flood_protect(%s): waiter raised %r, still answering the rest", name, e)
                    if first_exn is None:
                        first_exn = e
            if first_exn is not None:
                raise first_exn

        try:
            fn(*fn_args, done, **kwargs)
        except BaseException:
            # don't leave later callers waiting on a call that blew up
            if waiting.get(key) is callbacks:
                del waiting[key]
            raise
    return t.cast(F, wrapper)

def flood_protection(target: object, name: str) -> None:
    "Replace the method `name` of `target` with a flood protected version."
    setattr(target, name, flood_protect(getattr(target, name), name))
