"""Caching the results of callback-style methods in an external cache

We don't store anything ourselves; we're handed a Cache, and we treat it as
unreliable. If it fails to look something up, that's a miss; if it fails to
store something, we carry on. A broken cache makes things slower, never wrong.

Failures of the memoised methods themselves are never cached.

"""
from __future__ import annotations
from cbflow.digest import digest
import abc
import enum
import functools
import json
import random
import typing as t

import logging
logger = logging.getLogger(__name__)

__all__ = [
    "Cache",
    "One",
    "jitter_ttl",
    "memoise",
]

class Cache:
    "The interface memoise needs from an external cache, in callback style."
    @abc.abstractmethod
    def get(self, key: str, callback: t.Callable[[t.Any, t.Optional[str]], None]) -> None:
        "Call `callback(error, value)`, with value None or empty if `key` isn't present."
        pass

    @abc.abstractmethod
    def set(self, key: str, value: str, ttl: int,
            callback: t.Optional[t.Callable[[t.Any], None]]=None) -> None:
        "Store `value` under `key` for `ttl` seconds, then call `callback(error)` if passed."
        pass

class One(enum.IntEnum):
    "TTLs in seconds, so one can write `One.DAY`."
    HOUR = 3600
    DAY = 86400
    WEEK = 604800
    MONTH = 2592000

def jitter_ttl(num: float, offset: float=0.1) -> int:
    "Multiply `num` by a random factor between 1-offset and 1+offset, and round."
    return round(num * (random.random() * 2 * offset + (1 - offset)))

def _default_ttls(target: object, ttl: int) -> t.Dict[str, int]:
    return {name: ttl for name in dir(target)
            if not name.startswith('_') and callable(getattr(target, name))}

def memoise(cache: Cache, target: object,
            ttls: t.Union[t.Mapping[str, int], int],
            jitter: bool=True,
) -> t.Dict[str, int]:
    """Replace methods of `target` with versions which cache their results in `cache`.

    `ttls` maps method names to TTLs in seconds. If it's a single number, every
    public method of `target` gets that TTL.

    With `jitter`, each TTL is perturbed once, now, by up to 10% either way, so
    that many processes memoising the same methods don't all expire together.

    Results must be JSON-serializable to be cached; ones that aren't are still
    returned, just not cached. Cacheable results are passed back as they come
    out of JSON, on misses as well as hits, so a tuple arrives as a list and
    int dict keys arrive as strings either way. Returns the TTLs actually used.

    """
    if isinstance(ttls, t.Mapping):
        table = dict(ttls)
    else:
        table = _default_ttls(target, ttls)
    if jitter:
        table = {name: jitter_ttl(ttl) for name, ttl in table.items()}
    for name, ttl in table.items():
        setattr(target, name, _memoised(cache, name, getattr(target, name), ttl))
    return table

def _memoised(cache: Cache, name: str, original: t.Callable[..., None], ttl: int) -> t.Callable[..., None]:
    @functools.wraps(original)
    def wrapper(*args: t.Any, **kwargs: t.Any) -> None:
        *fn_args, callback = args
        key = name + ':' + digest(fn_args, kwargs)
        answered = False

        def stored(error: t.Any=None) -> None:
            if error is not None:
                logger.warning("memoise(%s): failed to store %s: %r", name, key, error)

        def called(error: t.Any=None, result: t.Any=None, *_: t.Any) -> None:
            if error is not None:
                return callback(error)
            try:
                raw = json.dumps(result)
            except (TypeError, ValueError) as e:
                logger.warning("memoise(%s): not caching unserializable result: %s", name, e)
                return callback(None, result)
            try:
                cache.set(key, raw, ttl, stored)
            except Exception as e:
                logger.warning("memoise(%s): store of %s raised: %r", name, key, e)
            # hand back what a later hit would return
            callback(None, json.loads(raw))

        def looked_up(error: t.Any=None, raw: t.Optional[str]=None) -> None:
            nonlocal answered
            answered = True
            if error is not None:
                logger.warning("memoise(%s): lookup of %s failed, calling through: %r", name, key, error)
            elif raw:
                try:
                    value = json.loads(raw)
                except ValueError as e:
                    logger.warning("memoise(%s): ignoring undecodable entry for %s: %s", name, key, e)
                else:
                    logger.debug("memoise(%s): hit for %s", name, key)
                    return callback(None, value)
            original(*fn_args, called, **kwargs)

        try:
            cache.get(key, looked_up)
        except Exception as e:
            if answered:
                # raised by our caller's code, not by the cache
                raise
            logger.warning("memoise(%s): lookup of %s raised, calling through: %r", name, key, e)
            looked_up(None, None)
    return wrapper
