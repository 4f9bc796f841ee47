import typing as t
import trio
from cbflow.memoise import Cache

import logging
logger = logging.getLogger(__name__)
# logging.basicConfig(level=logging.DEBUG)

def call_later(nursery: trio.Nursery, delay: float, fn: t.Callable[..., None], *args: t.Any) -> None:
    "Call `fn(*args)` from a new task in `nursery`, `delay` seconds from now."
    async def sleeper() -> None:
        await trio.sleep(delay)
        fn(*args)
    nursery.start_soon(sleeper)

class CacheDown(Exception):
    pass

class DictCache(Cache):
    "A Cache in a dict, which ignores TTLs and can be told to fail."
    def __init__(self) -> None:
        self.data: t.Dict[str, str] = {}
        self.sets: t.List[t.Tuple[str, str, int]] = []
        self.fail_get = False
        self.fail_set = False

    def get(self, key: str, callback: t.Callable[[t.Any, t.Optional[str]], None]) -> None:
        if self.fail_get:
            return callback(CacheDown("get", key), None)
        callback(None, self.data.get(key))

    def set(self, key: str, value: str, ttl: int,
            callback: t.Optional[t.Callable[[t.Any], None]]=None) -> None:
        self.sets.append((key, value, ttl))
        error = None
        if self.fail_set:
            error = CacheDown("set", key)
        else:
            self.data[key] = value
        if callback:
            callback(error)

class RaisingCache(DictCache):
    "A DictCache whose client raises instead of reporting errors through callbacks."
    def __init__(self, raise_on: str) -> None:
        super().__init__()
        self.raise_on = raise_on

    def get(self, key: str, callback: t.Callable[[t.Any, t.Optional[str]], None]) -> None:
        if self.raise_on == 'get':
            raise ConnectionError("cache down")
        super().get(key, callback)

    def set(self, key: str, value: str, ttl: int,
            callback: t.Optional[t.Callable[[t.Any], None]]=None) -> None:
        if self.raise_on == 'set':
            raise ConnectionError("cache down")
        super().set(key, value, ttl, callback)
