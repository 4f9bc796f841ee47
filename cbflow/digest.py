"""Deterministic keys for call arguments

Both memoise and flood protection need to decide whether two calls had "the
same arguments". We decide by serialized value: arguments are rendered into a
canonical JSON text, tagged with a format version so that keys produced by a
future format can never collide with keys from this one.

Only plain data is accepted. An argument we don't know how to render raises
TypeError; silently falling back to something like repr() would make keys
depend on object identity.

"""
from __future__ import annotations
import dataclasses
import hashlib
import json
import typing as t

__all__ = [
    "FORMAT_VERSION",
    "serialize_args",
    "digest",
]

FORMAT_VERSION = "v1"

def _plain(value: t.Any) -> t.Any:
    "Called by json for anything it doesn't natively understand."
    if isinstance(value, (bytes, bytearray)):
        return {"__bytes__": bytes(value).hex()}
    elif isinstance(value, (set, frozenset)):
        # sort by serialized form, since the elements needn't be mutually comparable
        return {"__set__": sorted((_dumps(elem) for elem in value))}
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {"__dataclass__": type(value).__qualname__, "fields": dataclasses.asdict(value)}
    raise TypeError(f"can't serialize argument of type {type(value).__name__}: {value!r}")

def _dumps(value: t.Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(',', ':'),
                      ensure_ascii=False, allow_nan=False, default=_plain)

def serialize_args(args: t.Sequence[t.Any], kwargs: t.Optional[t.Mapping[str, t.Any]]=None) -> str:
    """Render positional and keyword arguments as a stable string.

    Tuples and lists render identically, and dict key order doesn't matter.
    Keyword arguments only appear in the output when there are some, so a
    function called purely positionally gets the same key as it always has.

    """
    payload: t.List[t.Any] = [list(args)]
    if kwargs:
        payload.append(dict(kwargs))
    return FORMAT_VERSION + ':' + _dumps(payload)

def digest(args: t.Sequence[t.Any], kwargs: t.Optional[t.Mapping[str, t.Any]]=None) -> str:
    "A fixed-length hex digest of `serialize_args(args, kwargs)`."
    return hashlib.sha256(serialize_args(args, kwargs).encode()).hexdigest()
