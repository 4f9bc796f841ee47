"""Control-flow combinators for callback-style functions

A callback-style function takes its arguments followed by one more, a callback,
which it calls exactly once when it's done: `callback(None, *results)` on
success, `callback(error)` on failure. We provide small combinators over such
functions:

- `parallel` and `sequential` run a function over many items.
- `retry` calls a function again when it fails.
- `memoise` caches method results in some external cache.
- `flood_protect` merges concurrent calls with identical arguments into one.
- `throttled` caps how many calls can be running at once, queueing the rest.

Every combinator keeps its promise of exactly one callback, including for empty
inputs and failures, and none of them ever cancels a call once started.

Some combinators need to run things "later", so as not to build up an
unbounded stack of nested callbacks. Rather than relying on an implicit global
event loop for this, they're explicitly passed a `Scheduler`. Under trio, use
`TrioScheduler.make(nursery)`; from plain synchronous code, or in tests, a
`DequeScheduler` which you drive yourself.

`cbflow.trio_bridge` lets trio code await callback-style functions, and turn
coroutine functions into callback-style ones.

"""
from cbflow.scheduler import Scheduler, TrioScheduler, DequeScheduler
from cbflow.runners import parallel, sequential
from cbflow.retry import retry
from cbflow.memoise import Cache, One, memoise
from cbflow.flood import flood_protect, flood_protection
from cbflow.throttle import throttled, throttle
from cbflow.trio_bridge import shift, call, callback_style, CallbackError
