import trio
from cbflow.runners import parallel
from cbflow.scheduler import TrioScheduler
from cbflow.trio_bridge import CallbackError, TrioContinuation, shift, call, callback_style
from cbflow.tests.trio_test_case import TrioTestCase
from cbflow.tests.utils import call_later

class MyException(Exception):
    pass

class TestShift(TrioTestCase):
    async def test_immediate(self) -> None:
        self.assertEqual(await shift(lambda cont: cont.send(5)), 5)

    async def test_later(self) -> None:
        def register(cont: TrioContinuation[int]) -> None:
            call_later(self.nursery, 1, cont.send, 7)
        self.assertEqual(await shift(register), 7)

    async def test_throw(self) -> None:
        def register(cont: TrioContinuation[int]) -> None:
            call_later(self.nursery, 1, cont.throw, MyException("hi"))
        with self.assertRaises(MyException):
            await shift(register)

    async def test_resume_twice(self) -> None:
        def register(cont: TrioContinuation[int]) -> None:
            cont.send(1)
            with self.assertRaises(RuntimeError):
                cont.send(2)
        self.assertEqual(await shift(register), 1)

    async def test_cancelled(self) -> None:
        conts: list = []
        with trio.move_on_after(1) as scope:
            await shift(conts.append)
        self.assertTrue(scope.cancelled_caught)
        self.assertTrue(conts[0].is_cancelled())
        # discarded; nobody is waiting any more
        conts[0].send(5)

class TestCall(TrioTestCase):
    async def asyncSetUp(self) -> None:
        self.scheduler = TrioScheduler.make(self.nursery)

    async def test_results(self) -> None:
        def none(callback):
            callback(None)
        def one(x, callback):
            self.scheduler.soon(callback, None, x + 1)
        def many(x, callback, *, y):
            callback(None, x, y)
        self.assertIsNone(await call(none))
        self.assertEqual(await call(one, 1), 2)
        self.assertEqual(await call(many, 1, y=2), (1, 2))

    async def test_errors(self) -> None:
        def fail(callback):
            self.scheduler.soon(callback, MyException("bad"))
        def fail_with_string(callback):
            callback("bad")
        with self.assertRaises(MyException):
            await call(fail)
        with self.assertRaises(CallbackError) as cm:
            await call(fail_with_string)
        self.assertEqual(cm.exception.error, "bad")

class TestCallbackStyle(TrioTestCase):
    async def asyncSetUp(self) -> None:
        self.scheduler = TrioScheduler.make(self.nursery)

    async def test_roundtrip(self) -> None:
        async def double(x: int) -> int:
            await trio.sleep(x)
            return x * 2
        self.assertEqual(await call(callback_style(self.nursery, double), 3), 6)

    async def test_exception(self) -> None:
        async def broken() -> None:
            await trio.sleep(0)
            raise MyException("broken")
        results: list = []
        callback_style(self.nursery, broken)(results.append)
        await trio.sleep(1)
        self.assertEqual(len(results), 1)
        self.assertIsInstance(results[0], MyException)

    async def test_with_parallel(self) -> None:
        out = []
        async def each(num: int) -> None:
            await trio.sleep(num)
            out.append(num)
        await call(parallel, self.scheduler, [3, 1, 2], callback_style(self.nursery, each))
        self.assertEqual(out, [1, 2, 3])
