import trio
import unittest
from cbflow.tests.trio_test_case import TrioTestCase

class Test(unittest.TestCase):
    def test_coro_warning(self) -> None:
        class Test(TrioTestCase):
            async def test(self):
                trio.sleep(0)
        with self.assertRaises(RuntimeWarning):
            Test('test').test()

    def test_mock_clock(self) -> None:
        class Test(TrioTestCase):
            async def test(self):
                await trio.sleep(3600)
        test = Test('test')
        test.test()
        self.assertGreaterEqual(test.clock.current_time(), 3600)

    def test_default_method_name(self) -> None:
        class Test(TrioTestCase):
            async def test(self):
                pass
        # unittest and pytest both build instances with no method name
        self.assertEqual(Test()._testMethodName, 'runTest')
