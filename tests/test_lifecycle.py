import asyncio
import unittest

from portfolio_chat.errors import InitializationError
from portfolio_chat.lifecycle import InitializationGuard, InitState

from tests.fakes import make_index


class CountingBuild:
    def __init__(self, delay: float = 0.01, failures: int = 0):
        self.delay = delay
        self.failures = failures
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.calls <= self.failures:
            raise RuntimeError("corpus unreadable")
        return make_index()


class TestInitializationGuard(unittest.IsolatedAsyncioTestCase):
    async def test_concurrent_callers_share_one_build(self):
        build = CountingBuild()
        guard = InitializationGuard(build)

        results = await asyncio.gather(*(guard.ensure_ready() for _ in range(20)))

        self.assertEqual(build.calls, 1)
        self.assertEqual(guard.builds_started, 1)
        self.assertTrue(all(r is results[0] for r in results))
        self.assertIs(guard.state, InitState.READY)

    async def test_ready_index_is_reused(self):
        build = CountingBuild(delay=0)
        guard = InitializationGuard(build)
        first = await guard.ensure_ready()
        second = await guard.ensure_ready()
        self.assertIs(first, second)
        self.assertEqual(build.calls, 1)

    async def test_failure_is_shared_and_retryable(self):
        build = CountingBuild(failures=1)
        guard = InitializationGuard(build)

        with self.assertLogs("portfolio_chat.lifecycle", level="ERROR"):
            results = await asyncio.gather(
                *(guard.ensure_ready() for _ in range(5)), return_exceptions=True
            )

        self.assertTrue(all(isinstance(r, InitializationError) for r in results))
        self.assertEqual(str(results[0]), "corpus unreadable")
        self.assertEqual(guard.builds_started, 1)
        self.assertIs(guard.state, InitState.UNINITIALIZED)
        self.assertEqual(guard.last_error, "corpus unreadable")

        index = await guard.ensure_ready()
        self.assertEqual(len(index), 1)
        self.assertEqual(guard.builds_started, 2)
        self.assertIs(guard.state, InitState.READY)
        self.assertIsNone(guard.last_error)

    async def test_probe_failure_does_not_abort_build(self):
        async def probe():
            raise ConnectionError("connection refused")

        guard = InitializationGuard(CountingBuild(delay=0), probe=probe)
        with self.assertLogs("portfolio_chat.lifecycle", level="WARNING") as logs:
            await guard.ensure_ready()

        self.assertIs(guard.state, InitState.READY)
        self.assertTrue(any("probe failed" in line for line in logs.output))

    async def test_probe_reporting_missing_model_only_warns(self):
        async def probe():
            return False

        guard = InitializationGuard(CountingBuild(delay=0), probe=probe)
        with self.assertLogs("portfolio_chat.lifecycle", level="WARNING"):
            await guard.ensure_ready()
        self.assertIs(guard.state, InitState.READY)

    async def test_cancelled_waiter_leaves_build_running(self):
        build = CountingBuild(delay=0.05)
        guard = InitializationGuard(build)

        waiter = asyncio.create_task(guard.ensure_ready())
        await asyncio.sleep(0.01)
        waiter.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await waiter

        self.assertIs(guard.state, InitState.INITIALIZING)
        await guard.ensure_ready()
        self.assertEqual(build.calls, 1)
        self.assertIs(guard.state, InitState.READY)

    async def test_background_start_is_joined_by_requests(self):
        build = CountingBuild(delay=0.02)
        guard = InitializationGuard(build)

        await guard.start()
        self.assertIs(guard.state, InitState.INITIALIZING)
        await guard.start()
        await guard.ensure_ready()

        self.assertEqual(guard.builds_started, 1)

    async def test_background_failure_is_logged(self):
        guard = InitializationGuard(CountingBuild(delay=0, failures=1))
        with self.assertLogs("portfolio_chat.lifecycle", level="WARNING") as logs:
            await guard.start()
            await asyncio.sleep(0.01)

        self.assertIs(guard.state, InitState.UNINITIALIZED)
        self.assertTrue(any("Background index build failed" in line for line in logs.output))

    async def test_reset_forces_rebuild(self):
        build = CountingBuild(delay=0)
        guard = InitializationGuard(build)
        await guard.ensure_ready()

        guard.reset()
        self.assertIs(guard.state, InitState.UNINITIALIZED)
        self.assertIsNone(guard.index)

        await guard.ensure_ready()
        self.assertEqual(build.calls, 2)

    async def test_reset_rejected_while_initializing(self):
        guard = InitializationGuard(CountingBuild(delay=0.02))
        await guard.start()
        with self.assertRaises(RuntimeError):
            guard.reset()
        await guard.ensure_ready()


if __name__ == "__main__":
    unittest.main()
