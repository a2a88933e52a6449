import asyncio
import unittest

from zenith.state.scheduler import CoalescingScheduler


class TestCoalescingScheduler(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.dispatched = []

        async def _record(payload):
            self.dispatched.append(payload)

        self.scheduler = CoalescingScheduler(0.05, _record)

    async def test_burst_dispatches_last_payload_once(self) -> None:
        for value in range(5):
            self.scheduler.schedule(value)
            await asyncio.sleep(0.01)

        self.assertTrue(self.scheduler.pending)
        await asyncio.sleep(0.15)
        await self.scheduler.join()

        self.assertEqual(self.dispatched, [4])
        self.assertFalse(self.scheduler.pending)

    async def test_cancel_drops_pending_payload(self) -> None:
        self.scheduler.schedule("x")
        self.scheduler.cancel()
        await asyncio.sleep(0.1)

        self.assertEqual(self.dispatched, [])

    async def test_flush_runs_pending_payload_now(self) -> None:
        self.scheduler.delay = 10
        self.scheduler.schedule("now")
        await self.scheduler.flush()

        self.assertEqual(self.dispatched, ["now"])
        self.assertFalse(self.scheduler.pending)

    async def test_failing_action_is_logged(self) -> None:
        async def _boom(_payload):
            raise RuntimeError("boom")

        scheduler = CoalescingScheduler(0, _boom)
        scheduler.schedule("x")
        with self.assertLogs("zenith.state.scheduler", level="ERROR"):
            await scheduler.flush()

    async def test_dispatches_do_not_overlap(self) -> None:
        active = []
        overlaps = []

        async def _slow(payload):
            if active:
                overlaps.append(payload)
            active.append(payload)
            await asyncio.sleep(0.05)
            active.remove(payload)

        scheduler = CoalescingScheduler(0, _slow)
        scheduler.schedule("a")
        await asyncio.sleep(0.01)
        scheduler.schedule("b")
        await asyncio.sleep(0.01)
        await scheduler.join()

        self.assertEqual(overlaps, [])


if __name__ == "__main__":
    unittest.main()
