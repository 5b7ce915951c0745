import asyncio
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from jina_mcp.tool_scheduler import BatchScheduler
from jina_mcp.tools.errors import JinaApiError


class TestBatchScheduler(unittest.IsolatedAsyncioTestCase):
    async def test_empty_batch(self) -> None:
        async def runner(item: str) -> str:
            raise AssertionError("runner must not be called")

        scheduler = BatchScheduler(runner, concurrency=3)
        self.assertEqual(await scheduler.run_batch([]), [])

    async def test_every_item_reported_exactly_once(self) -> None:
        async def runner(item: int) -> int:
            await asyncio.sleep(0.001 * (item % 3))
            return item * 2

        items = list(range(17))
        scheduler = BatchScheduler(runner, concurrency=4)
        outcomes = await scheduler.run_batch(items)
        self.assertEqual(len(outcomes), len(items))
        self.assertEqual(sorted(o.item for o in outcomes), items)
        for outcome in outcomes:
            self.assertTrue(outcome.ok)
            self.assertEqual(outcome.payload, outcome.item * 2)

    async def test_concurrency_cap_never_exceeded(self) -> None:
        active = 0
        peak = 0

        async def runner(item: int) -> int:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.005)
            active -= 1
            return item

        scheduler = BatchScheduler(runner, concurrency=3)
        outcomes = await scheduler.run_batch(list(range(10)))
        self.assertEqual(len(outcomes), 10)
        self.assertEqual(peak, 3)

    async def test_full_fan_out_when_cap_covers_batch(self) -> None:
        started: list[str] = []
        all_started = asyncio.Event()
        items = ["a", "b", "c", "d"]

        async def runner(item: str) -> str:
            started.append(item)
            if len(started) == len(items):
                all_started.set()
            # Only completes if every item started without waiting for a slot.
            await asyncio.wait_for(all_started.wait(), timeout=2)
            return item

        scheduler = BatchScheduler(runner, concurrency=10)
        outcomes = await scheduler.run_batch(items)
        self.assertTrue(all(o.ok for o in outcomes))
        self.assertEqual(sorted(started), items)

    async def test_failure_does_not_affect_siblings(self) -> None:
        async def runner(item: str) -> str:
            if item == "bad":
                raise JinaApiError(404, "NOT_FOUND", "HTTP 404: gone")
            if item == "worse":
                raise ValueError("boom")
            return item.upper()

        scheduler = BatchScheduler(runner, concurrency=2)
        outcomes = await scheduler.run_batch(["a", "bad", "b", "worse", "c"])
        by_item = {o.item: o for o in outcomes}
        self.assertEqual(len(outcomes), 5)
        self.assertFalse(by_item["bad"].ok)
        self.assertEqual(by_item["bad"].error, "HTTP 404: gone")
        self.assertFalse(by_item["worse"].ok)
        self.assertEqual(by_item["worse"].error, "boom")
        for item in ("a", "b", "c"):
            self.assertTrue(by_item[item].ok)
            self.assertEqual(by_item[item].payload, item.upper())

    async def test_outcomes_in_completion_order(self) -> None:
        fast_done = asyncio.Event()

        async def runner(item: str) -> str:
            if item == "slow":
                await fast_done.wait()
            else:
                fast_done.set()
            return item

        scheduler = BatchScheduler(runner, concurrency=2)
        outcomes = await scheduler.run_batch(["slow", "fast"])
        self.assertEqual([o.item for o in outcomes], ["fast", "slow"])

    async def test_non_positive_cap_clamped_to_one(self) -> None:
        active = 0
        peak = 0

        async def runner(item: int) -> int:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0)
            active -= 1
            return item

        for cap in (0, -3):
            scheduler = BatchScheduler(runner, concurrency=cap)
            self.assertEqual(scheduler.concurrency, 1)
            outcomes = await scheduler.run_batch([1, 2, 3])
            self.assertEqual([o.item for o in outcomes], [1, 2, 3])
        self.assertEqual(peak, 1)

    async def test_log_callback_receives_progress(self) -> None:
        lines: list[str] = []

        async def runner(item: str) -> str:
            return item

        scheduler = BatchScheduler(runner, concurrency=1, log=lines.append)
        await scheduler.run_batch(["x"])
        self.assertTrue(any(line.startswith("success [x]") for line in lines))

    async def test_stray_cancellation_becomes_failed_outcome(self) -> None:
        async def runner(item: str) -> str:
            if item == "b":
                raise asyncio.CancelledError()
            return item

        scheduler = BatchScheduler(runner, concurrency=1)
        outcomes = await asyncio.wait_for(scheduler.run_batch(["a", "b", "c"]), timeout=2)
        self.assertEqual([o.item for o in outcomes], ["a", "b", "c"])
        by_item = {o.item: o for o in outcomes}
        self.assertFalse(by_item["b"].ok)
        self.assertEqual(by_item["b"].error, "CancelledError")
        self.assertTrue(by_item["c"].ok)

    async def test_cancelling_batch_still_propagates(self) -> None:
        started = asyncio.Event()

        async def runner(item: str) -> str:
            started.set()
            await asyncio.sleep(10)
            return item

        scheduler = BatchScheduler(runner, concurrency=2)
        task = asyncio.create_task(scheduler.run_batch(["a", "b"]))
        await started.wait()
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task
