from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class BatchOutcome(Generic[T, R]):
    item: T
    ok: bool
    payload: R | None = None
    error: str | None = None
    duration: float = 0.0


class BatchScheduler(Generic[T, R]):
    """Bounded worker pool over independent items.

    ``min(concurrency, len(items))`` workers pull from a shared queue and push
    one outcome per item onto a results channel. Outcomes come back in
    completion order. A failing item becomes ``ok=False``; it never aborts
    its siblings.
    """

    def __init__(
        self,
        runner: Callable[[T], Awaitable[R]],
        *,
        concurrency: int = 5,
        log: Callable[[str], None] | None = None,
    ) -> None:
        self.runner = runner
        self.concurrency = max(1, concurrency)
        self.log = log

    async def run_batch(self, items: Sequence[T]) -> list[BatchOutcome[T, R]]:
        if not items:
            return []
        pending: asyncio.Queue[T] = asyncio.Queue()
        for item in items:
            pending.put_nowait(item)
        results: asyncio.Queue[BatchOutcome[T, R]] = asyncio.Queue()
        size = min(self.concurrency, len(items))
        self._log(f"queued {len(items)} item(s), {size} worker(s)")

        workers = [asyncio.create_task(self._worker(pending, results)) for _ in range(size)]
        outcomes: list[BatchOutcome[T, R]] = []
        try:
            while len(outcomes) < len(items):
                outcomes.append(await results.get())
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
        return outcomes

    async def _worker(
        self,
        pending: asyncio.Queue[T],
        results: asyncio.Queue[BatchOutcome[T, R]],
    ) -> None:
        while True:
            try:
                item = pending.get_nowait()
            except asyncio.QueueEmpty:
                return
            outcome: BatchOutcome[T, R] | None = None
            try:
                outcome = await self._run_one(item)
            finally:
                # A dequeued item always yields exactly one outcome.
                if outcome is None:
                    outcome = BatchOutcome(item=item, ok=False, error="interrupted")
                results.put_nowait(outcome)

    async def _run_one(self, item: T) -> BatchOutcome[T, R]:
        start = time.monotonic()
        self._log(f"running [{item}]")
        try:
            payload = await self.runner(item)
        except asyncio.CancelledError as exc:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            return self._failed(item, exc, start)
        except Exception as exc:  # noqa: BLE001
            return self._failed(item, exc, start)
        duration = time.monotonic() - start
        self._log(f"success [{item}] {duration:.2f}s")
        return BatchOutcome(item=item, ok=True, payload=payload, duration=duration)

    def _failed(self, item: T, exc: BaseException, start: float) -> BatchOutcome[T, R]:
        duration = time.monotonic() - start
        self._log(f"fail [{item}] {duration:.2f}s ({type(exc).__name__})")
        return BatchOutcome(item=item, ok=False, error=str(exc) or type(exc).__name__, duration=duration)

    def _log(self, message: str) -> None:
        if self.log:
            self.log(message)
