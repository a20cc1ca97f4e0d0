"""Bounded concurrent executor for per-record network work.

At most `concurrency` tasks are in flight; a new one starts as soon as a slot
frees. Results come back in input order regardless of completion order, and a
failing task never cancels its siblings.
"""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from loguru import logger
from pydantic import BaseModel


class TaskResult(BaseModel):
    """Outcome of one task. Exactly one of value/error is meaningful."""

    index: int
    key: str = ""
    value: Optional[Any] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BoundedExecutor:
    """Run an async function over items with a concurrency ceiling."""

    def __init__(self, concurrency: int = 5, progress_every: int = 0, label: str = "tasks"):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.concurrency = concurrency
        self.progress_every = progress_every
        self.label = label
        self.max_in_flight = 0
        self._in_flight = 0

    async def map(
        self,
        func: Callable[[Any], Awaitable[Any]],
        items: Sequence[Any],
        key: Optional[Callable[[Any], str]] = None,
    ) -> List[TaskResult]:
        semaphore = asyncio.Semaphore(self.concurrency)
        total = len(items)
        done = 0

        async def run_one(index: int, item: Any) -> TaskResult:
            nonlocal done
            item_key = key(item) if key else str(index)
            async with semaphore:
                self._in_flight += 1
                self.max_in_flight = max(self.max_in_flight, self._in_flight)
                try:
                    value = await func(item)
                    result = TaskResult(index=index, key=item_key, value=value)
                except Exception as e:
                    logger.warning(f"{self.label} [{item_key}] failed: {type(e).__name__}: {e}")
                    result = TaskResult(index=index, key=item_key, error=f"{type(e).__name__}: {e}")
                finally:
                    self._in_flight -= 1

            done += 1
            if self.progress_every and (done % self.progress_every == 0 or done == total):
                logger.info(f"  Progress: {done}/{total} {self.label}")
            return result

        tasks = [run_one(i, item) for i, item in enumerate(items)]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        output: List[TaskResult] = []
        for i, r in enumerate(results):
            if isinstance(r, BaseException):
                # Only reachable for cancellation-style errors escaping run_one
                output.append(TaskResult(index=i, key=str(i), error=f"{type(r).__name__}: {r}"))
            else:
                output.append(r)
        return output
