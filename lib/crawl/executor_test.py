"""Tests for the bounded executor."""

import asyncio
import random

import pytest

from lib.crawl.executor import BoundedExecutor


@pytest.mark.asyncio
async def test_results_in_input_order():
    async def work(n):
        await asyncio.sleep(random.uniform(0, 0.01))
        return n * 2

    results = await BoundedExecutor(concurrency=3).map(work, list(range(20)))
    assert [r.index for r in results] == list(range(20))
    assert [r.value for r in results] == [n * 2 for n in range(20)]


@pytest.mark.asyncio
async def test_concurrency_ceiling():
    executor = BoundedExecutor(concurrency=4)

    async def work(n):
        await asyncio.sleep(0.005)
        return n

    await executor.map(work, list(range(25)))
    assert 1 <= executor.max_in_flight <= 4


@pytest.mark.asyncio
async def test_failure_is_isolated():
    async def work(n):
        if n == 2:
            raise RuntimeError("boom")
        return n

    results = await BoundedExecutor(concurrency=2).map(work, [0, 1, 2, 3], key=lambda n: f"item-{n}")
    assert [r.ok for r in results] == [True, True, False, True]
    assert results[2].key == "item-2"
    assert "boom" in results[2].error
    assert results[3].value == 3


@pytest.mark.asyncio
async def test_empty_items():
    assert await BoundedExecutor().map(lambda x: x, []) == []


def test_rejects_zero_concurrency():
    with pytest.raises(ValueError):
        BoundedExecutor(concurrency=0)
