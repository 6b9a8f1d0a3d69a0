from __future__ import annotations

import asyncio
import threading
import time

import pytest

from provgraph.domain.resolution import WorkerPool


def test_call_returns_the_result_of_the_function() -> None:
    async def main() -> str:
        with WorkerPool(2) as pool:
            return await pool.call(str.upper, "value")

    assert asyncio.run(main()) == "VALUE"


def test_call_raises_the_error_of_the_function() -> None:
    def fail() -> None:
        raise ValueError("boom")

    async def main() -> None:
        with WorkerPool(1) as pool:
            await pool.call(fail)

    with pytest.raises(ValueError, match="boom"):
        asyncio.run(main())


def test_concurrent_calls_are_bounded_by_max_workers() -> None:
    lock = threading.Lock()
    running = 0
    peak = 0

    def work() -> None:
        nonlocal running, peak
        with lock:
            running += 1
            peak = max(peak, running)
        time.sleep(0.05)
        with lock:
            running -= 1

    async def main() -> None:
        with WorkerPool(2) as pool:
            await asyncio.gather(*(pool.call(work) for _ in range(6)))

    asyncio.run(main())

    assert peak == 2


def test_abandoned_call_frees_its_worker() -> None:
    release = threading.Event()

    async def main() -> tuple[str, int]:
        with WorkerPool(1) as pool:
            with pytest.raises(TimeoutError):
                await asyncio.wait_for(pool.call(release.wait, 5.0), timeout=0.05)
            result = await asyncio.wait_for(pool.call(str, "next"), timeout=1.0)
            return result, pool.abandoned

    try:
        result, abandoned = asyncio.run(main())
    finally:
        release.set()

    assert result == "next"
    assert abandoned == 1


def test_pool_rejects_calls_after_shutdown() -> None:
    async def main() -> None:
        pool = WorkerPool(1)
        pool.shutdown()
        await pool.call(str, "late")

    with pytest.raises(RuntimeError, match="shut down"):
        asyncio.run(main())


def test_pool_requires_a_worker() -> None:
    with pytest.raises(ValueError, match="at least 1"):
        WorkerPool(0)
