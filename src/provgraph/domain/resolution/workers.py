"""Bounded worker pool for blocking capability calls."""

from __future__ import annotations

import asyncio
import functools
import itertools
import threading
from logging import getLogger
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

log = getLogger(__name__)
P = ParamSpec("P")
R = TypeVar("R")

_thread_ids = itertools.count(1)


class WorkerPool:
    """Runs blocking calls (VCS commands, downloads) on at most ``max_workers`` threads.

    Each call runs on its own daemon thread and holds one of ``max_workers``
    slots while its caller waits for it. A caller that gives up (for example
    after a timeout) frees its slot right away: the abandoned call runs to
    completion on its thread and its result is discarded, so it never delays
    the calls that follow.
    """

    def __init__(self, max_workers: int) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._slots = asyncio.Semaphore(max_workers)
        self._closed = False
        self.abandoned = 0

    async def call(
        self, function: Callable[P, R], /, *args: P.args, **kwargs: P.kwargs
    ) -> R:
        if self._closed:
            raise RuntimeError("WorkerPool has been shut down")
        async with self._slots:
            loop = asyncio.get_running_loop()
            future: asyncio.Future[R] = loop.create_future()
            thread = threading.Thread(
                target=_run,
                args=(loop, future, functools.partial(function, *args, **kwargs)),
                name=f"provgraph-worker-{next(_thread_ids)}",
                daemon=True,
            )
            thread.start()
            try:
                return await future
            except asyncio.CancelledError:
                if thread.is_alive():
                    self.abandoned += 1
                    log.debug("Abandoning call running on thread '%s'", thread.name)
                raise

    def shutdown(self) -> None:
        self._closed = True

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.shutdown()


def _run(
    loop: asyncio.AbstractEventLoop, future: asyncio.Future[Any], call: Callable[[], Any]
) -> None:
    try:
        result = call()
    except BaseException as exc:  # noqa: BLE001
        _deliver(loop, future, None, exc)
    else:
        _deliver(loop, future, result, None)


def _deliver(
    loop: asyncio.AbstractEventLoop,
    future: asyncio.Future[Any],
    result: Any,
    error: BaseException | None,
) -> None:
    def settle() -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)

    try:
        loop.call_soon_threadsafe(settle)
    except RuntimeError:
        # The loop is already closed; nobody waits for this result anymore.
        log.debug("Discarding the result of a call that outlived its event loop")
