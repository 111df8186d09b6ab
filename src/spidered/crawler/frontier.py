"""
Crawl frontier primitives: URL dedup, socket permits and the task join.

All three are asyncio primitives and must be used from a single event loop.
"""

import asyncio
import logging
from typing import Coroutine, Iterator, Optional, Set


class DispatchedSet:
    """
    URLs that already have a fetch task scheduled.

    A URL is inserted the moment its task is scheduled, not when the fetch
    succeeds, so racing discoveries of the same link schedule it only once.
    """

    def __init__(self):
        self._urls: Set[str] = set()
        self._lock = asyncio.Lock()
        self.total_inserted = 0

    async def insert_if_absent(self, url: str) -> bool:
        """Insert url and return True, or return False if it is already present."""
        async with self._lock:
            if url in self._urls:
                return False
            self._urls.add(url)
            self.total_inserted += 1
            return True

    async def discard(self, url: str):
        """Forget url so that a later discovery may schedule it again."""
        async with self._lock:
            self._urls.discard(url)

    def __contains__(self, url: str) -> bool:
        return url in self._urls

    def __len__(self) -> int:
        return len(self._urls)

    def __iter__(self) -> Iterator[str]:
        return iter(set(self._urls))


class SocketLimiter:
    """Counting permit bounding the number of simultaneous fetches."""

    def __init__(self, limit: int):
        if limit <= 0:
            raise ValueError("limit must be greater than 0")
        self.limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self.in_flight = 0
        self.peak = 0

    async def acquire(self):
        await self._semaphore.acquire()
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)

    def release(self):
        if self.in_flight <= 0:
            raise RuntimeError("SocketLimiter released more times than acquired")
        self.in_flight -= 1
        self._semaphore.release()

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.release()


class CrawlTaskGroup:
    """
    Counting join over dynamically spawned crawl tasks.

    Every spawn increments the pending count before the task starts and every
    task decrements it exactly once when it finishes, however it finishes.
    wait() returns once the count drops back to zero, which includes tasks
    spawned by other tasks while waiting.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._pending = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._tasks: Set[asyncio.Task] = set()
        self.spawned = 0

    @property
    def pending(self) -> int:
        return self._pending

    def spawn(self, coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
        """Schedule coro as a member of the group."""
        self._pending += 1
        self.spawned += 1
        self._idle.clear()

        task = asyncio.create_task(self._run(coro), name=name)
        # Keep a strong reference until the task is done
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, coro: Coroutine):
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"Crawl task failed: {e}", exc_info=True)
        finally:
            self._pending -= 1
            if self._pending == 0:
                self._idle.set()

    async def wait(self):
        """Block until every spawned task, including descendants, has finished."""
        await self._idle.wait()

    async def cancel(self):
        """Cancel all outstanding tasks and wait for them to finish."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
