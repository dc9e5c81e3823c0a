"""Concurrent download queue with per-host rate limiting.

Bundle downloads of one update fan out through this queue: a global cap on
concurrent transfers, a smaller cap per host, priority ordering, and
optional retry with exponential backoff. The default is a single attempt
per bundle; a failed bundle fails the whole update, which is retried on the
next program start.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Coroutine
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import structlog

logger = structlog.get_logger()


@dataclass
class DownloadResult:
    """Result of a single download operation.

    Attributes:
        key: Bundle name identifying the download
        path: Saved file on success, or None on failure
        size: Bytes written
        error: Error description if the download failed
        attempts: Number of attempts made before success or final failure
    """

    key: str
    path: Path | None
    size: int = 0
    error: str | None = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.path is not None and self.error is None


@dataclass(order=True)
class _QueueItem:
    """Internal priority queue entry. Lower priority values process first."""

    priority: int
    key: str = field(compare=False)
    url: str = field(compare=False)
    coro_factory: Callable[[], Coroutine[Any, Any, DownloadResult]] = field(
        compare=False
    )


class DownloadQueue:
    """Priority-based concurrent download queue.

    Manages download concurrency with:
    - A global semaphore limiting total concurrent downloads
    - Per-host semaphores limiting connections to each server
    - Priority ordering (lower values first)
    - Exponential backoff between attempts when max_attempts > 1

    Args:
        max_concurrency: Maximum total concurrent downloads
        max_per_host: Maximum concurrent downloads per host
        max_attempts: Attempts per download; 1 disables retry
        base_backoff: Base delay in seconds for exponential backoff
    """

    def __init__(
        self,
        max_concurrency: int = 8,
        max_per_host: int = 4,
        max_attempts: int = 1,
        base_backoff: float = 0.5,
    ):
        self.max_concurrency = max_concurrency
        self.max_per_host = max_per_host
        self.max_attempts = max_attempts
        self.base_backoff = base_backoff

        self._queue: asyncio.PriorityQueue[_QueueItem] = asyncio.PriorityQueue()
        self._global_semaphore = asyncio.Semaphore(max_concurrency)
        self._host_semaphores: dict[str, asyncio.Semaphore] = {}
        self._progress_callback: Callable[[int, int, int], None] | None = None
        self._completed = 0
        self._total_bytes = 0

    @property
    def progress_callback(self) -> Callable[[int, int, int], None] | None:
        """Get progress callback."""
        return self._progress_callback

    @progress_callback.setter
    def progress_callback(self, callback: Callable[[int, int, int], None] | None) -> None:
        """Set progress callback: (completed, total, bytes_downloaded)."""
        self._progress_callback = callback

    def get_host_semaphore(self, url: str) -> asyncio.Semaphore:
        """Get or create a per-host semaphore for the given URL.

        Args:
            url: Full URL to extract hostname from

        Returns:
            Semaphore for the URL's host
        """
        host = urlparse(url).hostname or "unknown"
        if host not in self._host_semaphores:
            self._host_semaphores[host] = asyncio.Semaphore(self.max_per_host)
        return self._host_semaphores[host]

    async def submit(
        self,
        priority: int,
        key: str,
        url: str,
        coro_factory: Callable[[], Coroutine[Any, Any, DownloadResult]],
    ) -> None:
        """Enqueue a download task.

        Args:
            priority: Download priority (lower = higher priority)
            key: Bundle name for the content
            url: Source URL, used for per-host limiting
            coro_factory: Callable that creates the download coroutine.
                          Called fresh on each attempt.
        """
        await self._queue.put(
            _QueueItem(priority=priority, key=key, url=url, coro_factory=coro_factory)
        )

    async def run(self, total: int) -> AsyncIterator[DownloadResult]:
        """Process queued downloads concurrently, yielding results.

        Creates up to max_concurrency worker tasks that pull from the
        priority queue. Results are yielded as they complete. Closing the
        iterator early cancels the remaining workers.

        Args:
            total: Total number of items for progress tracking

        Yields:
            DownloadResult for each completed download
        """
        result_queue: asyncio.Queue[DownloadResult | None] = asyncio.Queue()
        self._completed = 0
        self._total_bytes = 0
        workers_done = 0
        num_workers = min(self.max_concurrency, total)

        async def worker() -> None:
            try:
                while True:
                    try:
                        item = self._queue.get_nowait()
                    except asyncio.QueueEmpty:
                        break

                    result = await self._execute_with_retry(item)
                    self._completed += 1
                    self._total_bytes += result.size

                    if self._progress_callback:
                        self._progress_callback(self._completed, total, self._total_bytes)

                    await result_queue.put(result)
            finally:
                result_queue.put_nowait(None)  # Signal worker done

        workers = [asyncio.ensure_future(worker()) for _ in range(num_workers)]

        try:
            while workers_done < num_workers:
                result = await result_queue.get()
                if result is None:
                    workers_done += 1
                    continue
                yield result
        finally:
            for task in workers:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

    async def _execute_with_retry(self, item: _QueueItem) -> DownloadResult:
        """Execute a download with optional retry and backoff.

        Args:
            item: Queue item containing the download task

        Returns:
            DownloadResult with a path on success or error on failure
        """
        last_error: str | None = None
        host_semaphore = self.get_host_semaphore(item.url)

        for attempt in range(1, self.max_attempts + 1):
            async with self._global_semaphore, host_semaphore:
                try:
                    result = await item.coro_factory()
                    if result.ok:
                        result.attempts = attempt
                        return result
                    last_error = result.error or "No data returned"
                except Exception as e:
                    last_error = str(e)
                logger.debug(
                    "download_attempt_failed",
                    key=item.key,
                    attempt=attempt,
                    error=last_error,
                )

            if attempt < self.max_attempts:
                backoff = self.base_backoff * (2 ** (attempt - 1))
                await asyncio.sleep(backoff)

        return DownloadResult(
            key=item.key,
            path=None,
            error=last_error,
            attempts=self.max_attempts,
        )
