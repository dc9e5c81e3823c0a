"""Tests for hotfix_tools.core.download_queue module."""

import asyncio
from pathlib import Path

from hotfix_tools.core.download_queue import DownloadQueue, DownloadResult


class TestDownloadResult:
    """Test DownloadResult dataclass."""

    def test_success_result(self):
        """Test result with a saved path."""
        result = DownloadResult(key="a.bundle", path=Path("/tmp/a.bundle"), size=12)
        assert result.ok
        assert result.error is None
        assert result.attempts == 1

    def test_failure_result(self):
        """Test result without a path."""
        result = DownloadResult(key="a.bundle", path=None, error="HTTP 404", attempts=3)
        assert not result.ok
        assert result.error == "HTTP 404"
        assert result.attempts == 3


async def _make_ok_result(key: str) -> DownloadResult:
    """Helper to create a successful DownloadResult."""
    return DownloadResult(key=key, path=Path(f"/staging/{key}"), size=len(key))


class TestDownloadQueue:
    """Test DownloadQueue class."""

    def test_constructor_defaults(self):
        """Test default constructor values."""
        queue = DownloadQueue()
        assert queue.max_concurrency == 8
        assert queue.max_per_host == 4
        assert queue.max_attempts == 1
        assert queue.base_backoff == 0.5

    def test_host_semaphore_per_host(self):
        """Test one semaphore is shared per hostname."""
        queue = DownloadQueue(max_per_host=2)
        first = queue.get_host_semaphore("https://cdn.test/a.bundle")
        second = queue.get_host_semaphore("https://cdn.test/b.bundle")
        other = queue.get_host_semaphore("https://mirror.test/a.bundle")
        assert first is second
        assert first is not other

    def test_all_results_yielded(self):
        """Test every submitted download produces one result."""

        async def _run():
            queue = DownloadQueue(max_concurrency=3)
            keys = [f"bundle_{i}.bundle" for i in range(7)]
            for key in keys:
                await queue.submit(0, key, f"https://cdn.test/{key}", lambda k=key: _make_ok_result(k))
            return [result async for result in queue.run(len(keys))]

        results = asyncio.run(_run())
        assert sorted(r.key for r in results) == sorted(f"bundle_{i}.bundle" for i in range(7))
        assert all(r.ok for r in results)

    def test_priority_order(self):
        """Test lower priority values are processed first."""
        order: list[str] = []

        async def _download(key: str) -> DownloadResult:
            order.append(key)
            return await _make_ok_result(key)

        async def _run():
            queue = DownloadQueue(max_concurrency=1)
            await queue.submit(5, "late", "https://cdn.test/late", lambda: _download("late"))
            await queue.submit(0, "first", "https://cdn.test/first", lambda: _download("first"))
            await queue.submit(2, "middle", "https://cdn.test/middle", lambda: _download("middle"))
            async for _ in queue.run(3):
                pass

        asyncio.run(_run())
        assert order == ["first", "middle", "late"]

    def test_single_attempt_by_default(self):
        """Test a failing download is not retried by default."""
        calls = 0

        async def _failing() -> DownloadResult:
            nonlocal calls
            calls += 1
            raise ConnectionError("refused")

        async def _run():
            queue = DownloadQueue()
            await queue.submit(0, "a.bundle", "https://cdn.test/a.bundle", _failing)
            return [result async for result in queue.run(1)]

        results = asyncio.run(_run())
        assert calls == 1
        assert len(results) == 1
        assert not results[0].ok
        assert results[0].error == "refused"
        assert results[0].attempts == 1

    def test_retry_until_success(self):
        """Test retries with backoff when attempts are configured."""
        calls = 0

        async def _flaky() -> DownloadResult:
            nonlocal calls
            calls += 1
            if calls < 3:
                return DownloadResult(key="a.bundle", path=None, error="HTTP 503")
            return await _make_ok_result("a.bundle")

        async def _run():
            queue = DownloadQueue(max_attempts=3, base_backoff=0.001)
            await queue.submit(0, "a.bundle", "https://cdn.test/a.bundle", _flaky)
            return [result async for result in queue.run(1)]

        results = asyncio.run(_run())
        assert results[0].ok
        assert results[0].attempts == 3

    def test_concurrency_limit(self):
        """Test no more than max_concurrency downloads run at once."""
        active = 0
        peak = 0

        async def _slow(key: str) -> DownloadResult:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return await _make_ok_result(key)

        async def _run():
            queue = DownloadQueue(max_concurrency=2, max_per_host=4)
            for i in range(6):
                key = f"b{i}"
                await queue.submit(0, key, f"https://cdn.test/{key}", lambda k=key: _slow(k))
            async for _ in queue.run(6):
                pass

        asyncio.run(_run())
        assert peak == 2

    def test_progress_callback(self):
        """Test progress reports completed count and bytes."""
        progress: list[tuple[int, int, int]] = []

        async def _run():
            queue = DownloadQueue(max_concurrency=1)
            queue.progress_callback = lambda done, total, size: progress.append((done, total, size))
            for key in ("aa", "bbb"):
                await queue.submit(0, key, f"https://cdn.test/{key}", lambda k=key: _make_ok_result(k))
            async for _ in queue.run(2):
                pass

        asyncio.run(_run())
        assert progress == [(1, 2, 2), (2, 2, 5)]

    def test_closing_early_cancels_workers(self):
        """Test closing the iterator stops outstanding downloads."""
        started: list[str] = []

        async def _hang(key: str) -> DownloadResult:
            started.append(key)
            await asyncio.sleep(10)
            return await _make_ok_result(key)

        async def _run():
            queue = DownloadQueue(max_concurrency=2)
            await queue.submit(0, "fast", "https://cdn.test/fast", lambda: _make_ok_result("fast"))
            for key in ("slow1", "slow2"):
                await queue.submit(1, key, f"https://cdn.test/{key}", lambda k=key: _hang(k))
            results = queue.run(3)
            first = await results.__anext__()
            await results.aclose()
            return first

        first = asyncio.run(asyncio.wait_for(_run(), timeout=5))
        assert first.key == "fast"
