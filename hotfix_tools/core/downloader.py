"""HTTP fetcher for manifests, descriptors, catalogs and bundles."""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from hotfix_tools.core.config import RemoteConfig

logger = structlog.get_logger()

T = TypeVar("T", bound=BaseModel)

ProgressCallback = Callable[[float], None]


class Downloader:
    """Single-attempt async HTTP fetcher.

    Failures are reported as ``None``/``False`` rather than raised; the
    update flow decides what a failed fetch means. Retry, if wanted, is the
    job of :class:`~hotfix_tools.core.download_queue.DownloadQueue`.
    """

    def __init__(
        self,
        config: RemoteConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize downloader.

        Args:
            config: Remote configuration (timeout, SSL verification)
            transport: Optional transport, used to fake the remote in tests
        """
        self.config = config or RemoteConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout,
                verify=self.config.verify_ssl,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def fetch_text(self, url: str) -> str | None:
        """Fetch a text document.

        Returns:
            Body decoded as text, or None on transport error or non-2xx status
        """
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("fetch_text_failed", url=url, error=str(e))
            return None

        logger.debug("fetch_text_success", url=url, size=len(response.content))
        return response.text

    async def fetch_json(self, url: str, model: type[T]) -> T | None:
        """Fetch a JSON document and validate it against a model.

        Returns:
            Parsed model, or None if the fetch failed or the body is malformed
        """
        text = await self.fetch_text(url)
        if text is None:
            return None

        try:
            return model.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("fetch_json_invalid", url=url, model=model.__name__, error=str(e))
            return None

    async def fetch_bytes(
        self,
        url: str,
        save_path: Path,
        progress: ProgressCallback | None = None,
    ) -> bool:
        """Stream a file to disk.

        The body is written to ``<name>.part`` and renamed into place only
        after the transfer completes, so ``save_path`` never holds a
        partial file.

        Args:
            url: Source URL
            save_path: Destination file
            progress: Optional callback receiving the completed fraction

        Returns:
            True if the file was saved
        """
        save_path.parent.mkdir(parents=True, exist_ok=True)
        part_path = save_path.with_name(save_path.name + ".part")

        try:
            async with self.client.stream("GET", url) as response:
                response.raise_for_status()
                expected = int(response.headers.get("Content-Length", 0) or 0)
                received = 0
                with open(part_path, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
                        received += len(chunk)
                        if progress and expected > 0:
                            progress(min(received / expected, 1.0))
            os.replace(part_path, save_path)
        except (httpx.HTTPError, OSError) as e:
            logger.warning("fetch_bytes_failed", url=url, error=str(e))
            return False
        finally:
            part_path.unlink(missing_ok=True)

        if progress:
            progress(1.0)
        logger.debug("fetch_bytes_success", url=url, path=str(save_path), size=received)
        return True

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Downloader:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()
