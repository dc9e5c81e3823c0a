"""Startup update flow.

Runs once per program start:

1. Bootstrapping: local directories, content resolver
2. Recovering: leftovers of an interrupted run
3. Checking manifest: which package is current remotely
4. Comparing versions: installed descriptor against the remote one
5. Downloading: changed bundles, catalog and descriptor into staging
6. Promoting: staged content into the local root
7. Merging catalog: promoted catalog into the resolver

Any fetch or verification failure before promotion discards the staging
root and leaves the program running on installed content. The ``ready``
event of the context is set when the flow ends, whatever the outcome. A
major version change clears the local root only during promotion, once
the new package is fully staged.
"""

from __future__ import annotations

import asyncio
import contextlib
import functools
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

import httpx
import structlog
from filelock import FileLock, Timeout

from hotfix_tools.core.catalog import CatalogMerger, ContentResolver, LocalContentResolver
from hotfix_tools.core.config import AppConfig
from hotfix_tools.core.download_queue import DownloadQueue, DownloadResult
from hotfix_tools.core.downloader import Downloader
from hotfix_tools.core.errors import (
    BootstrapError,
    NetworkUnavailable,
    UpdateCancelled,
    UpdateInProgressError,
)
from hotfix_tools.core.hashing import VERSION_STATE_FILENAME
from hotfix_tools.core.integrity import verify_bundle_file
from hotfix_tools.core.paths import BUNDLES_DIR, PathLayout
from hotfix_tools.core.promoter import PromotionReport, RecoveryAction, StagingPromoter
from hotfix_tools.core.types import BundleInfo
from hotfix_tools.core.utils import atomic_write_text, join_url
from hotfix_tools.core.version_check import VersionDiff, compute_diff
from hotfix_tools.formats.catalog import CATALOG_FILENAME
from hotfix_tools.formats.manifest import Manifest
from hotfix_tools.formats.version_state import (
    VersionState,
    VersionStateParser,
    load_version_state,
)

logger = structlog.get_logger()


class UpdateStage(StrEnum):
    """Last stage the update flow reached."""
    BOOTSTRAPPING = "bootstrapping"
    RECOVERING = "recovering"
    CHECKING_MANIFEST = "checking_manifest"
    COMPARING_VERSIONS = "comparing_versions"
    DOWNLOADING = "downloading"
    STAGED = "staged"
    PROMOTED = "promoted"
    CATALOG_MERGED = "catalog_merged"
    RUN_LOCAL = "run_local"


class UpdateOutcome(StrEnum):
    """How the program proceeds after the flow."""
    UPDATED = "updated"
    UP_TO_DATE = "up_to_date"
    RUN_LOCAL = "run_local"


@dataclass
class UpdateResult:
    """Summary of one update run."""

    stage: UpdateStage = UpdateStage.BOOTSTRAPPING
    outcome: UpdateOutcome = UpdateOutcome.RUN_LOCAL
    local_version: str | None = None
    remote_version: str | None = None
    downloaded: list[str] = field(default_factory=lambda: list[str]())
    deleted: list[str] = field(default_factory=lambda: list[str]())
    wiped: bool = False
    recovery: RecoveryAction = RecoveryAction.none
    error: str | None = None


@dataclass
class UpdateContext:
    """Everything one update run works with."""

    config: AppConfig
    layout: PathLayout
    downloader: Downloader
    resolver: ContentResolver
    merger: CatalogMerger
    promoter: StagingPromoter = field(default_factory=StagingPromoter)
    ready: asyncio.Event = field(default_factory=asyncio.Event)

    @classmethod
    def create(
        cls,
        config: AppConfig,
        resolver: ContentResolver | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> UpdateContext:
        layout = PathLayout.from_config(config)
        resolver = resolver or LocalContentResolver()
        return cls(
            config=config,
            layout=layout,
            downloader=Downloader(config.remote, transport=transport),
            resolver=resolver,
            merger=CatalogMerger(resolver, layout.local_bundle_root),
        )

    async def aclose(self) -> None:
        await self.downloader.close()


class UpdateOrchestrator:
    """Drives the startup update flow.

    Args:
        context: Collaborators and paths for the run
        cancel: Optional event; once set, the flow stops before promotion
        progress_callback: Optional (completed, total, bytes) bundle progress
    """

    def __init__(
        self,
        context: UpdateContext,
        cancel: asyncio.Event | None = None,
        progress_callback: Callable[[int, int, int], None] | None = None,
    ):
        self.context = context
        self.cancel = cancel
        self.progress_callback = progress_callback
        self._lock = asyncio.Lock()

    @property
    def layout(self) -> PathLayout:
        return self.context.layout

    def _check_cancelled(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise UpdateCancelled("Update cancelled before promotion")

    async def run(self) -> UpdateResult:
        """Run the update flow once.

        The context's ``ready`` event is set once the flow ends, including
        RunLocal and bootstrap failures. A run refused by the update lock
        never starts, so it leaves ``ready`` untouched for the run that
        holds the lock.

        Returns:
            UpdateResult describing the outcome

        Raises:
            UpdateInProgressError: If another run holds the update lock
            BootstrapError: If the content resolver cannot be initialized
            PromotionError: If promotion fails part way
        """
        if self._lock.locked():
            raise UpdateInProgressError("An update is already running in this process")

        async with self._lock:
            self.layout.ensure_directories()
            file_lock = FileLock(str(self.layout.lock_path))
            try:
                file_lock.acquire(timeout=0)
            except Timeout as e:
                raise UpdateInProgressError(
                    f"Another process holds {self.layout.lock_path}"
                ) from e

            try:
                return await self._run_flow()
            finally:
                file_lock.release()
                self.context.ready.set()

    async def _run_flow(self) -> UpdateResult:
        result = UpdateResult()
        layout = self.layout
        promoter = self.context.promoter

        logger.info("update_started", root=str(layout.hotfix_root))
        if not await self.context.resolver.initialize():
            raise BootstrapError("Content resolver failed to initialize")

        result.stage = UpdateStage.RECOVERING
        result.recovery = await asyncio.to_thread(
            promoter.recover, layout.staging_root, layout.local_root
        )

        local = await asyncio.to_thread(
            load_version_state, layout.local_root / VERSION_STATE_FILENAME
        )
        result.local_version = str(local.version) if local else None

        try:
            prepared = await self._prepare(result, local)
        except (NetworkUnavailable, UpdateCancelled, OSError) as e:
            await asyncio.to_thread(promoter.discard_staging, layout.staging_root)
            logger.warning("update_failed_running_local", stage=result.stage.value, error=str(e))
            result.error = str(e)
            return await self._run_local(result)
        except asyncio.CancelledError:
            await asyncio.to_thread(promoter.discard_staging, layout.staging_root)
            raise

        if prepared is None:
            return await self._run_local(result)

        remote, diff = prepared
        report = await self._promote(diff)
        result.stage = UpdateStage.PROMOTED
        result.deleted = report.deleted
        result.wiped = diff.major_change

        await self.context.merger.load_external_catalog(layout.local_root / CATALOG_FILENAME)
        result.stage = UpdateStage.CATALOG_MERGED
        result.outcome = UpdateOutcome.UPDATED
        logger.info(
            "update_applied",
            version=str(remote.version),
            downloaded=len(result.downloaded),
            deleted=len(result.deleted),
        )
        return result

    async def _prepare(
        self, result: UpdateResult, local: VersionState | None
    ) -> tuple[VersionState, VersionDiff] | None:
        """Stage an update. Returns None when there is nothing to apply."""
        layout = self.layout
        remote_config = self.context.config.remote
        downloader = self.context.downloader

        result.stage = UpdateStage.CHECKING_MANIFEST
        self._check_cancelled()
        manifest_url = join_url(remote_config.base_url, remote_config.manifest_name)
        manifest = await downloader.fetch_json(manifest_url, Manifest)
        if manifest is None:
            raise NetworkUnavailable("Manifest unavailable", url=manifest_url)
        logger.info(
            "manifest_fetched",
            package=manifest.latest_package,
            version=str(manifest.latest_version),
        )

        result.stage = UpdateStage.COMPARING_VERSIONS
        self._check_cancelled()
        package_url = join_url(remote_config.base_url, manifest.latest_package)
        state_url = join_url(package_url, VERSION_STATE_FILENAME)
        remote_text = await downloader.fetch_text(state_url)
        if remote_text is None:
            raise NetworkUnavailable("Version descriptor unavailable", url=state_url)
        try:
            remote = VersionStateParser().parse_text(remote_text)
        except ValueError as e:
            raise NetworkUnavailable(f"Malformed version descriptor: {e}", url=state_url) from e
        result.remote_version = str(remote.version)

        diff = compute_diff(local, remote, layout.local_bundle_root)
        if diff.up_to_date:
            result.outcome = UpdateOutcome.UP_TO_DATE
            return None

        if diff.major_change:
            logger.warning(
                "major_version_changed",
                local=result.local_version,
                remote=result.remote_version,
            )

        result.stage = UpdateStage.DOWNLOADING
        await asyncio.to_thread(self.context.promoter.discard_staging, layout.staging_root)
        layout.staging_bundle_root.mkdir(parents=True, exist_ok=True)

        await self._download_bundles(package_url, diff.download, result)

        self._check_cancelled()
        catalog_url = join_url(package_url, CATALOG_FILENAME)
        if not await downloader.fetch_bytes(catalog_url, layout.staging_root / CATALOG_FILENAME):
            raise NetworkUnavailable("Catalog unavailable", url=catalog_url)

        await asyncio.to_thread(
            atomic_write_text, layout.staging_root / VERSION_STATE_FILENAME, remote_text
        )
        result.stage = UpdateStage.STAGED
        self._check_cancelled()
        return remote, diff

    async def _download_bundles(
        self, package_url: str, bundles: list[BundleInfo], result: UpdateResult
    ) -> None:
        if not bundles:
            return

        remote_config = self.context.config.remote
        queue = DownloadQueue(
            max_concurrency=remote_config.max_concurrency,
            max_per_host=remote_config.max_per_host,
            max_attempts=remote_config.max_attempts,
            base_backoff=remote_config.base_backoff,
        )
        queue.progress_callback = self.progress_callback

        by_name: dict[str, BundleInfo] = {}
        for bundle in bundles:
            url = join_url(package_url, BUNDLES_DIR, bundle.bundle_name)
            by_name[bundle.bundle_name] = bundle
            await queue.submit(
                0,
                bundle.bundle_name,
                url,
                functools.partial(self._download_bundle, bundle, url),
            )

        logger.info("bundle_download_started", count=len(bundles))
        async with contextlib.aclosing(queue.run(len(bundles))) as results:
            async for download in results:
                self._check_cancelled()
                if not download.ok or download.path is None:
                    raise NetworkUnavailable(
                        f"Bundle {download.key} failed: {download.error}"
                    )
                await asyncio.to_thread(verify_bundle_file, download.path, by_name[download.key])
                result.downloaded.append(download.key)

    async def _download_bundle(self, bundle: BundleInfo, url: str) -> DownloadResult:
        save_path = self.layout.staging_bundle_root / bundle.bundle_name
        if not await self.context.downloader.fetch_bytes(url, save_path):
            return DownloadResult(key=bundle.bundle_name, path=None, error=f"GET {url} failed")
        return DownloadResult(
            key=bundle.bundle_name, path=save_path, size=save_path.stat().st_size
        )

    async def _promote(self, diff: VersionDiff) -> PromotionReport:
        """Promote staged content; cancellation waits for the move to finish."""
        layout = self.layout
        task = asyncio.ensure_future(
            asyncio.to_thread(
                self.context.promoter.promote,
                diff.delete_list,
                layout.staging_root,
                layout.local_root,
                diff.major_change,
            )
        )
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            await task
            raise

    async def _run_local(self, result: UpdateResult) -> UpdateResult:
        """Keep running on installed content, loading its catalog if any."""
        result.stage = UpdateStage.RUN_LOCAL
        if result.outcome != UpdateOutcome.UP_TO_DATE:
            result.outcome = UpdateOutcome.RUN_LOCAL

        local_catalog = self.layout.local_root / CATALOG_FILENAME
        local_state = self.layout.local_root / VERSION_STATE_FILENAME
        if local_catalog.is_file() and local_state.is_file():
            await self.context.merger.load_external_catalog(local_catalog)

        logger.info("running_local", outcome=result.outcome.value, error=result.error)
        return result
