"""Full and hotfix build flows.

A full build bumps the major version, ships every bundle and resets the
snapshot history. A hotfix build bumps the patch version, ships only the
assets changed since the head snapshot (regrouped into the hotfix group)
and stages a snapshot that becomes head on ``confirm_release``.

Output layout:

    <output_root>/
    ├── manifest.json                    # pointer to the latest package
    ├── <Project>_<M.m.p>.labels.json    # labels config of that build
    └── <Project>_<M.m.p>/               # package (see organizer)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import structlog

from hotfix_tools.build.exporter import ManifestExporter
from hotfix_tools.build.organizer import BuildOrganizer
from hotfix_tools.build.snapshot import (
    SnapshotDiff,
    SnapshotHistory,
    hotfix_manifest,
    scan_assets,
)
from hotfix_tools.core.config import BuildConfig
from hotfix_tools.core.errors import BuildError
from hotfix_tools.core.types import VersionNumber
from hotfix_tools.core.version_store import VersionStore
from hotfix_tools.formats.content import ContentManifest
from hotfix_tools.formats.labels import LabelsConfig, LabelsConfigParser
from hotfix_tools.formats.manifest import MANIFEST_FILENAME, Manifest, ManifestParser
from hotfix_tools.formats.version_state import VersionState

logger = structlog.get_logger()

BUILT_IN_GROUP = "Built In Data"


@dataclass
class BuildReport:
    """What a build produced."""

    version: VersionNumber
    package_name: str
    package_dir: Path
    state: VersionState
    labels_path: Path
    manifest_path: Path
    diff: SnapshotDiff | None = None


class BuildPipeline:
    """Drives one build from bundler output to a publishable package."""

    def __init__(self, config: BuildConfig | None = None):
        self.config = config or BuildConfig()
        self.organizer = BuildOrganizer(self.config.max_package_size)

    @property
    def skip_groups(self) -> set[str]:
        return {BUILT_IN_GROUP, self.config.hotfix_group}

    def package_name(self, version: VersionNumber) -> str:
        return f"{self.config.project_name}_{version}"

    def build_full(
        self,
        raw_dir: Path,
        manifest: ContentManifest,
        content_root: Path,
        now: datetime | None = None,
    ) -> BuildReport:
        """Build a full package and reset snapshot history."""
        store = VersionStore.load(self.config.version_db)
        history = SnapshotHistory.load(self.config.snapshot_path)

        version = store.increment(major=True)
        assets = scan_assets(manifest, content_root, self.skip_groups)
        labels = ManifestExporter(manifest).export()

        report = self._emit(raw_dir, labels, version, delete_list=[])

        history.rebuild(assets, version)
        history.save(self.config.snapshot_path)
        self._finish(store, now)
        return report

    def build_hotfix(
        self,
        raw_dir: Path,
        manifest: ContentManifest,
        content_root: Path,
        now: datetime | None = None,
    ) -> BuildReport:
        """Build a hotfix package against the head snapshot.

        Raises:
            BuildError: If there is no head snapshot or nothing changed
        """
        store = VersionStore.load(self.config.version_db)
        history = SnapshotHistory.load(self.config.snapshot_path)
        if history.head is None:
            raise BuildError("No head snapshot; run a full build first")

        version = store.increment()
        assets = scan_assets(manifest, content_root, self.skip_groups)
        diff = history.prepare_hotfix(assets, version, self.config.hotfix_group)
        if not diff.has_changes:
            raise BuildError("No asset changes since the head snapshot")

        regrouped = hotfix_manifest(manifest, diff, self.config.hotfix_group)
        labels = ManifestExporter(regrouped).export()

        report = self._emit(raw_dir, labels, version, delete_list=diff.delete_list)
        report.diff = diff

        history.save(self.config.snapshot_path)
        self._finish(store, now)
        return report

    def confirm_release(self) -> VersionNumber:
        """Make the staged hotfix snapshot the new head."""
        history = SnapshotHistory.load(self.config.snapshot_path)
        released = history.confirm_release()
        history.save(self.config.snapshot_path)
        return released.version

    def _emit(
        self,
        raw_dir: Path,
        labels: LabelsConfig,
        version: VersionNumber,
        delete_list: list[str],
    ) -> BuildReport:
        output_root = self.config.output_root
        package_name = self.package_name(version)
        package_dir = output_root / package_name

        logger.info("build_started", package=package_name, raw_dir=str(raw_dir))
        state = self.organizer.organize(raw_dir, package_dir, labels, version, delete_list)

        labels_path = output_root / f"{package_name}.labels.json"
        manifest_path = output_root / MANIFEST_FILENAME
        try:
            LabelsConfigParser().build_file(labels, labels_path)
            ManifestParser().build_file(
                Manifest(latest_package=package_name, latest_version=version),
                manifest_path,
            )
        except ValueError as e:
            raise BuildError(str(e)) from e

        logger.info("build_completed", package=package_name, hash=state.hash)
        return BuildReport(
            version=version,
            package_name=package_name,
            package_dir=package_dir,
            state=state,
            labels_path=labels_path,
            manifest_path=manifest_path,
        )

    def _finish(self, store: VersionStore, now: datetime | None) -> None:
        count = store.record_build(now)
        store.save()
        logger.debug("build_recorded", version=str(store.current_version), builds_today=count)
