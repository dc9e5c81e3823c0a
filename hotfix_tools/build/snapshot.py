"""Build snapshots and differential processing.

Every full build records a snapshot of all authored assets (GUID, group,
labels, content hash). A hotfix build scans the current assets, diffs them
against the head snapshot, and ships only what changed, in a dedicated
hotfix group. The staged snapshot of a hotfix build becomes the new head
once the release is confirmed.

History layout (JSON, camelCase keys):

    {
      "headIndex": 0,
      "snapshots": [{"version": {...}, "timestamp": "...", "assets": [...],
                     "deleteList": [...]}],
      "staged": null
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import structlog
from pydantic import Field, ValidationError

from hotfix_tools.build.exporter import bundle_prefix
from hotfix_tools.core.errors import BuildError
from hotfix_tools.core.hashing import hash_file
from hotfix_tools.core.types import CamelModel, VersionNumber
from hotfix_tools.core.utils import atomic_write_text
from hotfix_tools.formats.content import ContentGroup, ContentManifest

logger = structlog.get_logger()

DEFAULT_HOTFIX_GROUP = "HotfixGroup"
DEFAULT_SKIP_GROUPS = frozenset({"Built In Data", DEFAULT_HOTFIX_GROUP})


class AssetSnapshot(CamelModel):
    """State of one authored asset at build time."""

    address: str = ""
    path: str = ""
    guid: str
    group_name: str
    labels: list[str] = Field(default_factory=list)
    file_hash: str = ""
    file_size: int = Field(default=0, ge=0)
    remote_group_name: str = Field(
        default="", description="Group the asset was shipped in by a hotfix"
    )
    has_updated: bool = Field(
        default=False, description="Asset has been released in a hotfix group"
    )

    @property
    def shipped_group(self) -> str:
        if self.has_updated and self.remote_group_name:
            return self.remote_group_name
        return self.group_name

    @property
    def carrier_prefix(self) -> str:
        """Prefix of the bundle that currently carries this asset."""
        return bundle_prefix(self.shipped_group, self.labels)


class BuildSnapshot(CamelModel):
    version: VersionNumber
    timestamp: str = Field(default_factory=lambda: datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
    assets: list[AssetSnapshot] = Field(default_factory=list)
    delete_list: list[str] = Field(default_factory=list)


@dataclass
class SnapshotDiff:
    """Changes of the current assets against the head snapshot."""

    modified: list[AssetSnapshot] = field(default_factory=lambda: list[AssetSnapshot]())
    added: list[AssetSnapshot] = field(default_factory=lambda: list[AssetSnapshot]())
    removed: list[AssetSnapshot] = field(default_factory=lambda: list[AssetSnapshot]())
    delete_list: list[str] = field(default_factory=lambda: list[str]())

    @property
    def changed(self) -> list[AssetSnapshot]:
        """Assets that must ship in the hotfix group."""
        return self.modified + self.added

    @property
    def has_changes(self) -> bool:
        return bool(self.modified or self.added or self.removed)


class SnapshotHistory(CamelModel):
    """Append-only snapshot history with one head and one staged slot."""

    head_index: int = -1
    snapshots: list[BuildSnapshot] = Field(default_factory=list)
    staged: BuildSnapshot | None = None

    @classmethod
    def load(cls, path: Path) -> SnapshotHistory:
        """Load history, or an empty history if the file does not exist.

        Raises:
            BuildError: If the file exists but cannot be parsed
        """
        if not path.exists():
            return cls()
        try:
            return cls.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise BuildError(f"Invalid snapshot history {path}: {e}") from e

    def save(self, path: Path) -> None:
        text = json.dumps(self.model_dump(mode="json", by_alias=True), indent=2)
        atomic_write_text(path, text + "\n")
        logger.debug("snapshot_history_saved", path=str(path), snapshots=len(self.snapshots))

    @property
    def head(self) -> BuildSnapshot | None:
        if 0 <= self.head_index < len(self.snapshots):
            return self.snapshots[self.head_index]
        return None

    def rebuild(self, current: list[AssetSnapshot], version: VersionNumber) -> BuildSnapshot:
        """Reset history to a single base snapshot (full build)."""
        base = BuildSnapshot(version=version, assets=current)
        self.snapshots = [base]
        self.head_index = 0
        self.staged = None
        logger.info("snapshots_rebuilt", version=str(version), assets=len(current))
        return base

    def prepare_hotfix(
        self,
        current: list[AssetSnapshot],
        version: VersionNumber,
        hotfix_group: str = DEFAULT_HOTFIX_GROUP,
    ) -> SnapshotDiff:
        """Diff against head and stage the snapshot of a hotfix build.

        Changed and added assets are assigned to the hotfix group;
        unchanged assets keep the shipping state recorded in head.

        Raises:
            BuildError: If there is no head snapshot (no full build yet)
        """
        head = self.head
        if head is None:
            raise BuildError("No head snapshot; run a full build first")

        diff = find_changes(current, head)
        changed = {asset.guid for asset in diff.changed}
        head_by_guid = {asset.guid: asset for asset in head.assets}

        staged_assets: list[AssetSnapshot] = []
        for asset in current:
            if asset.guid in changed:
                staged_assets.append(
                    asset.model_copy(update={"remote_group_name": hotfix_group, "has_updated": False})
                )
                continue
            previous = head_by_guid.get(asset.guid)
            if previous is not None:
                asset = asset.model_copy(
                    update={
                        "remote_group_name": previous.remote_group_name,
                        "has_updated": previous.has_updated,
                    }
                )
            staged_assets.append(asset)

        self.staged = BuildSnapshot(
            version=version, assets=staged_assets, delete_list=list(diff.delete_list)
        )
        logger.info(
            "hotfix_prepared",
            version=str(version),
            modified=len(diff.modified),
            added=len(diff.added),
            removed=len(diff.removed),
            delete_list=len(diff.delete_list),
        )
        return diff

    def confirm_release(self) -> BuildSnapshot:
        """Promote the staged snapshot to head.

        Raises:
            BuildError: If nothing is staged
        """
        if self.staged is None:
            raise BuildError("No staged snapshot to confirm; build a hotfix first")

        released = self.staged
        for asset in released.assets:
            if asset.remote_group_name:
                asset.has_updated = True
        self.snapshots.append(released)
        self.head_index = len(self.snapshots) - 1
        self.staged = None
        logger.info("release_confirmed", version=str(released.version), head_index=self.head_index)
        return released


def scan_assets(
    manifest: ContentManifest,
    content_root: Path,
    skip_groups: frozenset[str] | set[str] = DEFAULT_SKIP_GROUPS,
) -> list[AssetSnapshot]:
    """Snapshot every authored asset whose source file exists."""
    assets: list[AssetSnapshot] = []
    for group in manifest.groups:
        if group.name in skip_groups:
            continue
        for entry in group.entries:
            if not entry.path or not entry.guid:
                continue
            source = content_root / entry.path
            if not source.is_file():
                logger.debug("asset_source_missing", path=entry.path, group=group.name)
                continue
            assets.append(
                AssetSnapshot(
                    address=entry.address,
                    path=entry.path,
                    guid=entry.guid,
                    group_name=group.name,
                    labels=list(entry.labels),
                    file_hash=hash_file(source),
                    file_size=source.stat().st_size,
                )
            )
    return assets


def _append_unique(items: list[str], value: str) -> None:
    if value not in items:
        items.append(value)


def find_changes(current: list[AssetSnapshot], head: BuildSnapshot) -> SnapshotDiff:
    """Compare current assets against a snapshot, keyed by GUID.

    A change of content hash, group, labels or address counts as a
    modification. The bundle that carried the old state of a modified or
    removed asset goes on the delete list.
    """
    diff = SnapshotDiff()
    head_by_guid: dict[str, AssetSnapshot] = {}
    for asset in head.assets:
        head_by_guid.setdefault(asset.guid, asset)

    current_guids: set[str] = set()
    for asset in current:
        current_guids.add(asset.guid)
        old = head_by_guid.get(asset.guid)
        if old is None:
            logger.debug("asset_added", path=asset.path)
            diff.added.append(asset)
            continue

        if (
            asset.file_hash != old.file_hash
            or asset.group_name != old.group_name
            or asset.labels != old.labels
            or asset.address != old.address
        ):
            logger.debug("asset_modified", path=asset.path)
            diff.modified.append(asset)
            _append_unique(diff.delete_list, old.carrier_prefix)

    for old in head.assets:
        if old.guid not in current_guids:
            logger.debug("asset_removed", path=old.path)
            diff.removed.append(old)
            _append_unique(diff.delete_list, old.carrier_prefix)

    return diff


def hotfix_manifest(
    manifest: ContentManifest,
    diff: SnapshotDiff,
    hotfix_group: str = DEFAULT_HOTFIX_GROUP,
) -> ContentManifest:
    """Content manifest with every changed entry moved to the hotfix group."""
    changed = {asset.guid for asset in diff.changed}
    groups: list[ContentGroup] = []
    moved = ContentGroup(name=hotfix_group)

    for group in manifest.groups:
        kept = ContentGroup(name=group.name)
        for entry in group.entries:
            if entry.guid and entry.guid in changed:
                moved.entries.append(entry)
            else:
                kept.entries.append(entry)
        groups.append(kept)

    if moved.entries:
        groups.append(moved)
    return ContentManifest(groups=groups)
