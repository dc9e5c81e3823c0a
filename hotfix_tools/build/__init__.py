"""Build-time tooling: labels export, package organization, snapshots."""

from hotfix_tools.build.exporter import ManifestExporter, bundle_prefix, combine_labels
from hotfix_tools.build.organizer import BuildOrganizer
from hotfix_tools.build.pipeline import BuildPipeline, BuildReport
from hotfix_tools.build.snapshot import (
    AssetSnapshot,
    BuildSnapshot,
    SnapshotDiff,
    SnapshotHistory,
    find_changes,
    hotfix_manifest,
    scan_assets,
)

__all__ = [
    "AssetSnapshot",
    "BuildOrganizer",
    "BuildPipeline",
    "BuildReport",
    "BuildSnapshot",
    "ManifestExporter",
    "SnapshotDiff",
    "SnapshotHistory",
    "bundle_prefix",
    "combine_labels",
    "find_changes",
    "hotfix_manifest",
    "scan_assets",
]
