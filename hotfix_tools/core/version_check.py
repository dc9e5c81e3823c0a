"""Version comparison between installed and published packages.

Each remote bundle is classified against the installed descriptor as
unchanged (0), needs_download (1) or obsolete (6). Bundles are correlated
across versions by their identity (logical key, or file name when the key
is unknown), so a bundle that was renamed because its content changed is
recognized as a replacement rather than an unrelated addition.

A change of major version invalidates everything installed: the whole
remote package is downloaded, and the local root is cleared when the
staged package is promoted.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from hotfix_tools.core.types import BundleInfo
from hotfix_tools.formats.version_state import VersionState

logger = structlog.get_logger()


class BundleClassification(enum.Enum):
    """Classification of a bundle during version comparison."""

    unchanged = 0
    needs_download = 1
    obsolete = 6


@dataclass
class VersionDiff:
    """Result of comparing the installed descriptor against the remote one."""

    up_to_date: bool = False
    major_change: bool = False
    full_download: bool = False
    download: list[BundleInfo] = field(default_factory=lambda: list[BundleInfo]())
    delete_list: list[str] = field(default_factory=lambda: list[str]())
    classifications: dict[str, BundleClassification] = field(
        default_factory=lambda: dict[str, BundleClassification]()
    )

    @property
    def download_size(self) -> int:
        return sum(bundle.size for bundle in self.download)


def is_major_update(local: VersionState | None, remote: VersionState) -> bool:
    """True when an installed package exists and its major version differs."""
    return local is not None and local.version.is_major_change(remote.version)


def _merge_names(*groups: list[str]) -> list[str]:
    merged: list[str] = []
    seen: set[str] = set()
    for names in groups:
        for name in names:
            if name and name not in seen:
                seen.add(name)
                merged.append(name)
    return merged


def compute_diff(
    local: VersionState | None,
    remote: VersionState,
    local_bundle_root: Path | None = None,
) -> VersionDiff:
    """Compute what an update from ``local`` to ``remote`` must transfer.

    Steps:
    1. Equal rollup hashes -> up to date, nothing to do
    2. No local descriptor or a major change -> download every remote bundle
    3. Otherwise per remote bundle, matched by identity:
       - Same name and hash -> unchanged
       - Missing locally, or name or hash differs -> needs_download
         (a replaced file name goes on the delete list)
    4. Local bundles with no remote counterpart -> obsolete

    Args:
        local: Installed descriptor, or None when nothing is installed
        remote: Published descriptor
        local_bundle_root: When given, unchanged bundles whose file is
            missing on disk are downloaded again

    Returns:
        VersionDiff with the download list and the merged delete list
    """
    diff = VersionDiff()

    if local is not None and local.same_content(remote):
        diff.up_to_date = True
        logger.info("version_up_to_date", version=str(remote.version), hash=remote.hash)
        return diff

    diff.major_change = is_major_update(local, remote)
    if local is None or diff.major_change:
        diff.full_download = True
        diff.download = list(remote.bundles)
        for bundle in remote.bundles:
            diff.classifications[bundle.bundle_name] = BundleClassification.needs_download
        diff.delete_list = _merge_names(remote.delete_list)
        logger.info(
            "version_diff_full",
            local=str(local.version) if local else None,
            remote=str(remote.version),
            bundles=len(diff.download),
        )
        return diff

    local_map = local.bundle_map()
    remote_identities: set[str] = set()
    replaced: list[str] = []

    for bundle in remote.bundles:
        identity = bundle.identity
        remote_identities.add(identity)
        old = local_map.get(identity)

        unchanged = (
            old is not None
            and old.bundle_name == bundle.bundle_name
            and old.hash.lower() == bundle.hash.lower()
        )
        if unchanged and local_bundle_root is not None:
            unchanged = (local_bundle_root / bundle.bundle_name).is_file()

        if unchanged:
            diff.classifications[bundle.bundle_name] = BundleClassification.unchanged
            continue

        diff.classifications[bundle.bundle_name] = BundleClassification.needs_download
        diff.download.append(bundle)
        if old is not None and old.bundle_name != bundle.bundle_name:
            replaced.append(old.bundle_name)

    obsolete: list[str] = []
    for identity, old in local_map.items():
        if identity not in remote_identities:
            diff.classifications[old.bundle_name] = BundleClassification.obsolete
            obsolete.append(old.bundle_name)

    for name in replaced:
        diff.classifications.setdefault(name, BundleClassification.obsolete)

    diff.delete_list = _merge_names(remote.delete_list, replaced, obsolete)

    logger.info(
        "version_diff_computed",
        local=str(local.version),
        remote=str(remote.version),
        download=len(diff.download),
        delete=len(diff.delete_list),
        bytes=diff.download_size,
    )
    return diff
