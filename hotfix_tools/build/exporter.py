"""Labels config export.

Walks the authored content groups and produces the labels config shipped
with every package: entry list, type and label indexes, and one logical
hash per (group, combined labels) pair. Bundles are packed per such pair,
so the logical hash is what lets a bundle file be correlated across builds
even when its file name changes.
"""

from __future__ import annotations

import structlog

from hotfix_tools.core.hashing import hash_string
from hotfix_tools.core.types import UNTYPED, PackageEntry
from hotfix_tools.formats.content import ContentManifest
from hotfix_tools.formats.labels import (
    GroupLabelToLogicalHash,
    LabelsConfig,
    LabelToKeys,
    TypeToKeys,
)

logger = structlog.get_logger()

UNTYPED_COMBINED = "untyped"


def combine_labels(labels: list[str]) -> str:
    """Concatenated lowercased labels, or ``untyped`` for none."""
    if not labels:
        return UNTYPED_COMBINED
    return "".join(labels).lower()


def bundle_prefix(group: str, labels: list[str] | str) -> str:
    """File name prefix of the bundle packing a (group, labels) pair.

    Example:
        >>> bundle_prefix("UI", ["Prefab", "Menu"])
        'ui_assets_prefabmenu'
    """
    combined = labels.lower() if isinstance(labels, str) else combine_labels(labels)
    return f"{group.lower()}_assets_{combined}"


class ManifestExporter:
    """Builds a LabelsConfig from a content manifest."""

    def __init__(self, manifest: ContentManifest):
        self.manifest = manifest

    def export(self) -> LabelsConfig:
        """Export the labels config.

        Entries without an address are skipped. Every index list is sorted
        so identical input always produces identical output.
        """
        entries: list[PackageEntry] = []
        by_type: dict[str, list[str]] = {}
        by_label: dict[str, list[str]] = {}
        by_pair: dict[tuple[str, str], list[str]] = {}
        skipped = 0

        for group in self.manifest.groups:
            group_key = group.name.lower()
            for entry in group.entries:
                if not entry.address:
                    skipped += 1
                    continue

                package_entry = PackageEntry.from_labels(entry.address, entry.labels)
                entries.append(package_entry)
                by_type.setdefault(package_entry.type, []).append(entry.address)

                for label in entry.labels or [UNTYPED]:
                    by_label.setdefault(label, []).append(entry.address)

                pair = (group_key, combine_labels(entry.labels))
                by_pair.setdefault(pair, []).append(entry.address)

        config = LabelsConfig(
            all_entries=sorted(entries, key=lambda e: e.key),
            keys_by_type=[
                TypeToKeys(type=name, keys=sorted(keys)) for name, keys in sorted(by_type.items())
            ],
            keys_by_label=[
                LabelToKeys(label=name, keys=sorted(keys)) for name, keys in sorted(by_label.items())
            ],
            label_logical_hashes=[
                GroupLabelToLogicalHash(
                    group=group,
                    combine_label=combined,
                    hash=hash_string("".join(sorted(keys))),
                )
                for (group, combined), keys in sorted(by_pair.items())
            ],
        )

        logger.info(
            "labels_config_exported",
            entries=len(config.all_entries),
            types=len(config.keys_by_type),
            labels=len(config.keys_by_label),
            logical_hashes=len(config.label_logical_hashes),
            skipped=skipped,
        )
        return config
