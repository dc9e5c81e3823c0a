"""Parser and builder for version_state.json descriptors.

A version descriptor is published once per build and never modified
afterwards. Clients compare the rollup ``hash`` of their installed
descriptor against the remote one to decide whether new content exists.

Format (JSON, camelCase keys):

    {
      "version": {"major": 1, "minor": 0, "patch": 1},
      "hash": "<rollup md5>",
      "totalSize": 1234,
      "bundles": [
        {"bundleName": "...", "hash": "...", "size": 100, "logicalKey": "..."}
      ],
      "deleteList": ["ui_assets_icons"]
    }
"""

from __future__ import annotations

from pathlib import Path

import structlog
from pydantic import Field

from hotfix_tools.core.types import BundleInfo, CamelModel, VersionNumber
from hotfix_tools.formats.base import JsonModelParser

logger = structlog.get_logger()


class VersionState(CamelModel):
    """Authoritative descriptor of one published package."""

    version: VersionNumber = Field(default_factory=VersionNumber)
    hash: str = Field(default="", description="Rollup hash of the package")
    total_size: int = Field(default=0, ge=0, description="Sum of bundle sizes")
    bundles: list[BundleInfo] = Field(default_factory=list)
    delete_list: list[str] = Field(
        default_factory=list,
        description="Bundle name prefixes superseded by this package",
    )

    def same_content(self, other: VersionState) -> bool:
        """Rollup hash equality, ignoring hex case."""
        return bool(self.hash) and self.hash.lower() == other.hash.lower()

    def bundle_map(self) -> dict[str, BundleInfo]:
        """Map bundle identity to bundle, first occurrence wins."""
        result: dict[str, BundleInfo] = {}
        for bundle in self.bundles:
            result.setdefault(bundle.identity, bundle)
        return result


class VersionStateParser(JsonModelParser[VersionState]):
    """Parser for version_state.json."""

    model = VersionState


def load_version_state(path: Path) -> VersionState | None:
    """Load a descriptor, returning None if it is missing or unreadable."""
    if not path.exists():
        return None
    try:
        return VersionStateParser().parse_file(path)
    except ValueError as e:
        logger.error("version_state_parse_failed", path=str(path), error=str(e))
        return None
