"""Build inputs: authored content groups and the bundle identity table.

The content manifest describes every authored entry, organized into named
groups:

    {
      "groups": [
        {"name": "UI", "entries": [
          {"address": "ui/main", "path": "ui/main.prefab",
           "guid": "5f1c...", "labels": ["Prefab", "Menu"]}
        ]}
      ]
    }

The bundle identity table is written by the bundler at the moment it names
each bundle file, so the organizer never has to recover a group or label
set by splitting file names:

    {"bundles": {"ui_assets_prefabmenu_3f2a.bundle":
                 {"group": "ui", "combineLabel": "prefabmenu"}}}
"""

from __future__ import annotations

from pydantic import Field

from hotfix_tools.core.types import CamelModel
from hotfix_tools.formats.base import JsonModelParser

BUNDLE_IDENTITIES_FILENAME = "bundle_identities.json"


class ContentEntry(CamelModel):
    """One authored, addressable asset."""

    address: str = Field(default="", description="Content address (key)")
    path: str = Field(default="", description="Source file, relative to the content root")
    guid: str = Field(default="", description="Stable asset identifier")
    labels: list[str] = Field(default_factory=list)


class ContentGroup(CamelModel):
    """A named group of entries; bundles never span groups."""

    name: str
    entries: list[ContentEntry] = Field(default_factory=list)


class ContentManifest(CamelModel):
    """Every authored group of one build."""

    groups: list[ContentGroup] = Field(default_factory=list)


class ContentManifestParser(JsonModelParser[ContentManifest]):
    model = ContentManifest


class BundleIdentity(CamelModel):
    group: str
    combine_label: str


class BundleIdentityTable(CamelModel):
    """Bundle file name -> (group, combined labels) side table."""

    bundles: dict[str, BundleIdentity] = Field(default_factory=dict)

    def lookup(self, bundle_name: str) -> BundleIdentity | None:
        return self.bundles.get(bundle_name)


class BundleIdentityTableParser(JsonModelParser[BundleIdentityTable]):
    model = BundleIdentityTable
