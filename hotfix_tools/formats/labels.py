"""Parser and builder for the exported labels config.

The labels config is the build-time index of every addressable entry:

- ``allEntries``: one PackageEntry per addressable key
- ``keysByType``: type (first label) -> keys
- ``keysByLabel``: label -> keys (unlabeled keys under ``Untyped``)
- ``labelLogicalHashes``: (group, combined labels) -> logical hash

Bundles are packed per (group, combined labels), so the logical hash lets
an opaque bundle file be traced back to the content it carries.
"""

from __future__ import annotations

from pydantic import Field, PrivateAttr

from hotfix_tools.core.types import CamelModel, PackageEntry
from hotfix_tools.formats.base import JsonModelParser


def logical_hash_key(group: str, combined_label: str) -> str:
    """Case-insensitive lookup key for a (group, combined label) pair."""
    return f"{group.lower()}_{combined_label.lower()}"


class TypeToKeys(CamelModel):
    type: str
    keys: list[str] = Field(default_factory=list)


class LabelToKeys(CamelModel):
    label: str
    keys: list[str] = Field(default_factory=list)


class GroupLabelToLogicalHash(CamelModel):
    group: str
    combine_label: str = Field(..., description="Concatenated, lowercased labels")
    hash: str


class LabelsConfig(CamelModel):
    """Exported content index with lazily built lookup tables."""

    all_entries: list[PackageEntry] = Field(default_factory=list)
    keys_by_type: list[TypeToKeys] = Field(default_factory=list)
    keys_by_label: list[LabelToKeys] = Field(default_factory=list)
    label_logical_hashes: list[GroupLabelToLogicalHash] = Field(default_factory=list)

    _type_dict: dict[str, list[str]] | None = PrivateAttr(default=None)
    _label_dict: dict[str, list[str]] | None = PrivateAttr(default=None)
    _hash_dict: dict[str, str] | None = PrivateAttr(default=None)

    def _build_lookups(self) -> None:
        self._type_dict = {item.type: item.keys for item in self.keys_by_type}
        self._label_dict = {item.label: item.keys for item in self.keys_by_label}
        hashes: dict[str, str] = {}
        for item in self.label_logical_hashes:
            hashes.setdefault(logical_hash_key(item.group, item.combine_label), item.hash)
        self._hash_dict = hashes

    def get_keys_by_type(self, entry_type: str) -> list[str]:
        if self._type_dict is None:
            self._build_lookups()
        assert self._type_dict is not None
        return list(self._type_dict.get(entry_type, []))

    def get_keys_by_label(self, label: str) -> list[str]:
        if self._label_dict is None:
            self._build_lookups()
        assert self._label_dict is not None
        return list(self._label_dict.get(label, []))

    def get_labels(self) -> list[str]:
        if self._label_dict is None:
            self._build_lookups()
        assert self._label_dict is not None
        return list(self._label_dict)

    def get_logical_hash(self, group: str, combined_label: str) -> str:
        """Return the logical hash for a pair, or an empty string."""
        if self._hash_dict is None:
            self._build_lookups()
        assert self._hash_dict is not None
        return self._hash_dict.get(logical_hash_key(group, combined_label), "")


class LabelsConfigParser(JsonModelParser[LabelsConfig]):
    """Parser for exported labels config files."""

    model = LabelsConfig
