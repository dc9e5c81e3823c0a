"""Parsers and builders for the JSON files of a hotfix package.

- Version state: per-package descriptor with bundle list and rollup hash
- Manifest: well-known pointer to the latest package
- Catalog: content address to location index
- Labels config: exported entry/label/logical-hash index
- Content: build inputs (content groups, bundle identity table)
"""

from hotfix_tools.formats.base import FormatParser, JsonModelParser
from hotfix_tools.formats.catalog import (
    CATALOG_FILENAME,
    CatalogParser,
    ContentCatalog,
    is_catalog_checksum_name,
    is_catalog_name,
)
from hotfix_tools.formats.content import (
    BUNDLE_IDENTITIES_FILENAME,
    BundleIdentity,
    BundleIdentityTable,
    BundleIdentityTableParser,
    ContentEntry,
    ContentGroup,
    ContentManifest,
    ContentManifestParser,
)
from hotfix_tools.formats.labels import (
    GroupLabelToLogicalHash,
    LabelsConfig,
    LabelsConfigParser,
    LabelToKeys,
    TypeToKeys,
)
from hotfix_tools.formats.manifest import MANIFEST_FILENAME, Manifest, ManifestParser
from hotfix_tools.formats.version_state import (
    VersionState,
    VersionStateParser,
    load_version_state,
)

__all__ = [
    # Base
    "FormatParser",
    "JsonModelParser",
    # Catalog
    "CATALOG_FILENAME",
    "CatalogParser",
    "ContentCatalog",
    "is_catalog_checksum_name",
    "is_catalog_name",
    # Content
    "BUNDLE_IDENTITIES_FILENAME",
    "BundleIdentity",
    "BundleIdentityTable",
    "BundleIdentityTableParser",
    "ContentEntry",
    "ContentGroup",
    "ContentManifest",
    "ContentManifestParser",
    # Labels
    "GroupLabelToLogicalHash",
    "LabelsConfig",
    "LabelsConfigParser",
    "LabelToKeys",
    "TypeToKeys",
    # Manifest
    "MANIFEST_FILENAME",
    "Manifest",
    "ManifestParser",
    # Version state
    "VersionState",
    "VersionStateParser",
    "load_version_state",
]
