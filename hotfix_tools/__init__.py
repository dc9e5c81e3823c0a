"""Hotfix Tools - incremental content updates for packaged programs.

This package builds small content deltas ("hotfixes") at build time and
applies them on the client at startup without a full reinstall.

Key modules:
- core: Runtime pipeline (hashing, downloads, update orchestration, promotion)
- formats: JSON file formats (version state, manifest, catalog, labels config)
- build: Build-time export, package organization and snapshot diffing
- commands: CLI command implementations
"""

__version__ = "0.1.0"
__author__ = "Hotfix Tools Team"

# Re-export commonly used types
from hotfix_tools.core.types import (
    BundleInfo,
    PackageEntry,
    VersionNumber,
)
from hotfix_tools.formats.manifest import Manifest
from hotfix_tools.formats.version_state import VersionState

__all__ = [
    "__version__",
    "__author__",
    "BundleInfo",
    "Manifest",
    "PackageEntry",
    "VersionNumber",
    "VersionState",
]
