"""Core functionality for hotfix_tools.

This module provides shared functionality used across the entire package:
- Configuration management
- Type definitions and errors
- Content hashing and integrity checks
- Utility functions

The runtime update pipeline lives in the submodules (downloader,
version_check, promoter, catalog, orchestrator) and is imported from there.
"""

from hotfix_tools.core.types import (
    UNKNOWN_LOGICAL_KEY,
    UNTYPED,
    BundleInfo,
    Environment,
    PackageEntry,
    VersionNumber,
)
from hotfix_tools.core.utils import (
    atomic_write_bytes,
    atomic_write_text,
    chunked_read,
    compute_md5,
    format_size,
    join_url,
    validate_hash_string,
)

__all__ = [
    # Types
    "UNKNOWN_LOGICAL_KEY",
    "UNTYPED",
    "BundleInfo",
    "Environment",
    "PackageEntry",
    "VersionNumber",
    # Utils
    "atomic_write_bytes",
    "atomic_write_text",
    "chunked_read",
    "compute_md5",
    "format_size",
    "join_url",
    "validate_hash_string",
]
