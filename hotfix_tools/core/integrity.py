"""Content integrity verification for downloaded bundles.

Every bundle listed in a version descriptor carries its size and the MD5
of its bytes. Verification happens at two levels:

1. The file size must match the descriptor size
2. The MD5 of the file content must equal the descriptor hash
"""

from __future__ import annotations

from pathlib import Path

import structlog

from hotfix_tools.core.errors import HashMismatch
from hotfix_tools.core.hashing import hash_file
from hotfix_tools.core.types import BundleInfo

logger = structlog.get_logger()


def verify_content_hash(actual_hash: str, expected_hash: str, key: str) -> bool:
    """Compare two hex digests, ignoring case.

    Args:
        actual_hash: Hash computed from the downloaded content
        expected_hash: Hash from the version descriptor
        key: Artifact name used in the error

    Returns:
        True if the hashes match

    Raises:
        HashMismatch: If the hashes differ
    """
    if actual_hash.lower() != expected_hash.lower():
        raise HashMismatch(
            f"Content hash mismatch for {key}: expected {expected_hash}, "
            f"got {actual_hash}",
            expected=expected_hash,
            actual=actual_hash,
            key=key,
        )
    return True


def verify_size(actual_size: int, expected_size: int, key: str) -> bool:
    """Verify a downloaded artifact has the descriptor size.

    Raises:
        HashMismatch: If the size does not match
    """
    if actual_size != expected_size:
        raise HashMismatch(
            f"Size mismatch for {key}: expected {expected_size}, "
            f"got {actual_size}",
            expected=expected_size,
            actual=actual_size,
            key=key,
        )
    return True


def verify_bundle_file(path: Path, bundle: BundleInfo) -> bool:
    """Verify a staged bundle file against its descriptor entry.

    Args:
        path: Downloaded bundle file
        bundle: Descriptor entry for the bundle

    Returns:
        True if size and hash both match

    Raises:
        HashMismatch: If size or hash differ
        OSError: If the file cannot be read
    """
    verify_size(path.stat().st_size, bundle.size, bundle.bundle_name)
    verify_content_hash(hash_file(path), bundle.hash, bundle.bundle_name)
    logger.debug("bundle_verified", bundle=bundle.bundle_name, hash=bundle.hash)
    return True
