"""Content fingerprinting for bundles and packages.

All digests are lowercase hex MD5. MD5 is used for integrity and change
detection only, never as a security boundary.

The package rollup hash is computed over every file of a package
directory except the version descriptor itself. Per-file digests are
concatenated in order of their POSIX relative path so the result does
not depend on filesystem enumeration order.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from pathlib import Path

import structlog

from hotfix_tools.core.utils import chunked_read

logger = structlog.get_logger()

VERSION_STATE_FILENAME = "version_state.json"


def hash_file(path: Path) -> str:
    """Hash a file's content.

    Args:
        path: File to hash

    Returns:
        Hex MD5 digest of the file bytes

    Raises:
        OSError: If the file cannot be read
    """
    md5 = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in chunked_read(f):
            md5.update(chunk)
    return md5.hexdigest()


def hash_string(content: str) -> str:
    """Hash a string's UTF-8 encoding."""
    return hashlib.md5(content.encode("utf-8")).hexdigest()


def iter_package_files(
    root: Path, exclude: Iterable[str] = (VERSION_STATE_FILENAME,)
) -> list[tuple[str, Path]]:
    """List files under root sorted by POSIX relative path.

    Args:
        root: Directory to enumerate recursively
        exclude: POSIX paths relative to root to skip

    Returns:
        (relative_path, absolute_path) pairs in sorted order
    """
    excluded = set(exclude)
    files: list[tuple[str, Path]] = []
    for path in root.rglob("*"):
        if not path.is_file():
            continue
        relative = path.relative_to(root).as_posix()
        if relative not in excluded:
            files.append((relative, path))
    files.sort(key=lambda item: item[0])
    return files


def hash_directory(
    root: Path, exclude: Iterable[str] = (VERSION_STATE_FILENAME,)
) -> str:
    """Compute the rollup hash of a package directory.

    Args:
        root: Package directory
        exclude: Relative paths left out of the rollup

    Returns:
        Hex MD5 of the concatenated per-file digests

    Raises:
        OSError: If any file cannot be read
    """
    digests = [hash_file(path) for _, path in iter_package_files(root, exclude)]
    rollup = hash_string("".join(digests))
    logger.debug("directory_hashed", root=str(root), files=len(digests), hash=rollup)
    return rollup
