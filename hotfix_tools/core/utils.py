"""Shared utilities for hotfix-tools."""

from __future__ import annotations

import hashlib
import os
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO


def compute_md5(data: bytes) -> str:
    """Compute MD5 hash as lowercase hex.

    Args:
        data: Input data to hash

    Returns:
        32-character hex digest

    Example:
        >>> compute_md5(b"hello")
        '5d41402abc4b2a76b9719d911017c592'
    """
    return hashlib.md5(data).hexdigest()


def chunked_read(
    stream: BinaryIO,
    chunk_size: int = 65536
) -> Iterator[bytes]:
    """Read stream in chunks.

    Args:
        stream: Binary stream to read from
        chunk_size: Size of each chunk in bytes

    Yields:
        Data chunks as bytes

    Raises:
        ValueError: If chunk_size is not positive

    Example:
        >>> import io
        >>> stream = io.BytesIO(b"hello world")
        >>> list(chunked_read(stream, chunk_size=5))
        [b'hello', b' worl', b'd']
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        yield chunk


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write a file through a temporary sibling and ``os.replace``.

    Readers never observe a half-written file; an interrupted write
    leaves at most a stray ``.tmp`` file behind.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_bytes(data)
    os.replace(tmp_path, path)


def atomic_write_text(path: Path, text: str) -> None:
    """Text variant of :func:`atomic_write_bytes` (UTF-8)."""
    atomic_write_bytes(path, text.encode("utf-8"))


def join_url(base: str, *parts: str) -> str:
    """Join URL path segments with single slashes.

    Example:
        >>> join_url("https://cdn.example.com/hotfix/", "Game_1.0.1", "catalog.json")
        'https://cdn.example.com/hotfix/Game_1.0.1/catalog.json'
    """
    url = base.rstrip("/")
    for part in parts:
        stripped = part.strip("/")
        if stripped:
            url = f"{url}/{stripped}"
    return url


def format_size(size: int) -> str:
    """Format byte size as human-readable string.

    Args:
        size: Size in bytes

    Returns:
        Formatted string with appropriate unit (e.g., "1.5 MB")

    Example:
        >>> format_size(1024)
        '1.0 KB'
        >>> format_size(1536)
        '1.5 KB'
        >>> format_size(1048576)
        '1.0 MB'
    """
    if size < 0:
        return "0 B"

    size_float = float(size)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_float < 1024.0:
            if unit == "B":
                return f"{int(size_float)} {unit}"
            return f"{size_float:.1f} {unit}"
        size_float /= 1024.0
    return f"{size_float:.1f} PB"


def validate_hash_string(hash_str: str) -> bool:
    """Check that a descriptor digest is non-empty, even-length hex.

    Example:
        >>> validate_hash_string("9e107d9d372bb6826bd81d3542a419d6")
        True
        >>> validate_hash_string("rollup")
        False
        >>> validate_hash_string("abc")
        False
    """
    if not hash_str or any(ch.isspace() for ch in hash_str):
        return False
    try:
        bytes.fromhex(hash_str)
    except ValueError:
        return False
    return True
