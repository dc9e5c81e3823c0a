"""Core type definitions for hotfix_tools."""

from __future__ import annotations

import re
from enum import StrEnum
from functools import total_ordering

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from hotfix_tools.core.utils import validate_hash_string

UNTYPED = "Untyped"
UNKNOWN_LOGICAL_KEY = "Unknown"

_VERSION_RE = re.compile(r"^\s*v?(\d+)\.(\d+)\.(\d+)\s*$")


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys on disk."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Environment(StrEnum):
    """Build environment of the installed base package."""
    RELEASE = "Release"
    DEBUG = "Debug"


@total_ordering
class VersionNumber(CamelModel):
    """Semantic-style version ordered by major, then minor, then patch."""

    model_config = ConfigDict(frozen=True)

    major: int = Field(default=1, ge=0, description="Incompatible content break")
    minor: int = Field(default=0, ge=0, description="Incremental feature release")
    patch: int = Field(default=0, ge=0, description="Incremental fix release")

    @classmethod
    def parse(cls, text: str) -> VersionNumber:
        """Parse a ``M.m.p`` version string.

        Raises:
            ValueError: If the string is not three dot-separated integers
        """
        match = _VERSION_RE.match(text)
        if match is None:
            raise ValueError(f"Invalid version string: {text!r}")
        major, minor, patch = (int(part) for part in match.groups())
        return cls(major=major, minor=minor, patch=patch)

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def bump(self, major: bool = False, minor: bool = False) -> VersionNumber:
        """Return the next version.

        A major bump resets minor and patch, a minor bump resets patch,
        otherwise the patch number is incremented.
        """
        if major:
            return VersionNumber(major=self.major + 1, minor=0, patch=0)
        if minor:
            return VersionNumber(major=self.major, minor=self.minor + 1, patch=0)
        return VersionNumber(major=self.major, minor=self.minor, patch=self.patch + 1)

    def is_major_change(self, other: VersionNumber) -> bool:
        return self.major != other.major

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, VersionNumber):
            return NotImplemented
        return self.as_tuple() < other.as_tuple()

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class BundleInfo(CamelModel):
    """One physical bundle file inside a published package."""

    bundle_name: str = Field(..., description="File name under bundles/")
    hash: str = Field(..., description="Hex MD5 of the file content")
    size: int = Field(..., ge=0, description="File size in bytes")
    logical_key: str = Field(
        default=UNKNOWN_LOGICAL_KEY,
        description="Logical hash of the (group, labels) pair the bundle packs",
    )

    @field_validator("bundle_name")
    @classmethod
    def validate_bundle_name(cls, v: str) -> str:
        """Bundle names are plain file names under bundles/."""
        if not v or "/" in v or "\\" in v or ".." in v or "\0" in v:
            raise ValueError(f"Invalid bundle name: {v!r}")
        return v

    @field_validator("hash")
    @classmethod
    def validate_hash(cls, v: str) -> str:
        """Validate hex digest."""
        if not validate_hash_string(v):
            raise ValueError(f"Invalid bundle hash: {v!r}")
        return v

    @property
    def identity(self) -> str:
        """Key used to correlate bundles across versions.

        Falls back to the file name when the logical key could not be
        resolved at build time.
        """
        if self.logical_key and self.logical_key != UNKNOWN_LOGICAL_KEY:
            return self.logical_key
        return self.bundle_name


class PackageEntry(CamelModel):
    """One addressable content item."""

    key: str = Field(..., description="Content address")
    type: str = Field(default=UNTYPED, description="First label, or Untyped")
    labels: list[str] = Field(default_factory=list, description="Content labels")

    @classmethod
    def from_labels(cls, key: str, labels: list[str]) -> PackageEntry:
        """Create an entry whose type is derived from its first label."""
        return cls(key=key, type=labels[0] if labels else UNTYPED, labels=list(labels))
