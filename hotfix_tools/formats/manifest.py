"""Parser and builder for the manifest.json pointer.

The manifest lives at a fixed, well-known URL and is overwritten on every
release. It only tells clients which package directory is current.
"""

from __future__ import annotations

from pydantic import Field, field_validator

from hotfix_tools.core.types import CamelModel, VersionNumber
from hotfix_tools.formats.base import JsonModelParser

MANIFEST_FILENAME = "manifest.json"


class Manifest(CamelModel):
    """Pointer to the latest published package."""

    latest_package: str = Field(..., description="Package directory name, e.g. Game_1.0.1")
    latest_version: VersionNumber = Field(..., description="Version of that package")

    @field_validator("latest_package")
    @classmethod
    def validate_latest_package(cls, v: str) -> str:
        """Reject empty names and path traversal."""
        stripped = v.strip().strip("/")
        if not stripped:
            raise ValueError("latestPackage cannot be empty")
        if ".." in stripped.split("/"):
            raise ValueError(f"Invalid latestPackage: {v}")
        return stripped


class ManifestParser(JsonModelParser[Manifest]):
    """Parser for manifest.json."""

    model = Manifest
