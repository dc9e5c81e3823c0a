"""Parser and builder for catalog.json content catalogs.

A catalog maps content addresses to the location the resolver loads them
from. Locations are either remote URLs (``https://.../bundles/x.bundle``)
or paths relative to the package root (``bundles/x.bundle``).
"""

from __future__ import annotations

from pydantic import Field

from hotfix_tools.core.types import CamelModel
from hotfix_tools.formats.base import JsonModelParser

CATALOG_FILENAME = "catalog.json"


class ContentCatalog(CamelModel):
    """Address to location index consumed by the content resolver."""

    locator_id: str = Field(default="", description="Identifier of this catalog")
    entries: dict[str, str] = Field(
        default_factory=dict, description="Content address -> location"
    )


class CatalogParser(JsonModelParser[ContentCatalog]):
    """Parser for catalog.json."""

    model = ContentCatalog


def is_catalog_name(file_name: str) -> bool:
    """Check whether a raw build output file is a content catalog."""
    lower = file_name.lower()
    return lower.startswith("catalog") and lower.endswith(".json")


def is_catalog_checksum_name(file_name: str) -> bool:
    """Check whether a raw build output file is a catalog checksum."""
    lower = file_name.lower()
    return lower.startswith("catalog") and lower.endswith(".hash")
