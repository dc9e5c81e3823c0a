"""Catalog merging and location redirection.

After an update is promoted, the local ``catalog.json`` is loaded into the
content resolver on top of the catalog shipped with the base package.
Catalog locations produced by the build point at the remote host; a
redirect installed on the resolver rewrites them to the promoted bundle
files so content loads never touch the network.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Protocol
from urllib.parse import unquote, urlparse

import structlog

from hotfix_tools.formats.catalog import CatalogParser

logger = structlog.get_logger()

PathRedirect = Callable[[str], str]


@dataclass
class CatalogLocator:
    """A catalog loaded into a resolver."""

    locator_id: str
    path: Path
    entries: dict[str, str] = field(default_factory=lambda: dict[str, str]())


class ContentResolver(Protocol):
    """Content loading collaborator driven by the update flow."""

    async def initialize(self) -> bool: ...

    async def load_catalog(self, path: Path) -> CatalogLocator: ...

    def set_path_redirect(self, redirect: PathRedirect | None) -> None: ...


def is_remote_location(location: str) -> bool:
    return location.startswith(("http://", "https://"))


class LocalContentResolver:
    """In-process resolver merging catalogs additively.

    Catalogs loaded later win per address. Relative locations are
    resolved against the directory of the catalog that declared them.
    """

    def __init__(self, base_catalog: Path | None = None):
        self.base_catalog = base_catalog
        self.locators: list[CatalogLocator] = []
        self._redirect: PathRedirect | None = None
        self._initialized = False

    async def initialize(self) -> bool:
        """Load the base package catalog, if one is configured."""
        if self._initialized:
            return True
        if self.base_catalog is not None:
            try:
                await self.load_catalog(self.base_catalog)
            except ValueError as e:
                logger.error("resolver_init_failed", catalog=str(self.base_catalog), error=str(e))
                return False
        self._initialized = True
        return True

    async def load_catalog(self, path: Path) -> CatalogLocator:
        """Load a catalog file.

        Raises:
            ValueError: If the catalog cannot be read or parsed
        """
        catalog = await asyncio.to_thread(CatalogParser().parse_file, path)
        entries: dict[str, str] = {}
        for address, location in catalog.entries.items():
            if is_remote_location(location) or Path(location).is_absolute():
                entries[address] = location
            else:
                entries[address] = str(path.parent / location)

        locator = CatalogLocator(
            locator_id=catalog.locator_id or path.as_posix(),
            path=path,
            entries=entries,
        )
        self.locators.append(locator)
        logger.info("catalog_loaded", locator=locator.locator_id, entries=len(entries))
        return locator

    def set_path_redirect(self, redirect: PathRedirect | None) -> None:
        self._redirect = redirect

    def resolve(self, address: str) -> str | None:
        """Return the location of an address, or None if no catalog has it."""
        for locator in reversed(self.locators):
            location = locator.entries.get(address)
            if location is not None:
                return self._redirect(location) if self._redirect else location
        return None

    def addresses(self) -> set[str]:
        result: set[str] = set()
        for locator in self.locators:
            result.update(locator.entries)
        return result


class CatalogMerger:
    """Loads promoted catalogs into a resolver with local redirection.

    Args:
        resolver: Content resolver to load catalogs into
        bundle_root: Local directory holding promoted bundle files
    """

    def __init__(self, resolver: ContentResolver, bundle_root: Path):
        self.resolver = resolver
        self.bundle_root = bundle_root
        self.locators: list[CatalogLocator] = []
        self._redirect_installed = False

    def redirect(self, location: str) -> str:
        """Map a remote location to the local bundle file when it exists."""
        if not is_remote_location(location):
            return location

        name = PurePosixPath(unquote(urlparse(location).path)).name
        if not name:
            return location

        candidate = self.bundle_root / name
        if candidate.is_file():
            return str(candidate)
        return location

    def install_redirect(self) -> None:
        if self._redirect_installed:
            return
        self.resolver.set_path_redirect(self.redirect)
        self._redirect_installed = True
        logger.debug("path_redirect_installed", bundle_root=str(self.bundle_root))

    async def load_external_catalog(self, path: Path) -> bool:
        """Load a promoted catalog.

        The returned locator is held for the rest of the run so the
        resolver keeps its entries.

        Returns:
            True if the catalog was loaded
        """
        if not path.is_file():
            logger.warning("external_catalog_missing", path=str(path))
            return False

        self.install_redirect()
        try:
            locator = await self.resolver.load_catalog(path)
        except ValueError as e:
            logger.error("external_catalog_invalid", path=str(path), error=str(e))
            return False

        self.locators.append(locator)
        return True
