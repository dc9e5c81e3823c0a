"""Package organization of raw bundler output.

Turns the flat output of the content bundler into a publishable package:

    <target_dir>/
    ├── catalog.json
    ├── version_state.json      # written last
    └── bundles/
        ├── ui_assets_prefabmenu_3f2a.bundle
        └── ...

A package without ``version_state.json`` is incomplete and must not be
published.
"""

from __future__ import annotations

import shutil
from pathlib import Path

import structlog

from hotfix_tools.build.exporter import bundle_prefix
from hotfix_tools.core.errors import BuildError, SizeLimitExceeded
from hotfix_tools.core.hashing import VERSION_STATE_FILENAME, hash_directory, hash_file
from hotfix_tools.core.paths import BUNDLES_DIR
from hotfix_tools.core.types import UNKNOWN_LOGICAL_KEY, BundleInfo, VersionNumber
from hotfix_tools.formats.catalog import (
    CATALOG_FILENAME,
    is_catalog_checksum_name,
    is_catalog_name,
)
from hotfix_tools.formats.content import (
    BUNDLE_IDENTITIES_FILENAME,
    BundleIdentityTable,
    BundleIdentityTableParser,
)
from hotfix_tools.formats.labels import LabelsConfig
from hotfix_tools.formats.version_state import VersionState, VersionStateParser

logger = structlog.get_logger()

BUNDLE_EXTENSIONS = {".bundle", ".bin"}
DEFAULT_MAX_PACKAGE_SIZE = 1024 * 1024 * 1024  # 1GB


class BuildOrganizer:
    """Copies bundler output into package layout and writes its descriptor.

    Args:
        max_package_size: Packages whose bundles total this many bytes or
            more are rejected
    """

    def __init__(self, max_package_size: int = DEFAULT_MAX_PACKAGE_SIZE):
        self.max_package_size = max_package_size

    def organize(
        self,
        raw_dir: Path,
        target_dir: Path,
        labels_config: LabelsConfig,
        version: VersionNumber,
        delete_list: list[str],
        identities: BundleIdentityTable | None = None,
    ) -> VersionState:
        """Organize a raw build into a package.

        Args:
            raw_dir: Bundler output directory
            target_dir: Package directory; recreated from scratch
            labels_config: Exported labels config of the build
            version: Version of the package
            delete_list: Bundle name prefixes superseded by this package
            identities: Bundle identity table; loaded from
                ``bundle_identities.json`` in raw_dir when not given

        Returns:
            The written VersionState

        Raises:
            BuildError: On missing input, catalog count other than one, or
                any IO failure
            SizeLimitExceeded: If the bundles reach max_package_size
        """
        if not raw_dir.is_dir():
            raise BuildError(f"Raw build directory not found: {raw_dir}")

        catalogs, bundles = self._classify(raw_dir)
        if len(catalogs) != 1:
            raise BuildError(
                f"Expected exactly one catalog in {raw_dir}, found {len(catalogs)}"
            )

        if identities is None:
            identities = self._load_identities(raw_dir)

        try:
            if target_dir.exists():
                shutil.rmtree(target_dir)
            bundle_dir = target_dir / BUNDLES_DIR
            bundle_dir.mkdir(parents=True)

            shutil.copy2(catalogs[0], target_dir / CATALOG_FILENAME)
            for source in bundles:
                shutil.copy2(source, bundle_dir / source.name)

            state = VersionState(version=version, delete_list=list(delete_list))
            for source in bundles:
                copied = bundle_dir / source.name
                info = BundleInfo(
                    bundle_name=source.name,
                    hash=hash_file(copied),
                    size=copied.stat().st_size,
                    logical_key=self._resolve_logical_key(
                        source.name, labels_config, identities
                    ),
                )
                state.bundles.append(info)
                state.total_size += info.size

            if state.total_size >= self.max_package_size:
                logger.error(
                    "package_size_exceeded",
                    total_size=state.total_size,
                    limit=self.max_package_size,
                )
                raise SizeLimitExceeded(state.total_size, self.max_package_size)

            state.hash = hash_directory(target_dir)
            VersionStateParser().build_file(state, target_dir / VERSION_STATE_FILENAME)
        except OSError as e:
            raise BuildError(f"Failed to organize {raw_dir} into {target_dir}: {e}") from e
        except ValueError as e:
            raise BuildError(str(e)) from e

        logger.info(
            "package_organized",
            target=str(target_dir),
            version=str(version),
            bundles=len(state.bundles),
            total_size=state.total_size,
            hash=state.hash,
        )
        return state

    def _classify(self, raw_dir: Path) -> tuple[list[Path], list[Path]]:
        catalogs: list[Path] = []
        bundles: list[Path] = []
        for path in sorted(raw_dir.rglob("*")):
            if not path.is_file():
                continue
            name = path.name
            if is_catalog_name(name):
                catalogs.append(path)
            elif is_catalog_checksum_name(name) or name == BUNDLE_IDENTITIES_FILENAME:
                continue
            elif path.suffix.lower() in BUNDLE_EXTENSIONS:
                bundles.append(path)
            else:
                logger.debug("raw_file_ignored", file=name)
        return catalogs, bundles

    def _load_identities(self, raw_dir: Path) -> BundleIdentityTable:
        path = raw_dir / BUNDLE_IDENTITIES_FILENAME
        if not path.is_file():
            return BundleIdentityTable()
        try:
            return BundleIdentityTableParser().parse_file(path)
        except ValueError as e:
            raise BuildError(f"Invalid bundle identity table: {e}") from e

    def _resolve_logical_key(
        self,
        bundle_name: str,
        labels_config: LabelsConfig,
        identities: BundleIdentityTable,
    ) -> str:
        identity = identities.lookup(bundle_name)
        if identity is not None:
            logical = labels_config.get_logical_hash(identity.group, identity.combine_label)
            if logical:
                return logical
            logger.warning(
                "bundle_identity_unmatched",
                bundle=bundle_name,
                group=identity.group,
                combine_label=identity.combine_label,
            )
            return UNKNOWN_LOGICAL_KEY

        best_prefix = ""
        best_hash = ""
        for item in labels_config.label_logical_hashes:
            prefix = bundle_prefix(item.group, item.combine_label)
            if len(prefix) <= len(best_prefix) or not bundle_name.startswith(prefix):
                continue
            rest = bundle_name[len(prefix):]
            if rest and rest[0] not in "_.":
                continue
            best_prefix, best_hash = prefix, item.hash

        if best_hash:
            return best_hash

        logger.warning("bundle_logical_key_unknown", bundle=bundle_name)
        return UNKNOWN_LOGICAL_KEY
