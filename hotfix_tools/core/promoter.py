"""Promotion of staged update content into the active local root.

Promotion is the only step that modifies the local root during an update.
It is bracketed by a journal file so an interrupted promotion is detected
on the next start:

1. Write ``.promotion.json`` into the local root
2. Clear the local root on a major change, otherwise delete local
   bundles matching the delete list
3. Move every staged file into the local root, ``version_state.json`` last
4. Remove the staging root, then the journal

The local descriptor is replaced only after every other file is in place,
so a descriptor in the local root always describes content that is present.
"""

from __future__ import annotations

import enum
import json
import os
import shutil
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import structlog

from hotfix_tools.core.errors import PromotionError
from hotfix_tools.core.hashing import VERSION_STATE_FILENAME
from hotfix_tools.core.paths import BUNDLES_DIR
from hotfix_tools.core.utils import atomic_write_text
from hotfix_tools.formats.version_state import VersionStateParser

logger = structlog.get_logger()

JOURNAL_FILENAME = ".promotion.json"


class RecoveryAction(enum.Enum):
    """What startup recovery did with leftover update state."""

    none = "none"
    resumed = "resumed"
    wiped_local = "wiped_local"
    discarded_staging = "discarded_staging"


@dataclass
class PromotionReport:
    """Outcome of one promotion."""

    deleted: list[str] = field(default_factory=lambda: list[str]())
    moved: list[str] = field(default_factory=lambda: list[str]())
    delete_failures: list[str] = field(default_factory=lambda: list[str]())


class StagingPromoter:
    """Moves a fully staged update into the local root."""

    def journal_path(self, local_root: Path) -> Path:
        return local_root / JOURNAL_FILENAME

    def promote(
        self,
        delete_list: list[str],
        staging_root: Path,
        local_root: Path,
        wipe: bool = False,
    ) -> PromotionReport:
        """Apply staged content to the local root.

        Args:
            delete_list: Bundle name prefixes to remove from the local root
            staging_root: Fully downloaded and verified staging directory
            local_root: Active content directory
            wipe: Clear the local root before moving, for major version changes

        Returns:
            PromotionReport listing deleted and moved files

        Raises:
            PromotionError: If staging is incomplete or a move fails. After
                a failed move the journal stays in place.
        """
        staged_state = staging_root / VERSION_STATE_FILENAME
        if not staged_state.is_file():
            raise PromotionError(f"Staging root {staging_root} has no {VERSION_STATE_FILENAME}")

        try:
            staged = VersionStateParser().parse_file(staged_state)
        except ValueError as e:
            raise PromotionError(f"Staged descriptor is unreadable: {e}") from e

        report = PromotionReport()
        journal = self.journal_path(local_root)
        try:
            atomic_write_text(
                journal,
                json.dumps(
                    {
                        "deleteList": delete_list,
                        "wipeLocal": wipe,
                        "version": str(staged.version),
                        "startedAt": datetime.now(UTC).isoformat(),
                    },
                    indent=2,
                ),
            )
        except OSError as e:
            raise PromotionError(f"Cannot write promotion journal: {e}") from e

        logger.info(
            "promotion_started",
            version=str(staged.version),
            delete_prefixes=len(delete_list),
            wipe=wipe,
        )

        if wipe:
            self._clear_local(local_root, journal, report)
        else:
            keep = {bundle.bundle_name for bundle in staged.bundles}
            self._delete_matching(local_root / BUNDLES_DIR, delete_list, keep, report)
        self._move_tree(staging_root, local_root, report)

        try:
            shutil.rmtree(staging_root)
        except OSError as e:
            logger.warning("staging_cleanup_failed", path=str(staging_root), error=str(e))

        journal.unlink(missing_ok=True)
        logger.info(
            "promotion_completed",
            version=str(staged.version),
            moved=len(report.moved),
            deleted=len(report.deleted),
        )
        return report

    def _delete_matching(
        self,
        bundle_root: Path,
        delete_list: list[str],
        keep: set[str],
        report: PromotionReport,
    ) -> None:
        prefixes = tuple(prefix for prefix in delete_list if prefix)
        if not prefixes or not bundle_root.is_dir():
            return

        for path in sorted(bundle_root.iterdir()):
            if not path.is_file() or path.name in keep:
                continue
            if not path.name.startswith(prefixes):
                continue
            try:
                path.unlink()
                report.deleted.append(path.name)
                logger.debug("bundle_deleted", bundle=path.name)
            except OSError as e:
                report.delete_failures.append(path.name)
                logger.warning("bundle_delete_failed", bundle=path.name, error=str(e))

    def _clear_local(self, local_root: Path, journal: Path, report: PromotionReport) -> None:
        """Remove everything in the local root except the journal."""
        bundle_root = local_root / BUNDLES_DIR
        if bundle_root.is_dir():
            report.deleted.extend(
                sorted(path.name for path in bundle_root.iterdir() if path.is_file())
            )

        for path in sorted(local_root.iterdir()):
            if path == journal:
                continue
            try:
                if path.is_dir():
                    shutil.rmtree(path)
                else:
                    path.unlink()
            except OSError as e:
                logger.error("local_clear_failed", path=str(path), error=str(e))
                raise PromotionError(f"Failed to clear {path.name}: {e}") from e
        bundle_root.mkdir(parents=True, exist_ok=True)
        logger.info("local_root_cleared", path=str(local_root), bundles=len(report.deleted))

    def _move_tree(self, staging_root: Path, local_root: Path, report: PromotionReport) -> None:
        files = sorted(
            (path for path in staging_root.rglob("*") if path.is_file()),
            key=lambda path: (
                path.relative_to(staging_root).as_posix() == VERSION_STATE_FILENAME,
                path.relative_to(staging_root).as_posix(),
            ),
        )
        for path in files:
            relative = path.relative_to(staging_root)
            target = local_root / relative
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                os.replace(path, target)
            except OSError as e:
                logger.error("promotion_move_failed", file=relative.as_posix(), error=str(e))
                raise PromotionError(f"Failed to move {relative.as_posix()}: {e}") from e
            report.moved.append(relative.as_posix())

    def wipe_all(self, local_root: Path) -> None:
        """Delete the local root and recreate an empty skeleton."""
        if local_root.exists():
            shutil.rmtree(local_root)
        (local_root / BUNDLES_DIR).mkdir(parents=True, exist_ok=True)
        logger.info("local_root_wiped", path=str(local_root))

    def discard_staging(self, staging_root: Path) -> None:
        if staging_root.exists():
            shutil.rmtree(staging_root)
            logger.info("staging_discarded", path=str(staging_root))

    def recover(self, staging_root: Path, local_root: Path) -> RecoveryAction:
        """Resolve update state left behind by an interrupted run.

        Returns:
            The action taken
        """
        journal = self.journal_path(local_root)
        staging_complete = (staging_root / VERSION_STATE_FILENAME).is_file()

        if journal.exists():
            if staging_complete:
                delete_list, wipe = self._read_journal(journal)
                logger.warning("promotion_resuming", staging=str(staging_root), wipe=wipe)
                self.promote(delete_list, staging_root, local_root, wipe=wipe)
                return RecoveryAction.resumed

            logger.warning("promotion_interrupted_wiping", local=str(local_root))
            self.discard_staging(staging_root)
            self.wipe_all(local_root)
            return RecoveryAction.wiped_local

        if staging_root.exists():
            logger.warning("incomplete_staging_found", staging=str(staging_root))
            self.discard_staging(staging_root)
            return RecoveryAction.discarded_staging

        return RecoveryAction.none

    def _read_journal(self, journal: Path) -> tuple[list[str], bool]:
        """Return the journaled delete list and wipe flag."""
        try:
            data = json.loads(journal.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("promotion_journal_unreadable", path=str(journal), error=str(e))
            return [], False
        if not isinstance(data, dict):
            return [], False
        delete_list = [str(name) for name in data.get("deleteList", [])]
        return delete_list, bool(data.get("wipeLocal", False))
