"""Persistent build version database.

Holds the current package version plus a per-day build counter. State is
persisted as JSON using atomic writes (temp file + os.replace) so an
interrupted build never corrupts the version history.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import structlog
from pydantic import Field, ValidationError

from hotfix_tools.core.types import CamelModel, VersionNumber
from hotfix_tools.core.utils import atomic_write_text

logger = structlog.get_logger()


class VersionDatabase(CamelModel):
    """On-disk shape of the version store."""

    current_version: VersionNumber = Field(default_factory=VersionNumber)
    build_counters: dict[str, int] = Field(
        default_factory=dict,
        description="Builds per calendar day, keyed YYYY-MM-DD"
    )
    last_build_time: datetime | None = None


class VersionStore:
    """Build version persistence.

    Args:
        path: JSON file backing the store
    """

    def __init__(self, path: Path, data: VersionDatabase | None = None) -> None:
        self.path = path
        self.data = data or VersionDatabase()

    @classmethod
    def load(cls, path: Path) -> VersionStore:
        """Load the store, starting at 1.0.0 if the file does not exist.

        Raises:
            ValueError: If the file exists but is not a valid version store
        """
        if not path.exists():
            logger.info("version_store_created", path=str(path))
            return cls(path)

        try:
            data = VersionDatabase.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, ValidationError) as e:
            raise ValueError(f"Invalid version store {path}: {e}") from e

        logger.debug("version_store_loaded", path=str(path), version=str(data.current_version))
        return cls(path, data)

    @property
    def current_version(self) -> VersionNumber:
        return self.data.current_version

    def increment(self, major: bool = False, minor: bool = False) -> VersionNumber:
        """Advance the current version and return it."""
        previous = self.data.current_version
        self.data.current_version = previous.bump(major=major, minor=minor)
        logger.info(
            "version_incremented",
            previous=str(previous),
            current=str(self.data.current_version),
        )
        return self.data.current_version

    def record_build(self, now: datetime | None = None) -> int:
        """Count a build against its calendar day.

        Returns:
            Number of builds recorded for that day, including this one
        """
        now = now or datetime.now()
        day = now.strftime("%Y-%m-%d")
        count = self.data.build_counters.get(day, 0) + 1
        self.data.build_counters[day] = count
        self.data.last_build_time = now
        return count

    def build_count(self, day: str) -> int:
        return self.data.build_counters.get(day, 0)

    def save(self) -> None:
        """Persist the store atomically."""
        text = json.dumps(self.data.model_dump(mode="json", by_alias=True), indent=2)
        atomic_write_text(self.path, text + "\n")
        logger.debug("version_store_saved", path=str(self.path))
