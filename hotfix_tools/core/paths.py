"""Client-side directory layout.

    <data_dir>/<platform>/<environment>/Build_<guid>/
    ├── Hotfix/
    │   ├── Local/                 # Active content (promoted)
    │   │   ├── catalog.json
    │   │   ├── version_state.json
    │   │   └── bundles/
    │   └── Remote/                # Staging area for the running update
    │       ├── catalog.json
    │       ├── version_state.json
    │       └── bundles/
    ├── Cache/
    ├── Saves/
    └── Logs/

Keying the layout on the base package GUID means a reinstall of the base
package never sees hotfix content from a previous install.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog

from hotfix_tools.core.config import AppConfig

logger = structlog.get_logger()

BUNDLES_DIR = "bundles"


@dataclass(frozen=True)
class PathLayout:
    """Resolved client directories for one installed base package."""

    build_root: Path

    @classmethod
    def from_config(cls, config: AppConfig) -> PathLayout:
        env_root = config.data_dir / config.platform / config.environment.value
        layout = cls(build_root=env_root / f"Build_{config.build_guid}")
        logger.debug("path_layout_resolved", root=str(layout.build_root))
        return layout

    @property
    def hotfix_root(self) -> Path:
        return self.build_root / "Hotfix"

    @property
    def local_root(self) -> Path:
        return self.hotfix_root / "Local"

    @property
    def staging_root(self) -> Path:
        return self.hotfix_root / "Remote"

    @property
    def local_bundle_root(self) -> Path:
        return self.local_root / BUNDLES_DIR

    @property
    def staging_bundle_root(self) -> Path:
        return self.staging_root / BUNDLES_DIR

    @property
    def cache_root(self) -> Path:
        return self.build_root / "Cache"

    @property
    def save_root(self) -> Path:
        return self.build_root / "Saves"

    @property
    def log_root(self) -> Path:
        return self.build_root / "Logs"

    @property
    def lock_path(self) -> Path:
        return self.hotfix_root / ".update.lock"

    def ensure_directories(self) -> None:
        """Create the local skeleton. The staging root is created on demand."""
        for path in (
            self.hotfix_root,
            self.local_root,
            self.local_bundle_root,
            self.cache_root,
            self.save_root,
            self.log_root,
        ):
            path.mkdir(parents=True, exist_ok=True)
