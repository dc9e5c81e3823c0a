"""Configuration management for hotfix-tools."""

from __future__ import annotations

import json
from pathlib import Path

import structlog
from pydantic import BaseModel, Field, field_validator

from hotfix_tools.core.types import Environment

logger = structlog.get_logger()


class RemoteConfig(BaseModel):
    """Remote host configuration."""

    base_url: str = Field(
        default="https://cdn.example.com/HotfixOutput",
        description="Root URL holding manifest.json and package directories"
    )
    manifest_name: str = Field(
        default="manifest.json",
        description="File name of the manifest pointer under base_url"
    )
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_concurrency: int = Field(default=8, description="Concurrent bundle downloads")
    max_per_host: int = Field(default=4, description="Concurrent downloads per host")
    max_attempts: int = Field(
        default=1,
        description="Attempts per bundle; 1 means no retry"
    )
    base_backoff: float = Field(
        default=0.5,
        description="Base delay in seconds between attempts"
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate base URL scheme."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Base URL must be http(s): {v}")
        return v.rstrip("/")

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate timeout value."""
        if v <= 0:
            raise ValueError("Timeout must be positive")
        return v

    @field_validator("max_concurrency", "max_per_host", "max_attempts")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate counts."""
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    @field_validator("base_backoff")
    @classmethod
    def validate_backoff(cls, v: float) -> float:
        """Validate backoff value."""
        if v < 0:
            raise ValueError("Backoff must be non-negative")
        return v


class BuildConfig(BaseModel):
    """Build-time configuration."""

    project_name: str = Field(default="ProjectName", description="Package name prefix")
    output_root: Path = Field(
        default=Path("HotfixOutput"),
        description="Directory receiving packages and manifest.json"
    )
    max_package_size: int = Field(
        default=1024 * 1024 * 1024,  # 1GB
        description="Maximum total bundle size of one package in bytes"
    )
    version_db: Path = Field(
        default=Path("Build") / "version_db.json",
        description="Version store file"
    )
    snapshot_path: Path = Field(
        default=Path("Build") / "snapshots.json",
        description="Build snapshot history file"
    )
    hotfix_group: str = Field(
        default="HotfixGroup",
        description="Group that changed assets are shipped in"
    )

    @field_validator("max_package_size")
    @classmethod
    def validate_max_package_size(cls, v: int) -> int:
        """Validate max size value."""
        if v <= 0:
            raise ValueError("Max package size must be positive")
        return v

    @field_validator("project_name")
    @classmethod
    def validate_project_name(cls, v: str) -> str:
        """Validate project name."""
        if not v or "/" in v or "\\" in v:
            raise ValueError(f"Invalid project name: {v!r}")
        return v


class AppConfig(BaseModel):
    """Application configuration."""

    # Directory settings
    data_dir: Path = Field(
        default=Path.home() / ".local" / "share" / "hotfix-tools",
        description="Persistent data root on the client"
    )
    platform: str = Field(default="Unknown", description="Target platform")
    environment: Environment = Field(
        default=Environment.RELEASE,
        description="Build environment of the base package"
    )
    build_guid: str = Field(
        default="base",
        description="Identifier of the installed base package"
    )

    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)

    # Output settings
    output_format: str = Field(
        default="rich",
        description="Output format (rich, json, plain)"
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    @classmethod
    def load(cls, config_file: Path | None = None) -> AppConfig:
        """Load configuration from file.

        Args:
            config_file: Path to config file, uses default if None

        Returns:
            Application configuration
        """
        if config_file is None:
            config_file = Path.home() / ".config" / "hotfix-tools" / "config.json"

        if config_file.exists():
            with open(config_file) as f:
                data = json.load(f)
                return cls(**data)

        # Return defaults
        return cls()

    def save(self, config_file: Path) -> None:
        """Save configuration to file.

        Args:
            config_file: Path to config file
        """
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2, default=str)

        logger.info("config_saved", path=str(config_file))

    @field_validator("output_format")
    @classmethod
    def validate_output_format(cls, v: str) -> str:
        """Validate output format."""
        valid_formats = {"rich", "json", "plain"}
        if v not in valid_formats:
            raise ValueError(f"Invalid output format: {v}. Valid formats: {valid_formats}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Valid levels: {valid_levels}")
        return v

    @field_validator("build_guid", "platform")
    @classmethod
    def validate_path_component(cls, v: str) -> str:
        """Validate values used as directory names."""
        if not v or "/" in v or "\\" in v or v in {".", ".."}:
            raise ValueError(f"Invalid path component: {v!r}")
        return v
