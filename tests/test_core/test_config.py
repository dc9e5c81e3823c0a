"""Tests for hotfix_tools.core.config module."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from hotfix_tools.core.config import AppConfig, BuildConfig, RemoteConfig
from hotfix_tools.core.types import Environment


class TestRemoteConfig:
    """Test RemoteConfig model."""

    def test_defaults(self):
        """Test default values."""
        config = RemoteConfig()
        assert config.base_url == "https://cdn.example.com/HotfixOutput"
        assert config.manifest_name == "manifest.json"
        assert config.max_attempts == 1
        assert config.verify_ssl is True

    def test_trailing_slash_stripped(self):
        """Test base URL normalization."""
        assert RemoteConfig(base_url="https://cdn.test/root/").base_url == "https://cdn.test/root"

    def test_invalid_scheme(self):
        """Test non-HTTP base URLs are rejected."""
        with pytest.raises(ValidationError, match="http"):
            RemoteConfig(base_url="ftp://cdn.test/root")

    @pytest.mark.parametrize(
        "field,value",
        [("timeout", 0), ("max_concurrency", 0), ("max_per_host", 0), ("max_attempts", 0)],
    )
    def test_invalid_limits(self, field, value):
        """Test limits must be positive."""
        with pytest.raises(ValidationError):
            RemoteConfig(**{field: value})

    def test_negative_backoff(self):
        """Test backoff must be non-negative."""
        with pytest.raises(ValidationError):
            RemoteConfig(base_backoff=-1)


class TestBuildConfig:
    """Test BuildConfig model."""

    def test_defaults(self):
        """Test default values."""
        config = BuildConfig()
        assert config.project_name == "ProjectName"
        assert config.max_package_size == 1024 * 1024 * 1024
        assert config.hotfix_group == "HotfixGroup"

    def test_invalid_project_name(self):
        """Test project names must be usable as directory names."""
        with pytest.raises(ValidationError):
            BuildConfig(project_name="a/b")

    def test_invalid_max_size(self):
        """Test max package size must be positive."""
        with pytest.raises(ValidationError):
            BuildConfig(max_package_size=0)


class TestAppConfig:
    """Test AppConfig model."""

    def test_defaults(self):
        """Test default values."""
        config = AppConfig()
        assert config.environment == Environment.RELEASE
        assert config.output_format == "rich"
        assert config.log_level == "INFO"

    def test_load_missing_file_returns_defaults(self, temp_dir):
        """Test loading a nonexistent file."""
        config = AppConfig.load(temp_dir / "missing.json")
        assert config == AppConfig()

    def test_save_and_load(self, temp_dir):
        """Test save then load preserves values."""
        path = temp_dir / "config" / "config.json"
        config = AppConfig(
            data_dir=temp_dir / "data",
            platform="Windows",
            environment=Environment.DEBUG,
            build_guid="abc123",
            remote=RemoteConfig(base_url="https://cdn.test/root", max_attempts=3),
            build=BuildConfig(project_name="Game"),
        )
        config.save(path)
        loaded = AppConfig.load(path)
        assert loaded.data_dir == temp_dir / "data"
        assert loaded.environment == Environment.DEBUG
        assert loaded.remote.max_attempts == 3
        assert loaded.build.project_name == "Game"

    def test_load_partial_file(self, temp_dir):
        """Test omitted keys keep their defaults."""
        path = temp_dir / "config.json"
        path.write_text(json.dumps({"platform": "Android", "remote": {"timeout": 5}}))
        config = AppConfig.load(path)
        assert config.platform == "Android"
        assert config.remote.timeout == 5
        assert config.build.output_root == Path("HotfixOutput")

    @pytest.mark.parametrize(
        "field,value",
        [
            ("output_format", "xml"),
            ("log_level", "TRACE"),
            ("build_guid", "../escape"),
            ("platform", ""),
        ],
    )
    def test_invalid_values(self, field, value):
        """Test validators reject bad values."""
        with pytest.raises(ValidationError):
            AppConfig(**{field: value})
