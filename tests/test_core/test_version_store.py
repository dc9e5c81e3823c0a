"""Tests for hotfix_tools.core.version_store module."""

import json
from datetime import datetime

import pytest

from hotfix_tools.core.version_store import VersionStore


class TestVersionStore:
    """Test build version persistence."""

    def test_load_missing_starts_at_one(self, temp_dir):
        """Test a new store starts at 1.0.0."""
        store = VersionStore.load(temp_dir / "version_db.json")
        assert str(store.current_version) == "1.0.0"
        assert not (temp_dir / "version_db.json").exists()

    def test_increment(self, temp_dir):
        """Test increments follow bump rules."""
        store = VersionStore.load(temp_dir / "version_db.json")
        assert str(store.increment()) == "1.0.1"
        assert str(store.increment(minor=True)) == "1.1.0"
        assert str(store.increment()) == "1.1.1"
        assert str(store.increment(major=True)) == "2.0.0"

    def test_record_build_counts_per_day(self, temp_dir):
        """Test builds are counted per calendar day."""
        store = VersionStore.load(temp_dir / "version_db.json")
        assert store.record_build(datetime(2024, 5, 1, 9, 0)) == 1
        assert store.record_build(datetime(2024, 5, 1, 17, 30)) == 2
        assert store.record_build(datetime(2024, 5, 2, 8, 0)) == 1
        assert store.build_count("2024-05-01") == 2
        assert store.build_count("2024-05-03") == 0
        assert store.data.last_build_time == datetime(2024, 5, 2, 8, 0)

    def test_save_and_load(self, temp_dir):
        """Test state survives a save and reload."""
        path = temp_dir / "Build" / "version_db.json"
        store = VersionStore.load(path)
        store.increment(major=True)
        store.increment()
        store.record_build(datetime(2024, 5, 1))
        store.save()

        raw = json.loads(path.read_text())
        assert raw["currentVersion"] == {"major": 2, "minor": 0, "patch": 1}
        assert raw["buildCounters"] == {"2024-05-01": 1}

        reloaded = VersionStore.load(path)
        assert str(reloaded.current_version) == "2.0.1"
        assert reloaded.build_count("2024-05-01") == 1

    def test_invalid_file_raises(self, temp_dir):
        """Test a corrupt store is reported instead of reset."""
        path = temp_dir / "version_db.json"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="Invalid version store"):
            VersionStore.load(path)
