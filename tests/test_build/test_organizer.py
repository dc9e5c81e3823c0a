"""Tests for hotfix_tools.build.organizer module."""

import json

import pytest

from hotfix_tools.build.exporter import ManifestExporter
from hotfix_tools.build.organizer import BuildOrganizer
from hotfix_tools.core.errors import BuildError, SizeLimitExceeded
from hotfix_tools.core.hashing import hash_directory, hash_file
from hotfix_tools.core.types import UNKNOWN_LOGICAL_KEY, VersionNumber
from hotfix_tools.formats.content import BundleIdentityTable
from hotfix_tools.formats.version_state import VersionStateParser


@pytest.fixture
def labels(sample_content_manifest):
    return ManifestExporter(sample_content_manifest).export()


class TestBuildOrganizer:
    """Test packaging of raw bundler output."""

    def test_package_layout(self, temp_dir, raw_build_dir, labels):
        """Test the catalog, bundles and descriptor are laid out."""
        target = temp_dir / "out" / "Game_2.0.0"
        state = BuildOrganizer().organize(
            raw_build_dir, target, labels, VersionNumber.parse("2.0.0"), ["old_prefix"]
        )

        assert (target / "catalog.json").is_file()
        assert sorted(p.name for p in (target / "bundles").iterdir()) == [
            "audio_assets_untyped_77ab.bundle",
            "ui_assets_prefabmenu_3f2a.bundle",
            "ui_assets_sprite_91cc.bundle",
        ]
        assert not (target / "buildlog.txt").exists()
        assert not (target / "bundle_identities.json").exists()
        assert not (target / "catalog_2024.hash").exists()

        assert str(state.version) == "2.0.0"
        assert state.delete_list == ["old_prefix"]
        assert state.total_size == sum(b.size for b in state.bundles)
        assert state.hash == hash_directory(target)
        for bundle in state.bundles:
            assert bundle.hash == hash_file(target / "bundles" / bundle.bundle_name)

        written = VersionStateParser().parse_file(target / "version_state.json")
        assert written == state

    def test_logical_keys_from_identity_table(self, temp_dir, raw_build_dir, labels):
        """Test logical keys come from the identity side table."""
        state = BuildOrganizer().organize(
            raw_build_dir, temp_dir / "pkg", labels, VersionNumber(), []
        )
        keys = {b.bundle_name: b.logical_key for b in state.bundles}
        assert keys["ui_assets_prefabmenu_3f2a.bundle"] == labels.get_logical_hash("ui", "prefabmenu")
        assert keys["ui_assets_sprite_91cc.bundle"] == labels.get_logical_hash("ui", "sprite")
        assert keys["audio_assets_untyped_77ab.bundle"] == labels.get_logical_hash("audio", "untyped")

    def test_logical_keys_from_prefix(self, temp_dir, raw_build_dir, labels):
        """Test prefix matching when the side table is absent."""
        (raw_build_dir / "bundle_identities.json").unlink()
        (raw_build_dir / "ui_assets_prefabmenuextra_0001.bundle").write_bytes(b"other")
        state = BuildOrganizer().organize(
            raw_build_dir, temp_dir / "pkg", labels, VersionNumber(), []
        )
        keys = {b.bundle_name: b.logical_key for b in state.bundles}
        assert keys["ui_assets_prefabmenu_3f2a.bundle"] == labels.get_logical_hash("ui", "prefabmenu")
        assert keys["ui_assets_prefabmenuextra_0001.bundle"] == UNKNOWN_LOGICAL_KEY

    def test_unmatched_identity_is_unknown(self, temp_dir, raw_build_dir, labels):
        """Test an identity with no logical hash yields Unknown."""
        table = BundleIdentityTable.model_validate(
            {"bundles": {"ui_assets_sprite_91cc.bundle": {"group": "ui", "combineLabel": "nolabel"}}}
        )
        state = BuildOrganizer().organize(
            raw_build_dir, temp_dir / "pkg", labels, VersionNumber(), [], identities=table
        )
        keys = {b.bundle_name: b.logical_key for b in state.bundles}
        assert keys["ui_assets_sprite_91cc.bundle"] == UNKNOWN_LOGICAL_KEY

    def test_target_recreated(self, temp_dir, raw_build_dir, labels):
        """Test stale files in the target are removed."""
        target = temp_dir / "pkg"
        (target / "bundles").mkdir(parents=True)
        (target / "bundles" / "stale.bundle").write_bytes(b"stale")
        BuildOrganizer().organize(raw_build_dir, target, labels, VersionNumber(), [])
        assert not (target / "bundles" / "stale.bundle").exists()

    def test_size_limit(self, temp_dir, raw_build_dir, labels):
        """Test a package reaching the limit is rejected."""
        total = sum(p.stat().st_size for p in raw_build_dir.glob("*.bundle"))
        with pytest.raises(SizeLimitExceeded) as exc_info:
            BuildOrganizer(max_package_size=total).organize(
                raw_build_dir, temp_dir / "pkg", labels, VersionNumber(), []
            )
        assert exc_info.value.total_size == total
        assert exc_info.value.limit == total
        assert not (temp_dir / "pkg" / "version_state.json").exists()

    def test_just_under_limit(self, temp_dir, raw_build_dir, labels):
        """Test a package one byte under the limit is accepted."""
        total = sum(p.stat().st_size for p in raw_build_dir.glob("*.bundle"))
        state = BuildOrganizer(max_package_size=total + 1).organize(
            raw_build_dir, temp_dir / "pkg", labels, VersionNumber(), []
        )
        assert state.total_size == total

    def test_no_catalog(self, temp_dir, raw_build_dir, labels):
        """Test a build without a catalog fails."""
        (raw_build_dir / "catalog_2024.json").unlink()
        with pytest.raises(BuildError, match="found 0"):
            BuildOrganizer().organize(raw_build_dir, temp_dir / "pkg", labels, VersionNumber(), [])

    def test_two_catalogs(self, temp_dir, raw_build_dir, labels):
        """Test a build with two catalogs fails."""
        (raw_build_dir / "catalog_2025.json").write_text(json.dumps({"entries": {}}))
        with pytest.raises(BuildError, match="found 2"):
            BuildOrganizer().organize(raw_build_dir, temp_dir / "pkg", labels, VersionNumber(), [])

    def test_missing_raw_dir(self, temp_dir, labels):
        """Test a missing raw directory fails."""
        with pytest.raises(BuildError, match="not found"):
            BuildOrganizer().organize(temp_dir / "nope", temp_dir / "pkg", labels, VersionNumber(), [])

    def test_invalid_identity_table(self, temp_dir, raw_build_dir, labels):
        """Test a corrupt identity table fails the build."""
        (raw_build_dir / "bundle_identities.json").write_text("{broken")
        with pytest.raises(BuildError, match="identity table"):
            BuildOrganizer().organize(raw_build_dir, temp_dir / "pkg", labels, VersionNumber(), [])
