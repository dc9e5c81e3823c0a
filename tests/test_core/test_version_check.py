"""Tests for hotfix_tools.core.version_check module."""

from hotfix_tools.core.types import BundleInfo, VersionNumber
from hotfix_tools.core.version_check import (
    BundleClassification,
    compute_diff,
    is_major_update,
)
from hotfix_tools.formats.version_state import VersionState


def _state(version: str, rollup: str, bundles: list[tuple[str, str, str]], delete_list=None):
    return VersionState(
        version=VersionNumber.parse(version),
        hash=rollup,
        total_size=10 * len(bundles),
        bundles=[
            BundleInfo(bundle_name=name, hash=digest, size=10, logical_key=key)
            for name, digest, key in bundles
        ],
        delete_list=delete_list or [],
    )


LOCAL = _state(
    "1.0.0",
    "rollup-a",
    [
        ("ui_assets_prefab_aaaa.bundle", "aaaa", "key-ui"),
        ("audio_assets_untyped_cccc.bundle", "cccc", "key-audio"),
        ("fx_assets_untyped_eeee.bundle", "eeee", "key-fx"),
    ],
)


class TestIsMajorUpdate:
    """Test major version detection."""

    def test_no_local_is_not_major(self):
        """Test a fresh install is not a major change."""
        assert not is_major_update(None, LOCAL)

    def test_major_differs(self):
        """Test a different major version."""
        remote = _state("2.0.0", "rollup-b", [])
        assert is_major_update(LOCAL, remote)
        assert not is_major_update(LOCAL, _state("1.3.7", "rollup-b", []))


class TestComputeDiff:
    """Test installed vs published comparison."""

    def test_equal_rollup_is_up_to_date(self):
        """Test equal hashes need no work, ignoring case."""
        remote = _state("1.0.1", "ROLLUP-A", [])
        diff = compute_diff(LOCAL, remote)
        assert diff.up_to_date
        assert diff.download == []
        assert diff.delete_list == []

    def test_no_local_downloads_everything(self):
        """Test a fresh install downloads every bundle."""
        remote = _state(
            "1.0.0", "rollup-a", [("a.bundle", "11", "k1"), ("b.bundle", "22", "k2")],
            delete_list=["old_prefix"],
        )
        diff = compute_diff(None, remote)
        assert diff.full_download
        assert not diff.major_change
        assert [b.bundle_name for b in diff.download] == ["a.bundle", "b.bundle"]
        assert diff.delete_list == ["old_prefix"]
        assert diff.download_size == 20

    def test_major_change_downloads_everything(self):
        """Test a major change ignores matching local bundles."""
        remote = _state(
            "2.0.0", "rollup-b", [("audio_assets_untyped_cccc.bundle", "cccc", "key-audio")]
        )
        diff = compute_diff(LOCAL, remote)
        assert diff.major_change
        assert diff.full_download
        assert [b.bundle_name for b in diff.download] == ["audio_assets_untyped_cccc.bundle"]

    def test_incremental_diff(self):
        """Test changed bundles download and replaced names are deleted."""
        remote = _state(
            "1.0.1",
            "rollup-b",
            [
                ("ui_assets_prefab_bbbb.bundle", "bbbb", "key-ui"),
                ("audio_assets_untyped_cccc.bundle", "cccc", "key-audio"),
                ("hotfixgroup_assets_prefab_dddd.bundle", "dddd", "key-hotfix"),
            ],
            delete_list=["ui_assets_prefab"],
        )
        diff = compute_diff(LOCAL, remote)

        assert not diff.up_to_date
        assert not diff.full_download
        assert [b.bundle_name for b in diff.download] == [
            "ui_assets_prefab_bbbb.bundle",
            "hotfixgroup_assets_prefab_dddd.bundle",
        ]
        assert diff.classifications["audio_assets_untyped_cccc.bundle"] == BundleClassification.unchanged
        assert diff.classifications["ui_assets_prefab_bbbb.bundle"] == BundleClassification.needs_download
        assert diff.classifications["ui_assets_prefab_aaaa.bundle"] == BundleClassification.obsolete
        assert diff.classifications["fx_assets_untyped_eeee.bundle"] == BundleClassification.obsolete
        assert diff.delete_list == [
            "ui_assets_prefab",
            "ui_assets_prefab_aaaa.bundle",
            "fx_assets_untyped_eeee.bundle",
        ]

    def test_same_name_new_hash_redownloads(self):
        """Test a rebuilt bundle with an unchanged name is downloaded."""
        remote = _state(
            "1.0.1",
            "rollup-b",
            [
                ("ui_assets_prefab_aaaa.bundle", "ffff", "key-ui"),
                ("audio_assets_untyped_cccc.bundle", "CCCC", "key-audio"),
                ("fx_assets_untyped_eeee.bundle", "eeee", "key-fx"),
            ],
        )
        diff = compute_diff(LOCAL, remote)
        assert [b.bundle_name for b in diff.download] == ["ui_assets_prefab_aaaa.bundle"]
        assert diff.delete_list == []

    def test_missing_local_file_redownloads(self, temp_dir):
        """Test unchanged bundles absent on disk are fetched again."""
        bundle_root = temp_dir / "bundles"
        bundle_root.mkdir()
        (bundle_root / "ui_assets_prefab_aaaa.bundle").write_bytes(b"x")
        (bundle_root / "fx_assets_untyped_eeee.bundle").write_bytes(b"x")
        remote = _state(
            "1.0.1",
            "rollup-b",
            [
                ("ui_assets_prefab_aaaa.bundle", "aaaa", "key-ui"),
                ("audio_assets_untyped_cccc.bundle", "cccc", "key-audio"),
                ("fx_assets_untyped_eeee.bundle", "eeee", "key-fx"),
            ],
        )
        diff = compute_diff(LOCAL, remote, bundle_root)
        assert [b.bundle_name for b in diff.download] == ["audio_assets_untyped_cccc.bundle"]

    def test_unknown_logical_key_matches_by_name(self):
        """Test bundles without a logical key correlate by file name."""
        local = _state("1.0.0", "r1", [("a.bundle", "11", "Unknown")])
        remote = _state("1.0.1", "r2", [("a.bundle", "11", "Unknown"), ("b.bundle", "22", "Unknown")])
        diff = compute_diff(local, remote)
        assert [b.bundle_name for b in diff.download] == ["b.bundle"]
        assert diff.delete_list == []
