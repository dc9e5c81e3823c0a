"""Pytest configuration and shared fixtures for hotfix_tools tests."""

import json
import tempfile
from collections.abc import Generator
from pathlib import Path

import httpx
import pytest

from hotfix_tools.core.config import AppConfig, RemoteConfig
from hotfix_tools.core.types import BundleInfo, VersionNumber
from hotfix_tools.core.utils import compute_md5
from hotfix_tools.formats.catalog import CatalogParser, ContentCatalog
from hotfix_tools.formats.content import ContentEntry, ContentGroup, ContentManifest
from hotfix_tools.formats.manifest import Manifest, ManifestParser
from hotfix_tools.formats.version_state import VersionState, VersionStateParser

REMOTE_BASE_URL = "https://cdn.test/HotfixOutput"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def sample_content_manifest() -> ContentManifest:
    """Content manifest with labeled, unlabeled and built-in groups."""
    return ContentManifest(
        groups=[
            ContentGroup(
                name="UI",
                entries=[
                    ContentEntry(
                        address="ui/main",
                        path="ui/main.prefab",
                        guid="guid-ui-main",
                        labels=["Prefab", "Menu"],
                    ),
                    ContentEntry(
                        address="ui/options",
                        path="ui/options.prefab",
                        guid="guid-ui-options",
                        labels=["Prefab", "Menu"],
                    ),
                    ContentEntry(
                        address="ui/icon",
                        path="ui/icon.png",
                        guid="guid-ui-icon",
                        labels=["Sprite"],
                    ),
                ],
            ),
            ContentGroup(
                name="Audio",
                entries=[
                    ContentEntry(
                        address="audio/theme",
                        path="audio/theme.ogg",
                        guid="guid-audio-theme",
                    ),
                ],
            ),
            ContentGroup(
                name="Built In Data",
                entries=[
                    ContentEntry(address="", path="Resources/unity", guid="guid-builtin"),
                ],
            ),
        ]
    )


@pytest.fixture
def content_root(temp_dir: Path) -> Path:
    """Source files for the sample content manifest."""
    root = temp_dir / "content"
    files = {
        "ui/main.prefab": b"main menu v1",
        "ui/options.prefab": b"options menu v1",
        "ui/icon.png": b"\x89PNG icon v1",
        "audio/theme.ogg": b"OggS theme v1",
    }
    for relative, data in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    return root


@pytest.fixture
def raw_build_dir(temp_dir: Path) -> Path:
    """Bundler output: one catalog, its checksum, bundles and identity table."""
    raw = temp_dir / "raw"
    raw.mkdir()
    (raw / "catalog_2024.json").write_text(
        json.dumps({"locatorId": "base", "entries": {"ui/main": "bundles/ui.bundle"}})
    )
    (raw / "catalog_2024.hash").write_text("0123456789abcdef")
    (raw / "ui_assets_prefabmenu_3f2a.bundle").write_bytes(b"UnityFS prefab menu")
    (raw / "ui_assets_sprite_91cc.bundle").write_bytes(b"UnityFS sprite")
    (raw / "audio_assets_untyped_77ab.bundle").write_bytes(b"UnityFS audio")
    (raw / "buildlog.txt").write_text("bundler log")
    (raw / "bundle_identities.json").write_text(
        json.dumps(
            {
                "bundles": {
                    "ui_assets_prefabmenu_3f2a.bundle": {
                        "group": "ui",
                        "combineLabel": "prefabmenu",
                    },
                    "ui_assets_sprite_91cc.bundle": {"group": "ui", "combineLabel": "sprite"},
                    "audio_assets_untyped_77ab.bundle": {
                        "group": "audio",
                        "combineLabel": "untyped",
                    },
                }
            }
        )
    )
    return raw


@pytest.fixture
def app_config(temp_dir: Path) -> AppConfig:
    """Client configuration rooted in the temporary directory."""
    return AppConfig(
        data_dir=temp_dir / "data",
        platform="Linux",
        build_guid="test-build",
        remote=RemoteConfig(base_url=REMOTE_BASE_URL, timeout=5.0),
    )


class FakeRemote:
    """In-memory hotfix host served through httpx.MockTransport."""

    def __init__(self, base_url: str = REMOTE_BASE_URL, project: str = "Game"):
        self.base_url = base_url
        self.project = project
        self.files: dict[str, bytes] = {}
        self.requests: list[str] = []
        self.failing: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url in self.failing or url not in self.files:
            return httpx.Response(404)
        return httpx.Response(200, content=self.files[url])

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def package_url(self, version: str) -> str:
        return f"{self.base_url}/{self.project}_{version}"

    def bundle_url(self, version: str, bundle_name: str) -> str:
        return f"{self.package_url(version)}/bundles/{bundle_name}"

    def publish(
        self,
        version: str,
        bundles: dict[str, bytes],
        delete_list: list[str] | None = None,
    ) -> VersionState:
        """Publish a package and point the manifest at it.

        Logical keys are the bundle name without its trailing hash part.
        """
        package_url = self.package_url(version)
        state = VersionState(
            version=VersionNumber.parse(version), delete_list=list(delete_list or [])
        )
        for name, data in bundles.items():
            state.bundles.append(
                BundleInfo(
                    bundle_name=name,
                    hash=compute_md5(data),
                    size=len(data),
                    logical_key=name.rsplit("_", 1)[0],
                )
            )
            state.total_size += len(data)
            self.files[self.bundle_url(version, name)] = data

        catalog = ContentCatalog(
            locator_id=f"{self.project}_{version}",
            entries={
                f"addr/{name.rsplit('_', 1)[0]}": self.bundle_url(version, name)
                for name in bundles
            },
        )
        catalog_bytes = CatalogParser().build(catalog)
        self.files[f"{package_url}/catalog.json"] = catalog_bytes

        state.hash = compute_md5(
            (compute_md5(catalog_bytes) + "".join(b.hash for b in state.bundles)).encode()
        )
        self.files[f"{package_url}/version_state.json"] = VersionStateParser().build(state)
        self.files[f"{self.base_url}/manifest.json"] = ManifestParser().build(
            Manifest(latest_package=f"{self.project}_{version}", latest_version=state.version)
        )
        return state


@pytest.fixture
def fake_remote() -> FakeRemote:
    """Empty fake hotfix host; tests publish packages onto it."""
    return FakeRemote()


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    """Modify test collection to add markers automatically."""
    for item in items:
        # Orchestrator and CLI flows run end to end against the fake host
        if "orchestrator" in item.nodeid or "test_commands" in item.nodeid:
            item.add_marker(pytest.mark.integration)

        # Add unit marker to all other tests by default
        if not any(marker.name in ['integration', 'slow'] for marker in item.iter_markers()):
            item.add_marker(pytest.mark.unit)
