"""Shared fixtures for the modtrack test suite."""

from pathlib import Path

import pytest

from core.install_root import InstallRoot
from shared.module_definition import ModuleDefinition


class CountingRoot:
    """Installation root double that counts resolver accesses."""

    def __init__(self, root: Path):
        self._inner = InstallRoot(root)
        self.calls = []

    @property
    def root(self) -> Path:
        return self._inner.root

    def to_absolute(self, relative_path):
        self.calls.append(relative_path)
        return self._inner.to_absolute(relative_path)


@pytest.fixture
def install_dir(tmp_path: Path) -> Path:
    root = tmp_path / "install"
    plugin_dir = root / "GameData" / "Foo"
    plugin_dir.mkdir(parents=True)
    (plugin_dir / "plugin.dll").write_bytes(b"\x4d\x5a\x90\x00binary plugin payload")
    (plugin_dir / "readme.txt").write_text("Foo readme\n", encoding="utf-8")
    return root


@pytest.fixture
def counting_root(install_dir: Path) -> CountingRoot:
    return CountingRoot(install_dir)


@pytest.fixture
def foo_module() -> ModuleDefinition:
    return ModuleDefinition.from_document(
        {"identifier": "Foo", "name": "Foo Plugin", "version": "1.2.0", "depends": [{"name": "Bar"}]}
    )


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    for name in ("MODTRACK_REGISTRY", "MODTRACK_FINGERPRINT_WORKERS", "MODTRACK_LOG_FILE", "MODTRACK_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
