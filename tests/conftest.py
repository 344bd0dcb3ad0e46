"""
Pytest configuration and shared fixtures
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from core.config import AppSettings
from core.domain.models import SaveTemplate
from core.path_resolver import KnownDirs
from core.services.saves_pipeline import CoreContext
from core.services.single_flight import SingleFlightGuard

MANIFEST_URL = "https://manifest.test/manifest.yaml"
API_URL = "https://saves.test"

MANIFEST_YAML = """\
Foo:
  files:
    <documents>/Foo/save.dat:
      tags:
        - save
      when:
        - os: windows
  installDir:
    Foo: {}
Bar:
  files:
    <documents>/Bar/saves: {}
  registry:
    HKEY_CURRENT_USER/Software/Bar:
      tags:
        - config
Baz Quest:
  steam:
    id: 123
"""


class FakeSource:
    """In-memory catalog: game name -> list of templates."""

    def __init__(self, games: dict[str, list[str]]) -> None:
        self._games = games

    def list_games(self) -> list[str]:
        return list(self._games)

    def paths_for(self, game: str) -> list[SaveTemplate]:
        return [SaveTemplate(template=t) for t in self._games.get(game, [])]


@pytest.fixture
def known_dirs(tmp_path: Path) -> KnownDirs:
    """Placeholder directories rooted in the test's tmp_path"""
    home = tmp_path / "home"
    documents = home / "Documents"
    app_data = home / "AppData" / "Roaming"
    local_app_data = home / "AppData" / "Local"
    for directory in (home, documents, app_data, local_app_data):
        directory.mkdir(parents=True, exist_ok=True)
    return KnownDirs(
        home=str(home),
        documents=str(documents),
        app_data=str(app_data),
        local_app_data=str(local_app_data),
        os_user_name="tester",
    )


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        api_url=API_URL,
        manifest_url=MANIFEST_URL,
        cache_dir=tmp_path / "cache",
        device_token="device-token",
        device_id="device-1",
    )


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "tmp"
    directory.mkdir()
    return directory


@pytest.fixture
def make_context(settings: AppSettings, known_dirs: KnownDirs, temp_dir: Path) -> Callable[..., CoreContext]:
    """Factory for contexts with a private scan guard and a fake transport"""

    def _make(handler=None, **overrides) -> CoreContext:
        transport = httpx.MockTransport(handler) if handler is not None else None
        values = {
            "settings": settings,
            "scan_guard": SingleFlightGuard(),
            "known_dirs": known_dirs,
            "temp_dir": temp_dir,
            "transport": transport,
        }
        values.update(overrides)
        return CoreContext(**values)

    return _make


def write_file(path: Path, size: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    return path
