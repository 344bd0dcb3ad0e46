"""Almacén del manifiesto: catálogo remoto de juegos y sus plantillas de rutas.

Por qué vive en `core/`:
- Centraliza *qué* datos necesitamos (el manifiesto de ludusavi) sin atarse
  a la CLI.
- Es dueño del único artefacto persistido del Core: la caché del manifiesto.

Política:
- Una caché más vieja que `manifest_max_age_days` (por mtime), o ninguna caché,
  está obsoleta y provoca un intento de descarga.
- Una descarga correcta se escribe en la caché como bytes crudos antes de parsear.
- Una descarga fallida recurre a la caché; sin caché, el snapshot queda vacío.
- Un documento que no valida entero produce un snapshot vacío. Nunca se
  aceptan entradas sueltas.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Sequence

import httpx
import yaml
from pydantic import ValidationError

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.manifest import ManifestDocument, ManifestGame
from core.domain.models import SaveTemplate

logger = logging.getLogger(__name__)

CACHE_FILE_NAME = "manifest.yaml"

_SECONDS_PER_DAY = 24 * 60 * 60

_BaseYamlLoader = getattr(yaml, "CSafeLoader", yaml.SafeLoader)

_STR_TAG = "tag:yaml.org,2002:str"
_MERGE_TAG = "tag:yaml.org,2002:merge"


class _ManifestLoader(_BaseYamlLoader):
    """Safe loader that keeps scalar mapping keys as written.

    Game names such as `OFF`, `Yes` or `007` would otherwise resolve to bools
    and ints under YAML 1.1 rules.
    """

    def construct_mapping(self, node, deep=False):
        for key_node, _ in node.value:
            if isinstance(key_node, yaml.ScalarNode) and key_node.tag != _MERGE_TAG:
                key_node.tag = _STR_TAG
        return super().construct_mapping(node, deep=deep)


class ManifestSnapshot:
    """Immutable, parsed view of one manifest document."""

    def __init__(self, games: dict[str, ManifestGame] | None = None) -> None:
        self._games: dict[str, ManifestGame] = dict(games or {})

    @classmethod
    def empty(cls) -> "ManifestSnapshot":
        return cls()

    def __len__(self) -> int:
        return len(self._games)

    def __contains__(self, game: object) -> bool:
        return game in self._games

    def list_games(self) -> list[str]:
        return list(self._games.keys())

    def search_games(self, query: str) -> list[str]:
        needle = query.lower()
        return [name for name in self._games if needle in name.lower()]

    def paths_for(self, game: str) -> list[SaveTemplate]:
        entry = self._games.get(game)
        if entry is None:
            return []
        return entry.templates()


def parse_manifest(content: str | bytes) -> ManifestSnapshot:
    """Parse a YAML manifest; any failure yields an empty snapshot."""

    try:
        data = yaml.load(content, Loader=_ManifestLoader)
    except yaml.YAMLError as exc:
        logger.warning("Manifest is not valid YAML, using an empty catalog: %s", exc)
        return ManifestSnapshot.empty()

    if data is None:
        return ManifestSnapshot.empty()

    try:
        document = ManifestDocument.model_validate(data)
    except ValidationError as exc:
        logger.warning(
            "Manifest failed validation (%d errors), using an empty catalog",
            exc.error_count(),
        )
        logger.debug("Manifest validation errors: %s", exc)
        return ManifestSnapshot.empty()

    return ManifestSnapshot(document.root)


class ManifestStore:
    """Fetches, caches and serves the manifest snapshot."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        cache_path: Path | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._cache_path = cache_path or (self._settings.resolved_cache_dir() / CACHE_FILE_NAME)
        self._transport = transport
        self._snapshot = ManifestSnapshot.empty()

    @property
    def cache_path(self) -> Path:
        return self._cache_path

    @property
    def snapshot(self) -> ManifestSnapshot:
        return self._snapshot

    def cache_age_seconds(self) -> float | None:
        try:
            modified = self._cache_path.stat().st_mtime
        except OSError:
            return None
        return max(0.0, time.time() - modified)

    def is_stale(self) -> bool:
        age = self.cache_age_seconds()
        if age is None:
            return True
        return age > self._settings.manifest_max_age_days * _SECONDS_PER_DAY

    async def acquire(self, *, refresh: bool = False) -> ManifestSnapshot:
        """Return the current snapshot, re-fetching when stale. Never raises."""

        if refresh or self.is_stale():
            content = await self._fetch()
            if content is not None:
                self._write_cache(content)
                self._snapshot = await asyncio.to_thread(parse_manifest, content)
                logger.info("Loaded %d games from the remote manifest", len(self._snapshot))
                return self._snapshot

        self._snapshot = await asyncio.to_thread(self._load_cache)
        return self._snapshot

    async def _fetch(self) -> bytes | None:
        url = self._settings.manifest_url
        try:
            async with build_async_client(self._settings, transport=self._transport) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as exc:
            logger.warning("Failed to fetch manifest from %s: %s", url, exc)
            return None

    def _write_cache(self, content: bytes) -> None:
        try:
            self._cache_path.parent.mkdir(parents=True, exist_ok=True)
            self._cache_path.write_bytes(content)
        except OSError as exc:
            logger.warning("Could not write manifest cache %s: %s", self._cache_path, exc)

    def _load_cache(self) -> ManifestSnapshot:
        if not self._cache_path.is_file():
            logger.warning("No manifest cache at %s, no games are known", self._cache_path)
            return ManifestSnapshot.empty()
        try:
            content = self._cache_path.read_bytes()
        except OSError as exc:
            logger.warning("Could not read manifest cache %s: %s", self._cache_path, exc)
            return ManifestSnapshot.empty()
        snapshot = parse_manifest(content)
        logger.info("Loaded %d games from the cached manifest", len(snapshot))
        return snapshot

    # ManifestSource surface, served from the last acquired snapshot.

    def list_games(self) -> Sequence[str]:
        return self._snapshot.list_games()

    def search_games(self, query: str) -> Sequence[str]:
        return self._snapshot.search_games(query)

    def paths_for(self, game: str) -> Sequence[SaveTemplate]:
        return self._snapshot.paths_for(game)
