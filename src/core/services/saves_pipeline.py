"""Operations exposed to the command-dispatch boundary.

The CLI (or any other front-end) builds one `CoreContext` from configuration
and the credential store, then calls these functions. Nothing in here reaches
for global settings on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

import httpx

from adapters.uploader import SaveUploader
from core.config import AppSettings
from core.domain.errors import NotAuthenticatedError
from core.domain.models import DetectedGame, GameProfile, UploadResult
from core.interfaces.credentials import CredentialProvider, SettingsCredentialProvider
from core.manifest_store import ManifestStore
from core.path_resolver import KnownDirs
from core.services.save_scanner import SaveScanner, ScanHooks
from core.services.single_flight import SCAN_GUARD, SingleFlightGuard

logger = logging.getLogger(__name__)


@dataclass
class CoreContext:
    """Everything the core needs from its collaborators, sourced once."""

    settings: AppSettings
    credentials: CredentialProvider | None = None
    scan_guard: SingleFlightGuard = field(default=SCAN_GUARD)
    known_dirs: KnownDirs | None = None
    temp_dir: Path | None = None
    transport: httpx.AsyncBaseTransport | None = None

    def __post_init__(self) -> None:
        if self.credentials is None:
            self.credentials = SettingsCredentialProvider(self.settings)

    def manifest_store(self) -> ManifestStore:
        return ManifestStore(self.settings, transport=self.transport)

    def scanner(self, store: ManifestStore) -> SaveScanner:
        if self.known_dirs is None:
            return SaveScanner(store)
        return SaveScanner(store, self.known_dirs)

    def require_token(self) -> str:
        token = self.credentials.get_token() if self.credentials else None
        if not token:
            raise NotAuthenticatedError()
        return token

    def uploader(self) -> SaveUploader:
        return SaveUploader(
            self.settings.api_url,
            self.require_token(),
            self.settings,
            transport=self.transport,
            temp_dir=self.temp_dir,
        )


async def scan_all_games(
    context: CoreContext,
    *,
    refresh: bool = False,
    hooks: ScanHooks | None = None,
) -> list[DetectedGame]:
    """Full scan. Raises `ScanInProgressError` if one is already running."""

    with context.scan_guard.hold():
        store = context.manifest_store()
        await store.acquire(refresh=refresh)
        return await context.scanner(store).scan_all(hooks)


async def detect_games(
    context: CoreContext,
    names: Sequence[str],
    *,
    refresh: bool = False,
) -> dict[str, DetectedGame | None]:
    """Scan only `names`, in order. Unknown games map to None."""

    store = context.manifest_store()
    await store.acquire(refresh=refresh)
    scanner = context.scanner(store)
    return {name: await scanner.scan_one(name) for name in names}


async def upload_saves(
    context: CoreContext,
    games: Sequence[DetectedGame],
    destination_id: str,
) -> list[UploadResult]:
    """Upload each game in order; exactly one result per input game.

    Raises `NotAuthenticatedError` up front when no token is stored.
    """

    uploader = context.uploader()

    results: list[UploadResult] = []
    for game in games:
        try:
            result = await uploader.package_and_upload(game, destination_id)
        except Exception as exc:  # pragma: no cover - defensive fallback
            logger.exception("Unexpected failure uploading %s", game.name)
            result = UploadResult.failure(game.name, str(exc))
        results.append(result)

    succeeded = sum(1 for r in results if r.success)
    logger.info("Upload batch finished: %d succeeded, %d failed", succeeded, len(results) - succeeded)
    return results


async def list_game_profiles(context: CoreContext) -> list[GameProfile]:
    return await context.uploader().list_game_profiles()


async def create_game_profile(context: CoreContext, name: str, platform: str) -> GameProfile:
    return await context.uploader().create_game_profile(name, platform)
