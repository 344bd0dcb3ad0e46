"""Upload client for the remote save store.

Responsibilities:
- Package one detected game into a temporary zip, checksum it, and send it
  as a single multipart request.
- Turn every outcome into an `UploadResult`; business failures never raise.
- List/create game profiles, the destinations uploads are filed under.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
import zipfile
from pathlib import Path

import httpx
from pydantic import AliasChoices, BaseModel, Field, TypeAdapter, ValidationError
from pydantic.config import ConfigDict

from adapters.archiver import build_save_archive, compute_checksum, sanitize_filename
from adapters.http_client import build_async_client, response_error_text
from core.config import AppSettings
from core.domain.errors import RemoteAPIError
from core.domain.models import DetectedGame, GameProfile, UploadResult

logger = logging.getLogger(__name__)

_TEMP_PREFIX_MAX = 64

_profiles_adapter = TypeAdapter(list[GameProfile])


class SaveVersion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    version_number: int | None = Field(
        default=None,
        validation_alias=AliasChoices("version_number", "versionNumber"),
    )


class UploadResponse(BaseModel):
    """Body of a successful upload. Every field is optional."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    success: bool = False
    upload_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("upload_id", "uploadId"),
    )
    save_version: SaveVersion | None = Field(
        default=None,
        validation_alias=AliasChoices("save_version", "saveVersion"),
    )


def slot_label(game_name: str) -> str:
    return f"{game_name} Auto-Backup"


def archive_file_name(game_name: str) -> str:
    return f"{sanitize_filename(game_name)}.zip"


class SaveUploader:
    """Authenticated client for one remote store and one device token."""

    def __init__(
        self,
        api_url: str,
        token: str,
        settings: AppSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        temp_dir: Path | None = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._token = token
        self._settings = settings or AppSettings()
        self._transport = transport
        self._temp_dir = temp_dir

    def _client(self) -> httpx.AsyncClient:
        return build_async_client(self._settings, bearer_token=self._token, transport=self._transport)

    def upload_url(self, destination_id: str) -> str:
        return f"{self._api_url}/api/devices/upload/{destination_id}"

    async def package_and_upload(self, game: DetectedGame, destination_id: str) -> UploadResult:
        """Archive, checksum and upload `game`. Never raises for upload failures."""

        prefix = sanitize_filename(game.name)[:_TEMP_PREFIX_MAX] + "-"
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=prefix, suffix=".zip", dir=self._temp_dir)
            os.close(fd)
        except OSError as exc:
            logger.warning("Could not create a temporary archive for %s: %s", game.name, exc)
            return UploadResult.failure(game.name, f"Could not create archive: {exc}")

        archive_path = Path(tmp_name)
        try:
            await asyncio.to_thread(build_save_archive, game, archive_path)
            checksum = await asyncio.to_thread(compute_checksum, archive_path)
            payload = await asyncio.to_thread(archive_path.read_bytes)
            response = await self._send_archive(game, destination_id, checksum, payload)
        except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
            logger.warning("Archive for %s failed: %s", game.name, exc)
            return UploadResult.failure(game.name, f"Could not create archive: {exc}")
        except httpx.HTTPError as exc:
            logger.warning("Upload of %s failed: %s", game.name, exc)
            return UploadResult.failure(game.name, f"Request failed: {exc}")
        finally:
            try:
                archive_path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Could not remove temporary archive %s: %s", archive_path, exc)

        return self._result_from_response(game, response, len(payload))

    async def _send_archive(
        self,
        game: DetectedGame,
        destination_id: str,
        checksum: str,
        payload: bytes,
    ) -> httpx.Response:
        local_path = game.paths[0].resolved_path if game.paths else ""
        data = {
            "slotName": slot_label(game.name),
            "localPath": local_path,
            "checksum": checksum,
        }
        files = {"saveFile": (archive_file_name(game.name), payload, "application/zip")}

        async with self._client() as client:
            return await client.post(self.upload_url(destination_id), data=data, files=files)

    def _result_from_response(self, game: DetectedGame, response: httpx.Response, size: int) -> UploadResult:
        if not response.is_success:
            message = response_error_text(response)
            logger.warning("Upload of %s rejected (HTTP %d): %s", game.name, response.status_code, message)
            return UploadResult.failure(game.name, message)

        try:
            body = UploadResponse.model_validate_json(response.content)
        except ValidationError as exc:
            logger.debug("Upload response for %s had no usable body: %s", game.name, exc)
            body = UploadResponse()

        logger.info("Uploaded %s (%d bytes)", game.name, size)
        return UploadResult(
            game_name=game.name,
            success=True,
            message=f"Uploaded {size} bytes successfully",
            upload_id=body.upload_id,
            version_number=body.save_version.version_number if body.save_version else None,
        )

    async def list_game_profiles(self) -> list[GameProfile]:
        async with self._client() as client:
            response = await client.get(f"{self._api_url}/api/devices/game-profiles")

        if not response.is_success:
            raise RemoteAPIError(
                "Failed to fetch game profiles",
                status_code=response.status_code,
                body=response_error_text(response),
            )
        try:
            return _profiles_adapter.validate_json(response.content)
        except ValidationError as exc:
            raise RemoteAPIError(
                "Unexpected game profiles response",
                status_code=response.status_code,
            ) from exc

    async def create_game_profile(self, name: str, platform: str) -> GameProfile:
        async with self._client() as client:
            response = await client.post(
                f"{self._api_url}/api/devices/game-profiles",
                json={"name": name, "platform": platform},
            )

        if not response.is_success:
            error = response_error_text(response)
            raise RemoteAPIError(
                f"Failed to create game profile: {error}",
                status_code=response.status_code,
                body=error,
            )
        try:
            return GameProfile.model_validate_json(response.content)
        except ValidationError as exc:
            raise RemoteAPIError(
                "Unexpected game profile response",
                status_code=response.status_code,
            ) from exc
