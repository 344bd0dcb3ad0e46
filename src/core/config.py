"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (HTTP, manifiesto, subidas) lean config de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_DIR_NAME = "SaveKnight"

LUDUSAVI_MANIFEST_URL = (
    "https://raw.githubusercontent.com/mtkennerly/ludusavi-manifest/master/"
    "data/manifest.yaml"
)


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / APP_DIR_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / APP_DIR_NAME
    return Path.home() / ".config" / APP_DIR_NAME


def get_user_cache_dir() -> Path:
    """Per-user cache directory, where the manifest snapshot lives."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("LOCALAPPDATA", str(Path.home())))
        return base / APP_DIR_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches" / APP_DIR_NAME

    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg:
        return Path(xdg) / APP_DIR_NAME
    return Path.home() / ".cache" / APP_DIR_NAME


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str | None], env_path: Path | None = None) -> Path:
    """Write/update variables in the user's global .env file."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        try:
            existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))
        except OSError:
            existing = {}

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# SaveKnight user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Central application configuration.

    Why pydantic-settings:
    - Typed and validated at the edge (env vars) without cluttering the core.
    - A single configuration contract shared by the CLI and adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="SAVEKNIGHT_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    api_url: str = Field(
        default="https://saveknight.com",
        min_length=8,
        description="Base URL of the remote save store.",
    )
    device_id: str | None = Field(
        default=None,
        description="Registered device identifier (opaque).",
    )
    device_token: str | None = Field(
        default=None,
        description="Bearer token used for authenticated requests.",
    )

    manifest_url: str = Field(
        default=LUDUSAVI_MANIFEST_URL,
        min_length=8,
        description="Remote manifest of games and save-path templates.",
    )
    manifest_max_age_days: float = Field(
        default=7.0,
        ge=0,
        description="Age after which the cached manifest is considered stale.",
    )
    cache_dir: Path | None = Field(
        default=None,
        description="Override for the directory holding the manifest cache.",
    )

    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout per request (seconds).",
    )
    user_agent: str = Field(
        default="saveknight/0.1 (+https://saveknight.com)",
        min_length=1,
        description="User-Agent sent with every request.",
    )

    def resolved_cache_dir(self) -> Path:
        return self.cache_dir if self.cache_dir is not None else get_user_cache_dir()
