"""Manifest path-template resolution.

Turns a template such as `<documents>/My Games/Foo/*.sav` into a concrete,
OS-native glob pattern. Resolution never fails: a placeholder whose directory
cannot be determined becomes an empty string, and tokens we do not know
(`<base>`, `<winAppData>`, half-written `<home`) are left untouched so they
simply match nothing later on.
"""

from __future__ import annotations

import getpass
import os
import sys
from dataclasses import dataclass
from pathlib import Path

FALLBACK_USER_NAME = "user"

# Single-character wildcard: store user ids are left to glob matching.
STORE_USER_ID_WILDCARD = "*"


def _home_dir() -> str:
    try:
        return str(Path.home())
    except (KeyError, RuntimeError):
        return ""


def _env_dir(name: str) -> str:
    return (os.environ.get(name) or "").strip()


def _xdg_user_dir(key: str, home: str) -> str:
    """Read an entry such as XDG_DOCUMENTS_DIR from user-dirs.dirs."""

    value = _env_dir(key)
    if value:
        return value

    config_home = _env_dir("XDG_CONFIG_HOME") or (os.path.join(home, ".config") if home else "")
    if not config_home:
        return ""
    dirs_file = Path(config_home) / "user-dirs.dirs"
    try:
        text = dirs_file.read_text(encoding="utf-8")
    except OSError:
        return ""

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line.startswith(f"{key}="):
            continue
        value = line.split("=", 1)[1].strip().strip('"')
        value = value.replace("$HOME", home)
        # XDG treats "$HOME/" as "disabled".
        if value.rstrip("/") == home.rstrip("/"):
            return ""
        return value
    return ""


def current_user_name() -> str:
    for var in ("USERNAME", "USER", "LOGNAME"):
        value = _env_dir(var)
        if value:
            return value
    try:
        return getpass.getuser() or FALLBACK_USER_NAME
    except (KeyError, OSError, ImportError):
        return FALLBACK_USER_NAME


@dataclass(frozen=True)
class KnownDirs:
    """Values substituted for the manifest placeholders."""

    home: str = ""
    documents: str = ""
    app_data: str = ""
    local_app_data: str = ""
    os_user_name: str = FALLBACK_USER_NAME

    @classmethod
    def detect(cls) -> "KnownDirs":
        home = _home_dir()

        if sys.platform.startswith("win"):
            documents = os.path.join(home, "Documents") if home else ""
            app_data = _env_dir("APPDATA")
            local_app_data = _env_dir("LOCALAPPDATA")
        elif sys.platform == "darwin":
            documents = os.path.join(home, "Documents") if home else ""
            app_data = os.path.join(home, "Library", "Application Support") if home else ""
            local_app_data = app_data
        else:
            documents = _xdg_user_dir("XDG_DOCUMENTS_DIR", home)
            if not documents and home:
                documents = os.path.join(home, "Documents")
            app_data = _env_dir("XDG_DATA_HOME") or (os.path.join(home, ".local", "share") if home else "")
            local_app_data = app_data

        return cls(
            home=home,
            documents=documents,
            app_data=app_data,
            local_app_data=local_app_data,
            os_user_name=current_user_name(),
        )

    def substitutions(self) -> dict[str, str]:
        return {
            "<home>": self.home,
            "<documents>": self.documents,
            "<appData>": self.app_data,
            "<localAppData>": self.local_app_data,
            "<storeUserId>": STORE_USER_ID_WILDCARD,
            "<osUserName>": self.os_user_name,
        }


def resolve_template(template: str, dirs: KnownDirs | None = None, *, sep: str = os.sep) -> str:
    """Substitute every known placeholder, then normalize '/' to `sep`."""

    dirs = dirs or KnownDirs.detect()
    resolved = template
    for token, value in dirs.substitutions().items():
        resolved = resolved.replace(token, value)
    if sep != "/":
        resolved = resolved.replace("/", sep)
    return resolved
