"""Credential store contract.

The core never stores or refreshes tokens; it only asks for one right before
an authenticated request.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.config import AppSettings


@runtime_checkable
class CredentialProvider(Protocol):
    def get_token(self) -> str | None:
        """Bearer token, or None when the device is not registered."""

        ...


class SettingsCredentialProvider:
    """Reads the device token from `AppSettings.device_token`."""

    def __init__(self, settings: AppSettings) -> None:
        self._settings = settings

    def get_token(self) -> str | None:
        token = (self._settings.device_token or "").strip()
        return token or None


class StaticCredentialProvider:
    """Holds a token handed over by the caller."""

    def __init__(self, token: str | None) -> None:
        self._token = token

    def get_token(self) -> str | None:
        return self._token
