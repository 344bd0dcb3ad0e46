"""Errors raised by the core.

Only precondition failures and auxiliary API failures are raised. Upload
outcomes are reported through `UploadResult`, never as exceptions.
"""

from __future__ import annotations


class SaveKnightError(Exception):
    """Base class for every error raised by the core."""


class ScanInProgressError(SaveKnightError):
    """A full scan was requested while another one is still running."""

    def __init__(self, message: str = "Scan already in progress") -> None:
        super().__init__(message)


class NotAuthenticatedError(SaveKnightError):
    """No stored credential is available for an authenticated request."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class RemoteAPIError(SaveKnightError):
    """The remote store answered an auxiliary request with a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
