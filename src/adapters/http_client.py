"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers y política de redirecciones en cada petición.
- Facilita testeo: se puede inyectar un `transport` (httpx.MockTransport).
"""

from __future__ import annotations

import httpx

from core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    bearer_token: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an `httpx.AsyncClient` with safe defaults.

    Why a builder:
    - Centralizes timeouts/headers so manifest fetches and uploads behave alike.
    - Keeps the Authorization header format in one place.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json, application/yaml;q=0.9, */*;q=0.8",
    }
    if bearer_token:
        headers["Authorization"] = f"Bearer {bearer_token}"
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def response_error_text(response: httpx.Response) -> str:
    """Body of a failed response, verbatim; a status line when the body is empty."""

    try:
        text = response.text
    except (httpx.HTTPError, UnicodeDecodeError):
        text = ""
    if text:
        return text
    return f"HTTP {response.status_code}"
