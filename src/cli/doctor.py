"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from core.config import AppSettings, get_user_env_file
from core.interfaces.credentials import SettingsCredentialProvider
from core.manifest_store import ManifestStore
from core.path_resolver import KnownDirs

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(url: str, settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc)


def _describe_cache(store: ManifestStore, settings: AppSettings) -> tuple[str, str]:
    age = store.cache_age_seconds()
    if age is None:
        return "MISSING", f"{store.cache_path} (fetched on next scan)"
    days = age / 86400
    status = "STALE" if store.is_stale() else "OK"
    return status, f"{store.cache_path} ({days:.1f} days old, max {settings.manifest_max_age_days:g})"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()
    store = ManifestStore(settings)
    dirs = KnownDirs.detect()

    table = Table(title="SaveKnight Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("API URL", "OK", settings.api_url)
    table.add_row("User config", "OK" if get_user_env_file().exists() else "DEFAULTS", str(get_user_env_file()))
    if SettingsCredentialProvider(settings).get_token():
        table.add_row("Device token", "OK", settings.device_id or "device id not set")
    else:
        table.add_row("Device token", "MISSING", "Uploads need a token -> `saveknight configure`")

    # Manifest
    cache_status, cache_detail = _describe_cache(store, settings)
    table.add_row("Manifest cache", cache_status, cache_detail)

    # Placeholders
    table.add_row("<home>", "OK" if dirs.home else "EMPTY", dirs.home)
    table.add_row("<documents>", "OK" if dirs.documents else "EMPTY", dirs.documents)
    table.add_row("<appData>", "OK" if dirs.app_data else "EMPTY", dirs.app_data)
    table.add_row("<localAppData>", "OK" if dirs.local_app_data else "EMPTY", dirs.local_app_data)
    table.add_row("<osUserName>", "OK", dirs.os_user_name)

    # Connectivity (best-effort)
    ok_http, detail_http = asyncio.run(_check_http(settings.api_url, settings))
    table.add_row("API connectivity", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if cache_status == "MISSING" and not ok_http:
        _console.print(
            "\n[yellow]Note:[/yellow] Without a manifest cache or network access, scans report no games."
        )
