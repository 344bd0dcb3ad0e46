"""SaveKnight CLI (Typer).

The CLI is the command-dispatch boundary: it reads configuration once, builds
a `CoreContext`, calls the core operations and renders their results.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich.console import Console

from adapters.json_exporter import export_detected_games_json, load_detected_games_json
from cli import doctor
from cli.ui_components import (
    build_game_paths_table,
    build_games_table,
    build_profiles_table,
    build_scan_progress,
    build_upload_results_table,
    print_banner,
)
from core.config import AppSettings, write_user_env_vars
from core.domain.errors import SaveKnightError
from core.domain.models import DetectedGame
from core.logging_config import setup_logging
from core.manifest_store import ManifestStore
from core.services.save_scanner import ScanHooks
from core.services.saves_pipeline import (
    CoreContext,
    create_game_profile,
    detect_games,
    list_game_profiles,
    scan_all_games,
    upload_saves,
)

app = typer.Typer(no_args_is_help=True, help="Detect game saves and back them up to SaveKnight.")
games_app = typer.Typer(no_args_is_help=True, help="Browse the save-location manifest.")
profiles_app = typer.Typer(no_args_is_help=True, help="Manage upload destinations (game profiles).")

app.add_typer(games_app, name="games")
app.add_typer(profiles_app, name="profiles")
app.add_typer(doctor.app, name="doctor")

_console = Console()


def _context() -> CoreContext:
    return CoreContext(settings=AppSettings())


def _fail(exc: Exception) -> NoReturn:
    _console.print(f"[red]Error:[/red] {exc}")
    raise typer.Exit(code=1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
) -> None:
    setup_logging(verbose)


@app.command()
def scan(
    json_out: Optional[Path] = typer.Option(None, "--json", help="Also write the results to this JSON file."),
    refresh: bool = typer.Option(False, "--refresh", help="Re-fetch the manifest even if the cache is fresh."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Only show the N largest games."),
    banner: bool = typer.Option(True, "--banner/--no-banner"),
) -> None:
    """Scan this machine for known game saves."""

    if banner:
        print_banner(_console)

    context = _context()
    with build_scan_progress(_console) as progress:
        task = progress.add_task("Loading manifest", total=None)
        hooks = ScanHooks(
            start=lambda total: progress.update(task, total=total, description="Scanning"),
            progress=lambda done, total, name: progress.update(task, completed=done),
        )
        try:
            games = asyncio.run(scan_all_games(context, refresh=refresh, hooks=hooks))
        except SaveKnightError as exc:
            _fail(exc)

    if json_out is not None:
        export_detected_games_json(games=games, output_path=json_out)
        _console.print(f"[green]Saved scan to:[/green] {json_out}")

    if not games:
        _console.print("[yellow]No save data found.[/yellow]")
        return

    shown = games[:limit] if limit else games
    _console.print(build_games_table(shown))


@games_app.command("search")
def games_search(
    query: str = typer.Argument(..., help="Case-insensitive substring of the game name."),
    refresh: bool = typer.Option(False, "--refresh"),
) -> None:
    """List manifest games whose name contains QUERY."""

    store = ManifestStore(AppSettings())
    asyncio.run(store.acquire(refresh=refresh))
    matches = store.search_games(query)
    if not matches:
        _console.print(f"[yellow]No games match[/yellow] {query!r}")
        return
    for name in matches:
        _console.print(name)


@games_app.command("paths")
def games_paths(name: str = typer.Argument(..., help="Exact game name, as in the manifest.")) -> None:
    """Show how each save template of NAME resolves on this machine."""

    detected = asyncio.run(detect_games(_context(), [name]))
    game = detected.get(name)
    if game is None:
        _console.print(f"[yellow]Unknown game or no save paths:[/yellow] {name}")
        raise typer.Exit(code=1)
    _console.print(build_game_paths_table(game))


@profiles_app.command("list")
def profiles_list() -> None:
    """List the game profiles available as upload destinations."""

    try:
        profiles = asyncio.run(list_game_profiles(_context()))
    except SaveKnightError as exc:
        _fail(exc)
    _console.print(build_profiles_table(profiles))


@profiles_app.command("create")
def profiles_create(
    name: str = typer.Argument(...),
    platform: str = typer.Argument("pc"),
) -> None:
    """Create a game profile on the remote store."""

    try:
        profile = asyncio.run(create_game_profile(_context(), name, platform))
    except SaveKnightError as exc:
        _fail(exc)
    _console.print(f"[green]Created profile[/green] {profile.name} ({profile.id})")


def _select_games(context: CoreContext, names: List[str], from_json: Optional[Path]) -> list[DetectedGame]:
    if from_json is not None:
        loaded = load_detected_games_json(from_json)
        if not names:
            return loaded
        by_name = {game.name: game for game in loaded}
        candidates: dict[str, DetectedGame | None] = {name: by_name.get(name) for name in names}
    else:
        candidates = asyncio.run(detect_games(context, names))

    selected: list[DetectedGame] = []
    for name, game in candidates.items():
        if game is None or not game.has_saves:
            _console.print(f"[yellow]Skipping {name}:[/yellow] no save data detected")
            continue
        selected.append(game)
    return selected


@app.command()
def upload(
    names: Optional[List[str]] = typer.Argument(None, help="Game names to upload, in order."),
    profile: str = typer.Option(..., "--profile", "-p", help="Destination game profile id."),
    from_json: Optional[Path] = typer.Option(
        None,
        "--from",
        exists=True,
        dir_okay=False,
        help="Use a previous `scan --json` output instead of scanning.",
    ),
) -> None:
    """Archive and upload the saves of the given games."""

    names = names or []
    if not names and from_json is None:
        raise typer.BadParameter("give at least one game name or --from")

    context = _context()
    games = _select_games(context, names, from_json)
    if not games:
        _console.print("[yellow]Nothing to upload.[/yellow]")
        raise typer.Exit(code=1)

    try:
        results = asyncio.run(upload_saves(context, games, profile))
    except SaveKnightError as exc:
        _fail(exc)

    _console.print(build_upload_results_table(results))
    if not all(result.success for result in results):
        raise typer.Exit(code=1)


@app.command()
def configure(
    api_url: Optional[str] = typer.Option(None, "--api-url", help="Base URL of the save store."),
    device_id: Optional[str] = typer.Option(None, "--device-id"),
    token: Optional[str] = typer.Option(None, "--token", help="Device token (prompted when omitted)."),
) -> None:
    """Store connection settings in the user config .env."""

    if token is None:
        token = typer.prompt("Device token (leave empty to keep)", default="", hide_input=True, show_default=False)

    values = {
        "SAVEKNIGHT_API_URL": api_url,
        "SAVEKNIGHT_DEVICE_ID": device_id,
        "SAVEKNIGHT_DEVICE_TOKEN": token.strip() or None,
    }
    if not any(values.values()):
        _console.print("[yellow]Nothing to save.[/yellow]")
        return

    env_path = write_user_env_vars(values)
    _console.print(f"[green]Saved config to:[/green] {env_path}")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
