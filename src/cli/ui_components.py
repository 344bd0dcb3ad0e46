"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas en varios comandos (scan, upload, profiles).
"""

from __future__ import annotations

from typing import Sequence

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from core.domain.models import DetectedGame, GameProfile, UploadResult


def format_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


def print_banner(console: Console) -> None:
    title = Text("SaveKnight", style="bold cyan")
    subtitle = Text("Game save detection • Backup uploads", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_scan_progress(console: Console) -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    )


def build_games_table(games: Sequence[DetectedGame]) -> Table:
    table = Table(title=f"Detected Saves ({len(games)})")
    table.add_column("Game", style="cyan")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right", style="green")
    table.add_column("Last modified", style="dim")
    table.add_column("Location", style="magenta")

    for game in games:
        locations = [p.resolved_path for p in game.paths if p.has_files]
        last_modified = game.last_modified.strftime("%Y-%m-%d %H:%M:%S") if game.last_modified else "-"
        table.add_row(
            game.name,
            str(game.file_count),
            format_size(game.total_size_bytes),
            last_modified,
            "\n".join(locations),
        )
    return table


def build_game_paths_table(game: DetectedGame) -> Table:
    table = Table(title=game.name)
    table.add_column("Template", style="white")
    table.add_column("Resolved", style="magenta")
    table.add_column("Exists")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right", style="green")
    for path in game.paths:
        table.add_row(
            path.pattern,
            path.resolved_path,
            "[green]yes[/green]" if path.exists else "[dim]no[/dim]",
            str(path.file_count),
            format_size(path.total_size_bytes),
        )
    return table


def build_upload_results_table(results: Sequence[UploadResult]) -> Table:
    table = Table(title="Upload Results")
    table.add_column("Game", style="cyan")
    table.add_column("Status")
    table.add_column("Version", justify="right")
    table.add_column("Message", style="dim")
    for result in results:
        status = "[green]OK[/green]" if result.success else "[red]FAILED[/red]"
        version = str(result.version_number) if result.version_number is not None else "-"
        table.add_row(result.game_name, status, version, result.message)
    return table


def build_profiles_table(profiles: Sequence[GameProfile]) -> Table:
    table = Table(title="Game Profiles")
    table.add_column("ID", style="bright_green", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Platform", style="white")
    for profile in profiles:
        table.add_row(profile.id, profile.name, profile.platform)
    return table
