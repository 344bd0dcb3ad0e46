"""Save detection.

Resolves every manifest template to a glob, evaluates it against the
filesystem and aggregates what it finds per game. UI concerns (progress bars,
printing) stay out of here; callers plug in through `ScanHooks`.
"""

from __future__ import annotations

import asyncio
import glob
import logging
import os
import stat
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterator

from core.domain.models import DetectedGame, DetectedSavePath, SaveTemplate
from core.interfaces.manifest import ManifestSource
from core.path_resolver import KnownDirs, resolve_template

logger = logging.getLogger(__name__)


@dataclass
class ScanHooks:
    """Optional callbacks for UI layers (progress)."""

    start: Callable[[int], None] | None = None
    progress: Callable[[int, int, str], None] | None = None


@dataclass
class PathMeasurement:
    exists: bool = False
    file_count: int = 0
    total_size_bytes: int = 0
    latest_mtime: float | None = None

    def add_file(self, st: os.stat_result) -> None:
        self.file_count += 1
        self.total_size_bytes += st.st_size

    def touch(self, mtime: float) -> None:
        if self.latest_mtime is None or mtime > self.latest_mtime:
            self.latest_mtime = mtime


def iter_regular_files(root: str) -> Iterator[os.stat_result]:
    """Yield stat results of every regular file under `root`.

    Symlinks are not followed. Entries that cannot be read are skipped.
    """

    stack = [root]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            logger.debug("Skipping unreadable directory %s: %s", current, exc)
            continue

        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    stack.append(entry.path)
                elif entry.is_file(follow_symlinks=False):
                    yield entry.stat(follow_symlinks=False)
            except OSError as exc:
                logger.debug("Skipping unreadable entry %s: %s", entry.path, exc)


def expand_glob(pattern: str) -> list[str]:
    if not pattern:
        return []
    return sorted(glob.glob(pattern, recursive=True, include_hidden=True))


def measure_pattern(pattern: str) -> PathMeasurement:
    """Count and size every regular file matched by `pattern`."""

    measurement = PathMeasurement()
    for match in expand_glob(pattern):
        measurement.exists = True
        try:
            st = os.stat(match)
        except OSError as exc:
            logger.debug("Match vanished or is unreadable %s: %s", match, exc)
            continue

        measurement.touch(st.st_mtime)
        if stat.S_ISREG(st.st_mode):
            measurement.add_file(st)
        elif stat.S_ISDIR(st.st_mode):
            for file_stat in iter_regular_files(match):
                measurement.add_file(file_stat)
    return measurement


@dataclass
class SaveScanner:
    """Turns manifest templates into `DetectedGame` results."""

    source: ManifestSource
    dirs: KnownDirs = field(default_factory=KnownDirs.detect)

    def resolve(self, template: SaveTemplate) -> str:
        return resolve_template(template.template, self.dirs)

    def scan_game(self, name: str) -> DetectedGame | None:
        """Measure every template of `name`. None when the game has no templates."""

        templates = self.source.paths_for(name)
        if not templates:
            return None

        detected_paths: list[DetectedSavePath] = []
        total_size = 0
        latest_mtime: float | None = None

        for template in templates:
            resolved = self.resolve(template)
            measurement = measure_pattern(resolved)
            total_size += measurement.total_size_bytes
            if measurement.latest_mtime is not None:
                if latest_mtime is None or measurement.latest_mtime > latest_mtime:
                    latest_mtime = measurement.latest_mtime

            detected_paths.append(
                DetectedSavePath(
                    pattern=template.template,
                    resolved_path=resolved,
                    exists=measurement.exists,
                    file_count=measurement.file_count,
                    total_size_bytes=measurement.total_size_bytes,
                )
            )

        last_modified = None
        if latest_mtime is not None:
            last_modified = datetime.fromtimestamp(latest_mtime, tz=timezone.utc)

        return DetectedGame(
            name=name,
            paths=detected_paths,
            total_size_bytes=total_size,
            last_modified=last_modified,
        )

    async def scan_one(self, name: str) -> DetectedGame | None:
        return await asyncio.to_thread(self.scan_game, name)

    async def scan_all(self, hooks: ScanHooks | None = None) -> list[DetectedGame]:
        """Scan every known game; keep the ones with files, largest first."""

        hooks = hooks or ScanHooks()
        names = list(self.source.list_games())
        total = len(names)
        if hooks.start:
            hooks.start(total)

        detected: list[DetectedGame] = []
        for index, name in enumerate(names, start=1):
            try:
                game = await self.scan_one(name)
            except Exception as exc:  # pragma: no cover - defensive fallback
                logger.warning("Scan of %s failed: %s", name, exc)
                game = None

            if game is not None and game.has_saves:
                detected.append(game)
            if hooks.progress:
                hooks.progress(index, total, name)

        detected.sort(key=lambda g: g.total_size_bytes, reverse=True)
        logger.info("Detected saves for %d of %d games", len(detected), total)
        return detected
