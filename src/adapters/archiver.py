"""Save archive construction.

Layout of the produced zip:
- a file matched directly by a template is stored flat, by file name only
- a directory matched by a template is stored recursively, with paths relative
  to that directory (its own name is not part of the entry names)

Both shapes are relied upon by whatever restores the archive, so they are kept
as they are even though they differ.

Entries carry a fixed timestamp and mode, so the archive bytes (and checksum)
depend only on file contents and match order.
"""

from __future__ import annotations

import hashlib
import logging
import os
import zipfile
from dataclasses import dataclass, field
from pathlib import Path

from core.domain.models import DetectedGame
from core.services.save_scanner import expand_glob

logger = logging.getLogger(__name__)

_INVALID_FILENAME_CHARS = frozenset('/\\:*?"<>|')

# Zip epoch: timestamps are not part of the archive identity.
_ENTRY_DATE_TIME = (1980, 1, 1, 0, 0, 0)
_FILE_MODE = 0o100644
_DIR_MODE = 0o040755

_CHUNK_SIZE = 8192


def sanitize_filename(name: str) -> str:
    """Replace characters that are invalid in file names on any platform."""

    return "".join("_" if ch in _INVALID_FILENAME_CHARS else ch for ch in name)


@dataclass
class ArchiveStats:
    files_added: int = 0
    skipped: list[str] = field(default_factory=list)


def _file_info(arcname: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(arcname, date_time=_ENTRY_DATE_TIME)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = _FILE_MODE << 16
    return info


def _dir_info(arcname: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(arcname.rstrip("/") + "/", date_time=_ENTRY_DATE_TIME)
    info.external_attr = (_DIR_MODE << 16) | 0x10
    return info


class _ArchiveWriter:
    def __init__(self, zf: zipfile.ZipFile) -> None:
        self._zf = zf
        self._names: set[str] = set()
        self.stats = ArchiveStats()

    def add_file(self, path: str, arcname: str) -> None:
        if arcname in self._names:
            logger.debug("Duplicate archive entry %s from %s, keeping the first", arcname, path)
            self.stats.skipped.append(path)
            return
        try:
            with open(path, "rb") as fh:
                data = fh.read()
        except OSError as exc:
            logger.debug("Skipping unreadable file %s: %s", path, exc)
            self.stats.skipped.append(path)
            return
        self._zf.writestr(_file_info(arcname), data)
        self._names.add(arcname)
        self.stats.files_added += 1

    def add_dir_entry(self, arcname: str) -> None:
        key = arcname.rstrip("/") + "/"
        if key in self._names:
            return
        self._zf.writestr(_dir_info(key), b"")
        self._names.add(key)

    def add_tree(self, base: str, current: str) -> None:
        try:
            with os.scandir(current) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            logger.debug("Skipping unreadable directory %s: %s", current, exc)
            self.stats.skipped.append(current)
            return

        for entry in entries:
            arcname = os.path.relpath(entry.path, base).replace(os.sep, "/")
            try:
                is_file = entry.is_file()
                is_dir = not is_file and entry.is_dir(follow_symlinks=False)
            except OSError as exc:
                logger.debug("Skipping unreadable entry %s: %s", entry.path, exc)
                self.stats.skipped.append(entry.path)
                continue

            if is_file:
                self.add_file(entry.path, arcname)
            elif is_dir:
                self.add_dir_entry(arcname)
                self.add_tree(base, entry.path)


def build_save_archive(game: DetectedGame, output_path: Path) -> ArchiveStats:
    """Write a deflated zip of every file matched for `game` to `output_path`.

    Only paths flagged `exists` are re-evaluated. Files that disappeared or
    cannot be read are skipped; errors creating the archive itself propagate.
    """

    with zipfile.ZipFile(output_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        writer = _ArchiveWriter(zf)
        for detected in game.paths:
            if not detected.exists:
                continue
            for match in expand_glob(detected.resolved_path):
                if os.path.isfile(match):
                    writer.add_file(match, os.path.basename(match) or "file")
                elif os.path.isdir(match):
                    writer.add_tree(match, match)

    if writer.stats.skipped:
        logger.info(
            "Archive for %s: %d files added, %d entries skipped",
            game.name,
            writer.stats.files_added,
            len(writer.stats.skipped),
        )
    return writer.stats


def compute_checksum(path: Path) -> str:
    """SHA-256 of the file at `path`, hex encoded."""

    hasher = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()
