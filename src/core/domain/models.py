"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- Los resultados de detección y subida se serializan limpiamente para la CLI y
  la exportación JSON.

Nota:
- Estos modelos describen *qué* se encontró, no *cómo* se encontró.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class SaveTemplate(BaseModel):
    """A raw save-path template taken from one manifest entry."""

    model_config = ConfigDict(frozen=True)

    template: str = Field(
        ...,
        description="Path template, possibly containing placeholders such as '<home>'.",
    )
    tags: list[str] = Field(
        default_factory=list,
        description="Manifest tags for this path (e.g. 'save', 'config').",
    )
    when: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Manifest conditions (os/store). Kept for reference, not evaluated.",
    )


class DetectedSavePath(BaseModel):
    """Measurement of a single resolved template."""

    model_config = ConfigDict(frozen=True)

    pattern: str = Field(
        ...,
        description="Original manifest template.",
    )
    resolved_path: str = Field(
        ...,
        description="Template after placeholder substitution (an OS-native glob).",
    )
    exists: bool = Field(
        default=False,
        description="Whether the glob matched at least one filesystem entry.",
    )
    file_count: int = Field(
        default=0,
        ge=0,
        description="Number of regular files found under the matches.",
    )
    total_size_bytes: int = Field(
        default=0,
        ge=0,
        description="Aggregate size of the files found under the matches.",
    )

    @property
    def has_files(self) -> bool:
        return self.exists and self.file_count > 0


class DetectedGame(BaseModel):
    """Detection result for one game.

    `total_size_bytes` is always the sum of the constituent path sizes.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(
        ...,
        min_length=1,
        description="Game name, as keyed in the manifest.",
    )
    paths: list[DetectedSavePath] = Field(
        default_factory=list,
        description="One entry per manifest template, in manifest order.",
    )
    total_size_bytes: int = Field(
        default=0,
        ge=0,
        description="Sum of `total_size_bytes` across `paths`.",
    )
    last_modified: datetime | None = Field(
        default=None,
        description="Latest modification time among the matched entries (UTC).",
    )

    @property
    def file_count(self) -> int:
        return sum(p.file_count for p in self.paths)

    @property
    def has_saves(self) -> bool:
        return any(p.has_files for p in self.paths)


class UploadResult(BaseModel):
    """Outcome of a single game upload. One per attempted game."""

    game_name: str = Field(
        ...,
        description="Name of the game this result belongs to.",
    )
    success: bool = Field(
        default=False,
        description="True only when the remote store accepted the archive.",
    )
    message: str = Field(
        default="",
        description=(
            "Human-readable outcome, or the remote error text verbatim. "
            "A rejection with an empty body reads 'HTTP <status>' instead of ''."
        ),
    )
    upload_id: str | None = Field(
        default=None,
        description="Identifier assigned by the remote store, if provided.",
    )
    version_number: int | None = Field(
        default=None,
        description="Save version assigned by the remote store, if provided.",
    )

    @classmethod
    def failure(cls, game_name: str, message: str) -> "UploadResult":
        return cls(game_name=game_name, success=False, message=message)


class GameProfile(BaseModel):
    """Upload destination on the remote store."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    platform: str = Field(default="")
