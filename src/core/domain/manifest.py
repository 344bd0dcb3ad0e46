"""Manifest document models.

The manifest is authored upstream (ludusavi-manifest) and only loosely typed.
These models are the validated intermediate form:
- unknown keys (installDir, steam, gog, launch, ...) are ignored
- missing optional keys default to empty
- anything else that does not fit is a validation error
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, RootModel, field_validator
from pydantic.config import ConfigDict

from core.domain.models import SaveTemplate


class ManifestFile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tags: list[str] = Field(default_factory=list)
    when: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("tags", "when", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ManifestGame(BaseModel):
    model_config = ConfigDict(extra="ignore")

    files: dict[str, ManifestFile] = Field(default_factory=dict)
    # Windows registry keys; parsed for shape only, never used.
    registry: dict[str, Any] = Field(default_factory=dict)

    @field_validator("registry", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("files", mode="before")
    @classmethod
    def _bare_file_entries(cls, value: Any) -> Any:
        if value is None:
            return {}
        # `path: ~` is a file entry without tags or conditions.
        if isinstance(value, dict):
            return {key: ({} if info is None else info) for key, info in value.items()}
        return value

    def templates(self) -> list[SaveTemplate]:
        return [
            SaveTemplate(template=template, tags=list(info.tags), when=list(info.when))
            for template, info in self.files.items()
        ]


class ManifestDocument(RootModel[dict[str, ManifestGame]]):
    """Whole manifest: game name -> entry. Key order is preserved."""

    root: dict[str, ManifestGame] = Field(default_factory=dict)
