"""Contrato para cualquier fuente de juegos que alimente al scanner.

Por qué Protocol:
- Tipado estructural: el almacén del manifiesto, un catálogo en memoria en los
  tests o un futuro catálogo de rutas propias son intercambiables.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from core.domain.models import SaveTemplate


@runtime_checkable
class ManifestSource(Protocol):
    """Read-only view of a game catalog."""

    def list_games(self) -> Sequence[str]:
        """Game names, in catalog order."""

        ...

    def paths_for(self, game: str) -> Sequence[SaveTemplate]:
        """Templates for `game`; empty when the game is unknown."""

        ...
