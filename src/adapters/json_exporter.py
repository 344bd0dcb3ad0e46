"""Exportación JSON de los resultados de detección.

Por qué JSON:
- Permite que otras herramientas (o una subida posterior) consuman un escaneo
  sin volver a escanear.
- Persiste lo encontrado sin depender de la UI.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

from core.domain.models import DetectedGame


def export_detected_games_json(*, games: Sequence[DetectedGame], output_path: Path) -> Path:
    """Export detected games to UTF-8 JSON with a stable layout."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "generated_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "games": [game.model_dump(mode="json") for game in games],
    }
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path


def load_detected_games_json(path: Path) -> list[DetectedGame]:
    data = json.loads(path.read_text(encoding="utf-8"))
    return [DetectedGame.model_validate(item) for item in data.get("games", [])]
