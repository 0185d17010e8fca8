"""Exportación JSON de contribuyentes.

Por qué JSON:
- Interoperabilidad con otras herramientas y pipelines.
- Un archivo por RUT permite reanudar escaneos sin reescribir resultados.
"""

from __future__ import annotations

import json
from pathlib import Path

from core.domain.models import Citizen


def citizen_output_path(*, citizen: Citizen, output_dir: Path, files_per_dir: int) -> Path:
    """`<output_dir>/<run // files_per_dir>/<rut>.json`."""

    shard = int(citizen.run) // files_per_dir
    return output_dir / str(shard) / f"{citizen.rut}.json"


def export_citizen_json(*, citizen: Citizen, output_path: Path) -> Path:
    """Exporta `Citizen` a JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = citizen.model_dump(mode="json")
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
