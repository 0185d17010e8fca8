"""Cargador de recursos (anclas de confianza TLS).

Este módulo vive en `core/` porque:
- centraliza *dónde* buscamos archivos de datos sin acoplarse a la CLI
- evita duplicar lógica de paths en adaptadores.

No incluye el certificado en el repo; se busca `zeus_sii.pem` en `data/`.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from core.config import get_user_config_dir

DEFAULT_CA_BUNDLE_NAME = "zeus_sii.pem"


def _project_root() -> Path:
    # core/resources_loader.py -> core -> src -> <project_root>
    return Path(__file__).resolve().parents[2]


def data_dir() -> Path:
    """Directorio de datos en runtime.

    Reglas:
    - Si SII_LOOKUP_DATA_DIR está definido, se usa tal cual.
    - Si estamos en modo "frozen" (PyInstaller), usar un path escribible del usuario.
    - En desarrollo, usar <project_root>/data.
    """

    override = (os.environ.get("SII_LOOKUP_DATA_DIR") or "").strip()
    if override:
        return Path(override)

    if getattr(sys, "frozen", False):
        return get_user_config_dir() / "data"

    return _project_root() / "data"


def find_ca_bundle(filename: str = DEFAULT_CA_BUNDLE_NAME) -> Path | None:
    """Busca un PEM de confianza en ubicaciones comunes.

    Orden:
    1) <data_dir>/<filename>
    2) <user_config_dir>/data/<filename>
    3) ./<filename> (cwd)
    """

    candidates = [
        data_dir() / filename,
        get_user_config_dir() / "data" / filename,
        Path.cwd() / filename,
    ]
    for p in candidates:
        if p.exists() and p.is_file():
            return p
    return None
