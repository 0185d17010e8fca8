"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (HTTP/SII) lean config de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

SII_CAPTCHA_URL = "https://zeus.sii.cl/cvc_cgi/stc/CViewCaptcha.cgi"
SII_LOOKUP_URL = "https://zeus.sii.cl/cvc_cgi/stc/getstc"


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "sii-lookup"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "sii-lookup"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "sii-lookup"
    return Path.home() / ".config" / "sii-lookup"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# sii-lookup user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="SII_LOOKUP_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout por request (segundos). Acota la latencia de cada intento.",
    )
    user_agent: str = Field(
        default="sii-lookup/0.1 (+https://local)",
        min_length=1,
        description="User-Agent para peticiones al SII.",
    )

    captcha_url: str = Field(
        default=SII_CAPTCHA_URL,
        min_length=8,
        description="Endpoint que entrega el desafío captcha (JSON con txtCaptcha).",
    )
    lookup_url: str = Field(
        default=SII_LOOKUP_URL,
        min_length=8,
        description="Endpoint de consulta de situación tributaria por RUT.",
    )

    tls_verify: bool = Field(
        default=True,
        description=(
            "Verificación estricta del certificado del servidor. "
            "False es un modo de compatibilidad para zeus.sii.cl (no recomendado)."
        ),
    )
    ca_bundle_path: Path | None = Field(
        default=None,
        description="PEM con anclas de confianza adicionales (se suman a las del sistema).",
    )

    captcha_fetch_max_attempts: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Intentos para obtener un captcha utilizable antes de rendirse.",
    )
    lookup_max_attempts: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Intentos de la consulta ante fallos de red.",
    )
    retry_backoff_max_seconds: float = Field(
        default=8.0,
        ge=0,
        description="Espera aleatoria máxima (uniforme en [0, max]) entre intentos.",
    )
    captcha_max_retries: int = Field(
        default=10,
        ge=0,
        le=1000,
        description="Reintentos con captcha nuevo cuando el SII rechaza el captcha.",
    )

    scan_workers: int = Field(
        default=10,
        ge=1,
        le=500,
        description="Workers concurrentes del escaneo masivo.",
    )
    scan_output_dir: Path = Field(
        default=Path("output"),
        description="Directorio raíz donde se guardan los JSON encontrados.",
    )
    scan_index_file: Path = Field(
        default=Path("last_run_idx.txt"),
        description="Archivo con el último RUN encontrado (para reanudar).",
    )
    scan_files_per_dir: int = Field(
        default=10_000,
        ge=1,
        description="Cantidad de RUNs por subdirectorio de salida.",
    )

    log_level: str = Field(
        default="INFO",
        description="Nivel de logging (DEBUG, INFO, WARNING, ERROR).",
    )
