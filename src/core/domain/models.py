"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- Serialización estable (`model_dump(mode="json")`) para exportar resultados.

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class CaptchaCredential(BaseModel):
    """Par (token, solución) que autoriza consultas mientras el SII lo acepte.

    Es inmutable: el caché lo entrega por valor y nadie lo modifica.
    """

    model_config = ConfigDict(frozen=True)

    token: str = Field(
        ...,
        min_length=1,
        description="Desafío en Base64 tal como lo entrega el SII (txtCaptcha).",
    )
    solution: str = Field(
        ...,
        min_length=1,
        description="Texto que resuelve el captcha (4 caracteres).",
    )


class CommercialActivity(BaseModel):
    """Actividad económica declarada por el contribuyente."""

    code: str = Field(
        ...,
        min_length=1,
        description="Código de actividad económica (p.ej. '829900').",
    )
    name: str = Field(
        default="",
        description="Glosa de la actividad (frecuentemente vacía).",
    )


class Citizen(BaseModel):
    """Contribuyente encontrado en el SII.

    Por qué `rut` y `run` separados:
    - `rut` es el identificador canónico con dígito verificador ("5126663-3").
    - `run` es solo el cuerpo numérico, útil para ordenar y particionar salidas.
    """

    rut: str = Field(
        default="",
        description="RUT canónico sin puntos, con guion y DV en mayúscula.",
    )
    run: str = Field(
        default="",
        description="Cuerpo numérico del RUT.",
    )
    name: str = Field(
        ...,
        min_length=1,
        description="Nombre o razón social.",
    )
    activities: list[CommercialActivity] = Field(
        default_factory=list,
        description="Actividades económicas vigentes (sin filas de años).",
    )


class RequestMetrics(BaseModel):
    """Métricas de una llamada a `lookup`.

    `total_count` es acumulado por cliente (captchas + consultas);
    el resto se recalcula en cada llamada.
    """

    total_count: int = Field(
        default=0,
        ge=0,
        description="Total de requests emitidos por el cliente desde su creación.",
    )
    avg_time: float = Field(
        default=0.0,
        ge=0.0,
        description="Latencia promedio (segundos) de los intentos del último ciclo.",
    )
    attempts: int = Field(
        default=0,
        ge=0,
        description="Intentos consumidos en el último ciclo de consulta.",
    )
    captcha_retries: int = Field(
        default=0,
        ge=0,
        description="Ciclos descartados porque el SII rechazó el captcha.",
    )
