"""Taxonomía de errores del motor de consultas.

Cada error puede llevar las métricas disponibles al momento de fallar,
para que quien llama pueda contabilizar requests incluso en los fracasos.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.domain.models import RequestMetrics


class SIIError(Exception):
    """Base de todos los errores del cliente SII."""

    def __init__(self, message: str = "", *, metrics: RequestMetrics | None = None) -> None:
        super().__init__(message or self.__class__.__doc__ or self.__class__.__name__)
        self.metrics = metrics


class InvalidRutError(SIIError, ValueError):
    """RUT mal formado (error de quien llama, nunca se reintenta)."""


class NotFoundError(SIIError):
    """El SII no tiene registros para el RUT consultado."""


class CaptchaRejectedError(SIIError):
    """El SII pidió reingresar el captcha."""


class CaptchaDecodeError(SIIError):
    """El desafío captcha no se pudo decodificar."""


class MaxCaptchaAttemptsError(SIIError):
    """Se agotaron los intentos para obtener un captcha."""


class CaptchaRetryExhaustedError(SIIError):
    """El SII rechazó el captcha más veces que el máximo configurado."""


class TransportFailureError(SIIError):
    """Fallo de red persistente tras agotar los reintentos."""


class MalformedResponseError(SIIError):
    """La respuesta del SII no tiene la estructura esperada."""
