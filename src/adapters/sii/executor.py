"""Ejecución de la consulta por RUT contra el SII.

Responsabilidad:
- Construir el formulario (RUT, DV, captcha y flags de operación).
- Reintentar solo ante fallos de red, con espera aleatoria acotada.
- Medir latencia por intento y contar cada request en el contador compartido.

No interpreta el HTML: eso es trabajo de `adapters.sii.parser`.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Awaitable, Callable

import httpx

from adapters.sii.metrics import RequestCounter, build_metrics
from core.domain.errors import TransportFailureError
from core.domain.models import CaptchaCredential, RequestMetrics
from core.domain.rut import Rut

logger = logging.getLogger(__name__)

# Flags fijos que identifican la operación "situación tributaria de terceros".
LOOKUP_PROGRAM = "STC"
LOOKUP_OPTION = "NOR"

_RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    httpx.TransportError,
    httpx.DecodingError,
)


def build_lookup_form(rut: Rut, credential: CaptchaCredential) -> dict[str, str]:
    return {
        "RUT": rut.body,
        "DV": rut.check_digit,
        "txt_captcha": credential.token,
        "txt_code": credential.solution,
        "PRG": LOOKUP_PROGRAM,
        "OPC": LOOKUP_OPTION,
    }


class LookupExecutor:
    """Envía la consulta con hasta `max_attempts` intentos."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        url: str,
        counter: RequestCounter,
        max_attempts: int = 3,
        backoff_max_seconds: float = 8.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._http = http
        self._url = url
        self._counter = counter
        self._max_attempts = max_attempts
        self._backoff_max_seconds = backoff_max_seconds
        self._sleep = sleep

    async def execute(
        self, rut: Rut, credential: CaptchaCredential
    ) -> tuple[str, RequestMetrics]:
        form = build_lookup_form(rut, credential)
        latencies: list[float] = []
        last_error: Exception | None = None

        for attempt in range(1, self._max_attempts + 1):
            self._counter.increment()
            started = time.perf_counter()
            try:
                response = await self._http.post(self._url, data=form)
                body = response.text
            except _RETRYABLE_ERRORS as exc:
                latencies.append(time.perf_counter() - started)
                last_error = exc
                if attempt == self._max_attempts:
                    break
                delay = random.uniform(0.0, self._backoff_max_seconds)
                logger.warning(
                    f"Consulta {rut} intento {attempt}/{self._max_attempts} falló: {exc!r}. "
                    f"Reintentando en {delay:.1f}s..."
                )
                await self._sleep(delay)
                continue
            except httpx.HTTPError as exc:
                latencies.append(time.perf_counter() - started)
                logger.error(f"Consulta {rut} falló sin reintento: {exc!r}")
                raise TransportFailureError(
                    f"Lookup failed: {exc}",
                    metrics=build_metrics(self._counter, latencies),
                ) from exc

            latencies.append(time.perf_counter() - started)
            return body, build_metrics(self._counter, latencies)

        metrics = build_metrics(self._counter, latencies)
        logger.error(f"Consulta {rut} sin respuesta tras {self._max_attempts} intentos: {last_error!r}")
        raise TransportFailureError(
            f"Failed after {self._max_attempts} attempts: {last_error}",
            metrics=metrics,
        ) from last_error
