"""Fachada del cliente SII.

Compone captcha, ejecución y parseo en una única operación pública:

    async with SIIClient() as client:
        citizen, metrics = await client.lookup("5.126.663-3")

Estados de una llamada:
    SIN_CREDENCIAL -> CON_CREDENCIAL -> (ÉXITO | REINTENTO_CON_CAPTCHA_NUEVO
                                         | NO_ENCONTRADO | ERROR_FATAL)

El reintento por captcha rechazado es un loop acotado por
`captcha_max_retries`; al agotarse se lanza `CaptchaRetryExhaustedError`.
"""

from __future__ import annotations

import logging

import httpx

from adapters.http_client import build_async_client
from adapters.sii.captcha import CaptchaCache, CaptchaFetcher, OnNewCredential
from adapters.sii.executor import LookupExecutor
from adapters.sii.metrics import RequestCounter
from adapters.sii.parser import parse_lookup_response
from core.config import AppSettings
from core.domain.errors import (
    CaptchaRejectedError,
    CaptchaRetryExhaustedError,
    NotFoundError,
    SIIError,
)
from core.domain.models import Citizen, RequestMetrics
from core.domain.rut import Rut

logger = logging.getLogger(__name__)


class SIIClient:
    """Consulta contribuyentes por RUT en el SII.

    Una instancia puede compartirse entre muchas tareas: el captcha vigente y
    el contador de requests son propios de la instancia (no globales).
    """

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        on_new_credential: OnNewCredential | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._owns_http = http_client is None
        self._http = http_client or build_async_client(self._settings)
        self._counter = RequestCounter()

        fetcher = CaptchaFetcher(
            self._http,
            url=self._settings.captcha_url,
            counter=self._counter,
            max_attempts=self._settings.captcha_fetch_max_attempts,
        )
        self._captcha = CaptchaCache(fetcher, on_new_credential=on_new_credential)
        self._executor = LookupExecutor(
            self._http,
            url=self._settings.lookup_url,
            counter=self._counter,
            max_attempts=self._settings.lookup_max_attempts,
            backoff_max_seconds=self._settings.retry_backoff_max_seconds,
        )

    @property
    def request_count(self) -> int:
        return self._counter.value

    @property
    def captcha(self) -> CaptchaCache:
        return self._captcha

    async def lookup(self, rut: str) -> tuple[Citizen, RequestMetrics]:
        """Devuelve el contribuyente y las métricas de la llamada.

        Lanza:
        - `InvalidRutError` sin tocar la red si el RUT es inválido.
        - `NotFoundError` si el SII no tiene registros (sin reintentos).
        - `TransportFailureError`, `MaxCaptchaAttemptsError`,
          `CaptchaRetryExhaustedError`, `MalformedResponseError` en fallos.
        """

        parsed = Rut.parse(rut)
        max_retries = self._settings.captcha_max_retries
        metrics: RequestMetrics | None = None

        for rejected in range(max_retries + 1):
            credential = await self._captcha.ensure_credential()
            try:
                body, metrics = await self._executor.execute(parsed, credential)
            except SIIError as exc:
                if exc.metrics is not None:
                    exc.metrics = exc.metrics.model_copy(update={"captcha_retries": rejected})
                raise
            metrics = metrics.model_copy(update={"captcha_retries": rejected})
            try:
                citizen = parse_lookup_response(body)
            except CaptchaRejectedError:
                logger.info(f"Captcha rechazado al consultar {parsed} ({rejected + 1}/{max_retries + 1})")
                await self._captcha.invalidate(credential.token)
                continue
            except NotFoundError as exc:
                logger.debug(f"RUT {parsed} no encontrado")
                exc.metrics = metrics
                raise
            except SIIError as exc:
                exc.metrics = metrics
                raise

            citizen = citizen.model_copy(update={"rut": parsed.formatted, "run": parsed.body})
            return citizen, metrics

        raise CaptchaRetryExhaustedError(
            f"captcha rechazado {max_retries + 1} veces para {parsed}",
            metrics=metrics,
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "SIIClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
