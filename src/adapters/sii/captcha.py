"""Captcha del SII: decodificación y caché de la credencial vigente.

El SII responde a `POST oper=0` con un JSON `{"txtCaptcha": "<base64>"}`.
La solución del captcha viaja embebida en ese Base64: decodificado, los
bytes 36..39 son el texto a ingresar. No hay checksum; si el SII cambia el
layout, la solución saldrá incorrecta (no vacía), por eso el offset es una
constante documentada y tiene un test fijado a un payload de ejemplo.

La credencial sirve para varias consultas hasta que el SII la rechaza.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import Callable

import httpx

from adapters.sii.metrics import RequestCounter
from core.domain.errors import CaptchaDecodeError, MaxCaptchaAttemptsError, SIIError
from core.domain.models import CaptchaCredential

logger = logging.getLogger(__name__)

# Layout observado del payload del SII (no derivado).
CAPTCHA_SOLUTION_OFFSET = 36
CAPTCHA_SOLUTION_LENGTH = 4
CAPTCHA_MIN_PAYLOAD_BYTES = CAPTCHA_SOLUTION_OFFSET + CAPTCHA_SOLUTION_LENGTH

CAPTCHA_REQUEST_BODY = "oper=0"

OnNewCredential = Callable[[CaptchaCredential], None]


def decode_captcha(payload: str) -> CaptchaCredential:
    """Extrae (token, solución) de un `txtCaptcha`.

    Lanza `CaptchaDecodeError` solo si el Base64 es inválido o si el buffer
    tiene menos de `CAPTCHA_MIN_PAYLOAD_BYTES`. Los 4 bytes se leen con
    latin-1 (uno a uno), así que cualquier contenido da una solución de 4
    caracteres.
    """

    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CaptchaDecodeError(f"Base64 inválido: {exc}") from exc

    if len(raw) < CAPTCHA_MIN_PAYLOAD_BYTES:
        raise CaptchaDecodeError(
            f"Payload de {len(raw)} bytes (mínimo {CAPTCHA_MIN_PAYLOAD_BYTES})"
        )

    solution = raw[CAPTCHA_SOLUTION_OFFSET:CAPTCHA_MIN_PAYLOAD_BYTES].decode("latin-1")
    return CaptchaCredential(token=payload, solution=solution)


class CaptchaFetcher:
    """Obtiene desafíos nuevos desde el endpoint de captcha."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        url: str,
        counter: RequestCounter,
        max_attempts: int = 3,
    ) -> None:
        self._http = http
        self._url = url
        self._counter = counter
        self._max_attempts = max_attempts

    async def fetch(self) -> CaptchaCredential:
        last_error: Exception | None = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                return await self._fetch_once()
            except (httpx.HTTPError, ValueError, CaptchaDecodeError) as exc:
                last_error = exc
                logger.warning(
                    f"Captcha intento {attempt}/{self._max_attempts} falló: {exc}"
                )

        logger.error(f"Sin captcha tras {self._max_attempts} intentos")
        raise MaxCaptchaAttemptsError(
            f"max captcha attempts reached ({self._max_attempts})"
        ) from last_error

    async def _fetch_once(self) -> CaptchaCredential:
        self._counter.increment()
        # El SII espera el body form-like aunque declare JSON.
        response = await self._http.post(
            self._url,
            content=CAPTCHA_REQUEST_BODY,
            headers={"Content-Type": "application/json"},
        )
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Respuesta de captcha inesperada: {type(data).__name__}")
        txt = data.get("txtCaptcha")
        if not isinstance(txt, str) or not txt:
            raise CaptchaDecodeError("Respuesta sin txtCaptcha")
        return decode_captcha(txt)


class CaptchaCache:
    """Mantiene a lo más una credencial viva por cliente.

    Invariantes:
    - El lock cubre revisar-obtener-guardar completo: nunca hay dos fetch
      simultáneos.
    - Quienes esperaban detrás de un fetch fallido reciben el mismo error en
      vez de lanzar su propio fetch.
    - `invalidate` solo borra si el token coincide con el vigente.
    """

    def __init__(
        self,
        fetcher: CaptchaFetcher,
        *,
        on_new_credential: OnNewCredential | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._on_new_credential = on_new_credential
        self._credential: CaptchaCredential | None = None
        self._lock = asyncio.Lock()
        # Avanza al terminar cada fetch (con éxito o no).
        self._generation = 0
        self._last_error: SIIError | None = None

    @property
    def current(self) -> CaptchaCredential | None:
        return self._credential

    async def ensure_credential(self) -> CaptchaCredential:
        seen_generation = self._generation
        async with self._lock:
            if self._credential is not None:
                return self._credential
            if self._generation != seen_generation and self._last_error is not None:
                raise self._last_error

            try:
                credential = await self._fetcher.fetch()
            except SIIError as exc:
                self._last_error = exc
                self._generation += 1
                raise

            self._last_error = None
            self._generation += 1
            self._credential = credential
            logger.info(f"Nuevo captcha instalado: {credential.solution}")
            if self._on_new_credential is not None:
                self._on_new_credential(credential)
            return credential

    async def invalidate(self, token: str) -> bool:
        async with self._lock:
            if self._credential is None or self._credential.token != token:
                return False
            self._credential = None
            logger.info("Captcha invalidado")
            return True
