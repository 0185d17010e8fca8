"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers y política TLS para captcha y consultas.
- Facilita testeo: se puede inyectar un `httpx.MockTransport`.
"""

from __future__ import annotations

import logging
import ssl
from pathlib import Path

import httpx

from core.config import AppSettings
from core.resources_loader import find_ca_bundle

logger = logging.getLogger(__name__)


def resolve_ca_bundle(settings: AppSettings) -> Path | None:
    """PEM configurado explícitamente o, si no hay, el empaquetado en `data/`."""

    if settings.ca_bundle_path is not None:
        return settings.ca_bundle_path
    return find_ca_bundle()


def build_ssl_context(settings: AppSettings) -> ssl.SSLContext:
    """Contexto TLS según `tls_verify`.

    - Estricto (default): anclas del sistema + PEM adicional si existe.
    - Permisivo: carga igual el PEM pero no valida el certificado del par.
      Es un modo de compatibilidad con zeus.sii.cl, nunca el default.
    """

    ctx = ssl.create_default_context()
    bundle = resolve_ca_bundle(settings)
    if bundle is not None:
        ctx.load_verify_locations(cafile=str(bundle))

    if not settings.tls_verify:
        logger.warning("Verificación TLS desactivada (modo permisivo)")
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    return ctx


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros.

    Por qué un builder:
    - Centraliza timeouts/headers/TLS para captcha y consulta.
    - Un único cliente reutiliza conexiones entre workers.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        verify=build_ssl_context(settings),
        transport=transport,
    )
