"""Adaptador del SII (zeus.sii.cl): captcha, consulta y parseo.

Piezas:
- `captcha`: decodificación del desafío y caché de la credencial vigente.
- `executor`: request de consulta con reintentos y métricas.
- `parser`: clasificación de la respuesta HTML.
- `client`: fachada `SIIClient` que compone todo lo anterior.
"""

from adapters.sii.captcha import CaptchaCache, decode_captcha
from adapters.sii.client import SIIClient
from adapters.sii.executor import LookupExecutor
from adapters.sii.metrics import RequestCounter
from adapters.sii.parser import parse_lookup_response

__all__ = [
	"CaptchaCache",
	"LookupExecutor",
	"RequestCounter",
	"SIIClient",
	"decode_captcha",
	"parse_lookup_response",
]
