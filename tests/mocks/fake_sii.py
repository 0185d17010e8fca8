"""Fake of the SII endpoints for `httpx.MockTransport`.

Captcha and lookup responses are queued per test; when a queue runs dry the
default response is used. Queued items may be:
- `str`: captcha payload (base64) or lookup HTML body
- an `httpx.TransportError` subclass: raised as a network failure
- `httpx.Response`: returned as is
"""

from __future__ import annotations

import asyncio
import base64
from urllib.parse import parse_qs

import httpx

CAPTCHA_URL = "https://sii.test/cvc_cgi/stc/CViewCaptcha.cgi"
LOOKUP_URL = "https://sii.test/cvc_cgi/stc/getstc"

PINERA_NAME = "MIGUEL JUAN SEBASTIAN PINERA ECHENIQUE"


def make_captcha_payload(solution: str, *, filler: bytes = b"A") -> str:
    raw = filler * 36 + solution.encode("ascii") + b"B" * 8
    return base64.b64encode(raw).decode("ascii")


def citizen_html(
    name: str,
    activities: list[tuple[str, str]] | None = None,
    *,
    stamp_years: list[str] | None = None,
) -> str:
    rows = "".join(
        f"<tr><td><font>{act}</font></td><td><font>{code}</font></td>"
        f"<td><font>Primera</font></td></tr>"
        for act, code in (activities or [])
    )
    years = "".join(
        f"<tr><td><font>Factura Electronica</font></td><td><font>{year}</font></td></tr>"
        for year in (stamp_years or [])
    )
    return (
        "<html><head><title>SII</title></head><body><div>"
        "<div>SERVICIO DE IMPUESTOS INTERNOS</div>"
        "<div>Situación Tributaria de Terceros</div>"
        "<div>Nombre o Razón Social :</div>"
        f"<div>{name}</div>"
        "<table>"
        "<tr><td><font>Actividades</font></td><td><font>Código</font></td>"
        "<td><font>Categoría</font></td></tr>"
        f"{rows}"
        "</table>"
        "<table>"
        "<tr><td><font>Documento</font></td><td><font>Año último timbraje</font></td></tr>"
        f"{years}"
        "</table>"
        "</div></body></html>"
    )


def captcha_rejected_html() -> str:
    return (
        "<html><body><div><script>alert('Por favor reingrese Captcha');</script>"
        f"<div>x</div><div>x</div><div>x</div><div>{PINERA_NAME}</div>"
        "</div></body></html>"
    )


def not_found_html() -> str:
    return citizen_html("**")


class FakeSII:
    def __init__(self) -> None:
        self.default_captcha: str = make_captcha_payload("AB12")
        self.default_lookup: str = citizen_html(
            PINERA_NAME,
            [("OTRAS ACTIVIDADES DE SERVICIOS DE APOYO A LAS EMPRESAS", "829900")],
            stamp_years=["2019", "2021"],
        )
        self.captcha_queue: list[object] = []
        self.lookup_queue: list[object] = []
        self.captcha_calls = 0
        self.lookup_forms: list[dict[str, str]] = []
        # When set, captcha requests block until the event is set.
        self.captcha_gate: asyncio.Event | None = None

    @property
    def lookup_calls(self) -> int:
        return len(self.lookup_forms)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url == CAPTCHA_URL:
            self.captcha_calls += 1
            if self.captcha_gate is not None:
                await self.captcha_gate.wait()
            item = self.captcha_queue.pop(0) if self.captcha_queue else self.default_captcha
            return self._respond(request, item, json_body=True)
        if url == LOOKUP_URL:
            form = {k: v[0] for k, v in parse_qs(request.content.decode("ascii")).items()}
            self.lookup_forms.append(form)
            item = self.lookup_queue.pop(0) if self.lookup_queue else self.default_lookup
            return self._respond(request, item, json_body=False)
        return httpx.Response(404, text="not found")

    @staticmethod
    def _respond(request: httpx.Request, item: object, *, json_body: bool) -> httpx.Response:
        if isinstance(item, type) and issubclass(item, httpx.TransportError):
            raise item("fake network failure", request=request)
        if isinstance(item, httpx.Response):
            return item
        if json_body:
            return httpx.Response(200, json={"txtCaptcha": item})
        return httpx.Response(200, text=str(item))
