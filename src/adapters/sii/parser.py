"""Parseo de la respuesta HTML de la consulta por RUT.

Orden de clasificación:
1. Marca "Por favor reingrese Captcha" -> `CaptchaRejectedError` (gana siempre).
2. Sin `<body>` -> `MalformedResponseError`.
3. Nombre vacío o "**" -> `NotFoundError`.
4. Filas de tablas -> actividades (se descartan años y códigos no numéricos).

Los selectores dependen del HTML actual del SII; si cambia, ajustar aquí.
"""

from __future__ import annotations

from datetime import date

from bs4 import BeautifulSoup

from core.domain.errors import CaptchaRejectedError, MalformedResponseError, NotFoundError
from core.domain.models import Citizen, CommercialActivity

CAPTCHA_REJECTED_MARKER = "Por favor reingrese Captcha"
NOT_FOUND_PLACEHOLDER = "**"

SELECTOR_NAME = "html body div div:nth-child(4)"
SELECTOR_ACTIVITY_ROWS = "html body div table tr"
SELECTOR_ACTIVITY_NAME = "td:nth-child(1) font"
SELECTOR_ACTIVITY_CODE = "td:nth-child(2) font"

# Las tablas del SII mezclan filas de años (timbraje de documentos) con
# actividades; un "código" en (1970, año actual] es un año.
_FIRST_YEAR_EXCLUSIVE = 1970


def is_year_code(code: int, *, current_year: int) -> bool:
    return _FIRST_YEAR_EXCLUSIVE < code <= current_year


def parse_lookup_response(html: str, *, today: date | None = None) -> Citizen:
    """Convierte el HTML del SII en un `Citizen` (sin rut/run) o lanza la clasificación."""

    if CAPTCHA_REJECTED_MARKER in html:
        raise CaptchaRejectedError("El SII rechazó el captcha")

    soup = BeautifulSoup(html, "html.parser")
    if soup.body is None:
        raise MalformedResponseError(f"Respuesta sin <body> ({len(html)} caracteres)")

    name_node = soup.select_one(SELECTOR_NAME)
    name = name_node.get_text().strip() if name_node is not None else ""
    if not name or name == NOT_FOUND_PLACEHOLDER:
        raise NotFoundError("RUT sin registros en el SII")

    current_year = (today or date.today()).year
    activities: list[CommercialActivity] = []
    for i, row in enumerate(soup.select(SELECTOR_ACTIVITY_ROWS)):
        if i == 0:
            continue  # encabezado
        code_node = row.select_one(SELECTOR_ACTIVITY_CODE)
        if code_node is None:
            continue
        code = code_node.get_text().strip()
        try:
            code_int = int(code)
        except ValueError:
            continue
        if is_year_code(code_int, current_year=current_year):
            continue

        name_cell = row.select_one(SELECTOR_ACTIVITY_NAME)
        activity_name = name_cell.get_text().strip() if name_cell is not None else ""
        activities.append(CommercialActivity(code=code, name=activity_name))

    return Citizen(name=name, activities=activities)
