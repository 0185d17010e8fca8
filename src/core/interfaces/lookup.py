"""Contrato de consulta de contribuyentes por RUT.

Por qué Protocol:
- Contrato estructural (duck typing) sin herencia rígida.
- El escaneo masivo acepta cualquier objeto con `lookup`, incluido un doble
  de pruebas.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import Citizen, RequestMetrics


@runtime_checkable
class RutLookup(Protocol):
    """Contrato mínimo de una fuente de contribuyentes.

    Reglas de diseño:
    - `lookup` es asíncrono porque hace I/O (HTTP).
    - Lanza `NotFoundError` si el RUT no existe y `InvalidRutError` si el
      identificador es inválido; nunca devuelve None.
    """

    async def lookup(self, rut: str) -> tuple[Citizen, RequestMetrics]:
        """Consulta un RUT (cualquier formato aceptado) y devuelve el contribuyente."""

        ...
