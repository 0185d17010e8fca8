"""RUT (Rol Único Tributario): normalización y dígito verificador.

Formas aceptadas: "5.126.663-3", "5126663-3", "51266633", "5126.6633",
con DV en mayúscula o minúscula ("k" == "K").

Reglas:
- Se eliminan puntos y guiones; el último carácter es el DV y el resto el cuerpo.
- El cuerpo son solo dígitos y a lo más `RUT_MAX_BODY_DIGITS`; nunca se trunca.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.domain.errors import InvalidRutError

RUT_MAX_BODY_DIGITS = 8
_SEPARATORS = (".", "-")
_CHECK_DIGITS = frozenset("0123456789K")


def compute_check_digit(run: int) -> str:
    """Calcula el DV con módulo 11 (pesos 2..7 desde la derecha)."""

    if run < 0:
        raise InvalidRutError(f"RUN negativo: {run}")

    total = 0
    multiplier = 2
    while run > 0:
        total += (run % 10) * multiplier
        run //= 10
        multiplier = 2 if multiplier == 7 else multiplier + 1

    remainder = 11 - (total % 11)
    if remainder == 11:
        return "0"
    if remainder == 10:
        return "K"
    return str(remainder)


@dataclass(frozen=True)
class Rut:
    body: str
    check_digit: str

    @classmethod
    def parse(cls, raw: str) -> "Rut":
        """Normaliza un RUT de entrada o lanza `InvalidRutError`."""

        if not isinstance(raw, str):
            raise InvalidRutError(f"RUT debe ser str, no {type(raw).__name__}")

        cleaned = raw.strip()
        for sep in _SEPARATORS:
            cleaned = cleaned.replace(sep, "")

        if len(cleaned) < 2:
            raise InvalidRutError(f"RUT demasiado corto: {raw!r}")

        body, check_digit = cleaned[:-1], cleaned[-1].upper()
        if not (body.isascii() and body.isdigit()):
            raise InvalidRutError(f"Cuerpo de RUT no numérico: {raw!r}")
        if len(body) > RUT_MAX_BODY_DIGITS:
            raise InvalidRutError(
                f"RUT con {len(body)} dígitos (máximo {RUT_MAX_BODY_DIGITS}): {raw!r}"
            )
        if check_digit not in _CHECK_DIGITS:
            raise InvalidRutError(f"Dígito verificador inválido: {raw!r}")

        return cls(body=body, check_digit=check_digit)

    @classmethod
    def from_number(cls, run: int) -> "Rut":
        body = str(run)
        if run <= 0 or len(body) > RUT_MAX_BODY_DIGITS:
            raise InvalidRutError(f"RUN fuera de rango: {run}")
        return cls(body=body, check_digit=compute_check_digit(run))

    @property
    def number(self) -> int:
        return int(self.body)

    @property
    def formatted(self) -> str:
        """Forma canónica: "5126663-3"."""

        return f"{self.body}-{self.check_digit}"

    @property
    def pretty(self) -> str:
        """Forma con separadores de miles: "5.126.663-3"."""

        return f"{self.number:,}".replace(",", ".") + f"-{self.check_digit}"

    @property
    def has_valid_check_digit(self) -> bool:
        return compute_check_digit(self.number) == self.check_digit

    def __str__(self) -> str:
        return self.formatted
