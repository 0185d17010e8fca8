"""Tests for RUT normalization and check digit."""

import pytest

from core.domain.errors import InvalidRutError, SIIError
from core.domain.rut import RUT_MAX_BODY_DIGITS, Rut, compute_check_digit


class TestRutParse:
    """Separators and check-digit case never change the canonical form."""

    @pytest.mark.parametrize(
        "raw",
        ["5.126.663-3", "5126663-3", "51266633", "5126.6633", " 5.126.663-3 "],
    )
    def test_equivalent_forms(self, raw):
        rut = Rut.parse(raw)
        assert (rut.body, rut.check_digit) == ("5126663", "3")

    @pytest.mark.parametrize("raw", ["11.111.111-k", "11111111-K", "11111111k"])
    def test_check_digit_is_uppercased(self, raw):
        assert Rut.parse(raw) == Rut(body="11111111", check_digit="K")

    def test_formatting(self):
        rut = Rut.parse("5126663-3")
        assert rut.formatted == "5126663-3"
        assert rut.pretty == "5.126.663-3"
        assert str(rut) == "5126663-3"

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "5",
            "-.",
            "51266633111",  # too many digits
            "12a45678-9",
            "5126663-X",
        ],
    )
    def test_invalid_inputs_fail_fast(self, raw):
        with pytest.raises(InvalidRutError):
            Rut.parse(raw)

    def test_invalid_rut_is_caller_error(self):
        """InvalidRutError is both part of the taxonomy and a ValueError."""
        with pytest.raises(ValueError):
            Rut.parse("1")
        assert issubclass(InvalidRutError, SIIError)

    def test_max_width_is_accepted(self):
        raw = "9" * RUT_MAX_BODY_DIGITS + "1"
        assert Rut.parse(raw).body == "9" * RUT_MAX_BODY_DIGITS


class TestCheckDigit:
    """Modulo 11 check digit."""

    @pytest.mark.parametrize(
        "run,expected",
        [
            (5126663, "3"),
            (11111111, "1"),
            (1, "9"),
            (6, "K"),
            (14, "0"),
        ],
    )
    def test_known_values(self, run, expected):
        assert compute_check_digit(run) == expected

    def test_from_number(self):
        rut = Rut.from_number(5126663)
        assert rut.formatted == "5126663-3"
        assert rut.has_valid_check_digit

    def test_wrong_check_digit_is_still_parsed(self):
        rut = Rut.parse("5126663-4")
        assert not rut.has_valid_check_digit

    @pytest.mark.parametrize("run", [0, -5, 10**RUT_MAX_BODY_DIGITS])
    def test_from_number_out_of_range(self, run):
        with pytest.raises(InvalidRutError):
            Rut.from_number(run)
