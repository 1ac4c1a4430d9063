"""Tests for the Dimension/Unit model."""

from __future__ import annotations

import pytest

from nlcad.errors import DimensionFormatError
from nlcad.units import Dimension, Unit, abbreviation, convert, parse_unit


# ---------------------------------------------------------------------------
# Unit tokens and conversion
# ---------------------------------------------------------------------------


class TestUnits:
    def test_parse_unit_words(self) -> None:
        assert parse_unit("inches") is Unit.INCH
        assert parse_unit("Millimetres") is Unit.MILLIMETER
        assert parse_unit("ft") is Unit.FOOT
        assert parse_unit('"') is Unit.INCH
        assert parse_unit("'") is Unit.FOOT

    def test_parse_unit_trailing_period(self) -> None:
        assert parse_unit("in.") is Unit.INCH

    def test_parse_unit_unknown(self) -> None:
        assert parse_unit("furlongs") is None
        assert parse_unit("") is None
        assert parse_unit(None) is None

    def test_abbreviation(self) -> None:
        assert abbreviation(Unit.INCH) == "in"
        assert abbreviation(Unit.MILLIMETER) == "mm"

    def test_convert_inch_to_mm(self) -> None:
        assert convert(1.0, Unit.INCH, Unit.MILLIMETER) == pytest.approx(25.4)

    def test_convert_feet_to_inches(self) -> None:
        assert convert(2.0, Unit.FOOT, Unit.INCH) == pytest.approx(24.0)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestDimensionParse:
    def test_decimal_with_unit(self) -> None:
        d = Dimension.parse("36 inches")
        assert d.value == 36
        assert d.unit is Unit.INCH

    def test_glued_unit(self) -> None:
        d = Dimension.parse("500mm")
        assert d.value == 500
        assert d.unit is Unit.MILLIMETER

    def test_fraction(self) -> None:
        d = Dimension.parse("3/4 inch")
        assert d.value == pytest.approx(0.75)

    def test_mixed_number(self) -> None:
        assert Dimension.parse("1 1/2 inches").value == pytest.approx(1.5)
        assert Dimension.parse("1-1/2in").value == pytest.approx(1.5)

    def test_inch_mark(self) -> None:
        d = Dimension.parse('36"')
        assert d == Dimension.inches(36)

    def test_bare_number_uses_default(self) -> None:
        d = Dimension.parse("12", default_unit=Unit.MILLIMETER)
        assert d.unit is Unit.MILLIMETER

    def test_unknown_unit_falls_back_to_default(self) -> None:
        d = Dimension.parse("4 zz", default_unit=Unit.CENTIMETER)
        assert d.unit is Unit.CENTIMETER
        assert d.value == 4

    def test_empty_raises(self) -> None:
        with pytest.raises(DimensionFormatError):
            Dimension.parse("   ")

    def test_garbage_raises(self) -> None:
        with pytest.raises(DimensionFormatError):
            Dimension.parse("about ten")

    def test_zero_denominator_raises(self) -> None:
        with pytest.raises(DimensionFormatError):
            Dimension.parse("1/0 in")

    def test_try_parse(self) -> None:
        assert Dimension.try_parse("nonsense") is None
        assert Dimension.try_parse("2 cm") == Dimension(20, Unit.MILLIMETER)

    def test_dimension_format_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            Dimension.parse("")


# ---------------------------------------------------------------------------
# Arithmetic and comparison
# ---------------------------------------------------------------------------


class TestDimensionArithmetic:
    def test_cross_unit_equality(self) -> None:
        assert Dimension(1, Unit.INCH) == Dimension(25.4, Unit.MILLIMETER)
        assert Dimension(1, Unit.FOOT) == Dimension(12, Unit.INCH)

    def test_equal_dimensions_hash_alike(self) -> None:
        near = Dimension.meters_of(0.0254 + 3e-10)
        assert near == Dimension.inches(1)
        assert hash(near) == hash(Dimension.inches(1))
        assert len({Dimension.inches(1), Dimension.millimeters(25.4), near}) == 1
        assert Dimension.meters_of(0.0254 + 2e-9) != Dimension.inches(1)

    def test_add_keeps_left_unit(self) -> None:
        total = Dimension.inches(1) + Dimension.millimeters(25.4)
        assert total.unit is Unit.INCH
        assert total.value == pytest.approx(2.0)

    def test_subtract(self) -> None:
        diff = Dimension(10, Unit.CENTIMETER) - Dimension(50, Unit.MILLIMETER)
        assert diff.unit is Unit.CENTIMETER
        assert diff.value == pytest.approx(5.0)

    def test_scalar_multiply_and_divide(self) -> None:
        d = Dimension.inches(3)
        assert (d * 2).value == 6
        assert (2 * d).value == 6
        assert (d / 2).value == pytest.approx(1.5)
        assert (d / 2).unit is Unit.INCH

    def test_ratio_of_dimensions(self) -> None:
        assert Dimension.inches(2) / Dimension.inches(1) == pytest.approx(2.0)

    def test_ordering(self) -> None:
        assert Dimension.millimeters(10) < Dimension.inches(1)
        assert Dimension.inches(1) <= Dimension.millimeters(25.4)
        assert Dimension(1, Unit.METER) > Dimension(3, Unit.FOOT)

    def test_convert_to(self) -> None:
        d = Dimension.inches(2).convert_to(Unit.MILLIMETER)
        assert d.unit is Unit.MILLIMETER
        assert d.value == pytest.approx(50.8)

    def test_to_meters(self) -> None:
        assert Dimension.inches(1).to_meters() == pytest.approx(0.0254)
        assert Dimension(2, Unit.FOOT).to_meters() == pytest.approx(0.6096)

    def test_zero(self) -> None:
        assert Dimension.zero() == Dimension.millimeters(0)
        assert Dimension.zero().unit is Unit.INCH

    def test_frozen(self) -> None:
        d = Dimension.inches(1)
        with pytest.raises(Exception):
            d.value = 2  # type: ignore[misc]


class TestDimensionFormatting:
    def test_str(self) -> None:
        assert str(Dimension.inches(10)) == "10 in"
        assert str(Dimension(0.75, Unit.INCH)) == "0.75 in"

    @pytest.mark.parametrize(
        "dim",
        [
            Dimension(10, Unit.INCH),
            Dimension(0.1, Unit.METER),
            Dimension(1 / 3, Unit.MILLIMETER),
            Dimension(2.5, Unit.FOOT),
        ],
    )
    def test_str_reparses_equal(self, dim: Dimension) -> None:
        assert Dimension.parse(str(dim)) == dim

    def test_format_spec(self) -> None:
        assert Dimension(1 / 3, Unit.INCH).format(".2f") == "0.33 in"
