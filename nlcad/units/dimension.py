"""Dimension: an immutable magnitude + unit value.

Dimensions compare and hash on their canonical value in meters, snapped
to a fixed grid, so ``Dimension(1, Unit.INCH) == Dimension(25.4, Unit.MILLIMETER)``.

Usage::

    from nlcad.units import Dimension, Unit

    d = Dimension.parse("1 1/2 inches")
    d.convert_to(Unit.MILLIMETER)   # 38.1 mm
"""

from __future__ import annotations

import math
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from nlcad.config import DIMENSION_TOLERANCE
from nlcad.errors import DimensionFormatError
from nlcad.units.system import Unit, abbreviation, coerce_unit, convert, parse_unit, to_meters

# "3/4 inch", "1 1/2 inches", "1-1/2in"
_FRACTION_RE = re.compile(
    r"^(?:(?P<whole>\d+)(?:\s+|-))?(?P<num>\d+)\s*/\s*(?P<den>\d+)\s*"
    r"(?P<unit>[a-z\"']+)?\.?$"
)

# "36 inches", "0.75in", "500mm", "-2.5 cm", "1e-05 m"
_DECIMAL_RE = re.compile(
    r"^(?P<value>[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:e[-+]?\d+)?)\s*"
    r"(?P<unit>[a-z\"']+)?\.?$"
)


def _format_value(value: float) -> str:
    """Shortest text that round-trips through ``float``."""
    text = repr(float(value))
    if text.endswith(".0"):
        text = text[:-2]
    return text


def _grid_key(dim: Dimension) -> int:
    """Meters snapped to the tolerance grid; equal dimensions share a key."""
    return round(dim.meters / DIMENSION_TOLERANCE)


class Dimension(BaseModel):
    """A physical length: ``value`` expressed in ``unit``."""

    model_config = ConfigDict(frozen=True)

    value: float
    unit: Unit = Unit.INCH

    def __init__(self, value: float, unit: Unit | str = Unit.INCH, **data: Any) -> None:
        super().__init__(value=value, unit=unit, **data)

    @field_validator("unit", mode="before")
    @classmethod
    def _coerce_unit(cls, v: Any) -> Unit:
        if isinstance(v, Unit):
            return v
        unit = parse_unit(str(v)) if v is not None else None
        if unit is None:
            raise ValueError(f"Unknown unit: {v!r}")
        return unit

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def inches(cls, value: float) -> Dimension:
        return cls(value, Unit.INCH)

    @classmethod
    def millimeters(cls, value: float) -> Dimension:
        return cls(value, Unit.MILLIMETER)

    @classmethod
    def meters_of(cls, value: float) -> Dimension:
        return cls(value, Unit.METER)

    @classmethod
    def zero(cls) -> Dimension:
        return cls(0.0, Unit.INCH)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, text: str, default_unit: Unit | str = Unit.INCH) -> Dimension:
        """Parse a dimension from natural-language text.

        Tries, in order: a fraction or mixed number (``"1 1/2 inch"``),
        a decimal with an optional unit (``"0.75in"``, ``"500mm"``), and
        finally a bare number in *default_unit*.  An unrecognised unit
        token falls back to *default_unit* rather than failing.

        Raises
        ------
        DimensionFormatError
            If *text* is empty or matches none of the patterns.
        """
        default = coerce_unit(default_unit)
        if text is None or not str(text).strip():
            raise DimensionFormatError("Dimension string cannot be empty")

        normalized = str(text).strip().lower()

        m = _FRACTION_RE.match(normalized)
        if m:
            whole = float(m.group("whole")) if m.group("whole") else 0.0
            den = float(m.group("den"))
            if den == 0:
                raise DimensionFormatError(f"Zero denominator in dimension: '{text}'")
            value = whole + float(m.group("num")) / den
            return cls(value, parse_unit(m.group("unit")) or default)

        m = _DECIMAL_RE.match(normalized)
        if m:
            value = float(m.group("value"))
            return cls(value, parse_unit(m.group("unit")) or default)

        try:
            value = float(normalized)
        except ValueError:
            raise DimensionFormatError(f"Unable to parse dimension: '{text}'") from None
        if not math.isfinite(value):
            raise DimensionFormatError(f"Dimension must be finite: '{text}'")
        return cls(value, default)

    @classmethod
    def try_parse(cls, text: str, default_unit: Unit | str = Unit.INCH) -> Dimension | None:
        """Like :meth:`parse` but return *None* instead of raising."""
        try:
            return cls.parse(text, default_unit)
        except DimensionFormatError:
            return None

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    @property
    def meters(self) -> float:
        """Canonical value in meters."""
        return to_meters(self.value, self.unit)

    def to_meters(self) -> float:
        return self.meters

    def convert_to(self, unit: Unit | str) -> Dimension:
        target = coerce_unit(unit)
        return Dimension(convert(self.value, self.unit, target), target)

    # ------------------------------------------------------------------
    # Arithmetic (left operand's unit is preserved)
    # ------------------------------------------------------------------

    def __add__(self, other: Dimension) -> Dimension:
        if not isinstance(other, Dimension):
            return NotImplemented
        return Dimension(self.value + other.convert_to(self.unit).value, self.unit)

    def __sub__(self, other: Dimension) -> Dimension:
        if not isinstance(other, Dimension):
            return NotImplemented
        return Dimension(self.value - other.convert_to(self.unit).value, self.unit)

    def __mul__(self, scalar: float) -> Dimension:
        if isinstance(scalar, Dimension) or not isinstance(scalar, (int, float)):
            return NotImplemented
        return Dimension(self.value * scalar, self.unit)

    __rmul__ = __mul__

    def __truediv__(self, other: float | Dimension) -> Any:
        """Divide by a scalar, or by another Dimension to get a ratio."""
        if isinstance(other, Dimension):
            return self.meters / other.meters
        if not isinstance(other, (int, float)):
            return NotImplemented
        return Dimension(self.value / other, self.unit)

    # ------------------------------------------------------------------
    # Equality and ordering on canonical meters
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dimension):
            return NotImplemented
        return _grid_key(self) == _grid_key(other)

    def __hash__(self) -> int:
        return hash(_grid_key(self))

    def __lt__(self, other: Dimension) -> bool:
        if not isinstance(other, Dimension):
            return NotImplemented
        return self.meters < other.meters and self != other

    def __le__(self, other: Dimension) -> bool:
        if not isinstance(other, Dimension):
            return NotImplemented
        return self.meters < other.meters or self == other

    def __gt__(self, other: Dimension) -> bool:
        if not isinstance(other, Dimension):
            return NotImplemented
        return self.meters > other.meters and self != other

    def __ge__(self, other: Dimension) -> bool:
        if not isinstance(other, Dimension):
            return NotImplemented
        return self.meters > other.meters or self == other

    def __str__(self) -> str:
        return f"{_format_value(self.value)} {abbreviation(self.unit)}"

    def __repr__(self) -> str:
        return f"Dimension({self.value!r}, {self.unit.value!r})"

    def format(self, spec: str) -> str:
        """Render with a numeric format spec, e.g. ``d.format(".2f")``."""
        return f"{self.value:{spec}} {abbreviation(self.unit)}"
