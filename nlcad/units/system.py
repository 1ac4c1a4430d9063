"""Unit systems and conversion helpers.

All conversions go through meters, the host's internal length unit.
"""

from __future__ import annotations

from enum import Enum


class Unit(str, Enum):
    """Supported length units.  The value is the display abbreviation."""

    INCH = "in"
    MILLIMETER = "mm"
    CENTIMETER = "cm"
    METER = "m"
    FOOT = "ft"


_TO_METERS: dict[Unit, float] = {
    Unit.METER: 1.0,
    Unit.MILLIMETER: 0.001,
    Unit.CENTIMETER: 0.01,
    Unit.INCH: 0.0254,
    Unit.FOOT: 0.3048,
}

_UNIT_TOKENS: dict[str, Unit] = {
    "in": Unit.INCH,
    "inch": Unit.INCH,
    "inches": Unit.INCH,
    '"': Unit.INCH,
    "mm": Unit.MILLIMETER,
    "millimeter": Unit.MILLIMETER,
    "millimeters": Unit.MILLIMETER,
    "millimetre": Unit.MILLIMETER,
    "millimetres": Unit.MILLIMETER,
    "cm": Unit.CENTIMETER,
    "centimeter": Unit.CENTIMETER,
    "centimeters": Unit.CENTIMETER,
    "centimetre": Unit.CENTIMETER,
    "centimetres": Unit.CENTIMETER,
    "m": Unit.METER,
    "meter": Unit.METER,
    "meters": Unit.METER,
    "metre": Unit.METER,
    "metres": Unit.METER,
    "ft": Unit.FOOT,
    "foot": Unit.FOOT,
    "feet": Unit.FOOT,
    "'": Unit.FOOT,
}


def to_meters(value: float, unit: Unit) -> float:
    """Convert *value* in *unit* to meters."""
    return value * _TO_METERS[unit]


def from_meters(meters: float, unit: Unit) -> float:
    """Convert *meters* to a value in *unit*."""
    return meters / _TO_METERS[unit]


def convert(value: float, source: Unit, target: Unit) -> float:
    """Convert *value* from *source* to *target* units."""
    if source == target:
        return value
    return from_meters(to_meters(value, source), target)


def abbreviation(unit: Unit) -> str:
    """Return the display abbreviation for *unit*."""
    return unit.value


def parse_unit(token: str | None) -> Unit | None:
    """Map a unit token to a :class:`Unit`, or *None* if unrecognised.

    Matching is case-insensitive and ignores surrounding whitespace and
    a trailing period ("in.").
    """
    if not token:
        return None
    normalized = token.strip().lower()
    if normalized not in _UNIT_TOKENS:
        normalized = normalized.rstrip(".")
    return _UNIT_TOKENS.get(normalized)


def coerce_unit(value: Unit | str | None, default: Unit = Unit.INCH) -> Unit:
    """Accept a Unit, an abbreviation, or a unit word and return a Unit."""
    if isinstance(value, Unit):
        return value
    return parse_unit(value) or default
