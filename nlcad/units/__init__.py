"""Dimension/unit model: parsing, conversion and comparison of lengths."""

from nlcad.units.dimension import Dimension
from nlcad.units.system import Unit, abbreviation, convert, parse_unit

__all__ = ["Dimension", "Unit", "abbreviation", "convert", "parse_unit"]
