"""Regex extraction helpers: numbers, dimensions, names, planes.

Every helper is a pure function of the input text and returns *None*
when nothing usable is found.  Patterns are tried most-specific first.
"""

from __future__ import annotations

import re
from typing import NamedTuple, Optional, Sequence

from nlcad.commands.base import CommandKind
from nlcad.commands.part import ReferencePlane
from nlcad.units import Dimension, Unit, parse_unit

# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

# Mixed number, fraction, decimal, integer (most specific first)
_NUM = r"(\d+(?:\s+|-)\d+\s*/\s*\d+|\d+\s*/\s*\d+|\d*\.\d+|\d+(?:\.\d+)?)"

# A number not glued to a preceding word ("part2") or decimal point
_LEAD = r"(?<![\w.])"

_UNIT = (
    r"(?:(millimet(?:er|re)s?|centimet(?:er|re)s?|met(?:er|re)s?|inch(?:es)?|"
    r"feet|foot|ft|mm|cm|in|m|[\"'])(?![a-z]))"
)

_MIXED_RE = re.compile(r"^(\d+)(?:\s+|-)(\d+)\s*/\s*(\d+)$")
_FRACTION_RE = re.compile(r"^(\d+)\s*/\s*(\d+)$")

_FIRST_DIMENSION_RE = re.compile(_LEAD + _NUM + r"\s*" + _UNIT + "?", re.I)

_SEP = r"\s*(?:x|×|by)\s*"
_BOX_RE = re.compile(
    _LEAD + _NUM + r"\s*" + _UNIT + "?" + _SEP
    + _NUM + r"\s*" + _UNIT + "?" + _SEP
    + _NUM + r"\s*" + _UNIT + "?",
    re.I,
)

_NAME_RE = re.compile(r"(?:named?|called?)\s+[\"']?(\w+)[\"']?", re.I)

# ---------------------------------------------------------------------------
# Synonym tables
# ---------------------------------------------------------------------------

WIDTH_KEYWORDS = ("wide", "width", "w")
LENGTH_KEYWORDS = ("long", "length", "l")
HEIGHT_KEYWORDS = ("thick", "thickness", "height", "tall", "deep", "h", "t")
DIAMETER_KEYWORDS = ("diameter", "dia", "d")
RADIUS_KEYWORDS = ("radius", "r")

_WORD_NUMBERS: dict[str, float] = {
    "quarter": 0.25,
    "half": 0.5,
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
}

_WORD_NUMBER_RE = re.compile(r"\b(" + "|".join(_WORD_NUMBERS) + r")\b", re.I)

# Feature nouns -> the kind that creates them, most specific first
_FEATURE_NOUNS: list[tuple[tuple[str, ...], CommandKind]] = [
    (("circular pattern", "circular patterns", "polar pattern"), CommandKind.ADD_CIRCULAR_PATTERN),
    (("pattern", "patterns", "array"), CommandKind.ADD_LINEAR_PATTERN),
    (("hole", "holes"), CommandKind.ADD_HOLE),
    (("fillet", "fillets"), CommandKind.ADD_FILLET),
    (("chamfer", "chamfers"), CommandKind.ADD_CHAMFER),
    (("extrusion", "extrusions", "extrude", "boss", "cut", "pocket"), CommandKind.ADD_EXTRUSION),
    (("box", "plate", "block"), CommandKind.CREATE_BOX),
    (("cylinder", "rod", "shaft"), CommandKind.CREATE_CYLINDER),
]

_ORDINALS: dict[str, int] = {
    "first": 1, "1st": 1,
    "second": 2, "2nd": 2,
    "third": 3, "3rd": 3,
    "fourth": 4, "4th": 4,
    "fifth": 5, "5th": 5,
    "last": -1, "latest": -1, "previous": -1, "final": -1,
}

_ORDINAL_RE = re.compile(r"\b(" + "|".join(_ORDINALS) + r")\b", re.I)


class BoxDimensions(NamedTuple):
    width: Dimension
    length: Dimension
    height: Dimension


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


def parse_number(text: str) -> Optional[float]:
    """Parse ``"3/4"``, ``"1 1/2"``, ``"1-1/2"`` or a decimal."""
    if not text:
        return None
    cleaned = text.strip()

    m = _MIXED_RE.match(cleaned)
    if m:
        den = float(m.group(3))
        if den == 0:
            return None
        return float(m.group(1)) + float(m.group(2)) / den

    m = _FRACTION_RE.match(cleaned)
    if m:
        den = float(m.group(2))
        if den == 0:
            return None
        return float(m.group(1)) / den

    try:
        return float(cleaned)
    except ValueError:
        return None


def word_number(text: str) -> Optional[float]:
    """Return the first spelled-out number ("half", "two") in *text*."""
    m = _WORD_NUMBER_RE.search(text)
    if m:
        return _WORD_NUMBERS[m.group(1).lower()]
    return None


def _dimension(number: str, unit_token: Optional[str], default_unit: Unit) -> Optional[Dimension]:
    value = parse_number(number)
    if value is None:
        return None
    return Dimension(value, parse_unit(unit_token) or default_unit)


# ---------------------------------------------------------------------------
# Dimensions
# ---------------------------------------------------------------------------


def _keyword(keyword: str) -> str:
    return r"(?<![a-z])" + re.escape(keyword) + r"(?![a-z])"


def extract_dimension(
    text: str,
    keywords: Sequence[str],
    default_unit: Unit = Unit.INCH,
) -> Optional[Dimension]:
    """Find a dimension tied to one of *keywords*.

    For each keyword in order, tries "value [unit] keyword" and then
    "keyword [:=] value [unit]".
    """
    for keyword in keywords:
        patterns = (
            _LEAD + _NUM + r"\s*" + _UNIT + r"?\s*" + _keyword(keyword),
            _keyword(keyword) + r"[:\s=]*" + _NUM + r"\s*" + _UNIT + "?",
        )
        for pattern in patterns:
            m = re.search(pattern, text, re.I)
            if m:
                dim = _dimension(m.group(1), m.group(2), default_unit)
                if dim is not None:
                    return dim
    return None


def extract_first_dimension(text: str, default_unit: Unit = Unit.INCH) -> Optional[Dimension]:
    """Return the first number in *text* with its unit, if any."""
    for m in _FIRST_DIMENSION_RE.finditer(text):
        dim = _dimension(m.group(1), m.group(2), default_unit)
        if dim is not None:
            return dim
    return None


def extract_box_dimensions(text: str, default_unit: Unit = Unit.INCH) -> Optional[BoxDimensions]:
    """Width, length and height from "W x L x H [unit]" or keyworded phrases.

    In the compact form each number takes its own unit, else the last unit
    written anywhere in the match, else *default_unit*.
    """
    m = _BOX_RE.search(text)
    if m:
        numbers = (m.group(1), m.group(3), m.group(5))
        units = (m.group(2), m.group(4), m.group(6))
        last_unit = next((parse_unit(u) for u in reversed(units) if parse_unit(u)), None)
        fallback = last_unit or default_unit
        dims = [_dimension(n, u, fallback) for n, u in zip(numbers, units)]
        if all(d is not None for d in dims):
            return BoxDimensions(*dims)

    width = extract_dimension(text, WIDTH_KEYWORDS, default_unit)
    length = extract_dimension(text, LENGTH_KEYWORDS, default_unit)
    height = extract_dimension(text, HEIGHT_KEYWORDS, default_unit)
    if width is not None and length is not None and height is not None:
        return BoxDimensions(width, length, height)
    return None


# ---------------------------------------------------------------------------
# Names and planes
# ---------------------------------------------------------------------------


def extract_name(text: str) -> Optional[str]:
    """Name from "named X" / "called X"."""
    m = _NAME_RE.search(text)
    return m.group(1) if m else None


def extract_plane(text: str) -> ReferencePlane:
    lower = text.lower()
    if re.search(r"\bfront\b", lower):
        return ReferencePlane.FRONT
    if re.search(r"\bright\b", lower):
        return ReferencePlane.RIGHT
    return ReferencePlane.TOP


def has_word(text: str, *words: str) -> bool:
    """True if any of *words* appears in *text* as a whole word."""
    pattern = r"\b(?:" + "|".join(re.escape(w) for w in words) + r")\b"
    return re.search(pattern, text, re.I) is not None


# ---------------------------------------------------------------------------
# Feature references
# ---------------------------------------------------------------------------


def feature_kind_in(text: str) -> Optional[CommandKind]:
    """Kind of feature named by a noun in *text* ("the hole" -> AddHole)."""
    for nouns, kind in _FEATURE_NOUNS:
        if has_word(text, *nouns):
            return kind
    return None


def extract_ordinal(text: str) -> Optional[int]:
    """``"the second hole"`` -> 2; ``"the last fillet"`` -> -1."""
    m = _ORDINAL_RE.search(text)
    return _ORDINALS[m.group(1).lower()] if m else None
