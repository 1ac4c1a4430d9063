"""Incremental resolution of referential follow-ups.

Handles utterances that only make sense against earlier turns: "make it
thicker", "add another one", "double the width", "same again".
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from nlcad.commands import (
    CommandBase,
    CommandKind,
    DimensionType,
    ModificationType,
    ModifyDimension,
)
from nlcad.config import DEFAULT_INCREMENT_FRACTION, FALLBACK_INCREMENT_INCHES
from nlcad.context import ConversationContext
from nlcad.nlp.extraction import extract_first_dimension, feature_kind_in, has_word, word_number
from nlcad.units import Dimension

logger = logging.getLogger(__name__)

# comparative -> (dimension, direction)
_COMPARATIVES: dict[str, tuple[DimensionType, ModificationType]] = {
    "thicker": (DimensionType.THICKNESS, ModificationType.INCREASE_BY),
    "thinner": (DimensionType.THICKNESS, ModificationType.DECREASE_BY),
    "wider": (DimensionType.WIDTH, ModificationType.INCREASE_BY),
    "narrower": (DimensionType.WIDTH, ModificationType.DECREASE_BY),
    "longer": (DimensionType.LENGTH, ModificationType.INCREASE_BY),
    "shorter": (DimensionType.LENGTH, ModificationType.DECREASE_BY),
    "taller": (DimensionType.HEIGHT, ModificationType.INCREASE_BY),
    "deeper": (DimensionType.DEPTH, ModificationType.INCREASE_BY),
    "shallower": (DimensionType.DEPTH, ModificationType.DECREASE_BY),
    "bigger": (DimensionType.WIDTH, ModificationType.INCREASE_BY),
    "larger": (DimensionType.WIDTH, ModificationType.INCREASE_BY),
    "smaller": (DimensionType.WIDTH, ModificationType.DECREASE_BY),
}

# word -> dimension, checked in order
_DIMENSION_WORDS: list[tuple[tuple[str, ...], DimensionType]] = [
    (("width", "wide"), DimensionType.WIDTH),
    (("length", "long"), DimensionType.LENGTH),
    (("height", "tall", "high"), DimensionType.HEIGHT),
    (("thickness", "thick"), DimensionType.THICKNESS),
    (("depth", "deep"), DimensionType.DEPTH),
    (("diameter", "dia"), DimensionType.DIAMETER),
    (("radius",), DimensionType.RADIUS),
]

_CLONEABLE = {
    CommandKind.ADD_HOLE,
    CommandKind.ADD_FILLET,
    CommandKind.ADD_CHAMFER,
    CommandKind.ADD_EXTRUSION,
    CommandKind.ADD_LINEAR_PATTERN,
    CommandKind.ADD_CIRCULAR_PATTERN,
}

_SUFFIX_RE = re.compile(r"^(?P<base>.*)_(?P<n>\d+)$")
_SET_RE = re.compile(r"^set\b.*?\bto\b(?P<amount>.+)$")
# "double the width", "halve it", "cut the height in half"; not "a half inch fillet"
_SCALE_RE = re.compile(r"\b(?:double|halve)\b|\bhalf\s+(?:the|its|it)\b|\bin\s+half\b")


def _next_name(name: str) -> str:
    """``Hole`` -> ``Hole_2``; ``Hole_2`` -> ``Hole_3``."""
    m = _SUFFIX_RE.match(name)
    if m:
        return f"{m.group('base')}_{int(m.group('n')) + 1}"
    return f"{name}_2"


def _dimension_type(text: str) -> Optional[DimensionType]:
    for words, dim_type in _DIMENSION_WORDS:
        if has_word(text, *words):
            return dim_type
    return None


class IncrementalResolver:
    """Resolve follow-up utterances against a :class:`ConversationContext`.

    The context is read, never modified.
    """

    def __init__(self, context: ConversationContext) -> None:
        self._context = context

    def resolve(self, text: str) -> Optional[CommandBase]:
        lower = text.strip().lower()
        if not lower:
            return None

        if lower.startswith(("make it", "make the")):
            return self._comparative(lower)
        if has_word(lower, "another") or "one more" in lower:
            return self._another(lower)
        if lower.startswith(("increase", "decrease")):
            return self._increase_decrease(lower)
        if lower.startswith("set "):
            return self._set_to(lower)
        if _SCALE_RE.search(lower):
            return self._scale(lower)
        if has_word(lower, "same", "repeat") or lower in ("again", "do it again"):
            return self._repeat()
        return None

    # ------------------------------------------------------------------

    def _amount(self, text: str) -> Optional[Dimension]:
        dim = extract_first_dimension(text, self._context.default_unit)
        if dim is not None:
            return dim
        value = word_number(text)
        if value is not None:
            return Dimension(value, self._context.default_unit)
        return None

    def _comparative(self, text: str) -> Optional[ModifyDimension]:
        for word, (dim_type, mod_type) in _COMPARATIVES.items():
            if not has_word(text, word):
                continue
            amount = self._amount(text)
            if amount is None:
                last = self._context.last_dimension_like(dim_type)
                if last is not None:
                    amount = last * DEFAULT_INCREMENT_FRACTION
                else:
                    amount = Dimension.inches(FALLBACK_INCREMENT_INCHES)
            return ModifyDimension(dimension_type=dim_type, modification_type=mod_type, value=amount)
        return None

    def _another(self, text: str) -> Optional[CommandBase]:
        kind = feature_kind_in(text)
        if kind is None and has_word(text, "component", "instance"):
            last = self._context.last_command_of(CommandKind.INSERT_COMPONENT)
        elif kind is None:
            last = self._context.last_command
        elif extract_first_dimension(text, self._context.default_unit) is not None:
            # "another 0.5 inch hole" is a new feature; leave it to the parser
            return None
        else:
            last = self._context.last_command_of(kind)
        if last is None:
            return None
        if last.kind is CommandKind.INSERT_COMPONENT:
            # The host numbers the new instance
            return last.clone(instance_name=None)
        if last.kind not in _CLONEABLE:
            return None
        return last.clone(feature_name=_next_name(last.feature_name))

    def _increase_decrease(self, text: str) -> Optional[ModifyDimension]:
        mod_type = (
            ModificationType.INCREASE_BY if text.startswith("increase") else ModificationType.DECREASE_BY
        )
        dim_type = _dimension_type(text) or DimensionType.WIDTH
        amount = self._amount(text)
        if amount is None:
            return None
        return ModifyDimension(dimension_type=dim_type, modification_type=mod_type, value=amount)

    def _set_to(self, text: str) -> Optional[ModifyDimension]:
        m = _SET_RE.match(text)
        if not m:
            return None
        dim_type = _dimension_type(text[: m.start("amount")])
        amount = self._amount(m.group("amount"))
        if dim_type is None or amount is None:
            return None
        return ModifyDimension(
            dimension_type=dim_type, modification_type=ModificationType.SET_TO, value=amount
        )

    def _scale(self, text: str) -> Optional[ModifyDimension]:
        if has_word(text, "double"):
            mod_type = ModificationType.MULTIPLY_BY
        else:
            mod_type = ModificationType.DIVIDE_BY
        dim_type = _dimension_type(text) or DimensionType.WIDTH
        return ModifyDimension(
            dimension_type=dim_type, modification_type=mod_type, value=Dimension(2.0)
        )

    def _repeat(self) -> Optional[CommandBase]:
        last = self._context.last_command
        if last is None:
            return None
        return last.clone()
