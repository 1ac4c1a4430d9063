"""Rule-based command parser.

Deterministic regex extraction used when no language model is available,
and as the fallback whenever the model path fails.  Every ``parse_*``
method returns a command, or *None* when a required parameter is missing.

Usage::

    from nlcad.nlp.rules import RuleBasedParser

    parser = RuleBasedParser()
    cmd = parser.parse_first("Create a box 10 x 20 x 5 inches")
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from nlcad.commands import (
    AddChamfer,
    AddCircularPattern,
    AddExtrusion,
    AddFillet,
    AddHole,
    AddLinearPattern,
    AddMate,
    ClosePart,
    CommandBase,
    CreateAssembly,
    CreateBox,
    CreateCylinder,
    DeleteFeature,
    ExportFormat,
    ExportPart,
    FixComponent,
    InfoType,
    InsertComponent,
    MateAlignment,
    MateReference,
    MateType,
    Point3D,
    Redo,
    SavePart,
    ShowInfo,
    Undo,
)
from nlcad.nlp.extraction import (
    DIAMETER_KEYWORDS,
    RADIUS_KEYWORDS,
    extract_box_dimensions,
    extract_dimension,
    extract_first_dimension,
    extract_name,
    extract_ordinal,
    extract_plane,
    feature_kind_in,
    has_word,
    word_number,
)
from nlcad.units import Dimension, Unit, parse_unit

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Export formats (checked in order; STEP is the default)
# ---------------------------------------------------------------------------

_FORMAT_KEYWORDS: list[tuple[tuple[str, ...], ExportFormat]] = [
    (("stl",), ExportFormat.STL),
    (("iges", "igs"), ExportFormat.IGES),
    (("dxf",), ExportFormat.DXF),
    (("dwg",), ExportFormat.DWG),
    (("pdf",), ExportFormat.PDF),
    (("parasolid", "x_t"), ExportFormat.PARASOLID),
    (("step", "stp"), ExportFormat.STEP),
]

_FORMAT_WORDS = {w for words, _ in _FORMAT_KEYWORDS for w in words} | {"a", "an", "the", "file", "it"}

_FILENAME_RE = re.compile(r"\b(?:as|to|named?)\s+[\"']?(\w+)[\"']?", re.I)

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_COUNT_NOUN_RE = re.compile(r"\b(\d+)\s*(?:holes?|instances?|copies|copy|features?|times)\b", re.I)
_INTEGER_RE = re.compile(r"(?<![\w.])(\d+)(?![\d.])(?!\s*(?:degrees?|°|/))", re.I)
_SPACING_RE = re.compile(
    r"(\d+(?:\.\d+)?)\s*(inch(?:es)?|in|\"|mm|cm|ft|feet|m)?\s*(?:apart|spacing|between)", re.I
)
_ANGLE_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:degrees?|°)", re.I)
_REPEAT_COUNT_RE = re.compile(r"\b(?:un|re)do\s+(?:the\s+)?(?:last\s+)?(\d+|[a-z]+)", re.I)
_DELETE_NAME_RE = re.compile(r"(?:(?:feature\s+)?(?:named?|called?)|feature)\s+[\"']?([\w-]+)[\"']?", re.I)
# "remove the 0.25 inch fillet" is a deletion, not a new fillet
_LEADING_DELETE_RE = re.compile(r"^\s*(?:please\s+)?(?:delete|remove)\b", re.I)

_MID_PLANE_WORDS = ("mid plane", "midplane", "mid-plane", "both directions", "symmetric")

# Assemblies.  A mate side is "Part1-1" or "Part1-1's top".
_SIDE = r"(?:the\s+)?([\w-]+)(?:'s\s+([\w-]+))?"
_MATE_PAIR_RES = (
    re.compile(r"\bbetween\s+" + _SIDE + r"\s+and\s+" + _SIDE, re.I),
    re.compile(r"\b(?:mate|align)\s+" + _SIDE + r"\s+(?:to|with)\s+" + _SIDE, re.I),
    re.compile(
        _SIDE + r"\s+(?:is\s+)?(?:coincident|concentric)\s+(?:to|with)\s+" + _SIDE,
        re.I,
    ),
)
_MATE_TYPE_WORDS: list[tuple[str, MateType]] = [
    ("coincident", MateType.COINCIDENT),
    ("concentric", MateType.CONCENTRIC),
    ("distance", MateType.DISTANCE),
    ("angle", MateType.ANGLE),
    ("parallel", MateType.PARALLEL),
    ("perpendicular", MateType.PERPENDICULAR),
]
_ASSEMBLY_TRIGGER = re.compile(r"\b(?:create|new|make|start)\b[^.]*\bassembly\b", re.I)
_COMPONENT_FILE_RE = re.compile(r"[\"']?([\w.:/\\-]+\.(?:sldprt|sldasm|step|stp))\b[\"']?", re.I)
_INSERT_NAME_RE = re.compile(
    r"\b(?:insert|add|place)\s+(?:(?:the|a|an|another)\s+)?(?:(?:component|part)\s+)?[\"']?([\w-]+)[\"']?",
    re.I,
)
_FIX_RE = re.compile(
    r"^\s*(?:please\s+)?(fix|ground|float|unfix)\s+(?:the\s+)?(?:component\s+)?[\"']?([\w-]+)[\"']?",
    re.I,
)

# Trigger words for parse_first; a parser only runs when its trigger matches
_BOX_TRIGGER = re.compile(
    r"\b(?:box|plate|block|cube|rectangular|rectangle)\b|\d\s*(?:x|×|by)\s*\d", re.I
)
_CYLINDER_TRIGGER = re.compile(r"\b(?:cylinder|cylindrical|rod|shaft|disc|disk|round|circular)\b", re.I)


class RuleBasedParser:
    """Regex parser for the closed command set.

    Parameters
    ----------
    default_unit:
        Unit applied to numbers written without one.
    """

    def __init__(self, default_unit: Unit | str = Unit.INCH) -> None:
        unit = default_unit if isinstance(default_unit, Unit) else parse_unit(default_unit)
        if unit is None:
            raise ValueError(f"Unknown unit: {default_unit!r}")
        self.default_unit: Unit = unit

    # ------------------------------------------------------------------
    # Part creation
    # ------------------------------------------------------------------

    def parse_box(self, text: str) -> Optional[CreateBox]:
        dims = extract_box_dimensions(text, self.default_unit)
        if dims is None:
            return None
        return CreateBox(
            name=extract_name(text) or "Box",
            width=dims.width,
            length=dims.length,
            height=dims.height,
            sketch_plane=extract_plane(text),
            centered="corner" not in text.lower(),
        )

    def parse_cylinder(self, text: str) -> Optional[CreateCylinder]:
        diameter = extract_dimension(text, DIAMETER_KEYWORDS, self.default_unit)
        height = extract_dimension(text, ("height", "tall", "high", "long", "h"), self.default_unit)

        if diameter is None:
            radius = extract_dimension(text, RADIUS_KEYWORDS, self.default_unit)
            if radius is not None:
                diameter = radius * 2

        if diameter is None or height is None:
            return None

        return CreateCylinder(
            name=extract_name(text) or "Cylinder",
            diameter=diameter,
            height=height,
            sketch_plane=extract_plane(text),
            centered="corner" not in text.lower(),
        )

    # ------------------------------------------------------------------
    # Features
    # ------------------------------------------------------------------

    def parse_fillet(self, text: str) -> Optional[AddFillet]:
        radius = extract_dimension(text, ("radius", "r", "fillet"), self.default_unit)
        if radius is None:
            radius = extract_first_dimension(text, self.default_unit)
        if radius is None:
            return None
        return AddFillet(radius=radius, all_edges=has_word(text, "all", "every"))

    def parse_chamfer(self, text: str) -> Optional[AddChamfer]:
        distance = extract_dimension(text, ("distance", "chamfer", "size"), self.default_unit)
        if distance is None:
            distance = extract_first_dimension(text, self.default_unit)
        if distance is None:
            return None
        angle_match = _ANGLE_RE.search(text)
        return AddChamfer(
            distance=distance,
            angle=float(angle_match.group(1)) if angle_match else None,
            all_edges=has_word(text, "all", "every"),
        )

    def parse_hole(self, text: str) -> Optional[AddHole]:
        diameter = extract_dimension(text, (*DIAMETER_KEYWORDS, "hole"), self.default_unit)
        depth = extract_dimension(text, ("depth", "deep"), self.default_unit)
        if diameter is None:
            diameter = extract_first_dimension(text, self.default_unit)
        if diameter is None:
            return None

        through = has_word(text, "through", "thru")
        location = None
        if has_word(text, "center", "centre", "middle"):
            location = Point3D(reference="center")

        return AddHole(
            diameter=diameter,
            depth=depth,
            through_all=through or depth is None,
            location=location,
        )

    def _parse_extrude(self, text: str, is_cut: bool) -> Optional[AddExtrusion]:
        depth = extract_dimension(
            text, ("depth", "deep", "extrude", "extrusion", "cut", "by"), self.default_unit
        )
        if depth is None:
            depth = extract_first_dimension(text, self.default_unit)
        if depth is None:
            return None
        lower = text.lower()
        return AddExtrusion(
            feature_name="Cut-Extrude" if is_cut else "Boss-Extrude",
            depth=depth,
            is_cut=is_cut,
            mid_plane=any(w in lower for w in _MID_PLANE_WORDS),
        )

    def parse_extrusion(self, text: str) -> Optional[AddExtrusion]:
        return self._parse_extrude(text, is_cut=False)

    def parse_cut(self, text: str) -> Optional[AddExtrusion]:
        return self._parse_extrude(text, is_cut=True)

    def parse_linear_pattern(self, text: str) -> Optional[AddLinearPattern]:
        count = _extract_count(text)
        if count is None or count < 1:
            return None

        m = _SPACING_RE.search(text)
        if m:
            spacing = Dimension(float(m.group(1)), parse_unit(m.group(2)) or self.default_unit)
        else:
            spacing = Dimension.inches(1)

        return AddLinearPattern(count=count, spacing=spacing)

    def parse_circular_pattern(self, text: str) -> Optional[AddCircularPattern]:
        if not has_word(text, "circular", "around", "radial", "polar"):
            return None
        count = _extract_count(text)
        if count is None or count < 1:
            return None
        m = _ANGLE_RE.search(text)
        total_angle = float(m.group(1)) if m else 360.0
        return AddCircularPattern(count=count, total_angle=total_angle)

    def parse_delete(self, text: str) -> Optional[DeleteFeature]:
        if not has_word(text, "delete", "remove"):
            return None
        m = _DELETE_NAME_RE.search(text)
        if m:
            return DeleteFeature(feature_name=m.group(1))
        ordinal = extract_ordinal(text)
        return DeleteFeature(
            feature_kind=feature_kind_in(text),
            ordinal=ordinal if ordinal is not None else -1,
        )

    # ------------------------------------------------------------------
    # Assemblies
    # ------------------------------------------------------------------

    def parse_create_assembly(self, text: str) -> Optional[CreateAssembly]:
        if _ASSEMBLY_TRIGGER.search(text) is None:
            return None
        return CreateAssembly(name=extract_name(text) or "Assembly1", units=self.default_unit)

    def parse_insert_component(self, text: str) -> Optional[InsertComponent]:
        m = _COMPONENT_FILE_RE.search(text)
        if m:
            path = m.group(1)
        else:
            name = extract_name(text)
            if name is None:
                m = _INSERT_NAME_RE.search(text)
                if m is None or m.group(1).lower() in ("component", "part"):
                    return None
                name = m.group(1)
            path = f"{name}{ExportFormat.SOLIDWORKS_PART.extension}"
        return InsertComponent(component_path=path, fixed=has_word(text, "fixed", "grounded"))

    def parse_mate(self, text: str) -> Optional[AddMate]:
        """Mate two components: "coincident mate between Part1-1 and Part2-1".

        Numbers are read from the text outside the component names, so
        ``Part1-1`` never becomes a distance.
        """
        for pattern in _MATE_PAIR_RES:
            m = pattern.search(text)
            if m:
                break
        else:
            return None

        lower = text.lower()
        mate_type = MateType.COINCIDENT
        for word, candidate in _MATE_TYPE_WORDS:
            if has_word(lower, word):
                mate_type = candidate
                break

        rest = f"{text[:m.start()]} {text[m.end():]}"
        distance = None
        angle = None
        if mate_type is MateType.DISTANCE:
            distance = extract_first_dimension(rest, self.default_unit)
            if distance is None:
                return None
        elif mate_type is MateType.ANGLE:
            angle_match = _ANGLE_RE.search(rest)
            if angle_match is None:
                return None
            angle = float(angle_match.group(1))

        if has_word(lower, "anti-aligned", "anti aligned", "antialigned", "opposed"):
            alignment = MateAlignment.ANTI_ALIGNED
        elif has_word(lower, "aligned"):
            alignment = MateAlignment.ALIGNED
        else:
            alignment = MateAlignment.CLOSEST

        return AddMate(
            mate_type=mate_type,
            first=MateReference(component=m.group(1), entity=m.group(2)),
            second=MateReference(component=m.group(3), entity=m.group(4)),
            alignment=alignment,
            distance=distance,
            angle=angle,
            flip=has_word(lower, "flip", "flipped"),
        )

    def parse_fix_component(self, text: str) -> Optional[FixComponent]:
        m = _FIX_RE.match(text)
        if m is None:
            return None
        return FixComponent(component=m.group(2), fix=m.group(1).lower() in ("fix", "ground"))

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def parse_export(self, text: str) -> Optional[ExportPart]:
        fmt = _detect_format(text) or ExportFormat.STEP
        filename = _extract_filename(text) or "export"
        return ExportPart(file_path=f"{filename}{fmt.extension}", format=fmt)

    def parse_save(self, text: str) -> Optional[SavePart]:
        if not has_word(text, "save") or has_word(text, "close"):
            return None
        filename = _extract_filename(text)
        file_path = f"{filename}{ExportFormat.SOLIDWORKS_PART.extension}" if filename else None
        return SavePart(
            file_path=file_path,
            overwrite=has_word(text, "overwrite", "replace"),
        )

    def parse_close(self, text: str) -> Optional[ClosePart]:
        if not has_word(text, "close"):
            return None
        return ClosePart(save_first=has_word(text, "save"))

    # ------------------------------------------------------------------
    # History and queries
    # ------------------------------------------------------------------

    def parse_undo(self, text: str) -> Optional[Undo]:
        if not has_word(text, "undo"):
            return None
        return Undo(count=_repeat_count(text))

    def parse_redo(self, text: str) -> Optional[Redo]:
        if not has_word(text, "redo"):
            return None
        return Redo(count=_repeat_count(text))

    def parse_show_info(self, text: str) -> Optional[ShowInfo]:
        lower = text.lower()
        if "mass" in lower or has_word(lower, "weight", "volume"):
            return ShowInfo(info_type=InfoType.MASS_PROPERTIES)
        if "bounding box" in lower or has_word(lower, "extents"):
            return ShowInfo(info_type=InfoType.BOUNDING_BOX)
        if has_word(lower, "features", "feature tree") or "feature list" in lower:
            return ShowInfo(info_type=InfoType.FEATURE_LIST)
        if has_word(lower, "info", "information", "status", "details"):
            return ShowInfo(info_type=InfoType.DOCUMENT_INFO)
        return None

    def is_help(self, text: str) -> bool:
        stripped = text.strip()
        return stripped == "?" or has_word(stripped, "help") or "what can you do" in stripped.lower()

    # ------------------------------------------------------------------
    # Priority chain
    # ------------------------------------------------------------------

    def _chain(self) -> list[tuple[Callable[[str], bool], Callable[[str], Optional[CommandBase]]]]:
        def words(*w: str) -> Callable[[str], bool]:
            return lambda t: has_word(t, *w)

        return [
            (lambda t: _LEADING_DELETE_RE.match(t) is not None, self.parse_delete),
            (lambda t: _ASSEMBLY_TRIGGER.search(t) is not None, self.parse_create_assembly),
            (words("mate", "mates", "coincident", "concentric"), self.parse_mate),
            (_is_insert, self.parse_insert_component),
            (lambda t: _FIX_RE.match(t) is not None, self.parse_fix_component),
            (lambda t: _BOX_TRIGGER.search(t) is not None, self.parse_box),
            (lambda t: _CYLINDER_TRIGGER.search(t) is not None, self.parse_cylinder),
            (words("fillet", "fillets", "round edges"), self.parse_fillet),
            (words("chamfer", "chamfers", "bevel"), self.parse_chamfer),
            (words("hole", "holes", "drill"), self.parse_hole),
            (_is_export, self.parse_export),
            (words("save"), self.parse_save),
            (words("close"), self.parse_close),
            (words("pattern", "array"), self.parse_circular_pattern),
            (words("pattern", "array"), self.parse_linear_pattern),
            (words("cut", "pocket"), self.parse_cut),
            (words("extrude", "extrusion", "boss"), self.parse_extrusion),
            (words("delete", "remove"), self.parse_delete),
            (words("undo"), self.parse_undo),
            (words("redo"), self.parse_redo),
            (words("show", "display", "list", "what", "info"), self.parse_show_info),
        ]

    def parse_first(self, text: str) -> Optional[CommandBase]:
        """Try each command kind in priority order; return the first hit.

        Order: a leading "delete"/"remove", then the assembly commands
        (create, mate, insert, fix), then box, cylinder, fillet,
        chamfer, hole, export, save, close, patterns, cut, extrusion,
        delete, undo, redo, show info.
        Help is not a command; see :meth:`is_help`.
        """
        if not text or not text.strip():
            return None
        for trigger, parse in self._chain():
            if not trigger(text):
                continue
            command = parse(text)
            if command is not None:
                logger.debug("Rule parser matched %s for %r", command.kind.value, text)
                return command
        logger.debug("Rule parser found no command in %r", text)
        return None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _detect_format(text: str) -> Optional[ExportFormat]:
    lower = text.lower()
    for keywords, fmt in _FORMAT_KEYWORDS:
        if any(has_word(lower, k) for k in keywords):
            return fmt
    return None


def _is_export(text: str) -> bool:
    if has_word(text, "export"):
        return True
    return "save as" in text.lower() and _detect_format(text) is not None


def _is_insert(text: str) -> bool:
    if not has_word(text, "insert", "add", "place"):
        return False
    if _COMPONENT_FILE_RE.search(text) or (has_word(text, "insert") and has_word(text, "component")):
        return True
    # "insert a 0.5 inch hole", "add a fillet to the component"
    if feature_kind_in(text) is not None:
        return False
    return has_word(text, "insert", "component")


def _extract_filename(text: str) -> Optional[str]:
    for m in _FILENAME_RE.finditer(text):
        candidate = m.group(1)
        if candidate.lower() not in _FORMAT_WORDS:
            return candidate
    return None


def _extract_count(text: str) -> Optional[int]:
    m = _COUNT_NOUN_RE.search(text)
    if m:
        return int(m.group(1))
    m = _INTEGER_RE.search(text)
    if m:
        return int(m.group(1))
    value = word_number(text)
    if value is not None and value >= 1:
        return int(value)
    return None


def _repeat_count(text: str) -> int:
    m = _REPEAT_COUNT_RE.search(text)
    if not m:
        return 1
    token = m.group(1)
    if token.isdigit():
        return max(1, int(token))
    value = word_number(token)
    return int(value) if value is not None and value >= 1 else 1
