"""Intent classification: determine what kind of action the user wants."""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel

from nlcad.commands import CommandKind


class IntentTag(str, Enum):
    """Intent tags shared by the model contract and offline detection."""

    CREATE_BOX = "CREATE_BOX"
    CREATE_CYLINDER = "CREATE_CYLINDER"
    CREATE_PLATE = "CREATE_PLATE"
    CREATE_PART = "CREATE_PART"
    ADD_EXTRUSION = "ADD_EXTRUSION"
    ADD_CUT = "ADD_CUT"
    ADD_FILLET = "ADD_FILLET"
    ADD_CHAMFER = "ADD_CHAMFER"
    ADD_HOLE = "ADD_HOLE"
    ADD_PATTERN = "ADD_PATTERN"
    MODIFY_DIMENSION = "MODIFY_DIMENSION"
    DELETE_FEATURE = "DELETE_FEATURE"
    SAVE_PART = "SAVE_PART"
    EXPORT_PART = "EXPORT_PART"
    CLOSE_PART = "CLOSE_PART"
    CREATE_ASSEMBLY = "CREATE_ASSEMBLY"
    INSERT_COMPONENT = "INSERT_COMPONENT"
    ADD_MATE = "ADD_MATE"
    FIX_COMPONENT = "FIX_COMPONENT"
    UNDO = "UNDO"
    REDO = "REDO"
    HELP = "HELP"
    SHOW_INFO = "SHOW_INFO"
    UNKNOWN = "UNKNOWN"


class IntentResult(BaseModel):
    intent: IntentTag = IntentTag.UNKNOWN
    confidence: float = 0.0
    original_input: str = ""


# Intent patterns ordered by specificity
_INTENT_PATTERNS: list[tuple[IntentTag, float, re.Pattern[str]]] = [
    (IntentTag.HELP, 0.9, re.compile(r"\bhelp\b|^\s*\?\s*$|what can you do", re.I)),
    (IntentTag.UNDO, 0.9, re.compile(r"\bundo\b", re.I)),
    (IntentTag.REDO, 0.9, re.compile(r"\bredo\b", re.I)),
    (IntentTag.EXPORT_PART, 0.8, re.compile(r"\bexport\b|\bsave\s+as\s+(?:an?\s+)?(?:step|stp|stl|iges|igs|dxf|dwg|pdf|parasolid)\b", re.I)),
    (IntentTag.SAVE_PART, 0.9, re.compile(r"\bsave\b", re.I)),
    (IntentTag.CLOSE_PART, 0.8, re.compile(r"\bclose\b", re.I)),
    (IntentTag.DELETE_FEATURE, 0.8, re.compile(r"\b(?:delete|remove)\b", re.I)),
    (IntentTag.CREATE_ASSEMBLY, 0.8, re.compile(r"\b(?:create|new|make|start)\b[^.]*\bassembly\b", re.I)),
    (IntentTag.ADD_MATE, 0.8, re.compile(r"\bmate\b|\bcoincident\b|\bconcentric\b", re.I)),
    (IntentTag.INSERT_COMPONENT, 0.8, re.compile(r"\binsert\b|\b(?:add|place)\b[^.]*\bcomponent\b", re.I)),
    (IntentTag.FIX_COMPONENT, 0.8, re.compile(r"^\s*(?:fix|ground|float|unfix)\b", re.I)),
    (IntentTag.ADD_PATTERN, 0.8, re.compile(r"\b(?:pattern|array)\b", re.I)),
    (IntentTag.ADD_FILLET, 0.8, re.compile(r"\bfillets?\b|\bround\s+(?:the\s+)?edges\b", re.I)),
    (IntentTag.ADD_CHAMFER, 0.8, re.compile(r"\b(?:chamfers?|bevel)\b", re.I)),
    (IntentTag.ADD_HOLE, 0.8, re.compile(r"\b(?:holes?|drill)\b", re.I)),
    (IntentTag.CREATE_PLATE, 0.8, re.compile(r"\bplate\b", re.I)),
    (IntentTag.CREATE_BOX, 0.8, re.compile(r"\b(?:box|block|cube|rectangular)\b", re.I)),
    (IntentTag.CREATE_CYLINDER, 0.8, re.compile(r"\b(?:cylinder|rod|shaft|circular|round)\b", re.I)),
    (IntentTag.ADD_CUT, 0.8, re.compile(r"\b(?:cut|pocket)\b", re.I)),
    (IntentTag.ADD_EXTRUSION, 0.8, re.compile(r"\b(?:extrude|extrusion|boss)\b", re.I)),
    (IntentTag.MODIFY_DIMENSION, 0.8, re.compile(
        r"\b(?:increase|decrease|change|resize|set|make\s+it|double|halve)\b", re.I,
    )),
    (IntentTag.CREATE_PART, 0.8, re.compile(r"\bnew\s+part\b|\bcreate\s+(?:a\s+)?part\b", re.I)),
    (IntentTag.SHOW_INFO, 0.8, re.compile(
        r"\b(?:mass|weight|volume|bounding\s+box|info|information|status|features)\b", re.I,
    )),
]

_KIND_TO_INTENT: dict[CommandKind, IntentTag] = {
    CommandKind.CREATE_PART: IntentTag.CREATE_PART,
    CommandKind.CREATE_BOX: IntentTag.CREATE_BOX,
    CommandKind.CREATE_CYLINDER: IntentTag.CREATE_CYLINDER,
    CommandKind.ADD_EXTRUSION: IntentTag.ADD_EXTRUSION,
    CommandKind.ADD_FILLET: IntentTag.ADD_FILLET,
    CommandKind.ADD_CHAMFER: IntentTag.ADD_CHAMFER,
    CommandKind.ADD_HOLE: IntentTag.ADD_HOLE,
    CommandKind.ADD_LINEAR_PATTERN: IntentTag.ADD_PATTERN,
    CommandKind.ADD_CIRCULAR_PATTERN: IntentTag.ADD_PATTERN,
    CommandKind.MODIFY_DIMENSION: IntentTag.MODIFY_DIMENSION,
    CommandKind.DELETE_FEATURE: IntentTag.DELETE_FEATURE,
    CommandKind.SAVE_PART: IntentTag.SAVE_PART,
    CommandKind.EXPORT_PART: IntentTag.EXPORT_PART,
    CommandKind.CLOSE_PART: IntentTag.CLOSE_PART,
    CommandKind.CREATE_ASSEMBLY: IntentTag.CREATE_ASSEMBLY,
    CommandKind.INSERT_COMPONENT: IntentTag.INSERT_COMPONENT,
    CommandKind.ADD_MATE: IntentTag.ADD_MATE,
    CommandKind.FIX_COMPONENT: IntentTag.FIX_COMPONENT,
    CommandKind.UNDO: IntentTag.UNDO,
    CommandKind.REDO: IntentTag.REDO,
    CommandKind.SHOW_INFO: IntentTag.SHOW_INFO,
}


def classify_intent(text: str) -> IntentResult:
    """Return the most likely intent for *text* with a keyword confidence.

    Shape and feature keywords score 0.8, save and help 0.9.  No match
    yields ``UNKNOWN`` at 0.0.
    """
    for intent, confidence, pattern in _INTENT_PATTERNS:
        if pattern.search(text):
            return IntentResult(intent=intent, confidence=confidence, original_input=text)
    return IntentResult(original_input=text)


def intent_for_kind(kind: CommandKind) -> IntentTag:
    """Intent tag that produces commands of *kind*."""
    return _KIND_TO_INTENT.get(kind, IntentTag.UNKNOWN)
