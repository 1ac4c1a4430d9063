"""PreviewEngine: planned actions, risk and confidence before execution.

Risk for a concrete command comes from a fixed table keyed on command
kind.  Free text is previewed by the model when one is available, and by
the rule-based parser otherwise.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from collections import deque
from typing import Iterable, Optional

from pydantic import ValidationError

from nlcad.commands import (
    AddMate,
    ClosePart,
    CommandBase,
    CommandKind,
    DeleteFeature,
    SavePart,
    missing_kinds,
)
from nlcad.config import (
    PREVIEW_HISTORY_LIMIT,
    RULE_CONFIDENCE_EXTRACTED,
    RULE_CONFIDENCE_KEYWORD,
    RULE_CONFIDENCE_UNKNOWN_ACTION,
)
from nlcad.context import ConversationContext
from nlcad.nlp.incremental import IncrementalResolver
from nlcad.nlp.intent import IntentTag, classify_intent
from nlcad.nlp.interpreter import clarification_for, pin_target
from nlcad.nlp.providers.base import LLMProvider, ModelRequest, complete_with_deadline
from nlcad.nlp.providers.offline import OfflineProvider
from nlcad.nlp.rules import RuleBasedParser
from nlcad.preview.models import (
    ActionType,
    CommandPreviewResult,
    PreviewAction,
    PreviewSchema,
    PreviewWarning,
    RiskLevel,
    WarningSeverity,
    max_risk,
)

logger = logging.getLogger(__name__)

PREVIEW_PROMPT = """\
You are a CAD command analyzer.  Describe what the user's request will do
before it runs.  Reply with a single JSON object, no prose:

{"actions": [{"sequence": 1,
              "type": "Create|Modify|Delete|Move|Mate|Export|Save|Query|Undo|Redo",
              "description": "what this step does",
              "targetEntity": "part or feature name, or null",
              "secondaryEntity": "second entity for mates, or null",
              "parameters": {"width": "10 in"},
              "commandKindHint": "CreateBox",
              "reversible": true,
              "confidence": 0.95}],
 "overallConfidence": 0.95,
 "riskLevel": "Low|Medium|High|Critical",
 "warnings": [{"severity": "Info|Warning|Error", "message": "...",
               "relatedActionSeq": 1, "resolution": "how to fix"}],
 "suggestions": ["..."],
 "estimatedSeconds": 2}

Risk levels:
- Low: creating parts, adding features, queries; easily reversible
- Medium: modifying existing geometry, moving components
- High: deleting features, overwriting files
- Critical: discarding a document or other irreversible operations

Give dimensions with value and unit, e.g. "2 in" or "50 mm".
"""

# ----------------------------------------------------------------------
# Classification tables
# ----------------------------------------------------------------------

# SavePart and ClosePart are refined by their payload in classify_risk()
_RISK_BY_KIND: dict[CommandKind, RiskLevel] = {
    CommandKind.CREATE_PART: RiskLevel.LOW,
    CommandKind.CREATE_BOX: RiskLevel.LOW,
    CommandKind.CREATE_CYLINDER: RiskLevel.LOW,
    CommandKind.ADD_EXTRUSION: RiskLevel.LOW,
    CommandKind.ADD_FILLET: RiskLevel.LOW,
    CommandKind.ADD_CHAMFER: RiskLevel.LOW,
    CommandKind.ADD_HOLE: RiskLevel.LOW,
    CommandKind.ADD_LINEAR_PATTERN: RiskLevel.LOW,
    CommandKind.ADD_CIRCULAR_PATTERN: RiskLevel.LOW,
    CommandKind.MODIFY_DIMENSION: RiskLevel.MEDIUM,
    CommandKind.DELETE_FEATURE: RiskLevel.HIGH,
    CommandKind.SAVE_PART: RiskLevel.LOW,
    CommandKind.EXPORT_PART: RiskLevel.LOW,
    CommandKind.CLOSE_PART: RiskLevel.LOW,
    CommandKind.CREATE_ASSEMBLY: RiskLevel.LOW,
    CommandKind.INSERT_COMPONENT: RiskLevel.LOW,
    CommandKind.ADD_MATE: RiskLevel.LOW,
    CommandKind.FIX_COMPONENT: RiskLevel.LOW,
    CommandKind.UNDO: RiskLevel.MEDIUM,
    CommandKind.REDO: RiskLevel.MEDIUM,
    CommandKind.SHOW_INFO: RiskLevel.LOW,
}

_ACTION_BY_KIND: dict[CommandKind, ActionType] = {
    CommandKind.CREATE_PART: ActionType.CREATE,
    CommandKind.CREATE_BOX: ActionType.CREATE,
    CommandKind.CREATE_CYLINDER: ActionType.CREATE,
    CommandKind.ADD_EXTRUSION: ActionType.MODIFY,
    CommandKind.ADD_FILLET: ActionType.MODIFY,
    CommandKind.ADD_CHAMFER: ActionType.MODIFY,
    CommandKind.ADD_HOLE: ActionType.MODIFY,
    CommandKind.ADD_LINEAR_PATTERN: ActionType.MODIFY,
    CommandKind.ADD_CIRCULAR_PATTERN: ActionType.MODIFY,
    CommandKind.MODIFY_DIMENSION: ActionType.MODIFY,
    CommandKind.DELETE_FEATURE: ActionType.DELETE,
    CommandKind.SAVE_PART: ActionType.SAVE,
    CommandKind.EXPORT_PART: ActionType.EXPORT,
    CommandKind.CLOSE_PART: ActionType.SAVE,
    CommandKind.CREATE_ASSEMBLY: ActionType.CREATE,
    CommandKind.INSERT_COMPONENT: ActionType.MODIFY,
    CommandKind.ADD_MATE: ActionType.MATE,
    CommandKind.FIX_COMPONENT: ActionType.MODIFY,
    CommandKind.UNDO: ActionType.UNDO,
    CommandKind.REDO: ActionType.REDO,
    CommandKind.SHOW_INFO: ActionType.QUERY,
}

for _name, _table in (("risk", _RISK_BY_KIND), ("action", _ACTION_BY_KIND)):
    if missing_kinds(_table):
        raise RuntimeError(f"No {_name} entry for {missing_kinds(_table)}")

# Keyword-only previews: intent -> (action type, kind hint, description)
_KEYWORD_ACTIONS: dict[IntentTag, tuple[ActionType, str, str]] = {
    IntentTag.CREATE_BOX: (ActionType.CREATE, CommandKind.CREATE_BOX.value, "Create a rectangular box"),
    IntentTag.CREATE_PLATE: (ActionType.CREATE, CommandKind.CREATE_BOX.value, "Create a plate"),
    IntentTag.CREATE_CYLINDER: (ActionType.CREATE, CommandKind.CREATE_CYLINDER.value, "Create a cylindrical part"),
    IntentTag.CREATE_PART: (ActionType.CREATE, CommandKind.CREATE_PART.value, "Create a new part"),
    IntentTag.ADD_EXTRUSION: (ActionType.MODIFY, CommandKind.ADD_EXTRUSION.value, "Add an extrusion"),
    IntentTag.ADD_CUT: (ActionType.MODIFY, CommandKind.ADD_EXTRUSION.value, "Add an extruded cut"),
    IntentTag.ADD_FILLET: (ActionType.MODIFY, CommandKind.ADD_FILLET.value, "Add fillet to edges"),
    IntentTag.ADD_CHAMFER: (ActionType.MODIFY, CommandKind.ADD_CHAMFER.value, "Add chamfer to edges"),
    IntentTag.ADD_HOLE: (ActionType.MODIFY, CommandKind.ADD_HOLE.value, "Add hole feature"),
    IntentTag.ADD_PATTERN: (ActionType.MODIFY, CommandKind.ADD_LINEAR_PATTERN.value, "Add a feature pattern"),
    IntentTag.MODIFY_DIMENSION: (ActionType.MODIFY, CommandKind.MODIFY_DIMENSION.value, "Modify a dimension"),
    IntentTag.DELETE_FEATURE: (ActionType.DELETE, CommandKind.DELETE_FEATURE.value, "Delete element"),
    IntentTag.SAVE_PART: (ActionType.SAVE, CommandKind.SAVE_PART.value, "Save document"),
    IntentTag.EXPORT_PART: (ActionType.EXPORT, CommandKind.EXPORT_PART.value, "Export document"),
    IntentTag.CLOSE_PART: (ActionType.SAVE, CommandKind.CLOSE_PART.value, "Close document"),
    IntentTag.CREATE_ASSEMBLY: (ActionType.CREATE, CommandKind.CREATE_ASSEMBLY.value, "Create a new assembly"),
    IntentTag.INSERT_COMPONENT: (ActionType.MODIFY, CommandKind.INSERT_COMPONENT.value, "Insert a component"),
    IntentTag.ADD_MATE: (ActionType.MATE, CommandKind.ADD_MATE.value, "Add assembly mate"),
    IntentTag.FIX_COMPONENT: (ActionType.MODIFY, CommandKind.FIX_COMPONENT.value, "Fix or float a component"),
    IntentTag.SHOW_INFO: (ActionType.QUERY, CommandKind.SHOW_INFO.value, "Show part information"),
}

_DESTRUCTIVE_RE = re.compile(r"\b(?:delete|remove)\b", re.I)


def classify_risk(command: CommandBase) -> RiskLevel:
    """Risk of running *command*, from the fixed kind table."""
    if isinstance(command, SavePart) and command.overwrite:
        return RiskLevel.HIGH
    if isinstance(command, ClosePart) and not command.save_first:
        return RiskLevel.CRITICAL
    return _RISK_BY_KIND[command.kind]


def action_type_for(command: CommandBase) -> ActionType:
    if isinstance(command, ClosePart) and not command.save_first:
        return ActionType.DELETE
    return _ACTION_BY_KIND[command.kind]


def keyword_risk_floor(text: str) -> RiskLevel:
    """Minimum risk implied by the wording alone ("delete", "remove")."""
    return RiskLevel.HIGH if _DESTRUCTIVE_RE.search(text) else RiskLevel.LOW


def _warnings_for(command: CommandBase, sequence: int) -> list[PreviewWarning]:
    if isinstance(command, DeleteFeature):
        target = command.target_label
        return [PreviewWarning(
            severity=WarningSeverity.WARNING,
            message=f"This deletes {target} and anything that depends on it.",
            related_action_seq=sequence,
            resolution="Undo restores it if the host supports undo.",
        )]
    if isinstance(command, SavePart) and command.overwrite:
        return [PreviewWarning(
            severity=WarningSeverity.WARNING,
            message="An existing file will be overwritten.",
            related_action_seq=sequence,
            resolution="Save under a new name to keep the old file.",
        )]
    if isinstance(command, ClosePart) and not command.save_first:
        return [PreviewWarning(
            severity=WarningSeverity.ERROR,
            message="Unsaved changes will be lost.",
            related_action_seq=sequence,
            resolution="Save the part before closing.",
        )]
    return []


def _extract_json_object(raw: str) -> str:
    start = raw.find("{")
    end = raw.rfind("}")
    if start >= 0 and end > start:
        return raw[start:end + 1]
    return raw


class PreviewEngine:
    """Generate previews and keep a short history of them.

    Parameters
    ----------
    provider:
        Language-model transport.  Defaults to :class:`OfflineProvider`.
    rules:
        Rule-based parser for the basic preview.
    context:
        Conversation context used for incremental resolution and the
        model's context summary.  Read only.
    history_limit:
        Previews kept, most recent first.
    """

    def __init__(
        self,
        provider: LLMProvider | None = None,
        rules: RuleBasedParser | None = None,
        context: ConversationContext | None = None,
        history_limit: int = PREVIEW_HISTORY_LIMIT,
    ) -> None:
        self._provider = provider if provider is not None else OfflineProvider()
        self._rules = rules if rules is not None else RuleBasedParser()
        self._context = context if context is not None else ConversationContext(self._rules.default_unit)
        self._history: deque[CommandPreviewResult] = deque(maxlen=history_limit)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def preview_text(
        self,
        text: str,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> CommandPreviewResult:
        """Preview free text, by model when available, else by rules."""
        logger.info("Generating preview for: %s", text)
        preview = self._model_preview(text, timeout, cancel)
        if preview is None:
            preview = self.basic_preview(text)
        self._remember(preview)
        return preview

    def preview_command(
        self,
        command: CommandBase,
        original_input: str | None = None,
        confidence: float = 1.0,
    ) -> CommandPreviewResult:
        return self.preview_commands([command], original_input, confidence)

    def preview_commands(
        self,
        commands: Iterable[CommandBase],
        original_input: str | None = None,
        confidence: float = 1.0,
    ) -> CommandPreviewResult:
        """Preview concrete commands; risk is the highest among them."""
        preview = self._from_commands(list(commands), original_input, confidence)
        self._remember(preview)
        return preview

    def basic_preview(self, text: str) -> CommandPreviewResult:
        """Rule-based preview.  Not added to history."""
        floor = keyword_risk_floor(text)

        command = IncrementalResolver(self._context).resolve(text)
        if command is None:
            command = self._rules.parse_first(text)
        if command is not None:
            command = pin_target(command, text, self._context)
            return self._from_commands([command], text, RULE_CONFIDENCE_EXTRACTED)

        detected = classify_intent(text)
        keyword = _KEYWORD_ACTIONS.get(detected.intent)
        if keyword is not None:
            action_type, kind_hint, description = keyword
            question = clarification_for(detected.intent)
            return CommandPreviewResult(
                original_input=text,
                actions=[PreviewAction(
                    sequence=1,
                    type=action_type,
                    description=description,
                    command_kind_hint=kind_hint,
                    reversible=action_type not in (ActionType.DELETE, ActionType.SAVE, ActionType.EXPORT),
                    confidence=RULE_CONFIDENCE_KEYWORD,
                )],
                confidence=RULE_CONFIDENCE_KEYWORD,
                risk_level=max_risk(RiskLevel.LOW, floor),
                warnings=[PreviewWarning(
                    severity=WarningSeverity.WARNING,
                    message="Some parameters are missing or could not be read.",
                    related_action_seq=1,
                    resolution=question,
                )],
            )

        return CommandPreviewResult(
            original_input=text,
            actions=[PreviewAction(
                sequence=1,
                type=ActionType.QUERY,
                description="Process command",
                command_kind_hint="Unknown",
                confidence=RULE_CONFIDENCE_UNKNOWN_ACTION,
            )],
            confidence=RULE_CONFIDENCE_UNKNOWN_ACTION,
            risk_level=floor,
        )

    def _from_commands(
        self,
        commands: list[CommandBase],
        original_input: str | None,
        confidence: float,
    ) -> CommandPreviewResult:
        actions: list[PreviewAction] = []
        warnings: list[PreviewWarning] = []
        for seq, command in enumerate(commands, start=1):
            actions.append(PreviewAction(
                sequence=seq,
                type=action_type_for(command),
                description=command.description,
                target_entity=_target_of(command),
                secondary_entity=str(command.second) if isinstance(command, AddMate) else None,
                parameters=command.parameters(),
                command_kind_hint=command.kind.value,
                reversible=command.undoable,
                confidence=confidence,
            ))
            warnings.extend(_warnings_for(command, seq))

        # Destructive wording raises the floor even when the parsed kind is benign
        floor = RiskLevel.LOW
        if original_input is None:
            original_input = "; ".join(c.description for c in commands)
        else:
            floor = keyword_risk_floor(original_input)
        return CommandPreviewResult(
            original_input=original_input,
            actions=actions,
            confidence=confidence,
            risk_level=max_risk(floor, *(classify_risk(c) for c in commands)),
            warnings=warnings,
            commands=list(commands),
        )

    def _model_preview(
        self,
        text: str,
        timeout: float | None,
        cancel: threading.Event | None,
    ) -> Optional[CommandPreviewResult]:
        request = ModelRequest(
            system_prompt=PREVIEW_PROMPT,
            context_summary=self._context.context_summary(),
            user_input=text,
        )
        raw = complete_with_deadline(self._provider, request, timeout, cancel)
        if raw is None:
            return None

        try:
            schema = PreviewSchema.model_validate(json.loads(_extract_json_object(raw)))
        except (json.JSONDecodeError, ValidationError):
            logger.warning("Could not parse model preview; using basic preview", exc_info=True)
            return None
        if not schema.actions:
            logger.debug("Model preview had no actions; using basic preview")
            return None

        return CommandPreviewResult(
            original_input=text,
            actions=schema.actions,
            confidence=schema.overall_confidence,
            risk_level=max_risk(schema.risk_level, keyword_risk_floor(text)),
            warnings=schema.warnings,
            suggestions=schema.suggestions,
            estimated_seconds=schema.estimated_seconds,
        )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def _remember(self, preview: CommandPreviewResult) -> None:
        with self._lock:
            self._history.appendleft(preview)

    @property
    def history(self) -> tuple[CommandPreviewResult, ...]:
        """Previews, most recent first."""
        with self._lock:
            return tuple(self._history)

    def get_preview(self, preview_id: str) -> Optional[CommandPreviewResult]:
        with self._lock:
            return self._find(preview_id)

    def mark_executed(self, preview_id: str) -> bool:
        with self._lock:
            preview = self._find(preview_id)
            if preview is None:
                return False
            preview.executed = True
            return True

    def mark_cancelled(self, preview_id: str) -> bool:
        with self._lock:
            preview = self._find(preview_id)
            if preview is None:
                return False
            preview.cancelled = True
            return True

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()

    def _find(self, preview_id: str) -> Optional[CommandPreviewResult]:
        for preview in self._history:
            if preview.id == preview_id:
                return preview
        return None


def _target_of(command: CommandBase) -> Optional[str]:
    for attr in ("name", "feature_name", "file_path", "component_path", "component", "first"):
        value = getattr(command, attr, None)
        if value:
            return str(value)
    return None
