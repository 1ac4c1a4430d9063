"""StructuredInterpreter: main entry point for utterance interpretation.

Usage::

    from nlcad.nlp import StructuredInterpreter

    interpreter = StructuredInterpreter()
    result = interpreter.interpret("Create a box 10 x 20 x 5 inches")
    result.commands   # [CreateBox(...)]
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Callable, Optional

from pydantic import BaseModel, Field, ValidationError

from nlcad.commands import Command, CommandBase, DeleteFeature
from nlcad.config import MIN_INTENT_CONFIDENCE, RULE_CONFIDENCE_EXTRACTED
from nlcad.context import ConversationContext
from nlcad.nlp.incremental import IncrementalResolver
from nlcad.nlp.intent import IntentTag, classify_intent, intent_for_kind
from nlcad.nlp.providers.base import LLMProvider, ModelRequest, complete_with_deadline
from nlcad.nlp.providers.offline import OfflineProvider
from nlcad.nlp.rules import RuleBasedParser
from nlcad.nlp.schema import CommandSchema, build_command

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are a CAD modeling assistant. Parse the user's request into one command
and reply with a single JSON object, no prose:

{"intent": "<TAG>", "confidence": 0.0-1.0, "parameters": {...},
 "message": "short reply for the user", "needsClarification": false,
 "clarificationQuestion": null}

Intent tags: CREATE_BOX, CREATE_CYLINDER, CREATE_PLATE, CREATE_PART,
ADD_EXTRUSION, ADD_CUT, ADD_FILLET, ADD_CHAMFER, ADD_HOLE, ADD_PATTERN,
MODIFY_DIMENSION, DELETE_FEATURE, SAVE_PART, EXPORT_PART, CLOSE_PART,
CREATE_ASSEMBLY, INSERT_COMPONENT, ADD_MATE, FIX_COMPONENT, UNDO, REDO, HELP,
SHOW_INFO, UNKNOWN.

Dimensions are objects: {"value": 10, "unit": "inches", "original": "10 inches"}.
Parameter names: name, width, length, height, depth, diameter, radius,
thickness, distance, angle, count, spacing, allEdges, throughAll, centered,
plane, format, filename, location, patternType, featureName, dimension,
modification, value, infoType, featureType, ordinal.  "location" may be a
string such as "center" or an object {"x", "y", "z", "reference"}.
To delete by position give featureType ("hole") and ordinal (1 = first,
-1 = last) instead of featureName.
Assemblies: insert takes path or component; a mate takes component and
component2 (optional entity and entity2), mateType (Coincident, Concentric,
Distance, Angle, Parallel, Perpendicular), alignment (Aligned, AntiAligned,
Closest) and flip; fixing takes component and fixed (false floats it).
Convert fractions to decimals.  Default to inches when no unit is given.
If a required dimension is missing, set needsClarification and ask for it.
"""

HELP_MESSAGE = """\
I can help you create 3D parts using natural language:

Create parts:
  - 'Create a box 10 x 20 x 5 inches'
  - 'Make a plate 36" wide, 96" long, 3/4" thick'
  - 'Create a cylinder 2 inch diameter, 6 inches tall'

Add features:
  - 'Add a 0.25 inch fillet to all edges'
  - 'Add a 0.5 inch chamfer'
  - 'Cut a 1 inch hole in the center'
  - 'Pattern 4 holes 2 inches apart'

Modify:
  - 'Make it thicker'
  - 'Increase the width by 2 inches'
  - 'Add another hole'

Save & export:
  - 'Save the part'
  - 'Export as STEP'
  - 'Save as STL'

Assemblies:
  - 'Create a new assembly called Cabinet'
  - 'Insert the component Side'
  - 'Add a coincident mate between Side-1 and Base-1'

What would you like to create?"""

EXAMPLES_MESSAGE = """\
I'm not sure what you'd like to do. Try:
  - 'Create a box 10 x 20 x 5 inches'
  - 'Create a cylinder 2 inch diameter, 6 inches tall'
  - 'Add a 0.25 inch fillet to all edges'
  - Type 'help' for more options"""

_DEFAULT_SUGGESTIONS = [
    "Create a box 10 x 20 x 5 inches",
    "Create a cylinder 2 inch diameter, 6 inches tall",
    "Help",
]

_SUGGESTIONS: dict[IntentTag, list[str]] = {
    IntentTag.CREATE_BOX: ["Add fillets to the edges", "Cut a hole in the center", "Save the part"],
    IntentTag.CREATE_PLATE: ["Add fillets to the edges", "Cut a hole in the center", "Save the part"],
    IntentTag.CREATE_CYLINDER: [
        "Add a chamfer to the top edge",
        "Cut a hole through the center",
        "Export as STL",
    ],
    IntentTag.ADD_FILLET: ["Add more fillets", "Save the part", "Export as STEP"],
    IntentTag.ADD_CHAMFER: ["Add a fillet", "Save the part", "Export as STEP"],
    IntentTag.ADD_HOLE: ["Add another hole", "Pattern 4 holes 2 inches apart", "Save the part"],
    IntentTag.ADD_PATTERN: ["Save the part", "Export as STEP", "Undo"],
    IntentTag.MODIFY_DIMENSION: ["Make it thicker", "Undo", "Save the part"],
    IntentTag.CREATE_ASSEMBLY: ["Insert the component Base", "Insert the component Cover"],
    IntentTag.INSERT_COMPONENT: ["Insert another component", "Add a coincident mate between Base-1 and Cover-1"],
    IntentTag.ADD_MATE: ["Add a concentric mate", "Fix the component Base-1", "Save the assembly"],
}

# What to ask when the intent is clear but a required parameter is not
_CLARIFY: dict[IntentTag, str] = {
    IntentTag.CREATE_BOX: "What size? For example: 'Create a box 10 x 20 x 5 inches'.",
    IntentTag.CREATE_PLATE: "What size? For example: 'a plate 36\" wide, 96\" long, 3/4\" thick'.",
    IntentTag.CREATE_CYLINDER: "What diameter and height? For example: '2 inch diameter, 6 inches tall'.",
    IntentTag.ADD_FILLET: "What fillet radius? For example: 'Add a 0.25 inch fillet'.",
    IntentTag.ADD_CHAMFER: "What chamfer distance? For example: 'Add a 0.5 inch chamfer'.",
    IntentTag.ADD_HOLE: "What hole diameter? For example: 'Cut a 1 inch hole'.",
    IntentTag.ADD_EXTRUSION: "How far should I extrude? For example: 'Extrude 2 inches'.",
    IntentTag.ADD_CUT: "How deep is the cut? For example: 'Cut 0.5 inch deep'.",
    IntentTag.ADD_PATTERN: "How many instances? For example: 'Pattern 4 holes 2 inches apart'.",
    IntentTag.MODIFY_DIMENSION: "By how much? For example: 'Increase the width by 2 inches'.",
    IntentTag.INSERT_COMPONENT: "Which component? For example: 'Insert the component Side'.",
    IntentTag.ADD_MATE: "Which two components? For example: 'Add a coincident mate between Side-1 and Base-1'.",
    IntentTag.FIX_COMPONENT: "Which component? For example: 'Fix the component Base-1'.",
}


class Interpretation(BaseModel):
    """Outcome of interpreting one utterance."""

    success: bool = False
    message: str = ""
    commands: list[Command] = Field(default_factory=list)
    intent: IntentTag = IntentTag.UNKNOWN
    confidence: float = 0.0
    needs_clarification: bool = False
    clarification_question: Optional[str] = None
    suggestions: list[str] = Field(default_factory=list)
    source: str = "rules"
    """Which path produced the result: incremental, model, rules, or none."""


class StructuredInterpreter:
    """Turn an utterance into commands.

    Tries, in order: incremental resolution against the conversation
    context, the language model (when available), and the rule-based
    parser.  Model failures of any kind fall through to the rules and are
    never surfaced.

    Parameters
    ----------
    provider:
        Language-model transport.  Defaults to :class:`OfflineProvider`.
    rules:
        Rule-based parser used as the fallback.
    incremental_factory:
        Builds the incremental resolver for a context.
    context:
        Context used when :meth:`interpret` is called without one.
    """

    def __init__(
        self,
        provider: LLMProvider | None = None,
        rules: RuleBasedParser | None = None,
        incremental_factory: Callable[[ConversationContext], IncrementalResolver] | None = None,
        context: ConversationContext | None = None,
    ) -> None:
        self._provider = provider if provider is not None else OfflineProvider()
        self._rules = rules if rules is not None else RuleBasedParser()
        self._incremental_factory = incremental_factory or IncrementalResolver
        self._context = context if context is not None else ConversationContext(self._rules.default_unit)

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    @property
    def rules(self) -> RuleBasedParser:
        return self._rules

    def interpret(
        self,
        text: str,
        context: ConversationContext | None = None,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> Interpretation:
        """Interpret *text*.

        *timeout* bounds the model call in seconds; setting *cancel*
        abandons it.  Both lead to the rule-based fallback.
        """
        context = context if context is not None else self._context
        text = (text or "").strip()
        result = self._interpret(text, context, timeout, cancel)
        if not result.commands:
            return result
        pinned = [pin_target(c, text, context) for c in result.commands]
        update: dict[str, object] = {"commands": pinned}
        if len(pinned) == 1 and result.message == result.commands[0].description:
            update["message"] = pinned[0].description
        return result.model_copy(update=update)

    def _interpret(
        self,
        text: str,
        context: ConversationContext,
        timeout: float | None,
        cancel: threading.Event | None,
    ) -> Interpretation:
        if not text:
            return Interpretation(
                message="Please describe what you'd like to do.",
                needs_clarification=True,
                clarification_question="What would you like to create?",
                suggestions=list(_DEFAULT_SUGGESTIONS),
                source="none",
            )

        command = self._incremental_factory(context).resolve(text)
        if command is not None:
            logger.debug("Incremental match for %r: %s", text, command.description)
            intent = intent_for_kind(command.kind)
            return Interpretation(
                success=True,
                message=command.description,
                commands=[command],
                intent=intent,
                confidence=RULE_CONFIDENCE_EXTRACTED,
                suggestions=self.suggestions_for(intent),
                source="incremental",
            )

        result = self._interpret_with_model(text, context, timeout, cancel)
        if result is not None:
            return result

        return self.interpret_offline(text)

    # ------------------------------------------------------------------
    # Model path
    # ------------------------------------------------------------------

    def _interpret_with_model(
        self,
        text: str,
        context: ConversationContext,
        timeout: float | None,
        cancel: threading.Event | None,
    ) -> Interpretation | None:
        request = ModelRequest(
            system_prompt=SYSTEM_PROMPT,
            context_summary=context.context_summary(),
            user_input=text,
        )
        raw = complete_with_deadline(self._provider, request, timeout, cancel)
        if raw is None:
            return None

        schema = parse_schema(raw)
        if schema is None:
            return None

        tag = schema.tag
        if tag is None or tag is IntentTag.UNKNOWN:
            logger.warning("Model returned unrecognised intent %r; using rules", schema.intent)
            return None

        if schema.needs_clarification:
            question = schema.clarification_question or _CLARIFY.get(tag, "Could you give more detail?")
            message = f"{schema.message}\n\n{question}" if schema.message else question
            return Interpretation(
                message=message,
                intent=tag,
                confidence=schema.confidence,
                needs_clarification=True,
                clarification_question=question,
                suggestions=self.suggestions_for(tag),
                source="model",
            )

        if tag is IntentTag.HELP:
            return self._help(source="model")

        if schema.confidence < MIN_INTENT_CONFIDENCE:
            logger.debug("Model confidence %.2f below threshold; using rules", schema.confidence)
            return None

        command = build_command(schema, self._rules.default_unit)
        if command is None:
            logger.debug("Model parameters incomplete for %s; using rules", tag.value)
            return None

        return Interpretation(
            success=True,
            message=schema.message or command.description,
            commands=[command],
            intent=tag,
            confidence=schema.confidence,
            suggestions=self.suggestions_for(tag),
            source="model",
        )

    # ------------------------------------------------------------------
    # Rule path
    # ------------------------------------------------------------------

    def interpret_offline(self, text: str) -> Interpretation:
        """Rule-based interpretation only; no incremental or model step."""
        command = self._rules.parse_first(text)
        if command is not None:
            intent = intent_for_kind(command.kind)
            return Interpretation(
                success=True,
                message=command.description,
                commands=[command],
                intent=intent,
                confidence=RULE_CONFIDENCE_EXTRACTED,
                suggestions=self.suggestions_for(intent),
                source="rules",
            )

        if self._rules.is_help(text):
            return self._help(source="rules")

        detected = classify_intent(text)
        question = _CLARIFY.get(detected.intent)
        if question is not None:
            return Interpretation(
                message=question,
                intent=detected.intent,
                confidence=detected.confidence,
                needs_clarification=True,
                clarification_question=question,
                suggestions=self.suggestions_for(detected.intent),
                source="rules",
            )

        return Interpretation(
            message=EXAMPLES_MESSAGE,
            intent=detected.intent,
            confidence=detected.confidence,
            needs_clarification=True,
            suggestions=list(_DEFAULT_SUGGESTIONS),
            source="none",
        )

    def _help(self, source: str) -> Interpretation:
        return Interpretation(
            success=True,
            message=HELP_MESSAGE,
            intent=IntentTag.HELP,
            confidence=0.9,
            suggestions=list(_DEFAULT_SUGGESTIONS),
            source=source,
        )

    @staticmethod
    def suggestions_for(intent: IntentTag) -> list[str]:
        return list(_SUGGESTIONS.get(intent, _DEFAULT_SUGGESTIONS))


def strip_code_fences(raw: str) -> str:
    """Remove a surrounding Markdown code fence (```json ... ```)."""
    text = raw.strip()
    if text.startswith("```"):
        text = text[3:]
        if text[:4].lower() == "json":
            text = text[4:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_schema(raw: str) -> CommandSchema | None:
    """Validate a raw model reply; *None* if it is not a CommandSchema."""
    cleaned = strip_code_fences(raw)
    try:
        data = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Model returned invalid JSON: %s", cleaned[:200])
        return None
    try:
        return CommandSchema.model_validate(data)
    except ValidationError as exc:
        logger.warning("Model response failed schema validation: %s", exc.error_count())
        return None


def clarification_for(intent: IntentTag) -> str | None:
    """Question to ask when *intent* is known but its parameters are not."""
    return _CLARIFY.get(intent)


def pin_target(command: CommandBase, text: str, context: ConversationContext) -> CommandBase:
    """Name the feature a positional DeleteFeature refers to, when known.

    "delete the first hole" becomes ``DeleteFeature(feature_name="Hole")``
    if the context saw that hole created.  Anything else is returned as is.
    """
    if not isinstance(command, DeleteFeature) or command.feature_name:
        return command
    name = context.feature_mentioned(text) if command.feature_kind is None else None
    if name is None:
        name = context.find_feature(command.feature_kind, command.ordinal)
    if name is None:
        return command
    logger.debug("Resolved %r to feature %s", command.description, name)
    return command.model_copy(update={"feature_name": name})
