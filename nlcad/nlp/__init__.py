"""Natural-language interpretation: rules, incremental resolution, model contract."""

from nlcad.nlp.incremental import IncrementalResolver
from nlcad.nlp.intent import IntentResult, IntentTag, classify_intent
from nlcad.nlp.interpreter import Interpretation, StructuredInterpreter
from nlcad.nlp.rules import RuleBasedParser
from nlcad.nlp.schema import CommandSchema, build_command

__all__ = [
    "CommandSchema",
    "IncrementalResolver",
    "IntentResult",
    "IntentTag",
    "Interpretation",
    "RuleBasedParser",
    "StructuredInterpreter",
    "build_command",
    "classify_intent",
]
