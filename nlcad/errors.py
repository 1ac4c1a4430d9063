"""Error taxonomy for the interpretation and execution pipeline.

Parsing failures never raise past the parser: incomplete or unknown
requests come back as ``None`` and turn into clarification prompts.
Provider failures come back as ``None`` too and trigger the rule-based
fallback.  Execution failures are wrapped into a
:class:`~nlcad.commands.base.CommandResult` by the executor rather than
raised.
"""

from __future__ import annotations


class NLCadError(Exception):
    """Base class for all nlcad errors."""


class DimensionFormatError(NLCadError, ValueError):
    """A magnitude/unit string could not be parsed."""


class ExecutionFailure(NLCadError):
    """A CAD host operation failed or reported failure."""


class UndoUnavailable(NLCadError):
    """Undo or redo was requested with an empty stack."""
