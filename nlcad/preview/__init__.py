"""Preview and risk engine: what a command will do before it runs."""

from nlcad.preview.engine import PreviewEngine, action_type_for, classify_risk
from nlcad.preview.formatting import PreviewMode, format_preview
from nlcad.preview.models import (
    ActionType,
    CommandPreviewResult,
    PreviewAction,
    PreviewSchema,
    PreviewWarning,
    RiskLevel,
    WarningSeverity,
)

__all__ = [
    "ActionType",
    "CommandPreviewResult",
    "PreviewAction",
    "PreviewEngine",
    "PreviewMode",
    "PreviewSchema",
    "PreviewWarning",
    "RiskLevel",
    "WarningSeverity",
    "action_type_for",
    "classify_risk",
    "format_preview",
]
