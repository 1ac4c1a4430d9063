"""Plain-text renderings of a CommandPreviewResult."""

from __future__ import annotations

from enum import Enum

from nlcad.preview.models import ActionType, CommandPreviewResult, WarningSeverity


class PreviewMode(str, Enum):
    COMPACT = "compact"
    DETAILED = "detailed"
    VERBOSE = "verbose"


_ACTION_MARKERS: dict[ActionType, str] = {
    ActionType.CREATE: "+",
    ActionType.MODIFY: "~",
    ActionType.DELETE: "x",
    ActionType.MOVE: ">",
    ActionType.MATE: "&",
    ActionType.EXPORT: "^",
    ActionType.SAVE: "s",
    ActionType.QUERY: "?",
    ActionType.UNDO: "<",
    ActionType.REDO: ">",
}

_SEVERITY_MARKERS: dict[WarningSeverity, str] = {
    WarningSeverity.INFO: "i",
    WarningSeverity.WARNING: "!",
    WarningSeverity.ERROR: "X",
}

_RULE = "-" * 64


def format_preview(preview: CommandPreviewResult, mode: PreviewMode | str = PreviewMode.DETAILED) -> str:
    """Render *preview* for display.  Has no effect on the preview itself."""
    mode = PreviewMode(mode)
    if mode is PreviewMode.COMPACT:
        return _compact(preview)
    if mode is PreviewMode.VERBOSE:
        return _verbose(preview)
    return _detailed(preview)


def _compact(preview: CommandPreviewResult) -> str:
    lines = [f"Preview: {preview.summary} [{preview.risk_level.value} risk, {preview.confidence:.0%}]"]
    if preview.warnings:
        lines.append(f"  {len(preview.warnings)} warning(s)")
    return "\n".join(lines)


def _detailed(preview: CommandPreviewResult) -> str:
    lines: list[str] = []

    lines.append("COMMAND PREVIEW")
    lines.append("=" * 64)
    lines.append(f'Input: "{preview.original_input}"')
    lines.append(f"Confidence: {preview.confidence:.0%} | Risk: {preview.risk_level.value}")
    lines.append("")

    lines.append("PLANNED ACTIONS:")
    lines.append(_RULE)
    for action in preview.actions:
        marker = _ACTION_MARKERS.get(action.type, "*")
        lines.append(f"  {action.sequence}. ({marker}) [{action.type.value}] {action.description}")
        if action.target_entity:
            lines.append(f"       Target: {action.target_entity}")
        if action.secondary_entity:
            lines.append(f"       With: {action.secondary_entity}")
        if action.parameters:
            params = ", ".join(f"{k}={v}" for k, v in action.parameters.items())
            lines.append(f"       Parameters: {params}")

    if preview.warnings:
        lines.append("")
        lines.append("WARNINGS:")
        lines.append(_RULE)
        for warning in preview.warnings:
            lines.append(f"  [{_SEVERITY_MARKERS[warning.severity]}] {warning.message}")
            if warning.resolution:
                lines.append(f"      -> {warning.resolution}")

    lines.append("")
    if preview.can_auto_execute:
        lines.append("Low risk: runs without confirmation.")
    else:
        lines.append("Confirm to run, or cancel.")
    return "\n".join(lines)


def _verbose(preview: CommandPreviewResult) -> str:
    lines = [_detailed(preview), ""]

    lines.append("COMMAND DETAILS:")
    lines.append(_RULE)
    for action in preview.actions:
        reversible = "reversible" if action.reversible else "not reversible"
        lines.append(
            f"  {action.sequence}. {action.command_kind_hint or 'Unknown'}"
            f" ({reversible}, {action.confidence:.0%})"
        )

    if preview.suggestions:
        lines.append("")
        lines.append("SUGGESTIONS:")
        for suggestion in preview.suggestions:
            lines.append(f"  - {suggestion}")

    lines.append("")
    lines.append(f"Preview id: {preview.id}")
    lines.append(f"Generated: {preview.generated_at.strftime('%Y-%m-%d %H:%M:%S UTC')}")
    lines.append(f"Estimated time: {preview.estimated_seconds:g}s")
    return "\n".join(lines)
