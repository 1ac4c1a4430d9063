"""Pydantic models for command previews and the preview wire schema."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from nlcad.commands import Command
from nlcad.config import AUTO_EXECUTE_MIN_CONFIDENCE


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


def _lookup(enum_cls: type[Enum], value: Any) -> Any:
    """Match enum members by value, ignoring case and surrounding space."""
    if isinstance(value, str):
        wanted = value.strip().lower()
        for member in enum_cls:
            if member.value.lower() == wanted:
                return member
    return value


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        return list(RiskLevel).index(self)


def max_risk(*levels: RiskLevel) -> RiskLevel:
    """Highest of *levels*; Low when none are given."""
    return max(levels, key=lambda level: level.rank, default=RiskLevel.LOW)


class ActionType(str, Enum):
    CREATE = "Create"
    MODIFY = "Modify"
    DELETE = "Delete"
    MOVE = "Move"
    MATE = "Mate"
    EXPORT = "Export"
    SAVE = "Save"
    QUERY = "Query"
    UNDO = "Undo"
    REDO = "Redo"


class WarningSeverity(str, Enum):
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"


class _PreviewModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PreviewAction(_PreviewModel):
    """One planned step of a preview."""

    sequence: int = Field(default=1, ge=1)
    type: ActionType = ActionType.QUERY
    description: str = ""
    target_entity: Optional[str] = None
    secondary_entity: Optional[str] = None
    """The other side of a mate."""
    parameters: dict[str, Any] = Field(default_factory=dict)
    command_kind_hint: str = ""
    reversible: bool = True
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    @field_validator("type", mode="before")
    @classmethod
    def _action_type(cls, v: Any) -> Any:
        return _lookup(ActionType, v)


class PreviewWarning(_PreviewModel):
    severity: WarningSeverity = WarningSeverity.WARNING
    message: str
    related_action_seq: Optional[int] = None
    resolution: Optional[str] = None

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, v: Any) -> Any:
        return _lookup(WarningSeverity, v)


class PreviewSchema(_PreviewModel):
    """Structured reply expected from the model for a preview request."""

    actions: list[PreviewAction] = Field(default_factory=list)
    overall_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    risk_level: RiskLevel = RiskLevel.LOW
    warnings: list[PreviewWarning] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    estimated_seconds: float = Field(default=1.0, ge=0.0)

    @field_validator("risk_level", mode="before")
    @classmethod
    def _risk(cls, v: Any) -> Any:
        return _lookup(RiskLevel, v)


class CommandPreviewResult(BaseModel):
    """Planned actions for one input, with risk and confidence.

    ``executed`` and ``cancelled`` are the only fields changed after
    creation, and only through :class:`~nlcad.preview.engine.PreviewEngine`.
    """

    id: str = Field(default_factory=_new_id)
    original_input: str = ""
    generated_at: datetime = Field(default_factory=_utc_now)
    actions: list[PreviewAction] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    risk_level: RiskLevel = RiskLevel.LOW
    warnings: list[PreviewWarning] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    commands: list[Command] = Field(default_factory=list)
    """Commands this preview covers; empty for model-only previews."""

    estimated_seconds: float = 1.0
    executed: bool = False
    cancelled: bool = False

    @property
    def can_auto_execute(self) -> bool:
        return (
            self.risk_level is RiskLevel.LOW
            and self.confidence >= AUTO_EXECUTE_MIN_CONFIDENCE
            and not self.warnings
        )

    @property
    def summary(self) -> str:
        if not self.actions:
            return "No actions planned"
        first = self.actions[0].description
        if len(self.actions) == 1:
            return first
        return f"{len(self.actions)} actions: {first} and {len(self.actions) - 1} more"

    @property
    def pending(self) -> bool:
        return not (self.executed or self.cancelled)
