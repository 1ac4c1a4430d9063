"""Command base model, command kinds, and CommandResult."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from nlcad.units import Dimension


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class CommandKind(str, Enum):
    """Tag for every command variant.  The set is closed."""

    CREATE_PART = "CreatePart"
    CREATE_BOX = "CreateBox"
    CREATE_CYLINDER = "CreateCylinder"
    ADD_EXTRUSION = "AddExtrusion"
    ADD_FILLET = "AddFillet"
    ADD_CHAMFER = "AddChamfer"
    ADD_HOLE = "AddHole"
    ADD_LINEAR_PATTERN = "AddLinearPattern"
    ADD_CIRCULAR_PATTERN = "AddCircularPattern"
    MODIFY_DIMENSION = "ModifyDimension"
    DELETE_FEATURE = "DeleteFeature"
    SAVE_PART = "SavePart"
    EXPORT_PART = "ExportPart"
    CLOSE_PART = "ClosePart"
    CREATE_ASSEMBLY = "CreateAssembly"
    INSERT_COMPONENT = "InsertComponent"
    ADD_MATE = "AddMate"
    FIX_COMPONENT = "FixComponent"
    UNDO = "Undo"
    REDO = "Redo"
    SHOW_INFO = "ShowInfo"


def missing_kinds(table: Mapping[CommandKind, Any]) -> list[CommandKind]:
    """Kinds with no entry in *table*, in declaration order."""
    return [kind for kind in CommandKind if kind not in table]


class CommandBase(BaseModel):
    """Fields shared by every command.

    Commands are frozen once constructed.  ``id`` is assigned at
    construction and never reused; :meth:`clone` always issues a new one.
    """

    model_config = ConfigDict(frozen=True)

    undoable: ClassVar[bool] = True

    id: str = Field(default_factory=_new_id)
    created_at: datetime = Field(default_factory=_utc_now)

    @property
    def description(self) -> str:
        raise NotImplementedError

    def dimensions(self) -> list[Dimension]:
        """Dimensions this command carries, in declaration order."""
        return []

    def clone(self, **changes: Any) -> CommandBase:
        """Return a copy with a fresh identity and optional field changes."""
        update = {"id": _new_id(), "created_at": _utc_now(), **changes}
        return self.model_copy(update=update)

    def parameters(self) -> dict[str, Any]:
        """Payload fields rendered as display-friendly values."""
        params: dict[str, Any] = {}
        for name in type(self).model_fields:
            if name in ("id", "created_at", "kind"):
                continue
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, Dimension):
                value = str(value)
            elif isinstance(value, Enum):
                value = value.value
            elif isinstance(value, BaseModel):
                value = str(value)
            params[name] = value
        return params

    def __str__(self) -> str:
        return self.description


class CommandResult(BaseModel):
    """Outcome of one execution attempt.  Never mutated afterwards."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    success: bool
    message: str = ""
    error: Optional[str] = None
    data: Any = None
    execution_time_ms: int = 0

    @classmethod
    def succeeded(cls, message: str, data: Any = None) -> CommandResult:
        return cls(success=True, message=message, data=data)

    @classmethod
    def failed(cls, message: str, error: str | None = None) -> CommandResult:
        return cls(success=False, message=message, error=error)

    def with_timing(self, execution_time_ms: int) -> CommandResult:
        return self.model_copy(update={"execution_time_ms": execution_time_ms})
