"""CadHost: the contract a modeling application implements for nlcad.

The executor calls exactly one host method per command and never issues
two calls concurrently.  Hosts report ordinary failures through
:class:`HostResult`; exceptions are caught and wrapped by the executor.
"""

from __future__ import annotations

import abc
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from nlcad.commands import (
    AddChamfer,
    AddCircularPattern,
    AddExtrusion,
    AddFillet,
    AddHole,
    AddLinearPattern,
    AddMate,
    ClosePart,
    CreateAssembly,
    CreateBox,
    CreateCylinder,
    CreatePart,
    DeleteFeature,
    ExportPart,
    FixComponent,
    InsertComponent,
    ModifyDimension,
    SavePart,
    ShowInfo,
)


class HostResult(BaseModel):
    """What the host reports back for one operation."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str = ""
    handle: Optional[str] = None
    """Name of the document or feature the operation created or touched."""

    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, handle: str | None = None, **data: Any) -> HostResult:
        return cls(success=True, message=message, handle=handle, data=data)

    @classmethod
    def error(cls, message: str) -> HostResult:
        return cls(success=False, message=message)


class CadHost(abc.ABC):
    """Base class for modeling hosts.

    ``undo`` and ``redo`` step the host's own undo history by one
    operation.
    """

    name: str = "host"

    @property
    @abc.abstractmethod
    def active_document(self) -> Optional[str]:
        """Name of the document new features go into, if any."""

    # -- documents ---------------------------------------------------------

    @abc.abstractmethod
    def create_part(self, command: CreatePart) -> HostResult: ...

    @abc.abstractmethod
    def create_box(self, command: CreateBox) -> HostResult: ...

    @abc.abstractmethod
    def create_cylinder(self, command: CreateCylinder) -> HostResult: ...

    @abc.abstractmethod
    def save_part(self, command: SavePart) -> HostResult: ...

    @abc.abstractmethod
    def export_part(self, command: ExportPart) -> HostResult: ...

    @abc.abstractmethod
    def close_part(self, command: ClosePart) -> HostResult: ...

    # -- features ----------------------------------------------------------

    @abc.abstractmethod
    def add_extrusion(self, command: AddExtrusion) -> HostResult: ...

    @abc.abstractmethod
    def add_fillet(self, command: AddFillet) -> HostResult: ...

    @abc.abstractmethod
    def add_chamfer(self, command: AddChamfer) -> HostResult: ...

    @abc.abstractmethod
    def add_hole(self, command: AddHole) -> HostResult: ...

    @abc.abstractmethod
    def add_linear_pattern(self, command: AddLinearPattern) -> HostResult: ...

    @abc.abstractmethod
    def add_circular_pattern(self, command: AddCircularPattern) -> HostResult: ...

    @abc.abstractmethod
    def modify_dimension(self, command: ModifyDimension) -> HostResult: ...

    @abc.abstractmethod
    def delete_feature(self, command: DeleteFeature) -> HostResult: ...

    # -- assemblies ----------------------------------------------------------

    @abc.abstractmethod
    def create_assembly(self, command: CreateAssembly) -> HostResult: ...

    @abc.abstractmethod
    def insert_component(self, command: InsertComponent) -> HostResult:
        """Insert into the active assembly; the handle is the instance name."""

    @abc.abstractmethod
    def add_mate(self, command: AddMate) -> HostResult: ...

    @abc.abstractmethod
    def fix_component(self, command: FixComponent) -> HostResult: ...

    # -- queries and history -------------------------------------------------

    @abc.abstractmethod
    def show_info(self, command: ShowInfo) -> HostResult: ...

    @abc.abstractmethod
    def undo(self) -> HostResult:
        """Revert the most recent undoable operation."""

    @abc.abstractmethod
    def redo(self) -> HostResult:
        """Reapply the most recently undone operation."""
