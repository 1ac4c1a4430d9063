"""InMemoryCadHost: a reference host that keeps parts and features in memory.

Every undoable operation snapshots the whole model first, so ``undo`` and
``redo`` restore real state.  Used by the test-suite and offline sessions.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from nlcad.commands import (
    AddChamfer,
    AddCircularPattern,
    AddExtrusion,
    AddFillet,
    AddHole,
    AddLinearPattern,
    AddMate,
    ClosePart,
    CommandBase,
    CommandKind,
    CreateAssembly,
    CreateBox,
    CreateCylinder,
    CreatePart,
    DeleteFeature,
    DimensionType,
    ExportFormat,
    ExportPart,
    FixComponent,
    InfoType,
    InsertComponent,
    MateAlignment,
    MateType,
    ModifyDimension,
    SavePart,
    ShowInfo,
)
from nlcad.errors import ExecutionFailure
from nlcad.execution.host import CadHost, HostResult
from nlcad.units import Dimension, Unit

logger = logging.getLogger(__name__)

# Feature parameter a DimensionType edits, in preference order
_PARAMETER_KEYS: dict[DimensionType, tuple[str, ...]] = {
    DimensionType.WIDTH: ("width",),
    DimensionType.LENGTH: ("length",),
    DimensionType.HEIGHT: ("height", "depth"),
    DimensionType.DEPTH: ("depth", "height"),
    DimensionType.THICKNESS: ("height", "depth"),
    DimensionType.DIAMETER: ("diameter",),
    DimensionType.RADIUS: ("radius",),
}

# HostFeature.kind values each feature-creating command produces
_HOST_KINDS: dict[CommandKind, tuple[str, ...]] = {
    CommandKind.CREATE_BOX: ("Box",),
    CommandKind.CREATE_CYLINDER: ("Cylinder",),
    CommandKind.ADD_EXTRUSION: ("Extrusion", "Cut"),
    CommandKind.ADD_FILLET: ("Fillet",),
    CommandKind.ADD_CHAMFER: ("Chamfer",),
    CommandKind.ADD_HOLE: ("Hole",),
    CommandKind.ADD_LINEAR_PATTERN: ("LinearPattern",),
    CommandKind.ADD_CIRCULAR_PATTERN: ("CircularPattern",),
}


class HostFeature(BaseModel):
    name: str
    kind: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class HostComponent(BaseModel):
    name: str
    path: str
    fixed: bool = False
    position: Optional[str] = None


class HostMate(BaseModel):
    name: str
    type: MateType
    first: str
    second: str
    alignment: MateAlignment = MateAlignment.CLOSEST
    distance: Optional[Dimension] = None
    angle: Optional[float] = None
    flip: bool = False


class HostDocument(BaseModel):
    name: str
    units: Unit = Unit.INCH
    is_assembly: bool = False
    features: list[HostFeature] = Field(default_factory=list)
    components: list[HostComponent] = Field(default_factory=list)
    mates: list[HostMate] = Field(default_factory=list)
    saved_path: Optional[str] = None
    exports: list[str] = Field(default_factory=list)

    def component(self, name: str) -> Optional[HostComponent]:
        for component in self.components:
            if component.name.lower() == name.lower():
                return component
        return None

    def feature(self, name: str) -> Optional[HostFeature]:
        for feature in self.features:
            if feature.name.lower() == name.lower():
                return feature
        return None

    def unique_name(self, base: str) -> str:
        if self.feature(base) is None:
            return base
        n = 2
        while self.feature(f"{base}_{n}") is not None:
            n += 1
        return f"{base}_{n}"


class _ModelState(BaseModel):
    documents: dict[str, HostDocument] = Field(default_factory=dict)
    active: Optional[str] = None


class _InjectedFailure(BaseModel):
    message: str
    raise_error: bool = False


class InMemoryCadHost(CadHost):
    """Reference :class:`CadHost` with snapshot undo/redo.

    Use :meth:`inject_failure` to make the next operation for a command
    kind report failure, or raise.
    """

    name = "memory"

    def __init__(self) -> None:
        self._state = _ModelState()
        self._undo_snapshots: list[_ModelState] = []
        self._redo_snapshots: list[_ModelState] = []
        self._failures: dict[CommandKind, _InjectedFailure] = {}
        self.calls: list[str] = []
        self.files: dict[str, str] = {}
        """Saved file path -> document name."""

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def active_document(self) -> Optional[str]:
        return self._state.active

    def document(self, name: str | None = None) -> Optional[HostDocument]:
        name = name if name is not None else self._state.active
        if name is None:
            return None
        return self._state.documents.get(name)

    @property
    def documents(self) -> tuple[str, ...]:
        return tuple(self._state.documents)

    def feature_names(self, document: str | None = None) -> list[str]:
        doc = self.document(document)
        return [f.name for f in doc.features] if doc else []

    def inject_failure(self, kind: CommandKind, message: str = "Simulated failure", raise_error: bool = False) -> None:
        self._failures[kind] = _InjectedFailure(message=message, raise_error=raise_error)

    def reset(self) -> None:
        self._state = _ModelState()
        self._undo_snapshots.clear()
        self._redo_snapshots.clear()
        self._failures.clear()
        self.calls.clear()
        self.files.clear()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _run(self, command: CommandBase, operation: Callable[[], HostResult]) -> HostResult:
        self.calls.append(command.kind.value)
        failure = self._failures.pop(command.kind, None)
        if failure is not None:
            if failure.raise_error:
                raise ExecutionFailure(failure.message)
            return HostResult.error(failure.message)

        if not command.undoable:
            return operation()

        snapshot = self._state.model_copy(deep=True)
        try:
            result = operation()
        except Exception:
            self._state = snapshot
            raise
        if result.success:
            self._undo_snapshots.append(snapshot)
            self._redo_snapshots.clear()
        else:
            self._state = snapshot
        return result

    def _active(self) -> HostDocument:
        doc = self.document()
        if doc is None:
            raise ExecutionFailure("No active part. Create a part first.")
        return doc

    def _active_part(self) -> HostDocument:
        doc = self._active()
        if doc.is_assembly:
            raise ExecutionFailure(f"{doc.name} is an assembly. Features go into a part.")
        return doc

    def _open_part(self) -> Optional[HostDocument]:
        doc = self.document()
        return doc if doc is not None and not doc.is_assembly else None

    def _active_assembly(self) -> HostDocument:
        doc = self.document()
        if doc is None or not doc.is_assembly:
            raise ExecutionFailure("No active assembly. Create an assembly first.")
        return doc

    def _component(self, doc: HostDocument, name: str) -> HostComponent:
        component = doc.component(name)
        if component is None:
            raise ExecutionFailure(f"No component named {name} in {doc.name}")
        return component

    def _new_document(self, name: str, units: Unit, is_assembly: bool = False) -> HostDocument:
        base, n = name, 2
        while name in self._state.documents:
            name = f"{base}_{n}"
            n += 1
        doc = HostDocument(name=name, units=units, is_assembly=is_assembly)
        self._state.documents[name] = doc
        self._state.active = name
        return doc

    def _add_feature(self, doc: HostDocument, base: str, kind: str, **parameters: Any) -> HostFeature:
        feature = HostFeature(name=doc.unique_name(base), kind=kind, parameters=parameters)
        doc.features.append(feature)
        return feature

    def _feature_result(self, doc: HostDocument, feature: HostFeature, message: str) -> HostResult:
        return HostResult.ok(message, handle=feature.name, feature=feature.name, document=doc.name)

    def _require_features(self, doc: HostDocument, what: str) -> None:
        if not doc.features:
            raise ExecutionFailure(f"Cannot add {what}: the part has no geometry yet.")

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def create_part(self, command: CreatePart) -> HostResult:
        def op() -> HostResult:
            doc = self._new_document(command.name, command.units)
            return HostResult.ok(f"Created part: {doc.name}", handle=doc.name, document=doc.name)
        return self._run(command, op)

    def create_box(self, command: CreateBox) -> HostResult:
        def op() -> HostResult:
            doc = self._open_part() or self._new_document(command.name, command.width.unit)
            feature = self._add_feature(
                doc, command.name, "Box",
                width=command.width, length=command.length, height=command.height,
                plane=command.sketch_plane.value, centered=command.centered,
            )
            return self._feature_result(
                doc, feature, f"Created box: {command.width} x {command.length} x {command.height}",
            )
        return self._run(command, op)

    def create_cylinder(self, command: CreateCylinder) -> HostResult:
        def op() -> HostResult:
            doc = self._open_part() or self._new_document(command.name, command.diameter.unit)
            feature = self._add_feature(
                doc, command.name, "Cylinder",
                diameter=command.diameter, height=command.height,
                plane=command.sketch_plane.value, centered=command.centered,
            )
            return self._feature_result(
                doc, feature, f"Created cylinder: {command.diameter} dia x {command.height}",
            )
        return self._run(command, op)

    def save_part(self, command: SavePart) -> HostResult:
        def op() -> HostResult:
            doc = self._active()
            extension = command.format.extension
            if command.format is ExportFormat.SOLIDWORKS_PART:
                extension = _document_extension(doc)
            path = command.file_path or doc.saved_path or f"{doc.name}{extension}"
            owner = self.files.get(path)
            if owner is not None and owner != doc.name and not command.overwrite:
                return HostResult.error(f"{path} already exists. Save with overwrite to replace it.")
            self.files[path] = doc.name
            doc.saved_path = path
            return HostResult.ok(f"Saved {doc.name} to {path}", handle=path, document=doc.name, path=path)
        return self._run(command, op)

    def export_part(self, command: ExportPart) -> HostResult:
        def op() -> HostResult:
            doc = self._active()
            path = command.file_path
            if not path.lower().endswith(command.format.extension):
                path = f"{path}{command.format.extension}"
            doc.exports.append(path)
            return HostResult.ok(
                f"Exported {doc.name} as {command.format.value} to {path}",
                handle=path, document=doc.name, path=path,
            )
        return self._run(command, op)

    def close_part(self, command: ClosePart) -> HostResult:
        def op() -> HostResult:
            doc = self._active()
            if command.save_first:
                path = doc.saved_path or f"{doc.name}{_document_extension(doc)}"
                self.files[path] = doc.name
            del self._state.documents[doc.name]
            self._state.active = next(reversed(self._state.documents), None)
            # Closing a document discards its undo history
            self._undo_snapshots.clear()
            self._redo_snapshots.clear()
            return HostResult.ok(f"Closed {doc.name}", handle=doc.name)
        return self._run(command, op)

    # ------------------------------------------------------------------
    # Features
    # ------------------------------------------------------------------

    def add_extrusion(self, command: AddExtrusion) -> HostResult:
        def op() -> HostResult:
            doc = self._active_part()
            kind = "Cut" if command.is_cut else "Extrusion"
            if command.is_cut:
                self._require_features(doc, "a cut")
            feature = self._add_feature(
                doc, command.feature_name, kind, depth=command.depth, mid_plane=command.mid_plane,
            )
            verb = "Cut" if command.is_cut else "Extruded"
            return self._feature_result(doc, feature, f"{verb} {command.depth}")
        return self._run(command, op)

    def add_fillet(self, command: AddFillet) -> HostResult:
        def op() -> HostResult:
            doc = self._active_part()
            self._require_features(doc, "a fillet")
            feature = self._add_feature(
                doc, command.feature_name, "Fillet",
                radius=command.radius, all_edges=command.all_edges, edges=list(command.edges),
            )
            return self._feature_result(doc, feature, f"Added {command.radius} fillet")
        return self._run(command, op)

    def add_chamfer(self, command: AddChamfer) -> HostResult:
        def op() -> HostResult:
            doc = self._active_part()
            self._require_features(doc, "a chamfer")
            feature = self._add_feature(
                doc, command.feature_name, "Chamfer",
                distance=command.distance, angle=command.angle, all_edges=command.all_edges,
            )
            return self._feature_result(doc, feature, f"Added {command.distance} chamfer")
        return self._run(command, op)

    def add_hole(self, command: AddHole) -> HostResult:
        def op() -> HostResult:
            doc = self._active_part()
            self._require_features(doc, "a hole")
            params: dict[str, Any] = {"diameter": command.diameter, "through_all": command.through_all}
            if command.depth is not None:
                params["depth"] = command.depth
            if command.location is not None:
                params["location"] = str(command.location)
            feature = self._add_feature(doc, command.feature_name, "Hole", **params)
            return self._feature_result(doc, feature, f"Added {command.diameter} hole")
        return self._run(command, op)

    def add_linear_pattern(self, command: AddLinearPattern) -> HostResult:
        def op() -> HostResult:
            doc = self._active_part()
            self._require_features(doc, "a pattern")
            seed = doc.features[-1].name
            feature = self._add_feature(
                doc, command.feature_name, "LinearPattern",
                seed=seed, count=command.count, spacing=command.spacing, direction=command.direction.value,
            )
            return self._feature_result(doc, feature, f"Patterned {seed} x{command.count}")
        return self._run(command, op)

    def add_circular_pattern(self, command: AddCircularPattern) -> HostResult:
        def op() -> HostResult:
            doc = self._active_part()
            self._require_features(doc, "a pattern")
            seed = doc.features[-1].name
            feature = self._add_feature(
                doc, command.feature_name, "CircularPattern",
                seed=seed, count=command.count, total_angle=command.total_angle,
            )
            return self._feature_result(doc, feature, f"Patterned {seed} x{command.count} around {command.total_angle:g} deg")
        return self._run(command, op)

    def modify_dimension(self, command: ModifyDimension) -> HostResult:
        def op() -> HostResult:
            doc = self._active_part()
            keys = _PARAMETER_KEYS[command.dimension_type]
            if command.feature_name:
                candidates = [f for f in [doc.feature(command.feature_name)] if f is not None]
                if not candidates:
                    return HostResult.error(f"No feature named {command.feature_name}")
            else:
                candidates = list(reversed(doc.features))

            for feature in candidates:
                for key in keys:
                    current = feature.parameters.get(key)
                    if isinstance(current, Dimension):
                        new = command.apply_to(current)
                        if new.value <= 0:
                            return HostResult.error(f"{key} would become {new}; dimensions must stay positive")
                        feature.parameters[key] = new
                        return self._feature_result(doc, feature, f"{feature.name} {key}: {current} -> {new}")
                diameter = feature.parameters.get("diameter")
                if command.dimension_type is DimensionType.RADIUS and isinstance(diameter, Dimension):
                    # Round features store a diameter; edit it through its half
                    current = diameter / 2
                    new = command.apply_to(current)
                    if new.value <= 0:
                        return HostResult.error(f"radius would become {new}; dimensions must stay positive")
                    feature.parameters["diameter"] = new * 2
                    return self._feature_result(doc, feature, f"{feature.name} radius: {current} -> {new}")
            return HostResult.error(f"No {command.dimension_type.value.lower()} to modify")
        return self._run(command, op)

    def delete_feature(self, command: DeleteFeature) -> HostResult:
        def op() -> HostResult:
            doc = self._active_part()
            if not doc.features:
                return HostResult.error("Nothing to delete")
            if command.feature_name:
                feature = doc.feature(command.feature_name)
                if feature is None:
                    return HostResult.error(f"No feature named {command.feature_name}")
            else:
                feature = _nth_feature(doc, command.feature_kind, command.ordinal)
                if feature is None:
                    return HostResult.error(f"No {command.position} to delete")
            doc.features.remove(feature)
            return HostResult.ok(
                f"Deleted {feature.name}", handle=feature.name, document=doc.name, deleted=feature.name,
            )
        return self._run(command, op)

    # ------------------------------------------------------------------
    # Assemblies
    # ------------------------------------------------------------------

    def create_assembly(self, command: CreateAssembly) -> HostResult:
        def op() -> HostResult:
            doc = self._new_document(command.name, command.units, is_assembly=True)
            return HostResult.ok(f"Created assembly: {doc.name}", handle=doc.name, document=doc.name)
        return self._run(command, op)

    def insert_component(self, command: InsertComponent) -> HostResult:
        def op() -> HostResult:
            doc = self._active_assembly()
            name = command.instance_name
            if not name:
                stem = command.component_stem
                n = 1 + sum(1 for c in doc.components if c.path == command.component_path)
                name = f"{stem}-{n}"
                while doc.component(name) is not None:
                    n += 1
                    name = f"{stem}-{n}"
            elif doc.component(name) is not None:
                return HostResult.error(f"{doc.name} already has a component named {name}")
            # The first component is fixed so the assembly has a base
            fixed = command.fixed or not doc.components
            doc.components.append(HostComponent(
                name=name,
                path=command.component_path,
                fixed=fixed,
                position=str(command.position) if command.position is not None else None,
            ))
            state = " (fixed)" if fixed else ""
            return HostResult.ok(
                f"Inserted {name}{state}", handle=name, feature=name, document=doc.name,
            )
        return self._run(command, op)

    def add_mate(self, command: AddMate) -> HostResult:
        def op() -> HostResult:
            doc = self._active_assembly()
            first = self._component(doc, command.first.component)
            second = self._component(doc, command.second.component)
            if first is second:
                return HostResult.error(f"Cannot mate {first.name} to itself")
            prefix = command.mate_type.value
            name = command.mate_name or f"{prefix}{1 + sum(1 for m in doc.mates if m.type is command.mate_type)}"
            doc.mates.append(HostMate(
                name=name,
                type=command.mate_type,
                first=str(command.first),
                second=str(command.second),
                alignment=command.alignment,
                distance=command.distance,
                angle=command.angle,
                flip=command.flip,
            ))
            return HostResult.ok(
                f"Added {name}: {command.first} to {command.second}",
                handle=name, mate=name, document=doc.name,
            )
        return self._run(command, op)

    def fix_component(self, command: FixComponent) -> HostResult:
        def op() -> HostResult:
            doc = self._active_assembly()
            component = self._component(doc, command.component)
            component.fixed = command.fix
            verb = "Fixed" if command.fix else "Floated"
            return HostResult.ok(f"{verb} {component.name}", handle=component.name, document=doc.name)
        return self._run(command, op)

    # ------------------------------------------------------------------
    # Queries and history
    # ------------------------------------------------------------------

    def show_info(self, command: ShowInfo) -> HostResult:
        def op() -> HostResult:
            doc = self._active()
            if doc.is_assembly:
                names = [c.name for c in doc.components]
                return HostResult.ok(
                    f"{doc.name}: {len(names)} component(s), {len(doc.mates)} mate(s)",
                    document=doc.name, components=names, mates=[m.name for m in doc.mates],
                )
            if command.info_type is InfoType.FEATURE_LIST:
                names = [f.name for f in doc.features]
                return HostResult.ok(f"Features: {', '.join(names) or 'none'}", features=names)
            if command.info_type is InfoType.MASS_PROPERTIES:
                volume = sum(_volume_m3(f) for f in doc.features)
                return HostResult.ok(f"Volume: {volume:.6g} m^3", volume_m3=volume)
            if command.info_type is InfoType.BOUNDING_BOX:
                box = _bounding_box(doc)
                text = " x ".join(f"{v:.4g}" for v in box)
                return HostResult.ok(f"Bounding box: {text} m", bounding_box_m=list(box))
            return HostResult.ok(
                f"{doc.name}: {len(doc.features)} feature(s), units {doc.units.value}",
                document=doc.name, feature_count=len(doc.features), saved_path=doc.saved_path,
            )
        return self._run(command, op)

    def undo(self) -> HostResult:
        self.calls.append("undo")
        if not self._undo_snapshots:
            return HostResult.error("Nothing to undo")
        self._redo_snapshots.append(self._state)
        self._state = self._undo_snapshots.pop()
        return HostResult.ok("Undone")

    def redo(self) -> HostResult:
        self.calls.append("redo")
        if not self._redo_snapshots:
            return HostResult.error("Nothing to redo")
        self._undo_snapshots.append(self._state)
        self._state = self._redo_snapshots.pop()
        return HostResult.ok("Redone")


def _document_extension(doc: HostDocument) -> str:
    return ".sldasm" if doc.is_assembly else ".sldprt"


def _volume_m3(feature: HostFeature) -> float:
    p = feature.parameters
    if feature.kind == "Box":
        return p["width"].meters * p["length"].meters * p["height"].meters
    if feature.kind == "Cylinder":
        return math.pi * (p["diameter"].meters / 2) ** 2 * p["height"].meters
    return 0.0


def _bounding_box(doc: HostDocument) -> tuple[float, float, float]:
    x = y = z = 0.0
    for feature in doc.features:
        p = feature.parameters
        if feature.kind == "Box":
            x = max(x, p["width"].meters)
            y = max(y, p["length"].meters)
            z = max(z, p["height"].meters)
        elif feature.kind == "Cylinder":
            x = max(x, p["diameter"].meters)
            y = max(y, p["diameter"].meters)
            z = max(z, p["height"].meters)
    return x, y, z


def _nth_feature(doc: HostDocument, kind: Optional[CommandKind], ordinal: int) -> Optional[HostFeature]:
    """The *ordinal*-th feature of *kind* (1 = first, -1 = last), any kind if None."""
    host_kinds = _HOST_KINDS.get(kind, ()) if kind is not None else None
    matches = [f for f in doc.features if host_kinds is None or f.kind in host_kinds]
    index = ordinal - 1 if ordinal > 0 else ordinal
    if ordinal == 0 or not -len(matches) <= index < len(matches):
        return None
    return matches[index]
