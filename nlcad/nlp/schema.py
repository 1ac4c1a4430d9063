"""CommandSchema: the structured JSON a language model must return.

Field names are camelCase on the wire and snake_case in Python.  Any
payload that fails validation is treated exactly like a transport
failure by the interpreter.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

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
    MateReference,
    MateType,
    ModificationType,
    ModifyDimension,
    Point3D,
    Redo,
    ReferencePlane,
    SavePart,
    ShowInfo,
    Undo,
)
from nlcad.nlp.extraction import feature_kind_in
from nlcad.nlp.intent import IntentTag
from nlcad.units import Dimension, Unit, parse_unit

logger = logging.getLogger(__name__)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DimensionValue(_WireModel):
    value: float
    unit: str = "inches"
    original: Optional[str] = None
    """The text the model read the value from, e.g. ``"10 inches"``."""

    def to_dimension(self, default_unit: Unit = Unit.INCH) -> Dimension:
        return Dimension(self.value, parse_unit(self.unit) or default_unit)


class LocationValue(_WireModel):
    x: Optional[DimensionValue] = None
    y: Optional[DimensionValue] = None
    z: Optional[DimensionValue] = None
    reference: Optional[str] = None
    """Named location: "center", "corner", "top face", ..."""

    def to_point(self, default_unit: Unit = Unit.INCH) -> Point3D:
        def dim(v: Optional[DimensionValue]) -> Dimension:
            return v.to_dimension(default_unit) if v is not None else Dimension.zero()

        return Point3D(x=dim(self.x), y=dim(self.y), z=dim(self.z), reference=self.reference)


class CommandParameters(_WireModel):
    name: Optional[str] = None
    width: Optional[DimensionValue] = None
    length: Optional[DimensionValue] = None
    height: Optional[DimensionValue] = None
    depth: Optional[DimensionValue] = None
    diameter: Optional[DimensionValue] = None
    radius: Optional[DimensionValue] = None
    thickness: Optional[DimensionValue] = None
    distance: Optional[DimensionValue] = None
    angle: Optional[float] = None
    count: Optional[int] = None
    spacing: Optional[DimensionValue] = None
    all_edges: Optional[bool] = None
    through_all: Optional[bool] = None
    centered: Optional[bool] = None
    plane: Optional[str] = None
    format: Optional[str] = None
    filename: Optional[str] = None
    location: Optional[LocationValue] = None
    direction: Optional[str] = None
    pattern_type: Optional[str] = None
    feature_name: Optional[str] = None
    dimension: Optional[str] = None
    modification: Optional[str] = None
    value: Optional[DimensionValue] = None
    units: Optional[str] = None
    info_type: Optional[str] = None
    overwrite: Optional[bool] = None
    save_first: Optional[bool] = None
    feature_type: Optional[str] = None
    ordinal: Optional[int] = None
    component: Optional[str] = None
    component2: Optional[str] = None
    entity: Optional[str] = None
    entity2: Optional[str] = None
    mate_type: Optional[str] = None
    alignment: Optional[str] = None
    flip: Optional[bool] = None
    fixed: Optional[bool] = None
    path: Optional[str] = None

    @field_validator("location", mode="before")
    @classmethod
    def _location_from_string(cls, v: Any) -> Any:
        # Models sometimes send "location": "center" instead of an object
        if isinstance(v, str):
            return {"reference": v}
        return v


class CommandSchema(_WireModel):
    intent: str
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    parameters: CommandParameters = Field(default_factory=CommandParameters)
    message: str = ""
    needs_clarification: bool = False
    clarification_question: Optional[str] = None

    @property
    def tag(self) -> Optional[IntentTag]:
        """The recognised intent, or *None* for an unknown tag."""
        try:
            return IntentTag(self.intent.strip().upper())
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# Schema -> command
# ---------------------------------------------------------------------------


def _dim(v: Optional[DimensionValue], default_unit: Unit) -> Optional[Dimension]:
    return v.to_dimension(default_unit) if v is not None else None


def _first(*dims: Optional[Dimension]) -> Optional[Dimension]:
    return next((d for d in dims if d is not None), None)


def _plane(value: Optional[str]) -> ReferencePlane:
    lookup = {"front": ReferencePlane.FRONT, "right": ReferencePlane.RIGHT}
    return lookup.get((value or "").strip().lower(), ReferencePlane.TOP)


def _export_format(value: Optional[str]) -> ExportFormat:
    lookup = {
        "STEP": ExportFormat.STEP,
        "STP": ExportFormat.STEP,
        "STL": ExportFormat.STL,
        "IGES": ExportFormat.IGES,
        "IGS": ExportFormat.IGES,
        "DXF": ExportFormat.DXF,
        "DWG": ExportFormat.DWG,
        "PDF": ExportFormat.PDF,
        "PARASOLID": ExportFormat.PARASOLID,
        "X_T": ExportFormat.PARASOLID,
    }
    return lookup.get((value or "").strip().upper(), ExportFormat.STEP)


def _enum_value(enum_cls: Any, value: Optional[str]) -> Any:
    if not value:
        return None
    wanted = value.replace("_", "").replace(" ", "").replace("-", "").lower()
    for member in enum_cls:
        if member.value.lower() == wanted or member.name.replace("_", "").lower() == wanted:
            return member
    return None


def build_command(schema: CommandSchema, default_unit: Unit = Unit.INCH) -> Optional[CommandBase]:
    """Turn a validated schema into a command.

    Returns *None* when the intent carries no command (help, unknown) or a
    required parameter is missing.
    """
    tag = schema.tag
    p = schema.parameters

    def d(v: Optional[DimensionValue]) -> Optional[Dimension]:
        return _dim(v, default_unit)

    if tag in (IntentTag.CREATE_BOX, IntentTag.CREATE_PLATE):
        width = _first(d(p.width), d(p.thickness))
        length = d(p.length)
        height = _first(d(p.height), d(p.thickness), d(p.depth))
        if width is None or length is None or height is None:
            logger.warning("Missing dimensions for box: W=%s, L=%s, H=%s", width, length, height)
            return None
        return CreateBox(
            name=p.name or "Box",
            width=width,
            length=length,
            height=height,
            sketch_plane=_plane(p.plane),
            centered=True if p.centered is None else p.centered,
        )

    if tag is IntentTag.CREATE_CYLINDER:
        diameter = d(p.diameter)
        if diameter is None and p.radius is not None:
            diameter = d(p.radius) * 2
        height = _first(d(p.height), d(p.depth), d(p.length))
        if diameter is None or height is None:
            logger.warning("Missing dimensions for cylinder")
            return None
        return CreateCylinder(
            name=p.name or "Cylinder",
            diameter=diameter,
            height=height,
            sketch_plane=_plane(p.plane),
            centered=True if p.centered is None else p.centered,
        )

    if tag is IntentTag.CREATE_PART:
        return CreatePart(name=p.name or "Part1", units=parse_unit(p.units) or default_unit)

    if tag is IntentTag.ADD_FILLET:
        radius = d(p.radius)
        if radius is None:
            logger.warning("Missing radius for fillet")
            return None
        return AddFillet(radius=radius, all_edges=bool(p.all_edges))

    if tag is IntentTag.ADD_CHAMFER:
        distance = _first(d(p.distance), d(p.width), d(p.depth))
        if distance is None:
            logger.warning("Missing distance for chamfer")
            return None
        return AddChamfer(distance=distance, angle=p.angle, all_edges=bool(p.all_edges))

    if tag is IntentTag.ADD_HOLE:
        diameter = _first(d(p.diameter), d(p.radius) * 2 if p.radius is not None else None)
        if diameter is None:
            logger.warning("Missing diameter for hole")
            return None
        depth = d(p.depth)
        through_all = p.through_all if p.through_all is not None else depth is None
        location = p.location.to_point(default_unit) if p.location is not None else None
        return AddHole(diameter=diameter, depth=depth, through_all=through_all, location=location)

    if tag in (IntentTag.ADD_EXTRUSION, IntentTag.ADD_CUT):
        depth = _first(d(p.depth), d(p.height))
        if depth is None:
            logger.warning("Missing depth for %s", tag.value)
            return None
        is_cut = tag is IntentTag.ADD_CUT
        return AddExtrusion(
            feature_name=p.feature_name or ("Cut-Extrude" if is_cut else "Boss-Extrude"),
            depth=depth,
            is_cut=is_cut,
        )

    if tag is IntentTag.ADD_PATTERN:
        if not p.count:
            logger.warning("Missing count for pattern")
            return None
        circular = (p.pattern_type or "").lower() in ("circular", "radial", "polar")
        if circular:
            return AddCircularPattern(count=p.count, total_angle=p.angle or 360.0)
        return AddLinearPattern(count=p.count, spacing=d(p.spacing) or Dimension.inches(1))

    if tag is IntentTag.MODIFY_DIMENSION:
        dim_type = _enum_value(DimensionType, p.dimension)
        mod_type = _enum_value(ModificationType, p.modification) or ModificationType.SET_TO
        value = d(p.value)
        if dim_type is None or value is None:
            logger.warning("Missing dimension or value for modification")
            return None
        return ModifyDimension(
            dimension_type=dim_type,
            modification_type=mod_type,
            value=value,
            feature_name=p.feature_name,
        )

    if tag is IntentTag.DELETE_FEATURE:
        name = p.feature_name or p.name
        if name:
            return DeleteFeature(feature_name=name)
        return DeleteFeature(
            feature_kind=feature_kind_in(p.feature_type) if p.feature_type else None,
            ordinal=p.ordinal if p.ordinal else -1,
        )

    if tag is IntentTag.SAVE_PART:
        return SavePart(file_path=p.filename, overwrite=bool(p.overwrite))

    if tag is IntentTag.EXPORT_PART:
        fmt = _export_format(p.format)
        return ExportPart(file_path=p.filename or f"export{fmt.extension}", format=fmt)

    if tag is IntentTag.CLOSE_PART:
        return ClosePart(save_first=bool(p.save_first))

    if tag is IntentTag.CREATE_ASSEMBLY:
        return CreateAssembly(name=p.name or "Assembly1", units=parse_unit(p.units) or default_unit)

    if tag is IntentTag.INSERT_COMPONENT:
        path = p.path or p.filename or p.component or p.name
        if not path:
            logger.warning("Missing component for insert")
            return None
        if "." not in path:
            path = f"{path}{ExportFormat.SOLIDWORKS_PART.extension}"
        location = p.location.to_point(default_unit) if p.location is not None else None
        return InsertComponent(component_path=path, position=location, fixed=bool(p.fixed))

    if tag is IntentTag.ADD_MATE:
        if not p.component or not p.component2:
            logger.warning("Mate needs two components")
            return None
        mate_type = _enum_value(MateType, p.mate_type) or MateType.COINCIDENT
        distance = d(p.distance)
        if mate_type is MateType.DISTANCE and distance is None:
            logger.warning("Missing distance for distance mate")
            return None
        if mate_type is MateType.ANGLE and p.angle is None:
            logger.warning("Missing angle for angle mate")
            return None
        return AddMate(
            mate_type=mate_type,
            first=MateReference(component=p.component, entity=p.entity),
            second=MateReference(component=p.component2, entity=p.entity2),
            alignment=_enum_value(MateAlignment, p.alignment) or MateAlignment.CLOSEST,
            distance=distance if mate_type is MateType.DISTANCE else None,
            angle=p.angle if mate_type is MateType.ANGLE else None,
            flip=bool(p.flip),
        )

    if tag is IntentTag.FIX_COMPONENT:
        if not p.component:
            logger.warning("Missing component to fix")
            return None
        return FixComponent(component=p.component, fix=True if p.fixed is None else p.fixed)

    if tag is IntentTag.UNDO:
        return Undo(count=p.count or 1)

    if tag is IntentTag.REDO:
        return Redo(count=p.count or 1)

    if tag is IntentTag.SHOW_INFO:
        return ShowInfo(info_type=_enum_value(InfoType, p.info_type) or InfoType.DOCUMENT_INFO)

    return None
