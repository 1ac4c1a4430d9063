"""Tests for regex extraction and the rule-based parser.

Everything here is offline; no language model is involved.
"""

from __future__ import annotations

import pytest

from nlcad.commands import (
    AddChamfer,
    AddCircularPattern,
    AddExtrusion,
    AddFillet,
    AddHole,
    AddLinearPattern,
    AddMate,
    ClosePart,
    CommandKind,
    CreateAssembly,
    CreateBox,
    CreateCylinder,
    DeleteFeature,
    ExportFormat,
    ExportPart,
    FixComponent,
    InfoType,
    InsertComponent,
    MateAlignment,
    MateType,
    Redo,
    ReferencePlane,
    SavePart,
    ShowInfo,
    Undo,
)
from nlcad.nlp import IntentTag, classify_intent
from nlcad.nlp.extraction import (
    WIDTH_KEYWORDS,
    extract_box_dimensions,
    extract_dimension,
    extract_first_dimension,
    extract_name,
    extract_ordinal,
    extract_plane,
    feature_kind_in,
    has_word,
    parse_number,
    word_number,
)
from nlcad.nlp.rules import RuleBasedParser
from nlcad.units import Dimension, Unit


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def parser() -> RuleBasedParser:
    return RuleBasedParser()


# ---------------------------------------------------------------------------
# Extraction helpers
# ---------------------------------------------------------------------------


class TestNumbers:
    def test_mixed_and_fraction(self) -> None:
        assert parse_number("1 1/2") == pytest.approx(1.5)
        assert parse_number("1-1/2") == pytest.approx(1.5)
        assert parse_number("3/4") == pytest.approx(0.75)

    def test_decimal(self) -> None:
        assert parse_number(".5") == pytest.approx(0.5)

    def test_bad_input(self) -> None:
        assert parse_number("1/0") is None
        assert parse_number("abc") is None
        assert parse_number("") is None

    def test_word_number(self) -> None:
        assert word_number("make it half as wide") == 0.5
        assert word_number("add three more") == 3
        assert word_number("nothing here") is None


class TestDimensionExtraction:
    def test_keyword_after_value(self) -> None:
        assert extract_dimension("36 inches wide", WIDTH_KEYWORDS) == Dimension.inches(36)

    def test_keyword_before_value(self) -> None:
        assert extract_dimension("width: 36 in", WIDTH_KEYWORDS) == Dimension.inches(36)

    def test_missing_keyword(self) -> None:
        assert extract_dimension("36 inches tall", WIDTH_KEYWORDS) is None

    def test_first_dimension_skips_glued_numbers(self) -> None:
        assert extract_first_dimension("part2 is 5 mm") == Dimension.millimeters(5)

    def test_first_dimension_default_unit(self) -> None:
        dim = extract_first_dimension("make it 12", Unit.MILLIMETER)
        assert dim == Dimension.millimeters(12)

    def test_box_compact_form(self) -> None:
        dims = extract_box_dimensions("10 x 20 x 5 inches")
        assert dims is not None
        assert dims.width == Dimension.inches(10)
        assert dims.length == Dimension.inches(20)
        assert dims.height == Dimension.inches(5)

    def test_box_per_number_units(self) -> None:
        dims = extract_box_dimensions("10in x 20 x 5 mm")
        assert dims is not None
        assert dims.width == Dimension.inches(10)
        assert dims.length == Dimension.millimeters(20)
        assert dims.height == Dimension.millimeters(5)

    def test_box_keyword_form(self) -> None:
        dims = extract_box_dimensions("10 wide, 20 long, 2 thick")
        assert dims is not None
        assert (dims.width, dims.length, dims.height) == (
            Dimension.inches(10),
            Dimension.inches(20),
            Dimension.inches(2),
        )

    def test_box_incomplete(self) -> None:
        assert extract_box_dimensions("10 wide and 20 long") is None


class TestNamesAndPlanes:
    def test_name(self) -> None:
        assert extract_name("a plate called Base") == "Base"
        assert extract_name("a plate") is None

    def test_plane(self) -> None:
        assert extract_plane("sketch on the front plane") is ReferencePlane.FRONT
        assert extract_plane("on the right") is ReferencePlane.RIGHT
        assert extract_plane("anywhere") is ReferencePlane.TOP

    def test_feature_kind(self) -> None:
        assert feature_kind_in("add another hole") is CommandKind.ADD_HOLE
        assert feature_kind_in("the circular pattern") is CommandKind.ADD_CIRCULAR_PATTERN
        assert feature_kind_in("the plate") is CommandKind.CREATE_BOX
        assert feature_kind_in("that thing") is None

    def test_ordinal(self) -> None:
        assert extract_ordinal("the first hole") == 1
        assert extract_ordinal("the 2nd fillet") == 2
        assert extract_ordinal("the latest chamfer") == -1
        assert extract_ordinal("the hole") is None

    def test_has_word_is_whole_word(self) -> None:
        assert has_word("drill a hole", "hole")
        assert not has_word("drill holes", "hole")


# ---------------------------------------------------------------------------
# Parser: part creation
# ---------------------------------------------------------------------------


class TestCreation:
    def test_box(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Create a box 10 x 20 x 5 inches")
        assert isinstance(cmd, CreateBox)
        assert cmd.name == "Box"
        assert cmd.width == Dimension.inches(10)
        assert cmd.length == Dimension.inches(20)
        assert cmd.height == Dimension.inches(5)
        assert cmd.centered is True

    def test_named_metric_plate(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Create a 500mm x 300mm x 10mm plate named Base")
        assert isinstance(cmd, CreateBox)
        assert cmd.name == "Base"
        assert cmd.width == Dimension.millimeters(500)
        assert cmd.height == Dimension.millimeters(10)

    def test_box_at_corner(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("box 4 x 4 x 1 from the corner")
        assert isinstance(cmd, CreateBox)
        assert cmd.centered is False

    def test_cylinder(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Create a cylinder 2 inch diameter and 6 inches tall")
        assert isinstance(cmd, CreateCylinder)
        assert cmd.diameter == Dimension.inches(2)
        assert cmd.height == Dimension.inches(6)

    def test_cylinder_from_radius(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Create a cylinder with radius 1 inch and height 4 inches")
        assert isinstance(cmd, CreateCylinder)
        assert cmd.diameter == Dimension.inches(2)
        assert cmd.height == Dimension.inches(4)

    def test_box_missing_dimension(self, parser: RuleBasedParser) -> None:
        assert parser.parse_box("Create a box 10 x 20") is None

    def test_default_unit(self) -> None:
        cmd = RuleBasedParser("mm").parse_first("box 10 x 20 x 5")
        assert isinstance(cmd, CreateBox)
        assert cmd.width.unit is Unit.MILLIMETER

    def test_unknown_default_unit(self) -> None:
        with pytest.raises(ValueError):
            RuleBasedParser("furlong")


# ---------------------------------------------------------------------------
# Parser: features
# ---------------------------------------------------------------------------


class TestFeatures:
    def test_fillet_all_edges(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Add a 0.25 inch fillet to all edges")
        assert isinstance(cmd, AddFillet)
        assert cmd.radius == Dimension.inches(0.25)
        assert cmd.all_edges is True

    def test_chamfer_with_angle(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Chamfer the edges 2mm at 45 degrees")
        assert isinstance(cmd, AddChamfer)
        assert cmd.distance == Dimension.millimeters(2)
        assert cmd.angle == 45.0

    def test_through_hole(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Add a 0.5 inch hole through all")
        assert isinstance(cmd, AddHole)
        assert cmd.diameter == Dimension.inches(0.5)
        assert cmd.through_all is True
        assert cmd.location is None

    def test_blind_hole_at_center(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Drill a 10mm hole 20mm deep in the center")
        assert isinstance(cmd, AddHole)
        assert cmd.diameter == Dimension.millimeters(10)
        assert cmd.depth == Dimension.millimeters(20)
        assert cmd.through_all is False
        assert cmd.location is not None
        assert cmd.location.reference == "center"

    def test_hole_without_size(self, parser: RuleBasedParser) -> None:
        assert parser.parse_hole("add a hole") is None

    def test_extrusion(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Extrude 2 inches")
        assert isinstance(cmd, AddExtrusion)
        assert cmd.depth == Dimension.inches(2)
        assert cmd.is_cut is False
        assert cmd.feature_name == "Boss-Extrude"

    def test_mid_plane_extrusion(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Extrude 1 inch mid plane")
        assert isinstance(cmd, AddExtrusion)
        assert cmd.mid_plane is True

    def test_cut(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Cut extrude 0.5 inches deep")
        assert isinstance(cmd, AddExtrusion)
        assert cmd.is_cut is True
        assert cmd.depth == Dimension.inches(0.5)
        assert cmd.feature_name == "Cut-Extrude"

    def test_circular_pattern(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Make a circular pattern with 6 instances")
        assert isinstance(cmd, AddCircularPattern)
        assert cmd.count == 6
        assert cmd.total_angle == 360.0

    def test_partial_circular_pattern(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_circular_pattern("circular pattern of 4 instances over 180 degrees")
        assert cmd is not None
        assert cmd.count == 4
        assert cmd.total_angle == 180.0

    def test_linear_pattern(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Linear pattern of 4 copies 2 inches apart")
        assert isinstance(cmd, AddLinearPattern)
        assert cmd.count == 4
        assert cmd.spacing == Dimension.inches(2)

    def test_delete_named(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Delete feature Hole_2")
        assert isinstance(cmd, DeleteFeature)
        assert cmd.feature_name == "Hole_2"

    def test_delete_last(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Delete the fillet")
        assert isinstance(cmd, DeleteFeature)
        assert cmd.feature_name is None
        assert cmd.feature_kind is CommandKind.ADD_FILLET
        assert cmd.ordinal == -1

    def test_delete_called(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Delete the feature called Boss_2")
        assert isinstance(cmd, DeleteFeature)
        assert cmd.feature_name == "Boss_2"

    def test_delete_by_position(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("delete the first hole")
        assert isinstance(cmd, DeleteFeature)
        assert cmd.feature_kind is CommandKind.ADD_HOLE
        assert cmd.ordinal == 1
        assert cmd.description == "Delete first hole"

    def test_delete_anything(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("delete it")
        assert isinstance(cmd, DeleteFeature)
        assert cmd.feature_kind is None
        assert cmd.description == "Delete feature 'last feature'"

    def test_leading_remove_wins_over_feature(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("remove the 0.25 inch fillet")
        assert isinstance(cmd, DeleteFeature)
        assert cmd.feature_kind is CommandKind.ADD_FILLET

    def test_remove_mid_sentence_is_not_leading(self, parser: RuleBasedParser) -> None:
        assert isinstance(parser.parse_first("add a 0.25 inch fillet, remove sharp edges"), AddFillet)


# ---------------------------------------------------------------------------
# Parser: files, history, queries
# ---------------------------------------------------------------------------


class TestFilesAndHistory:
    def test_export_default_name(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Export as STEP")
        assert isinstance(cmd, ExportPart)
        assert cmd.format is ExportFormat.STEP
        assert cmd.file_path == "export.step"

    def test_export_named(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Export to bracket as STL")
        assert isinstance(cmd, ExportPart)
        assert cmd.format is ExportFormat.STL
        assert cmd.file_path == "bracket.stl"

    def test_save(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Save the part")
        assert isinstance(cmd, SavePart)
        assert cmd.file_path is None
        assert cmd.overwrite is False

    def test_save_as_name(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Save as bracket")
        assert isinstance(cmd, SavePart)
        assert cmd.file_path == "bracket.sldprt"

    def test_save_overwrite(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Save and overwrite")
        assert isinstance(cmd, SavePart)
        assert cmd.overwrite is True

    def test_save_and_close(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Save and close")
        assert isinstance(cmd, ClosePart)
        assert cmd.save_first is True

    def test_close(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Close the part")
        assert isinstance(cmd, ClosePart)
        assert cmd.save_first is False

    def test_undo(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("undo")
        assert isinstance(cmd, Undo)
        assert cmd.count == 1

    def test_undo_count(self, parser: RuleBasedParser) -> None:
        assert parser.parse_first("Undo the last 3").count == 3
        assert parser.parse_first("undo last two").count == 2

    def test_redo(self, parser: RuleBasedParser) -> None:
        assert isinstance(parser.parse_first("redo"), Redo)

    @pytest.mark.parametrize(
        "text,info_type",
        [
            ("Show the mass properties", InfoType.MASS_PROPERTIES),
            ("What is the bounding box", InfoType.BOUNDING_BOX),
            ("List features", InfoType.FEATURE_LIST),
            ("show info", InfoType.DOCUMENT_INFO),
        ],
    )
    def test_show_info(self, parser: RuleBasedParser, text: str, info_type: InfoType) -> None:
        cmd = parser.parse_first(text)
        assert isinstance(cmd, ShowInfo)
        assert cmd.info_type is info_type


class TestAssemblies:
    def test_create_assembly_with_name(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Create a new assembly called Cabinet")
        assert isinstance(cmd, CreateAssembly)
        assert cmd.name == "Cabinet"

    def test_create_assembly_default_name(self) -> None:
        cmd = RuleBasedParser(Unit.MILLIMETER).parse_first("start a new assembly")
        assert isinstance(cmd, CreateAssembly)
        assert cmd.name == "Assembly1"
        assert cmd.units is Unit.MILLIMETER

    def test_insert_by_name(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Insert the component Side")
        assert isinstance(cmd, InsertComponent)
        assert cmd.component_path == "Side.sldprt"
        assert not cmd.fixed

    def test_insert_by_path(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("add parts/bracket.sldprt as a fixed component")
        assert isinstance(cmd, InsertComponent)
        assert cmd.component_path == "parts/bracket.sldprt"
        assert cmd.fixed

    def test_insert_without_a_name(self, parser: RuleBasedParser) -> None:
        assert parser.parse_first("insert a component") is None

    def test_inserting_a_hole_is_a_feature(self, parser: RuleBasedParser) -> None:
        assert isinstance(parser.parse_first("insert a 0.5 inch hole"), AddHole)

    def test_coincident_mate(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("Add a coincident mate between Part1-1 and Part2-1")
        assert isinstance(cmd, AddMate)
        assert cmd.mate_type is MateType.COINCIDENT
        assert cmd.first.component == "Part1-1"
        assert cmd.second.component == "Part2-1"
        assert cmd.alignment is MateAlignment.CLOSEST

    def test_concentric_mate_with_faces(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("mate Shaft-1's axis to Hole-1's bore concentric, anti-aligned")
        assert isinstance(cmd, AddMate)
        assert cmd.mate_type is MateType.CONCENTRIC
        assert str(cmd.first) == "Shaft-1.axis"
        assert str(cmd.second) == "Hole-1.bore"
        assert cmd.alignment is MateAlignment.ANTI_ALIGNED

    def test_distance_mate_ignores_digits_in_names(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("add a distance mate of 25 mm between Base-1 and Cover-1")
        assert isinstance(cmd, AddMate)
        assert cmd.mate_type is MateType.DISTANCE
        assert cmd.distance == Dimension(25, Unit.MILLIMETER)

    def test_distance_mate_without_distance(self, parser: RuleBasedParser) -> None:
        assert parser.parse_first("add a distance mate between Base-1 and Cover-1") is None

    def test_angle_mate(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("angle mate between Lid-1 and Box-1 at 30 degrees, flipped")
        assert isinstance(cmd, AddMate)
        assert cmd.mate_type is MateType.ANGLE
        assert cmd.angle == 30.0
        assert cmd.flip

    def test_mate_needs_two_components(self, parser: RuleBasedParser) -> None:
        assert parser.parse_first("add a coincident mate") is None

    @pytest.mark.parametrize(
        "text, name, fix",
        [
            ("Fix the component Base-1", "Base-1", True),
            ("ground Frame-1", "Frame-1", True),
            ("Float the component Part1-1", "Part1-1", False),
        ],
    )
    def test_fix_and_float(self, parser: RuleBasedParser, text: str, name: str, fix: bool) -> None:
        cmd = parser.parse_first(text)
        assert isinstance(cmd, FixComponent)
        assert cmd.component == name
        assert cmd.fix is fix

    def test_box_is_not_an_assembly(self, parser: RuleBasedParser) -> None:
        assert isinstance(parser.parse_first("Create a box 10 x 20 x 5 inches"), CreateBox)

    def test_export_to_a_step_file_is_not_an_insert(self, parser: RuleBasedParser) -> None:
        assert isinstance(parser.parse_first("export to bracket.step"), ExportPart)


class TestParseFirst:
    def test_empty(self, parser: RuleBasedParser) -> None:
        assert parser.parse_first("") is None
        assert parser.parse_first("   ") is None

    def test_no_match(self, parser: RuleBasedParser) -> None:
        assert parser.parse_first("make me a sandwich") is None

    def test_help_is_not_a_command(self, parser: RuleBasedParser) -> None:
        assert parser.is_help("help")
        assert parser.is_help("?")
        assert parser.is_help("What can you do?")
        assert not parser.is_help("create a box")

    def test_box_wins_over_hole(self, parser: RuleBasedParser) -> None:
        cmd = parser.parse_first("box 4 x 4 x 1 with a hole")
        assert isinstance(cmd, CreateBox)


# ---------------------------------------------------------------------------
# Keyword intent classification
# ---------------------------------------------------------------------------


class TestClassifyIntent:
    @pytest.mark.parametrize(
        "text, intent",
        [
            ("add a fillet", IntentTag.ADD_FILLET),
            ("save as a STEP file", IntentTag.EXPORT_PART),
            ("delete the hole", IntentTag.DELETE_FEATURE),
            ("make it bigger", IntentTag.MODIFY_DIMENSION),
            ("create a part", IntentTag.CREATE_PART),
            ("what is the volume", IntentTag.SHOW_INFO),
            ("create a new assembly", IntentTag.CREATE_ASSEMBLY),
            ("add a coincident mate", IntentTag.ADD_MATE),
            ("insert a component", IntentTag.INSERT_COMPONENT),
            ("ground the base", IntentTag.FIX_COMPONENT),
        ],
    )
    def test_keywords(self, text: str, intent: IntentTag) -> None:
        assert classify_intent(text).intent is intent

    def test_confidence_by_keyword(self) -> None:
        assert classify_intent("save it").confidence == pytest.approx(0.9)
        assert classify_intent("add a chamfer").confidence == pytest.approx(0.8)

    def test_unknown(self) -> None:
        result = classify_intent("make me a sandwich")
        assert result.intent is IntentTag.UNKNOWN
        assert result.confidence == 0.0
        assert result.original_input == "make me a sandwich"
