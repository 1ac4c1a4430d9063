"""Tests for conversation context bookkeeping."""

from __future__ import annotations

import pytest

from nlcad.commands import (
    AddFillet,
    AddHole,
    CommandBase,
    CommandKind,
    CreateBox,
    DeleteFeature,
    DimensionType,
    ModificationType,
    ModifyDimension,
    Redo,
    ReferencePlane,
    Undo,
)
from nlcad.context import ClarificationRequest, ConversationContext
from nlcad.units import Dimension, Unit


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def context() -> ConversationContext:
    return ConversationContext()


def _box() -> CreateBox:
    return CreateBox(
        name="Bracket",
        width=Dimension.inches(10),
        length=Dimension.inches(20),
        height=Dimension.inches(5),
        sketch_plane=ReferencePlane.FRONT,
    )


# ---------------------------------------------------------------------------
# ConversationContext
# ---------------------------------------------------------------------------


class TestConversationContext:
    def test_initial_state(self, context: ConversationContext) -> None:
        assert context.last_command is None
        assert context.recent_dimensions == ()
        assert context.last_dimension_like() is None
        assert context.default_unit is Unit.INCH

    def test_create_updates_document_and_plane(self, context: ConversationContext) -> None:
        box = _box()
        context.on_command_executed(box, {"feature": "Bracket", "document": "Bracket"}, "make a bracket")
        assert context.last_command is box
        assert context.last_document == "Bracket"
        assert context.last_plane is ReferencePlane.FRONT
        assert context.implicit_reference is box

    def test_dimensions_most_recent_first(self, context: ConversationContext) -> None:
        context.on_command_executed(_box())
        assert context.recent_dimensions[0] == Dimension.inches(5)
        assert context.last_dimension_like(DimensionType.WIDTH) == Dimension.inches(10)
        assert context.last_dimension_like() == Dimension.inches(5)
        assert len(context.recent_dimensions) == 3

    def test_dimension_stack_is_bounded(self, context: ConversationContext) -> None:
        for i in range(1, 13):
            context.push_dimension(Dimension.inches(i))
        assert len(context.recent_dimensions) == 10
        assert context.recent_dimensions[0] == Dimension.inches(12)
        assert context.recent_dimensions[-1] == Dimension.inches(3)

    def test_feature_reference_is_case_insensitive(self, context: ConversationContext) -> None:
        hole = AddHole(diameter=Dimension.inches(1))
        context.on_command_executed(hole, {"feature": "Hole"})
        assert context.get_reference("HOLE") is hole
        assert "hole" in context.named_references

    def test_undo_does_not_replace_last_command(self, context: ConversationContext) -> None:
        hole = AddHole(diameter=Dimension.inches(1))
        context.on_command_executed(hole)
        context.on_command_executed(Undo())
        assert context.last_command is hole

    def test_success_clears_pending_clarification(self, context: ConversationContext) -> None:
        context.pending_clarification = ClarificationRequest(original_input="add a hole")
        context.on_command_executed(AddHole(diameter=Dimension.inches(1)))
        assert context.pending_clarification is None

    def test_turns_are_bounded(self, context: ConversationContext) -> None:
        for i in range(8):
            context.on_command_executed(AddFillet(radius=Dimension.inches(0.1)), user_input=f"turn {i}")
        assert len(context.turns) == 5
        assert context.turns[-1].user_input == "turn 7"

    def test_summary(self, context: ConversationContext) -> None:
        context.on_command_executed(_box(), user_input="make a bracket")
        summary = context.context_summary()
        assert "Active part: Bracket" in summary
        assert "Last command: Create box 'Bracket'" in summary
        assert "Default units: in" in summary
        assert "User: make a bracket -> " in summary

    def test_summary_without_turns(self, context: ConversationContext) -> None:
        context.on_command_executed(_box(), user_input="make a bracket")
        assert "User:" not in context.context_summary(max_turns=0)

    def test_clear(self, context: ConversationContext) -> None:
        context.on_command_executed(_box(), {"feature": "Bracket"})
        context.clear()
        assert context.last_command is None
        assert context.last_document is None
        assert context.named_references == {}
        assert context.recent_dimensions == ()
        assert context.turns == ()



# ---------------------------------------------------------------------------
# Typed history
# ---------------------------------------------------------------------------


class TestTypedHistory:
    def test_last_command_per_kind(self, context: ConversationContext) -> None:
        hole = AddHole(diameter=Dimension.inches(1))
        fillet = AddFillet(radius=Dimension.inches(0.25))
        context.on_command_executed(hole)
        context.on_command_executed(fillet)
        assert context.last_command is fillet
        assert context.last_command_of(CommandKind.ADD_HOLE) is hole
        assert context.last_command_of(CommandKind.ADD_CHAMFER) is None

    def test_modification_is_typed_by_its_target(self, context: ConversationContext) -> None:
        context.on_command_executed(_box())
        context.on_command_executed(ModifyDimension(
            dimension_type=DimensionType.WIDTH,
            modification_type=ModificationType.SET_TO,
            value=Dimension.inches(12),
        ))
        assert context.last_dimension_like(DimensionType.WIDTH) == Dimension.inches(12)
        assert context.last_dimension_like(DimensionType.LENGTH) == Dimension.inches(20)

    def test_thickness_matches_height(self, context: ConversationContext) -> None:
        context.on_command_executed(_box())
        context.on_command_executed(AddHole(diameter=Dimension.inches(1)))
        assert context.last_dimension_like(DimensionType.THICKNESS) == Dimension.inches(5)

    def test_unseen_type_falls_back_to_latest(self, context: ConversationContext) -> None:
        context.on_command_executed(_box())
        assert context.last_dimension_like(DimensionType.RADIUS) == Dimension.inches(5)


class TestFeatureTracking:
    def _add(self, context: ConversationContext, command: CommandBase, name: str) -> None:
        context.on_command_executed(command, {"feature": name})

    def test_find_by_kind_and_position(self, context: ConversationContext) -> None:
        self._add(context, _box(), "Bracket")
        self._add(context, AddHole(diameter=Dimension.inches(1)), "Hole")
        self._add(context, AddFillet(radius=Dimension.inches(0.1)), "Fillet")
        self._add(context, AddHole(diameter=Dimension.inches(1)), "Hole_2")
        assert context.find_feature(CommandKind.ADD_HOLE, 1) == "Hole"
        assert context.find_feature(CommandKind.ADD_HOLE, -1) == "Hole_2"
        assert context.find_feature(CommandKind.ADD_HOLE, 3) is None
        assert context.find_feature(None, -1) == "Hole_2"
        assert context.find_feature(CommandKind.ADD_CHAMFER) is None

    def test_deleted_feature_is_forgotten(self, context: ConversationContext) -> None:
        self._add(context, AddHole(diameter=Dimension.inches(1)), "Hole")
        self._add(context, AddHole(diameter=Dimension.inches(1)), "Hole_2")
        context.on_command_executed(DeleteFeature(feature_name="Hole"), {"deleted": "Hole"})
        assert context.find_feature(CommandKind.ADD_HOLE, 1) == "Hole_2"
        assert context.features == ((CommandKind.ADD_HOLE, "Hole_2"),)

    def test_undo_hides_and_revives(self, context: ConversationContext) -> None:
        hole = AddHole(diameter=Dimension.inches(1))
        self._add(context, hole, "Hole")
        delete = DeleteFeature(feature_name="Hole")
        context.on_command_executed(delete, {"deleted": "Hole"})
        assert context.find_feature(CommandKind.ADD_HOLE) is None

        context.on_command_executed(Undo(), {"moved": [delete.id]})
        assert context.find_feature(CommandKind.ADD_HOLE) == "Hole"
        context.on_command_executed(Undo(), {"moved": [hole.id]})
        assert context.features == ()
        context.on_command_executed(Redo(), {"moved": [hole.id]})
        assert context.features == ((CommandKind.ADD_HOLE, "Hole"),)

    def test_feature_mentioned_by_name(self, context: ConversationContext) -> None:
        self._add(context, AddHole(diameter=Dimension.inches(1)), "Hole_2")
        assert context.feature_mentioned("get rid of hole_2 please") == "Hole_2"
        assert context.feature_mentioned("get rid of the hole") is None

    def test_modification_does_not_add_features(self, context: ConversationContext) -> None:
        self._add(context, _box(), "Bracket")
        context.on_command_executed(
            ModifyDimension(
                dimension_type=DimensionType.WIDTH,
                modification_type=ModificationType.INCREASE_BY,
                value=Dimension.inches(1),
            ),
            {"feature": "Bracket"},
        )
        assert context.features == ((CommandKind.CREATE_BOX, "Bracket"),)
