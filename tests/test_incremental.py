"""Tests for incremental follow-up resolution against the conversation context."""

from __future__ import annotations

import pytest

from nlcad.commands import (
    AddChamfer,
    AddFillet,
    AddHole,
    CreateBox,
    DimensionType,
    ModificationType,
    ModifyDimension,
    ReferencePlane,
)
from nlcad.context import ConversationContext
from nlcad.nlp.incremental import IncrementalResolver
from nlcad.units import Dimension


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def context() -> ConversationContext:
    return ConversationContext()


@pytest.fixture
def resolver(context: ConversationContext) -> IncrementalResolver:
    return IncrementalResolver(context)


def _box() -> CreateBox:
    return CreateBox(
        name="Bracket",
        width=Dimension.inches(10),
        length=Dimension.inches(20),
        height=Dimension.inches(5),
        sketch_plane=ReferencePlane.FRONT,
    )


# ---------------------------------------------------------------------------
# Comparatives
# ---------------------------------------------------------------------------


class TestComparatives:
    def test_thicker_uses_tenth_of_last_dimension(
        self, context: ConversationContext, resolver: IncrementalResolver,
    ) -> None:
        context.push_dimension(Dimension.inches(0.5))
        cmd = resolver.resolve("make it thicker")
        assert isinstance(cmd, ModifyDimension)
        assert cmd.dimension_type is DimensionType.THICKNESS
        assert cmd.modification_type is ModificationType.INCREASE_BY
        assert cmd.value == Dimension.inches(0.05)

    def test_thicker_without_history(self, resolver: IncrementalResolver) -> None:
        cmd = resolver.resolve("make it thicker")
        assert cmd is not None
        assert cmd.value == Dimension.inches(0.5)

    def test_explicit_amount(self, resolver: IncrementalResolver) -> None:
        cmd = resolver.resolve("make it 2 inches wider")
        assert cmd is not None
        assert cmd.dimension_type is DimensionType.WIDTH
        assert cmd.value == Dimension.inches(2)

    def test_thinner_decreases(self, resolver: IncrementalResolver) -> None:
        cmd = resolver.resolve("make the plate thinner by 1 mm")
        assert cmd is not None
        assert cmd.modification_type is ModificationType.DECREASE_BY
        assert cmd.value == Dimension.millimeters(1)

    def test_wider_scales_from_last_width(
        self, context: ConversationContext, resolver: IncrementalResolver,
    ) -> None:
        context.on_command_executed(_box())
        cmd = resolver.resolve("make it wider")
        assert cmd is not None
        assert cmd.value == Dimension.inches(1)

    def test_longer_scales_from_last_length(
        self, context: ConversationContext, resolver: IncrementalResolver,
    ) -> None:
        context.on_command_executed(_box())
        context.on_command_executed(AddHole(diameter=Dimension.inches(0.5)))
        cmd = resolver.resolve("make it longer")
        assert cmd is not None
        assert cmd.value == Dimension.inches(2)

    def test_thicker_reads_height(
        self, context: ConversationContext, resolver: IncrementalResolver,
    ) -> None:
        context.on_command_executed(_box())
        cmd = resolver.resolve("make it thicker")
        assert cmd is not None
        assert cmd.value == Dimension.inches(0.5)

    def test_untyped_history_still_scales(
        self, context: ConversationContext, resolver: IncrementalResolver,
    ) -> None:
        context.on_command_executed(AddFillet(radius=Dimension.inches(0.3)))
        cmd = resolver.resolve("make it wider")
        assert cmd is not None
        assert cmd.value == Dimension.inches(0.03)

    def test_unknown_comparative(self, resolver: IncrementalResolver) -> None:
        assert resolver.resolve("make it blue") is None


class TestRepeats:
    def test_another_renames(self, context: ConversationContext, resolver: IncrementalResolver) -> None:
        hole = AddHole(diameter=Dimension.inches(1))
        context.on_command_executed(hole)
        cmd = resolver.resolve("add another one")
        assert isinstance(cmd, AddHole)
        assert cmd.feature_name == "Hole_2"
        assert cmd.id != hole.id
        assert cmd.diameter == hole.diameter

    def test_another_increments_suffix(
        self, context: ConversationContext, resolver: IncrementalResolver,
    ) -> None:
        context.on_command_executed(AddHole(diameter=Dimension.inches(1), feature_name="Hole_2"))
        cmd = resolver.resolve("one more")
        assert cmd is not None
        assert cmd.feature_name == "Hole_3"

    def test_another_needs_a_feature(
        self, context: ConversationContext, resolver: IncrementalResolver,
    ) -> None:
        context.on_command_executed(_box())
        assert resolver.resolve("another") is None

    def test_another_matches_named_kind(
        self, context: ConversationContext, resolver: IncrementalResolver,
    ) -> None:
        context.on_command_executed(AddHole(diameter=Dimension.inches(1)))
        context.on_command_executed(AddFillet(radius=Dimension.inches(0.25)))
        cmd = resolver.resolve("add another hole")
        assert isinstance(cmd, AddHole)
        assert cmd.feature_name == "Hole_2"
        assert cmd.diameter == Dimension.inches(1)

    def test_another_of_unseen_kind(
        self, context: ConversationContext, resolver: IncrementalResolver,
    ) -> None:
        context.on_command_executed(AddFillet(radius=Dimension.inches(0.25)))
        assert resolver.resolve("add another hole") is None

    def test_another_with_new_size_is_left_to_parser(
        self, context: ConversationContext, resolver: IncrementalResolver,
    ) -> None:
        context.on_command_executed(AddChamfer(distance=Dimension.inches(0.1)))
        assert resolver.resolve("add another 0.2 inch chamfer") is None

    def test_again(self, context: ConversationContext, resolver: IncrementalResolver) -> None:
        fillet = AddFillet(radius=Dimension.inches(0.1))
        context.on_command_executed(fillet)
        cmd = resolver.resolve("again")
        assert isinstance(cmd, AddFillet)
        assert cmd.id != fillet.id

    def test_again_without_history(self, resolver: IncrementalResolver) -> None:
        assert resolver.resolve("same again") is None

    def test_resolver_does_not_modify_context(
        self, context: ConversationContext, resolver: IncrementalResolver,
    ) -> None:
        hole = AddHole(diameter=Dimension.inches(1))
        context.on_command_executed(hole)
        resolver.resolve("another")
        assert context.last_command is hole


class TestModifications:
    def test_increase(self, resolver: IncrementalResolver) -> None:
        cmd = resolver.resolve("increase the width by 2 inches")
        assert cmd is not None
        assert cmd.dimension_type is DimensionType.WIDTH
        assert cmd.modification_type is ModificationType.INCREASE_BY
        assert cmd.value == Dimension.inches(2)

    def test_decrease(self, resolver: IncrementalResolver) -> None:
        cmd = resolver.resolve("decrease height by 5mm")
        assert cmd is not None
        assert cmd.dimension_type is DimensionType.HEIGHT
        assert cmd.modification_type is ModificationType.DECREASE_BY

    def test_increase_needs_amount(self, resolver: IncrementalResolver) -> None:
        assert resolver.resolve("increase the width") is None

    def test_set_to(self, resolver: IncrementalResolver) -> None:
        cmd = resolver.resolve("set the height to 3 inches")
        assert cmd is not None
        assert cmd.dimension_type is DimensionType.HEIGHT
        assert cmd.modification_type is ModificationType.SET_TO
        assert cmd.value == Dimension.inches(3)

    def test_double(self, resolver: IncrementalResolver) -> None:
        cmd = resolver.resolve("double the width")
        assert cmd is not None
        assert cmd.modification_type is ModificationType.MULTIPLY_BY
        assert cmd.value.value == 2.0

    def test_halve(self, resolver: IncrementalResolver) -> None:
        cmd = resolver.resolve("halve the height")
        assert cmd is not None
        assert cmd.dimension_type is DimensionType.HEIGHT
        assert cmd.modification_type is ModificationType.DIVIDE_BY

    def test_unrelated_text(self, resolver: IncrementalResolver) -> None:
        assert resolver.resolve("create a box 1 x 2 x 3") is None
        assert resolver.resolve("") is None
