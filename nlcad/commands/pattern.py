"""Pattern commands: linear and circular feature patterns."""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from nlcad.commands.base import CommandBase, CommandKind
from nlcad.units import Dimension


class PatternDirection(str, Enum):
    X = "X"
    Y = "Y"
    Z = "Z"
    CUSTOM = "Custom"


class AddLinearPattern(CommandBase):
    """Linear pattern; ``count2 == 0`` means a single direction."""

    kind: Literal[CommandKind.ADD_LINEAR_PATTERN] = CommandKind.ADD_LINEAR_PATTERN
    feature_name: str = "Pattern"
    count: int
    spacing: Dimension
    direction: PatternDirection = PatternDirection.X
    count2: int = 0
    spacing2: Optional[Dimension] = None
    direction2: PatternDirection = PatternDirection.Y

    @property
    def description(self) -> str:
        if self.count2 > 0:
            return (
                f"Linear pattern: {self.count}x{self.count2} instances, "
                f"{self.spacing} spacing"
            )
        return f"Linear pattern: {self.count} instances, {self.spacing} spacing"

    def dimensions(self) -> list[Dimension]:
        return [self.spacing]


class AddCircularPattern(CommandBase):
    kind: Literal[CommandKind.ADD_CIRCULAR_PATTERN] = CommandKind.ADD_CIRCULAR_PATTERN
    feature_name: str = "CircularPattern"
    count: int
    total_angle: float = 360.0
    equal_spacing: bool = True
    axis: Optional[str] = None

    @property
    def description(self) -> str:
        if self.total_angle < 360:
            return f"Circular pattern: {self.count} instances over {self.total_angle:g} degrees"
        return f"Circular pattern: {self.count} instances around full circle"
