"""
Core enumerations for the block-graph engine.

This module defines the block categories, port directions and structural shapes
used throughout the engine to describe blocks and classify the graphs they form.
"""

from __future__ import annotations

from enum import Enum


class BlockCategory(str, Enum):
    """
    Categories of blocks that can be placed in a workspace.

    The category decides which ports a freshly created block receives and is the
    unit that requirement records refer to (e.g. "requires a color block"):
    - PATTERN: a weaving pattern element
    - COLOR: a color value applied to a pattern
    - STRUCTURE: arranges other blocks
    - LOOP: repetition of a pattern
    - COLUMN: a vertical section
    """

    PATTERN = "pattern"
    """A weaving pattern element."""

    COLOR = "color"
    """A color applied to a pattern."""

    STRUCTURE = "structure"
    """Determines how patterns are arranged."""

    LOOP = "loop"
    """Repeats patterns; the repeat count lives in the block properties."""

    COLUMN = "column"
    """A vertical section of the pattern."""

    @classmethod
    def parse(cls, value, default: "BlockCategory | None" = None) -> "BlockCategory":
        """
        Parse a category from its name, case-insensitively.

        Args:
            value: A BlockCategory or its string name
            default: Category returned for unknown names (PATTERN when omitted)

        Returns:
            The matching category, or the default
        """
        if isinstance(value, cls):
            return value
        fallback = default if default is not None else cls.PATTERN
        if not isinstance(value, str):
            return fallback
        for member in cls:
            if member.value == value.strip().lower():
                return member
        return fallback

    @classmethod
    def lookup(cls, value) -> "BlockCategory | None":
        """Strict variant of `parse`: None for unknown names."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip().lower():
                    return member
        return None


class PortDirection(str, Enum):
    """
    Direction of a port on a block.

    Two ports may be connected only when one is an INPUT and the other an OUTPUT.
    """

    INPUT = "input"
    OUTPUT = "output"

    def opposite(self) -> "PortDirection":
        return PortDirection.OUTPUT if self is PortDirection.INPUT else PortDirection.INPUT

    @classmethod
    def parse(cls, value) -> "PortDirection | None":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip().lower():
                    return member
        return None


class StructureShape(str, Enum):
    """
    Topological shapes a graph can be classified as, independent of block categories.

    - SEQUENCE: a simple path through at least three blocks
    - LOOP: the undirected connection graph contains a cycle
    - CONDITIONAL: reserved for branch blocks; never detected today
    """

    SEQUENCE = "sequence"
    LOOP = "loop"
    CONDITIONAL = "conditional"
