"""Shared type definitions for gridpyramid core module."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, NamedTuple


class GridCoord(NamedTuple):
    """Position of a base image in the mosaic (signed, arbitrary origin)."""

    x: int
    y: int


@dataclass(frozen=True)
class BaseTile:
    """One full-resolution source image and its grid position."""

    coord: GridCoord
    path: Path


@dataclass(frozen=True)
class BoundingBox:
    """Inclusive rectangle of grid coordinates.

    Attributes:
        min_x: Smallest column
        min_y: Smallest row
        max_x: Largest column (inclusive)
        max_y: Largest row (inclusive)
    """

    min_x: int
    min_y: int
    max_x: int
    max_y: int

    def __post_init__(self) -> None:
        if self.min_x > self.max_x or self.min_y > self.max_y:
            raise ValueError(f"Inverted bounding box: {self}")

    @classmethod
    def around(cls, coords: list[GridCoord]) -> BoundingBox:
        """Smallest box containing every coordinate (coords must be non-empty)."""
        return cls(
            min_x=min(c.x for c in coords),
            min_y=min(c.y for c in coords),
            max_x=max(c.x for c in coords),
            max_y=max(c.y for c in coords),
        )

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1

    @property
    def is_square(self) -> bool:
        return self.width == self.height

    def contains(self, coord: GridCoord) -> bool:
        return self.min_x <= coord.x <= self.max_x and self.min_y <= coord.y <= self.max_y

    def relative(self, coord: GridCoord) -> GridCoord:
        """Offset of ``coord`` from the top-left corner of the box."""
        return GridCoord(coord.x - self.min_x, coord.y - self.min_y)

    def cells(self) -> Iterator[GridCoord]:
        """Every coordinate of the rectangle, row by row."""
        for y in range(self.min_y, self.max_y + 1):
            for x in range(self.min_x, self.max_x + 1):
                yield GridCoord(x, y)
