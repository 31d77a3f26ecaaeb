"""Shared types and filesystem helpers for gridpyramid."""

from .types import BaseTile, BoundingBox, GridCoord
from .paths import atomic_write_bytes, tile_path

__all__ = [
    "BaseTile",
    "BoundingBox",
    "GridCoord",
    "atomic_write_bytes",
    "tile_path",
]
