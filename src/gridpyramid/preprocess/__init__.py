"""Preprocessing pipeline for converting base image grids to tile pyramids."""

from .grid import (
    GridIndex,
    build_grid_index,
    parse_grid_name,
)
from .pyramid import (
    BuildSummary,
    PyramidBuilder,
    ZoomMapping,
    build_pyramid,
)
from .backends import (
    is_vips_available,
    VIPSBackend,
)
from .writer import write_tile

__all__ = [
    "BuildSummary",
    "GridIndex",
    "PyramidBuilder",
    "ZoomMapping",
    "build_grid_index",
    "build_pyramid",
    "parse_grid_name",
    "is_vips_available",
    "VIPSBackend",
    "write_tile",
]
