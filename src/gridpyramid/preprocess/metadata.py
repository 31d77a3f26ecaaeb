"""Descriptive metadata written at the root of a tile tree.

The file documents the pyramid for viewers; tile files themselves are the
only record of what has been built.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from gridpyramid.core.paths import atomic_json_save
from gridpyramid.core.types import BoundingBox

logger = logging.getLogger(__name__)

METADATA_FILENAME = "metadata.json"


@dataclass
class PyramidMetadata:
    """Metadata for a tile pyramid."""

    version: str
    bounds: BoundingBox
    min_zoom: int
    max_zoom: int
    coarse_zooms: list[int]
    fine_zooms: list[int]
    tile_size: int
    base_size: int
    tile_format: str
    built_at: str

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "bounds": {
                "min_x": self.bounds.min_x,
                "min_y": self.bounds.min_y,
                "max_x": self.bounds.max_x,
                "max_y": self.bounds.max_y,
            },
            "min_zoom": self.min_zoom,
            "max_zoom": self.max_zoom,
            "coarse_zooms": list(self.coarse_zooms),
            "fine_zooms": list(self.fine_zooms),
            "tile_size": self.tile_size,
            "base_size": self.base_size,
            "tile_format": self.tile_format,
            "built_at": self.built_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> PyramidMetadata:
        return cls(
            version=data["version"],
            bounds=BoundingBox(**data["bounds"]),
            min_zoom=data["min_zoom"],
            max_zoom=data["max_zoom"],
            coarse_zooms=list(data["coarse_zooms"]),
            fine_zooms=list(data["fine_zooms"]),
            tile_size=data["tile_size"],
            base_size=data["base_size"],
            tile_format=data["tile_format"],
            built_at=data["built_at"],
        )


def write_metadata(output_dir: Path, metadata: PyramidMetadata) -> Path:
    """Atomically write ``metadata.json`` into ``output_dir``."""
    path = Path(output_dir) / METADATA_FILENAME
    atomic_json_save(path, metadata.to_dict())
    logger.debug("Wrote %s", path)
    return path


def read_metadata(output_dir: Path) -> PyramidMetadata | None:
    """Load ``metadata.json`` from ``output_dir``, or None if missing or invalid."""
    path = Path(output_dir) / METADATA_FILENAME
    try:
        with open(path) as f:
            return PyramidMetadata.from_dict(json.load(f))
    except FileNotFoundError:
        return None
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        logger.warning("Ignoring unreadable %s: %s", path, e)
        return None
