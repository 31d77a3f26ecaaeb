"""Discovery of base images and their grid coordinates."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from gridpyramid.config import BASE_NAME_PATTERN, BoundsMode, PyramidConfig
from gridpyramid.core.types import BaseTile, BoundingBox, GridCoord
from gridpyramid.errors import EmptyInputError, NameEncodingError, PatternParseError

logger = logging.getLogger(__name__)

_BASE_NAME_RE = re.compile(BASE_NAME_PATTERN)

# Coordinates must fit a signed 64-bit integer
_COORD_MIN = -(2**63)
_COORD_MAX = 2**63 - 1


@dataclass(frozen=True)
class GridIndex:
    """Read-only lookup of base images plus the bounding box of the build.

    Attributes:
        tiles: Grid coordinate -> base image path
        bounds: Inclusive rectangle the pyramid covers
    """

    tiles: dict[GridCoord, Path]
    bounds: BoundingBox

    def get(self, coord: GridCoord) -> Path | None:
        return self.tiles.get(coord)

    def base_tiles(self) -> list[BaseTile]:
        """Base images that fall inside the bounding box."""
        return [
            BaseTile(coord, path)
            for coord, path in sorted(self.tiles.items())
            if self.bounds.contains(coord)
        ]


def _parse_coordinate(text: str, name: str) -> int:
    # int() would accept other scripts' digits
    if not text.isascii():
        raise PatternParseError(f"non-numeric coordinate {text!r} in {name!r}")
    try:
        value = int(text)
    except ValueError as e:
        raise PatternParseError(f"non-numeric coordinate {text!r} in {name!r}") from e
    if not _COORD_MIN <= value <= _COORD_MAX:
        raise PatternParseError(f"coordinate {text} in {name!r} does not fit in 64 bits")
    return value


def parse_grid_name(name: str) -> GridCoord | None:
    """Extract the grid coordinate from a base image name.

    Args:
        name: Final path component, e.g. ``"world_-3_12.png"``

    Returns:
        GridCoord, or None if the name does not follow the pattern

    Raises:
        NameEncodingError: If the name is not representable as text
        PatternParseError: If the name matches but a coordinate is unusable
    """
    try:
        name.encode("utf-8")
    except UnicodeEncodeError as e:
        raise NameEncodingError(f"unrepresentable filename: {name!r}") from e

    m = _BASE_NAME_RE.match(name)
    if not m:
        return None
    return GridCoord(_parse_coordinate(m.group(1), name), _parse_coordinate(m.group(2), name))


def scan_base_tiles(input_dir: Path) -> dict[GridCoord, Path]:
    """Map grid coordinates to base image paths for one directory.

    Entries are visited in sorted name order; when two names map to the
    same coordinate the later one wins.
    """
    lookup: dict[GridCoord, Path] = {}
    for entry in sorted(Path(input_dir).iterdir()):
        if not entry.is_file():
            continue
        coord = parse_grid_name(entry.name)
        if coord is None:
            logger.debug("Ignoring %s: name does not match the grid pattern", entry.name)
            continue
        if coord in lookup:
            logger.warning(
                "Duplicate grid coordinate %s: %s replaces %s",
                tuple(coord), entry.name, lookup[coord].name,
            )
        lookup[coord] = entry
    return lookup


def build_grid_index(input_dir: Path, config: PyramidConfig) -> GridIndex:
    """Scan ``input_dir`` and resolve the bounding box.

    Raises:
        EmptyInputError: If nothing matched and the bounds are auto-detected
    """
    lookup = scan_base_tiles(input_dir)
    logger.info("Found %d base images in %s", len(lookup), input_dir)

    if config.bounds_mode is BoundsMode.FIXED:
        bounds = config.bounds
        outside = [c for c in lookup if not bounds.contains(c)]
        if outside:
            logger.warning(
                "%d base images lie outside the fixed bounds %s and will be left out",
                len(outside), bounds,
            )
    else:
        if not lookup:
            raise EmptyInputError(f"no base images matching the grid pattern in {input_dir}")
        bounds = BoundingBox.around(list(lookup))

    logger.info("Grid bounds: x %d..%d, y %d..%d (%dx%d cells)",
                bounds.min_x, bounds.max_x, bounds.min_y, bounds.max_y,
                bounds.width, bounds.height)
    return GridIndex(tiles=lookup, bounds=bounds)
