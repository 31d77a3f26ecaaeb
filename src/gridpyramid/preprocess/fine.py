"""Fine levels: each base image chopped straight into the detailed zooms."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, NamedTuple

from gridpyramid.config import PyramidConfig
from gridpyramid.core.paths import tile_path
from gridpyramid.core.types import GridCoord
from gridpyramid.errors import DecodeError

from .backends import VIPSBackend
from .grid import GridIndex
from .parallel import process_pool, run_parallel, shuffled
from .writer import write_tile

logger = logging.getLogger(__name__)


class ChopResult(NamedTuple):
    """What happened to the destination candidates of one base image."""

    written: int = 0
    existing: int = 0
    transparent: int = 0

    def merge(self, other: ChopResult) -> ChopResult:
        return ChopResult(*(a + b for a, b in zip(self, other)))

    @property
    def considered(self) -> int:
        return self.written + self.existing + self.transparent


class SubTile(NamedTuple):
    """One destination candidate inside a base image."""

    left: int
    top: int
    step: int
    destination: Path


def plan_sub_tiles(
    rel: GridCoord, zooms: list[int], output_dir: Path, config: PyramidConfig
) -> list[SubTile]:
    """Every destination candidate of one base image, finest depth first.

    Depth ``d`` (zoom ``zooms[d]``) holds ``(tiles_per_base / 2^d)^2`` tiles,
    each cut from a ``tile_size * 2^d`` square of the base image.
    """
    candidates = []
    for depth, zoom in enumerate(zooms):
        multiplier = 2**depth
        per_side = config.tiles_per_base // multiplier
        step = config.tile_size * multiplier
        for ty in range(per_side):
            for tx in range(per_side):
                dx = rel.x * per_side + tx
                dy = rel.y * per_side + ty
                destination = tile_path(output_dir, zoom, dx, dy, config.encoder.extension)
                candidates.append(SubTile(tx * step, ty * step, step, destination))
    return candidates


def chop_base_tile(
    rel: GridCoord, path: Path, zooms: list[int], output_dir: Path, config: PyramidConfig
) -> ChopResult:
    """Write the fine-level tiles of one base image.

    Runs in a worker process. Candidates whose file already exists are
    skipped without recomputation, as are fully transparent crops. A fully
    transparent base image produces nothing.

    Args:
        rel: Grid coordinate relative to the bounding-box minimum
        path: Base image file
        zooms: Absolute zoom of each fine depth, index = depth
        output_dir: Root of the tile tree
        config: Build configuration
    """
    candidates = plan_sub_tiles(rel, zooms, output_dir, config)
    pending = [c for c in candidates if not c.destination.exists()]
    existing = len(candidates) - len(pending)
    if not pending:
        logger.debug("All %d tiles of %s already exist", existing, path.name)
        return ChopResult(existing=existing)

    image = VIPSBackend.load(path)
    if (image.width, image.height) != (config.base_size, config.base_size):
        raise DecodeError(
            f"{path}: expected {config.base_size}x{config.base_size} px, "
            f"got {image.width}x{image.height}"
        )
    if VIPSBackend.is_fully_transparent(image):
        logger.debug("Skipping %s: fully transparent", path.name)
        return ChopResult(existing=existing, transparent=len(pending))

    written = transparent = 0
    for candidate in pending:
        crop = VIPSBackend.crop(image, candidate.left, candidate.top, candidate.step, candidate.step)
        if VIPSBackend.is_fully_transparent(crop):
            transparent += 1
            continue
        tile = VIPSBackend.resize(crop, (config.tile_size, config.tile_size))
        write_tile(candidate.destination, tile, config.encoder)
        written += 1

    logger.info("Chopped %s: %d written, %d existing, %d transparent",
                path.name, written, existing, transparent)
    return ChopResult(written, existing, transparent)


def chop_fine_levels(
    index: GridIndex,
    zooms: list[int],
    output_dir: Path,
    config: PyramidConfig,
    progress: Callable[[int, int], None] | None = None,
) -> ChopResult:
    """Chop every base image inside the bounding box, one process per cell.

    Returns:
        Totals over all cells
    """
    if not zooms:
        return ChopResult()

    work = [
        (index.bounds.relative(tile.coord), tile.path, zooms, output_dir, config)
        for tile in index.base_tiles()
    ]
    logger.info("Chopping %d base images into %d fine levels", len(work), len(zooms))
    results = run_parallel(
        process_pool(config.workers), chop_base_tile, shuffled(work),
        desc="Fine levels", progress=progress,
    )
    total = ChopResult()
    for _, result in results:
        total = total.merge(result)
    return total
