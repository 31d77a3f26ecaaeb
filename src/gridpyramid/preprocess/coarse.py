"""Coarse levels: recursive quartering of the composite canvas."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from gridpyramid.config import PyramidConfig
from gridpyramid.core.paths import tile_path
from gridpyramid.errors import ConfigError

from .backends import VIPSBackend
from .parallel import run_parallel, thread_pool
from .writer import write_tile

logger = logging.getLogger(__name__)


def quadrant_span(padded_width: int, thumb_size: int, depth: int) -> int:
    """Side in canvas pixels of one quadrant at ``depth``."""
    padded_side = padded_width * thumb_size
    span, remainder = divmod(padded_side, 2**depth)
    if remainder or span == 0:
        raise ConfigError(
            f"coarse depth {depth} does not split a {padded_side}px canvas into whole pixels"
        )
    return span


def slice_quadrant(
    canvas: Any, depth: int, qx: int, qy: int, span: int, destination: Path, config: PyramidConfig
) -> None:
    """Crop one quadrant of the padded canvas, downsample it and write it."""
    region = VIPSBackend.crop(canvas, qx * span, qy * span, span, span)
    tile = VIPSBackend.resize(region, (config.tile_size, config.tile_size))
    write_tile(destination, tile, config.encoder)
    logger.debug("Coarse depth %d quadrant (%d, %d) -> %s", depth, qx, qy, destination)


def slice_coarse_levels(
    canvas: Any,
    padded_width: int,
    zooms: list[int],
    output_dir: Path,
    config: PyramidConfig,
    progress: Callable[[int, int], None] | None = None,
) -> int:
    """Write every coarse level from the finished composite canvas.

    Depth ``d`` splits the canvas, padded to ``padded_width`` cells, into
    ``2^d x 2^d`` quadrants; quadrants entirely in the padding are skipped.
    Existing files are overwritten.

    Args:
        canvas: Composite canvas (pyvips.Image)
        padded_width: Grid width rounded up to a power of two
        zooms: Absolute zoom of each depth, index = depth
        output_dir: Root of the tile tree
        config: Build configuration
        progress: Optional callback(completed, total)

    Returns:
        Number of tiles written
    """
    padded_side = padded_width * config.thumb_size
    padded = VIPSBackend.pad(canvas, padded_side, padded_side)

    work = []
    for depth, zoom in enumerate(zooms):
        span = quadrant_span(padded_width, config.thumb_size, depth)
        per_side = 2**depth
        for qy in range(per_side):
            if qy * span >= canvas.height:
                break
            for qx in range(per_side):
                if qx * span >= canvas.width:
                    break
                destination = tile_path(output_dir, zoom, qx, qy, config.encoder.extension)
                work.append((padded, depth, qx, qy, span, destination, config))

    logger.info("Slicing %d coarse tiles over %d levels", len(work), len(zooms))
    run_parallel(
        thread_pool(config.workers), slice_quadrant, work,
        desc="Coarse levels", progress=progress,
    )
    return len(work)
