"""Composite canvas: one low-resolution image of the whole grid."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

import numpy as np

from gridpyramid.config import PyramidConfig
from gridpyramid.core.types import BoundingBox, GridCoord
from gridpyramid.errors import NonSquareGridError

from .backends import VIPSBackend
from .grid import GridIndex
from .parallel import process_pool, run_parallel, shuffled

logger = logging.getLogger(__name__)

RGBA_BANDS = 4


def make_thumbnail(path: Path, thumb_size: int) -> np.ndarray | None:
    """Downsample one base image to a ``thumb_size`` RGBA array.

    Runs in a worker process.

    Returns:
        (thumb_size, thumb_size, 4) uint8 array, or None if the thumbnail is
        fully transparent
    """
    image = VIPSBackend.load(path)
    thumb = VIPSBackend.resize(image, (thumb_size, thumb_size))
    if VIPSBackend.is_fully_transparent(thumb):
        logger.debug("Thumbnail of %s is fully transparent", path.name)
        return None
    return VIPSBackend.to_numpy(VIPSBackend.to_rgba(thumb))


def require_square(bounds: BoundingBox) -> None:
    """Raise NonSquareGridError unless the grid is square."""
    if not bounds.is_square:
        raise NonSquareGridError(
            f"grid is {bounds.width}x{bounds.height} cells; the composite canvas needs a square grid"
        )


def collect_thumbnails(
    index: GridIndex, config: PyramidConfig, progress: Callable[[int, int], None] | None = None
) -> dict[GridCoord, np.ndarray]:
    """Thumbnails of every occupied, non-transparent cell, keyed by relative coordinate."""
    work = []
    for coord in index.bounds.cells():
        path = index.get(coord)
        if path is None:
            continue
        work.append((index.bounds.relative(coord), path))

    results = run_parallel(
        process_pool(config.workers),
        make_thumbnail,
        [(path, config.thumb_size) for _, path in shuffled(work)],
        desc="Thumbnails",
        progress=progress,
    )
    by_path = {path: thumb for (path, _), thumb in results}

    thumbs = {rel: by_path[path] for rel, path in work if by_path[path] is not None}
    logger.info(
        "Composite: %d of %d occupied cells visible", len(thumbs), len(work)
    )
    return thumbs


def assemble_canvas(
    thumbs: dict[GridCoord, np.ndarray], grid_width: int, thumb_size: int
) -> np.ndarray:
    """Place each thumbnail at ``(x * thumb_size, y * thumb_size)`` on a transparent canvas."""
    side = grid_width * thumb_size
    canvas = np.zeros((side, side, RGBA_BANDS), dtype=np.uint8)
    for (x, y), thumb in thumbs.items():
        top, left = y * thumb_size, x * thumb_size
        canvas[top : top + thumb_size, left : left + thumb_size] = thumb
    return canvas


def build_composite(
    index: GridIndex, config: PyramidConfig, progress: Callable[[int, int], None] | None = None
) -> Any:
    """Build the composite canvas for the whole bounding box.

    Returns only after every cell's thumbnail is final.

    Returns:
        pyvips.Image of side ``grid_width * thumb_size``, RGBA

    Raises:
        NonSquareGridError: If the bounding box is not square
    """
    require_square(index.bounds)
    thumbs = collect_thumbnails(index, config, progress)
    canvas = assemble_canvas(thumbs, index.bounds.width, config.thumb_size)
    logger.info("Composite canvas: %d x %d px", canvas.shape[1], canvas.shape[0])
    return VIPSBackend.from_numpy(canvas)
