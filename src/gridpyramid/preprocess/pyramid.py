"""Pyramid generation for grids of base images."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Callable

from gridpyramid import __version__
from gridpyramid.config import PyramidConfig
from gridpyramid.errors import ConfigError, TileWriteError

from .backends import get_vips_import_error, is_vips_available
from .coarse import slice_coarse_levels
from .composite import build_composite, require_square
from .fine import ChopResult, chop_fine_levels
from .grid import GridIndex, build_grid_index
from .metadata import PyramidMetadata, write_metadata

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]


def _stage(
    progress_callback: ProgressCallback | None, stage: str
) -> Callable[[int, int], None] | None:
    """Bind a stage name to the build callback for one parallel batch."""
    if progress_callback is None:
        return None
    return partial(progress_callback, stage)


def padded_grid_width(width: int) -> int:
    """Smallest power of two >= ``width``."""
    return 1 << (width - 1).bit_length()


@dataclass(frozen=True)
class ZoomMapping:
    """Translation from phase-local depth to absolute zoom.

    Relative level 0 shows the whole (padded) grid in one tile; relative
    level ``levels`` shows base images at full resolution. Absolute zoom is
    ``min_zoom + level``. Coarse depth ``d`` is level ``d``; fine depth
    ``d`` is level ``levels - d``. Coarse depths ``0..coarse_depth`` and
    fine depths ``0..fine_depth_count - 1`` cover ``min_zoom..max_zoom``
    exactly once.

    Attributes:
        grid_level: log2 of the padded grid width
        detail_levels: log2 of output tiles per base image side
        coarse_depth: Deepest level cut from the composite canvas
        max_zoom: Absolute zoom of the full-resolution level
    """

    grid_level: int
    detail_levels: int
    coarse_depth: int
    max_zoom: int

    @classmethod
    def for_grid(cls, grid_width: int, config: PyramidConfig) -> ZoomMapping:
        """Resolve defaults and validate the depth split for a grid.

        Defaults: ``coarse_depth`` stops where one tile shows one base
        image, and ``max_zoom`` puts the whole grid at zoom 0.

        Raises:
            ConfigError: If the split leaves a gap, cuts the composite canvas
                into fractional pixels, or the zooms go negative
        """
        grid_level = padded_grid_width(grid_width).bit_length() - 1
        detail_levels = config.tiles_per_base.bit_length() - 1
        levels = grid_level + detail_levels

        coarse_depth = grid_level if config.coarse_depth is None else config.coarse_depth
        max_zoom = levels if config.max_zoom is None else config.max_zoom

        lowest = max(grid_level - 1, 0)
        if not lowest <= coarse_depth <= levels:
            raise ConfigError(
                f"coarse depth must be in {lowest}..{levels} for a {grid_width}-wide grid "
                f"of {config.tiles_per_base}-tile base images, got {coarse_depth}"
            )
        padded_side = (1 << grid_level) * config.thumb_size
        if padded_side % (1 << coarse_depth):
            raise ConfigError(
                f"coarse depth {coarse_depth} does not split the {padded_side}px composite "
                f"canvas into whole pixels; thumb size must be divisible by "
                f"{1 << (coarse_depth - grid_level)}"
            )
        if max_zoom < levels:
            raise ConfigError(
                f"max zoom {max_zoom} is below the {levels} levels this grid needs"
            )
        return cls(grid_level, detail_levels, coarse_depth, max_zoom)

    @property
    def levels(self) -> int:
        return self.grid_level + self.detail_levels

    @property
    def padded_width(self) -> int:
        return 2**self.grid_level

    @property
    def min_zoom(self) -> int:
        return self.max_zoom - self.levels

    @property
    def fine_depth_count(self) -> int:
        return self.levels - self.coarse_depth

    def coarse_zoom(self, depth: int) -> int:
        if not 0 <= depth <= self.coarse_depth:
            raise ValueError(f"coarse depth {depth} outside 0..{self.coarse_depth}")
        return self.min_zoom + depth

    def fine_zoom(self, depth: int) -> int:
        if not 0 <= depth < self.fine_depth_count:
            raise ValueError(f"fine depth {depth} outside 0..{self.fine_depth_count - 1}")
        return self.max_zoom - depth

    @property
    def coarse_zooms(self) -> list[int]:
        return [self.coarse_zoom(d) for d in range(self.coarse_depth + 1)]

    @property
    def fine_zooms(self) -> list[int]:
        return [self.fine_zoom(d) for d in range(self.fine_depth_count)]


@dataclass
class BuildSummary:
    """Outcome of one pyramid build."""

    output_dir: Path
    zooms: ZoomMapping
    coarse_written: int = 0
    fine: ChopResult = field(default_factory=ChopResult)


class PyramidBuilder:
    """Two-phase tile pyramid builder.

    Phase 1 builds a composite canvas of per-cell thumbnails and quarters it
    into the coarse levels. Phase 2 chops each base image directly into the
    fine levels, skipping tiles that already exist.

    Output format:
        - ``<output_dir>/<zoom>/<x>/<y>.<ext>``
        - ``<output_dir>/metadata.json``
        - Lowest zoom = whole grid in one tile
    """

    def __init__(self, config: PyramidConfig | None = None) -> None:
        if not is_vips_available():
            raise RuntimeError(f"PyramidBuilder requires pyvips: {get_vips_import_error()}")
        self.config = config or PyramidConfig()

    def build(
        self,
        input_dir: Path,
        output_dir: Path,
        progress_callback: ProgressCallback | None = None,
    ) -> BuildSummary:
        """Build the tile pyramid for every base image in ``input_dir``.

        Args:
            input_dir: Directory of ``<name>_<x>_<y>.<ext>`` base images
            output_dir: Root of the tile tree (created if missing)
            progress_callback: Optional callback(stage, current, total), called
                as each unit of the "composite", "coarse" and "fine" stages completes

        Returns:
            BuildSummary with tile counts per phase
        """
        input_dir = Path(input_dir)
        output_dir = Path(output_dir)

        index = build_grid_index(input_dir, self.config)
        require_square(index.bounds)
        zooms = ZoomMapping.for_grid(index.bounds.width, self.config)
        logger.info(
            "Zooms %d..%d: coarse %s, fine %s",
            zooms.min_zoom, zooms.max_zoom, zooms.coarse_zooms, zooms.fine_zooms,
        )
        self._prepare_output_dir(output_dir)

        summary = BuildSummary(output_dir=output_dir, zooms=zooms)
        summary.coarse_written = self._run_coarse_phase(index, zooms, output_dir, progress_callback)
        summary.fine = self._run_fine_phase(index, zooms, output_dir, progress_callback)
        self._write_metadata(index, zooms, output_dir)

        logger.info(
            "Built %s: %d coarse tiles, %d fine tiles written (%d existing, %d transparent)",
            output_dir, summary.coarse_written, summary.fine.written,
            summary.fine.existing, summary.fine.transparent,
        )
        return summary

    def _prepare_output_dir(self, output_dir: Path) -> None:
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TileWriteError(f"creating output directory {output_dir}: {e}") from e

    def _run_coarse_phase(
        self,
        index: GridIndex,
        zooms: ZoomMapping,
        output_dir: Path,
        progress_callback: ProgressCallback | None,
    ) -> int:
        """Composite canvas, then (after it is complete) the coarse levels."""
        canvas = build_composite(index, self.config, _stage(progress_callback, "composite"))
        return slice_coarse_levels(
            canvas, zooms.padded_width, zooms.coarse_zooms, output_dir, self.config,
            _stage(progress_callback, "coarse"),
        )

    def _run_fine_phase(
        self,
        index: GridIndex,
        zooms: ZoomMapping,
        output_dir: Path,
        progress_callback: ProgressCallback | None,
    ) -> ChopResult:
        return chop_fine_levels(
            index, zooms.fine_zooms, output_dir, self.config,
            _stage(progress_callback, "fine"),
        )

    def _write_metadata(self, index: GridIndex, zooms: ZoomMapping, output_dir: Path) -> None:
        metadata = PyramidMetadata(
            version=__version__,
            bounds=index.bounds,
            min_zoom=zooms.min_zoom,
            max_zoom=zooms.max_zoom,
            coarse_zooms=zooms.coarse_zooms,
            fine_zooms=zooms.fine_zooms,
            tile_size=self.config.tile_size,
            base_size=self.config.base_size,
            tile_format=self.config.encoder.format,
            built_at=datetime.now(timezone.utc).isoformat(),
        )
        try:
            write_metadata(output_dir, metadata)
        except OSError as e:
            raise TileWriteError(f"writing metadata in {output_dir}: {e}") from e


def build_pyramid(
    input_dir: Path,
    output_dir: Path,
    config: PyramidConfig | None = None,
    progress_callback: ProgressCallback | None = None,
) -> BuildSummary:
    """Build a tile pyramid using PyramidBuilder.

    Args:
        input_dir: Directory of base images
        output_dir: Root of the tile tree
        config: Build configuration (defaults when None)
        progress_callback: Progress callback function

    Returns:
        BuildSummary of the run
    """
    builder = PyramidBuilder(config)
    return builder.build(input_dir, output_dir, progress_callback)
