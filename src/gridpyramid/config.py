"""Centralized configuration for gridpyramid.

Defaults are defined here as module-level values; components never read
them directly but receive a :class:`PyramidConfig` built from them.
Some values can be overridden via environment variables.

Environment Variables:
    GRIDPYRAMID_WORKERS: Worker processes/threads per parallel batch (default: CPU count)
    GRIDPYRAMID_VIPS_CONCURRENCY: VIPS internal thread count per worker (default: 1)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum

from gridpyramid.core.types import BoundingBox
from gridpyramid.errors import ConfigError

logger = logging.getLogger(__name__)


def _get_env_int(name: str, default: int) -> int:
    """Get an integer from environment variable with fallback."""
    value = os.environ.get(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            logger.warning(
                "Invalid integer for %s: %r, using default %d", name, value, default
            )
    return default


def _get_env_str(name: str, default: str) -> str:
    """Get a string from environment variable with fallback."""
    return os.environ.get(name, default)


# =============================================================================
# libvips
# =============================================================================

#: VIPS internal concurrency inside each worker (the pools already parallelize)
VIPS_CONCURRENCY: str = _get_env_str("GRIDPYRAMID_VIPS_CONCURRENCY", "1")


# =============================================================================
# Pyramid Defaults
# =============================================================================

#: Side of each square base image in pixels
DEFAULT_BASE_SIZE: int = 4096

#: Side of each output tile in pixels
DEFAULT_TILE_SIZE: int = 256

#: Side of each per-cell thumbnail in the composite canvas
DEFAULT_THUMB_SIZE: int = 256

#: Workers per parallel batch
DEFAULT_WORKERS: int = _get_env_int("GRIDPYRAMID_WORKERS", os.cpu_count() or 1)


# =============================================================================
# Encoder Defaults
# =============================================================================

#: Output tile format
DEFAULT_FORMAT: str = "avif"

#: Encoder quality (0-100)
DEFAULT_QUALITY: int = 70

#: Encoder speed (0 = smallest output, 10 = fastest)
DEFAULT_SPEED: int = 10

#: Supported output formats mapped to their libvips maximum effort
#: (None when the saver has no effort knob and speed maps to compression)
OUTPUT_FORMATS: dict[str, int | None] = {
    "avif": 9,
    "webp": 6,
    "png": None,
}

#: Regex base image names must match: ``<anything>_<x>_<y>.<anything>``.
#: ``\d`` also matches non-ASCII digits; those are rejected when parsed.
BASE_NAME_PATTERN: str = r"^.*_(-?\d+)_(-?\d+)\."


class BoundsMode(Enum):
    """How the bounding box of the grid is determined."""

    AUTO = "auto"  # min/max over discovered coordinates
    FIXED = "fixed"  # externally supplied range


@dataclass(frozen=True)
class EncoderConfig:
    """Encoder settings shared by every tile write."""

    format: str = DEFAULT_FORMAT
    quality: int = DEFAULT_QUALITY
    speed: int = DEFAULT_SPEED

    def __post_init__(self) -> None:
        if self.format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"Unsupported output format {self.format!r} "
                f"(expected one of {', '.join(sorted(OUTPUT_FORMATS))})"
            )
        if not 0 <= self.quality <= 100:
            raise ConfigError(f"quality must be in 0..100, got {self.quality}")
        if not 0 <= self.speed <= 10:
            raise ConfigError(f"speed must be in 0..10, got {self.speed}")

    @property
    def extension(self) -> str:
        return self.format


@dataclass(frozen=True)
class PyramidConfig:
    """Everything a pyramid build needs, passed explicitly to each component.

    Attributes:
        base_size: Side of each base image in pixels
        tile_size: Side of each output tile in pixels
        thumb_size: Side of each per-cell thumbnail in the composite canvas
        encoder: Output encoder settings
        bounds_mode: AUTO to derive the bounding box, FIXED to use ``bounds``
        bounds: Bounding box for FIXED mode
        coarse_depth: Deepest level cut from the composite (None = derive)
        max_zoom: Absolute zoom of the finest level (None = derive)
        workers: Pool size for every parallel batch
    """

    base_size: int = DEFAULT_BASE_SIZE
    tile_size: int = DEFAULT_TILE_SIZE
    thumb_size: int = DEFAULT_THUMB_SIZE
    encoder: EncoderConfig = field(default_factory=EncoderConfig)
    bounds_mode: BoundsMode = BoundsMode.AUTO
    bounds: BoundingBox | None = None
    coarse_depth: int | None = None
    max_zoom: int | None = None
    workers: int = DEFAULT_WORKERS

    def __post_init__(self) -> None:
        for name in ("base_size", "tile_size", "thumb_size", "workers"):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")
        if self.base_size % self.tile_size:
            raise ConfigError(
                f"base_size {self.base_size} is not a multiple of tile_size {self.tile_size}"
            )
        tiles_per_base = self.base_size // self.tile_size
        if tiles_per_base & (tiles_per_base - 1):
            raise ConfigError(
                f"base_size / tile_size must be a power of two, got {tiles_per_base}"
            )
        if self.bounds_mode is BoundsMode.FIXED and self.bounds is None:
            raise ConfigError("FIXED bounds mode requires bounds")
        if self.coarse_depth is not None and self.coarse_depth < 0:
            raise ConfigError(f"coarse_depth must be >= 0, got {self.coarse_depth}")

    @property
    def tiles_per_base(self) -> int:
        """Output tiles along one side of a base image at full resolution."""
        return self.base_size // self.tile_size
