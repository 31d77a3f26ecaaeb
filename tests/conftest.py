"""Test fixtures for gridpyramid tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Callable, Generator

import numpy as np
import pytest

from gridpyramid.config import EncoderConfig, PyramidConfig
from gridpyramid.preprocess.backends import VIPSBackend

# Small geometry so full builds stay fast: 4x4 output tiles per base image
BASE = 256
TILE = 64
THUMB = 64

OPAQUE_RED = (200, 50, 50, 255)
TRANSPARENT = (0, 0, 0, 0)


def rgba_array(size: int, color: tuple[int, int, int, int]) -> np.ndarray:
    """Solid (size, size, 4) uint8 array."""
    return np.full((size, size, 4), color, dtype=np.uint8)


def write_base(directory: Path, name: str, arr: np.ndarray) -> Path:
    """Save an array as a PNG base image."""
    path = directory / name
    VIPSBackend.from_numpy(arr).write_to_file(str(path))
    return path


def read_tile(path: Path) -> np.ndarray:
    """Decode a written tile to numpy."""
    return VIPSBackend.to_numpy(VIPSBackend.load(path))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that's cleaned up after tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def input_dir(temp_dir: Path) -> Path:
    path = temp_dir / "bases"
    path.mkdir()
    return path


@pytest.fixture
def output_dir(temp_dir: Path) -> Path:
    return temp_dir / "out"


@pytest.fixture
def small_config() -> PyramidConfig:
    """Fast PNG configuration: 256px bases, 64px tiles and thumbnails."""
    return PyramidConfig(
        base_size=BASE,
        tile_size=TILE,
        thumb_size=THUMB,
        encoder=EncoderConfig(format="png", quality=90, speed=5),
        workers=2,
    )


@pytest.fixture
def make_grid(input_dir: Path) -> Callable[..., Path]:
    """Write solid base images at the given coordinates.

    ``make_grid([(0, 0), (1, 0)], transparent={(1, 0)})``
    """

    def _make(
        coords: list[tuple[int, int]],
        transparent: set[tuple[int, int]] = frozenset(),
        size: int = BASE,
    ) -> Path:
        for x, y in coords:
            color = TRANSPARENT if (x, y) in transparent else OPAQUE_RED
            write_base(input_dir, f"world_{x}_{y}.png", rgba_array(size, color))
        return input_dir

    return _make


@pytest.fixture
def sample_rgba_array() -> np.ndarray:
    """256x256 RGBA image: left half fully transparent, right half opaque quadrants."""
    img = np.zeros((256, 256, 4), dtype=np.uint8)

    # Top-right: green
    img[0:128, 128:256] = [50, 200, 50, 255]

    # Bottom-right: blue
    img[128:256, 128:256] = [50, 50, 200, 255]

    return img
