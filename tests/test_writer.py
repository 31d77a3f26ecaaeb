"""Tests for the tile writer and atomic writes."""

from __future__ import annotations

from pathlib import Path

import pytest
import pyvips

from gridpyramid.config import EncoderConfig
from gridpyramid.core import paths
from gridpyramid.core.paths import atomic_write_bytes, tile_path
from gridpyramid.errors import EncodeError, TileWriteError
from gridpyramid.preprocess.backends import VIPSBackend
from gridpyramid.preprocess.writer import write_tile

from conftest import OPAQUE_RED, rgba_array

PNG = EncoderConfig(format="png", quality=90, speed=5)


@pytest.fixture
def tile_image():
    return VIPSBackend.from_numpy(rgba_array(64, OPAQUE_RED))


class TestTilePath:
    def test_layout(self, temp_dir: Path):
        assert tile_path(temp_dir, 3, 10, 7, "avif") == temp_dir / "3" / "10" / "7.avif"


class TestWriteTile:
    """Tests for write_tile."""

    def test_creates_directories(self, temp_dir: Path, tile_image):
        dest = tile_path(temp_dir / "out", 2, 1, 3, "png")
        write_tile(dest, tile_image, PNG)

        assert dest.exists()
        decoded = VIPSBackend.load(dest)
        assert (decoded.width, decoded.height) == (64, 64)

    def test_overwrites_existing(self, temp_dir: Path, tile_image):
        dest = temp_dir / "0" / "0" / "0.png"
        dest.parent.mkdir(parents=True)
        dest.write_bytes(b"stale")

        write_tile(dest, tile_image, PNG)
        assert dest.read_bytes().startswith(b"\x89PNG")

    def test_failed_commit_leaves_nothing(self, temp_dir: Path, tile_image, monkeypatch):
        """A failure between staging and commit must not leave any file behind."""

        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(paths.os, "replace", failing_replace)
        dest = temp_dir / "0" / "0" / "0.png"

        with pytest.raises(TileWriteError, match="0.png"):
            write_tile(dest, tile_image, PNG)

        assert not dest.exists()
        assert list(dest.parent.iterdir()) == []

    def test_directory_creation_failure(self, temp_dir: Path, tile_image):
        blocker = temp_dir / "5"
        blocker.write_text("a file where a directory should be")

        with pytest.raises(TileWriteError, match="creating directories"):
            write_tile(blocker / "0" / "0.png", tile_image, PNG)

    def test_encode_failure(self, temp_dir: Path, tile_image, monkeypatch):
        def failing_save(self, **kwargs):
            raise pyvips.Error("encoder exploded")

        monkeypatch.setattr(pyvips.Image, "pngsave_buffer", failing_save, raising=False)
        dest = temp_dir / "0" / "0" / "0.png"

        with pytest.raises(EncodeError, match="0.png"):
            write_tile(dest, tile_image, PNG)
        assert not dest.exists()


class TestAtomicWriteBytes:
    def test_writes_content(self, temp_dir: Path):
        dest = temp_dir / "blob.bin"
        atomic_write_bytes(dest, b"payload")
        assert dest.read_bytes() == b"payload"
        assert [p.name for p in temp_dir.iterdir()] == ["blob.bin"]
