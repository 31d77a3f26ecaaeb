"""Image codec backend using PyVIPS.

Every pixel operation the pyramid build needs goes through
:class:`VIPSBackend`: decode, Lanczos3 resize, crop, alpha inspection,
numpy conversion and encode. libvips evaluates lazily and releases the GIL,
so the same calls serve both the process and thread pools.

Usage:
    from gridpyramid.preprocess.backends import VIPSBackend

    img = VIPSBackend.load(Path("base_0_0.png"))
    tile = VIPSBackend.resize(VIPSBackend.crop(img, 0, 0, 512, 512), (256, 256))
    data = VIPSBackend.encode(tile, EncoderConfig(format="webp"))
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np

from gridpyramid.config import OUTPUT_FORMATS, EncoderConfig
from gridpyramid.errors import DecodeError, EncodeError

# pyvips is first imported (quietly) in gridpyramid/__init__.py
_HAS_VIPS = False
_vips_import_error: str | None = None
pyvips: Any = None

try:
    import pyvips
    _HAS_VIPS = True
except (ImportError, OSError) as e:
    _vips_import_error = str(e)


def is_vips_available() -> bool:
    """Check if PyVIPS is available.

    Returns:
        True if pyvips is installed and working
    """
    return _HAS_VIPS


def get_vips_import_error() -> str | None:
    """Get the error message if PyVIPS failed to import."""
    return _vips_import_error


def _require_vips() -> None:
    if not _HAS_VIPS:
        raise RuntimeError(
            f"PyVIPS is required but not available: {_vips_import_error}\n"
            "Install pyvips and libvips: pip install pyvips pyvips-binary"
        )


def _effort_for(speed: int, max_effort: int) -> int:
    """Map speed (0 = slowest, 10 = fastest) onto a libvips effort range."""
    return round((10 - speed) * max_effort / 10)


class VIPSBackend:
    """PyVIPS-based codec used by every stage of the pyramid build."""

    @staticmethod
    def load(path: Path) -> "pyvips.Image":
        """Decode an image fully into memory.

        Random access is kept because the fine chopper crops the same base
        image many times.

        Raises:
            DecodeError: If libvips cannot read the file
        """
        _require_vips()
        try:
            return pyvips.Image.new_from_file(str(path)).copy_memory()
        except pyvips.error.Error as e:
            raise DecodeError(f"decoding {path}: {e}") from e

    @staticmethod
    def is_fully_transparent(img: "pyvips.Image") -> bool:
        """True if the image is 8-bit, has an alpha band, and every alpha is 0.

        Images without alpha, and non-8-bit images, are never transparent.
        """
        if img.format != "uchar" or not img.hasalpha():
            return False
        return img[img.bands - 1].max() == 0

    @staticmethod
    def resize(img: "pyvips.Image", size: tuple[int, int]) -> "pyvips.Image":
        """Resize an image using Lanczos3 resampling.

        Alpha images are premultiplied first so transparent pixels do not
        bleed colour into their neighbours.

        Args:
            img: pyvips.Image to resize
            size: Target size as (width, height)

        Returns:
            Resized pyvips.Image in the source band format
        """
        target_width, target_height = size
        if (img.width, img.height) == (target_width, target_height):
            return img
        h_scale = target_width / img.width
        v_scale = target_height / img.height

        if img.hasalpha():
            band_format = img.format
            return (
                img.premultiply()
                .resize(h_scale, vscale=v_scale, kernel="lanczos3")
                .unpremultiply()
                .rint()
                .cast(band_format)
            )
        return img.resize(h_scale, vscale=v_scale, kernel="lanczos3")

    @staticmethod
    def crop(img: "pyvips.Image", left: int, top: int, width: int, height: int) -> "pyvips.Image":
        """Extract a rectangle; the rectangle must lie inside the image."""
        return img.crop(left, top, width, height)

    @staticmethod
    def pad(img: "pyvips.Image", width: int, height: int) -> "pyvips.Image":
        """Extend an image to (width, height) with zeros on the right and bottom."""
        if (img.width, img.height) == (width, height):
            return img
        return img.embed(0, 0, width, height, extend="black")

    @staticmethod
    def to_rgba(img: "pyvips.Image") -> "pyvips.Image":
        """Normalize any decoded image to 4-band 8-bit RGBA."""
        if img.format == "ushort":
            img = (img >> 8).cast("uchar")
        elif img.format != "uchar":
            img = img.cast("uchar")

        if img.bands == 1:
            img = img.bandjoin([img, img]).bandjoin(255)
        elif img.bands == 2:
            grey = img[0]
            img = grey.bandjoin([grey, grey, img[1]])
        elif img.bands == 3:
            img = img.bandjoin(255)
        elif img.bands > 4:
            img = img.extract_band(0, n=4)
        return img.copy(interpretation="srgb")

    @staticmethod
    def from_numpy(arr: np.ndarray) -> "pyvips.Image":
        """Convert a numpy array (H, W, bands) uint8 to pyvips format."""
        _require_vips()

        height, width = arr.shape[:2]
        bands = arr.shape[2] if arr.ndim == 3 else 1

        arr = np.ascontiguousarray(arr, dtype=np.uint8)

        vips_img = pyvips.Image.new_from_memory(
            arr.tobytes(),
            width,
            height,
            bands,
            "uchar"
        )
        interpretation = "srgb" if bands >= 3 else "b-w"
        return vips_img.copy(interpretation=interpretation)

    @staticmethod
    def to_numpy(img: "pyvips.Image") -> np.ndarray:
        """Convert an 8-bit pyvips image to a numpy array (H, W, bands)."""
        data = img.write_to_memory()
        return np.ndarray(
            buffer=data,
            dtype=np.uint8,
            shape=(img.height, img.width, img.bands)
        )

    @staticmethod
    def encode(img: "pyvips.Image", encoder: EncoderConfig) -> bytes:
        """Encode an image with the configured format, quality and speed.

        Raises:
            EncodeError: If libvips fails to encode
        """
        max_effort = OUTPUT_FORMATS[encoder.format]
        try:
            if encoder.format == "avif":
                return img.heifsave_buffer(
                    Q=encoder.quality,
                    effort=_effort_for(encoder.speed, max_effort),
                    compression="av1",
                )
            if encoder.format == "webp":
                return img.webpsave_buffer(
                    Q=encoder.quality,
                    effort=_effort_for(encoder.speed, max_effort),
                )
            # PNG is lossless: quality is ignored and speed picks zlib level
            return img.pngsave_buffer(compression=_effort_for(encoder.speed, 9))
        except pyvips.error.Error as e:
            raise EncodeError(f"encoding {encoder.format}: {e}") from e
