"""The single place where output tiles reach the filesystem."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from gridpyramid.config import EncoderConfig
from gridpyramid.core.paths import atomic_write_bytes
from gridpyramid.errors import EncodeError, TileWriteError

from .backends import VIPSBackend

logger = logging.getLogger(__name__)


def write_tile(path: Path, image: Any, encoder: EncoderConfig) -> None:
    """Encode ``image`` and atomically persist it at ``path``.

    Missing parent directories are created. On failure no partial file is
    left at ``path``; errors propagate without retries.

    Args:
        path: Destination file
        image: pyvips.Image holding the tile pixels
        encoder: Format, quality and speed

    Raises:
        EncodeError: If encoding fails
        TileWriteError: If creating directories or writing fails
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise TileWriteError(f"creating directories for {path}: {e}") from e

    try:
        data = VIPSBackend.encode(image, encoder)
    except EncodeError as e:
        raise EncodeError(f"{path}: {e}") from e

    try:
        atomic_write_bytes(path, data)
    except OSError as e:
        raise TileWriteError(f"writing {path}: {e}") from e
    logger.debug("Wrote %s (%d bytes)", path, len(data))
