"""Output layout and atomic file writes."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def tile_path(output_dir: Path, zoom: int, x: int, y: int, extension: str) -> Path:
    """Destination of one tile: ``<output_dir>/<zoom>/<x>/<y>.<extension>``."""
    return Path(output_dir) / str(zoom) / str(x) / f"{y}.{extension}"


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Atomically write bytes to a file.

    Writes to a temp file in the same directory, then replaces the target.
    ``os.replace()`` is atomic on both POSIX and Windows (same filesystem).
    The parent directory must already exist.
    """
    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent, suffix=".tmp", prefix=f".{path.stem}"
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def atomic_json_save(path: Path, data: Any) -> None:
    """Atomically write JSON data to a file, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    atomic_write_bytes(path, json.dumps(data, indent=2).encode("utf-8"))
