"""gridpyramid - Tile pyramids from grids of large base images."""

import logging
import os
import sys

from gridpyramid.config import VIPS_CONCURRENCY

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def _import_pyvips_quietly() -> None:
    """First pyvips import, with libvips' module-loading chatter silenced.

    libvips reports missing optional loaders (jxl, magick, poppler) on the
    C-level stderr, so the file descriptor itself is redirected.
    """
    os.environ["VIPS_WARNING"] = "0"
    os.environ.setdefault("VIPS_CONCURRENCY", VIPS_CONCURRENCY)

    try:
        stderr_fd = sys.stderr.fileno()
    except (AttributeError, OSError, ValueError):
        stderr_fd = None

    saved_fd = os.dup(stderr_fd) if stderr_fd is not None else None
    devnull = os.open(os.devnull, os.O_WRONLY)
    try:
        if saved_fd is not None:
            os.dup2(devnull, stderr_fd)
        import pyvips  # noqa: F401
    except (ImportError, OSError) as e:
        # Reported again by preprocess.backends when pyvips is actually needed
        logger.debug("pyvips import failed: %s", e)
    finally:
        if saved_fd is not None:
            os.dup2(saved_fd, stderr_fd)
            os.close(saved_fd)
        os.close(devnull)


_import_pyvips_quietly()
