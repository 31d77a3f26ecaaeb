"""CLI entry point for gridpyramid."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from gridpyramid.config import (
    DEFAULT_BASE_SIZE,
    DEFAULT_FORMAT,
    DEFAULT_QUALITY,
    DEFAULT_SPEED,
    DEFAULT_THUMB_SIZE,
    DEFAULT_TILE_SIZE,
    DEFAULT_WORKERS,
    OUTPUT_FORMATS,
    BoundsMode,
    EncoderConfig,
    PyramidConfig,
)
from gridpyramid.core.types import BoundingBox
from gridpyramid.errors import TilerError

from .backends import VIPSBackend, is_vips_available
from .pyramid import BuildSummary, build_pyramid
from .writer import write_tile

logger = logging.getLogger(__name__)


def _setup_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


def _check_prerequisites() -> None:
    """Exit with an error message unless pyvips is importable."""
    if not is_vips_available():
        click.echo(click.style(
            "Error: gridpyramid requires pyvips. "
            "Install it with: pip install pyvips pyvips-binary",
            fg="red"
        ), err=True)
        sys.exit(1)


def _fail(error: BaseException) -> NoReturn:
    """Print the error and its causes, then exit non-zero."""
    click.echo(click.style(f"Error: {error}", fg="red"), err=True)
    cause = error.__cause__
    while cause is not None:
        click.echo(f"  caused by: {cause}", err=True)
        cause = cause.__cause__
    sys.exit(1)


def _print_header(input_dir: Path, output_dir: Path, config: PyramidConfig) -> None:
    """Print the CLI banner with processing parameters."""
    enc = config.encoder
    click.echo(click.style("gridpyramid", fg="cyan", bold=True))
    click.echo(click.style("=" * 40, fg="cyan"))
    click.echo(f"Input directory: {input_dir}")
    click.echo(f"Output directory: {output_dir}")
    click.echo(
        f"Base: {config.base_size}px | Tile: {config.tile_size}px | "
        f"Thumb: {config.thumb_size}px | {enc.format.upper()} Q{enc.quality} speed {enc.speed}"
    )
    if config.bounds_mode is BoundsMode.FIXED:
        click.echo(click.style(f"Fixed bounds: {config.bounds}", fg="yellow"))
    click.echo()


def _print_summary(summary: BuildSummary) -> None:
    """Print the colored build summary."""
    zooms = summary.zooms
    fine = summary.fine
    click.echo(click.style("=" * 40, fg="cyan"))
    click.echo(f"Zoom levels: {zooms.min_zoom}..{zooms.max_zoom}")
    parts = [
        click.style(f"{summary.coarse_written} coarse", fg="green"),
        click.style(f"{fine.written} fine written", fg="green"),
    ]
    if fine.existing:
        parts.append(click.style(f"{fine.existing} already present", fg="cyan"))
    if fine.transparent:
        parts.append(click.style(f"{fine.transparent} transparent", fg="cyan"))
    click.echo(click.style("Completed: ", bold=True) + ", ".join(parts))


@click.group()
@click.version_option(package_name="gridpyramid")
def main() -> None:
    """Build slippy-map tile pyramids from grids of base images."""


@main.command()
@click.argument("input_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "-o", "--output", type=click.Path(file_okay=False, path_type=Path),
    default=Path("out"), show_default=True, help="Root of the tile tree",
)
@click.option("--base-size", type=click.IntRange(min=1), default=DEFAULT_BASE_SIZE,
              show_default=True, help="Side of each base image in pixels")
@click.option("--tile-size", "-t", type=click.IntRange(min=1), default=DEFAULT_TILE_SIZE,
              show_default=True, help="Side of each output tile in pixels")
@click.option("--thumb-size", type=click.IntRange(min=1), default=DEFAULT_THUMB_SIZE,
              show_default=True, help="Side of each cell in the composite canvas")
@click.option("--format", "tile_format", type=click.Choice(sorted(OUTPUT_FORMATS)),
              default=DEFAULT_FORMAT, show_default=True, help="Output tile format")
@click.option("--quality", "-q", type=click.IntRange(0, 100), default=DEFAULT_QUALITY,
              show_default=True, help="Encoder quality")
@click.option("--speed", "-s", type=click.IntRange(0, 10), default=DEFAULT_SPEED,
              show_default=True, help="Encoder speed (10 = fastest)")
@click.option("--bounds", type=int, nargs=4, default=None,
              metavar="MINX MINY MAXX MAXY",
              help="Use a fixed inclusive grid range instead of detecting it")
@click.option("--coarse-depth", type=click.IntRange(min=0), default=None,
              help="Deepest level cut from the composite (default: one tile per base image)")
@click.option("--max-zoom", type=click.IntRange(min=0), default=None,
              help="Zoom number of the full-resolution level (default: whole grid at zoom 0)")
@click.option("--workers", "-p", type=click.IntRange(min=1), default=DEFAULT_WORKERS,
              show_default=True, help="Parallel workers per batch")
@click.option("-v", "--verbose", count=True, help="-v for info, -vv for debug logging")
def build(
    input_dir: Path,
    output: Path,
    base_size: int,
    tile_size: int,
    thumb_size: int,
    tile_format: str,
    quality: int,
    speed: int,
    bounds: tuple[int, int, int, int] | None,
    coarse_depth: int | None,
    max_zoom: int | None,
    workers: int,
    verbose: int,
) -> None:
    """Build the pyramid for every ``<name>_<x>_<y>.<ext>`` image in INPUT_DIR.

    Tiles land in OUTPUT/<zoom>/<x>/<y>.<format>. Fine-level tiles that
    already exist are kept, so an interrupted build can simply be rerun.

    Examples:

        # Defaults: 4096px base images, 256px AVIF tiles
        python -m gridpyramid.preprocess build ./bases -o ./out

        # WebP tiles over a fixed 32x32 grid
        python -m gridpyramid.preprocess build ./bases --format webp --bounds 0 0 31 31
    """
    _setup_logging(verbose)
    _check_prerequisites()

    try:
        config = PyramidConfig(
            base_size=base_size,
            tile_size=tile_size,
            thumb_size=thumb_size,
            encoder=EncoderConfig(format=tile_format, quality=quality, speed=speed),
            bounds_mode=BoundsMode.FIXED if bounds else BoundsMode.AUTO,
            bounds=BoundingBox(*bounds) if bounds else None,
            coarse_depth=coarse_depth,
            max_zoom=max_zoom,
            workers=workers,
        )
    except (TilerError, ValueError) as e:
        raise click.BadParameter(str(e)) from e

    _print_header(input_dir, output, config)
    try:
        summary = build_pyramid(input_dir, output, config)
    except TilerError as e:
        _fail(e)
    _print_summary(summary)


@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output_file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--quality", "-q", type=click.IntRange(0, 100), default=DEFAULT_QUALITY,
              show_default=True, help="Encoder quality")
@click.option("--speed", "-s", type=click.IntRange(0, 10), default=8,
              show_default=True, help="Encoder speed (10 = fastest)")
def convert(input_file: Path, output_file: Path, quality: int, speed: int) -> None:
    """Re-encode one image; the format follows OUTPUT_FILE's extension."""
    _check_prerequisites()
    tile_format = output_file.suffix.lstrip(".").lower()
    if tile_format not in OUTPUT_FORMATS:
        raise click.BadParameter(
            f"unsupported extension {output_file.suffix!r} "
            f"(expected one of {', '.join(sorted(OUTPUT_FORMATS))})",
            param_hint="OUTPUT_FILE",
        )

    try:
        image = VIPSBackend.load(input_file)
        write_tile(output_file, image, EncoderConfig(format=tile_format, quality=quality, speed=speed))
    except TilerError as e:
        _fail(e)
    click.echo(f"Wrote {output_file}")


if __name__ == "__main__":
    main()
