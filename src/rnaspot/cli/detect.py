"""rnaspot detect — count RNAScope spots in every region of an image."""

from __future__ import annotations

import dataclasses
from pathlib import Path

import click

from rnaspot.cli.utils import check_output_path, console, error_handler, make_progress


def _load_regions(path: Path):
    from rnaspot.io.regions import regions_from_geojson, regions_from_labels
    from rnaspot.io.tiff import read_tiff

    suffix = path.suffix.lower()
    if suffix in (".geojson", ".json"):
        return regions_from_geojson(path)
    if suffix in (".tif", ".tiff"):
        return regions_from_labels(read_tiff(path))
    console.print(
        f"[red]Error:[/red] Unsupported region file {path.name}; "
        "use a GeoJSON export or a label-image TIFF."
    )
    raise SystemExit(1)


@click.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "-r", "--regions", "regions_file", required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Regions: QuPath GeoJSON annotations or a label-image TIFF.",
)
@click.option(
    "-c", "--channel", "channels", multiple=True,
    help="Channel to analyze (repeatable, e.g. -c CY5 -c FITC).",
)
@click.option(
    "-p", "--prominence", "prominences", multiple=True, type=float,
    help="Prominence for each --channel, in the same order.",
)
@click.option(
    "--config", "config_file", default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="YAML detection plan. --channel/--prominence override its channels.",
)
@click.option("--median-radius", type=float, default=None, help="Median filter radius in pixels [1.5].")
@click.option("--sigma-pixels", type=float, default=None, help="LoG scale in pixels [1.0].")
@click.option("--pixel-size", type=float, default=None, help="Pixel size in µm, overriding the image metadata.")
@click.option("--workers", type=int, default=None, help="Worker threads. Defaults to the CPU count.")
@click.option("--non-strict", is_flag=True, help="Accept maxima that never drop by the full prominence.")
@click.option(
    "-o", "--output", required=True, type=click.Path(),
    help="CSV file for per-region measurements.",
)
@click.option("--spots", "spots_file", default=None, type=click.Path(), help="Optional CSV of spot coordinates.")
@click.option("--points", "points_file", default=None, type=click.Path(), help="Optional GeoJSON of spot detections for QuPath.")
@click.option("--overwrite", is_flag=True, help="Overwrite output files if they exist.")
@error_handler
def detect(
    image: str,
    regions_file: str,
    channels: tuple[str, ...],
    prominences: tuple[float, ...],
    config_file: str | None,
    median_radius: float | None,
    sigma_pixels: float | None,
    pixel_size: float | None,
    workers: int | None,
    non_strict: bool,
    output: str,
    spots_file: str | None,
    points_file: str | None,
    overwrite: bool,
) -> None:
    """Detect spots per region and channel, and export counts and densities."""
    from rnaspot.core.accessors import InMemoryImageAccessor
    from rnaspot.core.exceptions import ConfigurationError
    from rnaspot.detect.batch import BatchRunner
    from rnaspot.detect.config import DetectionConfig
    from rnaspot.detect.detector import RegionSpotDetector
    from rnaspot.io.export import (
        write_detections_geojson,
        write_measurements_csv,
        write_spots_csv,
    )
    from rnaspot.io.regions import clear_previous_results
    from rnaspot.io.tiff import load_raster

    # Resolve configuration before touching any pixels
    config = DetectionConfig.from_yaml(Path(config_file)) if config_file else DetectionConfig()
    if channels or prominences:
        config = config.with_channels(channels, prominences)
    overrides = {
        "median_radius": median_radius,
        "sigma_pixels": sigma_pixels,
        "max_workers": workers,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if non_strict:
        overrides["strict"] = False
    if overrides:
        config = dataclasses.replace(config, **overrides)
    if not config.channel_names:
        raise ConfigurationError(
            "No channels configured; use --channel/--prominence or --config"
        )
    if pixel_size is not None and pixel_size <= 0:
        raise ConfigurationError(f"--pixel-size must be > 0, got {pixel_size}")

    out_path = check_output_path(output, overwrite)
    spots_path = check_output_path(spots_file, overwrite) if spots_file else None
    points_path = check_output_path(points_file, overwrite) if points_file else None

    with console.status("[bold blue]Loading image and regions..."):
        raster, colors = load_raster(Path(image), pixel_size=pixel_size)
        regions = _load_regions(Path(regions_file))
        clear_previous_results(regions)

    specs = config.channel_specs(raster.pixel_size, colors=colors)
    accessor = InMemoryImageAccessor(raster, channel_colors=colors)
    runner = BatchRunner(
        detector=RegionSpotDetector(
            median_radius=config.median_radius, strict=config.strict,
        ),
        max_workers=config.max_workers,
    )

    with make_progress() as progress:
        task = progress.add_task("Detecting spots...", total=None)

        def on_progress(current: int, total: int, label: str) -> None:
            progress.update(
                task, total=total, completed=current,
                description=f"Detecting {label}",
            )

        result = runner.run_all(
            regions, specs, accessor, progress_callback=on_progress,
        )

    write_measurements_csv(result, out_path)
    if spots_path is not None:
        write_spots_csv(result, spots_path)
    if points_path is not None:
        write_detections_geojson(result, points_path)

    # Summary
    console.print()
    console.print("[green]Spot detection complete[/green]")
    console.print(f"  Regions processed: {result.regions_processed} of {len(regions)}")
    console.print(f"  Channels: {', '.join(s.name for s in specs)}")
    console.print(f"  Pixel size: {raster.pixel_size:.4g} µm")
    console.print(f"  Total spots: {result.total_spots}")
    console.print(f"  Elapsed: {result.elapsed_seconds:.1f}s")
    console.print(f"  Measurements written to {out_path}")
    if spots_path is not None:
        console.print(f"  Spots written to {spots_path}")
    if points_path is not None:
        console.print(f"  Detections written to {points_path}")

    if result.warnings:
        console.print()
        console.print(f"[yellow]Warnings ({len(result.warnings)}):[/yellow]")
        for w in result.warnings:
            console.print(f"  [dim]- {w}[/dim]")
