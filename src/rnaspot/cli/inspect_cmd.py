"""rnaspot inspect — show image channels and calibration."""

from __future__ import annotations

import json
from typing import Any

import click
from rich.table import Table

from rnaspot.cli.utils import console, error_handler


def format_output(
    rows: list[dict[str, Any]],
    columns: list[str],
    fmt: str,
    title: str,
) -> None:
    """Render rows as a Rich table or as JSON."""
    if fmt == "json":
        console.print(json.dumps(rows, indent=2))
        return
    table = Table(show_header=True, title=title)
    for col in columns:
        table.add_column(col, style="bold" if col == columns[0] else None)
    for row in rows:
        table.add_row(*(str(row.get(c, "")) for c in columns))
    console.print(table)


@click.command("inspect")
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "fmt", type=click.Choice(["table", "json"]),
              default="table", help="Output format.")
@error_handler
def inspect_cmd(image: str, fmt: str) -> None:
    """Show channel names, size and pixel size of an image."""
    from rnaspot.io.tiff import load_raster, read_tiff_metadata

    meta = read_tiff_metadata(image)
    raster, colors = load_raster(image)

    rows = [
        {"index": i, "name": name, "color": colors.get(name, "")}
        for i, name in enumerate(raster.channel_names)
    ]
    format_output(rows, ["index", "name", "color"], fmt, "Channels")

    if fmt == "table":
        pixel_size = meta["pixel_size_um"]
        console.print(f"  Size: {raster.width} x {raster.height} ({meta['dtype']})")
        console.print(
            f"  Pixel size: {pixel_size:.4g} µm" if pixel_size
            else "  Pixel size: [yellow]not calibrated[/yellow]"
        )
