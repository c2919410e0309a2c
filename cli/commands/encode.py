"""
Encode/Decode Commands - Inspect the code of a bbox.

Usage:
    tilecode encode 40.70 10.00 40.72 10.02
    tilecode encode -- 40.70 -74.02 40.72 -74.00
    tilecode decode 1c7f3b2a00000000
"""

import json
import logging

import click

from tilecode.codec import bbox_tile, decode_bbox, encode_bbox, format_code, parse_code
from tilecode.index import BoundingBox, project_bbox
from tilecode.projection import tile_to_latlon

logger = logging.getLogger("tilecode.encode")


@click.command("encode")
@click.argument("minlat", type=float)
@click.argument("minlon", type=float)
@click.argument("maxlat", type=float)
@click.argument("maxlon", type=float)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    help="Output format (default: text).",
)
def encode(minlat: float, minlon: float, maxlat: float, maxlon: float, output_format: str):
    """
    Show the natural zoom, enclosing tile and code of a bbox.

    Put -- before the coordinates when any of them is negative.
    """
    box = BoundingBox(minlat, minlon, maxlat, maxlon).normalized()
    corners = project_bbox(box)
    zoom, x, y = bbox_tile(*corners)
    code = encode_bbox(*corners)

    result = {
        "bbox": box.to_list(),
        "zoom": zoom,
        "tile": [x, y],
        "code": format_code(code),
    }

    if output_format == "json":
        click.echo(json.dumps(result, indent=2))
    else:
        click.echo(f"Zoom: {zoom}")
        click.echo(f"Tile: {zoom}/{x}/{y}")
        click.echo(f"Code: {result['code']}")


@click.command("decode")
@click.argument("code")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    help="Output format (default: text).",
)
def decode(code: str, output_format: str):
    """Show the zoom tag and full-precision corner held by a hex CODE."""
    try:
        value = parse_code(code)
    except ValueError:
        raise click.BadParameter(f"not a 64-bit hex code: {code!r}", param_hint="CODE")

    decoded = decode_bbox(value)
    lat, lon = tile_to_latlon(decoded.x, decoded.y)

    result = {
        "code": format_code(value),
        "zoom": decoded.zoom,
        "x": decoded.x,
        "y": decoded.y,
        "lat": lat,
        "lon": lon,
    }

    if output_format == "json":
        click.echo(json.dumps(result, indent=2))
    else:
        click.echo(f"Zoom: {decoded.zoom}")
        click.echo(f"Corner: x={decoded.x} y={decoded.y}")
        click.echo(f"Lat/Lon: {lat:.7f},{lon:.7f}")
