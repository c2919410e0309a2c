"""
Query Command - Features overlapping one or more query boxes.

Usage:
    tilecode query --input segments.txt --bbox 40.70,-74.02,40.72,-74.00
    tilecode query --input segments.txt --bbox 0,0,1,1 --bbox 5,5,6,6 --format json
"""

import json
import logging
from typing import Any, Dict, List, Tuple

import click

from tilecode.codec import format_code
from tilecode.index import BoundingBox, QuadtreeIndex
from tilecode.segments import build_index, read_segments

logger = logging.getLogger("tilecode.query")


def parse_bbox(ctx, param, values: Tuple[str, ...]) -> List[BoundingBox]:
    """Click callback turning MINLAT,MINLON,MAXLAT,MAXLON strings into boxes."""
    boxes = []
    for value in values:
        try:
            boxes.append(BoundingBox.from_sequence([float(v) for v in value.split(",")]))
        except ValueError:
            raise click.BadParameter(
                f"expected MINLAT,MINLON,MAXLAT,MAXLON, got {value!r}"
            )
    return boxes


@click.command("query")
@click.option(
    "--input",
    "-i",
    "input_file",
    type=click.File("r"),
    default="-",
    help="Segment file (default: stdin).",
)
@click.option(
    "--bbox",
    "-b",
    "boxes",
    multiple=True,
    required=True,
    callback=parse_bbox,
    help="Query box MINLAT,MINLON,MAXLAT,MAXLON (repeatable).",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    help="Output format (default: text).",
)
@click.pass_obj
def query(ctx, input_file, boxes: List[BoundingBox], output_format: str):
    """
    Report the indexed segments overlapping each query box.

    A segment can be reported more than once for the same box when it is
    found in several zoom passes.

    \b
    Examples:
        tilecode query -i segments.txt -b 40.70,-74.02,40.72,-74.00
        tilecode query -i segments.txt -b 0,0,1,1 -f json
    """
    config = ctx.config
    index = build_index(read_segments(input_file, config.input.terminator), config)

    results = [run_query(index, box) for box in boxes]

    if output_format == "json":
        click.echo(json.dumps(results, indent=2))
    else:
        output_text_results(results)


def run_query(index: QuadtreeIndex, box: BoundingBox) -> Dict[str, Any]:
    """Collect the matches of one query box as a plain dictionary."""
    matches = []
    index.lookup(box, lambda feature, acc: acc.append(feature), matches)

    logger.debug(f"{len(matches)} visits for {box.to_list()}")

    return {
        "bbox": box.normalized().to_list(),
        "visits": len(matches),
        "matches": [
            {
                "code": format_code(feature.code),
                "zoom": feature.zoom,
                "bbox": feature.bbox.to_list(),
            }
            for feature in matches
        ],
    }


def output_text_results(results: List[Dict[str, Any]]):
    """Output query results as formatted text."""
    for result in results:
        minlat, minlon, maxlat, maxlon = result["bbox"]
        click.echo(f"{minlat},{minlon} {maxlat},{maxlon}: {result['visits']} visits")
        for match in result["matches"]:
            m = match["bbox"]
            click.echo(
                f"  {match['code']}  z{match['zoom']:<2}  "
                f"{m[0]:.6f},{m[1]:.6f} {m[2]:.6f},{m[3]:.6f}"
            )
