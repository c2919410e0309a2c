"""
Count Command - Self-match count for every input segment.

Reads ``lat1,lon1 lat2,lon2`` lines until a ``--`` line, indexes the
buffered segments, then queries every feature with its own bbox and prints
one visit count per line in index order.

Usage:
    tilecode count < segments.txt
    tilecode count --input segments.txt
"""

import logging

import click

from tilecode.segments import build_index, read_segments, self_match_counts

logger = logging.getLogger("tilecode.count")


@click.command("count")
@click.option(
    "--input",
    "-i",
    "input_file",
    type=click.File("r"),
    default="-",
    help="Segment file (default: stdin).",
)
@click.pass_obj
def count(ctx, input_file):
    """
    Print how many index hits each segment gets when queried with its own box.

    Counts include the segment itself and may include the same neighbour
    more than once.
    """
    config = ctx.config
    index = build_index(read_segments(input_file, config.input.terminator), config)

    counts = self_match_counts(index)
    for n in counts:
        click.echo(n)

    logger.info(f"Reported {len(counts)} counts")
