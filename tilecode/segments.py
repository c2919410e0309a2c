"""
Line segment input for the index: parsing, buffering and batch building.

Each input line holds one segment as ``lat1,lon1 lat2,lon2``. A segment is
indexed as the quadrilateral obtained by pushing its end points a fixed
distance out along the diagonals of the segment direction, so that nearby
segments get overlapping boxes.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, TextIO, Tuple

from tilecode.config import TileCodeConfig
from tilecode.index import BoundingBox, QuadtreeIndex

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[,\s]+")


@dataclass(frozen=True)
class Segment:
    """A straight segment between two lat/lon points."""

    lat1: float
    lon1: float
    lat2: float
    lon2: float


def parse_segment(line: str) -> Optional[Segment]:
    """
    Parse ``lat1,lon1 lat2,lon2`` from a line.

    Commas and whitespace both separate values; anything after the fourth
    value is ignored. Returns None when four numbers cannot be read.
    """
    tokens = [t for t in _SEPARATORS.split(line.strip()) if t]
    if len(tokens) < 4:
        return None
    try:
        return Segment(*(float(t) for t in tokens[:4]))
    except ValueError:
        return None


def read_segments(stream: TextIO, terminator: str = "--") -> Iterator[Segment]:
    """
    Yield segments from a text stream until the terminator line.

    Lines that do not parse are skipped.
    """
    for lineno, line in enumerate(stream, start=1):
        if line.rstrip("\r\n") == terminator:
            break
        segment = parse_segment(line)
        if segment is None:
            logger.debug(f"Skipping unparseable line {lineno}: {line.rstrip()!r}")
            continue
        yield segment


def buffer_segment(segment: Segment, distance: float) -> Tuple[List[float], List[float]]:
    """
    Corners of the quadrilateral around a segment.

    Args:
        segment: Segment to buffer
        distance: Buffer distance in degrees of latitude

    Returns:
        (lats, lons) of four corners: two beyond the end point, then two
        beyond the start point. Longitude offsets are widened by the
        cosine of the start latitude.
    """
    rat = math.cos(math.radians(segment.lat1))
    ang = math.atan2(segment.lat2 - segment.lat1, (segment.lon2 - segment.lon1) * rat)

    corners = [
        (segment.lat2, segment.lon2, ang + math.pi / 4),
        (segment.lat2, segment.lon2, ang + math.pi * 7 / 4),
        (segment.lat1, segment.lon1, ang + math.pi * 5 / 4),
        (segment.lat1, segment.lon1, ang + math.pi * 3 / 4),
    ]

    lats = [lat + distance * math.sin(a) for lat, _, a in corners]
    lons = [lon + distance * math.cos(a) / rat for _, lon, a in corners]
    return lats, lons


def build_index(
    segments: Iterable[Segment],
    config: Optional[TileCodeConfig] = None,
) -> QuadtreeIndex:
    """
    Buffer and index every segment, then sort the index.

    Args:
        segments: Segments to index
        config: Buffer and query settings (defaults if None)

    Returns:
        Sorted QuadtreeIndex whose payloads are the buffered corners
    """
    config = config or TileCodeConfig()
    distance = config.buffer.distance_degrees

    index = QuadtreeIndex(config.query)
    for segment in segments:
        lats, lons = buffer_segment(segment, distance)
        index.add(BoundingBox.from_points(lats, lons), payload=(lats, lons))

    index.sort()
    logger.info(f"Indexed {len(index)} segments")
    return index


def self_match_counts(index: QuadtreeIndex) -> List[int]:
    """
    Query every feature against its own bbox.

    Returns:
        Visit count per feature, in index order. Every count is at least
        one because a feature always overlaps itself.
    """
    return [sum(1 for _ in index.iter_lookup(feature.bbox)) for feature in index]
