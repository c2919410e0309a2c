"""
Sortable 64-bit quadtree codes for bounding boxes.

Code layout, most significant bit first:

     5 bits  zoom tag                        (<< 59)
    56 bits  interleaved y/x, 28 levels      (<< 3)
     3 bits  reserved tag bits, always zero  (<< 0)

Each level contributes its y bit then its x bit, coarsest level first, so
codes sort first by zoom tag and then along a Z-order curve. A tile at zoom z
covers the contiguous code range sharing its tag and its top 2z interleaved
bits, which is what makes per-level binary search possible.
"""

from typing import NamedTuple, Tuple

from tilecode.projection import FULL_ZOOM

MAX_ZOOM = 28
ZOOM_BITS = 5
TAG_BITS = 3

ZOOM_SHIFT = 64 - ZOOM_BITS
MASK32 = 0xFFFFFFFF
MASK64 = 0xFFFFFFFFFFFFFFFF

# Top MAX_ZOOM bits of a 32-bit coordinate
LEVEL_MASK = (MASK32 << (FULL_ZOOM - MAX_ZOOM)) & MASK32

# Interleaved portion of a code
INTERLEAVE_MASK = ((1 << (2 * MAX_ZOOM)) - 1) << TAG_BITS


class TileRange(NamedTuple):
    """Inclusive range of codes covered by one tile."""

    start: int
    end: int


class DecodedCode(NamedTuple):
    """Zoom tag and full-precision corner coordinate held by a code."""

    zoom: int
    x: int
    y: int


class BBoxTile(NamedTuple):
    """Natural zoom of a bbox and the tile enclosing it at that zoom."""

    zoom: int
    x: int
    y: int


def bbox_zoom(x1: int, y1: int, x2: int, y2: int) -> int:
    """
    Return the shallowest zoom at which two corners fall in different cells.

    Compares the corners bit by bit from the most significant end. The first
    level whose x or y bit differs is the bbox's natural zoom; corners that
    agree through MAX_ZOOM levels get MAX_ZOOM. Enlarging a bbox can only make
    the corners diverge earlier, so the result never grows with the bbox.
    """
    for z in range(MAX_ZOOM):
        mask = 1 << (FULL_ZOOM - (z + 1))
        if (x1 ^ x2) & mask or (y1 ^ y2) & mask:
            return z
    return MAX_ZOOM


def bbox_tile(x1: int, y1: int, x2: int, y2: int) -> BBoxTile:
    """Natural zoom of a bbox plus the (x, y) of its enclosing tile."""
    z = bbox_zoom(x1, y1, x2, y2)
    shift = FULL_ZOOM - z
    return BBoxTile(z, (x1 & MASK32) >> shift, (y1 & MASK32) >> shift)


def _spread(v: int) -> int:
    # bit k of a 32-bit value moves to bit 2k
    v &= MASK32
    v = (v | (v << 16)) & 0x0000FFFF0000FFFF
    v = (v | (v << 8)) & 0x00FF00FF00FF00FF
    v = (v | (v << 4)) & 0x0F0F0F0F0F0F0F0F
    v = (v | (v << 2)) & 0x3333333333333333
    v = (v | (v << 1)) & 0x5555555555555555
    return v


def _compact(v: int) -> int:
    v &= 0x5555555555555555
    v = (v | (v >> 1)) & 0x3333333333333333
    v = (v | (v >> 2)) & 0x0F0F0F0F0F0F0F0F
    v = (v | (v >> 4)) & 0x00FF00FF00FF00FF
    v = (v | (v >> 8)) & 0x0000FFFF0000FFFF
    v = (v | (v >> 16)) & 0x00000000FFFFFFFF
    return v


def interleave(x: int, y: int) -> int:
    """
    Interleave the top MAX_ZOOM levels of a full-precision coordinate.

    The result is already positioned inside a code (between the zoom tag and
    the reserved bits); levels below MAX_ZOOM are dropped.
    """
    bits = (_spread(y & LEVEL_MASK) << 1) | _spread(x & LEVEL_MASK)
    return bits >> ZOOM_BITS


def deinterleave(code: int) -> Tuple[int, int]:
    """Recover the (x, y) coordinate from the interleaved bits of a code."""
    bits = (code & INTERLEAVE_MASK) << ZOOM_BITS
    return _compact(bits), _compact(bits >> 1)


def encode_bbox(x1: int, y1: int, x2: int, y2: int, tags: int = 0) -> int:
    """
    Encode a bbox given by its full-precision corners.

    The zoom tag is the bbox's natural zoom; the interleaved bits always hold
    every level of the (x1, y1) corner regardless of that zoom. ``tags`` is
    accepted for the reserved field but not stored.
    """
    z = bbox_zoom(x1, y1, x2, y2)
    return (z << ZOOM_SHIFT) | interleave(x1, y1)


def encode_tile(tag_zoom: int, z: int, x: int, y: int) -> TileRange:
    """
    Code range covering every full-precision point of tile (x, y) at zoom z.

    Args:
        tag_zoom: Zoom tag of the entries the range should match
        z: Zoom level of the tile coordinate
        x: Tile column at zoom z
        y: Tile row at zoom z

    Returns:
        TileRange whose start has all bits below the tile's prefix cleared and
        whose end has them all set.
    """
    shift = FULL_ZOOM - z
    x = (x << shift) & MASK32
    y = (y << shift) & MASK32

    start = (tag_zoom << ZOOM_SHIFT) | interleave(x, y)
    end = start | (MASK64 >> (2 * z + ZOOM_BITS))
    return TileRange(start, end)


def decode_bbox(code: int) -> DecodedCode:
    """Split a code into its zoom tag and (x1, y1) corner."""
    x, y = deinterleave(code)
    return DecodedCode(code >> ZOOM_SHIFT, x, y)


def format_code(code: int) -> str:
    """Render a code as 16 hex digits."""
    return f"{code:016x}"


def parse_code(text: str) -> int:
    """Parse a hex code, with or without a 0x prefix."""
    code = int(text.strip(), 16)
    if code < 0 or code > MASK64:
        raise ValueError(f"Code out of 64-bit range: {text}")
    return code
