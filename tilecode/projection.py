"""
Web Mercator projection between geographic and tile coordinates.

Implements the slippy-map tile formulas (see
http://wiki.openstreetmap.org/wiki/Slippy_map_tilenames). Coordinates are
fixed precision: at zoom 32 a tile coordinate is a full unsigned 32-bit
integer, which is the precision the code index works at.

Latitudes are meaningful strictly inside the Mercator range (about
+/-85.0511 degrees). Beyond it, the poles included, the projected
coordinate is degenerate but finite and is clamped onto the grid.
"""

import math
from typing import Tuple

# Full-precision zoom of a tile coordinate
FULL_ZOOM = 32

# Latitude at which the Mercator square ends
MAX_MERCATOR_LAT = 85.0511287798


def latlon_to_tile(lat: float, lon: float, zoom: int = FULL_ZOOM) -> Tuple[int, int]:
    """
    Project a latitude/longitude to a tile coordinate at the given zoom.

    Args:
        lat: Latitude in decimal degrees
        lon: Longitude in decimal degrees
        zoom: Zoom level (32 gives full 32-bit precision)

    Returns:
        Tuple of (x, y). y grows southward. Values are clamped to the
        [0, 2^zoom - 1] grid so that lon=180 and polar latitudes still map
        to the edge tile.
    """
    lat_rad = math.radians(lat)
    n = 1 << zoom

    x = int(n * ((lon + 180) / 360))
    y = int(n * (1 - math.asinh(math.tan(lat_rad)) / math.pi) / 2)

    return _clamp(x, n - 1), _clamp(y, n - 1)


def tile_to_latlon(x: int, y: int, zoom: int = FULL_ZOOM) -> Tuple[float, float]:
    """
    Inverse of latlon_to_tile: the lat/lon of a tile's north-west corner.

    Args:
        x: Tile column
        y: Tile row
        zoom: Zoom level of the coordinate

    Returns:
        Tuple of (lat, lon) in decimal degrees.
    """
    n = 1 << zoom
    lon = 360.0 * x / n - 180.0
    lat_rad = math.atan(math.sinh(math.pi * (1 - 2.0 * y / n)))
    return math.degrees(lat_rad), lon


def _clamp(value: int, upper: int) -> int:
    if value < 0:
        return 0
    if value > upper:
        return upper
    return value
