"""
tilecode - Quadtree code index for geographic bounding boxes.

Approximates each bounding box by a cell of a quadtree over the Web Mercator
tile grid, encodes it as a sortable 64-bit code and answers bbox overlap
queries with one binary-search range scan per zoom level.

Components:
- projection: lat/lon <-> full-precision tile coordinates
- codec: natural zoom of a bbox, code encoding/decoding, tile code ranges
- index: Feature storage, sort and range query
- segments: line segment parsing and buffering for batch builds
- config: YAML/environment configuration

Example usage:
    from tilecode import QuadtreeIndex

    index = QuadtreeIndex()
    index.add((0.0, 0.0, 2.0, 2.0))
    index.add((1.0, 1.0, 3.0, 3.0))
    index.sort()

    hits = []
    index.lookup((1.0, 1.0, 1.0, 1.0), lambda feature, acc: acc.append(feature), hits)
"""

__version__ = "0.1.0"

from tilecode.codec import (
    MAX_ZOOM,
    DecodedCode,
    TileRange,
    bbox_tile,
    bbox_zoom,
    decode_bbox,
    encode_bbox,
    encode_tile,
    format_code,
    parse_code,
)
from tilecode.config import (
    BufferConfig,
    InputConfig,
    QueryConfig,
    TileCodeConfig,
    load_config,
)
from tilecode.exceptions import (
    ConfigError,
    IndexNotSortedError,
    PayloadShapeError,
    TileCodeError,
)
from tilecode.index import BoundingBox, Feature, Payload, QuadtreeIndex
from tilecode.projection import MAX_MERCATOR_LAT, latlon_to_tile, tile_to_latlon

__all__ = [
    "__version__",
    # Codec
    "MAX_ZOOM",
    "DecodedCode",
    "TileRange",
    "bbox_tile",
    "bbox_zoom",
    "decode_bbox",
    "encode_bbox",
    "encode_tile",
    "format_code",
    "parse_code",
    # Config
    "BufferConfig",
    "InputConfig",
    "QueryConfig",
    "TileCodeConfig",
    "load_config",
    # Errors
    "ConfigError",
    "IndexNotSortedError",
    "PayloadShapeError",
    "TileCodeError",
    # Index
    "BoundingBox",
    "Feature",
    "Payload",
    "QuadtreeIndex",
    # Projection
    "MAX_MERCATOR_LAT",
    "latlon_to_tile",
    "tile_to_latlon",
]
