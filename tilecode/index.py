"""
Sorted quadtree code index with per-zoom range queries.

Every feature is keyed by the 64-bit code of its bounding box (see
tilecode.codec). Once the index is sorted by code, the features that can
overlap a query box live in at most one contiguous code range per zoom tag:

- for tags coarser than the query's own zoom, the range of the query's
  ancestor tile at that zoom;
- for the query's zoom and finer tags, the range of the query's own tile.

A query therefore runs MAX_ZOOM + 1 binary searches and filters each range
with an exact bbox overlap test, instead of scanning every feature.

Example Usage:
    from tilecode.index import QuadtreeIndex

    index = QuadtreeIndex()
    index.add((0.0, 0.0, 1.0, 1.0), payload=([0.0, 1.0], [0.0, 1.0]))
    index.add((5.0, 5.0, 6.0, 6.0))
    index.sort()

    for feature in index.iter_lookup((0.5, 0.5, 0.5, 0.5)):
        print(feature.bbox)

Lifecycle: add() any number of times, sort() once, then lookup(). The
sorted index is read-only and safe to query from several threads; add(),
sort() and destroy() must not run concurrently with anything else.

A feature whose bbox satisfies the overlap test in more than one pass is
reported once per pass. Callers needing unique results dedupe themselves,
e.g. by ``id(feature)``.
"""

import logging
from dataclasses import dataclass
from operator import attrgetter
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from tilecode.codec import MAX_ZOOM, ZOOM_SHIFT, bbox_tile, encode_bbox, encode_tile
from tilecode.config import QueryConfig
from tilecode.exceptions import IndexNotSortedError, PayloadShapeError
from tilecode.projection import latlon_to_tile

logger = logging.getLogger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class BoundingBox:
    """
    Geographic bounding box.

    Attributes:
        minlat: Southern latitude
        minlon: Western longitude
        maxlat: Northern latitude
        maxlon: Eastern longitude
    """

    minlat: float
    minlon: float
    maxlat: float
    maxlon: float

    def normalized(self) -> "BoundingBox":
        """Return a copy with min <= max on both axes."""
        minlat, maxlat = sorted((self.minlat, self.maxlat))
        minlon, maxlon = sorted((self.minlon, self.maxlon))
        return BoundingBox(minlat, minlon, maxlat, maxlon)

    def overlaps(self, other: "BoundingBox") -> bool:
        """Check if this bbox touches or overlaps another."""
        return not (
            self.minlat > other.maxlat
            or self.minlon > other.maxlon
            or other.minlat > self.maxlat
            or other.minlon > self.maxlon
        )

    def to_list(self) -> List[float]:
        """Convert to [minlat, minlon, maxlat, maxlon] list."""
        return [self.minlat, self.minlon, self.maxlat, self.maxlon]

    @classmethod
    def from_sequence(cls, coords: Sequence[float]) -> "BoundingBox":
        """Create from [minlat, minlon, maxlat, maxlon]."""
        if len(coords) != 4:
            raise ValueError(f"Expected 4 coordinates, got {len(coords)}")
        return cls(*(float(c) for c in coords))

    @classmethod
    def from_points(cls, lats: Sequence[float], lons: Sequence[float]) -> "BoundingBox":
        """Smallest bbox holding every (lat, lon) point."""
        if len(lats) == 0 or len(lats) != len(lons):
            raise ValueError("Need at least one point and matching lat/lon counts")
        return cls(float(min(lats)), float(min(lons)), float(max(lats)), float(max(lons)))

    @classmethod
    def coerce(cls, bbox: Union["BoundingBox", Sequence[float]]) -> "BoundingBox":
        """Accept a BoundingBox or any 4-sequence."""
        if isinstance(bbox, BoundingBox):
            return bbox
        return cls.from_sequence(bbox)


@dataclass(frozen=True, eq=False)
class Payload:
    """
    Geometry carried by a feature: parallel latitude and longitude arrays.

    Arrays are private copies and are marked read-only.
    """

    lats: np.ndarray
    lons: np.ndarray

    def __len__(self) -> int:
        return len(self.lats)

    @classmethod
    def copy_of(cls, lats: Sequence[float], lons: Sequence[float]) -> "Payload":
        """Deep-copy caller coordinates into a new payload."""
        lat_arr = np.array(lats, dtype=np.float64).ravel()
        lon_arr = np.array(lons, dtype=np.float64).ravel()
        if lat_arr.shape != lon_arr.shape:
            raise PayloadShapeError(lat_arr.size, lon_arr.size)
        lat_arr.flags.writeable = False
        lon_arr.flags.writeable = False
        return cls(lat_arr, lon_arr)


EMPTY_PAYLOAD = Payload.copy_of([], [])


@dataclass(frozen=True, eq=False)
class Feature:
    """
    An indexed entry.

    Attributes:
        code: Sort key derived from the bbox
        bbox: Normalized bounding box
        payload: Associated geometry
    """

    code: int
    bbox: BoundingBox
    payload: Payload = EMPTY_PAYLOAD

    @property
    def zoom(self) -> int:
        """Zoom tag stored in the code."""
        return self.code >> ZOOM_SHIFT


BBoxLike = Union[BoundingBox, Sequence[float]]
PayloadLike = Union[Payload, Tuple[Sequence[float], Sequence[float]]]
Visitor = Callable[[Feature, Any], None]


def project_bbox(bbox: BoundingBox) -> Tuple[int, int, int, int]:
    """Full-precision tile corners (x1, y1, x2, y2) of a normalized bbox."""
    x1, y1 = latlon_to_tile(bbox.minlat, bbox.minlon)
    x2, y2 = latlon_to_tile(bbox.maxlat, bbox.maxlon)
    return x1, y1, x2, y2


# =============================================================================
# QuadtreeIndex
# =============================================================================


class QuadtreeIndex:
    """
    Build-once, read-many spatial index over quadtree codes.

    Features are appended unsorted; sort() orders them by code and builds
    the uint64 key array that range queries binary-search.
    """

    def __init__(self, config: Optional[QueryConfig] = None):
        """
        Initialize an empty index.

        Args:
            config: Query behaviour (strict sort checking by default)
        """
        self.config = config or QueryConfig()
        self._features: List[Feature] = []
        self._codes = np.empty(0, dtype=np.uint64)
        self._pending = 0

    def __len__(self) -> int:
        return len(self._features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self._features)

    @property
    def is_sorted(self) -> bool:
        """True when no feature was added since the last sort."""
        return self._pending == 0

    @property
    def features(self) -> Tuple[Feature, ...]:
        """Features in current storage order."""
        return tuple(self._features)

    def add(self, bbox: BBoxLike, payload: Optional[PayloadLike] = None) -> Feature:
        """
        Add a feature.

        Args:
            bbox: (minlat, minlon, maxlat, maxlon); swapped per axis if needed
            payload: Optional (lats, lons) pair, copied into the feature

        Returns:
            The stored Feature
        """
        box = BoundingBox.coerce(bbox).normalized()
        code = encode_bbox(*project_bbox(box))

        if payload is None:
            stored = EMPTY_PAYLOAD
        elif isinstance(payload, Payload):
            stored = Payload.copy_of(payload.lats, payload.lons)
        else:
            lats, lons = payload
            stored = Payload.copy_of(lats, lons)

        feature = Feature(code=code, bbox=box, payload=stored)
        self._features.append(feature)
        self._pending += 1
        return feature

    def sort(self) -> None:
        """Order features by code and rebuild the search keys."""
        self._features.sort(key=attrgetter("code"))
        self._rebuild_codes()
        self._pending = 0
        logger.debug(f"Sorted index of {len(self._features)} features")

    def destroy(self) -> None:
        """Release every stored feature."""
        self._features = []
        self._codes = np.empty(0, dtype=np.uint64)
        self._pending = 0

    def lookup(self, bbox: BBoxLike, visit: Visitor, context: Any = None) -> int:
        """
        Call visit(feature, context) for every candidate overlapping bbox.

        Args:
            bbox: Query box
            visit: Callback receiving each surviving candidate
            context: Passed through to visit unchanged

        Returns:
            Number of visits made (duplicates across passes included)
        """
        visits = 0
        for feature in self.iter_lookup(bbox):
            visit(feature, context)
            visits += 1
        return visits

    def iter_lookup(self, bbox: BBoxLike) -> Iterator[Feature]:
        """Lazily yield the features lookup() would visit, in the same order."""
        self._check_sorted()
        query = BoundingBox.coerce(bbox).normalized()
        return self._scan(query)

    def _check_sorted(self) -> None:
        if self._pending == 0:
            return
        if self.config.strict:
            raise IndexNotSortedError(self._pending)
        logger.warning(
            f"Querying index with {self._pending} unsorted features; results are unreliable"
        )
        self._rebuild_codes()

    def _rebuild_codes(self) -> None:
        self._codes = np.fromiter(
            (f.code for f in self._features),
            dtype=np.uint64,
            count=len(self._features),
        )

    def _scan(self, query: BoundingBox) -> Iterator[Feature]:
        if not self._features:
            return

        z, x, y = bbox_tile(*project_bbox(query))

        for zz in range(MAX_ZOOM + 1):
            if zz < z:
                start, end = encode_tile(zz, zz, x >> (z - zz), y >> (z - zz))
            else:
                start, end = encode_tile(zz, z, x, y)

            lo, hi = self._bounds(start, end)
            for i in range(lo, hi + 1):
                candidate = self._features[i]
                if candidate.bbox.overlaps(query):
                    yield candidate

    def _floor(self, key: np.uint64) -> int:
        # Last position whose code is <= key; 0 when every code is greater
        i = int(np.searchsorted(self._codes, key, side="right")) - 1
        return max(i, 0)

    def _bounds(self, start: int, end: int) -> Tuple[int, int]:
        """Inclusive positions of the codes within [start, end]."""
        codes = self._codes
        start = np.uint64(start)
        end = np.uint64(end)

        lo = self._floor(start)
        hi = self._floor(end)

        while lo > 0 and codes[lo - 1] == start:
            lo -= 1
        if codes[lo] < start:
            lo += 1
        if codes[hi] > end:
            hi -= 1

        return lo, hi
