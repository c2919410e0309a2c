"""
Tests for the quadtree code index: storage, sorting and range queries.
"""

import logging
import random
from collections import Counter

import numpy as np
import pytest

from tilecode.codec import INTERLEAVE_MASK, MAX_ZOOM, ZOOM_SHIFT, decode_bbox, encode_bbox
from tilecode.config import QueryConfig
from tilecode.exceptions import IndexNotSortedError, PayloadShapeError, TileCodeError
from tilecode.index import BoundingBox, Feature, Payload, QuadtreeIndex, project_bbox


def collect(index, bbox):
    """Run lookup and return the visited features in order."""
    visited = []
    index.lookup(bbox, lambda feature, acc: acc.append(feature), visited)
    return visited


# =============================================================================
# BoundingBox / Payload
# =============================================================================


class TestBoundingBox:
    """Tests for BoundingBox."""

    def test_normalized_swaps_axes(self):
        """Reversed corners are swapped per axis."""
        box = BoundingBox(1.0, 5.0, 0.0, 2.0).normalized()
        assert box == BoundingBox(0.0, 2.0, 1.0, 5.0)

    def test_normalized_keeps_ordered_box(self):
        """An ordered box is unchanged."""
        box = BoundingBox(0.0, 0.0, 1.0, 1.0)
        assert box.normalized() == box

    def test_overlaps_shared_edge(self):
        """Touching boxes count as overlapping."""
        a = BoundingBox(0.0, 0.0, 1.0, 1.0)
        b = BoundingBox(1.0, 1.0, 2.0, 2.0)
        assert a.overlaps(b)
        assert b.overlaps(a)

    def test_disjoint(self):
        """Separated boxes do not overlap."""
        a = BoundingBox(0.0, 0.0, 1.0, 1.0)
        b = BoundingBox(5.0, 5.0, 6.0, 6.0)
        assert not a.overlaps(b)

    def test_disjoint_on_one_axis(self):
        """Overlap on latitude alone is not enough."""
        a = BoundingBox(0.0, 0.0, 1.0, 1.0)
        b = BoundingBox(0.0, 2.0, 1.0, 3.0)
        assert not a.overlaps(b)

    def test_from_sequence(self):
        """Four numbers build a box."""
        assert BoundingBox.from_sequence([1, 2, 3, 4]) == BoundingBox(1.0, 2.0, 3.0, 4.0)

    def test_from_sequence_wrong_length(self):
        """Anything but four numbers is rejected."""
        with pytest.raises(ValueError, match="Expected 4 coordinates"):
            BoundingBox.from_sequence([1, 2, 3])

    def test_from_points(self):
        """Points are enclosed by their min/max box."""
        box = BoundingBox.from_points([3.0, 1.0, 2.0], [-1.0, 4.0, 0.0])
        assert box == BoundingBox(1.0, -1.0, 3.0, 4.0)

    def test_to_list(self):
        """to_list gives minlat, minlon, maxlat, maxlon."""
        assert BoundingBox(1.0, 2.0, 3.0, 4.0).to_list() == [1.0, 2.0, 3.0, 4.0]


class TestPayload:
    """Tests for Payload."""

    def test_copy_of(self):
        """Payload arrays hold the supplied coordinates."""
        payload = Payload.copy_of([1.0, 2.0], [3.0, 4.0])
        assert len(payload) == 2
        np.testing.assert_array_equal(payload.lats, [1.0, 2.0])
        np.testing.assert_array_equal(payload.lons, [3.0, 4.0])

    def test_unequal_lengths(self):
        """Mismatched sequences are rejected."""
        with pytest.raises(PayloadShapeError) as excinfo:
            Payload.copy_of([1.0, 2.0], [3.0])
        assert excinfo.value.n_lats == 2
        assert excinfo.value.n_lons == 1
        assert isinstance(excinfo.value, TileCodeError)
        assert "n_lats=2" in str(excinfo.value)

    def test_read_only(self):
        """Stored arrays cannot be modified."""
        payload = Payload.copy_of([1.0], [2.0])
        with pytest.raises(ValueError):
            payload.lats[0] = 9.0


# =============================================================================
# Index storage
# =============================================================================


class TestQuadtreeIndexStorage:
    """Tests for add, sort and destroy."""

    def test_empty(self):
        """A new index is empty and trivially sorted."""
        index = QuadtreeIndex()
        assert len(index) == 0
        assert index.is_sorted

    def test_add_normalizes_bbox(self):
        """Added boxes are stored with min <= max."""
        index = QuadtreeIndex()
        feature = index.add((1.0, 1.0, 0.0, 0.0))
        assert feature.bbox == BoundingBox(0.0, 0.0, 1.0, 1.0)

    def test_add_accepts_bounding_box(self):
        """BoundingBox instances are accepted as well as sequences."""
        index = QuadtreeIndex()
        a = index.add(BoundingBox(0.0, 0.0, 1.0, 1.0))
        b = index.add([0.0, 0.0, 1.0, 1.0])
        assert a.code == b.code

    def test_code_is_deterministic(self):
        """The same box always gets the same code."""
        a = QuadtreeIndex().add((40.0, -74.0, 40.1, -73.9))
        b = QuadtreeIndex().add((40.1, -73.9, 40.0, -74.0))
        assert a.code == b.code

    def test_point_feature_zoom(self):
        """A point feature carries the deepest zoom tag."""
        feature = QuadtreeIndex().add((10.0, 10.0, 10.0, 10.0))
        assert feature.zoom == MAX_ZOOM
        assert decode_bbox(feature.code).zoom == MAX_ZOOM

    def test_equator_straddling_feature_zoom(self):
        """A box crossing the equator diverges at zoom 0."""
        feature = QuadtreeIndex().add((-0.5, 10.0, 0.5, 10.5))
        assert feature.zoom == 0

    def test_polar_bbox_accepted(self):
        """Boxes reaching or passing a pole are stored on the grid edge."""
        index = QuadtreeIndex()
        south = index.add((-90.0, 0.0, -89.0, 1.0))
        north = index.add((89.0, 0.0, 95.0, 1.0))
        index.sort()

        assert collect(index, (-90.0, 0.0, -89.0, 1.0)) == [south]
        assert north in collect(index, (89.0, 0.0, 95.0, 1.0))

    def test_payload_deep_copied(self):
        """Mutating the caller's lists after add leaves the feature intact."""
        lats = [1.0, 2.0]
        lons = [3.0, 4.0]
        index = QuadtreeIndex()
        feature = index.add((1.0, 3.0, 2.0, 4.0), payload=(lats, lons))
        lats[0] = 99.0
        lons.append(5.0)
        np.testing.assert_array_equal(feature.payload.lats, [1.0, 2.0])
        np.testing.assert_array_equal(feature.payload.lons, [3.0, 4.0])

    def test_payload_instance_copied(self):
        """A Payload from elsewhere is copied, not shared."""
        source = Payload.copy_of([1.0], [2.0])
        feature = QuadtreeIndex().add((1.0, 2.0, 1.0, 2.0), payload=source)
        assert feature.payload is not source
        assert feature.payload.lats is not source.lats

    def test_default_payload_empty(self):
        """Features without payload carry an empty one."""
        feature = QuadtreeIndex().add((1.0, 2.0, 1.0, 2.0))
        assert len(feature.payload) == 0

    def test_unequal_payload_rejected(self):
        """Mismatched payload lengths raise before anything is stored."""
        index = QuadtreeIndex()
        with pytest.raises(PayloadShapeError):
            index.add((0.0, 0.0, 1.0, 1.0), payload=([0.0, 1.0], [0.0]))
        assert len(index) == 0

    def test_feature_is_frozen(self):
        """Features cannot be modified after insertion."""
        feature = QuadtreeIndex().add((0.0, 0.0, 1.0, 1.0))
        with pytest.raises(Exception):
            feature.code = 0

    def test_add_marks_unsorted(self):
        """Any add invalidates sortedness until the next sort."""
        index = QuadtreeIndex()
        index.add((0.0, 0.0, 1.0, 1.0))
        assert not index.is_sorted
        index.sort()
        assert index.is_sorted
        index.add((2.0, 2.0, 3.0, 3.0))
        assert not index.is_sorted

    def test_sort_orders_by_code(self, random_boxes):
        """After sort, codes ascend."""
        index = QuadtreeIndex()
        for box in random_boxes:
            index.add(box)
        index.sort()
        codes = [f.code for f in index]
        assert codes == sorted(codes)

    def test_sort_is_idempotent(self, random_boxes):
        """Sorting a sorted index keeps element order."""
        index = QuadtreeIndex()
        for box in random_boxes:
            index.add(box)
        index.sort()
        before = [id(f) for f in index]
        index.sort()
        assert [id(f) for f in index] == before

    def test_features_snapshot(self):
        """features returns the stored features as a tuple."""
        index = QuadtreeIndex()
        a = index.add((0.0, 0.0, 1.0, 1.0))
        assert index.features == (a,)

    def test_destroy(self):
        """destroy releases everything."""
        index = QuadtreeIndex()
        index.add((0.0, 0.0, 1.0, 1.0))
        index.sort()
        index.destroy()
        assert len(index) == 0
        assert index.is_sorted
        assert collect(index, (0.0, 0.0, 1.0, 1.0)) == []


# =============================================================================
# Range queries
# =============================================================================


class TestQuadtreeIndexLookup:
    """Tests for lookup and iter_lookup."""

    def test_empty_index(self):
        """An empty index never calls visit."""
        index = QuadtreeIndex()
        index.sort()
        calls = []
        assert index.lookup((0.0, 0.0, 1.0, 1.0), lambda f, c: calls.append(f)) == 0
        assert calls == []

    def test_empty_index_without_sort(self):
        """An index that was never filled needs no sort."""
        assert collect(QuadtreeIndex(), (-10.0, -10.0, 10.0, 10.0)) == []

    def test_self_match(self):
        """A feature is found with its own bbox; a disjoint one is not."""
        index = QuadtreeIndex()
        a = index.add((0.0, 0.0, 1.0, 1.0))
        b = index.add((5.0, 5.0, 6.0, 6.0))
        index.sort()

        visited = collect(index, (0.0, 0.0, 1.0, 1.0))
        assert a in visited
        assert b not in visited

    def test_point_inside_two_overlapping_boxes(self):
        """A point query finds both boxes that contain it."""
        index = QuadtreeIndex()
        a = index.add((0.0, 0.0, 2.0, 2.0))
        b = index.add((1.0, 1.0, 3.0, 3.0))
        index.sort()

        visited = collect(index, (1.0, 1.0, 1.0, 1.0))
        assert a in visited
        assert b in visited

    def test_visit_receives_context(self):
        """The caller's context is passed through unchanged."""
        index = QuadtreeIndex()
        index.add((0.0, 0.0, 1.0, 1.0))
        index.sort()

        seen = []
        context = object()
        index.lookup((0.0, 0.0, 1.0, 1.0), lambda f, c: seen.append(c), context)
        assert seen == [context]

    def test_lookup_returns_visit_count(self):
        """lookup reports how many times visit ran."""
        index = QuadtreeIndex()
        index.add((0.0, 0.0, 2.0, 2.0))
        index.add((1.0, 1.0, 3.0, 3.0))
        index.sort()

        calls = []
        n = index.lookup((1.0, 1.0, 1.0, 1.0), lambda f, c: calls.append(f))
        assert n == len(calls) == 2

    def test_iter_lookup_matches_lookup(self, random_boxes):
        """The generator yields exactly what lookup visits, in order."""
        index = QuadtreeIndex()
        for box in random_boxes:
            index.add(box)
        index.sort()

        query = (40.7, -74.0, 40.75, -73.95)
        assert list(index.iter_lookup(query)) == collect(index, query)

    def test_query_normalized(self):
        """Reversed query corners behave like ordered ones."""
        index = QuadtreeIndex()
        index.add((0.0, 0.0, 1.0, 1.0))
        index.sort()
        assert collect(index, (1.0, 1.0, 0.0, 0.0)) == collect(index, (0.0, 0.0, 1.0, 1.0))

    def test_identical_point_features_all_found(self):
        """Duplicate codes at a range boundary are all returned."""
        index = QuadtreeIndex()
        points = [index.add((10.0, 20.0, 10.0, 20.0)) for _ in range(3)]
        index.add((10.0, 20.001, 10.0, 20.001))
        index.add((9.999, 20.0, 9.999, 20.0))
        index.sort()

        visited = collect(index, (10.0, 20.0, 10.0, 20.0))
        for p in points:
            assert p in visited
        assert len(visited) == 3

    def test_identical_boxes_all_found(self):
        """Features sharing a box are all found with that box."""
        index = QuadtreeIndex()
        boxes = [index.add((40.0, -74.0, 40.01, -73.99)) for _ in range(4)]
        index.sort()

        visited = collect(index, (40.0, -74.0, 40.01, -73.99))
        assert all(b in visited for b in boxes)

    def test_every_feature_finds_itself(self, random_boxes):
        """Querying a feature's own bbox always reports that feature."""
        index = QuadtreeIndex()
        for box in random_boxes:
            index.add(box)
        index.sort()

        for feature in index:
            assert feature in collect(index, feature.bbox)

    def test_random_no_false_positives(self, random_boxes):
        """Every visited feature truly overlaps the query."""
        index = QuadtreeIndex()
        for box in random_boxes:
            index.add(box)
        index.sort()

        queries = [
            (40.6, -74.2, 40.65, -74.1),
            (40.75, -73.9, 40.75, -73.9),
            (40.5, -74.3, 41.0, -73.7),
            (40.8, -74.0, 40.9, -73.8),
        ]
        for query in queries:
            q = BoundingBox(*query)
            visited = collect(index, query)
            assert all(f.bbox.overlaps(q) for f in visited)

            brute = {id(f) for f in index if f.bbox.overlaps(q)}
            assert {id(f) for f in visited} <= brute

    def test_random_single_tag_passes_visit_each_feature_once(self, random_boxes):
        """
        Each pass scans a single zoom tag, so today no feature repeats.

        This pins the current pass layout; lookup itself makes no uniqueness
        promise.
        """
        index = QuadtreeIndex()
        for box in random_boxes:
            index.add(box)
        index.sort()

        counts = Counter(id(f) for f in collect(index, (40.5, -74.3, 41.0, -73.7)))
        assert all(n == 1 for n in counts.values())

    def test_random_recall_across_equator_and_meridian(self):
        """Zoom 0 queries find every overlapping feature, low codes included."""
        rng = random.Random(7)
        index = QuadtreeIndex()
        for _ in range(300):
            lat = rng.uniform(-0.5, 0.5)
            lon = rng.uniform(-0.5, 0.5)
            index.add((lat, lon, lat + rng.uniform(0.0, 0.05), lon + rng.uniform(0.0, 0.05)))
        north_west = index.add((0.1, -0.2, 0.2, -0.1))
        index.sort()

        query = (-0.3, -0.3, 0.3, 0.3)
        query_code = encode_bbox(*project_bbox(BoundingBox(*query)))
        assert query_code >> ZOOM_SHIFT == 0
        assert north_west.code & INTERLEAVE_MASK < query_code & INTERLEAVE_MASK
        assert north_west in collect(index, query)

        queries = [query, (-0.001, -0.001, 0.001, 0.001)]
        for _ in range(40):
            queries.append((
                rng.uniform(-0.3, -0.0001),
                rng.uniform(-0.3, -0.0001),
                rng.uniform(0.0001, 0.3),
                rng.uniform(0.0001, 0.3),
            ))

        for q in queries:
            box = BoundingBox(*q)
            expected = {id(f) for f in index if f.bbox.overlaps(box)}
            assert {id(f) for f in collect(index, q)} == expected

    def test_far_query_finds_nothing(self, random_boxes):
        """A query on the other side of the world visits nothing."""
        index = QuadtreeIndex()
        for box in random_boxes:
            index.add(box)
        index.sort()
        assert collect(index, (-33.9, 151.0, -33.8, 151.3)) == []


class TestSortBarrier:
    """Tests for the add/sort/lookup lifecycle."""

    def test_lookup_before_sort_raises(self):
        """Strict indexes refuse to query unsorted data."""
        index = QuadtreeIndex()
        index.add((0.0, 0.0, 1.0, 1.0))
        with pytest.raises(IndexNotSortedError) as excinfo:
            collect(index, (0.0, 0.0, 1.0, 1.0))
        assert excinfo.value.pending == 1

    def test_iter_lookup_raises_eagerly(self):
        """The sort check happens when iter_lookup is called, not on first next()."""
        index = QuadtreeIndex()
        index.add((0.0, 0.0, 1.0, 1.0))
        with pytest.raises(IndexNotSortedError):
            index.iter_lookup((0.0, 0.0, 1.0, 1.0))

    def test_add_after_sort_raises(self):
        """Adding after sort requires another sort."""
        index = QuadtreeIndex()
        index.add((0.0, 0.0, 1.0, 1.0))
        index.sort()
        index.add((5.0, 5.0, 6.0, 6.0))
        with pytest.raises(IndexNotSortedError):
            collect(index, (0.0, 0.0, 1.0, 1.0))

        index.sort()
        assert len(collect(index, (5.0, 5.0, 6.0, 6.0))) == 1

    def test_lenient_mode_warns(self, caplog):
        """Non-strict indexes log a warning and still answer."""
        index = QuadtreeIndex(QueryConfig(strict=False))
        index.add((5.0, 5.0, 6.0, 6.0))
        index.add((0.0, 0.0, 1.0, 1.0))

        with caplog.at_level(logging.WARNING, logger="tilecode.index"):
            visited = collect(index, (0.0, 0.0, 1.0, 1.0))

        assert "unsorted" in caplog.text
        assert all(isinstance(f, Feature) for f in visited)
