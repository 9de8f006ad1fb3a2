# Copyright (C) 2021. Huawei Technologies Co., Ltd. All rights reserved.
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NON-INFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN
# THE SOFTWARE.


# to allow for typing to refer to class being defined (LaneMap)
from __future__ import annotations

from bisect import bisect
from dataclasses import dataclass
from enum import IntEnum
from functools import lru_cache
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

import numpy as np
from cached_property import cached_property
from shapely.geometry import LineString

from predmap.core.coordinates import Heading, Point, RefLinePoint
from predmap.core.utils.math import lerp, min_angles_difference_signed


class TurnType(IntEnum):
    """The maneuver a lane is meant for.  Values follow the lane `turn`
    field of the source map."""

    UNKNOWN = 0
    NO_TURN = 1
    LEFT_TURN = 2
    RIGHT_TURN = 3
    U_TURN = 4


class LaneSample(NamedTuple):
    """Lane geometry sampled at an offset along the centerline."""

    x: float
    y: float
    heading: Heading
    width: float


class LanePathPoint(NamedTuple):
    """A point on a lane centerline together with the lane heading there."""

    x: float
    y: float
    heading: Heading


class LaneMap:
    """Base class from which lane map implementation classes extend."""

    @property
    def source(self) -> str:
        """The lane map resource source. Generally a file path."""
        raise NotImplementedError()

    @property
    def lanes(self) -> List[LaneMap.Lane]:
        """All lanes in this map, in load order."""
        raise NotImplementedError()

    def is_same_map(self, map_spec) -> bool:
        """Check if the MapSpec Object source points to the same LaneMap instance as the current"""
        raise NotImplementedError()

    def lane_by_id(self, lane_id: str) -> Optional[LaneMap.Lane]:
        """Find a lane in this map that has the given identifier.
        Returns `None` if there is no such lane."""
        raise NotImplementedError()

    def lanes_within_radius(
        self, point: Point, radius: float
    ) -> List[Tuple[LaneMap.Lane, float]]:
        """Find lanes whose centerline passes within radius of the given point.
        Returns a list of tuples of lane and distance, sorted by distance and then lane id."""
        raise NotImplementedError()

    class Lane:
        """Describes a lane: a directed centerline with topology links."""

        def __hash__(self) -> int:
            """Derived classes must implement a suitable hash function
            so that Lane objects may be used deterministically in sets."""
            raise NotImplementedError()

        def __eq__(self, other) -> bool:
            """Required for set usage; derived classes may override this."""
            return self.__class__ == other.__class__ and hash(self) == hash(other)

        @property
        def lane_id(self) -> str:
            """Unique identifier for this Lane."""
            raise NotImplementedError()

        @property
        def length(self) -> float:
            """The length of this lane's centerline."""
            raise NotImplementedError()

        @property
        def turn_type(self) -> TurnType:
            """The maneuver classification of this lane."""
            raise NotImplementedError()

        @property
        def predecessor_ids(self) -> Tuple[str, ...]:
            """Ids of the lanes leading into this lane."""
            raise NotImplementedError()

        @property
        def successor_ids(self) -> Tuple[str, ...]:
            """Ids of the lanes leading out of this lane."""
            raise NotImplementedError()

        @property
        def left_neighbor_ids(self) -> Tuple[str, ...]:
            """Ids of the lanes reachable by a lane change to the left
            (positive `t` in the RefLine coordinate system)."""
            raise NotImplementedError()

        @property
        def right_neighbor_ids(self) -> Tuple[str, ...]:
            """Ids of the lanes reachable by a lane change to the right
            (negative `t` in the RefLine coordinate system)."""
            raise NotImplementedError()

        @property
        def incoming_lanes(self) -> List[LaneMap.Lane]:
            """Lanes leading into this lane."""
            raise NotImplementedError()

        @property
        def outgoing_lanes(self) -> List[LaneMap.Lane]:
            """Lanes leading out of this lane."""
            raise NotImplementedError()

        def from_lane_coord(self, lane_point: RefLinePoint) -> Point:
            """Get a world point on the lane from the given lane coordinate point.
            Offsets outside of [0, length] extend the first or last centerline segment."""
            raise NotImplementedError()

        def to_lane_coord(self, world_point: Point) -> RefLinePoint:
            """Convert from the given world coordinate to a lane coordinate point."""
            raise NotImplementedError()

        def heading_at_offset(self, offset: float) -> Heading:
            """The heading of the lane centerline at the given offset, interpolated
            between the headings of the samples around it.  Offsets outside of
            [0, length] take the first or last segment's heading."""
            raise NotImplementedError()

        def width_at_offset(self, offset: float) -> Tuple[float, float]:
            """Get the width of the lane at the given offset as well as
            a measure of certainty in this width between 0 and 1.0, where
            1 indicates that the width is exact and certain, and 0 indicates
            a width estimate with no confidence."""
            raise NotImplementedError()

        def distance_to(self, world_point: Point) -> float:
            """The euclidean distance from the given point to the nearest point of the centerline."""
            raise NotImplementedError()

        ## The next methods are "reference" implementations for convenience.

        ## ======== Reference Methods =========

        def offset_along_lane(self, world_point: Point) -> float:
            """Get the offset of the given point imposed on this lane."""
            return self.to_lane_coord(world_point).s

        def path_point_at_offset(self, offset: float) -> LanePathPoint:
            """The centerline point and heading at the given offset."""
            position = self.from_lane_coord(RefLinePoint(s=offset))
            return LanePathPoint(position.x, position.y, self.heading_at_offset(offset))

        def heading_at_point(self, point: Point) -> Heading:
            """The lane heading abreast of the given point."""
            return self.heading_at_offset(self.offset_along_lane(point))

        def contains_point(self, point: Point) -> bool:
            """Returns True if this point projects onto the lane within its
            length and within half of its width from the centerline."""
            lane_coord = self.to_lane_coord(point)
            if not 0 <= lane_coord.s <= self.length:
                return False
            width, _ = self.width_at_offset(lane_coord.s)
            return abs(lane_coord.t) <= 0.5 * width

        ## ======== \Reference Methods =========


class LaneMapWithCaches(LaneMap):
    """Base class for map implementations that wish to include
    a built-in SegmentCache and other LRU caches."""

    def __init__(self):
        super().__init__()
        self._seg_cache = LaneMapWithCaches._SegmentCache()

    @staticmethod
    def clear_lane_caches():
        """Drops the memoized lane queries of every map.  Their keys hold
        the lanes, and so the maps, they were computed for."""
        for method in (
            LaneMapWithCaches.Lane.from_lane_coord,
            LaneMapWithCaches.Lane.to_lane_coord,
            LaneMapWithCaches.Lane.heading_at_offset,
        ):
            method.cache_clear()

    class Lane(LaneMap.Lane):
        """Describes a LaneMapWithCaches lane."""

        def __init__(self, lane_id: str, lane_map):
            self._lane_id = lane_id
            self._map = lane_map

        def __hash__(self) -> int:
            return hash(self._lane_id) ^ hash(self._map)

        @property
        def lane_id(self) -> str:
            return self._lane_id

        @property
        def center_polyline(self) -> List[Point]:
            """Should return a list of the points along the centerline
            of the lane, in the order they will be encountered in the
            direction of travel.  Consecutive points must be distinct."""
            raise NotImplementedError()

        @property
        def center_widths(self) -> List[float]:
            """The total lane width at each point of `center_polyline`."""
            raise NotImplementedError()

        @cached_property
        def length(self) -> float:
            segs = self._map._seg_cache.segments(self)
            return segs[-1].offset + segs[-1].dist_to_next

        @cached_property
        def _lane_line(self) -> LineString:
            points = self.center_polyline
            assert len(points) >= 2
            return LineString([(p.x, p.y) for p in points])

        @lru_cache(maxsize=1024)
        def from_lane_coord(self, lane_point: RefLinePoint) -> Point:
            seg = self._map._seg_cache.segment_for_offset(self, lane_point.s)
            return seg.from_lane_coord(lane_point)

        @lru_cache(maxsize=1024)
        def to_lane_coord(self, world_point: Point) -> RefLinePoint:
            return self._map._seg_cache.project(self, world_point)

        @lru_cache(maxsize=1024)
        def heading_at_offset(self, offset: float) -> Heading:
            segs = self._map._seg_cache.segments(self)
            # sample i carries segment i's heading, the last sample the last segment's
            if offset <= 0:
                return segs[0].heading
            if offset >= self.length:
                return segs[-1].heading
            segi = self._map._seg_cache.segment_index_for_offset(self, offset)
            seg = segs[segi]
            next_heading = segs[segi + 1].heading if segi + 1 < len(segs) else seg.heading
            turn = min_angles_difference_signed(next_heading, seg.heading)
            p = min(1.0, (offset - seg.offset) / seg.dist_to_next)
            return Heading(lerp(seg.heading, seg.heading + turn, p))

        def width_at_offset(self, offset: float) -> Tuple[float, float]:
            segs = self._map._seg_cache.segments(self)
            # widths do not extrapolate: they hold the boundary sample's value
            if offset <= 0:
                return segs[0].start_width, 1.0
            if offset >= self.length:
                return segs[-1].end_width, 1.0
            seg = self._map._seg_cache.segment_for_offset(self, offset)
            p = min(1.0, (offset - seg.offset) / seg.dist_to_next)
            return lerp(seg.start_width, seg.end_width, p), 1.0

        def curvature_at_offset(self, offset: float) -> float:
            """The signed change in heading per meter between the centerline
            samples bracketing offset.  Zero outside of the lane."""
            segs = self._map._seg_cache.segments(self)
            if offset <= 0 or offset >= self.length:
                return 0.0
            segi = self._map._seg_cache.segment_index_for_offset(self, offset)
            if segi + 1 >= len(segs):
                # the last sample carries the last segment's heading
                return 0.0
            seg, next_seg = segs[segi], segs[segi + 1]
            return (
                min_angles_difference_signed(next_seg.heading, seg.heading)
                / seg.dist_to_next
            )

        def distance_to(self, world_point: Point) -> float:
            return self._lane_line.distance(world_point.as_shapely)

    class _SegmentCache:
        @dataclass(frozen=True)
        class Segment:
            """Stored info about a segment of a lane's center polyline."""

            x: float
            y: float
            dx: float
            dy: float
            offset: float
            start_width: float
            end_width: float

            @cached_property
            def dist_to_next(self) -> float:
                """returns the distance to the next point in the polyline."""
                return float(np.linalg.norm((self.dx, self.dy)))

            @cached_property
            def heading(self) -> Heading:
                """The direction of travel along this segment."""
                return Heading.from_vector((self.dx, self.dy))

            def from_lane_coord(self, lane_pt: RefLinePoint) -> Point:
                """For a reference-line point in/along this segment, converts it to a world point.
                Points before or after the segment lie on its extension."""
                offset = lane_pt.s - self.offset
                return Point(
                    self.x
                    + (offset * self.dx - lane_pt.t * self.dy) / self.dist_to_next,
                    self.y
                    + (offset * self.dy + lane_pt.t * self.dx) / self.dist_to_next,
                )

        class _OffsetWrapper:
            def __init__(self, seq: List[LaneMapWithCaches._SegmentCache.Segment]):
                self._seq = seq

            def __getitem__(self, i: int) -> float:
                return self._seq[i].offset

            def __len__(self) -> int:
                return len(self._seq)

        @dataclass(frozen=True)
        class _SegmentArrays:
            """Segment geometry stacked for vectorized projection."""

            starts: np.ndarray
            units: np.ndarray
            lengths: np.ndarray
            offsets: np.ndarray

        def __init__(self):
            self.clear()

        def clear(self):
            """Reset this SegmentCache."""
            self._lane_cache: Dict[
                str, List[LaneMapWithCaches._SegmentCache.Segment]
            ] = dict()
            self._array_cache: Dict[
                str, LaneMapWithCaches._SegmentCache._SegmentArrays
            ] = dict()

        def add_lanes(self, lanes: Iterable[LaneMapWithCaches.Lane]):
            """Populate the cache up front so that queries never write to it."""
            for lane in lanes:
                self._cache_lane_info(lane)

        def segments(
            self, lane: LaneMapWithCaches.Lane
        ) -> List[LaneMapWithCaches._SegmentCache.Segment]:
            """All segments of the lane's center polyline, in order."""
            return self._cache_lane_info(lane)

        def segment_index_for_offset(
            self, lane: LaneMapWithCaches.Lane, offset: float
        ) -> int:
            """Index of the segment containing offset.  Offsets before the lane
            map to the first segment, offsets past its end to the last one."""
            segs = self._cache_lane_info(lane)
            assert segs
            segi = bisect(self.__class__._OffsetWrapper(segs), offset)
            if segi > 0:
                segi -= 1
            return segi

        def segment_for_offset(
            self, lane: LaneMapWithCaches.Lane, offset: float
        ) -> LaneMapWithCaches._SegmentCache.Segment:
            """Given an offset along a Lane, returns the nearest Segment to it."""
            segs = self._cache_lane_info(lane)
            return segs[self.segment_index_for_offset(lane, offset)]

        def project(
            self, lane: LaneMapWithCaches.Lane, world_point: Point
        ) -> RefLinePoint:
            """Projects world_point onto the nearest segment of the lane.
            Beyond the first or last segment the projection continues along
            that segment's line, so `s` may be negative or exceed the lane length."""
            self._cache_lane_info(lane)
            arrays = self._array_cache[lane.lane_id]
            rel = np.array((world_point[0], world_point[1])) - arrays.starts
            proj = np.einsum("ij,ij->i", rel, arrays.units)
            prod = arrays.units[:, 0] * rel[:, 1] - arrays.units[:, 1] * rel[:, 0]
            clamped = np.clip(proj, 0.0, arrays.lengths)
            dists_sq = (proj - clamped) ** 2 + prod**2
            # ties go to the earlier segment
            segi = int(np.argmin(dists_sq))

            seg_proj = float(proj[segi])
            seg_prod = float(prod[segi])
            seg_len = float(arrays.lengths[segi])
            seg_offset = float(arrays.offsets[segi])
            if segi == 0 and seg_proj < 0:
                return RefLinePoint(s=seg_offset + seg_proj, t=seg_prod)
            if segi == len(arrays.lengths) - 1 and seg_proj > seg_len:
                return RefLinePoint(s=seg_offset + seg_proj, t=seg_prod)
            dist = float(np.sqrt(dists_sq[segi]))
            # only points strictly left of the segment line get a positive t
            return RefLinePoint(
                s=seg_offset + float(clamped[segi]), t=dist if seg_prod > 0 else -dist
            )

        def _cache_lane_info(
            self, lane: LaneMapWithCaches.Lane
        ) -> List[LaneMapWithCaches._SegmentCache.Segment]:
            segs = self._lane_cache.get(lane.lane_id)
            if segs is not None:
                return segs

            class _AccumulateSegs:
                def __init__(self):
                    self.offset = 0

                def seg(
                    self, pt1: Point, pt2: Point, width1: float, width2: float
                ) -> LaneMapWithCaches._SegmentCache.Segment:
                    """Create a Segment for a successive pair of polyline points."""
                    rval = LaneMapWithCaches._SegmentCache.Segment(
                        x=pt1.x,
                        y=pt1.y,
                        dx=pt2.x - pt1.x,
                        dy=pt2.y - pt1.y,
                        offset=self.offset,
                        start_width=width1,
                        end_width=width2,
                    )
                    self.offset += rval.dist_to_next
                    return rval

            points = lane.center_polyline
            widths = lane.center_widths
            assert len(points) >= 2
            assert len(widths) == len(points)
            accum = _AccumulateSegs()
            segs = [
                accum.seg(pt1, pt2, w1, w2)
                for pt1, pt2, w1, w2 in zip(
                    points[:-1], points[1:], widths[:-1], widths[1:]
                )
            ]
            lengths = np.array([seg.dist_to_next for seg in segs])
            arrays = LaneMapWithCaches._SegmentCache._SegmentArrays(
                starts=np.array([(seg.x, seg.y) for seg in segs]),
                units=np.array([(seg.dx, seg.dy) for seg in segs]) / lengths[:, None],
                lengths=lengths,
                offsets=np.array([seg.offset for seg in segs]),
            )
            self._array_cache[lane.lane_id] = arrays
            self._lane_cache[lane.lane_id] = segs
            return segs
