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

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from predmap.core import config
from predmap.core.coordinates import Heading, RefLinePoint, as_point
from predmap.core.lane_map import LaneMap, LanePathPoint, LaneSample, TurnType
from predmap.core.lane_relations import LaneRef, LaneRelations
from predmap.core.lane_search import LaneSearch
from predmap.core.utils.custom_exceptions import MapNotLoadedError


class PredictionMap:
    """Lane-level queries used by motion prediction.

    A `PredictionMap` wraps one loaded `LaneMap`.  The map is never mutated,
    so a single instance may be queried from any number of threads.

    Lane arguments are `LaneMap.Lane` objects (see `lane_by_id()`); a `None`
    lane makes geometric queries return `None` rather than raise.
    Points are anything `as_point()` accepts: a `Point`, a numpy array or an
    `(x, y)` sequence.
    """

    def __init__(
        self,
        lane_map: Optional[LaneMap],
        relation_search_depth: Optional[int] = None,
        on_lane_heading_tolerance: Optional[float] = None,
        nearby_heading_tolerance: Optional[float] = None,
        projection_buffer: Optional[float] = None,
    ):
        if lane_map is None:
            raise MapNotLoadedError.required_to("answer prediction map queries")
        self._log = logging.getLogger(self.__class__.__name__)
        self._map = lane_map
        self._relations = LaneRelations(lane_map, relation_search_depth)
        self._search = LaneSearch(
            lane_map,
            self._relations,
            on_lane_heading_tolerance=on_lane_heading_tolerance,
            nearby_heading_tolerance=nearby_heading_tolerance,
        )
        if projection_buffer is None:
            projection_buffer = config()(
                "prediction", "projection_buffer", cast=float
            )
        self._projection_buffer = projection_buffer

    @classmethod
    def from_spec(cls, map_spec, **kwargs) -> "PredictionMap":
        """Build (or reuse) the lane map described by `map_spec` and wrap it."""
        lane_map, _ = map_spec.builder_fn(map_spec)
        if lane_map is None:
            raise MapNotLoadedError.required_to(f"query `{map_spec.source}`")
        return cls(lane_map, **kwargs)

    @property
    def lane_map(self) -> LaneMap:
        """The underlying lane map."""
        return self._map

    def lane_by_id(self, lane_id: str) -> Optional[LaneMap.Lane]:
        """The lane with the given id, or `None`."""
        return self._map.lane_by_id(lane_id)

    # Geometry

    def sample_at(self, lane: Optional[LaneMap.Lane], s: float) -> Optional[LaneSample]:
        """Position, heading and width of the lane at offset `s`.

        `s` outside `[0, length]` extends the first or last centerline
        segment in a straight line; width holds its boundary value there.
        """
        if lane is None:
            return None
        position = lane.from_lane_coord(RefLinePoint(s=s))
        width, _ = lane.width_at_offset(s)
        return LaneSample(position.x, position.y, lane.heading_at_offset(s), width)

    def position_on_lane(
        self, lane: Optional[LaneMap.Lane], s: float
    ) -> Optional[np.ndarray]:
        if lane is None:
            return None
        position = lane.from_lane_coord(RefLinePoint(s=s))
        return np.array((position.x, position.y))

    def heading_on_lane(
        self, lane: Optional[LaneMap.Lane], s: float
    ) -> Optional[Heading]:
        if lane is None:
            return None
        return lane.heading_at_offset(s)

    def lane_total_width(
        self, lane: Optional[LaneMap.Lane], s: float
    ) -> Optional[float]:
        if lane is None:
            return None
        width, _ = lane.width_at_offset(s)
        return width

    def curvature_on_lane(self, lane: Optional[LaneMap.Lane], s: float) -> float:
        """Signed heading change per meter around `s` (left turns positive).
        0.0 for a missing lane."""
        if lane is None:
            return 0.0
        return lane.curvature_at_offset(s)

    def get_projection(
        self, point, lane: Optional[LaneMap.Lane]
    ) -> Optional[Tuple[float, float]]:
        """Project a point onto the lane centerline.

        Returns `(s, l)`: the offset along the lane and the signed lateral
        distance (positive to the left).  `s` is negative before the lane
        start and larger than the lane length past its end.
        """
        if lane is None:
            return None
        lane_coord = lane.to_lane_coord(as_point(point))
        return lane_coord.s, lane_coord.t

    def projection_from_lane(
        self, lane: Optional[LaneMap.Lane], s: float
    ) -> Optional[LanePathPoint]:
        """The centerline point and heading at offset `s`."""
        if lane is None:
            return None
        return lane.path_point_at_offset(s)

    def path_heading(self, lane: Optional[LaneMap.Lane], point) -> Optional[Heading]:
        """The lane heading abreast of the given point."""
        if lane is None:
            return None
        return lane.heading_at_point(as_point(point))

    def smooth_point_from_lane(
        self, lane_id: str, s: float, l: float
    ) -> Optional[Tuple[np.ndarray, Heading]]:
        """The world point at lane coordinate `(s, l)` and the lane heading there."""
        lane = self._map.lane_by_id(lane_id)
        if lane is None:
            self._log.debug(f"No lane `{lane_id}` to place a point on")
            return None
        position = lane.from_lane_coord(RefLinePoint(s=s, t=l))
        return np.array((position.x, position.y)), lane.heading_at_offset(s)

    def is_projection_approximate_within_lane(
        self, point, lane: Optional[LaneMap.Lane]
    ) -> bool:
        """True when the point projects within the lane's length, give or
        take the configured projection buffer."""
        if lane is None:
            return False
        s = lane.offset_along_lane(as_point(point))
        return (
            -self._projection_buffer <= s <= lane.length + self._projection_buffer
        )

    # Search

    def lanes_within_radius(
        self, point, radius: float
    ) -> List[Tuple[LaneMap.Lane, float]]:
        return self._map.lanes_within_radius(as_point(point), radius)

    def on_lane(
        self,
        prev_lanes: Sequence[LaneRef],
        point,
        heading: float,
        radius: float,
        on_lane: bool = False,
    ) -> List[LaneMap.Lane]:
        """Lanes the point occupies, consistent with the lanes it was on before."""
        return self._search.on_lane(prev_lanes, point, heading, radius, on_lane)

    def nearby_lanes_by_current_lanes(
        self,
        point,
        heading: float,
        radius: float,
        curr_lanes: Sequence[LaneRef],
    ) -> List[LaneMap.Lane]:
        """Lanes adjacent to `curr_lanes` near the point, or any aligned
        lanes near the point when `curr_lanes` is empty."""
        return self._search.nearby_lanes(point, heading, radius, curr_lanes)

    def nearest_lane(
        self, point, heading: float, radius: float
    ) -> Optional[LaneMap.Lane]:
        lanes = self._search.nearby_lanes(point, heading, radius, [])
        return lanes[0] if lanes else None

    # Topology

    def is_left_neighbor_lane(
        self, lane: Optional[LaneMap.Lane], refs: Sequence[LaneRef]
    ) -> bool:
        return self._relations.is_left_neighbor_lane(lane, refs)

    def is_right_neighbor_lane(
        self, lane: Optional[LaneMap.Lane], refs: Sequence[LaneRef]
    ) -> bool:
        return self._relations.is_right_neighbor_lane(lane, refs)

    def is_successor_lane(
        self, lane: Optional[LaneMap.Lane], refs: Sequence[LaneRef]
    ) -> bool:
        return self._relations.is_successor_lane(lane, refs)

    def is_predecessor_lane(
        self, lane: Optional[LaneMap.Lane], refs: Sequence[LaneRef]
    ) -> bool:
        return self._relations.is_predecessor_lane(lane, refs)

    def is_identical_lane(
        self, lane: Optional[LaneMap.Lane], refs: Sequence[LaneRef]
    ) -> bool:
        return self._relations.is_identical_lane(lane, refs)

    def lane_turn_type(self, lane_id: str) -> TurnType:
        """The turn classification of a lane; `NO_TURN` for unknown ids."""
        lane = self._map.lane_by_id(lane_id)
        if lane is None:
            return TurnType.NO_TURN
        return lane.turn_type
