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
from typing import Iterable, List, Optional, Sequence

from predmap.core import config
from predmap.core.coordinates import Heading, RefLinePoint, as_point
from predmap.core.lane_map import LaneMap
from predmap.core.lane_relations import LaneRef, LaneRelations


class LaneSearch:
    """Spatial lane queries filtered by heading and lane topology.

    Both searches start from the map's radius query, so results come back
    ordered by centerline distance and then lane id.
    """

    def __init__(
        self,
        lane_map: LaneMap,
        relations: Optional[LaneRelations] = None,
        on_lane_heading_tolerance: Optional[float] = None,
        nearby_heading_tolerance: Optional[float] = None,
    ):
        self._log = logging.getLogger(self.__class__.__name__)
        self._map = lane_map
        self._relations = relations or LaneRelations(lane_map)
        if on_lane_heading_tolerance is None:
            on_lane_heading_tolerance = config()(
                "prediction", "on_lane_heading_tolerance", cast=float
            )
        if nearby_heading_tolerance is None:
            nearby_heading_tolerance = config()(
                "prediction", "nearby_heading_tolerance", cast=float
            )
        self._on_lane_heading_tolerance = on_lane_heading_tolerance
        self._nearby_heading_tolerance = nearby_heading_tolerance

    def on_lane(
        self,
        prev_lanes: Sequence[LaneRef],
        point,
        heading: float,
        radius: float,
        on_lane: bool = False,
    ) -> List[LaneMap.Lane]:
        """Lanes the point currently occupies.

        A candidate passes when its centerline is within radius of point and
        its heading at the projection matches `heading`.  With `prev_lanes`
        given, only those lanes and their successors are kept.  With
        `on_lane` set, the point must also project inside the lane's
        length and half-width.
        """
        point = as_point(point)
        heading = Heading(heading)
        result = []
        for lane, _ in self._map.lanes_within_radius(point, radius):
            lane_coord = lane.to_lane_coord(point)
            if not self._heading_matches(
                lane, lane_coord, heading, self._on_lane_heading_tolerance
            ):
                continue
            if prev_lanes and not (
                self._relations.is_identical_lane(lane, prev_lanes)
                or self._relations.is_successor_lane(lane, prev_lanes)
            ):
                continue
            if on_lane and not lane.contains_point(point):
                continue
            result.append(lane)
        self._log.debug(
            f"{len(result)} lane(s) under {point} with prior lanes {_ids(prev_lanes)}"
        )
        return result

    def nearby_lanes(
        self,
        point,
        heading: float,
        radius: float,
        curr_lanes: Sequence[LaneRef],
    ) -> List[LaneMap.Lane]:
        """Lanes near point that run in roughly the same direction.

        With `curr_lanes` given, only direct left or right neighbors of those
        lanes are considered, and only when the point projects inside the
        neighbor's length.  Lanes in `curr_lanes` are never returned.
        """
        point = as_point(point)
        heading = Heading(heading)
        curr_ids = set(_ids(curr_lanes))
        result = []
        for lane, _ in self._map.lanes_within_radius(point, radius):
            if lane.lane_id in curr_ids:
                continue
            lane_coord = lane.to_lane_coord(point)
            if curr_lanes:
                if not (
                    self._relations.is_left_neighbor_lane(lane, curr_lanes)
                    or self._relations.is_right_neighbor_lane(lane, curr_lanes)
                ):
                    continue
                if not 0 <= lane_coord.s < lane.length:
                    continue
            if not self._heading_matches(
                lane, lane_coord, heading, self._nearby_heading_tolerance
            ):
                continue
            result.append(lane)
        return result

    @staticmethod
    def _heading_matches(
        lane: LaneMap.Lane,
        lane_coord: RefLinePoint,
        heading: Heading,
        tolerance: float,
    ) -> bool:
        lane_heading = lane.heading_at_offset(lane_coord.s)
        return abs(lane_heading.relative_to(heading)) <= tolerance


def _ids(lanes: Iterable[LaneRef]) -> List[str]:
    ids = []
    for lane in lanes or ():
        if isinstance(lane, str):
            ids.append(lane)
        elif lane is not None:
            ids.append(lane.lane_id)
    return ids
