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
from collections import deque
from typing import Iterable, List, Optional, Set, Union

from predmap.core import config
from predmap.core.lane_map import LaneMap

LaneRef = Union[LaneMap.Lane, str, None]


class LaneRelations:
    """Classifies how a candidate lane relates to a set of reference lanes.

    Each predicate is True for an empty reference set, even for a missing
    lane, and otherwise False for a missing lane.

    References may be lanes or lane ids.  Ids the map cannot resolve (and
    `None` entries) are left out of the reference set for that query.
    """

    def __init__(self, lane_map: LaneMap, max_hops: Optional[int] = None):
        self._log = logging.getLogger(self.__class__.__name__)
        self._map = lane_map
        if max_hops is None:
            max_hops = config()("prediction", "relation_search_depth", cast=int)
        assert max_hops >= 1, f"max_hops must be at least 1, got {max_hops}"
        self._max_hops = max_hops

    @property
    def max_hops(self) -> int:
        """How many successor/predecessor edges may be followed from a reference lane."""
        return self._max_hops

    def is_identical_lane(
        self, lane: Optional[LaneMap.Lane], refs: Iterable[LaneRef]
    ) -> bool:
        """True iff lane is one of refs."""
        if not refs:
            return True
        if lane is None:
            return False
        return any(ref.lane_id == lane.lane_id for ref in self._resolve(refs))

    def is_left_neighbor_lane(
        self, lane: Optional[LaneMap.Lane], refs: Iterable[LaneRef]
    ) -> bool:
        """True iff lane lies directly to the left of one of refs."""
        if not refs:
            return True
        if lane is None:
            return False
        return any(
            lane.lane_id in ref.left_neighbor_ids
            or ref.lane_id in lane.right_neighbor_ids
            for ref in self._resolve(refs)
        )

    def is_right_neighbor_lane(
        self, lane: Optional[LaneMap.Lane], refs: Iterable[LaneRef]
    ) -> bool:
        """True iff lane lies directly to the right of one of refs."""
        if not refs:
            return True
        if lane is None:
            return False
        return any(
            lane.lane_id in ref.right_neighbor_ids
            or ref.lane_id in lane.left_neighbor_ids
            for ref in self._resolve(refs)
        )

    def is_successor_lane(
        self, lane: Optional[LaneMap.Lane], refs: Iterable[LaneRef]
    ) -> bool:
        """True iff lane can be reached from one of refs by following
        at most `max_hops` successor edges."""
        if not refs:
            return True
        if lane is None:
            return False
        return any(
            lane.lane_id in self.reachable_lane_ids(ref, forward=True)
            for ref in self._resolve(refs)
        )

    def is_predecessor_lane(
        self, lane: Optional[LaneMap.Lane], refs: Iterable[LaneRef]
    ) -> bool:
        """True iff lane can be reached from one of refs by following
        at most `max_hops` predecessor edges."""
        if not refs:
            return True
        if lane is None:
            return False
        return any(
            lane.lane_id in self.reachable_lane_ids(ref, forward=False)
            for ref in self._resolve(refs)
        )

    def reachable_lane_ids(
        self, start: LaneMap.Lane, forward: bool = True
    ) -> Set[str]:
        """Ids of the lanes reached by a breadth-first walk of successor (or
        predecessor) edges from start, at most `max_hops` deep.  Edges to lanes
        missing from the map are not followed.  The start lane is only included
        if a cycle leads back to it."""
        reached: Set[str] = set()
        frontier = deque([(start, 0)])
        while frontier:
            lane, depth = frontier.popleft()
            if depth == self._max_hops:
                continue
            next_lanes = lane.outgoing_lanes if forward else lane.incoming_lanes
            for next_lane in next_lanes:
                if next_lane.lane_id in reached:
                    continue
                reached.add(next_lane.lane_id)
                frontier.append((next_lane, depth + 1))
        return reached

    def _resolve(self, refs: Iterable[LaneRef]) -> List[LaneMap.Lane]:
        lanes = []
        for ref in refs:
            if isinstance(ref, str):
                lane = self._map.lane_by_id(ref)
                if lane is None:
                    self._log.debug(f"Ignoring unknown reference lane `{ref}`")
                ref = lane
            if ref is not None:
                lanes.append(ref)
        return lanes
