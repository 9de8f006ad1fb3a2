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

import json
import logging
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import rtree
import yaml
from cached_property import cached_property

from predmap.core import config
from predmap.core.coordinates import BoundingBox, Point
from predmap.core.lane_map import LaneMap, LaneMapWithCaches, TurnType
from predmap.core.map_spec import MapSpec
from predmap.core.utils.custom_exceptions import LaneMapFormatError
from predmap.core.utils.logging import timeit


class FileLaneMap(LaneMapWithCaches):
    """A lane map for a JSON or YAML lane file."""

    DEFAULT_LANE_WIDTH = 3.2
    """Used for lanes that declare no width when neither the MapSpec
    nor the engine configuration provide one."""

    LANE_FILE_NAMES = ("lanes.json", "lanes.yaml", "lanes.yml")

    def __init__(self, map_spec: MapSpec, map_data: Dict[str, Any]):
        super().__init__()
        self._log = logging.getLogger(self.__class__.__name__)
        self._map_spec = map_spec
        self._default_lane_width = FileLaneMap._spec_lane_width(map_spec)
        self._lanes: Dict[str, FileLaneMap.Lane] = dict()
        self._lane_rtree = None
        self._load_map_data(map_data)

    @classmethod
    def from_spec(cls, map_spec: MapSpec):
        """Generate a lane map from the given MapSpec."""
        map_path = cls._map_path(map_spec)
        if not map_path or not os.path.isfile(map_path):
            logging.warning(f"Lane map not found: {map_spec.source}")
            return None

        try:
            with open(map_path, "r", encoding="utf-8") as f:
                if map_path.endswith(".json"):
                    map_data = json.load(f)
                else:
                    map_data = yaml.safe_load(f)
        except (ValueError, yaml.YAMLError) as e:
            raise LaneMapFormatError(
                f"Lane map `{map_spec.source}` cannot be parsed: {e}"
            ) from e
        return cls(map_spec, map_data)

    @staticmethod
    def _map_path(map_spec: MapSpec) -> Optional[str]:
        if os.path.isdir(map_spec.source):
            for name in FileLaneMap.LANE_FILE_NAMES:
                candidate = os.path.join(map_spec.source, name)
                if os.path.isfile(candidate):
                    return candidate
            return None
        return map_spec.source

    @staticmethod
    def _spec_lane_width(map_spec: MapSpec) -> float:
        if map_spec.default_lane_width is not None:
            return map_spec.default_lane_width
        return config()(
            "map",
            "default_lane_width",
            default=FileLaneMap.DEFAULT_LANE_WIDTH,
            cast=float,
        )

    def _load_map_data(self, map_data: Dict[str, Any]):
        with timeit(f"Loading lane map {self._map_spec.source}", self._log.info):
            records = map_data.get("lanes") if isinstance(map_data, dict) else None
            if not isinstance(records, list):
                raise LaneMapFormatError(
                    f"Lane map `{self._map_spec.source}` has no `lanes` list"
                )
            for record in records:
                lane_id = record.get("id") if isinstance(record, dict) else None
                if lane_id is None:
                    raise LaneMapFormatError(
                        f"Lane map `{self._map_spec.source}` has a lane without an `id`"
                    )
                lane_id = str(lane_id)
                if lane_id in self._lanes:
                    raise LaneMapFormatError.for_lane(lane_id, "duplicate lane id")
                self._lanes[lane_id] = FileLaneMap.Lane(self, lane_id, record)

            for lane in self._lanes.values():
                dangling = [
                    other_id
                    for other_id in lane.linked_lane_ids
                    if other_id not in self._lanes
                ]
                if dangling:
                    self._log.debug(
                        f"Lane `{lane.lane_id}` refers to unknown lanes: {dangling}"
                    )

            # Everything the queries read is built here, so that they never write.
            self._seg_cache.add_lanes(self._lanes.values())
            self._lane_list: List[FileLaneMap.Lane] = list(self._lanes.values())
            self._lane_rtree = self._build_lane_r_tree()

    @property
    def source(self) -> str:
        """Path to the lane file (or the directory containing it)."""
        return self._map_spec.source

    @property
    def lanes(self) -> List[LaneMap.Lane]:
        return list(self._lane_list)

    def is_same_map(self, map_spec: MapSpec) -> bool:
        return (
            map_spec.source == self._map_spec.source
            or FileLaneMap._map_path(map_spec) == FileLaneMap._map_path(self._map_spec)
        ) and FileLaneMap._spec_lane_width(map_spec) == self._default_lane_width

    class Lane(LaneMapWithCaches.Lane):
        """Lane representation for lane files."""

        def __init__(
            self, lane_map: "FileLaneMap", lane_id: str, record: Dict[str, Any]
        ):
            super().__init__(lane_id, lane_map)
            points, widths = FileLaneMap.Lane._parse_centerline(
                lane_id, record, lane_map._default_lane_width
            )
            self._centerline = points
            self._widths = widths
            self._turn_type = FileLaneMap.Lane._parse_turn(lane_id, record.get("turn"))
            self._predecessor_ids = FileLaneMap.Lane._parse_ids(
                lane_id, record, "predecessors"
            )
            self._successor_ids = FileLaneMap.Lane._parse_ids(
                lane_id, record, "successors"
            )
            self._left_neighbor_ids = FileLaneMap.Lane._parse_ids(
                lane_id, record, "left_neighbors"
            )
            self._right_neighbor_ids = FileLaneMap.Lane._parse_ids(
                lane_id, record, "right_neighbors"
            )

            xs = self._centerline[:, 0]
            ys = self._centerline[:, 1]
            self._bbox = BoundingBox(
                min_pt=Point(x=float(np.amin(xs)), y=float(np.amin(ys))),
                max_pt=Point(x=float(np.amax(xs)), y=float(np.amax(ys))),
            )

        @staticmethod
        def _parse_centerline(
            lane_id: str, record: Dict[str, Any], default_width: float
        ) -> Tuple[np.ndarray, List[float]]:
            try:
                raw_points = np.array(record.get("centerline", ()), dtype=np.float64)
            except (TypeError, ValueError) as e:
                raise LaneMapFormatError.for_lane(lane_id, f"bad centerline ({e})")
            if raw_points.ndim != 2 or raw_points.shape[1] < 2:
                raise LaneMapFormatError.for_lane(
                    lane_id, "centerline must be a list of [x, y] points"
                )
            raw_points = raw_points[:, :2]

            raw_widths = record.get("width")
            if raw_widths is None:
                raw_widths = default_width
            if isinstance(raw_widths, (int, float)):
                raw_widths = [raw_widths] * len(raw_points)
            if not isinstance(raw_widths, (list, tuple)):
                raise LaneMapFormatError.for_lane(
                    lane_id, "`width` must be a number or a list of numbers"
                )
            if len(raw_widths) != len(raw_points):
                raise LaneMapFormatError.for_lane(
                    lane_id,
                    f"{len(raw_widths)} widths given for {len(raw_points)} centerline points",
                )

            # drop repeated points so that arc length strictly increases
            keep = [0]
            for i in range(1, len(raw_points)):
                if not np.array_equal(raw_points[i], raw_points[keep[-1]]):
                    keep.append(i)
            if len(keep) < 2:
                raise LaneMapFormatError.for_lane(
                    lane_id, "centerline needs at least two distinct points"
                )
            try:
                widths = [float(raw_widths[i]) for i in keep]
            except (TypeError, ValueError) as e:
                raise LaneMapFormatError.for_lane(lane_id, f"bad width ({e})")
            if any(width < 0 for width in widths):
                raise LaneMapFormatError.for_lane(
                    lane_id, "widths must not be negative"
                )
            return raw_points[keep], widths

        @staticmethod
        def _parse_turn(lane_id: str, turn) -> TurnType:
            if turn is None:
                return TurnType.NO_TURN
            try:
                if isinstance(turn, str):
                    return TurnType[turn.upper()]
                return TurnType(int(turn))
            except (KeyError, ValueError):
                raise LaneMapFormatError.for_lane(
                    lane_id, f"unknown turn type `{turn}`"
                )

        @staticmethod
        def _parse_ids(
            lane_id: str, record: Dict[str, Any], key: str
        ) -> Tuple[str, ...]:
            ids = record.get(key) or ()
            if isinstance(ids, str):
                ids = (ids,)
            if not isinstance(ids, (list, tuple)):
                raise LaneMapFormatError.for_lane(
                    lane_id, f"`{key}` must be a list of ids"
                )
            return tuple(str(other_id) for other_id in ids)

        @property
        def bounding_box(self) -> BoundingBox:
            """The axis aligned bounds of the centerline."""
            return self._bbox

        @property
        def turn_type(self) -> TurnType:
            return self._turn_type

        @property
        def predecessor_ids(self) -> Tuple[str, ...]:
            return self._predecessor_ids

        @property
        def successor_ids(self) -> Tuple[str, ...]:
            return self._successor_ids

        @property
        def left_neighbor_ids(self) -> Tuple[str, ...]:
            return self._left_neighbor_ids

        @property
        def right_neighbor_ids(self) -> Tuple[str, ...]:
            return self._right_neighbor_ids

        @property
        def linked_lane_ids(self) -> Tuple[str, ...]:
            """Every lane id this lane has a topology edge to."""
            return (
                self._predecessor_ids
                + self._successor_ids
                + self._left_neighbor_ids
                + self._right_neighbor_ids
            )

        @cached_property
        def incoming_lanes(self) -> List[LaneMap.Lane]:
            return self._resolve(self._predecessor_ids)

        @cached_property
        def outgoing_lanes(self) -> List[LaneMap.Lane]:
            return self._resolve(self._successor_ids)

        def _resolve(self, lane_ids: Sequence[str]) -> List[LaneMap.Lane]:
            lanes = (self._map.lane_by_id(lane_id) for lane_id in lane_ids)
            return [lane for lane in lanes if lane is not None]

        @cached_property
        def center_polyline(self) -> List[Point]:
            return [Point(float(p[0]), float(p[1])) for p in self._centerline]

        @property
        def center_widths(self) -> List[float]:
            return self._widths

    def lane_by_id(self, lane_id: str) -> Optional["FileLaneMap.Lane"]:
        return self._lanes.get(lane_id)

    def _build_lane_r_tree(self):
        result = rtree.index.Index()
        result.interleaved = True
        for idx, lane in enumerate(self._lane_list):
            result.add(idx, lane.bounding_box.as_rtree_bounds)
        return result

    def lanes_within_radius(
        self, point, radius: float
    ) -> List[Tuple[LaneMap.Lane, float]]:
        point = Point(float(point[0]), float(point[1]))
        x, y = point.x, point.y
        neighboring_lanes = []
        window = (x - radius, y - radius, x + radius, y + radius)
        for i in self._lane_rtree.intersection(window):
            lane = self._lane_list[i]
            d = lane.distance_to(point)
            if d <= radius:
                neighboring_lanes.append((lane, d))
        neighboring_lanes.sort(
            key=lambda lane_dist: (lane_dist[1], lane_dist[0].lane_id)
        )
        return neighboring_lanes
