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

import math

import pytest
from helpers.lane_maps import lane_map_data

from predmap.core.file_lane_map import FileLaneMap
from predmap.core.lane_search import LaneSearch
from predmap.core.map_spec import MapSpec


@pytest.fixture
def lane_map():
    return FileLaneMap(MapSpec(source="fixture_lanes.yaml"), lane_map_data())


@pytest.fixture
def search(lane_map):
    return LaneSearch(
        lane_map,
        on_lane_heading_tolerance=math.pi / 3,
        nearby_heading_tolerance=math.pi / 2,
    )


def _ids(lanes):
    return [lane.lane_id for lane in lanes]


def test_on_lane_without_prior_lanes(search):
    assert _ids(search.on_lane([], (5, 0.5), 0, 2)) == ["l20"]
    # l30 runs the other way
    assert _ids(search.on_lane([], (5, 0.5), 0, 5)) == ["l20", "l21"]
    assert _ids(search.on_lane([], (5, 3.6), 0, 5)) == ["l21", "l22", "l20"]
    assert search.on_lane([], (500, 500), 0, 5) == []


def test_on_lane_heading_tolerance(search):
    assert _ids(search.on_lane([], (5, 0.5), 0.5, 2)) == ["l20"]
    assert _ids(search.on_lane([], (5, 0.5), -1.4, 2)) == ["l20"]
    assert search.on_lane([], (5, 0.5), math.pi / 2, 2) == []
    assert _ids(search.on_lane([], (5, -3), math.pi, 1)) == ["l30"]


def test_on_lane_heading_follows_the_lane_bend(search):
    # abreast of l20's second segment
    assert _ids(search.on_lane([], (12.3, -1.4), math.atan2(-4, 3), 2)) == ["l20"]
    assert search.on_lane([], (12.3, -1.4), math.pi / 2, 2) == []


def test_on_lane_with_prior_lanes(search, lane_map):
    l18 = lane_map.lane_by_id("l18")
    l21 = lane_map.lane_by_id("l21")
    assert _ids(search.on_lane([l18], (5, 3.6), 0, 5)) == ["l21"]
    assert _ids(search.on_lane([l21], (5, 3.6), 0, 5)) == ["l21"]
    assert _ids(search.on_lane(["l18"], (5, 3.6), 0, 5)) == ["l21"]
    assert search.on_lane(["l99"], (5, 3.6), 0, 5) == []
    # prior lanes that cannot be resolved leave nothing to follow
    assert search.on_lane(["l404"], (5, 3.6), 0, 5) == []


def test_on_lane_within_lane_bounds(search):
    assert _ids(search.on_lane([], (5, 0.5), 0, 5, on_lane=True)) == ["l20"]
    assert search.on_lane([], (-1, 0.5), 0, 2, on_lane=True) == []
    assert _ids(search.on_lane([], (-1, 0.5), 0, 2)) == ["l20"]


def test_nearby_lanes_without_current_lanes(search):
    assert _ids(search.nearby_lanes((5, 0.5), 0, 5, [])) == ["l20", "l21"]
    assert _ids(search.nearby_lanes((5, 0.5), math.pi, 5, [])) == ["l30"]
    assert search.nearby_lanes((500, 500), 0, 5, []) == []


def test_nearby_lanes_are_neighbors_of_current_lanes(search, lane_map):
    l20 = lane_map.lane_by_id("l20")
    l21 = lane_map.lane_by_id("l21")
    assert _ids(search.nearby_lanes((5, 0.5), 0, 5, [l20])) == ["l21"]
    assert _ids(search.nearby_lanes((5, 0.5), 0, 8, [l20])) == ["l21"]
    assert _ids(search.nearby_lanes((5, 0.5), 0, 8, ["l20"])) == ["l21"]
    assert _ids(search.nearby_lanes((5, 3.6), 0, 5, [l21])) == ["l22", "l20"]


def test_nearby_lanes_never_returns_current_lanes(search, lane_map):
    l20 = lane_map.lane_by_id("l20")
    l21 = lane_map.lane_by_id("l21")
    assert _ids(search.nearby_lanes((5, 3.6), 0, 5, [l20, l21])) == ["l22"]
    found = search.nearby_lanes((5, 3.6), 0, 5, [l21, l21, "l21"])
    assert _ids(found) == ["l22", "l20"]


def test_nearby_lanes_requires_projection_within_neighbor(search, lane_map):
    l21 = lane_map.lane_by_id("l21")
    assert _ids(search.nearby_lanes((18, 5), 0, 3, [l21])) == ["l22"]
    # l22 is close, but the point is behind its start
    assert search.nearby_lanes((-1, 5.5), 0, 3, [l21]) == []


@pytest.mark.parametrize(
    "point, heading",
    [
        ((5, 0.5), 0),
        ((5, 3.6), 0),
        ((12.3, -1.4), -0.9),
        ((-5, 3.4), 0),
        ((30, 3.5), 0),
        ((5, -3), math.pi),
    ],
)
@pytest.mark.parametrize("prev_lanes", [["l18"], ["l21"], ["l20", "l99"], ["l404"]])
def test_prior_lanes_only_narrow_on_lane(search, point, heading, prev_lanes):
    unrestricted = search.on_lane([], point, heading, 5)
    restricted = search.on_lane(prev_lanes, point, heading, 5)
    assert set(restricted) <= set(unrestricted)
    assert restricted == [lane for lane in unrestricted if lane in restricted]

    within = search.on_lane(prev_lanes, point, heading, 5, on_lane=True)
    assert set(within) <= set(restricted)
