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

import pytest
from helpers.lane_maps import lane_map_data

from predmap.core.file_lane_map import FileLaneMap
from predmap.core.lane_relations import LaneRelations
from predmap.core.map_spec import MapSpec


@pytest.fixture
def lane_map():
    return FileLaneMap(MapSpec(source="fixture_lanes.yaml"), lane_map_data())


@pytest.fixture
def relations(lane_map):
    return LaneRelations(lane_map, max_hops=2)


@pytest.fixture
def lanes(lane_map):
    return {lane.lane_id: lane for lane in lane_map.lanes}


def test_default_max_hops(lane_map):
    assert LaneRelations(lane_map).max_hops == 2


def test_empty_references_are_vacuously_true(relations, lanes):
    lane = lanes["l10"]
    assert relations.is_identical_lane(lane, [])
    assert relations.is_left_neighbor_lane(lane, [])
    assert relations.is_right_neighbor_lane(lane, [])
    assert relations.is_successor_lane(lane, [])
    assert relations.is_predecessor_lane(lane, [])


def _predicates(relations):
    return (
        relations.is_identical_lane,
        relations.is_left_neighbor_lane,
        relations.is_right_neighbor_lane,
        relations.is_successor_lane,
        relations.is_predecessor_lane,
    )


def test_empty_references_hold_even_for_a_missing_lane(relations):
    assert all(predicate(None, []) for predicate in _predicates(relations))


def test_missing_lane_is_unrelated_to_any_reference(relations, lanes):
    for predicate in _predicates(relations):
        assert not predicate(None, [lanes["l21"]])
        assert not predicate(None, ["l21"])


@pytest.mark.parametrize(
    "lane_id, expected",
    [
        # identical, left, right, successor, predecessor
        ("l21", (True, False, False, False, False)),
        ("l22", (False, True, False, False, False)),
        ("l20", (False, False, True, False, False)),
        ("l99", (False, False, False, True, False)),
        ("l100", (False, False, False, True, False)),
        ("l18", (False, False, False, False, True)),
    ],
)
def test_relation_categories_are_disjoint(relations, lanes, lane_id, expected):
    lane = lanes[lane_id]
    found = tuple(
        predicate(lane, [lanes["l21"]]) for predicate in _predicates(relations)
    )
    assert found == expected
    assert sum(found) == 1


def test_unrelated_lane(relations, lanes):
    for lane_id in ("l10", "l30", "l5"):
        lane = lanes[lane_id]
        assert not any(
            predicate(lane, [lanes["l21"]]) for predicate in _predicates(relations)
        )


def test_identical_lane(relations, lanes):
    assert relations.is_identical_lane(lanes["l20"], [lanes["l21"], lanes["l20"]])
    assert relations.is_identical_lane(lanes["l20"], ["l20"])
    assert not relations.is_identical_lane(lanes["l20"], [lanes["l21"]])


def test_neighbors(relations, lanes):
    l20, l21, l22 = lanes["l20"], lanes["l21"], lanes["l22"]
    assert relations.is_left_neighbor_lane(l21, [l20])
    assert relations.is_right_neighbor_lane(l20, [l21])
    assert relations.is_left_neighbor_lane(l22, [l21])
    assert not relations.is_left_neighbor_lane(l20, [l21])
    assert not relations.is_right_neighbor_lane(l21, [l20])
    assert not relations.is_left_neighbor_lane(l22, [l20])
    assert relations.is_left_neighbor_lane(l21, [lanes["l10"], l20])


def test_neighbors_recorded_on_one_side_only(relations, lanes):
    # only l21 records the l21/l22 edge
    assert lanes["l22"].right_neighbor_ids == ()
    assert relations.is_right_neighbor_lane(lanes["l21"], [lanes["l22"]])
    assert relations.is_left_neighbor_lane(lanes["l22"], [lanes["l21"]])


def test_successors_within_hop_bound(relations, lanes):
    assert relations.is_successor_lane(lanes["l99"], [lanes["l21"]])
    assert relations.is_successor_lane(lanes["l100"], [lanes["l21"]])
    assert not relations.is_successor_lane(lanes["l100"], [lanes["l18"]])
    assert not relations.is_successor_lane(lanes["l21"], [lanes["l99"]])
    assert not relations.is_successor_lane(lanes["l21"], [lanes["l21"]])


def test_predecessors_within_hop_bound(relations, lanes):
    assert relations.is_predecessor_lane(lanes["l18"], [lanes["l21"]])
    assert relations.is_predecessor_lane(lanes["l18"], [lanes["l99"]])
    assert not relations.is_predecessor_lane(lanes["l18"], [lanes["l100"]])
    assert not relations.is_predecessor_lane(lanes["l99"], [lanes["l21"]])


def test_hop_bound_is_configurable(lane_map, lanes):
    one_hop = LaneRelations(lane_map, max_hops=1)
    assert one_hop.is_successor_lane(lanes["l99"], [lanes["l21"]])
    assert not one_hop.is_successor_lane(lanes["l100"], [lanes["l21"]])

    three_hops = LaneRelations(lane_map, max_hops=3)
    assert three_hops.is_successor_lane(lanes["l100"], [lanes["l18"]])
    assert three_hops.is_predecessor_lane(lanes["l18"], [lanes["l100"]])


def test_reachable_lane_ids(relations, lanes):
    assert relations.reachable_lane_ids(lanes["l18"]) == {"l21", "l99"}
    assert relations.reachable_lane_ids(lanes["l100"], forward=False) == {
        "l99",
        "l21",
    }
    # l22 only links to a lane missing from the map
    assert relations.reachable_lane_ids(lanes["l22"]) == set()


def test_unresolved_references_are_ignored(relations, lanes):
    assert not relations.is_identical_lane(lanes["l20"], ["l404"])
    assert not relations.is_successor_lane(lanes["l99"], ["l404", None])
    assert relations.is_successor_lane(lanes["l99"], ["l404", None, "l21"])
    assert relations.is_left_neighbor_lane(lanes["l21"], [None, lanes["l20"]])
