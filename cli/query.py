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

import click
from rich import print

from predmap.core.map_spec import MapSpec
from predmap.core.prediction_map import PredictionMap
from predmap.core.utils.custom_exceptions import LaneMapFormatError, MapNotLoadedError

_map_argument = click.argument(
    "map_source", type=click.Path(exists=True), metavar="<map>"
)


def _load(map_source: str) -> PredictionMap:
    try:
        return PredictionMap.from_spec(MapSpec(source=map_source))
    except (LaneMapFormatError, MapNotLoadedError) as e:
        raise click.ClickException(str(e))


def _lane(pmap: PredictionMap, lane_id: str):
    lane = pmap.lane_by_id(lane_id)
    if lane is None:
        raise click.ClickException(f"No lane `{lane_id}` in {pmap.lane_map.source}")
    return lane


@click.command(name="lane", help="Describe a lane and its topology.")
@_map_argument
@click.argument("lane_id", metavar="<lane_id>")
def describe_lane(map_source, lane_id):
    pmap = _load(map_source)
    lane = _lane(pmap, lane_id)
    print(
        f"[bold]{lane.lane_id}[/bold] length={lane.length:.3f} turn={lane.turn_type.name}"
    )
    print(f"  predecessors:    {list(lane.predecessor_ids)}")
    print(f"  successors:      {list(lane.successor_ids)}")
    print(f"  left neighbors:  {list(lane.left_neighbor_ids)}")
    print(f"  right neighbors: {list(lane.right_neighbor_ids)}")


@click.command(name="project", help="Project a point onto a lane as (s, l).")
@_map_argument
@click.argument("lane_id", metavar="<lane_id>")
@click.argument("x", type=float)
@click.argument("y", type=float)
def project(map_source, lane_id, x, y):
    pmap = _load(map_source)
    s, l = pmap.get_projection((x, y), _lane(pmap, lane_id))
    print(f"s={s:.3f} l={l:.3f}")


@click.command(
    name="sample", help="Sample lane position, heading and width at offset s."
)
@_map_argument
@click.argument("lane_id", metavar="<lane_id>")
@click.argument("s", type=float)
def sample(map_source, lane_id, s):
    pmap = _load(map_source)
    x, y, heading, width = pmap.sample_at(_lane(pmap, lane_id), s)
    print(f"x={x:.3f} y={y:.3f} heading={heading:.3f} width={width:.3f}")


@click.command(name="on-lane", help="List the lanes a point occupies.")
@_map_argument
@click.argument("x", type=float)
@click.argument("y", type=float)
@click.option("--heading", type=float, default=0.0, help="Heading in radians, 0 is +x.")
@click.option("--radius", type=float, default=2.0, help="Search radius in meters.")
@click.option(
    "--prev",
    multiple=True,
    help="Id of a lane the point was on before. May be repeated.",
)
def on_lane(map_source, x, y, heading, radius, prev):
    pmap = _load(map_source)
    lanes = pmap.on_lane(list(prev), (x, y), heading, radius)
    if not lanes:
        print("No lanes found.")
        return
    for lane in lanes:
        print(lane.lane_id)
