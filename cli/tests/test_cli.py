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
import yaml
from click.testing import CliRunner

from cli.cli import pmq
from predmap.core.default_map_builder import _clear_cache


@pytest.fixture
def lane_file(tmp_path):
    data = {
        "lanes": [
            {
                "id": "east",
                "centerline": [[0, 0], [10, 0], [13, -4]],
                "width": [3.0, 3.0, 3.4],
                "left_neighbors": ["north"],
                "successors": ["next"],
            },
            {"id": "north", "centerline": [[0, 3.5], [20, 3.5]], "turn": "LEFT_TURN"},
            {"id": "next", "centerline": [[13, -4], [16, -8]]},
        ]
    }
    path = tmp_path / "lanes.yaml"
    path.write_text(yaml.safe_dump(data))
    yield str(path)
    _clear_cache()


def test_lane(lane_file):
    result = CliRunner().invoke(pmq, ["lane", lane_file, "east"])
    assert result.exit_code == 0, result.output
    assert "length=15.000" in result.output
    assert "NO_TURN" in result.output
    assert "'north'" in result.output

    result = CliRunner().invoke(pmq, ["lane", lane_file, "north"])
    assert "LEFT_TURN" in result.output


def test_unknown_lane(lane_file):
    result = CliRunner().invoke(pmq, ["lane", lane_file, "west"])
    assert result.exit_code != 0
    assert "No lane `west`" in result.output


def test_project(lane_file):
    result = CliRunner().invoke(pmq, ["project", lane_file, "east", "12.3", "-1.4"])
    assert result.exit_code == 0, result.output
    assert "s=12.500 l=1.000" in result.output


def test_sample(lane_file):
    result = CliRunner().invoke(pmq, ["sample", lane_file, "east", "--", "-5"])
    assert result.exit_code == 0, result.output
    assert "x=-5.000 y=0.000 heading=0.000 width=3.000" in result.output


def test_on_lane(lane_file):
    result = CliRunner().invoke(pmq, ["on-lane", lane_file, "5", "0.5"])
    assert result.exit_code == 0, result.output
    assert result.output.split() == ["east"]

    result = CliRunner().invoke(
        pmq, ["on-lane", lane_file, "14", "-5", "--heading", "-0.9", "--prev", "east"]
    )
    assert result.exit_code == 0, result.output
    assert result.output.split() == ["next", "east"]

    result = CliRunner().invoke(pmq, ["on-lane", lane_file, "500", "500"])
    assert "No lanes found." in result.output


def test_bad_lane_file(tmp_path):
    path = tmp_path / "lanes.yaml"
    path.write_text(yaml.safe_dump({"lanes": [{"id": "a", "centerline": [[0, 0]]}]}))
    result = CliRunner().invoke(pmq, ["lane", str(path), "a"])
    assert result.exit_code != 0
    assert "malformed" in result.output


def test_truncated_lane_file(tmp_path):
    path = tmp_path / "lanes.json"
    path.write_text('{"lanes": [{"id": "a", "centerline": [[0, 0], [1')
    result = CliRunner().invoke(pmq, ["lane", str(path), "a"])
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "cannot be parsed" in result.output
    assert "Traceback" not in result.output
