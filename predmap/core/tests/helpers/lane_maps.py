import json
import tempfile
from contextlib import contextmanager
from pathlib import Path

import yaml


def lane_map_data():
    """A small lane map.

    l18 -> l21 -> l99 -> l100 run east along y=3.5.  l20 runs east
    beneath l21 and bends south-east at x=10.  l22 lies left of l21 and
    l30 runs west below l20.
    """
    return {
        "lanes": [
            {
                "id": "l20",
                "centerline": [[0, 0], [10, 0], [13, -4]],
                "width": [3.0, 3.0, 3.4],
                "left_neighbors": ["l21"],
                "turn": 1,
            },
            {
                "id": "l21",
                "centerline": [[0, 3.5], [10, 3.5], [20, 3.5]],
                "width": 3.5,
                "predecessors": ["l18"],
                "successors": ["l99"],
                "left_neighbors": ["l22"],
                "right_neighbors": ["l20"],
            },
            {
                "id": "l22",
                "centerline": [[0, 7], [20, 7]],
                "width": 3.5,
                "successors": ["l404"],
            },
            {
                "id": "l18",
                "centerline": [[-20, 3.5], [0, 3.5]],
                "width": 3.5,
                "successors": ["l21"],
            },
            {
                "id": "l99",
                "centerline": [[20, 3.5], [40, 3.5]],
                "width": 3.5,
                "predecessors": ["l21"],
                "successors": ["l100"],
            },
            {
                "id": "l100",
                "centerline": [[40, 3.5], [60, 3.5]],
                "width": 3.5,
                "predecessors": ["l99"],
            },
            {"id": "l30", "centerline": [[10, -3.5], [0, -3.5]]},
            {"id": "l5", "centerline": [[50, 50], [60, 40]], "turn": "RIGHT_TURN"},
            {"id": "l10", "centerline": [[100, 100], [120, 100]], "turn": 0},
        ]
    }


@contextmanager
def temp_lane_file(data, file_name: str = "lanes.yaml"):
    """Writes `data` to a lane file in a temporary directory and yields its path."""
    with tempfile.TemporaryDirectory() as temp_dir:
        lane_file = Path(temp_dir) / file_name
        with lane_file.open("w") as f:
            if file_name.endswith(".json"):
                json.dump(data, f)
            else:
                yaml.safe_dump(data, f)
        yield lane_file
