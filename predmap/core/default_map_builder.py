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

from __future__ import annotations

import os
import threading
import warnings
from enum import IntEnum
from typing import TYPE_CHECKING, NamedTuple, Optional, Tuple

from predmap.core.utils.file import file_md5_hash, path2hash

if TYPE_CHECKING:
    from predmap.core.lane_map import LaneMap
    from predmap.core.map_spec import MapSpec


_existing_map = None
_map_lock = threading.Lock()


class _LaneMapInfo(NamedTuple):
    map_spec: MapSpec  # pytype: disable=invalid-annotation
    obj: LaneMap
    map_hash: str


def _clear_lane_caches():
    from predmap.core.lane_map import LaneMapWithCaches

    LaneMapWithCaches.clear_lane_caches()


def _cache_result(map_spec, lane_map: LaneMap, lane_map_hash: str):
    global _existing_map
    replaced = _existing_map
    # a single reference assignment, so readers see the old or the new map
    _existing_map = _LaneMapInfo(map_spec, lane_map, lane_map_hash)
    if replaced and replaced.obj is not lane_map:
        _clear_lane_caches()


def _clear_cache():
    global _existing_map
    if _existing_map:
        import gc

        # Try to only keep one map around at a time...
        _existing_map = None
        _clear_lane_caches()
        gc.collect()


class MapType(IntEnum):
    """The format of a map."""

    Unknown = 0
    Json = 1
    Yaml = 2


def find_mapfile_in_dir(map_dir: str) -> Tuple[MapType, str]:
    """Looks in a given directory for a supported map file."""
    map_filename_type = {
        "lanes.json": MapType.Json,
        "lanes.yaml": MapType.Yaml,
        "lanes.yml": MapType.Yaml,
    }
    map_type = MapType.Unknown
    map_path = map_dir
    for f in sorted(os.listdir(map_dir)):
        cand_map_type = map_filename_type.get(f)
        if cand_map_type is not None:
            return cand_map_type, os.path.join(map_dir, f)
    return map_type, map_path


def map_type_of(map_source: str) -> MapType:
    """Guess the format of a lane map file from its name."""
    if map_source.endswith(".json"):
        return MapType.Json
    if map_source.endswith((".yaml", ".yml")):
        return MapType.Yaml
    return MapType.Unknown


def current_lane_map() -> Optional[LaneMap]:
    """The lane map most recently built by `get_lane_map()`, if any."""
    existing = _existing_map
    return existing.obj if existing else None


# This function should be re-callable (although caching is up to the implementation).
# The idea here is that anything that needs a LaneMap can call this builder
# to get or create one of default type.
#
# Downstream developers who want to support other map formats (by extending
# the LaneMap base class) can create their own version of this to reference
# from a MapSpec and shouldn't have to change much else.
def get_lane_map(map_spec) -> Tuple[Optional[LaneMap], Optional[str]]:
    """@return a LaneMap object and a hash
    that uniquely identifies it. Changes to the hash
    should signify that the map is different enough
    that map-related caches should be reloaded.
    The LaneMap object is cached here and re-used while
    the same map is requested.
    """
    assert map_spec, "A lane map spec must be specified"
    assert map_spec.source, "A lane map source must be specified"

    if os.path.isdir(map_spec.source):
        map_type, map_source = find_mapfile_in_dir(map_spec.source)
    else:
        map_source = map_spec.source
        map_type = map_type_of(map_source)

    if map_type in (MapType.Json, MapType.Yaml):
        from predmap.core.file_lane_map import FileLaneMap

        map_class = FileLaneMap
    else:
        warnings.warn(
            f"A lane map can not be resolved from the given reference: `{map_spec.source}`.",
            category=UserWarning,
        )
        return None, None

    with _map_lock:
        existing = _existing_map
        if existing:
            if isinstance(existing.obj, map_class) and existing.obj.is_same_map(
                map_spec
            ):
                return existing.obj, existing.map_hash

        # the replacement is fully built before it becomes visible
        lane_map = map_class.from_spec(map_spec)
        if lane_map is None:
            return None, None

        if os.path.isfile(map_source):
            lane_map_hash = file_md5_hash(map_source)
        else:
            lane_map_hash = path2hash(lane_map.source)
        _cache_result(map_spec, lane_map, lane_map_hash)

    return lane_map, lane_map_hash
