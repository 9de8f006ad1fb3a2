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


class LaneMapFormatError(ValueError):
    """An exception raised when a lane map file cannot be interpreted."""

    @classmethod
    def for_lane(cls, lane_id, reason: str) -> "LaneMapFormatError":
        """Generate a `LaneMapFormatError` describing what is wrong with lane `lane_id`."""
        return cls(f"Lane `{lane_id}` is malformed: {reason}")


class MapNotLoadedError(RuntimeError):
    """An exception raised if a map query is made without a loaded lane map."""

    @classmethod
    def required_to(cls, thing: str) -> "MapNotLoadedError":
        """Generate a `MapNotLoadedError` requiring a lane map to do `thing`."""
        return cls(
            f"A loaded lane map is required to {thing}. Build one first with `predmap.core.default_map_builder.get_lane_map()` and pass it to the query object."
        )
