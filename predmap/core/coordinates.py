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
from dataclasses import dataclass
from typing import NamedTuple, Optional, SupportsFloat, Union

import numpy as np
from shapely.geometry import Point as SPoint

from predmap.core.utils.math import constrain_angle, vec_to_radians


class Point(NamedTuple):
    """A coordinate in the map plane."""

    x: float
    y: float
    z: Optional[float] = 0

    @classmethod
    def from_np_array(cls, np_array: np.ndarray):
        """Factory for constructing a Point object from a numpy array."""
        assert 2 <= len(np_array) <= 3
        z = np_array[2] if len(np_array) > 2 else 0.0
        return cls(float(np_array[0]), float(np_array[1]), float(z))

    @property
    def as_shapely(self) -> SPoint:
        """Convert this point to a 2D shapely point."""
        return SPoint(self.x, self.y)


class RefLinePoint(NamedTuple):
    """A reference line coordinate, also known as a Frenet coordinate."""

    s: float  # offset along lane from start of lane
    t: Optional[float] = 0  # lateral displacement from center of lane, left positive


@dataclass(frozen=True)
class BoundingBox:
    """A 2-dimensional axis aligned box located in a [x, y] coordinate system."""

    min_pt: Point
    max_pt: Point

    @property
    def as_rtree_bounds(self):
        """The (xmin, ymin, xmax, ymax) tuple used by interleaved rtree indices."""
        return (self.min_pt.x, self.min_pt.y, self.max_pt.x, self.max_pt.y)


class Heading(float):
    """In this space we use radians, 0 is facing along +x (east), and headings
    turn counter-clockwise.  Values are constrained to [-pi, pi]."""

    def __init__(self, value=...):
        float.__init__(value)

    def __new__(self, x: Union[SupportsFloat, Ellipsis.__class__] = ...):
        """A override to constrain heading to -pi to pi"""
        value = x
        if x in {..., None}:
            value = 0
        return float.__new__(self, constrain_angle(float(value)))

    @classmethod
    def from_vector(cls, vector) -> "Heading":
        """The heading of a (dx, dy) direction vector."""
        return cls(vec_to_radians(vector))

    def relative_to(self, other: "Heading") -> "Heading":
        """
        Computes the relative heading w.r.t. the given heading
        >>> Heading(math.pi/4).relative_to(Heading(math.pi))
        Heading(-2.356194490192345)
        """
        assert isinstance(other, Heading)

        rel_heading = Heading(self - other)

        assert -math.pi <= rel_heading <= math.pi, f"{rel_heading}"

        return rel_heading

    def __repr__(self):
        return f"Heading({super().__repr__()})"


def as_point(value) -> Point:
    """Accepts a Point, an (x, y[, z]) sequence or a numpy array and returns a Point."""
    if isinstance(value, Point):
        return value
    return Point.from_np_array(value)
