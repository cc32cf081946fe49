"""
Geometry values: bounds, points, intervals, graph trails, plus the trail
and point-array utilities the analyzers share.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .mathutil import trim_double


# ============================================================================
# VALUES
# ============================================================================

@dataclass
class Bounds:
    """Viewing rectangle (left, right, top, bottom)."""

    left: float = 0.0
    right: float = 0.0
    top: float = 0.0
    bottom: float = 0.0

    def set_bounds(self, left: float, right: float, top: float, bottom: float):
        self.left, self.right, self.top, self.bottom = left, right, top, bottom

    def copy(self) -> 'Bounds':
        return Bounds(self.left, self.right, self.top, self.bottom)

    def maximize(self, b: 'Bounds') -> bool:
        """Grow self to cover b. Returns True if anything changed."""
        changed = False
        if b.left < self.left:
            self.left = b.left
            changed = True
        if b.right > self.right:
            self.right = b.right
            changed = True
        if b.top > self.top:
            self.top = b.top
            changed = True
        if b.bottom < self.bottom:
            self.bottom = b.bottom
            changed = True
        return changed

    def to_dict(self) -> dict:
        return {"left": self.left, "right": self.right, "top": self.top, "bottom": self.bottom}


@dataclass
class PointXY:
    x: float
    y: float
    digits: int = field(default=3, compare=False, repr=False)

    def translate(self, dx: float, dy: float):
        self.x += dx
        self.y += dy

    def translated(self, dx: float, dy: float) -> 'PointXY':
        return PointXY(self.x + dx, self.y + dy)

    def sum(self, p: 'PointXY') -> 'PointXY':
        return self.translated(p.x, p.y)

    def difference(self, p: 'PointXY') -> 'PointXY':
        return self.translated(-p.x, -p.y)

    def to_polar(self) -> 'PointRT':
        return PointRT(math.hypot(self.x, self.y), math.atan2(self.y, self.x))

    @property
    def x_string(self) -> str:
        return trim_double(self.x, self.digits)

    @property
    def y_string(self) -> str:
        return trim_double(self.y, self.digits)

    def to_feature_node(self):
        from .features import MdeFeatureNode

        node = MdeFeatureNode()
        node.add_key("X")
        node.add_value("X", self.x_string)
        node.add_key("Y")
        node.add_value("Y", self.y_string)
        return node

    def __str__(self):
        return f"({self.x_string}, {self.y_string})"


@dataclass
class PointRT:
    r: float
    theta: float

    def to_cartesian(self) -> PointXY:
        return PointXY(self.r * math.cos(self.theta), self.r * math.sin(self.theta))


class MultiPointXY:
    """One x value and every y value the curve takes there."""

    __slots__ = ("x", "y_array")

    def __init__(self, x: float, y_array: Sequence[float] = ()):
        self.x = x
        self.y_array = [float(y) for y in y_array]

    def __len__(self):
        return len(self.y_array)

    def __repr__(self):
        return f"MultiPointXY({self.x}, {self.y_array})"

    def __str__(self):
        ys = ", ".join(trim_double(y, 3) for y in self.y_array)
        return f"x = {trim_double(self.x, 3)}\ny values:" + (f"\n{ys}" if ys else "  (none)")


class IntervalXY:
    """
    Interval in one or two variables, rendered as
    '{x such that a <= x <= b}'. Endpoints may be excluded.
    """

    EXCLUDE_LOW_X = 1
    EXCLUDE_HIGH_X = 2
    EXCLUDE_LOW_Y = 4
    EXCLUDE_HIGH_Y = 8

    _X = 1
    _Y = 2

    def __init__(self, low: PointXY, high: PointXY, variables: Sequence[str] = ("x", "y")):
        if len(variables) != 2:
            raise ValueError("Must specify exactly two variables for new IntervalXY")
        self.var_x, self.var_y = variables
        self.exclusions = 0
        self.digits = 3
        if low.x > high.x:
            self._inverted(self.var_x)
        if low.y > high.y:
            self._inverted(self.var_y)
        self.low, self.high = low, high
        self._used = self._X | self._Y

    @classmethod
    def of(cls, var: str, low: float, high: float) -> 'IntervalXY':
        """Interval in a single variable."""
        if low > high:
            cls._inverted(var)
        interval = cls(PointXY(low, 0.0), PointXY(high, 0.0), (var, "y"))
        interval._used = cls._X
        return interval

    @staticmethod
    def _inverted(var: str):
        raise ValueError(f"Low limit for variable {var} is greater than its upper limit")

    def set_exclusions(self, e: int):
        self.exclusions = e
        if self.low.x == self.high.x and e & (self.EXCLUDE_LOW_X | self.EXCLUDE_HIGH_X):
            raise ValueError(f"Operation results in empty interval for variable {self.var_x}")
        if self.low.y == self.high.y and e & (self.EXCLUDE_LOW_Y | self.EXCLUDE_HIGH_Y):
            raise ValueError(f"Operation results in empty interval for variable {self.var_y}")

    @property
    def low_x(self) -> float:
        return self.low.x

    @property
    def high_x(self) -> float:
        return self.high.x

    @property
    def low_y(self) -> float:
        return self.low.y

    @property
    def high_y(self) -> float:
        return self.high.y

    def _sign(self, which_var: int, which_point: int) -> str:
        mask = 1 << (which_point + (which_var << 1))
        return " < " if self.exclusions & mask else " <= "

    def __str__(self):
        parts = []
        if self._used & self._X:
            parts.append(f"{{{self.var_x} such that {trim_double(self.low_x, self.digits)}"
                         f"{self._sign(0, 0)}{self.var_x}{self._sign(0, 1)}"
                         f"{trim_double(self.high_x, self.digits)}}}")
        if self._used & self._Y:
            parts.append(f"{{{self.var_y} such that {trim_double(self.low_y, self.digits)}"
                         f"{self._sign(1, 0)}{self.var_y}{self._sign(1, 1)}"
                         f"{trim_double(self.high_y, self.digits)}}}")
        return " and\n".join(parts)


class GraphTrail:
    """An ordered, non-empty run of points drawn as one polyline."""

    def __init__(self, points: Sequence[PointXY]):
        if points is None:
            raise TypeError("Null points")
        if len(points) < 1:
            raise ValueError("Must have at least one point to make a GraphTrail")
        self.points: List[PointXY] = list(points)

    @classmethod
    def from_pairs(cls, pairs: Sequence[Sequence[float]]) -> 'GraphTrail':
        if pairs is None:
            raise TypeError("Null points")
        return cls([PointXY(p[0], p[1]) for p in pairs])

    def __len__(self):
        return len(self.points)

    def points_copy(self) -> List[PointXY]:
        return [PointXY(p.x, p.y) for p in self.points]

    def find_left(self) -> float:
        return min(p.x for p in self.points)

    def find_right(self) -> float:
        return max(p.x for p in self.points)

    def __repr__(self):
        return f"GraphTrail(length={len(self.points)})"


# ============================================================================
# TRAIL UTILITIES
# ============================================================================

def segment_boundaries(data: Sequence[Optional[MultiPointXY]], max_jump: float) -> List[int]:
    """
    Indices where a new segment starts, bracketed by 0 and len(data).

    A segment ends where the number of y values changes or any y value
    jumps by more than max_jump.
    """
    bounds = [0]
    for i in range(1, len(data)):
        here, before = data[i], data[i - 1]
        if here is None or before is None:
            continue
        if len(here.y_array) != len(before.y_array):
            bounds.append(i)
            continue
        if any(abs(a - b) > max_jump for a, b in zip(here.y_array, before.y_array)):
            bounds.append(i)
    bounds.append(len(data))
    return bounds


def branches_from(data: Sequence[MultiPointXY], max_jump: float) -> List[List[tuple]]:
    """Split samples into single-valued branches of (x, y) pairs."""
    sb = segment_boundaries(data, max_jump)
    branches = []
    for low, high in zip(sb[:-1], sb[1:]):
        if low >= len(data) or data[low] is None:
            continue
        for j in range(len(data[low].y_array)):
            branches.append([(data[k].x, data[k].y_array[j]) for k in range(low, high)
                             if data[k] is not None and j < len(data[k].y_array)])
    return branches


def graph_trails_from(data: Sequence[MultiPointXY], max_jump: float) -> List[GraphTrail]:
    """Graph trails of the samples, dropping any with fewer than two points."""
    return [GraphTrail.from_pairs(b) for b in branches_from(data, max_jump) if len(b) > 1]


# ============================================================================
# POINT ARRAY UTILITIES
# ============================================================================

def to_cartesian(polars: Sequence[PointXY]) -> List[PointXY]:
    """Convert (theta, r) pairs stored as (x, y) into Cartesian points."""
    return [PointRT(p.y, p.x).to_cartesian() for p in polars]


def fill_points(index: int, length: int, x_data, y_data) -> List[MultiPointXY]:
    point = MultiPointXY(x_data[index], [y_data[index]])
    return [point] * length


def copy_points(left: int, right: int, x_data, y_data) -> List[MultiPointXY]:
    return [MultiPointXY(x_data[i], [y_data[i]]) for i in range(left, right + 1)]


def decimate_points(left: int, right: int, length: int, x_data, y_data) -> List[MultiPointXY]:
    """Nearest-index subsample of data[left..right] to `length` points, ends kept exactly."""
    step = (right - left + 1) / length
    r = [MultiPointXY(x_data[left], [y_data[left]])]
    offset = left + step
    for _ in range(1, length - 1):
        index = min(int(math.floor(offset + 0.5)), right)
        r.append(MultiPointXY(x_data[index], [y_data[index]]))
        offset += step
    r.append(MultiPointXY(x_data[right], [y_data[right]]))
    return r


def interpolate_points(left: int, right: int, length: int, x_data, y_data) -> List[MultiPointXY]:
    """Stretch data[left..right] to `length` points with linear in-betweens, ends kept exactly."""
    if left == right:
        return fill_points(left, 1, x_data, y_data)

    budget = length - (right - left + 1)
    step = (right - left) / (budget + 1)
    last = length - 1
    r: List[Optional[MultiPointXY]] = [None] * length
    r[0] = MultiPointXY(x_data[left], [y_data[left]])
    total = 0.0
    i, index = 1, left + 1
    while i < last and index <= right:
        count = 0
        position = index - left
        while total + step < position:
            total += step
            count += 1
        if count > 0:
            x, y = x_data[index - 1], y_data[index - 1]
            x_step = (x_data[index] - x) / (count + 1)
            y_step = (y_data[index] - y) / (count + 1)
            while True:
                x += x_step
                y += y_step
                r[i] = MultiPointXY(x, [y])
                count -= 1
                i += 1
                if count <= 0 or i >= last:
                    break
        if i < last:
            r[i] = MultiPointXY(x_data[index], [y_data[index]])
        i += 1
        index += 1
    r[last] = MultiPointXY(x_data[right], [y_data[right]])
    return [p for p in r if p is not None]
