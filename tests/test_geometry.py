"""Bounds, points, intervals and trail utilities."""

import math

import pytest

from mde_engine.geometry import (
    Bounds, GraphTrail, IntervalXY, MultiPointXY, PointRT, PointXY,
    copy_points, decimate_points, fill_points, graph_trails_from,
    interpolate_points, segment_boundaries, to_cartesian,
)


# ============================================================================
# VALUES
# ============================================================================

def test_bounds_maximize():
    b = Bounds(-1.0, 1.0, 1.0, -1.0)
    assert b.maximize(Bounds(-2.0, 0.5, 3.0, 0.0))
    assert b == Bounds(-2.0, 1.0, 3.0, -1.0)
    assert not b.maximize(Bounds(-1.0, 1.0, 1.0, -1.0))


def test_bounds_copy_is_independent():
    b = Bounds(-1.0, 1.0, 1.0, -1.0)
    c = b.copy()
    c.left = -5.0
    assert b.left == -1.0
    assert b.to_dict() == {"left": -1.0, "right": 1.0, "top": 1.0, "bottom": -1.0}


def test_point_printing():
    assert str(PointXY(1.5, -2.0)) == "(1.5, -2)"
    assert str(PointXY(1.0 / 3.0, 0.0)) == "(0.333, 0)"


def test_point_arithmetic():
    p = PointXY(1.0, 2.0)
    assert p.sum(PointXY(1.0, 1.0)) == PointXY(2.0, 3.0)
    assert p.difference(PointXY(1.0, 1.0)) == PointXY(0.0, 1.0)
    p.translate(-1.0, -2.0)
    assert p == PointXY(0.0, 0.0)


def test_polar_round_trip():
    p = PointRT(2.0, math.pi / 2.0).to_cartesian()
    assert p.x == pytest.approx(0.0, abs=1e-12)
    assert p.y == pytest.approx(2.0)
    back = p.to_polar()
    assert back.r == pytest.approx(2.0)
    assert back.theta == pytest.approx(math.pi / 2.0)


def test_multipoint():
    m = MultiPointXY(1.0, [2.0, -2.0])
    assert len(m) == 2
    assert "y values" in str(m)
    assert len(MultiPointXY(0.0)) == 0


# ============================================================================
# INTERVALS
# ============================================================================

def test_single_variable_interval():
    assert str(IntervalXY.of("x", 1.0, 3.0)) == "{x such that 1 <= x <= 3}"


def test_interval_exclusions():
    i = IntervalXY.of("x", 0.0, math.inf)
    i.set_exclusions(IntervalXY.EXCLUDE_HIGH_X)
    assert str(i) == "{x such that 0 <= x < infinity}"


def test_two_variable_interval():
    i = IntervalXY(PointXY(-1.0, 0.0), PointXY(1.0, 2.0))
    assert str(i) == "{x such that -1 <= x <= 1} and\n{y such that 0 <= y <= 2}"


def test_inverted_interval():
    with pytest.raises(ValueError):
        IntervalXY.of("x", 3.0, 1.0)
    with pytest.raises(ValueError):
        IntervalXY(PointXY(0.0, 2.0), PointXY(1.0, 1.0))


def test_excluding_a_single_point_empties_interval():
    i = IntervalXY.of("x", 2.0, 2.0)
    with pytest.raises(ValueError):
        i.set_exclusions(IntervalXY.EXCLUDE_LOW_X)


def test_interval_needs_two_variable_names():
    with pytest.raises(ValueError):
        IntervalXY(PointXY(0.0, 0.0), PointXY(1.0, 1.0), ("x",))


# ============================================================================
# TRAILS
# ============================================================================

def test_graph_trail_validation():
    with pytest.raises(TypeError):
        GraphTrail(None)
    with pytest.raises(ValueError):
        GraphTrail([])


def test_graph_trail_extent():
    t = GraphTrail.from_pairs([(0.0, 1.0), (-2.0, 0.0), (3.0, 5.0)])
    assert len(t) == 3
    assert t.find_left() == -2.0
    assert t.find_right() == 3.0
    copy = t.points_copy()
    copy[0].x = 99.0
    assert t.points[0].x == 0.0


def test_segment_boundaries_split_on_branch_count_and_jumps():
    data = [
        MultiPointXY(0.0, [1.0]),
        MultiPointXY(1.0, [1.5]),
        MultiPointXY(2.0, [1.0, -1.0]),
        MultiPointXY(3.0, [1.2, -1.2]),
        MultiPointXY(4.0, [50.0, -1.3]),
    ]
    assert segment_boundaries(data, 10.0) == [0, 2, 4, 5]


def test_graph_trails_drop_single_points():
    data = [
        MultiPointXY(0.0, [0.0]),
        MultiPointXY(1.0, [1.0]),
        MultiPointXY(2.0, [100.0]),
    ]
    trails = graph_trails_from(data, 10.0)
    assert len(trails) == 1
    assert len(trails[0]) == 2


def test_graph_trails_follow_each_branch():
    data = [MultiPointXY(x, [math.sqrt(4.0 - x * x), -math.sqrt(4.0 - x * x)])
            for x in (-1.0, 0.0, 1.0)]
    trails = graph_trails_from(data, 10.0)
    assert len(trails) == 2
    assert [p.y for p in trails[1].points] == pytest.approx([-math.sqrt(3.0), -2.0, -math.sqrt(3.0)])


def test_to_cartesian_reads_theta_then_r():
    points = to_cartesian([PointXY(0.0, 2.0), PointXY(math.pi, 1.0)])
    assert points[0].x == pytest.approx(2.0)
    assert points[1].x == pytest.approx(-1.0)
    assert points[1].y == pytest.approx(0.0, abs=1e-12)


# ============================================================================
# POINT ARRAYS
# ============================================================================

XS = [0.0, 1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0, 9.0]
YS = [x * x for x in XS]


def test_fill_and_copy():
    assert len(fill_points(3, 4, XS, YS)) == 4
    copied = copy_points(2, 5, XS, YS)
    assert [p.x for p in copied] == [2.0, 3.0, 4.0, 5.0]
    assert copied[1].y_array == [9.0]


def test_decimate_keeps_ends():
    points = decimate_points(0, 9, 4, XS, YS)
    assert len(points) == 4
    assert points[0].x == 0.0
    assert points[-1].x == 9.0
    xs = [p.x for p in points]
    assert xs == sorted(xs)


def test_interpolate_keeps_ends_and_order():
    points = interpolate_points(0, 3, 10, XS, YS)
    assert 4 <= len(points) <= 10
    assert points[0].x == 0.0
    assert points[-1].x == 3.0
    xs = [p.x for p in points]
    assert xs == sorted(xs)


def test_interpolate_is_linear_between_samples():
    points = interpolate_points(0, 1, 5, XS, YS)
    for p in points:
        assert p.y_array[0] == pytest.approx(p.x)
