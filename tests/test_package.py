"""Top-level convenience functions."""

import pytest

import mde_engine


def test_solve_one_equation():
    g = mde_engine.solve("y = x^2 - 4")
    assert g.graph_name == "parabola"
    assert g.vertex().y == pytest.approx(-4.0)


def test_solve_bad_equation():
    assert mde_engine.solve("y = (x") is None


def test_parse():
    e = mde_engine.parse("2x + 1")
    assert e.evaluate({"x": 3.0}) == 7.0


def test_analyze_polar():
    ae = mde_engine.analyze("r = 2*cos(3*theta)")
    assert ae.is_polar()
