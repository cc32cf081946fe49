"""Graph family builders: conics, functions, trig and polar curves."""

import math
from types import SimpleNamespace

import pytest

from mde_engine.analyzed import AnalyzedEquation
from mde_engine.features import GraphFamily
from mde_engine.geometry import PointXY
from mde_engine.models import PolarModel
from mde_engine.solved import conics, functions, polar, trig


def sampled(text, bounds):
    ae = AnalyzedEquation(text)
    ae.compute_points(bounds)
    return ae


def describe(text, bounds):
    ae = sampled(text, bounds)
    ae.update_features()
    return ae.get_features()


def polar_model(model_vector, which_signature):
    return SimpleNamespace(model_vector=model_vector, which_signature=which_signature,
                           amplitude=PolarModel.amplitude,
                           phase_in_rads=PolarModel.phase_in_rads)


# ============================================================================
# LINES
# ============================================================================

def test_sloping_line():
    g = conics.solve_line(AnalyzedEquation("y = 2x + 3"))
    assert g.family == GraphFamily.LINE
    assert g.graph_name == "line"
    assert g.payload.slope == pytest.approx(2.0)
    assert g.payload.y_intercept == pytest.approx(3.0)
    assert g.payload.x_intercept == pytest.approx(-1.5)
    assert g.feature("slopeDefined") == "true"


def test_vertical_line():
    g = conics.solve_line(AnalyzedEquation("x = 2"))
    assert g.graph_name == "vertical line"
    assert g.domain() == "{x such that 2 <= x <= 2}"
    assert g.y_intercepts() == []
    assert g.payload.slope is None
    assert g.payload.x_intercept == pytest.approx(2.0)
    assert g.feature("slopeDefined") == "false"


def test_horizontal_line():
    g = conics.solve_line(AnalyzedEquation("y = 3"))
    assert g.graph_name == "horizontal line"
    assert g.range() == "{y such that 3 <= y <= 3}"
    assert g.payload.y_intercept == pytest.approx(3.0)


def test_line_needs_quadratic_classifier():
    with pytest.raises(ValueError):
        conics.solve_line(AnalyzedEquation("y = sin(x)"))


# ============================================================================
# CONICS
# ============================================================================

def test_parabola(square_bounds):
    g = describe("y = x^2 - 4", square_bounds)
    assert g.family == GraphFamily.PARABOLA
    assert g.graph_name == "parabola"
    assert g.vertex().x == pytest.approx(0.0, abs=1e-12)
    assert g.vertex().y == pytest.approx(-4.0)
    assert g.payload.focal_length == pytest.approx(0.25)
    assert g.payload.focus.y == pytest.approx(-3.75)
    assert g.feature("openDirection") == "upwards"
    assert sorted(g.x_intercepts()) == pytest.approx([-2.0, 2.0])
    assert g.y_intercepts() == pytest.approx([-4.0])
    assert g.range() == "{y such that -4 <= y < infinity}"
    assert g.feature("graphBoundaries").startswith("x = -10.0 to 10.0")


def test_parabola_needs_quadratic_classifier():
    with pytest.raises(ValueError):
        conics.solve_parabola(AnalyzedEquation("y = sin(x)"))


def test_ellipse():
    g = conics.solve_ellipse(AnalyzedEquation("x^2/9 + y^2/4 = 1"))
    assert g.graph_name == "ellipse"
    assert g.payload.semi_major_axis == pytest.approx(3.0)
    assert g.payload.semi_minor_axis == pytest.approx(2.0)
    assert g.payload.eccentricity == pytest.approx(math.sqrt(5.0) / 3.0)
    assert g.domain() == "{x such that -3 <= x <= 3}"
    assert g.range() == "{y such that -2 <= y <= 2}"
    assert len(g.payload.foci) == 2


def test_circle():
    g = conics.solve_ellipse(AnalyzedEquation("x^2 + y^2 = 4"))
    assert g.graph_name == "circle"
    assert g.payload.is_circle
    assert g.payload.semi_major_axis == pytest.approx(2.0)
    assert g.feature("radius").get_value("rationalValue") == "2"


def test_translated_circle_center(square_bounds):
    g = describe("(x - 1)^2 + (y + 2)^2 = 9", square_bounds)
    assert g.graph_name == "circle"
    assert g.payload.center.x == pytest.approx(1.0)
    assert g.payload.center.y == pytest.approx(-2.0)


def test_hyperbola():
    g = conics.solve_hyperbola(AnalyzedEquation("x^2 - y^2 = 1"))
    assert g.graph_name == "hyperbola"
    assert sorted(v.x for v in g.payload.vertices) == pytest.approx([-1.0, 1.0])
    assert g.payload.vertex.y == pytest.approx(0.0, abs=1e-12)
    assert g.payload.eccentricity == pytest.approx(math.sqrt(2.0))
    assert g.domain() == "{x such that x <= -1 or x >= 1}"
    assert len(g.features("asymptotes")) == 2


def test_two_vertical_lines():
    g = conics.solve_two_lines(AnalyzedEquation("x^2 = 4"))
    assert g.graph_name == "two lines"
    assert g.payload.separation == pytest.approx(4.0)
    assert len(g.payload.equations) == 2


def test_crossing_lines():
    g = conics.solve_two_intersecting_lines(AnalyzedEquation("(x - 2*y + 1)*(2*x + y + 1) = 0"))
    assert g.graph_name == "two intersecting lines"
    assert g.payload.intersection.x == pytest.approx(-0.6)
    assert g.payload.intersection.y == pytest.approx(0.2)
    low, high = sorted(g.payload.inclinations)
    assert high - low == pytest.approx(90.0)


# ============================================================================
# FUNCTIONS
# ============================================================================

def test_rational_function():
    g = functions.solve_rational_function(AnalyzedEquation("y = 1/(x - 1)"))
    assert g.family == GraphFamily.RATIONAL_FUNCTION
    assert g.graph_name == "RationalFunction"
    assert g.payload.vertical_asymptotes == pytest.approx([1.0])
    assert not g.payload.is_polynomial


def test_cubic_polynomial(square_bounds):
    g = describe("y = x^3 - 3*x", square_bounds)
    assert g.family == GraphFamily.CUBIC
    assert g.graph_name == "polynomial"
    (minimum,) = g.minima()
    (maximum,) = g.maxima()
    assert (minimum.x, minimum.y) == pytest.approx((1.0, -2.0))
    assert (maximum.x, maximum.y) == pytest.approx((-1.0, 2.0))
    assert g.payload.degree == 3


def test_rational_needs_a_function():
    with pytest.raises(ValueError):
        functions.solve_rational_function(AnalyzedEquation("x^2 + y^2 = 4"))


def test_square_root(square_bounds):
    g = describe("y = 2*sqrt(x - 1) + 3", square_bounds)
    assert g.family == GraphFamily.SQUARE_ROOT
    assert g.vertex() == PointXY(1.0, 3.0)
    assert g.feature("orientation") == "quadrant I"
    assert g.domain() == "{x such that 1 <= x < infinity}"
    assert g.range() == "{y such that 3 <= y < infinity}"


def test_absolute_value(square_bounds):
    g = describe("y = -abs(x + 2) + 1", square_bounds)
    assert g.family == GraphFamily.ABSOLUTE_VALUE
    assert g.vertex() == PointXY(-2.0, 1.0)
    assert g.feature("absDirection") == "down"
    assert g.range() == "{y such that -infinity < y <= 1}"


def test_transform_rejects_nonlinear_argument():
    with pytest.raises(ValueError):
        functions.solve_square_root(AnalyzedEquation("y = sqrt(x^2 + 1)"))


def test_endpoints_of_sampled_trail():
    points = [PointXY(x / 10.0, (x / 10.0) ** 2) for x in range(-20, 21)]
    endpoints = functions.find_endpoints(points)
    types = [e.type_string for e in endpoints]
    assert len(endpoints) == 3
    assert endpoints[1].x == pytest.approx(0.0, abs=1e-9)
    assert types[1] == "local minimum"


# ============================================================================
# TRIG
# ============================================================================

def test_sine(square_bounds):
    g = describe("y = 3*sin(2*x + 1) + 4", square_bounds)
    assert g.family == GraphFamily.SINE
    assert g.amplitude() == pytest.approx(3.0)
    assert g.period() == pytest.approx(math.pi)
    assert g.payload.phase == pytest.approx(-0.5)
    assert g.payload.offset == pytest.approx(4.0)
    assert g.feature("period") == "pi"
    assert g.range() == "{y such that 1 <= y <= 7}"


def test_cosine(square_bounds):
    g = describe("y = cos(x)", square_bounds)
    assert g.family == GraphFamily.COSINE
    assert g.amplitude() == pytest.approx(1.0)
    assert g.period() == pytest.approx(2.0 * math.pi)


def test_tangent_asymptotes_in_view(square_bounds):
    g = describe("y = tan(x)", square_bounds)
    assert g.family == GraphFamily.TANGENT
    assert len(g.payload.asymptotes) == 6
    assert all(-10.0 <= a <= 10.0 for a in g.payload.asymptotes)
    assert g.feature("orientation") == "ascending"


def test_mixed_trig_is_generic():
    ae = AnalyzedEquation("y = sin(x) + cos(x)")
    g = trig.solve_trig_function(ae)
    assert g.family == GraphFamily.XY_GRAPH


# ============================================================================
# POLAR
# ============================================================================

def test_rose_builder():
    ae = AnalyzedEquation("r = 2*cos(3*theta)")
    g = polar.solve_polar_rose(ae, polar_model([1.0, -2.0, 0.0], 2))
    assert g.feature("numPetals") == "3"
    assert g.payload.petal_length == pytest.approx(2.0)
    assert len(g.payload.petal_tips) == 3


def test_cardioid_builder():
    ae = AnalyzedEquation("r = 1 + cos(theta)")
    g = polar.solve_polar_trochoid(ae, polar_model([-1.0, 1.0, -1.0, 0.0], 0))
    assert g.graph_name == "cardioid"
    assert g.feature("axis") == "West to East"
    assert g.payload.shape == polar.CARDIOID


def test_loopy_trochoid_is_not_convex():
    ae = AnalyzedEquation("r = 1 + 2*cos(theta)")
    g = polar.solve_polar_trochoid(ae, polar_model([-1.0, 1.0, -2.0, 0.0], 0))
    assert g.payload.shape == polar.LOOPY
    assert g.graph_name == "loopWithinALoop"
    assert g.feature("hasLoops") == "true"
    assert not g.payload.is_convex
    assert g.payload.min_length == pytest.approx(1.0)


def test_lemniscate_builder():
    ae = AnalyzedEquation("r^2 = 4*cos(2*theta)")
    g = polar.solve_polar_lemniscate(ae, polar_model([1.0, -4.0, 0.0], 0))
    assert g.family == GraphFamily.POLAR_LEMNISCATE
    assert g.payload.blade_length == pytest.approx(2.0)


def test_rose_end_to_end(square_bounds):
    g = describe("r = 2*cos(3*theta)", square_bounds)
    assert g.family == GraphFamily.POLAR_ROSE
    assert g.feature("numPetals") == "3"
    assert g.feature("coordinateSystem") == "polar"


def test_polar_circle_end_to_end(square_bounds):
    g = describe("r = 8", square_bounds)
    assert g.family == GraphFamily.POLAR_CONIC
    assert g.graph_name == "circle"
    assert g.payload.semi_major_axis == pytest.approx(8.0)


def test_spiral_extent_uses_cartesian_labels(square_bounds):
    g = functions.solve_xy_graph(sampled("r = theta", square_bounds))
    assert g.feature("graphDescriptionDomain").startswith("{x such that")
    assert g.feature("graphDescriptionRange").startswith("{y such that")
    low, high = g.payload.visible_domain
    assert low < 0.0 < high
