"""Quadratic normal forms and classifier selection."""

import math

import numpy as np
import pytest

from mde_engine.analyzed import AnalyzedEquation
from mde_engine.classifiers import (
    ClassificationFailureReason, MDEClassifier, PolarClassifier,
    PolynomialClassifier, QuadraticClassifier, QuadraticType, compute_identity,
)
from mde_engine.equation import Equation
from mde_engine.features import GraphFamily
from mde_engine.geometry import MultiPointXY, PointXY
from mde_engine.models import PolarIdentity


def quadratic(text):
    return QuadraticClassifier(Equation(text).polynomial)


# ============================================================================
# IDENTITY TABLE
# ============================================================================

@pytest.mark.parametrize("coeffs,expected", [
    ((1.0, 0.0, 0.0, 1.0, 0.0), QuadraticType.Parabola),
    ((1.0, -1.0, 0.0, 0.0, -1.0), QuadraticType.Hyperbola),
    ((1.0, -1.0, 0.0, 0.0, 0.0), QuadraticType.Cross),
    ((1.0, 1.0, 0.0, 0.0, 0.0), QuadraticType.SinglePoint),
    ((1.0, 1.0, 0.0, 0.0, -1.0), QuadraticType.Ellipse),
    ((1.0, 1.0, 0.0, 0.0, 1.0), QuadraticType.NullSet),
    ((0.0, 0.0, 1.0, 0.0, -1.0), QuadraticType.VerticalLine),
    ((0.0, 0.0, 0.0, 1.0, -1.0), QuadraticType.HorizontalLine),
    ((0.0, 0.0, 1.0, 1.0, -1.0), QuadraticType.SlopingLine),
    ((0.0, 0.0, 0.0, 0.0, -1.0), QuadraticType.NullSet),
    ((0.0, 0.0, 0.0, 0.0, 0.0), QuadraticType.AllPoints),
    ((1.0, 0.0, 0.0, 0.0, -1.0), QuadraticType.TwoVerticalLines),
    ((1.0, 0.0, 0.0, 0.0, 0.0), QuadraticType.VerticalLine),
    ((1.0, 0.0, 0.0, 0.0, 1.0), QuadraticType.NullSet),
    ((0.0, 1.0, 0.0, 0.0, -1.0), QuadraticType.TwoHorizontalLines),
])
def test_compute_identity(coeffs, expected):
    assert compute_identity(*coeffs) == expected


# ============================================================================
# QUADRATIC CLASSIFIER
# ============================================================================

def test_circle_normal_form():
    qc = quadratic("x^2 + y^2 = 4")
    assert qc.get_identity() == QuadraticType.Ellipse
    assert qc.get_reason() == ClassificationFailureReason.NoReason
    assert qc.get_original_coefficients() == pytest.approx([1.0, 0.0, 1.0, 0.0, 0.0, -4.0])
    assert qc.get_normalized_coefficients() == pytest.approx([0.25, 0.25, 0.0, 0.0, -1.0])
    assert qc.get_rotation() == 0.0
    assert qc.get_translation() == [0.0, 0.0]


def test_completed_square_gives_translation():
    qc = quadratic("(x - 1)^2 + (y + 2)^2 = 9")
    assert qc.get_identity() == QuadraticType.Ellipse
    assert qc.get_translation() == pytest.approx([1.0, -2.0])
    text = qc.get_normalized_equation()
    assert "(x-1)^2" in text
    assert "(y+2)^2" in text
    assert text.endswith("= 1")


def test_rotated_hyperbola():
    qc = quadratic("x*y = 1")
    assert qc.get_identity() == QuadraticType.Hyperbola
    assert abs(qc.get_rotation()) == pytest.approx(45.0)
    assert qc.trans_vars == ["u", "v"]
    assert "u" in qc.get_rotation_transform()


def test_rotation_round_trip():
    qc = quadratic("x*y = 1")
    xy = qc.uv2xy(qc.xy2uv([3.0, -1.0]))
    assert xy == pytest.approx([3.0, -1.0])
    axes = np.array(qc.get_new_axes())
    assert axes @ axes.T == pytest.approx(np.eye(2))


def test_rotation_arrays_must_be_pairs():
    qc = quadratic("x*y = 1")
    with pytest.raises(ValueError):
        qc.uv2xy([1.0])
    with pytest.raises(ValueError):
        qc.xy2uv([1.0, 2.0, 3.0])


@pytest.mark.parametrize("text,reason", [
    ("y = x^3", ClassificationFailureReason.DegreeGreaterThan2),
    ("x + y + z = 1", ClassificationFailureReason.TooManyVariables),
    ("r = 2", ClassificationFailureReason.Polar),
])
def test_failure_reasons(text, reason):
    qc = quadratic(text)
    assert qc.get_reason() == reason
    assert qc.get_identity() == QuadraticType.Unknown


def test_no_rotation_transform_is_identity():
    assert "identity" in quadratic("x^2 + y^2 = 4").get_rotation_transform()


# ============================================================================
# LINE HELPERS
# ============================================================================

@pytest.mark.parametrize("c,leading,expected", [
    (2.5, True, "2.5"),
    (2.5, False, "+2.5"),
    (-2.5, True, "-2.5"),
    (-2.5, False, "-2.5"),
])
def test_make_coefficient(c, leading, expected):
    assert QuadraticClassifier.make_coefficient(c, leading) == expected


def test_equation_of_a_line():
    text = QuadraticClassifier.get_equation_of_a_line(
        PointXY(0.0, 3.0), math.degrees(math.atan(2.0)), ["x", "y"])
    assert text == "2*x-1*y+3 = 0"


def test_equation_of_a_vertical_line():
    assert QuadraticClassifier.get_equation_of_a_vertical_line(2.0, ["x", "y"]) == "1*x-2 = 0"
    text = QuadraticClassifier.get_equation_of_a_line(PointXY(2.0, 0.0), 90.0, ["x", "y"])
    assert text == "1*x-2 = 0"


# ============================================================================
# SELECTION
# ============================================================================

def test_cubic_uses_polynomial_fits():
    c = AnalyzedEquation("y = x^3").get_classifier()
    assert isinstance(c, PolynomialClassifier)
    assert c.get_best_guess().name == "rational 3/0"
    assert c.finalists


def test_polynomial_classifier_without_points():
    pc = PolynomialClassifier([])
    assert pc.get_best_guess() is None
    assert pc.finalists == []


def test_polar_classifier_picks_rose():
    points = [MultiPointXY(t, [2.0 * math.cos(3.0 * t)])
              for t in np.linspace(0.0, 2.0 * math.pi, 400, endpoint=False)]
    pc = PolarClassifier(points)
    assert pc.get_best_guess().identity == PolarIdentity.ROSE


def test_polar_equation_gets_polar_classifier():
    c = AnalyzedEquation("r = 2*cos(3*theta)").get_classifier()
    assert isinstance(c, PolarClassifier)


class ExplodingClassifier(MDEClassifier):
    def classify(self, ae):
        raise ValueError("no description")


def test_failed_description_falls_back_to_xy_graph(square_bounds):
    ae = AnalyzedEquation("y = x")
    ae.compute_points(square_bounds)
    g = ExplodingClassifier().get_features(ae)
    assert g.family == GraphFamily.XY_GRAPH
    assert g.feature("graphBoundaries") == "x = -10.0 to 10.0 and y = -10.0 to 10.0"


def test_boundaries_need_both_arguments():
    MDEClassifier.add_graph_boundaries_feature(None, None)
