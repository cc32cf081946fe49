"""Least-squares model fitting over sampled points."""

import math

import numpy as np
import pytest

from mde_engine.geometry import MultiPointXY
from mde_engine.models import (
    DataModelBuilder, PolarConicModel, PolarIdentity, PolarModel,
    PolarModelBuilder, PolarRoseModel, PolynomialModelBuilder, QuadraticModel,
    RationalModel,
)
from mde_engine.classifiers import QuadraticType


def circle_builder(radius=2.0, n=80):
    builder = PolynomialModelBuilder(2, 2)
    for t in np.linspace(0.0, 2.0 * math.pi, n, endpoint=False):
        builder.add_point(radius * math.cos(t), radius * math.sin(t))
    return builder


def polar_builder(r_of_theta, n=360):
    builder = PolarModelBuilder()
    for theta in np.linspace(0.0, 2.0 * math.pi, n, endpoint=False):
        r = r_of_theta(theta)
        if r != 0.0:
            builder.add_point(r, theta)
    return builder


# ============================================================================
# BUILDERS
# ============================================================================

def test_polynomial_generators():
    builder = PolynomialModelBuilder(2, 1)
    builder.add_point(2.0, 3.0)
    assert builder.data == [[1.0, 2.0, 4.0, 3.0, 6.0, 12.0]]


def test_multipoint_adds_a_row_per_branch():
    builder = PolynomialModelBuilder(1, 1)
    builder.add_new_point(MultiPointXY(1.0, [2.0, -2.0]))
    builder.add_new_point(None)
    assert len(builder) == 2


def test_too_few_rows_do_not_fit():
    builder = PolynomialModelBuilder(1, 1)
    for x in range(5):
        builder.add_point(float(x), 2.0 * x)
    builder.build_model([0, 1, 2])
    assert builder.fit == math.inf


def test_empty_builder():
    builder = DataModelBuilder()
    builder.build_model([0])
    assert builder.fit == math.inf


def test_polar_generators():
    builder = PolarModelBuilder()
    builder.add_point(2.0, 0.0)
    row = builder.data[0]
    assert len(row) == PolarModelBuilder.MAX_GENERATORS
    assert row[:4] == [1.0, 2.0, 0.5, 4.0]
    assert row[4] == 1.0 and row[5] == 0.0


# ============================================================================
# CARTESIAN MODELS
# ============================================================================

def test_quadratic_model_finds_circle():
    model = QuadraticModel(circle_builder())
    assert model.fit < -10.0
    assert model.complexity == 0.0
    mv = model.model_vector / model.model_vector[2]
    assert list(mv) == pytest.approx([-4.0, 0.0, 1.0, 0.0, 0.0, 1.0], abs=1e-6)


def test_quadratic_model_polynomial():
    p = QuadraticModel(circle_builder()).get_polynomial()
    assert p.degree() == 2
    ae = QuadraticModel(circle_builder()).get_analyzed_equation()
    assert ae.is_quadratic()


def test_rational_model_recovers_a_line():
    builder = PolynomialModelBuilder(1, 1)
    for x in np.linspace(-2.0, 2.0, 40):
        builder.add_point(x, 2.0 * x + 1.0)
    model = RationalModel(builder, 1, 0)
    assert model.name == "rational 1/0"
    assert model.fit < -10.0

    num = model.get_numerator()
    den = model.get_denominator()
    slope = num.get_coefficient(["x"], [1]).evaluate()
    intercept = num.get_constant().evaluate()
    assert slope / intercept == pytest.approx(2.0)
    assert (slope / den.get_constant().evaluate()) == pytest.approx(2.0)


def test_rational_model_needs_y_column():
    with pytest.raises(ValueError):
        RationalModel(PolynomialModelBuilder(3, 0), 1, 1)


# ============================================================================
# POLAR MODELS
# ============================================================================

def test_rose_model():
    model = PolarRoseModel(polar_builder(lambda t: 2.0 * math.cos(3.0 * t)))
    assert model.identity == PolarIdentity.ROSE
    assert model.which_signature == 2
    assert model.model_vector[1] / model.model_vector[0] == pytest.approx(-2.0, rel=1e-6)
    assert model.complexity == pytest.approx(3.0 + 3.0 / 4.0)


def test_circle_conic_model():
    model = PolarConicModel(polar_builder(lambda t: 3.0))
    assert model.conic_identity == QuadraticType.Ellipse
    assert "x^2+y^2" in model.get_cartesian_equation()


def test_parabola_conic_model():
    def r(theta):
        c = math.cos(theta)
        return 1.0 / (1.0 - c) if c < 0.9 else 0.0

    model = PolarConicModel(polar_builder(r))
    assert model.which_signature == 0
    assert model.eccentricity == pytest.approx(1.0)
    assert model.conic_identity == QuadraticType.Parabola


def test_ranked_models_are_sorted_by_fit():
    models = polar_builder(lambda t: 2.0 * math.cos(3.0 * t)).get_ranked_models()
    fits = [m.fit for m in models]
    assert fits == sorted(fits)
    assert len(models) == 6


def test_phase_and_amplitude():
    assert PolarModel.amplitude(3.0, 4.0) == pytest.approx(5.0)
    assert PolarModel.phase_in_deg(0.0, 1.0) == pytest.approx(90.0)
    assert PolarModel.phase_in_rads(-1.0, 0.0) == pytest.approx(math.pi)
