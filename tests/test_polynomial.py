"""Polynomials, rational expressions, equations and continued fractions."""

import math

import pytest

from mde_engine.core import Expression
from mde_engine.equation import Equation
from mde_engine.polynomial import Polynomial, coefficients_of, evaluate_coefficients
from mde_engine.rational import ContinuedFraction, RationalExpression


def coefficient(p, var, exp):
    return p.get_coefficient([var], [exp]).evaluate()


# ============================================================================
# POLYNOMIAL
# ============================================================================

def test_expands_products():
    p = Polynomial(Expression("(x + 1)*(x - 1)"))
    assert p.degree() == 2
    assert coefficient(p, "x", 2) == pytest.approx(1.0)
    assert coefficient(p, "x", 1) == pytest.approx(0.0)
    assert p.get_constant().value == pytest.approx(-1.0)


def test_expands_integer_powers():
    p = Polynomial(Expression("(x + 2)^3"))
    values = evaluate_coefficients(coefficients_of(p, "x"))
    assert list(values) == pytest.approx([1.0, 6.0, 12.0, 8.0])


def test_mixed_terms():
    p = Polynomial(Expression("x^2 + 3*x*y + y^2"))
    assert p.degree() == 2
    assert p.get_coefficient(["x", "y"], [1, 1]).value == pytest.approx(3.0)
    assert sorted(p.variables) == ["x", "y"]


def test_empty_polynomial_degree():
    assert Polynomial().degree() == -1


def test_difference_cancels():
    a = Polynomial(Expression("x^2 + x"))
    b = Polynomial(Expression("x"))
    d = a.difference(b)
    assert d.degree() == 2
    assert coefficient(d, "x", 1) == pytest.approx(0.0)


POLYNOMIAL_TEXTS = [
    "x^2 + y^2 - 4",
    "(x-2y+1)*(2x+y+1)",
    "(x + 2)^3 - x*y",
    "3*x^2*y - 5",
]


@pytest.mark.parametrize("text", POLYNOMIAL_TEXTS)
def test_expression_round_trip_keeps_terms(text):
    p = Polynomial(Expression(text))
    q = Polynomial(p.to_expression())
    assert set(q.terms) == set(p.terms)
    for sig, term in p.terms.items():
        assert q.terms[sig].coefficient.evaluate() == pytest.approx(term.coefficient.evaluate())


@pytest.mark.parametrize("text", POLYNOMIAL_TEXTS)
def test_sum_with_negative_is_empty(text):
    p = Polynomial(Expression(text))
    z = p.sum(p.make_negative())
    assert z.terms == {}
    assert z.degree() == -1


def test_derivative():
    p = Polynomial(Expression("x^3 - 3*x"))
    d = p.make_derivative("x")
    assert coefficient(d, "x", 2) == pytest.approx(3.0)
    assert d.get_constant().value == pytest.approx(-3.0)


def test_from_coefficients():
    p = Polynomial.from_coefficients([2.0, 0.0, -8.0], "x")
    assert p.degree() == 2
    assert coefficient(p, "x", 2) == pytest.approx(2.0)
    assert p.get_constant().value == pytest.approx(-8.0)


def test_required_variables_fold_the_rest_into_coefficients():
    p = Polynomial(Expression("x^2*y + 3*y + x"), ["y"])
    assert p.degree() == 1
    c = p.get_coefficient(["y"], [1])
    assert c.evaluate({"x": 2.0}) == pytest.approx(7.0)


def test_coefficients_in_one_variable():
    p = Polynomial(Expression("x^2 + y^2 - 4"))
    cs = p.get_coefficients_as_expressions("x")
    assert len(cs) == 3
    assert list(evaluate_coefficients(cs, "y", 1.0)) == pytest.approx([1.0, 0.0, -3.0])


def test_parameters_fold_into_coefficients():
    p = Polynomial(Expression("a*x^2 + x"))
    p.set_parameters({"a": 3.0})
    assert "a" not in p.variables
    assert coefficient(p, "x", 2) == pytest.approx(3.0)


# ============================================================================
# RATIONAL EXPRESSION
# ============================================================================

def test_rational_sum_over_common_denominator():
    r = RationalExpression("1/x + 1/y")
    assert r.is_rational_expression()
    num = r.numerator.to_expression()
    den = r.denominator.to_expression()
    at = {"x": 2.0, "y": 3.0}
    assert num.evaluate(at) / den.evaluate(at) == pytest.approx(0.5 + 1.0 / 3.0)


@pytest.mark.parametrize("text", ["sin(x)", "x^(1/2)", "sqrt(x)"])
def test_not_rational(text):
    assert not RationalExpression(text).is_rational_expression()


def test_negative_integer_power_moves_to_denominator():
    r = RationalExpression("x^(-2)")
    assert r.is_rational_expression()
    assert r.denominator.degree() == 2


# ============================================================================
# EQUATION
# ============================================================================

@pytest.mark.parametrize("text", ["x + y", "x = y = 1", " = 3", "y = ", "y = (x + 1"])
def test_bad_equations(text):
    assert Equation(text).bad


def test_equation_moves_everything_left():
    eq = Equation("y = x^2 - 4")
    assert not eq.bad
    p = eq.polynomial
    assert coefficient(p, "y", 1) == pytest.approx(1.0)
    assert coefficient(p, "x", 2) == pytest.approx(-1.0)
    assert p.get_constant().value == pytest.approx(4.0)


def test_rational_sides_are_cross_multiplied():
    eq = Equation("y = 1/(x - 1)")
    assert eq.polynomial.degree() == 2


def test_simple_side():
    eq = Equation("x^2 + 1 = y")
    assert str(eq.get_simple()) == "y"
    assert eq.get_other(eq.get_simple()) is eq.left
    assert Equation("x + y = 1").get_simple() is None


# ============================================================================
# CONTINUED FRACTION
# ============================================================================

def test_rational_value():
    cf = ContinuedFraction(2.0 / 3.0)
    assert cf.is_rational()
    den, neg_num = cf.get_polynomial_coefficients()
    assert -neg_num / den == pytest.approx(2.0 / 3.0)


def test_typed_decimal_is_recognised():
    cf = ContinuedFraction(0.6666666667)
    assert cf.is_rational()
    assert cf.a[:3] == [0, 1, 2]


def test_quadratic_irrational():
    cf = ContinuedFraction(math.sqrt(2.0))
    assert cf.is_quadratic()
    a, b, c = cf.get_polynomial_coefficients()
    assert b / a == pytest.approx(0.0, abs=1e-9)
    assert c / a == pytest.approx(-2.0)


def test_infinity_has_no_expansion():
    cf = ContinuedFraction(math.inf)
    assert not cf.is_rational()
    assert cf.get_polynomial_coefficients() == []
