"""Numeric helpers: roots, PNom, exact-form presentation, small math utilities."""

import math

import pytest

from mde_engine.mathutil import (
    find_delta, gcd, make_integer, normalize_degrees, trim_double,
)
from mde_engine.numeric import (
    AngleModel, NumberModel, PNom, RealZero,
    get_equivalent_rational_string, get_quadratic_representation_string,
    get_rational_equivalent, pretty_print_q_root, real_roots,
    real_roots_with_multiplicities,
)


# ============================================================================
# MATH UTILITIES
# ============================================================================

@pytest.mark.parametrize("value,digits,expected", [
    (2.5, 3, "2.5"),
    (-0.0001, 3, "0"),
    (1.23456, 2, "1.23"),
    (7.0, 3, "7"),
    (math.inf, 3, "infinity"),
    (-math.inf, 3, "-infinity"),
    (math.nan, 3, "NaN"),
])
def test_trim_double(value, digits, expected):
    assert trim_double(value, digits) == expected


@pytest.mark.parametrize("angle,expected", [
    (270.0, -90.0),
    (-180.0, 180.0),
    (180.0, 180.0),
    (720.0, 0.0),
    (45.0, 45.0),
])
def test_normalize_degrees(angle, expected):
    assert normalize_degrees(angle) == pytest.approx(expected)


def test_gcd():
    assert gcd([4.0, 6.0]) == 2
    assert gcd([9.0]) == 9
    with pytest.raises(ValueError):
        gcd([])


def test_make_integer():
    assert make_integer([0.5, 0.25]) == [2.0, 1.0]
    assert make_integer([0.0, 0.0]) == [0.0, 0.0]


def test_find_delta_gives_reasonable_ticks():
    for span in (1.0, 7.0, 20.0, 350.0):
        delta = find_delta(span)
        assert 2 <= span / delta <= 20


# ============================================================================
# REAL ROOTS
# ============================================================================

def test_real_roots():
    assert list(real_roots([1.0, 0.0, -1.0])) == pytest.approx([-1.0, 1.0])
    assert list(real_roots([1.0, -2.0, 1.0])) == pytest.approx([1.0, 1.0])
    assert list(real_roots([1.0, 0.0, 1.0])) == []


def test_multiplicities():
    roots = real_roots_with_multiplicities([1.0, -2.0, 1.0])
    assert len(roots) == 1
    assert roots[0][0] == pytest.approx(1.0)
    assert roots[0][1] == 2


def test_leading_zeros_are_ignored():
    assert list(real_roots([0.0, 0.0, 2.0, -4.0])) == pytest.approx([2.0])


def test_constant_has_no_roots():
    assert real_roots_with_multiplicities([5.0]) == []


# ============================================================================
# PNOM
# ============================================================================

def test_leading_zeros_dropped():
    p = PNom([0.0, 0.0, 1.0, 2.0])
    assert p.degree == 1
    assert list(p.coefficients) == [1.0, 2.0]


def test_trivial_and_constant():
    assert PNom().is_trivial()
    assert PNom(3.0).is_constant()
    assert not PNom(3.0).is_trivial()


def test_sum_and_product():
    a = PNom([1.0, 1.0])
    b = PNom([1.0, -1.0])
    assert list(a.product(b).coefficients) == pytest.approx([1.0, 0.0, -1.0])
    assert list(a.sum(b).coefficients) == pytest.approx([2.0, 0.0])
    assert a.difference(a).is_trivial()


def test_quotient_exact():
    q, r = PNom([1.0, 0.0, -1.0]).quotient(PNom([1.0, -1.0]))
    assert list(q.coefficients) == pytest.approx([1.0, 1.0])
    assert r.is_trivial()


def test_quotient_with_remainder():
    q, r = PNom([1.0, 0.0, 1.0]).quotient(PNom([1.0, -1.0]))
    assert list(q.coefficients) == pytest.approx([1.0, 1.0])
    assert list(r.coefficients) == pytest.approx([2.0])


def test_divide_by_trivial():
    with pytest.raises(ValueError):
        PNom([1.0, 2.0]).quotient(PNom())


def test_derivative():
    d = PNom([1.0, 0.0, -3.0, 0.0]).derivative()
    assert list(d.coefficients) == pytest.approx([3.0, 0.0, -3.0])


def test_eval_at_infinity_follows_leading_term():
    cubic = PNom([1.0, 0.0, 0.0])
    assert cubic.eval(math.inf) == math.inf
    assert cubic.eval(-math.inf) == math.inf
    odd = PNom([-2.0, 1.0])
    assert odd.eval(math.inf) == -math.inf
    assert odd.eval(-math.inf) == math.inf
    assert odd.eval(0.5) == pytest.approx(0.0)


def test_gcd_of_polynomials():
    g = PNom.gcd(PNom([1.0, 1.0, -2.0]), PNom([1.0, -4.0, 3.0]))
    assert g.degree == 1
    assert -g.coefficients[1] / g.coefficients[0] == pytest.approx(1.0)


def test_real_zeros_carry_sign_changes():
    zeros = PNom([1.0, 0.0, -1.0]).get_real_zeros()
    assert [z.x for z in zeros] == pytest.approx([-1.0, 1.0])
    assert zeros[0].signature == RealZero.PLUS_MINUS
    assert zeros[1].signature == RealZero.MINUS_PLUS


def test_double_zero_touches():
    zeros = PNom([1.0, -2.0, 1.0]).get_real_zeros()
    assert len(zeros) == 1
    assert zeros[0].signature == RealZero.PLUS_PLUS


def test_real_zeros_degenerate():
    assert PNom().get_real_zeros() is None
    assert PNom(4.0).get_real_zeros() == []


def test_signature_with_negative_factor_flips():
    z = RealZero(0.0, RealZero.PLUS_MINUS)
    assert z.signature_with(PNom([-1.0])) == RealZero.MINUS_PLUS
    assert z.signature_with(PNom([2.0])) == RealZero.PLUS_MINUS
    assert z.signature_with(PNom([1.0, 0.0])) == RealZero.UNDEFINED


# ============================================================================
# EXACT FORMS
# ============================================================================

@pytest.mark.parametrize("value,expected", [
    (2.0 / 3.0, "2/3"),
    (7.0, "7"),
    (-0.75, "-3/4"),
    (1.0 / 101.0, None),
])
def test_equivalent_rational_string(value, expected):
    assert get_equivalent_rational_string(value) == expected


def test_rational_equivalent_falls_back_to_approximation():
    assert get_rational_equivalent(1.0 / 101.0).startswith("approx. ")


def test_quadratic_representation():
    assert get_quadratic_representation_string(math.sqrt(2.0)) == "sqrt(2)"
    assert get_quadratic_representation_string(0.0) == "0"


def test_pretty_print_q_root():
    assert pretty_print_q_root(1, 0, -2, 0) == "-sqrt(2)"
    assert pretty_print_q_root(1, -2, -1, 1) == "1 + sqrt(2)"
    with pytest.raises(ValueError):
        pretty_print_q_root(1, 0, -2, 2)


def test_number_model():
    n = NumberModel(0.5)
    assert n.rational_value == "1/2"
    assert n.approximate_decimal_value == "0.5"
    assert not n.is_approximation


def test_number_model_marks_approximation():
    n = NumberModel(math.sqrt(2.0))
    assert n.is_approximation
    assert n.quadratic_value == "sqrt(2)"
    assert n.rational_value is None


def test_number_model_feature_node():
    node = NumberModel(0.5).to_feature_node()
    assert node.get_value("rationalValue") == "1/2"
    assert node.get_value("isApproximation") == "false"


def test_infinite_number_model():
    n = NumberModel(math.inf)
    assert n.rational_value is None
    assert n.to_feature_node().get_value("decimalValue") == "infinity"


def test_angle_model():
    a = AngleModel(90.0)
    assert a.fractional_radians == "(1/2)PI"
    assert a.radians == pytest.approx(math.pi / 2.0)
    assert AngleModel(45.0).representation_in_degrees() == "45"


def test_angle_from_radians():
    a = AngleModel.from_radians(math.pi)
    assert a.degrees == pytest.approx(180.0)
    assert a.representation_in_radians() == "(1)PI"
