"""Parsing: Quantity splitting, parse trees, Expression bookkeeping."""

import math

import pytest

from mde_engine.core import Action, Expression, ParseNode, Quantity, split_implied


# ============================================================================
# QUANTITY
# ============================================================================

def test_quantity_alternates_text_and_nested_groups():
    q = Quantity("a(b(c))d")
    assert len(q.children) == 3
    assert q.children[0] == "a"
    assert isinstance(q.children[1], Quantity)
    assert q.children[2] == "d"


@pytest.mark.parametrize("text", ["(a", "a)", "(a))(", "((x)"])
def test_quantity_unbalanced(text):
    assert Quantity(text).children is None


# ============================================================================
# PARSE TREE
# ============================================================================

def test_parse_sum_of_products():
    node = ParseNode.parse("2*x + 3")
    assert node.operator == Action.SUM
    assert node.children[0].operator == Action.PRODUCT


def test_parse_failure_is_flagged_not_raised():
    node = ParseNode.parse("(x + 1")
    assert node.bad_flag
    assert node.operator == Action.CORRUPTED


def test_undefined_leaf_raises_on_evaluate():
    with pytest.raises(RuntimeError):
        Expression("x").evaluate()


# ============================================================================
# EXPRESSION
# ============================================================================

def test_constant_expression_is_condensed():
    e = Expression("2 + 3*4")
    assert e.value == 14.0
    assert e.var_strings == []


def test_known_constants():
    assert Expression("sin(pi/2)").value == pytest.approx(1.0)
    assert Expression("2*pi").value == pytest.approx(2.0 * math.pi)


def test_variables_are_sorted():
    assert Expression("y + x^2").var_strings == ["x", "y"]


def test_evaluate_with_inputs():
    assert Expression("x^2 + 1").evaluate({"x": 3.0}) == pytest.approx(10.0)


@pytest.mark.parametrize("text,inputs,expected", [
    ("2x", {"x": 4.0}, 8.0),
    ("3xy", {"x": 2.0, "y": 5.0}, 30.0),
    ("x^2y", {"x": 3.0, "y": 2.0}, 18.0),
    ("2.5x", {"x": 2.0}, 5.0),
    ("2theta", {"theta": 1.5}, 3.0),
])
def test_implied_multiplication(text, inputs, expected):
    e = Expression(text)
    assert e.is_valid()
    assert e.evaluate(inputs) == pytest.approx(expected)


def test_split_implied_prefers_longest_name():
    assert split_implied("2theta") == ["2", "theta"]
    assert split_implied("3xy") == ["3", "x", "y"]


@pytest.mark.parametrize("text", ["(x + 1", "x +* 2", "x^"])
def test_invalid_expressions(text):
    assert not Expression(text).is_valid()


def test_unknown_token_leaves_no_root():
    e = Expression("x + 1$")
    assert not e.is_valid()


def test_division_by_zero_follows_ieee():
    assert math.isinf(Expression("1/0").value)


def test_composition():
    x = Expression("x")
    one = Expression("1")
    e = x.sum(one).product(x)
    assert e.evaluate({"x": 2.0}) == pytest.approx(6.0)
    assert Expression.negate(x).evaluate({"x": 2.0}) == pytest.approx(-2.0)
    assert x.quotient(Expression("4")).evaluate({"x": 2.0}) == pytest.approx(0.5)


def test_negate_twice_unwraps():
    x = Expression("x")
    back = Expression.negate(Expression.negate(x))
    assert back.evaluate({"x": 3.0}) == pytest.approx(3.0)


def test_parameters_leave_variable_list():
    e = Expression("a*x")
    e.set_parameters({"a": 2.0})
    assert e.var_strings == ["x"]
    assert e.evaluate({"x": 3.0}) == pytest.approx(6.0)
    assert str(e) == "2.0*x"


def test_printing_round_trips_through_parser():
    e = Expression("x^2 - 3*x + 2")
    again = Expression(str(e))
    for x in (-1.0, 0.5, 4.0):
        assert again.evaluate({"x": x}) == pytest.approx(e.evaluate({"x": x}))
