"""
Polynomial algebra over Expression coefficients.
"""

import math
from typing import Dict, List, Optional, Sequence

import numpy as np

from .core import Action, Expression, ParseNode


CONSTANT = "#$CONSTANT$#"


def _settle(c: Expression) -> Expression:
    """Replace a condensed constant by a fresh constant expression."""
    if c.value_string is not None:
        return Expression.constant(c.value)
    return c


class PolyTerm:
    """A monomial: coefficient Expression times a product of variable powers."""

    def __init__(self, coefficient: Optional[Expression] = None,
                 exponents: Optional[Dict[str, int]] = None):
        self.coefficient = coefficient
        self.exponents: Dict[str, int] = dict(exponents or {})

    @property
    def variables(self) -> List[str]:
        return sorted(self.exponents)

    @property
    def signature(self) -> str:
        return make_signature(self.exponents)

    def degree(self) -> int:
        return sum(self.exponents.values())

    def degree_of(self, var: str) -> int:
        return self.exponents.get(var, 0)

    def sum(self, other: 'PolyTerm') -> 'PolyTerm':
        return PolyTerm(_settle(self.coefficient.sum(other.coefficient)), self.exponents)

    def make_negative(self) -> 'PolyTerm':
        return PolyTerm(_settle(Expression.negate(self.coefficient)), self.exponents)

    def product(self, other: 'PolyTerm') -> 'PolyTerm':
        exponents = dict(self.exponents)
        for v, e in other.exponents.items():
            exponents[v] = exponents.get(v, 0) + e
        return PolyTerm(_settle(self.coefficient.product(other.coefficient)), exponents)

    def make_derivative(self, var: str) -> 'PolyTerm':
        n = self.exponents.get(var)
        if n is None:
            return PolyTerm()
        exponents = {v: e for v, e in self.exponents.items() if v != var}
        if n > 1:
            exponents[var] = n - 1
        coefficient = _settle(self.coefficient.product(Expression(str(n))))
        return PolyTerm(coefficient, exponents)

    def make_expression(self) -> Optional[Expression]:
        if self.coefficient is None:
            return None
        if not self.exponents:
            return self.coefficient
        children = [self.coefficient.root]
        for v in self.variables:
            d = self.exponents[v]
            if d > 1:
                children.append(ParseNode(Action.POWER, [ParseNode.parse(v), ParseNode.leaf(str(d))]))
            else:
                children.append(ParseNode.parse(v))
        return Expression(ParseNode(Action.PRODUCT, children))

    def __repr__(self):
        return f"PolyTerm({self.coefficient}, {self.signature})"


def make_signature(exponents: Dict[str, int]) -> str:
    """Canonical 'var^exp:var^exp' key, CONSTANT for an empty exponent map."""
    if not exponents:
        return CONSTANT
    return ":".join(f"{v}^{exponents[v]}" for v in sorted(exponents))


class Polynomial:
    """
    Sum of monomials keyed by signature.

    Built from an Expression by walking its parse tree. With
    `required_variables`, sub-trees free of those variables fold into
    coefficients. Non-polynomial sub-trees are punted: folded into the
    coefficient, or kept as an opaque variable when
    `use_generalized_variables` is set.
    """

    def __init__(self, expression: Optional[Expression] = None,
                 required_variables: Optional[Sequence[str]] = None,
                 use_generalized_variables: bool = False):
        self.terms: Dict[str, PolyTerm] = {}
        self.degrees: Dict[str, int] = {}
        self.variables: List[str] = []
        self.parameters: Dict[str, float] = {}
        self.expression = expression
        self.required_variables = list(required_variables) if required_variables is not None else None
        self.use_generalized_variables = use_generalized_variables
        self._coefficient_cache: Dict[str, List[Expression]] = {}
        self._highest_degree = -1

        if expression is not None:
            self.terms = self._make_poly(expression.root).terms
            self._finish()

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def make_constant(cls, c: Expression) -> 'Polynomial':
        p = cls()
        p._add_term(PolyTerm(c))
        return p

    @classmethod
    def make_variable(cls, v: Expression) -> 'Polynomial':
        p = cls()
        p._add_term(PolyTerm(Expression("1"), {str(v): 1}))
        return p

    @classmethod
    def from_coefficients(cls, coefficients: Sequence[float], var: str = "x") -> 'Polynomial':
        """Polynomial in `var` from coefficients listed highest degree first."""
        p = cls()
        d = len(coefficients) - 1
        for i, c in enumerate(coefficients):
            exponents = {var: d - i} if d - i > 0 else {}
            p._add_term(PolyTerm(Expression.constant(float(c)), exponents))
        p._finish()
        return p

    def _add_term(self, t: PolyTerm):
        self.terms[t.signature] = t

    def _make_poly(self, r: ParseNode) -> 'Polynomial':
        if r.value is not None:
            return Polynomial.make_constant(Expression(r))
        if self.required_variables is not None:
            present = self.expression.variables.get(r, set())
            if not any(v in present for v in self.required_variables):
                return Polynomial.make_constant(Expression(r))

        op = r.operator
        if op == Action.U_MINUS:
            return self._make_poly(r.children[0]).make_negative()
        if op == Action.SUM:
            p = Polynomial()
            for child in r.children:
                p = p.sum(self._make_poly(child))
            return p
        if op == Action.PRODUCT:
            p = Polynomial.make_constant(Expression("1"))
            for child in r.children:
                p = p.product(self._make_poly(child))
            return p
        if op == Action.POWER:
            power = Expression(r.children[1])
            if power.value is None:
                return self._punt(Expression(r))
            pf = power.value
            if not math.isfinite(pf) or math.floor(pf) != pf or pf < 0:
                return self._punt(Expression(r))
            p = Polynomial.make_constant(Expression("1"))
            f = self._make_poly(r.children[0])
            for _ in range(int(pf)):
                p = p.product(f)
            return p
        if op == Action.NO_OP:
            return Polynomial.make_variable(Expression(r))
        return self._punt(Expression(r))

    def _punt(self, e: Expression) -> 'Polynomial':
        if self.use_generalized_variables:
            return Polynomial.make_variable(e)
        return Polynomial.make_constant(e)

    def _finish(self):
        """Prune zero terms, recompute the degree table and variable list."""
        self._coefficient_cache = {}
        self._highest_degree = -1
        for sig in [s for s, t in self.terms.items()
                    if t.coefficient is None or t.coefficient.value == 0.0]:
            del self.terms[sig]
        self.degrees = {}
        for t in self.terms.values():
            for v, d in t.exponents.items():
                if d > self.degrees.get(v, -1):
                    self.degrees[v] = d
        self.variables = sorted(self.degrees)

    # ------------------------------------------------------------------
    # Algebra
    # ------------------------------------------------------------------

    def sum(self, other: 'Polynomial') -> 'Polynomial':
        p = Polynomial()
        for sig, t1 in self.terms.items():
            t2 = other.terms.get(sig)
            p._add_term(t1.sum(t2) if t2 is not None else t1)
        for sig, t2 in other.terms.items():
            if sig not in self.terms:
                p._add_term(t2)
        p._finish()
        return p

    def make_negative(self) -> 'Polynomial':
        p = Polynomial()
        for t in self.terms.values():
            p._add_term(t.make_negative())
        p._finish()
        return p

    def difference(self, other: 'Polynomial') -> 'Polynomial':
        return self.sum(other.make_negative())

    def product(self, other: 'Polynomial') -> 'Polynomial':
        r = Polynomial()
        for t in self.terms.values():
            partial = Polynomial()
            for t2 in other.terms.values():
                partial._add_term(t.product(t2))
            r = r.sum(partial)
        return r

    def make_derivative(self, var: str) -> 'Polynomial':
        p = Polynomial()
        for t in self.terms.values():
            d = t.make_derivative(var)
            if d.coefficient is not None:
                p._add_term(d)
        p._finish()
        p.set_parameters(self.parameters)
        return p

    def as_polynomial_in(self, variables: Sequence[str]) -> 'Polynomial':
        p = Polynomial(self.to_expression(), variables)
        p.set_parameters(self.parameters)
        return p

    def one_variable_polynomial(self, var: str) -> 'Polynomial':
        return self.as_polynomial_in([var])

    # ------------------------------------------------------------------
    # Coefficients
    # ------------------------------------------------------------------

    def degree(self) -> int:
        """Highest total degree over the retained terms, -1 when empty."""
        if self._highest_degree < 0:
            self._highest_degree = max((t.degree() for t in self.terms.values()), default=-1)
        return self._highest_degree

    def is_monomial(self) -> bool:
        return len(self.terms) < 2

    def get_constant(self) -> Expression:
        t = self.terms.get(CONSTANT)
        return t.coefficient if t is not None else Expression("0")

    def get_coefficient(self, variables: Sequence[str], exponents: Sequence[int]) -> Expression:
        if len(variables) != len(exponents):
            return Expression("0")
        t = self.terms.get(make_signature(dict(zip(variables, exponents))))
        return t.coefficient if t is not None else Expression("0")

    def has_constant_coefficients(self) -> bool:
        return all(not t.coefficient.var_strings for t in self.terms.values())

    def get_coefficients_as_expressions(self, var: str) -> List[Expression]:
        """Coefficients of self viewed as a polynomial in var, highest degree first."""
        if var not in self._coefficient_cache:
            self._coefficient_cache[var] = coefficients_of(self.one_variable_polynomial(var), var)
        return self._coefficient_cache[var]

    # ------------------------------------------------------------------
    # Parameters and conversion
    # ------------------------------------------------------------------

    def set_parameters(self, parameters: Dict[str, float]):
        for t in self.terms.values():
            t.coefficient.set_parameters(parameters)
        self.parameters = parameters
        real = [v for v in self.variables if v.lower() not in parameters]
        if len(real) < len(self.variables):
            self._copy_from(self.as_polynomial_in(real))

    def _copy_from(self, p: 'Polynomial'):
        self.terms = p.terms
        self.degrees = p.degrees
        self.variables = p.variables
        self.expression = p.expression
        self.required_variables = p.required_variables
        self._coefficient_cache = p._coefficient_cache
        self._highest_degree = p._highest_degree

    def to_expression(self) -> Expression:
        if not self.terms:
            return Expression("0")
        ordered = sorted(
            self.terms.values(),
            key=lambda t: (-t.degree(), [-t.degree_of(v) for v in self.variables]),
        )
        root = ParseNode(Action.SUM, [t.make_expression().root for t in ordered])
        e = Expression(root)
        if self.parameters:
            e.set_parameters(self.parameters)
        return e

    def __str__(self):
        return str(self.to_expression())

    def __repr__(self):
        return f"Polynomial({str(self)!r})"


def coefficients_of(p: Polynomial, var: str) -> List[Expression]:
    d = p.degree()
    if d < 0:
        return []
    r = [p.get_coefficient([var], [d - i]) for i in range(d)]
    r.append(p.get_constant())
    return r


def evaluate_coefficients(coefficients: Sequence[Expression], var: str = None,
                          value: float = None) -> np.ndarray:
    """Numeric values of coefficient expressions, optionally binding var=value."""
    inputs = {var: value} if var is not None else None
    return np.array([c.value if c.value is not None else c.evaluate(inputs)
                     for c in coefficients], dtype=float)
