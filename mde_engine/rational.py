"""
Rational expressions and continued-fraction recognition of exact values.
"""

import logging
import math
from typing import List, Optional, Tuple, Union

from .core import Action, Expression, ParseNode
from .polynomial import Polynomial, coefficients_of, evaluate_coefficients

logger = logging.getLogger(__name__)


class RationalExpression:
    """Numerator/denominator Polynomial pair with its own algebra."""

    def __init__(self, source: Union[str, Expression, None] = None):
        self.numerator = Polynomial(Expression("1"))
        self.denominator = Polynomial(Expression("1"))
        self.expression: Optional[Expression] = None
        self._is_rational = False

        if source is None:
            return
        self.expression = Expression(source) if isinstance(source, str) else source
        if not self.expression.is_valid():
            return
        r = self._make_it(self.expression.root)
        if r is None:
            return
        self.numerator = r.numerator
        self.denominator = r.denominator
        self._is_rational = True

    def is_rational_expression(self) -> bool:
        return self._is_rational

    def set_parameters(self, parameters):
        if self.expression is not None:
            self.expression.set_parameters(parameters)
        self.numerator.set_parameters(parameters)
        self.denominator.set_parameters(parameters)

    # Public algebra re-derives the printed expression
    def sum(self, other: 'RationalExpression') -> 'RationalExpression':
        return self._sum(other)._transform_expression()

    def product(self, other: 'RationalExpression') -> 'RationalExpression':
        return self._product(other)._transform_expression()

    def difference(self, other: 'RationalExpression') -> 'RationalExpression':
        return self._difference(other)._transform_expression()

    def quotient(self, other: 'RationalExpression') -> 'RationalExpression':
        return self._quotient(other)._transform_expression()

    def __str__(self):
        n = str(self.numerator) if self.numerator.is_monomial() else f"({self.numerator})"
        return f"{n}/({self.denominator})"

    def __repr__(self):
        return f"RationalExpression({str(self)!r})"

    def _transform_expression(self) -> 'RationalExpression':
        self.expression = Expression(str(self))
        return self

    def _product(self, other):
        r = RationalExpression()
        r.numerator = self.numerator.product(other.numerator)
        r.denominator = self.denominator.product(other.denominator)
        return r

    def _negative(self):
        r = RationalExpression()
        r.numerator = self.numerator.make_negative()
        r.denominator = r.denominator.product(self.denominator)
        return r

    def _reciprocal(self):
        r = RationalExpression()
        r.numerator = r.numerator.product(self.denominator)
        r.denominator = r.denominator.product(self.numerator)
        return r

    def _sum(self, other):
        r = RationalExpression()
        r.numerator = self.numerator.product(other.denominator).sum(
            other.numerator.product(self.denominator))
        r.denominator = self.denominator.product(other.denominator)
        return r

    def _difference(self, other):
        return self._sum(other._negative())

    def _quotient(self, other):
        return self._product(other._reciprocal())

    def _make_it(self, q: ParseNode) -> Optional['RationalExpression']:
        op = q.operator
        r = RationalExpression()
        if op == Action.SUM:
            r.numerator = Polynomial(Expression("0"))
            for child in q.children:
                temp = self._make_it(child)
                if temp is None:
                    return None
                r = temp._sum(r)
        elif op == Action.PRODUCT:
            for child in q.children:
                temp = self._make_it(child)
                if temp is None:
                    return None
                r = temp._product(r)
        elif op == Action.U_MINUS:
            temp = self._make_it(q.children[0])
            if temp is None:
                return None
            r = temp._negative()
        elif op == Action.RECIPROCAL:
            temp = self._make_it(q.children[0])
            if temp is None:
                return None
            r = temp._reciprocal()
        elif op == Action.POWER:
            e = Expression(q.children[1])
            if e.value is None or not math.isfinite(e.value):
                return None
            n = round(e.value)
            if n != e.value:
                return None
            temp = self._make_it(q.children[0])
            if temp is None:
                return None
            if n < 0:
                temp = temp._reciprocal()
            for _ in range(abs(n)):
                r = r._product(temp)
        elif op == Action.NO_OP:
            r.numerator = Polynomial(Expression(q))
        else:
            if q.value is not None:
                return RationalExpression(Expression.constant(q.value))
            return None
        return r


# ============================================================================
# CONTINUED FRACTIONS
# ============================================================================

class _Remainder:
    __slots__ = ("a", "theta")

    def __init__(self, x: float, tolerance: float):
        if abs(x - round(x)) < tolerance:
            self.a = float(round(x))
            self.theta = 0.0
        else:
            self.a = math.floor(x)
            self.theta = x - self.a


def _decimal_places(x: float) -> int:
    text = repr(float(x))
    if "e" in text or "n" in text or "." not in text:
        return 0
    return len(text.split(".")[1])


class ContinuedFraction:
    """
    Continued-fraction expansion of x with closest-match detection.

    A remainder that repeats remainder 0 marks a rational value, one that
    repeats a later remainder marks a root of an integer quadratic. The
    match tolerance grows with each partial quotient so the probability of
    a false match stays below MAX_ERROR_PROBABILITY.
    """

    MAX_ERROR_PROBABILITY = 0.5
    LOG_LIMIT = math.log1p(-MAX_ERROR_PROBABILITY)
    INITIAL_TOLERANCE = 1.0e-10

    def __init__(self, x: float, max_size: int = 20):
        self.x = x
        self.max_size = max_size
        self._expand(x, self.INITIAL_TOLERANCE)
        if self.first < 0:
            # Short decimals typed by hand carry less precision than a double
            places = _decimal_places(x)
            if 6 <= places < 10:
                logger.debug(f"Retrying continued fraction of {x} at tolerance 1e-{places}")
                self._expand(x, 10.0 ** -places)

    def _expand(self, x: float, tolerance: float):
        self.tolerance = tolerance
        self.log_prob_correct = 0.0
        self.residuals: List[Tuple[int, float]] = []
        self.first = -1

        if not math.isfinite(x):
            self.a, self.size = [], 0
            self.error_probability = 1.0
            return

        r = _Remainder(x, self.tolerance)
        self._adjust_tolerance(r)
        remainders = [_Remainder(0.0, self.tolerance)]
        n = 1
        while self._acceptable_err(n):
            self.first = self._fcm(remainders, r)
            if self.first >= 0:
                break
            remainders.append(r)
            if r.theta == 0.0:
                break
            r = _Remainder(1.0 / r.theta, self.tolerance)
            self._adjust_tolerance(r)
            n += 1
        if self.first < 0:
            self._fcm(remainders, r)
        remainders.append(r)

        self.size = n
        self.a = [int(remainders[i].a) for i in range(1, n + 1)]
        if self.log_prob_correct > -math.inf:
            self.error_probability = -math.expm1(self.log_prob_correct)
        else:
            self.error_probability = 1.0

    def _acceptable_err(self, n: int) -> bool:
        c = 2.0 * n * self.tolerance
        if c < 1.0:
            self.log_prob_correct += math.log1p(-c)
        else:
            self.log_prob_correct = -math.inf
        return self.log_prob_correct >= self.LOG_LIMIT

    def _adjust_tolerance(self, r: _Remainder):
        p = abs(r.a)
        if p == 0.0:
            return
        for _ in range(int(math.floor(math.log2(p))) + 1):
            self.tolerance *= 2.1

    def _fcm(self, remainders, r: _Remainder) -> int:
        """Index of the first remainder matching r within tolerance, -1 if none."""
        best, best_index = math.inf, -1
        for i, t in enumerate(remainders):
            miss = abs(r.theta - t.theta)
            if miss < best:
                best, best_index = miss, i
            if miss < self.tolerance:
                self.residuals.append((i, miss))
                return i
        self.residuals.append((best_index, best))
        return -1

    def is_rational(self) -> bool:
        return self.first == 0

    def is_quadratic(self) -> bool:
        return self.first > 0

    def get_first(self) -> int:
        return 0 if self.is_rational() else self.first - 1

    def get_last(self) -> int:
        return self.size - 1 if self.is_quadratic() else -1

    def iterate(self) -> Optional[RationalExpression]:
        """Rebuild the rational value from the partial quotients."""
        if not self.is_rational():
            return None
        n = self.size - 1
        r = RationalExpression(str(self.a[n]))
        while n > 0:
            n -= 1
            r = r._reciprocal()._sum(RationalExpression(str(self.a[n])))
        return r._transform_expression()

    def iterate_quadratic(self, var: str = "x", f: int = None,
                          l: int = None) -> Tuple[RationalExpression, ...]:
        """Two linear fractional forms in var whose equality defines the quadratic."""
        if not self.is_quadratic():
            return ()
        f = self.first - 1 if f is None else f
        l = self.size - 1 if l is None else l
        n = 0
        r = RationalExpression(var)._sum(RationalExpression(str(-self.a[0])))
        r0 = r
        while True:
            if n == f:
                r0 = r
            n += 1
            r = r._reciprocal()._sum(RationalExpression(str(-self.a[n])))
            if n == l:
                break
        return r0._transform_expression(), r._transform_expression()

    def get_quadratic_polynomial(self) -> Optional[Polynomial]:
        if not self.is_quadratic():
            return None
        r0, r1 = self.iterate_quadratic("x")
        left = r0.numerator.product(r1.denominator)
        right = r1.numerator.product(r0.denominator)
        return left.difference(right)

    def get_polynomial_coefficients(self) -> List[float]:
        """[den, -num] for a rational, the integer quadratic (highest first), else []."""
        if self.is_rational():
            r = self.iterate()
            return [r.denominator.get_constant().value, -r.numerator.get_constant().value]
        if self.is_quadratic():
            p = self.get_quadratic_polynomial()
            return list(evaluate_coefficients(coefficients_of(p, "x")))
        return []

    def get_quadratic_equation(self) -> Optional[str]:
        p = self.get_quadratic_polynomial()
        return f"{p} = 0" if p is not None else None

    def get_rational(self) -> Optional[str]:
        r = self.iterate()
        return str(r) if r is not None else None

    def __str__(self):
        lines = [
            "Continued fraction:",
            f"Size = {self.size}",
            f"Rational value : {self.is_rational()}",
            f"Quadratic root: {self.is_quadratic()}",
            "Partial quotients: " + " ".join(str(a) for a in self.a),
            f"First = {self.get_first()}, Last = {self.get_last()}",
            f"Probability of incorrect classification = {self.error_probability}",
        ]
        rational = self.get_rational()
        if rational is not None:
            lines.append(f"Rational value = {rational}")
        quadratic = self.get_quadratic_equation()
        if quadratic is not None:
            lines.append(f"Quadratic equation: {quadratic}")
        return "\n".join(lines)
