"""
Equation: two Expressions reduced to one canonical Polynomial.
"""

from typing import Optional

from .core import Expression
from .polynomial import Polynomial
from .rational import RationalExpression


class Equation:
    """
    "LHS = RHS" split into two Expressions.

    `bad` stays True unless both sides parse. The main polynomial is
    left - right, cross-multiplied when both sides are rational
    expressions so denominators clear.
    """

    def __init__(self, text: str):
        self.bad = True
        self.left: Optional[Expression] = None
        self.right: Optional[Expression] = None
        self.polynomial: Optional[Polynomial] = None

        pieces = text.split("=", 1)
        if len(pieces) != 2 or "=" in pieces[1]:
            return
        lhs, rhs = pieces
        if not lhs.strip() or not rhs.strip():
            return

        self.left = Expression(lhs)
        self.right = Expression(rhs)
        if self.left.root is None or self.right.root is None:
            return
        self.bad = self.left.root.bad_flag or self.right.root.bad_flag
        if self.bad:
            return

        if not self._solve_rational():
            pl = Polynomial(self.left, use_generalized_variables=False)
            pr = Polynomial(self.right, use_generalized_variables=False)
            self.polynomial = pl.sum(pr.make_negative())

    def _solve_rational(self) -> bool:
        left = RationalExpression(self.left)
        if not left.is_rational_expression():
            return False
        right = RationalExpression(self.right)
        if not right.is_rational_expression():
            return False
        pl = left.numerator.product(right.denominator)
        pr = right.numerator.product(left.denominator)
        self.polynomial = pl.sum(pr.make_negative())
        return True

    def get_simple(self) -> Optional[Expression]:
        """The side that is a lone variable, if any."""
        if self.left.is_simple():
            return self.left
        if self.right.is_simple():
            return self.right
        return None

    def get_other(self, e: Expression) -> Optional[Expression]:
        if e is self.left:
            return self.right
        if e is self.right:
            return self.left
        return None

    def one_variable_polynomial(self, var: str) -> Polynomial:
        return Polynomial(self.polynomial.to_expression(), [var])

    def __str__(self):
        return f"{self.left} = {self.right}"
