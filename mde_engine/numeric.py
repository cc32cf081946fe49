"""
Numeric helpers: real roots, one-variable numeric polynomials, exact-form
number presentation.
"""

import logging
import math
import sys
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .mathutil import gcd, trim_double
from .rational import ContinuedFraction

logger = logging.getLogger(__name__)

__all__ = [
    "trim_double", "real_roots", "real_roots_with_multiplicities",
    "get_equivalent_rational_string", "get_quadratic_representation_string",
    "get_rational_equivalent", "pretty_print_q_root",
    "NumberModel", "AngleModel", "PNom", "RealZero",
]

# Roots closer than this (relative) are one root of higher multiplicity
_ROOT_CLUSTER = 1.0e-4


# ============================================================================
# REAL ROOTS
# ============================================================================

def real_roots_with_multiplicities(coefficients: Sequence[float]) -> List[Tuple[float, int]]:
    """
    Sorted distinct real roots with their multiplicities.

    Coefficients are listed highest degree first. Leading zeros are
    dropped; trailing zeros contribute a root at 0.
    """
    c = np.trim_zeros(np.asarray(coefficients, dtype=float), "f")
    if c.size < 2 or not np.all(np.isfinite(c)):
        return []

    roots = np.roots(c)
    real = sorted(
        float(z.real) for z in roots
        if abs(z.imag) <= _ROOT_CLUSTER * (1.0 + abs(z.real))
    )

    clusters: List[List[float]] = []
    for z in real:
        if clusters and abs(z - clusters[-1][-1]) <= _ROOT_CLUSTER * (1.0 + abs(z)):
            clusters[-1].append(z)
        else:
            clusters.append([z])
    return [(sum(group) / len(group), len(group)) for group in clusters]


def real_roots(coefficients: Sequence[float]) -> np.ndarray:
    """Real roots, each repeated by its multiplicity, ascending."""
    out = []
    for root, multiplicity in real_roots_with_multiplicities(coefficients):
        out.extend([root] * multiplicity)
    return np.array(out, dtype=float)


# ============================================================================
# EXACT FORMS
# ============================================================================

def get_equivalent_rational_string(x: float, lim: int = 100) -> Optional[str]:
    """'n' or 'n/d' when x is a rational with |n|, |d| <= lim, else None."""
    r = ContinuedFraction(x, 20).iterate()
    if r is None:
        return None
    d = r.denominator.get_constant().value
    n = r.numerator.get_constant().value
    if d is None or n is None or abs(n) > lim or abs(d) > lim:
        return None
    if d < 0:
        n, d = -n, -d
    if d == 1.0:
        return str(int(n))
    return f"{int(n)}/{int(d)}"


def get_rational_equivalent(x: float, lim: int = 100) -> str:
    s = get_equivalent_rational_string(x, lim)
    if s is None:
        return "approx. " + trim_double(x, 4)
    return s


def _get_rational_object(x: float, lim: int) -> Union[str, List[float], None]:
    if x == 0:
        return "0"
    r = ContinuedFraction(x, 20).get_polynomial_coefficients()
    if len(r) != 2:
        return r
    if abs(r[0]) > lim or abs(r[1]) > lim:
        return None
    den, num = r[0], -r[1]
    if den < 0:
        den, num = -den, -num
    if den == 1.0:
        return str(int(num))
    return f"{int(num)}/{int(den)}"


def get_quadratic_representation_string(x: float, lim: int = 100) -> Optional[str]:
    """Exact form such as '1 - sqrt(2)' when x is a quadratic irrational."""
    s = _get_rational_object(x, lim)
    if s is None or isinstance(s, str):
        return s
    if len(s) != 3:
        return None
    d = gcd(s) or 1
    a, b, c = (v / d for v in s)
    if max(abs(a), abs(b), abs(c)) > lim:
        return None

    roots = np.sort(np.roots([a, b, c]))
    if np.iscomplexobj(roots):
        return None
    which = 0 if abs(x - roots[0]) < abs(x - roots[1]) else 1
    return pretty_print_q_root(int(a), int(b), int(c), which, lim)


def pretty_print_q_root(a: float, b: float, c: float, which_root: int,
                        lim: int = 100) -> Optional[str]:
    """Print the smaller (0) or larger (1) root of a*x^2 + b*x + c."""
    if which_root not in (0, 1):
        raise ValueError("which_root must be 0 or 1")
    if a == 0.0:
        return get_equivalent_rational_string(-c / b, lim)
    if b == 0.0:
        radicand = get_equivalent_rational_string(-c / a, lim)
        return ("sqrt(" if which_root else "-sqrt(") + f"{radicand})"

    h = -0.5 * b / a
    d = h * h - c / a
    h_string = get_equivalent_rational_string(h, lim)
    d_string = get_equivalent_rational_string(d, lim)
    if h_string is None or d_string is None:
        return None
    sign = " + " if which_root else " - "
    return f"{h_string}{sign}sqrt({d_string})"


# ============================================================================
# NUMBER / ANGLE MODELS
# ============================================================================

class NumberModel:
    """A decimal value together with its exact rational or quadratic form, if any."""

    EPSILON = 1.0e-10
    DEFAULT_FRACTION_DIGITS = 3

    def __init__(self, decimal: float, search_limit: int = 100):
        self.decimal_value = float(decimal)
        self.approximate_decimal_value: Optional[str] = None
        self.rational_value: Optional[str] = None
        self.quadratic_value: Optional[str] = None
        self.is_approximation = False

        if math.isinf(self.decimal_value) or math.isnan(self.decimal_value):
            return
        self.approximate_decimal_value = trim_double(self.decimal_value,
                                                     self.DEFAULT_FRACTION_DIGITS)
        d = float(self.approximate_decimal_value)
        self.is_approximation = abs(d - self.decimal_value) > \
            self.EPSILON * (1.0 + abs(d) + abs(self.decimal_value))
        self.rational_value = get_equivalent_rational_string(self.decimal_value, search_limit)
        self.quadratic_value = get_quadratic_representation_string(self.decimal_value, search_limit)

    def to_feature_node(self):
        from .features import MdeFeatureNode

        v = self.decimal_value
        if math.isinf(v):
            text = "infinity" if v > 0 else "-infinity"
        elif math.isnan(v):
            text = "undefined"
        else:
            text = str(v)
        node = MdeFeatureNode()
        node.add_key("decimalValue")
        node.add_value("decimalValue", text)
        if self.approximate_decimal_value is not None:
            node.add_key("approximateDecimalValue")
            node.add_value("approximateDecimalValue", self.approximate_decimal_value)
            node.add_key("isApproximation")
            node.add_value("isApproximation", str(self.is_approximation).lower())
        if self.rational_value is not None:
            node.add_key("rationalValue")
            node.add_value("rationalValue", self.rational_value)
        if self.quadratic_value is not None:
            node.add_key("quadraticValue")
            node.add_value("quadraticValue", self.quadratic_value)
        return node

    def __str__(self):
        lines = ["NumberModel:", f"decimalValue: {self.decimal_value}"]
        if self.rational_value is not None:
            lines.append(f"rationalValue: {self.rational_value}")
        else:
            lines.append("No rational representation was found.")
        if self.quadratic_value is not None:
            lines.append(f"quadraticValue: {self.quadratic_value}")
        else:
            lines.append("No quadratic representation was found.")
        return "\n".join(lines)


class AngleModel:
    """An angle in degrees and radians, radians also as a fraction of pi when exact."""

    def __init__(self, degrees: float, search_limit: int = 100):
        self.degrees = float(degrees)
        self.radians = math.pi * self.degrees / 180.0
        self.pi_fraction = NumberModel(self.radians / math.pi, search_limit)

    @classmethod
    def from_degrees(cls, degrees: float, search_limit: int = 100) -> 'AngleModel':
        return cls(degrees, search_limit)

    @classmethod
    def from_radians(cls, radians: float, search_limit: int = 100) -> 'AngleModel':
        a = cls(180.0 * radians / math.pi, search_limit)
        a.radians = float(radians)
        return a

    @property
    def fractional_radians(self) -> Optional[str]:
        s = self.pi_fraction.rational_value or self.pi_fraction.quadratic_value
        return f"({s})PI" if s is not None else None

    def representation_in_degrees(self) -> str:
        return trim_double(self.degrees, 3)

    def representation_in_radians(self) -> str:
        return self.fractional_radians or trim_double(self.radians, 3)

    def to_feature_node(self):
        from .features import MdeFeatureNode

        node = MdeFeatureNode()
        node.add_key("degreeValue")
        node.add_value("degreeValue", self.representation_in_degrees())
        node.add_key("radianValue")
        node.add_value("radianValue", self.representation_in_radians())
        if self.fractional_radians is not None:
            node.add_key("fractionalRadians")
            node.add_value("fractionalRadians", self.fractional_radians)
        return node

    def __str__(self):
        return self.representation_in_degrees()


# ============================================================================
# ONE-VARIABLE NUMERIC POLYNOMIALS
# ============================================================================

class RealZero:
    """A real zero with the sign pattern of its polynomial on either side."""

    MINUS_MINUS, MINUS_PLUS, PLUS_MINUS, PLUS_PLUS, UNDEFINED = range(5)

    def __init__(self, x: float, signature: int = 4):
        self.x = x
        self.signature = signature

    def signature_with(self, factor: 'PNom') -> int:
        """Signature of self's polynomial multiplied by `factor`."""
        v = factor.eval(self.x)
        if v == 0.0:
            return self.UNDEFINED
        if v < 0.0:
            return (-1 - self.signature) & 3
        return self.signature

    def __repr__(self):
        return f"RealZero({self.x}, {self.signature})"


class PNom:
    """
    Numeric polynomial in one variable, coefficients highest degree first.

    Leading coefficients below a relative epsilon are dropped on
    construction. The empty polynomial (degree -1) is "trivial".
    """

    def __init__(self, coefficients: Union[Sequence[float], float, None] = None):
        if coefficients is None:
            coefficients = []
        elif np.isscalar(coefficients):
            coefficients = [coefficients]
        c = np.asarray(coefficients, dtype=float)
        n = c.size
        self.epsilon = 1.0e-8 * float(np.sum(np.abs(c))) / (n + 1.0) + sys.float_info.min
        first = n
        for i in range(n):
            if abs(c[i]) > self.epsilon:
                first = i
                break
        self.coefficients = c[first:].copy()
        self.degree = self.coefficients.size - 1

    @classmethod
    def from_polynomial(cls, p, var: str) -> 'PNom':
        from .polynomial import evaluate_coefficients
        return cls(evaluate_coefficients(p.get_coefficients_as_expressions(var)))

    def is_trivial(self) -> bool:
        return self.degree < 0

    def is_constant(self) -> bool:
        return self.degree < 1

    def to_polynomial(self, var: str = "x"):
        from .polynomial import Polynomial
        return Polynomial.from_coefficients(self.coefficients, var)

    def __str__(self):
        return str(self.to_polynomial())

    def __repr__(self):
        return f"PNom({list(self.coefficients)})"

    def sum(self, other: 'PNom') -> 'PNom':
        d = max(self.degree, other.degree)
        c = np.zeros(d + 1)
        if other.degree >= 0:
            c[d - other.degree:] += other.coefficients
        if self.degree >= 0:
            c[d - self.degree:] += self.coefficients
        return PNom(c)

    def product(self, other: 'PNom') -> 'PNom':
        if self.degree < 0 or other.degree < 0:
            return PNom()
        return PNom(np.convolve(self.coefficients, other.coefficients))

    def make_negative(self) -> 'PNom':
        return PNom(-self.coefficients)

    def difference(self, other: 'PNom') -> 'PNom':
        return self.sum(other.make_negative())

    def quotient(self, other: 'PNom') -> Tuple['PNom', 'PNom']:
        """(quotient, remainder) of synthetic division."""
        if other.degree < 0:
            raise ValueError("PNom: divide by 0")
        if self.degree < other.degree:
            return PNom(), PNom(self.coefficients)

        qr = self.coefficients.copy()
        new_degree = self.degree - other.degree
        for i in range(new_degree + 1):
            qr[i] /= other.coefficients[0]
            for j in range(1, other.degree + 1):
                qr[i + j] -= qr[i] * other.coefficients[j]

        q = PNom(qr[:new_degree + 1])
        rest = qr[new_degree + 1:]
        nonzero = np.nonzero(np.abs(rest) > q.epsilon)[0]
        if nonzero.size == 0:
            return q, PNom()
        return q, PNom(rest[nonzero[0]:])

    def derivative(self) -> 'PNom':
        if self.degree < 1:
            return PNom()
        powers = np.arange(self.degree, 0, -1)
        return PNom(powers * self.coefficients[:-1])

    def eval(self, x: float) -> float:
        if self.is_trivial():
            return 0.0
        if self.is_constant():
            return float(self.coefficients[0])
        if math.isinf(x):
            lead = self.coefficients[0]
            if self.degree % 2 == 0 or x > 0.0:
                return math.inf if lead > 0.0 else -math.inf
            return math.inf if lead < 0.0 else -math.inf
        return float(np.polyval(self.coefficients, x))

    def get_real_roots(self) -> List[Tuple[float, int]]:
        return real_roots_with_multiplicities(self.coefficients)

    def get_real_zeros(self) -> Optional[List[RealZero]]:
        """Real zeros with the sign of self just left and right of each."""
        if self.is_trivial():
            return None
        if self.is_constant():
            return []
        roots = self.get_real_roots()
        if not roots:
            return []
        zeros = []
        previous = 2 if self.eval(roots[0][0] - 1.0) > 0 else 0
        for x, multiplicity in roots:
            if multiplicity % 2 == 0:
                following = previous >> 1
            else:
                following = 1 - (previous >> 1)
            zeros.append(RealZero(x, previous | following))
            previous = following << 1
        return zeros

    @staticmethod
    def gcd(p: 'PNom', q: 'PNom') -> 'PNom':
        if p.is_trivial():
            return q
        if q.is_trivial():
            return p
        big, little = (q, p) if p.degree <= q.degree else (p, q)
        while True:
            r = big.quotient(little)[1]
            if r.is_trivial():
                return little
            big, little = little, r
