"""
Classifiers: decide which curve family an analyzed item belongs to and
build its SolvedGraph.

A builder that rejects its input (ValueError or an arithmetic failure)
is logged and replaced by the generic xy graph.
"""

import logging
import math
from enum import Enum
from typing import List, Optional, Sequence

from .analyzed import AnalyzedData, AnalyzedEquation, AnalyzedItem
from .features import SolvedGraph
from .geometry import MultiPointXY, PointXY
from .mathutil import (
    is_within_tolerance, is_within_tolerance_of_zero, make_integer,
    normalize_degrees, trim_double,
)
from .models import (
    PolarIdentity, PolarModel, PolarModelBuilder, PolynomialModel,
    PolynomialModelBuilder, QuadraticModel, RationalModel,
)
from .polynomial import Polynomial
from .solved import conics, functions, polar, trig

logger = logging.getLogger(__name__)


# ============================================================================
# BASE
# ============================================================================

class MDEClassifier:
    """Fallback classifier: equation data, rational function or plain xy graph."""

    def get_features(self, item: AnalyzedItem) -> SolvedGraph:
        if isinstance(item, AnalyzedData):
            features = functions.solve_equation_data(item)
        else:
            try:
                features = self.classify(item)
            except (ValueError, ArithmeticError) as e:
                logger.warning(f"{type(self).__name__} could not describe '{item.name}': {e}")
                features = functions.solve_xy_graph(item)
        self.add_graph_boundaries_feature(item, features)
        return features

    def classify(self, ae: AnalyzedEquation) -> SolvedGraph:
        if ae.is_solvable_function():
            if not ae.is_polynomial():
                return self.classify_non_polynomial(ae)
            return functions.solve_rational_function(ae)
        return functions.solve_xy_graph(ae)

    def classify_non_polynomial(self, ae: AnalyzedEquation) -> SolvedGraph:
        if "abs(" in ae.input_equation:
            return functions.solve_absolute_value(ae)
        if "sqrt(" in ae.input_equation:
            return functions.solve_square_root(ae)
        return functions.solve_equation_data(ae, self)

    @staticmethod
    def add_graph_boundaries_feature(item: Optional[AnalyzedItem], features: Optional[SolvedGraph]):
        if features is None or item is None:
            return
        b = item.preferred_bounds
        features.put_feature(
            "graphBoundaries",
            f"x = {b.left} to {b.right} and y = {b.bottom} to {b.top}",
        )


# ============================================================================
# POLYNOMIAL AND RATIONAL FITS
# ============================================================================

class PolynomialClassifier(MDEClassifier):
    """
    Fits a conic and every rational function up to degree 7 over 7 to the
    samples. Models fitting no worse than `worst_fit` are finalists; the
    least complex finalist is the best guess.
    """

    SIZE = 8

    def __init__(self, points: Sequence[Optional[MultiPointXY]], worst_fit: float = -12.0):
        q_builder = PolynomialModelBuilder(2, 2)
        r_builder = PolynomialModelBuilder(self.SIZE - 1, 1)
        for p in points:
            q_builder.add_new_point(p)
            r_builder.add_new_point(p)

        models: List[PolynomialModel] = [QuadraticModel(q_builder)]
        for i in range(1, self.SIZE * self.SIZE + 1):
            models.append(RationalModel(r_builder, (i - 1) // self.SIZE, (i - 1) % self.SIZE))
        models.sort(key=lambda m: m.fit)

        self.finalists: List[PolynomialModel] = []
        for m in models:
            if m.fit > worst_fit:
                break
            self.finalists.append(m)

        self.best_guess: Optional[PolynomialModel] = None
        for m in self.finalists:
            if self.best_guess is None or m.complexity < self.best_guess.complexity:
                self.best_guess = m
        if self.best_guess is not None:
            logger.debug(f"Best polynomial model: {self.best_guess.name} "
                         f"(fit {self.best_guess.fit:.2f}, {len(self.finalists)} finalists)")

    def get_best_guess(self) -> Optional[PolynomialModel]:
        return self.best_guess

    def classify(self, ae: AnalyzedEquation) -> SolvedGraph:
        if not ae.is_solvable_function():
            return functions.solve_xy_graph(ae)
        if not ae.is_polynomial():
            return self.classify_non_polynomial(ae)
        if ae.degree == 3:
            return functions.solve_cubic_polynomial(ae)
        return functions.solve_rational_function(ae)


# ============================================================================
# TRIGONOMETRIC
# ============================================================================

class TrigClassifier(MDEClassifier):
    """Picks the sine, cosine or tangent family when exactly one appears."""

    def classify(self, ae: AnalyzedEquation) -> SolvedGraph:
        text = ae.input_equation
        found = [name for name in ("sin", "cos", "tan") if name in text]
        if found == ["sin"]:
            return trig.solve_sine(ae)
        if found == ["cos"]:
            return trig.solve_cosine(ae)
        if found == ["tan"]:
            return trig.solve_tangent(ae)
        return trig.solve_trig_function(ae)


# ============================================================================
# POLAR
# ============================================================================

class PolarClassifier(MDEClassifier):
    """Ranks the polar model families over (theta, r) samples."""

    def __init__(self, polar_points: Sequence[Optional[MultiPointXY]], worst_fit: float = -10.0):
        builder = PolarModelBuilder()
        for p in polar_points:
            builder.add_new_point(p)

        self.finalists: List[PolarModel] = []
        for m in builder.get_ranked_models():
            if m.fit > worst_fit:
                break
            self.finalists.append(m)

        self.best_guess: Optional[PolarModel] = None
        for m in self.finalists:
            if self.best_guess is None or m.complexity < self.best_guess.complexity:
                self.best_guess = m
        if self.best_guess is not None:
            logger.debug(f"Best polar model: {self.best_guess.name} (fit {self.best_guess.fit:.2f})")

    def get_best_guess(self) -> Optional[PolarModel]:
        return self.best_guess

    def classify(self, ae: AnalyzedEquation) -> SolvedGraph:
        identity = self.best_guess.identity if self.best_guess is not None else None
        if identity == PolarIdentity.LINE:
            return polar.solve_polar_line(ae, self.best_guess)
        if identity == PolarIdentity.CONIC:
            return polar.solve_polar_conic(ae, self.best_guess)
        if identity == PolarIdentity.ROSE:
            return polar.solve_polar_rose(ae, self.best_guess)
        if identity == PolarIdentity.LEMNISCATE:
            return polar.solve_polar_lemniscate(ae, self.best_guess)
        if identity == PolarIdentity.TROCHOID:
            return polar.solve_polar_trochoid(ae, self.best_guess)
        return super().classify(ae)


# ============================================================================
# QUADRATIC
# ============================================================================

class QuadraticType(Enum):
    Unknown = "unknown"
    NullSet = "null set"
    SinglePoint = "single point"
    TwoPoints = "two points"
    AllPoints = "all points"
    VerticalLine = "vertical line"
    HorizontalLine = "horizontal line"
    TwoVerticalLines = "two vertical lines"
    TwoHorizontalLines = "two horizontal lines"
    SlopingLine = "sloping line"
    Parabola = "parabola"
    Cross = "cross"
    Hyperbola = "hyperbola"
    Ellipse = "ellipse"


class ClassificationFailureReason(Enum):
    NoReason = 0
    DegreeGreaterThan2 = 1
    TooManyVariables = 2
    NonPolynomial = 3
    Polar = 4


def compute_discriminant(square: float, linear: float, constant: float) -> float:
    return linear * linear - 4.0 * square * constant


def compute_identity(a: float, b: float, c: float, d: float, e: float) -> QuadraticType:
    """
    Identity of a*u^2 + b*v^2 + c*u + d*v + e = 0 in the rotated frame,
    with e already normalized to -1 or 0.
    """
    has_a = not is_within_tolerance_of_zero(a)
    has_b = not is_within_tolerance_of_zero(b)
    has_c = not is_within_tolerance_of_zero(c)
    has_d = not is_within_tolerance_of_zero(d)
    has_e = not is_within_tolerance_of_zero(e)

    if not (has_a or has_b or has_c or has_d):
        return QuadraticType.NullSet if has_e else QuadraticType.AllPoints
    if not (has_a or has_b):
        if not has_c:
            return QuadraticType.HorizontalLine
        if not has_d:
            return QuadraticType.VerticalLine
        return QuadraticType.SlopingLine
    if not (has_b or has_d):
        disc = compute_discriminant(a, c, e)
        if is_within_tolerance_of_zero(disc):
            return QuadraticType.VerticalLine
        return QuadraticType.TwoVerticalLines if disc > 0.0 else QuadraticType.NullSet
    if not (has_a or has_c):
        disc = compute_discriminant(b, d, e)
        if is_within_tolerance_of_zero(disc):
            return QuadraticType.HorizontalLine
        return QuadraticType.TwoHorizontalLines if disc > 0.0 else QuadraticType.NullSet
    if not (has_a and has_b):
        return QuadraticType.Parabola
    if a * b < 0.0:
        return QuadraticType.Hyperbola if has_e else QuadraticType.Cross
    if not has_e:
        return QuadraticType.SinglePoint
    if a * e > 0.0:
        return QuadraticType.NullSet
    return QuadraticType.Ellipse


class QuadraticClassifier(MDEClassifier):
    """
    Reduces A*x^2 + B*x*y + C*y^2 + D*x + E*y + F = 0 to its normal form.

    The xy term is removed by rotating onto the eigenvectors of the
    quadratic part, squares are completed, and the constant is scaled to
    -1 when it is not zero. The rotated coordinates are named u, v (or
    r, s, or x, y when those clash with the user's variables).
    """

    def __init__(self, lhs: Polynomial):
        self.lhs = lhs
        self.identity = QuadraticType.Unknown
        self.reason = ClassificationFailureReason.NoReason
        self.degree = -1
        self.A = self.B = self.C = self.D = self.E = self.F = 0.0
        self.norm = 0.0
        self.alpha = 0.0
        self.new_axes = [[1.0, 0.0], [0.0, 1.0]]
        self.a_prime = self.b_prime = self.c_prime = self.d_prime = self.e_prime = 0.0
        self.u0 = 0.0
        self.v0 = 0.0
        self.actual_variables = ["x", "y"]
        self.trans_vars = ["x", "y"]
        self._classify()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_identity(self) -> QuadraticType:
        return self.identity

    def get_reason(self) -> ClassificationFailureReason:
        return self.reason

    def get_actual_variables(self) -> List[str]:
        return list(self.actual_variables)

    def get_original_coefficients(self) -> List[float]:
        return [self.A, self.B, self.C, self.D, self.E, self.F]

    def get_normalized_coefficients(self) -> List[float]:
        return [self.a_prime, self.b_prime, self.c_prime, self.d_prime, self.e_prime]

    def get_new_axes(self) -> List[List[float]]:
        return [list(row) for row in self.new_axes]

    def get_rotation(self) -> float:
        return self.alpha

    def get_translation(self) -> List[float]:
        return [self.u0, self.v0]

    def uv2xy(self, uv: Sequence[float]) -> List[float]:
        if len(uv) != 2:
            raise ValueError("UV array in uv2xy must have length exactly 2")
        ax = self.new_axes
        return [uv[0] * ax[0][0] + uv[1] * ax[1][0], uv[0] * ax[0][1] + uv[1] * ax[1][1]]

    def xy2uv(self, xy: Sequence[float]) -> List[float]:
        if len(xy) != 2:
            raise ValueError("XY array in xy2uv must have length exactly 2")
        ax = self.new_axes
        return [ax[0][0] * xy[0] + ax[0][1] * xy[1], ax[1][0] * xy[0] + ax[1][1] * xy[1]]

    def get_normalized_equation(self) -> Optional[str]:
        parts = []
        if not is_within_tolerance_of_zero(self.a_prime):
            parts.append(f"{self.make_coefficient(self.a_prime, not parts)}*"
                         f"({self.trans_vars[0]}{self.make_coefficient(-self.u0, False)})^2 ")
        if not is_within_tolerance_of_zero(self.b_prime):
            parts.append(f"{self.make_coefficient(self.b_prime, not parts)}*"
                         f"({self.trans_vars[1]}{self.make_coefficient(-self.v0, False)})^2 ")
        if not is_within_tolerance_of_zero(self.c_prime):
            parts.append(f"{self.make_coefficient(self.c_prime, not parts)}*{self.trans_vars[0]} ")
        if not is_within_tolerance_of_zero(self.d_prime):
            parts.append(f"{self.make_coefficient(self.d_prime, not parts)}*{self.trans_vars[1]} ")
        if not parts:
            return None
        return "".join(parts) + " = " + trim_double(-self.e_prime, 6)

    def get_rotation_transform(self) -> str:
        if is_within_tolerance_of_zero(self.alpha):
            return "There was no rotation, so the transform is the identity."
        ax, (x, y), (u, v) = self.new_axes, self.actual_variables, self.trans_vars
        mc = self.make_coefficient
        return (f"{u} = {mc(ax[0][0], True)}*{x} {mc(ax[0][1], False)}*{y}\n"
                f"{v} = {mc(ax[1][0], True)}*{x} {mc(ax[1][1], False)}*{y}")

    def __str__(self):
        if self.lhs is not None:
            return f"Describes the equation:\n{self.lhs} = 0"
        return "Could not read the equation -- syntax error."

    # ------------------------------------------------------------------
    # Static helpers shared by the conic builders
    # ------------------------------------------------------------------

    @staticmethod
    def make_coefficient(c: float, leading: bool) -> str:
        xs = trim_double(abs(c), 6)
        if c > 0.0:
            return xs if leading else "+" + xs
        return "-" + xs

    @staticmethod
    def pretty_print_linear_equation(coeffs: Sequence[float], variables: Sequence[str],
                                     t: float) -> str:
        mc = QuadraticClassifier.make_coefficient
        out = ""
        leading = True
        if not is_within_tolerance(coeffs[0], t):
            out += f"{mc(coeffs[0], leading)}*{variables[0]}"
            leading = False
        if not is_within_tolerance(coeffs[1], t):
            out += f"{mc(coeffs[1], leading)}*{variables[1]}"
            leading = False
        if not is_within_tolerance(coeffs[2], t):
            out += mc(coeffs[2], leading)
        return out + " = 0"

    @staticmethod
    def get_equation_of_a_line(p: PointXY, inc: float, variables: Sequence[str],
                               lim: int = 100) -> str:
        """Equation of the line through p at inclination `inc` degrees."""
        if is_within_tolerance(abs(inc) - 90.0, 1.0e-8):
            return QuadraticClassifier.get_equation_of_a_vertical_line(p.x, variables, lim)
        m = math.tan(math.radians(inc))
        coeffs = [m, -1.0, p.y - m * p.x]
        t = math.sqrt(0.33 * sum(c * c for c in coeffs))
        return QuadraticClassifier.pretty_print_linear_equation(make_integer(coeffs, lim),
                                                                variables, t)

    @staticmethod
    def get_equation_of_a_vertical_line(x: float, variables: Sequence[str],
                                        lim: int = 100) -> str:
        coeffs = [1.0, 0.0, -x]
        t = math.sqrt(0.5 * (1.0 + x * x))
        return QuadraticClassifier.pretty_print_linear_equation(make_integer(coeffs, lim),
                                                                variables, t)

    @staticmethod
    def normalize_angle_in_degrees(angle: float) -> float:
        return normalize_degrees(angle)

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def _classify(self):
        names = self.lhs.to_expression().var_strings
        self.degree = self.lhs.degree()
        if self.degree > 2:
            self.reason = ClassificationFailureReason.DegreeGreaterThan2
        if len(names) > 2:
            self.actual_variables = list(names)
            self.reason = ClassificationFailureReason.TooManyVariables
            return
        if not self.lhs.has_constant_coefficients():
            self.reason = ClassificationFailureReason.NonPolynomial

        user = self.lhs.variables
        if len(user) == 2:
            self.actual_variables = list(user)
        elif len(user) == 1:
            if user[0] in ("r", "theta"):
                self.actual_variables = ["r", "theta"]
            elif user[0] != self.actual_variables[1]:
                self.actual_variables[0] = user[0]
        if self.actual_variables == ["r", "theta"]:
            self.reason = ClassificationFailureReason.Polar
        if self.reason != ClassificationFailureReason.NoReason:
            logger.debug(f"Not a quadratic: {self.reason.name}")
            return

        self.trans_vars = list(self.actual_variables)
        x, y = self.actual_variables
        lhs = self.lhs
        self.A = lhs.get_coefficient([x], [2]).evaluate()
        self.B = lhs.get_coefficient([x, y], [1, 1]).evaluate()
        self.C = lhs.get_coefficient([y], [2]).evaluate()
        self.D = lhs.get_coefficient([x], [1]).evaluate()
        self.E = lhs.get_coefficient([y], [1]).evaluate()
        self.F = lhs.get_constant().evaluate()
        self.norm = 0.17 * math.sqrt(sum(v * v for v in self.get_original_coefficients()))
        if self._flunks_infinity_test():
            return

        self._normalize_rotation()
        self._complete_square()
        self._normalize_constant()
        self.identity = compute_identity(self.a_prime, self.b_prime, self.c_prime,
                                         self.d_prime, self.e_prime)
        logger.debug(f"Quadratic identity of '{lhs}': {self.identity.value}")

    def _flunks_infinity_test(self) -> bool:
        """A single infinite coefficient dominates the rest; more than one is hopeless."""
        if math.isfinite(self.norm):
            return False
        f = self.get_original_coefficients()
        infinite = [i for i, v in enumerate(f) if not math.isfinite(v)]
        if len(infinite) != 1:
            return True
        f = [0.0] * 6
        f[infinite[0]] = 1.0
        self.A, self.B, self.C, self.D, self.E, self.F = f
        self.norm = 1.0
        return False

    def _normalize_rotation(self):
        A, B, C, D, E, F = self.get_original_coefficients()
        if is_within_tolerance_of_zero(B):
            self.a_prime, self.b_prime, self.c_prime, self.d_prime, self.e_prime = A, C, D, E, F
            return

        sigma = A + C
        delta = A - C
        disc = math.hypot(delta, B)
        lambdas = (0.5 * (sigma + disc), 0.5 * (sigma - disc))
        u1, v1 = 0.5 * B, lambdas[0] - A
        u2, v2 = lambdas[1] - C, 0.5 * B
        n1 = 1.0 / math.hypot(u1, v1)
        n2 = 1.0 / math.hypot(u2, v2)
        xi = [[n1 * u1, n1 * v1], [n2 * u2, n2 * v2]]
        i_max = 0 if abs(xi[0][0]) > abs(xi[1][0]) else 1
        unit = math.copysign(1.0, xi[i_max][0])
        x0, x1 = xi[i_max][0] * unit, xi[i_max][1] * unit

        self.new_axes = [[x0, x1], [-x1, x0]]
        self.a_prime = lambdas[i_max]
        self.b_prime = lambdas[1 - i_max]
        self.c_prime = x0 * D + x1 * E
        self.d_prime = -x1 * D + x0 * E
        self.e_prime = F
        self.alpha = math.degrees(math.atan2(x1, x0))
        self._set_transform_variables()

    def _set_transform_variables(self):
        for pair in (["u", "v"], ["r", "s"], ["x", "y"]):
            if not set(pair) & set(self.actual_variables):
                self.trans_vars = pair
                return

    def _complete_square(self):
        if not is_within_tolerance_of_zero(self.a_prime):
            self.u0 = -0.5 * self.c_prime / self.a_prime
            self.e_prime -= 0.25 * self.c_prime * self.c_prime / self.a_prime
            self.c_prime = 0.0
        if not is_within_tolerance_of_zero(self.b_prime):
            self.v0 = -0.5 * self.d_prime / self.b_prime
            self.e_prime -= 0.25 * self.d_prime * self.d_prime / self.b_prime
            self.d_prime = 0.0

    def _normalize_constant(self):
        if is_within_tolerance_of_zero(self.e_prime):
            self.e_prime = 0.0
            return
        factor = -1.0 / self.e_prime
        values = [v * factor for v in self.get_normalized_coefficients()]
        self.norm = math.sqrt(0.2 * sum(v * v for v in values))
        values = [0.0 if is_within_tolerance_of_zero(v) else v for v in values]
        self.a_prime, self.b_prime, self.c_prime, self.d_prime, self.e_prime = values

    # ------------------------------------------------------------------
    # Features
    # ------------------------------------------------------------------

    def classify(self, ae: AnalyzedEquation) -> SolvedGraph:
        t = self.identity
        if t in (QuadraticType.HorizontalLine, QuadraticType.VerticalLine, QuadraticType.SlopingLine):
            return conics.solve_line(ae, self)
        if t == QuadraticType.Parabola:
            return conics.solve_parabola(ae, self)
        if t in (QuadraticType.SinglePoint, QuadraticType.Ellipse):
            return conics.solve_ellipse(ae, self)
        if t == QuadraticType.Hyperbola:
            return conics.solve_hyperbola(ae, self)
        if t == QuadraticType.NullSet:
            return functions.solve_xy_graph(ae, "null set")
        if t == QuadraticType.AllPoints:
            return functions.solve_xy_graph(ae, "all points")
        if t in (QuadraticType.TwoHorizontalLines, QuadraticType.TwoVerticalLines):
            return conics.solve_two_lines(ae, self)
        if t == QuadraticType.Cross:
            return conics.solve_two_intersecting_lines(ae, self)
        return super().classify(ae)
