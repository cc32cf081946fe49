"""
Least-squares implicit models fitted to sampled points.

Each candidate model is a linear combination of generator functions that
should vanish on every sample. The fit is log10 of the ratio of smallest
to largest singular value of the generator matrix; the right singular
vector of the smallest value is the model.
"""

import logging
import math
from enum import IntEnum
from typing import List, Optional, Sequence

import numpy as np

from .analyzed import AnalyzedEquation
from .core import Expression
from .mathutil import make_integer, trim_double
from .polynomial import Polynomial

logger = logging.getLogger(__name__)


# ============================================================================
# BUILDERS
# ============================================================================

class DataModelBuilder:
    """Accumulates generator rows and fits a model over chosen columns."""

    MAX_DATA = 200.0

    def __init__(self):
        self.data: List[List[float]] = []
        self.degree = 0
        self.fit = math.inf
        self.model = np.zeros(0)

    def __len__(self):
        return len(self.data)

    def build_model(self, indices: Sequence[int]):
        """Fit the columns `indices`, leaving results in fit and model."""
        self.degree = len(indices)
        if not self.data:
            self.fit = math.inf
            return
        rows = np.asarray(self.data, dtype=float)[:, list(indices)]
        with np.errstate(invalid="ignore"):
            keep = ~np.isnan(rows).any(axis=1) & (np.abs(rows).max(axis=1) <= self.MAX_DATA)
        rows = rows[keep]
        if len(rows) < 10 * self.degree:
            self.fit = math.inf
            return

        _, s, vt = np.linalg.svd(rows, full_matrices=False)
        f = s[self.degree - 1] / s[0] if s[0] != 0.0 else 0.0
        self.model = vt[self.degree - 1].copy()
        self.fit = -math.inf if f == 0.0 else math.log10(f)
        logger.debug(f"Fit over columns {list(indices)}: {self.fit:.3f} from {len(rows)} rows")


class PolynomialModelBuilder(DataModelBuilder):
    """Generators y^i * x^j for i <= y_degree (outer) and j <= x_degree (inner)."""

    def __init__(self, x_degree: int, y_degree: int):
        super().__init__()
        self.x_degree = x_degree
        self.y_degree = y_degree

    def add_point(self, x: float, y: float):
        xs = [x ** j for j in range(self.x_degree + 1)]
        self.data.append([(y ** i) * xp for i in range(self.y_degree + 1) for xp in xs])

    def add_new_point(self, mp):
        if mp is None:
            return
        for y in mp.y_array:
            self.add_point(mp.x, y)


class PolarModelBuilder(DataModelBuilder):
    """Generators 1, r, 1/r, r^2, then cos(k*theta), sin(k*theta) for k = 1..4."""

    MAX_GENERATORS = 12

    def add_point(self, r: float, theta: float):
        row = [1.0, r, 1.0 / r if r != 0.0 else math.inf, r * r]
        for k in range(1, 5):
            row.append(math.cos(k * theta))
            row.append(math.sin(k * theta))
        self.data.append(row)

    def add_new_point(self, rt):
        if rt is None:
            return
        for r in rt.y_array:
            self.add_point(r, rt.x)

    def get_ranked_models(self) -> List['PolarModel']:
        models = [
            PolarEnchiladaModel(self),
            PolarTrochoidModel(self),
            PolarConicModel(self),
            PolarRoseModel(self),
            PolarLineModel(self),
            PolarLemniscateModel(self),
        ]
        return sorted(models, key=lambda m: m.fit)


def _prune(vector: np.ndarray) -> int:
    """Zero entries below 1e-8 of the largest. Returns how many were zeroed."""
    t = float(np.max(np.abs(vector))) * 1.0e-8 if vector.size else 0.0
    small = np.abs(vector) < t
    vector[small] = 0.0
    return int(np.count_nonzero(small))


# ============================================================================
# CARTESIAN MODELS
# ============================================================================

class PolynomialModel:
    """Best of several column signatures; complexity counts the surviving terms."""

    name = "polynomial"

    def __init__(self):
        self.fit = math.inf
        self.model_vector: Optional[np.ndarray] = None
        self.model_signature: Optional[List[int]] = None
        self.complexity = math.inf
        self.which_signature = 0

    def evaluate(self, builder: DataModelBuilder, signatures: Sequence[Sequence[int]]):
        for i, signature in enumerate(signatures):
            builder.build_model(signature)
            if builder.fit <= self.fit:
                self.fit = builder.fit
                self.model_vector = builder.model.copy()
                self.model_signature = list(signature)
                self.which_signature = i
        if self.fit < math.inf:
            n = len(self.model_vector)
            self.complexity = len(self.model_signature) - _prune(self.model_vector) / n
        else:
            self.complexity = math.inf

    def __str__(self):
        return self.name


class QuadraticModel(PolynomialModel):
    """General conic: 1, x, x^2, y, xy, y^2."""

    GENERATORS = ("1", "x", "x^2", "y", "x*y", "y^2")

    def __init__(self, builder: PolynomialModelBuilder):
        super().__init__()
        signature = []
        k = 0
        for i in range(builder.y_degree + 1):
            for j in range(builder.x_degree + 1):
                if i + j <= 2:
                    signature.append(k)
                k += 1
        self.evaluate(builder, [signature])
        self.complexity = 0.0

    def get_polynomial(self) -> Polynomial:
        mv = make_integer(self.model_vector, 100)
        text = "+".join(f"({trim_double(c, 12)})*{g}" for c, g in zip(mv, self.GENERATORS))
        return Polynomial(Expression(text))

    def get_analyzed_equation(self) -> AnalyzedEquation:
        return AnalyzedEquation(f"{self.get_polynomial()} = 0")

    def __str__(self):
        return str(self.get_polynomial())


class RationalModel(PolynomialModel):
    """y * denominator(x) + numerator'(x) = 0 with the given degrees."""

    def __init__(self, builder: PolynomialModelBuilder, numerator_degree: int,
                 denominator_degree: int):
        super().__init__()
        if builder.y_degree < 1:
            raise ValueError("Need a PolynomialModelBuilder with larger y degree")
        self.numerator_degree = min(numerator_degree, builder.x_degree)
        self.denominator_degree = min(denominator_degree, builder.x_degree)
        x_size = builder.x_degree + 1
        signature = list(range(self.numerator_degree + 1)) + \
            [x_size + i for i in range(self.denominator_degree + 1)]
        self.name = f"rational {self.numerator_degree}/{self.denominator_degree}"
        self.evaluate(builder, [signature])

    def get_numerator(self) -> Polynomial:
        n = self.numerator_degree
        c = [-self.model_vector[n - i] for i in range(n + 1)]
        return Polynomial.from_coefficients(make_integer(c, 100), "x")

    def get_denominator(self) -> Polynomial:
        n, d = self.numerator_degree, self.denominator_degree
        c = [0.0] * (d + 1)
        for i in range(d + 1):
            c[d - i] = self.model_vector[1 + i + n]
        return Polynomial.from_coefficients(make_integer(c, 100), "x")

    def __str__(self):
        return f"Numerator = {self.get_numerator()}\nDenominator = {self.get_denominator()}"


# ============================================================================
# POLAR MODELS
# ============================================================================

class PolarIdentity(IntEnum):
    UNKNOWN = 0
    ENCHILADA = 1
    TROCHOID = 2
    CONIC = 3
    ROSE = 4
    LINE = 5
    LEMNISCATE = 6


class PolarModel:
    name = "polar"
    identity = PolarIdentity.UNKNOWN
    signatures: Sequence[Sequence[int]] = ()

    def __init__(self, builder: PolarModelBuilder):
        self.fit = math.inf
        self.model_vector: Optional[np.ndarray] = None
        self.model_signature: Optional[List[int]] = None
        self.degree = 0
        self.complexity = math.inf
        self.which_signature = 0
        self.evaluate(builder, self.signatures)

    def evaluate(self, builder: PolarModelBuilder, signatures: Sequence[Sequence[int]]):
        for i, signature in enumerate(signatures):
            builder.build_model(signature)
            if builder.fit <= self.fit:
                self.fit = builder.fit
                self.model_vector = builder.model.copy()
                self.model_signature = list(signature)
                self.which_signature = i
                self.degree = len(signature)
        if self.model_vector is None:
            return
        _prune(self.model_vector)
        n = len(signatures)
        self.complexity = self.degree + (n - 1.0) / n

    @staticmethod
    def phase_in_rads(a: float, b: float) -> float:
        return math.atan2(b, a)

    @staticmethod
    def phase_in_deg(a: float, b: float) -> float:
        return math.degrees(math.atan2(b, a))

    @staticmethod
    def amplitude(a: float, b: float) -> float:
        return math.hypot(a, b)

    def __str__(self):
        return self.name


class PolarEnchiladaModel(PolarModel):
    name = "enchilada"
    identity = PolarIdentity.ENCHILADA
    signatures = (tuple(range(12)),)


class PolarTrochoidModel(PolarModel):
    name = "trochoid"
    identity = PolarIdentity.TROCHOID
    signatures = ((0, 1, 4, 5), (0, 1, 6, 7), (0, 1, 8, 9), (0, 1, 10, 11))


class PolarConicModel(PolarModel):
    """a + b/r + c*cos(theta) + d*sin(theta) = 0, or the circle a + b*r = 0."""

    name = "conic"
    identity = PolarIdentity.CONIC
    signatures = ((0, 2, 4, 5), (0, 1))

    def __init__(self, builder: PolarModelBuilder):
        from .classifiers import QuadraticType

        self.eccentricity = 0.0
        self.conic_identity = None
        super().__init__(builder)
        if self.model_vector is None:
            return
        mv = self.model_vector
        if self.which_signature == 0:
            self.eccentricity = self.amplitude(mv[2], mv[3]) / abs(mv[0])
            if abs(self.eccentricity - 1.0) < 1.0e-6:
                mv[0] /= self.eccentricity
                self.eccentricity = 1.0
                self.conic_identity = QuadraticType.Parabola
            elif self.eccentricity < 1.0:
                self.conic_identity = QuadraticType.Ellipse
            else:
                self.conic_identity = QuadraticType.Hyperbola
        else:
            self.conic_identity = QuadraticType.Ellipse

    def get_cartesian_equation(self) -> str:
        mv = [trim_double(v, 12) for v in self.model_vector]
        if self.which_signature == 0:
            return f"({mv[0]})^2*(x^2+y^2) = (({mv[1]})+({mv[2]})*x+({mv[3]})*y)^2"
        return f"({mv[0]})^2 = ({mv[1]})^2*(x^2+y^2)"


class PolarRoseModel(PolarModel):
    name = "rose"
    identity = PolarIdentity.ROSE
    signatures = ((1, 4, 5), (1, 6, 7), (1, 8, 9), (1, 10, 11))


class PolarLineModel(PolarModel):
    name = "line"
    identity = PolarIdentity.LINE
    signatures = ((2, 4, 5),)

    def get_cartesian_equation(self) -> str:
        mv = [trim_double(v, 12) for v in self.model_vector]
        return f"({mv[1]})*x+({mv[2]})*y+({mv[0]}) = 0"


class PolarLemniscateModel(PolarModel):
    name = "lemniscate"
    identity = PolarIdentity.LEMNISCATE
    signatures = ((3, 6, 7),)
