"""
Analyzed items: a parsed equation or a sampled data series, with bounds,
sampled points, graph trails and classification dispatch.
"""

import logging
import math
from abc import ABC, abstractmethod
from enum import IntEnum, IntFlag
from typing import Dict, List, Optional, Sequence

import numpy as np

from .config import EngineConfig
from .core import Expression
from .equation import Equation
from .geometry import (
    Bounds, GraphTrail, MultiPointXY, PointXY, copy_points, decimate_points,
    graph_trails_from, interpolate_points, segment_boundaries, to_cartesian,
)
from .mathutil import trim_double
from .numeric import real_roots
from .polynomial import Polynomial, evaluate_coefficients

logger = logging.getLogger(__name__)


class EquationType(IntEnum):
    UNKNOWN = 0
    CARTESIAN = 1
    POLAR = 2
    PARAMETRIC = 3


class EquationProperty(IntFlag):
    GENERIC = 0
    CONSTANT = 1
    FUNCTION = 2
    POLYNOMIAL = 4
    QUADRATIC = 8
    MORE_THAN_TWO_VARIABLES = 16
    UNDEFINED = 32
    NO_SOLUTION = 64


# ============================================================================
# COMMON CONTRACT
# ============================================================================

class AnalyzedItem(ABC):
    """Something that can be sampled over bounds and classified."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.preferred_bounds: Bounds = self.config.default_bounds()
        self.points: List[Optional[MultiPointXY]] = []
        self.graph_trails: List[GraphTrail] = []
        self.features = None
        self.max_jump = 0.0

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def compute_points(self, bounds: Bounds):
        """Sample the item over bounds, filling points and graph_trails."""
        pass

    @abstractmethod
    def get_classifier(self):
        pass

    def compute_points_in(self, left: float, right: float, top: float, bottom: float):
        self.compute_points(Bounds(left, right, top, bottom))

    def update_features(self):
        c = self.get_classifier()
        self.features = c.get_features(self) if c is not None else None
        if self.features is not None:
            logger.info(f"Classified '{self.name}' as {self.features.family.value}")

    def get_features(self):
        return self.features

    def get_point(self, position: float) -> Optional[MultiPointXY]:
        """Sample at a fractional position in [0, 1] along the points."""
        if not self.points or position < 0.0 or position > 1.0:
            return None
        return self.points[int(math.floor(position * (len(self.points) - 1)))]

    def get_point_at(self, index: int) -> Optional[MultiPointXY]:
        if 0 <= index < len(self.points):
            return self.points[index]
        return None


# ============================================================================
# EQUATIONS
# ============================================================================

class AnalyzedEquation(AnalyzedItem):
    """
    Equation in two variables, solved numerically for the dependent one.

    Construction never raises: a parse failure leaves is_bad() True and
    the equation unusable. Free names found in the configured parameter
    table are bound to their values instead of becoming variables.
    """

    def __init__(self, text: str, config: Optional[EngineConfig] = None):
        super().__init__(config)
        self.input_equation = text
        self.equation = Equation(text)
        self.bad = self.equation.bad
        self.equation_type = EquationType.UNKNOWN
        self.properties = EquationProperty.GENERIC
        self.parameters: Dict[str, float] = {}
        self.actual_variables: List[str] = ["x", "y"]
        self.independent_variable: Optional[str] = None
        self.dependent_variable: Optional[str] = None
        self.lhs: Optional[Polynomial] = None
        self.dvp: Optional[Polynomial] = None
        self.dvp_degree = -1
        self.dvp_coefficients: List[Expression] = []
        self.degree = -1
        self.function_over_interval = False

        self._constant_solution: Optional[MultiPointXY] = None
        self._saved_r: Optional[List[Optional[MultiPointXY]]] = None
        self._saved_low = 0.0
        self._saved_high = 0.0

        if self.bad:
            logger.debug(f"Could not parse equation '{text}'")
            return
        self._init()

    def _init(self):
        self.lhs = self.equation.polynomial
        self._check_variables()
        if self.has_more_than_two_variables():
            return

        if self.equation_type == EquationType.CARTESIAN:
            if self.lhs.has_constant_coefficients():
                self.properties |= EquationProperty.POLYNOMIAL
                if self.lhs.degree() <= 2:
                    self.properties |= EquationProperty.QUADRATIC
            self.independent_variable, self.dependent_variable = self.actual_variables
            self.dvp = self.equation.one_variable_polynomial(self.dependent_variable)
            self.degree = self.lhs.degree()
            if self._check_for_solvable():
                if self.dvp_degree == 0:
                    self.properties |= EquationProperty.UNDEFINED
                else:
                    if self.dvp_degree == 1:
                        self.properties |= EquationProperty.FUNCTION
                    self._check_for_constant()
        else:
            self.dependent_variable = "r"
            self.independent_variable = "theta"
            self.dvp = self.equation.one_variable_polynomial(self.dependent_variable)
            self.degree = self.lhs.degree()
            if self._check_for_solvable():
                self._check_for_constant()

    def _check_variables(self):
        names = self.lhs.to_expression().var_strings
        table = self.config.parameters
        for v in names:
            if v.lower() in table:
                self.parameters[v.lower()] = table[v.lower()]
        self.lhs.set_parameters(self.parameters)

        real = [v for v in names if v.lower() not in self.parameters]
        if len(real) == 1:
            if real[0] in ("r", "theta"):
                self.actual_variables = ["r", "theta"]
            elif real[0] != self.actual_variables[1]:
                self.actual_variables[0] = real[0]
        elif len(real) == 2:
            self.actual_variables = list(real)
        elif len(real) > 2:
            self.actual_variables = list(real)
            self.properties |= EquationProperty.MORE_THAN_TWO_VARIABLES
            return

        if self.actual_variables == ["r", "theta"]:
            self.equation_type = EquationType.POLAR
        else:
            self.equation_type = EquationType.CARTESIAN

    def _check_for_solvable(self) -> bool:
        self.dvp_degree = self.dvp.degree()
        self.dvp_coefficients = self.dvp.get_coefficients_as_expressions(self.dependent_variable)
        for c in self.dvp_coefficients:
            c.set_parameters(self.parameters)
        for c in self.dvp_coefficients:
            names = c.var_strings
            if not names or (len(names) == 1 and names[0] == self.independent_variable):
                continue
            self.properties |= EquationProperty.NO_SOLUTION
            return False
        return True

    def _check_for_constant(self):
        if all(not c.var_strings for c in self.dvp_coefficients):
            self.properties |= EquationProperty.CONSTANT

    # ------------------------------------------------------------------
    # Flags
    # ------------------------------------------------------------------

    def is_bad(self) -> bool:
        return self.bad

    def is_unknown(self) -> bool:
        return self.equation_type == EquationType.UNKNOWN

    def is_cartesian(self) -> bool:
        return self.equation_type == EquationType.CARTESIAN

    def is_polar(self) -> bool:
        return self.equation_type == EquationType.POLAR

    def is_parametric(self) -> bool:
        return self.equation_type == EquationType.PARAMETRIC

    def _has(self, flag: EquationProperty) -> bool:
        return bool(self.properties & flag)

    def is_constant(self) -> bool:
        return self._has(EquationProperty.CONSTANT)

    def is_function(self) -> bool:
        return self._has(EquationProperty.FUNCTION)

    def is_polynomial(self) -> bool:
        return self._has(EquationProperty.POLYNOMIAL)

    def is_quadratic(self) -> bool:
        return self._has(EquationProperty.QUADRATIC)

    def has_more_than_two_variables(self) -> bool:
        return self._has(EquationProperty.MORE_THAN_TWO_VARIABLES)

    def is_undefined(self) -> bool:
        return self._has(EquationProperty.UNDEFINED)

    def cannot_be_solved(self) -> bool:
        return self._has(EquationProperty.NO_SOLUTION)

    def is_solvable_function(self) -> bool:
        return self.is_function() and not self.cannot_be_solved()

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def get_parameters(self) -> List[str]:
        return sorted(self.parameters)

    def get_parameter_hash(self) -> Dict[str, float]:
        return dict(self.parameters)

    def contains_parameter(self, name: str) -> bool:
        return name in self.parameters

    def get_parameter_value(self, name: str) -> float:
        if name not in self.parameters:
            raise ValueError(f"Attempt to access undefined parameter '{name}'")
        return self.parameters[name]

    def set_parameter_value(self, name: str, value: float):
        if name not in self.parameters:
            raise ValueError(f"Attempt to change nonexistent parameter '{name}'")
        # Coefficient expressions share this dict, so the new value is live
        self.parameters[name] = float(value)
        self._constant_solution = None
        self._saved_r = None

    # ------------------------------------------------------------------
    # Printing
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.input_equation

    def get_actual_variables(self) -> List[str]:
        return list(self.actual_variables)

    def print_original_equation(self) -> str:
        return str(self.equation)

    def print_equation(self) -> str:
        """The equation with bound parameters printed as their values."""
        left = Expression(self.equation.left.root)
        right = Expression(self.equation.right.root)
        left.set_parameters(self.parameters)
        right.set_parameters(self.parameters)
        return f"{left} = {right}"

    def __eq__(self, other):
        if other is self:
            return True
        if not isinstance(other, AnalyzedEquation):
            return NotImplemented
        if self.bad or other.bad:
            return self.input_equation == other.input_equation
        return self.print_original_equation() == other.print_original_equation()

    def __hash__(self):
        return hash(self.input_equation if self.bad else self.print_original_equation())

    def __repr__(self):
        return f"AnalyzedEquation({self.input_equation!r})"

    def __str__(self):
        if self.equation_type == EquationType.CARTESIAN:
            lines = ["Cartesian equation",
                     "X intercepts: " + " ".join(trim_double(x, 4) for x in self.get_x_intercepts())]
        elif self.equation_type == EquationType.POLAR:
            lines = ["Polar equation"]
        else:
            return "Unknown equation format."
        for flag, text in (
            (EquationProperty.CONSTANT, "Constant"),
            (EquationProperty.FUNCTION, "It's a function"),
            (EquationProperty.POLYNOMIAL, "It's a polynomial"),
            (EquationProperty.QUADRATIC, "It's a quadratic"),
            (EquationProperty.MORE_THAN_TWO_VARIABLES, "It has more than two variables"),
            (EquationProperty.UNDEFINED, "Dependent variable is undefined."),
            (EquationProperty.NO_SOLUTION, "It can't be solved"),
        ):
            if self._has(flag):
                lines.append(text)
        lines.append(f"Independent variable = {self.independent_variable}")
        lines.append(f"Dependent variable = {self.dependent_variable}")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Solving
    # ------------------------------------------------------------------

    def get_function(self) -> Optional[Expression]:
        """Dependent variable as an expression in the independent one, if solvable."""
        if not self.is_solvable_function():
            return None
        c0, c1 = self.dvp_coefficients[0], self.dvp_coefficients[1]
        return Expression.negate(c1.quotient(c0))

    def get_dvp_coefficients(self) -> List[Expression]:
        return list(self.dvp_coefficients)

    def get_coefficients(self, x: float) -> np.ndarray:
        return evaluate_coefficients(self.dvp_coefficients, self.independent_variable, x)

    def find_real_solutions(self, x: float) -> Optional[MultiPointXY]:
        if self._constant_solution is not None:
            return MultiPointXY(x, self._constant_solution.y_array)
        if self.is_constant():
            self._constant_solution = self._get_solution(x)
            return self._constant_solution
        return self._get_solution(x)

    def _get_solution(self, x: float) -> Optional[MultiPointXY]:
        if self.dvp is None or self.cannot_be_solved() or self.is_undefined():
            return None
        return self._actually_solve(self.dvp_degree, self.get_coefficients(x), x)

    @staticmethod
    def _tolerances(coeffs: np.ndarray):
        tiny = np.finfo(float).tiny
        et = float(np.sum(np.abs(coeffs))) * 1.0e-8 + tiny
        et2 = float(np.sum(coeffs * coeffs)) * 1.0e-16 + tiny
        return et, et2

    def _actually_solve(self, deg: int, coeffs: np.ndarray, x: float) -> MultiPointXY:
        """Real roots of the coefficient list (highest first) after dropping near-zero leads."""
        r = MultiPointXY(x)
        if deg < 0 or np.any(np.isnan(coeffs[:deg + 1])):
            return r
        with np.errstate(all="ignore"):
            et, et2 = self._tolerances(coeffs[:deg + 1])
            n = next((i for i in range(deg + 1) if abs(coeffs[i]) >= et), deg + 1)
            d = deg - n
            if d <= 0:
                return r
            if d == 1:
                r.y_array = [float(-coeffs[deg] / coeffs[deg - 1])]
                return r
            if d == 2:
                t0 = -0.5 * coeffs[deg - 1] / coeffs[deg - 2]
                t1 = coeffs[deg] / coeffs[deg - 2]
                d2 = t0 * t0 - t1
                if abs(d2) < et2:
                    r.y_array = [float(t0), float(t0)]
                elif d2 > 0.0:
                    disc = math.sqrt(d2)
                    r.y_array = [float(t0 - disc), float(t0 + disc)]
                return r
            r.y_array = list(real_roots(coeffs[n:deg + 1]))
        return r

    def get_y_intercepts(self) -> List[float]:
        if self.cannot_be_solved():
            return []
        p = self.find_real_solutions(0.0)
        return list(p.y_array) if p is not None else []

    def get_x_intercepts(self) -> List[float]:
        if self.lhs is None or self.independent_variable is None:
            return []
        ec = self.lhs.get_coefficients_as_expressions(self.independent_variable)
        deg = len(ec) - 1
        if deg <= 0:
            return []
        for c in ec:
            c.set_parameters(self.parameters)
        try:
            c = evaluate_coefficients(ec, self.dependent_variable, 0.0)
        except RuntimeError as e:
            logger.debug(f"No x intercepts for '{self.name}': {e}")
            return []
        return list(self._actually_solve(deg, c, 0.0).y_array)

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def _find_boundary(self, mp0: MultiPointXY, mp1: MultiPointXY) -> MultiPointXY:
        """Bisect toward the x where the number of solutions changes."""
        while True:
            n0, n1 = len(mp0.y_array), len(mp1.y_array)
            if mp1.x - mp0.x < 1.0e-8:
                return mp0 if n0 > n1 else mp1
            x = 0.5 * (mp0.x + mp1.x)
            if n1 > n0:
                if _has_multiples(mp1.y_array):
                    return mp1
                mp = self.find_real_solutions(x)
                if len(mp.y_array) != n1:
                    mp0 = mp
                else:
                    mp1 = mp
            elif n1 < n0:
                if _has_multiples(mp0.y_array):
                    return mp0
                mp = self.find_real_solutions(x)
                if len(mp.y_array) != n0:
                    mp1 = mp
                else:
                    mp0 = mp
            else:
                return mp0

    def solve_for_points(self, low: float, high: float) -> List[Optional[MultiPointXY]]:
        """NUM_POINTS evenly spaced solutions over [low, high], refined at branch changes."""
        n = self.config.num_points
        cached = None
        if self._saved_r is not None and (low, high) == (self._saved_low, self._saved_high):
            logger.debug(f"Reusing saved samples of '{self.name}' over [{low}, {high}]")
            cached = self._saved_r
        self._saved_low, self._saved_high = low, high

        r: List[Optional[MultiPointXY]] = []
        for i, x in enumerate(np.linspace(low, high, n)):
            if cached is not None and cached[i] is not None:
                r.append(cached[i])
            else:
                r.append(self.find_real_solutions(float(x)))

        sb = segment_boundaries(r, self.max_jump)
        for k in sb[1:-1]:
            before, here = r[k - 1], r[k]
            if len(before) == len(here):
                continue
            boundary = self._find_boundary(before, here)
            if len(boundary) == len(before):
                r[k - 1] = boundary
            if len(here) == len(boundary):
                r[k] = boundary

        self._saved_r = [MultiPointXY(p.x, p.y_array) if p is not None else None for p in r]
        return r

    def _generate_vertical_line(self, low: float, high: float, top: float,
                                bottom: float) -> List[MultiPointXY]:
        xs = sorted({x for x in self.get_x_intercepts() if low <= x <= high})
        if not xs:
            return []
        per_line = self.config.num_points // len(xs)
        ys = np.linspace(bottom, top, per_line)
        return [MultiPointXY(x, [float(y)]) for x in xs for y in ys]

    @staticmethod
    def _vertical_graph_trails(points: Sequence[MultiPointXY]) -> List[GraphTrail]:
        lines: Dict[float, List[PointXY]] = {}
        for p in points:
            lines.setdefault(p.x, []).append(PointXY(p.x, p.y_array[0]))
        return [GraphTrail(pts) for pts in lines.values() if len(pts) > 1]

    def compute_points(self, bounds: Bounds):
        left, right, top, bottom = bounds.left, bounds.right, bounds.top, bounds.bottom
        self.max_jump = abs(top - bottom)
        if self.is_polar():
            samples = self.solve_for_points(0.0, 2.0 * math.pi)
            points, trails = [], []
            extent = 0.0
            for trail in graph_trails_from(samples, self.max_jump):
                cartesian = to_cartesian(trail.points)
                for p in cartesian:
                    extent = max(extent, abs(p.x), abs(p.y))
                    points.append(MultiPointXY(p.x, [p.y]))
                trails.append(GraphTrail(cartesian))
            if extent == 0.0 or not math.isfinite(extent):
                extent = self.config.default_bound
            right = top = min(extent, self.config.default_bound)
            left = bottom = -right
            self.points, self.graph_trails = points, trails
        elif self.is_undefined():
            self.points = self._generate_vertical_line(left, right, top, bottom)
            self.graph_trails = self._vertical_graph_trails(self.points)
        else:
            self.points = self.solve_for_points(left, right)
            self.graph_trails = graph_trails_from(self.points, self.max_jump)
        self.preferred_bounds.set_bounds(left, right, top, bottom)
        self._function_test()

    def _function_test(self):
        self.function_over_interval = True
        found = False
        for p in self.points:
            if p is None:
                continue
            if len(p.y_array) == 0:
                if not found:
                    self.function_over_interval = False
                continue
            found = True
            ys = p.y_array
            if any(abs(b - a) > 1.0e-3 for a, b in zip(ys, ys[1:])):
                self.function_over_interval = False
                return

    def is_function_over_interval(self) -> bool:
        return self.function_over_interval

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def get_classifier(self):
        from .classifiers import (
            MDEClassifier, PolarClassifier, PolynomialClassifier,
            QuadraticClassifier, TrigClassifier,
        )
        from .models import QuadraticModel

        if self.bad or self.is_unknown():
            return None
        if self.is_quadratic():
            return QuadraticClassifier(self.lhs)
        if self.is_polar():
            return PolarClassifier(self.solve_for_points(0.0, 2.0 * math.pi),
                                   self.config.worst_polar_fit)
        text = str(self.lhs)
        if "sin" in text or "cos" in text or "tan" in text:
            return TrigClassifier()

        if self._saved_r is not None and self._saved_low < self._saved_high:
            low, high = self._saved_low, self._saved_high
        else:
            low, high = -self.config.default_bound, self.config.default_bound
        pc = PolynomialClassifier(self.solve_for_points(low, high), self.config.worst_polynomial_fit)
        pm = pc.best_guess
        if pm is None:
            return MDEClassifier()
        if isinstance(pm, QuadraticModel) and pm.get_analyzed_equation().is_function():
            return QuadraticClassifier(pm.get_polynomial())
        return pc


def _has_multiples(y: Sequence[float]) -> bool:
    return any(a == b for a, b in zip(y, y[1:]))


# ============================================================================
# DATA SERIES
# ============================================================================

class AnalyzedData(AnalyzedItem):
    """
    A sampled (x, y) series, sorted by x on construction. A repeated x
    keeps its last y.
    """

    def __init__(self, x_name: str, y_name: str, x_data: Sequence[float],
                 y_data: Sequence[float], config: Optional[EngineConfig] = None):
        if x_name is None:
            raise TypeError("Null X-data name.")
        if y_name is None:
            raise TypeError("Null Y-data name.")
        if x_data is None:
            raise TypeError("Null X-data array.")
        if y_data is None:
            raise TypeError("Null Y-data array.")
        if len(x_data) != len(y_data):
            raise ValueError("X and Y data arrays are not the same length.")
        if len(x_data) == 0:
            raise ValueError("X and Y data arrays must contain data.")
        super().__init__(config)

        self.x_name = x_name
        self.y_name = y_name
        table = {}
        for x, y in zip(x_data, y_data):
            table[float(x)] = float(y)
        xs = sorted(table)
        self.x_data = np.array(xs, dtype=float)
        self.y_data = np.array([table[x] for x in xs], dtype=float)

        self.x_min, self.x_max = float(self.x_data.min()), float(self.x_data.max())
        self.y_min, self.y_max = float(self.y_data.min()), float(self.y_data.max())
        self.preferred_bounds.set_bounds(self.x_min, self.x_max, self.y_max, self.y_min)

        self.left_index_bound = -1
        self.right_index_bound = -1
        self.x_point_values: Optional[np.ndarray] = None

    @property
    def name(self) -> str:
        return self.y_name

    def get_data_size(self) -> int:
        return len(self.x_data)

    def get_data_bounds(self) -> Bounds:
        return Bounds(self.x_min, self.x_max, self.y_max, self.y_min)

    def compute_points(self, bounds: Bounds):
        x = self.x_data
        last = len(x) - 1

        left_index = min(int(np.searchsorted(x, bounds.left)), last)
        while left_index > 0 and x[left_index] > bounds.left:
            left_index -= 1
        right_index = min(int(np.searchsorted(x, bounds.right)), last)
        while right_index < last and x[right_index] < bounds.right:
            right_index += 1
        if left_index > right_index:
            raise ValueError("Can not have left bound > right bound")

        self.left_index_bound, self.right_index_bound = left_index, right_index
        self.max_jump = abs(bounds.top - bounds.bottom)
        n = self.config.num_points
        total = right_index - left_index + 1
        if total < n:
            self.points = interpolate_points(left_index, right_index, n, x, self.y_data)
        elif total > n:
            self.points = decimate_points(left_index, right_index, n, x, self.y_data)
        else:
            self.points = copy_points(left_index, right_index, x, self.y_data)
        self.x_point_values = np.array([p.x for p in self.points], dtype=float)
        self.graph_trails = graph_trails_from(self.points, self.max_jump)
        self.preferred_bounds.set_bounds(bounds.left, bounds.right, bounds.top, bounds.bottom)

    def get_point_index_near(self, x: float) -> int:
        """Index of the sampled point closest to x, -1 outside the sampled range."""
        xs = self.x_point_values
        if xs is None or len(xs) == 0 or x < xs[0] or x > xs[-1]:
            return -1
        index = min(int(np.searchsorted(xs, x)), len(xs) - 1)
        if xs[index] == x:
            return index
        if index > 0 and abs(xs[index - 1] - x) < abs(xs[index] - x):
            index -= 1
        return index

    def get_real_data_point(self, x: float) -> Optional[PointXY]:
        index = int(np.searchsorted(self.x_data, x))
        if index < len(self.x_data) and self.x_data[index] == x:
            return PointXY(float(self.x_data[index]), float(self.y_data[index]))
        return None

    def get_classifier(self):
        from .classifiers import MDEClassifier
        return MDEClassifier()

    def copy(self) -> 'AnalyzedData':
        return AnalyzedData(self.x_name, self.y_name, self.x_data, self.y_data, self.config)

    def __eq__(self, other):
        if other is self:
            return True
        if not isinstance(other, AnalyzedData):
            return NotImplemented
        return (self.x_name == other.x_name and self.y_name == other.y_name
                and np.array_equal(self.x_data, other.x_data)
                and np.array_equal(self.y_data, other.y_data))

    def __hash__(self):
        return hash((self.x_name, self.y_name, len(self.x_data)))

    def __repr__(self):
        pairs = ",".join(f"({x},{y})" for x, y in zip(self.x_data, self.y_data))
        return (f"AnalyzedData[xDataName={self.x_name},yDataName={self.y_name},"
                f"length={len(self.x_data)},{pairs}]")
