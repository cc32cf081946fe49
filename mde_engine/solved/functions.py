"""
Cartesian function families: the generic xy graph, rational and cubic
polynomials, sampled equation data, square roots and absolute values.

Every builder returns a SolvedGraph whose tree carries the XML feature
vocabulary and whose payload carries the same facts as numbers.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ..analyzed import AnalyzedEquation, AnalyzedItem
from ..core import Action, FNAMES, ParseNode
from ..features import (
    GraphFamily, IntervalDescription, IntervalEndpoint, MdeFeatureNode, SolvedGraph,
)
from ..geometry import IntervalXY, PointXY
from ..mathutil import trim_double
from ..models import QuadraticModel
from ..numeric import PNom, RealZero
from ..rational import RationalExpression

logger = logging.getLogger(__name__)

NULL_OR_ALL = ("null set", "all points")


# ============================================================================
# PAYLOADS
# ============================================================================

@dataclass
class XYGraphPayload:
    x_intercepts: List[float] = field(default_factory=list)
    y_intercepts: List[float] = field(default_factory=list)
    visible_domain: Optional[Tuple[float, float]] = None
    visible_range: Optional[Tuple[float, float]] = None


@dataclass
class RationalFunctionPayload:
    numerator: PNom
    denominator: PNom
    is_polynomial: bool
    degree: int
    endpoints: List[IntervalEndpoint] = field(default_factory=list)
    minima: List[PointXY] = field(default_factory=list)
    maxima: List[PointXY] = field(default_factory=list)
    inflections: List[PointXY] = field(default_factory=list)
    vertical_asymptotes: List[float] = field(default_factory=list)


@dataclass
class EquationDataPayload:
    num_segments: int
    segment_endpoints: List[List[IntervalEndpoint]] = field(default_factory=list)
    alternate_equation: Optional[str] = None
    minima: List[PointXY] = field(default_factory=list)
    maxima: List[PointXY] = field(default_factory=list)


@dataclass
class Transform:
    """Coefficients of y = A*f(B*x + C) + D."""
    A: float
    B: float
    C: float
    D: float


@dataclass
class RadicalPayload:
    """Square root and absolute value graphs share one shape."""
    transform: Transform
    vertex: PointXY
    orientation: str


# ============================================================================
# SHARED PIECES
# ============================================================================

def all_reals(var: str) -> IntervalXY:
    interval = IntervalXY.of(var, -math.inf, math.inf)
    interval.set_exclusions(IntervalXY.EXCLUDE_LOW_X | IntervalXY.EXCLUDE_HIGH_X)
    return interval


def ray(var: str, low: float, high: float) -> IntervalXY:
    """Closed at the finite end, open at an infinite one."""
    interval = IntervalXY.of(var, low, high)
    e = 0
    if math.isinf(low):
        e |= IntervalXY.EXCLUDE_LOW_X
    if math.isinf(high):
        e |= IntervalXY.EXCLUDE_HIGH_X
    interval.set_exclusions(e)
    return interval


def _distinct(values: Sequence[float]) -> List[float]:
    out = []
    for i, v in enumerate(values):
        if i == 0 or v != values[i - 1]:
            out.append(v)
    return out


def xy_graph(ae: AnalyzedEquation, family: GraphFamily = GraphFamily.XY_GRAPH,
             payload=None, graph_name: Optional[str] = None) -> SolvedGraph:
    """Cartesian features every equation graph carries, intercepts included."""
    g = SolvedGraph(family, payload, ae.config.rational_search_limit)
    g.put_feature("coordinateSystem", "Cartesian")
    g.put_feature("equationPrint", ae.print_equation())
    if ae.get_parameters():
        g.put_feature("originalEquationPrint", ae.print_original_equation())
    xy = ae.get_actual_variables()
    g.put_feature("abscissaSymbol", xy[0])
    g.put_feature("ordinateSymbol", xy[1])
    if graph_name is not None:
        g.put_feature("graphName", graph_name)
        if graph_name in NULL_OR_ALL:
            return g

    for v in _distinct(ae.get_x_intercepts()):
        g.add_to_feature("xIntercepts", trim_double(v, 6))
    for v in _distinct(ae.get_y_intercepts()):
        g.add_to_feature("yIntercepts", trim_double(v, 6))
    return g


def _walk(node: ParseNode):
    yield node
    for child in node.children or ():
        yield from _walk(child)


def _close(a: float, b: float) -> bool:
    return math.isclose(a, b, rel_tol=1.0e-6, abs_tol=1.0e-9)


def read_transform(ae: AnalyzedEquation, action: Action, base: Callable[[float], float],
                   anchors: Tuple[float, float], checks: Sequence[float]) -> Transform:
    """
    Read A, B, C, D of y = A*f(B*x + C) + D from the solved function.

    The single `action` node in the function's tree gives the inner
    argument, which must be linear in x. A and D come from the function's
    values where the inner argument hits the two anchors, and are then
    confirmed at each of `checks`. Any other shape raises ValueError.
    """
    f = ae.get_function()
    if f is None or not f.is_valid():
        raise ValueError(f"'{ae.name}' is not a function of {ae.independent_variable}")
    name = FNAMES[action]
    nodes = [n for n in _walk(f.root) if n.operator == action]
    if len(nodes) != 1:
        raise ValueError(f"Expected exactly one {name}() in '{ae.name}', found {len(nodes)}")

    iv = ae.independent_variable
    params = f.parameters
    argument = nodes[0].children[0]

    def inner(x: float) -> float:
        def lookup(s):
            v = params.get(s.lower())
            if v is None and s == iv:
                return x
            return v
        try:
            with np.errstate(all="ignore"):
                return float(argument.evaluate(lookup))
        except RuntimeError as e:
            raise ValueError(f"Argument of {name}() is not a function of {iv}: {e}") from e

    def outer(x: float) -> float:
        return f.evaluate({iv: x})

    C = inner(0.0)
    B = inner(1.0) - C
    if not math.isfinite(B) or _close(B, 0.0):
        raise ValueError(f"Argument of {name}() does not vary with {iv}")
    for x in (2.0, -3.5):
        if not _close(inner(x), B * x + C):
            raise ValueError(f"Argument of {name}() is not linear in {iv}")

    (t0, t1) = anchors
    h0, h1 = base(t0), base(t1)
    f0, f1 = outer((t0 - C) / B), outer((t1 - C) / B)
    A = (f1 - f0) / (h1 - h0)
    D = f0 - A * h0
    if not (math.isfinite(A) and math.isfinite(D)):
        raise ValueError(f"'{ae.name}' is undefined where {name}() was sampled")
    for t in checks:
        if not _close(outer((t - C) / B), A * base(t) + D):
            raise ValueError(f"'{ae.name}' is not of the form A*{name}(B*{iv}+C)+D")
    logger.debug(f"Read {name} transform of '{ae.name}': A={A}, B={B}, C={C}, D={D}")
    return Transform(A, B, C, D)


# ============================================================================
# GENERIC GRAPH
# ============================================================================

def solve_xy_graph(ae: AnalyzedEquation, graph_name: Optional[str] = None) -> SolvedGraph:
    """Fallback description: intercepts, plus the visible extent of the trails."""
    payload = XYGraphPayload()
    g = xy_graph(ae, GraphFamily.XY_GRAPH, payload, graph_name)
    if graph_name in NULL_OR_ALL:
        return g
    payload.x_intercepts = g.x_intercepts()
    payload.y_intercepts = g.y_intercepts()

    points = [p for trail in ae.graph_trails for p in trail.points]
    if points:
        xs = [p.x for p in points]
        ys = [p.y for p in points]
        payload.visible_domain = (min(xs), max(xs))
        payload.visible_range = (min(ys), max(ys))
        # Trails are always Cartesian, polar curves included
        x, y = ("x", "y") if ae.is_polar() else ae.get_actual_variables()[:2]
        g.put_feature("graphDescriptionDomain", IntervalXY.of(x, *payload.visible_domain))
        g.put_feature("graphDescriptionRange", IntervalXY.of(y, *payload.visible_range))
    return g


# ============================================================================
# RATIONAL FUNCTIONS
# ============================================================================

def _reduce(p: PNom, q: PNom) -> Tuple[PNom, PNom]:
    cf = PNom.gcd(p, q)
    if cf.is_constant():
        return p, q
    return p.quotient(cf)[0], q.quotient(cf)[0]


def _analysis_node(endpoints: Sequence[IntervalEndpoint]) -> MdeFeatureNode:
    node = MdeFeatureNode()
    node.add_key("EndPoint")
    node.add_key("intervalDescription")
    for e in endpoints:
        node.add_value("EndPoint", e.to_feature_node())
    for left, right in zip(endpoints, endpoints[1:]):
        node.add_value("intervalDescription", IntervalDescription(left, right).to_feature_node())
    return node


def _critical_type(zero: RealZero, factor: PNom) -> int:
    s = zero.signature_with(factor)
    if s in (RealZero.PLUS_PLUS, RealZero.MINUS_MINUS):
        return IntervalEndpoint.INFLECTION_POINT
    if s == RealZero.MINUS_PLUS:
        return IntervalEndpoint.LOCAL_MIN
    if s == RealZero.PLUS_MINUS:
        return IntervalEndpoint.LOCAL_MAX
    return IntervalEndpoint.UNDEFINED


def _asymptote_sides(zero: RealZero, value: float) -> Tuple[float, float]:
    """y approached from the left and right of a pole with numerator value `value`."""
    s = zero.signature
    if s == RealZero.MINUS_MINUS:
        return -math.inf * value, -math.inf * value
    if s == RealZero.PLUS_PLUS:
        return math.inf * value, math.inf * value
    if s == RealZero.PLUS_MINUS:
        return math.inf * value, -math.inf * value
    if s == RealZero.MINUS_PLUS:
        return -math.inf * value, math.inf * value
    return math.nan, math.nan


def find_rational_endpoints(numerator: PNom, denominator: PNom, left: float = -math.inf,
                            right: float = math.inf) -> List[IntervalEndpoint]:
    """
    Critical points, poles and the two boundary points of numerator/denominator,
    sorted by x. The pair must already be reduced to lowest terms.
    """
    q, r = numerator.quotient(denominator)

    def value(x: float) -> float:
        if math.isinf(x):
            return q.eval(x)
        return q.eval(x) + r.eval(x) / denominator.eval(x)

    d_numerator = denominator.product(numerator.derivative()).difference(
        numerator.product(denominator.derivative()))
    d_denominator = denominator.product(denominator)
    d_numerator, d_denominator = _reduce(d_numerator, d_denominator)

    add_left = add_right = True
    points: List[IntervalEndpoint] = []
    for zero in d_numerator.get_real_zeros() or []:
        x = zero.x
        if x < left or x > right:
            continue
        add_left = add_left and x != left
        add_right = add_right and x != right
        y = numerator.eval(x) / denominator.eval(x)
        points.append(IntervalEndpoint(x, y, y, _critical_type(zero, d_denominator)))

    for zero in denominator.get_real_zeros() or []:
        x = zero.x
        if x < left or x > right:
            continue
        add_left = add_left and x != left
        add_right = add_right and x != right
        left_y, right_y = _asymptote_sides(zero, numerator.eval(x))
        points.append(IntervalEndpoint(x, left_y, right_y, IntervalEndpoint.VERTICAL_ASYMPTOTE))

    if add_left:
        points.append(IntervalEndpoint.at_point(PointXY(left, value(left))))
    if add_right:
        points.append(IntervalEndpoint.at_point(PointXY(right, value(right))))
    points.sort(key=lambda e: e.x)
    return points


def solve_rational_function(ae: AnalyzedEquation, left: float = -math.inf,
                            right: float = math.inf,
                            family: GraphFamily = GraphFamily.RATIONAL_FUNCTION) -> SolvedGraph:
    f = ae.get_function()
    if f is None:
        raise ValueError("Input equation is not a function.")
    r = RationalExpression(str(f))
    if not r.is_rational_expression():
        raise ValueError("Not a rational function")
    r.set_parameters(ae.get_parameter_hash())
    if not (r.numerator.has_constant_coefficients() and r.denominator.has_constant_coefficients()):
        raise ValueError("Not a rational function")

    iv = ae.independent_variable
    numerator, denominator = _reduce(PNom.from_polynomial(r.numerator, iv),
                                     PNom.from_polynomial(r.denominator, iv))
    if denominator.is_trivial():
        raise ValueError("Rational function with a zero denominator")
    q, remainder = numerator.quotient(denominator)
    endpoints = find_rational_endpoints(numerator, denominator, left, right)

    payload = RationalFunctionPayload(numerator, denominator, remainder.is_trivial(), q.degree,
                                      endpoints)
    for e in endpoints:
        p = PointXY(e.x, e.left_y)
        if e.type_code == IntervalEndpoint.LOCAL_MIN:
            payload.minima.append(p)
        elif e.type_code == IntervalEndpoint.LOCAL_MAX:
            payload.maxima.append(p)
        elif e.type_code == IntervalEndpoint.INFLECTION_POINT:
            payload.inflections.append(p)
        elif e.type_code == IntervalEndpoint.VERTICAL_ASYMPTOTE:
            payload.vertical_asymptotes.append(e.x)

    g = xy_graph(ae, family, payload)
    g.put_new_feature("FunctionAnalysisData")
    node = _analysis_node(endpoints)
    if payload.is_polynomial:
        g.put_feature("graphName", "polynomial")
        node.add_key("degree")
        node.add_value("degree", str(q.degree))
    else:
        g.put_feature("graphName", "RationalFunction")
    g.put_feature("FunctionAnalysisData", node)
    for p in payload.minima:
        g.add_to_feature("minima", p)
    for p in payload.maxima:
        g.add_to_feature("maxima", p)
    return g


def solve_cubic_polynomial(ae: AnalyzedEquation) -> SolvedGraph:
    g = solve_rational_function(ae, family=GraphFamily.CUBIC)
    x, y = ae.get_actual_variables()[:2]
    g.put_feature("domain", all_reals(x))
    g.put_feature("range", all_reals(y))
    return g


# ============================================================================
# SAMPLED FUNCTION DATA
# ============================================================================

def _merge_close(endpoints: List[IntervalEndpoint]) -> List[IntervalEndpoint]:
    """Average runs of endpoints that sit closer than the minimum interval on a flat stretch."""
    merged = []
    i = 0
    while i < len(endpoints):
        x, y, count = endpoints[i].x, endpoints[i].left_y, 1
        j = i + 1
        while j < len(endpoints):
            a, b = endpoints[j - 1], endpoints[j]
            if b.x - a.x > IntervalDescription.MIN_INTERVAL_LENGTH:
                break
            if IntervalDescription.get_direction(a, b) != IntervalDescription.REMAINS_CONSTANT:
                break
            x += b.x
            y += b.left_y
            count += 1
            j += 1
        merged.append(IntervalEndpoint.at_point(PointXY(x / count, y / count)))
        i = j
    return merged


def find_endpoints(points: Sequence[PointXY]) -> List[IntervalEndpoint]:
    """Turning points of one sampled trail, with its two boundary points."""
    last = len(points) - 1
    found = [IntervalEndpoint.at_point(points[0], IntervalEndpoint.BOUNDARY_POINT),
             IntervalEndpoint.at_point(points[last], IntervalEndpoint.BOUNDARY_POINT)]
    if last <= 1:
        return found

    e0 = IntervalEndpoint.at_point(points[0])
    e1 = IntervalEndpoint.at_point(points[1])
    sense = IntervalDescription.get_direction(e0, e1)
    for p in points[2:]:
        e0, e1 = e1, IntervalEndpoint.at_point(p)
        new_sense = IntervalDescription.get_direction(e0, e1)
        if new_sense != sense:
            found.append(e0)
            sense = new_sense
    found.sort(key=lambda e: e.x)

    eps = _merge_close(found)
    if len(eps) <= 2:
        return eps
    direction = IntervalDescription.get_direction
    out = list(eps)
    for i in range(1, len(eps) - 1):
        d0 = direction(eps[i - 1], eps[i])
        d1 = direction(eps[i], eps[i + 1])
        p = PointXY(eps[i].x, eps[i].left_y)
        if IntervalDescription.REMAINS_CONSTANT in (d0, d1):
            out[i] = IntervalEndpoint.at_point(p, IntervalEndpoint.UNDEFINED)
        elif d0 == IntervalDescription.INCREASES and d1 == IntervalDescription.DECREASES:
            out[i] = IntervalEndpoint.at_point(p, IntervalEndpoint.LOCAL_MAX)
        elif d0 == IntervalDescription.DECREASES and d1 == IntervalDescription.INCREASES:
            out[i] = IntervalEndpoint.at_point(p, IntervalEndpoint.LOCAL_MIN)
        elif d0 == d1 and d0 in (IntervalDescription.INCREASES, IntervalDescription.DECREASES):
            out[i] = IntervalEndpoint.at_point(p, IntervalEndpoint.INFLECTION_POINT)
    return out


def solve_equation_data(item: AnalyzedItem, classifier=None) -> SolvedGraph:
    """Piecewise description of whatever was sampled, one analysis per trail."""
    from ..classifiers import PolynomialClassifier

    segments = item.graph_trails
    payload = EquationDataPayload(len(segments))
    if isinstance(classifier, PolynomialClassifier):
        model = classifier.get_best_guess()
        if isinstance(model, QuadraticModel):
            payload.alternate_equation = f"{model} = 0"

    if isinstance(item, AnalyzedEquation):
        g = xy_graph(item, GraphFamily.EQUATION_DATA, payload)
    else:
        g = SolvedGraph(GraphFamily.EQUATION_DATA, payload, item.config.rational_search_limit)
        g.put_feature("abscissaLabel", item.x_name)
        g.put_feature("ordinateLabel", item.y_name)
    g.put_new_features(("ComputedFunctionData", "DataID"))
    g.put_feature("DataID", item.name)
    g.put_feature("graphName", "FunctionOverInterval")

    node = MdeFeatureNode()
    node.add_key("NumSegments")
    node.add_value("NumSegments", str(payload.num_segments))
    if payload.alternate_equation is not None:
        node.add_key("AlternateEquation")
        node.add_value("AlternateEquation", payload.alternate_equation)
    node.add_key("FunctionAnalysisData")
    for trail in segments:
        endpoints = find_endpoints(trail.points)
        payload.segment_endpoints.append(endpoints)
        node.add_value("FunctionAnalysisData", _analysis_node(endpoints))
        for e in endpoints:
            if e.type_code == IntervalEndpoint.LOCAL_MIN:
                payload.minima.append(PointXY(e.x, e.left_y))
            elif e.type_code == IntervalEndpoint.LOCAL_MAX:
                payload.maxima.append(PointXY(e.x, e.left_y))
    g.put_feature("ComputedFunctionData", node)
    return g


# ============================================================================
# SQUARE ROOT AND ABSOLUTE VALUE
# ============================================================================

def solve_square_root(ae: AnalyzedEquation) -> SolvedGraph:
    t = read_transform(ae, Action.SQRT, math.sqrt, (0.0, 1.0), (4.0, 2.25))
    if t.A == 0.0:
        raise ValueError("Square root with a zero coefficient")
    x, y = ae.get_actual_variables()[:2]
    vertex = PointXY(-t.C / t.B, t.D)
    if t.A > 0.0:
        orientation = "quadrant I" if t.B > 0.0 else "quadrant II"
        range_ = ray(y, vertex.y, math.inf)
    else:
        orientation = "quadrant IV" if t.B > 0.0 else "quadrant III"
        range_ = ray(y, -math.inf, vertex.y)
    domain = ray(x, vertex.x, math.inf) if t.B > 0.0 else ray(x, -math.inf, vertex.x)

    g = xy_graph(ae, GraphFamily.SQUARE_ROOT, RadicalPayload(t, vertex, orientation),
                 "square root")
    g.put_new_features(("vertex", "orientation"))
    g.put_feature("vertex", vertex)
    g.put_feature("orientation", orientation)
    g.put_feature("domain", domain)
    g.put_feature("range", range_)
    return g


def solve_absolute_value(ae: AnalyzedEquation) -> SolvedGraph:
    t = read_transform(ae, Action.ABS, abs, (0.0, 1.0), (-2.0, 3.5))
    if t.A == 0.0:
        raise ValueError("Absolute value with a zero coefficient")
    x, y = ae.get_actual_variables()[:2]
    vertex = PointXY(-t.C / t.B, t.D)
    if t.A > 0.0:
        direction = "up"
        range_ = ray(y, vertex.y, math.inf)
    else:
        direction = "down"
        range_ = ray(y, -math.inf, vertex.y)

    g = xy_graph(ae, GraphFamily.ABSOLUTE_VALUE, RadicalPayload(t, vertex, direction),
                 "absolute value")
    g.put_new_features(("vertex", "absDirection"))
    g.put_feature("vertex", vertex)
    g.put_feature("absDirection", direction)
    g.put_feature("domain", all_reals(x))
    g.put_feature("range", range_)
    return g
