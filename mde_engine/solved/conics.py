"""
Conic sections and their degenerate cases, read from the normal form a
QuadraticClassifier produces.

Coefficient lists follow the classifier: original coefficients are
[A, B, C, D, E, F] of A*x^2 + B*x*y + C*y^2 + D*x + E*y + F = 0, and
normalized ones are [a, b, c, d, e] of a*u^2 + b*v^2 + c*u + d*v + e = 0
in the rotated and translated frame.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from ..analyzed import AnalyzedEquation
from ..features import GraphFamily, SolvedGraph, general_direction
from ..geometry import IntervalXY, PointXY
from ..mathutil import is_within_tolerance_of_zero, normalize_degrees, trim_double
from .functions import all_reals, ray, xy_graph

logger = logging.getLogger(__name__)

NO_DIRECTION, UP, DOWN, RIGHT, LEFT = range(5)


# ============================================================================
# PAYLOADS
# ============================================================================

@dataclass
class LinePayload:
    slope: Optional[float]
    inclination: float
    y_intercept: Optional[float] = None
    x_intercept: Optional[float] = None


@dataclass
class ParabolaPayload:
    vertex: PointXY
    focus: PointXY
    focal_length: float
    axis_inclination: float
    direction: str


@dataclass
class EllipsePayload:
    center: PointXY
    semi_major_axis: float = 0.0
    semi_minor_axis: float = 0.0
    eccentricity: float = 0.0
    major_axis_inclination: float = 0.0
    foci: List[PointXY] = field(default_factory=list)
    is_circle: bool = False
    is_single_point: bool = False


@dataclass
class HyperbolaPayload:
    center: PointXY
    semi_transverse_axis: float
    semi_conjugate_axis: float
    eccentricity: float
    transverse_axis_inclination: float
    vertices: List[PointXY] = field(default_factory=list)
    foci: List[PointXY] = field(default_factory=list)
    asymptote_inclinations: List[float] = field(default_factory=list)

    @property
    def vertex(self) -> PointXY:
        return self.vertices[0]


@dataclass
class LinePairPayload:
    equations: List[str]
    inclinations: List[float]
    separation: Optional[float] = None
    intersection: Optional[PointXY] = None


def _classifier_for(ae: AnalyzedEquation, qc):
    from ..classifiers import QuadraticClassifier

    if qc is None:
        qc = ae.get_classifier()
    if not isinstance(qc, QuadraticClassifier):
        raise ValueError(f"'{ae.name}' was not classified as a quadratic")
    return qc


def _direction_vector(length: float, degrees: float) -> PointXY:
    t = math.radians(degrees)
    return PointXY(length * math.cos(t), length * math.sin(t))


def _conic(ae: AnalyzedEquation, family: GraphFamily, graph_name: str, closed: bool,
           equation_type: str = "conic section") -> SolvedGraph:
    g = xy_graph(ae, family)
    g.put_feature("graphName", graph_name)
    g.put_feature("equationType", equation_type)
    g.put_feature("graphClosure", "true" if closed else "false")
    return g


# ============================================================================
# LINES
# ============================================================================

def solve_line(ae: AnalyzedEquation, qc=None) -> SolvedGraph:
    """Sloping, horizontal or vertical line, including squared forms like (x+y)^2 = 0."""
    from ..classifiers import QuadraticType

    qc = _classifier_for(ae, qc)
    identity = qc.get_identity()
    alpha = qc.get_rotation()
    coeffs = qc.get_original_coefficients()
    variables = ae.get_actual_variables()
    lim = ae.config.rational_search_limit
    reduced = None

    if not is_within_tolerance_of_zero(alpha):
        u0, v0 = qc.get_translation()
        axes = qc.get_new_axes()
        if identity == QuadraticType.HorizontalLine:
            a, b, c = axes[1][0], axes[1][1], -v0
            inclination = alpha
        elif identity == QuadraticType.VerticalLine:
            a, b, c = axes[0][0], axes[0][1], -u0
            inclination = alpha + 90.0
        else:
            raise ValueError(f"Identity {identity.value} is illegal for a rotated line")
        if is_within_tolerance_of_zero(b):
            p = PointXY(-c / a, 0.0)
        else:
            p = PointXY(0.0, -c / b)
        reduced = qc.get_equation_of_a_line(p, normalize_degrees(inclination), variables, lim)
        identity = QuadraticType.SlopingLine
    elif not (is_within_tolerance_of_zero(coeffs[0]) and is_within_tolerance_of_zero(coeffs[2])):
        u0, v0 = qc.get_translation()
        if identity == QuadraticType.HorizontalLine:
            a, b, c = 0.0, 1.0, -v0
            reduced = qc.get_equation_of_a_line(PointXY(0.0, v0), 0.0, variables, lim)
        elif identity == QuadraticType.VerticalLine:
            a, b, c = 1.0, 0.0, -u0
            reduced = qc.get_equation_of_a_vertical_line(u0, variables, lim)
        else:
            raise ValueError(f"Identity {identity.value} is illegal for a squared line")
    else:
        a, b, c = coeffs[3], coeffs[4], coeffs[5]

    g = xy_graph(ae, GraphFamily.LINE)
    g.put_new_features(("slope", "inclination", "slopeDefined", "incrad", "reducedEquation"))
    g.put_feature("equationType", "linear equation")
    g.put_feature("graphClosure", "false")
    if reduced is not None:
        g.put_feature("reducedEquation", reduced)

    x, y = variables[:2]
    if identity in (QuadraticType.SlopingLine, QuadraticType.HorizontalLine):
        m = -a / b
        z = math.atan(m)
        g.put_feature("slopeDefined", "true")
        g.put_feature("slope", g.number(m))
        g.put_feature("incrad", g.number(z))
        g.put_feature("inclination", g.number(math.degrees(z)))
        g.put_feature("domain", all_reals(x))
        payload = LinePayload(m, math.degrees(z))
    elif identity == QuadraticType.VerticalLine:
        payload = LinePayload(None, 90.0)
    else:
        raise ValueError(f"Bad identity for a line: {identity.value}")

    if identity == QuadraticType.SlopingLine:
        g.put_feature("graphName", "line")
        if payload.slope > 0.0:
            g.put_feature("ascendingRegions", all_reals(x))
        elif payload.slope < 0.0:
            g.put_feature("descendingRegions", all_reals(x))
        g.put_feature("range", all_reals(y))
    elif identity == QuadraticType.HorizontalLine:
        g.put_feature("graphName", "horizontal line")
        g.put_feature("range", IntervalXY.of(y, -c / b, -c / b))
    else:
        g.put_feature("graphName", "vertical line")
        g.put_feature("slopeDefined", "false")
        g.put_feature("inclination", g.number(90.0))
        g.put_feature("incrad", g.number(math.pi / 2.0))
        g.put_feature("domain", IntervalXY.of(x, -c / a, -c / a))
        g.put_feature("range", all_reals(y))

    y_ints, x_ints = g.y_intercepts(), g.x_intercepts()
    payload.y_intercept = y_ints[0] if y_ints else None
    payload.x_intercept = x_ints[0] if x_ints else None
    g.payload = payload
    return g


# ============================================================================
# PARABOLA
# ============================================================================

def solve_parabola(ae: AnalyzedEquation, qc=None) -> SolvedGraph:
    qc = _classifier_for(ae, qc)
    alpha = qc.get_rotation()
    coeffs = qc.get_normalized_coefficients()
    h, k = qc.get_translation()
    variables = ae.get_actual_variables()
    lim = ae.config.rational_search_limit

    # Scale so the linear term reads -v (or -u) and the constant is the vertex offset
    if abs(coeffs[0]) > abs(coeffs[1]):
        if is_within_tolerance_of_zero(coeffs[3]):
            raise ValueError("Parabola without a linear term")
        t = -1.0 / coeffs[3]
        coeffs = [c * t for c in coeffs]
        ope = UP if coeffs[0] > 0.0 else DOWN
        focal_length = abs(0.25 / coeffs[0])
    else:
        if is_within_tolerance_of_zero(coeffs[2]):
            raise ValueError("Parabola without a linear term")
        t = -1.0 / coeffs[2]
        coeffs = [c * t for c in coeffs]
        ope = RIGHT if coeffs[1] > 0.0 else LEFT
        focal_length = abs(0.25 / coeffs[1])

    if ope == UP:
        vertex_uv, axis_inclination = (h, coeffs[4]), alpha + 90.0
    elif ope == DOWN:
        vertex_uv, axis_inclination = (h, coeffs[4]), alpha - 90.0
    elif ope == RIGHT:
        vertex_uv, axis_inclination = (coeffs[4], k), alpha
    else:
        vertex_uv, axis_inclination = (coeffs[4], k), alpha + 180.0
    directrix_inclination = normalize_degrees(axis_inclination - 90.0)
    axis_inclination = normalize_degrees(axis_inclination)

    vertex = PointXY(*qc.uv2xy(vertex_uv))
    displacement = _direction_vector(focal_length, axis_inclination)
    focus = vertex.sum(displacement)
    directrix_point = vertex.difference(displacement)
    direction = general_direction(ope)

    g = _conic(ae, GraphFamily.PARABOLA, "parabola", False)
    g.payload = ParabolaPayload(vertex, focus, focal_length, axis_inclination, direction)
    g.put_new_features(("vertex", "focalLength", "focus", "directrix", "axis",
                        "axisInclination", "directrixInclination", "openDirection"))
    g.put_feature("vertex", vertex)
    g.put_feature("axis", "line given by "
                  + qc.get_equation_of_a_line(vertex, axis_inclination, variables, lim))
    g.put_feature("axisInclination", g.number(axis_inclination))
    g.put_feature("directrixInclination", g.number(directrix_inclination))
    g.put_feature("focalLength", g.number(focal_length))
    g.put_feature("focus", focus)
    g.put_feature("directrix", "line given by "
                  + qc.get_equation_of_a_line(directrix_point, directrix_inclination, variables, lim))
    g.put_feature("openDirection", direction)

    if not is_within_tolerance_of_zero(alpha):
        return g
    x, y = variables[:2]
    if ope in (UP, DOWN):
        g.put_feature("domain", all_reals(x))
        if ope == UP:
            g.put_feature("range", ray(y, vertex.y, math.inf))
            g.put_feature("ascendingRegions", ray(x, vertex.x, math.inf))
            g.put_feature("descendingRegions", ray(x, -math.inf, vertex.x))
        else:
            g.put_feature("range", ray(y, -math.inf, vertex.y))
            g.put_feature("descendingRegions", ray(x, vertex.x, math.inf))
            g.put_feature("ascendingRegions", ray(x, -math.inf, vertex.x))
    else:
        if ope == RIGHT:
            g.put_feature("domain", ray(x, vertex.x, math.inf))
        else:
            g.put_feature("domain", ray(x, -math.inf, vertex.x))
        g.put_feature("range", all_reals(y))
    return g


# ============================================================================
# ELLIPSE
# ============================================================================

def solve_ellipse(ae: AnalyzedEquation, qc=None) -> SolvedGraph:
    """Ellipse, circle, or the single point an ellipse degenerates to."""
    from ..classifiers import QuadraticType

    qc = _classifier_for(ae, qc)
    alpha = qc.get_rotation()
    coeffs = qc.get_normalized_coefficients()
    center = PointXY(*qc.uv2xy(qc.get_translation()))
    variables = ae.get_actual_variables()
    lim = ae.config.rational_search_limit
    x, y = variables[:2]
    payload = EllipsePayload(center)

    if qc.get_identity() == QuadraticType.SinglePoint:
        g = xy_graph(ae, GraphFamily.ELLIPSE, payload, "single point")
        g.put_new_feature("center", center)
        payload.is_single_point = True
        return g

    if is_within_tolerance_of_zero(coeffs[4]):
        raise ValueError("Ellipse with a zero constant term")
    coeffs = [c / -coeffs[4] for c in coeffs]
    if coeffs[0] <= 0.0 or coeffs[1] <= 0.0 \
            or not is_within_tolerance_of_zero(coeffs[2]) \
            or not is_within_tolerance_of_zero(coeffs[3]):
        raise ValueError("Not an ellipse in normal form")

    g = _conic(ae, GraphFamily.ELLIPSE, "ellipse", True)
    g.payload = payload
    g.put_new_features(("center", "focus", "focalLength", "eccentricity", "semiMajorAxis",
                        "semiMinorAxis", "majorAxis", "minorAxis", "majorAxisInclination",
                        "minorAxisInclination", "radius"))
    g.put_feature("center", center)

    if math.isclose(coeffs[0], coeffs[1], rel_tol=1.0e-9):
        radius = 1.0 / math.sqrt(coeffs[0])
        payload.is_circle = True
        payload.semi_major_axis = payload.semi_minor_axis = radius
        g.put_new_feature("graphName", "circle")
        g.put_feature("radius", g.number(radius))
        g.put_feature("domain", IntervalXY.of(x, center.x - radius, center.x + radius))
        g.put_feature("range", IntervalXY.of(y, center.y - radius, center.y + radius))
        return g

    horizontal = coeffs[0] < coeffs[1]
    if horizontal:
        A, B = 1.0 / math.sqrt(coeffs[0]), 1.0 / math.sqrt(coeffs[1])
        major = alpha
    else:
        A, B = 1.0 / math.sqrt(coeffs[1]), 1.0 / math.sqrt(coeffs[0])
        major = alpha + 90.0
    minor = normalize_degrees(major + 90.0)
    major = normalize_degrees(major)
    C = math.sqrt(A * A - B * B)
    displacement = _direction_vector(C, major)
    foci = [center.sum(displacement), center.difference(displacement)]

    payload.semi_major_axis, payload.semi_minor_axis = A, B
    payload.eccentricity = C / A
    payload.major_axis_inclination = major
    payload.foci = foci

    g.put_feature("semiMajorAxis", g.number(A))
    g.put_feature("semiMinorAxis", g.number(B))
    g.put_feature("majorAxisInclination", g.number(major))
    g.put_feature("minorAxisInclination", g.number(minor))
    g.put_feature("focalLength", g.number(C))
    g.put_feature("eccentricity", g.number(C / A))
    for f in foci:
        g.add_to_feature("focus", f)
    g.put_feature("majorAxis", qc.get_equation_of_a_line(center, major, variables, lim))
    g.put_feature("minorAxis", qc.get_equation_of_a_line(center, minor, variables, lim))

    if is_within_tolerance_of_zero(alpha):
        half_width, half_height = (A, B) if horizontal else (B, A)
        g.put_feature("domain", IntervalXY.of(x, center.x - half_width, center.x + half_width))
        g.put_feature("range", IntervalXY.of(y, center.y - half_height, center.y + half_height))
    return g


# ============================================================================
# HYPERBOLA
# ============================================================================

def solve_hyperbola(ae: AnalyzedEquation, qc=None) -> SolvedGraph:
    qc = _classifier_for(ae, qc)
    alpha = qc.get_rotation()
    coeffs = qc.get_normalized_coefficients()
    center = PointXY(*qc.uv2xy(qc.get_translation()))
    variables = ae.get_actual_variables()
    lim = ae.config.rational_search_limit

    if is_within_tolerance_of_zero(coeffs[4]):
        raise ValueError("Degenerate hyperbola")
    coeffs = [c / -coeffs[4] for c in coeffs]
    if coeffs[0] * coeffs[1] >= 0.0 \
            or not is_within_tolerance_of_zero(coeffs[2]) \
            or not is_within_tolerance_of_zero(coeffs[3]):
        raise ValueError("Not a hyperbola in normal form")

    horizontal = coeffs[0] > 0.0
    if horizontal:
        A, B = 1.0 / math.sqrt(coeffs[0]), 1.0 / math.sqrt(-coeffs[1])
        transverse = alpha
        asymptote = math.degrees(math.atan(B / A))
    else:
        A, B = 1.0 / math.sqrt(coeffs[1]), 1.0 / math.sqrt(-coeffs[0])
        transverse = alpha + 90.0
        asymptote = math.degrees(math.atan(A / B))
    conjugate = normalize_degrees(transverse + 90.0)
    transverse = normalize_degrees(transverse)

    C = math.hypot(A, B)
    E = C / A
    to_vertex = _direction_vector(A, transverse)
    to_focus = _direction_vector(A * E, transverse)
    vertices = [center.sum(to_vertex), center.difference(to_vertex)]
    foci = [center.sum(to_focus), center.difference(to_focus)]
    asymptotes = [alpha + asymptote, alpha - asymptote]

    g = _conic(ae, GraphFamily.HYPERBOLA, "hyperbola", False)
    g.payload = HyperbolaPayload(center, A, B, E, transverse, vertices, foci, asymptotes)
    g.put_new_features(("center", "focus", "focalLength", "eccentricity", "transverseAxis",
                        "conjugateAxis", "transverseAxisInclination", "conjugateAxisInclination",
                        "semiTransverseAxis", "semiConjugateAxis", "vertex", "asymptotes"))
    g.put_feature("center", center)
    g.put_feature("semiTransverseAxis", g.number(A))
    g.put_feature("semiConjugateAxis", g.number(B))
    g.put_feature("transverseAxisInclination", g.number(transverse))
    g.put_feature("conjugateAxisInclination", g.number(conjugate))
    g.put_feature("focalLength", g.number(C))
    g.put_feature("eccentricity", g.number(E))
    for f in foci:
        g.add_to_feature("focus", f)
    for v in vertices:
        g.add_to_feature("vertex", v)
    g.put_feature("transverseAxis", qc.get_equation_of_a_line(center, transverse, variables, lim))
    g.put_feature("conjugateAxis", qc.get_equation_of_a_line(center, conjugate, variables, lim))
    for inclination in asymptotes:
        g.add_to_feature("asymptotes", qc.get_equation_of_a_line(center, inclination, variables, lim))

    if is_within_tolerance_of_zero(alpha):
        x, y = variables[:2]
        if horizontal:
            g.put_feature("domain", _outside(x, center.x, A))
            g.put_feature("range", all_reals(y))
        else:
            g.put_feature("domain", all_reals(x))
            g.put_feature("range", _outside(y, center.y, A))
    return g


def _outside(var: str, middle: float, half_width: float) -> str:
    low = trim_double(middle - half_width, 3)
    high = trim_double(middle + half_width, 3)
    return f"{{{var} such that {var} <= {low} or {var} >= {high}}}"


# ============================================================================
# LINE PAIRS
# ============================================================================

def solve_two_lines(ae: AnalyzedEquation, qc=None) -> SolvedGraph:
    """Two parallel lines, e.g. x^2 = 4."""
    from ..classifiers import QuadraticType

    qc = _classifier_for(ae, qc)
    identity = qc.get_identity()
    alpha = qc.get_rotation()
    variables = ae.get_actual_variables()
    lim = ae.config.rational_search_limit

    if identity == QuadraticType.TwoHorizontalLines:
        inclination = alpha
    elif identity == QuadraticType.TwoVerticalLines:
        inclination = alpha + 90.0
    else:
        raise ValueError(f"Invalid identity for two lines: {identity.value}")

    g = _conic(ae, GraphFamily.TWO_LINES, "two lines", False, "degenerate parabola")
    g.put_new_features(("inclination", "separation", "equationStrings"))
    g.put_feature("inclination", g.number(inclination))

    if abs(inclination) <= 45.0:
        intercepts = g.y_intercepts()
        d = abs(intercepts[0] - intercepts[1]) if len(intercepts) == 2 else 0.0
        separation = d * math.cos(math.radians(inclination))
        points = [PointXY(0.0, v) for v in intercepts[:2]]
    else:
        intercepts = g.x_intercepts()
        d = abs(intercepts[0] - intercepts[1]) if len(intercepts) == 2 else 0.0
        separation = d * abs(math.sin(math.radians(inclination)))
        points = [PointXY(v, 0.0) for v in intercepts[:2]]
    if not points:
        raise ValueError("Two lines that meet neither axis")

    equations = [qc.get_equation_of_a_line(p, inclination, variables, lim) for p in points]
    g.put_feature("separation", g.number(separation))
    for e in equations:
        g.add_to_feature("equationStrings", e)
    g.payload = LinePairPayload(equations, [inclination] * len(equations), separation)
    return g


def solve_two_intersecting_lines(ae: AnalyzedEquation, qc=None) -> SolvedGraph:
    """Two lines crossing at the translated origin, e.g. (x-2y+1)*(2x+y+1) = 0."""
    qc = _classifier_for(ae, qc)
    alpha = qc.get_rotation()
    coeffs = qc.get_normalized_coefficients()
    a = math.sqrt(abs(coeffs[0]))
    b = math.sqrt(abs(coeffs[1]))
    intersection = PointXY(*qc.uv2xy(qc.get_translation()))
    variables = ae.get_actual_variables()
    lim = ae.config.rational_search_limit
    phi = math.degrees(math.atan2(a, b))
    inclinations = [alpha - phi, alpha + phi]
    equations = [qc.get_equation_of_a_line(intersection, i, variables, lim) for i in inclinations]

    g = xy_graph(ae, GraphFamily.TWO_INTERSECTING_LINES,
                 LinePairPayload(equations, inclinations, intersection=intersection),
                 "two intersecting lines")
    g.put_new_features(("intersectionPoint", "inclination", "equationStrings"))
    g.put_feature("intersectionPoint", intersection)
    for i in inclinations:
        g.add_to_feature("inclination", g.number(i))
    for e in equations:
        g.add_to_feature("equationStrings", e)
    return g
