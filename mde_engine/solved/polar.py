"""
Polar families recognised from the best fitting PolarModel: lines and
conics (described through their Cartesian form), roses, lemniscates and
trochoids (limacons and their higher-frequency cousins).
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List

from ..analyzed import AnalyzedEquation
from ..features import GraphFamily, SolvedGraph, compass_direction
from ..geometry import PointRT, PointXY
from . import conics

logger = logging.getLogger(__name__)

CARDIOID, LOOPY, LUMPY = "cardioid", "loopy", "lumpy"


# ============================================================================
# PAYLOADS
# ============================================================================

@dataclass
class RosePayload:
    num_petals: int
    petal_length: float
    petal_angles: List[float] = field(default_factory=list)
    petal_tips: List[PointXY] = field(default_factory=list)


@dataclass
class LemniscatePayload:
    blade_length: float
    inclination: float


@dataclass
class TrochoidPayload:
    theta_multiple: int
    shape: str
    max_length: float
    min_length: float = 0.0
    axis_inclination: float = 0.0
    is_convex: bool = False


def _polar_header(g: SolvedGraph, ae: AnalyzedEquation, family: GraphFamily,
                  equation_type: str):
    g.family = family
    g.put_new_feature("coordinateSystem", "polar")
    g.put_new_feature("equationPrint", ae.print_equation())
    if ae.get_parameters():
        g.put_new_feature("originalEquationPrint", ae.print_original_equation())
    g.put_new_feature("equationType", equation_type)


def _base(ae: AnalyzedEquation, family: GraphFamily, graph_name: str, payload) -> SolvedGraph:
    g = SolvedGraph(family, payload, ae.config.rational_search_limit)
    g.put_feature("coordinateSystem", "polar")
    g.put_feature("graphName", graph_name)
    g.put_feature("equationPrint", ae.print_equation())
    if ae.get_parameters():
        g.put_feature("originalEquationPrint", ae.print_original_equation())
    return g


def _cartesian_classifier(ae: AnalyzedEquation, text: str):
    from ..classifiers import QuadraticClassifier

    ce = AnalyzedEquation(text, ae.config)
    qc = ce.get_classifier()
    if not isinstance(qc, QuadraticClassifier):
        raise ValueError(f"Cartesian form '{text}' of '{ae.name}' is not a quadratic")
    logger.debug(f"Polar '{ae.name}' reads as '{text}' ({qc.get_identity().value})")
    return ce, qc


# ============================================================================
# LINES AND CONICS
# ============================================================================

def solve_polar_line(ae: AnalyzedEquation, model) -> SolvedGraph:
    ce, qc = _cartesian_classifier(ae, model.get_cartesian_equation())
    g = conics.solve_line(ce, qc)
    _polar_header(g, ae, GraphFamily.POLAR_LINE, "polar form of a line")
    return g


def solve_polar_conic(ae: AnalyzedEquation, model) -> SolvedGraph:
    from ..classifiers import QuadraticType

    ce, qc = _cartesian_classifier(ae, model.get_cartesian_equation())
    identity = model.conic_identity
    if identity == QuadraticType.Parabola:
        g = conics.solve_parabola(ce, qc)
    elif identity == QuadraticType.Ellipse:
        g = conics.solve_ellipse(ce, qc)
    elif identity == QuadraticType.Hyperbola:
        g = conics.solve_hyperbola(ce, qc)
    else:
        raise ValueError(f"Polar conic '{ae.name}' has no conic identity")
    _polar_header(g, ae, GraphFamily.POLAR_CONIC, "polar form of a conic section")
    return g


# ============================================================================
# ROSES AND LEMNISCATES
# ============================================================================

def solve_polar_rose(ae: AnalyzedEquation, model) -> SolvedGraph:
    """r = A*cos(n*theta) + B*sin(n*theta): n petals for odd n, 2n for even."""
    mv = model.model_vector
    n = model.which_signature + 1
    petals = 2 * n if n % 2 == 0 else n
    a = -mv[1] / mv[0]
    b = -mv[2] / mv[0]
    length = model.amplitude(a, b)
    theta = model.phase_in_rads(a, b) / n

    payload = RosePayload(petals, length)
    g = _base(ae, GraphFamily.POLAR_ROSE, "polar rose", payload)
    g.put_new_features(("numPetals", "petalLength"))
    g.put_feature("numPetals", str(petals))
    g.put_feature("petalLength", g.number(length))

    g.put_new_feature_at("petalInclinations", "angleInfo", new_node=True)
    g.put_new_feature_at("petalTips", "pointInfo", new_node=True)
    for i in range(petals):
        angle = theta + 2.0 * math.pi * i / petals
        tip = PointRT(length, angle).to_cartesian()
        payload.petal_angles.append(angle)
        payload.petal_tips.append(tip)
        g.put_feature("angleInfo", g.angle_from_radians(angle), "petalInclinations")
        g.put_feature("pointInfo", tip, "petalTips")
    return g


def solve_polar_lemniscate(ae: AnalyzedEquation, model) -> SolvedGraph:
    """r^2 = A*cos(2*theta) + B*sin(2*theta)."""
    mv = model.model_vector
    a = -mv[1] / mv[0]
    b = -mv[2] / mv[0]
    length = math.sqrt(model.amplitude(a, b))
    theta = 0.5 * model.phase_in_rads(a, b)

    g = _base(ae, GraphFamily.POLAR_LEMNISCATE, "polar lemniscate",
              LemniscatePayload(length, math.degrees(theta)))
    g.put_new_features(("bladeLength", "inclination"))
    g.put_feature("bladeLength", g.number(length))
    g.put_feature("inclination", g.angle_from_radians(theta))
    return g


# ============================================================================
# TROCHOIDS
# ============================================================================

def _axis_text(degrees: float) -> str:
    return f"{compass_direction(180.0 + degrees).name} to {compass_direction(degrees).name}"


def solve_polar_trochoid(ae: AnalyzedEquation, model) -> SolvedGraph:
    """
    r = B + A*cos(n*(theta - phi)).

    With B >= 0 after normalizing, the curve is a cardioid family member
    when A == B, has inner loops when A > B and is lumpy otherwise. A
    lumpy curve is convex when B >= (n^2 + 1)*A.
    """
    mv = [float(v) for v in model.model_vector]
    n = model.which_signature + 1

    g = _base(ae, GraphFamily.POLAR_TROCHOID, "polar trochoid", None)
    if mv[1] == 0.0:
        g.put_new_feature("graphName", "collection of radial lines through the origin")
        return g

    mv = [v / mv[1] for v in mv]
    a, b = -mv[2], -mv[3]
    A = model.amplitude(a, b)
    phi = model.phase_in_rads(a, b) / n
    B = -mv[0]
    if B < 0.0:
        B = -B
        phi += math.pi * ((n & 1) - 1.0 / n)

    if abs(A - B) < 1.0e-8 * (abs(A) + abs(B)):
        shape = CARDIOID
    elif A > B:
        shape = LOOPY
    else:
        shape = LUMPY
    payload = TrochoidPayload(n, shape, A + B)
    g.payload = payload

    g.put_new_features(("thetaMultiple", "hasLoops", "maxLength", "isConvex", "minLength",
                        "loopAngles", "axis", "axisInclination", "oddMultiple"))
    g.put_feature("maxLength", g.number(A + B))
    g.put_feature("thetaMultiple", str(n))
    g.put_feature("oddMultiple", "true" if n & 1 else "false")
    g.put_feature("hasLoops", "true" if shape == LOOPY else "false")
    if shape == LUMPY:
        payload.is_convex = B >= (n * n + 1) * A
        g.put_feature("isConvex", "true" if payload.is_convex else "false")

    if n == 1:
        if shape == LUMPY:
            phi += math.pi
        degrees = math.degrees(phi)
        payload.axis_inclination = degrees
        g.put_feature("axis", _axis_text(degrees))
        g.put_feature("axisInclination", g.angle(degrees))
        if shape == CARDIOID:
            g.put_new_feature("graphName", "cardioid")
        elif shape == LOOPY:
            payload.min_length = A - B
            g.put_new_feature("graphName", "loopWithinALoop")
            g.put_feature("minLength", g.number(A - B))
        else:
            payload.min_length = B - A
            g.put_new_feature("graphName", "eccentricCircle")
            g.put_feature("minLength", g.number(B - A))
        return g

    def loop_angles(start: float, graph_object: str):
        g.put_new_feature_at("loopAngles", "graphObject", graph_object, new_node=True)
        g.put_new_feature_at("loopAngles", "angleInfo")
        for i in range(n):
            angle = g.angle_from_radians(start + 2.0 * math.pi * i / n)
            g.put_feature("angleInfo", angle, "loopAngles")

    if shape == CARDIOID:
        g.put_new_feature("graphName", "pinchedLoops")
        loop_angles(phi, "loops")
    elif shape == LUMPY:
        payload.min_length = B - A
        g.put_new_feature("graphName", "lumpyCircle")
        g.put_feature("minLength", g.number(B - A))
        loop_angles(phi, "bulges")
        if not payload.is_convex:
            loop_angles(phi + math.pi / n, "dents")
    else:
        payload.min_length = A - B
        g.put_feature("minLength", g.number(A - B))
        loop_angles(phi, "longer loops")
        if n % 2 == 0:
            g.put_new_feature("graphName", "alternatingLoops")
            loop_angles(phi + math.pi / n, "shorter loops")
        else:
            g.put_new_feature("graphName", "nestedLoops")
    return g
