"""
Sinusoids and tangent curves of the form y = A*f(B*x + C) + D.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from ..analyzed import AnalyzedEquation
from ..core import Action
from ..features import GraphFamily, SolvedGraph
from ..geometry import IntervalXY
from ..mathutil import trim_double
from ..numeric import get_equivalent_rational_string
from .functions import Transform, all_reals, read_transform, xy_graph

logger = logging.getLogger(__name__)


@dataclass
class TrigPayload:
    transform: Transform
    amplitude: float
    period: float
    frequency: float
    phase: float
    offset: float
    asymptotes: List[float] = field(default_factory=list)


def _pi_text(x: float, lim: int = 100) -> Optional[str]:
    """x as a rational multiple of pi, e.g. "pi/2" or "4pi/3"."""
    if x == 0.0:
        return "0"
    r = get_equivalent_rational_string(x / math.pi, lim)
    if r is None:
        return None
    num, _, den = r.partition("/")
    head = {"1": "pi", "-1": "-pi"}.get(num, f"{num}pi")
    return f"{head}/{den}" if den else head


def _number(g: SolvedGraph, x: float, in_pi: bool = False):
    if in_pi:
        text = _pi_text(x, g.search_limit)
        if text is not None:
            return text
    return g.number(x)


def _sinusoid(ae: AnalyzedEquation, t: Transform, family: GraphFamily,
              graph_name: str) -> SolvedGraph:
    if t.A == 0.0:
        raise ValueError(f"{graph_name} with a zero amplitude")
    amplitude = abs(t.A)
    period = 2.0 * math.pi / abs(t.B)
    payload = TrigPayload(t, amplitude, period, 1.0 / period, -t.C / t.B, t.D)

    g = xy_graph(ae, family, payload, graph_name)
    g.put_new_features(("frequency", "amplitude", "phase", "offset", "period"))
    g.put_feature("amplitude", g.number(amplitude))
    g.put_feature("frequency", g.number(payload.frequency))
    g.put_feature("phase", _number(g, payload.phase, True))
    g.put_feature("offset", g.number(t.D))
    g.put_feature("period", _number(g, period, True))

    x, y = ae.get_actual_variables()[:2]
    g.put_feature("domain", all_reals(x))
    g.put_feature("range", IntervalXY.of(y, t.D - amplitude, t.D + amplitude))
    return g


def solve_sine(ae: AnalyzedEquation) -> SolvedGraph:
    t = read_transform(ae, Action.SINE, math.sin, (0.0, math.pi / 2.0), (-math.pi / 6.0, 1.0))
    return _sinusoid(ae, t, GraphFamily.SINE, "sine function")


def solve_cosine(ae: AnalyzedEquation) -> SolvedGraph:
    t = read_transform(ae, Action.COSINE, math.cos, (math.pi / 2.0, 0.0), (math.pi, 2.0))
    return _sinusoid(ae, t, GraphFamily.COSINE, "cosine function")


def solve_tangent(ae: AnalyzedEquation) -> SolvedGraph:
    """
    Tangent curve with its period, shift and the vertical asymptotes
    nearest the preferred bounds.

    The asymptotes sit where B*x + C = pi/2 + k*pi.
    """
    t = read_transform(ae, Action.TANGENT, math.tan, (0.0, math.pi / 4.0),
                       (-math.pi / 3.0, 0.5))
    if t.A == 0.0:
        raise ValueError("tangent function with a zero coefficient")
    period = math.pi / abs(t.B)
    shift = -t.C / t.B
    first = (math.pi / 2.0 - t.C) / t.B
    b = ae.preferred_bounds
    k_low = math.ceil((b.left - first) / period)
    k_high = math.floor((b.right - first) / period)
    asymptotes = [first + k * period for k in range(k_low, k_high + 1)]
    payload = TrigPayload(t, abs(t.A), period, 1.0 / period, shift, t.D, asymptotes)
    orientation = "ascending" if t.A * t.B > 0.0 else "descending"

    g = xy_graph(ae, GraphFamily.TANGENT, payload, "tangent function")
    g.put_new_features(("frequency", "phase", "offset", "shift", "period",
                        "orientation", "asymptotes", "rate"))
    g.put_feature("frequency", g.number(payload.frequency))
    g.put_feature("phase", _number(g, shift, True))
    g.put_feature("shift", g.number(shift))
    g.put_feature("offset", g.number(t.D))
    g.put_feature("period", _number(g, period, True))
    g.put_feature("orientation", orientation)
    g.put_feature("rate", g.number(t.A))
    x, y = ae.get_actual_variables()[:2]
    for a in asymptotes:
        g.add_to_feature("asymptotes", f"{x} = {trim_double(a, 3)}")
    g.put_feature("range", all_reals(y))
    logger.debug(f"Tangent '{ae.name}' has {len(asymptotes)} asymptotes in view")
    return g


def solve_trig_function(ae: AnalyzedEquation) -> SolvedGraph:
    """Mixed or nested trig terms: only the generic features."""
    return xy_graph(ae, GraphFamily.XY_GRAPH)
