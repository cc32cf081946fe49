"""
Small numeric helpers shared by the parser, the feature builders and the models.
"""

import math
import sys
from typing import List, Sequence


def trim_double(x: float, digits: int = 3) -> str:
    """Format x with at most `digits` fraction digits and no trailing zeros."""
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "infinity" if x > 0 else "-infinity"
    digits = max(digits, 0)
    s = f"{x:.{digits}f}"
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    if s in ("-0", ""):
        s = "0"
    return s


def find_delta(d: float) -> float:
    """Pick a tick spacing of the form 1, 2 or 5 times a power of ten for span d."""
    z = 10.0 ** math.ceil(math.log10(d))
    while d / 7.0 < z:
        z *= 0.5
        if d / 7.0 > z:
            return z
        z *= 0.2
    while d / 15.0 > z:
        z *= 2.0
    return z


def gcd(values: Sequence[float]) -> int:
    """Greatest common divisor of a list of integral floats (1 when out of int range)."""
    if not values:
        raise ValueError("Can't find GCD of empty array.")
    if any(abs(v) > 2 ** 31 - 1 for v in values):
        return 1
    z = int(values[0])
    if len(values) == 1:
        return z
    for v in values[1:]:
        z = math.gcd(z, int(v))
    return z


def normalize_degrees(angle: float) -> float:
    """Map an angle in degrees to (-180, 180]."""
    a = math.fmod(angle, 360.0)
    if a > 180.0:
        a -= 360.0
    elif a <= -180.0:
        a += 360.0
    return a


# ============================================================================
# TOLERANCE TESTS
# ============================================================================

# Absolute floor used where an exact zero test would trip on rounding noise
ZERO_TOLERANCE = 1.0e-9


def is_within_tolerance(value: float, tolerance: float) -> bool:
    """|value| is negligible relative to `tolerance`."""
    return abs(value) <= 1.0e-6 * tolerance


def is_within_tolerance_of_zero(value: float) -> bool:
    return abs(value) <= ZERO_TOLERANCE


def make_integer(x: Sequence[float], lim: int = 100) -> List[float]:
    """
    Rescale x so its first significant entry is 1, then look for the
    smallest multiplier l <= lim that makes every entry an integer.

    Returns the integer entries when one is found, otherwise the
    rescaled values.
    """
    values = [float(v) for v in x]
    mx = max((abs(v) for v in values), default=0.0)
    first = next((v for v in values if not is_within_tolerance(v, mx + sys.float_info.min)), None)
    if first is None:
        return values
    values = [v / first for v in values]
    for l in range(1, lim + 1):
        if all(is_nearly_integer(l * v) for v in values):
            return [float(round(l * v)) for v in values]
    return values
