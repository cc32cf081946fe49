"""
Feature tree: ordered key -> multi-value nodes, path addressing, and the
SolvedGraph result every classifier returns.
"""

import math
import re
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from .mathutil import trim_double
from .numeric import AngleModel, NumberModel

FeatureValue = Union[str, "MdeFeatureNode"]

ROOT_PATH = ""
MDE_NAME = "MDE"
MDE_PATH = f"/{MDE_NAME}/"
GRAPH_DATA_NAME = "GraphData"
GRAPH_DATA_PATH = f"{MDE_PATH}{GRAPH_DATA_NAME}/"

_KEY_CHARS = re.compile(r"[^a-zA-Z0-9]")


# ============================================================================
# FEATURE NODE
# ============================================================================

class MdeFeatureNode:
    """
    Ordered mapping from key to a list of values (strings or child nodes).

    Keys must be declared with add_key() before values are added.
    """

    def __init__(self):
        self.values: Dict[str, List[FeatureValue]] = {}

    def add_key(self, key: str):
        self.values[key] = []

    def add_value(self, key: str, value: FeatureValue):
        if key not in self.values:
            raise ValueError(f'Key "{key}" not found.')
        self.values[key].append(value)

    def contains_key(self, key: str) -> bool:
        return key in self.values

    def keys(self) -> List[str]:
        return list(self.values)

    def num_keys(self) -> int:
        return len(self.values)

    def get_list(self, key: str) -> Optional[List[FeatureValue]]:
        return self.values.get(key)

    def child_nodes(self, key: str) -> List['MdeFeatureNode']:
        return [v for v in self.values.get(key, ()) if isinstance(v, MdeFeatureNode)]

    def child_strings(self, key: str) -> List[str]:
        if key not in self.values:
            raise ValueError(f'Key "{key}" not available')
        return [v for v in self.values[key] if isinstance(v, str)]

    def get_value(self, key: str) -> FeatureValue:
        """First value under key. KeyError if the key is missing or empty."""
        values = self.values.get(key)
        if not values:
            raise KeyError(key)
        return values[0]

    def get_values(self, key: str) -> List[FeatureValue]:
        if key not in self.values:
            raise KeyError(key)
        return self.values[key]

    def to_xml(self) -> str:
        out = []
        for key, values in self.values.items():
            tag = _KEY_CHARS.sub("", key)
            for v in values:
                if isinstance(v, MdeFeatureNode):
                    text = v.to_xml() + "\n"
                else:
                    text = v.replace(">", "&gt;").replace("<", "&lt;")
                if text.strip():
                    out.append(f"\n<{tag}>{text}</{tag}>")
        return "".join(out)

    def __repr__(self):
        return f"MdeFeatureNode(keys={self.keys()})"


class MdeFeatureNodeManager:
    """
    Path-addressed view of a feature tree.

    Paths starting with "/" resolve from the root, others from the
    current node. Each segment selects every child node under that key.
    """

    ADD_LAST = -2
    ADD_ALL = -1

    def __init__(self, root: Optional[MdeFeatureNode] = None):
        self.root = root if root is not None else MdeFeatureNode()
        self.current = self.root

    def set_current(self, path: str):
        nodes = self.get_nodes(path)
        if not nodes:
            raise RuntimeError(f'Path: "{path}" not found')
        if len(nodes) > 1:
            raise RuntimeError(f'Path "{path}" resulted in multiple nodes')
        self.current = nodes[0]

    def reset_current(self):
        self.current = self.root

    def get_nodes(self, path: str) -> List[MdeFeatureNode]:
        segments = [s.strip() for s in path.split("/") if s.strip()]
        start = self.root if path.strip().startswith("/") else self.current
        found: List[MdeFeatureNode] = []
        self._collect(start, segments, found)
        return found

    def _collect(self, node: MdeFeatureNode, segments: Sequence[str], found: list):
        if not segments:
            found.append(node)
            return
        for child in node.child_nodes(segments[0]):
            self._collect(child, segments[1:], found)

    def _pick(self, path: str, which: int) -> List[MdeFeatureNode]:
        nodes = self.get_nodes(path)
        if not nodes:
            raise RuntimeError(f'Path: "{path}" not found')
        if which == self.ADD_ALL:
            return nodes
        if which == self.ADD_LAST:
            return nodes[-1:]
        return [nodes[which]]

    def add_key(self, key: str, path: Optional[str] = None, which: int = ADD_LAST):
        if path is None:
            self.current.add_key(key)
            return
        for node in self._pick(path, which):
            node.add_key(key)

    def add_value(self, key: str, value: FeatureValue, path: Optional[str] = None,
                  which: int = ADD_LAST):
        if path is None:
            self.current.add_value(key, value)
            return
        for node in self._pick(path, which):
            node.add_value(key, value)

    def add_node(self, path: str, key: str):
        """Append a fresh child node under key at every node path resolves to."""
        for node in self.get_nodes(path):
            if not node.contains_key(key):
                node.add_key(key)
            node.add_value(key, MdeFeatureNode())

    def __str__(self):
        return self.root.to_xml()


# ============================================================================
# STANDARD KEYS AND DIRECTIONS
# ============================================================================

class GraphFeature(Enum):
    """Keys every SolvedGraph declares up front."""
    graphName = "graphName"
    graphBoundaries = "graphBoundaries"
    equationType = "equationType"
    equationPrint = "equationPrint"
    originalEquationPrint = "originalEquationPrint"
    graphDescriptionDomain = "graphDescriptionDomain"
    graphDescriptionRange = "graphDescriptionRange"
    domain = "domain"
    range = "range"
    abscissaSymbol = "abscissaSymbol"
    ordinateSymbol = "ordinateSymbol"
    abscissaLabel = "abscissaLabel"
    ordinateLabel = "ordinateLabel"
    coordinateSystem = "coordinateSystem"
    graphClosure = "graphClosure"
    xIntercepts = "xIntercepts"
    yIntercepts = "yIntercepts"
    maxima = "maxima"
    minima = "minima"
    ascendingRegions = "ascendingRegions"
    descendingRegions = "descendingRegions"


class CompassDirection(Enum):
    East = 0
    ENE = 1
    NE = 2
    NNE = 3
    North = 4
    NNW = 5
    NW = 6
    WNW = 7
    West = 8
    WSW = 9
    SW = 10
    SSW = 11
    South = 12
    SSE = 13
    SE = 14
    ESE = 15


GENERAL_DIRECTIONS = ("nowhere", "upwards", "downwards", "to the right", "to the left")


def compass_direction(theta: float) -> CompassDirection:
    """Nearest of the 16 compass points for an angle in degrees (0 = East)."""
    turns = (theta + 11.25) / 360.0
    phi = 360.0 * (turns - math.floor(turns))
    return CompassDirection(int(math.floor(phi / 22.5)) % 16)


def general_direction(n: int) -> str:
    return GENERAL_DIRECTIONS[n]


# ============================================================================
# SOLVED GRAPH
# ============================================================================

class GraphFamily(Enum):
    XY_GRAPH = "xy graph"
    LINE = "line"
    PARABOLA = "parabola"
    ELLIPSE = "ellipse"
    HYPERBOLA = "hyperbola"
    TWO_LINES = "two lines"
    TWO_INTERSECTING_LINES = "two intersecting lines"
    CUBIC = "cubic polynomial"
    RATIONAL_FUNCTION = "rational function"
    SQUARE_ROOT = "square root"
    ABSOLUTE_VALUE = "absolute value"
    SINE = "sine"
    COSINE = "cosine"
    TANGENT = "tangent"
    POLAR_LINE = "polar line"
    POLAR_CONIC = "polar conic"
    POLAR_ROSE = "polar rose"
    POLAR_TROCHOID = "polar trochoid"
    POLAR_LEMNISCATE = "polar lemniscate"
    EQUATION_DATA = "equation data"


class SolvedGraph:
    """
    Feature tree rooted at /MDE/GraphData plus a family tag and a typed payload.

    Family builders declare their keys with put_new_feature() and fill
    them with put_feature(). Points and intervals are stored as their
    str(); NumberModel and AngleModel contribute a sub-node. Numbers made
    through number() and angle() only show exact forms whose numerator
    and denominator stay within `search_limit`.
    """

    def __init__(self, family: GraphFamily = GraphFamily.XY_GRAPH, payload: Any = None,
                 search_limit: int = 100):
        self.family = family
        self.payload = payload
        self.search_limit = search_limit
        self.tree = MdeFeatureNodeManager()
        self.tree.add_node(ROOT_PATH, MDE_NAME)
        self.tree.set_current(MDE_NAME)
        self.tree.add_node(ROOT_PATH, GRAPH_DATA_NAME)
        self.tree.set_current(GRAPH_DATA_NAME)
        for feature in GraphFeature:
            self.tree.add_key(feature.value)

    @staticmethod
    def _to_value(v) -> FeatureValue:
        if isinstance(v, (str, MdeFeatureNode)):
            return v
        if isinstance(v, (NumberModel, AngleModel, IntervalEndpoint, IntervalDescription)):
            return v.to_feature_node()
        return str(v)

    def number(self, x: float) -> NumberModel:
        return NumberModel(x, self.search_limit)

    def angle(self, degrees: float) -> AngleModel:
        return AngleModel(degrees, self.search_limit)

    def angle_from_radians(self, radians: float) -> AngleModel:
        return AngleModel.from_radians(radians, self.search_limit)

    def put_feature(self, key: str, value, path: Optional[str] = None):
        self.tree.add_value(key, self._to_value(value), path)

    def add_to_feature(self, key: str, value):
        self.put_feature(key, value)

    def put_new_feature(self, key: str, value=None):
        self.tree.add_key(key)
        if value is not None:
            self.put_feature(key, value)

    def put_new_features(self, keys: Sequence[str]):
        for key in keys:
            self.put_new_feature(key)

    def put_new_feature_at(self, path: str, key: str, value=None, new_node: bool = False):
        if new_node:
            parent, _, name = path.rstrip("/").rpartition("/")
            self.tree.add_node(parent or ROOT_PATH, name)
        self.tree.add_key(key, path)
        if value is not None:
            self.put_feature(key, value, path)

    def copy_from(self, other: 'SolvedGraph'):
        self.tree = other.tree
        self.family = other.family
        self.payload = other.payload
        self.search_limit = other.search_limit

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_value(self, path: str, key: str) -> FeatureValue:
        for node in self.tree.get_nodes(path):
            values = node.get_list(key)
            if values:
                return values[0]
        raise KeyError(f"{path}{key}")

    def get_values(self, path: str, key: str) -> List[FeatureValue]:
        for node in self.tree.get_nodes(path):
            values = node.get_list(key)
            if values is not None:
                return values
        raise KeyError(f"{path}{key}")

    def feature(self, key: str) -> FeatureValue:
        return self.get_value(GRAPH_DATA_PATH, key)

    def features(self, key: str) -> List[FeatureValue]:
        return self.get_values(GRAPH_DATA_PATH, key)

    @property
    def graph_name(self) -> Optional[str]:
        values = self.features("graphName")
        return values[0] if values else None

    def x_intercepts(self) -> List[float]:
        return [float(v) for v in self.features("xIntercepts")]

    def y_intercepts(self) -> List[float]:
        return [float(v) for v in self.features("yIntercepts")]

    def domain(self) -> str:
        return self.feature("domain")

    def range(self) -> str:
        return self.feature("range")

    def payload_value(self, name: str, default=None):
        """Family specific payload field, `default` when the family has none."""
        return getattr(self.payload, name, default)

    # Shared accessors over the family payloads
    def vertex(self):
        return self.payload_value("vertex")

    def slope(self):
        return self.payload_value("slope")

    def period(self):
        return self.payload_value("period")

    def amplitude(self):
        return self.payload_value("amplitude")

    def minima(self):
        return self.payload_value("minima", [])

    def maxima(self):
        return self.payload_value("maxima", [])

    def to_xml(self) -> str:
        return "".join(node.to_xml() for node in self.tree.get_nodes(f"/{MDE_NAME}"))

    def __str__(self):
        return self.to_xml()

    def __repr__(self):
        return f"SolvedGraph({self.family.name}, {self.graph_name!r})"


# ============================================================================
# INTERVALS
# ============================================================================

class IntervalEndpoint:
    """A classified x position with the y value reached from each side."""

    UNDEFINED = -1
    LOCAL_MIN = 0
    LOCAL_MAX = 1
    INFLECTION_POINT = 2
    VERTICAL_ASYMPTOTE = 3
    HORIZONTAL_ASYMPTOTE = 4
    BOUNDARY_POINT = 5

    TYPE_STRINGS = (
        "local minimum",
        "local maximum",
        "inflection point",
        "vertical asymptote",
        "horizontal asymptote",
        "boundary point",
    )

    def __init__(self, x: float, left_y: float = 0.0, right_y: Optional[float] = None,
                 type_code: int = UNDEFINED):
        self.x = x
        self.left_y = left_y
        self.right_y = left_y if right_y is None else right_y
        self.type_code = type_code if 0 <= type_code < len(self.TYPE_STRINGS) else self.UNDEFINED
        self.is_critical = self.type_code in (self.LOCAL_MIN, self.LOCAL_MAX, self.INFLECTION_POINT)
        self.is_singular = self.type_code == self.VERTICAL_ASYMPTOTE

    @classmethod
    def at_zero(cls, zero, type_code: int) -> 'IntervalEndpoint':
        """Endpoint at a RealZero; y values are filled in by the caller."""
        return cls(zero.x, 0.0, 0.0, type_code)

    @classmethod
    def at_point(cls, p, type_code: Optional[int] = None) -> 'IntervalEndpoint':
        if type_code is None:
            if math.isinf(p.y):
                type_code = cls.UNDEFINED
            elif math.isinf(p.x):
                type_code = cls.HORIZONTAL_ASYMPTOTE
            else:
                type_code = cls.BOUNDARY_POINT
        return cls(p.x, p.y, p.y, type_code)

    @property
    def type_string(self) -> str:
        return "undefined" if self.type_code == self.UNDEFINED else self.TYPE_STRINGS[self.type_code]

    def __lt__(self, other: 'IntervalEndpoint'):
        return self.x < other.x

    def to_feature_node(self) -> MdeFeatureNode:
        node = MdeFeatureNode()
        node.add_key("X")
        node.add_value("X", trim_double(self.x, 3))
        if self.left_y != self.right_y:
            node.add_key("discontinuity")
            node.add_value("discontinuity", "true")
            node.add_key("leftY")
            node.add_key("rightY")
            node.add_value("leftY", trim_double(self.left_y, 3))
            node.add_value("rightY", trim_double(self.right_y, 3))
        else:
            node.add_key("Y")
            node.add_value("Y", trim_double(self.left_y, 3))
        if self.type_code != self.UNDEFINED:
            node.add_key("Type")
            node.add_value("Type", self.type_string)
        return node

    def __repr__(self):
        return f"IntervalEndpoint({self.x}, {self.type_string})"


class IntervalDescription:
    """Monotonic behavior between two consecutive endpoints."""

    DECREASES = -1
    REMAINS_CONSTANT = 0
    INCREASES = 1
    UNDEFINED = 2

    DEAD_BAND = 1.0e-3
    MIN_INTERVAL_LENGTH = DEAD_BAND ** 0.25

    _WORDS = {DECREASES: "decreases", REMAINS_CONSTANT: "remains constant", INCREASES: "increases"}

    def __init__(self, left: IntervalEndpoint, right: IntervalEndpoint):
        self.left = left
        self.right = right
        self.direction = self.get_direction(left, right)

    @classmethod
    def get_direction(cls, left: IntervalEndpoint, right: IntervalEndpoint) -> int:
        dx = right.x - left.x
        dydx = (right.left_y - left.right_y) / dx if dx != 0.0 else math.nan
        if math.isnan(dydx):
            if right.left_y > left.right_y:
                return cls.INCREASES
            if right.left_y < left.right_y:
                return cls.DECREASES
            return cls.UNDEFINED
        if dydx > cls.DEAD_BAND:
            return cls.INCREASES
        if dydx < -cls.DEAD_BAND:
            return cls.DECREASES
        return cls.REMAINS_CONSTANT

    @property
    def direction_string(self) -> Optional[str]:
        return self._WORDS.get(self.direction)

    def to_feature_node(self) -> MdeFeatureNode:
        node = MdeFeatureNode()
        node.add_key("left")
        node.add_value("left", self.left.to_feature_node())
        node.add_key("right")
        node.add_value("right", self.right.to_feature_node())
        node.add_key("direction")
        if self.direction_string is not None:
            node.add_value("direction", self.direction_string)
        return node
