"""
MDE Engine
==========
Describes the graphs of equations and data series in words.

Usage:
    from mde_engine import Solver, solve, analyze

    # Quick description
    graph = solve("y = x^2 - 4")
    graph.graph_name          # 'parabola'
    graph.vertex()            # PointXY(x=0.0, y=-4.0)
    print(graph.to_xml())

    # Several equations over shared bounds
    solver = Solver()
    solver.add("y = 2x + 3")
    solver.add("x^2 + y^2 = 4")
    solver.solve(-10, 10, 10, -10)
    for solution in solver:
        print(solution.get_features().graph_name)

    # Just the analysis, no sampling
    ae = analyze("r = 2*cos(3*theta)")
    ae.is_polar()
"""

from .config import EngineConfig, NUM_POINTS, DEFAULT_BOUND_VALUE

from .core import Action, Quantity, ParseNode, Expression
from .polynomial import PolyTerm, Polynomial
from .rational import RationalExpression, ContinuedFraction
from .equation import Equation

from .numeric import (
    NumberModel, AngleModel, PNom, RealZero, real_roots,
    get_equivalent_rational_string, get_quadratic_representation_string,
)
from .mathutil import trim_double
from .geometry import Bounds, PointXY, PointRT, MultiPointXY, IntervalXY, GraphTrail
from .features import (
    MdeFeatureNode, MdeFeatureNodeManager, GraphFeature, GraphFamily, SolvedGraph,
    IntervalEndpoint, IntervalDescription,
)

from .analyzed import AnalyzedItem, AnalyzedEquation, AnalyzedData
from .models import (
    DataModelBuilder, PolynomialModelBuilder, PolarModelBuilder,
    PolynomialModel, QuadraticModel, RationalModel, PolarModel,
)
from .classifiers import (
    MDEClassifier, QuadraticClassifier, QuadraticType,
    PolynomialClassifier, TrigClassifier, PolarClassifier,
)
from .solver import Solution, Solver, SolutionStateChange, SolverStateChange

# Convenience functions
_default_solver = None


def get_solver():
    """Get or create default solver."""
    global _default_solver
    if _default_solver is None:
        _default_solver = Solver()
    return _default_solver


def analyze(text, config=None):
    """Parse and analyze an equation without sampling it."""
    return AnalyzedEquation(text, config)


def solve(text, bounds=None):
    """Describe one equation over bounds (default +-10). None if it is unusable."""
    solver = get_solver()
    solver.remove_all()
    item = solver.add(text)
    if solver.is_empty():
        return None
    solver.solve(bounds if bounds is not None else solver.config.default_bounds())
    return item.get_features()


def parse(text):
    """Parse string to expression tree."""
    return Expression(text)


__version__ = "1.0.0"
__all__ = [
    # Config
    'EngineConfig', 'NUM_POINTS', 'DEFAULT_BOUND_VALUE',

    # Symbolic algebra
    'Action', 'Quantity', 'ParseNode', 'Expression',
    'PolyTerm', 'Polynomial', 'RationalExpression', 'ContinuedFraction', 'Equation',

    # Numbers and geometry
    'NumberModel', 'AngleModel', 'PNom', 'RealZero', 'real_roots',
    'get_equivalent_rational_string', 'get_quadratic_representation_string', 'trim_double',
    'Bounds', 'PointXY', 'PointRT', 'MultiPointXY', 'IntervalXY', 'GraphTrail',

    # Features
    'MdeFeatureNode', 'MdeFeatureNodeManager', 'GraphFeature', 'GraphFamily',
    'SolvedGraph', 'IntervalEndpoint', 'IntervalDescription',

    # Analysis
    'AnalyzedItem', 'AnalyzedEquation', 'AnalyzedData',
    'DataModelBuilder', 'PolynomialModelBuilder', 'PolarModelBuilder',
    'PolynomialModel', 'QuadraticModel', 'RationalModel', 'PolarModel',
    'MDEClassifier', 'QuadraticClassifier', 'QuadraticType',
    'PolynomialClassifier', 'TrigClassifier', 'PolarClassifier',

    # Solving
    'Solution', 'Solver', 'SolutionStateChange', 'SolverStateChange',

    # Functions
    'solve', 'analyze', 'parse', 'get_solver',
]
