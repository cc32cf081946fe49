"""
Solver: the set of analyzed items being described together.

Every item is wrapped in a Solution that carries its show/sonify flags.
solve() samples all visible items over one shared viewing rectangle,
growing it until it covers every item's preferred bounds.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Union

from .analyzed import AnalyzedData, AnalyzedEquation, AnalyzedItem
from .config import EngineConfig
from .features import SolvedGraph
from .geometry import Bounds, MultiPointXY

logger = logging.getLogger(__name__)


# ============================================================================
# EVENTS
# ============================================================================

@dataclass
class SolutionStateChange:
    """Which flags of `solution` just changed."""
    solution: 'Solution'
    show_changed: bool
    sonify_changed: bool


@dataclass
class SolverStateChange:
    solver: 'Solver'


Listener = Callable[[object], None]


class _Notifier:
    """Listener list notified over a snapshot, newest listener first."""

    def __init__(self):
        self.listeners: List[Listener] = []

    def add_change_listener(self, listener: Listener):
        self.listeners.append(listener)

    def remove_change_listener(self, listener: Listener):
        if listener in self.listeners:
            self.listeners.remove(listener)

    def remove_all_change_listeners(self):
        self.listeners.clear()

    def fire_state_changed(self, event):
        for listener in reversed(list(self.listeners)):
            listener(event)


# ============================================================================
# SOLUTION
# ============================================================================

class Solution(_Notifier):
    """
    One analyzed item and its display flags.

    A hidden graph is never sonified: hiding it turns sonification off,
    and sonifying a hidden graph raises ValueError.
    """

    def __init__(self, analyzed_item: AnalyzedItem):
        if analyzed_item is None:
            raise TypeError("Null analyzed-item.")
        super().__init__()
        self.analyzed_item = analyzed_item
        self.show_graph = True
        self.sonify_graph = True

    def get_input_equation(self) -> Optional[str]:
        if isinstance(self.analyzed_item, AnalyzedEquation):
            return self.analyzed_item.print_equation()
        return None

    def is_polar(self) -> bool:
        return isinstance(self.analyzed_item, AnalyzedEquation) and self.analyzed_item.is_polar()

    def is_bad_equation(self) -> bool:
        item = self.analyzed_item
        return isinstance(item, AnalyzedEquation) and (item.is_bad() or item.has_more_than_two_variables())

    def is_describable(self) -> bool:
        return self.get_features() is not None

    def is_graphable(self) -> bool:
        return bool(self.analyzed_item.graph_trails)

    def is_sonifiable(self) -> bool:
        return bool(self.analyzed_item.points)

    def get_features(self) -> Optional[SolvedGraph]:
        return self.analyzed_item.get_features()

    def get_points(self) -> List[Optional[MultiPointXY]]:
        return self.analyzed_item.points

    def get_graph_trails(self):
        return self.analyzed_item.graph_trails

    def get_point(self, position: float) -> Optional[MultiPointXY]:
        return self.analyzed_item.get_point(position)

    def get_point_near(self, x: float) -> Optional[MultiPointXY]:
        """Sampled point nearest x, None when x lies outside the sampled range."""
        item = self.analyzed_item
        if isinstance(item, AnalyzedData):
            return item.get_point_at(item.get_point_index_near(x))
        b = item.preferred_bounds
        if x < b.left or x > b.right or b.right == b.left:
            return None
        return item.get_point((x - b.left) / (b.right - b.left))

    def set_show_graph(self, visible: bool):
        show_changed = visible != self.show_graph
        sonify_changed = not visible and self.sonify_graph
        if not visible:
            self.sonify_graph = False
        self.show_graph = visible
        if show_changed or sonify_changed:
            self.fire_state_changed(SolutionStateChange(self, show_changed, sonify_changed))

    def is_show_graph(self) -> bool:
        return self.show_graph

    def set_sonify_graph(self, sonify: bool):
        if sonify and not self.show_graph:
            raise ValueError("Graph can not be sonified if it is not shown.")
        if sonify != self.sonify_graph:
            self.sonify_graph = sonify
            self.fire_state_changed(SolutionStateChange(self, False, True))

    def is_sonify_graph(self) -> bool:
        return self.sonify_graph

    def __eq__(self, other):
        if other is self:
            return True
        if not isinstance(other, Solution):
            return NotImplemented
        return self.analyzed_item == other.analyzed_item

    def __hash__(self):
        return hash(self.analyzed_item)

    def __repr__(self):
        return (f"Solution({type(self.analyzed_item).__name__}, "
                f"show_graph={self.show_graph}, sonify_graph={self.sonify_graph})")


# ============================================================================
# SOLVER
# ============================================================================

class Solver(_Notifier):
    """
    Ordered collection of Solutions sharing one set of bounds.

    At most one polar graph is sonified, and none while a Cartesian graph
    is shown. The rule is re-applied, newest solution first, whenever a
    solution is added or its flags change.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        super().__init__()
        self.config = config or EngineConfig()
        self.solutions: List[Solution] = []
        self.show_polar_count = 0
        self.show_cartesian_count = 0
        self.sonify_polar_count = 0
        self.sonify_cartesian_count = 0
        self.preferred_bounds = self.config.default_bounds()
        self.bounds = self.config.default_bounds()

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def add(self, item: Union[str, AnalyzedItem], enable_graph: bool = True,
            enable_sonification: bool = True) -> AnalyzedItem:
        """
        Add an equation string or an analyzed item. A bad equation, or one
        with more than two variables, is returned but not added.
        """
        if isinstance(item, str):
            item = AnalyzedEquation(item, self.config)
        if isinstance(item, AnalyzedEquation) and (item.is_bad() or item.has_more_than_two_variables()):
            logger.warning(f"Rejected equation '{item.input_equation}'")
            self.fire_state_changed(SolverStateChange(self))
            return item

        solution = Solution(item)
        solution.set_show_graph(enable_graph)
        solution.set_sonify_graph(enable_sonification)
        solution.add_change_listener(self._solution_flags_changed)
        self.solutions.append(solution)
        self._update_show_sonify_counts(solution, int(solution.show_graph), int(solution.sonify_graph))
        self._apply_show_sonify_graph_rule()
        logger.debug(f"Added '{item.name}' ({len(self.solutions)} solution(s))")
        return item

    def __iter__(self) -> Iterator[Solution]:
        return iter(self.solutions)

    def __len__(self):
        return len(self.solutions)

    def is_empty(self) -> bool:
        return not self.solutions

    def size(self) -> int:
        return len(self.solutions)

    def get(self, index: int) -> Solution:
        if not 0 <= index < len(self.solutions):
            raise IndexError(f"Solution index {index} out of range (size {len(self.solutions)})")
        return self.solutions[index]

    def get_by_name(self, name: str) -> Optional[List[Solution]]:
        """Every solution whose item has this name, None when there are none."""
        if name is None:
            return None
        found = [s for s in self.solutions if s.analyzed_item.name == name]
        return found or None

    def get_item(self, item: AnalyzedItem) -> Optional[Solution]:
        if item is None:
            return None
        for s in self.solutions:
            if item == s.analyzed_item:
                return s
        return None

    def contains(self, item: AnalyzedItem) -> bool:
        return self.get_item(item) is not None

    def remove_all(self):
        for s in self.solutions:
            s.remove_all_change_listeners()
        self.solutions.clear()
        self.show_polar_count = 0
        self.show_cartesian_count = 0
        self.sonify_polar_count = 0
        self.sonify_cartesian_count = 0

    # ------------------------------------------------------------------
    # Solving
    # ------------------------------------------------------------------

    def solve(self, *bounds):
        """
        solve(), solve(Bounds) or solve(left, right, top, bottom).

        The first visible item's preferred bounds replace the requested
        ones; later items only ever grow them, and when they do every item
        is sampled again, up to max_solve_iterations passes.
        """
        if len(bounds) == 1:
            b = bounds[0]
            self.bounds.set_bounds(b.left, b.right, b.top, b.bottom)
        elif len(bounds) == 4:
            self.bounds.set_bounds(*bounds)
        elif bounds:
            raise TypeError(f"solve() takes a Bounds or four floats, got {len(bounds)} arguments")
        if not self.solutions:
            return

        logger.info(f"Solving {len(self.solutions)} item(s) over bounds {self.bounds.to_dict()}")
        iteration = 0
        while True:
            recompute = False
            for index, solution in enumerate(self.solutions):
                if not (solution.show_graph or solution.sonify_graph):
                    continue
                item = solution.analyzed_item
                if iteration == 0 or self.bounds != item.preferred_bounds:
                    item.compute_points(self.bounds.copy())
                    item.update_features()
                preferred = item.preferred_bounds
                if iteration == 0 and index == 0 and self.bounds != preferred:
                    self.bounds.set_bounds(preferred.left, preferred.right, preferred.top,
                                           preferred.bottom)
                if self.bounds.maximize(preferred) and index > 0:
                    logger.debug(f"Bounds grew to {self.bounds.to_dict()} for '{item.name}'")
                    recompute = True
            iteration += 1
            if not recompute or iteration >= self.config.max_solve_iterations:
                break
        self.fire_state_changed(SolverStateChange(self))

    # ------------------------------------------------------------------
    # Show / sonify bookkeeping
    # ------------------------------------------------------------------

    def _apply_show_sonify_graph_rule(self):
        for solution in reversed(list(self.solutions)):
            if solution.is_polar() and solution.sonify_graph and \
                    (self.show_cartesian_count > 0 or self.sonify_polar_count > 1):
                solution.set_sonify_graph(False)

    def _update_show_sonify_counts(self, s: Solution, show_offset: int, sonify_offset: int):
        if s.is_polar():
            self.show_polar_count += show_offset
            self.sonify_polar_count += sonify_offset
        else:
            self.show_cartesian_count += show_offset
            self.sonify_cartesian_count += sonify_offset

    def _solution_flags_changed(self, event: SolutionStateChange):
        s = event.solution
        show_offset = (1 if s.show_graph else -1) if event.show_changed else 0
        sonify_offset = (1 if s.sonify_graph else -1) if event.sonify_changed else 0
        self._update_show_sonify_counts(s, show_offset, sonify_offset)
        self._apply_show_sonify_graph_rule()

    def get_show_polar_count(self) -> int:
        return self.show_polar_count

    def get_show_cartesian_count(self) -> int:
        return self.show_cartesian_count

    def get_sonify_polar_count(self) -> int:
        return self.sonify_polar_count

    def get_sonify_cartesian_count(self) -> int:
        return self.sonify_cartesian_count

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def any_analyzed_data(self) -> bool:
        return any(isinstance(s.analyzed_item, AnalyzedData) for s in self.solutions)

    def any_bad_equations(self) -> bool:
        if not self.solutions:
            return True
        return any(s.is_bad_equation() for s in self.solutions)

    def any_describable(self) -> bool:
        return any(s.is_describable() for s in self.solutions)

    def any_graphable(self) -> bool:
        return any(s.is_graphable() for s in self.solutions)

    def any_sonifiable(self) -> bool:
        return any(s.is_sonifiable() for s in self.solutions)

    # ------------------------------------------------------------------
    # Bounds
    # ------------------------------------------------------------------

    @property
    def left(self) -> float:
        return self.bounds.left

    @property
    def right(self) -> float:
        return self.bounds.right

    @property
    def top(self) -> float:
        return self.bounds.top

    @property
    def bottom(self) -> float:
        return self.bounds.bottom

    def get_bounds(self) -> Bounds:
        return self.bounds

    def set_bounds(self, left: float, right: float, top: float, bottom: float):
        self.bounds.set_bounds(left, right, top, bottom)

    def get_preferred_bounds(self) -> Bounds:
        return self.preferred_bounds

    def set_preferred_bounds(self, left: float, right: float, top: float, bottom: float):
        self.preferred_bounds.set_bounds(left, right, top, bottom)
