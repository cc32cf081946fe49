"""Solver membership, show/sonify bookkeeping and shared bounds."""

import pytest

from mde_engine.analyzed import AnalyzedData, AnalyzedEquation
from mde_engine.config import EngineConfig
from mde_engine.solver import Solution, SolutionStateChange, Solver, SolverStateChange


# ============================================================================
# SOLUTION
# ============================================================================

def test_solution_needs_an_item():
    with pytest.raises(TypeError):
        Solution(None)


def test_hiding_stops_sonification():
    s = Solution(AnalyzedEquation("y = x"))
    events = []
    s.add_change_listener(events.append)
    s.set_show_graph(False)
    assert not s.is_show_graph()
    assert not s.is_sonify_graph()
    assert len(events) == 1
    assert isinstance(events[0], SolutionStateChange)
    assert events[0].show_changed and events[0].sonify_changed


def test_hidden_graph_can_not_be_sonified():
    s = Solution(AnalyzedEquation("y = x"))
    s.set_show_graph(False)
    with pytest.raises(ValueError):
        s.set_sonify_graph(True)


def test_unchanged_flags_fire_nothing():
    s = Solution(AnalyzedEquation("y = x"))
    events = []
    s.add_change_listener(events.append)
    s.set_show_graph(True)
    s.set_sonify_graph(True)
    assert events == []


def test_newest_listener_hears_first():
    s = Solution(AnalyzedEquation("y = x"))
    heard = []
    s.add_change_listener(lambda e: heard.append("first"))
    s.add_change_listener(lambda e: heard.append("second"))
    s.set_sonify_graph(False)
    assert heard == ["second", "first"]


def test_solution_equality_follows_item():
    assert Solution(AnalyzedEquation("y = x")) == Solution(AnalyzedEquation("y=x"))


# ============================================================================
# MEMBERSHIP
# ============================================================================

def test_bad_equations_are_not_added(solver):
    events = []
    solver.add_change_listener(events.append)
    item = solver.add("y = (x")
    assert item.is_bad()
    solver.add("x + y + z = 1")
    assert solver.size() == 0
    assert solver.is_empty()
    assert all(isinstance(e, SolverStateChange) for e in events)
    assert len(events) == 2


def test_empty_solver_reports_bad_equations(solver):
    assert solver.any_bad_equations()
    solver.add("y = x")
    assert not solver.any_bad_equations()


def test_get_out_of_range(solver):
    solver.add("y = x")
    assert solver.get(0).get_input_equation() == "y = x"
    with pytest.raises(IndexError):
        solver.get(5)


def test_lookup(solver):
    item = solver.add("y = x^2")
    assert solver.contains(item)
    assert solver.get_item(AnalyzedEquation("y = x^2")) is solver.get(0)
    assert solver.get_by_name(item.name) == [solver.get(0)]
    assert solver.get_by_name("nope") is None
    assert solver.get_item(None) is None


def test_sonifying_hidden_graph_on_add(solver):
    with pytest.raises(ValueError):
        solver.add("y = x", enable_graph=False, enable_sonification=True)


def test_remove_all(solver):
    solver.add("y = x")
    solver.add("r = 2")
    solver.remove_all()
    assert solver.is_empty()
    assert solver.get_show_polar_count() == 0
    assert solver.get_show_cartesian_count() == 0


# ============================================================================
# SHOW / SONIFY RULE
# ============================================================================

def test_polar_is_silent_next_to_cartesian(solver):
    solver.add("y = x")
    solver.add("r = 2")
    polar = solver.get(1)
    assert polar.is_polar()
    assert polar.is_show_graph()
    assert not polar.is_sonify_graph()
    assert solver.get_sonify_polar_count() == 0
    assert solver.get_show_cartesian_count() == 1


def test_only_one_polar_is_sonified(solver):
    solver.add("r = 2")
    solver.add("r = 3")
    assert solver.get(0).is_sonify_graph()
    assert not solver.get(1).is_sonify_graph()
    assert solver.get_sonify_polar_count() == 1


def test_flag_changes_update_counts(solver):
    solver.add("y = x")
    solver.get(0).set_show_graph(False)
    assert solver.get_show_cartesian_count() == 0
    assert solver.get_sonify_cartesian_count() == 0


# ============================================================================
# SOLVING
# ============================================================================

def test_solve_describes_every_item(solver):
    solver.add("y = x^2 - 4")
    solver.add("x^2 + y^2 = 4")
    solver.solve(-10.0, 10.0, 10.0, -10.0)
    names = [s.get_features().graph_name for s in solver]
    assert names == ["parabola", "circle"]
    assert solver.any_describable()
    assert solver.any_graphable()
    assert solver.any_sonifiable()


def test_bounds_grow_to_cover_polar_graph(solver):
    solver.add("y = x")
    solver.add("r = 8")
    solver.solve(-5.0, 5.0, 5.0, -5.0)
    assert solver.left == pytest.approx(-8.0)
    assert solver.right == pytest.approx(8.0)
    assert solver.top == pytest.approx(8.0)


def test_solve_argument_forms(solver):
    with pytest.raises(TypeError):
        solver.solve(1.0, 2.0)
    solver.solve()


def test_solve_fires_change(solver):
    events = []
    solver.add_change_listener(events.append)
    solver.add("y = x")
    solver.solve()
    assert isinstance(events[-1], SolverStateChange)


def test_data_items(solver):
    solver.add(AnalyzedData("t", "v", [0.0, 1.0, 2.0], [0.0, 1.0, 4.0]))
    assert solver.any_analyzed_data()
    assert solver.get(0).get_input_equation() is None
    assert solver.get(0).get_point_near(1.0) is None


@pytest.mark.parametrize("limit,shown", [(100, True), (5, False)])
def test_search_limit_bounds_exact_forms(limit, shown):
    solver = Solver(EngineConfig(rational_search_limit=limit))
    solver.add("y = 7/9*x")
    solver.solve()
    xml = solver.get(0).get_features().to_xml()
    assert ("<rationalValue>7/9</rationalValue>" in xml) == shown
