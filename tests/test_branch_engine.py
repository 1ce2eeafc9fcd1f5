from __future__ import annotations

import pytest

from allotment.config import PRESET_SCENARIOS, SolverSettings
from allotment.engines.base import EngineInput
from allotment.engines.branch_engine import BranchEngine, solve_all, solve_problem
from allotment.engines.compiler import compile_branch
from allotment.engines.pulp_solver import SolveResult, init_solver
from allotment.errors import BranchLimitError, InfeasibleError, SolverUnavailableError
from allotment.io import preset_problem
from allotment.model import (
    AttributeGroup,
    ComplexRequirement,
    ConstraintKind,
    Operator,
    Record,
    SimpleRequirement,
    Unit,
)


def minimum(value, *attrs, rid=None):
    return SimpleRequirement(rid or f"min-{'-'.join(attrs)}", ConstraintKind.MINIMUM, value, tuple(attrs))


def maximum(value, *attrs, rid=None):
    return SimpleRequirement(rid or f"max-{'-'.join(attrs)}", ConstraintKind.MAXIMUM, value, tuple(attrs))


def all_of(*children):
    return ComplexRequirement("and", Operator.AND, tuple(children))


def any_of(*children):
    return ComplexRequirement("or", Operator.OR, tuple(children))


DAY_NIGHT = [Record("day", 3, ("Day",)), Record("night", 4, ("Night",))]
LOCAL_GLOBAL = [
    Record("local-night", 5, ("Local", "Night")),
    Record("local-day", 2, ("Local", "Day")),
    Record("global-day", 3, ("Global", "Day")),
]
GROUPS = [
    AttributeGroup("location", "Location", ("Local", "Global")),
    AttributeGroup("shift", "Shift", ("Day", "Night")),
]
TOL = 1e-9


# -----------------------------
# Scenarios
# -----------------------------
def test_hours_maximum_allocates_everything(solver):
    sol = solve_problem(DAY_NIGHT, all_of(maximum(5, "Day")), 10, Unit.HOURS, solver=solver)
    assert sol.total_value == pytest.approx(7.0)
    assert sol.weight_of("day") == pytest.approx(3.0)
    assert sol.weight_of("night") == pytest.approx(4.0)
    assert sol.maximum_requirements[0].used == pytest.approx(3.0)
    assert sol.maximum_requirements[0].target == pytest.approx(5.0)


def test_minimum_above_supply_is_infeasible(solver):
    with pytest.raises(InfeasibleError):
        solve_problem(DAY_NIGHT, all_of(minimum(6, "Night")), 10, Unit.HOURS, solver=solver)


def test_occurrences_mixed_requirements(solver):
    tree = all_of(minimum(3, "Night"), maximum(5, "Day"))
    sol = solve_problem(LOCAL_GLOBAL, tree, 10, Unit.OCCURRENCES, GROUPS, solver=solver)

    assert [s.weight for s in sol.selected_records] == [5.0, 2.0, 3.0]
    assert sol.total_value == 10.0
    assert sol.minimum_requirements[0].achieved == 5.0
    assert sol.minimum_requirements[0].target == 3.0
    assert sol.maximum_requirements[0].used == 5.0


def test_zero_target_with_positive_minimum_is_infeasible(solver):
    with pytest.raises(InfeasibleError):
        solve_problem(DAY_NIGHT, all_of(minimum(1, "Night")), 0, Unit.OCCURRENCES, solver=solver)

    only_night = [Record("night", 4, ("Night",))]
    with pytest.raises(InfeasibleError):
        solve_problem(only_night, all_of(minimum(1, "Night")), 0, Unit.OCCURRENCES, solver=solver)


def test_fractional_hours_round_trip(solver):
    records = [Record("a", 1.5, ("Day",)), Record("b", 2.3, ("Night",))]
    sol = solve_problem(records, all_of(maximum(0.7, "Day")), 2.5, Unit.HOURS, solver=solver)
    assert sol.weight_of("a") <= 0.7 + TOL
    assert sol.total_value == pytest.approx(2.5)
    assert sol.maximum_requirements[0].target == pytest.approx(0.7)


def test_grand_total_maximum(solver):
    sol = solve_problem(DAY_NIGHT, all_of(maximum(5)), 10, Unit.OCCURRENCES, solver=solver)
    assert sol.total_value == 5.0


def test_minimum_prefers_matching_records(solver):
    # Room for only 4: the Night minimum forces Night in, score favours it further.
    sol = solve_problem(DAY_NIGHT, all_of(minimum(3, "Night")), 4, Unit.OCCURRENCES, solver=solver)
    assert sol.weight_of("night") == 4.0
    assert sol.weight_of("day") == 0.0


# -----------------------------
# OR branches
# -----------------------------
def test_best_branch_wins_and_skipped_alternatives_are_reported(solver):
    tree = any_of(maximum(2, "Day"), maximum(1, "Night"))
    res = BranchEngine(solver).run(EngineInput(DAY_NIGHT, tree, 10, Unit.OCCURRENCES))

    assert res.meta["best_branch"] == 0
    assert res.meta["branches"] == 2
    assert res.solution.total_value == 6.0
    # The losing alternative still reports its would-be usage.
    assert [(m.attributes, m.used) for m in res.solution.maximum_requirements] == [
        (("Day",), 2.0),
        (("Night",), 4.0),
    ]


def test_infeasible_branch_is_skipped(solver):
    tree = any_of(minimum(4, "Day"), minimum(3, "Night"))
    res = BranchEngine(solver).run(EngineInput(DAY_NIGHT, tree, 10, Unit.OCCURRENCES))

    assert res.meta["best_branch"] == 1
    assert res.meta["feasible_branches"] == 1
    assert [o.status for o in res.meta["outcomes"]] == ["Infeasible", "Optimal"]
    assert res.solution.total_value == 7.0
    assert [m.achieved for m in res.solution.minimum_requirements] == [3.0, 4.0]
    assert any("skipped" in w for w in res.warnings)


def test_all_branches_infeasible(solver):
    tree = any_of(minimum(4, "Day"), minimum(5, "Night"))
    with pytest.raises(InfeasibleError, match="No feasible solution"):
        solve_problem(DAY_NIGHT, tree, 10, Unit.OCCURRENCES, solver=solver)


def test_empty_or_is_infeasible(solver):
    with pytest.raises(InfeasibleError):
        solve_problem(DAY_NIGHT, any_of(), 10, Unit.OCCURRENCES, solver=solver)


def test_threaded_solves_match_sequential(solver):
    tree = all_of(any_of(maximum(1, "Day"), maximum(2, "Day")), any_of(maximum(3, "Night"), maximum(1, "Night")))
    seq = solve_problem(DAY_NIGHT, tree, 10, Unit.OCCURRENCES, solver=solver)
    par = solve_problem(
        DAY_NIGHT, tree, 10, Unit.OCCURRENCES, solver=solver, settings=SolverSettings(max_workers=4)
    )
    assert seq == par
    assert seq.total_value == 5.0


def test_branch_limit(solver):
    tree = all_of(any_of(maximum(1, "Day"), maximum(2, "Day")), any_of(maximum(3, "Night"), maximum(1, "Night")))
    with pytest.raises(BranchLimitError):
        solve_problem(DAY_NIGHT, tree, 10, Unit.OCCURRENCES, solver=solver, settings=SolverSettings(max_branches=3))


# -----------------------------
# Selection with a scripted solver
# -----------------------------
class ScriptedSolver:
    solver_name = "scripted"

    def __init__(self, results):
        self.results = results

    def solve(self, model):
        return self.results[model.name]


def test_ties_keep_first_branch():
    records = [Record("a", 5), Record("b", 5)]
    models = [compile_branch(records, [], 10, name=f"branch_{i}") for i in range(3)]
    scripted = ScriptedSolver(
        {
            "branch_0": SolveResult("Infeasible"),
            "branch_1": SolveResult("Optimal", {"r0": 3, "r1": 1}),
            "branch_2": SolveResult("Optimal", {"r0": 0, "r1": 4}),
        }
    )
    best_idx, best, outcomes = solve_all(models, records, scripted)
    assert best_idx == 1
    assert best.assignment == {"r0": 3, "r1": 1}
    assert [o.total_value for o in outcomes] == [0.0, 4.0, 4.0]


def test_non_optimal_statuses_are_skipped():
    records = [Record("a", 5)]
    models = [compile_branch(records, [], 10, name=f"branch_{i}") for i in range(2)]
    scripted = ScriptedSolver(
        {"branch_0": SolveResult("Not Solved"), "branch_1": SolveResult("Unbounded")}
    )
    with pytest.raises(InfeasibleError):
        solve_all(models, records, scripted)


# -----------------------------
# Properties
# -----------------------------
def test_idempotent(solver):
    tree = all_of(minimum(3, "Night"), maximum(5, "Day"))
    first = solve_problem(LOCAL_GLOBAL, tree, 10, Unit.OCCURRENCES, GROUPS, solver=solver)
    second = solve_problem(LOCAL_GLOBAL, tree, 10, Unit.OCCURRENCES, GROUPS, solver=solver)
    assert first == second


@pytest.mark.parametrize("name", [n for n in PRESET_SCENARIOS if "Infeasible" not in n])
def test_presets_respect_bounds(solver, name):
    inp = preset_problem(name)
    sol = BranchEngine(solver).run(inp).solution

    values = {r.id: r.value for r in inp.records}
    for sr in sol.selected_records:
        assert -TOL <= sr.weight <= values[sr.record_id] + TOL

    assert sol.total_value <= inp.target_value + TOL
    assert sum(sr.weight for sr in sol.selected_records) == pytest.approx(sol.total_value)

    for m in sol.maximum_requirements:
        assert m.used <= m.target + TOL
    for m in sol.minimum_requirements:
        assert m.achieved >= m.target - TOL


def test_preset_infeasible():
    with pytest.raises(InfeasibleError):
        BranchEngine(init_solver()).run(preset_problem("Test 8: Infeasible (too little)"))


def test_preset_overshoot_prefers_night(solver):
    sol = BranchEngine(solver).run(preset_problem("Test 3: Overshoot prevention")).solution
    assert sol.total_value == 10.0
    assert sol.weight_of("t3-local-night") == 8.0


def test_preset_global_max(solver):
    sol = BranchEngine(solver).run(preset_problem("Test 4: Global max constraint")).solution
    assert sol.total_value == 10.0
    assert sol.weight_of("t4-global-day") == 0.0


def test_group_violation_is_a_warning_not_an_error(solver):
    records = DAY_NIGHT + [Record("both", 1, ("Day", "Night"))]
    groups = [AttributeGroup("shift", "Shift", ("Day", "Night"))]
    res = BranchEngine(solver).run(EngineInput(records, all_of(minimum(2, "Night")), 10, Unit.OCCURRENCES, groups))
    assert res.solution.total_value == 8.0
    assert any("both" in w for w in res.warnings)


def test_unknown_solver_name():
    with pytest.raises(SolverUnavailableError):
        init_solver("NO_SUCH_SOLVER")


def test_duplicate_record_ids_are_reported(solver):
    records = [Record("dup", 3, ("Day",)), Record("dup", 4, ("Night",))]
    res = BranchEngine(solver).run(EngineInput(records, all_of(maximum(2, "Day")), 10, Unit.OCCURRENCES))
    assert [s.weight for s in res.solution.selected_records] == [2.0, 4.0]
    assert any("'dup'" in w for w in res.warnings)
