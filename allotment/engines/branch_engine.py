from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from allotment.config import SolverSettings
from allotment.engines.base import Engine, EngineInput, EngineResult
from allotment.engines.compiler import LpModel, compile_branch
from allotment.engines.expansion import count_branches, expand_requirements, simple_requirements
from allotment.engines.projection import project_solution, total_value
from allotment.engines.pulp_solver import PulpSolver, SolveResult, init_solver
from allotment.engines.scaling import descale, scale_factor_for, scale_problem
from allotment.errors import NO_FEASIBLE_SOLUTION, BranchLimitError, InfeasibleError
from allotment.model import AttributeGroup, BranchOutcome, Record, Requirement, Solution, Unit
from allotment.schemas import duplicate_ids, group_violations, unknown_attributes

logger = logging.getLogger(__name__)


def solve_all(
    models: Sequence[LpModel],
    records: Sequence[Record],
    solver: PulpSolver,
    max_workers: int = 1,
) -> Tuple[int, SolveResult, List[BranchOutcome]]:
    """
    Solve every branch model and keep the one with the largest allocated total.

    Branches that do not come back optimal are skipped. Ties keep the earliest
    branch in expansion order, also when branches run on a thread pool.

    Raises InfeasibleError when no branch is feasible.
    """
    if max_workers > 1 and len(models) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = list(pool.map(solver.solve, models))
    else:
        results = [solver.solve(m) for m in models]

    best_idx = -1
    best_score = float("-inf")
    outcomes: List[BranchOutcome] = []

    for idx, (model, res) in enumerate(zip(models, results)):
        ids = model.requirement_ids
        if not res.optimal:
            logger.info("solver.branch_skipped", extra={"branch": idx, "status": res.status})
            outcomes.append(BranchOutcome(index=idx, requirement_ids=ids, status=res.status))
            continue

        score = total_value(records, res.assignment)
        logger.debug("solver.branch_solved", extra={"branch": idx, "total": score})
        outcomes.append(BranchOutcome(index=idx, requirement_ids=ids, status=res.status, total_value=score))

        if score > best_score:
            best_score = score
            best_idx = idx

    if best_idx < 0:
        raise InfeasibleError(NO_FEASIBLE_SOLUTION)

    return best_idx, results[best_idx], outcomes


class BranchEngine(Engine):
    """
    OR-branch engine.

    Steps:
    1) scale every numeric input to integers (unit dependent)
    2) expand the requirement tree into AND-only branches
    3) compile each branch to a MILP and solve it
    4) keep the feasible branch with the largest allocated total
    5) project the winner back onto the whole requirement tree and descale

    The solver handle can be injected; otherwise one is created from the
    input's SolverSettings.
    """

    name = "branch"

    def __init__(self, solver: Optional[PulpSolver] = None):
        self.solver = solver

    def run(self, inp: EngineInput) -> EngineResult:
        settings = inp.settings
        solver = self.solver or init_solver(settings.solver_name, settings.time_limit_sec, settings.msg)

        factor = scale_factor_for(inp.unit)
        scaled = scale_problem(
            inp.records, inp.requirements, inp.target_value, factor, tol=settings.integer_tolerance
        )

        n_branches = count_branches(scaled.requirements)
        if n_branches > settings.max_branches:
            raise BranchLimitError(
                f"Requirement tree expands to {n_branches} combinations "
                f"(limit {settings.max_branches}). Reduce the number of OR groups."
            )

        warnings: List[str] = duplicate_ids(inp.records)
        warnings.extend(group_violations(inp.records, inp.attribute_groups))
        warnings.extend(
            unknown_attributes(simple_requirements(inp.requirements), inp.records, inp.attribute_groups)
        )

        branches = expand_requirements(scaled.requirements)
        logger.info(
            "solver.run_start",
            extra={"records": len(scaled.records), "branches": len(branches), "scale_factor": factor},
        )

        models = [
            compile_branch(
                scaled.records,
                branch,
                scaled.target_value,
                inp.attribute_groups,
                name=f"branch_{idx}",
            )
            for idx, branch in enumerate(branches)
        ]

        best_idx, best, outcomes = solve_all(models, scaled.records, solver, max_workers=settings.max_workers)
        outcomes = [replace(o, total_value=descale(o.total_value, factor)) for o in outcomes]

        skipped = sum(1 for o in outcomes if not o.feasible)
        if skipped:
            warnings.append(f"{skipped} of {len(outcomes)} requirement combinations were infeasible and skipped.")

        solution = project_solution(scaled.records, best.assignment, scaled.requirements, factor)

        meta = {
            "unit": inp.unit.value,
            "scale_factor": factor,
            "target_value": inp.target_value,
            "branches": len(branches),
            "feasible_branches": len(outcomes) - skipped,
            "best_branch": best_idx,
            "outcomes": outcomes,
            "solver": solver.solver_name,
        }
        logger.info(
            "solver.run_done",
            extra={"best_branch": best_idx, "total": solution.total_value, "skipped": skipped},
        )
        return EngineResult(solution=solution, meta=meta, warnings=warnings)


def solve_problem(
    records: List[Record],
    requirements: Requirement,
    target_value: float,
    unit: Unit,
    attribute_groups: Optional[List[AttributeGroup]] = None,
    solver: Optional[PulpSolver] = None,
    settings: Optional[SolverSettings] = None,
) -> Solution:
    """Allocate record weights for a requirement tree; raises on any failure."""
    inp = EngineInput(
        records=list(records),
        requirements=requirements,
        target_value=target_value,
        unit=Unit(unit),
        attribute_groups=list(attribute_groups or []),
        settings=settings or SolverSettings(),
    )
    return BranchEngine(solver=solver).run(inp).solution
