from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from pulp import (
    LpInteger, LpMaximize, LpProblem, LpSolutionIntegerFeasible, LpStatus, LpVariable,
    PulpSolverError, getSolver, listSolvers, lpSum, value
)

from allotment.config import DEFAULTS
from allotment.engines.compiler import LpModel
from allotment.errors import SolverUnavailableError

logger = logging.getLogger(__name__)

OPTIMAL = "Optimal"
INFEASIBLE = "Infeasible"
TIME_LIMIT = "Time Limit"


@dataclass(frozen=True)
class SolveResult:
    status: str
    assignment: Dict[str, float] = field(default_factory=dict)
    objective: Optional[float] = None

    @property
    def optimal(self) -> bool:
        return self.status == OPTIMAL


def solve_status(problem: LpProblem, time_limited: bool = False) -> str:
    """
    Status string for a solved problem.

    CBC reports "Optimal" for an incumbent found before the time limit ran out;
    that case becomes TIME_LIMIT so the branch is not selected.
    """
    status = LpStatus.get(problem.status, "Undefined")
    if status == OPTIMAL and time_limited and problem.sol_status == LpSolutionIntegerFeasible:
        return TIME_LIMIT
    return status


class PulpSolver:
    """
    Ready-to-use handle around one PuLP backend.

    Create it with init_solver(); it checks availability once and is then
    safe to share between branch solves (each solve builds its own LpProblem).
    """

    def __init__(self, solver_name: str, time_limit_sec: Optional[int] = None, msg: bool = False):
        self.solver_name = solver_name
        self.time_limit_sec = time_limit_sec
        self.msg = msg

    def _backend(self):
        kwargs = {"msg": self.msg}
        if self.time_limit_sec:
            kwargs["timeLimit"] = int(self.time_limit_sec)
        return getSolver(self.solver_name, **kwargs)

    def to_pulp(self, model: LpModel) -> tuple[LpProblem, Dict[str, LpVariable]]:
        problem = LpProblem(model.name, LpMaximize)
        integers = set(model.integers)
        x = {
            v.name: LpVariable(
                v.name,
                lowBound=v.low,
                upBound=v.high,
                cat=LpInteger if v.name in integers else "Continuous",
            )
            for v in model.variables
        }
        problem += lpSum(v.score * x[v.name] for v in model.variables)

        # Descriptive names can hold any attribute text; PuLP gets positional ones.
        for idx, c in enumerate(model.constraints.values()):
            if not c.coefficients:
                continue
            expr = lpSum(coef * x[name] for name, coef in c.coefficients.items())
            if c.min is not None:
                problem += expr >= c.min, f"c{idx}_min"
            if c.max is not None:
                problem += expr <= c.max, f"c{idx}_max"
        return problem, x

    def solve(self, model: LpModel) -> SolveResult:
        if model.trivially_infeasible():
            logger.debug("solver.trivially_infeasible", extra={"branch": model.name})
            return SolveResult(status=INFEASIBLE)
        if not model.variables:
            return SolveResult(status=OPTIMAL, objective=0.0)

        problem, x = self.to_pulp(model)
        problem.solve(self._backend())
        status = solve_status(problem, time_limited=bool(self.time_limit_sec))

        if status != OPTIMAL:
            return SolveResult(status=status)

        assignment = {name: float(value(var) or 0.0) for name, var in x.items()}
        return SolveResult(
            status=status,
            assignment=assignment,
            objective=float(value(problem.objective) or 0.0),
        )


def init_solver(
    solver_name: str = DEFAULTS.solver_name,
    time_limit_sec: Optional[int] = DEFAULTS.time_limit_sec,
    msg: bool = False,
) -> PulpSolver:
    """Return a solver handle, or raise SolverUnavailableError if the backend is missing."""
    try:
        backend = getSolver(solver_name, msg=False)
    except PulpSolverError as exc:
        raise SolverUnavailableError(
            f"Unknown LP solver {solver_name!r}. Available: {listSolvers(onlyAvailable=True)}"
        ) from exc

    if not backend.available():
        raise SolverUnavailableError(
            f"LP solver {solver_name!r} is not available. Available: {listSolvers(onlyAvailable=True)}"
        )

    logger.debug("solver.ready", extra={"solver": solver_name})
    return PulpSolver(solver_name, time_limit_sec=time_limit_sec, msg=msg)
