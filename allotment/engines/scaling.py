"""
Numeric scaling layer.

The MILP backend enforces integrality on whole numbers only, so every numeric
input is multiplied by a unit-dependent factor (hours are entered in 0.1 steps,
occurrences are whole) and checked to be integral before compiling. Results
come back in scaled integers and are divided by the same factor.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List

from allotment.config import DEFAULTS, SCALE_FACTORS
from allotment.errors import ScalingError
from allotment.model import (
    ComplexRequirement,
    MaximumUsage,
    MinimumAchievement,
    Record,
    Requirement,
    SelectedRecord,
    SimpleRequirement,
    Solution,
    Unit,
)


@dataclass(frozen=True)
class ScaledProblem:
    records: List[Record]
    requirements: Requirement
    target_value: int
    scale_factor: int


def scale_factor_for(unit: Unit) -> int:
    return SCALE_FACTORS[Unit(unit)]


def _scaled(value: float, factor: int, context: str, tol: float) -> int:
    raw = float(value) * factor
    out = round(raw)
    # Absolute distance to the nearest whole number, whatever the magnitude.
    if abs(raw - out) > tol:
        raise ScalingError(
            f"{context} value {value} is not an integer after scaling by {factor} ({raw}). "
            f"Use a finer unit or round the input."
        )
    return int(out)


def scale_requirement(req: Requirement, factor: int, tol: float, path: str = "requirements") -> Requirement:
    if isinstance(req, SimpleRequirement):
        return replace(req, value=_scaled(req.value, factor, f"Requirement {path}", tol))
    if isinstance(req, ComplexRequirement):
        return replace(
            req,
            children=tuple(
                scale_requirement(c, factor, tol, f"{path}.children[{i}]")
                for i, c in enumerate(req.children)
            ),
        )
    raise TypeError(f"Not a requirement: {req!r}")


def scale_problem(
    records: List[Record],
    requirements: Requirement,
    target_value: float,
    factor: int,
    tol: float = DEFAULTS.integer_tolerance,
) -> ScaledProblem:
    """Return scaled copies of every numeric leaf; inputs are not modified."""
    scaled_records = [
        replace(r, value=_scaled(r.value, factor, f"Record {idx} ({r.id})", tol))
        for idx, r in enumerate(records)
    ]
    return ScaledProblem(
        records=scaled_records,
        requirements=scale_requirement(requirements, factor, tol),
        target_value=_scaled(target_value, factor, "Target", tol),
        scale_factor=factor,
    )


def descale(value: float, factor: int) -> float:
    return float(value) / factor


def descale_solution(solution: Solution, factor: int) -> Solution:
    return Solution(
        total_value=descale(solution.total_value, factor),
        selected_records=[
            SelectedRecord(record_id=sr.record_id, weight=descale(sr.weight, factor))
            for sr in solution.selected_records
        ],
        minimum_requirements=[
            MinimumAchievement(
                attributes=m.attributes,
                target=descale(m.target, factor),
                achieved=descale(m.achieved, factor),
            )
            for m in solution.minimum_requirements
        ],
        maximum_requirements=[
            MaximumUsage(
                attributes=m.attributes,
                target=descale(m.target, factor),
                used=descale(m.used, factor),
            )
            for m in solution.maximum_requirements
        ],
    )
