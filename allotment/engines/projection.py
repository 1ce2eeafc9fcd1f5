from __future__ import annotations

from typing import Dict, List, Mapping, Sequence

from allotment.engines.expansion import simple_requirements
from allotment.engines.scaling import descale_solution
from allotment.model import (
    ConstraintKind,
    MaximumUsage,
    MinimumAchievement,
    Record,
    Requirement,
    SelectedRecord,
    Solution,
)


def record_weights(records: Sequence[Record], assignment: Mapping[str, float]) -> List[float]:
    """
    Read r0..rN-1 from a solver assignment (scaled units).

    Variables are integral, so solver noise such as 4.9999999 is snapped to the
    nearest whole number and clamped to the record's capacity.
    """
    out = []
    for idx, rec in enumerate(records):
        w = float(assignment.get(f"r{idx}", 0.0) or 0.0)
        w = float(round(w))
        out.append(min(max(w, 0.0), float(rec.value)))
    return out


def matched_total(records: Sequence[Record], weights: Sequence[float], attributes) -> float:
    return float(sum(w for rec, w in zip(records, weights) if rec.matches(attributes)))


def project_solution(
    records: Sequence[Record],
    assignment: Mapping[str, float],
    requirement_tree: Requirement,
    scale_factor: int,
) -> Solution:
    """
    Map a raw assignment onto the original requirement tree and descale it.

    Every simple requirement of the tree is reported, including OR alternatives
    that the winning branch did not use.
    """
    weights = record_weights(records, assignment)

    minimums: List[MinimumAchievement] = []
    maximums: List[MaximumUsage] = []
    for req in simple_requirements(requirement_tree):
        amount = matched_total(records, weights, req.attributes)
        if req.constraint == ConstraintKind.MINIMUM:
            minimums.append(MinimumAchievement(attributes=tuple(req.attributes), target=req.value, achieved=amount))
        else:
            maximums.append(MaximumUsage(attributes=tuple(req.attributes), target=req.value, used=amount))

    scaled = Solution(
        total_value=float(sum(weights)),
        selected_records=[SelectedRecord(record_id=rec.id, weight=w) for rec, w in zip(records, weights)],
        minimum_requirements=minimums,
        maximum_requirements=maximums,
    )
    return descale_solution(scaled, scale_factor)


def total_value(records: Sequence[Record], assignment: Dict[str, float]) -> float:
    """Sum of allocated weight (scaled); the branch selection score."""
    return float(sum(record_weights(records, assignment)))
