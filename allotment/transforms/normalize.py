from __future__ import annotations

from typing import Iterable, Optional, Sequence

import pandas as pd

from allotment.model import BranchOutcome, Record, Solution

# Allowed slack when judging a requirement as met (results are multiples of 0.1 at worst).
MET_TOLERANCE = 1e-6

SELECTED_COLUMNS = ["Record", "Attributes", "Value", "Weight", "Share_%"]
REQUIREMENT_COLUMNS = ["Constraint", "Attributes", "Target", "Amount", "Progress_%", "Met"]
BRANCH_COLUMNS = ["Branch", "Requirements", "Status", "Total_Value"]


def format_attribute_combination(attributes: Iterable[str]) -> str:
    attrs = sorted(attributes)
    return " + ".join(attrs) if attrs else "No attributes"


def selected_records_frame(records: Sequence[Record], solution: Optional[Solution]) -> pd.DataFrame:
    """One row per input record with its allocated weight."""
    if solution is None or not records:
        return pd.DataFrame(columns=SELECTED_COLUMNS)

    # Solutions list weights in record order; fall back to ids for foreign record lists.
    ids = [sr.record_id for sr in solution.selected_records]
    if ids == [r.id for r in records]:
        weights = [float(sr.weight) for sr in solution.selected_records]
    else:
        by_id = {sr.record_id: sr.weight for sr in solution.selected_records}
        weights = [float(by_id.get(r.id, 0.0)) for r in records]

    out = pd.DataFrame(
        {
            "Record": [r.id for r in records],
            "Attributes": [format_attribute_combination(r.attributes) for r in records],
            "Value": [float(r.value) for r in records],
            "Weight": weights,
        }
    )
    out["Share_%"] = (out["Weight"] / out["Value"].where(out["Value"] > 0)) * 100.0
    out["Share_%"] = out["Share_%"].fillna(0.0)
    return out[SELECTED_COLUMNS]


def requirements_frame(solution: Optional[Solution]) -> pd.DataFrame:
    """Minimum achievements and maximum usages in one table."""
    if solution is None:
        return pd.DataFrame(columns=REQUIREMENT_COLUMNS)

    rows = []
    for m in solution.minimum_requirements:
        rows.append(
            {
                "Constraint": "minimum",
                "Attributes": format_attribute_combination(m.attributes),
                "Target": m.target,
                "Amount": m.achieved,
                "Met": m.achieved >= m.target - MET_TOLERANCE,
            }
        )
    for m in solution.maximum_requirements:
        rows.append(
            {
                "Constraint": "maximum",
                "Attributes": format_attribute_combination(m.attributes),
                "Target": m.target,
                "Amount": m.used,
                "Met": m.used <= m.target + MET_TOLERANCE,
            }
        )

    if not rows:
        return pd.DataFrame(columns=REQUIREMENT_COLUMNS)

    out = pd.DataFrame(rows)
    out["Progress_%"] = (out["Amount"] / out["Target"].where(out["Target"] > 0)) * 100.0
    out["Progress_%"] = out["Progress_%"].fillna(100.0)
    return out[REQUIREMENT_COLUMNS]


def branch_outcomes_frame(outcomes: Sequence[BranchOutcome]) -> pd.DataFrame:
    if not outcomes:
        return pd.DataFrame(columns=BRANCH_COLUMNS)
    return pd.DataFrame(
        [
            {
                "Branch": o.index,
                "Requirements": ", ".join(o.requirement_ids),
                "Status": o.status,
                "Total_Value": o.total_value if o.feasible else pd.NA,
            }
            for o in outcomes
        ],
        columns=BRANCH_COLUMNS,
    )
