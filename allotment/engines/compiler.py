"""
Branch compiler: one flat (AND-only) list of simple requirements -> one MILP.

Model layout (all values already scaled to integers):

- one integer variable per record, r0..rN-1, bounded [0, record.value]
- "value": sum of all weights <= target
- "attribute:<combo>": weights of records carrying every attribute of combo.
  Every non-empty subset of a record's attributes gets a row, so compound
  requirements such as Day+Local are bound by records that sit in several
  groups at once. The empty combo is the grand total.
    * maximum requirement -> max = value (tightest wins)
    * minimum requirement -> min = value (largest wins)
- "not_attribute:<combo>": weights of records NOT matching a minimum's combo,
  max = target - minimum (tightest wins). Leaves room for the minimum inside
  the global cap.
- "not_attribute:<combo>/sibling:<attr>": the same cap restricted to records
  carrying a group sibling of one of the combo's attributes.

Objective: maximize sum(weight_i * score_i) where score_i is 1 plus the number
of minimum requirements record i satisfies. This favours records that help
minimums but does not rank minimum satisfaction above raw volume.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from allotment.model import AttributeGroup, ConstraintKind, Record, SimpleRequirement

logger = logging.getLogger(__name__)

Combo = Tuple[str, ...]


@dataclass
class LpConstraint:
    name: str
    coefficients: Dict[str, float] = field(default_factory=dict)
    min: Optional[float] = None
    max: Optional[float] = None

    def tighten_max(self, bound: float) -> None:
        self.max = bound if self.max is None else min(self.max, bound)

    def tighten_min(self, bound: float) -> None:
        self.min = bound if self.min is None else max(self.min, bound)

    @property
    def bounded(self) -> bool:
        return self.min is not None or self.max is not None

    def trivially_infeasible(self) -> bool:
        """A row with no variables sums to 0; check that 0 fits its bounds."""
        if self.coefficients:
            return False
        return (self.min is not None and self.min > 0) or (self.max is not None and self.max < 0)


@dataclass(frozen=True)
class DecisionVariable:
    name: str
    record_id: str
    low: float
    high: float
    score: float


@dataclass
class LpModel:
    name: str
    variables: List[DecisionVariable]
    constraints: Dict[str, LpConstraint]
    integers: List[str]
    requirement_ids: Tuple[str, ...] = ()
    direction: str = "maximize"

    @property
    def objective(self) -> Dict[str, float]:
        return {v.name: v.score for v in self.variables}

    def trivially_infeasible(self) -> bool:
        return any(c.trivially_infeasible() for c in self.constraints.values())


def combo_key(attributes: Iterable[str]) -> Combo:
    return tuple(sorted(set(attributes)))


def combo_label(combo: Combo) -> str:
    return "+".join(combo)


def attribute_subsets(attributes: Sequence[str]) -> List[Combo]:
    """Every non-empty subset of ``attributes`` as a sorted tuple (bitmask order)."""
    attrs = list(dict.fromkeys(attributes))
    n = len(attrs)
    out = []
    for mask in range(1, 1 << n):
        out.append(combo_key(attrs[j] for j in range(n) if mask & (1 << j)))
    return out


def record_score(record: Record, minimums: Sequence[SimpleRequirement]) -> int:
    return 1 + sum(1 for req in minimums if record.matches(req.attributes))


def _siblings(attribute: str, groups: Sequence[AttributeGroup]) -> List[str]:
    out: List[str] = []
    for g in groups:
        if attribute in g.attributes:
            out.extend(a for a in g.attributes if a != attribute and a not in out)
    return out


def compile_branch(
    records: Sequence[Record],
    requirements: Sequence[SimpleRequirement],
    target_value: float,
    attribute_groups: Sequence[AttributeGroup] = (),
    name: str = "branch",
) -> LpModel:
    var_names = [f"r{i}" for i in range(len(records))]

    # -----------------------------
    # Attribute-combination rows (power set per record)
    # -----------------------------
    rows: Dict[Combo, Dict[str, float]] = {(): {v: 1.0 for v in var_names}}
    for v, rec in zip(var_names, records):
        for combo in attribute_subsets(rec.attributes):
            rows.setdefault(combo, {})[v] = 1.0

    constraints: Dict[str, LpConstraint] = {
        "value": LpConstraint("value", {v: 1.0 for v in var_names}, max=target_value),
    }

    def attribute_row(combo: Combo) -> LpConstraint:
        cname = f"attribute:{combo_label(combo)}"
        if cname not in constraints:
            constraints[cname] = LpConstraint(cname, dict(rows.get(combo, {})))
        return constraints[cname]

    minimums = [r for r in requirements if r.constraint == ConstraintKind.MINIMUM]

    for req in requirements:
        combo = combo_key(req.attributes)
        if req.constraint == ConstraintKind.MAXIMUM:
            attribute_row(combo).tighten_max(req.value)
            continue

        attribute_row(combo).tighten_min(req.value)
        if not combo:
            continue

        headroom = target_value - req.value
        outside = {
            v: 1.0 for v, rec in zip(var_names, records) if not rec.matches(combo)
        }
        cname = f"not_attribute:{combo_label(combo)}"
        constraints.setdefault(cname, LpConstraint(cname, outside)).tighten_max(headroom)

        for attr in combo:
            for sib in _siblings(attr, attribute_groups):
                if sib in combo:
                    continue
                sname = f"{cname}/sibling:{sib}"
                coeffs = {
                    v: 1.0
                    for v, rec in zip(var_names, records)
                    if sib in rec.attributes and not rec.matches(combo)
                }
                constraints.setdefault(sname, LpConstraint(sname, coeffs)).tighten_max(headroom)

    variables = [
        DecisionVariable(
            name=v,
            record_id=rec.id,
            low=0.0,
            high=float(rec.value),
            score=float(record_score(rec, minimums)),
        )
        for v, rec in zip(var_names, records)
    ]

    model = LpModel(
        name=name,
        variables=variables,
        constraints={k: c for k, c in constraints.items() if c.bounded},
        integers=list(var_names),
        requirement_ids=tuple(r.id for r in requirements),
    )
    logger.debug(
        "compiler.branch_compiled",
        extra={"branch": name, "variables": len(variables), "constraints": len(model.constraints)},
    )
    return model
