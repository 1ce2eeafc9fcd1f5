from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from allotment.config import DEFAULTS, SolverSettings
from allotment.engines.base import EngineInput
from allotment.errors import InputError, UnknownOperatorError
from allotment.model import (
    AttributeGroup,
    ComplexRequirement,
    ConstraintKind,
    Operator,
    Record,
    Requirement,
    SimpleRequirement,
    Unit,
)


def _normalize_cols(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(c).strip() for c in df.columns]
    return df


def require_columns(df: pd.DataFrame, required: Iterable[str], context: str) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise InputError(
            f"Missing required columns for {context}: {missing}. "
            f"Found columns: {list(df.columns)}"
        )


RECORD_REQUIRED = ["id", "value", "attributes"]


def split_attributes(raw: Any) -> tuple[str, ...]:
    """Accept a list/tuple of attributes or a comma-separated string."""
    if raw is None or (isinstance(raw, float) and math.isnan(raw)):
        return tuple()
    if isinstance(raw, str):
        parts = raw.split(",")
    else:
        parts = list(raw)
    out: List[str] = []
    for p in parts:
        s = str(p).strip()
        if s and s not in out:
            out.append(s)
    return tuple(out)


def _number(raw: Any, context: str) -> float:
    try:
        v = float(raw)
    except (TypeError, ValueError):
        raise InputError(f"{context}: expected a number, got {raw!r}") from None
    if math.isnan(v) or math.isinf(v):
        raise InputError(f"{context}: expected a finite number, got {raw!r}")
    if v < 0:
        raise InputError(f"{context}: value must be non-negative, got {v}")
    return v


def validate_records_df(df: pd.DataFrame) -> List[Record]:
    """Turn a records table (id, value, attributes) into Record objects."""
    df = _normalize_cols(df)
    require_columns(df, RECORD_REQUIRED, "Records table")
    out = df.copy()
    out["id"] = out["id"].astype(str).str.strip()
    out["value"] = pd.to_numeric(out["value"], errors="coerce")

    bad = out[out["value"].isna()]
    if not bad.empty:
        raise InputError(f"Records table: non-numeric value for ids {bad['id'].tolist()}")

    return [
        Record(
            id=rid,
            value=_number(val, f"Record {rid!r}"),
            attributes=split_attributes(attrs),
        )
        for rid, val, attrs in zip(out["id"], out["value"], out["attributes"])
    ]


def parse_record(raw: Mapping[str, Any], idx: int = 0) -> Record:
    if "value" not in raw:
        raise InputError(f"Record {idx} is missing 'value'")
    rid = str(raw.get("id", f"record-{idx}"))
    return Record(
        id=rid,
        value=_number(raw["value"], f"Record {rid!r}"),
        attributes=split_attributes(raw.get("attributes")),
    )


def parse_records(raw: Sequence[Mapping[str, Any]]) -> List[Record]:
    return [parse_record(r, i) for i, r in enumerate(raw or [])]


def parse_attribute_groups(raw: Optional[Sequence[Mapping[str, Any]]]) -> List[AttributeGroup]:
    groups = []
    for i, g in enumerate(raw or []):
        gid = str(g.get("id", f"group-{i}"))
        groups.append(
            AttributeGroup(
                id=gid,
                name=str(g.get("name", gid)),
                attributes=split_attributes(g.get("attributes")),
            )
        )
    return groups


def parse_requirement(raw: Mapping[str, Any], path: str = "requirements") -> Requirement:
    """Parse the JSON form of a requirement tree."""
    if not isinstance(raw, Mapping):
        raise InputError(f"{path}: expected an object, got {type(raw).__name__}")

    kind = str(raw.get("type", "")).lower()
    rid = str(raw.get("id", path))

    if kind == "simple":
        try:
            constraint = ConstraintKind(str(raw.get("constraint", "")).lower())
        except ValueError:
            raise InputError(
                f"{path}: constraint must be 'minimum' or 'maximum', got {raw.get('constraint')!r}"
            ) from None
        return SimpleRequirement(
            id=rid,
            constraint=constraint,
            value=_number(raw.get("value"), path),
            attributes=split_attributes(raw.get("attributes")),
        )

    if kind == "complex":
        try:
            operator = Operator(str(raw.get("operator", "")).upper())
        except ValueError:
            raise UnknownOperatorError(
                f"Unknown requirement operator: {raw.get('operator')!r} at {path}"
            ) from None
        children = raw.get("children") or []
        return ComplexRequirement(
            id=rid,
            operator=operator,
            children=tuple(
                parse_requirement(c, f"{path}.children[{i}]") for i, c in enumerate(children)
            ),
        )

    raise InputError(f"{path}: requirement type must be 'simple' or 'complex', got {raw.get('type')!r}")


def parse_unit(raw: Any) -> Unit:
    try:
        return Unit(str(raw).lower())
    except ValueError:
        raise InputError(f"Unit must be 'hours' or 'occurrences', got {raw!r}") from None


# -----------------------------
# Soft checks (reported, never fatal)
# -----------------------------
def group_violations(records: Sequence[Record], groups: Sequence[AttributeGroup]) -> List[str]:
    """Records carrying more than one attribute of the same group."""
    warnings = []
    for g in groups:
        members = set(g.attributes)
        for r in records:
            hits = [a for a in r.attributes if a in members]
            if len(hits) > 1:
                warnings.append(
                    f"Record {r.id!r} has several attributes of group {g.name!r}: {', '.join(hits)}"
                )
    return warnings


def duplicate_ids(records: Sequence[Record]) -> List[str]:
    """Record ids used more than once; id lookups on a Solution only see the first."""
    seen: Dict[str, int] = {}
    for r in records:
        seen[r.id] = seen.get(r.id, 0) + 1
    return [f"Record id {rid!r} is used by {n} records" for rid, n in seen.items() if n > 1]


def unknown_attributes(
    simple_requirements: Sequence[SimpleRequirement],
    records: Sequence[Record],
    groups: Sequence[AttributeGroup],
) -> List[str]:
    """Requirement attributes that no record and no group knows about."""
    known = {a for r in records for a in r.attributes}
    known.update(a for g in groups for a in g.attributes)
    warnings = []
    for req in simple_requirements:
        missing = [a for a in req.attributes if a not in known]
        if missing:
            warnings.append(f"Requirement {req.id!r} uses unknown attributes: {', '.join(missing)}")
    return warnings


def problem_to_dict(
    records: Sequence[Record],
    requirements: Requirement,
    target_value: float,
    unit: Unit,
    groups: Sequence[AttributeGroup],
) -> Dict[str, Any]:
    return {
        "globalUnit": unit.value,
        "targetValue": target_value,
        "attributeGroups": [g.to_dict() for g in groups],
        "records": [r.to_dict() for r in records],
        "requirements": requirements.to_dict(),
    }


def parse_problem(doc: Mapping[str, Any], settings: Optional[SolverSettings] = None) -> EngineInput:
    """Parse a problem document (the saved form state of the editor)."""
    if not isinstance(doc, Mapping):
        raise InputError("Problem document must be a JSON object")
    if "requirements" not in doc:
        raise InputError("Problem document is missing 'requirements'")
    return EngineInput(
        records=parse_records(doc.get("records") or []),
        requirements=parse_requirement(doc["requirements"]),
        target_value=_number(doc.get("targetValue", DEFAULTS.target_value), "targetValue"),
        unit=parse_unit(doc.get("globalUnit", DEFAULTS.unit.value)),
        attribute_groups=parse_attribute_groups(doc.get("attributeGroups")),
        settings=settings or SolverSettings(),
    )
