from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from allotment.config import (
    DEFAULT_ATTRIBUTE_GROUPS,
    DEFAULTS,
    PRESET_REQUIREMENTS,
    PRESET_SCENARIOS,
    SolverSettings,
)
from allotment.engines.base import EngineInput, EngineResult
from allotment.errors import InputError
from allotment.model import AttributeGroup, Record
from allotment.schemas import parse_problem, parse_requirement, validate_records_df
from allotment.transforms.normalize import branch_outcomes_frame, requirements_frame, selected_records_frame


@dataclass(frozen=True)
class LoadedInput:
    df: pd.DataFrame
    filename: str
    sheet_name: Optional[str]


def _rewind(uploaded_file) -> None:
    """Streamlit UploadedFile behaves like a file-like stream; rewind before re-reading."""
    if hasattr(uploaded_file, "seek"):
        uploaded_file.seek(0)


def load_uploaded(uploaded_file, sheet_name: Optional[str] = None) -> LoadedInput:
    """Load a records table (CSV or Excel) from a path or an uploaded file."""
    name = getattr(uploaded_file, "name", str(uploaded_file))
    lower = name.lower()

    _rewind(uploaded_file)

    if lower.endswith(".csv"):
        df = pd.read_csv(uploaded_file)
        return LoadedInput(df=df, filename=name, sheet_name=None)

    # Excel
    xls = pd.ExcelFile(uploaded_file)
    sheet = sheet_name or (xls.sheet_names[0] if xls.sheet_names else None)
    if sheet is None:
        raise InputError("No sheets found in the uploaded Excel file.")

    _rewind(uploaded_file)
    df = pd.read_excel(uploaded_file, sheet_name=sheet)
    return LoadedInput(df=df, filename=name, sheet_name=sheet)


def list_excel_sheets(uploaded_file) -> Tuple[str, ...]:
    name = getattr(uploaded_file, "name", str(uploaded_file))
    if not name.lower().endswith((".xlsx", ".xls")):
        return tuple()

    _rewind(uploaded_file)
    xls = pd.ExcelFile(uploaded_file)
    return tuple(xls.sheet_names)


def load_records(uploaded_file, sheet_name: Optional[str] = None) -> List[Record]:
    return validate_records_df(load_uploaded(uploaded_file, sheet_name=sheet_name).df)


def load_problem(source, settings: Optional[SolverSettings] = None) -> EngineInput:
    """Load a JSON problem document from a path, a file object or raw text."""
    if hasattr(source, "read"):
        _rewind(source)
        raw = source.read()
    else:
        raw = Path(source).read_text(encoding="utf-8")
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")

    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InputError(f"Problem document is not valid JSON: {exc}") from exc
    return parse_problem(doc, settings=settings)


def default_attribute_groups() -> List[AttributeGroup]:
    return [AttributeGroup(id=gid, name=name, attributes=attrs) for gid, name, attrs in DEFAULT_ATTRIBUTE_GROUPS]


def preset_records(name: str) -> List[Record]:
    if name not in PRESET_SCENARIOS:
        raise InputError(f"Unknown scenario {name!r}. Choose one of: {list(PRESET_SCENARIOS)}")
    return [Record(id=rid, value=float(v), attributes=attrs) for rid, v, attrs in PRESET_SCENARIOS[name]]


def preset_problem(name: str, settings: Optional[SolverSettings] = None) -> EngineInput:
    return EngineInput(
        records=preset_records(name),
        requirements=parse_requirement(PRESET_REQUIREMENTS),
        target_value=DEFAULTS.target_value,
        unit=DEFAULTS.unit,
        attribute_groups=default_attribute_groups(),
        settings=settings or SolverSettings(),
    )


def with_records(inp: EngineInput, records: List[Record]) -> EngineInput:
    return replace(inp, records=records)


# -----------------------------
# Output
# -----------------------------
def result_to_dict(res: EngineResult) -> Dict[str, Any]:
    return {
        "solution": res.solution.to_dict() if res.solution else None,
        "warnings": list(res.warnings),
        "meta": {k: v for k, v in res.meta.items() if k != "outcomes"},
    }


def write_result(path, inp: EngineInput, res: EngineResult) -> Path:
    """Write a solved result as .json, .csv (selected records) or .xlsx (all tables)."""
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        path.write_text(json.dumps(result_to_dict(res), indent=2), encoding="utf-8")
    elif suffix == ".csv":
        selected_records_frame(inp.records, res.solution).to_csv(path, index=False)
    elif suffix == ".xlsx":
        with pd.ExcelWriter(path, engine="openpyxl") as w:
            selected_records_frame(inp.records, res.solution).to_excel(w, sheet_name="Selected_Records", index=False)
            requirements_frame(res.solution).to_excel(w, sheet_name="Requirements", index=False)
            branch_outcomes_frame(res.meta.get("outcomes", [])).to_excel(w, sheet_name="Branches", index=False)
    else:
        raise InputError(f"Unsupported output format {suffix!r}; use .json, .csv or .xlsx")
    return path
