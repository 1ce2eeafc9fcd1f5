from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import streamlit as st

from allotment.config import DEFAULTS, PRESET_SCENARIOS, SolverSettings


# -----------------------------
# Sidebar state model
# -----------------------------
@dataclass(frozen=True)
class UiState:
    """
    Immutable view-model representing all sidebar inputs.

    Fields
    ------
    source:
        "preset" to use a built-in scenario, "upload" to use an uploaded problem document.

    scenario:
        Preset scenario name (only for source == "preset").

    target_override:
        Replaces the problem's target value when set. None keeps the document's value.

    solver_name / time_limit_sec / max_workers / max_branches:
        Passed through to SolverSettings.
    """
    source: str
    scenario: Optional[str]
    target_override: Optional[float]

    solver_name: str
    time_limit_sec: Optional[int]
    max_workers: int
    max_branches: int

    def settings(self) -> SolverSettings:
        return SolverSettings(
            solver_name=self.solver_name,
            time_limit_sec=self.time_limit_sec,
            max_workers=self.max_workers,
            max_branches=self.max_branches,
        )


def sidebar_controls() -> UiState:
    """Render Streamlit sidebar controls and return an immutable UiState."""
    st.sidebar.header("Inputs")

    source_label = st.sidebar.radio(
        "Problem source",
        ["Preset scenario", "Upload problem (JSON)"],
        index=0,
        help="Presets use Location/Shift groups, target 10 and AND(min 5 Night, max 5 Day).",
    )

    scenario: Optional[str] = None
    if source_label.startswith("Preset"):
        scenario = st.sidebar.selectbox("Scenario", list(PRESET_SCENARIOS), index=0)

    override = st.sidebar.checkbox("Override target value", value=False)
    target_override: Optional[float] = None
    if override:
        target_override = float(
            st.sidebar.number_input(
                "Target value",
                min_value=0.0,
                max_value=1_000_000.0,
                value=float(DEFAULTS.target_value),
                step=0.1,
                format="%.1f",
            )
        )

    # -----------------------------
    # Solver controls
    # -----------------------------
    st.sidebar.subheader("Solver settings")

    use_limit = st.sidebar.checkbox("Per-branch time limit", value=False)
    time_limit_sec: Optional[int] = None
    if use_limit:
        time_limit_sec = int(
            st.sidebar.number_input("CBC time limit (sec) per branch", min_value=1, max_value=600, value=30, step=1)
        )

    max_workers = st.sidebar.number_input(
        "Parallel branch solves",
        min_value=1,
        max_value=16,
        value=DEFAULTS.max_workers,
        step=1,
    )
    max_branches = st.sidebar.number_input(
        "Max OR combinations",
        min_value=1,
        max_value=100_000,
        value=DEFAULTS.max_branches,
        step=64,
    )

    return UiState(
        source="preset" if source_label.startswith("Preset") else "upload",
        scenario=scenario,
        target_override=target_override,
        solver_name=DEFAULTS.solver_name,
        time_limit_sec=time_limit_sec,
        max_workers=int(max_workers),
        max_branches=int(max_branches),
    )
