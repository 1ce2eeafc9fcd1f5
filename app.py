from __future__ import annotations

from dataclasses import replace

import streamlit as st

from allotment.engines.branch_engine import BranchEngine
from allotment.errors import AllotmentError
from allotment.io import list_excel_sheets, load_problem, load_records, preset_problem, with_records
from allotment.transforms.normalize import (
    branch_outcomes_frame,
    format_attribute_combination,
    requirements_frame,
    selected_records_frame,
)
from allotment.transforms.ranking import rank_branches
from allotment.ui import sidebar_controls


st.set_page_config(page_title="Allotment Solver", layout="wide")

st.title("Allotment Solver")
st.caption("Allocate record weights against an AND/OR requirement tree (one MILP per OR combination).")

ui = sidebar_controls()

try:
    if ui.source == "preset":
        inp = preset_problem(ui.scenario, settings=ui.settings())
    else:
        uploaded = st.file_uploader("Upload problem document (JSON)", type=["json"])
        if not uploaded:
            st.info("Upload a problem document to begin.")
            st.stop()
        inp = load_problem(uploaded, settings=ui.settings())

    records_file = st.file_uploader("Optional: replace records (CSV or Excel)", type=["csv", "xlsx", "xls"])
    if records_file:
        sheets = list_excel_sheets(records_file)
        inp = with_records(inp, load_records(records_file, sheet_name=sheets[0] if sheets else None))

    if ui.target_override is not None:
        inp = replace(inp, target_value=ui.target_override)
except AllotmentError as exc:
    st.error(str(exc))
    st.stop()

with st.expander("Preview input", expanded=False):
    st.write(f"Unit: **{inp.unit.value}** | Target: **{inp.target_value:g}**")
    st.dataframe(
        [{"Record": r.id, "Value": r.value, "Attributes": format_attribute_combination(r.attributes)} for r in inp.records],
        use_container_width=True,
    )
    st.json(inp.requirements.to_dict())

run = st.button("Solve", type="primary")

if not run:
    st.stop()

with st.spinner("Solving..."):
    try:
        res = BranchEngine().run(inp)
    except AllotmentError as exc:
        st.error(str(exc))
        st.stop()

for w in res.warnings:
    st.warning(w)

meta_cols = st.columns(3)
meta_cols[0].metric("Total value", f"{res.solution.total_value:g} / {inp.target_value:g}")
meta_cols[1].metric("Combinations", res.meta.get("branches", 0))
meta_cols[2].metric("Feasible", res.meta.get("feasible_branches", 0))

st.subheader("Selected Records")
selected = selected_records_frame(inp.records, res.solution)
st.dataframe(selected, use_container_width=True)

st.subheader("Requirements")
st.dataframe(requirements_frame(res.solution), use_container_width=True)

with st.expander("Requirement combinations", expanded=False):
    st.dataframe(rank_branches(branch_outcomes_frame(res.meta.get("outcomes", []))), use_container_width=True)

csv_bytes = selected.to_csv(index=False).encode("utf-8")
st.download_button(
    label="Download allocation as CSV",
    data=csv_bytes,
    file_name="allotment_results.csv",
    mime="text/csv",
)
