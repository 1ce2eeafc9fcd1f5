from __future__ import annotations

import pandas as pd


def rank_branches(df: pd.DataFrame) -> pd.DataFrame:
    """Feasible branches first, by total value desc; ties keep expansion order."""
    if df is None or df.empty:
        return df

    out = df.copy()
    out["_feasible"] = out["Status"] == "Optimal"
    out["_total"] = pd.to_numeric(out["Total_Value"], errors="coerce").fillna(float("-inf"))
    # Stable sorts: expansion order, then total desc, then feasible first
    out = out.sort_values("Branch", kind="mergesort")
    out = out.sort_values(["_feasible", "_total"], ascending=[False, False], kind="mergesort")

    out = out.drop(columns=["_feasible", "_total"]).reset_index(drop=True)
    out.insert(0, "Rank", range(1, len(out) + 1))
    return out
