"""
Command-line solver.

Examples:
  python -m allotment.cli --input problem.json --output result.xlsx
  python -m allotment.cli --scenario "Test 1: Basic feasible"
  python -m allotment.cli --input problem.json --records records.csv --workers 4
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from allotment.config import DEFAULTS, PRESET_SCENARIOS, SolverSettings, setup_logging
from allotment.engines.branch_engine import BranchEngine
from allotment.errors import AllotmentError
from allotment.io import load_problem, load_records, preset_problem, result_to_dict, with_records, write_result

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Allocate record weights against a requirement tree (MILP per OR branch).")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--input", help="Problem document (JSON)")
    src.add_argument("--scenario", choices=list(PRESET_SCENARIOS), help="Built-in example scenario")
    src.add_argument("--list-scenarios", action="store_true", help="Print the built-in scenario names and exit")
    ap.add_argument("--records", help="Records table (CSV/XLSX) replacing the document's records")
    ap.add_argument("--sheet", default=None, help="Sheet name for an Excel records table")
    ap.add_argument("--output", default=None, help="Write result to .json, .csv or .xlsx (default: print JSON)")
    ap.add_argument("--solver", default=DEFAULTS.solver_name, help="PuLP solver name (default: PULP_CBC_CMD)")
    ap.add_argument("--time-limit", type=int, default=DEFAULTS.time_limit_sec, help="Per-branch time limit in seconds")
    ap.add_argument("--workers", type=int, default=DEFAULTS.max_workers, help="Solve branches on N threads")
    ap.add_argument("--max-branches", type=int, default=DEFAULTS.max_branches, help="Refuse trees with more OR branches")
    ap.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...)")
    ap.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(getattr(logging, str(args.log_level).upper(), logging.WARNING), json=args.log_json)

    if args.list_scenarios:
        for name in PRESET_SCENARIOS:
            print(name)
        return 0

    settings = SolverSettings(
        solver_name=args.solver,
        time_limit_sec=args.time_limit,
        max_workers=max(1, int(args.workers)),
        max_branches=int(args.max_branches),
    )

    try:
        inp = load_problem(args.input, settings=settings) if args.input else preset_problem(args.scenario, settings=settings)
        if args.records:
            inp = with_records(inp, load_records(args.records, sheet_name=args.sheet))

        res = BranchEngine().run(inp)
    except AllotmentError as exc:
        logger.error("cli.failed", extra={"reason": str(exc)})
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1

    for w in res.warnings:
        print(f"[WARN] {w}", file=sys.stderr)

    if args.output:
        path = write_result(args.output, inp, res)
        print(f"[OK] total={res.solution.total_value:g} → {path}")
    else:
        print(json.dumps(result_to_dict(res), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
