from __future__ import annotations

import json
import logging

import pytest

from allotment.cli import main
from allotment.config import PRESET_SCENARIOS, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    root_logger = logging.getLogger("allotment")
    root_logger.handlers = []
    root_logger.setLevel(logging.NOTSET)
    root_logger.propagate = True


def test_scenario_prints_json(capsys):
    assert main(["--scenario", "Test 1: Basic feasible"]) == 0
    doc = json.loads(capsys.readouterr().out)
    assert doc["solution"]["totalValue"] == 10.0
    assert doc["meta"]["best_branch"] == 0


def test_infeasible_scenario_exits_with_error(capsys):
    assert main(["--scenario", "Test 8: Infeasible (too little)"]) == 1
    err = capsys.readouterr().err
    assert err.startswith("[ERROR] No feasible solution")


def test_list_scenarios(capsys):
    assert main(["--list-scenarios"]) == 0
    assert capsys.readouterr().out.splitlines() == list(PRESET_SCENARIOS)


def test_input_document_with_records_and_output(tmp_path, capsys):
    problem = tmp_path / "problem.json"
    problem.write_text(
        json.dumps(
            {
                "globalUnit": "hours",
                "targetValue": 10,
                "records": [],
                "requirements": {
                    "type": "complex",
                    "operator": "AND",
                    "children": [{"type": "simple", "constraint": "maximum", "value": 5, "attributes": ["Day"]}],
                },
            }
        ),
        encoding="utf-8",
    )
    records = tmp_path / "records.csv"
    records.write_text("id,value,attributes\nday,3,Day\nnight,4,Night\n", encoding="utf-8")
    out = tmp_path / "result.json"

    code = main(["--input", str(problem), "--records", str(records), "--output", str(out), "--workers", "2"])

    assert code == 0
    assert "[OK] total=7" in capsys.readouterr().out
    doc = json.loads(out.read_text(encoding="utf-8"))
    assert doc["solution"]["totalValue"] == 7.0
    assert doc["meta"]["unit"] == "hours"


def test_bad_input_file_exits_with_error(tmp_path, capsys):
    problem = tmp_path / "problem.json"
    problem.write_text("[1, 2", encoding="utf-8")
    assert main(["--input", str(problem)]) == 1
    assert "[ERROR]" in capsys.readouterr().err


def test_log_json_emits_json_lines(capsys):
    assert main(["--scenario", "Test 1: Basic feasible", "--log-level", "INFO", "--log-json"]) == 0
    lines = [ln for ln in capsys.readouterr().out.splitlines() if ln.startswith('{"')]
    events = [json.loads(ln) for ln in lines]

    start = next(e for e in events if e["message"] == "solver.run_start")
    assert start["levelname"] == "INFO"
    assert start["name"] == "allotment.engines.branch_engine"
    assert start["records"] == 3
    assert any(e["message"] == "solver.run_done" and e["best_branch"] == 0 for e in events)


def test_setup_logging_plain_text(capsys):
    setup_logging(logging.DEBUG)
    logging.getLogger("allotment.engines.compiler").debug("compiler.branch_compiled")
    out = capsys.readouterr().out
    assert "DEBUG allotment.engines.compiler: compiler.branch_compiled" in out
