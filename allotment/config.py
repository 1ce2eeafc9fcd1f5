from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from allotment.model import Unit

# Hours are entered in 0.1 steps; occurrences are whole records.
SCALE_FACTORS: Dict[Unit, int] = {
    Unit.HOURS: 10,
    Unit.OCCURRENCES: 1,
}

# Groups used by the preset scenarios (and as a starting point in the UI).
DEFAULT_ATTRIBUTE_GROUPS: List[Tuple[str, str, Tuple[str, ...]]] = [
    ("location", "Location", ("Local", "Global")),
    ("shift", "Shift", ("Day", "Night")),
]


@dataclass(frozen=True)
class Defaults:
    solver_name: str = "PULP_CBC_CMD"
    time_limit_sec: Optional[int] = None
    max_workers: int = 1
    max_branches: int = 4096
    integer_tolerance: float = 1e-6
    target_value: float = 10.0
    unit: Unit = Unit.OCCURRENCES


DEFAULTS = Defaults()


@dataclass(frozen=True)
class SolverSettings:
    """Per-call overrides for the branch engine."""

    solver_name: str = DEFAULTS.solver_name
    time_limit_sec: Optional[int] = DEFAULTS.time_limit_sec
    max_workers: int = DEFAULTS.max_workers
    max_branches: int = DEFAULTS.max_branches
    integer_tolerance: float = DEFAULTS.integer_tolerance
    msg: bool = False


# Built-in record scenarios (Local/Global x Day/Night).
# Each row is (record id, value, attributes).
PRESET_SCENARIOS: Dict[str, List[Tuple[str, float, Tuple[str, ...]]]] = {
    "Test 1: Basic feasible": [
        ("t1-local-night", 5, ("Local", "Night")),
        ("t1-local-day", 2, ("Local", "Day")),
        ("t1-global-day", 3, ("Global", "Day")),
    ],
    "Test 2: Exact min requirements": [
        ("t2-local-night-1", 3, ("Local", "Night")),
        ("t2-local-night-2", 2, ("Local", "Night")),
        ("t2-local-day", 2, ("Local", "Day")),
        ("t2-global-day", 3, ("Global", "Day")),
    ],
    "Test 3: Overshoot prevention": [
        ("t3-local-night", 8, ("Local", "Night")),
        ("t3-local-day", 5, ("Local", "Day")),
        ("t3-global-day", 3, ("Global", "Day")),
    ],
    "Test 4: Global max constraint": [
        ("t4-global-night", 6, ("Global", "Night")),
        ("t4-global-day", 6, ("Global", "Day")),
        ("t4-local-night", 8, ("Local", "Night")),
    ],
    "Test 5: Implicit max (min Night = 5, max Day = 5)": [
        ("t5-local-night", 5, ("Local", "Night")),
        ("t5-global-night", 3, ("Global", "Night")),
        ("t5-local-day", 6, ("Local", "Day")),
        ("t5-global-day", 4, ("Global", "Day")),
    ],
    "Test 6: Partial records only": [
        ("t6-local-night-1", 2, ("Local", "Night")),
        ("t6-local-night-2", 2, ("Local", "Night")),
        ("t6-local-night-3", 2, ("Local", "Night")),
        ("t6-local-day-1", 1, ("Local", "Day")),
        ("t6-local-day-2", 1, ("Local", "Day")),
        ("t6-global-day", 2, ("Global", "Day")),
    ],
    "Test 7: Choose min over other": [
        ("t7-local-night", 5, ("Local", "Night")),
        ("t7-local-day", 2, ("Local", "Day")),
        ("t7-global-night", 3, ("Global", "Night")),
        ("t7-global-day", 3, ("Global", "Day")),
    ],
    "Test 8: Infeasible (too little)": [
        ("t8-local-night", 3, ("Local", "Night")),
        ("t8-local-day", 1, ("Local", "Day")),
        ("t8-global-day", 2, ("Global", "Day")),
    ],
    "Test 9: Complex mix": [
        ("t9-local-night-1", 2, ("Local", "Night")),
        ("t9-local-night-2", 3, ("Local", "Night")),
        ("t9-local-day", 3, ("Local", "Day")),
        ("t9-global-night", 2, ("Global", "Night")),
        ("t9-global-day-1", 1, ("Global", "Day")),
        ("t9-global-day-2", 1, ("Global", "Day")),
    ],
    "Test 10: Boundary conditions": [
        ("t10-local-night", 5, ("Local", "Night")),
        ("t10-local-day", 2, ("Local", "Day")),
        ("t10-global-day", 4, ("Global", "Day")),
        ("t10-global-night", 1, ("Global", "Night")),
    ],
}

# Requirement tree shared by the presets: at least 5 Night, at most 5 Day.
PRESET_REQUIREMENTS = {
    "id": "root",
    "type": "complex",
    "operator": "AND",
    "children": [
        {"id": "min-night", "type": "simple", "constraint": "minimum", "value": 5, "attributes": ["Night"]},
        {"id": "max-day", "type": "simple", "constraint": "maximum", "value": 5, "attributes": ["Day"]},
    ],
}


def setup_logging(log_level: int = logging.INFO, json: bool = False) -> None:
    """Attach a stdout handler to the ``allotment`` logger (CLI / app use only)."""
    handler = logging.StreamHandler(sys.stdout)
    if json:
        from pythonjsonlogger.json import JsonFormatter

        handler.setFormatter(JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root_logger = logging.getLogger("allotment")
    root_logger.setLevel(log_level)
    root_logger.handlers = []
    root_logger.addHandler(handler)
    root_logger.propagate = False
