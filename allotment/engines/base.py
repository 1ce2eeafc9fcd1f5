from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from allotment.config import SolverSettings
from allotment.model import AttributeGroup, Record, Requirement, Solution, Unit


@dataclass(frozen=True)
class EngineInput:
    records: List[Record]
    requirements: Requirement
    target_value: float
    unit: Unit
    attribute_groups: List[AttributeGroup] = field(default_factory=list)

    settings: SolverSettings = field(default_factory=SolverSettings)


@dataclass(frozen=True)
class EngineResult:
    solution: Optional[Solution]
    meta: Dict[str, Any]
    warnings: list[str]


class Engine:
    name: str = "base"

    def run(self, inp: EngineInput) -> EngineResult:  # pragma: no cover
        raise NotImplementedError
