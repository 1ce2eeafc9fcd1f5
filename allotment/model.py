from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple, Union


class Unit(str, Enum):
    HOURS = "hours"
    OCCURRENCES = "occurrences"


class ConstraintKind(str, Enum):
    MINIMUM = "minimum"
    MAXIMUM = "maximum"


class Operator(str, Enum):
    AND = "AND"
    OR = "OR"


@dataclass(frozen=True)
class AttributeGroup:
    """A named set of attributes that are mutually exclusive on one record."""

    id: str
    name: str
    attributes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "attributes": list(self.attributes)}


@dataclass(frozen=True)
class Record:
    id: str
    value: float
    attributes: Tuple[str, ...] = ()

    def matches(self, attributes) -> bool:
        """True when this record carries every attribute in ``attributes``."""
        return set(attributes).issubset(self.attributes)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "value": self.value, "attributes": list(self.attributes)}


@dataclass(frozen=True)
class SimpleRequirement:
    id: str
    constraint: ConstraintKind
    value: float
    attributes: Tuple[str, ...] = ()

    type = "simple"

    @property
    def key(self) -> Tuple[str, ...]:
        """Sorted attribute combination this requirement bounds."""
        return tuple(sorted(set(self.attributes)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "constraint": self.constraint.value,
            "value": self.value,
            "attributes": list(self.attributes),
        }


@dataclass(frozen=True)
class ComplexRequirement:
    id: str
    operator: Operator
    children: Tuple["Requirement", ...] = ()

    type = "complex"

    def to_dict(self) -> Dict[str, Any]:
        op = self.operator.value if isinstance(self.operator, Operator) else str(self.operator)
        return {
            "id": self.id,
            "type": self.type,
            "operator": op,
            "children": [c.to_dict() for c in self.children],
        }


Requirement = Union[SimpleRequirement, ComplexRequirement]


@dataclass(frozen=True)
class SelectedRecord:
    record_id: str
    weight: float


@dataclass(frozen=True)
class MinimumAchievement:
    attributes: Tuple[str, ...]
    target: float
    achieved: float


@dataclass(frozen=True)
class MaximumUsage:
    attributes: Tuple[str, ...]
    target: float
    used: float


@dataclass(frozen=True)
class Solution:
    total_value: float
    selected_records: List[SelectedRecord] = field(default_factory=list)
    minimum_requirements: List[MinimumAchievement] = field(default_factory=list)
    maximum_requirements: List[MaximumUsage] = field(default_factory=list)

    def weight_of(self, record_id: str) -> float:
        """Weight of the first selected record with this id (ids should be unique)."""
        for sr in self.selected_records:
            if sr.record_id == record_id:
                return sr.weight
        return 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the camelCase keys of the problem document format."""
        return {
            "totalValue": self.total_value,
            "selectedRecords": [
                {"recordId": sr.record_id, "weight": sr.weight} for sr in self.selected_records
            ],
            "minimumRequirements": [
                {"attributes": list(m.attributes), "target": m.target, "achieved": m.achieved}
                for m in self.minimum_requirements
            ],
            "maximumRequirements": [
                {"attributes": list(m.attributes), "target": m.target, "used": m.used}
                for m in self.maximum_requirements
            ],
        }


@dataclass(frozen=True)
class BranchOutcome:
    """How one expanded branch fared in the solver."""

    index: int
    requirement_ids: Tuple[str, ...]
    status: str
    total_value: float = 0.0

    @property
    def feasible(self) -> bool:
        return self.status == "Optimal"
