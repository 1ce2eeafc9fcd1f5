from __future__ import annotations

from typing import List

from allotment.errors import UnknownOperatorError
from allotment.model import ComplexRequirement, Operator, Requirement, SimpleRequirement

Branch = List[SimpleRequirement]


def _operator(req: ComplexRequirement) -> str:
    op = req.operator
    return op.value if isinstance(op, Operator) else str(op).upper()


def expand_requirements(req: Requirement) -> List[Branch]:
    """
    Expand a requirement tree into every way of resolving its ORs.

    Each returned branch is a flat list of simple requirements that must hold
    together. Examples:
      (A AND B) OR (C AND D) => [[A, B], [C, D]]
      (A OR B) AND C         => [[A, C], [B, C]]

    The number of branches is the product of the OR fan-outs along AND paths,
    so it grows exponentially with nested ORs.
    """
    if isinstance(req, SimpleRequirement):
        return [[req]]

    if not isinstance(req, ComplexRequirement):
        raise TypeError(f"Not a requirement: {req!r}")

    op = _operator(req)

    if op == "AND":
        # Cartesian product of the children, seeded with one empty branch.
        result: List[Branch] = [[]]
        for child in req.children:
            child_branches = expand_requirements(child)
            result = [existing + branch for existing in result for branch in child_branches]
        return result

    if op == "OR":
        result = []
        for child in req.children:
            result.extend(expand_requirements(child))
        return result

    raise UnknownOperatorError(f"Unknown requirement operator: {req.operator!r}")


def count_branches(req: Requirement) -> int:
    """Number of branches expand_requirements would produce, without building them."""
    if isinstance(req, SimpleRequirement):
        return 1
    op = _operator(req)
    if op == "AND":
        n = 1
        for child in req.children:
            n *= count_branches(child)
        return n
    if op == "OR":
        return sum(count_branches(child) for child in req.children)
    raise UnknownOperatorError(f"Unknown requirement operator: {req.operator!r}")


def simple_requirements(req: Requirement) -> List[SimpleRequirement]:
    """All simple leaves of the tree, depth-first in document order."""
    if isinstance(req, SimpleRequirement):
        return [req]
    out: List[SimpleRequirement] = []
    for child in req.children:
        out.extend(simple_requirements(child))
    return out
