from __future__ import annotations

import pytest

from allotment.engines.expansion import count_branches, expand_requirements, simple_requirements
from allotment.errors import UnknownOperatorError
from allotment.model import ComplexRequirement, ConstraintKind, Operator, SimpleRequirement


def leaf(rid: str) -> SimpleRequirement:
    return SimpleRequirement(id=rid, constraint=ConstraintKind.MINIMUM, value=1, attributes=(rid,))


def all_of(*children, rid="and") -> ComplexRequirement:
    return ComplexRequirement(id=rid, operator=Operator.AND, children=tuple(children))


def any_of(*children, rid="or") -> ComplexRequirement:
    return ComplexRequirement(id=rid, operator=Operator.OR, children=tuple(children))


def ids(branches):
    return [[r.id for r in b] for b in branches]


A, B, C, D = leaf("A"), leaf("B"), leaf("C"), leaf("D")


def test_simple_requirement_is_single_branch():
    assert ids(expand_requirements(A)) == [["A"]]


def test_or_of_ands():
    tree = any_of(all_of(A, B), all_of(C, D))
    assert ids(expand_requirements(tree)) == [["A", "B"], ["C", "D"]]


def test_and_of_or_distributes():
    tree = all_of(any_of(A, B), C)
    assert ids(expand_requirements(tree)) == [["A", "C"], ["B", "C"]]


def test_and_b_or_c_yields_two_branches():
    tree = any_of(all_of(A, B), C)
    assert {frozenset(b) for b in ids(expand_requirements(tree))} == {frozenset({"A", "B"}), frozenset({"C"})}


def test_a_and_b_or_c():
    tree = all_of(A, any_of(B, C))
    assert {frozenset(b) for b in ids(expand_requirements(tree))} == {frozenset({"A", "B"}), frozenset({"A", "C"})}


def test_nested_ors_multiply():
    tree = all_of(any_of(A, B), any_of(C, D))
    assert ids(expand_requirements(tree)) == [["A", "C"], ["A", "D"], ["B", "C"], ["B", "D"]]
    assert count_branches(tree) == 4


def test_empty_and_is_one_empty_branch_and_empty_or_is_none():
    assert expand_requirements(all_of()) == [[]]
    assert expand_requirements(any_of()) == []
    assert count_branches(all_of()) == 1
    assert count_branches(any_of()) == 0


def test_count_matches_expansion():
    tree = any_of(all_of(A, any_of(B, C, D)), all_of(any_of(A, B), any_of(C, D)))
    assert count_branches(tree) == len(expand_requirements(tree)) == 7


def test_unknown_operator_raises():
    tree = ComplexRequirement(id="x", operator="XOR", children=(A, B))
    with pytest.raises(UnknownOperatorError):
        expand_requirements(tree)
    with pytest.raises(UnknownOperatorError):
        count_branches(tree)


def test_simple_requirements_in_document_order():
    tree = any_of(all_of(A, B), all_of(C, any_of(D, A)))
    assert [r.id for r in simple_requirements(tree)] == ["A", "B", "C", "D", "A"]
