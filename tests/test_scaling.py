from __future__ import annotations

import pytest

from allotment.engines.scaling import descale_solution, scale_factor_for, scale_problem
from allotment.errors import ScalingError
from allotment.model import (
    ComplexRequirement,
    ConstraintKind,
    MaximumUsage,
    MinimumAchievement,
    Operator,
    Record,
    SelectedRecord,
    SimpleRequirement,
    Solution,
    Unit,
)


def test_scale_factor_by_unit():
    assert scale_factor_for(Unit.HOURS) == 10
    assert scale_factor_for(Unit.OCCURRENCES) == 1
    assert scale_factor_for("hours") == 10


def test_scale_problem_multiplies_every_leaf_without_touching_inputs():
    records = [Record("a", 2.5, ("Day",)), Record("b", 0.1, ("Night",))]
    tree = ComplexRequirement(
        "root",
        Operator.AND,
        (
            SimpleRequirement("min", ConstraintKind.MINIMUM, 1.2, ("Night",)),
            ComplexRequirement(
                "or", Operator.OR, (SimpleRequirement("max", ConstraintKind.MAXIMUM, 0.3, ("Day",)),)
            ),
        ),
    )

    scaled = scale_problem(records, tree, 7.5, 10)

    assert [r.value for r in scaled.records] == [25, 1]
    assert scaled.target_value == 75
    assert scaled.requirements.children[0].value == 12
    assert scaled.requirements.children[1].children[0].value == 3
    assert scaled.scale_factor == 10
    # originals untouched
    assert records[0].value == 2.5
    assert tree.children[0].value == 1.2


def test_non_integer_after_scaling_raises():
    with pytest.raises(ScalingError):
        scale_problem([Record("a", 0.15)], SimpleRequirement("s", ConstraintKind.MINIMUM, 0), 1, 10)

    with pytest.raises(ScalingError):
        scale_problem([], SimpleRequirement("s", ConstraintKind.MINIMUM, 1.5), 1, 1)

    with pytest.raises(ScalingError):
        scale_problem([], SimpleRequirement("s", ConstraintKind.MINIMUM, 1), 2.25, 10)


def test_scaling_error_is_a_value_error():
    assert issubclass(ScalingError, ValueError)


def test_descale_solution_divides_every_number():
    scaled = Solution(
        total_value=70,
        selected_records=[SelectedRecord("a", 30), SelectedRecord("b", 40)],
        minimum_requirements=[MinimumAchievement(("Night",), 20, 40)],
        maximum_requirements=[MaximumUsage(("Day",), 50, 30)],
    )
    out = descale_solution(scaled, 10)

    assert out.total_value == 7.0
    assert [s.weight for s in out.selected_records] == [3.0, 4.0]
    assert out.minimum_requirements[0].target == 2.0
    assert out.minimum_requirements[0].achieved == 4.0
    assert out.maximum_requirements[0].target == 5.0
    assert out.maximum_requirements[0].used == 3.0


def test_large_fractional_values_are_not_rounded():
    with pytest.raises(ScalingError):
        scale_problem([Record("big", 600000.5)], ComplexRequirement("root", Operator.AND, ()), 10, 1)

    with pytest.raises(ScalingError):
        scale_problem([Record("big", 50000.05)], ComplexRequirement("root", Operator.AND, ()), 10, 10)

    scaled = scale_problem([Record("big", 50000.1)], ComplexRequirement("root", Operator.AND, ()), 10, 10)
    assert scaled.records[0].value == 500001
