from __future__ import annotations


class AllotmentError(Exception):
    """Base class for every error raised by the allotment solver."""


class InputError(AllotmentError, ValueError):
    pass


class ScalingError(AllotmentError, ValueError):
    pass


class UnknownOperatorError(AllotmentError, ValueError):
    pass


class BranchLimitError(AllotmentError, ValueError):
    pass


class InfeasibleError(AllotmentError):
    pass


class SolverUnavailableError(AllotmentError, RuntimeError):
    pass


NO_FEASIBLE_SOLUTION = (
    "No feasible solution found for any combination. Try adjusting your constraints."
)
