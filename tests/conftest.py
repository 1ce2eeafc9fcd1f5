from __future__ import annotations

import pytest

from allotment.engines.pulp_solver import init_solver


@pytest.fixture(scope="session")
def solver():
    """Bundled CBC backend shipped with PuLP."""
    return init_solver("PULP_CBC_CMD")
