"""
pytest configuration and fixtures for keyqp tests.
"""

import numpy as np
import pytest

from keyqp import (
    QP,
    HessianFactor,
    JacobianFactor,
    LinearEquality,
    LinearInequality,
    VectorValues,
)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def equality_qp():
    """
    Two-variable QP with a single equality.

    minimize: 0.5(x-1)^2 + 0.5(y-5)^2
    subject to: x - y == 0

    Optimal: x = y = 3, multiplier of the equality = 2
    """
    cost = [
        HessianFactor(["x"], [[1.0]], [1.0], 1.0),
        HessianFactor(["y"], [[1.0]], [5.0], 25.0),
    ]
    equalities = [LinearEquality({"x": [[1.0]], "y": [[-1.0]]}, [0.0], dual_key="eq")]
    return QP(cost=cost, equalities=equalities)


@pytest.fixture
def single_inequality_qp():
    """
    minimize: 0.5 x^2
    subject to: x >= 2   (-x + 2 <= 0)

    Optimal: x = 2, multiplier = -2
    """
    cost = [HessianFactor(["x"], [[1.0]], [0.0])]
    inequalities = [LinearInequality({"x": [-1.0]}, -2.0, dual_key="lam")]
    return QP(cost=cost, inequalities=inequalities)


@pytest.fixture
def interior_optimum_qp():
    """
    minimize: 0.5 x^2
    subject to: x <= 2   (x - 2 <= 0)

    Optimal: x = 0 (constraint inactive)
    """
    cost = [HessianFactor(["x"], [[1.0]], [0.0])]
    inequalities = [LinearInequality({"x": [1.0]}, 2.0, dual_key="lam")]
    return QP(cost=cost, inequalities=inequalities)


@pytest.fixture
def box_qp():
    """
    Two-variable QP whose optimum sits on two bounds.

    minimize: (x-3)^2 + (y-3)^2  = 0.5 z'(2I)z - (6,6)'z + 18
    subject to: x <= 1
                y <= 2

    Optimal: x=1, y=2, multipliers (-4, -2), 3 iterations from the origin
    """
    cost = [HessianFactor(["x", "y"], 2.0 * np.eye(2), [6.0, 6.0], 36.0, dims={"x": 1, "y": 1})]
    inequalities = [
        LinearInequality({"x": [1.0]}, 1.0, dual_key="ux"),
        LinearInequality({"y": [1.0]}, 2.0, dual_key="uy"),
    ]
    return QP(cost=cost, inequalities=inequalities)


@pytest.fixture
def pose_qp():
    """
    Block-structured QP over 2-D "pose" and "point" keys.

    minimize: 0.5||p - (1, 4)||^2 + 0.5||l - p - (2, 0)||^2
    subject to: p_x + p_y <= 3
                l_y >= 5
    """
    cost = [
        JacobianFactor({"p": np.eye(2)}, [1.0, 4.0]),
        JacobianFactor({"p": -np.eye(2), "l": np.eye(2)}, [2.0, 0.0]),
    ]
    inequalities = [
        LinearInequality({"p": [1.0, 1.0]}, 3.0, dual_key=("lam", 0)),
        LinearInequality({"l": [0.0, -1.0]}, -5.0, dual_key=("lam", 1)),
    ]
    return QP(cost=cost, inequalities=inequalities)


@pytest.fixture
def origin():
    """Feasible start for box_qp."""
    return VectorValues({"x": [0.0], "y": [0.0]})


def random_qp(seed, n=6, m=8):
    """
    Random strictly convex QP that is strictly feasible at the origin.

    minimize: 0.5 x'Gx - g'x
    subject to: A x <= b, with b > 0
    """
    rng = np.random.default_rng(seed)
    M = rng.standard_normal((n, n))
    G = M @ M.T + np.eye(n)
    g = 5.0 * rng.standard_normal(n)
    A = rng.standard_normal((m, n))
    b = rng.uniform(0.1, 1.0, size=m)
    return G, g, A, b


@pytest.fixture
def make_random_qp():
    """Factory for random_qp problems."""
    return random_qp


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")
