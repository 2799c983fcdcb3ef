"""
keyqp: Active-Set QP Solver over Keyed Factor Graphs
====================================================

keyqp solves convex Quadratic Programs whose cost and constraints are
expressed as sparse factors over named variables ("keys"):

    minimize    0.5 x'Gx - g'x + f0
    subject to  equality constraints   c_eq(x) == 0
                inequality constraints c_ineq(x) <= 0

using a primal active-set method with warm starting. It is meant as the
inner QP solver of an SQP-style nonlinear optimizer.

Quick Start
-----------
>>> import keyqp
>>> from keyqp import HessianFactor, LinearInequality, VectorValues
>>> qp = keyqp.QP(
...     cost=[HessianFactor(["x"], [[1.0]], [0.0])],              # 0.5 x^2
...     inequalities=[LinearInequality({"x": [-1.0]}, -2.0, "l")],  # x >= 2
... )
>>> values, duals = keyqp.QPSolver(qp).optimize(VectorValues({"x": [5.0]}))
>>> values["x"]
array([2.])

The solver needs a feasible initial point; it raises
InfeasibleInitialValuesError otherwise.
"""

__version__ = "0.1.0"
__author__ = "keyqp Contributors"

# Import public API
from .linear import (
    VectorValues,
    JacobianFactor,
    HessianFactor,
    LinearEquality,
    LinearInequality,
    GaussianFactorGraph,
    EqualityFactorGraph,
    InequalityFactorGraph,
    VariableIndex,
)
from .qp import QP
from .config import QPSolverParams
from .working_set import WorkingSet
from .state import QPState
from .solver import QPSolver, solve_qp
from .result import QPResult, Status
from .exceptions import (
    KeyqpError,
    InfeasibleInitialValuesError,
    SingularSystemError,
    DimensionError,
    InvalidInputError,
)

__all__ = [
    # Version
    "__version__",
    
    # Linear substrate
    "VectorValues",
    "JacobianFactor",
    "HessianFactor",
    "LinearEquality",
    "LinearInequality",
    "GaussianFactorGraph",
    "EqualityFactorGraph",
    "InequalityFactorGraph",
    "VariableIndex",
    
    # Problem and solving
    "QP",
    "QPSolverParams",
    "WorkingSet",
    "QPState",
    "QPSolver",
    "solve_qp",
    
    # Results
    "QPResult",
    "Status",
    
    # Exceptions
    "KeyqpError",
    "InfeasibleInitialValuesError",
    "SingularSystemError",
    "DimensionError",
    "InvalidInputError",
]


def info() -> str:
    """Return information about the keyqp installation."""
    import platform
    
    import numpy
    import scipy
    
    lines = [
        f"keyqp version: {__version__}",
        f"Python version: {platform.python_version()}",
        f"Platform: {platform.platform()}",
        f"NumPy version: {numpy.__version__}",
        f"SciPy version: {scipy.__version__}",
    ]
    
    return "\n".join(lines)
