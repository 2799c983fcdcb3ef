"""
keyqp Result Classes
====================

Data classes for solver results and status.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Hashable, List, Tuple

import numpy as np

from .linear.vector_values import VectorValues


class Status(Enum):
    """
    Solver status codes.
    
    Attributes:
        CONVERGED: KKT conditions satisfied within tolerance
        MAX_ITERATIONS: Iteration cap reached before convergence
        UNSOLVED: Problem not yet solved
    """
    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"
    UNSOLVED = "unsolved"
    
    def __str__(self) -> str:
        return self.value
    
    @property
    def is_successful(self) -> bool:
        """True if an optimal solution was found."""
        return self == Status.CONVERGED
    
    @property
    def has_solution(self) -> bool:
        """True if a (possibly suboptimal) feasible point is available."""
        return self in (Status.CONVERGED, Status.MAX_ITERATIONS)


@dataclass
class QPResult:
    """
    Result of an active-set QP solve.
    
    Attributes:
        status: Solver status
        values: Primal solution
        duals: Lagrange multipliers, keyed by the constraints' dual keys
        objective: Cost at ``values``
        iterations: Number of iterations performed
        working_set: Indices of the inequalities active at the solution
        solve_time: Wall clock time in seconds
        history: Intermediate QPStates (only if requested)
    
    Example:
        >>> result = solver.solve(initial_values)
        >>> if result.status == Status.CONVERGED:
        ...     print(result.get_value("x"))
    """
    
    status: Status
    values: VectorValues
    duals: VectorValues
    objective: float
    iterations: int
    working_set: Tuple[int, ...] = ()
    solve_time: float = 0.0
    history: List[Any] = field(default_factory=list)
    
    def __repr__(self) -> str:
        return (
            f"QPResult(status={self.status}, "
            f"objective={self.objective:.6g}, "
            f"iterations={self.iterations}, "
            f"active={list(self.working_set)}, "
            f"time={self.solve_time:.4f}s)"
        )
    
    def __iter__(self):
        # Unpacks as the (primal, dual) pair
        return iter((self.values, self.duals))
    
    def get_value(self, key: Hashable) -> np.ndarray:
        """Solution vector of a variable key."""
        return self.values[key]
    
    def get_dual(self, dual_key: Hashable) -> np.ndarray:
        """
        Lagrange multiplier of a constraint.
        
        Inactive inequalities have no entry in ``duals``; their
        multiplier is zero.
        """
        if dual_key in self.duals:
            return self.duals[dual_key]
        return np.zeros(1)
    
    def summary(self) -> str:
        """Return a formatted summary of the solve result."""
        lines = [
            "=" * 50,
            "keyqp Solve Summary",
            "=" * 50,
            f"Status:           {self.status}",
            f"Objective:        {self.objective:.10g}",
            f"Iterations:       {self.iterations}",
            f"Active set size:  {len(self.working_set)}",
            f"Solve time:       {self.solve_time:.4f} s",
            "=" * 50,
        ]
        return "\n".join(lines)
