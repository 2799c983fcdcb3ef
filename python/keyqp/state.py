"""Per-iteration solver state."""

from __future__ import annotations

from dataclasses import dataclass, replace

from .linear.vector_values import VectorValues
from .working_set import WorkingSet


@dataclass(frozen=True)
class QPState:
    """
    Snapshot of the active-set iteration.

    ``QPSolver.iterate`` never modifies a state; it returns a new one.

    Attributes:
        values: Current primal point
        duals: Lagrange multipliers from the last dual solve, by dual key
        working_set: Inequalities currently enforced as equalities
        converged: True once the KKT conditions hold
        iterations: Number of iterations performed so far
    """

    values: VectorValues
    duals: VectorValues
    working_set: WorkingSet
    converged: bool = False
    iterations: int = 0

    def evolve(self, **changes) -> "QPState":
        """Copy of this state with ``changes`` applied."""
        return replace(self, **changes)

    def __repr__(self) -> str:
        return (
            f"QPState(iterations={self.iterations}, converged={self.converged}, "
            f"active={list(self.working_set.active_indices)})"
        )
