"""
Quadratic Program
=================

A QP over keyed variables:

    minimize    sum of cost factors  (0.5 x'Gx - g'x + f0)
    subject to  equalities:   A_eq x - b_eq == 0
                inequalities: a_i' x - b_i <= 0
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy import sparse

from .exceptions import DimensionError, InvalidInputError
from .linear.factor_graph import (
    EqualityFactorGraph,
    GaussianFactorGraph,
    InequalityFactorGraph,
    _merge_dims,
)
from .linear.factors import HessianFactor, LinearEquality, LinearInequality

Key = Hashable


@dataclass(frozen=True)
class QP:
    """
    Immutable QP problem made of three factor graphs.

    Attributes:
        cost: Quadratic cost factors (JacobianFactor / HessianFactor)
        equalities: LinearEquality constraints
        inequalities: LinearInequality constraints (<= 0)

    Example:
        >>> qp = QP(
        ...     cost=[HessianFactor(["x"], [[1.0]], [0.0])],
        ...     inequalities=[LinearInequality({"x": [-1.0]}, -2.0, "lam")],
        ... )
    """

    cost: GaussianFactorGraph = field(default_factory=GaussianFactorGraph)
    equalities: EqualityFactorGraph = field(default_factory=EqualityFactorGraph)
    inequalities: InequalityFactorGraph = field(default_factory=InequalityFactorGraph)

    def __post_init__(self) -> None:
        # Accept plain sequences of factors
        if not isinstance(self.cost, GaussianFactorGraph):
            object.__setattr__(self, "cost", GaussianFactorGraph(self.cost))
        if not isinstance(self.equalities, EqualityFactorGraph):
            object.__setattr__(self, "equalities", EqualityFactorGraph(self.equalities))
        if not isinstance(self.inequalities, InequalityFactorGraph):
            object.__setattr__(self, "inequalities", InequalityFactorGraph(self.inequalities))

        if self.cost.constraint_factors():
            raise InvalidInputError("constraints must go in equalities/inequalities, not cost")

        # Per-key dimensions must agree across all three graphs
        _merge_dims(list(self.cost) + list(self.equalities) + list(self.inequalities))

        dual_keys: Dict[Key, Any] = {}
        for factor in list(self.equalities) + list(self.inequalities):
            if factor.dual_key in dual_keys:
                raise InvalidInputError(f"duplicate dual key {factor.dual_key!r}")
            dual_keys[factor.dual_key] = factor
        clash = [k for k in dual_keys if k in self.dims()]
        if clash:
            raise InvalidInputError(f"dual keys collide with variable keys: {clash}")

    def dims(self) -> Dict[Key, int]:
        """Dimension of every variable key."""
        return _merge_dims(list(self.cost) + list(self.equalities) + list(self.inequalities))

    def keys(self) -> List[Key]:
        return list(self.dims())

    @property
    def num_constraints(self) -> int:
        return len(self.equalities) + len(self.inequalities)

    def error(self, values: Mapping) -> float:
        """Objective value at ``values``."""
        return self.cost.error(values)

    def check_feasibility(
        self,
        values: Mapping,
        tol: float = 1e-7,
    ) -> List[Tuple[str, int, float]]:
        """
        List the constraints violated at ``values``.

        Returns:
            (kind, index, violation) for every equality with max |residual| > tol
            and every inequality with a'x - b > tol
        """
        violations: List[Tuple[str, int, float]] = []
        for i, residual in enumerate(self.equalities.errors(values)):
            r = float(np.max(np.abs(residual)))
            if r > tol:
                violations.append(("equality", i, r))
        for i, e in enumerate(self.inequalities.errors(values)):
            if e > tol:
                violations.append(("inequality", i, float(e)))
        return violations

    def is_feasible(self, values: Mapping, tol: float = 1e-7) -> bool:
        return not self.check_feasibility(values, tol)

    def __repr__(self) -> str:
        return (
            f"QP(cost={len(self.cost)}, equalities={len(self.equalities)}, "
            f"inequalities={len(self.inequalities)}, keys={len(self.dims())})"
        )

    @classmethod
    def from_matrices(
        cls,
        G: Any,
        g: np.ndarray,
        A_eq: Optional[Any] = None,
        b_eq: Optional[np.ndarray] = None,
        A_ineq: Optional[Any] = None,
        b_ineq: Optional[np.ndarray] = None,
        f0: float = 0.0,
        keys: Optional[Sequence[Key]] = None,
    ) -> "QP":
        """
        Create a QP from matrices, with one scalar key per column.

            minimize    0.5 x'Gx - g'x + f0
            subject to  A_eq x == b_eq
                        A_ineq x <= b_ineq

        Args:
            G: Symmetric Hessian (n, n), dense or sparse
            g: Linear term (n,)
            A_eq, b_eq: Equality constraints (m_eq, n), (m_eq,)
            A_ineq, b_ineq: Inequality constraints (m_ineq, n), (m_ineq,)
            f0: Constant term
            keys: Variable keys (default: "x0", "x1", ...)

        Returns:
            QP whose equality duals are keyed "eq<i>" and inequality duals "ineq<i>"
        """
        g = np.asarray(g, dtype=np.float64).ravel()
        n = g.shape[0]
        G = sparse.coo_matrix(G, dtype=np.float64)
        if G.shape != (n, n):
            raise DimensionError(f"G must be ({n},{n}), got {G.shape}")
        keys = [f"x{i}" for i in range(n)] if keys is None else list(keys)
        if len(keys) != n:
            raise DimensionError(f"{len(keys)} keys given for {n} variables")

        # Sum duplicates and split into diagonal and upper off-diagonal entries
        G = sparse.coo_matrix(G.tocsr())
        diag = np.zeros(n)
        upper: Dict[Tuple[int, int], float] = {}
        for i, j, v in zip(G.row, G.col, G.data):
            if i == j:
                diag[i] += v
            else:
                a, b = (i, j) if i < j else (j, i)
                # Average of G_ij and G_ji
                upper[(a, b)] = upper.get((a, b), 0.0) + 0.5 * v

        cost = []
        for i, key in enumerate(keys):
            f = 2.0 * f0 if i == 0 else 0.0
            cost.append(HessianFactor([key], [[diag[i]]], [g[i]], f))
        for (i, j), v in sorted(upper.items()):
            if v != 0.0:
                cost.append(
                    HessianFactor(
                        [keys[i], keys[j]],
                        [[0.0, v], [v, 0.0]],
                        [0.0, 0.0],
                        dims={keys[i]: 1, keys[j]: 1},
                    )
                )

        equalities = [
            LinearEquality(terms, [b], dual_key=f"eq{r}")
            for r, (terms, b) in enumerate(_row_terms(A_eq, b_eq, keys, "A_eq"))
        ]
        inequalities = [
            LinearInequality(terms, b, dual_key=f"ineq{r}")
            for r, (terms, b) in enumerate(_row_terms(A_ineq, b_ineq, keys, "A_ineq"))
        ]
        return cls(cost=cost, equalities=equalities, inequalities=inequalities)


def _row_terms(
    A: Optional[Any],
    b: Optional[np.ndarray],
    keys: Sequence[Key],
    name: str,
) -> List[Tuple[List[Tuple[Key, List[float]]], float]]:
    """Split constraint matrix rows into per-key scalar terms."""
    if A is None:
        return []
    A = sparse.csr_matrix(A, dtype=np.float64)
    if A.shape[1] != len(keys):
        raise DimensionError(f"{name} columns {A.shape[1]} != n={len(keys)}")
    if b is None:
        raise InvalidInputError(f"right-hand side required with {name}")
    b = np.asarray(b, dtype=np.float64).ravel()
    if b.shape[0] != A.shape[0]:
        raise DimensionError(f"{name} has {A.shape[0]} rows but rhs has {b.shape[0]}")
    rows = []
    for r in range(A.shape[0]):
        start, end = A.indptr[r], A.indptr[r + 1]
        terms = [
            (keys[c], [v])
            for c, v in zip(A.indices[start:end], A.data[start:end])
            if v != 0.0
        ]
        if not terms:
            raise InvalidInputError(f"row {r} of {name} is empty")
        rows.append((terms, float(b[r])))
    return rows
