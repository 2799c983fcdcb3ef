"""
Factor Graphs
=============

Immutable containers of linear factors, and the sparse solve used by the
active-set solver.

``GaussianFactorGraph.optimize`` minimizes the sum of the cost factors
subject to every constraint factor in the graph held as an equality. The
KKT system

    [ H  C' ] [x]   [g]
    [ C  0  ] [v] = [d]

is assembled with scipy.sparse and factorized with SuperLU.
"""

from __future__ import annotations

from typing import Any, Dict, Hashable, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import splu

from ..exceptions import DimensionError, InvalidInputError, SingularSystemError
from .factors import HessianFactor, JacobianFactor, LinearEquality, LinearInequality
from .vector_values import VectorValues

Key = Hashable

# Relative residual above which a factorization is treated as singular
SINGULAR_RESIDUAL_TOL = 1e-8


def _is_constraint(factor: Any) -> bool:
    return isinstance(factor, (LinearEquality, LinearInequality))


def _merge_dims(factors: Iterable, dims: Optional[Dict[Key, int]] = None) -> Dict[Key, int]:
    """Collect per-key dimensions, checking that all factors agree."""
    dims = {} if dims is None else dims
    for factor in factors:
        for key, d in factor.dims().items():
            known = dims.setdefault(key, d)
            if known != d:
                raise DimensionError(f"key {key!r} has dimension {d} in {factor!r}, expected {known}")
    return dims


class FactorGraph:
    """
    Immutable ordered collection of factors.

    Subclasses restrict the factor types they accept via ``factor_types``.
    """

    factor_types: Tuple[type, ...] = (object,)

    def __init__(self, factors: Iterable = ()) -> None:
        factors = tuple(factors)
        for factor in factors:
            if not isinstance(factor, self.factor_types):
                raise InvalidInputError(
                    f"{type(self).__name__} cannot hold {type(factor).__name__}"
                )
        self._factors = factors
        self._dims = _merge_dims(factors)

    def __len__(self) -> int:
        return len(self._factors)

    def __iter__(self) -> Iterator:
        return iter(self._factors)

    def __getitem__(self, i: int):
        return self._factors[i]

    def at(self, i: int):
        """Factor at position ``i``."""
        return self._factors[i]

    def __add__(self, other: Iterable) -> "FactorGraph":
        return type(self)(self._factors + tuple(other))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(factors={len(self._factors)}, keys={len(self._dims)})"

    def keys(self) -> List[Key]:
        """All keys in order of first appearance."""
        return list(self._dims)

    def dims(self) -> Dict[Key, int]:
        return dict(self._dims)

    def is_active(self, i: int) -> bool:
        """Active flag of factor ``i``; cost factors have none and always count."""
        return getattr(self._factors[i], "active", True)


class GaussianFactorGraph(FactorGraph):
    """
    Graph of cost factors, optionally with hard linear constraints.

    Cost factors (``JacobianFactor``/``HessianFactor``) are summed;
    constraint factors (``LinearEquality``/``LinearInequality``) are all
    enforced as equalities by ``optimize``.
    """

    # LinearEquality and LinearInequality are JacobianFactor subclasses
    factor_types = (JacobianFactor, HessianFactor)

    def cost_factors(self) -> List:
        return [f for f in self._factors if not _is_constraint(f)]

    def constraint_factors(self) -> List:
        return [f for f in self._factors if _is_constraint(f)]

    def error(self, x: Mapping) -> float:
        """Sum of the cost factors' errors at ``x``."""
        return float(sum(f.error(x) for f in self.cost_factors()))

    def gradient(self, key: Key, x: Mapping) -> np.ndarray:
        """Gradient of the total cost with respect to ``key`` at ``x``."""
        grad = np.zeros(self._dims[key])
        for factor in self.cost_factors():
            if key in factor:
                grad += factor.gradient(key, x)
        return grad

    def optimize(
        self,
        ordering: Optional[Sequence[Key]] = None,
        permc_spec: str = "COLAMD",
    ) -> VectorValues:
        """
        Solve the equality-constrained least-squares problem of this graph.

        Args:
            ordering: Column order of the keys (default: first appearance)
            permc_spec: SuperLU column permutation ("COLAMD", "MMD_AT_PLUS_A", ...)

        Returns:
            Minimizer as VectorValues

        Raises:
            SingularSystemError: If the KKT system is singular
        """
        ordering = self.keys() if ordering is None else list(ordering)
        if set(ordering) != set(self._dims):
            raise InvalidInputError("ordering must contain exactly the keys of the graph")
        if not ordering:
            return VectorValues()

        offsets: Dict[Key, int] = {}
        n = 0
        for key in ordering:
            offsets[key] = n
            n += self._dims[key]

        # Cost part: H and g in COO triplets
        h_rows: List[np.ndarray] = []
        h_cols: List[np.ndarray] = []
        h_vals: List[np.ndarray] = []
        rhs = np.zeros(n)
        for factor in self.cost_factors():
            G, g, _ = factor.hessian_blocks()
            for (ki, kj), block in G.items():
                r, c = np.nonzero(block)
                h_rows.append(r + offsets[ki])
                h_cols.append(c + offsets[kj])
                h_vals.append(block[r, c])
            for key, vec in g.items():
                rhs[offsets[key]:offsets[key] + vec.shape[0]] += vec

        # Constraint part: C and d
        c_rows: List[np.ndarray] = []
        c_cols: List[np.ndarray] = []
        c_vals: List[np.ndarray] = []
        d: List[np.ndarray] = []
        m = 0
        for factor in self.constraint_factors():
            for key in factor.keys:
                block = factor.get_a(key)
                r, c = np.nonzero(block)
                c_rows.append(r + m)
                c_cols.append(c + offsets[key])
                c_vals.append(block[r, c])
            d.append(factor.b)
            m += factor.rows

        def _coo(rows, cols, vals, shape):
            if not rows:
                return sparse.csc_matrix(shape)
            return sparse.coo_matrix(
                (np.concatenate(vals), (np.concatenate(rows), np.concatenate(cols))),
                shape=shape,
            ).tocsc()

        H = _coo(h_rows, h_cols, h_vals, (n, n))
        H.eliminate_zeros()
        if m:
            C = _coo(c_rows, c_cols, c_vals, (m, n))
            C.eliminate_zeros()
            K = sparse.bmat([[H, C.T], [C, None]], format="csc")
            rhs = np.concatenate([rhs] + d)
        else:
            C = None
            K = H

        # Keys without any coefficient cannot be determined
        col_nnz = H.getnnz(axis=0)
        if C is not None:
            col_nnz = col_nnz + C.getnnz(axis=0)
        free = [k for k in ordering if not np.all(col_nnz[offsets[k]:offsets[k] + self._dims[k]])]
        if free:
            raise SingularSystemError("Variables are not constrained by any factor", keys=free)

        z = _solve_sparse(K, rhs, permc_spec, implicated=self._implicated_keys())
        return VectorValues.from_vector(z[:n], self._dims, ordering)

    def _implicated_keys(self) -> List[Key]:
        keys: List[Key] = []
        for factor in self.constraint_factors():
            keys.extend(k for k in factor.keys if k not in keys)
        return keys or self.keys()


class EqualityFactorGraph(FactorGraph):
    """Graph of ``LinearEquality`` constraints."""

    factor_types = (LinearEquality,)

    def errors(self, x: Mapping) -> List[np.ndarray]:
        """Residual c(x) of every equality, in graph order."""
        return [f.error(x) for f in self._factors]


class InequalityFactorGraph(FactorGraph):
    """
    Graph of ``LinearInequality`` constraints.

    By itself no inequality is active; see ``WorkingSet`` for the set of
    inequalities currently enforced as equalities.
    """

    factor_types = (LinearInequality,)

    def errors(self, x: Mapping) -> np.ndarray:
        """a'x - b of every inequality, in graph order."""
        return np.array([f.error(x) for f in self._factors])


def _solve_sparse(
    K: sparse.spmatrix,
    rhs: np.ndarray,
    permc_spec: str,
    implicated: Sequence[Key] = (),
) -> np.ndarray:
    """Factorize K with SuperLU and solve, raising SingularSystemError on failure."""
    try:
        lu = splu(sparse.csc_matrix(K), permc_spec=permc_spec)
    except RuntimeError as e:
        raise SingularSystemError(f"Sparse factorization failed: {e}", keys=implicated) from e
    z = lu.solve(rhs)
    if not np.all(np.isfinite(z)):
        raise SingularSystemError("Sparse solve produced non-finite values", keys=implicated)
    residual = np.linalg.norm(K @ z - rhs)
    scale = max(1.0, np.linalg.norm(rhs), abs(K).max() * np.linalg.norm(z))
    if residual > SINGULAR_RESIDUAL_TOL * scale:
        raise SingularSystemError(
            f"Linear system is numerically singular (residual {residual:.3e})",
            keys=implicated,
        )
    return z
