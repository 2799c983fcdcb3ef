"""
Linear Factors
==============

Factors are the building blocks of a QP over named variables ("keys").

Cost factors:
- ``JacobianFactor``: 0.5 * ||sum_k A_k x_k - b||^2
- ``HessianFactor``:  0.5 * x'Gx - g'x + 0.5 * f

Constraint factors:
- ``LinearEquality``:   sum_k A_k x_k - b == 0
- ``LinearInequality``: sum_k a_k' x_k - b <= 0  (single row)

Every constraint carries a ``dual_key`` under which its Lagrange
multiplier is reported.
"""

from __future__ import annotations

from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from ..exceptions import DimensionError, InvalidInputError
from .vector_values import VectorValues

Key = Hashable
Terms = Union[Mapping, Iterable[Tuple[Key, Any]]]


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


def _parse_terms(terms: Terms) -> Tuple[Tuple[Key, ...], Dict[Key, np.ndarray], int]:
    """Normalize (key, matrix) terms into frozen 2-D blocks with equal row count."""
    items = terms.items() if isinstance(terms, Mapping) else terms
    rows = None
    keys: List[Key] = []
    blocks: Dict[Key, np.ndarray] = {}
    for key, A in items:
        if key in blocks:
            raise InvalidInputError(f"key {key!r} appears twice in the same factor")
        A = np.array(A, dtype=np.float64)
        if A.ndim == 0:
            A = A.reshape(1, 1)
        elif A.ndim == 1:
            A = A.reshape(1, -1)
        if A.ndim != 2:
            raise DimensionError(f"Jacobian block for {key!r} must be 2-D, got {A.ndim}-D")
        if not np.all(np.isfinite(A)):
            raise InvalidInputError(f"Jacobian block for {key!r} contains non-finite values")
        if rows is None:
            rows = A.shape[0]
        elif A.shape[0] != rows:
            raise DimensionError(f"block for {key!r} has {A.shape[0]} rows, expected {rows}")
        keys.append(key)
        blocks[key] = _frozen(A)
    if not keys:
        raise InvalidInputError("a factor must involve at least one key")
    return tuple(keys), blocks, rows


def _parse_rhs(b: Any, rows: int) -> np.ndarray:
    b = np.array(b, dtype=np.float64).ravel()
    if b.shape[0] != rows:
        raise DimensionError(f"right-hand side has {b.shape[0]} entries, expected {rows}")
    if not np.all(np.isfinite(b)):
        raise InvalidInputError("right-hand side contains non-finite values")
    return _frozen(b)


class JacobianFactor:
    """
    Least-squares factor 0.5 * ||sum_k A_k x_k - b||^2.

    Args:
        terms: Mapping or sequence of (key, A_k) pairs
        b: Right-hand side vector

    Example:
        >>> f = JacobianFactor({"x": np.eye(2)}, [1.0, 5.0])
        >>> f.error(VectorValues({"x": [1.0, 5.0]}))
        0.0
    """

    def __init__(self, terms: Terms, b: Any) -> None:
        self._keys, self._blocks, rows = _parse_terms(terms)
        self._b = _parse_rhs(b, rows)

    @property
    def keys(self) -> Tuple[Key, ...]:
        return self._keys

    @property
    def rows(self) -> int:
        return self._b.shape[0]

    @property
    def b(self) -> np.ndarray:
        return self._b

    def get_a(self, key: Key) -> np.ndarray:
        """Jacobian block of ``key``."""
        return self._blocks[key]

    def dims(self) -> Dict[Key, int]:
        return {k: self._blocks[k].shape[1] for k in self._keys}

    def __contains__(self, key: Key) -> bool:
        return key in self._blocks

    def __repr__(self) -> str:
        return f"{type(self).__name__}(keys={list(self._keys)}, rows={self.rows})"

    def residual(self, x: Mapping) -> np.ndarray:
        """sum_k A_k x_k - b."""
        r = -self._b.copy()
        for key in self._keys:
            r += self._blocks[key] @ np.asarray(x[key])
        return r

    def error(self, x: Mapping) -> float:
        r = self.residual(x)
        return 0.5 * float(r @ r)

    def hessian_blocks(self) -> Tuple[Dict[Tuple[Key, Key], np.ndarray], Dict[Key, np.ndarray], float]:
        """
        Quadratic form of this factor.

        Returns:
            (G, g, f) with G[(i, j)] = A_i' A_j, g[i] = A_i' b, f = b'b
        """
        G = {}
        for ki in self._keys:
            for kj in self._keys:
                G[(ki, kj)] = self._blocks[ki].T @ self._blocks[kj]
        g = {k: self._blocks[k].T @ self._b for k in self._keys}
        return G, g, float(self._b @ self._b)

    def gradient(self, key: Key, x: Mapping) -> np.ndarray:
        """Gradient of the error with respect to ``key`` at ``x``."""
        return self._blocks[key].T @ self.residual(x)


class HessianFactor:
    """
    Quadratic factor 0.5 * x'Gx - g'x + 0.5 * f over a set of keys.

    Args:
        keys: Ordered keys of the factor
        G: Full symmetric Hessian over the stacked keys, or a mapping of
           (key_i, key_j) -> block (missing blocks are zero, the transpose of
           an upper block is used for the lower one)
        g: Linear term, a stacked vector or a mapping key -> vector
        f: Constant term

    Example:
        >>> # 0.5 * (x - 1)^2
        >>> f = HessianFactor(["x"], [[1.0]], [1.0], 1.0)
    """

    def __init__(
        self,
        keys: Sequence[Key],
        G: Any,
        g: Any,
        f: float = 0.0,
        dims: Optional[Mapping] = None,
    ) -> None:
        keys = tuple(keys)
        if not keys:
            raise InvalidInputError("a factor must involve at least one key")
        if len(set(keys)) != len(keys):
            raise InvalidInputError(f"duplicate keys in HessianFactor: {list(keys)}")
        self._keys = keys

        if isinstance(G, Mapping):
            if dims is None:
                dims = {}
                for (ki, kj), block in G.items():
                    block = np.atleast_2d(np.asarray(block, dtype=np.float64))
                    dims.setdefault(ki, block.shape[0])
                    dims.setdefault(kj, block.shape[1])
            self._dims = {k: int(dims[k]) for k in keys}
            blocks: Dict[Tuple[Key, Key], np.ndarray] = {}
            for ki in keys:
                for kj in keys:
                    if (ki, kj) in G:
                        block = np.atleast_2d(np.array(G[(ki, kj)], dtype=np.float64))
                    elif (kj, ki) in G:
                        block = np.atleast_2d(np.array(G[(kj, ki)], dtype=np.float64)).T
                    else:
                        block = np.zeros((self._dims[ki], self._dims[kj]))
                    if block.shape != (self._dims[ki], self._dims[kj]):
                        raise DimensionError(
                            f"Hessian block ({ki!r}, {kj!r}) has shape {block.shape}"
                        )
                    blocks[(ki, kj)] = _frozen(block)
        else:
            G = np.atleast_2d(np.array(G, dtype=np.float64))
            if dims is None:
                if len(keys) != 1:
                    raise InvalidInputError("dims required for a dense multi-key HessianFactor")
                dims = {keys[0]: G.shape[0]}
            self._dims = {k: int(dims[k]) for k in keys}
            n = sum(self._dims.values())
            if G.shape != (n, n):
                raise DimensionError(f"G must be ({n},{n}), got {G.shape}")
            offsets = np.cumsum([0] + [self._dims[k] for k in keys])
            blocks = {}
            for i, ki in enumerate(keys):
                for j, kj in enumerate(keys):
                    blocks[(ki, kj)] = _frozen(
                        G[offsets[i]:offsets[i + 1], offsets[j]:offsets[j + 1]].copy()
                    )
        self._G = blocks

        if isinstance(g, Mapping):
            self._g = {k: np.array(g.get(k, np.zeros(self._dims[k])), dtype=np.float64).ravel()
                       for k in keys}
        else:
            stacked = np.array(g, dtype=np.float64).ravel()
            self._g = dict(VectorValues.from_vector(stacked, self._dims, keys))
        for k in keys:
            if self._g[k].shape[0] != self._dims[k]:
                raise DimensionError(f"linear term for {k!r} has wrong dimension")
            self._g[k] = _frozen(self._g[k])

        for block in list(self._G.values()) + list(self._g.values()):
            if not np.all(np.isfinite(block)):
                raise InvalidInputError("HessianFactor contains non-finite values")
        self._f = float(f)

    @property
    def keys(self) -> Tuple[Key, ...]:
        return self._keys

    @property
    def rows(self) -> int:
        return sum(self._dims.values())

    def dims(self) -> Dict[Key, int]:
        return dict(self._dims)

    def __contains__(self, key: Key) -> bool:
        return key in self._dims

    def __repr__(self) -> str:
        return f"HessianFactor(keys={list(self._keys)})"

    def info(self, ki: Key, kj: Key) -> np.ndarray:
        """Hessian block G_ij."""
        return self._G[(ki, kj)]

    def linear_term(self, key: Key) -> np.ndarray:
        return self._g[key]

    def error(self, x: Mapping) -> float:
        total = 0.0
        for ki in self._keys:
            xi = np.asarray(x[ki])
            for kj in self._keys:
                total += 0.5 * float(xi @ self._G[(ki, kj)] @ np.asarray(x[kj]))
            total -= float(self._g[ki] @ xi)
        return total + 0.5 * self._f

    def hessian_blocks(self) -> Tuple[Dict[Tuple[Key, Key], np.ndarray], Dict[Key, np.ndarray], float]:
        return dict(self._G), dict(self._g), self._f

    def gradient(self, key: Key, x: Mapping) -> np.ndarray:
        grad = -self._g[key].copy()
        for kj in self._keys:
            grad += self._G[(key, kj)] @ np.asarray(x[kj])
        return grad


class LinearEquality(JacobianFactor):
    """
    Linear equality constraint sum_k A_k x_k - b == 0.

    Equalities are always active: they are never removed from a working set.
    """

    def __init__(self, terms: Terms, b: Any, dual_key: Key) -> None:
        super().__init__(terms, b)
        self.dual_key = dual_key

    @property
    def active(self) -> bool:
        return True

    def error(self, x: Mapping) -> np.ndarray:  # type: ignore[override]
        """Constraint residual (zero when satisfied)."""
        return self.residual(x)

    def __repr__(self) -> str:
        return f"LinearEquality(keys={list(self.keys)}, rows={self.rows}, dual_key={self.dual_key!r})"


class LinearInequality(JacobianFactor):
    """
    Single-row linear inequality sum_k a_k' x_k - b <= 0.

    Args:
        terms: (key, a_k) pairs; each a_k is a row vector
        b: Scalar threshold
        dual_key: Key of the Lagrange multiplier

    Example:
        >>> # x >= 2  <=>  -x + 2 <= 0
        >>> c = LinearInequality({"x": [-1.0]}, -2.0, dual_key="lam0")
    """

    def __init__(self, terms: Terms, b: float, dual_key: Key) -> None:
        items = terms.items() if isinstance(terms, Mapping) else terms
        rows = []
        for key, a in items:
            a = np.asarray(a, dtype=np.float64)
            if a.ndim == 2 and a.shape[0] != 1:
                raise DimensionError(f"LinearInequality block for {key!r} must be a single row")
            rows.append((key, a.reshape(1, -1)))
        super().__init__(rows, np.atleast_1d(np.asarray(b, dtype=np.float64)))
        if self.rows != 1:
            raise DimensionError(f"LinearInequality must have a single row, got {self.rows}")
        self.dual_key = dual_key

    @property
    def active(self) -> bool:
        """False: an inequality is enforced only through a ``WorkingSet``."""
        return False

    def error(self, x: Mapping) -> float:  # type: ignore[override]
        """a'x - b (<= 0 when satisfied, 0 on the boundary)."""
        return float(self.residual(x)[0])

    def dot_product_row(self, p: Mapping) -> float:
        """a'p, the rate of change of the constraint value along ``p``."""
        total = 0.0
        for key in self.keys:
            total += float(self.get_a(key)[0] @ np.asarray(p[key]))
        return total

    def row_norm(self) -> float:
        """Euclidean norm of the stacked row a."""
        return float(np.sqrt(sum(float(self.get_a(k)[0] @ self.get_a(k)[0]) for k in self.keys)))

    def __repr__(self) -> str:
        return f"LinearInequality(keys={list(self.keys)}, b={self.b[0]:g}, dual_key={self.dual_key!r})"
