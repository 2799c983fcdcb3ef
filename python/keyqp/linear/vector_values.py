"""
Keyed Vectors
=============

``VectorValues`` maps variable keys to dense vectors. It is used for
primal solutions, step directions and Lagrange multipliers (keyed by the
constraints' dual keys).

Instances never change after construction; arithmetic returns new objects
so that solver states can share them freely.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, Hashable, Iterable, Iterator, Optional, Sequence

import numpy as np

from ..exceptions import DimensionError

Key = Hashable


def _as_vector(value: Any) -> np.ndarray:
    vec = np.array(value, dtype=np.float64).ravel()
    vec.setflags(write=False)
    return vec


class VectorValues(Mapping):
    """
    Immutable ordered mapping from key to 1-D float64 vector.

    Example:
        >>> x = VectorValues({"x": [1.0, 2.0], "l": 3.0})
        >>> (x + x)["x"]
        array([2., 4.])
    """

    __slots__ = ("_data",)

    def __init__(self, values: Optional[Any] = None) -> None:
        data: Dict[Key, np.ndarray] = {}
        if values is not None:
            items = values.items() if isinstance(values, Mapping) else values
            for key, value in items:
                data[key] = _as_vector(value)
        self._data = data

    # Mapping interface
    def __getitem__(self, key: Key) -> np.ndarray:
        return self._data[key]

    def __iter__(self) -> Iterator[Key]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        body = ", ".join(f"{k!r}: {v.tolist()}" for k, v in self._data.items())
        return f"VectorValues({{{body}}})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VectorValues):
            return NotImplemented
        return self.equals(other, tol=0.0)

    __hash__ = None  # type: ignore[assignment]

    def dims(self) -> Dict[Key, int]:
        """Dimension of every key."""
        return {k: v.shape[0] for k, v in self._data.items()}

    def dim(self) -> int:
        """Total dimension."""
        return int(sum(v.shape[0] for v in self._data.values()))

    # Arithmetic
    def _check_same_structure(self, other: "VectorValues") -> None:
        if self._data.keys() != other._data.keys():
            missing = set(self._data) ^ set(other._data)
            raise DimensionError(f"keys differ between VectorValues: {sorted(map(str, missing))}")
        for key, vec in self._data.items():
            if vec.shape != other._data[key].shape:
                raise DimensionError(
                    f"key {key!r} has dim {vec.shape[0]} vs {other._data[key].shape[0]}"
                )

    def __add__(self, other: "VectorValues") -> "VectorValues":
        self._check_same_structure(other)
        return VectorValues((k, v + other._data[k]) for k, v in self._data.items())

    def __sub__(self, other: "VectorValues") -> "VectorValues":
        self._check_same_structure(other)
        return VectorValues((k, v - other._data[k]) for k, v in self._data.items())

    def __mul__(self, alpha: float) -> "VectorValues":
        return VectorValues((k, alpha * v) for k, v in self._data.items())

    def __rmul__(self, alpha: float) -> "VectorValues":
        return self.__mul__(alpha)

    def __neg__(self) -> "VectorValues":
        return self.__mul__(-1.0)

    def dot(self, other: "VectorValues") -> float:
        """Inner product over all keys."""
        self._check_same_structure(other)
        return float(sum(np.dot(v, other._data[k]) for k, v in self._data.items()))

    def norm(self) -> float:
        """Euclidean norm over all keys."""
        return float(np.sqrt(sum(np.dot(v, v) for v in self._data.values())))

    def zero(self) -> "VectorValues":
        """Zero vector with the same structure."""
        return VectorValues((k, np.zeros_like(v)) for k, v in self._data.items())

    def equals(self, other: "VectorValues", tol: float = 1e-9) -> bool:
        """True if both have the same keys and all entries agree within ``tol``."""
        if self._data.keys() != other._data.keys():
            return False
        for key, vec in self._data.items():
            o = other._data[key]
            if vec.shape != o.shape:
                return False
            if vec.size and np.max(np.abs(vec - o)) > tol:
                return False
        return True

    def update(self, other: Mapping) -> "VectorValues":
        """Return a copy with entries of ``other`` inserted or replaced."""
        merged = dict(self._data)
        for key, value in other.items():
            merged[key] = _as_vector(value)
        return VectorValues(merged)

    def subset(self, keys: Iterable[Key]) -> "VectorValues":
        """Return a copy restricted to ``keys`` (which must all exist)."""
        return VectorValues((k, self._data[k]) for k in keys)

    # Flat conversions
    def vector(self, ordering: Optional[Sequence[Key]] = None) -> np.ndarray:
        """Stack the vectors in ``ordering`` (default: insertion order)."""
        keys = list(self._data) if ordering is None else ordering
        if not keys:
            return np.zeros(0)
        return np.concatenate([self._data[k] for k in keys])

    @classmethod
    def from_vector(
        cls,
        x: np.ndarray,
        dims: Mapping,
        ordering: Optional[Sequence[Key]] = None,
    ) -> "VectorValues":
        """Split a flat vector into keyed blocks of the given dimensions."""
        keys = list(dims) if ordering is None else list(ordering)
        x = np.asarray(x, dtype=np.float64).ravel()
        total = sum(int(dims[k]) for k in keys)
        if x.shape[0] != total:
            raise DimensionError(f"vector has {x.shape[0]} entries, expected {total}")
        out = []
        offset = 0
        for key in keys:
            d = int(dims[key])
            out.append((key, x[offset:offset + d]))
            offset += d
        return cls(out)

    @classmethod
    def zeros(cls, dims: Mapping) -> "VectorValues":
        """Zero vector for the given key dimensions."""
        return cls((k, np.zeros(int(d))) for k, d in dims.items())
