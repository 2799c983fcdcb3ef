"""Key -> incident factor index."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Dict, Hashable, Iterable, Iterator, List, Tuple

Key = Hashable


class VariableIndex(Mapping):
    """
    Read-only map from each key to the indices of the factors touching it.

    Built once from a factor graph; indices refer to positions in that
    graph and stay valid because graphs are never modified.

    Example:
        >>> index = VariableIndex(graph)
        >>> index["x"]
        (0, 2)
    """

    def __init__(self, factors: Iterable) -> None:
        index: Dict[Key, List[int]] = {}
        n_factors = 0
        for i, factor in enumerate(factors):
            n_factors += 1
            for key in factor.keys:
                index.setdefault(key, []).append(i)
        self._index: Dict[Key, Tuple[int, ...]] = {k: tuple(v) for k, v in index.items()}
        self._n_factors = n_factors

    def __getitem__(self, key: Key) -> Tuple[int, ...]:
        return self._index[key]

    def __iter__(self) -> Iterator[Key]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    @property
    def n_factors(self) -> int:
        return self._n_factors

    def __repr__(self) -> str:
        return f"VariableIndex(keys={len(self._index)}, factors={self._n_factors})"
