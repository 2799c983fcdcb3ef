"""
Working Set
===========

The working set is the subset of inequality constraints currently enforced
as equalities. It references the problem's ``InequalityFactorGraph`` and
records which indices are active; adding or removing a constraint returns
a new ``WorkingSet`` sharing the same graph.
"""

from __future__ import annotations

from typing import FrozenSet, Iterable, Iterator, Tuple

from .exceptions import InvalidInputError
from .linear.factor_graph import InequalityFactorGraph
from .linear.factors import LinearInequality


class WorkingSet:
    """
    Active subset of an inequality graph, by index.

    Indexing (``at``/``is_active``) follows the positions of the underlying
    inequality graph, so the solver's ``VariableIndex`` over the original
    inequalities applies to the working set unchanged.

    Example:
        >>> ws = WorkingSet(inequalities)
        >>> ws = ws.with_added(2)
        >>> ws.active_indices
        (2,)
    """

    __slots__ = ("_graph", "_active")

    def __init__(self, graph: InequalityFactorGraph, active: Iterable[int] = ()) -> None:
        active = frozenset(int(i) for i in active)
        for i in active:
            if not 0 <= i < len(graph):
                raise InvalidInputError(f"inequality index {i} out of range [0, {len(graph)})")
        self._graph = graph
        self._active: FrozenSet[int] = active

    @property
    def graph(self) -> InequalityFactorGraph:
        return self._graph

    @property
    def active_indices(self) -> Tuple[int, ...]:
        """Active inequality indices in ascending order."""
        return tuple(sorted(self._active))

    def __len__(self) -> int:
        return len(self._graph)

    @property
    def size(self) -> int:
        """Number of active constraints."""
        return len(self._active)

    def at(self, i: int) -> LinearInequality:
        return self._graph.at(i)

    def is_active(self, i: int) -> bool:
        return i in self._active

    def __contains__(self, i: int) -> bool:
        return i in self._active

    def active_factors(self) -> Iterator[Tuple[int, LinearInequality]]:
        """(index, factor) for every active constraint, ascending index."""
        for i in self.active_indices:
            yield i, self._graph.at(i)

    def inactive_factors(self) -> Iterator[Tuple[int, LinearInequality]]:
        """(index, factor) for every inactive constraint, ascending index."""
        for i, factor in enumerate(self._graph):
            if i not in self._active:
                yield i, factor

    def with_added(self, i: int) -> "WorkingSet":
        if i in self._active:
            return self
        return WorkingSet(self._graph, self._active | {i})

    def with_removed(self, i: int) -> "WorkingSet":
        if i not in self._active:
            return self
        return WorkingSet(self._graph, self._active - {i})

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WorkingSet):
            return NotImplemented
        return self._graph is other._graph and self._active == other._active

    def __hash__(self) -> int:
        return hash((id(self._graph), self._active))

    def __repr__(self) -> str:
        return f"WorkingSet(active={list(self.active_indices)}, total={len(self._graph)})"
