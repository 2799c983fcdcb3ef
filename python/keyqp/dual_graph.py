"""
Dual Graph
==========

Builds the linear system whose unknowns are the Lagrange multipliers of
the active constraints.

With the Lagrangian

    L(x, lambda) = f(x) - sum_k lambda_k c_k(x)

stationarity at the solution gives grad f(x) = sum_k lambda_k grad c_k(x).
For every variable x_i touched by some constraint this is one block row

    sum_k (dc_k/dx_i)' lambda_k = grad_i f(x) = sum_j G_ij x_j - g_i

Variables touched by no constraint only give grad_i f(x) = 0, which the
primal solve already enforces, so they do not appear in the dual graph.
"""

from __future__ import annotations

from typing import Hashable, List, Optional, Tuple

import numpy as np

from .linear.factor_graph import (
    EqualityFactorGraph,
    FactorGraph,
    GaussianFactorGraph,
    InequalityFactorGraph,
)
from .linear.factors import JacobianFactor
from .linear.variable_index import VariableIndex
from .linear.vector_values import VectorValues
from .working_set import WorkingSet

Key = Hashable


class DualGraphBuilder:
    """
    Assembles dual graphs for a fixed QP.

    The variable indices are built once from the problem's original graphs;
    only the working set changes between calls.

    Args:
        cost: Cost factors of the QP
        equalities: Equality constraints of the QP
        inequalities: Inequality constraints of the QP
    """

    def __init__(
        self,
        cost: GaussianFactorGraph,
        equalities: EqualityFactorGraph,
        inequalities: InequalityFactorGraph,
    ) -> None:
        self.cost = cost
        self.equalities = equalities
        self.inequalities = inequalities
        self.cost_variable_index = VariableIndex(cost)
        self.equality_variable_index = VariableIndex(equalities)
        self.inequality_variable_index = VariableIndex(inequalities)

        keys = {}
        for key in list(self.equality_variable_index) + list(self.inequality_variable_index):
            keys[key] = None
        self.constrained_keys: Tuple[Key, ...] = tuple(keys)

    def collect_dual_jacobians(
        self,
        key: Key,
        graph: FactorGraph,
        variable_index: VariableIndex,
    ) -> List[Tuple[Key, np.ndarray]]:
        """
        (dual key, A') pairs of every active factor of ``graph`` touching ``key``.

        Inactive factors are skipped: they do not enter the Lagrangian.
        """
        terms: List[Tuple[Key, np.ndarray]] = []
        if key not in variable_index:
            return terms
        for i in variable_index[key]:
            if not graph.is_active(i):
                continue
            factor = graph.at(i)
            terms.append((factor.dual_key, factor.get_a(key).T))
        return terms

    def create_dual_factor(
        self,
        key: Key,
        working_set: WorkingSet,
        delta: VectorValues,
    ) -> Optional[JacobianFactor]:
        """
        Stationarity row of ``key`` over the multipliers of active constraints.

        Returns None when no active constraint touches ``key``.
        """
        a_terms = self.collect_dual_jacobians(key, self.equalities, self.equality_variable_index)
        a_terms += self.collect_dual_jacobians(key, working_set, self.inequality_variable_index)
        if not a_terms:
            return None

        # Gradient of the unconstrained cost at delta
        b = np.zeros(a_terms[0][1].shape[0])
        for i in self.cost_variable_index.get(key, ()):
            b += self.cost.at(i).gradient(key, delta)
        return JacobianFactor(a_terms, b)

    def build_dual_graph(
        self,
        working_set: WorkingSet,
        delta: VectorValues,
    ) -> GaussianFactorGraph:
        """One dual factor per constrained key with at least one active constraint."""
        factors = []
        for key in self.constrained_keys:
            factor = self.create_dual_factor(key, working_set, delta)
            if factor is not None:
                factors.append(factor)
        return GaussianFactorGraph(factors)

    def solve_duals(
        self,
        working_set: WorkingSet,
        delta: VectorValues,
        permc_spec: str = "COLAMD",
    ) -> VectorValues:
        """Least-squares multipliers of the active constraints at ``delta``."""
        dual_graph = self.build_dual_graph(working_set, delta)
        if not len(dual_graph):
            return VectorValues()
        return dual_graph.optimize(permc_spec=permc_spec)
