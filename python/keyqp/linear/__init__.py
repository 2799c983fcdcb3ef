"""
keyqp Linear Substrate
======================

Sparse, keyed, block-structured linear algebra used by the QP solver:
vectors indexed by variable key, linear factors, factor graphs and the
sparse KKT solve.
"""

from .vector_values import VectorValues
from .factors import HessianFactor, JacobianFactor, LinearEquality, LinearInequality
from .factor_graph import (
    EqualityFactorGraph,
    FactorGraph,
    GaussianFactorGraph,
    InequalityFactorGraph,
)
from .variable_index import VariableIndex

__all__ = [
    "VectorValues",
    "JacobianFactor",
    "HessianFactor",
    "LinearEquality",
    "LinearInequality",
    "FactorGraph",
    "GaussianFactorGraph",
    "EqualityFactorGraph",
    "InequalityFactorGraph",
    "VariableIndex",
]
