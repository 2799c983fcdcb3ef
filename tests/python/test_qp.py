"""
Tests for the QP container and solver parameters.
"""

import numpy as np
import pytest
from scipy import sparse

from keyqp import (
    QP,
    DimensionError,
    HessianFactor,
    InvalidInputError,
    JacobianFactor,
    LinearEquality,
    LinearInequality,
    QPSolver,
    QPSolverParams,
    VectorValues,
)


class TestQP:
    """QP problem construction."""

    def test_sequences_become_graphs(self, box_qp):
        """Factor sequences are wrapped in typed graphs."""
        assert len(box_qp.cost) == 1
        assert len(box_qp.equalities) == 0
        assert len(box_qp.inequalities) == 2
        assert box_qp.dims() == {"x": 1, "y": 1}
        assert box_qp.num_constraints == 2

    def test_constrained_keys(self, pose_qp):
        """Constraint keys are collected by the solver in factor order."""
        assert QPSolver(pose_qp).constrained_keys == ("p", "l")

    def test_error(self, box_qp):
        """Objective is the cost graph error."""
        # (x-3)^2 + (y-3)^2 at the origin
        assert box_qp.error(VectorValues({"x": [0.0], "y": [0.0]})) == pytest.approx(18.0)
        assert box_qp.error(VectorValues({"x": [3.0], "y": [3.0]})) == pytest.approx(0.0)

    def test_check_feasibility(self, equality_qp, box_qp):
        """Violations are reported with kind, index and magnitude."""
        assert box_qp.is_feasible(VectorValues({"x": [1.0], "y": [2.0]}))
        violations = box_qp.check_feasibility(VectorValues({"x": [1.5], "y": [0.0]}))
        assert violations == [("inequality", 0, pytest.approx(0.5))]

        violations = equality_qp.check_feasibility(VectorValues({"x": [1.0], "y": [0.0]}))
        assert violations == [("equality", 0, pytest.approx(1.0))]

    def test_duplicate_dual_keys(self):
        """Two constraints may not share a dual key."""
        with pytest.raises(InvalidInputError):
            QP(
                cost=[HessianFactor(["x"], [[1.0]], [0.0])],
                inequalities=[
                    LinearInequality({"x": [1.0]}, 1.0, "lam"),
                    LinearInequality({"x": [-1.0]}, 1.0, "lam"),
                ],
            )

    def test_dual_key_collides_with_variable(self):
        """A dual key may not reuse a variable key."""
        with pytest.raises(InvalidInputError):
            QP(
                cost=[HessianFactor(["x"], [[1.0]], [0.0])],
                equalities=[LinearEquality({"x": [[1.0]]}, [0.0], dual_key="x")],
            )

    def test_dimension_mismatch_across_graphs(self):
        """A key must have one dimension across all graphs."""
        with pytest.raises(DimensionError):
            QP(
                cost=[JacobianFactor({"p": np.eye(2)}, [0.0, 0.0])],
                inequalities=[LinearInequality({"p": [1.0]}, 1.0, "lam")],
            )

    def test_constraint_in_cost_rejected(self):
        """Constraint factors do not belong in the cost graph."""
        with pytest.raises(InvalidInputError):
            QP(cost=[LinearEquality({"x": [[1.0]]}, [0.0], dual_key="e")])


class TestFromMatrices:
    """Matrix convenience builder."""

    def test_keys_and_dual_keys(self):
        """Default variable and dual keys are generated."""
        G = np.array([[2.0, 0.5], [0.5, 1.0]])
        qp = QP.from_matrices(
            G, [1.0, 1.0],
            A_eq=[[1.0, 1.0]], b_eq=[1.0],
            A_ineq=[[1.0, 0.0], [0.0, -1.0]], b_ineq=[0.5, 0.0],
        )
        assert qp.keys() == ["x0", "x1"]
        assert [f.dual_key for f in qp.equalities] == ["eq0"]
        assert [f.dual_key for f in qp.inequalities] == ["ineq0", "ineq1"]
        # Zero coefficients are dropped from the constraint rows
        assert qp.inequalities.at(1).keys == ("x1",)

    def test_cost_matches_matrix_form(self):
        """Cost graph reproduces 0.5 x'Gx - g'x + f0."""
        rng = np.random.default_rng(0)
        M = rng.standard_normal((4, 4))
        G = M @ M.T + np.eye(4)
        g = rng.standard_normal(4)
        qp = QP.from_matrices(sparse.csr_matrix(G), g, f0=1.5)

        x = rng.standard_normal(4)
        values = VectorValues({f"x{i}": [x[i]] for i in range(4)})
        assert qp.error(values) == pytest.approx(0.5 * x @ G @ x - g @ x + 1.5)

    def test_custom_keys(self):
        """Caller-supplied variable keys are used."""
        qp = QP.from_matrices(np.eye(2), [0.0, 0.0], keys=["a", "b"])
        assert qp.keys() == ["a", "b"]

    def test_bad_shapes(self):
        """Inconsistent matrix shapes are rejected."""
        with pytest.raises(DimensionError):
            QP.from_matrices(np.eye(3), [0.0, 0.0])
        with pytest.raises(DimensionError):
            QP.from_matrices(np.eye(2), [0.0, 0.0], A_ineq=[[1.0, 1.0, 1.0]], b_ineq=[1.0])
        with pytest.raises(DimensionError):
            QP.from_matrices(np.eye(2), [0.0, 0.0], A_ineq=[[1.0, 1.0]], b_ineq=[1.0, 2.0])
        with pytest.raises(InvalidInputError):
            QP.from_matrices(np.eye(2), [0.0, 0.0], A_ineq=[[1.0, 1.0]])

    def test_empty_row(self):
        """An all-zero constraint row is rejected."""
        with pytest.raises(InvalidInputError):
            QP.from_matrices(np.eye(2), [0.0, 0.0], A_ineq=[[0.0, 0.0]], b_ineq=[1.0])


class TestQPSolverParams:
    """Solver configuration."""

    def test_defaults(self):
        """Default parameter values."""
        params = QPSolverParams()
        assert params.max_iterations == 1000
        assert params.permc_spec == "COLAMD"
        assert not params.record_history

    def test_from_dict_aliases(self):
        """Short params-dict spellings map to fields."""
        params = QPSolverParams.from_dict({"tol": 1e-6, "max_iters": 50})
        assert params.active_tolerance == 1e-6
        assert params.dual_sign_tolerance == 1e-6
        assert params.feasibility_tolerance == 1e-6
        assert params.max_iterations == 50

    def test_from_dict_field_names(self):
        """Field names are accepted directly."""
        params = QPSolverParams.from_dict({"active_tolerance": 1e-5, "record_history": True})
        assert params.active_tolerance == 1e-5
        assert params.record_history

    def test_from_none(self):
        """None gives the defaults."""
        assert QPSolverParams.from_dict(None) == QPSolverParams()

    def test_invalid_values(self):
        """Invalid parameters raise InvalidInputError."""
        with pytest.raises(InvalidInputError):
            QPSolverParams(max_iterations=0)
        with pytest.raises(InvalidInputError):
            QPSolverParams(active_tolerance=-1.0)
        with pytest.raises(InvalidInputError):
            QPSolverParams(permc_spec="AMD")
        with pytest.raises(InvalidInputError):
            QPSolverParams.from_dict({"verbose": True})
