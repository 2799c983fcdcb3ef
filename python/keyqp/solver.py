"""
keyqp Active-Set Solver
=======================

Primal active-set method (Nocedal & Wright, Numerical Optimization,
Alg. 16.3) over keyed factor graphs.

Each iteration solves the equality-constrained QP defined by the cost,
the equalities and the current working set. If the full step toward that
solution stays feasible, the multipliers of the working set are computed
from the dual graph and the worst active inequality (largest positive
multiplier) is dropped, or the iteration stops if there is none.
Otherwise the step is cut at the first inactive inequality it would
cross, which then joins the working set.

The solver requires a feasible initial point; it has no phase-1 LP.
"""

from __future__ import annotations

import logging
import time
import warnings
from typing import Any, Dict, Hashable, Iterator, List, Mapping, Optional, Tuple, Union

import numpy as np

from .config import QPSolverParams
from .dual_graph import DualGraphBuilder
from .exceptions import InfeasibleInitialValuesError, InvalidInputError, SingularSystemError
from .linear.factor_graph import FactorGraph, GaussianFactorGraph, InequalityFactorGraph
from .linear.factors import JacobianFactor
from .linear.variable_index import VariableIndex
from .linear.vector_values import VectorValues
from .qp import QP
from .result import QPResult, Status
from .state import QPState
from .utils.validation import validate_dual_values, validate_initial_values
from .working_set import WorkingSet

logger = logging.getLogger(__name__)

Key = Hashable


class QPSolver:
    """
    Active-set QP solver for a fixed problem.

    The solver only holds read-only problem data, so one instance can be
    reused for several solves and independent instances can run
    concurrently.

    Args:
        qp: The QP problem
        params: QPSolverParams, or a dict accepted by QPSolverParams.from_dict

    Example:
        >>> solver = QPSolver(qp)
        >>> values, duals = solver.optimize(VectorValues({"x": [5.0]}))
    """

    def __init__(
        self,
        qp: QP,
        params: Optional[Union[QPSolverParams, Dict[str, Any]]] = None,
    ) -> None:
        if not isinstance(qp, QP):
            raise InvalidInputError(f"expected a QP, got {type(qp).__name__}")
        self.qp = qp
        self.params = params if isinstance(params, QPSolverParams) else QPSolverParams.from_dict(params)

        # Cost factors plus the equalities; active inequalities are appended per iteration
        self.base_graph = GaussianFactorGraph(list(qp.cost) + list(qp.equalities))
        self._dual_builder = DualGraphBuilder(qp.cost, qp.equalities, qp.inequalities)
        self._dims = qp.dims()
        self._dual_keys = [f.dual_key for f in list(qp.equalities) + list(qp.inequalities)]

    def __repr__(self) -> str:
        return f"QPSolver({self.qp!r})"

    @property
    def constrained_keys(self) -> Tuple[Key, ...]:
        """Keys touched by any equality or inequality."""
        return self._dual_builder.constrained_keys

    @property
    def cost_variable_index(self) -> VariableIndex:
        return self._dual_builder.cost_variable_index

    @property
    def equality_variable_index(self) -> VariableIndex:
        return self._dual_builder.equality_variable_index

    @property
    def inequality_variable_index(self) -> VariableIndex:
        return self._dual_builder.inequality_variable_index

    # ------------------------------------------------------------------
    # Dual graph
    # ------------------------------------------------------------------
    def collect_dual_jacobians(
        self,
        key: Key,
        graph: FactorGraph,
        variable_index: VariableIndex,
    ) -> List[Tuple[Key, np.ndarray]]:
        """(dual key, A') pairs of the active factors of ``graph`` touching ``key``."""
        return self._dual_builder.collect_dual_jacobians(key, graph, variable_index)

    def create_dual_factor(
        self,
        key: Key,
        working_set: WorkingSet,
        delta: VectorValues,
    ) -> Optional[JacobianFactor]:
        """Stationarity row of ``key`` over the active multipliers, or None."""
        return self._dual_builder.create_dual_factor(key, working_set, delta)

    def build_dual_graph(self, working_set: WorkingSet, delta: VectorValues) -> GaussianFactorGraph:
        """Linear system in the multipliers of the equalities and the working set."""
        return self._dual_builder.build_dual_graph(working_set, delta)

    # ------------------------------------------------------------------
    # Step engine
    # ------------------------------------------------------------------
    def solve_with_current_working_set(self, working_set: WorkingSet) -> VectorValues:
        """
        Minimize the cost subject to the equalities and the working set.

        Raises:
            SingularSystemError: If the working set leaves the system singular
        """
        graph = self.base_graph + [factor for _, factor in working_set.active_factors()]
        graph_dims = graph.dims()
        undetermined = [k for k in self._dims if k not in graph_dims]
        if undetermined:
            raise SingularSystemError(
                "Variables only appear in inactive inequalities", keys=undetermined
            )
        ordering = [k for k in self._dims if k in graph_dims]
        return graph.optimize(ordering=ordering, permc_spec=self.params.permc_spec)

    def identify_leaving_constraint(self, working_set: WorkingSet, lambdas: Mapping) -> int:
        """
        Active inequality with the largest positive multiplier.

        At an optimum of a <= 0 constrained minimization every active
        inequality has lambda <= 0. One with lambda > 0 pulls the solution
        toward the infeasible side, so removing it lowers the cost.

        Returns:
            Index of the constraint in the inequality graph, or -1 if every
            active multiplier is <= dual_sign_tolerance. Ties go to the
            lowest index.
        """
        max_lambda = self.params.dual_sign_tolerance
        worst = -1
        for i, factor in working_set.active_factors():
            lam = float(np.asarray(lambdas[factor.dual_key])[0])
            if lam > max_lambda:
                max_lambda = lam
                worst = i
        return worst

    def compute_step_size(
        self,
        working_set: WorkingSet,
        xk: VectorValues,
        p: VectorValues,
    ) -> Tuple[float, int]:
        """
        Largest alpha in [0, 1] keeping xk + alpha * p feasible.

        Only inactive inequalities are checked. The slack s = b - a'x of a
        constraint changes at rate -a'p along p, so only constraints with
        a'p > 0 can block the step, at alpha = s / a'p. A rate at or below
        active_tolerance * max(1, ||a|| ||p||) counts as zero.

        Returns:
            (alpha, index) of the first blocking constraint (lowest index on
            ties), or (1.0, -1) if the full step is feasible
        """
        p_norm = p.norm()
        min_alpha = 1.0
        closest = -1
        for i, factor in working_set.inactive_factors():
            a_tp = factor.dot_product_row(p)
            if a_tp <= self.params.active_tolerance * max(1.0, factor.row_norm() * p_norm):
                continue
            slack = max(0.0, -factor.error(xk))
            alpha = slack / a_tp
            if alpha < min_alpha:
                min_alpha = alpha
                closest = i
        return min_alpha, closest

    def identify_active_constraints(
        self,
        inequalities: InequalityFactorGraph,
        initial_values: Mapping,
        duals: Optional[Mapping] = None,
        use_warm_start: bool = True,
    ) -> WorkingSet:
        """
        Initial working set at a feasible point.

        An inequality is on its boundary if |a'x - b| <= active_tolerance.
        With a warm start (``use_warm_start`` and non-empty ``duals``) only
        boundary constraints whose dual key appears in ``duals`` are made
        active; otherwise every boundary constraint is.

        Raises:
            InfeasibleInitialValuesError: If some a'x - b > feasibility_tolerance
        """
        warm = use_warm_start and duals is not None and len(duals) > 0
        active = []
        violations = []
        errors = inequalities.errors(initial_values)
        for i, factor in enumerate(inequalities):
            error = float(errors[i])
            if error > self.params.feasibility_tolerance:
                violations.append(("inequality", i, error))
                continue
            on_boundary = abs(error) <= self.params.active_tolerance
            if warm:
                on_boundary = on_boundary and factor.dual_key in duals
            if on_boundary:
                active.append(i)
        if violations:
            raise InfeasibleInitialValuesError(violations=violations)
        return WorkingSet(inequalities, active)

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------
    def initial_state(
        self,
        initial_values: Mapping,
        duals: Optional[Mapping] = None,
        use_warm_start: bool = True,
    ) -> QPState:
        """
        Validate the starting point and build the first QPState.

        Keys that appear only in cost factors may be omitted from
        ``initial_values``; they start at zero.

        Raises:
            InvalidInputError: If values or duals are malformed
            InfeasibleInitialValuesError: If the point violates a constraint
        """
        is_valid, message = validate_initial_values(
            initial_values, self._dims, required_keys=self.constrained_keys
        )
        if not is_valid:
            raise InvalidInputError(message)
        duals = VectorValues(duals) if duals is not None else VectorValues()
        is_valid, message = validate_dual_values(duals, self._dual_keys)
        if not is_valid:
            raise InvalidInputError(message)

        values = VectorValues(
            (k, initial_values[k] if k in initial_values else np.zeros(d))
            for k, d in self._dims.items()
        )

        violations = self.qp.check_feasibility(values, self.params.feasibility_tolerance)
        if violations:
            logger.debug(f"Infeasible initial values: {violations}")
            raise InfeasibleInitialValuesError(violations=violations)

        working_set = self.identify_active_constraints(
            self.qp.inequalities, values, duals, use_warm_start
        )
        logger.debug(
            f"Initial working set {list(working_set.active_indices)} "
            f"({'warm' if use_warm_start and len(duals) else 'cold'} start)"
        )
        return QPState(values, duals, working_set, converged=False, iterations=0)

    def iterate(self, state: QPState) -> QPState:
        """
        One active-set iteration; returns a new state.

        A converged state is returned unchanged.
        """
        if state.converged:
            return state

        working_set = state.working_set
        solution = self.solve_with_current_working_set(working_set)
        p = solution - state.values
        alpha, entering = self.compute_step_size(working_set, state.values, p)

        if entering >= 0:
            # Blocked: partial step, duals are left as they were
            logger.debug(
                f"iteration {state.iterations + 1}: step {alpha:.6g}, "
                f"constraint {entering} enters"
            )
            return state.evolve(
                values=state.values + alpha * p,
                working_set=working_set.with_added(entering),
                converged=False,
                iterations=state.iterations + 1,
            )

        duals = self._dual_builder.solve_duals(working_set, solution, self.params.permc_spec)
        leaving = self.identify_leaving_constraint(working_set, duals)
        if leaving >= 0:
            logger.debug(f"iteration {state.iterations + 1}: full step, constraint {leaving} leaves")
            working_set = working_set.with_removed(leaving)
        else:
            logger.debug(f"iteration {state.iterations + 1}: full step, KKT conditions hold")
        return QPState(
            values=solution,
            duals=duals,
            working_set=working_set,
            converged=leaving < 0,
            iterations=state.iterations + 1,
        )

    def iterates(self, state: QPState, max_iterations: Optional[int] = None) -> Iterator[QPState]:
        """
        Yield successive states from ``state``.

        Stops after the converged state or once ``max_iterations`` (default:
        params.max_iterations) total iterations have been performed.
        """
        max_iterations = self.params.max_iterations if max_iterations is None else max_iterations
        while not state.converged and state.iterations < max_iterations:
            state = self.iterate(state)
            yield state

    def solve(
        self,
        initial_values: Mapping,
        duals: Optional[Mapping] = None,
        use_warm_start: bool = True,
    ) -> QPResult:
        """
        Run the active-set method from a feasible point.

        Args:
            initial_values: Feasible starting point
            duals: Multipliers of a previous solve, for warm starting
            use_warm_start: Seed the working set from ``duals``

        Returns:
            QPResult; status is MAX_ITERATIONS if the cap was hit

        Raises:
            InfeasibleInitialValuesError: If ``initial_values`` is infeasible
            SingularSystemError: If a working-set system is singular
        """
        start_time = time.perf_counter()
        state = self.initial_state(initial_values, duals, use_warm_start)
        history = [state] if self.params.record_history else []
        for state in self.iterates(state):
            if self.params.record_history:
                history.append(state)

        if state.converged:
            status = Status.CONVERGED
            logger.info(
                f"Converged in {state.iterations} iterations, "
                f"{state.working_set.size} active inequalities"
            )
        else:
            status = Status.MAX_ITERATIONS
            logger.warning(f"Not converged after {state.iterations} iterations")

        return QPResult(
            status=status,
            values=state.values,
            duals=state.duals,
            objective=self.qp.error(state.values),
            iterations=state.iterations,
            working_set=state.working_set.active_indices,
            solve_time=time.perf_counter() - start_time,
            history=history,
        )

    def optimize(
        self,
        initial_values: Mapping,
        duals: Optional[Mapping] = None,
        use_warm_start: bool = True,
    ) -> Tuple[VectorValues, VectorValues]:
        """
        Solve and return the (primal, dual) pair.

        The caller must provide a feasible initial value. If the iteration
        cap is hit, a RuntimeWarning is issued and the last iterate is
        returned; use ``solve`` to get the status instead.
        """
        result = self.solve(initial_values, duals, use_warm_start)
        if not result.status.is_successful:
            warnings.warn(
                f"QPSolver returned {result.status} after {result.iterations} iterations.",
                RuntimeWarning,
            )
        return result.values, result.duals


def solve_qp(
    qp: QP,
    initial_values: Mapping,
    duals: Optional[Mapping] = None,
    use_warm_start: bool = True,
    params: Optional[Union[QPSolverParams, Dict[str, Any]]] = None,
) -> QPResult:
    """
    Solve a QP with the active-set method.

    Args:
        qp: The QP problem
        initial_values: Feasible starting point
        duals: Previous multipliers for warm starting
        use_warm_start: Seed the working set from ``duals``
        params: Solver parameters (tolerance, max_iterations, etc.)

    Returns:
        QPResult with status, primal values and duals
    """
    return QPSolver(qp, params).solve(initial_values, duals, use_warm_start)
