"""Solver configuration."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from .exceptions import InvalidInputError

_PERMC_SPECS = ("COLAMD", "MMD_AT_PLUS_A", "MMD_ATA", "NATURAL")


@dataclass(frozen=True)
class QPSolverParams:
    """
    Tolerances and limits of the active-set solver.

    Attributes:
        active_tolerance: |a'x - b| below which an inequality is on its boundary
        dual_sign_tolerance: multiplier above which an active inequality leaves
        feasibility_tolerance: violation above which an initial point is infeasible
        max_iterations: iteration cap of ``optimize``/``solve``
        permc_spec: column ordering used by the sparse LU factorization
        record_history: keep every intermediate QPState in the result
    """

    active_tolerance: float = 1e-7
    dual_sign_tolerance: float = 1e-9
    feasibility_tolerance: float = 1e-7
    max_iterations: int = 1000
    permc_spec: str = "COLAMD"
    record_history: bool = False

    def __post_init__(self) -> None:
        for name in ("active_tolerance", "dual_sign_tolerance", "feasibility_tolerance"):
            if getattr(self, name) < 0:
                raise InvalidInputError(f"{name} must be non-negative")
        if self.max_iterations < 1:
            raise InvalidInputError("max_iterations must be positive")
        if self.permc_spec not in _PERMC_SPECS:
            raise InvalidInputError(
                f"permc_spec must be one of {_PERMC_SPECS}, got {self.permc_spec!r}"
            )

    @classmethod
    def from_dict(cls, params: Optional[Dict[str, Any]] = None) -> "QPSolverParams":
        """
        Build parameters from a plain dict.

        Accepts the field names plus the short forms ``max_iters`` and
        ``tolerance``/``tol`` (which sets all three tolerances).
        """
        params = dict(params or {})
        kwargs: Dict[str, Any] = {}

        tol = params.pop("tolerance", params.pop("tol", None))
        if tol is not None:
            kwargs["active_tolerance"] = tol
            kwargs["dual_sign_tolerance"] = tol
            kwargs["feasibility_tolerance"] = tol
        max_iters = params.pop("max_iterations", params.pop("max_iters", None))
        if max_iters is not None:
            kwargs["max_iterations"] = int(max_iters)

        names = {f.name for f in fields(cls)}
        unknown = sorted(set(params) - names)
        if unknown:
            raise InvalidInputError(f"unknown solver parameters: {unknown}")
        kwargs.update(params)
        return cls(**kwargs)
