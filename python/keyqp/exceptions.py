"""
keyqp Exception Classes
=======================

Custom exceptions for keyqp error handling.
"""

from typing import Any, Iterable, List, Optional, Tuple


class KeyqpError(Exception):
    """Base exception for all keyqp errors."""
    
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InfeasibleInitialValuesError(KeyqpError):
    """
    Raised when the initial values violate the QP constraints.
    
    The active-set solver has no phase-1 LP, so the caller must provide
    a feasible starting point. ``violations`` lists the offending
    constraints as ``(kind, index, value)`` tuples, where ``kind`` is
    ``"equality"`` or ``"inequality"``.
    """
    
    def __init__(
        self,
        message: str = (
            "An infeasible initial value was provided for the QPSolver. "
            "This solver does not handle infeasible initial points."
        ),
        violations: Optional[List[Tuple[str, int, float]]] = None,
    ) -> None:
        self.violations = list(violations or [])
        super().__init__(message)


class SingularSystemError(KeyqpError):
    """
    Raised when a linear system cannot be factorized.
    
    This usually means the working set is degenerate (linearly dependent
    active constraints) or some variable is not determined by the cost.
    """
    
    def __init__(
        self,
        message: str = "Linear system is singular",
        keys: Optional[Iterable[Any]] = None,
    ) -> None:
        self.keys = tuple(keys or ())
        if self.keys:
            message = f"{message} (keys involved: {list(self.keys)})"
        super().__init__(message)


class DimensionError(KeyqpError):
    """
    Raised when per-key dimensions are inconsistent.
    """
    
    def __init__(self, message: str) -> None:
        super().__init__(f"Dimension mismatch: {message}")


class InvalidInputError(KeyqpError):
    """
    Raised when input data is invalid.
    
    Examples: NaN values, duplicate dual keys, missing initial values.
    """
    
    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid input: {message}")
