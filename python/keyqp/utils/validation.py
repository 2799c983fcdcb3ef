"""Input validation utilities."""

from typing import Hashable, Iterable, Mapping, Tuple

import numpy as np


def validate_initial_values(
    values: Mapping,
    dims: Mapping,
    required_keys: Iterable[Hashable] = (),
) -> Tuple[bool, str]:
    """
    Validate initial values against the problem's key dimensions.

    Args:
        values: Key -> vector mapping supplied by the caller
        dims: Key -> dimension of every variable of the problem
        required_keys: Keys that must be present (constrained keys)

    Returns:
        (is_valid, error_message) tuple
    """
    try:
        unknown = [k for k in values if k not in dims]
        if unknown:
            return False, f"values given for unknown keys {unknown}"

        missing = [k for k in required_keys if k not in values]
        if missing:
            return False, f"no initial value for constrained keys {missing}"

        for key, value in values.items():
            vec = np.asarray(value, dtype=np.float64).ravel()
            if vec.shape[0] != dims[key]:
                return False, f"key {key!r} has dimension {vec.shape[0]}, expected {dims[key]}"
            if not np.all(np.isfinite(vec)):
                return False, f"key {key!r} contains non-finite values"

        return True, ""

    except (TypeError, ValueError) as e:
        return False, str(e)


def validate_dual_values(duals: Mapping, dual_keys: Iterable[Hashable]) -> Tuple[bool, str]:
    """
    Validate warm-start duals.

    Returns:
        (is_valid, error_message) tuple
    """
    dual_keys = set(dual_keys)
    unknown = [k for k in duals if k not in dual_keys]
    if unknown:
        return False, f"duals given for unknown dual keys {unknown}"
    for key, value in duals.items():
        if not np.all(np.isfinite(np.asarray(value, dtype=np.float64))):
            return False, f"dual {key!r} contains non-finite values"
    return True, ""
