"""Utility helpers."""

from .validation import validate_dual_values, validate_initial_values

__all__ = ["validate_dual_values", "validate_initial_values"]
