"""Validation utilities for FDKit."""

from __future__ import annotations

import math
from numbers import Integral, Real
from typing import Sequence

import numpy as np

__all__ = [
    "validate_order",
    "validate_grid",
    "validate_max_range",
    "validate_positive",
    "validate_contract",
]


def validate_order(value: int, *, name: str, minimum: int = 0) -> int:
    """Validates an integer order (accuracy, derivative or adaptation depth).

    Args:
        value: The order to validate.
        name: Name used in error messages.
        minimum: The smallest admissible value.

    Returns:
        The order as a Python ``int``.

    Raises:
        TypeError: If ``value`` is not an integer.
        ValueError: If ``value`` is smaller than ``minimum``.
    """
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{name} must be an integer; got {type(value).__name__}.")
    value = int(value)
    if value < minimum:
        raise ValueError(f"{name} must be at least {minimum}; got {value}.")
    return value


def validate_grid(grid: Sequence[int] | np.ndarray, derivative_order: int) -> tuple[int, ...]:
    """Validates a finite-difference grid of integer offsets.

    Requirements:
      - The grid is a non-empty 1D sequence of integers.
      - The offsets are pairwise distinct, otherwise the coefficient
        system is singular.
      - The derivative order is strictly smaller than the number of points.

    Args:
        grid: Integer offsets in units of the step size.
        derivative_order: The derivative order the grid is meant to resolve.

    Returns:
        The grid as a tuple of Python ints.

    Raises:
        TypeError: If an offset is not an integer.
        ValueError: If the grid is empty, not 1D, has duplicate offsets,
            or has too few points for ``derivative_order``.
    """
    arr = np.asarray(grid)
    if arr.ndim != 1:
        raise ValueError(f"grid must be 1D; got shape {arr.shape}.")
    if arr.size == 0:
        raise ValueError("grid must contain at least one offset.")
    if not np.issubdtype(arr.dtype, np.integer):
        raise TypeError(f"grid offsets must be integers; got dtype {arr.dtype}.")

    offsets = tuple(int(g) for g in arr)
    if len(set(offsets)) != len(offsets):
        raise ValueError(f"grid offsets must be distinct; got {list(offsets)}.")

    derivative_order = validate_order(derivative_order, name="derivative_order")
    if derivative_order >= len(offsets):
        raise ValueError(
            f"a {len(offsets)}-point grid cannot resolve a derivative of order "
            f"{derivative_order}; at least {derivative_order + 1} points are needed."
        )
    return offsets


def validate_max_range(max_range: float) -> float:
    """Validates the largest distance a method may sample away from the evaluation point.

    Args:
        max_range: Non-negative bound, ``math.inf`` for no bound.

    Returns:
        The bound as a float.

    Raises:
        TypeError: If ``max_range`` is not a real number.
        ValueError: If ``max_range`` is negative or NaN.
    """
    if not isinstance(max_range, Real):
        raise TypeError(f"max_range must be a real number; got {type(max_range).__name__}.")
    max_range = float(max_range)
    if math.isnan(max_range) or max_range < 0:
        raise ValueError(f"max_range must be non-negative; got {max_range}.")
    return max_range


def validate_positive(value: float, *, name: str) -> float:
    """Validates a strictly positive, finite real number."""
    if not isinstance(value, Real):
        raise TypeError(f"{name} must be a real number; got {type(value).__name__}.")
    value = float(value)
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"{name} must be positive and finite; got {value}.")
    return value


def validate_contract(contract: float) -> float:
    """Validates a step contraction factor, which must lie in ``(0, 1)``."""
    contract = validate_positive(contract, name="contract")
    if contract >= 1:
        raise ValueError(f"contract must lie in (0, 1); got {contract}.")
    return contract
