"""Finite-difference coefficients for arbitrary integer grids.

The weights ``c`` of a stencil with offsets ``g_0, ..., g_{n-1}`` solve the
Taylor-matching system

.. math::

    \\sum_j \\frac{g_j^i}{i!} c_j = \\delta_{i d}, \\qquad i = 0, \\dots, n - 1,

so that ``sum_j c_j f(x + h g_j) / h**d`` reproduces the ``d``-th derivative
of every polynomial of degree below ``n``. The system is a scaled
Vandermonde matrix which is badly conditioned for wide stencils, so it is
solved in exact rational arithmetic and only the solution is rounded to
float64.

Examples:
--------
>>> from fdkit.finite.coefficients import stencil_coefficients
>>> stencil_coefficients((-1, 0, 1), 2).tolist()
[1.0, -2.0, 1.0]
"""

from __future__ import annotations

import math
from functools import lru_cache

import numpy as np
import sympy
from numpy.typing import NDArray

from fdkit.logger import fdkit_logger
from fdkit.utils.types import Grid
from fdkit.utils.validate import validate_grid

__all__ = [
    "stencil_coefficients",
    "neighbourhood_coefficients",
    "truncation_constant",
]


@lru_cache(maxsize=None)
def _solve_exact(grid: tuple[int, ...], derivative_order: int) -> tuple[float, ...]:
    """Solves the scaled Vandermonde system for a validated grid."""
    n = len(grid)
    matrix = sympy.Matrix(
        n,
        n,
        lambda i, j: sympy.Rational(grid[j]) ** i / sympy.factorial(i),
    )
    rhs = sympy.zeros(n, 1)
    rhs[derivative_order] = 1
    try:
        weights = matrix.LUsolve(rhs)
    except (ValueError, ZeroDivisionError) as exc:
        raise ValueError(
            f"Singular coefficient system for grid {list(grid)} "
            f"and derivative order {derivative_order}."
        ) from exc

    fdkit_logger.debug(
        "Computed %d coefficients for derivative order %d on grid %s.",
        n,
        derivative_order,
        list(grid),
    )
    return tuple(float(w) for w in weights)


def stencil_coefficients(
    grid: Grid,
    derivative_order: int,
) -> NDArray[np.float64]:
    """Computes finite-difference coefficients for a grid and derivative order.

    Coefficients are cached per ``(grid, derivative_order)``, so building
    many methods on the same grid only pays for the exact solve once.

    Args:
        grid: Distinct integer offsets in units of the step size.
        derivative_order: The order of the derivative to approximate. Must be
            smaller than the number of offsets.

    Returns:
        A fresh float64 array of coefficients, one per offset.

    Raises:
        TypeError: If the offsets are not integers.
        ValueError: If the grid is empty, has duplicate offsets or too few
            points for ``derivative_order``.
    """
    offsets = validate_grid(grid, derivative_order)
    return np.array(_solve_exact(offsets, int(derivative_order)), dtype=np.float64)


def neighbourhood_coefficients(
    grid: Grid,
    derivative_order: int,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Computes coefficients estimating the derivative at three nearby points.

    The three coefficient vectors act on the *same* samples as the grid but
    estimate the derivative one or two steps away from the evaluation point.
    Shifts are chosen so that the neighbourhood stays inside the sampled
    region: forward grids look back, backward grids look ahead and mixed
    grids look both ways.

    Args:
        grid: Distinct integer offsets in units of the step size.
        derivative_order: The order of the derivative to approximate.

    Returns:
        A tuple of three coefficient arrays.
    """
    offsets = np.asarray(validate_grid(grid, derivative_order), dtype=np.int64)
    if np.all(offsets >= 0):
        shifts = (-2, -1, 0)
    elif np.all(offsets <= 0):
        shifts = (0, 1, 2)
    else:
        shifts = (-1, 0, 1)
    return tuple(stencil_coefficients(offsets + s, derivative_order) for s in shifts)


def truncation_constant(
    grid: Grid,
    coefficients: NDArray[np.float64],
) -> float:
    """Computes the constant of the leading truncation term of a stencil.

    For an ``n``-point stencil the first Taylor term that is not matched is
    of degree ``n``; its contribution is bounded by
    ``|f^(n)| * sum_i |c_i g_i^n| / n!``. This returns that sum divided by
    ``n!``.

    Args:
        grid: Integer offsets of the stencil.
        coefficients: The stencil coefficients.

    Returns:
        The truncation constant as a float.
    """
    offsets = np.asarray(grid, dtype=np.float64)
    n = offsets.size
    moments = np.abs(np.asarray(coefficients, dtype=np.float64) * offsets**n)
    return float(np.sum(moments) / math.factorial(n))
