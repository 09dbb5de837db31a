"""Core utilities shared by the Jacobian, JVP, VJP and gradient routines.

The calculus routines work on real vectors. Arguments and outputs of any
structure supported by :func:`~fdkit.utils.to_vec.to_vec` are flattened
first, and each derivative is then a one-dimensional finite difference of a
function of a scalar perturbation evaluated at zero.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from functools import partial
from typing import Any

import numpy as np
from numpy.typing import NDArray

from fdkit.finite.finite_difference import FiniteDifferenceMethod
from fdkit.utils.concurrency import parallel_execute, resolve_workers
from fdkit.utils.to_vec import Reconstructor, to_vec

__all__ = [
    "flatten_arguments",
    "flat_function",
    "directional_derivative",
    "jacobian_matrix",
]


def flatten_arguments(args: Sequence[Any]) -> tuple[NDArray[np.floating], Reconstructor]:
    """Flattens positional arguments into a single vector.

    Args:
        args: The arguments of the function.

    Returns:
        The concatenated vector and a reconstructor returning a tuple of
        arguments.
    """
    vec, rebuild = to_vec(tuple(args))
    return vec, rebuild


def flat_function(function: Callable[..., Any], rebuild: Reconstructor) -> Callable[[NDArray], NDArray]:
    """Wraps ``function`` as a map from a real vector to a real vector.

    Args:
        function: The original function of several structured arguments.
        rebuild: Reconstructor of the argument tuple, as returned by
            :func:`flatten_arguments`.

    Returns:
        ``v -> to_vec(function(*rebuild(v)))[0]``.
    """

    def flat(v: NDArray) -> NDArray:
        return to_vec(function(*rebuild(v)))[0]

    return flat


def directional_derivative(
    method: FiniteDifferenceMethod,
    flat: Callable[[NDArray], NDArray],
    x: NDArray[np.floating],
    direction: NDArray[np.floating],
) -> NDArray[np.floating]:
    """Differentiates ``flat`` at ``x`` along ``direction``.

    The derivative is ``method`` applied to ``eps -> flat(x + eps * direction)``
    at ``eps = 0``, with ``eps`` of the dtype of ``x``.

    Args:
        method: A finite-difference method for the first derivative.
        flat: A function of real vectors returning real vectors.
        x: The base point.
        direction: The direction, with the same length as ``x``.

    Returns:
        The directional derivative as a one-dimensional array.
    """

    def along(eps: np.floating) -> NDArray:
        return flat(x + eps * direction)

    return np.atleast_1d(method(along, x.dtype.type(0)))


def _column(
    j: int,
    *,
    method: FiniteDifferenceMethod,
    flat: Callable[[NDArray], NDArray],
    x: NDArray[np.floating],
    size: int,
) -> NDArray[np.floating]:
    basis = np.zeros_like(x)
    basis[j] = 1
    column = directional_derivative(method, flat, x, basis)
    if column.size != size:
        raise ValueError(
            f"Expected an output of length {size} but the derivative along "
            f"component {j} has length {column.size}."
        )
    return column


def jacobian_matrix(
    method: FiniteDifferenceMethod,
    flat: Callable[[NDArray], NDArray],
    x: NDArray[np.floating],
    *,
    output_size: int,
    n_workers: int | None = 1,
) -> NDArray[np.floating]:
    """Builds the dense Jacobian of a vector function, one column per component of ``x``.

    Args:
        method: A finite-difference method for the first derivative.
        flat: A function of real vectors returning real vectors.
        x: The point at which the Jacobian is evaluated.
        output_size: Length of ``flat(x)``.
        n_workers: Number of threads over which the columns are spread.
            ``None`` uses one thread per hardware thread.

    Returns:
        Array of shape ``(output_size, x.size)``.

    Raises:
        ValueError: If a column does not have ``output_size`` entries.
    """
    n = int(x.size)
    if n == 0:
        return np.zeros((output_size, 0), dtype=x.dtype)
    if output_size == 0:
        return np.zeros((0, n), dtype=x.dtype)

    worker = partial(_column, method=method, flat=flat, x=x, size=output_size)
    columns = parallel_execute(
        worker,
        [(j,) for j in range(n)],
        n_workers=resolve_workers(n_workers, n),
    )
    return np.column_stack(columns).reshape(output_size, n)
