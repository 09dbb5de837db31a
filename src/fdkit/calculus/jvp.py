"""Contains Jacobian-vector and vector-Jacobian products."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fdkit.calculus.calculus_core import (
    directional_derivative,
    flat_function,
    flatten_arguments,
)
from fdkit.calculus.jacobian import jacobian_flat
from fdkit.finite.finite_difference import FiniteDifferenceMethod
from fdkit.utils.to_vec import to_vec

__all__ = [
    "jvp",
    "vjp",
]


def jvp(
    method: FiniteDifferenceMethod,
    function: Callable[..., Any],
    *pairs: tuple[Any, Any],
) -> Any:
    """Computes the Jacobian-vector product ``J x_dot`` with a single finite difference.

    Args:
        method: A finite-difference method for the first derivative.
        function: The function to differentiate.
        *pairs: One ``(x, x_dot)`` pair per argument of ``function``: the
            point and the tangent. Each tangent must flatten to the same
            length as its point.

    Returns:
        The directional derivative of ``function`` along the tangents, with
        the same structure as ``function(*xs)``.

    Raises:
        ValueError: If no pairs are given or a tangent does not match its
            point in length.

    Example:
        >>> import numpy as np
        >>> from fdkit.calculus.jvp import jvp
        >>> from fdkit.finite.finite_difference import central_method
        >>> out = jvp(central_method(4, 1), lambda x, y: x * y, (2.0, 1.0), (3.0, 0.0))
        >>> bool(np.isclose(out, 3.0))
        True
    """
    if not pairs:
        raise ValueError("jvp needs at least one (x, x_dot) pair.")
    for i, pair in enumerate(pairs):
        if len(pair) != 2:
            raise ValueError(f"Argument {i} must be an (x, x_dot) pair; got {len(pair)} entries.")

    xs = tuple(x for x, _ in pairs)
    x, rebuild = flatten_arguments(xs)
    x_dot, _ = flatten_arguments(tuple(x_dot for _, x_dot in pairs))
    if x_dot.size != x.size:
        raise ValueError(
            f"The tangents flatten to {x_dot.size} entries but the points to {x.size}."
        )

    _, rebuild_output = to_vec(function(*xs))
    flat = flat_function(function, rebuild)
    return rebuild_output(directional_derivative(method, flat, x, x_dot.astype(x.dtype, copy=False)))


def vjp(
    method: FiniteDifferenceMethod,
    function: Callable[..., Any],
    y_bar: Any,
    *args: Any,
    n_workers: int | None = 1,
) -> tuple[Any, ...]:
    """Computes the vector-Jacobian product ``J^T y_bar``.

    The full Jacobian with respect to all flattened arguments is built first,
    so the cost grows with the total number of argument components.

    Args:
        method: A finite-difference method for the first derivative.
        function: The function to differentiate.
        y_bar: The cotangent, with the structure of ``function(*args)``.
        *args: The point at which the product is evaluated.
        n_workers: Number of threads over which the Jacobian columns are
            spread.

    Returns:
        A tuple with one entry per argument, each shaped like that argument.

    Raises:
        ValueError: If ``y_bar`` does not flatten to the length of the output.
    """
    jac, y, rebuild = jacobian_flat(method, function, *args, n_workers=n_workers)
    y_bar_vec, _ = to_vec(y_bar)
    if y_bar_vec.size != y.size:
        raise ValueError(
            f"y_bar flattens to {y_bar_vec.size} entries but the output to {y.size}."
        )
    return tuple(rebuild(jac.T @ y_bar_vec))
