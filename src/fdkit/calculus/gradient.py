"""Contains the gradient of scalar-valued functions."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fdkit.calculus.jvp import vjp
from fdkit.finite.finite_difference import FiniteDifferenceMethod

__all__ = [
    "grad",
]


def grad(
    method: FiniteDifferenceMethod,
    function: Callable[..., Any],
    *args: Any,
    n_workers: int | None = 1,
) -> tuple[Any, ...]:
    """Returns the gradient of a scalar-valued function.

    Args:
        method: A finite-difference method for the first derivative.
        function: The function to differentiate. Must return a scalar.
        *args: The point at which the gradient is evaluated.
        n_workers: Number of threads over which the partial derivatives are
            spread.

    Returns:
        A tuple with one entry per argument, each shaped like that argument.

    Raises:
        ValueError: If ``function`` does not return a scalar.

    Example:
        >>> import numpy as np
        >>> from fdkit.calculus.gradient import grad
        >>> from fdkit.finite.finite_difference import central_method
        >>> (g,) = grad(central_method(4, 1), lambda x: np.sum(x**2), np.array([1.0, -2.0]))
        >>> np.allclose(g, [2.0, -4.0])
        True
    """
    return vjp(method, function, 1.0, *args, n_workers=n_workers)
