"""Contains the Jacobian of functions of structured arguments."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import numpy as np
from numpy.typing import NDArray

from fdkit.calculus.calculus_core import (
    flat_function,
    flatten_arguments,
    jacobian_matrix,
)
from fdkit.finite.finite_difference import FiniteDifferenceMethod
from fdkit.utils.to_vec import to_vec

__all__ = [
    "jacobian",
    "jacobian_flat",
]


def jacobian(
    method: FiniteDifferenceMethod,
    function: Callable[..., Any],
    *args: Any,
    n_workers: int | None = 1,
) -> tuple[NDArray[np.floating], ...]:
    """Computes the Jacobian of ``function`` with respect to each argument.

    Arguments and outputs may be scalars, arrays or nested containers; they
    are flattened with :func:`~fdkit.utils.to_vec.to_vec`. For every
    positional argument the other arguments are held fixed and the dense
    block ``d flat(function(*args)) / d flat(arg)`` is computed one column at
    a time, each column being a one-dimensional finite difference.

    Args:
        method: A finite-difference method for the first derivative.
        function: The function to differentiate.
        *args: The point at which the Jacobian is evaluated.
        n_workers: Number of threads over which the columns of each block
            are spread. If 1, no parallelization is used.

    Returns:
        A tuple with one block per argument. Block ``k`` has shape
        ``(len(flat(function(*args))), len(flat(args[k])))``.

    Raises:
        ValueError: If no arguments are given or the output length changes
            under perturbation.
        TypeError: If an argument or the output cannot be flattened.

    Example:
        >>> import numpy as np
        >>> from fdkit.calculus.jacobian import jacobian
        >>> from fdkit.finite.finite_difference import central_method
        >>> (jac,) = jacobian(central_method(4, 1), lambda x: x**2, np.array([1.0, 2.0]))
        >>> np.allclose(jac, np.diag([2.0, 4.0]))
        True
    """
    if not args:
        raise ValueError("jacobian needs at least one argument.")

    output_size = to_vec(function(*args))[0].size
    blocks = []
    for k in range(len(args)):
        x, rebuild = to_vec(args[k])

        def call_with(value: Any, k: int = k) -> Any:
            return function(*args[:k], value, *args[k + 1:])

        blocks.append(
            jacobian_matrix(
                method,
                flat_function(call_with, _single(rebuild)),
                x,
                output_size=output_size,
                n_workers=n_workers,
            )
        )
    return tuple(blocks)


def _single(rebuild: Callable[[Any], Any]) -> Callable[[Any], tuple[Any]]:
    """Adapts a reconstructor of one value to return a one-element argument tuple."""

    def rebuild_args(v: Any) -> tuple[Any]:
        return (rebuild(v),)

    return rebuild_args


def jacobian_flat(
    method: FiniteDifferenceMethod,
    function: Callable[..., Any],
    *args: Any,
    n_workers: int | None = 1,
) -> tuple[NDArray[np.floating], NDArray[np.floating], Callable[[Any], tuple[Any, ...]]]:
    """Computes the Jacobian with respect to all arguments flattened together.

    Args:
        method: A finite-difference method for the first derivative.
        function: The function to differentiate.
        *args: The point at which the Jacobian is evaluated.
        n_workers: Number of threads over which the columns are spread.

    Returns:
        The Jacobian of shape ``(output_size, input_size)``, the flattened
        output at ``args`` and the reconstructor of the argument tuple.
    """
    x, rebuild = flatten_arguments(args)
    y = to_vec(function(*args))[0]
    jac = jacobian_matrix(
        method,
        flat_function(function, rebuild),
        x,
        output_size=y.size,
        n_workers=n_workers,
    )
    return jac, y, rebuild
