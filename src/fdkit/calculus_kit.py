"""Provides the CalculusKit class.

A light wrapper around the calculus helpers that binds a function and a
finite-difference method and exposes Jacobians, Jacobian-vector and
vector-Jacobian products and gradients.

Typical usage examples:

>>> import numpy as np
>>> from fdkit.calculus_kit import CalculusKit
>>>
>>> def model(x, a):
...     return a * np.sin(x)
>>>
>>> calc = CalculusKit(model)
>>> jac_x, jac_a = calc.jacobian(np.array([0.0, 1.0]), 2.0)
>>> jac_x.shape, jac_a.shape
((2, 2), (2, 1))
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import numpy as np
from numpy.typing import NDArray

from fdkit.calculus import grad, jacobian, jvp, vjp
from fdkit.finite.finite_difference import FiniteDifferenceMethod, central_method


class CalculusKit:
    """Provides access to Jacobians, JVPs, VJPs and gradients of a function.

    Attributes:
        function: The function to differentiate.
        method: The finite-difference method used for every derivative.
    """

    def __init__(
        self,
        function: Callable[..., Any],
        method: FiniteDifferenceMethod | None = None,
    ):
        """Initialise with a function and, optionally, a method.

        Args:
            function: Function of one or more arguments of any structure
                supported by :func:`~fdkit.utils.to_vec.to_vec`.
            method: A finite-difference method for the first derivative.
                Defaults to ``central_method(4, 1)``.

        Raises:
            ValueError: If ``method`` does not estimate a first derivative.
        """
        if method is None:
            method = central_method(4, 1)
        if method.derivative_order != 1:
            raise ValueError(
                f"CalculusKit needs a first-derivative method; got derivative order "
                f"{method.derivative_order}."
            )
        self.function = function
        self.method = method

    def jacobian(self, *args: Any, n_workers: int | None = 1) -> tuple[NDArray[np.floating], ...]:
        """Returns one Jacobian block per argument."""
        return jacobian(self.method, self.function, *args, n_workers=n_workers)

    def jvp(self, *pairs: tuple[Any, Any]) -> Any:
        """Returns the Jacobian-vector product for ``(x, x_dot)`` pairs."""
        return jvp(self.method, self.function, *pairs)

    def vjp(self, y_bar: Any, *args: Any, n_workers: int | None = 1) -> tuple[Any, ...]:
        """Returns the vector-Jacobian product, one entry per argument."""
        return vjp(self.method, self.function, y_bar, *args, n_workers=n_workers)

    def gradient(self, *args: Any, n_workers: int | None = 1) -> tuple[Any, ...]:
        """Returns the gradient of a scalar-valued function, one entry per argument."""
        return grad(self.method, self.function, *args, n_workers=n_workers)
