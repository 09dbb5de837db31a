"""Richardson extrapolation of finite-difference estimates.

Instead of picking a single step, the method is evaluated at a geometric
sequence of shrinking steps and the estimates are extrapolated to a zero
step, which also yields an error estimate.

Examples:
--------
>>> import numpy as np
>>> from fdkit.finite.extrapolators import extrapolate
>>> from fdkit.finite.finite_difference import central_method
>>> value, error = extrapolate(central_method(2, 1), np.sin, 1.0)
>>> bool(np.isclose(value, np.cos(1.0), rtol=1e-7))
True
"""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import ArrayLike, NDArray

from fdkit.finite.finite_difference import FiniteDifferenceMethod, promote_point
from fdkit.utils.extrapolation import (
    DEFAULT_CONTRACT,
    DEFAULT_MAX_EVALS,
    neville_extrapolate,
)
from fdkit.utils.types import ScalarFunction
from fdkit.utils.validate import validate_contract, validate_positive

__all__ = [
    "extrapolate",
]


def extrapolate(
    method: FiniteDifferenceMethod,
    function: ScalarFunction,
    x: ArrayLike,
    *,
    initial_step: float = 10.0,
    contract: float = DEFAULT_CONTRACT,
    power: int = 1,
    breaktol: float = math.inf,
    rtol: float | None = None,
    atol: float = 0.0,
    max_evals: int = DEFAULT_MAX_EVALS,
) -> tuple[np.floating | NDArray[np.floating], float]:
    """Estimates a derivative by extrapolating ``method`` to a zero step.

    The estimates ``method(function, x, h)`` for ``h = initial_step,
    contract * initial_step, ...`` are combined with
    :func:`~fdkit.utils.extrapolation.neville_extrapolate`. The error of a
    symmetric method expands in even powers of the step only, so for those
    methods a ``power`` of 1 is raised to 2.

    Args:
        method: The finite-difference method.
        function: The function to differentiate.
        x: The evaluation point.
        initial_step: The first and largest step.
        contract: Ratio between successive steps, in ``(0, 1)``.
        power: Power of the step in which the error expands.
        breaktol: Stop once a new row of the tableau is worse than
            ``breaktol`` times the best error so far. The default never
            stops early on that criterion.
        rtol: Relative tolerance on the error estimate. Defaults to the
            square root of the machine epsilon when ``atol`` is zero.
        atol: Absolute tolerance on the error estimate.
        max_evals: Maximum number of method evaluations.

    Returns:
        A tuple ``(estimate, error)``.

    Raises:
        ValueError: If ``initial_step`` is not positive or ``contract`` is
            not in ``(0, 1)``.
    """
    initial_step = validate_positive(initial_step, name="initial_step")
    contract = validate_contract(contract)
    if power == 1 and method.is_symmetric:
        power = 2

    x = promote_point(x)

    def evaluate(step: float) -> np.floating | NDArray[np.floating]:
        return method(function, x, step)

    return neville_extrapolate(
        evaluate,
        initial_step,
        contract=contract,
        power=power,
        rtol=rtol,
        atol=atol,
        max_evals=max_evals,
        breaktol=breaktol,
    )
