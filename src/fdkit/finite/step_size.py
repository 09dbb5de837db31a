"""Adaptive step-size selection for finite-difference methods.

The error of an ``n``-point estimate of a ``d``-th derivative with step ``h``
is modelled as

.. math::

    E(h) = C_1 h^{-d} + C_2 h^{n - d},

where ``C_1 = eps_f * factor * sum_i |c_i|`` bounds the round-off error of
the weighted sum (``eps_f`` being the rounding error in the function
values) and ``C_2 = |f^(n)| * sum_i |c_i g_i^n| / n!`` bounds the truncation
error. The step minimising the model is

.. math::

    h^* = \\left(\\frac{d}{n - d} \\frac{C_1}{C_2}\\right)^{1/n}.

Without adaptation ``|f^(n)|`` is replaced by a fixed condition number and
``eps_f`` by machine epsilon. With adaptation, a bound estimator (a method
for the ``n``-th derivative) estimates ``|f^(n)|`` and ``|f|`` around the
evaluation point first; the bound estimator picks its own step the same way,
so adaptation recurses.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray

from fdkit.logger import fdkit_logger
from fdkit.utils.caching import StepEstimate
from fdkit.utils.types import ScalarFunction

if TYPE_CHECKING:
    from fdkit.finite.finite_difference import FiniteDifferenceMethod

__all__ = [
    "DEFAULT_CONDITION",
    "DEFAULT_FACTOR",
    "MAX_DEFAULT_STEP_MULTIPLE",
    "machine_epsilon",
    "estimate_magnitude",
    "estimate_roundoff_error",
    "compute_step_accuracy",
    "default_step_accuracy",
    "limit_step",
    "estimate_magnitudes",
    "estimate_step",
]

#: Assumed magnitude of the truncation derivative when no adaptation is used.
DEFAULT_CONDITION = 10.0
#: Multiplier on the round-off error in the function values.
DEFAULT_FACTOR = 1.0
#: Steps are never allowed to exceed this multiple of the default step.
MAX_DEFAULT_STEP_MULTIPLE = 1000.0


def machine_epsilon(dtype: np.dtype | type) -> float:
    """Returns the machine epsilon of a floating dtype as a Python float."""
    return float(np.finfo(dtype).eps)


def _floating(dtype: np.dtype | type) -> np.dtype:
    dtype = np.dtype(dtype)
    return dtype if dtype.kind == "f" else np.dtype(np.float64)


def _max_abs(values: ArrayLike) -> float:
    # An empty output has no size to measure.
    values = np.asarray(values)
    return float(np.max(np.abs(values))) if values.size else 0.0


def estimate_magnitude(values: NDArray, dtype: np.dtype | type) -> float:
    """Estimates the magnitude of a set of function values.

    Args:
        values: Function values sampled around the evaluation point.
        dtype: Floating dtype of the computation.

    Returns:
        ``max |values|``, floored at the machine epsilon of ``dtype`` so
        that the result is never zero.
    """
    magnitude = _max_abs(values)
    if magnitude > 0:
        return magnitude
    return max(magnitude, machine_epsilon(_floating(dtype)))


def estimate_roundoff_error(values: NDArray, dtype: np.dtype | type) -> float:
    """Estimates the round-off error in a set of function values.

    The error is the spacing of floating-point numbers at the magnitude of
    the values. Functions that vanish around the evaluation point have no
    meaningful spacing, so the estimate never drops below
    ``eps(dtype) / 1000``.

    Args:
        values: Function values sampled around the evaluation point.
        dtype: Floating dtype of the values.

    Returns:
        The estimated round-off error as a Python float.
    """
    dtype = _floating(dtype)
    magnitude = np.asarray(estimate_magnitude(values, dtype), dtype=dtype)
    return max(float(np.spacing(magnitude)), machine_epsilon(dtype) / 1000)


def compute_step_accuracy(
    method: FiniteDifferenceMethod,
    derivative_magnitude: float,
    f_error: float,
) -> StepEstimate:
    """Minimises the error model of a method.

    Args:
        method: The finite-difference method.
        derivative_magnitude: Bound on the magnitude of the ``n``-th
            derivative of the function, ``n`` being the number of grid points.
        f_error: Bound on the round-off error in the function values.

    Returns:
        The optimal step and the error the model predicts for it. A method
        for the zeroth derivative needs no step at all, so its step is ``0``.
    """
    n = method.num_points
    q = method.derivative_order
    c1 = np.float64(f_error) * method.factor * method.coefficient_norm
    c2 = np.float64(derivative_magnitude) * method.truncation_constant

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        if q == 0:
            step = np.float64(0.0)
        else:
            step = (np.float64(q) / (n - q) * (c1 / c2)) ** (1.0 / n)
        accuracy = c1 * step ** np.float64(-q) + c2 * step ** np.float64(n - q)
    return StepEstimate(float(step), float(accuracy))


def default_step_accuracy(method: FiniteDifferenceMethod, dtype: np.dtype | type) -> StepEstimate:
    """Returns the step the error model gives without looking at the function.

    The derivative magnitude is taken to be :attr:`method.condition` and the
    round-off error to be the machine epsilon of ``dtype``.
    """
    return compute_step_accuracy(method, method.condition, machine_epsilon(_floating(dtype)))


def limit_step(
    method: FiniteDifferenceMethod,
    dtype: np.dtype | type,
    step: float,
    accuracy: float,
) -> StepEstimate:
    """Clips a step so that the method stays inside its allowed range.

    Two limits apply. The furthest sample must stay within
    :attr:`method.max_range` of the evaluation point, and the step may not
    exceed :data:`MAX_DEFAULT_STEP_MULTIPLE` times the default step, which
    guards high-order methods and slowly varying functions against absurdly
    large steps. A clipped step no longer minimises the error model, so its
    accuracy is reported as ``nan``.

    Args:
        method: The finite-difference method.
        dtype: Floating dtype of the evaluation point.
        step: The proposed step.
        accuracy: The accuracy predicted for the proposed step.

    Returns:
        The limited step and its accuracy.
    """
    reach = int(np.max(np.abs(method.grid)))
    step_max = math.inf if reach == 0 else method.max_range / reach
    if step > step_max:
        fdkit_logger.debug(
            "Step %.3e exceeds max_range %.3e / %d; clipping.", step, method.max_range, reach
        )
        step, accuracy = step_max, math.nan

    step_default, _ = default_step_accuracy(method, dtype)
    step_max_default = MAX_DEFAULT_STEP_MULTIPLE * step_default
    if step > step_max_default:
        fdkit_logger.debug(
            "Step %.3e exceeds %g times the default step; clipping.",
            step,
            MAX_DEFAULT_STEP_MULTIPLE,
        )
        step, accuracy = step_max_default, math.nan
    return StepEstimate(step, accuracy)


def estimate_magnitudes(
    estimator: FiniteDifferenceMethod,
    function: ScalarFunction,
    x: np.floating | NDArray[np.floating],
) -> tuple[float, float, np.dtype]:
    """Estimates the size of a function and of one of its derivatives near ``x``.

    The estimator is evaluated at its own estimated step. The derivative
    magnitude is the largest of the three neighbourhood estimates computed
    from those samples, the function magnitude the largest sample.

    Args:
        estimator: A method for the derivative whose magnitude is needed.
        function: The function to sample.
        x: The evaluation point.

    Returns:
        The derivative magnitude, the function magnitude and the dtype of the
        function values.
    """
    step = estimator.estimate_step(function, x).step
    values = estimator.sample(function, x, step)
    derivative_magnitude = max(
        _max_abs(estimator.combine(values, step, coefficients))
        for coefficients in estimator.neighbourhood
    )
    f_magnitude = _max_abs(values)
    return derivative_magnitude, f_magnitude, _floating(values.dtype)


def estimate_step(
    method: FiniteDifferenceMethod,
    function: ScalarFunction,
    x: np.floating | NDArray[np.floating],
) -> StepEstimate:
    """Estimates the step that minimises the error of ``method`` for ``function`` at ``x``.

    Args:
        method: The finite-difference method.
        function: The function to differentiate.
        x: The evaluation point, already promoted to floating point.

    Returns:
        The step and the estimated accuracy of the derivative at that step.
    """
    dtype = np.asarray(x).dtype
    if method.bound_estimator is None:
        step, accuracy = default_step_accuracy(method, dtype)
    else:
        derivative_magnitude, f_magnitude, values_dtype = estimate_magnitudes(
            method.bound_estimator, function, x
        )
        if derivative_magnitude == 0.0 or f_magnitude == 0.0:
            step, accuracy = default_step_accuracy(method, dtype)
        else:
            f_error = estimate_roundoff_error(np.asarray(f_magnitude), values_dtype)
            step, accuracy = compute_step_accuracy(method, derivative_magnitude, f_error)
    return limit_step(method, dtype, step, accuracy)
