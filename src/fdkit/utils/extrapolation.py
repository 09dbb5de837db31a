"""Extrapolation of step-dependent approximations toward a zero step."""

from __future__ import annotations

import math
from collections.abc import Callable

import numpy as np
from numpy.typing import NDArray

from fdkit.logger import fdkit_logger

__all__ = [
    "DEFAULT_CONTRACT",
    "DEFAULT_MAX_EVALS",
    "neville_extrapolate",
]

#: Default ratio between successive step sizes.
DEFAULT_CONTRACT = 0.8
#: Default cap on the number of evaluations of the approximation.
DEFAULT_MAX_EVALS = 64


def _norm(value: NDArray | float) -> float:
    return float(np.linalg.norm(np.ravel(np.asarray(value))))


def neville_extrapolate(
    evaluate: Callable[[float], NDArray[np.floating] | float],
    initial_step: float,
    *,
    contract: float = DEFAULT_CONTRACT,
    power: int = 1,
    rtol: float | None = None,
    atol: float = 0.0,
    max_evals: int = DEFAULT_MAX_EVALS,
    breaktol: float = math.inf,
) -> tuple[NDArray[np.floating] | float, float]:
    """Computes a Richardson extrapolation of ``evaluate(h)`` toward ``h = 0``.

    The approximation is evaluated at ``h, c h, c^2 h, ...`` and a Neville
    tableau of polynomial extrapolants in ``h**power`` is updated after every
    evaluation. Each new tableau row is compared with the previous one; the
    entry with the smallest change so far is the current best estimate and
    that change is its error estimate.

    The iteration stops when

    * the error estimate drops below ``max(rtol * |best|, atol)``,
    * the smallest change of the newest row exceeds ``breaktol`` times the
      best error so far, i.e. the extrapolation stopped improving,
    * a change in the newest row is not finite, or
    * ``max_evals`` evaluations have been made.

    Args:
        evaluate: Approximation as a function of the step. May return a
            scalar or an array.
        initial_step: The first and largest step.
        contract: Ratio between successive steps, in ``(0, 1)``.
        power: The error of ``evaluate`` is assumed to expand in powers of
            ``h**power``.
        rtol: Relative tolerance. Defaults to the square root of the machine
            epsilon when ``atol`` is zero and to zero otherwise.
        atol: Absolute tolerance.
        max_evals: Maximum number of calls to ``evaluate``.
        breaktol: Stop once the newest row is worse than ``breaktol`` times
            the best error so far.

    Returns:
        A tuple ``(value, error)`` with the best extrapolated value and its
        error estimate.

    Raises:
        ValueError: If ``contract`` is not in ``(0, 1)``, ``power`` is not
            positive or ``max_evals`` is smaller than 1.
    """
    if not 0 < contract < 1:
        raise ValueError(f"contract must lie in (0, 1); got {contract}.")
    if power < 1:
        raise ValueError(f"power must be positive; got {power}.")
    if max_evals < 1:
        raise ValueError(f"max_evals must be at least 1; got {max_evals}.")
    if rtol is None:
        rtol = math.sqrt(float(np.finfo(np.float64).eps)) if atol <= 0 else 0.0

    h = float(initial_step)
    first = np.asarray(evaluate(h))
    # tableau[i] holds the extrapolant built from the evaluations i..k.
    tableau: list[NDArray] = [first]
    best, err = first, math.inf
    inv_contract_power = (1.0 / contract) ** power

    converged = False
    num_evals = 1
    while num_evals < max_evals:
        num_evals += 1
        h *= contract
        tableau.append(np.asarray(evaluate(h)))

        factor = inv_contract_power
        changes: list[float] = []
        for i in range(len(tableau) - 2, -1, -1):
            previous = tableau[i]
            with np.errstate(invalid="ignore", over="ignore"):
                tableau[i] = tableau[i + 1] + (tableau[i + 1] - previous) / (factor - 1.0)
                change = _norm(tableau[i] - previous)
            changes.append(change)
            if change < err:
                best, err = tableau[i], change
            factor *= inv_contract_power

        if err <= max(rtol * _norm(best), atol):
            converged = True
            break
        # np.min propagates NaN, so a NaN change also ends the iteration.
        min_change = float(np.min(changes))
        if not math.isfinite(min_change) or min_change > breaktol * err:
            break

    if not converged and num_evals >= max_evals:
        fdkit_logger.warning(
            "Extrapolation stopped after %d evaluations with error estimate %.3e "
            "above the requested tolerance.",
            num_evals,
            err,
        )
    value = best[()] if np.ndim(best) == 0 else best
    return value, err
