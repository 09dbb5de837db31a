"""Finite-difference methods.

Provides the stencil builders, the coefficient solver, the adaptive
step-size search and Richardson extrapolation.
"""

from .extrapolators import extrapolate
from .finite_difference import (
    FiniteDifferenceMethod,
    backward_method,
    central_method,
    custom_method,
    forward_method,
)

__all__ = [
    "FiniteDifferenceMethod",
    "backward_method",
    "central_method",
    "custom_method",
    "extrapolate",
    "forward_method",
]
