"""Provides all fdkit methods."""

from importlib.metadata import PackageNotFoundError, version

from fdkit.calculus import grad, jacobian, jvp, vjp
from fdkit.calculus_kit import CalculusKit
from fdkit.finite.extrapolators import extrapolate
from fdkit.finite.finite_difference import (
    FiniteDifferenceMethod,
    backward_method,
    central_method,
    custom_method,
    forward_method,
)
from fdkit.method_kit import available_methods, get_method, register_method
from fdkit.utils.to_vec import to_vec

try:
    __version__ = version("fdkit")
except PackageNotFoundError:
    __version__ = "0+unknown"

__all__ = [
    "CalculusKit",
    "FiniteDifferenceMethod",
    "available_methods",
    "backward_method",
    "central_method",
    "custom_method",
    "extrapolate",
    "forward_method",
    "get_method",
    "grad",
    "jacobian",
    "jvp",
    "register_method",
    "to_vec",
    "vjp",
]
