"""Calculus utilities.

Provides the Jacobian, Jacobian-vector and vector-Jacobian products and the
gradient of functions of structured arguments.
"""

from .gradient import grad
from .jacobian import jacobian
from .jvp import jvp, vjp

__all__ = ["grad", "jacobian", "jvp", "vjp"]
