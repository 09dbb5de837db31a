"""Shared typing aliases for FDKit."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Sequence, TypeAlias

import numpy as np
from numpy.typing import NDArray

Grid: TypeAlias = Sequence[int] | NDArray[np.integer]
ScalarFunction: TypeAlias = Callable[[Any], Any]
