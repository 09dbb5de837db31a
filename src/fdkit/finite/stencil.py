"""Stencil grids and symmetry utilities for finite-difference methods.

A grid is an ordered sequence of distinct integer offsets. The sample
points of a method are ``x + step * grid``. Three standard layouts are
supported, plus a geometric respacing of any of them:

>>> from fdkit.finite.stencil import central_grid, forward_grid, geometric_grid
>>> central_grid(4).tolist()
[-2, -1, 1, 2]
>>> forward_grid(3).tolist()
[0, 1, 2]
>>> geometric_grid(central_grid(5)).tolist()
[-3, -1, 0, 1, 3]
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from fdkit.utils.types import Grid

__all__ = [
    "StencilKind",
    "forward_grid",
    "backward_grid",
    "central_grid",
    "geometric_grid",
    "build_grid",
    "is_symmetric",
]


class StencilKind(Enum):
    """The layouts a finite-difference method can be built from."""

    FORWARD = "forward"
    BACKWARD = "backward"
    CENTRAL = "central"
    CUSTOM = "custom"


def _check_num_points(num_points: int) -> None:
    if num_points < 1:
        raise ValueError(f"num_points must be at least 1; got {num_points}.")


def forward_grid(num_points: int) -> NDArray[np.int64]:
    """Returns the offsets ``0, 1, ..., num_points - 1``."""
    _check_num_points(num_points)
    return np.arange(num_points, dtype=np.int64)


def backward_grid(num_points: int) -> NDArray[np.int64]:
    """Returns the offsets ``-(num_points - 1), ..., -1, 0``."""
    _check_num_points(num_points)
    return np.arange(1 - num_points, 1, dtype=np.int64)


def central_grid(num_points: int) -> NDArray[np.int64]:
    """Creates a grid of offsets centred at zero.

    For an odd number of points the grid is ``-h, ..., 0, ..., h`` with
    ``h = num_points // 2``. For an even number of points zero is left out,
    which keeps the grid symmetric at the minimal width.

    Args:
        num_points: Number of offsets in the grid.

    Returns:
        An array of integer offsets symmetric around zero.
    """
    _check_num_points(num_points)
    half = num_points // 2
    if num_points % 2 == 1:
        return np.arange(-half, half + 1, dtype=np.int64)
    return np.concatenate(
        [np.arange(-half, 0, dtype=np.int64), np.arange(1, half + 1, dtype=np.int64)]
    )


def geometric_grid(grid: Grid, base: int = 3) -> NDArray[np.int64]:
    """Respaces a grid geometrically.

    Every offset ``g`` is mapped to ``sign(g) * (base**|g| // base)``, so
    that ``0, 1, 2, 3`` become ``0, 1, base, base**2``. Samples then
    concentrate near the evaluation point while still probing further out.

    Args:
        grid: Integer offsets.
        base: Growth factor between successive offsets. Must be at least 2.

    Returns:
        The respaced offsets.
    """
    if base < 2:
        raise ValueError(f"base must be at least 2; got {base}.")
    offsets = [int(g) for g in grid]
    return np.array(
        [(1 if g > 0 else -1) * (base ** abs(g) // base) for g in offsets],
        dtype=np.int64,
    )


_GRID_BUILDERS = {
    StencilKind.FORWARD: forward_grid,
    StencilKind.BACKWARD: backward_grid,
    StencilKind.CENTRAL: central_grid,
}


def build_grid(kind: StencilKind, num_points: int, *, geom: bool = False) -> NDArray[np.int64]:
    """Builds the grid of a standard stencil layout.

    Args:
        kind: The stencil layout. ``StencilKind.CUSTOM`` has no standard grid.
        num_points: Number of offsets.
        geom: If ``True``, respace the grid with :func:`geometric_grid`.

    Returns:
        The grid offsets.

    Raises:
        ValueError: If ``kind`` is ``StencilKind.CUSTOM``.
    """
    try:
        builder = _GRID_BUILDERS[kind]
    except KeyError:
        raise ValueError(f"No standard grid for stencil kind {kind!r}.") from None
    grid = builder(num_points)
    return geometric_grid(grid) if geom else grid


def is_symmetric(
    values: Sequence[float] | NDArray,
    *,
    centre_zero: bool = False,
    negate_half: bool = False,
) -> bool:
    """Checks whether a vector is mirror-symmetric around its centre.

    Args:
        values: The vector to check.
        centre_zero: If ``True`` and the vector has odd length, its middle
            entry must additionally be zero.
        negate_half: If ``True``, each entry must equal the negation of its
            mirror image, i.e. the vector is unchanged under negation and
            reversal.

    Returns:
        ``True`` if the vector has the requested symmetry.
    """
    arr = np.asarray(values)
    n = arr.size
    half = n // 2
    head = arr[:half]
    mirrored = arr[::-1][:half]
    if negate_half:
        mirrored = -mirrored
    if not np.array_equal(head, mirrored):
        return False
    if centre_zero and n % 2 == 1:
        return bool(arr[half] == 0)
    return True
