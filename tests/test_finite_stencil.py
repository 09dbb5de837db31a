"""Tests for fdkit.finite.stencil."""

from __future__ import annotations

import pytest

from fdkit.finite.stencil import (
    StencilKind,
    backward_grid,
    build_grid,
    central_grid,
    forward_grid,
    geometric_grid,
    is_symmetric,
)


def test_forward_grid():
    """Tests that forward grids start at zero and count up."""
    assert forward_grid(4).tolist() == [0, 1, 2, 3]


def test_backward_grid():
    """Tests that backward grids end at zero."""
    assert backward_grid(4).tolist() == [-3, -2, -1, 0]


@pytest.mark.parametrize(
    "num_points, expected",
    [
        (1, [0]),
        (2, [-1, 1]),
        (3, [-1, 0, 1]),
        (4, [-2, -1, 1, 2]),
        (5, [-2, -1, 0, 1, 2]),
        (6, [-3, -2, -1, 1, 2, 3]),
    ],
)
def test_central_grid(num_points, expected):
    """Tests that central grids are symmetric and leave out zero for even sizes."""
    assert central_grid(num_points).tolist() == expected


def test_grid_sizes_must_be_positive():
    """Tests that an empty grid cannot be requested."""
    with pytest.raises(ValueError):
        forward_grid(0)


def test_geometric_grid():
    """Tests that offsets are respaced as powers of three."""
    assert geometric_grid([0, 1, 2, 3]).tolist() == [0, 1, 3, 9]
    assert geometric_grid(central_grid(5)).tolist() == [-3, -1, 0, 1, 3]


def test_geometric_grid_other_base():
    """Tests that the geometric base can be changed."""
    assert geometric_grid([-2, -1, 1, 2], base=2).tolist() == [-2, -1, 1, 2]
    assert geometric_grid([0, 1, 2, 3], base=4).tolist() == [0, 1, 4, 16]


def test_geometric_grid_rejects_small_base():
    """Tests that a base below 2 is rejected."""
    with pytest.raises(ValueError):
        geometric_grid([0, 1], base=1)


@pytest.mark.parametrize(
    "kind, expected",
    [
        (StencilKind.FORWARD, [0, 1, 2]),
        (StencilKind.BACKWARD, [-2, -1, 0]),
        (StencilKind.CENTRAL, [-1, 0, 1]),
    ],
)
def test_build_grid_dispatches_on_kind(kind, expected):
    """Tests that build_grid picks the builder of the requested layout."""
    assert build_grid(kind, 3).tolist() == expected


def test_build_grid_geometric():
    """Tests that build_grid applies geometric respacing on request."""
    assert build_grid(StencilKind.FORWARD, 4, geom=True).tolist() == [0, 1, 3, 9]


def test_build_grid_custom_raises():
    """Tests that the custom layout has no standard grid."""
    with pytest.raises(ValueError):
        build_grid(StencilKind.CUSTOM, 3)


@pytest.mark.parametrize(
    "values, kwargs, expected",
    [
        # Odd lengths.
        ((2, 1, 0, 1, 2), {}, True),
        ((2, 1, 0, 3, 2), {}, False),
        ((4, 1, 0, 1, 2), {}, False),
        # Even lengths.
        ((2, 1, 1, 2), {}, True),
        ((2, 1, 3, 2), {}, False),
        ((4, 1, 1, 2), {}, False),
        # Zero at the centre.
        ((2, 1, 4, 1, 2), {}, True),
        ((2, 1, 4, 1, 2), {"centre_zero": True}, False),
        ((2, 1, 1, 2), {"centre_zero": True}, True),
        # Negated half.
        ((2, 1, -1, -2), {}, False),
        ((2, 1, -1, -2), {"negate_half": True}, True),
        ((2, 1, 0, -1, -2), {"negate_half": True}, True),
        ((2, 1, 4, -1, -2), {"negate_half": True}, True),
        ((2, 1, 4, -1, -2), {"negate_half": True, "centre_zero": True}, False),
    ],
)
def test_is_symmetric(values, kwargs, expected):
    """Tests the mirror-symmetry check and its options."""
    assert is_symmetric(values, **kwargs) is expected
