"""Tests for fdkit.calculus.jvp."""

from __future__ import annotations

import numpy as np
import pytest
from numpy.testing import assert_allclose

from fdkit.calculus.jacobian import jacobian
from fdkit.calculus.jvp import jvp, vjp
from fdkit.finite.finite_difference import central_method

METHOD = central_method(4, 1)


def _model(x, y):
    """Nonlinear map of a vector and a scalar."""
    return np.array([x[0] * y, np.sin(x[1]), x[0] * x[1] + y**2])


def test_jvp_matches_jacobian_product():
    """Tests J x_dot against the dense Jacobian."""
    x, y = np.array([0.4, -1.2]), 0.7
    x_dot, y_dot = np.array([1.0, 0.5]), -2.0
    jac_x, jac_y = jacobian(METHOD, _model, x, y)
    expected = jac_x @ x_dot + jac_y[:, 0] * y_dot
    assert_allclose(jvp(METHOD, _model, (x, x_dot), (y, y_dot)), expected, rtol=1e-8, atol=1e-10)


def test_jvp_scalar_function():
    """Tests the product rule example with scalar arguments."""
    out = jvp(METHOD, lambda x, y: x * y, (2.0, 1.0), (3.0, 0.0))
    assert out == pytest.approx(3.0, rel=1e-10)
    assert isinstance(out, float)


def test_jvp_keeps_output_structure():
    """Tests that the product has the structure of the function output."""
    def f(x):
        return {"square": x**2, "sum": float(np.sum(x))}

    out = jvp(METHOD, f, (np.array([1.0, 3.0]), np.array([1.0, 1.0])))
    assert set(out) == {"square", "sum"}
    assert_allclose(out["square"], [2.0, 6.0], rtol=1e-8)
    assert out["sum"] == pytest.approx(2.0, rel=1e-10)


def test_jvp_zero_tangent():
    """Tests that a zero tangent gives a zero product."""
    out = jvp(METHOD, np.exp, (np.array([0.0, 1.0]), np.zeros(2)))
    assert_allclose(out, 0.0, atol=1e-10)


def test_jvp_needs_pairs():
    """Tests the validation of (x, x_dot) pairs."""
    with pytest.raises(ValueError):
        jvp(METHOD, np.sin)
    with pytest.raises(ValueError):
        jvp(METHOD, np.sin, (1.0, 1.0, 1.0))


def test_jvp_tangent_length_mismatch():
    """Tests that a tangent must have as many entries as its point."""
    with pytest.raises(ValueError):
        jvp(METHOD, np.sin, (np.array([1.0, 2.0]), np.array([1.0])))


def test_vjp_matches_jacobian_transpose():
    """Tests J^T y_bar against the dense Jacobian, one entry per argument."""
    x, y = np.array([0.4, -1.2]), 0.7
    y_bar = np.array([1.0, -1.0, 0.5])
    x_bar, y_bar_out = vjp(METHOD, _model, y_bar, x, y)
    jac_x, jac_y = jacobian(METHOD, _model, x, y)
    assert x_bar.shape == (2,)
    assert isinstance(y_bar_out, float)
    assert_allclose(x_bar, jac_x.T @ y_bar, rtol=1e-8, atol=1e-10)
    assert y_bar_out == pytest.approx(float(jac_y[:, 0] @ y_bar), rel=1e-8)


def test_vjp_and_jvp_are_adjoint():
    """Tests <y_bar, J x_dot> == <J^T y_bar, x_dot>."""
    x, y = np.array([0.4, -1.2]), 0.7
    x_dot, y_dot = np.array([0.3, 2.0]), 1.5
    y_bar = np.array([2.0, 1.0, -1.0])
    forward = jvp(METHOD, _model, (x, x_dot), (y, y_dot))
    x_bar, y_bar_out = vjp(METHOD, _model, y_bar, x, y)
    assert float(y_bar @ forward) == pytest.approx(float(x_bar @ x_dot + y_bar_out * y_dot), rel=1e-7)


def test_vjp_structured_cotangent():
    """Tests a cotangent with the structure of a tuple output."""
    def f(a, b):
        return (a * b, a + b)

    a_bar, b_bar = vjp(METHOD, f, (1.0, 2.0), 3.0, 5.0)
    # d/da = b * 1 + 1 * 2, d/db = a * 1 + 1 * 2.
    assert a_bar == pytest.approx(7.0, rel=1e-9)
    assert b_bar == pytest.approx(5.0, rel=1e-9)


def test_vjp_cotangent_length_mismatch():
    """Tests that y_bar must match the output length."""
    with pytest.raises(ValueError):
        vjp(METHOD, _model, np.ones(2), np.array([0.4, -1.2]), 0.7)
