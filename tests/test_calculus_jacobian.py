"""Tests for fdkit.calculus.jacobian."""

from __future__ import annotations

import numpy as np
import pytest
from numpy.testing import assert_allclose

from fdkit.calculus.jacobian import jacobian, jacobian_flat
from fdkit.finite.finite_difference import central_method, forward_method

METHOD = central_method(4, 1)


def test_linear_map_recovers_matrix():
    """Tests that the Jacobian of x -> A x is A."""
    rng = np.random.default_rng(0)
    a = rng.standard_normal((3, 4))
    x = rng.standard_normal(4)
    (jac,) = jacobian(METHOD, lambda v: a @ v, x)
    assert jac.shape == (3, 4)
    assert_allclose(jac, a, rtol=1e-8, atol=1e-10)


def test_nonlinear_function():
    """Tests the Jacobian of a nonlinear map against the analytic one."""
    def f(x):
        return np.array([x[0] * x[1], np.sin(x[0]), np.exp(x[1])])

    x = np.array([0.3, -0.7])
    expected = np.array(
        [
            [x[1], x[0]],
            [np.cos(x[0]), 0.0],
            [0.0, np.exp(x[1])],
        ]
    )
    (jac,) = jacobian(METHOD, f, x)
    assert_allclose(jac, expected, rtol=1e-8, atol=1e-10)


def test_one_block_per_argument():
    """Tests that every positional argument gets its own block."""
    def f(x, a, b):
        return a * x**2 + b

    x = np.array([1.0, 2.0, 3.0])
    jac_x, jac_a, jac_b = jacobian(METHOD, f, x, 2.0, 0.5)
    assert jac_x.shape == (3, 3)
    assert jac_a.shape == (3, 1)
    assert jac_b.shape == (3, 1)
    assert_allclose(jac_x, np.diag(4.0 * x), rtol=1e-8)
    assert_allclose(jac_a[:, 0], x**2, rtol=1e-8)
    assert_allclose(jac_b[:, 0], np.ones(3), rtol=1e-8)


def test_scalar_function_of_scalar():
    """Tests that a scalar map has a 1x1 Jacobian."""
    (jac,) = jacobian(METHOD, np.sin, 0.5)
    assert jac.shape == (1, 1)
    assert jac[0, 0] == pytest.approx(np.cos(0.5), rel=1e-9)


def test_matrix_argument_is_flattened_in_c_order():
    """Tests that a matrix argument contributes its entries in C order."""
    x = np.arange(1.0, 5.0).reshape(2, 2)
    (jac,) = jacobian(METHOD, lambda m: m.sum(axis=0), x)
    assert jac.shape == (2, 4)
    assert_allclose(jac, [[1.0, 0.0, 1.0, 0.0], [0.0, 1.0, 0.0, 1.0]], atol=1e-9)


def test_structured_argument_and_output():
    """Tests dictionaries and tuples as arguments and outputs."""
    def f(params):
        return (params["scale"] * params["x"], params["scale"] + 1.0)

    params = {"scale": 2.0, "x": np.array([1.0, -1.0])}
    (jac,) = jacobian(METHOD, f, params)
    # Inputs: scale, x0, x1. Outputs: scale*x0, scale*x1, scale+1.
    expected = np.array(
        [
            [1.0, 2.0, 0.0],
            [-1.0, 0.0, 2.0],
            [1.0, 0.0, 0.0],
        ]
    )
    assert_allclose(jac, expected, atol=1e-9)


def test_float32_argument_keeps_precision():
    """Tests that a single-precision argument gives a single-precision Jacobian."""
    x = np.array([1.0, 2.0], dtype=np.float32)
    (jac,) = jacobian(METHOD, lambda v: v**2, x)
    assert jac.dtype == np.float32
    assert_allclose(jac, np.diag([2.0, 4.0]), rtol=1e-3)


def test_empty_argument():
    """Tests that an empty argument gives an empty block."""
    (jac,) = jacobian(METHOD, lambda v: np.array([1.0, 2.0]), np.zeros(0))
    assert jac.shape == (2, 0)


def test_empty_output():
    """Tests that a function without outputs gives an empty block."""
    (jac,) = jacobian(METHOD, lambda x: x[:0], np.array([1.0, 2.0]))
    assert jac.shape == (0, 2)


def test_record_with_integer_field():
    """Tests the derivative along an integer field of a structured argument."""
    rec = np.array([(1, 2.0)], dtype=[("a", "i4"), ("b", "f8")])
    (jac,) = jacobian(METHOD, lambda r: 3 * r["a"], rec)
    assert jac.shape == (1, 2)
    assert_allclose(jac, [[3.0, 0.0]], rtol=1e-8, atol=1e-10)


@pytest.mark.parallel
def test_threads_match_serial(extra_threads_ok):
    """Tests that spreading columns over threads gives the same Jacobian."""
    if not extra_threads_ok:
        pytest.skip("threads unavailable")

    def f(x):
        return np.array([np.sin(x).sum(), np.prod(x), x[0] ** 3])

    x = np.array([0.1, 0.2, 0.3, 0.4])
    (serial,) = jacobian(METHOD, f, x)
    (threaded,) = jacobian(METHOD, f, x, n_workers=3)
    assert_allclose(threaded, serial, rtol=1e-12, atol=1e-14)


def test_other_methods():
    """Tests that one-sided methods work as well."""
    (jac,) = jacobian(forward_method(4, 1), lambda v: v**3, np.array([1.0, 2.0]))
    assert_allclose(jac, np.diag([3.0, 12.0]), rtol=1e-6)


def test_no_arguments_raise():
    """Tests that a function needs at least one argument."""
    with pytest.raises(ValueError):
        jacobian(METHOD, lambda: 1.0)


def test_changing_output_length_raises():
    """Tests that the output length must not depend on the input."""
    def f(x):
        return np.zeros(3) if x[0] == 1.0 else np.zeros(2)

    with pytest.raises(ValueError):
        jacobian(METHOD, f, np.array([1.0]))


def test_unsupported_output_raises():
    """Tests that outputs without a flattening raise TypeError."""
    with pytest.raises(TypeError):
        jacobian(METHOD, lambda x: "text", 1.0)


def test_jacobian_flat_joins_arguments():
    """Tests the Jacobian with respect to all arguments at once."""
    def f(x, y):
        return x * y

    jac, y, rebuild = jacobian_flat(METHOD, f, np.array([1.0, 2.0]), np.array([3.0, 4.0]))
    assert jac.shape == (2, 4)
    assert_allclose(y, [3.0, 8.0])
    assert_allclose(jac, [[3.0, 0.0, 1.0, 0.0], [0.0, 4.0, 0.0, 2.0]], atol=1e-9)
    x_back, y_back = rebuild(np.arange(4.0))
    assert_allclose(x_back, [0.0, 1.0])
    assert_allclose(y_back, [2.0, 3.0])
