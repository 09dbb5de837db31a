"""Tests for fdkit.utils.caching."""

from __future__ import annotations

import gc
import math
import weakref

import numpy as np
import pytest

from fdkit.utils.caching import StepCache, StepEstimate


def f(x):
    """Test function."""
    return x


def g(x):
    """Another test function."""
    return x


def test_empty_cache_misses():
    """Tests that a fresh cache has no estimate."""
    cache = StepCache()
    assert cache.last_estimate is None
    assert cache.lookup(f, np.float64(1.0)) is None


def test_store_then_lookup_hits():
    """Tests that a stored estimate is returned for the same function and point."""
    cache = StepCache()
    estimate = StepEstimate(1e-3, 1e-9)
    cache.store(f, np.float64(1.0), estimate)
    assert cache.lookup(f, np.float64(1.0)) == estimate
    assert cache.last_estimate == estimate


def test_lookup_compares_functions_by_identity():
    """Tests that a different function object misses."""
    cache = StepCache()
    cache.store(f, np.float64(1.0), StepEstimate(1e-3, 1e-9))
    assert cache.lookup(g, np.float64(1.0)) is None


@pytest.mark.parametrize(
    "other",
    [np.float64(2.0), np.float32(1.0), np.array([1.0, 1.0])],
)
def test_lookup_misses_for_other_points(other):
    """Tests that a different value, dtype or shape misses."""
    cache = StepCache()
    cache.store(f, np.float64(1.0), StepEstimate(1e-3, 1e-9))
    assert cache.lookup(f, other) is None


def test_stored_point_is_copied():
    """Tests that mutating an array point after storing does not corrupt the cache."""
    cache = StepCache()
    x = np.array([1.0, 2.0])
    cache.store(f, x, StepEstimate(1e-3, 1e-9))
    x[0] = 5.0
    assert cache.lookup(f, x) is None
    assert cache.lookup(f, np.array([1.0, 2.0])) is not None


def test_store_does_not_keep_function_alive():
    """Tests that a stored closure can be collected once its owner drops it."""
    cache = StepCache()
    payload = np.zeros(1000)

    def closure(x):
        return x + payload[0]

    cache.store(closure, np.float64(1.0), StepEstimate(1e-3, 1e-9))
    ref = weakref.ref(closure)
    del closure
    gc.collect()
    assert ref() is None
    assert cache.last_estimate == StepEstimate(1e-3, 1e-9)


def test_store_keeps_builtin_functions():
    """Tests functions that do not support weak references."""
    cache = StepCache()
    estimate = StepEstimate(1e-3, 1e-9)
    cache.store(math.sin, np.float64(1.0), estimate)
    assert cache.lookup(math.sin, np.float64(1.0)) == estimate
    assert cache.lookup(math.cos, np.float64(1.0)) is None


def test_clear_forgets_everything():
    """Tests that clear drops the estimate and cast arrays."""
    cache = StepCache()
    cache.store(f, np.float64(1.0), StepEstimate(1e-3, 1e-9))
    first = cache.typed("grid", np.array([0, 1]), np.float64)
    cache.clear()
    assert cache.last_estimate is None
    assert cache.typed("grid", np.array([0, 1]), np.float64) is not first


def test_typed_casts_once_and_is_read_only():
    """Tests that cast arrays are reused and cannot be modified."""
    cache = StepCache()
    source = np.array([-1, 0, 1])
    first = cache.typed("grid", source, np.float32)
    second = cache.typed("grid", source, np.float32)
    assert first is second
    assert first.dtype == np.float32
    with pytest.raises(ValueError):
        first[0] = 2.0


def test_typed_keys_by_name_and_dtype():
    """Tests that different names or dtypes get different arrays."""
    cache = StepCache()
    source = np.array([1.0, 2.0])
    assert cache.typed("a", source, np.float32) is not cache.typed("a", source, np.float64)
    assert cache.typed("a", source, np.float64) is not cache.typed("b", source, np.float64)
