"""Provides :class:`StepCache`, the mutable companion of a finite-difference method.

A :class:`~fdkit.finite.finite_difference.FiniteDifferenceMethod` is an
immutable descriptor. Everything that changes while a method is being used
lives here instead:

* the last step-size estimate, together with the point it was computed for
  and a weak reference to the function, so that repeated evaluations of the same function at the same
  point skip the adaptive search;
* the grid and coefficients cast to the floating dtypes seen so far, so that
  evaluations at a fixed step do not build new arrays.

All access goes through a re-entrant lock, so a method may be shared between
threads.
"""
from __future__ import annotations

import threading
import weakref
from collections.abc import Callable
from typing import Any, NamedTuple

import numpy as np
from numpy.typing import NDArray

__all__ = [
    "StepEstimate",
    "StepCache",
]


class StepEstimate(NamedTuple):
    """A step size together with the estimated error of the derivative it gives."""

    step: float
    accuracy: float


class _StrongRef:
    """Stands in for a weak reference to objects that do not support one."""

    __slots__ = ("_target",)

    def __init__(self, target: Callable[..., Any]) -> None:
        self._target = target

    def __call__(self) -> Callable[..., Any]:
        return self._target


class StepCache:
    """Per-method record of the last step search and of dtype-cast arrays."""

    def __init__(self) -> None:
        """Initialises an empty cache."""
        self._lock = threading.RLock()
        self._function_ref: Callable[[], Callable[..., Any] | None] | None = None
        self._point: np.ndarray | None = None
        self._estimate: StepEstimate | None = None
        self._typed: dict[tuple[str, np.dtype], NDArray] = {}

    @property
    def last_estimate(self) -> StepEstimate | None:
        """The most recently stored estimate, or ``None``."""
        with self._lock:
            return self._estimate

    def lookup(self, function: Callable[..., Any], x: Any) -> StepEstimate | None:
        """Returns the stored estimate if it was made for ``function`` at ``x``.

        Args:
            function: The function being differentiated. Compared by identity.
            x: The evaluation point, already promoted to floating point.

        Returns:
            The cached estimate, or ``None`` on a miss.
        """
        with self._lock:
            if self._function_ref is None or self._function_ref() is not function:
                return None
            point = np.asarray(x)
            if point.dtype != self._point.dtype or not np.array_equal(point, self._point):
                return None
            return self._estimate

    def store(self, function: Callable[..., Any], x: Any, estimate: StepEstimate) -> None:
        """Records ``estimate`` as the step search result for ``function`` at ``x``.

        Functions that support weak references are not kept alive by the cache.
        """
        try:
            ref = weakref.ref(function)
        except TypeError:
            ref = _StrongRef(function)
        with self._lock:
            self._function_ref = ref
            self._point = np.array(x, copy=True)
            self._estimate = estimate

    def clear(self) -> None:
        """Forgets the stored estimate and all cast arrays."""
        with self._lock:
            self._function_ref = None
            self._point = None
            self._estimate = None
            self._typed.clear()

    def typed(self, key: str, source: NDArray, dtype: np.dtype) -> NDArray:
        """Returns ``source`` cast to ``dtype``, building the cast once.

        Args:
            key: Name distinguishing the cached arrays of one method
                (e.g. ``"grid"`` or ``"coefficients"``).
            source: The array to cast.
            dtype: Target dtype.

        Returns:
            A read-only array with the requested dtype.
        """
        dtype = np.dtype(dtype)
        with self._lock:
            cached = self._typed.get((key, dtype))
            if cached is None:
                cached = np.array(source, dtype=dtype)
                cached.flags.writeable = False
                self._typed[(key, dtype)] = cached
            return cached
