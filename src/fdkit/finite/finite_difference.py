"""Provides the FiniteDifferenceMethod class and its constructors.

A method is built once for a given accuracy order and derivative order and
can then be applied to any function at any point. By default the step size
is chosen adaptively for every function and point.

Examples:
--------
First derivative of ``sin`` with a central stencil:

>>> import numpy as np
>>> from fdkit.finite.finite_difference import central_method
>>> m = central_method(4, 1)
>>> bool(np.isclose(m(np.sin, 1.0), np.cos(1.0), rtol=1e-10))
True

Second derivative with a forward stencil that never looks left of ``x``:

>>> from fdkit.finite.finite_difference import forward_method
>>> m = forward_method(6, 2)
>>> bool(np.isclose(m(np.exp, 0.5), np.exp(0.5), rtol=1e-6))
True

Evaluation at an explicit step:

>>> m = central_method(2, 1, adapt=0)
>>> bool(np.isclose(m(lambda x: x**2, 1.0, 0.1), 2.0))
True
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from fdkit.finite.coefficients import (
    neighbourhood_coefficients,
    stencil_coefficients,
    truncation_constant,
)
from fdkit.finite.step_size import (
    DEFAULT_CONDITION,
    DEFAULT_FACTOR,
    estimate_step,
)
from fdkit.finite.stencil import StencilKind, build_grid, is_symmetric
from fdkit.logger import fdkit_logger
from fdkit.utils.caching import StepCache, StepEstimate
from fdkit.utils.types import ScalarFunction
from fdkit.utils.validate import (
    validate_grid,
    validate_max_range,
    validate_order,
    validate_positive,
)

__all__ = [
    "FiniteDifferenceMethod",
    "forward_method",
    "backward_method",
    "central_method",
    "custom_method",
    "promote_point",
]


def promote_point(x: ArrayLike) -> np.floating | NDArray[np.floating]:
    """Promotes an evaluation point to floating point.

    NumPy floating scalars and arrays keep their dtype; Python numbers and
    integer or boolean NumPy values become float64.

    Args:
        x: A real scalar or array.

    Returns:
        A NumPy floating scalar for scalar input, otherwise a floating array.

    Raises:
        TypeError: If ``x`` is not real-valued.
    """
    arr = np.asarray(x)
    if arr.dtype.kind == "f":
        dtype = arr.dtype
    elif arr.dtype.kind in "biu":
        dtype = np.dtype(np.float64)
    else:
        raise TypeError(f"Cannot differentiate at a point of dtype {arr.dtype}.")
    if arr.ndim == 0:
        return dtype.type(arr)
    return arr.astype(dtype)


@dataclass(frozen=True, eq=False, repr=False)
class FiniteDifferenceMethod:
    """A finite-difference stencil that estimates a derivative of fixed order.

    The estimate of the ``d``-th derivative of ``f`` at ``x`` with step ``h``
    is ``sum_i c_i f(x + h g_i) / h**d``, where ``g`` is the grid and ``c``
    the coefficients. The descriptor is immutable; the step-size search
    state lives in the attached :class:`~fdkit.utils.caching.StepCache`.

    Use :func:`forward_method`, :func:`backward_method`,
    :func:`central_method` or :func:`custom_method` rather than calling the
    constructor directly.

    Attributes:
        kind: The stencil layout the grid was built from.
        grid: Integer sample offsets in units of the step size.
        coefficients: Weights paired positionally with ``grid``.
        derivative_order: The order of the derivative being estimated.
        accuracy_order: Exponent of the truncation error; the grid has
            ``accuracy_order + derivative_order`` points.
        neighbourhood: Three coefficient vectors estimating the same
            derivative at neighbouring grid points, used when this method
            bounds the derivative magnitude for another method.
        condition: Derivative magnitude assumed when no adaptation is used.
        factor: Multiplier on the round-off error in the function values.
        max_range: Largest distance from ``x`` at which the function may be
            evaluated.
        bound_estimator: Method estimating the truncation derivative for the
            adaptive step search, or ``None`` for a fixed heuristic step.
        coefficient_norm: ``sum |c_i|``, the amplification of round-off error.
        truncation_constant: ``sum |c_i g_i**n| / n!`` for ``n`` grid points.
        cache: Mutable step-size and dtype cache.
    """

    kind: StencilKind
    grid: NDArray[np.int64]
    coefficients: NDArray[np.float64]
    derivative_order: int
    accuracy_order: int
    neighbourhood: tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]
    condition: float = DEFAULT_CONDITION
    factor: float = DEFAULT_FACTOR
    max_range: float = math.inf
    bound_estimator: FiniteDifferenceMethod | None = None
    coefficient_norm: float = field(init=False)
    truncation_constant: float = field(init=False)
    cache: StepCache = field(init=False)

    def __post_init__(self) -> None:
        """Checks the stencil invariants and precomputes error constants."""
        n = self.grid.size
        if self.coefficients.size != n or self.accuracy_order + self.derivative_order != n:
            raise ValueError(
                f"Inconsistent stencil: {n} grid points, {self.coefficients.size} "
                f"coefficients, accuracy order {self.accuracy_order} and derivative "
                f"order {self.derivative_order}."
            )
        for arr in (self.grid, self.coefficients, *self.neighbourhood):
            arr.flags.writeable = False

        object.__setattr__(self, "coefficient_norm", float(np.sum(np.abs(self.coefficients))))
        object.__setattr__(
            self, "truncation_constant", truncation_constant(self.grid, self.coefficients)
        )
        object.__setattr__(self, "cache", StepCache())

    @property
    def num_points(self) -> int:
        """Number of grid points."""
        return int(self.grid.size)

    @property
    def is_symmetric(self) -> bool:
        """Whether the grid is unchanged under negation and reversal."""
        return is_symmetric(self.grid, centre_zero=True, negate_half=True)

    @property
    def adapt(self) -> int:
        """Number of adaptation rounds, i.e. the length of the bound-estimator chain."""
        depth = 0
        estimator = self.bound_estimator
        while estimator is not None:
            depth += 1
            estimator = estimator.bound_estimator
        return depth

    @property
    def history(self) -> StepEstimate | None:
        """The last step estimate stored in the cache, or ``None``."""
        return self.cache.last_estimate

    def __call__(
        self,
        function: ScalarFunction,
        x: ArrayLike,
        step: float | None = None,
    ) -> np.floating | NDArray[np.floating]:
        """Estimates the derivative of ``function`` at ``x``.

        Args:
            function: The function to differentiate. Called once per grid
                point with a floating scalar (or array, if ``x`` is an
                array) and may return a scalar or an array.
            x: The evaluation point.
            step: Step size. If ``None``, the step is estimated adaptively,
                reusing the previous estimate when the same function object
                is evaluated again at the same point.

        Returns:
            The derivative estimate, with the promoted dtype of the function
            values and ``x``. The result is non-finite when the step is zero,
            e.g. because ``max_range`` is zero.
        """
        x = promote_point(x)
        if step is None:
            step = self._cached_step(function, x)
        return self.combine(self.sample(function, x, step), step)

    def _cached_step(self, function: ScalarFunction, x: Any) -> float:
        estimate = self.cache.lookup(function, x)
        if estimate is None:
            estimate = estimate_step(self, function, x)
            self.cache.store(function, x, estimate)
        return estimate.step

    def estimate_step(self, function: ScalarFunction, x: ArrayLike) -> StepEstimate:
        """Estimates the step size for ``function`` at ``x``.

        The cache is neither consulted nor updated.

        Args:
            function: The function to differentiate.
            x: The evaluation point.

        Returns:
            The step and the estimated accuracy of the derivative.
        """
        return estimate_step(self, function, promote_point(x))

    def sample(
        self,
        function: ScalarFunction,
        x: np.floating | NDArray[np.floating],
        step: float,
    ) -> NDArray[np.inexact]:
        """Evaluates ``function`` on the grid around ``x``.

        Args:
            function: The function to sample.
            x: The evaluation point, already promoted to floating point.
            step: Step size.

        Returns:
            Array of shape ``(num_points, *output_shape)``. Integer and
            boolean outputs are promoted to floating point.

        Raises:
            TypeError: If the function returns non-numeric values.
        """
        dtype = np.asarray(x).dtype
        grid = self.cache.typed("grid", self.grid, dtype)
        h = dtype.type(step)
        values = np.asarray([function(x + h * g) for g in grid])
        if values.dtype.kind not in "biufc":
            raise TypeError(f"function must return numeric values; got dtype {values.dtype}.")
        out_dtype = np.result_type(values.dtype, dtype)
        if out_dtype.kind not in "fc":
            out_dtype = np.dtype(np.float64)
        return values.astype(out_dtype, copy=False)

    def combine(
        self,
        values: NDArray[np.inexact],
        step: float,
        coefficients: NDArray[np.float64] | None = None,
    ) -> np.floating | NDArray[np.floating]:
        """Combines sampled function values into a derivative estimate.

        Args:
            values: Output of :meth:`sample`.
            step: The step the values were sampled at.
            coefficients: Alternative weights, e.g. one of
                :attr:`neighbourhood`. Defaults to :attr:`coefficients`.

        Returns:
            The weighted sum divided by ``step**derivative_order``.
        """
        dtype = values.dtype
        if coefficients is None:
            weights = self.cache.typed("coefficients", self.coefficients, dtype)
        else:
            weights = np.asarray(coefficients, dtype=dtype)
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            estimate = np.tensordot(weights, values, axes=(0, 0)) / dtype.type(step) ** self.derivative_order
        return estimate[()] if np.ndim(estimate) == 0 else estimate

    def describe(self) -> str:
        """Returns a human-readable summary of the orders, grid and coefficients."""
        lines = [
            "FiniteDifferenceMethod:",
            f"  order of accuracy:     {self.accuracy_order}",
            f"  order of derivative:   {self.derivative_order}",
            f"  grid:                  {self.grid.tolist()}",
            f"  coefficients:          {[float(c) for c in self.coefficients]}",
        ]
        return "\n".join(lines)

    def __str__(self) -> str:
        """Returns :meth:`describe`."""
        return self.describe()

    def __repr__(self) -> str:
        """Returns a short representation naming the layout and orders."""
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"accuracy_order={self.accuracy_order}, "
            f"derivative_order={self.derivative_order}, adapt={self.adapt})"
        )


def _validated_settings(
    adapt: int,
    max_range: float,
    condition: float,
    factor: float,
) -> tuple[int, float, float, float]:
    return (
        validate_order(adapt, name="adapt"),
        validate_max_range(max_range),
        validate_positive(condition, name="condition"),
        validate_positive(factor, name="factor"),
    )


def _assemble(
    kind: StencilKind,
    grid: NDArray[np.int64],
    derivative_order: int,
    *,
    condition: float,
    factor: float,
    max_range: float,
    bound_estimator: FiniteDifferenceMethod | None,
) -> FiniteDifferenceMethod:
    method = FiniteDifferenceMethod(
        kind=kind,
        grid=grid,
        coefficients=stencil_coefficients(grid, derivative_order),
        derivative_order=derivative_order,
        accuracy_order=grid.size - derivative_order,
        neighbourhood=neighbourhood_coefficients(grid, derivative_order),
        condition=condition,
        factor=factor,
        max_range=max_range,
        bound_estimator=bound_estimator,
    )
    fdkit_logger.debug("Built %r.", method)
    return method


def _standard_method(
    kind: StencilKind,
    accuracy_order: int,
    derivative_order: int,
    *,
    adapt: int,
    max_range: float,
    condition: float,
    factor: float,
    geom: bool,
) -> FiniteDifferenceMethod:
    accuracy_order = validate_order(accuracy_order, name="accuracy_order", minimum=1)
    derivative_order = validate_order(derivative_order, name="derivative_order")
    adapt, max_range, condition, factor = _validated_settings(adapt, max_range, condition, factor)

    num_points = accuracy_order + derivative_order
    grid = build_grid(kind, num_points, geom=geom)

    bound_estimator = None
    if adapt > 0:
        # Estimates the num_points-th derivative that drives the truncation error.
        bound_estimator = _standard_method(
            kind,
            1,
            num_points,
            adapt=adapt - 1,
            max_range=max_range,
            condition=condition,
            factor=factor,
            geom=geom,
        )
    return _assemble(
        kind,
        grid,
        derivative_order,
        condition=condition,
        factor=factor,
        max_range=max_range,
        bound_estimator=bound_estimator,
    )


def forward_method(
    accuracy_order: int,
    derivative_order: int,
    *,
    adapt: int = 1,
    max_range: float = math.inf,
    condition: float = DEFAULT_CONDITION,
    factor: float = DEFAULT_FACTOR,
    geom: bool = False,
) -> FiniteDifferenceMethod:
    """Builds a forward finite-difference method.

    The grid is ``0, 1, ..., accuracy_order + derivative_order - 1``, so the
    function is never evaluated to the left of ``x``.

    Args:
        accuracy_order: Exponent of the truncation error. Must be at least 1.
        derivative_order: Order of the derivative. Must be non-negative.
        adapt: Number of adaptation rounds of the step-size search. ``0``
            uses a fixed heuristic step.
        max_range: Largest distance from ``x`` at which the function may be
            evaluated.
        condition: Derivative magnitude assumed by the heuristic step.
        factor: Multiplier on the round-off error in the function values.
        geom: If ``True``, space the grid geometrically.

    Returns:
        The finite-difference method.

    Raises:
        TypeError: If an order is not an integer.
        ValueError: If ``accuracy_order < 1``, ``derivative_order < 0``,
            ``adapt < 0`` or ``max_range < 0``.
    """
    return _standard_method(
        StencilKind.FORWARD,
        accuracy_order,
        derivative_order,
        adapt=adapt,
        max_range=max_range,
        condition=condition,
        factor=factor,
        geom=geom,
    )


def backward_method(
    accuracy_order: int,
    derivative_order: int,
    *,
    adapt: int = 1,
    max_range: float = math.inf,
    condition: float = DEFAULT_CONDITION,
    factor: float = DEFAULT_FACTOR,
    geom: bool = False,
) -> FiniteDifferenceMethod:
    """Builds a backward finite-difference method.

    The grid is the negation of the forward grid, so the function is never
    evaluated to the right of ``x``. Arguments are as in :func:`forward_method`.
    """
    return _standard_method(
        StencilKind.BACKWARD,
        accuracy_order,
        derivative_order,
        adapt=adapt,
        max_range=max_range,
        condition=condition,
        factor=factor,
        geom=geom,
    )


def central_method(
    accuracy_order: int,
    derivative_order: int,
    *,
    adapt: int = 1,
    max_range: float = math.inf,
    condition: float = DEFAULT_CONDITION,
    factor: float = DEFAULT_FACTOR,
    geom: bool = False,
) -> FiniteDifferenceMethod:
    """Builds a central finite-difference method.

    The grid is symmetric around zero. With an even number of points zero is
    not part of the grid. Arguments are as in :func:`forward_method`.
    """
    return _standard_method(
        StencilKind.CENTRAL,
        accuracy_order,
        derivative_order,
        adapt=adapt,
        max_range=max_range,
        condition=condition,
        factor=factor,
        geom=geom,
    )


def _layout_of(grid: tuple[int, ...]) -> StencilKind:
    """Returns the standard layout that stays on the same side of zero as ``grid``."""
    if min(grid) >= 0:
        return StencilKind.FORWARD
    if max(grid) <= 0:
        return StencilKind.BACKWARD
    return StencilKind.CENTRAL


def custom_method(
    grid: ArrayLike,
    derivative_order: int,
    *,
    adapt: int = 0,
    max_range: float = math.inf,
    condition: float = DEFAULT_CONDITION,
    factor: float = DEFAULT_FACTOR,
) -> FiniteDifferenceMethod:
    """Builds a finite-difference method on a user-supplied grid.

    Args:
        grid: Distinct integer offsets in units of the step size.
        derivative_order: Order of the derivative. Must be smaller than the
            number of offsets.
        adapt: Number of adaptation rounds. The bound estimator uses the
            standard layout (forward, backward or central) that samples on
            the same side of ``x`` as ``grid``.
        max_range: Largest distance from ``x`` at which the function may be
            evaluated.
        condition: Derivative magnitude assumed by the heuristic step.
        factor: Multiplier on the round-off error in the function values.

    Returns:
        The finite-difference method, with accuracy order
        ``len(grid) - derivative_order``.

    Raises:
        TypeError: If the offsets or orders are not integers.
        ValueError: If the grid has duplicate offsets or too few points.
    """
    offsets = validate_grid(grid, derivative_order)
    derivative_order = int(derivative_order)
    adapt, max_range, condition, factor = _validated_settings(adapt, max_range, condition, factor)

    bound_estimator = None
    if adapt > 0:
        bound_estimator = _standard_method(
            _layout_of(offsets),
            1,
            len(offsets),
            adapt=adapt - 1,
            max_range=max_range,
            condition=condition,
            factor=factor,
            geom=False,
        )
    return _assemble(
        StencilKind.CUSTOM,
        np.array(offsets, dtype=np.int64),
        derivative_order,
        condition=condition,
        factor=factor,
        max_range=max_range,
        bound_estimator=bound_estimator,
    )
