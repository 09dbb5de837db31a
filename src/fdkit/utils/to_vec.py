"""Flattening of nested numeric values to real vectors and back.

:func:`to_vec` turns a value (a scalar, an array, a list, a dict, a
dataclass, ...) into a one-dimensional real float array together with a
function that rebuilds a value of the same shape from such a vector. The
calculus routines use it to treat arbitrarily structured inputs and outputs
as plain vectors.

Examples:
--------
>>> import numpy as np
>>> from fdkit.utils.to_vec import to_vec
>>> vec, back = to_vec({"a": 1.0, "b": np.array([2.0, 3.0])})
>>> vec.tolist()
[1.0, 2.0, 3.0]
>>> back(vec * 2)["b"].tolist()
[4.0, 6.0]
"""

from __future__ import annotations

import copy
import dataclasses
import numbers
from collections.abc import Callable, Mapping, MutableMapping
from functools import singledispatch
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

__all__ = [
    "Reconstructor",
    "to_vec",
]

#: Rebuilds a value from a real vector.
Reconstructor = Callable[[ArrayLike], Any]


def _as_vector(v: ArrayLike, size: int) -> NDArray[np.float64]:
    arr = np.asarray(v)
    if arr.ndim != 1 or arr.size != size:
        raise ValueError(f"Expected a vector of length {size}; got shape {arr.shape}.")
    return arr


def _split(vec: NDArray, sizes: tuple[int, ...]) -> list[NDArray]:
    bounds = np.cumsum((0, *sizes))
    return [vec[start:stop] for start, stop in zip(bounds[:-1], bounds[1:])]


def _concatenate(parts: list[NDArray]) -> NDArray[np.float64]:
    if not parts:
        return np.zeros(0)
    return np.concatenate(parts).astype(np.result_type(*parts, np.float16), copy=False)


@dataclasses.dataclass(frozen=True)
class _ScalarRebuild:
    scalar_type: type

    def __call__(self, v: ArrayLike) -> Any:
        return self.scalar_type(_as_vector(v, 1)[0])


@dataclasses.dataclass(frozen=True)
class _ComplexRebuild:
    scalar_type: type

    def __call__(self, v: ArrayLike) -> Any:
        re, im = _as_vector(v, 2)
        return self.scalar_type(complex(re, im))


@dataclasses.dataclass(frozen=True)
class _ArrayRebuild:
    shape: tuple[int, ...]
    dtype: np.dtype

    def __call__(self, v: ArrayLike) -> NDArray:
        n = int(np.prod(self.shape, dtype=np.int64))
        vec = _as_vector(v, 2 * n if self.dtype.kind == "c" else n)
        if self.dtype.kind == "c":
            vec = vec[:n] + 1j * vec[n:]
        return np.asarray(vec).reshape(self.shape).astype(self.dtype, copy=False)


def _promoted(dtype: np.dtype) -> np.dtype:
    """Returns ``dtype`` with integer and boolean parts replaced by float64."""
    if dtype.names is not None:
        return np.dtype([(name, _promoted(dtype.fields[name][0])) for name in dtype.names])
    if dtype.subdtype is not None:
        base, shape = dtype.subdtype
        return np.dtype((_promoted(base), shape))
    return np.dtype(np.float64) if dtype.kind in "biu" else dtype


@dataclasses.dataclass(frozen=True)
class _StructuredRebuild:
    shape: tuple[int, ...]
    dtype: np.dtype
    fields: tuple[Reconstructor, ...]
    sizes: tuple[int, ...]

    def __call__(self, v: ArrayLike) -> NDArray:
        vec = _as_vector(v, sum(self.sizes))
        out = np.empty(self.shape, dtype=self.dtype)
        for name, rebuild, part in zip(self.dtype.names, self.fields, _split(vec, self.sizes)):
            out[name] = rebuild(part)
        return out


@dataclasses.dataclass(frozen=True)
class _SequenceRebuild:
    factory: Callable[[list[Any]], Any]
    items: tuple[Reconstructor, ...]
    sizes: tuple[int, ...]

    def __call__(self, v: ArrayLike) -> Any:
        vec = _as_vector(v, sum(self.sizes))
        return self.factory([rebuild(part) for rebuild, part in zip(self.items, _split(vec, self.sizes))])


@dataclasses.dataclass(frozen=True)
class _NamedTupleFactory:
    cls: type

    def __call__(self, items: list[Any]) -> tuple:
        return self.cls(*items)


@dataclasses.dataclass(frozen=True)
class _ObjectArrayRebuild:
    shape: tuple[int, ...]
    items: tuple[Reconstructor, ...]
    sizes: tuple[int, ...]

    def __call__(self, v: ArrayLike) -> NDArray:
        vec = _as_vector(v, sum(self.sizes))
        out = np.empty(len(self.items), dtype=object)
        for i, (rebuild, part) in enumerate(zip(self.items, _split(vec, self.sizes))):
            out[i] = rebuild(part)
        return out.reshape(self.shape)


@dataclasses.dataclass(frozen=True, eq=False)
class _MappingRebuild:
    template: Mapping
    keys: tuple[Any, ...]
    values: Reconstructor

    def __call__(self, v: ArrayLike) -> Mapping:
        items = zip(self.keys, self.values(v))
        if not isinstance(self.template, MutableMapping):
            return type(self.template)(items)
        # The copy keeps type and state such as a default_factory; Counter.update
        # would add counts, so items are assigned one at a time.
        out = copy.copy(self.template)
        out.clear()
        for key, item in items:
            out[key] = item
        return out


@dataclasses.dataclass(frozen=True)
class _DataclassRebuild:
    template: Any
    names: tuple[str, ...]
    values: Reconstructor

    def __call__(self, v: ArrayLike) -> Any:
        return dataclasses.replace(self.template, **dict(zip(self.names, self.values(v))))


def _flatten_items(items: list[Any]) -> tuple[NDArray, tuple[Reconstructor, ...], tuple[int, ...]]:
    flattened = [to_vec(item) for item in items]
    parts = [vec for vec, _ in flattened]
    return (
        _concatenate(parts),
        tuple(rebuild for _, rebuild in flattened),
        tuple(part.size for part in parts),
    )


@singledispatch
def to_vec(value: Any) -> tuple[NDArray[np.floating], Reconstructor]:
    """Flattens ``value`` into a real vector.

    Supported values are real and complex scalars, NumPy arrays (including
    complex, structured and object arrays), lists, tuples, named tuples,
    mappings and dataclass instances, nested arbitrarily. Complex numbers
    contribute their real and imaginary parts. Integers are promoted to
    floating point.

    Args:
        value: The value to flatten.

    Returns:
        A pair ``(vector, reconstruct)``. ``reconstruct`` maps a vector of
        the same length back to a value of the same structure as ``value``
        and raises ``ValueError`` for a vector of the wrong length.

    Raises:
        TypeError: If no flattening is defined for the type of ``value``.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        names = tuple(f.name for f in dataclasses.fields(value) if f.init)
        vec, values = to_vec([getattr(value, name) for name in names])
        return vec, _DataclassRebuild(value, names, values)
    raise TypeError(f"No flattening defined for type {type(value).__name__}.")


@to_vec.register(numbers.Real)
def _(value: numbers.Real) -> tuple[NDArray[np.floating], Reconstructor]:
    if isinstance(value, np.floating):
        return np.array([value]), _ScalarRebuild(type(value))
    return np.array([float(value)]), _ScalarRebuild(float)


@to_vec.register(numbers.Complex)
def _(value: numbers.Complex) -> tuple[NDArray[np.floating], Reconstructor]:
    scalar_type = type(value) if isinstance(value, np.complexfloating) else complex
    vec = np.array([value.real, value.imag])
    return vec, _ComplexRebuild(scalar_type)


@to_vec.register(np.ndarray)
def _(value: np.ndarray) -> tuple[NDArray[np.floating], Reconstructor]:
    kind = value.dtype.kind
    if value.dtype.names is not None:
        fields = [to_vec(np.ascontiguousarray(value[name])) for name in value.dtype.names]
        parts = [vec for vec, _ in fields]
        return _concatenate(parts), _StructuredRebuild(
            value.shape,
            _promoted(value.dtype),
            tuple(rebuild for _, rebuild in fields),
            tuple(part.size for part in parts),
        )
    if kind == "O":
        vec, items, sizes = _flatten_items(list(value.ravel()))
        return vec, _ObjectArrayRebuild(value.shape, items, sizes)
    if kind == "c":
        flat = value.ravel()
        return np.concatenate([flat.real, flat.imag]), _ArrayRebuild(value.shape, value.dtype)
    if kind in "biu":
        return value.ravel().astype(np.float64), _ArrayRebuild(value.shape, np.dtype(np.float64))
    if kind == "f":
        return value.ravel().copy(), _ArrayRebuild(value.shape, value.dtype)
    raise TypeError(f"No flattening defined for arrays of dtype {value.dtype}.")


@to_vec.register(list)
def _(value: list) -> tuple[NDArray[np.floating], Reconstructor]:
    vec, items, sizes = _flatten_items(value)
    return vec, _SequenceRebuild(list, items, sizes)


@to_vec.register(tuple)
def _(value: tuple) -> tuple[NDArray[np.floating], Reconstructor]:
    vec, items, sizes = _flatten_items(list(value))
    factory = _NamedTupleFactory(type(value)) if hasattr(value, "_fields") else tuple
    return vec, _SequenceRebuild(factory, items, sizes)


@to_vec.register(Mapping)
def _(value: Mapping) -> tuple[NDArray[np.floating], Reconstructor]:
    keys = tuple(value.keys())
    vec, values = to_vec([value[key] for key in keys])
    return vec, _MappingRebuild(value, keys, values)
