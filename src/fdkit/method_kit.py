"""Provides name-based construction of finite-difference methods.

The standard layouts are registered under a canonical name and a few
aliases, so that a method can be chosen from a configuration string.

Adding methods
--------------
New layouts can be registered without modifying this module by calling
``register_method`` with a builder that accepts
``(accuracy_order, derivative_order, **kwargs)``.

Examples:
    Basic usage:

        >>> import numpy as np
        >>> from fdkit.method_kit import get_method
        >>> m = get_method("central", 4, 1)
        >>> bool(np.isclose(m(np.sin, 0.0), 1.0))
        True

    Registering a new method:

        >>> from fdkit.method_kit import register_method
        >>> from fdkit.finite.finite_difference import central_method
        >>> def geometric_central(accuracy_order, derivative_order, **kwargs):
        ...     return central_method(accuracy_order, derivative_order, geom=True, **kwargs)
        >>> register_method("geometric", geometric_central, aliases=("geom",))  # doctest: +SKIP

Notes:
    - Method names are case/spacing/punctuation insensitive, so
      ``"Central-Difference"`` and ``"central_difference"`` are the same.
    - For available canonical method names at runtime, call
      ``available_methods()``.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any, Iterable, Mapping, Protocol

from fdkit.finite.finite_difference import (
    FiniteDifferenceMethod,
    backward_method,
    central_method,
    forward_method,
)

__all__ = [
    "MethodBuilder",
    "available_methods",
    "get_method",
    "register_method",
]


class MethodBuilder(Protocol):
    """Protocol each registered method builder must satisfy."""

    def __call__(
        self, accuracy_order: int, derivative_order: int, **kwargs: Any
    ) -> FiniteDifferenceMethod:
        """Build a method for the given orders."""
        ...


# These are the built-in layouts available by default.
_METHOD_SPECS: list[tuple[str, MethodBuilder, list[str]]] = [
    ("forward", forward_method, ["fwd", "forward-difference", "forward_difference"]),
    ("backward", backward_method, ["bwd", "backward-difference", "backward_difference"]),
    ("central", central_method, ["ctr", "central-difference", "central_difference"]),
]


def _norm(s: str) -> str:
    """Normalize a method string for robust matching (case/spacing/punct insensitive).

    Args:
        s: Input string.

    Returns:
        Normalized string.
    """
    return re.sub(r"[^a-z0-9]+", "", s.lower())


@lru_cache(maxsize=1)
def _method_maps() -> tuple[Mapping[str, MethodBuilder], tuple[str, ...]]:
    """Builds and caches the lookup tables from names and aliases to builders.

    The cache is cleared by :func:`register_method`.

    Returns:
        A pair ``(method_map, canonical_names)``, where ``method_map`` maps
        normalized names and aliases to builders and ``canonical_names``
        lists the sorted canonical names.
    """
    method_map: dict[str, MethodBuilder] = {}
    canonical: set[str] = set()
    for name, builder, aliases in _METHOD_SPECS:
        k = _norm(name)
        method_map[k] = builder
        canonical.add(k)
        for a in aliases:
            method_map[_norm(a)] = builder
    return method_map, tuple(sorted(canonical))


def register_method(
    name: str,
    builder: MethodBuilder,
    *,
    aliases: Iterable[str] = (),
) -> None:
    """Registers a new method builder.

    Args:
        name: Canonical public name of the method.
        builder: Callable building a method from
            ``(accuracy_order, derivative_order, **kwargs)``.
        aliases: Additional accepted spellings.

    Raises:
        ValueError: If ``name`` normalizes to an empty string.
    """
    if not _norm(name):
        raise ValueError(f"Invalid method name {name!r}.")
    _METHOD_SPECS.append((name, builder, list(aliases)))
    _method_maps.cache_clear()


def _resolve(name: str) -> MethodBuilder:
    """Resolves a user-provided method name or alias to a builder.

    Args:
        name: User-provided method name or alias.

    Returns:
        The registered builder.

    Raises:
        ValueError: If the name is not registered.
    """
    method_map, canon = _method_maps()
    try:
        return method_map[_norm(name)]
    except KeyError:
        opts = ", ".join(canon)
        raise ValueError(f"Unknown finite-difference method '{name}'. Choose one of {{{opts}}}.") from None


def get_method(
    name: str,
    accuracy_order: int,
    derivative_order: int,
    **kwargs: Any,
) -> FiniteDifferenceMethod:
    """Builds a finite-difference method by name.

    Args:
        name: Method name or alias (e.g. ``"central"``, ``"fwd"``).
        accuracy_order: Exponent of the truncation error.
        derivative_order: Order of the derivative.
        **kwargs: Passed through to the builder (``adapt``, ``max_range``,
            ``condition``, ``factor``, ``geom``).

    Returns:
        The finite-difference method.

    Raises:
        ValueError: If ``name`` is not recognized.
    """
    return _resolve(name)(accuracy_order, derivative_order, **kwargs)


def available_methods() -> list[str]:
    """List canonical method names.

    Returns:
        List of method names.
    """
    _, canon = _method_maps()
    return list(canon)
