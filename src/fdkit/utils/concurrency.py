"""Thread-pool helpers for the calculus routines."""

from __future__ import annotations

import contextvars
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Sequence, Tuple

__all__ = [
    "normalize_workers",
    "resolve_workers",
    "parallel_execute",
]


def _int_env(name: str) -> int | None:
    """Reads a positive integer from an environment variable, or None if unset/invalid.

    Args:
        name: Environment variable name.

    Returns:
        Positive integer value, or None.
    """
    v = os.getenv(name)
    if not v:
        return None
    try:
        i = int(v)
        return i if i > 0 else None
    except ValueError:
        return None


def _detect_hw_threads() -> int:
    """Detects the number of hardware threads, capped by the BLAS thread hints.

    Returns:
        Number of hardware threads (at least 1).
    """
    hints = [
        _int_env("OMP_NUM_THREADS"),
        _int_env("MKL_NUM_THREADS"),
        _int_env("OPENBLAS_NUM_THREADS"),
        _int_env("VECLIB_MAXIMUM_THREADS"),
        _int_env("NUMEXPR_NUM_THREADS"),
    ]
    env_cap = min([h for h in hints if h is not None], default=None)
    hw = os.cpu_count() or 1
    return max(1, min(hw, env_cap) if env_cap else hw)


def normalize_workers(n_workers: Any) -> int:
    """Ensures n_workers is a positive integer, defaulting to 1.

    Args:
        n_workers: Input number of workers (can be None, float, negative, etc.)

    Returns:
        A positive integer number of workers (at least 1).
    """
    try:
        n = int(n_workers)
    except (TypeError, ValueError):
        n = 1
    return 1 if n < 1 else n


def resolve_workers(n_workers: int | None, n_tasks: int) -> int:
    """Decides how many threads to use for ``n_tasks`` independent tasks.

    Args:
        n_workers: Requested number of workers. ``None`` uses the number of
            hardware threads, capped by the usual BLAS thread environment
            variables.
        n_tasks: Number of tasks to run.

    Returns:
        A worker count between 1 and ``max(n_tasks, 1)``.
    """
    requested = _detect_hw_threads() if n_workers is None else normalize_workers(n_workers)
    return max(1, min(requested, n_tasks))


def parallel_execute(
    worker: Callable[..., Any],
    arg_tuples: Sequence[Tuple[Any, ...]],
    *,
    n_workers: int = 1,
) -> list[Any]:
    """Runs ``worker(*args)`` for each tuple in ``arg_tuples``.

    With more than one worker the calls run in a thread pool; each task gets
    its own copy of the current context. Results are returned in the order
    of ``arg_tuples`` and exceptions raised by a task propagate.

    Args:
        worker: The callable to run.
        arg_tuples: Positional arguments, one tuple per task.
        n_workers: Number of threads.

    Returns:
        The list of results.
    """
    if n_workers > 1 and len(arg_tuples) > 1:
        with ThreadPoolExecutor(max_workers=n_workers) as ex:
            futures = []
            for args in arg_tuples:
                ctx = contextvars.copy_context()
                futures.append(ex.submit(ctx.run, worker, *args))
            return [f.result() for f in futures]
    return [worker(*args) for args in arg_tuples]
