"""Parallel processing mode helpers for batch encoding."""

import os
from concurrent.futures import ThreadPoolExecutor
from collections.abc import Callable, Sequence
from enum import Enum
from math import ceil
from typing import Literal

from .errors import StrategyError

ParallelStrategy = Literal["auto", "batch", "chunk", "off"]


class ParallelMode(str, Enum):
    """Named parallelization modes for batch calls."""

    AUTO = "auto"
    BATCH = "batch"
    CHUNK = "chunk"
    OFF = "off"

    @classmethod
    def get(cls, name: "str | ParallelMode") -> "ParallelMode":
        """Get parallel mode by name (case-insensitive)."""
        if isinstance(name, ParallelMode):
            return name
        try:
            return cls[name.upper()]
        except KeyError:
            raise StrategyError(
                "unknown mode",
                invalid_name=name,
                available_strats=[mode.value for mode in cls],
            )


def list_parallel_modes() -> list[str]:
    """Return available parallel mode names."""
    return [mode.value for mode in ParallelMode]


def resolve_workers(num_workers: int | None) -> int:
    """Return a usable worker count; ``None`` means one per CPU."""
    if num_workers is None:
        return os.cpu_count() or 1
    return max(1, num_workers)  # "0" interpreted as 1 worker


def map_grouped[T, R](
    func: Callable[[T], R], items: Sequence[T], workers: int
) -> list[R]:
    """
    Apply ``func`` to ``items`` on a thread pool, preserving input order.

    Items are grouped to reduce task-scheduling overhead when there are many
    small inputs.
    """
    if workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]

    target_tasks = min(len(items), workers * 2)
    group_size = max(1, ceil(len(items) / target_tasks))
    groups = [items[idx : idx + group_size] for idx in range(0, len(items), group_size)]

    def run_group(group: Sequence[T]) -> list[R]:
        return [func(item) for item in group]

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(run_group, groups))
    return [result for group in results for result in group]


__all__ = [
    "ParallelStrategy",
    "ParallelMode",
    "list_parallel_modes",
    "resolve_workers",
    "map_grouped",
]
