"""Weighted selection tables and optional profiling utilities.

Every probabilistic choice in the engine (rhythm patterns, melodic moves,
progressions, harmonic rhythm) goes through :func:`weighted_index`. The
function turns a weight set into a normalised cumulative table with
``numpy.cumsum`` and locates a single uniform draw in it with
``numpy.searchsorted``. Tables are memoised per distinct weight tuple so the
build cost is paid once per weight set rather than once per draw.

The uniform value always comes from the caller's :class:`random.Random`
instance so results stay reproducible for a given seed.

Example
-------
>>> import random
>>> weighted_index([0.0, 1.0], random.Random(1))
1

Design Notes
------------
- Cached tables are read-only ``numpy`` arrays; callers never mutate them.
- A weight set that sums to zero is treated as uniform so a draw always
  succeeds.
"""

from __future__ import annotations

import cProfile
import io
import pstats
import random
from contextlib import contextmanager
from functools import lru_cache
from typing import Optional, Sequence, Tuple, TypeVar

import numpy as np

__all__ = ["cumulative_table", "weighted_index", "weighted_choice", "profile"]

T = TypeVar("T")


@lru_cache(maxsize=512)
def cumulative_table(weights: Tuple[float, ...]) -> np.ndarray:
    """Return the normalised cumulative distribution for ``weights``.

    Raises
    ------
    ValueError
        If ``weights`` is empty or contains negative values.
    """

    arr = np.asarray(weights, dtype=np.float64)
    if arr.size == 0:
        raise ValueError("weights must contain at least one element")
    if np.any(arr < 0):
        raise ValueError("weights must be non-negative")
    if arr.sum() <= 0:
        arr = np.ones_like(arr)
    table = np.cumsum(arr) / arr.sum()
    table.setflags(write=False)
    return table


def weighted_index(weights: Sequence[float], rng: random.Random) -> int:
    """Return an index into ``weights`` drawn proportionally to its weight."""

    table = cumulative_table(tuple(float(w) for w in weights))
    idx = int(np.searchsorted(table, rng.random(), side="right"))
    # Floating point rounding can leave the last entry a hair below 1.0.
    return min(idx, len(table) - 1)


def weighted_choice(items: Sequence[T], weights: Sequence[float], rng: random.Random) -> T:
    """Return one element of ``items`` chosen by ``weights``."""

    if len(items) != len(weights):
        raise ValueError("items and weights must have the same length")
    return items[weighted_index(weights, rng)]


@contextmanager
def profile(
    output: Optional[io.TextIOBase] = None,
    *,
    sort_by: str = "cumulative",
    limit: Optional[int] = 20,
):
    """Record ``cProfile`` statistics for the wrapped block.

    Parameters
    ----------
    output:
        File-like object receiving the report. When ``None`` nothing is
        printed but the caller still gets the :class:`cProfile.Profile`
        object for manual inspection.
    sort_by:
        Sort key forwarded to :meth:`pstats.Stats.sort_stats`, e.g.
        ``"cumulative"`` or ``"time"``.
    limit:
        Optional cap on the number of rows printed. ``None`` prints the entire
        table. Values must be positive when provided.
    """

    if limit is not None and limit <= 0:
        raise ValueError("limit must be None or a positive integer")
    if not isinstance(sort_by, str) or not sort_by:
        raise ValueError("sort_by must be a non-empty string")

    pr = cProfile.Profile()
    pr.enable()
    try:
        yield pr
    finally:
        pr.disable()
        if output is not None:
            stats = pstats.Stats(pr, stream=output).strip_dirs().sort_stats(sort_by)
            if limit is None:
                stats.print_stats()
            else:
                stats.print_stats(limit)
