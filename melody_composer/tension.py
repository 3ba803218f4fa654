"""Contour shaping and interval tension helpers.

The melody walker chooses each move from a weighted table. This module
supplies the multiplicative biases applied to those weights before the draw:

* :func:`contour_direction` maps a position in the passage (``0.0`` at the
  start, ``1.0`` at the end) to the preferred direction of travel for a
  :class:`ContourShape`.
* :func:`apply_contour_weights` scales each movement's weight so moves
  agreeing with that direction become more likely. It never removes a move
  outright, so the contour is a tendency rather than a rule.

:func:`interval_tension` gives a coarse dissonance score for an interval and
is used when choosing consonant counter-melody notes.

Example
-------
>>> contour_direction(ContourShape.ARCH, 0.25)
1.0
>>> contour_direction(ContourShape.ARCH, 0.75)
-1.0

Design Notes
------------
- Positions are bucketed into :data:`CONTOUR_RESOLUTION` segments so the set
  of distinct weight vectors stays small and the cached cumulative tables in
  :mod:`melody_composer.performance` are reused.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import List, Sequence

from .theory import Movement, MoveType

__all__ = [
    "ContourShape",
    "CONTOUR_RESOLUTION",
    "CONTOUR_STRENGTH",
    "contour_direction",
    "apply_contour_weights",
    "interval_tension",
]

CONTOUR_RESOLUTION = 16
CONTOUR_STRENGTH = 0.6

# Large moves are damped for the static contour.
_STATIC_LEAP_FACTOR = 0.35


class ContourShape(Enum):
    """Overall melodic shapes."""

    ASCENDING = "ascending"
    DESCENDING = "descending"
    ARCH = "arch"
    INVERTED_ARCH = "inverted_arch"
    WAVE = "wave"
    STATIC = "static"
    TERRACED = "terraced"

    @classmethod
    def from_name(cls, name) -> "ContourShape":
        """Return the shape for ``name``; unknown names yield ``ARCH``."""

        if isinstance(name, cls):
            return name
        text = str(name).strip().lower().replace("-", "_").replace(" ", "_")
        for shape in cls:
            if text == shape.value:
                return shape
        logging.debug("Unknown contour %r; using arch", name)
        return cls.ARCH


def _bucket(progress: float) -> float:
    progress = max(0.0, min(1.0, progress))
    idx = min(CONTOUR_RESOLUTION - 1, int(progress * CONTOUR_RESOLUTION))
    return (idx + 0.5) / CONTOUR_RESOLUTION


def contour_direction(shape: ContourShape, progress: float) -> float:
    """Return the preferred direction in ``[-1, 1]`` at ``progress``."""

    t = _bucket(progress)
    if shape is ContourShape.ASCENDING:
        return 1.0
    if shape is ContourShape.DESCENDING:
        return -1.0
    if shape is ContourShape.ARCH:
        return 1.0 if t < 0.5 else -1.0
    if shape is ContourShape.INVERTED_ARCH:
        return -1.0 if t < 0.5 else 1.0
    if shape is ContourShape.WAVE:
        return round(math.sin(2.0 * math.pi * 2.0 * t), 3)
    if shape is ContourShape.TERRACED:
        # Climb during the first half of each quarter, then hold the level.
        return 1.0 if (t * 4.0) % 1.0 < 0.5 else 0.0
    return 0.0


def apply_contour_weights(
    moves: Sequence[Movement], shape: ContourShape, progress: float
) -> List[float]:
    """Return the weights of ``moves`` biased toward the contour at ``progress``."""

    direction = contour_direction(shape, progress)
    weights: List[float] = []
    for move in moves:
        factor = 1.0 + CONTOUR_STRENGTH * direction * move.direction
        if shape is ContourShape.STATIC and move.kind is MoveType.LEAP:
            factor *= _STATIC_LEAP_FACTOR
        weights.append(move.weight * max(factor, 0.05))
    return weights


def interval_tension(interval: int) -> float:
    """Return a simple tension value for ``interval`` in semitones."""

    mapping = {0: 0.0, 1: 0.9, 2: 0.6, 3: 0.2, 4: 0.15, 5: 0.4, 6: 1.0,
               7: 0.1, 8: 0.25, 9: 0.2, 10: 0.6, 11: 0.9}
    return mapping[abs(interval) % 12]
