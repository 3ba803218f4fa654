"""Humanization and accent helpers for generated notes.

``humanize`` applies four composable perturbations to a note list in a fixed
order so results are reproducible for a given seed:

1. *timing*: random onset jitter of at most ``TIMING_MAX_BEATS * timing``,
   never crossing the neighbouring onsets;
2. *swing*: off-beat eighths are delayed by up to ``SWING_MAX_BEATS``
   (a full triplet feel at ``swing=1``);
3. *feel*: every note lays back by the same ``FEEL_MAX_BEATS * feel``;
4. *velocity*: random delta of at most ``VELOCITY_SPREAD * velocity``,
   clamped to the MIDI range.

A note's end never moves later, so notes that fit the passage before
humanizing still fit afterwards. With every amount at zero the input comes
back unchanged.

``accent_to_velocity`` converts the ``0-1`` accent of a rhythm step into a
MIDI velocity using a smoothstep curve.
"""

from __future__ import annotations

import random
from bisect import bisect_left
from dataclasses import replace
from typing import Iterable, List, Optional

from .notes import MIN_LENGTH, Note, clamp

__all__ = [
    "TIMING_MAX_BEATS",
    "SWING_MAX_BEATS",
    "FEEL_MAX_BEATS",
    "VELOCITY_SPREAD",
    "humanize",
    "accent_to_velocity",
    "is_offbeat_eighth",
]

TIMING_MAX_BEATS = 0.03
SWING_MAX_BEATS = 1.0 / 6.0
FEEL_MAX_BEATS = 0.02
VELOCITY_SPREAD = 12

ACCENT_BASE = 92
ACCENT_RANGE = 30

# How far from the exact off-beat a note may sit and still be swung.
_GRID_TOLERANCE = 0.02
# Gap kept between a shifted onset and its neighbours.
_ONSET_MARGIN = 1e-3


def _smoothstep(x: float) -> float:
    x = clamp(x, 0.0, 1.0)
    return x * x * (3.0 - 2.0 * x)


def accent_to_velocity(accent: float) -> int:
    """Return a velocity for ``accent`` in ``0-1``.

    ``0`` maps to 77, ``0.5`` to 92 and ``1`` to 107.
    """

    vel = ACCENT_BASE + (_smoothstep(accent) - 0.5) * ACCENT_RANGE
    return int(clamp(round(vel), 1, 127))


def is_offbeat_eighth(position: float) -> bool:
    """Return ``True`` when ``position`` falls on the second eighth of a beat."""

    return abs((position % 1.0) - 0.5) <= _GRID_TOLERANCE


def humanize(
    notes: Iterable[Note],
    timing: float = 0.0,
    velocity: float = 0.0,
    swing: float = 0.0,
    feel: float = 0.0,
    rng: Optional[random.Random] = None,
) -> List[Note]:
    """Return a humanized copy of ``notes``.

    Parameters
    ----------
    notes:
        Notes to perturb. The input is never modified.
    timing, velocity, swing, feel:
        Amounts in ``0-1``; values outside are clamped.
    rng:
        Random stream for the timing and velocity draws. Swing and feel are
        systematic and draw nothing.

    Returns
    -------
    list[Note]
        Perturbed notes in the input order.
    """

    notes = list(notes)
    timing = clamp(float(timing), 0.0, 1.0)
    velocity = clamp(float(velocity), 0.0, 1.0)
    swing = clamp(float(swing), 0.0, 1.0)
    feel = clamp(float(feel), 0.0, 1.0)
    if not (timing or velocity or swing or feel):
        return notes
    if rng is None:
        rng = random.Random()

    onsets = sorted({round(n.start, 6) for n in notes})
    max_jitter = TIMING_MAX_BEATS * timing
    result: List[Note] = []
    for note in notes:
        end = note.end
        idx = bisect_left(onsets, round(note.start, 6))
        lower = onsets[idx - 1] + _ONSET_MARGIN if idx > 0 else 0.0
        upper = onsets[idx + 1] - _ONSET_MARGIN if idx + 1 < len(onsets) else end
        upper = min(upper, end - MIN_LENGTH)

        start = note.start
        if timing:
            start += rng.uniform(-max_jitter, max_jitter)
        if swing and is_offbeat_eighth(note.start):
            start += SWING_MAX_BEATS * swing
        if feel:
            start += FEEL_MAX_BEATS * feel
        if upper >= lower:
            start = clamp(start, lower, max(upper, note.start))
        else:
            start = note.start
        start = max(0.0, start)

        vel = note.velocity
        if velocity:
            vel = int(clamp(round(vel + rng.uniform(-1.0, 1.0) * VELOCITY_SPREAD * velocity), 1, 127))

        result.append(replace(note, start=start, length=end - start, velocity=vel))
    return result
