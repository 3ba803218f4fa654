"""High-level phrase planning for a generated passage.

Before any notes are produced the engine sketches the shape of the passage
as a :class:`PhrasePlan`:

``bars``
    Number of bars in the passage.

``loop_bars``
    Length of the repeated melodic motif in bars, or ``0`` when the melody is
    through-composed.

``tension_profile``
    One value per bar between ``0.0`` (relaxed) and ``1.0`` (peak). The curve
    rises to the middle of every four-bar phrase and falls back toward its
    cadence.

``cadences``
    Mapping ``bar -> degree`` for the chord that must close the bar. Every
    fourth bar ends on the dominant (a half cadence) and the final bar ends
    on the tonic.

``arrivals``
    Mapping ``bar -> degree`` for the chord that must open the bar. A bar
    following a half cadence opens on the tonic.

Example
-------
>>> plan = generate_phrase_plan(8)
>>> plan.cadences
{3: 4, 7: 0}
>>> plan.arrivals
{4: 0}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

__all__ = ["PhrasePlan", "generate_phrase_plan", "PHRASE_BARS", "LOOP_LENGTHS"]

# Bars per phrase; cadences fall on the last bar of each phrase.
PHRASE_BARS = 4

# Motif lengths accepted for looped melodies.
LOOP_LENGTHS = (0, 1, 2, 4)

TONIC = 0
DOMINANT = 4


@dataclass
class PhrasePlan:
    """Container for high-level phrase information."""

    bars: int
    loop_bars: int = 0
    tension_profile: List[float] = field(default_factory=list)
    cadences: Dict[int, int] = field(default_factory=dict)
    arrivals: Dict[int, int] = field(default_factory=dict)

    def tension_at(self, bar: int) -> float:
        """Return the tension for ``bar`` clamped to the plan length."""

        if not self.tension_profile:
            return 0.5
        return self.tension_profile[max(0, min(len(self.tension_profile) - 1, bar))]


def generate_phrase_plan(bars: int, loop_bars: int = 0) -> PhrasePlan:
    """Create the default :class:`PhrasePlan` for ``bars`` bars.

    Parameters
    ----------
    bars:
        Number of bars in the passage. Must be positive.
    loop_bars:
        Requested motif length. Values not in :data:`LOOP_LENGTHS` are
        rounded down to the nearest accepted length, and a motif never runs
        longer than the passage.

    Returns
    -------
    PhrasePlan
        Object describing the phrase outline.

    Raises
    ------
    ValueError
        If ``bars`` is not positive.
    """

    if bars <= 0:
        raise ValueError("bars must be positive")

    loop = max(length for length in LOOP_LENGTHS if length <= max(0, loop_bars))
    while loop > bars:
        loop = max(length for length in LOOP_LENGTHS if length < loop)

    # Arch inside each phrase: rise toward the middle then relax.
    tension: List[float] = []
    for bar in range(bars):
        pos = bar % PHRASE_BARS
        span = min(PHRASE_BARS, bars - (bar - pos))
        if span <= 1:
            tension.append(0.5)
            continue
        centre = (span - 1) / 2.0
        tension.append(round(1.0 - abs(pos - centre) / max(centre, 1.0) * 0.8, 3))

    cadences: Dict[int, int] = {}
    arrivals: Dict[int, int] = {}
    for bar in range(PHRASE_BARS - 1, bars - 1, PHRASE_BARS):
        cadences[bar] = DOMINANT
        arrivals[bar + 1] = TONIC
    cadences[bars - 1] = TONIC

    return PhrasePlan(bars, loop, tension, cadences, arrivals)
