"""Voice-leading helpers for chord voicings and two-part writing.

``choose_voicing`` picks, among the inversions of a chord, the one that moves
the least from the previous chord so the progression sounds connected rather
than jumping in parallel blocks. ``parallel_fifth_or_octave`` flags the
classic counterpoint fault and is used when deriving counter-melodies.

All pitches are MIDI numbers.

Example
-------
>>> inversions([60, 64, 67])
[[60, 64, 67], [64, 67, 72], [67, 72, 76]]
>>> voice_leading_cost([60, 64, 67], [60, 65, 69])
3
"""

from __future__ import annotations

import random
from typing import List, Optional, Sequence

from .notes import fold_into_range

__all__ = [
    "inversions",
    "voice_leading_cost",
    "choose_voicing",
    "parallel_fifth_or_octave",
]


def inversions(tones: Sequence[int]) -> List[List[int]]:
    """Return root position followed by each successive inversion."""

    current = sorted(tones)
    result = [list(current)]
    for _ in range(len(current) - 1):
        current = current[1:] + [current[0] + 12]
        result.append(list(current))
    return result


def voice_leading_cost(prev: Sequence[int], cand: Sequence[int]) -> int:
    """Return the total semitone movement from ``prev`` to ``cand``.

    Voices are paired from the bottom up. When the chords have different
    sizes each surplus voice of ``cand`` is charged its distance to the
    nearest voice of ``prev``.
    """

    if not prev or not cand:
        return 0
    a = sorted(prev)
    b = sorted(cand)
    cost = sum(abs(x - y) for x, y in zip(a, b))
    for extra in b[len(a):]:
        cost += min(abs(extra - p) for p in a)
    return cost


def choose_voicing(
    prev: Optional[Sequence[int]],
    tones: Sequence[int],
    rng: random.Random,
    low: int,
    high: int,
    *,
    smooth_probability: float = 0.7,
) -> List[int]:
    """Return a voicing of ``tones`` that fits ``[low, high]``.

    With probability ``smooth_probability`` (and a previous chord to lead
    from) the inversion with the lowest :func:`voice_leading_cost` is chosen;
    otherwise root position is kept. Every tone is folded into the range by
    octaves.
    """

    candidates = [
        sorted(fold_into_range(p, low, high) for p in voicing)
        for voicing in inversions(tones)
    ]
    if prev and rng.random() < smooth_probability:
        return min(candidates, key=lambda c: voice_leading_cost(prev, c))
    return candidates[0]


def parallel_fifth_or_octave(prev_a: int, prev_b: int, next_a: int, next_b: int) -> bool:
    """Return ``True`` if the two voices move in parallel fifths or octaves."""

    interval1 = abs(prev_a - prev_b) % 12
    interval2 = abs(next_a - next_b) % 12
    if interval1 in {7, 0} and interval2 == interval1:
        dir_a = next_a - prev_a
        dir_b = next_b - prev_b
        return (dir_a > 0 and dir_b > 0) or (dir_a < 0 and dir_b < 0)
    return False
