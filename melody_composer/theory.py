"""Static music theory tables and scale arithmetic.

The module holds two read-only catalogues:

``SCALES``
    Ordered tuple of :class:`Scale` records. Each scale lists its semitone
    offsets from the tonic. Lookup is by name (:func:`scale_by_name`) or by
    position (:func:`scale_by_index`); neither ever raises. Unknown names fall
    back to ``Major`` and indices are clamped into range.

``MOVEMENTS``
    Weighted melodic moves used by the melody walker. Structural moves decide
    where the line goes next; ornament moves decorate a note that has already
    been chosen.

Scale helpers work on absolute MIDI numbers with ``key`` being the absolute
pitch of the tonic (``60`` for middle C). Degrees are zero based and may be
negative or exceed the scale length; the octave is carried automatically.

Example
-------
>>> major = scale_by_name("major")
>>> degree_to_pitch(5, 60, major)
69
>>> snap_to_scale(61, 60, major)
60
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Dict, List, Tuple

__all__ = [
    "Scale",
    "SCALES",
    "DEFAULT_SCALE",
    "scale_names",
    "scale_by_name",
    "scale_by_index",
    "in_scale",
    "snap_to_scale",
    "scale_degree_of",
    "degree_to_pitch",
    "step_in_scale",
    "triad_for_degree",
    "seventh_above",
    "MoveType",
    "Movement",
    "MOVEMENTS",
    "STRUCTURAL_MOVES",
    "ORNAMENT_MOVES",
]


@dataclass(frozen=True)
class Scale:
    """Named ordered set of semitone offsets in ``[0, 12)``."""

    name: str
    intervals: Tuple[int, ...]

    def __len__(self) -> int:
        return len(self.intervals)


SCALES: Tuple[Scale, ...] = tuple(
    Scale(name, tuple(intervals))
    for name, intervals in (
        ("Major", (0, 2, 4, 5, 7, 9, 11)),
        ("Natural Minor", (0, 2, 3, 5, 7, 8, 10)),
        ("Harmonic Minor", (0, 2, 3, 5, 7, 8, 11)),
        ("Melodic Minor", (0, 2, 3, 5, 7, 9, 11)),
        ("Dorian", (0, 2, 3, 5, 7, 9, 10)),
        ("Phrygian", (0, 1, 3, 5, 7, 8, 10)),
        ("Lydian", (0, 2, 4, 6, 7, 9, 11)),
        ("Mixolydian", (0, 2, 4, 5, 7, 9, 10)),
        ("Aeolian", (0, 2, 3, 5, 7, 8, 10)),
        ("Locrian", (0, 1, 3, 5, 6, 8, 10)),
        ("Locrian Natural 6", (0, 1, 3, 5, 6, 9, 10)),
        ("Ionian #5", (0, 2, 4, 5, 8, 9, 11)),
        ("Dorian #4", (0, 2, 3, 6, 7, 9, 10)),
        ("Phrygian Dominant", (0, 1, 4, 5, 7, 8, 10)),
        ("Lydian #2", (0, 3, 4, 6, 7, 9, 11)),
        ("Super Locrian", (0, 1, 3, 4, 6, 8, 10)),
        ("Dorian b2", (0, 1, 3, 5, 7, 9, 10)),
        ("Lydian Augmented", (0, 2, 4, 6, 8, 9, 11)),
        ("Lydian Dominant", (0, 2, 4, 6, 7, 9, 10)),
        ("Mixolydian b6", (0, 2, 4, 5, 7, 8, 10)),
        ("Locrian #2", (0, 2, 3, 5, 6, 8, 10)),
        ("Eight Tone Spanish", (0, 1, 3, 4, 5, 6, 8, 10)),
        ("Blues", (0, 3, 5, 6, 7, 10)),
        ("Hungarian Minor", (0, 2, 3, 6, 7, 8, 11)),
        ("Harmonic Major", (0, 2, 4, 5, 7, 8, 11)),
        ("Dorian b5", (0, 2, 3, 5, 6, 9, 10)),
        ("Phrygian b4", (0, 1, 3, 4, 7, 8, 10)),
        ("Lydian b3", (0, 2, 3, 6, 7, 9, 11)),
        ("Mixolydian b2", (0, 1, 4, 5, 7, 9, 10)),
        ("Lydian Augmented #2", (0, 3, 4, 6, 8, 9, 11)),
        ("Locrian bb7", (0, 1, 3, 5, 6, 8, 9)),
        ("Pentatonic Major", (0, 2, 4, 7, 9)),
        ("Pentatonic Minor", (0, 3, 5, 7, 10)),
        ("Neapolitan Major", (0, 1, 3, 5, 7, 9, 11)),
        ("Neapolitan Minor", (0, 1, 3, 5, 7, 8, 11)),
        ("Spanish Gypsy", (0, 1, 4, 5, 7, 8, 10)),
        ("Romanian Minor", (0, 2, 3, 6, 7, 9, 10)),
        ("Whole Tone", (0, 2, 4, 6, 8, 10)),
        ("Chromatic", (0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11)),
        ("Bebop Major", (0, 2, 4, 5, 7, 8, 9, 11)),
        ("Bebop Minor", (0, 2, 3, 4, 5, 7, 9, 10)),
    )
)

DEFAULT_SCALE = SCALES[0]

# Lower-cased name -> scale, built once at import.
_SCALES_BY_NAME: Dict[str, Scale] = {s.name.lower(): s for s in SCALES}


def scale_names() -> List[str]:
    """Return the catalogue names in display order."""

    return [s.name for s in SCALES]


def scale_by_name(name: str) -> Scale:
    """Return the scale called ``name``; unknown names yield ``Major``.

    Matching ignores surrounding whitespace and letter case.
    """

    scale = _SCALES_BY_NAME.get(str(name).strip().lower())
    if scale is None:
        logging.debug("Unknown scale %r; using %s", name, DEFAULT_SCALE.name)
        return DEFAULT_SCALE
    return scale


def scale_by_index(index: int) -> Scale:
    """Return the scale at ``index`` clamped into the catalogue range."""

    return SCALES[max(0, min(len(SCALES) - 1, int(index)))]


def in_scale(pitch: int, key: int, scale: Scale) -> bool:
    """Return ``True`` if ``pitch`` is a member of ``scale`` on ``key``."""

    return (pitch - key) % 12 in scale.intervals


def snap_to_scale(pitch: int, key: int, scale: Scale) -> int:
    """Return the scale member nearest to ``pitch``.

    Ties between a lower and an upper neighbour resolve downward.
    """

    for distance in range(7):
        if in_scale(pitch - distance, key, scale):
            return pitch - distance
        if in_scale(pitch + distance, key, scale):
            return pitch + distance
    return pitch  # pragma: no cover - every scale contains its tonic


@lru_cache(maxsize=None)
def _index_of(rel: int, intervals: Tuple[int, ...]) -> int:
    return intervals.index(rel)


def scale_degree_of(pitch: int, key: int, scale: Scale) -> int:
    """Return the absolute degree of ``pitch`` counted from ``key``.

    Pitches outside the scale are snapped first. Degree ``0`` is the tonic at
    ``key``; each octave adds ``len(scale)``.
    """

    snapped = snap_to_scale(pitch, key, scale)
    octave, rel = divmod(snapped - key, 12)
    return octave * len(scale) + _index_of(rel, scale.intervals)


def degree_to_pitch(degree: int, key: int, scale: Scale) -> int:
    """Return the pitch of absolute scale ``degree`` above ``key``."""

    octave, idx = divmod(int(degree), len(scale))
    return key + octave * 12 + scale.intervals[idx]


def step_in_scale(pitch: int, steps: int, key: int, scale: Scale) -> int:
    """Move ``pitch`` by ``steps`` scale degrees (negative moves down)."""

    return degree_to_pitch(scale_degree_of(pitch, key, scale) + steps, key, scale)


def triad_for_degree(degree: int, key: int, scale: Scale) -> List[int]:
    """Return the stacked-thirds triad built on scale ``degree``."""

    return [degree_to_pitch(degree + offset, key, scale) for offset in (0, 2, 4)]


def seventh_above(degree: int, key: int, scale: Scale) -> int:
    """Return the diatonic seventh of ``degree`` in semitones (10 or 11).

    Scales whose seventh above the degree is neither minor nor major (for
    example diminished sevenths) fall back to the minor seventh.
    """

    diff = degree_to_pitch(degree + 6, key, scale) - degree_to_pitch(degree, key, scale)
    return diff if diff in (10, 11) else 10


class MoveType(Enum):
    """Kinds of melodic movement."""

    CHORD_TONE = "chord_tone"
    SCALE_STEP_UP = "scale_step_up"
    SCALE_STEP_DOWN = "scale_step_down"
    NEIGHBOR_UP = "neighbor_up"
    NEIGHBOR_DOWN = "neighbor_down"
    ENCLOSURE = "enclosure"
    LEAP = "leap"
    ESCAPE_TONE_UP = "escape_tone_up"
    ESCAPE_TONE_DOWN = "escape_tone_down"
    DOUBLE_NEIGHBOR = "double_neighbor"
    RESOLVE_DOWN = "resolve_down"
    TRILL = "trill"
    TURN = "turn"
    MORDENT_UP = "mordent_up"
    MORDENT_DOWN = "mordent_down"
    GRACE_UP = "grace_up"
    GRACE_DOWN = "grace_down"

    @property
    def is_ornament(self) -> bool:
        return self in _ORNAMENT_TYPES


_ORNAMENT_TYPES = frozenset(
    {
        MoveType.TRILL,
        MoveType.TURN,
        MoveType.MORDENT_UP,
        MoveType.MORDENT_DOWN,
        MoveType.GRACE_UP,
        MoveType.GRACE_DOWN,
    }
)


@dataclass(frozen=True)
class Movement:
    """Weighted melodic move with its nominal interval."""

    kind: MoveType
    weight: float
    semitone_hint: int = 0

    @property
    def direction(self) -> int:
        """Return ``1``, ``-1`` or ``0`` for the nominal direction of travel."""

        if self.kind in (MoveType.SCALE_STEP_UP, MoveType.NEIGHBOR_UP, MoveType.ESCAPE_TONE_UP):
            return 1
        if self.kind in (
            MoveType.SCALE_STEP_DOWN,
            MoveType.NEIGHBOR_DOWN,
            MoveType.ESCAPE_TONE_DOWN,
            MoveType.RESOLVE_DOWN,
        ):
            return -1
        return (self.semitone_hint > 0) - (self.semitone_hint < 0)


MOVEMENTS: Tuple[Movement, ...] = (
    Movement(MoveType.CHORD_TONE, 2.0, 0),
    Movement(MoveType.CHORD_TONE, 1.5, 0),
    Movement(MoveType.SCALE_STEP_UP, 1.4, 2),
    Movement(MoveType.SCALE_STEP_DOWN, 1.4, -2),
    Movement(MoveType.NEIGHBOR_UP, 1.0, 1),
    Movement(MoveType.NEIGHBOR_DOWN, 1.0, -1),
    Movement(MoveType.ENCLOSURE, 0.8, 0),
    Movement(MoveType.LEAP, 0.6, 7),
    Movement(MoveType.LEAP, 0.5, -5),
    Movement(MoveType.LEAP, 0.4, 12),
    Movement(MoveType.LEAP, 0.3, -12),
    Movement(MoveType.ESCAPE_TONE_UP, 0.5, 3),
    Movement(MoveType.ESCAPE_TONE_DOWN, 0.5, -3),
    Movement(MoveType.DOUBLE_NEIGHBOR, 0.6, 0),
    Movement(MoveType.RESOLVE_DOWN, 1.1, -2),
    Movement(MoveType.RESOLVE_DOWN, 0.9, -1),
    Movement(MoveType.TRILL, 0.35, 1),
    Movement(MoveType.TURN, 0.30, 0),
    Movement(MoveType.MORDENT_UP, 0.28, 1),
    Movement(MoveType.MORDENT_DOWN, 0.28, -1),
    Movement(MoveType.GRACE_UP, 0.40, 1),
    Movement(MoveType.GRACE_DOWN, 0.40, -1),
)

STRUCTURAL_MOVES: Tuple[Movement, ...] = tuple(m for m in MOVEMENTS if not m.kind.is_ornament)
ORNAMENT_MOVES: Tuple[Movement, ...] = tuple(m for m in MOVEMENTS if m.kind.is_ornament)
