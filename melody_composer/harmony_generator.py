"""Chord progression building and the harmony rule layer.

This module decides *which* chords a passage uses and how they are coloured:

* :func:`generate_progression` lays out the harmonic rhythm (one or two
  chords per bar) and fills the slots with scale degrees drawn from a
  weighted bank of familiar progressions. Bank entries are lightly mutated
  (held chords, neighbour echoes, a dominant turnaround) and long passages
  continue with a Markov walk over root movements. A :class:`PhrasePlan`
  then pins cadences and arrivals.
* :func:`apply_extensions` decorates a single chord with 7ths, 9ths, 11ths,
  13ths, suspensions, altered tones or a slash bass.
* :func:`apply_color_families` substitutes coloured chords (secondary
  dominants, borrowed chords, chromatic mediants, Neapolitan chords and
  tritone substitutions) into individual slots.

Every rule is gated by an :class:`AdvancedHarmonyOptions` flag and a
probability drawn from the caller's random stream. Options are read during
the call and never stored.

Example
-------
>>> import random
>>> opts = AdvancedHarmonyOptions(ext7=True, extension_density=1.0)
>>> apply_extensions([60, 64, 67], 60, opts, random.Random(0), seventh=11)
[60, 64, 67, 71]
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .notes import clamp
from .performance import weighted_index
from .phrase_planner import PhrasePlan

__all__ = [
    "AdvancedHarmonyOptions",
    "ColorFamily",
    "COLOR_PRIORITY",
    "ChordSlot",
    "PROGRESSION_BANK",
    "generate_progression",
    "next_degree",
    "apply_extensions",
    "apply_color_families",
]


@dataclass
class AdvancedHarmonyOptions:
    """Enable flags and densities for the harmony rule layer.

    ``extension_density`` is the chance that a chord is decorated at all;
    above ``0.66`` two extensions are stacked instead of one. Each color
    family has its own enable flag and per-slot density.
    """

    ext7: bool = False
    ext9: bool = False
    ext11: bool = False
    ext13: bool = False
    sus24: bool = False
    alt: bool = False
    slash: bool = False
    extension_density: float = 0.5

    secondary_dominants: bool = False
    secondary_dominant_density: float = 0.25
    borrowed: bool = False
    borrowed_density: float = 0.25
    chromatic_mediants: bool = False
    chromatic_mediant_density: float = 0.2
    neapolitan: bool = False
    neapolitan_density: float = 0.2
    tritone_sub: bool = False
    tritone_sub_density: float = 0.3

    def has_extensions(self) -> bool:
        return any((self.ext7, self.ext9, self.ext11, self.ext13, self.sus24, self.alt, self.slash))

    def has_families(self) -> bool:
        return any(self.family_enabled(f) for f in ColorFamily)

    def family_enabled(self, family: "ColorFamily") -> bool:
        return bool(getattr(self, family.value))

    def family_density(self, family: "ColorFamily") -> float:
        return clamp(float(getattr(self, _DENSITY_FIELDS[family])), 0.0, 1.0)


class ColorFamily(Enum):
    """Chord substitution families, declared in priority order."""

    SECONDARY_DOMINANT = "secondary_dominants"
    BORROWED = "borrowed"
    CHROMATIC_MEDIANT = "chromatic_mediants"
    NEAPOLITAN = "neapolitan"
    TRITONE_SUB = "tritone_sub"


COLOR_PRIORITY: Tuple[ColorFamily, ...] = tuple(ColorFamily)

_DENSITY_FIELDS = {
    ColorFamily.SECONDARY_DOMINANT: "secondary_dominant_density",
    ColorFamily.BORROWED: "borrowed_density",
    ColorFamily.CHROMATIC_MEDIANT: "chromatic_mediant_density",
    ColorFamily.NEAPOLITAN: "neapolitan_density",
    ColorFamily.TRITONE_SUB: "tritone_sub_density",
}

# Degrees with dominant function (V and vii) accept a tritone substitution.
_DOMINANT_DEGREES = {4, 6}

MAJOR_TRIAD = (0, 4, 7)
DOMINANT_SEVENTH = (0, 4, 7, 10)


@dataclass
class ChordSlot:
    """One harmonic-rhythm slot of a progression."""

    degree: int
    start: float
    length: float
    bar: int = 0
    root: int = 0
    tones: List[int] = field(default_factory=list)
    family: Optional[ColorFamily] = None
    rest: bool = False


# Progressions as zero-based scale degrees (0 = I) with selection weights.
PROGRESSION_BANK: Tuple[Tuple[Tuple[int, ...], float], ...] = (
    ((0, 4, 5, 3), 1.0),   # I-V-vi-IV
    ((0, 5, 3, 4), 0.98),  # I-vi-IV-V
    ((1, 4, 0, 0), 0.97),  # ii-V-I-I
    ((0, 3, 4, 3), 0.96),  # I-IV-V-IV
    ((0, 3, 4, 0), 0.95),  # I-IV-V-I
    ((0, 1, 4, 0), 0.94),  # I-ii-V-I
    ((5, 3, 0, 4), 0.93),  # vi-IV-I-V
    ((0, 3, 0, 4), 0.92),  # I-IV-I-V
    ((0, 5, 1, 4), 0.90),  # I-vi-ii-V
    ((4, 0), 0.88),        # V-I
    ((0, 4, 5, 2, 3, 0, 3, 4), 0.86),  # canon
    ((0, 2, 3, 4), 0.85),  # I-iii-IV-V
    ((5, 4, 3, 4), 0.80),  # vi-V-IV-V
    ((0, 6, 5, 4), 0.78),  # descending line
)

# Markov walk over root motion: offsets in scale degrees and their weights.
_WALK_OFFSETS = (0, 1, -1, 4, -3, 5, 2, -5)
_WALK_WEIGHTS = (0.6, 0.45, 0.45, 0.3, 0.28, 0.22, 0.22, 0.18)

_HOLD_PROBABILITY = 0.15
_ECHO_PROBABILITY = 0.10
_TURNAROUND_PROBABILITY = 0.20
_BANK_REPEAT_PROBABILITY = 0.6

# Harmonic rhythm palette: chords per bar and weights.
_SLOTS_PER_BAR = (1, 2)
_SLOTS_WEIGHTS = (1.4, 1.0)


def next_degree(prev: int, rng: random.Random) -> int:
    """Return the next root degree of the Markov walk from ``prev``."""

    return (prev + _WALK_OFFSETS[weighted_index(_WALK_WEIGHTS, rng)]) % 7


def _mutated_bank_entry(rng: random.Random) -> List[int]:
    degrees = list(PROGRESSION_BANK[weighted_index([w for _, w in PROGRESSION_BANK], rng)][0])
    for i in range(1, len(degrees)):
        roll = rng.random()
        if roll < _HOLD_PROBABILITY:
            degrees[i] = degrees[i - 1]
        elif roll < _HOLD_PROBABILITY + _ECHO_PROBABILITY:
            degrees[i] = (degrees[i - 1] + rng.choice((1, -1))) % 7
    if len(degrees) > 2 and rng.random() < _TURNAROUND_PROBABILITY:
        degrees[-1] = 4
    return degrees


def _degree_sequence(count: int, rng: random.Random) -> List[int]:
    degrees: List[int] = []
    while len(degrees) < count:
        if not degrees or rng.random() < _BANK_REPEAT_PROBABILITY:
            degrees.extend(_mutated_bank_entry(rng))
        else:
            for _ in range(4):
                degrees.append(next_degree(degrees[-1], rng))
    return degrees[:count]


def _bar_split(bar_beats: float, slots: int) -> List[Tuple[float, float]]:
    """Return ``(offset, length)`` pairs dividing one bar into ``slots`` chords."""

    if slots <= 1 or bar_beats < 2.0:
        return [(0.0, bar_beats)]
    first = float(math.ceil(bar_beats / 2.0))
    return [(0.0, first), (first, bar_beats - first)]


def generate_progression(
    bars: int,
    bar_beats: float,
    rng: random.Random,
    *,
    chords_per_bar: int = 0,
    plan: Optional[PhrasePlan] = None,
) -> List[ChordSlot]:
    """Return the chord slots for a passage.

    Parameters
    ----------
    bars:
        Number of bars to fill.
    bar_beats:
        Length of a bar in beats.
    rng:
        Random stream for every draw.
    chords_per_bar:
        ``1`` or ``2`` fixes the harmonic rhythm; ``0`` chooses per bar.
    plan:
        Optional phrase plan whose cadences and arrivals override the drawn
        degrees on the last and first slot of a bar.

    Returns
    -------
    list[ChordSlot]
        Slots in time order with ``degree``, ``start``, ``length`` and
        ``bar`` filled in. Pitches are assigned by the caller.
    """

    layout: List[Tuple[int, float, float]] = []
    for bar in range(bars):
        if chords_per_bar in (1, 2):
            slots = chords_per_bar
        else:
            slots = _SLOTS_PER_BAR[weighted_index(_SLOTS_WEIGHTS, rng)]
        for offset, length in _bar_split(bar_beats, slots):
            layout.append((bar, bar * bar_beats + offset, length))

    degrees = _degree_sequence(len(layout), rng)
    progression = [
        ChordSlot(degree=deg, start=start, length=length, bar=bar)
        for deg, (bar, start, length) in zip(degrees, layout)
    ]

    if plan is not None:
        for i, slot in enumerate(progression):
            first_in_bar = i == 0 or progression[i - 1].bar != slot.bar
            last_in_bar = i == len(progression) - 1 or progression[i + 1].bar != slot.bar
            if first_in_bar and slot.bar in plan.arrivals:
                slot.degree = plan.arrivals[slot.bar]
            if last_in_bar and slot.bar in plan.cadences:
                slot.degree = plan.cadences[slot.bar]
                if slot.bar == bars - 1 and not first_in_bar:
                    # Authentic close: V then I inside the final bar.
                    progression[i - 1].degree = 4
    return progression


def apply_extensions(
    chord_tones: Sequence[int],
    root_pitch: int,
    options: AdvancedHarmonyOptions,
    rng: random.Random,
    *,
    seventh: int = 10,
) -> List[int]:
    """Return ``chord_tones`` decorated according to ``options``.

    Parameters
    ----------
    chord_tones:
        Pitches of the chord, usually a triad.
    root_pitch:
        Pitch of the chord root; intervals are measured from it.
    options:
        Enable flags and the decoration density.
    rng:
        Random stream.
    seventh:
        Diatonic seventh above the root in semitones (``10`` or ``11``).

    Returns
    -------
    list[int]
        New sorted pitch list. The input is not modified.
    """

    tones = list(chord_tones)
    if not options.has_extensions():
        return sorted(tones)
    density = clamp(float(options.extension_density), 0.0, 1.0)
    if rng.random() >= density:
        return sorted(tones)

    def add(offset: int) -> None:
        pitch = int(clamp(root_pitch + offset, 24, 108))
        if pitch not in tones:
            tones.append(pitch)

    extensions = [
        semis
        for enabled, semis in (
            (options.ext7, seventh),
            (options.ext9, 14),
            (options.ext11, 17),
            (options.ext13, 21),
        )
        if enabled
    ]
    if extensions:
        how_many = min(2 if density > 0.66 else 1, len(extensions))
        for semis in rng.sample(extensions, how_many):
            add(semis)

    if options.sus24:
        sus = 2 if rng.random() < 0.5 else 5
        tones = [p for p in tones if (p - root_pitch) % 12 not in (3, 4)]
        add(sus)

    if options.alt:
        add(rng.choice((6, 8, 13, 15)))  # b5, #5, b9, #9

    if options.slash and len(tones) > 1:
        idx = rng.randrange(len(tones))
        if tones[idx] - 12 >= 0:
            tones[idx] -= 12

    return sorted(set(tones))


def _eligible(family: ColorFamily, slot: ChordSlot) -> bool:
    if family is ColorFamily.TRITONE_SUB:
        return slot.degree % 7 in _DOMINANT_DEGREES
    return True


def _shape(root: int, intervals: Sequence[int]) -> List[int]:
    return [int(clamp(root + i, 0, 127)) for i in intervals]


def _recolor(slot: ChordSlot, family: ColorFamily, key: int, rng: random.Random) -> ChordSlot:
    root = slot.root
    if family is ColorFamily.SECONDARY_DOMINANT:
        new_root = root + 7
        tones = _shape(new_root, DOMINANT_SEVENTH)
    elif family is ColorFamily.BORROWED:
        new_root = root
        tones = [p - 1 if (p - root) % 12 == 4 else p for p in slot.tones]
        if root + 10 not in tones:
            tones.append(int(clamp(root + 10, 0, 127)))
    elif family is ColorFamily.CHROMATIC_MEDIANT:
        new_root = root + (4 if rng.random() < 0.5 else -4)
        tones = _shape(new_root, MAJOR_TRIAD)
    elif family is ColorFamily.NEAPOLITAN:
        new_root = root - ((root - key) % 12) + 1
        tones = _shape(new_root, MAJOR_TRIAD)
    else:
        new_root = root + (6 if rng.random() < 0.5 else -6)
        tones = _shape(new_root, DOMINANT_SEVENTH)
    return replace(slot, root=int(clamp(new_root, 0, 127)), tones=sorted(tones), family=family)


def apply_color_families(
    progression: Sequence[ChordSlot],
    options: AdvancedHarmonyOptions,
    rng: random.Random,
    key: int,
) -> List[ChordSlot]:
    """Return ``progression`` with colour substitutions applied.

    Each sounding slot walks :data:`COLOR_PRIORITY`. For every enabled family
    the slot is eligible for, a Bernoulli draw at that family's density
    decides whether it applies; the first success recolours the slot and the
    remaining families are skipped. Slot timing is never changed.
    """

    if not options.has_families():
        return list(progression)
    result: List[ChordSlot] = []
    for slot in progression:
        if not slot.rest:
            for family in COLOR_PRIORITY:
                if not options.family_enabled(family) or not _eligible(family, slot):
                    continue
                if rng.random() < options.family_density(family):
                    logging.debug("Slot at beat %.2f recoloured as %s", slot.start, family.name)
                    slot = _recolor(slot, family, key, rng)
                    break
        result.append(slot)
    return result
