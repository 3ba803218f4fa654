"""Post-processing passes that derive extra layers from generated notes.

Four passes are provided. Each takes a note list and returns a new one
without touching its input:

* :func:`make_counter_melody` writes a second line below a melody, moving
  against it and preferring consonant intervals.
* :func:`make_harmony_stack` doubles a melody at a fixed diatonic or
  chromatic interval.
* :func:`apply_chord_color` thins or thickens chords according to a
  :class:`TensionLevel`.
* :func:`revoice_chords` re-slices the onsets of chord tones (strums, rolls,
  late inner voices) while leaving every pitch and every note end alone.

Example
-------
>>> from melody_composer.engine import EngineConfig
>>> from melody_composer.notes import Note
>>> stack = make_harmony_stack([Note(pitch=60)], HarmonyStackMode.SIXTH, EngineConfig())
>>> stack[0].pitch
69

Design Notes
------------
- Chord passes work on onset groups as returned by
  :func:`melody_composer.notes.group_by_onset`; a group with a single note
  (for example an arpeggio step) is not treated as a chord by the colour
  pass.
- The counter-melody is deterministic for a given melody and seed because
  its default random stream is seeded from the configuration.
"""

from __future__ import annotations

import random
from dataclasses import replace
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Sequence

from .dynamics import is_offbeat_eighth
from .notes import EPSILON, MIN_LENGTH, Note, clamp, enforce_monophonic, fold_into_range, group_by_onset, sanitize
from .tension import interval_tension
from .theory import degree_to_pitch, in_scale, scale_degree_of, seventh_above, step_in_scale, triad_for_degree
from .utils import enum_by_name
from .voice_leading import parallel_fifth_or_octave

if TYPE_CHECKING:
    from .engine import EngineConfig

__all__ = [
    "HarmonyStackMode",
    "TensionLevel",
    "RevoiceStyle",
    "make_counter_melody",
    "make_harmony_stack",
    "apply_chord_color",
    "revoice_chords",
]


class HarmonyStackMode(Enum):
    """Parallel doubling intervals for :func:`make_harmony_stack`."""

    OFF = "Off"
    THIRD = "Third"
    SIXTH = "Sixth"
    OPEN_FIFTH = "OpenFifth"
    SPREAD = "Spread"

    @classmethod
    def from_name(cls, name) -> "HarmonyStackMode":
        return enum_by_name(cls, name, cls.OFF)


class TensionLevel(Enum):
    """Chord colour levels for :func:`apply_chord_color`."""

    OFF = "Off"
    LIGHT = "Light"
    MODERATE = "Moderate"
    AGGRESSIVE = "Aggressive"

    @classmethod
    def from_name(cls, name) -> "TensionLevel":
        return enum_by_name(cls, name, cls.OFF)


class RevoiceStyle(Enum):
    """Rhythmic re-voicing styles for :func:`revoice_chords`."""

    OFF = "Off"
    STRUM_UP = "StrumUp"
    STRUM_DOWN = "StrumDown"
    INNER_VOICE_LEAD = "InnerVoiceLead"
    SPREAD_ROLL_IN = "SpreadRollIn"
    MICRO_SWING = "MicroSwing"

    @classmethod
    def from_name(cls, name) -> "RevoiceStyle":
        return enum_by_name(cls, name, cls.OFF)


# Scale steps for the diatonic stacks, semitones for the fixed ones.
_STACK_SCALE_STEPS = {HarmonyStackMode.THIRD: 2, HarmonyStackMode.SIXTH: 5}
_STACK_SEMITONES = {HarmonyStackMode.OPEN_FIFTH: 7, HarmonyStackMode.SPREAD: 19}

# Chance that a chord is changed at each colour level.
_COLOR_PROBABILITY = {
    TensionLevel.LIGHT: 0.5,
    TensionLevel.MODERATE: 0.6,
    TensionLevel.AGGRESSIVE: 0.85,
}

STRUM_STEP = 0.03
ROLL_STEP = 0.08
INNER_VOICE_DELAY = 0.5
MICRO_SWING_DELAY = 0.04

# Intervals below the melody tried for the first counter note.
_OPENING_INTERVALS = (3, 4, 8, 9, 12)
_COUNTER_VELOCITY_DROP = 12
# The counter band reaches this far below the tessitura.
COUNTER_BAND_DROP = 12


def make_harmony_stack(
    melody: Sequence[Note], mode: HarmonyStackMode, config: "EngineConfig"
) -> List[Note]:
    """Return a parallel line above ``melody``.

    ``THIRD`` and ``SIXTH`` move two and five scale steps so the stack stays
    diatonic; ``OPEN_FIFTH`` and ``SPREAD`` add a fixed 7 or 19 semitones.
    Timing, lengths and velocities are copied unchanged. The pass is pure.
    """

    mode = HarmonyStackMode.from_name(mode)
    if mode is HarmonyStackMode.OFF:
        return []
    scale = config.scale_def
    result: List[Note] = []
    for note in melody:
        if mode in _STACK_SCALE_STEPS:
            pitch = step_in_scale(note.pitch, _STACK_SCALE_STEPS[mode], config.key, scale)
        else:
            pitch = note.pitch + _STACK_SEMITONES[mode]
        result.append(replace(note, pitch=fold_into_range(pitch, 0, 127)))
    return result


def _counter_candidates(prev: int, direction: int, key: int, scale) -> List[int]:
    if direction == 0:
        return [prev]
    return [step_in_scale(prev, direction * steps, key, scale) for steps in (1, 2)]


def _below(pitch: int, top: int) -> int:
    while pitch > top:
        pitch -= 12
    return pitch


def make_counter_melody(
    melody: Sequence[Note],
    config: "EngineConfig",
    rng: Optional[random.Random] = None,
) -> List[Note]:
    """Return a counter line below ``melody``.

    Notes of the melody are taken in pairs and each pair receives one counter
    note spanning both, giving roughly half the melody's density. The line
    moves against the melody (and holds when the melody repeats a pitch),
    prefers consonant intervals scored by :func:`interval_tension` and
    avoids parallel fifths and octaves.

    Every counter note lies strictly below each melody note sounding with it,
    ornaments included. The line lives in a band reaching
    :data:`COUNTER_BAND_DROP` semitones below the tessitura; candidates that
    would cross the melody are dropped by octaves instead.

    Parameters
    ----------
    melody:
        Melody notes. Ornaments do not receive counter notes but still bound
        the line from above.
    config:
        Supplies key, scale, passage length and tessitura.
    rng:
        Random stream for breaking ties. Defaults to one seeded with
        ``config.seed`` so the result depends only on the melody and seed.
    """

    if rng is None:
        rng = random.Random(config.seed)
    key = config.key
    scale = config.scale_def
    low, high = config.tessitura
    band_low = max(0, low - COUNTER_BAND_DROP)
    ordered = sorted(melody, key=lambda n: n.start)
    lead = [n for n in ordered if not n.is_ornament]
    if not lead:
        return []

    result: List[Note] = []
    prev_mel: Optional[int] = None
    prev_counter: Optional[int] = None
    for i in range(0, len(lead), 2):
        first = lead[i]
        span_end = lead[i + 1].end if i + 1 < len(lead) else first.end
        top = min(n.pitch for n in ordered if n.start < span_end - EPSILON and n.end > first.start + EPSILON) - 1
        if top < band_low:
            continue
        mel = first.pitch
        if prev_counter is None or prev_mel is None:
            opening = [mel - iv for iv in _OPENING_INTERVALS if in_scale(mel - iv, key, scale)]
            candidates = opening or [mel - 12]
        else:
            direction = (mel < prev_mel) - (mel > prev_mel)
            candidates = _counter_candidates(prev_counter, direction, key, scale)
        candidates = [c for c in candidates if c <= top] or [_below(c, top) for c in candidates]

        def score(cand: int) -> float:
            value = interval_tension(mel - cand) + rng.random() * 0.05
            if cand < band_low:
                value += 1.0
            if prev_counter is not None and prev_mel is not None:
                if parallel_fifth_or_octave(prev_mel, prev_counter, mel, cand):
                    value += 1.5
                value += abs(cand - prev_counter) * 0.02
            return value

        pitch = fold_into_range(min(candidates, key=score), band_low, top)
        result.append(
            Note(
                pitch=pitch,
                velocity=int(clamp(first.velocity - _COUNTER_VELOCITY_DROP, 1, 127)),
                start=first.start,
                length=max(MIN_LENGTH, span_end - first.start),
            )
        )
        prev_mel, prev_counter = mel, pitch
    return sanitize(enforce_monophonic(result), config.total_beats, band_low, high)


def _chord_root(group: Sequence[Note], key: int, scale) -> Note:
    """Return the note of ``group`` that best explains it as a diatonic root.

    Each note is scored by how many pitch classes of the group belong to the
    seventh chord built on its degree. Ties go to the lowest note.
    """

    pcs = {n.pitch % 12 for n in group}
    best = group[0]
    best_score = -1
    for note in group:
        degree = scale_degree_of(note.pitch, key, scale)
        chord = triad_for_degree(degree, key, scale) + [degree_to_pitch(degree + 6, key, scale)]
        score = len(pcs & {p % 12 for p in chord})
        if score > best_score:
            best, best_score = note, score
    return best


def apply_chord_color(
    chords: Sequence[Note],
    level: TensionLevel,
    config: "EngineConfig",
    rng: random.Random,
) -> List[Note]:
    """Return ``chords`` with their colour adjusted to ``level``.

    ``LIGHT`` strips tones outside the basic triad from some chords,
    ``MODERATE`` adds the diatonic seventh to some chords and ``AGGRESSIVE``
    adds sevenths and ninths to most chords. The root of each onset group is
    found with :func:`_chord_root`, so inversions are read correctly. Added
    tones copy the timing and velocity of the root and are folded into the
    tessitura.
    """

    level = TensionLevel.from_name(level)
    if level is TensionLevel.OFF:
        return list(chords)
    key = config.key
    scale = config.scale_def
    low, high = config.tessitura
    probability = _COLOR_PROBABILITY[level]

    result: List[Note] = []
    for _, group in group_by_onset(chords):
        if len(group) < 2 or rng.random() >= probability:
            result.extend(group)
            continue
        root = _chord_root(group, key, scale)
        degree = scale_degree_of(root.pitch, key, scale)
        if level is TensionLevel.LIGHT:
            triad = {p % 12 for p in triad_for_degree(degree, key, scale)}
            kept = [n for n in group if n.pitch % 12 in triad]
            result.extend(kept or [root])
            continue

        pitches = {n.pitch for n in group}
        additions = [root.pitch + seventh_above(degree, key, scale)]
        if level is TensionLevel.AGGRESSIVE:
            ninth = degree_to_pitch(degree + 8, key, scale) - degree_to_pitch(degree, key, scale)
            additions.append(root.pitch + ninth)
        result.extend(group)
        for pitch in additions:
            pitch = fold_into_range(pitch, low, high)
            if pitch not in pitches:
                pitches.add(pitch)
                result.append(replace(root, pitch=pitch))
    return sorted(result, key=lambda n: (n.start, n.pitch))


def _delay(note: Note, amount: float) -> Note:
    """Move the onset of ``note`` later by ``amount`` keeping its end."""

    end = note.end
    start = min(note.start + max(0.0, amount), end - MIN_LENGTH)
    start = max(start, note.start)
    return replace(note, start=start, length=end - start)


def revoice_chords(
    chords: Sequence[Note], style: RevoiceStyle, rng: random.Random
) -> List[Note]:
    """Return ``chords`` with their onsets re-sliced according to ``style``.

    Pitches are never changed and no note ends later than before; only the
    start of a note can move later, shortening it.
    """

    style = RevoiceStyle.from_name(style)
    if style is RevoiceStyle.OFF:
        return list(chords)

    result: List[Note] = []
    for onset, group in group_by_onset(chords):
        if style is RevoiceStyle.MICRO_SWING:
            if is_offbeat_eighth(onset):
                amount = MICRO_SWING_DELAY + rng.uniform(0.0, MICRO_SWING_DELAY / 2)
                result.extend(_delay(n, amount) for n in group)
            else:
                result.extend(group)
            continue
        if len(group) < 2:
            result.extend(group)
            continue
        if style is RevoiceStyle.STRUM_UP:
            result.extend(_delay(n, i * STRUM_STEP) for i, n in enumerate(group))
        elif style is RevoiceStyle.STRUM_DOWN:
            result.extend(_delay(n, i * STRUM_STEP) for i, n in enumerate(reversed(group)))
        elif style is RevoiceStyle.SPREAD_ROLL_IN:
            result.extend(
                _delay(n, i * ROLL_STEP + rng.uniform(0.0, 0.01)) for i, n in enumerate(group)
            )
        else:
            inner = group[1:-1]
            result.append(group[0])
            result.extend(
                _delay(n, INNER_VOICE_DELAY) if n.length > INNER_VOICE_DELAY + MIN_LENGTH else n
                for n in inner
            )
            result.append(group[-1])
    return sorted(result, key=lambda n: (n.start, n.pitch))
