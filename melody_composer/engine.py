"""Generation engine: configuration, melody, chords and their mixture.

The engine ties the rule tables together. A call follows the same pipeline
whatever the mode::

    configure -> select rhythm -> walk melody | build progression
              -> harmony rules (chords) -> humanize -> clamp and return

:class:`EngineConfig` is an immutable description of the passage. Every
numeric field is clamped when the object is built and every style field
accepts either its enum member or a name, so a configuration can never make
generation fail. Callers derive modified copies with
:meth:`EngineConfig.update`.

Every generator takes the random stream explicitly. Replaying the same calls
on a stream seeded with the same value reproduces the same notes.

Example
-------
>>> import random
>>> cfg = EngineConfig(key=60, scale="Dorian", bars=2, mode="Melody")
>>> notes = generate_melody(cfg, random.Random(cfg.seed))
>>> all(n.end <= cfg.total_beats for n in notes)
True

Design Notes
------------
- Chord roots are built from the key's own octave and folded into the
  tessitura; the optional bass note sits an octave below the root and is
  only added when it still fits the range.
- In the mixture the melody follows the same progression as the chord stabs
  so the two layers agree harmonically.
- Looped melodies walk the first ``loop_bars`` bars once and repeat them
  with small variations (transposition, contour flip, neighbour nudges).
"""

from __future__ import annotations

import logging
import math
import random
from bisect import bisect_right
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .dynamics import accent_to_velocity, humanize
from .harmony_generator import (
    AdvancedHarmonyOptions,
    ChordSlot,
    apply_color_families,
    apply_extensions,
    generate_progression,
)
from .notes import (
    EPSILON,
    MIN_LENGTH,
    Note,
    clamp,
    enforce_monophonic,
    fold_into_range,
    group_by_onset,
    overlaps,
    sanitize,
)
from .performance import weighted_index
from .phrase_planner import PhrasePlan, generate_phrase_plan
from .polyphony import RevoiceStyle, TensionLevel, apply_chord_color, revoice_chords
from .rhythm_engine import PolyrhythmMode, RhythmPattern, RhythmStep, bar_length, select_pattern, warp
from .tension import ContourShape, apply_contour_weights
from .theory import (
    DEFAULT_SCALE,
    ORNAMENT_MOVES,
    STRUCTURAL_MOVES,
    MoveType,
    Movement,
    Scale,
    degree_to_pitch,
    scale_by_name,
    scale_degree_of,
    seventh_above,
    snap_to_scale,
    step_in_scale,
    triad_for_degree,
)
from .utils import enum_by_name
from .voice_leading import choose_voicing

__all__ = [
    "EngineMode",
    "VoicingStyle",
    "EngineConfig",
    "MelodyAndChords",
    "generate_melody",
    "generate_chord_track",
    "generate_chords",
    "generate_melody_and_chords",
    "generate",
    "generate_variants",
    "reharmonize",
    "MAX_VARIANTS",
    "VARIANT_SEED_STRIDE",
]

MAX_BARS = 128
MAX_NUMERATOR = 32
MAX_DENOMINATOR = 32
DEFAULT_TESSITURA = (48, 79)

MAX_VARIANTS = 4
VARIANT_SEED_STRIDE = 9973

ORNAMENT_PROBABILITY = 0.08
ORNAMENT_UNIT = 0.125
ORNAMENT_MIN_HOST = 0.5

# Note density: chance scale for merging neighbours and the longest merge.
MERGE_STRENGTH = 0.8
MAX_MERGED_LENGTH = 2.0
SPLIT_MIN_LENGTH = 1.0

# Chords.
REST_SLOT_FACTOR = 0.15
BASS_PROBABILITY = 0.8
ARPEGGIO_STEP = 0.5
HALF_NOTE = 2.0
ANTICIPATION = 0.5
CHORD_ACCENT_DOWNBEAT = 0.75
CHORD_ACCENT = 0.6
STAB_ACCENT = 0.7
STAB_VELOCITY_DROP = 8

# Loop variation probabilities.
LOOP_TRANSPOSE = 0.3
LOOP_FLIP = 0.2
LOOP_NUDGE = 0.15

# Scales leap weights by the phrase tension: 0.5 when relaxed, 1.5 at peak.
TENSION_LEAP_BASE = 0.5


class EngineMode(Enum):
    """What :func:`generate` produces."""

    CHORDS = "Chords"
    MELODY = "Melody"
    MIXTURE = "Mixture"
    SURPRISE_ME = "SurpriseMe"

    @classmethod
    def from_name(cls, name) -> "EngineMode":
        return enum_by_name(cls, name, cls.CHORDS)


class VoicingStyle(Enum):
    """How each chord slot is played."""

    BLOCK = "Block"
    HALF_NOTES = "HalfNotes"
    ARP_UP = "ArpUp"
    ARP_DOWN = "ArpDown"
    ALBERTI = "Alberti"
    ANTICIPATION = "Anticipation"

    @classmethod
    def from_name(cls, name) -> "VoicingStyle":
        return enum_by_name(cls, name, cls.BLOCK)


def _power_of_two(value: int) -> int:
    value = int(clamp(int(value), 1, MAX_DENOMINATOR))
    return int(clamp(2 ** round(math.log2(value)), 1, MAX_DENOMINATOR))


def _unit(value) -> float:
    return float(clamp(float(value), 0.0, 1.0))


@dataclass(frozen=True)
class EngineConfig:
    """Immutable description of one passage.

    Parameters
    ----------
    key:
        Absolute MIDI pitch of the tonic, ``0-127``.
    scale:
        Scale name; unknown names resolve to ``Major``.
    numerator, denominator:
        Time signature. The denominator is rounded to a power of two.
    bars:
        Passage length, ``1-128``.
    rest_density, note_density:
        ``0-1``. Rest density turns steps into rests; note density below
        ``0.5`` merges steps and above ``0.5`` splits long ones.
    tessitura:
        ``(low, high)`` MIDI range for every generated pitch.
    contour, voicing, polyrhythm, mode, chord_color, revoice:
        Enum members or their names; unknown names fall back to defaults.
    chords_per_bar:
        ``1`` or ``2`` to fix the harmonic rhythm, ``0`` to choose per bar.
    loop_bars:
        Motif length (``0``, ``1``, ``2`` or ``4``) for looped melodies.
    polyrhythm_amount:
        Chance per pattern cycle that the polyrhythmic rhythm is used.
    timing, velocity, swing, feel:
        Humanizer amounts in ``0-1``.
    seed:
        Seed used by :func:`generate_variants` and the command line.
    """

    key: int = 60
    scale: str = DEFAULT_SCALE.name
    numerator: int = 4
    denominator: int = 4
    bars: int = 4
    rest_density: float = 0.1
    note_density: float = 0.5
    tessitura: Tuple[int, int] = DEFAULT_TESSITURA
    contour: ContourShape = ContourShape.ARCH
    voicing: VoicingStyle = VoicingStyle.BLOCK
    chords_per_bar: int = 0
    loop_bars: int = 0
    polyrhythm: PolyrhythmMode = PolyrhythmMode.OFF
    polyrhythm_amount: float = 0.0
    timing: float = 0.0
    velocity: float = 0.0
    swing: float = 0.0
    feel: float = 0.0
    mode: EngineMode = EngineMode.CHORDS
    chord_color: TensionLevel = TensionLevel.OFF
    revoice: RevoiceStyle = RevoiceStyle.OFF
    seed: int = 0

    def __post_init__(self) -> None:
        def fix(name: str, value) -> None:
            object.__setattr__(self, name, value)

        fix("key", int(clamp(int(self.key), 0, 127)))
        fix("scale", scale_by_name(self.scale).name)
        fix("numerator", int(clamp(int(self.numerator), 1, MAX_NUMERATOR)))
        fix("denominator", _power_of_two(self.denominator))
        fix("bars", int(clamp(int(self.bars), 1, MAX_BARS)))
        for name in ("rest_density", "note_density", "polyrhythm_amount", "timing", "velocity", "swing", "feel"):
            fix(name, _unit(getattr(self, name)))
        try:
            low, high = (int(clamp(int(v), 0, 127)) for v in self.tessitura)
        except (TypeError, ValueError):
            logging.debug("Invalid tessitura %r; using %s", self.tessitura, DEFAULT_TESSITURA)
            low, high = DEFAULT_TESSITURA
        fix("tessitura", (min(low, high), max(low, high)))
        fix("contour", ContourShape.from_name(self.contour))
        fix("voicing", VoicingStyle.from_name(self.voicing))
        fix("chords_per_bar", int(self.chords_per_bar) if int(self.chords_per_bar) in (1, 2) else 0)
        fix("loop_bars", max(0, int(self.loop_bars)))
        fix("polyrhythm", PolyrhythmMode.from_name(self.polyrhythm))
        fix("mode", EngineMode.from_name(self.mode))
        fix("chord_color", TensionLevel.from_name(self.chord_color))
        fix("revoice", RevoiceStyle.from_name(self.revoice))
        fix("seed", int(self.seed))

    @property
    def scale_def(self) -> Scale:
        return scale_by_name(self.scale)

    @property
    def bar_beats(self) -> float:
        return bar_length(self.numerator, self.denominator)

    @property
    def total_beats(self) -> float:
        return self.bars * self.bar_beats

    def update(self, **changes) -> "EngineConfig":
        """Return a clamped copy with ``changes`` applied."""

        return replace(self, **changes)


@dataclass
class MelodyAndChords:
    """Result of a generation call: the melody and chord layers."""

    melody: List[Note] = field(default_factory=list)
    chords: List[Note] = field(default_factory=list)

    def all_notes(self) -> List[Note]:
        return sorted(self.melody + self.chords, key=lambda n: (n.start, n.pitch))


# ---------------------------------------------------------------------------
# Rhythm timeline
# ---------------------------------------------------------------------------


def _timeline(
    config: EngineConfig, pattern: RhythmPattern, rng: random.Random, span: float
) -> List[RhythmStep]:
    """Return absolute rhythm steps covering ``span`` beats.

    The pattern is repeated end to end. With a polyrhythm mode selected each
    cycle uses the warped pattern with probability ``polyrhythm_amount``.
    Note density and rest density are applied afterwards.
    """

    warped = None
    if config.polyrhythm is not PolyrhythmMode.OFF and config.polyrhythm_amount > 0:
        warped = warp(pattern, config.polyrhythm.ratio)

    steps: List[RhythmStep] = []
    offset = 0.0
    while offset < span - EPSILON:
        cycle = pattern
        if warped is not None and rng.random() < config.polyrhythm_amount:
            cycle = warped
        for step in cycle.steps:
            start = offset + step.start
            if start >= span - EPSILON:
                break
            length = min(step.length, span - start)
            if length >= MIN_LENGTH:
                steps.append(replace(step, start=start, length=length))
        offset += pattern.span

    steps = _apply_note_density(steps, config.note_density, rng)
    if config.rest_density > 0:
        steps = [
            replace(step, rest=True) if not step.rest and rng.random() < config.rest_density else step
            for step in steps
        ]
    return steps


def _apply_note_density(steps: List[RhythmStep], density: float, rng: random.Random) -> List[RhythmStep]:
    if density < 0.5 - EPSILON:
        chance = (0.5 - density) * 2.0 * MERGE_STRENGTH
        merged: List[RhythmStep] = []
        for step in steps:
            if merged and not step.rest and not merged[-1].rest:
                prev = merged[-1]
                joined = step.end - prev.start
                if joined <= MAX_MERGED_LENGTH + EPSILON and rng.random() < chance:
                    merged[-1] = replace(prev, length=joined)
                    continue
            merged.append(step)
        return merged
    if density > 0.5 + EPSILON:
        chance = (density - 0.5) * 2.0
        split: List[RhythmStep] = []
        for step in steps:
            if not step.rest and step.length >= SPLIT_MIN_LENGTH and rng.random() < chance:
                half = step.length / 2.0
                split.append(replace(step, length=half))
                split.append(replace(step, start=step.start + half, length=half, accent=max(0.0, step.accent - 0.15)))
            else:
                split.append(step)
        return split
    return steps


# ---------------------------------------------------------------------------
# Progression and chord voicing
# ---------------------------------------------------------------------------


def _plan_and_progression(config: EngineConfig, rng: random.Random) -> Tuple[PhrasePlan, List[ChordSlot]]:
    plan = generate_phrase_plan(config.bars, config.loop_bars)
    progression = generate_progression(
        config.bars,
        config.bar_beats,
        rng,
        chords_per_bar=config.chords_per_bar,
        plan=plan,
    )
    return plan, progression


def _slot_at(progression: Sequence[ChordSlot], starts: Sequence[float], beat: float) -> ChordSlot:
    idx = bisect_right(starts, beat + EPSILON) - 1
    return progression[int(clamp(idx, 0, len(progression) - 1))]


def _voice_progression(
    config: EngineConfig,
    rng: random.Random,
    progression: Sequence[ChordSlot],
    options: Optional[AdvancedHarmonyOptions],
) -> List[Tuple[ChordSlot, Optional[int]]]:
    """Assign pitches to every slot and decide its bass note.

    Returns ``(slot, bass)`` pairs where ``bass`` is ``None`` when no bass
    note is played. Rest slots keep an empty tone list.
    """

    key = config.key
    scale = config.scale_def
    low, high = config.tessitura
    size = len(scale)
    prev: Optional[List[int]] = None
    voiced: List[ChordSlot] = []
    for slot in progression:
        if slot.length >= HALF_NOTE and config.rest_density > 0:
            if rng.random() < config.rest_density * REST_SLOT_FACTOR:
                voiced.append(replace(slot, rest=True, tones=[]))
                continue
        degree = slot.degree % size
        triad = triad_for_degree(degree, key, scale)
        tones = choose_voicing(prev, triad, rng, low, high)
        root_pc = triad[0] % 12
        root = min((p for p in tones if p % 12 == root_pc), default=tones[0])
        if options is not None:
            tones = apply_extensions(tones, root, options, rng, seventh=seventh_above(degree, key, scale))
        prev = tones
        voiced.append(replace(slot, root=root, tones=tones))

    if options is not None:
        voiced = apply_color_families(voiced, options, rng, key)

    result: List[Tuple[ChordSlot, Optional[int]]] = []
    for slot in voiced:
        if slot.rest:
            result.append((slot, None))
            continue
        tones = sorted({fold_into_range(p, low, high) for p in slot.tones})
        root = fold_into_range(slot.root, low, high)
        bass = None
        if rng.random() < BASS_PROBABILITY and root - 12 >= low:
            bass = root - 12
        result.append((replace(slot, root=root, tones=tones), bass))
    return result


def _alberti(tones: Sequence[int]) -> List[int]:
    if len(tones) < 3:
        return [tones[0], tones[-1]]
    return [tones[0], tones[-1], tones[len(tones) // 2], tones[-1]]


def _chord_velocity(slot: ChordSlot, bar_beats: float) -> int:
    downbeat = abs(slot.start - slot.bar * bar_beats) <= EPSILON
    return accent_to_velocity(CHORD_ACCENT_DOWNBEAT if downbeat else CHORD_ACCENT)


def _render_slots(
    config: EngineConfig, voiced: Sequence[Tuple[ChordSlot, Optional[int]]]
) -> List[Note]:
    """Turn voiced slots into notes following ``config.voicing``."""

    style = config.voicing
    notes: List[Note] = []
    sounding = [(slot, bass) for slot, bass in voiced if not slot.rest and slot.tones]
    for i, (slot, bass) in enumerate(sounding):
        vel = _chord_velocity(slot, config.bar_beats)
        end = slot.start + slot.length
        if bass is not None:
            notes.append(Note(pitch=bass, velocity=vel, start=slot.start, length=slot.length))

        if style is VoicingStyle.BLOCK:
            notes.extend(Note(pitch=p, velocity=vel, start=slot.start, length=slot.length) for p in slot.tones)
        elif style is VoicingStyle.HALF_NOTES:
            pos = slot.start
            while pos < end - EPSILON:
                length = min(HALF_NOTE, end - pos)
                notes.extend(Note(pitch=p, velocity=vel, start=pos, length=length) for p in slot.tones)
                vel = max(1, vel - 6)
                pos += HALF_NOTE
        elif style is VoicingStyle.ANTICIPATION:
            start = slot.start
            if i > 0 and slot.start - ANTICIPATION > sounding[i - 1][0].start + EPSILON:
                start = slot.start - ANTICIPATION
            if i + 1 < len(sounding):
                nxt = sounding[i + 1][0]
                if nxt.start - ANTICIPATION > slot.start + EPSILON:
                    end = min(end, nxt.start - ANTICIPATION)
            notes.extend(Note(pitch=p, velocity=vel, start=start, length=end - start) for p in slot.tones)
        else:
            if style is VoicingStyle.ARP_UP:
                figure = list(slot.tones)
            elif style is VoicingStyle.ARP_DOWN:
                figure = list(reversed(slot.tones))
            else:
                figure = _alberti(slot.tones)
            # The first note carries the slot accent, the rest the plain chord accent.
            follow_vel = accent_to_velocity(CHORD_ACCENT)
            pos = slot.start
            idx = 0
            while pos < end - EPSILON:
                length = min(ARPEGGIO_STEP, end - pos)
                velocity = vel if idx == 0 else follow_vel
                notes.append(Note(pitch=figure[idx % len(figure)], velocity=velocity, start=pos, length=length))
                idx += 1
                pos += ARPEGGIO_STEP
    return notes


def _color_slots(
    config: EngineConfig,
    rng: random.Random,
    voiced: Sequence[Tuple[ChordSlot, Optional[int]]],
) -> List[Tuple[ChordSlot, Optional[int]]]:
    """Apply ``config.chord_color`` to the tones of every sounding slot."""

    block = [
        Note(pitch=p, start=slot.start, length=slot.length)
        for slot, _ in voiced
        if not slot.rest
        for p in slot.tones
    ]
    colored = {
        round(start, 6): sorted(n.pitch for n in group)
        for start, group in group_by_onset(apply_chord_color(block, config.chord_color, config, rng))
    }
    return [
        (slot if slot.rest else replace(slot, tones=colored.get(round(slot.start, 6), slot.tones)), bass)
        for slot, bass in voiced
    ]


def _finish(notes: Sequence[Note], config: EngineConfig, rng: random.Random, monophonic: bool) -> List[Note]:
    """Humanize and clamp ``notes`` to the passage and tessitura."""

    if monophonic:
        notes = enforce_monophonic(notes)
    notes = humanize(notes, config.timing, config.velocity, config.swing, config.feel, rng)
    if monophonic:
        notes = enforce_monophonic(notes)
    low, high = config.tessitura
    return sanitize(notes, config.total_beats, low, high)


# ---------------------------------------------------------------------------
# Melody walker
# ---------------------------------------------------------------------------


class _MelodyWalker:
    """Stateful walk over the movement table for one melody line."""

    def __init__(self, config: EngineConfig, rng: random.Random) -> None:
        self.config = config
        self.rng = rng
        self.key = config.key
        self.scale = config.scale_def
        self.low, self.high = config.tessitura
        self.pending: List[int] = []
        mid = (self.low + self.high) // 2
        tonic = self.key + 12 * round((mid - self.key) / 12)
        self.pitch = self.fit(tonic)

    def fit(self, pitch: int) -> int:
        """Return ``pitch`` folded into the tessitura and snapped to the scale."""

        pitch = fold_into_range(pitch, self.low, self.high)
        snapped = snap_to_scale(pitch, self.key, self.scale)
        if snapped > self.high:
            snapped = step_in_scale(snapped, -1, self.key, self.scale)
        elif snapped < self.low:
            snapped = step_in_scale(snapped, 1, self.key, self.scale)
        if not self.low <= snapped <= self.high:
            return pitch
        return snapped

    def step(self, steps: int, base: Optional[int] = None) -> int:
        base = self.pitch if base is None else base
        return step_in_scale(base, steps, self.key, self.scale)

    def nearest_chord_tone(self, chord_pcs) -> int:
        options = []
        for distance in range(1, 13):
            for cand in (self.pitch - distance, self.pitch + distance):
                if cand % 12 in chord_pcs and self.low <= cand <= self.high:
                    options.append(cand)
            if options:
                break
        if not options:
            return self.pitch
        return options[0] if len(options) == 1 else self.rng.choice(options)

    def apply(self, move: Movement, chord_pcs) -> int:
        prev = self.pitch
        kind = move.kind
        if kind is MoveType.CHORD_TONE:
            return self.nearest_chord_tone(chord_pcs)
        if kind is MoveType.SCALE_STEP_UP:
            return self.step(1)
        if kind is MoveType.SCALE_STEP_DOWN:
            return self.step(-1)
        if kind in (MoveType.NEIGHBOR_UP, MoveType.NEIGHBOR_DOWN):
            self.pending = [prev]
            return self.step(move.direction)
        if kind is MoveType.ENCLOSURE:
            self.pending = [self.step(-1), prev]
            return self.step(1)
        if kind is MoveType.DOUBLE_NEIGHBOR:
            self.pending = [self.step(-1), prev]
            return self.step(1)
        if kind in (MoveType.ESCAPE_TONE_UP, MoveType.ESCAPE_TONE_DOWN):
            self.pending = [self.step(-move.direction)]
            return snap_to_scale(prev + move.semitone_hint, self.key, self.scale)
        if kind is MoveType.RESOLVE_DOWN:
            if move.semitone_hint <= -2:
                return self.step(-1)
            target = snap_to_scale(prev - 1, self.key, self.scale)
            return target if target < prev else self.step(-1)
        return snap_to_scale(prev + move.semitone_hint, self.key, self.scale)

    def next_pitch(self, progress: float, tension: float, chord_pcs) -> int:
        if self.pending:
            pitch = self.pending.pop(0)
        else:
            weights = apply_contour_weights(STRUCTURAL_MOVES, self.config.contour, progress)
            leap_scale = TENSION_LEAP_BASE + tension
            weights = [
                round(w * leap_scale, 6) if m.kind is MoveType.LEAP else w
                for w, m in zip(weights, STRUCTURAL_MOVES)
            ]
            move = STRUCTURAL_MOVES[weighted_index(weights, self.rng)]
            pitch = self.apply(move, chord_pcs)
        self.pitch = self.fit(pitch)
        return self.pitch


def _ornament(host: Note, move: Movement, walker: _MelodyWalker) -> Tuple[List[Note], Note]:
    """Return ornament notes and the shortened host for ``move``.

    Ornaments start where the host started and the host is delayed by their
    total length, so its end never moves.
    """

    up = walker.fit(walker.step(1, host.pitch))
    down = walker.fit(walker.step(-1, host.pitch))
    kind = move.kind
    if kind is MoveType.TRILL:
        figure = [host.pitch, up, host.pitch, up]
    elif kind is MoveType.TURN:
        figure = [up, host.pitch, down]
    elif kind is MoveType.MORDENT_UP:
        figure = [host.pitch, up]
    elif kind is MoveType.MORDENT_DOWN:
        figure = [host.pitch, down]
    elif kind is MoveType.GRACE_UP:
        figure = [up]
    else:
        figure = [down]

    total = ORNAMENT_UNIT * len(figure)
    if host.length - total < ORNAMENT_UNIT:
        return [], host
    vel = int(clamp(host.velocity - 10, 1, 127))
    ornaments = [
        Note(pitch=p, velocity=vel, start=host.start + i * ORNAMENT_UNIT, length=ORNAMENT_UNIT, is_ornament=True)
        for i, p in enumerate(figure)
    ]
    shortened = replace(host, start=host.start + total, length=host.length - total)
    return ornaments, shortened


def _walk(
    config: EngineConfig,
    rng: random.Random,
    plan: PhrasePlan,
    progression: Sequence[ChordSlot],
    steps: Sequence[RhythmStep],
) -> List[Note]:
    walker = _MelodyWalker(config, rng)
    starts = [slot.start for slot in progression]
    scale = config.scale_def
    size = len(scale)
    total = config.total_beats
    notes: List[Note] = []
    for step in steps:
        if step.rest:
            continue
        slot = _slot_at(progression, starts, step.start)
        chord_pcs = {p % 12 for p in triad_for_degree(slot.degree % size, config.key, scale)}
        bar = int(step.start // config.bar_beats)
        pitch = walker.next_pitch(step.start / total, plan.tension_at(bar), chord_pcs)
        note = Note(pitch=pitch, velocity=accent_to_velocity(step.accent), start=step.start, length=step.length)
        if note.length >= ORNAMENT_MIN_HOST and rng.random() < ORNAMENT_PROBABILITY:
            move = ORNAMENT_MOVES[weighted_index([m.weight for m in ORNAMENT_MOVES], rng)]
            ornaments, note = _ornament(note, move, walker)
            notes.extend(ornaments)
        notes.append(note)
    return notes


def _vary_loop(notes: Sequence[Note], config: EngineConfig, rng: random.Random, walker: _MelodyWalker) -> List[Note]:
    """Return a varied repeat of a looped motif."""

    key = config.key
    scale = config.scale_def
    pitches = [n.pitch for n in notes]
    if pitches and rng.random() < LOOP_TRANSPOSE:
        shift = rng.choice((1, -1))
        pitches = [step_in_scale(p, shift, key, scale) for p in pitches]
    if pitches and rng.random() < LOOP_FLIP:
        axis = scale_degree_of(pitches[0], key, scale)
        pitches = [degree_to_pitch(2 * axis - scale_degree_of(p, key, scale), key, scale) for p in pitches]
    varied: List[Note] = []
    for note, pitch in zip(notes, pitches):
        if not note.is_ornament and rng.random() < LOOP_NUDGE:
            pitch = step_in_scale(pitch, rng.choice((1, -1)), key, scale)
        varied.append(replace(note, pitch=walker.fit(pitch)))
    return varied


def _melody_notes(
    config: EngineConfig,
    rng: random.Random,
    plan: PhrasePlan,
    progression: Sequence[ChordSlot],
) -> List[Note]:
    pattern = select_pattern(config.numerator, config.denominator, rng)
    total = config.total_beats
    loop_span = plan.loop_bars * config.bar_beats
    looped = 0 < plan.loop_bars < config.bars
    steps = _timeline(config, pattern, rng, loop_span if looped else total)
    notes = _walk(config, rng, plan, progression, steps)
    if looped:
        motif = notes
        walker = _MelodyWalker(config, rng)
        copies = int(math.ceil(config.bars / plan.loop_bars))
        for k in range(1, copies):
            varied = _vary_loop(motif, config, rng, walker)
            notes.extend(replace(n, start=n.start + k * loop_span) for n in varied)
    logging.debug("Melody: pattern %r, %d notes", pattern.name, len(notes))
    return _finish(notes, config, rng, monophonic=True)


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def generate_melody(config: EngineConfig, rng: random.Random) -> List[Note]:
    """Return a monophonic melody for ``config``.

    A rhythm pattern is selected for the meter and repeated over the passage.
    Each sounding step draws a movement from the contour-weighted table
    relative to the previous pitch; the result is quantized to the scale
    and kept inside the tessitura. Chord tones follow a progression built
    from the same stream.
    """

    plan, progression = _plan_and_progression(config, rng)
    return _melody_notes(config, rng, plan, progression)


def generate_chord_track(
    config: EngineConfig,
    rng: random.Random,
    options: Optional[AdvancedHarmonyOptions] = None,
) -> List[Note]:
    """Return the chord track for ``config``.

    Parameters
    ----------
    config:
        Passage description.
    rng:
        Random stream.
    options:
        Harmony rules (extensions and colour families). ``None`` plays plain
        diatonic triads.

    Returns
    -------
    list[Note]
        Chord notes sorted by onset. Colour level and re-voicing styles from
        ``config`` are applied before humanizing.
    """

    _, progression = _plan_and_progression(config, rng)
    voiced = _voice_progression(config, rng, progression, options)
    notes = _render_slots(config, voiced)
    if config.chord_color is not TensionLevel.OFF:
        notes = apply_chord_color(notes, config.chord_color, config, rng)
    if config.revoice is not RevoiceStyle.OFF:
        notes = revoice_chords(notes, config.revoice, rng)
    logging.debug("Chords: %d slots, %d notes", len(progression), len(notes))
    return _finish(notes, config, rng, monophonic=False)


generate_chords = generate_chord_track


def generate_melody_and_chords(
    config: EngineConfig,
    rng: random.Random,
    options: Optional[AdvancedHarmonyOptions] = None,
    avoid_overlaps: bool = False,
) -> MelodyAndChords:
    """Return a melody over rhythmic chord stabs.

    Chords are played on the strongly accented steps of a rhythm pattern and
    on the first onset inside each slot. Every stab keeps one or two of the
    slot's tones, sampled without replacement. The melody walks over the same
    progression. With ``avoid_overlaps`` melody notes sounding together with
    any chord note are removed.
    """

    plan, progression = _plan_and_progression(config, rng)
    voiced = _voice_progression(config, rng, progression, options)
    if config.chord_color is not TensionLevel.OFF:
        voiced = _color_slots(config, rng, voiced)
    starts = [slot.start for slot, _ in voiced]
    pattern = select_pattern(config.numerator, config.denominator, rng)

    stabs: List[Note] = []
    struck = set()
    for step in _timeline(config, pattern, rng, config.total_beats):
        if step.rest:
            continue
        idx = int(clamp(bisect_right(starts, step.start + EPSILON) - 1, 0, len(voiced) - 1))
        slot = voiced[idx][0]
        if slot.rest or not slot.tones:
            continue
        if step.accent < STAB_ACCENT and idx in struck:
            continue
        struck.add(idx)
        count = min(rng.choice((1, 2)), len(slot.tones))
        vel = int(clamp(accent_to_velocity(step.accent) - STAB_VELOCITY_DROP, 1, 127))
        length = min(step.length, slot.start + slot.length - step.start)
        if length < MIN_LENGTH:
            continue
        stabs.extend(
            Note(pitch=p, velocity=vel, start=step.start, length=length)
            for p in sorted(rng.sample(slot.tones, count))
        )
    if config.revoice is not RevoiceStyle.OFF:
        stabs = revoice_chords(stabs, config.revoice, rng)
    chords = _finish(stabs, config, rng, monophonic=False)
    melody = _melody_notes(config, rng, plan, [slot for slot, _ in voiced])

    if avoid_overlaps:
        melody = [m for m in melody if not any(overlaps(m, c) for c in chords)]
    logging.debug("Mixture: %d melody notes, %d chord notes", len(melody), len(chords))
    return MelodyAndChords(melody=melody, chords=chords)


def generate(
    config: EngineConfig,
    rng: random.Random,
    options: Optional[AdvancedHarmonyOptions] = None,
    avoid_overlaps: bool = False,
) -> MelodyAndChords:
    """Generate according to ``config.mode``.

    ``SURPRISE_ME`` draws one of the other three modes from ``rng``.
    """

    mode = config.mode
    if mode is EngineMode.SURPRISE_ME:
        mode = (EngineMode.CHORDS, EngineMode.MELODY, EngineMode.MIXTURE)[rng.randrange(3)]
        logging.debug("Surprise mode picked %s", mode.value)
    if mode is EngineMode.MELODY:
        return MelodyAndChords(melody=generate_melody(config, rng))
    if mode is EngineMode.MIXTURE:
        return generate_melody_and_chords(config, rng, options, avoid_overlaps)
    return MelodyAndChords(chords=generate_chord_track(config, rng, options))


def generate_variants(
    config: EngineConfig,
    options: Optional[AdvancedHarmonyOptions] = None,
    count: int = MAX_VARIANTS,
    avoid_overlaps: bool = False,
) -> List[MelodyAndChords]:
    """Return up to four variations of ``config``.

    Variant ``i`` (zero based) uses a fresh stream seeded with
    ``config.seed + (i + 1) * 9973`` so each is reproducible on its own.
    """

    count = int(clamp(int(count), 0, MAX_VARIANTS))
    return [
        generate(config, random.Random(config.seed + (i + 1) * VARIANT_SEED_STRIDE), options, avoid_overlaps)
        for i in range(count)
    ]


def reharmonize(
    previous: Sequence[Note],
    config: EngineConfig,
    rng: random.Random,
    options: Optional[AdvancedHarmonyOptions] = None,
    keep: str = "first",
) -> List[Note]:
    """Keep one half of ``previous`` and regenerate the other.

    The split falls on the bar line nearest the middle of the passage (the
    middle of the bar for one-bar passages). Notes of the kept half are
    clipped at the split; the fresh half comes from
    :func:`generate_chord_track`.

    Raises
    ------
    ValueError
        If ``keep`` is neither ``"first"`` nor ``"second"``.
    """

    if keep not in ("first", "second"):
        raise ValueError("keep must be 'first' or 'second'")
    total = config.total_beats
    split = (config.bars // 2) * config.bar_beats if config.bars > 1 else total / 2.0
    fresh = generate_chord_track(config, rng, options)

    def first_half(notes: Sequence[Note]) -> List[Note]:
        return [
            replace(n, length=min(n.length, split - n.start))
            for n in notes
            if n.start < split - EPSILON and split - n.start >= MIN_LENGTH
        ]

    def second_half(notes: Sequence[Note]) -> List[Note]:
        return [n for n in notes if n.start >= split - EPSILON]

    if keep == "first":
        merged = first_half(previous) + second_half(fresh)
    else:
        merged = first_half(fresh) + second_half(previous)
    low, high = config.tessitura
    return sanitize(merged, total, low, high)
