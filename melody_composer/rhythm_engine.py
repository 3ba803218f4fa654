"""Rhythm pattern catalogue and meter-aware pattern selection.

Melody and chord generation both start from a *rhythm pattern*: an ordered
list of :class:`RhythmStep` onsets spanning one or more bars. Patterns carry a
selection weight and a set of :class:`RhythmStyle` tags. The
:class:`RhythmPatternDatabase` picks one for the requested meter with a
weighted draw and fits it to the bar length when only a related meter is
available.

Positions and lengths are measured in beats where one beat is a quarter note,
so a bar of ``numerator/denominator`` lasts ``numerator * 4 / denominator``
beats.

Polyrhythm is modelled as the pure function :func:`warp` which compresses or
stretches a pattern's steps by a ratio and tiles the result over the original
span. Nothing here mutates a pattern in place.

Example
-------
>>> import random
>>> pattern = select_pattern(4, 4, random.Random(3))
>>> pattern.bar_beats
4.0
>>> warped = warp(pattern, PolyrhythmMode.THREE_TWO.ratio)
>>> warped.span == pattern.span
True
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from enum import Enum, IntFlag
from fractions import Fraction
from typing import Iterable, List, Optional, Tuple

from .notes import EPSILON, MIN_LENGTH
from .performance import weighted_index

__all__ = [
    "RhythmStyle",
    "RhythmStep",
    "RhythmPattern",
    "PolyrhythmMode",
    "DEFAULT_PATTERNS",
    "RhythmPatternDatabase",
    "bar_length",
    "default_pattern",
    "fit_pattern",
    "warp",
    "select_pattern",
]


class RhythmStyle(IntFlag):
    """Descriptive tags attached to patterns."""

    NONE = 0
    STRAIGHT = 1
    SYNCOPATED = 2
    LYRICAL = 4
    SHUFFLE = 8
    BALKAN = 16
    SIXTEENTH = 32
    SPARSE = 64
    NARRATIVE = 128


@dataclass(frozen=True)
class RhythmStep:
    """Single onset of a rhythm pattern."""

    start: float
    length: float
    rest: bool = False
    accent: float = 0.7

    @property
    def end(self) -> float:
        return self.start + self.length


@dataclass(frozen=True)
class RhythmPattern:
    """Named sequence of steps covering ``bars`` bars of one meter."""

    name: str
    bars: int
    numerator: int
    denominator: int
    steps: Tuple[RhythmStep, ...]
    weight: float = 1.0
    styles: RhythmStyle = RhythmStyle.NONE

    @property
    def bar_beats(self) -> float:
        return bar_length(self.numerator, self.denominator)

    @property
    def span(self) -> float:
        """Length of the whole pattern in beats."""

        return self.bars * self.bar_beats

    def matches(self, numerator: int, denominator: int) -> bool:
        return self.numerator == numerator and self.denominator == denominator


def bar_length(numerator: int, denominator: int) -> float:
    """Return the length of one bar in quarter-note beats."""

    return numerator * 4.0 / denominator


class PolyrhythmMode(Enum):
    """Supported polyrhythm ratios (notes played : notes of the grid)."""

    OFF = "off"
    THREE_TWO = "3:2"
    FOUR_THREE = "4:3"
    FIVE_FOUR = "5:4"
    SEVEN_FOUR = "7:4"
    TWO_THREE = "2:3"

    @property
    def ratio(self) -> Fraction:
        if self is PolyrhythmMode.OFF:
            return Fraction(1)
        played, grid = self.value.split(":")
        return Fraction(int(played), int(grid))

    @classmethod
    def from_name(cls, name) -> "PolyrhythmMode":
        """Return the mode for ``name`` (value or member name); unknown -> ``OFF``."""

        if isinstance(name, cls):
            return name
        text = str(name).strip()
        for mode in cls:
            if text == mode.value or text.upper() == mode.name:
                return mode
        logging.debug("Unknown polyrhythm mode %r; using off", name)
        return cls.OFF


def _steps(*specs) -> Tuple[RhythmStep, ...]:
    """Build steps from ``(start, length, accent)`` tuples; accent ``None`` is a rest."""

    return tuple(
        RhythmStep(start, length, rest=accent is None, accent=accent or 0.0)
        for start, length, accent in specs
    )


R = None  # rest marker inside the pattern tables below

DEFAULT_PATTERNS: Tuple[RhythmPattern, ...] = (
    # 2/4
    RhythmPattern(
        "2/4 march 8ths", 1, 2, 4,
        _steps((0.0, 0.5, 0.8), (0.5, 0.5, 0.6), (1.0, 0.5, 0.7), (1.5, 0.5, 0.9)),
        1.0, RhythmStyle.STRAIGHT,
    ),
    RhythmPattern(
        "2/4 sync push", 2, 2, 4,
        _steps(
            (0.0, 0.5, 0.8), (0.5, 0.5, R), (1.0, 0.5, 0.7), (1.5, 0.5, 0.9),
            (2.0, 0.5, R), (2.5, 0.5, 0.8), (3.0, 0.5, 0.7), (3.5, 0.5, 1.0),
        ),
        0.9, RhythmStyle.SYNCOPATED,
    ),
    # 3/4
    RhythmPattern(
        "3/4 waltz simple", 1, 3, 4,
        _steps(
            (0.0, 0.5, 0.8), (0.5, 0.5, 0.6), (1.0, 0.5, 0.8),
            (1.5, 0.5, 0.6), (2.0, 0.5, 0.8), (2.5, 0.5, 0.9),
        ),
        0.9, RhythmStyle.STRAIGHT,
    ),
    RhythmPattern(
        "3/4 offbeat lilt", 2, 3, 4,
        _steps(
            (0.0, 0.5, 0.8), (0.5, 0.5, R), (1.0, 0.5, 0.7),
            (1.5, 0.5, 0.7), (2.0, 0.5, 0.8), (2.5, 0.5, 0.9),
            (3.0, 0.5, 0.8), (3.5, 0.5, R), (4.0, 0.5, 0.7),
            (4.5, 0.5, 0.7), (5.0, 0.5, 0.8), (5.5, 0.5, 1.0),
        ),
        0.85, RhythmStyle.SYNCOPATED | RhythmStyle.LYRICAL,
    ),
    # 4/4
    RhythmPattern(
        "4/4 8ths straight", 1, 4, 4,
        _steps(
            (0.0, 0.5, 0.7), (0.5, 0.5, 0.5), (1.0, 0.5, 0.7), (1.5, 0.5, 0.5),
            (2.0, 0.5, 0.7), (2.5, 0.5, 0.5), (3.0, 0.5, 0.7), (3.5, 0.5, 0.8),
        ),
        1.0, RhythmStyle.STRAIGHT,
    ),
    RhythmPattern(
        "4/4 offbeat syncop", 1, 4, 4,
        _steps(
            (0.0, 0.25, R), (0.5, 0.5, 0.9), (1.5, 0.5, 0.7),
            (2.0, 0.25, 0.4), (2.5, 0.5, 0.7), (3.5, 0.5, 0.9),
        ),
        1.0, RhythmStyle.SYNCOPATED,
    ),
    RhythmPattern(
        "4/4 lyrical long-short", 1, 4, 4,
        _steps((0.0, 1.5, 0.8), (1.5, 0.5, 0.5), (2.0, 2.0, 0.7)),
        0.8, RhythmStyle.LYRICAL | RhythmStyle.NARRATIVE,
    ),
    RhythmPattern(
        "4/4 sparse breath", 2, 4, 4,
        _steps((0.0, 2.0, 0.8), (2.0, 1.0, 0.6), (3.0, 1.0, R), (4.0, 3.0, 0.7), (7.0, 1.0, R)),
        0.6, RhythmStyle.SPARSE,
    ),
    RhythmPattern(
        "4/4 16th run", 1, 4, 4,
        _steps(*[(i * 0.25, 0.25, 0.8 if i % 4 == 0 else 0.5) for i in range(16)]),
        0.5, RhythmStyle.SIXTEENTH,
    ),
    # 5/4
    RhythmPattern(
        "5/4 pulse long-short", 1, 5, 4,
        _steps(
            (0.0, 1.0, 0.8), (1.0, 0.5, 0.6), (1.5, 0.5, 0.6), (2.0, 0.5, 0.7),
            (2.5, 0.5, 0.7), (3.0, 0.5, 0.8), (3.5, 0.5, 0.7), (4.0, 1.0, 0.9),
        ),
        0.8, RhythmStyle.STRAIGHT,
    ),
    RhythmPattern(
        "5/4 sync spread", 2, 5, 4,
        _steps(
            (0.0, 0.5, 0.8), (0.5, 0.5, 0.6), (1.0, 0.5, 0.7), (1.5, 0.5, 0.7),
            (2.0, 0.5, 0.8), (2.5, 0.5, 0.6), (3.0, 0.5, 0.7), (3.5, 0.5, 0.7),
            (4.0, 0.5, 0.9), (5.0, 0.5, 0.8), (5.5, 0.5, 0.6), (6.0, 0.5, 0.7),
            (6.5, 0.5, 0.7), (7.0, 0.5, 0.8), (7.5, 0.5, 1.0), (8.0, 0.5, 0.8),
            (8.5, 0.5, 0.7), (9.0, 0.5, 0.9),
        ),
        0.75, RhythmStyle.SYNCOPATED,
    ),
    # 5/8
    RhythmPattern(
        "5/8 Balkan feel", 1, 5, 8,
        _steps((0.0, 0.5, 0.8), (0.5, 0.5, 0.7), (1.0, 0.5, 0.8), (1.5, 1.0, 0.9)),
        0.7, RhythmStyle.BALKAN,
    ),
    # 6/8
    RhythmPattern(
        "6/8 rocking", 1, 6, 8,
        _steps(
            (0.0, 0.75, 0.8), (0.75, 0.25, 0.5), (1.0, 0.5, 0.6),
            (1.5, 0.75, 0.8), (2.25, 0.25, 0.5), (2.5, 0.5, 0.6),
        ),
        0.8, RhythmStyle.LYRICAL,
    ),
    RhythmPattern(
        "6/8 jig", 1, 6, 8,
        _steps(
            (0.0, 0.5, 0.9), (0.5, 0.5, 0.5), (1.0, 0.5, 0.6),
            (1.5, 0.5, 0.8), (2.0, 0.5, 0.5), (2.5, 0.5, 0.6),
        ),
        0.7, RhythmStyle.STRAIGHT,
    ),
    # 7/8
    RhythmPattern(
        "7/8 long-short-short", 1, 7, 8,
        _steps((0.0, 1.0, 0.8), (1.0, 0.5, 0.6), (1.5, 0.5, 0.7), (2.0, 1.0, 0.8), (3.0, 0.5, 0.9)),
        0.7, RhythmStyle.BALKAN,
    ),
    # 7/4
    RhythmPattern(
        "7/4 driving", 1, 7, 4,
        _steps(
            (0.0, 0.5, 0.8), (0.5, 0.5, 0.6), (1.0, 0.5, 0.7), (2.0, 0.5, 0.8),
            (3.0, 0.5, 0.6), (4.0, 0.5, 0.7), (5.0, 0.5, 0.8), (6.0, 0.5, 0.9),
        ),
        0.6, RhythmStyle.STRAIGHT,
    ),
    # 9/8
    RhythmPattern(
        "9/8 compound", 1, 9, 8,
        _steps(
            (0.0, 0.5, 0.8), (0.5, 0.5, 0.6), (1.0, 0.5, 0.7),
            (1.5, 0.5, 0.8), (2.0, 0.5, 0.6), (2.5, 0.5, 0.7),
            (3.0, 0.5, 0.9), (3.5, 0.5, 0.6), (4.0, 0.5, 0.7),
        ),
        0.6, RhythmStyle.STRAIGHT,
    ),
    # 12/8
    RhythmPattern(
        "12/8 shuffle", 1, 12, 8,
        _steps(
            (0.0, 0.75, 0.8), (0.75, 0.25, R), (1.0, 0.75, 0.7), (1.75, 0.25, R),
            (2.0, 0.75, 0.8), (2.75, 0.25, R), (3.0, 0.75, 0.7), (3.75, 0.25, R),
            (4.0, 0.75, 0.8), (4.75, 0.25, R), (5.0, 0.75, 0.7), (5.75, 0.25, R),
        ),
        0.65, RhythmStyle.SHUFFLE,
    ),
    # 11/8
    RhythmPattern(
        "11/8 3+3+3+2", 1, 11, 8,
        _steps(
            (0.0, 0.75, 0.9), (0.75, 0.25, R), (1.0, 0.5, 0.7),
            (1.5, 0.75, 0.7), (2.25, 0.25, R), (2.5, 0.5, 0.7),
            (3.0, 0.75, 0.9), (3.75, 0.25, R), (4.0, 0.5, 0.7),
            (4.5, 0.5, 0.9), (5.0, 0.5, 1.0),
        ),
        0.65, RhythmStyle.BALKAN,
    ),
    # 13/8
    RhythmPattern(
        "13/8 airy", 1, 13, 8,
        _steps(
            (0.0, 0.5, 0.8), (0.5, 0.5, 0.6), (1.0, 0.75, 0.75), (1.75, 0.25, R),
            (2.0, 0.75, 0.8), (2.75, 0.25, R), (3.0, 0.75, 0.85), (3.75, 0.25, R),
            (4.0, 0.5, 0.7), (4.5, 0.5, 0.6), (5.0, 0.5, 0.8), (5.5, 1.0, 0.9),
        ),
        0.65, RhythmStyle.SPARSE | RhythmStyle.NARRATIVE,
    ),
)


def default_pattern(numerator: int, denominator: int) -> RhythmPattern:
    """Return a one-bar straight-eighths template for the meter.

    Whole beats receive a stronger accent than the off-beats. Bars whose
    length is not a multiple of an eighth end with a shorter final step.
    """

    bar = bar_length(numerator, denominator)
    steps: List[RhythmStep] = []
    pos = 0.0
    while pos < bar - EPSILON:
        length = min(0.5, bar - pos)
        on_beat = abs(pos - round(pos)) <= EPSILON
        steps.append(RhythmStep(pos, length, False, 0.7 if on_beat else 0.5))
        pos += 0.5
    return RhythmPattern(
        "straight 8ths", 1, numerator, denominator, tuple(steps), 1.0, RhythmStyle.STRAIGHT
    )


def _tile(steps: Iterable[RhythmStep], period: float, span: float) -> Tuple[RhythmStep, ...]:
    """Repeat ``steps`` every ``period`` beats and cut the result at ``span``."""

    steps = list(steps)
    if period <= EPSILON or not steps:
        return ()
    out: List[RhythmStep] = []
    offset = 0.0
    while offset < span - EPSILON:
        for step in steps:
            start = offset + step.start
            if start >= span - EPSILON:
                break
            length = min(step.length, span - start)
            if length >= MIN_LENGTH:
                out.append(replace(step, start=start, length=length))
        offset += period
    return tuple(out)


def fit_pattern(pattern: RhythmPattern, numerator: int, denominator: int) -> RhythmPattern:
    """Return ``pattern`` re-targeted to ``numerator/denominator``.

    The pattern keeps its bar count. Its steps are repeated when the new bars
    are longer and truncated when they are shorter.
    """

    if pattern.matches(numerator, denominator):
        return pattern
    target = replace(pattern, numerator=numerator, denominator=denominator)
    steps = _tile(pattern.steps, pattern.span, target.span)
    if not any(not s.rest for s in steps):
        return default_pattern(numerator, denominator)
    return replace(target, steps=steps)


def warp(pattern: RhythmPattern, ratio) -> RhythmPattern:
    """Return ``pattern`` played at ``ratio`` against its own grid.

    A ratio of ``3/2`` fits three notes in the time of two: each step's
    position and length are divided by the ratio and the compressed figure is
    tiled until it fills the original span. Ratios below one stretch the
    figure and the tail beyond the span is dropped.

    Raises
    ------
    ValueError
        If ``ratio`` is not positive.
    """

    ratio = float(ratio)
    if ratio <= 0:
        raise ValueError("ratio must be positive")
    if abs(ratio - 1.0) <= EPSILON:
        return pattern
    scaled = [
        replace(step, start=step.start / ratio, length=step.length / ratio)
        for step in pattern.steps
    ]
    steps = _tile(scaled, pattern.span / ratio, pattern.span)
    return replace(pattern, name=f"{pattern.name} x{ratio:g}", steps=steps)


class RhythmPatternDatabase:
    """Collection of rhythm patterns grouped by meter."""

    def __init__(self, patterns: Optional[Iterable[RhythmPattern]] = None) -> None:
        self.patterns: List[RhythmPattern] = list(
            DEFAULT_PATTERNS if patterns is None else patterns
        )

    def add(self, pattern: RhythmPattern) -> None:
        self.patterns.append(pattern)

    def candidates(self, numerator: int, denominator: int) -> List[RhythmPattern]:
        """Return the patterns of the nearest meter family.

        Preference order: exact meter, same numerator, same denominator, any
        pattern at all.
        """

        exact = [p for p in self.patterns if p.matches(numerator, denominator)]
        if exact:
            return exact
        same_num = [p for p in self.patterns if p.numerator == numerator]
        if same_num:
            return same_num
        same_den = [p for p in self.patterns if p.denominator == denominator]
        if same_den:
            return same_den
        return list(self.patterns)

    def select_pattern(
        self, numerator: int, denominator: int, rng: random.Random
    ) -> RhythmPattern:
        """Draw a pattern for the meter, weighted by each pattern's weight.

        An empty catalogue yields :func:`default_pattern` so callers always
        receive something to play.
        """

        pool = self.candidates(numerator, denominator)
        if not pool:
            logging.debug("No rhythm patterns for %d/%d; using straight 8ths", numerator, denominator)
            return default_pattern(numerator, denominator)
        chosen = pool[weighted_index([p.weight for p in pool], rng)]
        return fit_pattern(chosen, numerator, denominator)


DEFAULT_DATABASE = RhythmPatternDatabase()


def select_pattern(numerator: int, denominator: int, rng: random.Random) -> RhythmPattern:
    """Select a pattern from the built-in database."""

    return DEFAULT_DATABASE.select_pattern(numerator, denominator, rng)
