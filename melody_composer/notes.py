"""Note events and helpers shared by every generation pass.

A :class:`Note` is the unit exchanged between the generators, the
post-processing passes, the humanizer and the MIDI exporter. Notes are frozen
so passes build new lists with :func:`dataclasses.replace` instead of mutating
events owned by the caller.

Times are measured in beats where one beat is a quarter note.

Example
-------
>>> a = Note(pitch=60, start=0.0, length=1.0)
>>> b = Note(pitch=64, start=0.5, length=1.0)
>>> overlaps(a, b)
True
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, List, Sequence, Tuple

__all__ = [
    "Note",
    "EPSILON",
    "MIN_LENGTH",
    "overlaps",
    "clamp",
    "fold_into_range",
    "group_by_onset",
    "enforce_monophonic",
    "sanitize",
]

# Tolerance used when comparing beat positions.
EPSILON = 1e-6

# Shortest note any pass may leave behind.
MIN_LENGTH = 1.0 / 64.0


@dataclass(frozen=True)
class Note:
    """A single timed, pitched event."""

    pitch: int = 60
    velocity: int = 96
    start: float = 0.0
    length: float = 1.0
    is_ornament: bool = False

    @property
    def end(self) -> float:
        return self.start + self.length


def overlaps(a: Note, b: Note) -> bool:
    """Return ``True`` when the time spans of ``a`` and ``b`` intersect."""

    return a.start < b.end and b.start < a.end


def clamp(value, low, high):
    """Clamp ``value`` into ``[low, high]``."""

    return max(low, min(high, value))


def fold_into_range(pitch: int, low: int, high: int) -> int:
    """Move ``pitch`` by octaves until it lies within ``[low, high]``.

    When the range is narrower than an octave the result may still fall
    outside, in which case it is clamped to the nearest bound. The returned
    value is always a valid MIDI number.
    """

    low = clamp(int(low), 0, 127)
    high = clamp(int(high), low, 127)
    while pitch > high and pitch - 12 >= low:
        pitch -= 12
    while pitch < low and pitch + 12 <= high:
        pitch += 12
    return int(clamp(pitch, low, high))


def group_by_onset(notes: Iterable[Note]) -> List[Tuple[float, List[Note]]]:
    """Return ``(onset, notes)`` pairs for notes sharing a start time.

    Groups are ordered by onset and notes inside a group by ascending pitch.
    """

    groups: List[Tuple[float, List[Note]]] = []
    for note in sorted(notes, key=lambda n: (n.start, n.pitch)):
        if groups and abs(groups[-1][0] - note.start) <= EPSILON:
            groups[-1][1].append(note)
        else:
            groups.append((note.start, [note]))
    return groups


def enforce_monophonic(notes: Sequence[Note]) -> List[Note]:
    """Trim notes so that no two sounding notes overlap.

    Notes are processed in start order. A note that would ring into the next
    onset is shortened to end at that onset; if nothing of it remains it is
    dropped. Later notes sharing an onset with an earlier one are discarded.
    """

    ordered = sorted(notes, key=lambda n: (n.start, -n.pitch))
    result: List[Note] = []
    for note in ordered:
        if result:
            prev = result[-1]
            if note.start - prev.start <= EPSILON:
                continue
            if prev.end > note.start:
                trimmed = note.start - prev.start
                if trimmed < MIN_LENGTH:
                    result.pop()
                else:
                    result[-1] = replace(prev, length=trimmed)
        result.append(note)
    return result


def sanitize(
    notes: Iterable[Note], total_beats: float, low: int, high: int
) -> List[Note]:
    """Return ``notes`` clipped to the passage and folded into the range.

    * Notes starting at or after ``total_beats`` are removed.
    * Lengths are shortened so no note ends after ``total_beats``.
    * Pitches are folded into ``[low, high]`` by octaves.
    * Velocities are clamped to ``1-127``.
    * Duplicate ``(pitch, start)`` events are collapsed.

    The result is sorted by start time and then pitch.
    """

    seen = set()
    result: List[Note] = []
    for note in sorted(notes, key=lambda n: (n.start, n.pitch)):
        start = max(0.0, note.start)
        if start >= total_beats - EPSILON:
            continue
        length = min(note.length, total_beats - start)
        if length < MIN_LENGTH:
            continue
        pitch = fold_into_range(note.pitch, low, high)
        key = (pitch, round(start, 6))
        if key in seen:
            continue
        seen.add(key)
        result.append(
            replace(
                note,
                pitch=pitch,
                start=start,
                length=length,
                velocity=int(clamp(note.velocity, 1, 127)),
            )
        )
    return result
