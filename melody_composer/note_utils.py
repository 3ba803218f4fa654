"""Utility functions for translating note names to MIDI numbers.

The engine works on MIDI numbers throughout; names only appear at the edges,
for example when the command line accepts ``--key C4`` or when a log message
prints a pitch.

Example
-------
>>> from melody_composer.note_utils import note_to_midi
>>> note_to_midi("C4")
60
>>> midi_to_note(61)
'C#4'
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Dict, List

__all__ = ["NOTES", "NOTE_TO_SEMITONE", "note_to_midi", "midi_to_note"]

NOTES: List[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

NOTE_TO_SEMITONE: Dict[str, int] = {name: idx for idx, name in enumerate(NOTES)}

# Flats are rewritten to their sharp spelling before the lookup.
_FLAT_TO_SHARP = {
    "Db": "C#",
    "Eb": "D#",
    "Gb": "F#",
    "Ab": "G#",
    "Bb": "A#",
    "Fb": "E",
    "Cb": "B",
}


@lru_cache(maxsize=None)
def note_to_midi(note: str) -> int:
    """Convert a note string such as ``C#4`` into a MIDI number.

    Parameters
    ----------
    note:
        Note name including octave. Octaves may be negative or contain
        multiple digits.

    Returns
    -------
    int
        MIDI note number in the range ``0-127``.

    Raises
    ------
    ValueError
        If ``note`` is not properly formatted or if the computed MIDI value
        falls outside the allowed ``0-127`` range.
    """

    match = re.fullmatch(r"([A-Ga-g][#b]?)(-?\d+)", note.strip())
    if not match:
        logging.error("Invalid note format: %s", note)
        raise ValueError(f"Invalid note format: {note}")

    note_name, octave_str = match.groups()
    # MIDI octave numbers are offset by one from scientific pitch notation.
    octave = int(octave_str) + 1
    note_name = note_name.capitalize()
    # Cb belongs to the octave below.
    if note_name == "Cb":
        octave -= 1
    note_name = _FLAT_TO_SHARP.get(note_name, note_name)
    if note_name not in NOTE_TO_SEMITONE:
        logging.error("Unknown note name: %s", note)
        raise ValueError(f"Unknown note name: {note}")

    midi_val = NOTE_TO_SEMITONE[note_name] + octave * 12
    if not 0 <= midi_val <= 127:
        logging.error("MIDI value out of range: %s -> %d", note, midi_val)
        raise ValueError(
            f"Computed MIDI value {midi_val} out of range 0-127 for note {note}"
        )
    return midi_val


def midi_to_note(midi_note: int) -> str:
    """Convert a MIDI number into a note name using sharps.

    Raises
    ------
    ValueError
        If ``midi_note`` is outside the inclusive ``0-127`` range.

    Examples
    --------
    >>> midi_to_note(60)
    'C4'
    >>> midi_to_note(-1)
    Traceback (most recent call last):
        ...
    ValueError: MIDI note -1 out of range 0-127
    """

    if not 0 <= midi_note <= 127:
        raise ValueError(f"MIDI note {midi_note} out of range 0-127")
    octave = midi_note // 12 - 1
    return f"{NOTES[midi_note % 12]}{octave}"

