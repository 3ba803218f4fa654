"""Utilities for writing generated note tracks to MIDI files.

Modification summary
--------------------
* ``export_midi`` writes one ``mido`` track per part. The first track also
  carries the tempo and time signature meta messages.
* Note positions in beats are converted to ticks with ``round(beats * ppq)``;
  every note lasts at least one tick.
* Events sharing a tick are ordered note-off first so a repeated pitch is
  released before it sounds again and on/off pairs always match.
* The destination directory is created automatically, and passing ``None``
  as the path returns the in-memory file without writing it.

The module is separate from the engine so applications can generate notes
without pulling in the MIDI dependency.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple, Union

from .notes import Note, clamp
from .utils import VALID_DENOMINATORS

if TYPE_CHECKING:
    from mido import MidiFile

__all__ = ["export_midi", "note_events", "DEFAULT_PPQ"]

DEFAULT_PPQ = 480

# Channel 10 (index 9) is the General MIDI drum channel.
_DRUM_CHANNEL = 9


def _channel_for(index: int) -> int:
    channel = index if index < _DRUM_CHANNEL else index + 1
    return int(clamp(channel, 0, 15))


def note_events(notes: Sequence[Note], ppq: int) -> List[Tuple[int, int, str, int, int]]:
    """Return ``(tick, order, kind, pitch, velocity)`` events for ``notes``.

    ``order`` is ``0`` for note-off and ``1`` for note-on so sorting the list
    places releases before attacks on the same tick.
    """

    events: List[Tuple[int, int, str, int, int]] = []
    for note in notes:
        on_tick = max(0, int(round(note.start * ppq)))
        off_tick = max(on_tick + 1, int(round(note.end * ppq)))
        pitch = int(clamp(note.pitch, 0, 127))
        velocity = int(clamp(note.velocity, 1, 127))
        events.append((on_tick, 1, "note_on", pitch, velocity))
        events.append((off_tick, 0, "note_off", pitch, 0))
    events.sort()
    return events


def export_midi(
    path: Optional[Union[str, Path]],
    tracks: Sequence[Sequence[Note]],
    bpm: float,
    time_signature: Tuple[int, int],
    ppq: int = DEFAULT_PPQ,
    *,
    names: Optional[Sequence[str]] = None,
    program: int = 0,
) -> "MidiFile":
    """Write ``tracks`` to ``path`` as a Standard MIDI File.

    Parameters
    ----------
    path:
        Destination file. ``None`` skips writing and only builds the file.
    tracks:
        One note list per part. Empty parts still get a track.
    bpm:
        Tempo in beats per minute. Must be positive.
    time_signature:
        ``(numerator, denominator)`` written as a meta message.
    ppq:
        Ticks per quarter note. Must be positive.
    names:
        Optional track names.
    program:
        General MIDI program applied to every part.

    Returns
    -------
    MidiFile
        In-memory representation of the written file for further inspection
        without reading it back from disk.

    Raises
    ------
    ValueError
        If ``bpm`` or ``ppq`` is not positive or the time signature is
        invalid.
    """
    try:
        import mido
        from mido import Message, MetaMessage, MidiFile, MidiTrack
    except ModuleNotFoundError as exc:
        raise ImportError(
            "mido is required to create MIDI files; install it with 'pip install mido'"
        ) from exc

    if bpm <= 0:
        raise ValueError("bpm must be positive")
    if ppq <= 0:
        raise ValueError("ppq must be a positive integer")
    numerator, denominator = time_signature
    if numerator <= 0 or denominator not in VALID_DENOMINATORS:
        raise ValueError(
            "time_signature numerator must be > 0 and denominator one of 1, 2, 4, 8, 16 or 32"
        )

    mid = MidiFile(ticks_per_beat=int(ppq))
    for index, notes in enumerate(tracks):
        track = MidiTrack()
        mid.tracks.append(track)
        if names is not None and index < len(names):
            track.append(MetaMessage("track_name", name=str(names[index]), time=0))
        if index == 0:
            track.append(MetaMessage("set_tempo", tempo=mido.bpm2tempo(bpm), time=0))
            track.append(
                MetaMessage("time_signature", numerator=numerator, denominator=denominator, time=0)
            )
        channel = _channel_for(index)
        track.append(Message("program_change", program=int(clamp(program, 0, 127)), channel=channel, time=0))

        last_tick = 0
        for tick, _, kind, pitch, velocity in note_events(notes, int(ppq)):
            track.append(
                Message(kind, note=pitch, velocity=velocity, channel=channel, time=tick - last_tick)
            )
            last_tick = tick
        track.append(MetaMessage("end_of_track", time=0))

    if path is not None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        mid.save(str(path))
        logging.info("MIDI file saved to %s", path)
    return mid
