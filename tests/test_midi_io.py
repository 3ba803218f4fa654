"""Tests for MIDI export using the real ``mido`` package."""

import importlib
import logging
import sys
from pathlib import Path

import mido
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

midi_io = importlib.import_module("melody_composer.midi_io")
Note = importlib.import_module("melody_composer.notes").Note


def _absolute(track):
    tick = 0
    events = []
    for msg in track:
        tick += msg.time
        if msg.type in ("note_on", "note_off"):
            events.append((tick, msg.type, msg.note, msg.channel))
    return events


def test_export_writes_tracks_and_meta(tmp_path):
    path = tmp_path / "nested" / "out.mid"
    melody = [Note(pitch=60, start=0.0, length=1.0)]
    chords = [Note(pitch=64, start=0.5, length=0.5)]
    midi_io.export_midi(path, [melody, chords], 90, (7, 8), names=["Melody", "Chords"])

    mid = mido.MidiFile(str(path))
    assert mid.ticks_per_beat == 480
    assert len(mid.tracks) == 2
    meta = {msg.type: msg for msg in mid.tracks[0] if msg.is_meta}
    assert meta["set_tempo"].tempo == mido.bpm2tempo(90)
    assert (meta["time_signature"].numerator, meta["time_signature"].denominator) == (7, 8)
    assert meta["track_name"].name == "Melody"
    assert _absolute(mid.tracks[0]) == [(0, "note_on", 60, 0), (480, "note_off", 60, 0)]
    assert _absolute(mid.tracks[1]) == [(240, "note_on", 64, 1), (480, "note_off", 64, 1)]


def test_repeated_pitch_releases_before_attack():
    notes = [Note(pitch=60, start=0.0, length=1.0), Note(pitch=60, start=1.0, length=1.0)]
    events = midi_io.note_events(notes, 480)
    assert [(tick, kind) for tick, _, kind, _, _ in events] == [
        (0, "note_on"), (480, "note_off"), (480, "note_on"), (960, "note_off"),
    ]


def test_very_short_notes_last_one_tick():
    events = midi_io.note_events([Note(pitch=60, start=0.25, length=0.0001)], 96)
    assert [tick for tick, *_ in events] == [24, 25]


def test_ticks_are_rounded():
    events = midi_io.note_events([Note(pitch=62, start=1 / 3, length=1 / 3)], 480)
    assert [tick for tick, *_ in events] == [160, 320]


def test_drum_channel_is_skipped():
    tracks = [[Note(pitch=60)] for _ in range(11)]
    mid = midi_io.export_midi(None, tracks, 120, (4, 4))
    channels = [_absolute(track)[0][3] for track in mid.tracks]
    assert 9 not in channels
    assert channels[9] == 10


def test_path_none_returns_file_without_writing(tmp_path):
    mid = midi_io.export_midi(None, [[Note()]], 120, (4, 4))
    assert isinstance(mid, mido.MidiFile)
    assert list(tmp_path.iterdir()) == []


def test_save_is_logged(tmp_path, caplog):
    caplog.set_level(logging.INFO)
    path = tmp_path / "log.mid"
    midi_io.export_midi(path, [[Note()]], 120, (4, 4))
    assert path.exists()
    assert "MIDI file saved to" in caplog.text


@pytest.mark.parametrize(
    "bpm, ts, ppq",
    [(0, (4, 4), 480), (-10, (4, 4), 480), (120, (4, 3), 480), (120, (0, 4), 480), (120, (4, 4), 0)],
)
def test_invalid_arguments(bpm, ts, ppq):
    with pytest.raises(ValueError):
        midi_io.export_midi(None, [[Note()]], bpm, ts, ppq)
