"""Tests for the ``Note`` record and the shared note helpers."""

import importlib
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

notes = importlib.import_module("melody_composer.notes")
Note = notes.Note


def test_overlap_is_strict():
    """Notes that merely touch do not overlap; intersecting ones do."""

    a = Note(pitch=60, start=0.0, length=1.0)
    assert not notes.overlaps(a, Note(pitch=62, start=1.0, length=1.0))
    assert notes.overlaps(a, Note(pitch=62, start=0.5, length=1.0))
    assert notes.overlaps(Note(pitch=62, start=0.5, length=1.0), a)


def test_note_is_frozen():
    with pytest.raises(Exception):
        Note().pitch = 61  # type: ignore[misc]


@pytest.mark.parametrize(
    "pitch, low, high, expected",
    [(30, 48, 79, 54), (100, 48, 79, 76), (60, 48, 79, 60), (61, 60, 60, 60), (-5, 0, 127, 7)],
)
def test_fold_into_range(pitch, low, high, expected):
    assert notes.fold_into_range(pitch, low, high) == expected


def test_group_by_onset_orders_pitches():
    groups = notes.group_by_onset(
        [Note(pitch=67, start=0.0), Note(pitch=60, start=0.0), Note(pitch=64, start=1.0)]
    )
    assert [onset for onset, _ in groups] == [0.0, 1.0]
    assert [n.pitch for n in groups[0][1]] == [60, 67]


def test_enforce_monophonic_trims_and_drops():
    """Overlaps are trimmed and notes sharing an onset keep only the highest."""

    line = notes.enforce_monophonic(
        [
            Note(pitch=60, start=0.0, length=2.0),
            Note(pitch=62, start=1.0, length=1.0),
            Note(pitch=64, start=3.0, length=1.0),
            Note(pitch=55, start=3.0, length=1.0),
        ]
    )
    assert [(n.pitch, n.start, n.length) for n in line] == [
        (60, 0.0, 1.0),
        (62, 1.0, 1.0),
        (64, 3.0, 1.0),
    ]


def test_sanitize_clips_to_passage_and_range():
    cleaned = notes.sanitize(
        [
            Note(pitch=90, velocity=0, start=3.5, length=1.0),
            Note(pitch=60, start=4.0, length=1.0),
            Note(pitch=60, start=0.0, length=1.0),
            Note(pitch=60, start=0.0, length=0.5),
        ],
        total_beats=4.0,
        low=48,
        high=79,
    )
    assert [(n.pitch, n.start, n.length, n.velocity) for n in cleaned] == [
        (60, 0.0, 1.0, 96),
        (78, 3.5, 0.5, 1),
    ]
