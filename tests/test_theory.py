"""Tests for the scale catalogue, scale arithmetic and movement table."""

import importlib
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

theory = importlib.import_module("melody_composer.theory")

MAJOR = theory.scale_by_name("Major")


def test_scale_lookup_ignores_case_and_whitespace():
    assert theory.scale_by_name("  dorian ").name == "Dorian"
    assert theory.scale_by_name("PHRYGIAN DOMINANT").intervals == (0, 1, 4, 5, 7, 8, 10)


def test_unknown_scale_falls_back_to_major(caplog):
    caplog.set_level("DEBUG")
    assert theory.scale_by_name("Not A Scale") is theory.DEFAULT_SCALE
    assert theory.DEFAULT_SCALE.name == "Major"
    assert "Not A Scale" in caplog.text


def test_scale_by_index_clamps():
    assert theory.scale_by_index(-5) is theory.SCALES[0]
    assert theory.scale_by_index(10_000) is theory.SCALES[-1]


def test_catalogue_intervals_are_well_formed():
    """Every scale starts on the tonic and lists ascending offsets below 12."""

    names = theory.scale_names()
    assert len(names) == len(set(names)) == len(theory.SCALES)
    for scale in theory.SCALES:
        assert scale.intervals[0] == 0
        assert list(scale.intervals) == sorted(set(scale.intervals))
        assert all(0 <= i < 12 for i in scale.intervals)


def test_snap_to_scale_ties_resolve_down():
    assert theory.snap_to_scale(61, 60, MAJOR) == 60
    assert theory.snap_to_scale(66, 60, MAJOR) == 65
    assert theory.snap_to_scale(64, 60, MAJOR) == 64


@pytest.mark.parametrize("degree, pitch", [(0, 60), (5, 69), (7, 72), (-1, 59), (-8, 47), (15, 86)])
def test_degree_to_pitch_carries_octaves(degree, pitch):
    assert theory.degree_to_pitch(degree, 60, MAJOR) == pitch


def test_degree_round_trip_and_steps():
    assert theory.scale_degree_of(71, 60, MAJOR) == 6
    assert theory.scale_degree_of(59, 60, MAJOR) == -1
    assert theory.step_in_scale(64, 2, 60, MAJOR) == 67
    assert theory.step_in_scale(60, -1, 60, MAJOR) == 59


def test_triads_and_sevenths():
    assert theory.triad_for_degree(4, 60, MAJOR) == [67, 71, 74]
    assert theory.seventh_above(0, 60, MAJOR) == 11
    assert theory.seventh_above(4, 60, MAJOR) == 10


def test_movement_table():
    assert isinstance(theory.MOVEMENTS, tuple)
    assert len(theory.ORNAMENT_MOVES) == 6
    assert all(m.kind.is_ornament for m in theory.ORNAMENT_MOVES)
    assert not any(m.kind.is_ornament for m in theory.STRUCTURAL_MOVES)
    leap_up = theory.Movement(theory.MoveType.LEAP, 0.6, 7)
    assert leap_up.direction == 1
    assert theory.Movement(theory.MoveType.RESOLVE_DOWN, 1.1, -2).direction == -1
    assert theory.Movement(theory.MoveType.CHORD_TONE, 2.0, 0).direction == 0
