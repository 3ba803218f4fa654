"""Tests for the humanizer and accent mapping."""

import importlib
import random
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

dynamics = importlib.import_module("melody_composer.dynamics")
Note = importlib.import_module("melody_composer.notes").Note


def _line():
    return [Note(pitch=60 + i, start=i * 0.5, length=0.5, velocity=90) for i in range(8)]


def test_accent_to_velocity_curve():
    assert dynamics.accent_to_velocity(0.0) == 77
    assert dynamics.accent_to_velocity(0.5) == 92
    assert dynamics.accent_to_velocity(1.0) == 107
    assert dynamics.accent_to_velocity(5.0) == 107


def test_offbeat_detection():
    assert dynamics.is_offbeat_eighth(1.5)
    assert dynamics.is_offbeat_eighth(2.51)
    assert not dynamics.is_offbeat_eighth(1.0)
    assert not dynamics.is_offbeat_eighth(1.25)


def test_all_zero_amounts_return_input_unchanged():
    notes = _line()
    assert dynamics.humanize(notes, 0, 0, 0, 0, random.Random(1)) == notes


def test_swing_delays_offbeat_eighths_only():
    notes = _line()[:2]
    swung = dynamics.humanize(notes, swing=1.0)
    assert swung[0] == notes[0]
    assert swung[1].start == pytest.approx(0.5 + 1.0 / 6.0)
    assert swung[1].end == pytest.approx(notes[1].end)


def test_feel_lays_every_note_back():
    notes = _line()
    laid_back = dynamics.humanize(notes, feel=1.0)
    for before, after in zip(notes, laid_back):
        assert after.start == pytest.approx(before.start + 0.02)
        assert after.end == pytest.approx(before.end)


def test_timing_and_velocity_stay_bounded():
    notes = _line()
    result = dynamics.humanize(notes, timing=1.0, velocity=1.0, swing=0.5, feel=0.5, rng=random.Random(4))
    starts = [n.start for n in result]
    assert starts == sorted(starts)
    for before, after in zip(notes, result):
        assert after.end == pytest.approx(before.end)
        assert after.length > 0
        assert abs(after.start - before.start) <= 0.03 + 1.0 / 6.0 + 0.02 + 1e-9
        assert abs(after.velocity - before.velocity) <= 12
        assert 1 <= after.velocity <= 127
        assert after.pitch == before.pitch


def test_humanize_is_reproducible():
    a = dynamics.humanize(_line(), timing=0.7, velocity=0.7, rng=random.Random(11))
    b = dynamics.humanize(_line(), timing=0.7, velocity=0.7, rng=random.Random(11))
    assert a == b
