"""Tests for chord inversions and minimal-movement voicing."""

import importlib
import random
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

vl = importlib.import_module("melody_composer.voice_leading")


def test_inversions_of_triad():
    assert vl.inversions([60, 64, 67]) == [[60, 64, 67], [64, 67, 72], [67, 72, 76]]


def test_voice_leading_cost_counts_extra_voices():
    assert vl.voice_leading_cost([60, 64, 67], [60, 65, 69]) == 3
    assert vl.voice_leading_cost([60, 64], [60, 64, 67]) == 3
    assert vl.voice_leading_cost([], [60]) == 0


def test_choose_voicing_prefers_smallest_motion():
    """G major moving to C major keeps the common tone G on the bottom."""

    voicing = vl.choose_voicing([67, 71, 74], [60, 64, 67], random.Random(0), 48, 79, smooth_probability=1.0)
    assert voicing == [67, 72, 76]


def test_choose_voicing_without_previous_chord_uses_root_position():
    voicing = vl.choose_voicing(None, [60, 64, 67], random.Random(0), 48, 79)
    assert voicing == [60, 64, 67]


def test_choose_voicing_stays_in_range():
    rng = random.Random(5)
    prev = None
    for triad in ([60, 64, 67], [65, 69, 72], [67, 71, 74], [69, 72, 76]):
        prev = vl.choose_voicing(prev, triad, rng, 55, 70)
        assert all(55 <= p <= 70 for p in prev)


def test_parallel_fifths_and_octaves():
    assert vl.parallel_fifth_or_octave(60, 67, 62, 69)
    assert vl.parallel_fifth_or_octave(60, 72, 62, 74)
    assert not vl.parallel_fifth_or_octave(60, 67, 62, 65)
    assert not vl.parallel_fifth_or_octave(60, 67, 62, 70)
