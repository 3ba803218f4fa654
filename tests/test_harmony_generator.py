"""Tests for progression generation, chord extensions and colour families."""

import importlib
import random
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

hg = importlib.import_module("melody_composer.harmony_generator")
planner = importlib.import_module("melody_composer.phrase_planner")

Options = hg.AdvancedHarmonyOptions
Family = hg.ColorFamily
TRIAD = [60, 64, 67]


def _slots():
    return [
        hg.ChordSlot(degree=0, start=0.0, length=4.0, bar=0, root=60, tones=[60, 64, 67]),
        hg.ChordSlot(degree=4, start=4.0, length=4.0, bar=1, root=67, tones=[67, 71, 74]),
        hg.ChordSlot(degree=5, start=8.0, length=4.0, bar=2, root=69, tones=[69, 72, 76]),
        hg.ChordSlot(degree=0, start=12.0, length=4.0, bar=3, rest=True),
    ]


# Extensions ---------------------------------------------------------------

def test_no_flags_leaves_chord_untouched():
    assert hg.apply_extensions([67, 60, 64], 60, Options(), random.Random(0)) == TRIAD


def test_zero_density_never_extends():
    options = Options(ext7=True, ext9=True, extension_density=0.0)
    rng = random.Random(1)
    for _ in range(20):
        assert hg.apply_extensions(TRIAD, 60, options, rng) == TRIAD


def test_major_seventh_extension():
    options = Options(ext7=True, extension_density=1.0)
    assert hg.apply_extensions(TRIAD, 60, options, random.Random(2), seventh=11) == [60, 64, 67, 71]


def test_high_density_stacks_two_extensions():
    options = Options(ext7=True, ext9=True, extension_density=1.0)
    assert hg.apply_extensions(TRIAD, 60, options, random.Random(2)) == [60, 64, 67, 70, 74]


def test_sus_replaces_third():
    options = Options(sus24=True, extension_density=1.0)
    rng = random.Random(7)
    for _ in range(10):
        assert hg.apply_extensions(TRIAD, 60, options, rng) in ([60, 62, 67], [60, 65, 67])


def test_altered_tone_added():
    options = Options(alt=True, extension_density=1.0)
    tones = hg.apply_extensions(TRIAD, 60, options, random.Random(3))
    assert len(tones) == 4
    assert set(tones) - set(TRIAD) <= {66, 68, 73, 75}


def test_slash_drops_one_tone_an_octave():
    options = Options(slash=True, extension_density=1.0)
    tones = hg.apply_extensions(TRIAD, 60, options, random.Random(4))
    assert len(tones) == 3
    moved = set(TRIAD) - set(tones)
    assert len(moved) == 1
    assert moved.pop() - 12 in tones


def test_extensions_do_not_modify_input():
    chord = [60, 64, 67]
    hg.apply_extensions(chord, 60, Options(ext7=True, slash=True, extension_density=1.0), random.Random(0))
    assert chord == [60, 64, 67]


# Colour families -----------------------------------------------------------

def test_families_disabled_returns_copy():
    slots = _slots()
    result = hg.apply_color_families(slots, Options(), random.Random(0), 60)
    assert result == slots
    assert result is not slots


def test_secondary_dominant_substitution():
    options = Options(secondary_dominants=True, secondary_dominant_density=1.0)
    slots = _slots()
    result = hg.apply_color_families(slots, options, random.Random(0), 60)
    assert result[0].root == 67
    assert result[0].tones == [67, 71, 74, 77]
    assert result[1].tones == [74, 78, 81, 84]
    assert all(r.family is Family.SECONDARY_DOMINANT for r in result[:3])
    assert result[3].family is None
    assert [(r.start, r.length) for r in result] == [(s.start, s.length) for s in slots]
    assert slots[0].tones == [60, 64, 67]


def test_priority_order_picks_first_family():
    options = Options(
        secondary_dominants=True, secondary_dominant_density=1.0,
        borrowed=True, borrowed_density=1.0,
    )
    result = hg.apply_color_families(_slots(), options, random.Random(0), 60)
    assert all(r.family is Family.SECONDARY_DOMINANT for r in result[:3])


def test_borrowed_lowers_major_third_and_adds_flat_seven():
    options = Options(borrowed=True, borrowed_density=1.0)
    result = hg.apply_color_families(_slots(), options, random.Random(0), 60)
    assert result[0].tones == [60, 63, 67, 70]
    assert result[2].tones == [69, 72, 76, 79]


def test_tritone_sub_only_on_dominant_degrees():
    options = Options(tritone_sub=True, tritone_sub_density=1.0)
    result = hg.apply_color_families(_slots(), options, random.Random(0), 60)
    assert result[0].family is None
    assert result[2].family is None
    assert result[1].family is Family.TRITONE_SUB
    assert result[1].root in (61, 73)
    root = result[1].root
    assert result[1].tones == [root, root + 4, root + 7, root + 10]


def test_neapolitan_builds_flat_two():
    options = Options(neapolitan=True, neapolitan_density=1.0)
    result = hg.apply_color_families(_slots(), options, random.Random(0), 60)
    assert result[1].tones == [61, 65, 68]


def test_chromatic_mediant_is_major_third_away():
    options = Options(chromatic_mediants=True, chromatic_mediant_density=1.0)
    result = hg.apply_color_families(_slots(), options, random.Random(5), 60)
    for before, after in zip(_slots()[:3], result[:3]):
        assert abs(after.root - before.root) == 4
        assert after.tones == [after.root, after.root + 4, after.root + 7]


# Progressions --------------------------------------------------------------

@pytest.mark.parametrize("bars, bar_beats", [(1, 4.0), (4, 3.0), (8, 4.0), (5, 3.5), (3, 1.0)])
def test_progression_covers_every_bar(bars, bar_beats):
    slots = hg.generate_progression(bars, bar_beats, random.Random(bars))
    assert {s.bar for s in slots} == set(range(bars))
    for bar in range(bars):
        in_bar = [s for s in slots if s.bar == bar]
        assert in_bar[0].start == pytest.approx(bar * bar_beats)
        assert sum(s.length for s in in_bar) == pytest.approx(bar_beats)
    assert all(0 <= s.degree < 7 for s in slots)


def test_plan_cadences_and_arrivals_override_degrees():
    plan = planner.generate_phrase_plan(8)
    slots = hg.generate_progression(8, 4.0, random.Random(9), chords_per_bar=1, plan=plan)
    assert len(slots) == 8
    assert slots[3].degree == 4
    assert slots[4].degree == 0
    assert slots[7].degree == 0


def test_final_bar_closes_with_dominant_then_tonic():
    plan = planner.generate_phrase_plan(2)
    slots = hg.generate_progression(2, 4.0, random.Random(1), chords_per_bar=2, plan=plan)
    assert len(slots) == 4
    assert [slots[2].degree, slots[3].degree] == [4, 0]


def test_odd_bar_split_places_longer_half_first():
    slots = hg.generate_progression(1, 3.5, random.Random(0), chords_per_bar=2)
    assert [(s.start, s.length) for s in slots] == [(0.0, 2.0), (2.0, 1.5)]


def test_next_degree_stays_diatonic():
    rng = random.Random(2)
    degree = 0
    for _ in range(100):
        degree = hg.next_degree(degree, rng)
        assert 0 <= degree < 7
