"""Tests for the extra voices and chord re-voicing helpers."""

import importlib
import random
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

poly = importlib.import_module("melody_composer.polyphony")
engine = importlib.import_module("melody_composer.engine")
Note = importlib.import_module("melody_composer.notes").Note

CONFIG = engine.EngineConfig(key=60, scale="Major", bars=4)


class _ZeroRandom(random.Random):
    """Random stream whose ``random()`` always returns ``0.0``."""

    def random(self):
        return 0.0


def _chord(pitches, start=0.0, length=1.0):
    return [Note(pitch=p, start=start, length=length, velocity=80) for p in pitches]


@pytest.mark.parametrize(
    "mode, expected",
    [("Third", 64), ("Sixth", 69), ("OpenFifth", 67), ("Spread", 79)],
)
def test_harmony_stack_intervals(mode, expected):
    melody = [Note(pitch=60, start=1.0, length=0.5, velocity=70)]
    stack = poly.make_harmony_stack(melody, mode, CONFIG)
    assert stack == [Note(pitch=expected, start=1.0, length=0.5, velocity=70)]
    assert melody[0].pitch == 60


def test_harmony_stack_off_and_ceiling():
    melody = [Note(pitch=120)]
    assert poly.make_harmony_stack(melody, "Off", CONFIG) == []
    assert poly.make_harmony_stack(melody, poly.HarmonyStackMode.SPREAD, CONFIG)[0].pitch <= 127


def test_counter_melody_moves_against_the_line():
    melody = [Note(pitch=p, start=float(i), length=1.0) for i, p in enumerate([72, 74, 76, 77])]
    counter = poly.make_counter_melody(melody, CONFIG)
    assert [n.pitch for n in counter] == [60, 57]
    assert [n.start for n in counter] == [0.0, 2.0]
    assert all(n.length == 2.0 for n in counter)
    assert all(n.velocity == 84 for n in counter)


@pytest.mark.parametrize("seed", [1, 3, 8, 13])
def test_counter_melody_is_monophonic_and_below(seed):
    config = CONFIG.update(mode="Melody", bars=8, seed=seed)
    melody = engine.generate_melody(config, random.Random(seed))
    counter = poly.make_counter_melody(melody, config)
    assert counter
    for a, b in zip(counter, counter[1:]):
        assert a.end <= b.start + 1e-6
    low, high = config.tessitura
    band_low = max(0, low - poly.COUNTER_BAND_DROP)
    for note in counter:
        assert band_low <= note.pitch <= high
        sounding = [m for m in melody if m.start < note.end - 1e-6 and m.end > note.start + 1e-6]
        assert all(note.pitch < m.pitch for m in sounding)
    assert poly.make_counter_melody([], config) == []


def test_counter_melody_drops_below_a_low_melody():
    melody = [Note(pitch=p, start=float(i), length=1.0) for i, p in enumerate([55, 53, 55, 57])]
    counter = poly.make_counter_melody(melody, CONFIG)
    assert len(counter) == 2
    assert counter[0].pitch < 53
    assert counter[1].pitch < 55


def test_counter_melody_depends_only_on_melody_and_seed():
    config = CONFIG.update(mode="Melody", seed=11)
    melody = engine.generate_melody(config, random.Random(2))
    first = poly.make_counter_melody(melody, config)
    assert poly.make_counter_melody(melody, config) == first
    assert poly.make_counter_melody(melody, config, random.Random(config.seed)) == first


def test_harmony_stack_is_repeatable():
    config = CONFIG.update(mode="Melody")
    melody = engine.generate_melody(config, random.Random(4))
    for mode in ("Third", "Sixth", "OpenFifth", "Spread"):
        stack = poly.make_harmony_stack(melody, mode, config)
        assert poly.make_harmony_stack(list(melody), mode, config) == stack
        assert len(stack) == len(melody)


def test_chord_color_levels():
    chord = _chord([60, 64, 67])
    moderate = poly.apply_chord_color(chord, "Moderate", CONFIG, _ZeroRandom())
    assert [n.pitch for n in moderate] == [60, 64, 67, 71]
    aggressive = poly.apply_chord_color(chord, "Aggressive", CONFIG, _ZeroRandom())
    assert [n.pitch for n in aggressive] == [60, 64, 67, 71, 74]
    light = poly.apply_chord_color(_chord([60, 64, 67, 71]), "Light", CONFIG, _ZeroRandom())
    assert [n.pitch for n in light] == [60, 64, 67]


def test_chord_color_finds_the_root_of_an_inversion():
    chord = _chord([64, 67, 72])
    light = poly.apply_chord_color(chord, "Light", CONFIG, _ZeroRandom())
    assert [n.pitch for n in light] == [64, 67, 72]
    moderate = poly.apply_chord_color(chord, "Moderate", CONFIG, _ZeroRandom())
    assert [n.pitch for n in moderate] == [64, 67, 71, 72]
    aggressive = poly.apply_chord_color(chord, "Aggressive", CONFIG, _ZeroRandom())
    assert [n.pitch for n in aggressive] == [64, 67, 71, 72, 74]


def test_chord_color_skips_single_notes():
    single = _chord([60])
    assert poly.apply_chord_color(single, "Aggressive", CONFIG, _ZeroRandom()) == single


def test_strum_up_and_down():
    chord = _chord([60, 64, 67])
    up = {n.pitch: n.start for n in poly.revoice_chords(chord, "StrumUp", random.Random(0))}
    assert up == pytest.approx({60: 0.0, 64: 0.03, 67: 0.06})
    down = {n.pitch: n.start for n in poly.revoice_chords(chord, "StrumDown", random.Random(0))}
    assert down == pytest.approx({67: 0.0, 64: 0.03, 60: 0.06})


def test_inner_voice_lead_delays_middle_voices():
    chord = _chord([60, 64, 67, 72], length=2.0)
    starts = {n.pitch: n.start for n in poly.revoice_chords(chord, "InnerVoiceLead", random.Random(0))}
    assert starts == {60: 0.0, 64: 0.5, 67: 0.5, 72: 0.0}


def test_micro_swing_moves_offbeats_only():
    notes = _chord([60, 64], start=0.0, length=0.5) + _chord([62, 65], start=0.5, length=0.5)
    result = poly.revoice_chords(notes, "MicroSwing", random.Random(1))
    on_beat = [n for n in result if n.pitch in (60, 64)]
    off_beat = [n for n in result if n.pitch in (62, 65)]
    assert all(n.start == 0.0 for n in on_beat)
    assert all(0.54 <= n.start <= 0.56 + 1e-9 for n in off_beat)


@pytest.mark.parametrize("style", ["StrumUp", "StrumDown", "InnerVoiceLead", "SpreadRollIn", "MicroSwing"])
def test_revoicing_never_extends_notes(style):
    chords = engine.generate_chord_track(CONFIG, random.Random(5))
    revoiced = poly.revoice_chords(chords, style, random.Random(5))
    assert sorted(n.pitch for n in revoiced) == sorted(n.pitch for n in chords)
    assert max(n.end for n in revoiced) <= max(n.end for n in chords) + 1e-9
    assert all(n.length > 0 for n in revoiced)
