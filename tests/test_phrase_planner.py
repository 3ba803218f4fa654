"""Tests for the phrase planner."""

import importlib
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

planner = importlib.import_module("melody_composer.phrase_planner")


def test_cadences_and_arrivals_for_eight_bars():
    plan = planner.generate_phrase_plan(8)
    assert plan.cadences == {3: 4, 7: 0}
    assert plan.arrivals == {4: 0}
    assert len(plan.tension_profile) == 8
    assert all(0.0 <= t <= 1.0 for t in plan.tension_profile)


def test_short_passage_only_closes_on_tonic():
    plan = planner.generate_phrase_plan(4)
    assert plan.cadences == {3: 0}
    assert plan.arrivals == {}


def test_tension_peaks_inside_phrase():
    plan = planner.generate_phrase_plan(4)
    assert plan.tension_profile[1] > plan.tension_profile[0]
    assert plan.tension_profile[2] > plan.tension_profile[3]


def test_tension_at_clamps_bar_index():
    plan = planner.generate_phrase_plan(4)
    assert plan.tension_at(-3) == plan.tension_profile[0]
    assert plan.tension_at(100) == plan.tension_profile[-1]


@pytest.mark.parametrize("bars, requested, expected", [(8, 3, 2), (8, 4, 4), (2, 4, 2), (1, 4, 1), (8, 0, 0)])
def test_loop_length_is_normalised(bars, requested, expected):
    assert planner.generate_phrase_plan(bars, requested).loop_bars == expected


def test_invalid_bar_count():
    with pytest.raises(ValueError):
        planner.generate_phrase_plan(0)
