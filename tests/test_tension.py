"""Tests for contour shaping and interval tension."""

import importlib
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

tension = importlib.import_module("melody_composer.tension")
theory = importlib.import_module("melody_composer.theory")

Shape = tension.ContourShape


@pytest.mark.parametrize(
    "shape, progress, expected",
    [
        (Shape.ARCH, 0.25, 1.0),
        (Shape.ARCH, 0.75, -1.0),
        (Shape.INVERTED_ARCH, 0.1, -1.0),
        (Shape.ASCENDING, 0.9, 1.0),
        (Shape.DESCENDING, 0.1, -1.0),
        (Shape.STATIC, 0.5, 0.0),
    ],
)
def test_contour_direction(shape, progress, expected):
    assert tension.contour_direction(shape, progress) == expected


def test_from_name_accepts_variants_and_falls_back():
    assert Shape.from_name("inverted-arch") is Shape.INVERTED_ARCH
    assert Shape.from_name("Wave") is Shape.WAVE
    assert Shape.from_name("zigzag") is Shape.ARCH


def test_ascending_contour_favours_upward_moves():
    up = theory.Movement(theory.MoveType.SCALE_STEP_UP, 1.4, 2)
    down = theory.Movement(theory.MoveType.SCALE_STEP_DOWN, 1.4, -2)
    w_up, w_down = tension.apply_contour_weights([up, down], Shape.ASCENDING, 0.5)
    assert w_up == pytest.approx(1.4 * 1.6)
    assert w_down == pytest.approx(1.4 * 0.4)


def test_static_contour_damps_leaps_but_keeps_them():
    weights = tension.apply_contour_weights(theory.STRUCTURAL_MOVES, Shape.STATIC, 0.3)
    for move, weight in zip(theory.STRUCTURAL_MOVES, weights):
        assert weight > 0
        if move.kind is theory.MoveType.LEAP:
            assert weight == pytest.approx(move.weight * 0.35)


def test_interval_tension():
    assert tension.interval_tension(7) == 0.1
    assert tension.interval_tension(-13) == 0.9
    assert tension.interval_tension(12) == 0.0
