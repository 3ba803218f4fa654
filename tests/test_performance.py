"""Tests for the cached weighted selection helpers."""

import importlib
import random
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

perf = importlib.import_module("melody_composer.performance")


def test_cumulative_table_is_cached_and_read_only():
    perf.cumulative_table.cache_clear()
    first = perf.cumulative_table((1.0, 1.0, 2.0))
    second = perf.cumulative_table((1.0, 1.0, 2.0))
    assert first is second
    assert np.allclose(first, [0.25, 0.5, 1.0])
    assert perf.cumulative_table.cache_info().hits == 1
    with pytest.raises(ValueError):
        first[0] = 0.0


@pytest.mark.parametrize("weights", [(), (1.0, -1.0)])
def test_invalid_weights_raise(weights):
    with pytest.raises(ValueError):
        perf.cumulative_table(weights)


def test_zero_weights_are_uniform():
    assert np.allclose(perf.cumulative_table((0.0, 0.0)), [0.5, 1.0])


def test_weighted_index_respects_zero_weight():
    rng = random.Random(3)
    picks = {perf.weighted_index([0.0, 1.0, 0.0], rng) for _ in range(50)}
    assert picks == {1}


def test_weighted_index_is_reproducible():
    a = [perf.weighted_index([1, 2, 3], random.Random(9)) for _ in range(5)]
    b = [perf.weighted_index([1, 2, 3], random.Random(9)) for _ in range(5)]
    assert a == b


def test_weighted_choice_length_mismatch():
    with pytest.raises(ValueError):
        perf.weighted_choice(["a", "b"], [1.0], random.Random(0))


def test_profile_writes_report():
    import io

    buffer = io.StringIO()
    with perf.profile(buffer, limit=5):
        sum(range(1000))
    assert "function calls" in buffer.getvalue()
