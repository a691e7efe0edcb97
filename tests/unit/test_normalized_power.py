from __future__ import annotations

import math

import numpy as np

from tests.unit._bootstrap import ensure_project_on_path


ensure_project_on_path()


def test_constant_power_gives_same_normalized_power() -> None:
    from core.normalized_power import normalized_power

    t = np.arange(3600, dtype=float)
    assert math.isclose(normalized_power(t, np.full(3600, 200.0)), 200.0, rel_tol=1e-9)


def test_recording_shorter_than_window_is_zero() -> None:
    from core.normalized_power import normalized_power

    t = np.arange(30, dtype=float)  # last sample at 29 s
    assert normalized_power(t, np.full(30, 300.0)) == 0.0
    assert normalized_power(np.array([]), np.array([])) == 0.0


def test_all_zero_power_is_zero() -> None:
    from core.normalized_power import normalized_power

    t = np.arange(120, dtype=float)
    assert normalized_power(t, np.zeros(120)) == 0.0


def test_single_window_uses_mean_of_fourth_powers() -> None:
    from core.normalized_power import normalized_power

    # Only the sample at 30 s has a 30 s history: window [0, 30] of 31 samples.
    t = np.arange(31, dtype=float)
    p = np.array([0.0] * 30 + [310.0])
    expected = (310.0**4 / 31) ** 0.25
    assert math.isclose(normalized_power(t, p), expected, rel_tol=1e-12)


def test_negative_power_is_floored() -> None:
    from core.normalized_power import normalized_power

    t = np.arange(31, dtype=float)
    with_negative = np.array([-500.0] * 30 + [310.0])
    with_zero = np.array([0.0] * 30 + [310.0])
    assert normalized_power(t, with_negative) == normalized_power(t, with_zero)


def test_variable_effort_exceeds_average() -> None:
    from core.normalized_power import normalized_power

    t = np.arange(1200, dtype=float)
    p = np.where((t // 60) % 2 == 0, 350.0, 100.0)
    np_value = normalized_power(t, p)
    assert np_value > float(p.mean())
    assert np_value <= 350.0
