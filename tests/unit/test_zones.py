from __future__ import annotations

import math
import unittest

import numpy as np
import pandas as pd

from tests.unit._bootstrap import ensure_project_on_path


ensure_project_on_path()


def _frame(power: list[float], heart_rate: list[float] | None = None, step_s: float = 1.0) -> pd.DataFrame:
    n = len(power)
    return pd.DataFrame(
        {
            "elapsed_time_s": np.arange(n, dtype=float) * step_s,
            "power": np.asarray(power, dtype=float),
            "heart_rate": np.asarray(heart_rate if heart_rate is not None else [0.0] * n, dtype=float),
        }
    )


class TestZones(unittest.TestCase):
    def test_constant_power_lands_in_single_zone(self) -> None:
        from core.zones import compute_power_zones

        zones = compute_power_zones(_frame([200.0] * 3600), ftp_w=250.0)
        seconds = zones.as_list()
        self.assertAlmostEqual(zones.z3_time_sec, 3599.0)
        self.assertEqual(sum(1 for s in seconds if s > 0), 1)

    def test_boundary_is_inclusive(self) -> None:
        from core.zones import compute_power_zones

        # 0.55 exactly -> Z1, 0.5504 -> Z2 ; the last sample carries no duration.
        zones = compute_power_zones(_frame([110.0, 110.08, 0.0]), ftp_w=200.0)
        self.assertAlmostEqual(zones.z1_time_sec, 1.0)
        self.assertAlmostEqual(zones.z2_time_sec, 1.0)

    def test_top_zone_is_open_ended(self) -> None:
        from core.zones import compute_power_zones

        zones = compute_power_zones(_frame([2000.0, 2000.0]), ftp_w=200.0)
        self.assertAlmostEqual(zones.z7_time_sec, 1.0)

    def test_missing_reference_zeroes_everything(self) -> None:
        from core.zones import compute_hr_zones, compute_power_zones

        frame = _frame([150.0] * 10, [140.0] * 10)
        self.assertEqual(compute_power_zones(frame, None).as_list(), [0.0] * 7)
        self.assertEqual(compute_hr_zones(frame, None).as_list(), [0.0] * 5)
        self.assertEqual(compute_power_zones(frame, 0).as_list(), [0.0] * 7)

    def test_zone_times_sum_to_duration_with_irregular_sampling(self) -> None:
        from core.zones import time_in_zones
        from core.constants import POWER_ZONE_BOUNDARIES

        rng = np.random.default_rng(7)
        elapsed = np.cumsum(rng.uniform(0.5, 3.0, size=500))
        elapsed -= elapsed[0]
        power = rng.uniform(0.0, 600.0, size=500)
        seconds = time_in_zones(power, elapsed, 250.0, POWER_ZONE_BOUNDARIES)
        self.assertTrue(math.isclose(sum(seconds), float(elapsed[-1]), rel_tol=1e-9))

    def test_hr_zones(self) -> None:
        from core.zones import compute_hr_zones

        # 190 max: 120 -> 0.63 (Z1), 150 -> 0.79 (Z2), 175 -> 0.92 (Z3), 195 -> 1.03 (Z4), 210 -> 1.11 (Z5)
        hr = [120.0, 150.0, 175.0, 195.0, 210.0, 0.0]
        zones = compute_hr_zones(_frame([0.0] * 6, hr, step_s=10.0), hr_max_bpm=190.0)
        self.assertEqual(zones.as_list(), [10.0, 10.0, 10.0, 10.0, 10.0])

    def test_zone_table(self) -> None:
        from core.constants import HR_ZONE_BOUNDARIES
        from core.zones import zone_table

        table = zone_table([60.0, 0.0, 0.0, 0.0, 60.0], HR_ZONE_BOUNDARIES, prefix="HR Z")
        self.assertEqual(table["zone"].tolist(), ["HR Z1", "HR Z2", "HR Z3", "HR Z4", "HR Z5"])
        self.assertEqual(table["range"].iloc[0], "0-68%")
        self.assertEqual(table["range"].iloc[-1], ">105%")
        self.assertAlmostEqual(float(table["time_pct"].sum()), 100.0)


if __name__ == "__main__":
    unittest.main()
