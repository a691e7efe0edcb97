from __future__ import annotations

import math
import unittest

from tests.unit._bootstrap import ensure_project_on_path


ensure_project_on_path()


class TestNormalizer(unittest.TestCase):
    def test_sorts_and_rebases_on_first_timestamp(self) -> None:
        from core.models import RawSample
        from core.normalizer import normalize_samples

        samples = [
            RawSample(timestamp=1010.0, power=300.0),
            RawSample(timestamp=1000.0, power=100.0),
            RawSample(timestamp=1005.0, power=200.0),
        ]
        out = normalize_samples(samples)
        self.assertEqual(out.frame["elapsed_time_s"].tolist(), [0.0, 5.0, 10.0])
        self.assertEqual(out.frame["power"].tolist(), [100.0, 200.0, 300.0])
        self.assertEqual([r.timestamp for r in out.records], [1000.0, 1005.0, 1010.0])

    def test_drops_samples_without_timestamp(self) -> None:
        from core.models import RawSample
        from core.normalizer import normalize_samples

        samples = [
            RawSample(timestamp=None, power=999.0),
            RawSample(timestamp=50.0, power=10.0),
            RawSample(timestamp=float("nan"), power=999.0),
        ]
        out = normalize_samples(samples)
        self.assertEqual(len(out.records), 1)
        self.assertEqual(out.frame["power"].tolist(), [10.0])
        self.assertEqual(out.frame["elapsed_time_s"].tolist(), [0.0])

    def test_stable_sort_keeps_order_of_ties(self) -> None:
        from core.models import RawSample
        from core.normalizer import normalize_samples

        samples = [
            RawSample(timestamp=2.0, power=1.0),
            RawSample(timestamp=1.0, power=2.0),
            RawSample(timestamp=2.0, power=3.0),
        ]
        out = normalize_samples(samples)
        self.assertEqual(out.frame["power"].tolist(), [2.0, 1.0, 3.0])

    def test_missing_channels_default_to_zero_except_left_right(self) -> None:
        from core.models import RawSample
        from core.normalizer import channel_present, normalize_samples

        samples = [RawSample(timestamp=0.0), RawSample(timestamp=1.0, heart_rate=120.0)]
        out = normalize_samples(samples)
        frame = out.frame
        self.assertEqual(frame["power"].tolist(), [0.0, 0.0])
        self.assertEqual(frame["heart_rate"].tolist(), [0.0, 120.0])
        self.assertTrue(all(math.isnan(v) for v in frame["left_power"]))
        self.assertFalse(channel_present(out.records, "power"))
        self.assertTrue(channel_present(out.records, "heart_rate"))

    def test_non_finite_channel_values_count_as_absent(self) -> None:
        from core.models import RawSample
        from core.normalizer import channel_present, normalize_samples, sample_value

        samples = [
            RawSample(timestamp=0.0, power=200.0, cadence=float("nan")),
            RawSample(timestamp=1.0, power=float("nan"), cadence=float("inf"), left_power=float("nan")),
            RawSample(timestamp=2.0, power=210.0),
        ]
        out = normalize_samples(samples)
        self.assertEqual(out.frame["power"].tolist(), [200.0, 0.0, 210.0])
        self.assertEqual(out.frame["cadence"].tolist(), [0.0, 0.0, 0.0])
        self.assertTrue(math.isnan(out.frame["left_power"].iloc[1]))
        self.assertTrue(channel_present(out.records, "power"))
        self.assertFalse(channel_present(out.records, "cadence"))
        self.assertIsNone(sample_value(samples[1], "power"))

    def test_empty_input_raises(self) -> None:
        from core.errors import EmptyInputError
        from core.models import RawSample
        from core.normalizer import normalize_samples

        with self.assertRaises(EmptyInputError):
            normalize_samples([])
        with self.assertRaises(EmptyInputError):
            normalize_samples([RawSample(power=100.0)])


if __name__ == "__main__":
    unittest.main()
