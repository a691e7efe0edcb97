from __future__ import annotations

import datetime
import math
import unittest

from tests.unit._bootstrap import ensure_project_on_path


ensure_project_on_path()


class TestRecordToSample(unittest.TestCase):
    def test_unit_conversions(self) -> None:
        from services.decoder import record_to_sample

        sample = record_to_sample(
            {
                "timestamp": datetime.datetime(2023, 11, 14, 22, 13, 20),
                "heart_rate": 142,
                "power": 250,
                "cadence": 88,
                "enhanced_speed": 10.0,
                "speed": 9.0,
                "distance": 1500.0,
                "enhanced_altitude": 312.4,
                "temperature": 18,
                "position_lat": 2**30,
                "position_long": -(2**29),
            }
        )
        self.assertEqual(sample.timestamp, 1_700_000_000.0)
        self.assertEqual(sample.heart_rate, 142.0)
        self.assertAlmostEqual(sample.speed, 36.0)
        self.assertAlmostEqual(sample.distance, 1.5)
        self.assertAlmostEqual(sample.altitude, 312.4)
        self.assertAlmostEqual(sample.latitude, 90.0)
        self.assertAlmostEqual(sample.longitude, -45.0)
        self.assertIsNone(sample.left_power)
        self.assertIsNone(sample.right_power)

    def test_missing_fields_stay_none(self) -> None:
        from services.decoder import record_to_sample

        sample = record_to_sample({"timestamp": None, "power": None, "heart_rate": float("nan")})
        self.assertIsNone(sample.timestamp)
        self.assertIsNone(sample.power)
        self.assertIsNone(sample.heart_rate)
        self.assertIsNone(sample.speed)

    def test_balance_split_needs_right_flag(self) -> None:
        from services.decoder import record_to_sample

        # 0x80 | 52 : 52% jambe droite.
        sample = record_to_sample({"timestamp": 0.0, "power": 200, "left_right_balance": 0x80 | 52})
        self.assertAlmostEqual(sample.right_power, 104.0)
        self.assertAlmostEqual(sample.left_power, 96.0)

        unknown_side = record_to_sample({"timestamp": 0.0, "power": 200, "left_right_balance": 52})
        self.assertIsNone(unknown_side.left_power)
        self.assertIsNone(unknown_side.right_power)

    def test_explicit_left_right_power_wins(self) -> None:
        from services.decoder import record_to_sample

        sample = record_to_sample(
            {"timestamp": 0.0, "power": 200, "left_power": 90, "right_power": 110, "left_right_balance": 0x80 | 10}
        )
        self.assertEqual(sample.left_power, 90.0)
        self.assertEqual(sample.right_power, 110.0)


class TestMetadata(unittest.TestCase):
    def test_metadata_units(self) -> None:
        from services.decoder import metadata_to_dict

        out = metadata_to_dict(
            {
                "start_time": datetime.datetime(2023, 11, 14, 22, 13, 20),
                "avg_speed": 8.0,
                "max_speed": None,
                "total_distance": 30500.0,
                "total_ascent": 420,
                "sport": "cycling",
            }
        )
        self.assertEqual(out["start_time"], 1_700_000_000.0)
        self.assertAlmostEqual(out["avg_speed"], 28.8)
        self.assertIsNone(out["max_speed"])
        self.assertAlmostEqual(out["total_distance"], 30.5)
        self.assertEqual(out["total_ascent"], 420)
        self.assertEqual(out["sport"], "cycling")

    def test_to_epoch_seconds(self) -> None:
        from services.decoder import to_epoch_seconds

        aware = datetime.datetime(2023, 11, 14, 23, 13, 20, tzinfo=datetime.timezone(datetime.timedelta(hours=1)))
        self.assertEqual(to_epoch_seconds(aware), 1_700_000_000.0)
        self.assertEqual(to_epoch_seconds(12.5), 12.5)
        self.assertIsNone(to_epoch_seconds("later"))
        self.assertIsNone(to_epoch_seconds(math.inf))


class TestFitDecoder(unittest.TestCase):
    def test_invalid_bytes_raise_decoder_error(self) -> None:
        from core.errors import DecoderError
        from services.decoder import FitDecoder

        with self.assertRaises(DecoderError) as ctx:
            FitDecoder().decode(b"not a fit file" * 3)
        self.assertIn("FIT parse error", str(ctx.exception))

    def test_analyze_fit_bytes_does_not_run_engine_on_decoder_error(self) -> None:
        from core.errors import DecoderError
        from services.analysis_service import analyze_fit_bytes

        class _BrokenDecoder:
            def decode(self, source):
                raise DecoderError("FIT parse error: truncated")

        with self.assertRaises(DecoderError):
            analyze_fit_bytes(b"", decoder=_BrokenDecoder())

    def test_analyze_decoded(self) -> None:
        from core.models import AnalysisConfig
        from services.analysis_service import analyze_decoded
        from services.decoder import DecodedActivity
        from tests.unit._bootstrap import make_samples

        decoded = DecodedActivity(
            samples=list(reversed(make_samples(power=[200.0] * 120))),
            sessions=[{"start_time": 1_700_000_000.0, "total_calories": 300}],
            file_id={"gps": False},
        )
        result = analyze_decoded(decoded, AnalysisConfig(ftp_w=200.0))
        self.assertEqual(result.session.total_calories, 300.0)
        self.assertAlmostEqual(result.session.intensity_factor, 1.0)
        self.assertEqual(result.raw.records[0].timestamp, 1_700_000_000.0)
        self.assertFalse(result.device.gps_enabled)


if __name__ == "__main__":
    unittest.main()
