from __future__ import annotations

import numpy as np
import pandas as pd

from tests.unit._bootstrap import ensure_project_on_path


ensure_project_on_path()


def test_df_to_records_does_not_mutate_input_and_converts_types() -> None:
    from services.serialization import df_to_records

    df = pd.DataFrame(
        {
            "elapsed_time_s": [0.0, 1.0],
            "left_power": [120.0, np.nan],
            "t": [pd.Timestamp("2026-01-01 00:00:00"), pd.NaT],
        }
    )
    before = df.copy(deep=True)

    records = df_to_records(df)
    pd.testing.assert_frame_equal(df, before)

    assert records[0]["left_power"] == 120.0
    assert records[1]["left_power"] is None
    assert isinstance(records[0]["t"], str)
    assert records[0]["t"].startswith("2026-01-01")
    assert records[1]["t"] is None


def test_df_to_records_limit_on_time_series() -> None:
    from core.normalizer import normalize_samples
    from services.serialization import df_to_records
    from tests.unit._bootstrap import make_samples

    frame = normalize_samples(make_samples(power=[100.0, 200.0, 300.0])).frame
    before = frame.copy(deep=True)
    records = df_to_records(frame, limit=2)
    pd.testing.assert_frame_equal(frame, before)
    assert [r["power"] for r in records] == [100.0, 200.0]
    assert records[0]["heart_rate"] == 0.0
    assert df_to_records(None) == []
