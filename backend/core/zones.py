from __future__ import annotations

import math
from typing import Sequence

import numpy as np
import pandas as pd

from core.constants import HR_ZONE_BOUNDARIES, POWER_ZONE_BOUNDARIES
from core.models import HrZones, PowerZones


def time_in_zones(
    values: np.ndarray,
    elapsed_s: np.ndarray,
    reference: float | None,
    boundaries: Sequence[float],
) -> list[float]:
    """Accumule le temps passe par zone.

    Pour chaque paire (i, i+1), l'intensite value[i] / reference est classee
    dans la premiere borne >= intensite, et le delta de temps de la paire est
    ajoute a cette zone. Sans reference, toutes les zones restent a 0.
    """

    zone_count = len(boundaries)
    if not reference or reference <= 0:
        return [0.0] * zone_count

    v = np.asarray(values, dtype=float)
    t = np.asarray(elapsed_s, dtype=float)
    if v.size < 2:
        return [0.0] * zone_count

    ratios = np.nan_to_num(v[:-1] / float(reference), nan=0.0)
    deltas = np.diff(t)
    zone_idx = np.searchsorted(np.asarray(boundaries, dtype=float), ratios, side="left")
    zone_idx = np.minimum(zone_idx, zone_count - 1)
    totals = np.bincount(zone_idx, weights=deltas, minlength=zone_count)
    return [float(x) for x in totals[:zone_count]]


def compute_power_zones(frame: pd.DataFrame, ftp_w: float | None) -> PowerZones:
    if frame is None or frame.empty:
        return PowerZones()
    seconds = time_in_zones(
        frame["power"].to_numpy(dtype=float),
        frame["elapsed_time_s"].to_numpy(dtype=float),
        ftp_w,
        POWER_ZONE_BOUNDARIES,
    )
    return PowerZones.from_seconds(seconds)


def compute_hr_zones(frame: pd.DataFrame, hr_max_bpm: float | None) -> HrZones:
    if frame is None or frame.empty:
        return HrZones()
    seconds = time_in_zones(
        frame["heart_rate"].to_numpy(dtype=float),
        frame["elapsed_time_s"].to_numpy(dtype=float),
        hr_max_bpm,
        HR_ZONE_BOUNDARIES,
    )
    return HrZones.from_seconds(seconds)


def _range_label(low: float, high: float) -> str:
    if math.isinf(high):
        return f">{low * 100:.0f}%"
    return f"{low * 100:.0f}-{high * 100:.0f}%"


def zone_table(seconds: Sequence[float], boundaries: Sequence[float], *, prefix: str = "Z") -> pd.DataFrame:
    """Table de presentation (zone, range, time_s, time_pct) a partir des accumulateurs."""

    total = float(sum(seconds))
    rows = []
    low = 0.0
    for idx, (time_s, high) in enumerate(zip(seconds, boundaries), start=1):
        rows.append(
            {
                "zone": f"{prefix}{idx}",
                "range": _range_label(low, high),
                "time_s": float(time_s),
                "time_pct": (float(time_s) / total) * 100.0 if total > 0 else 0.0,
            }
        )
        low = high
    return pd.DataFrame(rows, columns=["zone", "range", "time_s", "time_pct"])
