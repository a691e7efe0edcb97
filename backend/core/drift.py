"""Derive cardiaque entre les deux moities temporelles de la seance."""

from __future__ import annotations

import numpy as np
import pandas as pd

from core.models import Decoupling


def _mean_or_zero(values: np.ndarray) -> float:
    return float(values.mean()) if values.size else 0.0


def compute_decoupling(frame: pd.DataFrame) -> Decoupling:
    """Coupe a duree totale / 2 (et non au milieu en nombre de points).

    Premiere moitie : elapsed < milieu ; seconde : elapsed >= milieu.
    Seule la derive de FC est calculee ; les moyennes de puissance sont
    seulement rapportees.
    """

    if frame is None or frame.empty:
        return Decoupling()

    elapsed = frame["elapsed_time_s"].to_numpy(dtype=float)
    power = frame["power"].to_numpy(dtype=float)
    hr = frame["heart_rate"].to_numpy(dtype=float)

    midpoint = float(elapsed[-1]) / 2.0
    first = elapsed < midpoint
    second = ~first

    first_hr = _mean_or_zero(hr[first])
    second_hr = _mean_or_zero(hr[second])
    drift_pct = ((second_hr / first_hr) - 1.0) * 100.0 if first_hr > 0 else 0.0

    return Decoupling(
        hr_power_drift_percentage=drift_pct,
        first_half_avg_power=_mean_or_zero(power[first]),
        second_half_avg_power=_mean_or_zero(power[second]),
        first_half_avg_hr=first_hr,
        second_half_avg_hr=second_hr,
    )
