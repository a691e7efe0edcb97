"""Ratios d'efficacite (EF, VI, puissance/FC, correlation cadence-puissance, equilibre G/D)."""

from __future__ import annotations

import numpy as np
import pandas as pd

from core.models import Efficiency


def _safe_ratio(num: float, den: float) -> float:
    return float(num / den) if den > 0 else 0.0


def pearson_correlation(x: np.ndarray, y: np.ndarray) -> float:
    """Coefficient de Pearson, 0 si l'une des series est de variance nulle."""

    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.size == 0 or x.size != y.size:
        return 0.0
    dx = x - x.mean()
    dy = y - y.mean()
    denom = float(np.sqrt(np.sum(dx * dx)) * np.sqrt(np.sum(dy * dy)))
    if denom == 0 or not np.isfinite(denom):
        return 0.0
    return float(np.clip(np.sum(dx * dy) / denom, -1.0, 1.0))


def left_right_balance(left_w: np.ndarray, right_w: np.ndarray) -> float | None:
    """Part moyenne de la jambe gauche (%), None sans donnees exploitables."""

    left = np.asarray(left_w, dtype=float)
    right = np.asarray(right_w, dtype=float)
    total = left + right
    usable = np.isfinite(left) & np.isfinite(right) & (total > 0)
    if not usable.any():
        return None
    return float(np.mean(left[usable] / total[usable] * 100.0))


def compute_efficiency(frame: pd.DataFrame, normalized_power_w: float) -> Efficiency:
    if frame is None or frame.empty:
        return Efficiency()

    power = frame["power"].to_numpy(dtype=float)
    hr = frame["heart_rate"].to_numpy(dtype=float)
    avg_power = float(power.mean())
    avg_hr = float(hr.mean())

    return Efficiency(
        efficiency_factor=_safe_ratio(normalized_power_w, avg_hr),
        variability_index=_safe_ratio(normalized_power_w, avg_power),
        power_hr_ratio=_safe_ratio(avg_power, avg_hr),
        cadence_power_correlation=pearson_correlation(frame["cadence"].to_numpy(dtype=float), power),
        left_right_balance=left_right_balance(
            frame["left_power"].to_numpy(dtype=float),
            frame["right_power"].to_numpy(dtype=float),
        ),
    )
