"""Courbe puissance-duree ("meilleurs efforts") sans couche UI.

Pour chaque duree cible T, on cherche la puissance moyenne maximale sur une
plage contigue d'echantillons [i, j) dont l'etendue temporelle
elapsed[j-1] - elapsed[i] tombe dans T +/- 5%.

Deux politiques de balayage :
- "adaptive" : la recherche depuis chaque debut i est bornee par la bande de
  tolerance elle-meme (equivalent a un plafond de T x 1.05 / dt_min echantillons),
  et une fenetre peut se terminer sur le dernier echantillon ;
- "legacy" : balayage plafonne a j < min(i + 300, n), comme l'application
  historique. Les durees longues (10 min et plus) y sont souvent introuvables.

La courbe n'est pas forcement decroissante avec la duree.
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from core.constants import LEGACY_LOOKAHEAD_SAMPLES, POWER_CURVE_TOLERANCE, POWER_PROFILE_DURATIONS_S
from core.models import PowerCurveScan, PowerProfile


logger = logging.getLogger("ridescope.power_curve")

# Marge (s) pour la recherche dichotomique ; la bande est reverifiee exactement ensuite.
_SEARCH_SLACK_S = 1e-6


def _last_index_bounds(n: int, scan: PowerCurveScan, lookahead: int) -> np.ndarray:
    starts = np.arange(n)
    if scan == "legacy":
        # j < min(i + lookahead, n)  =>  dernier index inclus j - 1 <= min(i + lookahead, n) - 2
        return np.minimum(starts + int(lookahead), n) - 2
    if scan == "adaptive":
        return np.full(n, n - 1)
    raise ValueError(f"Unknown power curve scan policy: {scan!r}")


def best_average_power(
    elapsed_s: np.ndarray,
    power_w: np.ndarray,
    target_s: float,
    *,
    tolerance: float = POWER_CURVE_TOLERANCE,
    scan: PowerCurveScan = "adaptive",
    lookahead: int = LEGACY_LOOKAHEAD_SAMPLES,
) -> float:
    """Meilleure puissance moyenne soutenue sur ~target_s secondes (0 si aucune fenetre)."""

    t = np.asarray(elapsed_s, dtype=float)
    p = np.asarray(power_w, dtype=float)
    n = int(t.size)
    if n < 2 or target_s <= 0:
        return 0.0

    low = float(target_s) * (1.0 - tolerance)
    high = float(target_s) * (1.0 + tolerance)
    cum = np.concatenate(([0.0], np.cumsum(p)))

    starts = np.arange(n)
    k_lo = np.maximum(np.searchsorted(t, t + low - _SEARCH_SLACK_S, side="left"), starts)
    k_hi = np.searchsorted(t, t + high + _SEARCH_SLACK_S, side="right") - 1
    k_hi = np.minimum(k_hi, _last_index_bounds(n, scan, lookahead))

    has_candidates = k_hi >= k_lo
    if not has_candidates.any():
        return 0.0
    i = starts[has_candidates]
    lo = k_lo[has_candidates]
    hi = k_hi[has_candidates]

    best = 0.0
    for offset in range(int((hi - lo).max()) + 1):
        k = lo + offset
        reach = k <= hi
        ii = i[reach]
        kk = k[reach]
        span = t[kk] - t[ii]
        in_band = (span >= low) & (span <= high)
        if not in_band.any():
            continue
        ii = ii[in_band]
        kk = kk[in_band]
        averages = (cum[kk + 1] - cum[ii]) / (kk + 1 - ii)
        best = max(best, float(averages.max()))
    return best


def compute_power_profile(
    frame: pd.DataFrame,
    *,
    weight_kg: float | None = None,
    scan: PowerCurveScan = "adaptive",
) -> PowerProfile:
    if frame is None or frame.empty:
        return PowerProfile()

    elapsed = frame["elapsed_time_s"].to_numpy(dtype=float)
    power = frame["power"].to_numpy(dtype=float)

    bests: dict[str, float] = {}
    for name, duration_s in POWER_PROFILE_DURATIONS_S:
        bests[name] = best_average_power(elapsed, power, duration_s, scan=scan)
    logger.debug("power_profile scan=%s bests=%s", scan, bests)

    if weight_kg:
        bests["watts_per_kg_best_5min"] = bests["best_5min"] / float(weight_kg)
        bests["watts_per_kg_best_20min"] = bests["best_20min"] / float(weight_kg)
    return PowerProfile(**bests)
