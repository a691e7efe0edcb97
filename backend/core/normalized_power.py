"""Normalized Power (sans couche UI).

Pour chaque echantillon i, on prend l'indice k <= i le plus proche tel que
elapsed[k] <= elapsed[i] - 30 s, puis la moyenne de power^4 sur [k, i].
NP = (moyenne de ces moyennes) ** 0.25. Les puissances negatives comptent pour 0.
"""

from __future__ import annotations

import numpy as np

from core.constants import NP_WINDOW_S


def normalized_power(
    elapsed_s: np.ndarray,
    power_w: np.ndarray,
    *,
    window_s: float = NP_WINDOW_S,
) -> float:
    """Retourne 0 si aucune fenetre de window_s n'existe (seance < 30 s)."""

    t = np.asarray(elapsed_s, dtype=float)
    p = np.asarray(power_w, dtype=float)
    if t.size == 0:
        return 0.0

    fourth = np.power(np.clip(p, 0.0, None), 4)
    cum = np.concatenate(([0.0], np.cumsum(fourth)))

    # Nombre d'echantillons <= t[i] - window, donc k = ce nombre - 1.
    k = np.searchsorted(t, t - float(window_s), side="right") - 1
    idx = np.arange(t.size)
    valid = k >= 0
    if not valid.any():
        return 0.0

    k = k[valid]
    i = idx[valid]
    window_means = (cum[i + 1] - cum[k]) / (i - k + 1)
    mean_fourth = float(np.mean(window_means))
    if not np.isfinite(mean_fourth) or mean_fourth <= 0:
        return 0.0
    return float(np.power(mean_fourth, 0.25))
