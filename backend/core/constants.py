"""Constantes partagees du moteur d'analyse de seance.

Ce module centralise les seuils et valeurs par defaut utilises dans core/ et services/.
Garder ce module sans dependances (hors stdlib).
"""

from __future__ import annotations

import math


# Durees cibles de la courbe puissance-duree (s), avec le nom du champ PowerProfile.
POWER_PROFILE_DURATIONS_S: tuple[tuple[str, int], ...] = (
    ("best_5s", 5),
    ("best_15s", 15),
    ("best_30s", 30),
    ("best_1min", 60),
    ("best_5min", 300),
    ("best_10min", 600),
    ("best_20min", 1200),
    ("best_30min", 1800),
    ("best_60min", 3600),
)

# Tolerance relative sur la duree d'une fenetre (+/- 5%).
POWER_CURVE_TOLERANCE: float = 0.05

# Balayage "legacy": nombre d'echantillons regardes depuis chaque debut de fenetre.
LEGACY_LOOKAHEAD_SAMPLES: int = 300

# Fenetre glissante de la Normalized Power (s).
NP_WINDOW_S: float = 30.0

# Bornes hautes (en fraction de FTP / FC max) ; la derniere borne est infinie.
POWER_ZONE_BOUNDARIES: tuple[float, ...] = (0.55, 0.75, 0.90, 1.05, 1.20, 1.50, math.inf)
HR_ZONE_BOUNDARIES: tuple[float, ...] = (0.68, 0.83, 0.94, 1.05, math.inf)

# Au-dela, le cout O(n x fenetre) de la courbe puissance-duree devient sensible.
DEFAULT_MAX_SAMPLES: int = 200_000

# Constante de la formule TSS historique (conservee telle quelle).
TSS_DIVISOR: float = 36.0
