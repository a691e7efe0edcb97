"""Normalisation des echantillons bruts (sans couche UI).

Trie les echantillons horodates et les ramene sur un axe de temps a origine 0.
Le DataFrame produit remplace les canaux absents par 0 (sauf puissance
gauche/droite, laissees a NaN) ; la presence reelle d'un canal se teste sur les
echantillons bruts via `channel_present`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable

import numpy as np
import pandas as pd

from core.errors import EmptyInputError
from core.models import TIME_SERIES_COLUMNS, RawSample


logger = logging.getLogger("ridescope.normalizer")

# Canal du DataFrame -> champ RawSample.
_FILLED_CHANNELS: dict[str, str] = {
    "power": "power",
    "heart_rate": "heart_rate",
    "cadence": "cadence",
    "temperature": "temperature",
    "altitude": "altitude",
}
_OPTIONAL_CHANNELS: tuple[str, ...] = ("left_power", "right_power")


@dataclass(frozen=True)
class NormalizedSamples:
    records: tuple[RawSample, ...]
    frame: pd.DataFrame


def _has_timestamp(sample: RawSample) -> bool:
    ts = sample.timestamp
    if ts is None:
        return False
    try:
        return math.isfinite(float(ts))
    except (TypeError, ValueError):
        return False


def sample_value(sample: RawSample, name: str) -> float | None:
    """Valeur du canal, None si absente ou non finie (NaN, inf)."""
    value = getattr(sample, name)
    if value is None:
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def _channel_values(records: tuple[RawSample, ...], name: str, fill: float) -> np.ndarray:
    values = [sample_value(r, name) for r in records]
    return np.array([fill if v is None else v for v in values], dtype=float)


def channel_present(records: Iterable[RawSample], name: str) -> bool:
    """Vrai si au moins un echantillon porte une valeur finie pour ce canal."""
    return any(sample_value(r, name) is not None for r in records)


def normalize_samples(samples: Iterable[RawSample]) -> NormalizedSamples:
    """Filtre, trie (tri stable) et rebase les echantillons.

    Leve EmptyInputError si aucun echantillon n'a de timestamp.
    """

    all_samples = list(samples)
    timed = [s for s in all_samples if _has_timestamp(s)]
    dropped = len(all_samples) - len(timed)
    if dropped:
        logger.debug("samples_without_timestamp dropped=%d", dropped)
    if not timed:
        raise EmptyInputError("no sample carries a usable timestamp")

    records = tuple(sorted(timed, key=lambda s: float(s.timestamp)))
    timestamps = np.array([float(r.timestamp) for r in records], dtype=float)

    data: dict[str, np.ndarray] = {"elapsed_time_s": timestamps - timestamps[0]}
    for column, attr in _FILLED_CHANNELS.items():
        data[column] = _channel_values(records, attr, 0.0)
    for column in _OPTIONAL_CHANNELS:
        data[column] = _channel_values(records, column, math.nan)

    frame = pd.DataFrame(data, columns=list(TIME_SERIES_COLUMNS))
    return NormalizedSamples(records=records, frame=frame)
