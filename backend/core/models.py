"""Types du moteur d'analyse de seance (sans couche UI).

Tous les types sont des dataclasses figees : un resultat est produit une fois
par fichier decode puis n'est plus modifie.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Sequence

import pandas as pd

from core.constants import DEFAULT_MAX_SAMPLES


PowerCurveScan = Literal["adaptive", "legacy"]

# Colonnes du DataFrame "une ligne par echantillon" produit par le normaliseur.
TIME_SERIES_COLUMNS: tuple[str, ...] = (
    "elapsed_time_s",
    "power",
    "heart_rate",
    "cadence",
    "temperature",
    "altitude",
    "left_power",
    "right_power",
)


@dataclass(frozen=True)
class RawSample:
    """Echantillon brut tel que livre par le decodeur ; tous les champs sont optionnels."""

    timestamp: float | None = None
    heart_rate: float | None = None
    power: float | None = None
    cadence: float | None = None
    altitude: float | None = None
    temperature: float | None = None
    speed: float | None = None
    distance: float | None = None
    left_power: float | None = None
    right_power: float | None = None
    latitude: float | None = None
    longitude: float | None = None


@dataclass(frozen=True)
class AnalysisConfig:
    ftp_w: float | None = None
    hr_max_bpm: float | None = None
    weight_kg: float | None = None
    power_curve_scan: PowerCurveScan = "adaptive"
    max_samples: int = DEFAULT_MAX_SAMPLES
    strict_sample_limit: bool = False


@dataclass(frozen=True)
class DeviceInfo:
    manufacturer: str | None = None
    model: str | None = None
    power_meter_model: str | None = None
    recording_interval_s: float | None = None
    gps_enabled: bool = False


@dataclass(frozen=True)
class SessionSummary:
    date: str | None = None
    start_time: str | None = None
    duration_s: float | None = None
    total_timer_time: float | None = None
    total_elapsed_time: float | None = None
    moving_time: float | None = None
    distance_m: float | None = None
    total_work_kj: float | None = None
    total_calories: float | None = None
    avg_speed: float | None = None
    max_speed: float | None = None
    avg_power: float | None = None
    max_power: float | None = None
    normalized_power: float | None = None
    intensity_factor: float | None = None
    training_stress_score: float | None = None
    avg_heart_rate: float | None = None
    max_heart_rate: float | None = None
    avg_cadence: float | None = None
    max_cadence: float | None = None
    elevation_gain: float | None = None
    elevation_loss: float | None = None
    avg_temperature: float | None = None
    max_temperature: float | None = None


@dataclass(frozen=True)
class EnvInfo:
    temperature_avg: float | None = None
    temperature_max: float | None = None
    humidity: float | None = None
    altitude_avg: float | None = None
    altitude_max: float | None = None


@dataclass(frozen=True)
class PowerProfile:
    best_5s: float = 0.0
    best_15s: float = 0.0
    best_30s: float = 0.0
    best_1min: float = 0.0
    best_5min: float = 0.0
    best_10min: float = 0.0
    best_20min: float = 0.0
    best_30min: float = 0.0
    best_60min: float = 0.0
    watts_per_kg_best_5min: float | None = None
    watts_per_kg_best_20min: float | None = None


@dataclass(frozen=True)
class PowerZones:
    z1_time_sec: float = 0.0
    z2_time_sec: float = 0.0
    z3_time_sec: float = 0.0
    z4_time_sec: float = 0.0
    z5_time_sec: float = 0.0
    z6_time_sec: float = 0.0
    z7_time_sec: float = 0.0

    @classmethod
    def from_seconds(cls, seconds: Sequence[float]) -> "PowerZones":
        return cls(*(float(s) for s in seconds))

    def as_list(self) -> list[float]:
        return [
            self.z1_time_sec,
            self.z2_time_sec,
            self.z3_time_sec,
            self.z4_time_sec,
            self.z5_time_sec,
            self.z6_time_sec,
            self.z7_time_sec,
        ]


@dataclass(frozen=True)
class HrZones:
    hr_z1_time: float = 0.0
    hr_z2_time: float = 0.0
    hr_z3_time: float = 0.0
    hr_z4_time: float = 0.0
    hr_z5_time: float = 0.0

    @classmethod
    def from_seconds(cls, seconds: Sequence[float]) -> "HrZones":
        return cls(*(float(s) for s in seconds))

    def as_list(self) -> list[float]:
        return [self.hr_z1_time, self.hr_z2_time, self.hr_z3_time, self.hr_z4_time, self.hr_z5_time]


@dataclass(frozen=True)
class Decoupling:
    hr_power_drift_percentage: float = 0.0
    first_half_avg_power: float = 0.0
    second_half_avg_power: float = 0.0
    first_half_avg_hr: float = 0.0
    second_half_avg_hr: float = 0.0


@dataclass(frozen=True)
class Efficiency:
    efficiency_factor: float = 0.0
    variability_index: float = 0.0
    power_hr_ratio: float = 0.0
    cadence_power_correlation: float = 0.0
    left_right_balance: float | None = None


@dataclass(frozen=True)
class RawData:
    records: tuple[RawSample, ...] = ()
    sessions: tuple[dict[str, Any], ...] = ()
    devices: tuple[dict[str, Any], ...] = ()


def empty_time_series() -> pd.DataFrame:
    return pd.DataFrame({col: pd.Series(dtype=float) for col in TIME_SERIES_COLUMNS})


@dataclass(frozen=True)
class ParseResult:
    device: DeviceInfo
    session: SessionSummary
    env: EnvInfo
    power_zones: PowerZones
    hr_zones: HrZones
    power_profile: PowerProfile
    decoupling: Decoupling
    efficiency: Efficiency
    raw: RawData
    time_series: pd.DataFrame = field(default_factory=empty_time_series, compare=False)
