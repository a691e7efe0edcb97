"""Agregation d'une seance (sans couche UI).

Point d'entree du moteur : `analyze_session` prend les echantillons decodes et
les enregistrements de metadonnees (session, appareils, file_id), et retourne
un `ParseResult` complet. Le calcul est pur et synchrone : aucune I/O, aucun
etat partage entre deux appels.

Si aucun echantillon n'est horodate, le resultat est renvoye avec une serie
temporelle vide et toutes les metriques derivees a zero (pas d'exception).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

from core.constants import TSS_DIVISOR
from core.drift import compute_decoupling
from core.efficiency import compute_efficiency
from core.errors import EmptyInputError, SampleLimitError
from core.models import (
    AnalysisConfig,
    Decoupling,
    DeviceInfo,
    Efficiency,
    EnvInfo,
    HrZones,
    ParseResult,
    PowerProfile,
    PowerZones,
    RawData,
    RawSample,
    SessionSummary,
    empty_time_series,
)
from core.normalized_power import normalized_power
from core.normalizer import channel_present, normalize_samples, sample_value
from core.power_curve import compute_power_profile
from core.zones import compute_hr_zones, compute_power_zones


logger = logging.getLogger("ridescope.session")

# Champ SessionSummary -> (cle du message session, facteur).
_SESSION_PASSTHROUGH: dict[str, tuple[str, float]] = {
    "total_timer_time": ("total_timer_time", 1.0),
    "total_elapsed_time": ("total_elapsed_time", 1.0),
    "moving_time": ("total_timer_time", 1.0),
    "distance_m": ("total_distance", 1000.0),
    "total_work_kj": ("total_work", 0.001),
    "total_calories": ("total_calories", 1.0),
    "avg_speed": ("avg_speed", 1.0),
    "max_speed": ("max_speed", 1.0),
    "avg_power": ("avg_power", 1.0),
    "max_power": ("max_power", 1.0),
    "avg_heart_rate": ("avg_heart_rate", 1.0),
    "max_heart_rate": ("max_heart_rate", 1.0),
    "avg_cadence": ("avg_cadence", 1.0),
    "max_cadence": ("max_cadence", 1.0),
    "elevation_gain": ("total_ascent", 1.0),
    "elevation_loss": ("total_descent", 1.0),
    "avg_temperature": ("avg_temperature", 1.0),
    "max_temperature": ("max_temperature", 1.0),
}

# Champ SessionSummary moyen/max -> colonne de la serie temporelle.
_SERIES_FALLBACKS: dict[str, tuple[str, str]] = {
    "avg_power": ("power", "mean"),
    "max_power": ("power", "max"),
    "avg_heart_rate": ("heart_rate", "mean"),
    "max_heart_rate": ("heart_rate", "max"),
    "avg_cadence": ("cadence", "mean"),
    "max_cadence": ("cadence", "max"),
    "avg_temperature": ("temperature", "mean"),
    "max_temperature": ("temperature", "max"),
}


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if np.isfinite(out) else None


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _start_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    seconds = _as_float(value)
    if seconds is None:
        return None
    return datetime.fromtimestamp(seconds, timezone.utc)


def _first(records: Sequence[Mapping[str, Any]]) -> Mapping[str, Any]:
    return records[0] if records else {}


def build_device_info(devices: Sequence[Mapping[str, Any]], file_id: Mapping[str, Any] | None) -> DeviceInfo:
    device = _first(devices)
    file_id = file_id or {}

    power_meter = _as_text(device.get("product_name_power"))
    for record in devices:
        if record.get("antplus_device_type") == "bike_power" or record.get("device_type") == "bike_power":
            power_meter = _as_text(record.get("product_name")) or _as_text(record.get("garmin_product")) or power_meter
            break

    interval_ms = _as_float(file_id.get("recording_interval_ms"))
    return DeviceInfo(
        manufacturer=_as_text(device.get("manufacturer")),
        model=_as_text(device.get("product_name")) or _as_text(device.get("model")) or _as_text(device.get("garmin_product")),
        power_meter_model=power_meter,
        recording_interval_s=interval_ms / 1000.0 if interval_ms else None,
        gps_enabled=bool(file_id.get("gps")),
    )


def _metadata_fields(session_raw: Mapping[str, Any]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    start = _start_datetime(session_raw.get("start_time"))
    if start is not None:
        fields["date"] = start.date().isoformat()
        fields["start_time"] = start.strftime("%H:%M:%S")
    for name, (key, factor) in _SESSION_PASSTHROUGH.items():
        value = _as_float(session_raw.get(key))
        fields[name] = value * factor if value is not None else None
    return fields


def _elevation_gain_loss(altitude: np.ndarray) -> tuple[float, float]:
    if altitude.size < 2:
        return 0.0, 0.0
    diffs = np.diff(altitude)
    gain = float(np.clip(diffs, 0, None).sum())
    loss = float(np.abs(np.clip(diffs, None, 0)).sum())
    return gain, loss


def _present_values(records: Sequence[RawSample], name: str) -> np.ndarray:
    values = (sample_value(r, name) for r in records)
    return np.array([v for v in values if v is not None], dtype=float)


def _fill_from_series(fields: dict[str, Any], frame: pd.DataFrame, records: Sequence[RawSample]) -> None:
    for name, (column, how) in _SERIES_FALLBACKS.items():
        if fields.get(name) is not None or not channel_present(records, column):
            continue
        values = frame[column].to_numpy(dtype=float)
        fields[name] = float(values.mean() if how == "mean" else values.max())

    if fields.get("elevation_gain") is None or fields.get("elevation_loss") is None:
        altitude = _present_values(records, "altitude")
        if altitude.size:
            gain, loss = _elevation_gain_loss(altitude)
            if fields.get("elevation_gain") is None:
                fields["elevation_gain"] = gain
            if fields.get("elevation_loss") is None:
                fields["elevation_loss"] = loss

    if fields.get("distance_m") is None:
        distance_km = _present_values(records, "distance")
        if distance_km.size:
            fields["distance_m"] = float(distance_km.max()) * 1000.0


def build_env_info(session_raw: Mapping[str, Any], summary_fields: Mapping[str, Any], records: Sequence[RawSample]) -> EnvInfo:
    altitude_avg = altitude_max = None
    if records and channel_present(records, "altitude"):
        # Meme convention que la serie : altitude absente = 0.
        altitude = np.array([sample_value(r, "altitude") or 0.0 for r in records], dtype=float)
        altitude_avg = float(altitude.mean())
        altitude_max = float(altitude.max())
    return EnvInfo(
        temperature_avg=summary_fields.get("avg_temperature"),
        temperature_max=summary_fields.get("max_temperature"),
        humidity=_as_float(session_raw.get("avg_relative_humidity")),
        altitude_avg=altitude_avg,
        altitude_max=altitude_max,
    )


def intensity_factor(normalized_power_w: float, ftp_w: float | None) -> float | None:
    if not ftp_w or ftp_w <= 0 or normalized_power_w <= 0:
        return None
    return float(normalized_power_w / ftp_w)


def training_stress_score(duration_s: float, if_value: float | None) -> float | None:
    """TSS historique : (duree_min x IF^2 x 100) / 36, conserve tel quel."""
    if if_value is None:
        return None
    return float((duration_s / 60.0) * if_value**2 * 100.0 / TSS_DIVISOR)


def _check_sample_limit(count: int, config: AnalysisConfig) -> None:
    if count <= config.max_samples:
        return
    if config.strict_sample_limit:
        raise SampleLimitError(count, config.max_samples)
    logger.warning("sample_limit_exceeded count=%d limit=%d", count, config.max_samples)


def analyze_session(
    samples: Iterable[RawSample],
    *,
    sessions: Sequence[Mapping[str, Any]] = (),
    devices: Sequence[Mapping[str, Any]] = (),
    activities: Sequence[Mapping[str, Any]] = (),
    file_id: Mapping[str, Any] | None = None,
    config: AnalysisConfig | None = None,
) -> ParseResult:
    config = config or AnalysisConfig()
    samples = list(samples)
    sessions = tuple(dict(s) for s in sessions)
    devices = tuple(dict(d) for d in devices)
    _check_sample_limit(len(samples), config)

    session_raw = _first(sessions) or _first(list(activities))
    device = build_device_info(devices, file_id)
    fields = _metadata_fields(session_raw)

    try:
        normalized = normalize_samples(samples)
    except EmptyInputError:
        logger.info("empty_input samples=%d", len(samples))
        return ParseResult(
            device=device,
            session=SessionSummary(**fields),
            env=build_env_info(session_raw, fields, ()),
            power_zones=PowerZones(),
            hr_zones=HrZones(),
            power_profile=PowerProfile(),
            decoupling=Decoupling(),
            efficiency=Efficiency(),
            raw=RawData(records=(), sessions=sessions, devices=devices),
            time_series=empty_time_series(),
        )

    records = normalized.records
    frame = normalized.frame
    elapsed = frame["elapsed_time_s"].to_numpy(dtype=float)
    power = frame["power"].to_numpy(dtype=float)
    duration_s = float(elapsed[-1])

    fields["duration_s"] = duration_s
    _fill_from_series(fields, frame, records)

    np_value = normalized_power(elapsed, power)
    if_value = intensity_factor(np_value, config.ftp_w)
    fields["normalized_power"] = np_value
    fields["intensity_factor"] = if_value
    fields["training_stress_score"] = training_stress_score(duration_s, if_value)

    result = ParseResult(
        device=device,
        session=SessionSummary(**fields),
        env=build_env_info(session_raw, fields, records),
        power_zones=compute_power_zones(frame, config.ftp_w),
        hr_zones=compute_hr_zones(frame, config.hr_max_bpm),
        power_profile=compute_power_profile(frame, weight_kg=config.weight_kg, scan=config.power_curve_scan),
        decoupling=compute_decoupling(frame),
        efficiency=compute_efficiency(frame, np_value),
        raw=RawData(records=records, sessions=sessions, devices=devices),
        time_series=frame,
    )
    logger.debug(
        "session_analyzed samples=%d duration_s=%.1f np=%.1f",
        len(records),
        duration_s,
        np_value,
    )
    return result
