"""Decodeur FIT (fitparse) vers les types du moteur.

Le decodeur est un objet possede par l'appelant (aucun singleton global) : on
le cree une fois et on le passe a chaque analyse.

Conversions d'unites faites ici (le moteur n'en fait aucune) :
- semicercles -> degres ;
- distances m -> km ;
- vitesses m/s -> km/h ;
- datetimes (UTC naifs cote fitparse) -> secondes epoch.
"""

from __future__ import annotations

import datetime
import io
import logging
import math
from dataclasses import dataclass, field
from typing import IO, Any

from fitparse import FitFile
from fitparse.utils import FitParseError

from core.errors import DecoderError
from core.models import RawSample


logger = logging.getLogger("ridescope.decoder")

SEMICIRCLE_TO_DEG = 180.0 / (2**31)
MS_TO_KMH = 3.6

# Bit 7 de left_right_balance : la valeur est la contribution de la jambe droite.
_LR_BALANCE_RIGHT_FLAG = 0x80
_LR_BALANCE_MASK = 0x7F

_SPEED_KEYS = ("avg_speed", "max_speed", "enhanced_avg_speed", "enhanced_max_speed")
_DISTANCE_KEYS = ("total_distance",)


def _patch_fitparse_datetime() -> None:
    """Remplace utcfromtimestamp (deprecated) par une conversion UTC moderne."""
    try:
        from fitparse import processors as fit_processors
    except ImportError:
        return

    if getattr(fit_processors, "_ridescope_datetime_patch", False):
        return

    def _to_utc_naive(value: float) -> datetime.datetime:
        dt = datetime.datetime.fromtimestamp(fit_processors.UTC_REFERENCE + value, datetime.timezone.utc)
        return dt.replace(tzinfo=None)

    def _process_type_date_time(self, field_data):
        value = field_data.value
        if value is not None and value >= 0x10000000:
            field_data.value = _to_utc_naive(value)
            field_data.units = None

    def _process_type_local_date_time(self, field_data):
        if field_data.value is not None:
            field_data.value = _to_utc_naive(field_data.value)
            field_data.units = None

    fit_processors.FitFileDataProcessor.process_type_date_time = _process_type_date_time
    fit_processors.FitFileDataProcessor.process_type_local_date_time = _process_type_local_date_time
    fit_processors._ridescope_datetime_patch = True


_patch_fitparse_datetime()


@dataclass(frozen=True)
class DecodedActivity:
    samples: list[RawSample] = field(default_factory=list)
    sessions: list[dict[str, Any]] = field(default_factory=list)
    activities: list[dict[str, Any]] = field(default_factory=list)
    devices: list[dict[str, Any]] = field(default_factory=list)
    file_id: dict[str, Any] = field(default_factory=dict)


def to_epoch_seconds(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return value.timestamp()
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def _number(value: Any) -> float | None:
    if value is None or isinstance(value, (bool, str)):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def _semicircle_to_deg(value: Any) -> float | None:
    number = _number(value)
    return number * SEMICIRCLE_TO_DEG if number is not None else None


def _build_field_lookup(message) -> dict[str, Any]:
    lookup: dict[str, Any] = {}
    for f in getattr(message, "fields", None) or ():
        name = getattr(f, "name", None)
        if name:
            lookup[str(name)] = getattr(f, "value", None)
    return lookup


def _first_number(lookup: dict[str, Any], names: tuple[str, ...]) -> float | None:
    for name in names:
        value = _number(lookup.get(name))
        if value is not None:
            return value
    return None


def _split_balance(power: float | None, balance: Any) -> tuple[float | None, float | None]:
    if power is None or not isinstance(balance, int) or isinstance(balance, bool):
        return None, None
    if not balance & _LR_BALANCE_RIGHT_FLAG:
        # Cote inconnu : on ne devine pas.
        return None, None
    right_pct = float(balance & _LR_BALANCE_MASK)
    right = power * right_pct / 100.0
    return power - right, right


def record_to_sample(lookup: dict[str, Any]) -> RawSample:
    power = _number(lookup.get("power"))
    left = _number(lookup.get("left_power"))
    right = _number(lookup.get("right_power"))
    if left is None and right is None:
        left, right = _split_balance(power, lookup.get("left_right_balance"))

    speed_ms = _first_number(lookup, ("enhanced_speed", "speed"))
    distance_m = _number(lookup.get("distance"))
    return RawSample(
        timestamp=to_epoch_seconds(lookup.get("timestamp")),
        heart_rate=_number(lookup.get("heart_rate")),
        power=power,
        cadence=_number(lookup.get("cadence")),
        altitude=_first_number(lookup, ("enhanced_altitude", "altitude")),
        temperature=_number(lookup.get("temperature")),
        speed=speed_ms * MS_TO_KMH if speed_ms is not None else None,
        distance=distance_m / 1000.0 if distance_m is not None else None,
        left_power=left,
        right_power=right,
        latitude=_semicircle_to_deg(lookup.get("position_lat")),
        longitude=_semicircle_to_deg(lookup.get("position_long")),
    )


def metadata_to_dict(lookup: dict[str, Any]) -> dict[str, Any]:
    """Metadonnees session/appareil en unites moteur (km, km/h, secondes epoch)."""

    out: dict[str, Any] = {}
    for key, value in lookup.items():
        if isinstance(value, datetime.datetime):
            out[key] = to_epoch_seconds(value)
        elif key in _SPEED_KEYS and _number(value) is not None:
            out[key] = float(value) * MS_TO_KMH
        elif key in _DISTANCE_KEYS and _number(value) is not None:
            out[key] = float(value) / 1000.0
        else:
            out[key] = value
    return out


class FitDecoder:
    """Decodeur FIT reutilisable, possede par l'appelant."""

    def __init__(self, *, check_crc: bool = True):
        self.check_crc = check_crc

    def _open(self, source: IO[bytes] | bytes) -> FitFile:
        if isinstance(source, (bytes, bytearray)):
            source = io.BytesIO(bytes(source))
        return FitFile(source, check_crc=self.check_crc)

    def decode(self, source: IO[bytes] | bytes) -> DecodedActivity:
        try:
            fitfile = self._open(source)
            samples = [record_to_sample(_build_field_lookup(m)) for m in fitfile.get_messages("record")]
            sessions = [metadata_to_dict(_build_field_lookup(m)) for m in fitfile.get_messages("session")]
            activities = [metadata_to_dict(_build_field_lookup(m)) for m in fitfile.get_messages("activity")]
            devices = [metadata_to_dict(_build_field_lookup(m)) for m in fitfile.get_messages("device_info")]
            file_ids = [metadata_to_dict(_build_field_lookup(m)) for m in fitfile.get_messages("file_id")]
        except (FitParseError, ValueError, OSError) as exc:
            logger.warning("fit_decode_failed error=%s", exc)
            raise DecoderError(f"FIT parse error: {exc}") from exc

        logger.debug(
            "fit_decoded records=%d sessions=%d devices=%d",
            len(samples),
            len(sessions),
            len(devices),
        )
        return DecodedActivity(
            samples=samples,
            sessions=sessions,
            activities=activities,
            devices=devices,
            file_id=file_ids[0] if file_ids else {},
        )
