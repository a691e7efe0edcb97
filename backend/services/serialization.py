"""Helpers de serialisation (sans couche UI).

Convertit le ParseResult (dataclasses, pandas, numpy) en structures 100%
JSON-serialisables pour l'API et la couche de presentation.
"""

from __future__ import annotations

import math
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from typing import Any

import numpy as np
import pandas as pd


def _is_missing(value: Any) -> bool:
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def df_to_records(df: pd.DataFrame, *, limit: int | None = None) -> list[dict[str, Any]]:
    if df is None:
        return []
    if limit is not None:
        df = df.head(int(limit))
    # IMPORTANT: cast en object pour conserver None dans les colonnes numeriques.
    safe = df.copy().astype(object)
    safe = safe.where(pd.notna(safe), None)
    return [{str(k): to_jsonable(v) for k, v in row.items()} for row in safe.to_dict(orient="records")]


def to_jsonable(obj: Any, *, records_limit: int | None = None) -> Any:
    """Convertit obj en primitives JSON-serialisables.

    Retourne uniquement dict/list/str/int/float/bool/None. NaN et infinis
    deviennent None.
    """

    if obj is None:
        return None

    if isinstance(obj, (pd.Timestamp, datetime, date)):
        return None if _is_missing(obj) else obj.isoformat()

    # Scalaire numpy
    if isinstance(obj, np.generic):
        return to_jsonable(obj.item())

    if isinstance(obj, (str, bool, int)):
        return obj
    if isinstance(obj, float):
        return obj if math.isfinite(obj) else None

    if isinstance(obj, dict):
        return {str(k): to_jsonable(v, records_limit=records_limit) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [to_jsonable(v, records_limit=records_limit) for v in obj]

    if isinstance(obj, pd.DataFrame):
        return df_to_records(obj, limit=records_limit)
    if isinstance(obj, np.ndarray):
        return [to_jsonable(v) for v in obj.tolist()]

    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name), records_limit=records_limit) for f in fields(obj)}

    # Fallback
    return str(obj)
