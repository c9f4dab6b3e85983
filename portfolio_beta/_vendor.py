"""Small vendored helpers for JSON-safe serialization/coercion."""

from __future__ import annotations

import dataclasses
import math
from datetime import date, datetime
from typing import Any

import numpy as np
import pandas as pd


def make_json_safe(obj: Any) -> Any:
    """Recursively convert values into JSON-serializable forms (NaN -> None)."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return make_json_safe(dataclasses.asdict(obj))

    if isinstance(obj, dict):
        return {str(key): make_json_safe(value) for key, value in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [make_json_safe(item) for item in obj]

    if isinstance(obj, pd.Series):
        return {k.strftime("%Y-%m-%d") if isinstance(k, (pd.Timestamp, datetime, date)) else str(k): make_json_safe(v)
                for k, v in obj.items()}

    if isinstance(obj, np.ndarray):
        return [make_json_safe(item) for item in obj.tolist()]

    if isinstance(obj, np.bool_):
        return bool(obj)

    if isinstance(obj, np.integer):
        return int(obj)

    if isinstance(obj, (float, np.floating)):
        value = float(obj)
        return value if math.isfinite(value) else None

    if isinstance(obj, (pd.Timestamp, datetime)):
        return obj.strftime("%Y-%m-%d %H:%M:%S")

    if isinstance(obj, date):
        return obj.isoformat()

    if isinstance(obj, (int, str, bool, type(None))):
        return obj

    return str(obj)
