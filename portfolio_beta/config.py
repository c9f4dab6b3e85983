"""Standalone-safe configuration surface for portfolio_beta."""

from __future__ import annotations

import os
from typing import Any


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except Exception:
        return default


_DEFAULTS: dict[str, Any] = {
    "BETA_DEFAULTS": {
        "provider": os.getenv("BETA_DEFAULT_PROVIDER", "yahoo").lower(),
        "lookback_days": _env_int("BETA_LOOKBACK_DAYS", 252),
        "lookback_padding_days": _env_int("BETA_LOOKBACK_PADDING_DAYS", 10),
        "fetch_delay_seconds": _env_float("BETA_FETCH_DELAY_SECONDS", 1.0),
    },
    "MARKET_PROXIES": {
        "stooq": os.getenv("BETA_MARKET_STOOQ", "spy.us"),
        "yahoo": os.getenv("BETA_MARKET_YAHOO", "SPY"),
    },
    "CACHE_CONFIG": {
        "prefix": os.getenv("BETA_CACHE_PREFIX", "mb_beta_cache_v2_"),
        "ttl_seconds": _env_int("BETA_CACHE_TTL_SECONDS", 24 * 60 * 60),
        "cache_dir": os.getenv("BETA_CACHE_DIR", "cache_beta"),
    },
    "DATA_QUALITY_THRESHOLDS": {
        "min_price_rows": 2,
        "min_observations_for_beta": 2,
        "min_reliable_observations": _env_int("BETA_MIN_RELIABLE_OBSERVATIONS", 60),
    },
    "TRANSPORT_CONFIG": {
        "timeout_seconds": _env_float("BETA_HTTP_TIMEOUT_SECONDS", 20.0),
        "user_agent": os.getenv("BETA_HTTP_USER_AGENT", "portfolio-beta/0.1"),
    },
}


BETA_DEFAULTS = _DEFAULTS["BETA_DEFAULTS"]
MARKET_PROXIES = _DEFAULTS["MARKET_PROXIES"]
CACHE_CONFIG = _DEFAULTS["CACHE_CONFIG"]
DATA_QUALITY_THRESHOLDS = _DEFAULTS["DATA_QUALITY_THRESHOLDS"]
TRANSPORT_CONFIG = _DEFAULTS["TRANSPORT_CONFIG"]


def configure(**overrides: Any) -> None:
    """Programmatically override package configuration values.

    Dict-valued settings are merged key by key so a partial override such as
    ``configure(BETA_DEFAULTS={"fetch_delay_seconds": 0})`` keeps the other
    defaults in place.
    """
    globals_dict = globals()
    for key, value in overrides.items():
        if key not in _DEFAULTS:
            raise KeyError(f"Unknown config key: {key}")
        current = globals_dict[key]
        if isinstance(current, dict) and isinstance(value, dict):
            current.update(value)
        else:
            globals_dict[key] = value
