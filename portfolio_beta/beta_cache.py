"""
Beta caching on top of a pluggable key-value store.

Caching model:
- Keys: ``<prefix><provider>_<symbol>_<market>_<lookback>`` using the
  provider-normalized symbols, so repeated runs hit the same entry.
- Values: JSON text ``{"beta", "sampleSize", "timestampMs"}``.
- Expiry: an entry is served while ``now - computedAt < ttl``; an expired
  entry reads exactly like a missing one. Eviction is lazy.
- Corruption: any value that fails to parse is logged and treated as a miss.

Stores:
- ``InMemoryStore``: dict-backed, process lifetime (tests, one-shot runs).
- ``FileStore``: one JSON file per key under a cache directory, file name
  derived from a short hash of the key.
"""

from __future__ import annotations

import hashlib
import json
import math
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol, Union, runtime_checkable

from portfolio_beta import config
from portfolio_beta._logging import log_critical_alert, portfolio_logger
from portfolio_beta.data_objects import BetaEstimate, CacheEntry, CacheKey
from portfolio_beta.exceptions import CacheCorruption


@runtime_checkable
class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...


class InMemoryStore:
    """Simple in-process store."""

    def __init__(self, data: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def __len__(self) -> int:
        return len(self.data)


def _hash(key: str) -> str:
    return hashlib.md5(key.encode()).hexdigest()[:8]


class FileStore:
    """One small JSON text file per key under ``cache_dir``."""

    def __init__(self, cache_dir: Union[str, Path, None] = None) -> None:
        self.cache_dir = Path(cache_dir or config.CACHE_CONFIG["cache_dir"]).expanduser().resolve()
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        stem = "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in key)[:80]
        return self.cache_dir / f"{stem}_{_hash(key)}.json"

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            portfolio_logger.warning("Cache file unreadable, ignoring: %s (%s: %s)", path.name, type(e).__name__, e)
            return None

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


def _parse_entry(key: CacheKey, raw: str) -> CacheEntry:
    try:
        data = json.loads(raw)
        beta = data["beta"]
        sample_size = data["sampleSize"]
        timestamp_ms = data["timestampMs"]
    except (json.JSONDecodeError, TypeError, KeyError) as exc:
        raise CacheCorruption("Unparseable cache value", original_error=exc) from exc

    if isinstance(beta, bool) or not isinstance(beta, (int, float)):
        raise CacheCorruption(f"Cached beta is not a number: {beta!r}")
    if isinstance(sample_size, bool) or not isinstance(sample_size, int) or sample_size < 0:
        raise CacheCorruption(f"Cached sampleSize is invalid: {sample_size!r}")
    if isinstance(timestamp_ms, bool) or not isinstance(timestamp_ms, (int, float)):
        raise CacheCorruption(f"Cached timestampMs is invalid: {timestamp_ms!r}")

    try:
        beta = float(beta)
        computed_at = float(timestamp_ms) / 1000.0
    except OverflowError as exc:
        raise CacheCorruption("Cached number out of float range", original_error=exc) from exc
    if not math.isfinite(beta) or not math.isfinite(computed_at):
        raise CacheCorruption(f"Cached values are not finite: beta={beta!r}, timestampMs={timestamp_ms!r}")
    return CacheEntry(key=key, beta=beta, sample_size=sample_size, computed_at=computed_at)


class BetaCache:
    """
    TTL cache of beta estimates keyed by (provider, symbol, market, lookback).

    Args:
        store: Key-value collaborator (``get``/``set`` on strings).
        ttl_seconds: Maximum entry age; defaults to ``CACHE_CONFIG["ttl_seconds"]`` (24h).
        clock: Returns the current time in epoch seconds.
        prefix: Key namespace.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        *,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        prefix: Optional[str] = None,
    ) -> None:
        self.store = store if store is not None else InMemoryStore()
        self.ttl_seconds = float(ttl_seconds if ttl_seconds is not None else config.CACHE_CONFIG["ttl_seconds"])
        self.clock = clock
        self.prefix = config.CACHE_CONFIG["prefix"] if prefix is None else prefix

    def make_key(self, provider: str, symbol: str, market_symbol: str, lookback_days: int) -> CacheKey:
        return CacheKey(provider=provider, symbol=symbol, market_symbol=market_symbol, lookback_days=int(lookback_days))

    def get_entry(self, key: CacheKey) -> Optional[CacheEntry]:
        key_str = key.as_string(self.prefix)
        raw = self.store.get(key_str)
        if raw is None:
            return None
        try:
            entry = _parse_entry(key, raw)
        except CacheCorruption as e:
            portfolio_logger.warning("Corrupt cache value for %s, treating as a miss: %s", key_str, e)
            return None

        age = self.clock() - entry.computed_at
        if age >= self.ttl_seconds:
            portfolio_logger.debug("cache expired for %s (age %.0fs)", key_str, age)
            return None
        return entry

    def get(self, provider: str, symbol: str, market_symbol: str, lookback_days: int) -> Optional[BetaEstimate]:
        """Return the cached estimate, or ``None`` when absent, expired or corrupt."""
        entry = self.get_entry(self.make_key(provider, symbol, market_symbol, lookback_days))
        return entry.estimate if entry else None

    def put(self, key: CacheKey, estimate: BetaEstimate) -> Optional[CacheEntry]:
        """
        Store ``estimate`` stamped with the current time, replacing any prior entry.

        Undefined estimates are not stored. Store failures are logged and
        swallowed: a cache that cannot be written only costs a refetch.
        """
        if not estimate.defined:
            return None
        entry = CacheEntry(key=key, beta=float(estimate.beta), sample_size=estimate.sample_size, computed_at=self.clock())
        key_str = key.as_string(self.prefix)
        try:
            self.store.set(key_str, json.dumps(entry.to_record()))
        except (OSError, ValueError, TypeError) as e:
            log_critical_alert("beta_cache_write_failed", "low", f"Could not write cache key {key_str}", details={"error": str(e)})
            return None
        return entry
