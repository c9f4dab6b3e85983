"""
Domain records shared across the beta engine.

Price and return series are plain ``pandas.Series`` (date-indexed floats) and
are not wrapped here; this module holds the small value objects that travel
between the aggregator, the cache and the result layer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Holding:
    """
    One raw portfolio line before weight normalization.

    ``raw_weight`` is a plain positive number: percentages have already been
    converted upstream (see ``portfolio_config.parse_weight``).
    """

    ticker: str
    raw_weight: float

    def __post_init__(self) -> None:
        ticker = (self.ticker or "").strip()
        if not ticker:
            raise ValueError("Holding ticker must be a non-empty string")
        object.__setattr__(self, "ticker", ticker)
        object.__setattr__(self, "raw_weight", float(self.raw_weight))


@dataclass(frozen=True)
class NormalizedHolding:
    ticker: str
    symbol: str
    weight: float


@dataclass(frozen=True)
class BetaEstimate:
    """
    Beta of an asset against a market proxy.

    ``beta`` is ``None`` when the estimate is undefined (fewer than two aligned
    observations or a flat market series). Callers never see NaN.
    """

    beta: Optional[float]
    sample_size: int

    def __post_init__(self) -> None:
        if self.beta is not None and not math.isfinite(self.beta):
            object.__setattr__(self, "beta", None)
        if self.sample_size < 0:
            raise ValueError("sample_size must be non-negative")

    @property
    def defined(self) -> bool:
        return self.beta is not None

    @classmethod
    def undefined(cls, sample_size: int = 0) -> "BetaEstimate":
        return cls(beta=None, sample_size=sample_size)


@dataclass(frozen=True)
class CacheKey:
    provider: str
    symbol: str
    market_symbol: str
    lookback_days: int

    def as_string(self, prefix: str = "") -> str:
        return f"{prefix}{self.provider}_{self.symbol}_{self.market_symbol}_{self.lookback_days}"


@dataclass(frozen=True)
class CacheEntry:
    key: CacheKey
    beta: float
    sample_size: int
    computed_at: float  # epoch seconds

    def to_record(self) -> Dict[str, Any]:
        return {
            "beta": self.beta,
            "sampleSize": self.sample_size,
            "timestampMs": int(round(self.computed_at * 1000)),
        }

    @property
    def estimate(self) -> BetaEstimate:
        return BetaEstimate(beta=self.beta, sample_size=self.sample_size)
