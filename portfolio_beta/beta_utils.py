"""
Return, alignment and beta helpers.

Pipeline for one asset/market pair:

    prices --to_returns--> returns --align_returns--> (asset, market) vectors
           --compute_beta--> BetaEstimate

Notes:
- Returns are simple day-over-day returns ``p1 / p0 - 1``. A pair where either
  close is non-positive is skipped rather than failing the series.
- Alignment keeps the asset's date order and only dates present in both series.
- Beta uses sample (n-1) covariance and variance:
  ``beta = Cov(R_asset, R_market) / Var(R_market)``.
"""

from __future__ import annotations

from typing import Optional, Tuple, Type

import numpy as np
import pandas as pd

from portfolio_beta import config
from portfolio_beta.data_objects import BetaEstimate
from portfolio_beta.exceptions import BetaEngineError, InsufficientOverlap, ZeroVariance


def to_returns(prices: pd.Series) -> pd.Series:
    """
    Compute day-over-day simple returns from a date-indexed price series.

    Each return is stamped with the later of the two dates. Pairs where
    either price is ``<= 0`` are dropped, so the result has
    ``len(prices) - 1`` rows minus the skipped pairs.

    Args:
        prices (pd.Series): Daily closes, strictly increasing dates.

    Returns:
        pd.Series: Returns indexed by date.
    """
    prev = prices.shift(1)
    valid = (prev > 0) & (prices > 0)
    returns = prices[valid] / prev[valid] - 1.0
    returns.name = prices.name
    return returns.astype(float)


def align_returns(asset: pd.Series, market: pd.Series) -> Tuple[np.ndarray, np.ndarray]:
    """
    Pair two return series on their common dates.

    Args:
        asset: Asset returns; output order follows this series.
        market: Market returns; dates must be unique.

    Returns:
        (asset_array, market_array): equal-length float arrays. Both are empty
        when no dates intersect.
    """
    common = asset.index.isin(market.index)
    asset_aligned = asset[common]
    market_aligned = market.reindex(asset_aligned.index)
    return asset_aligned.to_numpy(dtype=float), market_aligned.to_numpy(dtype=float)


def compute_beta(asset_returns: np.ndarray, market_returns: np.ndarray) -> BetaEstimate:
    """
    Beta of aligned asset returns against aligned market returns.

    Returns an undefined estimate (``beta=None``) when there are fewer than two
    observations or when the market variance is exactly zero; ``sample_size``
    is always the number of aligned points.

    Raises:
        ValueError: the vectors differ in length (caller bug, not bad data).

    Examples:
        >>> r = np.array([0.01, -0.02, 0.015])
        >>> round(compute_beta(r, r).beta, 12)
        1.0
    """
    asset_returns = np.asarray(asset_returns, dtype=float)
    market_returns = np.asarray(market_returns, dtype=float)
    if asset_returns.shape != market_returns.shape:
        raise ValueError(
            f"Aligned return vectors differ in length: {asset_returns.shape} vs {market_returns.shape}"
        )

    n = int(asset_returns.size)
    if n < int(config.DATA_QUALITY_THRESHOLDS["min_observations_for_beta"]):
        return BetaEstimate.undefined(n)

    market_variance = float(np.var(market_returns, ddof=1))
    if market_variance == 0.0 or not np.isfinite(market_variance):
        return BetaEstimate.undefined(n)

    covariance = float(np.cov(asset_returns, market_returns, ddof=1)[0, 1])
    return BetaEstimate(beta=covariance / market_variance, sample_size=n)


def is_reliable(estimate: BetaEstimate, min_observations: Optional[int] = None) -> bool:
    """True when the estimate is defined and rests on enough observations."""
    if min_observations is None:
        min_observations = int(config.DATA_QUALITY_THRESHOLDS["min_reliable_observations"])
    return estimate.defined and estimate.sample_size >= min_observations


def undefined_reason(estimate: BetaEstimate) -> Type[BetaEngineError]:
    """Classify why ``estimate`` has no beta."""
    if estimate.sample_size < int(config.DATA_QUALITY_THRESHOLDS["min_observations_for_beta"]):
        return InsufficientOverlap
    return ZeroVariance
