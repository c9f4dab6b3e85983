"""
Price-history loading for beta estimation.

Wraps a ``PriceSource`` fetch with the lookback policy: the beta window is the
trailing ``lookback_days`` trading days, and a few extra rows
(``lookback_padding_days``) are kept so that skipped bad ticks and holidays
missing on one side do not shrink the aligned sample below the window.
"""

from __future__ import annotations

from typing import Optional

import pandas as pd

from portfolio_beta import config
from portfolio_beta._logging import log_errors, portfolio_logger
from portfolio_beta.providers import PriceSource


def validate_lookback(lookback_days: int) -> int:
    try:
        lookback = int(lookback_days)
    except (TypeError, ValueError):
        raise ValueError(f"lookback_days must be an integer, got {lookback_days!r}") from None
    if lookback <= 0:
        raise ValueError(f"lookback_days must be positive, got {lookback}")
    return lookback


def trim_to_lookback(
    prices: pd.Series,
    lookback_days: int,
    padding_days: Optional[int] = None,
) -> pd.Series:
    """Keep the last ``lookback_days + padding_days`` rows of ``prices``."""
    if padding_days is None:
        padding_days = int(config.BETA_DEFAULTS["lookback_padding_days"])
    keep = validate_lookback(lookback_days) + max(int(padding_days), 0)
    return prices.iloc[-keep:]


@log_errors("medium")
async def fetch_price_history(
    source: PriceSource,
    symbol: str,
    lookback_days: int,
    *,
    padding_days: Optional[int] = None,
) -> pd.Series:
    """
    Fetch ``symbol`` (already provider-normalized) and trim it to the window.

    Raises:
        DataUnavailable: empty, malformed or too-short history.
        NetworkFailure: transport error or timeout.
    """
    prices = await source.fetch(symbol)
    trimmed = trim_to_lookback(prices, lookback_days, padding_days)
    portfolio_logger.debug("%s: kept %d of %d price rows", symbol, len(trimmed), len(prices))
    return trimmed
