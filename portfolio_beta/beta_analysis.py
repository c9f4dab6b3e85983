#!/usr/bin/env python3
# coding: utf-8

"""
Core beta estimation business logic.

Called by:
- ``run_beta.run_portfolio_beta`` / ``run_beta.run_stock_beta`` wrappers.
- Any service or UI layer through ``compute_beta`` / ``compute_portfolio_beta``.

Primary flow (portfolio):
    1) Normalize weights and resolve provider symbols (fatal on bad input,
       before any network activity).
    2) For each holding, in order: serve from ``BetaCache`` when possible.
    3) On a miss: fetch the market series once per batch, fetch the holding,
       returns -> align -> beta, write the cache.
    4) Any per-holding error marks that holding failed; the batch continues.
    5) Fold ``weight * beta`` (undefined -> 0) into the portfolio beta.

Concurrency contract:
- Holdings are processed strictly sequentially.
- Every remote fetch after the first in a batch waits ``fetch_delay_seconds``
  first, through the injected async ``sleep``.
- The market return series is built once and never mutated.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence

import pandas as pd

from portfolio_beta import config
from portfolio_beta._logging import (
    log_errors,
    log_operation,
    log_portfolio_operation,
    log_timing,
    portfolio_logger,
)
from portfolio_beta.beta_cache import BetaCache
from portfolio_beta.beta_utils import align_returns, compute_beta as _beta_from_vectors, to_returns, undefined_reason
from portfolio_beta.constants import (
    STATUS_CACHE_HIT,
    STATUS_COMPUTED,
    STATUS_FAILED,
    STATUS_FETCHING,
)
from portfolio_beta.data_loader import fetch_price_history, validate_lookback
from portfolio_beta.data_objects import BetaEstimate, Holding, NormalizedHolding
from portfolio_beta.exceptions import BetaEngineError, MarketDataUnavailable
from portfolio_beta.portfolio_config import standardize_holdings
from portfolio_beta.providers import PriceSource, default_market_symbol, get_price_source
from portfolio_beta.results import HoldingBeta, PortfolioResult, StockBetaResult

SleepFn = Callable[[float], Awaitable[None]]


class PortfolioAggregator:
    """
    Computes per-holding and portfolio betas against one market proxy.

    Args:
        source: Price provider adapter.
        cache: Beta cache; a fresh in-memory cache when omitted.
        fetch_delay_seconds: Pause before each remote fetch except the first.
        sleep: Awaitable sleep, ``asyncio.sleep`` by default.
    """

    def __init__(
        self,
        source: PriceSource,
        cache: Optional[BetaCache] = None,
        *,
        fetch_delay_seconds: Optional[float] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.source = source
        self.cache = cache if cache is not None else BetaCache()
        self.fetch_delay_seconds = float(
            fetch_delay_seconds if fetch_delay_seconds is not None else config.BETA_DEFAULTS["fetch_delay_seconds"]
        )
        self.sleep = sleep
        self._remote_fetches = 0
        self._market_returns: Optional[pd.Series] = None

    @property
    def provider(self) -> str:
        return self.source.name

    # ── batch state ───────────────────────────────────────────────────
    def _start_batch(self) -> None:
        self._remote_fetches = 0
        self._market_returns = None

    async def _throttled_fetch(self, symbol: str, lookback_days: int) -> pd.Series:
        if self._remote_fetches > 0 and self.fetch_delay_seconds > 0:
            portfolio_logger.debug("throttling %.2fs before %s", self.fetch_delay_seconds, symbol)
            await self.sleep(self.fetch_delay_seconds)
        self._remote_fetches += 1
        return await fetch_price_history(self.source, symbol, lookback_days)

    async def _market(self, market_symbol: str, lookback_days: int) -> pd.Series:
        if self._market_returns is None:
            log_portfolio_operation("market_fetch", {"provider": self.provider, "symbol": market_symbol})
            try:
                prices = await self._throttled_fetch(market_symbol, lookback_days)
            except Exception as e:
                message = e.message if isinstance(e, BetaEngineError) else str(e)
                raise MarketDataUnavailable(
                    f"Market series {market_symbol} unavailable: {message}",
                    source_name=self.provider,
                    original_error=e,
                ) from e
            self._market_returns = to_returns(prices)
        return self._market_returns

    async def _estimate(self, symbol: str, market_symbol: str, lookback_days: int) -> BetaEstimate:
        market_returns = await self._market(market_symbol, lookback_days)
        prices = await self._throttled_fetch(symbol, lookback_days)
        asset, market = align_returns(to_returns(prices), market_returns)
        return _beta_from_vectors(asset, market)

    # ── public API ────────────────────────────────────────────────────
    @log_errors("high")
    @log_operation("stock_beta")
    async def compute_beta(
        self,
        symbol: str,
        market_symbol: Optional[str] = None,
        lookback_days: Optional[int] = None,
    ) -> BetaEstimate:
        """
        Beta of one display ticker against ``market_symbol``.

        Returns an undefined estimate for degenerate data. Fetch failures
        (``DataUnavailable``, ``NetworkFailure``) propagate.
        """
        result = await self.analyze_stock(symbol, market_symbol, lookback_days)
        return BetaEstimate(beta=result.beta, sample_size=result.sample_size)

    async def analyze_stock(
        self,
        ticker: str,
        market_symbol: Optional[str] = None,
        lookback_days: Optional[int] = None,
    ) -> StockBetaResult:
        """Like ``compute_beta`` but keeps the resolved symbols and cache flag."""
        lookback = validate_lookback(lookback_days if lookback_days is not None else config.BETA_DEFAULTS["lookback_days"])
        market = self.source.normalize_symbol(market_symbol or default_market_symbol(self.provider))
        symbol = self.source.normalize_symbol(ticker)
        self._start_batch()

        key = self.cache.make_key(self.provider, symbol, market, lookback)
        entry = self.cache.get_entry(key)
        served_from_cache = entry is not None
        if entry is not None:
            estimate = entry.estimate
        else:
            estimate = await self._estimate(symbol, market, lookback)
            self.cache.put(key, estimate)

        return StockBetaResult(
            ticker=ticker,
            symbol=symbol,
            market_symbol=market,
            provider=self.provider,
            lookback_days=lookback,
            beta=estimate.beta,
            sample_size=estimate.sample_size,
            served_from_cache=served_from_cache,
        )

    @log_errors("high")
    @log_operation("portfolio_beta")
    @log_timing(30.0)
    async def compute_portfolio_beta(
        self,
        holdings: Sequence[Holding],
        market_symbol: Optional[str] = None,
        lookback_days: Optional[int] = None,
    ) -> PortfolioResult:
        """
        Per-holding betas and the weighted portfolio beta.

        Raises:
            EmptyPortfolioError / InvalidWeightsError: unusable holdings input.
            ValueError: non-positive lookback or an unnormalizable ticker.
            MarketDataUnavailable: the market proxy could not be fetched.
        """
        lookback = validate_lookback(lookback_days if lookback_days is not None else config.BETA_DEFAULTS["lookback_days"])
        market = self.source.normalize_symbol(market_symbol or default_market_symbol(self.provider))
        resolved = standardize_holdings(holdings, self.source.normalize_symbol)
        self._start_batch()

        per_holding: List[HoldingBeta] = []
        for index, holding in enumerate(resolved, start=1):
            portfolio_logger.info("beta %d/%d: %s", index, len(resolved), holding.symbol)
            per_holding.append(await self._compute_holding(holding, market, lookback))

        result = PortfolioResult.from_holdings(
            per_holding,
            provider=self.provider,
            market_symbol=market,
            lookback_days=lookback,
            metadata={"remote_fetches": self._remote_fetches},
        )
        log_portfolio_operation("portfolio_beta_completed", result.get_summary())
        return result

    async def _compute_holding(self, holding: NormalizedHolding, market: str, lookback: int) -> HoldingBeta:
        row = HoldingBeta(ticker=holding.ticker, symbol=holding.symbol, weight=holding.weight)
        key = self.cache.make_key(self.provider, holding.symbol, market, lookback)

        entry = self.cache.get_entry(key)
        if entry is not None:
            row.beta = entry.beta
            row.sample_size = entry.sample_size
            row.served_from_cache = True
            row.status = STATUS_CACHE_HIT
            return row

        row.status = STATUS_FETCHING
        try:
            estimate = await self._estimate(holding.symbol, market, lookback)
        except MarketDataUnavailable:
            raise
        except Exception as e:
            log_portfolio_operation(
                "holding_beta_failed",
                {"ticker": holding.ticker, "symbol": holding.symbol, "error": str(e), "error_type": type(e).__name__},
            )
            row.failed = True
            row.error = type(e).__name__
            row.status = STATUS_FAILED
            return row

        self.cache.put(key, estimate)
        row.sample_size = estimate.sample_size
        if estimate.defined:
            row.beta = estimate.beta
            row.status = STATUS_COMPUTED
        else:
            reason = undefined_reason(estimate)
            log_portfolio_operation(
                "holding_beta_undefined",
                {"ticker": holding.ticker, "symbol": holding.symbol, "sample_size": estimate.sample_size, "reason": reason.__name__},
            )
            row.failed = True
            row.error = reason.__name__
            row.status = STATUS_FAILED
        return row


# ── module-level convenience API ──────────────────────────────────────

def _aggregator(provider: Optional[str], cache: Optional[BetaCache], **kwargs) -> PortfolioAggregator:
    return PortfolioAggregator(get_price_source(provider), cache, **kwargs)


async def compute_beta(
    symbol: str,
    market_symbol: Optional[str] = None,
    lookback_days: Optional[int] = None,
    *,
    provider: Optional[str] = None,
    cache: Optional[BetaCache] = None,
) -> BetaEstimate:
    """Beta of ``symbol`` against ``market_symbol`` using the named provider."""
    return await _aggregator(provider, cache).compute_beta(symbol, market_symbol, lookback_days)


async def compute_portfolio_beta(
    holdings: Sequence[Holding],
    market_symbol: Optional[str] = None,
    lookback_days: Optional[int] = None,
    *,
    provider: Optional[str] = None,
    cache: Optional[BetaCache] = None,
) -> PortfolioResult:
    """Portfolio beta of ``holdings`` against ``market_symbol`` using the named provider."""
    return await _aggregator(provider, cache).compute_portfolio_beta(holdings, market_symbol, lookback_days)
