"""Public API for portfolio_beta."""

from portfolio_beta.beta_analysis import (
    PortfolioAggregator,
    compute_beta,
    compute_portfolio_beta,
)
from portfolio_beta.beta_cache import BetaCache, FileStore, InMemoryStore, KeyValueStore
from portfolio_beta.beta_utils import align_returns, compute_beta as beta_from_returns, to_returns
from portfolio_beta.data_objects import BetaEstimate, Holding, NormalizedHolding
from portfolio_beta.portfolio_config import load_portfolio_config, normalize_weights, parse_holdings
from portfolio_beta.providers import (
    PriceSource,
    available_providers,
    get_price_source,
    register_price_source,
)
from portfolio_beta.results import HoldingBeta, PortfolioResult, StockBetaResult

__all__ = [
    "PortfolioAggregator",
    "compute_beta",
    "compute_portfolio_beta",
    "BetaCache",
    "FileStore",
    "InMemoryStore",
    "KeyValueStore",
    "align_returns",
    "beta_from_returns",
    "to_returns",
    "BetaEstimate",
    "Holding",
    "NormalizedHolding",
    "load_portfolio_config",
    "normalize_weights",
    "parse_holdings",
    "PriceSource",
    "available_providers",
    "get_price_source",
    "register_price_source",
    "HoldingBeta",
    "PortfolioResult",
    "StockBetaResult",
]
