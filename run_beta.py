#!/usr/bin/env python3
# coding: utf-8

"""
Beta CLI & API Interface Module

Dual-mode wrappers around ``portfolio_beta``:

    function_name(parameters, *, return_data: bool = False)

CLI mode (default, return_data=False):
    - Prints the formatted report to stdout.
    - Example: python run_beta.py --portfolio portfolio.yaml

API mode (return_data=True):
    - Returns the result object (``PortfolioResult`` / ``StockBetaResult``)
      without printing.

Holdings can come from a YAML portfolio file, a text file or an inline string
in ``TICKER, WEIGHT`` format (one holding per line; ``25%`` and ``0.25`` are
both accepted).
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Union

from dotenv import load_dotenv

load_dotenv()

from portfolio_beta import config
from portfolio_beta.beta_analysis import PortfolioAggregator
from portfolio_beta.beta_cache import BetaCache, FileStore, InMemoryStore
from portfolio_beta.constants import VALID_PROVIDERS
from portfolio_beta.data_objects import Holding
from portfolio_beta.exceptions import BetaEngineError
from portfolio_beta.portfolio_config import load_portfolio_config, parse_holdings
from portfolio_beta.providers import get_price_source
from portfolio_beta.results import PortfolioResult, StockBetaResult
from portfolio_beta.risk_flags import generate_flags


def _build_cache(cache_dir: Optional[str], use_cache: bool) -> BetaCache:
    if not use_cache:
        return BetaCache(InMemoryStore())
    return BetaCache(FileStore(cache_dir or config.CACHE_CONFIG["cache_dir"]))


def _print_flags(result: PortfolioResult) -> None:
    flags = generate_flags(result)
    if not flags:
        return
    print()
    for flag in flags:
        print(f"[{flag['severity']}] {flag['message']}")


def run_portfolio_beta(
    holdings: Sequence[Holding],
    *,
    provider: Optional[str] = None,
    market: Optional[str] = None,
    lookback_days: Optional[int] = None,
    cache_dir: Optional[str] = None,
    use_cache: bool = True,
    as_json: bool = False,
    return_data: bool = False,
) -> Optional[PortfolioResult]:
    """
    Portfolio beta for ``holdings``.

    Batch-level errors (no holdings, zero total weight, market proxy
    unavailable) propagate as ``BetaEngineError``.
    """
    aggregator = PortfolioAggregator(get_price_source(provider), _build_cache(cache_dir, use_cache))
    result = asyncio.run(aggregator.compute_portfolio_beta(holdings, market, lookback_days))

    if return_data:
        return result

    if as_json:
        payload = result.to_api_response()
        payload["flags"] = generate_flags(result)
        print(json.dumps(payload, indent=2))
    else:
        print(result.to_cli_report())
        _print_flags(result)
    return None


def run_stock_beta(
    ticker: str,
    *,
    provider: Optional[str] = None,
    market: Optional[str] = None,
    lookback_days: Optional[int] = None,
    cache_dir: Optional[str] = None,
    use_cache: bool = True,
    as_json: bool = False,
    return_data: bool = False,
) -> Optional[StockBetaResult]:
    """Beta of a single ticker against the market proxy."""
    aggregator = PortfolioAggregator(get_price_source(provider), _build_cache(cache_dir, use_cache))
    result = asyncio.run(aggregator.analyze_stock(ticker, market, lookback_days))

    if return_data:
        return result

    if as_json:
        print(json.dumps(result.to_api_response(), indent=2))
    else:
        print(result.to_cli_report())
    return None


def _holdings_from_args(args: argparse.Namespace) -> Union[dict, List[Holding]]:
    if args.portfolio:
        return load_portfolio_config(args.portfolio)
    if args.holdings_file:
        return parse_holdings(Path(args.holdings_file).read_text(encoding="utf-8"))
    # allow literal "\n" separators on the command line
    return parse_holdings(args.holdings.replace("\\n", "\n"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Estimate holding and portfolio betas from daily prices")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--portfolio", type=str, help="Path to YAML portfolio file")
    source.add_argument("--holdings", type=str, help='Inline holdings, e.g. "AAPL, 25%%\\nMSFT, 0.25"')
    source.add_argument("--holdings-file", type=str, help="Text file with one 'TICKER, WEIGHT' per line")
    source.add_argument("--stock", type=str, help="Single ticker symbol")
    parser.add_argument("--provider", choices=VALID_PROVIDERS, default=None,
                        help=f"Price provider (default: {config.BETA_DEFAULTS['provider']})")
    parser.add_argument("--market", type=str, default=None, help="Market proxy symbol (default depends on provider)")
    parser.add_argument("--lookback", type=int, default=None,
                        help=f"Lookback window in trading days (default: {config.BETA_DEFAULTS['lookback_days']})")
    parser.add_argument("--cache-dir", type=str, default=None, help="Directory for cached betas")
    parser.add_argument("--no-cache", action="store_true", help="Do not read or write the on-disk cache")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    common = dict(
        market=args.market,
        lookback_days=args.lookback,
        cache_dir=args.cache_dir,
        use_cache=not args.no_cache,
        as_json=args.json,
    )

    try:
        if args.stock:
            run_stock_beta(args.stock, provider=args.provider, **common)
        elif args.portfolio or args.holdings or args.holdings_file:
            loaded = _holdings_from_args(args)
            provider = args.provider
            if isinstance(loaded, dict):
                holdings = loaded["holdings"]
                provider = provider or loaded["provider"]
                common["market"] = common["market"] or loaded["market"]
                common["lookback_days"] = common["lookback_days"] or loaded["lookback_days"]
            else:
                holdings = loaded
            run_portfolio_beta(holdings, provider=provider, **common)
        else:
            parser.print_help()
            return 2
    except (BetaEngineError, ValueError, KeyError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
