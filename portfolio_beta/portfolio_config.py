"""Holdings input and weight normalization.

Contract notes:
- ``parse_holdings`` reads the ``TICKER, WEIGHT`` text format, one line per
  holding; weights may be fractions (``0.25``), percentages (``25%``) or
  dollar amounts (``$1,250``).
- ``load_portfolio_config`` resolves a YAML portfolio file.
- ``normalize_weights`` is the single source of truth for weight scaling and
  raises before any network activity when the input cannot be used.
"""

from __future__ import annotations

import math
import re
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import yaml

from portfolio_beta._logging import log_errors, portfolio_logger
from portfolio_beta.data_objects import Holding, NormalizedHolding
from portfolio_beta.exceptions import EmptyPortfolioError, InvalidWeightsError, PortfolioInputError

_NUMBER_NOISE = re.compile(r"[$,%]")


def parse_weight(raw: Union[str, float, int, None]) -> float:
    """
    Coerce a weight token to a float, returning NaN when it is not numeric.

    ``"25%"`` becomes ``0.25``; ``"$1,250"`` becomes ``1250.0``.
    """
    if raw is None or isinstance(raw, bool):
        return math.nan
    if isinstance(raw, (int, float)):
        return float(raw)
    text = str(raw)
    cleaned = _NUMBER_NOISE.sub("", text).strip()
    if not cleaned:
        return math.nan
    try:
        value = float(cleaned)
    except ValueError:
        return math.nan
    if "%" in text:
        value /= 100.0
    return value


def _holding_or_none(ticker: Any, raw_weight: Any) -> Optional[Holding]:
    ticker = str(ticker or "").strip()
    weight = parse_weight(raw_weight)
    if not ticker or not math.isfinite(weight) or weight <= 0:
        return None
    return Holding(ticker=ticker, raw_weight=weight)


def parse_holdings(text: str) -> List[Holding]:
    """
    Parse ``TICKER, WEIGHT`` lines into holdings.

    Blank lines are ignored; lines without a ticker or with a missing,
    non-numeric or non-positive weight are skipped.
    """
    holdings: List[Holding] = []
    for line in (text or "").splitlines():
        if not line.strip():
            continue
        ticker, _, weight = (part.strip() for part in line.partition(","))
        holding = _holding_or_none(ticker, weight)
        if holding is None:
            portfolio_logger.debug("skipping holdings line: %r", line)
            continue
        holdings.append(holding)
    return holdings


def _record_pair(record: Any) -> Tuple[Any, Any]:
    if not isinstance(record, Mapping):
        raise PortfolioInputError(f"Holdings entry must be a mapping with ticker and weight, got {record!r}")
    return record.get("ticker"), record.get("weight")


def holdings_from_records(records: Union[Mapping[str, Any], Iterable[Mapping[str, Any]]]) -> List[Holding]:
    """
    Build holdings from ``{ticker: weight}`` or ``[{"ticker", "weight"}, ...]``.

    Raises:
        PortfolioInputError: a list entry is not a mapping, or a ticker was
            read as a boolean (YAML 1.1 turns unquoted ``ON``/``YES`` keys into
            ``True``).
    """
    if isinstance(records, Mapping):
        pairs = list(records.items())
    else:
        pairs = [_record_pair(rec) for rec in records]
    flags = [t for t, _ in pairs if isinstance(t, bool)]
    if flags:
        raise PortfolioInputError(
            f"Ticker parsed as boolean {flags[0]!r}; quote tickers such as 'ON' or 'YES'",
            context={"tickers": flags},
        )
    holdings = [h for h in (_holding_or_none(t, w) for t, w in pairs) if h is not None]
    skipped = len(pairs) - len(holdings)
    if skipped:
        portfolio_logger.debug("skipped %d holdings records without a positive weight", skipped)
    return holdings


@log_errors("high")
def load_portfolio_config(filepath: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a portfolio YAML file.

    Expected shape::

        provider: yahoo        # optional
        market: SPY            # optional
        lookback_days: 252     # optional
        holdings:
          "AAPL": 25%
          "MSFT": 0.25
          "BRK.B": 1250

    ``holdings`` may also be a list of ``{ticker, weight}`` mappings. Quote
    tickers that YAML would read as booleans (``"ON"``, ``"YES"``).

    Returns:
        dict with keys ``holdings`` (list of Holding), ``provider``,
        ``market`` and ``lookback_days`` (``None`` when absent).
    """
    path = Path(filepath)
    with path.open("r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise PortfolioInputError(f"{path}: invalid YAML", original_error=e) from e
    if not isinstance(raw, dict):
        raise PortfolioInputError(f"{path}: expected a mapping at the top level")

    lookback = raw.get("lookback_days")
    return {
        "holdings": holdings_from_records(raw.get("holdings") or {}),
        "provider": raw.get("provider"),
        "market": raw.get("market"),
        "lookback_days": int(lookback) if lookback is not None else None,
    }


def normalize_weights(holdings: Sequence[Holding]) -> List[float]:
    """
    Scale raw weights so they sum to 1.

    Raises:
        EmptyPortfolioError: no holdings.
        InvalidWeightsError: a raw weight is not a positive finite number.
    """
    if not holdings:
        raise EmptyPortfolioError("No holdings.")
    bad = {h.ticker: h.raw_weight for h in holdings if not math.isfinite(h.raw_weight) or h.raw_weight <= 0}
    if bad:
        raise InvalidWeightsError(
            f"Holding weights must be positive: {', '.join(sorted(bad))}",
            context={"weights": bad},
        )
    total = math.fsum(h.raw_weight for h in holdings)
    if not math.isfinite(total):
        raise InvalidWeightsError(f"Sum of holding weights is {total}, cannot normalize.")
    return [h.raw_weight / total for h in holdings]


def standardize_holdings(
    holdings: Sequence[Holding],
    symbol_for: Callable[[str], str],
) -> List[NormalizedHolding]:
    """Normalize weights and resolve each ticker to its provider symbol."""
    weights = normalize_weights(holdings)
    return [
        NormalizedHolding(ticker=h.ticker, symbol=symbol_for(h.ticker), weight=w)
        for h, w in zip(holdings, weights)
    ]
