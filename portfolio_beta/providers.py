"""Price source protocol, shared adapter base and provider registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, Optional, Protocol, runtime_checkable
from urllib.parse import quote

import numpy as np
import pandas as pd

from portfolio_beta import config
from portfolio_beta._logging import portfolio_logger
from portfolio_beta._ticker import normalize_symbol
from portfolio_beta.exceptions import DataUnavailable
from portfolio_beta.transport import RequestsTransport, Transport


@runtime_checkable
class PriceSource(Protocol):
    name: str

    def normalize_symbol(self, raw: str) -> str: ...
    async def fetch(self, symbol: str) -> pd.Series: ...


def build_price_history(
    dates: Iterable,
    closes: Iterable,
    *,
    symbol: str,
    source_name: str,
) -> pd.Series:
    """
    Turn parallel date/close sequences into a clean daily price history.

    Unparseable dates and non-finite closes are dropped, the result is sorted
    by date and duplicate dates keep their last row. Raises ``DataUnavailable``
    when fewer than ``min_price_rows`` rows survive.
    """
    index = pd.to_datetime(pd.Index(list(dates)), errors="coerce")
    values = pd.to_numeric(pd.Series(list(closes), dtype="object"), errors="coerce").to_numpy(dtype=float)
    if len(index) != len(values):
        raise DataUnavailable(
            f"Mismatched date/close lengths for {symbol}",
            source_name=source_name,
            context={"dates": len(index), "closes": len(values)},
        )

    prices = pd.Series(values, index=index, name=symbol, dtype=float)
    prices = prices[prices.index.notna() & np.isfinite(prices.to_numpy())]
    prices.index = prices.index.normalize()
    prices = prices.sort_index(kind="mergesort")
    prices = prices[~prices.index.duplicated(keep="last")]

    min_rows = int(config.DATA_QUALITY_THRESHOLDS["min_price_rows"])
    if len(prices) < min_rows:
        raise DataUnavailable(
            f"No data for {symbol}: {len(prices)} usable rows",
            source_name=source_name,
            context={"symbol": symbol, "rows": len(prices)},
        )
    return prices


class BasePriceSource(ABC):
    """
    Fetch-and-parse adapter for one price provider.

    Subclasses supply the URL template and ``parse``; transport failures
    surface as ``NetworkFailure`` and anything wrong with the payload as
    ``DataUnavailable``.
    """

    name: str = ""
    url_template: str = ""

    def __init__(self, transport: Optional[Transport] = None) -> None:
        self.transport = transport or RequestsTransport()

    def normalize_symbol(self, raw: str) -> str:
        return normalize_symbol(raw, self.name)

    def url_for(self, symbol: str) -> str:
        return self.url_template.format(symbol=quote(symbol, safe=""))

    @abstractmethod
    def parse(self, payload: str, symbol: str) -> pd.Series:
        """Convert a raw provider payload into a price history."""

    async def fetch(self, symbol: str) -> pd.Series:
        payload = await self.transport.get_text(self.url_for(symbol))
        if not payload or not payload.strip():
            raise DataUnavailable(f"Empty response for {symbol}", source_name=self.name)
        try:
            prices = self.parse(payload, symbol)
        except DataUnavailable:
            raise
        except (ValueError, KeyError, TypeError, IndexError, AttributeError) as exc:
            raise DataUnavailable(
                f"Malformed response for {symbol}",
                source_name=self.name,
                original_error=exc,
            ) from exc
        portfolio_logger.debug(
            "[%s] %s: %d rows %s..%s",
            self.name, symbol, len(prices), prices.index[0].date(), prices.index[-1].date(),
        )
        return prices

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name})>"


_price_sources: Dict[str, Callable[..., PriceSource]] = {}


def register_price_source(name: str, factory: Callable[..., PriceSource]) -> None:
    _price_sources[name.lower()] = factory


def _ensure_builtin_sources() -> None:
    if _price_sources:
        return
    from portfolio_beta._stooq_provider import StooqPriceSource
    from portfolio_beta._yahoo_provider import YahooPriceSource

    register_price_source(StooqPriceSource.name, StooqPriceSource)
    register_price_source(YahooPriceSource.name, YahooPriceSource)


def available_providers() -> list[str]:
    _ensure_builtin_sources()
    return sorted(_price_sources)


def get_price_source(name: Optional[str] = None, transport: Optional[Transport] = None) -> PriceSource:
    """Instantiate the adapter registered under ``name`` (default from config)."""
    _ensure_builtin_sources()
    key = (name or config.BETA_DEFAULTS["provider"]).lower()
    try:
        factory = _price_sources[key]
    except KeyError:
        raise KeyError(f"Unknown price provider: {key!r} (available: {', '.join(sorted(_price_sources))})") from None
    return factory(transport=transport)


def default_market_symbol(provider: Optional[str] = None) -> str:
    key = (provider or config.BETA_DEFAULTS["provider"]).lower()
    return config.MARKET_PROXIES[key]
