"""Yahoo Finance chart-API adapter."""

from __future__ import annotations

import json

import pandas as pd

from portfolio_beta.constants import PROVIDER_YAHOO, YAHOO_URL_TEMPLATE
from portfolio_beta.exceptions import DataUnavailable
from portfolio_beta.providers import BasePriceSource, build_price_history


class YahooPriceSource(BasePriceSource):
    """
    Daily history from the v8 chart endpoint.

    ``chart.result[0]`` carries a ``timestamp`` array (Unix seconds) and
    parallel price arrays; adjusted closes are preferred over raw closes.
    Dates are taken in UTC.
    """

    name = PROVIDER_YAHOO
    url_template = YAHOO_URL_TEMPLATE

    def parse(self, payload: str, symbol: str) -> pd.Series:
        data = json.loads(payload)
        results = (data.get("chart") or {}).get("result") or []
        result = results[0] if results else None
        if not result or not result.get("timestamp") or not (result.get("indicators") or {}).get("quote"):
            raise DataUnavailable(f"Invalid Yahoo JSON for {symbol}", source_name=self.name)

        indicators = result["indicators"]
        adjclose = (indicators.get("adjclose") or [{}])[0].get("adjclose")
        closes = adjclose or indicators["quote"][0].get("close")
        if not closes:
            raise DataUnavailable(f"No close prices for {symbol}", source_name=self.name)

        stamps = pd.to_numeric(pd.Series(result["timestamp"], dtype="object"), errors="coerce")
        dates = pd.to_datetime(stamps, unit="s", utc=True).dt.tz_convert(None)
        return build_price_history(dates, closes, symbol=symbol, source_name=self.name)
