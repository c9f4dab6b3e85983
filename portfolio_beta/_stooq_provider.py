"""Stooq daily CSV adapter."""

from __future__ import annotations

import io

import pandas as pd

from portfolio_beta.constants import PROVIDER_STOOQ, STOOQ_URL_TEMPLATE
from portfolio_beta.exceptions import DataUnavailable
from portfolio_beta.providers import BasePriceSource, build_price_history


def _find_column(columns, wanted: str) -> str:
    for col in columns:
        if str(col).strip().lower() == wanted:
            return col
    raise DataUnavailable(f"CSV header has no '{wanted}' column", source_name=PROVIDER_STOOQ)


class StooqPriceSource(BasePriceSource):
    """
    Daily history from stooq.com as delimited text.

    The first line is a header; the date and close columns are located by name
    (case-insensitive) and rows may arrive in any order.
    """

    name = PROVIDER_STOOQ
    url_template = STOOQ_URL_TEMPLATE

    def parse(self, payload: str, symbol: str) -> pd.Series:
        lines = [line for line in payload.strip().splitlines() if line.strip()]
        if len(lines) < 3:
            raise DataUnavailable(f"No data for {symbol}", source_name=self.name)

        frame = pd.read_csv(io.StringIO("\n".join(lines)), dtype=str, skipinitialspace=True)
        date_col = _find_column(frame.columns, "date")
        close_col = _find_column(frame.columns, "close")

        frame = frame[frame[date_col].notna() & (frame[date_col].str.strip() != "")]
        return build_price_history(
            frame[date_col].str.strip(),
            frame[close_col],
            symbol=symbol,
            source_name=self.name,
        )
