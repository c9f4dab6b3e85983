"""Tests for the price source adapters, registry and symbol normalization."""

import json

import pandas as pd
import pytest

from portfolio_beta._stooq_provider import StooqPriceSource
from portfolio_beta._ticker import normalize_stooq_symbol, normalize_symbol, normalize_yahoo_symbol
from portfolio_beta._yahoo_provider import YahooPriceSource
from portfolio_beta.exceptions import DataUnavailable, NetworkFailure
from portfolio_beta.providers import (
    PriceSource,
    available_providers,
    build_price_history,
    default_market_symbol,
    get_price_source,
)
from tests.conftest import stooq_csv, trading_days, yahoo_json


# =============================================================
# symbol normalization
# =============================================================

class TestSymbolNormalization:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("AAPL", "aapl.us"),
            ("  msft ", "msft.us"),
            ("spy.us", "spy.us"),
            ("VOD.UK", "vod.uk"),
            ("BRK.B", "brk.b"),
            ("BRK B", "brkb.us"),
        ],
    )
    def test_stooq(self, raw, expected):
        assert normalize_stooq_symbol(raw) == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("aapl", "AAPL"),
            ("BRK.B", "BRK-B"),
            (" bf.b ", "BF-B"),
            ("SPY", "SPY"),
        ],
    )
    def test_yahoo(self, raw, expected):
        assert normalize_yahoo_symbol(raw) == expected

    def test_idempotent_for_cache_keys(self):
        for provider in ("stooq", "yahoo"):
            once = normalize_symbol("brk.b", provider)
            assert normalize_symbol(once, provider) == once

    def test_empty_ticker_rejected(self):
        with pytest.raises(ValueError):
            normalize_symbol("   ", "stooq")

    def test_unknown_provider(self):
        with pytest.raises(KeyError):
            normalize_symbol("AAPL", "bloomberg")


# =============================================================
# build_price_history
# =============================================================

class TestBuildPriceHistory:

    def test_sorts_and_drops_duplicates_keeping_last(self):
        prices = build_price_history(
            ["2024-01-04", "2024-01-02", "2024-01-03", "2024-01-03"],
            [103.0, 101.0, 102.0, 102.5],
            symbol="x",
            source_name="test",
        )
        assert prices.index.is_monotonic_increasing
        assert prices.index.is_unique
        assert prices.tolist() == [101.0, 102.5, 103.0]

    def test_drops_unusable_rows(self):
        prices = build_price_history(
            ["2024-01-02", "not-a-date", "2024-01-04", "2024-01-05"],
            [100.0, 101.0, None, 103.0],
            symbol="x",
            source_name="test",
        )
        assert len(prices) == 2

    def test_fewer_than_two_rows_is_unavailable(self):
        with pytest.raises(DataUnavailable):
            build_price_history(["2024-01-02"], [100.0], symbol="x", source_name="test")


# =============================================================
# Stooq
# =============================================================

class TestStooqPriceSource:

    @pytest.mark.asyncio
    async def test_fetch_parses_csv(self, transport, stooq_source):
        dates = trading_days(5)
        transport.responses[stooq_source.url_for("aapl.us")] = stooq_csv(dates, [1, 2, 3, 4, 5])

        prices = await stooq_source.fetch("aapl.us")

        assert isinstance(prices, pd.Series)
        assert prices.tolist() == [1.0, 2.0, 3.0, 4.0, 5.0]
        assert prices.index[0] == pd.Timestamp(dates[0])
        assert transport.calls == ["https://stooq.com/q/d/l/?s=aapl.us&i=d"]

    @pytest.mark.asyncio
    async def test_header_case_and_order_independent(self, transport, stooq_source):
        payload = "CLOSE,Volume,DATE\n12.5,10,2024-01-03\n12.0,10,2024-01-02\nn/a,10,2024-01-04\n13.0,10,2024-01-05\n"
        transport.responses[stooq_source.url_for("x.us")] = payload

        prices = await stooq_source.fetch("x.us")

        assert prices.tolist() == [12.0, 12.5, 13.0]

    @pytest.mark.asyncio
    async def test_no_data_payload(self, transport, stooq_source):
        transport.responses[stooq_source.url_for("zzzz.us")] = "No data"
        with pytest.raises(DataUnavailable):
            await stooq_source.fetch("zzzz.us")

    @pytest.mark.asyncio
    async def test_missing_close_column(self, transport, stooq_source):
        transport.responses[stooq_source.url_for("x.us")] = "Date,Open\n2024-01-02,1\n2024-01-03,2\n"
        with pytest.raises(DataUnavailable):
            await stooq_source.fetch("x.us")

    @pytest.mark.asyncio
    async def test_empty_body(self, transport, stooq_source):
        transport.responses[stooq_source.url_for("x.us")] = "   "
        with pytest.raises(DataUnavailable):
            await stooq_source.fetch("x.us")

    @pytest.mark.asyncio
    async def test_network_failure_propagates(self, transport, stooq_source):
        transport.responses[stooq_source.url_for("x.us")] = NetworkFailure("Timeout")
        with pytest.raises(NetworkFailure):
            await stooq_source.fetch("x.us")


# =============================================================
# Yahoo
# =============================================================

class TestYahooPriceSource:

    @pytest.mark.asyncio
    async def test_fetch_prefers_adjclose(self, transport, yahoo_source):
        dates = trading_days(3)
        payload = json.loads(yahoo_json(dates, [10.0, 11.0, 12.0]))
        payload["chart"]["result"][0]["indicators"]["quote"][0]["close"] = [99.0, 99.0, 99.0]
        transport.responses[yahoo_source.url_for("BRK-B")] = json.dumps(payload)

        prices = await yahoo_source.fetch("BRK-B")

        assert prices.tolist() == [10.0, 11.0, 12.0]
        assert [d.strftime("%Y-%m-%d") for d in prices.index] == dates
        assert "chart/BRK-B?range=2y&interval=1d" in transport.calls[0]

    @pytest.mark.asyncio
    async def test_falls_back_to_close(self, transport, yahoo_source):
        dates = trading_days(3)
        transport.responses[yahoo_source.url_for("SPY")] = yahoo_json(dates, [1.0, 2.0, 3.0], adjusted=False)

        prices = await yahoo_source.fetch("SPY")

        assert prices.tolist() == [1.0, 2.0, 3.0]

    @pytest.mark.asyncio
    async def test_null_prices_dropped(self, transport, yahoo_source):
        dates = trading_days(4)
        transport.responses[yahoo_source.url_for("SPY")] = yahoo_json(dates, [1.0, None, 3.0, 4.0])

        prices = await yahoo_source.fetch("SPY")

        assert len(prices) == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            "{not json",
            json.dumps({"chart": {"result": None, "error": {"code": "Not Found"}}}),
            json.dumps({"chart": {"result": [{"timestamp": [1], "indicators": {}}]}}),
            json.dumps([1, 2, 3]),
        ],
    )
    async def test_malformed_payloads(self, transport, yahoo_source, payload):
        transport.responses[yahoo_source.url_for("SPY")] = payload
        with pytest.raises(DataUnavailable):
            await yahoo_source.fetch("SPY")


# =============================================================
# registry
# =============================================================

class TestRegistry:

    def test_builtin_providers(self):
        assert available_providers() == ["stooq", "yahoo"]

    def test_get_price_source(self, transport):
        source = get_price_source("STOOQ", transport=transport)
        assert isinstance(source, StooqPriceSource)
        assert isinstance(source, PriceSource)
        assert source.transport is transport

    def test_default_provider_from_config(self, transport):
        assert isinstance(get_price_source(transport=transport), YahooPriceSource)

    def test_unknown_provider(self):
        with pytest.raises(KeyError):
            get_price_source("bloomberg")

    def test_default_market_symbols(self):
        assert default_market_symbol("stooq") == "spy.us"
        assert default_market_symbol("yahoo") == "SPY"
