"""
Pytest configuration and shared fixtures.

Provides a fake transport serving canned provider payloads, a controllable
clock, a recording async sleep and helpers that render price series in the
stooq CSV and Yahoo chart JSON wire formats.
"""

import json
from typing import Dict, List, Sequence, Union

import numpy as np
import pandas as pd
import pytest

from portfolio_beta import config
from portfolio_beta._stooq_provider import StooqPriceSource
from portfolio_beta._yahoo_provider import YahooPriceSource
from portfolio_beta.beta_cache import BetaCache, InMemoryStore
from portfolio_beta.exceptions import NetworkFailure


class FakeTransport:
    """Serves payloads by URL; an Exception value is raised instead."""

    def __init__(self, responses: Dict[str, Union[str, Exception]] = None) -> None:
        self.responses: Dict[str, Union[str, Exception]] = dict(responses or {})
        self.calls: List[str] = []

    async def get_text(self, url: str) -> str:
        self.calls.append(url)
        if url not in self.responses:
            raise NetworkFailure("HTTP 404", status_code=404, request_url=url)
        payload = self.responses[url]
        if isinstance(payload, Exception):
            raise payload
        return payload


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def trading_days(n: int, start: str = "2024-01-02") -> List[str]:
    return [d.strftime("%Y-%m-%d") for d in pd.bdate_range(start, periods=n)]


def stooq_csv(dates: Sequence[str], closes: Sequence[float]) -> str:
    lines = ["Date,Open,High,Low,Close,Volume"]
    for d, c in zip(dates, closes):
        lines.append(f"{d},{c},{c},{c},{c},1000")
    return "\n".join(lines) + "\n"


def yahoo_json(dates: Sequence[str], closes: Sequence[float], *, adjusted: bool = True) -> str:
    stamps = [int(pd.Timestamp(d, tz="UTC").timestamp()) + 14 * 3600 + 30 * 60 for d in dates]
    indicators = {"quote": [{"close": list(closes)}]}
    if adjusted:
        indicators["adjclose"] = [{"adjclose": list(closes)}]
    return json.dumps({"chart": {"result": [{"timestamp": stamps, "indicators": indicators}], "error": None}})


def random_walk(n: int, seed: int, start: float = 100.0, vol: float = 0.01) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return start * np.cumprod(1.0 + rng.normal(0.0, vol, size=n))


def levered(market_prices: np.ndarray, beta: float, seed: int, noise: float = 0.0) -> np.ndarray:
    """Prices whose returns are ``beta * market returns`` plus optional noise."""
    market_returns = market_prices[1:] / market_prices[:-1] - 1.0
    rng = np.random.default_rng(seed)
    returns = beta * market_returns + rng.normal(0.0, noise, size=market_returns.size)
    return 50.0 * np.concatenate([[1.0], np.cumprod(1.0 + returns)])


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def stooq_source(transport) -> StooqPriceSource:
    return StooqPriceSource(transport=transport)


@pytest.fixture()
def yahoo_source(transport) -> YahooPriceSource:
    return YahooPriceSource(transport=transport)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def cache(store, clock) -> BetaCache:
    return BetaCache(store, clock=clock)


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture(autouse=True)
def _restore_config():
    """Snapshot mutable config dicts so tests can call ``configure`` freely."""
    snapshot = {name: dict(getattr(config, name)) for name in config._DEFAULTS}
    yield
    for name, values in snapshot.items():
        current = getattr(config, name)
        current.clear()
        current.update(values)
