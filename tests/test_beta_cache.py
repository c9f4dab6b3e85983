"""Tests for BetaCache expiry, corruption handling and the backing stores."""

import json

import pytest

from portfolio_beta import config
from portfolio_beta.beta_cache import BetaCache, FileStore, InMemoryStore, KeyValueStore
from portfolio_beta.data_objects import BetaEstimate, CacheKey

DAY = 24 * 60 * 60


@pytest.fixture()
def key(cache) -> CacheKey:
    return cache.make_key("stooq", "aapl.us", "spy.us", 252)


class TestKeys:

    def test_key_string_format(self, cache, key):
        assert key.as_string(cache.prefix) == "mb_beta_cache_v2_stooq_aapl.us_spy.us_252"

    def test_lookback_part_of_key(self, cache, key):
        assert cache.make_key("stooq", "aapl.us", "spy.us", 126) != key


class TestBetaCache:

    def test_miss_on_empty_store(self, cache):
        assert cache.get("stooq", "aapl.us", "spy.us", 252) is None

    def test_put_then_get(self, cache, key, store):
        entry = cache.put(key, BetaEstimate(beta=1.23, sample_size=251))

        assert entry is not None
        assert cache.get("stooq", "aapl.us", "spy.us", 252) == BetaEstimate(beta=1.23, sample_size=251)
        record = json.loads(store.data[key.as_string(cache.prefix)])
        assert record == {"beta": 1.23, "sampleSize": 251, "timestampMs": int(cache.clock() * 1000)}

    def test_served_until_ttl(self, cache, key, clock):
        cache.put(key, BetaEstimate(beta=0.8, sample_size=100))

        clock.advance(DAY - 1)
        assert cache.get_entry(key) is not None

        clock.advance(1)
        assert cache.get_entry(key) is None

    def test_put_replaces_prior_entry(self, cache, key, clock):
        cache.put(key, BetaEstimate(beta=0.8, sample_size=100))
        clock.advance(DAY + 5)
        cache.put(key, BetaEstimate(beta=0.9, sample_size=120))

        assert cache.get_entry(key).beta == 0.9

    def test_custom_ttl(self, store, clock, key):
        short = BetaCache(store, ttl_seconds=60, clock=clock)
        short.put(key, BetaEstimate(beta=1.0, sample_size=10))
        clock.advance(60)
        assert short.get_entry(key) is None

    def test_undefined_estimate_not_stored(self, cache, key, store):
        assert cache.put(key, BetaEstimate.undefined(1)) is None
        assert len(store) == 0

    @pytest.mark.parametrize(
        "raw",
        [
            "not json at all",
            "[]",
            json.dumps({"beta": 1.0, "sampleSize": 10}),
            json.dumps({"beta": "1.0", "sampleSize": 10, "timestampMs": 0}),
            json.dumps({"beta": 1.0, "sampleSize": -3, "timestampMs": 0}),
            json.dumps({"beta": None, "sampleSize": 10, "timestampMs": 0}),
            json.dumps({"beta": 1.0, "sampleSize": 10, "timestampMs": True}),
            '{"beta": 1.0, "sampleSize": 10, "timestampMs": 1' + "0" * 400 + "}",
            '{"beta": 1' + "0" * 400 + ', "sampleSize": 10, "timestampMs": 0}',
            '{"beta": NaN, "sampleSize": 10, "timestampMs": 0}',
        ],
    )
    def test_corrupt_entry_is_a_miss(self, cache, key, store, raw):
        store.set(key.as_string(cache.prefix), raw)
        assert cache.get_entry(key) is None

    def test_store_write_failure_is_swallowed(self, clock, key):
        class BrokenStore(InMemoryStore):
            def set(self, key, value):
                raise OSError("disk full")

        broken = BetaCache(BrokenStore(), clock=clock)
        assert broken.put(key, BetaEstimate(beta=1.0, sample_size=10)) is None

    def test_prefix_from_config(self, store, clock, key):
        config.configure(CACHE_CONFIG={"prefix": "test_"})
        cache = BetaCache(store, clock=clock)
        cache.put(key, BetaEstimate(beta=1.0, sample_size=10))
        assert list(store.data) == ["test_stooq_aapl.us_spy.us_252"]


class TestStores:

    def test_in_memory_store_protocol(self, store):
        assert isinstance(store, KeyValueStore)
        store.set("k", "v")
        assert store.get("k") == "v"
        store.delete("k")
        assert store.get("k") is None

    def test_file_store_round_trip(self, tmp_path, clock, key):
        store = FileStore(tmp_path / "cache")
        assert isinstance(store, KeyValueStore)

        cache = BetaCache(store, clock=clock)
        cache.put(key, BetaEstimate(beta=1.5, sample_size=200))

        reopened = BetaCache(FileStore(tmp_path / "cache"), clock=clock)
        assert reopened.get("stooq", "aapl.us", "spy.us", 252) == BetaEstimate(beta=1.5, sample_size=200)

        files = list((tmp_path / "cache").glob("*.json"))
        assert len(files) == 1
        assert files[0].name.startswith("mb_beta_cache_v2_stooq_aapl.us_spy.us_252_")

    def test_file_store_missing_and_delete(self, tmp_path):
        store = FileStore(tmp_path)
        assert store.get("nothing") is None
        store.set("k", "v")
        store.delete("k")
        assert store.get("k") is None
