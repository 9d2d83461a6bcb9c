"""Tests for cache backends (Parquet and Memory)."""

import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest

from divbacktest.cache import (
    CANDLES,
    DIVIDENDS,
    MemoryCache,
    NoCache,
    ParquetCache,
    create_cache,
)

START = date(2024, 1, 2)
END = date(2024, 1, 5)


class TestNoCache:
    def test_always_misses(self, sample_candles):
        cache = NoCache()
        assert cache.get_candles("KO", START, END) is None
        cache.store_candles("KO", sample_candles, START, END)
        assert cache.get_candles("KO", START, END) is None
        assert not cache.has_data("KO", CANDLES, START, END)


class TestParquetCache:
    @pytest.fixture
    def cache(self, tmp_path):
        return ParquetCache(tmp_path / "cache")

    def test_store_and_retrieve_candles(self, cache, sample_candles):
        cache.store_candles("TEST", sample_candles, START, END)
        assert cache.has_data("TEST", CANDLES, START, END)
        assert cache.get_candles("TEST", START, END) == sample_candles

    def test_store_and_retrieve_dividends(self, cache, monthly_dividends):
        cache.store_dividends("TEST", monthly_dividends, date(2024, 1, 1), date(2024, 12, 31))
        result = cache.get_dividends("TEST", date(2024, 1, 1), date(2024, 12, 31))
        assert result == monthly_dividends
        assert result[0].record_date is None

    def test_kinds_are_separate(self, cache, sample_candles):
        cache.store_candles("TEST", sample_candles, START, END)
        assert cache.get_dividends("TEST", START, END) is None

    def test_window_is_part_of_key(self, cache, sample_candles):
        cache.store_candles("TEST", sample_candles, START, END)
        assert cache.get_candles("TEST", START, date(2024, 1, 4)) is None

    def test_miss(self, cache):
        assert cache.get_candles("KO", START, END) is None
        assert not cache.has_data("KO", CANDLES, START, END)

    def test_exchange_prefixed_ticker(self, cache, sample_candles):
        cache.store_candles("BSE:RELIANCE.IN", sample_candles, START, END)
        assert (cache.base_path / "BSE_RELIANCE.IN").is_dir()
        assert cache.has_data("BSE:RELIANCE.IN", CANDLES, START, END)

    def test_clear_ticker(self, cache, sample_candles):
        cache.store_candles("KO", sample_candles, START, END)
        cache.store_candles("PEP", sample_candles, START, END)
        cache.clear("KO")
        assert not cache.has_data("KO", CANDLES, START, END)
        assert cache.has_data("PEP", CANDLES, START, END)

    def test_clear_all(self, cache, sample_candles):
        cache.store_candles("KO", sample_candles, START, END)
        cache.store_candles("PEP", sample_candles, START, END)
        cache.clear_all()
        assert not cache.has_data("KO", CANDLES, START, END)
        assert not cache.has_data("PEP", CANDLES, START, END)

    def test_empty_lists_not_stored(self, cache):
        cache.store_candles("KO", [], START, END)
        cache.store_dividends("KO", [], START, END)
        assert not cache.has_data("KO", CANDLES, START, END)
        assert not cache.has_data("KO", DIVIDENDS, START, END)

    def test_unreadable_file_is_a_miss(self, cache):
        path = cache._file_path("KO", CANDLES, START, END)
        path.write_bytes(b"not parquet")
        assert cache.get_candles("KO", START, END) is None


class TestMemoryCache:
    def test_store_and_retrieve(self, sample_candles):
        cache = MemoryCache(ttl_seconds=60)
        cache.store_candles("TEST", sample_candles, START, END)
        assert cache.get_candles("TEST", START, END) == sample_candles

    def test_returns_copy(self, sample_candles):
        cache = MemoryCache(ttl_seconds=60)
        cache.store_candles("TEST", sample_candles, START, END)
        cache.get_candles("TEST", START, END).clear()
        assert len(cache.get_candles("TEST", START, END)) == 4

    def test_empty_dividend_list_is_a_hit(self):
        cache = MemoryCache(ttl_seconds=60)
        cache.store_dividends("KO", [], START, END)
        assert cache.get_dividends("KO", START, END) == []

    def test_ttl_expiry(self, sample_candles):
        cache = MemoryCache(ttl_seconds=0)  # Immediate expiry
        cache.store_candles("TEST", sample_candles, START, END)
        time.sleep(0.01)  # Ensure time advances
        assert cache.get_candles("TEST", START, END) is None

    def test_lru_eviction(self, sample_candles):
        cache = MemoryCache(ttl_seconds=300, max_entries=2)
        cache.store_candles("KO", sample_candles, START, END)
        cache.store_candles("PEP", sample_candles, START, END)
        cache.store_candles("MO", sample_candles, START, END)
        # KO should be evicted (LRU)
        assert cache.get_candles("KO", START, END) is None
        assert cache.get_candles("PEP", START, END) is not None
        assert cache.get_candles("MO", START, END) is not None

    def test_clear_ticker(self, sample_candles, monthly_dividends):
        cache = MemoryCache(ttl_seconds=60)
        cache.store_candles("KO", sample_candles, START, END)
        cache.store_dividends("KO", monthly_dividends, START, END)
        cache.store_candles("PEP", sample_candles, START, END)
        cache.clear("ko")
        assert cache.get_candles("KO", START, END) is None
        assert cache.get_dividends("KO", START, END) is None
        assert cache.get_candles("PEP", START, END) is not None

    def test_clear_all(self, sample_candles):
        cache = MemoryCache(ttl_seconds=60)
        cache.store_candles("KO", sample_candles, START, END)
        cache.clear_all()
        assert cache.get_candles("KO", START, END) is None

    def test_shared_between_threads(self, sample_candles, monthly_dividends):
        cache = MemoryCache(ttl_seconds=60, max_entries=8)
        tickers = [f"T{i}" for i in range(16)]

        def churn(worker):
            for n in range(300):
                ticker = tickers[(worker + n) % len(tickers)]
                cache.store_candles(ticker, sample_candles, START, END)
                cache.store_dividends(ticker, monthly_dividends, START, END)
                cache.get_candles(ticker, START, END)
                cache.has_data(ticker, DIVIDENDS, START, END)
                if n % 50 == 0:
                    cache.clear(ticker)
            return worker

        with ThreadPoolExecutor(max_workers=4) as pool:
            assert sorted(pool.map(churn, range(4))) == [0, 1, 2, 3]
        assert len(cache._store) <= 8
        cache.store_candles("KO", sample_candles, START, END)
        assert cache.get_candles("KO", START, END) == sample_candles


class TestCreateCache:
    def test_backends(self, tmp_path):
        assert isinstance(create_cache("parquet", str(tmp_path)), ParquetCache)
        assert isinstance(create_cache("memory", ttl_seconds=5), MemoryCache)
        assert isinstance(create_cache("none"), NoCache)

    def test_memory_ttl(self):
        assert create_cache("memory", ttl_seconds=5).ttl == 5
