"""Unit tests for the baseline cache and the patch selection policy."""

from unittest.mock import AsyncMock

import pytest

from src.adapters.baseline_cache import BaselineCache
from src.core.ports import BaselinePort, patch_sort_key, select_baseline
from src.core.scoring.errors import BaselineUnavailableError


class TestSelectBaseline:
    """Exact patch first, then the newest reliable one, then nothing."""

    @pytest.fixture
    def baselines(self, make_baseline):
        return [
            make_baseline(patch="14.24", games=800, wins=400),
            make_baseline(patch="14.23", games=5000),
            make_baseline(patch="14.9", games=9000),
        ]

    def test_exact_patch(self, baselines):
        assert select_baseline(baselines, "14.23").patch == "14.23"

    def test_undersampled_exact_patch(self, baselines):
        assert select_baseline(baselines, "14.24").patch == "14.23"

    def test_threshold_configurable(self, baselines):
        assert select_baseline(baselines, "14.24", min_games=500).patch == "14.24"

    def test_missing_patch_uses_newest(self, baselines):
        assert select_baseline(baselines, None).patch == "14.23"

    def test_nothing_reliable(self, baselines):
        assert select_baseline(baselines, "14.23", min_games=10000) is None
        assert select_baseline([], "14.23") is None

    def test_patch_sort_key(self):
        assert patch_sort_key("14.23") > patch_sort_key("14.9")
        assert patch_sort_key("15.1") > patch_sort_key("14.23")
        assert patch_sort_key("x.1") < patch_sort_key("0.1")


class TestBaselineCache:
    @pytest.fixture
    def source(self, make_baseline):
        port = AsyncMock(spec=BaselinePort)
        port.get_baselines_many.return_value = {
            "Jinx": [make_baseline(patch="14.23"), make_baseline(patch="14.22")],
            "Caitlyn": [],
        }
        return port

    def test_from_baselines_sorted_newest_first(self, make_baseline):
        cache = BaselineCache.from_baselines(
            [make_baseline(patch="14.9"), make_baseline(patch="14.23"), make_baseline("Ahri", "14.23")]
        )
        assert [b.patch for b in cache.get_cached("Jinx")] == ["14.23", "14.9"]
        assert "Ahri" in cache
        assert len(cache) == 2

    def test_unknown_champion_is_empty(self):
        assert BaselineCache().get_cached("Jinx") == []

    @pytest.mark.asyncio
    async def test_prefetch_batches_missing(self, source):
        cache = BaselineCache(source)
        assert await cache.prefetch(["Jinx", "Caitlyn", "Jinx"]) == 2
        source.get_baselines_many.assert_awaited_once_with(["Jinx", "Caitlyn"])
        assert len(cache.get_cached("Jinx")) == 2
        assert cache.get_cached("Caitlyn") == []

    @pytest.mark.asyncio
    async def test_prefetch_skips_cached(self, source):
        cache = BaselineCache(source)
        await cache.prefetch(["Jinx"])
        source.get_baselines_many.reset_mock()
        assert await cache.prefetch(["Jinx"]) == 0
        source.get_baselines_many.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_prefetch_cached_as_empty(self, source):
        source.get_baselines_many.side_effect = BaselineUnavailableError("Jinx", "connection refused")
        cache = BaselineCache(source)
        assert await cache.prefetch(["Jinx"]) == 1
        assert cache.get_cached("Jinx") == []
        assert "Jinx" in cache

    @pytest.mark.asyncio
    async def test_get_baselines_prefetches_once(self, source):
        cache = BaselineCache(source)
        first = await cache.get_baselines("Jinx")
        second = await cache.get_baselines("Jinx")
        assert first == second
        assert source.get_baselines_many.await_count == 1

    @pytest.mark.asyncio
    async def test_get_baseline_by_patch(self, source):
        cache = BaselineCache(source)
        assert (await cache.get_baseline("Jinx", "14.22")).patch == "14.22"
        assert await cache.get_baseline("Jinx", "13.1") is None

    @pytest.mark.asyncio
    async def test_without_source(self):
        cache = BaselineCache()
        assert await cache.get_baselines("Jinx") == []

    @pytest.mark.asyncio
    async def test_clear(self, source):
        cache = BaselineCache(source)
        await cache.prefetch(["Jinx"])
        cache.clear()
        assert len(cache) == 0
