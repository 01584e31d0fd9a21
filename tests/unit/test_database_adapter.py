"""Unit tests for database adapter.

Tests focus on adapter behavior with mocked asyncpg operations.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.adapters.database import DatabaseAdapter, _quote_table
from src.config.settings import Settings
from src.core.scoring.errors import BaselineUnavailableError


def row(champion: str, patch_: str, data) -> dict:
    return {"champion_name": champion, "patch": patch_, "data": data}


def document(games: int = 5000, wins: int = 2550) -> dict:
    return {
        "games": games,
        "wins": wins,
        "championStats": {
            "sumDamageToChampions": 1.2e8,
            "sumGameDuration": 9.0e6,
            "sumCCTime": 150000.0,
            "welford": {"damageToChampionsPerMin": {"n": 5000, "mean": 800.0, "m2": 2.88e8}},
        },
        "spells": {"4_7": {"games": 4500, "wins": 2300}},
        "core": {"3031_6672_99999": {"games": 600, "wins": 330}},
        "someFutureField": {"ignored": True},
    }


class TestDatabaseAdapter:
    """Test suite for DatabaseAdapter."""

    @pytest.fixture
    def settings(self):
        return Settings(
            database_url="postgresql://test",
            database_pool_size=5,
            database_pool_timeout=10,
            baseline_patch_lookback=2,
        )

    @pytest.fixture
    def adapter(self, settings):
        """Create a DatabaseAdapter instance for testing."""
        return DatabaseAdapter(settings)

    @pytest.fixture
    def mock_conn(self):
        return AsyncMock()

    @pytest.fixture
    def mock_pool(self, mock_conn):
        """Create a mock connection pool."""
        pool = MagicMock()
        pool.acquire.return_value.__aenter__.return_value = mock_conn
        pool.close = AsyncMock()
        return pool

    @pytest.mark.asyncio
    async def test_connect_success(self, adapter, mock_pool):
        """Test successful database connection."""
        with patch("asyncpg.create_pool", new=AsyncMock(return_value=mock_pool)) as mock_create:
            await adapter.connect()

        mock_create.assert_called_once()
        kwargs = mock_create.call_args.kwargs
        assert kwargs["dsn"] == "postgresql://test"
        assert kwargs["max_size"] == 5
        assert kwargs["command_timeout"] == 10
        assert adapter.is_connected

    @pytest.mark.asyncio
    async def test_connect_already_connected(self, adapter, mock_pool):
        """Test connecting when pool already exists."""
        adapter._pool = mock_pool

        with patch("asyncpg.create_pool") as mock_create:
            await adapter.connect()
            mock_create.assert_not_called()

    @pytest.mark.asyncio
    async def test_connect_failure_propagates(self, adapter):
        with patch("asyncpg.create_pool", new=AsyncMock(side_effect=OSError("refused"))):
            with pytest.raises(OSError):
                await adapter.connect()
        assert not adapter.is_connected

    @pytest.mark.asyncio
    async def test_disconnect(self, adapter, mock_pool):
        adapter._pool = mock_pool
        await adapter.disconnect()
        mock_pool.close.assert_awaited_once()
        assert not adapter.is_connected

    @pytest.mark.asyncio
    async def test_get_baselines_parses_rows(self, adapter, mock_pool, mock_conn):
        adapter._pool = mock_pool
        mock_conn.fetch.return_value = [
            row("Jinx", "14.22", json.dumps(document())),
            row("Jinx", "14.23", document()),
        ]

        baselines = await adapter.get_baselines("Jinx")

        assert [b.patch for b in baselines] == ["14.23", "14.22"]
        first = baselines[0]
        assert first.champion_name == "Jinx"
        assert first.champion_stats.sum_cc_time == 150000.0
        assert first.champion_stats.welford.damage_to_champions_per_min.mean == 800.0
        assert first.core["3031_6672_99999"].games == 600
        query, arg = mock_conn.fetch.call_args.args
        assert '"champion_stats"' in query
        assert "$1" in query
        assert arg == "Jinx"

    @pytest.mark.asyncio
    async def test_patch_lookback(self, adapter, mock_pool, mock_conn):
        adapter._pool = mock_pool
        mock_conn.fetch.return_value = [row("Jinx", p, document()) for p in ("14.21", "14.23", "14.9", "14.22")]

        baselines = await adapter.get_baselines("Jinx")

        assert [b.patch for b in baselines] == ["14.23", "14.22"]

    @pytest.mark.asyncio
    async def test_malformed_rows_skipped(self, adapter, mock_pool, mock_conn):
        adapter._pool = mock_pool
        mock_conn.fetch.return_value = [
            row("Jinx", "14.21", "{not json"),
            row("Jinx", "14.22", {"games": -3}),
            row("Jinx", "14.20", None),
            row("Jinx", "14.23", document()),
        ]

        baselines = await adapter.get_baselines("Jinx")

        assert [b.patch for b in baselines] == ["14.23"]

    @pytest.mark.asyncio
    async def test_get_baselines_many_single_query(self, adapter, mock_pool, mock_conn):
        adapter._pool = mock_pool
        mock_conn.fetch.return_value = [row("Jinx", "14.23", document()), row("Ahri", "14.23", document())]

        result = await adapter.get_baselines_many(["Jinx", "Ahri", "Caitlyn", "Jinx"])

        assert mock_conn.fetch.await_count == 1
        query, names = mock_conn.fetch.call_args.args
        assert "ANY($1::text[])" in query
        assert names == ["Jinx", "Ahri", "Caitlyn"]
        assert list(result) == ["Jinx", "Ahri", "Caitlyn"]
        assert result["Caitlyn"] == []

    @pytest.mark.asyncio
    async def test_get_baselines_many_empty(self, adapter, mock_pool, mock_conn):
        adapter._pool = mock_pool
        assert await adapter.get_baselines_many([]) == {}
        mock_conn.fetch.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_pool_raises(self, adapter):
        with pytest.raises(BaselineUnavailableError) as exc_info:
            await adapter.get_baselines("Jinx")
        assert exc_info.value.champion_name == "Jinx"

    @pytest.mark.asyncio
    async def test_query_error_wrapped(self, adapter, mock_pool, mock_conn):
        adapter._pool = mock_pool
        mock_conn.fetch.side_effect = RuntimeError("relation does not exist")

        with pytest.raises(BaselineUnavailableError) as exc_info:
            await adapter.get_baselines("Jinx")

        assert "relation does not exist" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestQuoteTable:
    def test_plain_and_schema_qualified(self):
        assert _quote_table("champion_stats") == '"champion_stats"'
        assert _quote_table("stats.champion_stats") == '"stats"."champion_stats"'

    @pytest.mark.parametrize("name", ["", "champion_stats; DROP TABLE x", "a..b", "1abc"])
    def test_rejects_injection(self, name):
        with pytest.raises(ValueError):
            _quote_table(name)

    def test_invalid_setting_rejected(self):
        with pytest.raises(ValueError):
            DatabaseAdapter(Settings(baseline_table="bad table"))
