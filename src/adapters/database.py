"""Database adapter using asyncpg for PostgreSQL.

Read-only access to the aggregated ``champion_stats`` rows. Each row holds
one (champion, patch) baseline as a JSONB document in the camelCase shape
written by the aggregation job; rows are parsed into
``ChampionPatchBaseline`` here, at the boundary.
"""

import json
import logging
from collections.abc import Sequence
from typing import Any

import asyncpg
from pydantic import ValidationError

from src.config.settings import Settings, get_settings
from src.contracts.baseline import ChampionPatchBaseline
from src.core.observability import trace_adapter
from src.core.ports import BaselinePort, patch_sort_key
from src.core.scoring.errors import BaselineUnavailableError

logger = logging.getLogger(__name__)


def _quote_table(name: str) -> str:
    """Quote a possibly schema-qualified table name; rejects anything else."""
    parts = name.split(".")
    if not parts or not all(part.isidentifier() for part in parts):
        raise ValueError(f"Invalid baseline table name: {name!r}")
    return ".".join(f'"{part}"' for part in parts)


class DatabaseAdapter(BaselinePort):
    """Baseline reader backed by an asyncpg connection pool."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._table = _quote_table(self._settings.baseline_table)
        self._pool: Any = None  # asyncpg.Pool (untyped library)

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        """Create the connection pool. Call once at startup."""
        if self._pool is not None:
            logger.warning("Database pool already exists")
            return

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self._settings.database_url,
                min_size=1,
                max_size=self._settings.database_pool_size,
                max_inactive_connection_lifetime=300,
                command_timeout=self._settings.database_pool_timeout,
            )
            logger.info("Database connection pool created successfully")
        except Exception as e:
            logger.error(f"Failed to create database pool: {e}")
            raise

    async def disconnect(self) -> None:
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database connection pool closed")

    async def _fetch(self, champion_names: Sequence[str], query: str, *args: Any) -> list[Any]:
        if not self._pool:
            raise BaselineUnavailableError(", ".join(champion_names), "Database pool not initialized")
        try:
            async with self._pool.acquire() as conn:
                return await conn.fetch(query, *args)
        except Exception as e:
            logger.error(f"Error fetching baselines for {', '.join(champion_names)}: {e}")
            raise BaselineUnavailableError(", ".join(champion_names), str(e)) from e

    @staticmethod
    def _parse_row(row: Any) -> ChampionPatchBaseline | None:
        """Decode one row; malformed documents are skipped, not raised."""
        data = row["data"]
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Undecodable baseline for {row['champion_name']} {row['patch']}")
                return None
        if not isinstance(data, dict):
            return None
        try:
            return ChampionPatchBaseline.model_validate(
                {**data, "championName": row["champion_name"], "patch": row["patch"]}
            )
        except ValidationError as e:
            logger.warning(
                f"Invalid baseline for {row['champion_name']} {row['patch']}: {e.error_count()} errors"
            )
            return None

    def _collect(self, rows: list[Any]) -> dict[str, list[ChampionPatchBaseline]]:
        grouped: dict[str, list[ChampionPatchBaseline]] = {}
        for row in rows:
            baseline = self._parse_row(row)
            if baseline is not None:
                grouped.setdefault(baseline.champion_name, []).append(baseline)
        lookback = self._settings.baseline_patch_lookback
        for name, baselines in grouped.items():
            baselines.sort(key=lambda b: patch_sort_key(b.patch), reverse=True)
            grouped[name] = baselines[:lookback]
        return grouped

    @trace_adapter
    async def get_baselines(self, champion_name: str) -> list[ChampionPatchBaseline]:
        rows = await self._fetch(
            [champion_name],
            f"SELECT champion_name, patch, data FROM {self._table} WHERE champion_name = $1",
            champion_name,
        )
        return self._collect(rows).get(champion_name, [])

    @trace_adapter
    async def get_baselines_many(self, champion_names: Sequence[str]) -> dict[str, list[ChampionPatchBaseline]]:
        names = list(dict.fromkeys(champion_names))
        if not names:
            return {}
        rows = await self._fetch(
            names,
            f"SELECT champion_name, patch, data FROM {self._table} WHERE champion_name = ANY($1::text[])",
            names,
        )
        grouped = self._collect(rows)
        return {name: grouped.get(name, []) for name in names}
