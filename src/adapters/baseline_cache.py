"""In-memory baseline cache.

Scoring a batch of participants needs the baselines of a handful of
distinct champions. ``prefetch`` reads them once through the wrapped port;
``calculate`` then runs fully in memory against the cached rows.
"""

import logging
from collections.abc import Iterable, Sequence

from src.contracts.baseline import ChampionPatchBaseline
from src.core.observability import trace_adapter
from src.core.ports import BaselinePort, patch_sort_key
from src.core.scoring.errors import BaselineUnavailableError

logger = logging.getLogger(__name__)


class BaselineCache(BaselinePort):
    """Prefetching cache in front of another ``BaselinePort``.

    A champion whose read failed is cached as empty for the lifetime of the
    cache, so one broken store round trip does not repeat for every
    participant of the batch.
    """

    def __init__(self, source: BaselinePort | None = None) -> None:
        self._source = source
        self._entries: dict[str, list[ChampionPatchBaseline]] = {}

    @classmethod
    def from_baselines(cls, baselines: Iterable[ChampionPatchBaseline]) -> "BaselineCache":
        """Cache pre-populated from already loaded baselines (fixtures, files)."""
        cache = cls()
        for baseline in baselines:
            cache._entries.setdefault(baseline.champion_name, []).append(baseline)
        for rows in cache._entries.values():
            rows.sort(key=lambda b: patch_sort_key(b.patch), reverse=True)
        return cache

    def __contains__(self, champion_name: object) -> bool:
        return champion_name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @trace_adapter
    async def prefetch(self, champion_names: Sequence[str]) -> int:
        """Load the baselines of every not-yet-cached champion in one batch.

        Returns:
            Number of champions newly cached
        """
        missing = [name for name in dict.fromkeys(champion_names) if name not in self._entries]
        if not missing:
            return 0
        if self._source is None:
            for name in missing:
                self._entries[name] = []
            return len(missing)

        try:
            fetched = await self._source.get_baselines_many(missing)
        except BaselineUnavailableError as e:
            logger.error(f"Baseline prefetch failed for {len(missing)} champions: {e}")
            fetched = {}
        for name in missing:
            self._entries[name] = fetched.get(name, [])
        logger.info(f"Prefetched baselines for {len(missing)} champions")
        return len(missing)

    def get_cached(self, champion_name: str) -> list[ChampionPatchBaseline]:
        """Cached baselines of a champion; empty when never prefetched or missing."""
        return self._entries.get(champion_name, [])

    async def get_baselines(self, champion_name: str) -> list[ChampionPatchBaseline]:
        if champion_name not in self._entries:
            await self.prefetch([champion_name])
        return self.get_cached(champion_name)

    def clear(self) -> None:
        self._entries.clear()
