"""Port interface for champion/patch baseline reads.

The scoring engine never talks to the store directly: an adapter (the
PostgreSQL reader, the in-memory cache, a test fixture) implements this
port and is injected into the calculator.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from src.contracts.baseline import ChampionPatchBaseline

logger = logging.getLogger(__name__)

DEFAULT_MIN_BASELINE_GAMES = 2000


class BaselinePort(ABC):
    """Read-only access to aggregated champion baselines."""

    @abstractmethod
    async def get_baselines(self, champion_name: str) -> list[ChampionPatchBaseline]:
        """Return every stored patch baseline of a champion.

        Args:
            champion_name: Champion identifier as used by the match provider

        Returns:
            Baselines ordered newest patch first; empty when none exist

        Raises:
            BaselineUnavailableError: If the store itself cannot be read
        """
        pass

    async def get_baseline(self, champion_name: str, patch: str) -> ChampionPatchBaseline | None:
        """Return the baseline of one exact patch, or None."""
        for baseline in await self.get_baselines(champion_name):
            if baseline.patch == patch:
                return baseline
        return None

    def get_cached(self, champion_name: str) -> list[ChampionPatchBaseline] | None:
        """Baselines already held in memory; None when the port must be awaited."""
        return None

    async def get_baselines_many(self, champion_names: Sequence[str]) -> dict[str, list[ChampionPatchBaseline]]:
        """Batch read for several champions; adapters override with one query."""
        return {name: await self.get_baselines(name) for name in dict.fromkeys(champion_names)}


def patch_sort_key(patch: str) -> tuple[int, ...]:
    """Numeric sort key for ``"14.23"`` style patches; malformed parts sort first."""
    parts = []
    for part in patch.split("."):
        try:
            parts.append(int(part))
        except ValueError:
            parts.append(-1)
    return tuple(parts)


def select_baseline(
    baselines: Sequence[ChampionPatchBaseline],
    patch: str | None,
    min_games: int = DEFAULT_MIN_BASELINE_GAMES,
) -> ChampionPatchBaseline | None:
    """Patch-fallback policy.

    The exact patch wins when it holds at least ``min_games``; otherwise the
    most recent patch meeting the threshold; otherwise None.
    """
    if patch:
        for baseline in baselines:
            if baseline.patch == patch and baseline.games >= min_games:
                return baseline

    reliable = [b for b in baselines if b.games >= min_games]
    if not reliable:
        logger.debug("No baseline with %d+ games for patch %s", min_games, patch)
        return None
    newest = max(reliable, key=lambda b: patch_sort_key(b.patch))
    if patch and newest.patch != patch:
        logger.debug("Patch %s below threshold, falling back to %s", patch, newest.patch)
    return newest
