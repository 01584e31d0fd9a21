"""Pytest configuration and fixtures for PIG score engine tests.

Baselines are built two ways: directly from nested dicts (precise control
over every counter) and through ``StatsAggregator`` (the write side the
production job uses).
"""

from collections.abc import Callable
from typing import Any

import pytest

from src.config.settings import Settings
from src.contracts.baseline import ChampionPatchBaseline
from src.contracts.participant import ParticipantOutcome, ParticipantSample
from src.core.aggregation import StatsAggregator
from src.core.data.item_catalog import ItemCatalog

# Jinx-style build: Doran's Blade + potion, boots, IE -> Berserker's -> Kraken -> PD -> LDR
DEFAULT_PURCHASE_ORDER = (1055, 2003, 1001, 3031, 3006, 6672, 3046, 3036)
DEFAULT_FINAL_ITEMS = (3031, 6672, 3006, 3046, 3036, 0, 3340)
DEFAULT_CORE_KEY = "3031_6672_99999"


def gs(games: int, wins: int) -> dict[str, int]:
    return {"games": games, "wins": wins}


def running(mean: float, cv: float, n: int) -> dict[str, float]:
    std = mean * cv
    return {"n": n, "mean": mean, "m2": std * std * n}


@pytest.fixture
def catalog() -> ItemCatalog:
    return ItemCatalog.default()


@pytest.fixture
def scoring_settings() -> Settings:
    """Default thresholds, metrics enabled."""
    return Settings()


@pytest.fixture
def make_sample() -> Callable[..., ParticipantSample]:
    def _make(**overrides: Any) -> ParticipantSample:
        data: dict[str, Any] = {
            "champion_name": "Jinx",
            "patch": "14.23",
            "damage_to_champions": 24000.0,  # 800/min over 30 min
            "total_damage_dealt": 150000.0,  # 5000/min
            "healing_on_teammates": 0.0,
            "shielding_on_teammates": 0.0,
            "cc_time": 30.0,
            "game_duration": 1800.0,
            "kills": 8,
            "deaths": 5,
            "assists": 6,
            "team_total_kills": 25,
            "team_total_damage": 80000.0,
            "final_items": DEFAULT_FINAL_ITEMS,
            "keystone_id": 8008,
            "primary_tree_id": 8000,
            "secondary_tree_id": 8100,
            "spell1_id": 7,
            "spell2_id": 4,
            "skill_order": "qwe",
            "purchase_order": DEFAULT_PURCHASE_ORDER,
            "first_buy": (1055, 2003),
        }
        data.update(overrides)
        return ParticipantSample(**data)

    return _make


def default_core_cohorts() -> dict[str, Any]:
    return {
        DEFAULT_CORE_KEY: {
            "games": 600,
            "wins": 330,
            "items": {
                "3031": {"1": gs(600, 330)},
                "3006": {"2": gs(600, 330)},
                "6672": {"3": gs(600, 330)},
                "3046": {"4": gs(300, 170)},
                "3036": {"4": gs(200, 105), "5": gs(250, 135)},
            },
            "runes": {"primary": {"8008": gs(400, 225), "8005": gs(200, 105)}},
            "spells": {"4_7": gs(580, 320)},
            "starting": {"1055,99998": gs(500, 280)},
            "skills": {"qwe": gs(550, 300)},
        },
        "3031_3046_99999": {"games": 300, "wins": 150},
    }


@pytest.fixture
def make_baseline() -> Callable[..., ChampionPatchBaseline]:
    def _make(
        champion_name: str = "Jinx",
        patch: str = "14.23",
        games: int = 5000,
        wins: int = 2550,
        *,
        minutes: float = 30.0,
        damage_per_min: float = 800.0,
        total_damage_per_min: float = 5000.0,
        healing_per_min: float = 0.0,
        cc_per_min: float = 1.0,
        deaths_per_min: float = 0.2,
        welford_n: int | None = None,
        cv: float = 0.3,
        core: dict[str, Any] | None = None,
        **extra: Any,
    ) -> ChampionPatchBaseline:
        per_game = games * minutes
        n = games if welford_n is None else welford_n
        data: dict[str, Any] = {
            "champion_name": champion_name,
            "patch": patch,
            "games": games,
            "wins": wins,
            "champion_stats": {
                "sum_damage_to_champions": damage_per_min * per_game,
                "sum_total_damage": total_damage_per_min * per_game,
                "sum_healing": healing_per_min * per_game,
                "sum_shielding": 0.0,
                "sum_cc_time": cc_per_min * per_game,
                "sum_game_duration": games * minutes * 60,
                "sum_deaths": deaths_per_min * per_game,
                "welford": {
                    "damage_to_champions_per_min": running(damage_per_min, cv, n),
                    "total_damage_per_min": running(total_damage_per_min, cv, n),
                    "healing_shielding_per_min": running(healing_per_min, cv, n),
                    "cc_time_per_min": running(cc_per_min, cv, n),
                    "deaths_per_min": running(deaths_per_min, cv, n),
                },
            },
            "items": {
                "1": {"3031": gs(3000, 1620), "6672": gs(1500, 780)},
                "2": {"3006": gs(3500, 1800), "6672": gs(800, 410)},
                "3": {"6672": gs(2000, 1050), "3046": gs(900, 470)},
                "4": {"3046": gs(1800, 950), "3036": gs(1200, 640)},
                "5": {"3036": gs(1500, 800), "3072": gs(900, 480)},
            },
            "runes": {"primary": {"8008": gs(3000, 1560), "8005": gs(1800, 910)}},
            "spells": {"4_7": gs(4500, 2300), "4_21": gs(400, 190)},
            "starting": {"1055,2003": gs(4000, 2050), "1083,2003": gs(700, 350)},
            "skills": {"qwe": gs(4200, 2160), "qew": gs(600, 290)},
            "core": default_core_cohorts() if core is None else core,
        }
        data.update(extra)
        return ChampionPatchBaseline.model_validate(data)

    return _make


@pytest.fixture
def aggregated_baseline(make_sample: Callable[..., ParticipantSample]) -> ChampionPatchBaseline:
    """60 Jinx games folded through the aggregator; damage spreads 500-1090/min."""
    aggregator = StatsAggregator()
    for i in range(60):
        sample = make_sample(
            damage_to_champions=(500 + i * 10) * 30.0,
            total_damage_dealt=(4000 + i * 40) * 30.0,
            deaths=i % 8,
        )
        aggregator.add(
            ParticipantOutcome(
                sample=sample,
                win=i % 2 == 0,
                primary_runes=(8008, 9111, 9104, 8014),
                secondary_runes=(8139, 8135),
                stat_shards=(5005, 5008, 5001),
            )
        )
    (baseline,) = aggregator.baselines()
    return baseline
