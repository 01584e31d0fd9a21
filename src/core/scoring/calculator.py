"""PIG score composer - pure domain logic over an injected baseline port.

CRITICAL: the scoring path performs no I/O of its own. ``calculate`` works
against a prefetched ``BaselineCache``; ``calculate_async`` awaits the
port's read and then runs the same in-memory computation.

Components:
1. Performance - damage, total damage, healing/shielding and CC against the
   champion baseline, weighted by stat relevance
2. Build - items, keystone, spells, skill order, core and starting items
3. Timeline - external death-quality score, else neutral
4. KDA - kill participation and death tempo
"""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from src.config.settings import Settings, get_settings
from src.contracts.baseline import ChampionPatchBaseline, PerMinuteStats, WelfordStats
from src.contracts.common import CoreMatchKind, RunningStat
from src.contracts.participant import ParticipantSample
from src.contracts.score_breakdown import (
    BuildSubScores,
    ComponentScores,
    CoreBuildDetail,
    FallbackInfo,
    ItemDetail,
    MetricScore,
    ScoreBreakdown,
    StartingItemsDetail,
)
from src.core import metrics as score_metrics
from src.core.data.item_catalog import ItemCatalog
from src.core.observability import trace_performance
from src.core.ports import BaselinePort, select_baseline
from src.core.scoring.build_identity import resolve_core_key
from src.core.scoring.choice_ranker import (
    penalty_to_score,
    score_core_quality,
    score_items,
    score_keystone,
    score_skill_order,
    score_spells,
    score_starting_items,
)
from src.core.scoring.core_matcher import NO_MATCH, CoreMatch, match_core
from src.core.scoring.transforms import (
    NEUTRAL_SCORE,
    SAMPLE_SIZE_MINIMUM,
    cc_time_score,
    damage_score,
    deaths_score,
    has_meaningful_spread,
    kill_participation_score,
    round_half_up,
    stat_score,
)
from src.core.scoring.weights import ScoringWeights, get_weights

logger = logging.getLogger(__name__)

_HEALING_ACTIVE_PER_MIN = 300.0
_HEALING_RAMP = 2400.0
_CC_ACTIVE_PER_MIN = 1.0
_CC_RAMP_CENTER = 2.0
_CC_RAMP = 12.0
_DAMAGE_CV_BOOST_ABOVE = 0.3
_SITUATIONAL_CV_BOOST_ABOVE = 0.4


@dataclass(frozen=True)
class StatRelevance:
    """Performance weight of each metric for one champion."""

    damage_to_champions: float = 1.0
    total_damage: float = 1.0
    healing_shielding: float = 0.0
    cc_time: float = 0.0


def _cv_boost(relevance: float, stats: RunningStat, threshold: float, factor: float) -> float:
    if stats.n < SAMPLE_SIZE_MINIMUM or stats.mean <= 0:
        return relevance
    cv = stats.coefficient_of_variation
    if cv > threshold:
        return min(1.0, relevance * (1 + cv * factor))
    return relevance


def stat_relevance(avg: PerMinuteStats, welford: WelfordStats | None = None) -> StatRelevance:
    """Derive metric weights from a champion's averages.

    Damage always counts. Healing counts from 300/min and CC from 1 s/min,
    ramping toward 1.0. A high coefficient of variation means the metric
    separates good from bad players, so it is weighted up.
    """
    healing = 0.0
    if avg.healing_shielding_per_min >= _HEALING_ACTIVE_PER_MIN:
        healing = min(1.0, 0.5 + (avg.healing_shielding_per_min - _HEALING_ACTIVE_PER_MIN) / _HEALING_RAMP)
    cc = 0.0
    if avg.cc_time_per_min >= _CC_ACTIVE_PER_MIN:
        cc = min(1.0, 0.5 + (avg.cc_time_per_min - _CC_RAMP_CENTER) / _CC_RAMP)

    damage = 1.0
    if welford is not None:
        damage = _cv_boost(damage, welford.damage_to_champions_per_min, _DAMAGE_CV_BOOST_ABOVE, 0.5)
        if healing > 0:
            healing = _cv_boost(healing, welford.healing_shielding_per_min, _SITUATIONAL_CV_BOOST_ABOVE, 0.3)
        if cc > 0:
            cc = _cv_boost(cc, welford.cc_time_per_min, _SITUATIONAL_CV_BOOST_ABOVE, 0.3)
    return StatRelevance(damage_to_champions=damage, healing_shielding=healing, cc_time=cc)


def _reported_z(value: float, stats: RunningStat | None) -> float | None:
    if not has_meaningful_spread(stats):
        return None
    return stats.z_score(value)


@dataclass
class BuildResult:
    """Build penalties of one participant, plus provenance."""

    items: float = 0.0
    keystone: float = 0.0
    spells: float = 0.0
    skills: float = 0.0
    core: float = 0.0
    starting: float = 0.0
    item_details: list[ItemDetail] = field(default_factory=list)
    starting_detail: StartingItemsDetail | None = None
    core_detail: CoreBuildDetail | None = None
    core_key: str | None = None
    match: CoreMatch = NO_MATCH
    fallback: FallbackInfo = field(default_factory=FallbackInfo)
    # no build baseline: every category scores neutral
    neutral: bool = False


class PigScoreCalculator:
    """Scores one ``ParticipantSample`` against its champion baseline."""

    def __init__(
        self,
        baselines: BaselinePort,
        weights: ScoringWeights | None = None,
        catalog: ItemCatalog | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._baselines = baselines
        self._settings = settings or get_settings()
        self._weights = weights or get_weights(self._settings.weights_version)
        self._catalog = catalog or ItemCatalog.default()
        self._score_opts = {"k": self._settings.sigmoid_k, "cv_cap": self._settings.log_cv_cap}

    @property
    def weights(self) -> ScoringWeights:
        return self._weights

    def calculate(self, sample: ParticipantSample) -> ScoreBreakdown | None:
        """Score against the prefetched cache; no I/O.

        Raises:
            TypeError: If ``sample`` is None or the port holds nothing in memory
        """
        if sample is None:
            raise TypeError("calculate() requires a ParticipantSample, got None")
        cached = self._baselines.get_cached(sample.champion_name)
        if cached is None:
            raise TypeError("calculate() needs an in-memory port such as BaselineCache; use calculate_async()")
        return self.score(sample, cached)

    @trace_performance
    async def calculate_async(self, sample: ParticipantSample) -> ScoreBreakdown | None:
        """Read the champion's baselines through the port, then score."""
        if sample is None:
            raise TypeError("calculate_async() requires a ParticipantSample, got None")
        baselines = await self._baselines.get_baselines(sample.champion_name)
        return self.score(sample, baselines)

    def score(
        self, sample: ParticipantSample, baselines: Sequence[ChampionPatchBaseline]
    ) -> ScoreBreakdown | None:
        start = time.perf_counter()
        try:
            result = self._score(sample, baselines)
        finally:
            score_metrics.observe_duration(time.perf_counter() - start)
        if result is not None:
            score_metrics.mark_scoring_result("scored")
            score_metrics.observe_final_score(result.final_score)
        return result

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def _score(
        self, sample: ParticipantSample, baselines: Sequence[ChampionPatchBaseline]
    ) -> ScoreBreakdown | None:
        minutes = sample.game_minutes
        if minutes <= 0 or not sample.total_damage_dealt:
            logger.debug("Unscoreable sample for %s: duration=%s", sample.champion_name, sample.game_duration)
            score_metrics.mark_scoring_result("unscoreable")
            return None

        baseline = select_baseline(baselines, sample.patch, self._settings.min_baseline_games)
        if baseline is None:
            logger.debug("No reliable baseline for %s", sample.champion_name)
            score_metrics.mark_scoring_result("no_baseline")
            return None
        champion_avg = baseline.average_per_minute()
        if champion_avg is None:
            logger.debug("Baseline %s %s has no duration sums", baseline.champion_name, baseline.patch)
            score_metrics.mark_scoring_result("no_baseline")
            return None

        used_fallback_patch = baseline.patch != sample.patch
        if used_fallback_patch:
            score_metrics.mark_fallback("patch")

        player = PerMinuteStats(
            damage_to_champions_per_min=sample.damage_to_champions / minutes,
            total_damage_per_min=sample.total_damage_dealt / minutes,
            healing_shielding_per_min=(sample.healing_on_teammates + sample.shielding_on_teammates) / minutes,
            cc_time_per_min=sample.cc_time / minutes,
            deaths_per_min=sample.deaths / minutes,
            kill_participation=self._kill_participation(sample),
        )

        metrics: list[MetricScore] = []
        performance = self._performance(sample, player, champion_avg, baseline, metrics)

        build_baseline = select_baseline(baselines, sample.patch, self._settings.min_build_baseline_games)
        build = self._build(sample, build_baseline)
        scale = self._weights.penalty_scale
        if build.neutral:
            sub_scores = dict.fromkeys(("items", "keystone", "spells", "skills", "core", "starting"), NEUTRAL_SCORE)
        else:
            sub_scores = {
                "items": penalty_to_score(build.items, scale.items),
                "keystone": penalty_to_score(build.keystone, scale.keystone),
                "spells": penalty_to_score(build.spells, scale.spells),
                "skills": penalty_to_score(build.skills, scale.skills),
                "core": penalty_to_score(build.core, scale.core),
                "starting": penalty_to_score(build.starting, scale.starting),
            }
        parts = self._weights.build_parts
        metrics.extend(
            [
                MetricScore(name="Starter", score=sub_scores["starting"], weight=parts.starting),
                MetricScore(name="Skills", score=sub_scores["skills"], weight=parts.skills),
                MetricScore(name="Keystone", score=sub_scores["keystone"], weight=parts.keystone),
                MetricScore(name="Spells", score=sub_scores["spells"], weight=parts.spells),
                MetricScore(name="Core Build", score=sub_scores["core"], weight=parts.core),
                MetricScore(name="Items", score=sub_scores["items"], weight=parts.items),
            ]
        )
        build_score = self._weights.build_score(sub_scores)

        if sample.death_quality is not None:
            timeline_score = float(sample.death_quality)
            metrics.append(MetricScore(name="Death Quality", score=timeline_score, weight=1.0))
        else:
            timeline_score = NEUTRAL_SCORE
            metrics.append(MetricScore(name="Timeline", score=timeline_score, weight=1.0))

        kda = self._kda(sample, player, minutes, metrics)

        final = self._weights.final_score(performance, build_score, timeline_score, kda)
        return ScoreBreakdown(
            final_score=final,
            metrics=metrics,
            component_scores=ComponentScores(
                performance=round_half_up(performance),
                build=round_half_up(build_score),
                timeline=round_half_up(timeline_score),
                kda=round_half_up(kda),
            ),
            build_sub_scores=BuildSubScores(**{k: round_half_up(v) for k, v in sub_scores.items()}),
            item_details=build.item_details,
            starting_items_details=build.starting_detail,
            core_build_details=build.core_detail,
            core_key=build.core_key,
            matched_core_key=build.match.matched_key,
            fallback_info=build.fallback,
            player_stats=player,
            champion_avg_stats=champion_avg,
            total_games=baseline.games,
            patch=baseline.patch,
            match_patch=sample.patch if used_fallback_patch else None,
            used_fallback_patch=used_fallback_patch,
            weights_version=self._weights.version,
        )

    @staticmethod
    def _kill_participation(sample: ParticipantSample) -> float | None:
        if sample.kills is None or sample.assists is None or not sample.team_total_kills:
            return None
        return (sample.kills + sample.assists) / sample.team_total_kills

    def _performance(
        self,
        sample: ParticipantSample,
        player: PerMinuteStats,
        avg: PerMinuteStats,
        baseline: ChampionPatchBaseline,
        metrics: list[MetricScore],
    ) -> float:
        welford = baseline.champion_stats.welford
        relevance = stat_relevance(avg, welford)
        minutes = sample.game_minutes
        scored: list[tuple[float, float]] = []

        def add(name: str, value: float, mean: float, stats: RunningStat, weight: float, score: float) -> None:
            if mean <= 0 or weight <= 0:
                return
            scored.append((score, weight))
            metrics.append(
                MetricScore(
                    name=name,
                    score=score,
                    weight=weight,
                    player_value=value,
                    avg_value=mean,
                    percent_of_avg=value / mean * 100,
                    z_score=_reported_z(value, stats),
                )
            )

        team_share = None
        if sample.team_total_damage:
            team_share = sample.damage_to_champions / sample.team_total_damage

        dmg_stats = welford.damage_to_champions_per_min
        add(
            "Damage to Champions",
            player.damage_to_champions_per_min,
            avg.damage_to_champions_per_min,
            dmg_stats,
            relevance.damage_to_champions,
            damage_score(
                player.damage_to_champions_per_min,
                avg.damage_to_champions_per_min,
                dmg_stats,
                minutes,
                team_share,
                **self._score_opts,
            ),
        )
        total_stats = welford.total_damage_per_min
        add(
            "Total Damage",
            player.total_damage_per_min,
            avg.total_damage_per_min,
            total_stats,
            relevance.total_damage,
            stat_score(
                player.total_damage_per_min,
                avg.total_damage_per_min,
                total_stats,
                True,
                minutes,
                **self._score_opts,
            ),
        )
        heal_stats = welford.healing_shielding_per_min
        add(
            "Healing/Shielding",
            player.healing_shielding_per_min,
            avg.healing_shielding_per_min,
            heal_stats,
            relevance.healing_shielding,
            stat_score(
                player.healing_shielding_per_min,
                avg.healing_shielding_per_min,
                heal_stats,
                True,
                minutes,
                **self._score_opts,
            ),
        )
        if relevance.cc_time > 0:
            cc_stats = welford.cc_time_per_min
            add(
                "CC Time",
                player.cc_time_per_min,
                avg.cc_time_per_min,
                cc_stats,
                relevance.cc_time,
                cc_time_score(player.cc_time_per_min, avg.cc_time_per_min, cc_stats, minutes, **self._score_opts),
            )

        total_weight = sum(weight for _, weight in scored)
        if total_weight <= 0:
            return NEUTRAL_SCORE
        return sum(score * weight for score, weight in scored) / total_weight

    def _build(self, sample: ParticipantSample, baseline: ChampionPatchBaseline | None) -> BuildResult:
        core_key = None
        if sample.purchase_order:
            core_key = resolve_core_key(sample.purchase_order, sample.inventory, self._catalog)
            if core_key is None:
                logger.debug("Unresolved core for %s", sample.champion_name)

        if baseline is None:
            score_metrics.mark_fallback("global_build")
            return BuildResult(core_key=core_key, neutral=True)

        match = match_core(
            core_key,
            baseline.core,
            self._settings.min_exact_core_games,
            self._settings.min_family_core_games,
        )
        if match.kind == CoreMatchKind.FAMILY:
            score_metrics.mark_fallback("family_core")
        elif not match.is_match:
            score_metrics.mark_fallback("global_build")
        cohort = match.cohort

        items, item_details = score_items(
            sample.purchase_order, sample.inventory, cohort, baseline.items, self._catalog
        )
        keystone, keystone_fallback = score_keystone(sample.keystone_id, cohort, baseline.runes.primary)
        spells, spells_fallback = score_spells(sample.spell1_id, sample.spell2_id, cohort, baseline.spells)
        skills = score_skill_order(sample.skill_order, baseline.skills)
        starting, starting_detail, starting_fallback = score_starting_items(
            sample.first_buy, cohort, baseline.starting
        )
        core_detail = score_core_quality(core_key, baseline.core, baseline.winrate)

        return BuildResult(
            items=items,
            keystone=keystone,
            spells=spells,
            skills=skills,
            core=core_detail.penalty,
            starting=starting,
            item_details=item_details,
            starting_detail=starting_detail,
            core_detail=core_detail,
            core_key=core_key,
            match=match,
            fallback=FallbackInfo(
                items=cohort is None,
                keystone=keystone_fallback,
                spells=spells_fallback,
                starting=starting_fallback,
            ),
        )

    def _kda(
        self,
        sample: ParticipantSample,
        player: PerMinuteStats,
        minutes: float,
        metrics: list[MetricScore],
    ) -> float:
        kp = player.kill_participation
        if kp is None:
            return NEUTRAL_SCORE
        kp_score = kill_participation_score(kp)
        death_score = deaths_score(sample.deaths, minutes, sample.death_quality)
        metrics.append(
            MetricScore(
                name="Kill Participation",
                score=kp_score,
                weight=self._weights.kda_kill_participation,
                player_value=kp * 100,
            )
        )
        metrics.append(
            MetricScore(
                name="Deaths/Min",
                score=death_score,
                weight=self._weights.kda_deaths,
                player_value=player.deaths_per_min,
            )
        )
        return self._weights.kda_score(kp_score, death_score)
