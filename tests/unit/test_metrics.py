"""Unit tests for Prometheus scoring metrics."""

from unittest.mock import patch

import pytest

from src.adapters.baseline_cache import BaselineCache
from src.config.settings import Settings
from src.core import metrics
from src.core.scoring import PigScoreCalculator


def sample_value(name: str, labels: dict[str, str] | None = None) -> float:
    value = metrics._registry.get_sample_value(name, labels or {})
    return value or 0.0


class TestScoringMetrics:
    def test_scored_call_counted(self, make_baseline, make_sample):
        before = sample_value("pig_score_requests_total", {"status": "scored"})
        observed = sample_value("pig_score_final_count")
        calculator = PigScoreCalculator(BaselineCache.from_baselines([make_baseline()]), settings=Settings())

        calculator.calculate(make_sample())

        assert sample_value("pig_score_requests_total", {"status": "scored"}) == before + 1
        assert sample_value("pig_score_final_count") == observed + 1

    def test_absent_results_counted(self, make_baseline, make_sample):
        calculator = PigScoreCalculator(BaselineCache.from_baselines([make_baseline()]), settings=Settings())
        unscoreable = sample_value("pig_score_requests_total", {"status": "unscoreable"})
        no_baseline = sample_value("pig_score_requests_total", {"status": "no_baseline"})

        calculator.calculate(make_sample(total_damage_dealt=0))
        calculator.calculate(make_sample(champion_name="Ahri"))

        assert sample_value("pig_score_requests_total", {"status": "unscoreable"}) == unscoreable + 1
        assert sample_value("pig_score_requests_total", {"status": "no_baseline"}) == no_baseline + 1

    def test_fallbacks_counted(self, make_baseline, make_sample):
        calculator = PigScoreCalculator(
            BaselineCache.from_baselines([make_baseline(core={})]), settings=Settings()
        )
        patch_before = sample_value("pig_score_fallback_total", {"kind": "patch"})
        build_before = sample_value("pig_score_fallback_total", {"kind": "global_build"})

        calculator.calculate(make_sample(patch="14.24"))

        assert sample_value("pig_score_fallback_total", {"kind": "patch"}) == patch_before + 1
        assert sample_value("pig_score_fallback_total", {"kind": "global_build"}) == build_before + 1

    def test_disabled_flag(self):
        before = sample_value("pig_score_requests_total", {"status": "scored"})
        with patch("src.core.metrics.get_settings", return_value=Settings(feature_scoring_metrics_enabled=False)):
            metrics.mark_scoring_result("scored")
            metrics.observe_duration(0.002)
        assert sample_value("pig_score_requests_total", {"status": "scored"}) == before

    def test_render_latest(self):
        metrics.mark_fallback("family_core")
        payload, content_type = metrics.render_latest()
        assert b"pig_score_fallback_total" in payload
        assert content_type.startswith("text/plain")

    @pytest.mark.parametrize("score", [0, 55, 100])
    def test_observe_final_score(self, score):
        before = sample_value("pig_score_final_count")
        metrics.observe_final_score(score)
        assert sample_value("pig_score_final_count") == before + 1
