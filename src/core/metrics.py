"""
Prometheus metrics for the scoring engine.

Metric definitions and helpers live here so instrumentation is not
scattered across the engine. Every helper is a no-op when the
``FEATURE_SCORING_METRICS_ENABLED`` flag is off.
"""

from __future__ import annotations

import contextlib

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from src.config.settings import get_settings

# Global registry
_registry = CollectorRegistry()

# ============================================================================
# Counters
# ============================================================================

pig_score_requests_total = Counter(
    "pig_score_requests_total",
    "Scoring calls by outcome (scored, unscoreable, no_baseline)",
    labelnames=("status",),
    registry=_registry,
)

pig_score_fallback_total = Counter(
    "pig_score_fallback_total",
    "Fallback decisions taken while scoring (patch, family_core, global_build)",
    labelnames=("kind",),
    registry=_registry,
)

# ============================================================================
# Histograms
# ============================================================================

pig_score_final = Histogram(
    "pig_score_final",
    "Distribution of final PIG scores",
    buckets=(10, 20, 30, 40, 50, 60, 70, 80, 90, 100),
    registry=_registry,
)

pig_score_duration_seconds = Histogram(
    "pig_score_duration_seconds",
    "Wall time of one scoring call in seconds",
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1),
    registry=_registry,
)


# ============================================================================
# Helper Functions
# ============================================================================


def _enabled() -> bool:
    return get_settings().feature_scoring_metrics_enabled


def mark_scoring_result(status: str) -> None:
    """Count one scoring call.

    Args:
        status: 'scored', 'unscoreable' or 'no_baseline'
    """
    if not _enabled():
        return
    pig_score_requests_total.labels(status=status).inc()


def mark_fallback(kind: str) -> None:
    """Count one fallback decision.

    Args:
        kind: 'patch', 'family_core' or 'global_build'
    """
    if not _enabled():
        return
    pig_score_fallback_total.labels(kind=kind).inc()


def observe_final_score(score: int) -> None:
    if not _enabled():
        return
    pig_score_final.observe(score)


def observe_duration(duration_seconds: float) -> None:
    if not _enabled():
        return
    pig_score_duration_seconds.observe(duration_seconds)


def render_latest() -> tuple[bytes, str]:
    """Render latest metrics for Prometheus scraping.

    Returns:
        Tuple of (payload bytes, content_type string)
    """
    payload = b""
    with contextlib.suppress(ValueError):
        payload = generate_latest(_registry)
    return (payload, CONTENT_TYPE_LATEST)
