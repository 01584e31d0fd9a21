"""PIG score engine - confidence-weighted player quality index.

Scores one participant of a finished match against the baseline of the
same champion and patch. Pure domain logic; baseline reads go through an
injected ``BaselinePort``.

Four components:
1. Performance - per-minute metrics vs the champion's running statistics
2. Build - items, keystone, spells, skill order, core and starting items
3. Timeline - death quality
4. KDA - kill participation and death tempo
"""

from src.core.scoring.calculator import PigScoreCalculator, StatRelevance, stat_relevance
from src.core.scoring.errors import (
    BaselineUnavailableError,
    InvalidSampleError,
    ScoringError,
    UnknownWeightsVersionError,
)
from src.core.scoring.extractors import extract_participant_outcome, extract_participant_sample
from src.core.scoring.weights import WEIGHT_VERSIONS, ScoringWeights, get_weights

__all__ = [
    "PigScoreCalculator",
    "StatRelevance",
    "stat_relevance",
    "ScoringError",
    "BaselineUnavailableError",
    "InvalidSampleError",
    "UnknownWeightsVersionError",
    "extract_participant_sample",
    "extract_participant_outcome",
    "ScoringWeights",
    "WEIGHT_VERSIONS",
    "get_weights",
]
