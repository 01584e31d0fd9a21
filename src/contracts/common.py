"""
Common data types and base models for the PIG score engine.
All models use Pydantic V2 with strict type checking.
"""

import math
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ChoiceReason(str, Enum):
    """How a discrete build choice compared against the ranked options."""

    OPTIMAL = "optimal"
    SUBOPTIMAL = "suboptimal"
    OFF_META = "off-meta"
    UNKNOWN = "unknown"


class CoreMatchKind(str, Enum):
    EXACT = "exact"
    FAMILY = "family"
    NONE = "none"


class BaseContract(BaseModel):
    """Base model for all data contracts with common configuration."""

    model_config = ConfigDict(
        # Validate data on assignment
        validate_assignment=True,
        # Use enum values in JSON
        use_enum_values=True,
        # Forbid extra fields to ensure data integrity
        extra="forbid",
    )


class FrozenContract(BaseContract):
    """Immutable contract; produced once and never mutated afterwards."""

    model_config = ConfigDict(frozen=True)


class StoredContract(BaseModel):
    """Contract parsed from aggregate rows written by the aggregation job.

    Rows are camelCase JSON and may carry keys this engine does not read,
    so unknown keys are ignored instead of rejected.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class GameStats(StoredContract):
    """Win/loss counter for one option of a discrete choice."""

    games: int = Field(0, ge=0)
    wins: int = Field(0, ge=0)

    @property
    def winrate(self) -> float:
        """Win rate in percent (0-100); 0 when no games were recorded."""
        if self.games <= 0:
            return 0.0
        return self.wins / self.games * 100


class RunningStat(StoredContract):
    """Welford running statistics: count, running mean and sum of squared deviations."""

    n: int = Field(0, ge=0)
    mean: float = 0.0
    m2: float = Field(0.0, ge=0)

    @property
    def variance(self) -> float:
        """Population variance; 0 below two observations."""
        if self.n < 2:
            return 0.0
        return self.m2 / self.n

    @property
    def std_dev(self) -> float:
        return math.sqrt(self.variance)

    @property
    def coefficient_of_variation(self) -> float:
        if self.mean <= 0:
            return 0.0
        return self.std_dev / self.mean

    def z_score(self, value: float) -> float:
        std = self.std_dev
        if std == 0:
            return 0.0
        return (value - self.mean) / std

    def updated(self, value: float) -> "RunningStat":
        """Return the state after observing ``value`` (Welford update)."""
        n = self.n + 1
        delta = value - self.mean
        mean = self.mean + delta / n
        m2 = self.m2 + delta * (value - mean)
        return RunningStat(n=n, mean=mean, m2=max(0.0, m2))
