"""
Configuration settings using Pydantic Settings.

Scoring thresholds and weight selection are configurable through the
environment so formula tuning never requires a code change.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    SettingsConfigDict,
    PydanticBaseSettingsSource,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Ensure .env values take precedence over system environment variables.
    # Order: init kwargs > .env (dotenv) > env vars > file secrets
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ):
        return (
            init_settings,
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    # Database Configuration (baseline rows are read-only to the engine)
    database_url: str = Field("postgresql://localhost/pigscore", alias="DATABASE_URL")
    database_pool_size: int = Field(10, alias="DATABASE_POOL_SIZE")
    database_pool_timeout: int = Field(30, alias="DATABASE_POOL_TIMEOUT")
    baseline_table: str = Field("champion_stats", alias="PIG_BASELINE_TABLE")
    baseline_patch_lookback: int = Field(
        10,
        alias="PIG_BASELINE_PATCH_LOOKBACK",
        description="Number of most recent patch rows fetched per champion",
    )

    # Baseline reliability thresholds
    min_baseline_games: int = Field(
        2000,
        alias="PIG_MIN_BASELINE_GAMES",
        description="Minimum games for a patch baseline to be trusted for metric scoring",
    )
    min_build_baseline_games: int = Field(
        2000,
        alias="PIG_MIN_BUILD_BASELINE_GAMES",
        description="Minimum games for a patch baseline to be trusted for build cohorts",
    )
    min_exact_core_games: int = Field(10, alias="PIG_MIN_EXACT_CORE_GAMES")
    min_family_core_games: int = Field(30, alias="PIG_MIN_FAMILY_CORE_GAMES")

    # Score transform tuning
    sigmoid_k: float = Field(1.7, alias="PIG_SIGMOID_K")
    log_cv_cap: float = Field(0.22, alias="PIG_LOG_CV_CAP")
    weights_version: str = Field("v2", alias="PIG_WEIGHTS_VERSION")

    # Application Configuration
    app_name: str = Field("pig-score-engine", alias="APP_NAME")
    app_version: str = Field("0.1.0", alias="APP_VERSION")
    app_env: str = Field("development", alias="APP_ENV")
    app_debug: bool = Field(False, alias="APP_DEBUG")
    app_log_level: str = Field("INFO", alias="APP_LOG_LEVEL")

    # Feature Flags
    feature_scoring_metrics_enabled: bool = Field(True, alias="FEATURE_SCORING_METRICS_ENABLED")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"


# Global settings instance - loaded from environment.
# Every field has a default so importing never fails in tests.
settings = Settings()  # type: ignore[call-arg]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the global settings instance.

    This function provides dependency injection support for settings.
    """
    return settings
