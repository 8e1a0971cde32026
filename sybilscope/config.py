"""
Configuration management for SybilScope.

Uses Pydantic Settings to load configuration from environment variables and .env files.
Every threshold used by the clustering, sybil and graph components lives here,
so tuning never requires touching the algorithms themselves.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, ValidationError, field_validator
from dotenv import load_dotenv

from .exceptions import InvalidConfigError

# Load environment variables from .env file
load_dotenv()


class FeatureSettings(BaseSettings):
    """Parameters for turning raw transactions into feature vectors."""

    preferred_hours_count: int = Field(
        default=3,
        ge=1,
        description="How many of the most frequent UTC hours to keep"
    )
    preferred_days_count: int = Field(
        default=2,
        ge=1,
        description="How many of the most frequent weekdays to keep"
    )
    gas_units_per_transaction: int = Field(
        default=21000,
        ge=0,
        description="Gas units assumed per transaction when estimating gas spent"
    )
    min_account_age_days: float = Field(
        default=1.0,
        gt=0,
        description="Floor applied to account age (days)"
    )

    model_config = SettingsConfigDict(
        env_prefix="FEATURES_"
    )


class ClusteringSettings(BaseSettings):
    """K-means parameters."""

    max_clusters: int = Field(
        default=50,
        ge=1,
        description="Upper bound for the automatically chosen cluster count"
    )
    max_iterations: int = Field(
        default=100,
        ge=1,
        description="Hard cap on Lloyd iterations"
    )
    timeout_seconds: Optional[float] = Field(
        default=None,
        description="Abort clustering if it runs longer than this (checked between iterations)"
    )

    model_config = SettingsConfigDict(
        env_prefix="CLUSTERING_"
    )

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v):
        if v is not None and v <= 0:
            raise ValueError("timeout_seconds must be positive when set")
        return v


class SybilSettings(BaseSettings):
    """
    Thresholds and weights for sybil detection.

    The weights are additive: a wallet above the similarity threshold
    contributes `weight_similar_wallet`, and each corroborating signal
    adds its own weight on top.
    """

    similarity_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Cosine similarity above which a wallet counts as related"
    )
    min_ranking_similarity: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Minimum similarity for rank_similar_wallets"
    )

    # Corroborating evidence
    min_shared_hours: int = Field(
        default=2,
        description="Shared preferred hours needed for temporal correlation"
    )
    min_common_counterparties: int = Field(
        default=3,
        description="Shared counterparties needed for the common-partner signal"
    )
    funding_tolerance_pct: float = Field(
        default=0.10,
        description="Average values within this fraction count as similar funding"
    )

    # Scoring
    weight_similar_wallet: int = 20
    weight_temporal_correlation: int = 10
    weight_common_counterparties: int = 15
    weight_similar_funding: int = 20

    sybil_score_threshold: int = Field(
        default=60,
        description="Wallet is flagged as sybil if risk score > this value"
    )
    pattern_score_threshold: int = Field(
        default=80,
        description="Attack pattern is only classified above this risk score"
    )
    max_related_wallets: int = Field(
        default=10,
        ge=1,
        description="Cap on related wallets reported per analysis"
    )

    # Pattern classification
    airdrop_min_protocols: int = 10
    airdrop_min_related: int = 5
    bot_min_frequency: float = 10.0

    model_config = SettingsConfigDict(
        env_prefix="SYBIL_"
    )


class GraphSettings(BaseSettings):
    """Interaction graph configuration."""

    min_interactions: int = Field(
        default=2,
        ge=1,
        description="Minimum interaction count for an edge to be kept"
    )
    label_length: int = Field(
        default=10,
        ge=1,
        description="Characters of the address shown in node labels"
    )

    model_config = SettingsConfigDict(
        env_prefix="GRAPH_"
    )


class Settings(BaseSettings):
    """
    Main application settings.

    Loads from environment variables and .env file.
    Environment variables take precedence over .env file.

    Usage:
        from sybilscope.config import get_settings
        settings = get_settings()
        print(settings.sybil.similarity_threshold)
    """

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR"
    )
    log_json_format: bool = Field(
        default=False,
        description="Output logs as JSON (useful for log aggregation)"
    )

    # Nested settings
    features: FeatureSettings = Field(default_factory=FeatureSettings)
    clustering: ClusteringSettings = Field(default_factory=ClusteringSettings)
    sybil: SybilSettings = Field(default_factory=SybilSettings)
    graph: GraphSettings = Field(default_factory=GraphSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",  # Allows SYBIL__SIMILARITY_THRESHOLD=0.9
        extra="ignore"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    To reload settings (e.g., in tests), call:
        get_settings.cache_clear()

    Raises:
        InvalidConfigError: If an environment value fails validation
    """
    try:
        return Settings()
    except ValidationError as e:
        error = e.errors()[0]
        key = ".".join(str(part) for part in error["loc"]) or e.title
        raise InvalidConfigError(key, error.get("input"), error["msg"]) from e
