"""Configuration management for search term intelligence."""

import hashlib
import json
import logging
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from searchterm_intel.core.exceptions import ConfigurationError

DEFAULT_STOP_WORDS: frozenset[str] = frozenset(
    {
        "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
        "be", "have", "has", "had", "do", "does", "did", "will", "would",
        "could", "should", "may", "might", "must", "shall", "can", "need",
        "dare", "ought", "used", "it", "its", "this", "that", "these",
        "those", "i", "you", "he", "she", "we", "they", "me", "him", "her",
        "us", "them", "my", "your", "his", "our", "their", "mine", "yours",
        "hers", "ours", "theirs",
    }
)  # fmt: skip

DEFAULT_COMMON_NEGATIVE_ROOTS: frozenset[str] = frozenset(
    {
        "free", "cheap", "discount", "used", "repair", "fix", "broken", "diy",
        "homemade", "alternative", "substitute", "knock off", "fake",
        "counterfeit", "replica", "imitation", "wholesale", "bulk", "sample",
        "trial", "demo", "test", "review", "comparison",
    }
)  # fmt: skip


class LogFormat(str, Enum):
    """Log format options."""

    JSON = "json"
    TEXT = "text"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: LogFormat = LogFormat.TEXT
    log_file: Path | None = Field(
        default=None, description="Optional file that receives a copy of all logs"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Reject log levels the logging module does not know."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


class NgramConfig(BaseModel):
    """Tokenizer and n-gram aggregation settings."""

    min_frequency: int = Field(
        default=25, ge=1, description="Minimum contributing queries per root"
    )
    min_spend: float = Field(
        default=12.5, ge=0.0, description="Minimum total spend per root"
    )
    min_ngram_length: int = Field(default=1, ge=1, le=3)
    max_ngram_length: int = Field(default=3, ge=1, le=3)
    min_token_length: int = Field(default=2, ge=1)
    stop_words: frozenset[str] = Field(default=DEFAULT_STOP_WORDS)
    count_per_campaign: bool = Field(
        default=False,
        description="Count one occurrence per (query, campaign) instead of per query",
    )

    @field_validator("stop_words", mode="before")
    @classmethod
    def normalize_stop_words(cls, v: Any) -> Any:
        """Lower-case configured stop words."""
        if isinstance(v, (list, set, frozenset, tuple)):
            return frozenset(str(word).lower() for word in v)
        return v

    @model_validator(mode="after")
    def validate_ngram_range(self) -> "NgramConfig":
        """Ensure the n-gram window range is not inverted."""
        if self.max_ngram_length < self.min_ngram_length:
            raise ValueError(
                "max_ngram_length must be greater than or equal to min_ngram_length"
            )
        return self


class ClassifierConfig(BaseModel):
    """Negative-candidate classification thresholds."""

    common_negative_roots: frozenset[str] = Field(
        default=DEFAULT_COMMON_NEGATIVE_ROOTS
    )
    zero_order_spend_multiplier: float = Field(
        default=2.0, gt=0.0, description="Multiple of min_spend for zero-order roots"
    )
    max_cvr: float = Field(default=1.0, ge=0.0, le=100.0)  # Percentage
    min_acos_for_medium: float = Field(default=100.0, ge=0.0)  # Percentage
    min_acos_for_low: float = Field(default=50.0, ge=0.0)  # Percentage
    max_orders_for_low: int = Field(default=3, ge=1)
    recovery_ratio: float = Field(
        default=0.8, gt=0.0, le=1.0, description="Share of root spend expected back"
    )
    max_affected_queries: int = Field(default=10, ge=1)

    @field_validator("common_negative_roots", mode="before")
    @classmethod
    def normalize_roots(cls, v: Any) -> Any:
        """Lower-case and collapse whitespace in configured roots."""
        if isinstance(v, (list, set, frozenset, tuple)):
            return frozenset(" ".join(str(root).lower().split()) for root in v)
        return v


class MigrationConfig(BaseModel):
    """Funnel migration eligibility gates and priority cut-offs."""

    broad_to_phrase_min_orders: int = Field(default=3, ge=1)
    phrase_to_exact_min_orders: int = Field(default=10, ge=1)
    phrase_to_exact_min_roas: float = Field(default=5.0, ge=0.0)

    high_priority_roas: float = Field(default=8.0, gt=0.0)
    high_priority_orders: int = Field(default=20, ge=1)
    medium_priority_roas: float = Field(default=3.0, gt=0.0)
    medium_priority_orders: int = Field(default=5, ge=1)

    phrase_bid_multiplier: float = Field(default=1.0, gt=0.0)
    exact_bid_multiplier: float = Field(default=1.1, gt=0.0)

    @model_validator(mode="after")
    def validate_priority_cutoffs(self) -> "MigrationConfig":
        """Priority cut-offs must be ordered high above medium."""
        if self.high_priority_roas <= self.medium_priority_roas:
            raise ValueError(
                "high_priority_roas must be greater than medium_priority_roas"
            )
        if self.high_priority_orders <= self.medium_priority_orders:
            raise ValueError(
                "high_priority_orders must be greater than medium_priority_orders"
            )
        return self


class ConflictConfig(BaseModel):
    """Traffic conflict severity and ambiguity settings."""

    ambiguity_margin_pct: float = Field(default=20.0, ge=0.0)
    high_severity_clicks: int = Field(default=50, ge=1)
    high_severity_campaigns: int = Field(default=3, ge=2)
    medium_severity_clicks: int = Field(default=20, ge=1)

    @model_validator(mode="after")
    def validate_severity_cutoffs(self) -> "ConflictConfig":
        """Medium severity must start below high severity."""
        if self.medium_severity_clicks >= self.high_severity_clicks:
            raise ValueError(
                "medium_severity_clicks must be less than high_severity_clicks"
            )
        return self


class ReviewConfig(BaseModel):
    """Review gateway execution limits."""

    max_negatives_per_batch: int = Field(
        default=100, ge=1, description="Larger write batches are refused outright"
    )
    max_history_records: int = Field(
        default=10_000, ge=1, description="Oldest review records are dropped past this"
    )


class FunnelConfig(BaseModel):
    """Funnel tier identification settings."""

    core_campaign_markers: frozenset[str] = Field(
        default=frozenset({"exact", "core"}),
        description="Name fragments that mark an exact campaign as the core tier",
    )

    @field_validator("core_campaign_markers", mode="before")
    @classmethod
    def normalize_markers(cls, v: Any) -> Any:
        """Lower-case configured campaign name markers."""
        if isinstance(v, (list, set, frozenset, tuple)):
            return frozenset(str(marker).lower() for marker in v)
        return v


class Settings(BaseSettings):
    """Application settings.

    Environment Variables:
        STI_WINDOW_DAYS=30
        STI_NGRAM__MIN_FREQUENCY=25
        STI_NGRAM__MIN_SPEND=12.5
        STI_CLASSIFIER__RECOVERY_RATIO=0.8
        STI_MIGRATION__PHRASE_TO_EXACT_MIN_ROAS=5.0
        STI_REVIEW__MAX_NEGATIVES_PER_BATCH=100
        STI_LOGGING__LEVEL=DEBUG
        STI_LOGGING__FORMAT=json
    """

    model_config = SettingsConfigDict(
        env_prefix="STI_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    window_days: int = Field(default=30, ge=1, le=365)
    ngram: NgramConfig = Field(default_factory=NgramConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    migration: MigrationConfig = Field(default_factory=MigrationConfig)
    conflict: ConflictConfig = Field(default_factory=ConflictConfig)
    funnel: FunnelConfig = Field(default_factory=FunnelConfig)
    review: ReviewConfig = Field(default_factory=ReviewConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> "Settings":
        """Load settings from the environment, reading a .env file first."""
        if env_file:
            load_dotenv(env_file)
        else:
            env_path = Path(os.getcwd()) / ".env"
            if env_path.exists():
                load_dotenv(env_path)

        try:
            return cls()
        except ValidationError as e:
            raise ConfigurationError(f"Configuration errors: {e}") from e

    @property
    def ruleset_version(self) -> str:
        """Stable fingerprint of every analysis threshold.

        Changes whenever any rule configuration changes, so cached analysis
        results can be keyed on it.
        """
        payload = self.model_dump(mode="json", exclude={"logging"})
        for section in ("ngram", "classifier", "funnel"):
            for key, value in payload[section].items():
                if isinstance(value, list):
                    payload[section][key] = sorted(value)
        digest = hashlib.sha256(json.dumps(payload, sort_keys=True).encode())
        return digest.hexdigest()[:12]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    try:
        return Settings.from_env()
    except ConfigurationError as e:
        logging.error(f"Configuration error: {e}")
        raise


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper())

    if settings.logging.format == LogFormat.JSON:

        class JsonFormatter(logging.Formatter):
            def format(self, record: logging.LogRecord) -> str:
                log_data = {
                    "timestamp": self.formatTime(record),
                    "level": record.levelname,
                    "logger": record.name,
                    "message": record.getMessage(),
                    "module": record.module,
                    "function": record.funcName,
                    "line": record.lineno,
                }
                if record.exc_info:
                    log_data["exception"] = self.formatException(record.exc_info)
                return json.dumps(log_data)

        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if settings.logging.log_file:
        settings.logging.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(settings.logging.log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
