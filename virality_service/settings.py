"""
Virality Service - Settings.

============================================================
RESPONSIBILITY
============================================================
Process-level settings for the service facade and the CLI.

- Loaded from environment variables (``.env`` supported)
- Validated once at startup
- Never holds the risk configuration itself (that is versioned
  in the configuration store)

============================================================
ENVIRONMENT
============================================================
VIRALITY_DATABASE_URL          SQLAlchemy URL of the configuration store
VIRALITY_BASE_VERSION          Prefix of generated version ids
VIRALITY_MIN_TRAINING_SAMPLES  Minimum samples accepted by training
VIRALITY_VALIDATION_SPLIT      Fraction held out for validation
VIRALITY_MIN_ENGAGEMENT        Engagement below which items are skipped
LOG_LEVEL                      Logging level name

============================================================
"""

import os
from dataclasses import dataclass
from typing import Callable, List, Union

from dotenv import load_dotenv

from core.exceptions import ValidationError


DEFAULT_DATABASE_URL = "sqlite:///virality_config.db"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

def _env_number(name: str, default: str, parse: Callable[[str], Union[int, float]]) -> Union[int, float]:
    """Parse a numeric environment variable, naming it on failure."""
    raw = os.getenv(name, default)
    try:
        return parse(raw)
    except ValueError as e:
        raise ValidationError(
            f"{name} is not a valid {parse.__name__}: {raw!r}",
            field=name,
            cause=e,
        ) from e


@dataclass(frozen=True)
class ServiceSettings:
    """Service configuration."""

    database_url: str = DEFAULT_DATABASE_URL
    base_version: str = "1.0.0"
    min_training_samples: int = 50
    validation_split: float = 0.2
    min_engagement: int = 10
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "ServiceSettings":
        """Load configuration from environment variables."""
        if load_dotenv_file:
            load_dotenv()

        return cls(
            database_url=os.getenv("VIRALITY_DATABASE_URL", DEFAULT_DATABASE_URL),
            base_version=os.getenv("VIRALITY_BASE_VERSION", "1.0.0"),
            min_training_samples=_env_number("VIRALITY_MIN_TRAINING_SAMPLES", "50", int),
            validation_split=_env_number("VIRALITY_VALIDATION_SPLIT", "0.2", float),
            min_engagement=_env_number("VIRALITY_MIN_ENGAGEMENT", "10", int),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if not self.database_url:
            errors.append("database_url must not be empty")

        if not self.base_version:
            errors.append("base_version must not be empty")

        if self.min_training_samples < 1:
            errors.append("min_training_samples must be at least 1")

        if not (0.0 < self.validation_split < 1.0):
            errors.append("validation_split must be between 0 and 1 (exclusive)")

        if self.min_engagement < 0:
            errors.append("min_engagement must not be negative")

        if self.log_level not in LOG_LEVELS:
            errors.append(f"log_level must be one of {', '.join(LOG_LEVELS)}")

        return errors
