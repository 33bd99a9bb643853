"""
Virality Scoring - Configuration.

============================================================
PURPOSE
============================================================
Defines the immutable risk configuration consumed by the
feature extractor, the scoring engine, and the classifier.

============================================================
DESIGN PRINCIPLES
============================================================
- A RiskConfig is a value: updates build a new instance
- Validation collects every violation, then raises once
- An invalid configuration is never partially applied

============================================================
INVARIANTS
============================================================
- Sum of the six feature weights within [0.8, 1.2]
- Thresholds strictly increasing: low < medium < high < viral_threat
- Every threshold within [0, 1]
- Platform multipliers within [0.1, 5.0]
- Emotion weights within [0, 1]

============================================================
"""

import json
import math
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from pydantic import ValidationError as SchemaValidationError

from core.exceptions import ValidationError

from .schemas import PartialRiskConfigRecord, RiskConfigRecord
from .types import FEATURE_NAMES, FEATURE_RECORD_KEYS


# ============================================================
# VALIDATION BOUNDS
# ============================================================

WEIGHT_SUM_MIN = 0.8
WEIGHT_SUM_MAX = 1.2
PLATFORM_MULTIPLIER_MIN = 0.1
PLATFORM_MULTIPLIER_MAX = 5.0
EMOTION_WEIGHT_MIN = 0.0
EMOTION_WEIGHT_MAX = 1.0

# Weight applied to emotions absent from ``emotion_weights``
DEFAULT_EMOTION_WEIGHT = 0.5

# Multiplier applied to platforms absent from ``platform_multipliers``
DEFAULT_PLATFORM_MULTIPLIER = 1.0


# ============================================================
# WEIGHTS
# ============================================================


@dataclass(frozen=True)
class FeatureWeights:
    """One weight per canonical feature, intended to sum to about 1.0."""

    tone_severity: float = 0.35
    engagement_velocity: float = 0.25
    user_influence: float = 0.20
    content_length: float = 0.10
    platform_multiplier: float = 0.05
    time_decay: float = 0.05

    @property
    def total(self) -> float:
        return sum(getattr(self, name) for name in FEATURE_NAMES)

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in FEATURE_NAMES}

    def to_record(self) -> Dict[str, float]:
        return {FEATURE_RECORD_KEYS[name]: getattr(self, name) for name in FEATURE_NAMES}


# ============================================================
# THRESHOLDS
# ============================================================


@dataclass(frozen=True)
class RiskThresholds:
    """
    Tier boundaries, compared with ``>=``.

    ``low`` does not change classification (anything below
    ``medium`` is LOW) but is kept for validation and display.
    """

    low: float = 0.3
    medium: float = 0.5
    high: float = 0.7
    viral_threat: float = 0.85

    def as_dict(self) -> Dict[str, float]:
        return {
            "low": self.low,
            "medium": self.medium,
            "high": self.high,
            "viral_threat": self.viral_threat,
        }

    def to_record(self) -> Dict[str, float]:
        return {
            "low": self.low,
            "medium": self.medium,
            "high": self.high,
            "viralThreat": self.viral_threat,
        }


# ============================================================
# DEFAULT LOOKUP TABLES
# ============================================================

DEFAULT_PLATFORM_MULTIPLIERS: Dict[str, float] = {
    "twitter": 1.2,
    "reddit": 1.0,
    "trustpilot": 0.8,
    "appstore": 0.9,
}

DEFAULT_EMOTION_WEIGHTS: Dict[str, float] = {
    "anger": 0.9,
    "frustration": 0.8,
    "betrayal": 0.85,
    "sarcasm": 0.7,
    "confusion": 0.4,
    "disappointment": 0.6,
    "joy": 0.3,
    "satisfaction": 0.2,
    "gratitude": 0.1,
    "appreciation": 0.1,
    "trust": 0.1,
}


def _frozen_mapping(values: Mapping[str, float]) -> Mapping[str, float]:
    return MappingProxyType({str(k): float(v) for k, v in values.items()})


# ============================================================
# MASTER CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class RiskConfig:
    """
    Complete scoring configuration.

    Lookup tables are exposed as read-only mappings so a published
    configuration cannot be mutated in place.
    """

    weights: FeatureWeights = field(default_factory=FeatureWeights)
    thresholds: RiskThresholds = field(default_factory=RiskThresholds)
    platform_multipliers: Mapping[str, float] = field(
        default_factory=lambda: dict(DEFAULT_PLATFORM_MULTIPLIERS),
        hash=False,
    )
    emotion_weights: Mapping[str, float] = field(
        default_factory=lambda: dict(DEFAULT_EMOTION_WEIGHTS),
        hash=False,
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "platform_multipliers", _frozen_mapping(self.platform_multipliers))
        object.__setattr__(self, "emotion_weights", _frozen_mapping(self.emotion_weights))

    def platform_multiplier_for(self, platform: str) -> float:
        return self.platform_multipliers.get(platform, DEFAULT_PLATFORM_MULTIPLIER)

    def emotion_weight_for(self, emotion: str) -> float:
        return self.emotion_weights.get(emotion, DEFAULT_EMOTION_WEIGHT)

    # --------------------------------------------------------
    # SERIALIZATION
    # --------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Persisted record shape (camelCase keys)."""
        return {
            "weights": self.weights.to_record(),
            "thresholds": self.thresholds.to_record(),
            "platformMultipliers": dict(self.platform_multipliers),
            "emotionWeights": dict(self.emotion_weights),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RiskConfig":
        """
        Build a config from a persisted record.

        Raises:
            ValidationError: if the record has the wrong shape or types
        """
        try:
            record = RiskConfigRecord.model_validate(dict(data))
        except SchemaValidationError as e:
            raise ValidationError(
                "Malformed risk configuration record",
                errors=[f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
                cause=e,
            ) from e

        return cls(
            weights=FeatureWeights(**record.weights.model_dump()),
            thresholds=RiskThresholds(**record.thresholds.model_dump()),
            platform_multipliers=record.platform_multipliers,
            emotion_weights=record.emotion_weights,
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    # --------------------------------------------------------
    # DERIVATION
    # --------------------------------------------------------

    def merged_with(self, partial: Union[Mapping[str, Any], PartialRiskConfigRecord]) -> "RiskConfig":
        """
        Return a new config with ``partial`` merged over this one.

        Each supplied section is merged key by key; sections not
        supplied are carried over unchanged. The result is NOT validated.

        Raises:
            ValidationError: if ``partial`` has the wrong shape or types
        """
        if isinstance(partial, PartialRiskConfigRecord):
            record = partial
        else:
            try:
                record = PartialRiskConfigRecord.model_validate(dict(partial))
            except SchemaValidationError as e:
                raise ValidationError(
                    "Malformed partial risk configuration",
                    errors=[f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
                    cause=e,
                ) from e

        sections = record.sections()

        weights = self.weights
        if "weights" in sections:
            weights = replace(weights, **sections["weights"])

        thresholds = self.thresholds
        if "thresholds" in sections:
            thresholds = replace(thresholds, **sections["thresholds"])

        platform_multipliers = dict(self.platform_multipliers)
        platform_multipliers.update(sections.get("platform_multipliers", {}))

        emotion_weights = dict(self.emotion_weights)
        emotion_weights.update(sections.get("emotion_weights", {}))

        return RiskConfig(
            weights=weights,
            thresholds=thresholds,
            platform_multipliers=platform_multipliers,
            emotion_weights=emotion_weights,
        )


# ============================================================
# VALIDATION
# ============================================================


def validate_config(config: RiskConfig) -> List[str]:
    """Validate configuration, return list of errors."""
    errors: List[str] = []

    weights = config.weights.as_dict()
    for name, value in weights.items():
        if not math.isfinite(value):
            errors.append(f"weight {name} must be a finite number, got {value}")

    total = config.weights.total
    if math.isfinite(total) and not (WEIGHT_SUM_MIN <= total <= WEIGHT_SUM_MAX):
        errors.append(
            f"Invalid weight configuration: total weight is {total:.4f}, "
            f"should be within [{WEIGHT_SUM_MIN}, {WEIGHT_SUM_MAX}]"
        )

    t = config.thresholds
    ordered = [t.low, t.medium, t.high, t.viral_threat]
    if not all(math.isfinite(v) for v in ordered):
        errors.append("Thresholds must be finite numbers")
    else:
        if not (t.low < t.medium < t.high < t.viral_threat):
            errors.append("Thresholds must be in ascending order: low < medium < high < viral_threat")
        if any(v < 0.0 or v > 1.0 for v in ordered):
            errors.append("Thresholds must be between 0 and 1")

    for platform, multiplier in config.platform_multipliers.items():
        if not (PLATFORM_MULTIPLIER_MIN <= multiplier <= PLATFORM_MULTIPLIER_MAX):
            errors.append(f"Invalid platform multiplier for {platform}: {multiplier}")

    for emotion, weight in config.emotion_weights.items():
        if not (EMOTION_WEIGHT_MIN <= weight <= EMOTION_WEIGHT_MAX):
            errors.append(f"Invalid emotion weight for {emotion}: {weight}")

    return errors


def ensure_valid(config: RiskConfig) -> RiskConfig:
    """
    Return ``config`` unchanged if it satisfies every invariant.

    Raises:
        ValidationError: listing every violation found
    """
    errors = validate_config(config)
    if errors:
        raise ValidationError(f"Invalid risk configuration: {errors[0]}", errors=errors)
    return config


# ============================================================
# DEFAULT CONFIGURATION
# ============================================================


def get_default_config() -> RiskConfig:
    """Return the default scoring configuration."""
    return RiskConfig()


def load_config_file(path: Union[str, Path], partial: bool = False) -> Union[RiskConfig, Dict[str, Any]]:
    """
    Load a configuration record from a YAML or JSON file.

    Args:
        path: File to read (``.json`` parsed as JSON, anything else as YAML)
        partial: Return the raw mapping for ``update`` instead of a full config

    Raises:
        ValidationError: if the file does not hold a mapping or a full
            record has the wrong shape
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValidationError(f"Configuration file {path} must contain a mapping")

    if partial:
        return data
    return RiskConfig.from_dict(data)
