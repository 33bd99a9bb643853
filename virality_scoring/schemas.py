"""
Pydantic Schemas for the persisted risk configuration record.

The record is the interop shape written to the configuration store:

    {
        "weights": {"toneSeverity": ..., "engagementVelocity": ..., ...},
        "thresholds": {"low": ..., "medium": ..., "high": ..., "viralThreat": ...},
        "platformMultipliers": {"<platform>": ...},
        "emotionWeights": {"<emotion>": ...}
    }

Schemas only check shape and types. Range and ordering rules live in
``virality_scoring.config.validate_config``.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================
# FULL RECORD
# =============================================================

class WeightsSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    tone_severity: float = Field(alias="toneSeverity")
    engagement_velocity: float = Field(alias="engagementVelocity")
    user_influence: float = Field(alias="userInfluence")
    content_length: float = Field(alias="contentLength")
    platform_multiplier: float = Field(alias="platformMultiplier")
    time_decay: float = Field(alias="timeDecay")


class ThresholdsSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    low: float
    medium: float
    high: float
    viral_threat: float = Field(alias="viralThreat")


class RiskConfigRecord(BaseModel):
    """A complete configuration as stored under ``config:current``."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    weights: WeightsSchema
    thresholds: ThresholdsSchema
    platform_multipliers: Dict[str, float] = Field(alias="platformMultipliers")
    emotion_weights: Dict[str, float] = Field(alias="emotionWeights")


# =============================================================
# PARTIAL UPDATE
# =============================================================

class PartialWeightsSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    tone_severity: Optional[float] = Field(default=None, alias="toneSeverity")
    engagement_velocity: Optional[float] = Field(default=None, alias="engagementVelocity")
    user_influence: Optional[float] = Field(default=None, alias="userInfluence")
    content_length: Optional[float] = Field(default=None, alias="contentLength")
    platform_multiplier: Optional[float] = Field(default=None, alias="platformMultiplier")
    time_decay: Optional[float] = Field(default=None, alias="timeDecay")


class PartialThresholdsSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    low: Optional[float] = None
    medium: Optional[float] = None
    high: Optional[float] = None
    viral_threat: Optional[float] = Field(default=None, alias="viralThreat")


class PartialRiskConfigRecord(BaseModel):
    """
    A partial configuration supplied to ``update``.

    Every section is optional; inside a section only the supplied
    keys override the current configuration.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    weights: Optional[PartialWeightsSchema] = None
    thresholds: Optional[PartialThresholdsSchema] = None
    platform_multipliers: Optional[Dict[str, float]] = Field(default=None, alias="platformMultipliers")
    emotion_weights: Optional[Dict[str, float]] = Field(default=None, alias="emotionWeights")

    def sections(self) -> Dict[str, Dict[str, Any]]:
        """Supplied sections keyed by snake_case section name, None values dropped."""
        return {
            name: value
            for name, value in self.model_dump(exclude_none=True, by_alias=False).items()
        }
