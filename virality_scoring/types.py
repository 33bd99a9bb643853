"""
Virality Scoring - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for the virality scoring engine.

This module defines all types, enums, and dataclasses used
by feature extraction, scoring, and classification.

============================================================
DESIGN PRINCIPLES
============================================================
- All per-request types are immutable
- Enums for discrete tier/label values
- Clear separation between input and output types

============================================================
FEATURES
============================================================
Every scored item is reduced to six signals, each in [0, 1]:

1. tone_severity        - sentiment polarity + weighted emotions
2. engagement_velocity  - log-scaled engagement per hour
3. user_influence       - log-scaled followers + verification
4. content_length       - bell-shaped length suitability
5. platform_multiplier  - per-platform weight from config
6. time_decay           - freshness step function

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# ============================================================
# CANONICAL FEATURE ORDER
# ============================================================

FEATURE_NAMES: Tuple[str, ...] = (
    "tone_severity",
    "engagement_velocity",
    "user_influence",
    "content_length",
    "platform_multiplier",
    "time_decay",
)

# camelCase names used by the persisted configuration record
FEATURE_RECORD_KEYS: Dict[str, str] = {
    "tone_severity": "toneSeverity",
    "engagement_velocity": "engagementVelocity",
    "user_influence": "userInfluence",
    "content_length": "contentLength",
    "platform_multiplier": "platformMultiplier",
    "time_decay": "timeDecay",
}


# ============================================================
# ENUMS
# ============================================================


class RiskTier(str, Enum):
    """
    Ordered virality risk tiers.

    Ordering: LOW < MEDIUM < HIGH < VIRAL_THREAT
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VIRAL_THREAT = "viral-threat"

    @classmethod
    def ordered(cls) -> List["RiskTier"]:
        """Return all tiers from least to most severe."""
        return [cls.LOW, cls.MEDIUM, cls.HIGH, cls.VIRAL_THREAT]

    @property
    def severity_order(self) -> int:
        """Numeric ordering for severity comparison."""
        return {"low": 0, "medium": 1, "high": 2, "viral-threat": 3}[self.value]

    @property
    def requires_alert(self) -> bool:
        """HIGH and VIRAL_THREAT items are handed to the alerting pipeline."""
        return self in (RiskTier.HIGH, RiskTier.VIRAL_THREAT)


class SentimentLabel(str, Enum):
    """Sentiment polarity reported by the sentiment provider."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class AlertSeverity(str, Enum):
    """Severity vocabulary used by the downstream alert store."""

    MILD = "mild"
    RISKY = "risky"
    VIRAL_THREAT = "viral-threat"

    @classmethod
    def from_tier(cls, tier: RiskTier) -> "AlertSeverity":
        if tier == RiskTier.VIRAL_THREAT:
            return cls.VIRAL_THREAT
        if tier == RiskTier.HIGH:
            return cls.RISKY
        return cls.MILD


# ============================================================
# INPUT DATA CONTRACTS
# ============================================================


@dataclass(frozen=True)
class ContentAuthor:
    """Author of a piece of content. Optional fields feed data completeness."""

    username: str
    follower_count: Optional[int] = None
    verified: Optional[bool] = None


@dataclass(frozen=True)
class EngagementMetrics:
    """Raw engagement counters as reported by the source platform."""

    likes: int = 0
    shares: int = 0
    comments: int = 0

    @property
    def total(self) -> int:
        """Unweighted engagement, used for low-engagement filtering."""
        return self.likes + self.shares + self.comments

    @property
    def weighted_total(self) -> float:
        """Shares count double, comments one and a half."""
        return self.likes + 2.0 * self.shares + 1.5 * self.comments

    @property
    def has_any(self) -> bool:
        return self.likes > 0 or self.shares > 0 or self.comments > 0


@dataclass(frozen=True)
class ContentItem:
    """
    A piece of ingested social/review content.

    ``posted_at`` is optional; ingestion time stands in for it
    when the platform does not report a posting time.
    """

    item_id: str
    platform: str
    content: str
    author: ContentAuthor
    engagement: EngagementMetrics = field(default_factory=EngagementMetrics)
    ingested_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    posted_at: Optional[datetime] = None

    @property
    def reference_time(self) -> datetime:
        """Posting time when known, otherwise ingestion time."""
        return self.posted_at or self.ingested_at


@dataclass(frozen=True)
class SentimentResult:
    """Output of a sentiment provider."""

    label: SentimentLabel
    confidence: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SentimentResult":
        return cls(label=SentimentLabel(data["label"]), confidence=float(data["confidence"]))


@dataclass(frozen=True)
class EmotionScore:
    """One detected emotion with its confidence."""

    emotion: str
    confidence: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EmotionScore":
        return cls(emotion=str(data["emotion"]), confidence=float(data["confidence"]))


@dataclass(frozen=True)
class PredictionRequest:
    """One item of a bulk scoring call."""

    item: ContentItem
    sentiment: SentimentResult
    emotions: Tuple[EmotionScore, ...] = ()


# ============================================================
# FEATURE VECTOR
# ============================================================


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    """Clamp ``value`` into ``[lower, upper]``."""
    return max(lower, min(upper, value))


@dataclass(frozen=True)
class FeatureVector:
    """The six normalized signals consumed by the scoring formula."""

    tone_severity: float
    engagement_velocity: float
    user_influence: float
    content_length: float
    platform_multiplier: float
    time_decay: float

    @classmethod
    def clamped(cls, **values: float) -> "FeatureVector":
        """Build a vector with every component clamped into [0, 1]."""
        return cls(**{name: clamp(float(values[name])) for name in FEATURE_NAMES})

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in FEATURE_NAMES}

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "FeatureVector":
        return cls.clamped(**{name: data[name] for name in FEATURE_NAMES})


# ============================================================
# OUTPUT DATA CONTRACTS
# ============================================================


@dataclass(frozen=True)
class Prediction:
    """
    Result of one scoring call.

    ============================================================
    OUTPUT GUARANTEES
    ============================================================
    - score: always within [0, 1]
    - confidence: always within [0.1, 1.0]
    - reasoning: explanation only, never used for control flow

    ============================================================
    """

    score: float
    risk_tier: RiskTier
    features: FeatureVector
    confidence: float
    reasoning: Tuple[str, ...] = ()
    config_version: Optional[str] = None
    predicted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def factors(self) -> Dict[str, float]:
        """The three headline factors persisted by the analysis store."""
        return {
            "tone_severity": self.features.tone_severity,
            "engagement_velocity": self.features.engagement_velocity,
            "user_influence": self.features.user_influence,
        }

    @property
    def requires_alert(self) -> bool:
        return self.risk_tier.requires_alert

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "score": self.score,
            "risk_tier": self.risk_tier.value,
            "features": self.features.as_dict(),
            "factors": self.factors,
            "confidence": self.confidence,
            "reasoning": list(self.reasoning),
            "config_version": self.config_version,
            "predicted_at": self.predicted_at.isoformat(),
        }


@dataclass
class BatchPredictionError:
    """A single failed item inside a bulk scoring call."""

    item_id: str
    error: str
    error_type: str


@dataclass
class BatchPredictionResult:
    """Bulk scoring outcome. Failed items are recorded, never raised."""

    processed: int = 0
    successful: int = 0
    failed: int = 0
    predictions: Dict[str, Prediction] = field(default_factory=dict)
    errors: List[BatchPredictionError] = field(default_factory=list)
