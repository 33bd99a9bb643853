"""
Model Training - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for offline tuning of the scoring configuration:

- ActualOutcome / TrainingSample: what happened to past content
- TierMetrics / ModelPerformance: how a config classifies it
- TrainingResult: the chosen config and its evaluation
- CollectionReport: what collection kept, skipped and failed

============================================================
KNOWN APPROXIMATION
============================================================
ActualOutcome is a proxy for true virality: alert existence
plus log-scaled current engagement. It is not a ground-truth
label.

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from config_management.models import VersionPerformance
from virality_scoring.config import RiskConfig
from virality_scoring.types import FeatureVector, RiskTier


# ============================================================
# SAMPLES
# ============================================================


@dataclass(frozen=True)
class ActualOutcome:
    """Observed (proxy) outcome of a past content item."""

    observed_score: float
    observed_tier: RiskTier
    alert_was_raised: bool
    engagement_growth: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "observed_score": self.observed_score,
            "observed_tier": self.observed_tier.value,
            "alert_was_raised": self.alert_was_raised,
            "engagement_growth": self.engagement_growth,
        }


@dataclass(frozen=True)
class TrainingSample:
    """Reconstructed features paired with the observed outcome."""

    features: FeatureVector
    actual_outcome: ActualOutcome
    source_item_id: str


# ============================================================
# METRICS
# ============================================================


@dataclass(frozen=True)
class TierMetrics:
    precision: float
    recall: float
    f1: float
    support: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "precision": self.precision,
            "recall": self.recall,
            "f1": self.f1,
            "support": self.support,
        }


@dataclass(frozen=True)
class ModelPerformance:
    """
    Classification quality of one configuration on one sample set.

    ``precision``, ``recall`` and ``f1_score`` are macro averages over
    the four tiers. ``confusion_matrix[actual][predicted]`` holds counts.
    """

    accuracy: float
    precision: float
    recall: float
    f1_score: float
    confusion_matrix: Dict[str, Dict[str, int]]
    per_tier: Dict[str, TierMetrics]
    feature_importance: Dict[str, float]
    sample_count: int

    def to_version_performance(self) -> VersionPerformance:
        return VersionPerformance(
            accuracy=self.accuracy,
            precision=self.precision,
            recall=self.recall,
            f1_score=self.f1_score,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accuracy": self.accuracy,
            "precision": self.precision,
            "recall": self.recall,
            "f1_score": self.f1_score,
            "confusion_matrix": self.confusion_matrix,
            "per_tier": {tier: m.to_dict() for tier, m in self.per_tier.items()},
            "feature_importance": self.feature_importance,
            "sample_count": self.sample_count,
        }


# ============================================================
# RESULTS
# ============================================================


@dataclass(frozen=True)
class TrainingResult:
    """Outcome of one training run."""

    performance: ModelPerformance
    baseline_performance: ModelPerformance
    optimal_config: RiskConfig
    training_data_size: int
    validation_data_size: int
    improvement_suggestions: Tuple[str, ...] = ()
    candidates_evaluated: int = 0
    published_version: Optional[str] = None

    @property
    def improved(self) -> bool:
        """True if the optimal config beats the baseline on macro F1."""
        return self.performance.f1_score > self.baseline_performance.f1_score

    def to_dict(self) -> Dict[str, Any]:
        return {
            "performance": self.performance.to_dict(),
            "baseline_performance": self.baseline_performance.to_dict(),
            "optimal_config": self.optimal_config.to_dict(),
            "training_data_size": self.training_data_size,
            "validation_data_size": self.validation_data_size,
            "improvement_suggestions": list(self.improvement_suggestions),
            "candidates_evaluated": self.candidates_evaluated,
            "improved": self.improved,
            "published_version": self.published_version,
        }


@dataclass
class CollectionFailure:
    analysis_id: str
    error: str
    error_type: str


@dataclass
class CollectionReport:
    """Bookkeeping for one collection pass."""

    date_from: datetime
    date_to: datetime
    examined: int = 0
    samples: List[TrainingSample] = field(default_factory=list)
    skipped_missing: int = 0
    skipped_low_engagement: int = 0
    failures: List[CollectionFailure] = field(default_factory=list)

    @property
    def collected(self) -> int:
        return len(self.samples)

    def summary(self) -> Dict[str, Any]:
        return {
            "date_from": self.date_from.isoformat(),
            "date_to": self.date_to.isoformat(),
            "examined": self.examined,
            "collected": self.collected,
            "skipped_missing": self.skipped_missing,
            "skipped_low_engagement": self.skipped_low_engagement,
            "failed": len(self.failures),
        }
