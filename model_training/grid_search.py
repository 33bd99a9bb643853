"""
Model Training - Bounded Grid Search.

============================================================
PURPOSE
============================================================
Searches a finite, explicit space of weight/threshold
combinations for the configuration with the best macro F1.

============================================================
SEARCH SPACE
============================================================
Searched:
    tone_severity, engagement_velocity, user_influence weights
    medium, high, viral_threat thresholds

Derived:
    residual = 1 - (tone + engagement + influence)
    content_length / platform_multiplier / time_decay weights
        = residual split 0.5 / 0.3 / 0.2
    low threshold held fixed

Pruned:
    residual outside [residual_min, residual_max]
    thresholds not strictly increasing

============================================================
SELECTION
============================================================
The baseline is evaluated first and is the initial best. A
candidate replaces the best only with a strictly higher macro
F1, so ties keep the earliest configuration and the result
never scores below the baseline on the same samples.

============================================================
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterator, Optional, Sequence, Tuple

from virality_scoring.config import FeatureWeights, RiskConfig, RiskThresholds

from .evaluation import evaluate_config
from .types import ModelPerformance, TrainingSample


logger = logging.getLogger(__name__)

# Decimal places used when comparing derived weights, so that
# 1 - 0.45 - 0.35 - 0.10 counts as exactly 0.1
ROUNDING_DIGITS = 10


@dataclass(frozen=True)
class SearchSpace:
    """Candidate values and pruning bounds."""

    tone_severity: Tuple[float, ...] = (0.25, 0.30, 0.35, 0.40, 0.45)
    engagement_velocity: Tuple[float, ...] = (0.15, 0.20, 0.25, 0.30, 0.35)
    user_influence: Tuple[float, ...] = (0.10, 0.15, 0.20, 0.25, 0.30)
    medium: Tuple[float, ...] = (0.40, 0.45, 0.50, 0.55, 0.60)
    high: Tuple[float, ...] = (0.65, 0.70, 0.75, 0.80)
    viral_threat: Tuple[float, ...] = (0.80, 0.85, 0.90, 0.95)

    low_threshold: float = 0.3
    residual_min: float = 0.1
    residual_max: float = 0.4
    residual_split: Tuple[float, float, float] = (0.5, 0.3, 0.2)

    def residual_for(self, tone: float, engagement: float, influence: float) -> float:
        return round(1.0 - tone - engagement - influence, ROUNDING_DIGITS)

    def accepts_weights(self, tone: float, engagement: float, influence: float) -> bool:
        residual = self.residual_for(tone, engagement, influence)
        return self.residual_min <= residual <= self.residual_max

    def accepts_thresholds(self, medium: float, high: float, viral_threat: float) -> bool:
        return self.low_threshold < medium < high < viral_threat

    def weight_candidates(self) -> Iterator[FeatureWeights]:
        content_share, platform_share, time_share = self.residual_split
        for tone in self.tone_severity:
            for engagement in self.engagement_velocity:
                for influence in self.user_influence:
                    if not self.accepts_weights(tone, engagement, influence):
                        continue
                    residual = self.residual_for(tone, engagement, influence)
                    yield FeatureWeights(
                        tone_severity=tone,
                        engagement_velocity=engagement,
                        user_influence=influence,
                        content_length=residual * content_share,
                        platform_multiplier=residual * platform_share,
                        time_decay=residual * time_share,
                    )

    def threshold_candidates(self) -> Iterator[RiskThresholds]:
        for medium in self.medium:
            for high in self.high:
                for viral_threat in self.viral_threat:
                    if not self.accepts_thresholds(medium, high, viral_threat):
                        continue
                    yield RiskThresholds(
                        low=self.low_threshold,
                        medium=medium,
                        high=high,
                        viral_threat=viral_threat,
                    )

    def candidates(self, baseline: RiskConfig) -> Iterator[RiskConfig]:
        """
        Every admissible configuration, in deterministic order.

        Lookup tables (platform multipliers, emotion weights) are
        carried over from ``baseline``.
        """
        thresholds = list(self.threshold_candidates())
        for weights in self.weight_candidates():
            for threshold in thresholds:
                yield replace(baseline, weights=weights, thresholds=threshold)

    @property
    def size(self) -> int:
        """Number of admissible candidates."""
        n_weights = sum(1 for _ in self.weight_candidates())
        n_thresholds = sum(1 for _ in self.threshold_candidates())
        return n_weights * n_thresholds


@dataclass(frozen=True)
class GridSearchResult:
    best_config: RiskConfig
    best_performance: ModelPerformance
    baseline_performance: ModelPerformance
    candidates_evaluated: int


class GridSearch:
    """Exhaustive search over a SearchSpace."""

    def __init__(self, space: Optional[SearchSpace] = None):
        self.space = space or SearchSpace()

    def search(
        self,
        validation: Sequence[TrainingSample],
        baseline: RiskConfig,
    ) -> GridSearchResult:
        """
        Find the best configuration on ``validation``.

        Args:
            validation: Samples every candidate is evaluated on
            baseline: Current configuration, evaluated first

        Returns:
            GridSearchResult whose best F1 is >= the baseline F1
        """
        baseline_performance = evaluate_config(validation, baseline)
        best_config = baseline
        best_performance = baseline_performance
        evaluated = 0

        for candidate in self.space.candidates(baseline):
            performance = evaluate_config(validation, candidate)
            evaluated += 1
            if performance.f1_score > best_performance.f1_score:
                best_config = candidate
                best_performance = performance

        logger.info(
            f"Grid search evaluated {evaluated} candidates: "
            f"baseline f1={baseline_performance.f1_score:.4f}, "
            f"best f1={best_performance.f1_score:.4f}"
        )

        return GridSearchResult(
            best_config=best_config,
            best_performance=best_performance,
            baseline_performance=baseline_performance,
            candidates_evaluated=evaluated,
        )
