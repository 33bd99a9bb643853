"""
Model Training - Trainer.

============================================================
PURPOSE
============================================================
Offline tuning of the scoring configuration against past
outcomes:

1. Collect samples from stored analyses and current content
2. Split them by observed tier (stratified, seedable)
3. Grid search weights/thresholds on the validation split
4. Evaluate, suggest improvements, optionally publish

============================================================
OUTCOME PROXY
============================================================
    alert raised        -> +0.4
    engagement_growth   =  log10(engagement + 1) / log10(1000)
    observed_score      =  0.4 * alert + min(engagement_growth, 0.6)
    observed_tier       by cutoffs 0.85 / 0.7 / 0.5

This is a heuristic stand-in for true virality labels.

============================================================
CANCELLATION
============================================================
Training never writes anything. Only ``train_and_publish``
publishes, and only after the search has completed, so
abandoning a run leaves published state untouched.

============================================================
"""

import logging
import math
import random
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from core.clock import ClockProtocol, SystemClock
from core.exceptions import InsufficientDataError, ValidationError
from config_management.manager import ConfigVersionManager
from virality_scoring.config import RiskConfig, get_default_config
from virality_scoring.features import time_decay
from virality_scoring.types import ContentItem, FeatureVector, RiskTier

from .grid_search import GridSearch, SearchSpace
from .repositories import AlertRepository, AnalysisRecord, AnalysisRepository, ContentRepository
from .types import (
    ActualOutcome,
    CollectionFailure,
    CollectionReport,
    ModelPerformance,
    TrainingResult,
    TrainingSample,
)


logger = logging.getLogger(__name__)


MIN_TRAINING_SAMPLES = 50
DEFAULT_VALIDATION_SPLIT = 0.2
DEFAULT_MIN_ENGAGEMENT = 10

ALERT_OUTCOME_BONUS = 0.4
ENGAGEMENT_GROWTH_CAP = 0.6
ENGAGEMENT_GROWTH_CEILING = 1000.0
CONTENT_LENGTH_REFERENCE = 280

OBSERVED_TIER_CUTOFFS = (
    (0.85, RiskTier.VIRAL_THREAT),
    (0.7, RiskTier.HIGH),
    (0.5, RiskTier.MEDIUM),
)

SMALL_DATASET_SIZE = 200
MIN_ACCURACY = 0.7
MIN_PRECISION = 0.6
MIN_RECALL = 0.6
MAX_IMPORTANCE_RATIO = 10.0


# ============================================================
# OUTCOME & FEATURE RECONSTRUCTION
# ============================================================


def observed_tier_for(score: float) -> RiskTier:
    for cutoff, tier in OBSERVED_TIER_CUTOFFS:
        if score >= cutoff:
            return tier
    return RiskTier.LOW


def compute_actual_outcome(item: ContentItem, alert_was_raised: bool) -> ActualOutcome:
    """Proxy outcome from alert existence and current engagement."""
    engagement = item.engagement.total
    growth = math.log10(engagement + 1) / math.log10(ENGAGEMENT_GROWTH_CEILING)

    score = (ALERT_OUTCOME_BONUS if alert_was_raised else 0.0) + min(growth, ENGAGEMENT_GROWTH_CAP)

    return ActualOutcome(
        observed_score=score,
        observed_tier=observed_tier_for(score),
        alert_was_raised=alert_was_raised,
        engagement_growth=growth,
    )


def generate_improvement_suggestions(performance: ModelPerformance, sample_count: int) -> List[str]:
    suggestions = []

    if performance.accuracy < MIN_ACCURACY:
        suggestions.append(
            "Model accuracy is below 70%. Consider collecting more training data "
            "or adjusting feature weights."
        )

    if performance.precision < MIN_PRECISION:
        suggestions.append(
            "Low precision detected. The model may be generating too many false positives. "
            "Consider raising thresholds."
        )

    if performance.recall < MIN_RECALL:
        suggestions.append(
            "Low recall detected. The model may be missing viral content. "
            "Consider lowering thresholds or improving feature extraction."
        )

    if sample_count < SMALL_DATASET_SIZE:
        suggestions.append(
            "Training dataset is small. Collect more historical data for better model performance."
        )

    importance = list(performance.feature_importance.values())
    if importance:
        max_importance, min_importance = max(importance), min(importance)
        if min_importance <= 0 or max_importance / min_importance > MAX_IMPORTANCE_RATIO:
            suggestions.append(
                "Feature importance is imbalanced. Consider rebalancing feature weights "
                "or improving low-importance features."
            )

    return suggestions


# ============================================================
# TRAINER
# ============================================================


class ModelTrainer:
    """
    Collects samples, searches configurations, publishes winners.

    ============================================================
    USAGE
    ============================================================
        trainer = ModelTrainer(content_repo, analysis_repo, alert_repo,
                               config_manager=manager, seed=42)

        result = trainer.train_and_publish(date_from, date_to)
        if result.published_version:
            print(f"Published {result.published_version}")

    ============================================================
    """

    def __init__(
        self,
        content_repository: ContentRepository,
        analysis_repository: AnalysisRepository,
        alert_repository: AlertRepository,
        config_manager: Optional[ConfigVersionManager] = None,
        clock: Optional[ClockProtocol] = None,
        seed: Optional[int] = None,
        search_space: Optional[SearchSpace] = None,
        min_samples: int = MIN_TRAINING_SAMPLES,
    ):
        self._content = content_repository
        self._analyses = analysis_repository
        self._alerts = alert_repository
        self._manager = config_manager
        self._clock = clock or SystemClock()
        self._rng = random.Random(seed)
        self._grid = GridSearch(search_space)
        self._min_samples = min_samples

    @property
    def clock(self) -> ClockProtocol:
        return self._clock

    def current_config(self) -> RiskConfig:
        """Fresh read of the current configuration."""
        if self._manager is None:
            return get_default_config()
        return self._manager.get_current()

    # =========================================================
    # COLLECTION
    # =========================================================

    def reconstruct_features(
        self,
        item: ContentItem,
        analysis: AnalysisRecord,
        config: RiskConfig,
    ) -> FeatureVector:
        """
        Rebuild a feature vector for a past item.

        The three headline factors come from the stored analysis; the
        rest are recomputed from the item as it is now.
        """
        hours = self.clock.hours_since(item.reference_time)
        return FeatureVector.clamped(
            tone_severity=analysis.factors["tone_severity"],
            engagement_velocity=analysis.factors["engagement_velocity"],
            user_influence=analysis.factors["user_influence"],
            content_length=min(len(item.content) / CONTENT_LENGTH_REFERENCE, 1.0),
            platform_multiplier=config.platform_multiplier_for(item.platform),
            time_decay=time_decay(hours),
        )

    def collect(
        self,
        date_from: datetime,
        date_to: datetime,
        min_engagement: int = DEFAULT_MIN_ENGAGEMENT,
    ) -> CollectionReport:
        """
        Build training samples from analyses in ``[date_from, date_to]``.

        Items that no longer exist or have too little engagement are
        skipped; items that fail to process are recorded and excluded.
        """
        config = self.current_config()
        report = CollectionReport(date_from=date_from, date_to=date_to)

        for analysis in self._analyses.find_in_date_range(date_from, date_to):
            report.examined += 1
            try:
                item = self._content.find_by_id(analysis.item_id)
                if item is None:
                    report.skipped_missing += 1
                    continue

                if item.engagement.total < min_engagement:
                    report.skipped_low_engagement += 1
                    continue

                outcome = compute_actual_outcome(item, self._alerts.has_alert(item.item_id))
                features = self.reconstruct_features(item, analysis, config)

            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Failed to process training data for analysis {analysis.analysis_id}: {e}")
                report.failures.append(CollectionFailure(
                    analysis_id=analysis.analysis_id,
                    error=str(e),
                    error_type=type(e).__name__,
                ))
                continue

            report.samples.append(TrainingSample(
                features=features,
                actual_outcome=outcome,
                source_item_id=item.item_id,
            ))

        logger.info(
            f"Collected {report.collected} training samples from {report.examined} analyses "
            f"({report.skipped_missing} missing, {report.skipped_low_engagement} low engagement, "
            f"{len(report.failures)} failed)"
        )
        return report

    def collect_training_data(
        self,
        date_from: datetime,
        date_to: datetime,
        min_engagement: int = DEFAULT_MIN_ENGAGEMENT,
    ) -> List[TrainingSample]:
        return self.collect(date_from, date_to, min_engagement).samples

    # =========================================================
    # TRAINING
    # =========================================================

    def stratified_split(
        self,
        samples: Sequence[TrainingSample],
        validation_split: float = DEFAULT_VALIDATION_SPLIT,
    ) -> Tuple[List[TrainingSample], List[TrainingSample]]:
        """
        Shuffle-split each observed tier separately.

        Validation holds ``ceil(n * validation_split)`` samples overall.
        Each tier first gets the floor of its own share; the slots left
        over go to the tiers with the largest fractional remainder
        (ties broken by tier order).
        """
        if not (0.0 < validation_split < 1.0):
            raise ValidationError(
                f"Validation split must be between 0 and 1, got {validation_split}",
                field="validation_split",
            )

        strata: Dict[RiskTier, List[TrainingSample]] = {}
        for sample in samples:
            strata.setdefault(sample.actual_outcome.observed_tier, []).append(sample)

        tiers = [tier for tier in RiskTier.ordered() if tier in strata]
        quotas = self._validation_quotas(
            {tier: len(strata[tier]) for tier in tiers},
            validation_split,
        )

        train: List[TrainingSample] = []
        validation: List[TrainingSample] = []
        for tier in tiers:
            group = list(strata[tier])
            self._rng.shuffle(group)
            validation.extend(group[:quotas[tier]])
            train.extend(group[quotas[tier]:])

        self._rng.shuffle(train)
        self._rng.shuffle(validation)
        return train, validation

    @staticmethod
    def _validation_quotas(
        sizes: Dict[RiskTier, int],
        validation_split: float,
    ) -> Dict[RiskTier, int]:
        """Largest-remainder allocation of validation slots across tiers."""
        # Rounded before ceil/floor so 50 * 0.2 counts as exactly 10.
        target = math.ceil(round(sum(sizes.values()) * validation_split, 9))
        shares = {tier: round(size * validation_split, 9) for tier, size in sizes.items()}
        quotas = {tier: math.floor(share) for tier, share in shares.items()}

        leftover = target - sum(quotas.values())
        by_remainder = sorted(sizes, key=lambda tier: quotas[tier] - shares[tier])
        for tier in by_remainder[:leftover]:
            quotas[tier] += 1
        return quotas

    def train(
        self,
        samples: Sequence[TrainingSample],
        validation_split: float = DEFAULT_VALIDATION_SPLIT,
        baseline: Optional[RiskConfig] = None,
    ) -> TrainingResult:
        """
        Search for the configuration that best reproduces observed tiers.

        Args:
            samples: Collected training samples
            validation_split: Fraction of each tier held out for selection
            baseline: Configuration to beat (fresh current config if None)

        Raises:
            InsufficientDataError: if fewer than the minimum samples are given
        """
        if len(samples) < self._min_samples:
            raise InsufficientDataError(
                f"Insufficient training data. Need at least {self._min_samples} samples, "
                f"got {len(samples)}.",
                sample_count=len(samples),
                required=self._min_samples,
            )

        baseline = baseline or self.current_config()
        train_set, validation_set = self.stratified_split(samples, validation_split)

        logger.info(
            f"Training on {len(samples)} samples "
            f"({len(train_set)} train / {len(validation_set)} validation)"
        )

        search = self._grid.search(validation_set, baseline)
        suggestions = generate_improvement_suggestions(search.best_performance, len(samples))

        return TrainingResult(
            performance=search.best_performance,
            baseline_performance=search.baseline_performance,
            optimal_config=search.best_config,
            training_data_size=len(train_set),
            validation_data_size=len(validation_set),
            improvement_suggestions=tuple(suggestions),
            candidates_evaluated=search.candidates_evaluated,
        )

    def train_and_publish(
        self,
        date_from: datetime,
        date_to: datetime,
        min_engagement: int = DEFAULT_MIN_ENGAGEMENT,
        validation_split: float = DEFAULT_VALIDATION_SPLIT,
        author: str = "model-trainer",
        force: bool = False,
    ) -> TrainingResult:
        """
        Collect, train and publish the optimal configuration.

        The configuration is published only if it improves macro F1
        over the current configuration, or if ``force`` is set.

        Raises:
            ValidationError: if no config manager is attached
            InsufficientDataError: if collection yields too few samples
        """
        if self._manager is None:
            raise ValidationError("train_and_publish requires a configuration manager")

        samples = self.collect_training_data(date_from, date_to, min_engagement)
        baseline = self._manager.get_current()
        result = self.train(samples, validation_split, baseline=baseline)

        if not (result.improved or force):
            logger.info(
                f"Optimal configuration does not improve on current "
                f"(f1 {result.performance.f1_score:.4f} vs {result.baseline_performance.f1_score:.4f}); "
                f"not publishing"
            )
            return result

        version_id = self._manager.publish(
            result.optimal_config,
            description=(
                f"Trained on {len(samples)} samples from {date_from.date()} to {date_to.date()} "
                f"(f1={result.performance.f1_score:.3f})"
            ),
            author=author,
            performance=result.performance.to_version_performance(),
        )

        return TrainingResult(
            performance=result.performance,
            baseline_performance=result.baseline_performance,
            optimal_config=result.optimal_config,
            training_data_size=result.training_data_size,
            validation_data_size=result.validation_data_size,
            improvement_suggestions=result.improvement_suggestions,
            candidates_evaluated=result.candidates_evaluated,
            published_version=version_id,
        )
