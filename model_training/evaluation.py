"""
Model Training - Evaluation.

Scores samples with a candidate configuration and compares the
predicted tier to the observed tier:

- 4x4 confusion matrix indexed [actual][predicted]
- per-tier precision / recall / F1 (0 when undefined)
- macro averages over all four tiers
- accuracy = trace / sample count
- feature importance = the evaluated config's weights
"""

from typing import Dict, Iterable, List, Sequence, Tuple

from virality_scoring.config import RiskConfig
from virality_scoring.engine import calculate_score, classify_score
from virality_scoring.types import RiskTier

from .types import ModelPerformance, TierMetrics, TrainingSample


TIER_LABELS: Tuple[str, ...] = tuple(tier.value for tier in RiskTier.ordered())


def predict_tiers(samples: Sequence[TrainingSample], config: RiskConfig) -> List[Tuple[str, str]]:
    """(predicted, actual) tier labels for every sample."""
    pairs = []
    for sample in samples:
        score = calculate_score(sample.features, config)
        predicted = classify_score(score, config.thresholds)
        pairs.append((predicted.value, sample.actual_outcome.observed_tier.value))
    return pairs


def build_confusion_matrix(pairs: Iterable[Tuple[str, str]]) -> Dict[str, Dict[str, int]]:
    matrix = {actual: {predicted: 0 for predicted in TIER_LABELS} for actual in TIER_LABELS}
    for predicted, actual in pairs:
        matrix[actual][predicted] += 1
    return matrix


def _safe_ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def tier_metrics(matrix: Dict[str, Dict[str, int]]) -> Dict[str, TierMetrics]:
    metrics = {}
    for tier in TIER_LABELS:
        tp = matrix[tier][tier]
        fp = sum(matrix[other][tier] for other in TIER_LABELS if other != tier)
        fn = sum(matrix[tier][other] for other in TIER_LABELS if other != tier)

        precision = _safe_ratio(tp, tp + fp)
        recall = _safe_ratio(tp, tp + fn)
        f1 = _safe_ratio(2 * precision * recall, precision + recall)

        metrics[tier] = TierMetrics(
            precision=precision,
            recall=recall,
            f1=f1,
            support=sum(matrix[tier].values()),
        )
    return metrics


def calculate_metrics(
    pairs: Sequence[Tuple[str, str]],
    feature_importance: Dict[str, float],
) -> ModelPerformance:
    """Metrics from (predicted, actual) pairs."""
    matrix = build_confusion_matrix(pairs)
    per_tier = tier_metrics(matrix)

    total = len(pairs)
    correct = sum(matrix[tier][tier] for tier in TIER_LABELS)
    n_tiers = len(TIER_LABELS)

    return ModelPerformance(
        accuracy=_safe_ratio(correct, total),
        precision=sum(m.precision for m in per_tier.values()) / n_tiers,
        recall=sum(m.recall for m in per_tier.values()) / n_tiers,
        f1_score=sum(m.f1 for m in per_tier.values()) / n_tiers,
        confusion_matrix=matrix,
        per_tier=per_tier,
        feature_importance=dict(feature_importance),
        sample_count=total,
    )


def evaluate_config(samples: Sequence[TrainingSample], config: RiskConfig) -> ModelPerformance:
    """Evaluate ``config`` against the observed tiers of ``samples``."""
    return calculate_metrics(predict_tiers(samples, config), config.weights.as_dict())
