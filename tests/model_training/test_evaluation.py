"""
Tests for configuration evaluation metrics.
"""

import pytest

from virality_scoring.config import get_default_config
from virality_scoring.types import RiskTier
from model_training.evaluation import (
    TIER_LABELS,
    build_confusion_matrix,
    calculate_metrics,
    evaluate_config,
)

from tests.model_training.factories import flat_features, labelled_samples, make_sample


class TestConfusionMatrix:

    def test_indexed_actual_then_predicted(self):
        matrix = build_confusion_matrix([("high", "medium"), ("high", "medium"), ("low", "low")])

        assert matrix["medium"]["high"] == 2
        assert matrix["low"]["low"] == 1
        assert matrix["high"]["medium"] == 0

    def test_covers_all_tiers(self):
        matrix = build_confusion_matrix([])

        assert set(matrix) == set(TIER_LABELS)
        assert all(set(row) == set(TIER_LABELS) for row in matrix.values())


class TestCalculateMetrics:

    def test_perfect_predictions(self):
        pairs = [(tier, tier) for tier in TIER_LABELS for _ in range(3)]

        performance = calculate_metrics(pairs, {})

        assert performance.accuracy == 1.0
        assert performance.precision == 1.0
        assert performance.recall == 1.0
        assert performance.f1_score == 1.0
        assert performance.sample_count == 12

    def test_macro_average_counts_absent_tiers_as_zero(self):
        pairs = [("low", "low"), ("medium", "medium")]

        performance = calculate_metrics(pairs, {})

        assert performance.accuracy == 1.0
        assert performance.f1_score == pytest.approx(0.5)
        assert performance.per_tier["high"].support == 0

    def test_per_tier_precision_recall(self):
        # actual low: 2 predicted low, 1 predicted medium
        # actual medium: 1 predicted medium
        pairs = [("low", "low"), ("low", "low"), ("medium", "low"), ("medium", "medium")]

        performance = calculate_metrics(pairs, {"tone_severity": 0.35})

        low = performance.per_tier["low"]
        medium = performance.per_tier["medium"]
        assert low.precision == 1.0
        assert low.recall == pytest.approx(2 / 3)
        assert medium.precision == pytest.approx(0.5)
        assert medium.recall == 1.0
        assert performance.accuracy == pytest.approx(0.75)
        assert performance.feature_importance == {"tone_severity": 0.35}

    def test_empty_input(self):
        performance = calculate_metrics([], {})

        assert performance.accuracy == 0.0
        assert performance.f1_score == 0.0


class TestEvaluateConfig:

    def test_labelling_config_scores_perfectly(self):
        config = get_default_config()
        samples = labelled_samples(config, count=200)

        performance = evaluate_config(samples, config)

        assert performance.accuracy == 1.0
        assert performance.feature_importance == config.weights.as_dict()

    def test_misclassification_counted(self):
        samples = [make_sample(flat_features(0.95), RiskTier.LOW, "calm-but-scored-viral")]

        performance = evaluate_config(samples, get_default_config())

        assert performance.confusion_matrix["low"]["viral-threat"] == 1
        assert performance.accuracy == 0.0
