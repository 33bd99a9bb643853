"""
Tests for the bounded grid search.

============================================================
TEST PRINCIPLES:
- Every candidate respects the weight and threshold bounds
- The result never scores below the baseline
- A configuration that explains the data is found
============================================================
"""

import pytest

from virality_scoring.config import get_default_config, validate_config
from model_training.evaluation import evaluate_config
from model_training.grid_search import GridSearch, SearchSpace

from tests.model_training.factories import labelled_samples, small_space, target_config


# ============================================================
# SEARCH SPACE
# ============================================================

class TestSearchSpace:

    def test_residual_rounding(self):
        space = SearchSpace()

        assert space.residual_for(0.45, 0.35, 0.10) == 0.1
        assert space.accepts_weights(0.45, 0.35, 0.10)
        assert space.accepts_weights(0.25, 0.15, 0.20)
        assert not space.accepts_weights(0.25, 0.15, 0.10)
        assert not space.accepts_weights(0.45, 0.35, 0.30)

    def test_thresholds_must_increase(self):
        space = SearchSpace()

        assert space.accepts_thresholds(0.5, 0.7, 0.85)
        assert not space.accepts_thresholds(0.6, 0.6, 0.85)
        assert not space.accepts_thresholds(0.5, 0.8, 0.8)
        assert not space.accepts_thresholds(0.3, 0.7, 0.85)

    def test_size_counts_only_admissible(self):
        space = SearchSpace(
            tone_severity=(0.25, 0.45),
            engagement_velocity=(0.35,),
            user_influence=(0.30,),
            medium=(0.4, 0.7),
            high=(0.65, 0.7),
            viral_threat=(0.8,),
        )

        assert space.size == 2
        assert len(list(space.candidates(get_default_config()))) == 2

    def test_every_candidate_is_valid(self):
        baseline = get_default_config()

        for candidate in SearchSpace().candidates(baseline):
            assert validate_config(candidate) == []
            assert candidate.thresholds.low == 0.3
            assert candidate.weights.total == pytest.approx(1.0)
            assert candidate.platform_multipliers == baseline.platform_multipliers

    def test_derived_weights_split_residual(self):
        candidate = next(SearchSpace(
            tone_severity=(0.40,),
            engagement_velocity=(0.20,),
            user_influence=(0.20,),
        ).candidates(get_default_config()))

        assert candidate.weights.content_length == pytest.approx(0.10)
        assert candidate.weights.platform_multiplier == pytest.approx(0.06)
        assert candidate.weights.time_decay == pytest.approx(0.04)


# ============================================================
# SEARCH
# ============================================================

class TestGridSearch:

    def test_keeps_baseline_when_nothing_is_better(self):
        baseline = get_default_config()
        samples = labelled_samples(baseline, count=200)

        result = GridSearch(small_space()).search(samples, baseline)

        assert result.best_config == baseline
        assert result.best_performance.f1_score == result.baseline_performance.f1_score
        assert result.candidates_evaluated == 64

    def test_finds_config_that_explains_data(self):
        baseline = get_default_config()
        samples = labelled_samples(target_config(), count=300)

        result = GridSearch(small_space()).search(samples, baseline)

        assert result.best_performance.f1_score == pytest.approx(1.0)
        assert result.best_performance.f1_score > result.baseline_performance.f1_score
        assert evaluate_config(samples, result.best_config).f1_score == pytest.approx(1.0)

    def test_never_below_baseline_on_default_space(self):
        baseline = get_default_config()
        samples = labelled_samples(target_config(), count=120, seed=11)

        result = GridSearch().search(samples, baseline)

        assert result.best_performance.f1_score >= result.baseline_performance.f1_score
        assert result.candidates_evaluated == SearchSpace().size

    def test_empty_validation_keeps_baseline(self):
        baseline = get_default_config()

        result = GridSearch(small_space()).search([], baseline)

        assert result.best_config == baseline
