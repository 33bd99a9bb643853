"""
Model Training - Package.

Offline tuning of the virality scoring configuration:

- trainer:      ModelTrainer (collect, split, search, publish)
- grid_search:  SearchSpace + GridSearch
- evaluation:   confusion matrix, per-tier and macro metrics
- repositories: read-only content/analysis/alert contracts
- types:        samples, outcomes, performance and results
"""

from .evaluation import calculate_metrics, evaluate_config
from .grid_search import GridSearch, GridSearchResult, SearchSpace
from .repositories import (
    AlertRepository,
    AnalysisRecord,
    AnalysisRepository,
    ContentRepository,
    InMemoryAlertRepository,
    InMemoryAnalysisRepository,
    InMemoryContentRepository,
)
from .trainer import (
    MIN_TRAINING_SAMPLES,
    ModelTrainer,
    compute_actual_outcome,
    generate_improvement_suggestions,
)
from .types import (
    ActualOutcome,
    CollectionFailure,
    CollectionReport,
    ModelPerformance,
    TierMetrics,
    TrainingResult,
    TrainingSample,
)


__all__ = [
    "ModelTrainer",
    "MIN_TRAINING_SAMPLES",
    "compute_actual_outcome",
    "generate_improvement_suggestions",
    "GridSearch",
    "GridSearchResult",
    "SearchSpace",
    "calculate_metrics",
    "evaluate_config",
    "ContentRepository",
    "AnalysisRepository",
    "AlertRepository",
    "AnalysisRecord",
    "InMemoryContentRepository",
    "InMemoryAnalysisRepository",
    "InMemoryAlertRepository",
    "ActualOutcome",
    "TrainingSample",
    "TierMetrics",
    "ModelPerformance",
    "TrainingResult",
    "CollectionFailure",
    "CollectionReport",
]
