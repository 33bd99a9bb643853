"""
Virality Service - Facade.

============================================================
RESPONSIBILITY
============================================================
Library-level interface handed to the enclosing HTTP/queue
layer. Wires together:

- ConfigVersionManager (current config, versions, A/B tests)
- ViralityScoringEngine (extract -> score -> classify)
- Sentiment/emotion providers (for raw-text scoring)
- ModelTrainer (offline tuning)

============================================================
ERROR SURFACE
============================================================
ValidationError        bad configuration, nothing written
NotFoundError          unknown version / A/B test id
InsufficientDataError  training with too few samples
UpstreamProviderError  sentiment provider failed for an item
ConfigurationLoadError current configuration is corrupt

There is no fallback scoring path: if the configuration
cannot be loaded, ``predict`` raises.

============================================================
"""

import logging
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from core.clock import ClockProtocol, SystemClock
from core.exceptions import ValidationError
from config_management.manager import ConfigVersionManager
from config_management.models import ABArm, ABTest, ArmStats, ConfigVersion
from config_management.sql_store import SqlKeyValueStore
from model_training.repositories import AlertRepository, AnalysisRepository, ContentRepository
from model_training.trainer import ModelTrainer
from model_training.types import TrainingResult
from virality_scoring.config import RiskConfig
from virality_scoring.engine import ViralityScoringEngine
from virality_scoring.providers import EmotionProvider, SentimentProvider, analyze_content
from virality_scoring.types import (
    BatchPredictionResult,
    ContentItem,
    EmotionScore,
    Prediction,
    PredictionRequest,
    SentimentResult,
)

from .settings import ServiceSettings


logger = logging.getLogger(__name__)


ConfigInput = Union[RiskConfig, Mapping[str, Any]]


class ViralityRiskService:
    """
    Scoring, reconfiguration and training behind one object.

    ============================================================
    USAGE
    ============================================================
        service = create_service(ServiceSettings.from_env())

        prediction = service.predict(item, sentiment, emotions)
        version = service.update_config({"thresholds": {"high": 0.72}},
                                        "Raise high threshold", "alice")
        service.rollback_config(previous_version, "bob")

    ============================================================
    """

    def __init__(
        self,
        manager: ConfigVersionManager,
        engine: Optional[ViralityScoringEngine] = None,
        sentiment_provider: Optional[SentimentProvider] = None,
        emotion_provider: Optional[EmotionProvider] = None,
        trainer: Optional[ModelTrainer] = None,
        settings: Optional[ServiceSettings] = None,
    ):
        self.manager = manager
        self.engine = engine or ViralityScoringEngine()
        self.sentiment_provider = sentiment_provider
        self.emotion_provider = emotion_provider
        self.trainer = trainer
        self.settings = settings or ServiceSettings()

    # =========================================================
    # SCORING
    # =========================================================

    def resolve_config(
        self,
        ab_test_id: Optional[str] = None,
        subject_id: Optional[str] = None,
    ) -> Tuple[RiskConfig, Optional[str]]:
        """
        Configuration to score with, and the label recorded on predictions.

        The label is ``<test_id>:<arm>`` under an A/B test, otherwise
        the active version id (None if nothing was ever published).
        """
        if ab_test_id is not None:
            arm, config = self.manager.resolve_ab_assignment(ab_test_id, subject_id)
            return config, f"{ab_test_id}:{arm.value}"

        config = self.manager.get_current()
        active = self.manager.get_active_version()
        return config, active.version if active else None

    def predict(
        self,
        item: ContentItem,
        sentiment: SentimentResult,
        emotions: Sequence[EmotionScore] = (),
        ab_test_id: Optional[str] = None,
        subject_id: Optional[str] = None,
    ) -> Prediction:
        """
        Score one item with the current (or A/B-selected) configuration.

        Under an A/B test the request is counted against its arm once
        the item has been scored.
        """
        config, label = self.resolve_config(ab_test_id, subject_id)
        prediction = self.engine.predict(item, sentiment, emotions, config=config, config_version=label)
        if ab_test_id is not None:
            self.manager.record_ab_request(ab_test_id, label.rsplit(":", 1)[1])
        return prediction

    def predict_text(
        self,
        item: ContentItem,
        ab_test_id: Optional[str] = None,
        subject_id: Optional[str] = None,
    ) -> Prediction:
        """
        Run the providers over ``item.content`` and score the result.

        Raises:
            UpstreamProviderError: if the sentiment provider fails
        """
        if self.sentiment_provider is None or self.emotion_provider is None:
            raise ValidationError("predict_text requires sentiment and emotion providers")

        sentiment, emotions = analyze_content(item.content, self.sentiment_provider, self.emotion_provider)
        return self.predict(item, sentiment, emotions, ab_test_id=ab_test_id, subject_id=subject_id)

    def predict_batch(self, requests: Iterable[PredictionRequest]) -> BatchPredictionResult:
        """Score many items with one configuration read; failures are isolated."""
        config, label = self.resolve_config()
        return self.engine.predict_batch(requests, config=config, config_version=label)

    # =========================================================
    # CONFIGURATION
    # =========================================================

    def current_config(self) -> RiskConfig:
        return self.manager.get_current()

    def list_versions(self) -> List[ConfigVersion]:
        return self.manager.list_versions()

    def update_config(
        self,
        partial: Mapping[str, Any],
        description: str,
        author: str = "system",
    ) -> str:
        """Returns the new version id. Raises ValidationError on bad input."""
        return self.manager.update(partial, description, author)

    def rollback_config(self, version_id: str, author: str = "system") -> None:
        self.manager.rollback(version_id, author)

    def _as_config(self, value: ConfigInput) -> RiskConfig:
        if isinstance(value, RiskConfig):
            return value
        return self.manager.get_current().merged_with(value)

    def start_ab_test(
        self,
        config_a: ConfigInput,
        config_b: ConfigInput,
        name: str,
        traffic_split: float = 0.5,
    ) -> str:
        """
        Start an A/B test.

        Either arm may be a complete RiskConfig or a partial mapping,
        which is merged over the current configuration.
        """
        return self.manager.start_ab_test(
            self._as_config(config_a),
            self._as_config(config_b),
            name,
            traffic_split,
        )

    def resolve_ab_test(self, test_id: str, subject_id: Optional[str] = None) -> Tuple[ABArm, RiskConfig]:
        return self.manager.resolve_ab_assignment(test_id, subject_id)

    def record_ab_outcome(self, test_id: str, arm: Union[ABArm, str], correct: bool) -> ArmStats:
        """Record whether a prediction served by ``arm`` was borne out."""
        return self.manager.record_ab_outcome(test_id, arm, correct)

    def close_ab_test(self, test_id: str) -> ABTest:
        return self.manager.close_ab_test(test_id)

    # =========================================================
    # TRAINING
    # =========================================================

    def train(
        self,
        date_from: datetime,
        date_to: datetime,
        min_engagement: Optional[int] = None,
        validation_split: Optional[float] = None,
        publish: bool = False,
        author: str = "model-trainer",
    ) -> TrainingResult:
        """
        Tune the configuration on analyses between ``date_from`` and ``date_to``.

        With ``publish`` the optimal configuration becomes a new version
        when it improves on the current one.

        Raises:
            InsufficientDataError: if too few samples are collected
        """
        if self.trainer is None:
            raise ValidationError("train requires a model trainer")

        min_engagement = self.settings.min_engagement if min_engagement is None else min_engagement
        validation_split = self.settings.validation_split if validation_split is None else validation_split

        if publish:
            return self.trainer.train_and_publish(
                date_from,
                date_to,
                min_engagement=min_engagement,
                validation_split=validation_split,
                author=author,
            )

        samples = self.trainer.collect_training_data(date_from, date_to, min_engagement)
        return self.trainer.train(samples, validation_split)


# ============================================================
# FACTORY
# ============================================================


def create_service(
    settings: Optional[ServiceSettings] = None,
    sentiment_provider: Optional[SentimentProvider] = None,
    emotion_provider: Optional[EmotionProvider] = None,
    content_repository: Optional[ContentRepository] = None,
    analysis_repository: Optional[AnalysisRepository] = None,
    alert_repository: Optional[AlertRepository] = None,
    clock: Optional[ClockProtocol] = None,
) -> ViralityRiskService:
    """
    Build a service backed by the SQL configuration store.

    A trainer is attached only when all three repositories are given.
    """
    settings = settings or ServiceSettings.from_env()

    errors = settings.validate()
    if errors:
        raise ValidationError(f"Invalid service settings: {errors[0]}", errors=errors)

    clock = clock or SystemClock()
    store = SqlKeyValueStore.from_url(settings.database_url)
    manager = ConfigVersionManager(store, clock=clock, base_version=settings.base_version)

    trainer = None
    if None not in (content_repository, analysis_repository, alert_repository):
        trainer = ModelTrainer(
            content_repository,
            analysis_repository,
            alert_repository,
            config_manager=manager,
            clock=clock,
            min_samples=settings.min_training_samples,
        )

    logger.info(f"Virality risk service ready (store={settings.database_url.split('@')[-1]})")

    return ViralityRiskService(
        manager,
        engine=ViralityScoringEngine(clock=clock),
        sentiment_provider=sentiment_provider,
        emotion_provider=emotion_provider,
        trainer=trainer,
        settings=settings,
    )
