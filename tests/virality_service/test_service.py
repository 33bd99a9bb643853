"""
Tests for the Virality Risk Service facade.

============================================================
PURPOSE
============================================================
Verify that scoring always reads the current (or A/B-selected)
configuration, that configuration changes take effect on the
next prediction, and that the factory wires the SQL store.

============================================================
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from core.clock import MockClock
from core.exceptions import ConfigurationLoadError, NotFoundError, UpstreamProviderError, ValidationError
from config_management.manager import CURRENT_KEY, ConfigVersionManager
from config_management.models import ABArm
from config_management.store import InMemoryKeyValueStore
from model_training.repositories import (
    InMemoryAlertRepository,
    InMemoryAnalysisRepository,
    InMemoryContentRepository,
)
from virality_scoring.engine import ViralityScoringEngine
from virality_scoring.providers import StaticEmotionProvider, StaticSentimentProvider
from virality_scoring.types import (
    ContentAuthor,
    ContentItem,
    EmotionScore,
    EngagementMetrics,
    PredictionRequest,
    RiskTier,
    SentimentLabel,
    SentimentResult,
)
from virality_service.service import ViralityRiskService, create_service
from virality_service.settings import ServiceSettings


NOW = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def clock():
    return MockClock(NOW)


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def service(store, clock):
    return ViralityRiskService(
        ConfigVersionManager(store, clock=clock),
        engine=ViralityScoringEngine(clock=clock),
        sentiment_provider=StaticSentimentProvider(SentimentLabel.NEGATIVE, 0.9),
        emotion_provider=StaticEmotionProvider({"anger": 0.8}),
    )


def make_item(item_id="post-1", likes=300, shares=40, comments=25):
    return ContentItem(
        item_id=item_id,
        platform="twitter",
        content="Third delayed refund this month and nobody at support will answer. " * 2,
        author=ContentAuthor(username="angry_customer", follower_count=20_000, verified=False),
        engagement=EngagementMetrics(likes=likes, shares=shares, comments=comments),
        ingested_at=NOW,
        posted_at=NOW - timedelta(hours=2),
    )


NEGATIVE = SentimentResult(label=SentimentLabel.NEGATIVE, confidence=0.9)
ANGER = [EmotionScore(emotion="anger", confidence=0.8)]


# ============================================================
# SCORING
# ============================================================

class TestPredict:

    def test_default_config_has_no_version_label(self, service):
        prediction = service.predict(make_item(), NEGATIVE, ANGER)

        assert 0.0 <= prediction.score <= 1.0
        assert prediction.config_version is None

    def test_update_takes_effect_on_next_prediction(self, service):
        before = service.predict(make_item(), NEGATIVE, ANGER)

        version_id = service.update_config(
            {"thresholds": {"low": 0.05, "medium": 0.1, "high": 0.15, "viralThreat": 0.2}},
            "Everything is viral",
            "alice",
        )
        after = service.predict(make_item(), NEGATIVE, ANGER)

        assert after.config_version == version_id
        assert after.score == before.score
        assert after.risk_tier == RiskTier.VIRAL_THREAT

    def test_rollback_takes_effect_on_next_prediction(self, service, clock):
        first = service.update_config({"thresholds": {"high": 0.72}}, "one", "alice")
        clock.advance(seconds=10)
        service.update_config({"thresholds": {"high": 0.74}}, "two", "alice")

        service.rollback_config(first, "bob")

        assert service.predict(make_item(), NEGATIVE, ANGER).config_version == first
        assert service.current_config().thresholds.high == 0.72

    def test_corrupt_config_is_not_masked(self, service, store):
        store.set(CURRENT_KEY, "not json")

        with pytest.raises(ConfigurationLoadError):
            service.predict(make_item(), NEGATIVE, ANGER)

    def test_ab_label(self, service):
        test_id = service.start_ab_test({}, {"thresholds": {"high": 0.6}}, "high threshold", traffic_split=1.0)

        prediction = service.predict(make_item(), NEGATIVE, ANGER, ab_test_id=test_id, subject_id="user-7")

        assert prediction.config_version == f"{test_id}:A"

    def test_ab_prediction_counts_request(self, service):
        test_id = service.start_ab_test({}, {"thresholds": {"high": 0.6}}, "counted", traffic_split=0.0)

        service.resolve_ab_test(test_id, "user-7")
        service.predict(make_item(), NEGATIVE, ANGER, ab_test_id=test_id, subject_id="user-7")
        service.record_ab_outcome(test_id, ABArm.B, correct=False)

        test = service.manager.get_ab_test(test_id)
        assert test.stats_for(ABArm.B).requests == 1
        assert test.stats_for(ABArm.B).evaluated == 1
        assert test.stats_for(ABArm.A).requests == 0

    def test_unknown_ab_test(self, service):
        with pytest.raises(NotFoundError):
            service.predict(make_item(), NEGATIVE, ANGER, ab_test_id="ab_test_nope", subject_id="u")


class TestPredictText:

    def test_uses_providers(self, service):
        via_text = service.predict_text(make_item())
        direct = service.predict(make_item(), NEGATIVE, ANGER)

        assert via_text.score == pytest.approx(direct.score)

    def test_requires_providers(self, store):
        bare = ViralityRiskService(ConfigVersionManager(store))

        with pytest.raises(ValidationError):
            bare.predict_text(make_item())

    def test_sentiment_outage_raises(self, service):
        failing = MagicMock()
        failing.name = "remote-sentiment"
        failing.analyze.side_effect = TimeoutError("upstream timeout")
        service.sentiment_provider = failing

        with pytest.raises(UpstreamProviderError):
            service.predict_text(make_item())


class TestPredictBatch:

    def test_batch_shares_one_version(self, service):
        version_id = service.update_config({}, "baseline", "alice")
        requests = [
            PredictionRequest(item=make_item(f"post-{i}"), sentiment=NEGATIVE, emotions=tuple(ANGER))
            for i in range(3)
        ]

        result = service.predict_batch(requests)

        assert result.successful == 3
        assert {p.config_version for p in result.predictions.values()} == {version_id}


# ============================================================
# CONFIGURATION
# ============================================================

class TestConfiguration:

    def test_list_versions_newest_first(self, service, clock):
        first = service.update_config({"thresholds": {"high": 0.72}}, "one")
        clock.advance(seconds=1)
        second = service.update_config({"thresholds": {"high": 0.74}}, "two")

        assert [v.version for v in service.list_versions()] == [second, first]

    def test_invalid_update_rejected(self, service):
        with pytest.raises(ValidationError):
            service.update_config({"weights": {"toneSeverity": 2.0}}, "bad")

        assert service.list_versions() == []

    def test_ab_lifecycle(self, service):
        test_id = service.start_ab_test({}, {"thresholds": {"high": 0.6}}, "lifecycle", traffic_split=0.0)

        arm, config = service.resolve_ab_test(test_id, "user-1")
        closed = service.close_ab_test(test_id)

        assert arm == ABArm.B
        assert config.thresholds.high == 0.6
        assert closed.is_active is False


# ============================================================
# TRAINING
# ============================================================

class TestTrain:

    def test_requires_trainer(self, service):
        with pytest.raises(ValidationError):
            service.train(NOW - timedelta(days=30), NOW)

    def test_uses_settings_defaults(self, store, clock):
        trainer = MagicMock()
        service = ViralityRiskService(
            ConfigVersionManager(store, clock=clock),
            trainer=trainer,
            settings=ServiceSettings(min_engagement=25, validation_split=0.3),
        )

        service.train(NOW - timedelta(days=30), NOW)

        trainer.collect_training_data.assert_called_once_with(NOW - timedelta(days=30), NOW, 25)
        trainer.train.assert_called_once_with(trainer.collect_training_data.return_value, 0.3)
        trainer.train_and_publish.assert_not_called()

    def test_publish_delegates(self, store, clock):
        trainer = MagicMock()
        service = ViralityRiskService(ConfigVersionManager(store, clock=clock), trainer=trainer)

        service.train(NOW - timedelta(days=30), NOW, publish=True, author="nightly")

        trainer.train_and_publish.assert_called_once_with(
            NOW - timedelta(days=30), NOW,
            min_engagement=10, validation_split=0.2, author="nightly",
        )


# ============================================================
# FACTORY
# ============================================================

class TestCreateService:

    def test_sql_backed_service(self, clock):
        service = create_service(ServiceSettings(database_url="sqlite://"), clock=clock)

        version_id = service.update_config({"thresholds": {"high": 0.72}}, "one", "alice")

        assert service.current_config().thresholds.high == 0.72
        assert service.list_versions()[0].version == version_id
        assert service.trainer is None

    def test_trainer_attached_with_repositories(self):
        service = create_service(
            ServiceSettings(database_url="sqlite://", min_training_samples=80),
            content_repository=InMemoryContentRepository(),
            analysis_repository=InMemoryAnalysisRepository(),
            alert_repository=InMemoryAlertRepository(),
        )

        assert service.trainer is not None

    def test_invalid_settings_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            create_service(ServiceSettings(database_url="sqlite://", validation_split=1.5))

        assert any("validation_split" in e for e in exc_info.value.errors)
