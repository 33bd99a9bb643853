"""
Tests for Feature Extraction.

============================================================
PURPOSE
============================================================
Verify each of the six features against its documented
formula and bands.

TEST PRINCIPLES:
- Every feature stays within [0, 1]
- Band edges are inclusive where documented
- Posting age is read from an injected clock

============================================================
"""

import math
import pytest
from datetime import datetime, timedelta, timezone

from core.clock import MockClock
from virality_scoring.config import RiskConfig, get_default_config
from virality_scoring.features import (
    FeatureExtractor,
    content_length_factor,
    engagement_velocity,
    time_decay,
    tone_severity,
    user_influence,
)
from virality_scoring.types import (
    ContentAuthor,
    ContentItem,
    EmotionScore,
    EngagementMetrics,
    SentimentLabel,
    SentimentResult,
)


NOW = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def clock():
    return MockClock(NOW)


@pytest.fixture
def config():
    return get_default_config()


def make_item(
    platform="twitter",
    content="x" * 150,
    followers=None,
    verified=None,
    likes=0,
    shares=0,
    comments=0,
    posted_hours_ago=None,
    ingested_hours_ago=0.0,
):
    return ContentItem(
        item_id="item-1",
        platform=platform,
        content=content,
        author=ContentAuthor(username="someone", follower_count=followers, verified=verified),
        engagement=EngagementMetrics(likes=likes, shares=shares, comments=comments),
        ingested_at=NOW - timedelta(hours=ingested_hours_ago),
        posted_at=NOW - timedelta(hours=posted_hours_ago) if posted_hours_ago is not None else None,
    )


# ============================================================
# TONE SEVERITY
# ============================================================

class TestToneSeverity:
    """Tests for sentiment + emotion blending."""

    def test_negative_sentiment_scales_confidence(self, config):
        sentiment = SentimentResult(SentimentLabel.NEGATIVE, 0.5)
        assert tone_severity(sentiment, [], config) == pytest.approx(0.3)

    def test_positive_sentiment_uses_inverse_confidence(self, config):
        sentiment = SentimentResult(SentimentLabel.POSITIVE, 0.9)
        assert tone_severity(sentiment, [], config) == pytest.approx(0.03)

    def test_neutral_sentiment_is_fixed(self, config):
        sentiment = SentimentResult(SentimentLabel.NEUTRAL, 0.99)
        assert tone_severity(sentiment, [], config) == pytest.approx(0.2)

    def test_emotions_weighted_by_configured_weight(self, config):
        sentiment = SentimentResult(SentimentLabel.NEGATIVE, 0.9)
        emotions = [EmotionScore("anger", 0.8), EmotionScore("frustration", 0.6)]

        expected = 0.54 + 0.4 * (0.8 * 0.9 + 0.6 * 0.8) / (0.9 + 0.8)
        assert tone_severity(sentiment, emotions, config) == pytest.approx(expected)

    def test_unknown_emotion_uses_default_weight(self, config):
        sentiment = SentimentResult(SentimentLabel.NEUTRAL, 0.5)
        emotions = [EmotionScore("bewilderment", 0.5), EmotionScore("anger", 1.0)]

        expected = 0.2 + 0.4 * (0.5 * 0.5 + 1.0 * 0.9) / (0.5 + 0.9)
        assert tone_severity(sentiment, emotions, config) == pytest.approx(expected)

    def test_zero_total_weight_adds_nothing(self):
        config = RiskConfig(emotion_weights={"calm": 0.0})
        sentiment = SentimentResult(SentimentLabel.NEUTRAL, 0.5)

        assert tone_severity(sentiment, [EmotionScore("calm", 1.0)], config) == pytest.approx(0.2)

    def test_result_is_clamped(self, config):
        sentiment = SentimentResult(SentimentLabel.NEGATIVE, 1.0)
        emotions = [EmotionScore("anger", 5.0)]

        assert tone_severity(sentiment, emotions, config) == 1.0


# ============================================================
# ENGAGEMENT VELOCITY
# ============================================================

class TestEngagementVelocity:
    """Tests for log-scaled engagement per hour."""

    def test_no_engagement_is_zero(self):
        assert engagement_velocity(make_item(), 5.0) == 0.0

    def test_weighted_engagement_per_hour(self):
        item = make_item(likes=100, shares=50, comments=20)
        expected = math.log10(1 + 230 / 2) / 3
        assert engagement_velocity(item, 2.0) == pytest.approx(expected)

    def test_hours_floor_prevents_division_blowup(self):
        item = make_item(likes=10)
        assert engagement_velocity(item, 0.0) == engagement_velocity(item, 0.1)
        assert engagement_velocity(item, -3.0) == engagement_velocity(item, 0.1)

    def test_saturates_at_one(self):
        item = make_item(likes=10_000_000)
        assert engagement_velocity(item, 1.0) == 1.0


# ============================================================
# USER INFLUENCE
# ============================================================

class TestUserInfluence:
    """Tests for follower/verification reach."""

    def test_missing_author_signals_is_zero(self):
        assert user_influence(make_item(platform="reddit")) == 0.0

    def test_verified_bonus_and_platform_factor(self):
        item = make_item(platform="reddit", followers=999, verified=True)
        expected = (math.log10(1000) / 6 + 0.3) * 0.8
        assert user_influence(item) == pytest.approx(expected)

    def test_unknown_platform_unadjusted(self):
        item = make_item(platform="mastodon", followers=99)
        assert user_influence(item) == pytest.approx(math.log10(100) / 6)

    def test_clamped_to_one(self):
        item = make_item(platform="twitter", followers=10_000, verified=True)
        assert user_influence(item) == 1.0


# ============================================================
# CONTENT LENGTH & TIME DECAY
# ============================================================

class TestContentLength:

    @pytest.mark.parametrize("length,expected", [
        (0, 0.5),
        (49, 0.5),
        (50, 0.8),
        (99, 0.8),
        (100, 1.0),
        (280, 1.0),
        (281, 0.8),
        (500, 0.8),
        (501, 0.6),
    ])
    def test_bands(self, length, expected):
        assert content_length_factor("a" * length) == expected


class TestTimeDecay:

    @pytest.mark.parametrize("hours,expected", [
        (0.0, 1.0),
        (6.0, 1.0),
        (6.5, 0.8),
        (24.0, 0.8),
        (48.0, 0.5),
        (72.0, 0.5),
        (72.1, 0.2),
        (1000.0, 0.2),
    ])
    def test_bands(self, hours, expected):
        assert time_decay(hours) == expected


# ============================================================
# EXTRACTOR
# ============================================================

class TestFeatureExtractor:
    """Tests for the full extraction path."""

    def test_posted_time_drives_age(self, clock, config):
        extractor = FeatureExtractor(clock=clock)
        item = make_item(posted_hours_ago=30, ingested_hours_ago=1)

        assert extractor.hours_since_posted(item) == pytest.approx(30.0)

    def test_falls_back_to_ingestion_time(self, clock, config):
        extractor = FeatureExtractor(clock=clock)
        item = make_item(posted_hours_ago=None, ingested_hours_ago=10)

        features = extractor.extract(item, SentimentResult(SentimentLabel.NEUTRAL, 0.5), [], config)

        assert features.time_decay == 0.8

    def test_platform_multiplier_is_clamped(self, clock, config):
        extractor = FeatureExtractor(clock=clock)
        sentiment = SentimentResult(SentimentLabel.NEUTRAL, 0.5)

        twitter = extractor.extract(make_item(platform="twitter"), sentiment, [], config)
        trustpilot = extractor.extract(make_item(platform="trustpilot"), sentiment, [], config)
        unknown = extractor.extract(make_item(platform="forum"), sentiment, [], config)

        assert twitter.platform_multiplier == 1.0
        assert trustpilot.platform_multiplier == pytest.approx(0.8)
        assert unknown.platform_multiplier == 1.0

    def test_every_feature_bounded(self, clock, config):
        extractor = FeatureExtractor(clock=clock)
        item = make_item(
            followers=10**9, verified=True, likes=10**9, shares=10**9, comments=10**9,
            posted_hours_ago=-5,
        )
        sentiment = SentimentResult(SentimentLabel.NEGATIVE, 1.0)
        emotions = [EmotionScore("anger", 1.0), EmotionScore("betrayal", 1.0)]

        features = extractor.extract(item, sentiment, emotions, config)

        for value in features.as_dict().values():
            assert 0.0 <= value <= 1.0
