"""
Virality Scoring - Feature Extraction.

============================================================
PURPOSE
============================================================
Reduces a content item and its upstream sentiment/emotion
analysis to the six bounded signals of a FeatureVector.

============================================================
DESIGN PRINCIPLES
============================================================
- Pure function of inputs, active config, and clock
- Every output clamped to [0, 1]
- No side effects, no failure mode on valid numeric input

============================================================
FORMULAS
============================================================
tone_severity:
    negative -> confidence * 0.6
    positive -> (1 - confidence) * 0.3
    neutral  -> 0.2
    + 0.4 * sum(conf * w) / sum(w) over detected emotions

engagement_velocity:
    log10(1 + weighted_engagement / max(hours, 0.1)) / log10(1000)

user_influence:
    (log10(1 + followers) / log10(1e6) + 0.3 if verified) * platform factor

content_length:
    1.0 in [100, 280], 0.5 below 50, 0.6 above 500, else 0.8

time_decay:
    1.0 <= 6h, 0.8 <= 24h, 0.5 <= 72h, else 0.2

============================================================
"""

import math
from typing import Dict, Optional, Sequence

from core.clock import ClockProtocol, SystemClock

from .config import RiskConfig
from .types import (
    ContentItem,
    EmotionScore,
    FeatureVector,
    SentimentLabel,
    SentimentResult,
    clamp,
)


# ============================================================
# CONSTANTS
# ============================================================

NEGATIVE_SENTIMENT_FACTOR = 0.6
POSITIVE_SENTIMENT_FACTOR = 0.3
NEUTRAL_SENTIMENT_SEVERITY = 0.2
EMOTION_SEVERITY_FACTOR = 0.4

MIN_HOURS_ELAPSED = 0.1
VELOCITY_CEILING_PER_HOUR = 1000.0      # ~1000 weighted engagements/hour saturates
FOLLOWER_CEILING = 1_000_000.0          # ~1M followers saturates
VERIFIED_BONUS = 0.3

# Reach adjustment per platform; unknown platforms are left unadjusted
PLATFORM_INFLUENCE_FACTORS: Dict[str, float] = {
    "twitter": 1.2,
    "reddit": 0.8,
    "trustpilot": 0.9,
    "review-site": 0.9,
    "appstore": 0.7,
    "app-store": 0.7,
}

# (upper bound in hours, decay value)
TIME_DECAY_STEPS = (
    (6.0, 1.0),
    (24.0, 0.8),
    (72.0, 0.5),
)
TIME_DECAY_FLOOR = 0.2


# ============================================================
# COMPONENT FUNCTIONS
# ============================================================


def tone_severity(
    sentiment: SentimentResult,
    emotions: Sequence[EmotionScore],
    config: RiskConfig,
) -> float:
    """Blend sentiment polarity with configured emotion weights."""
    if sentiment.label == SentimentLabel.NEGATIVE:
        severity = sentiment.confidence * NEGATIVE_SENTIMENT_FACTOR
    elif sentiment.label == SentimentLabel.POSITIVE:
        severity = (1.0 - sentiment.confidence) * POSITIVE_SENTIMENT_FACTOR
    else:
        severity = NEUTRAL_SENTIMENT_SEVERITY

    weighted_confidence = 0.0
    total_weight = 0.0
    for emotion in emotions:
        weight = config.emotion_weight_for(emotion.emotion)
        weighted_confidence += emotion.confidence * weight
        total_weight += weight

    if total_weight > 0:
        severity += EMOTION_SEVERITY_FACTOR * (weighted_confidence / total_weight)

    return clamp(severity)


def engagement_velocity(item: ContentItem, hours_elapsed: float) -> float:
    """Log-scaled weighted engagement per hour since posting."""
    hours = max(hours_elapsed, MIN_HOURS_ELAPSED)
    velocity = item.engagement.weighted_total / hours
    return clamp(math.log10(velocity + 1.0) / math.log10(VELOCITY_CEILING_PER_HOUR))


def user_influence(item: ContentItem) -> float:
    """Follower reach plus verification bonus, adjusted per platform."""
    influence = 0.0

    followers = item.author.follower_count or 0
    if followers > 0:
        influence += math.log10(followers + 1) / math.log10(FOLLOWER_CEILING)

    if item.author.verified:
        influence += VERIFIED_BONUS

    influence *= PLATFORM_INFLUENCE_FACTORS.get(item.platform, 1.0)
    return clamp(influence)


def content_length_factor(content: str) -> float:
    """Mid-length content (a tweet or a short review) spreads best."""
    length = len(content)
    if 100 <= length <= 280:
        return 1.0
    if length < 50:
        return 0.5
    if length > 500:
        return 0.6
    return 0.8


def time_decay(hours_elapsed: float) -> float:
    """Freshness step function."""
    for upper_bound, value in TIME_DECAY_STEPS:
        if hours_elapsed <= upper_bound:
            return value
    return TIME_DECAY_FLOOR


# ============================================================
# EXTRACTOR
# ============================================================


class FeatureExtractor:
    """
    Builds FeatureVectors.

    The clock is injected so posting ages are deterministic
    under test.
    """

    def __init__(self, clock: Optional[ClockProtocol] = None):
        self._clock = clock or SystemClock()

    @property
    def clock(self) -> ClockProtocol:
        return self._clock

    def hours_since_posted(self, item: ContentItem) -> float:
        return self.clock.hours_since(item.reference_time)

    def extract(
        self,
        item: ContentItem,
        sentiment: SentimentResult,
        emotions: Sequence[EmotionScore],
        config: RiskConfig,
    ) -> FeatureVector:
        """
        Extract the six features for ``item``.

        Args:
            item: Content being scored
            sentiment: Sentiment provider output for the content
            emotions: Emotion provider output for the content
            config: Active configuration (platform multiplier and
                emotion weight lookups only)

        Returns:
            FeatureVector with every component in [0, 1]
        """
        hours = self.hours_since_posted(item)

        return FeatureVector.clamped(
            tone_severity=tone_severity(sentiment, emotions, config),
            engagement_velocity=engagement_velocity(item, hours),
            user_influence=user_influence(item),
            content_length=content_length_factor(item.content),
            platform_multiplier=config.platform_multiplier_for(item.platform),
            time_decay=time_decay(hours),
        )


def extract_features(
    item: ContentItem,
    sentiment: SentimentResult,
    emotions: Sequence[EmotionScore],
    config: RiskConfig,
    clock: Optional[ClockProtocol] = None,
) -> FeatureVector:
    """Convenience wrapper around a one-off FeatureExtractor."""
    return FeatureExtractor(clock=clock).extract(item, sentiment, emotions, config)
