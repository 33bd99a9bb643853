"""
Virality Scoring - Scoring Engine & Risk Classifier.

============================================================
PURPOSE
============================================================
The ViralityScoringEngine is the main entry point for scoring.

It orchestrates:
1. Feature extraction
2. Weighted score aggregation
3. Tier classification
4. Confidence estimation
5. Reasoning generation
6. Result packaging

============================================================
DESIGN PRINCIPLES
============================================================
- Deterministic and stateless per call
- The only shared input is the configuration it is handed
- Safe to call concurrently from any number of callers
- Bulk scoring isolates failures per item

============================================================
USAGE
============================================================
    from virality_scoring import ViralityScoringEngine

    engine = ViralityScoringEngine()
    prediction = engine.predict(item, sentiment, emotions)

    print(f"Tier: {prediction.risk_tier.value}")
    print(f"Score: {prediction.score:.3f}")

============================================================
"""

import logging
from typing import Iterable, List, Optional, Sequence

from core.clock import ClockProtocol
from core.exceptions import ViralityEngineError

from .config import RiskConfig, RiskThresholds, get_default_config
from .features import FeatureExtractor
from .types import (
    FEATURE_NAMES,
    AlertSeverity,
    BatchPredictionError,
    BatchPredictionResult,
    ContentItem,
    EmotionScore,
    FeatureVector,
    Prediction,
    PredictionRequest,
    RiskTier,
    SentimentResult,
    clamp,
)


logger = logging.getLogger(__name__)


BASE_CONFIDENCE = 0.5
SENTIMENT_CONFIDENCE_FACTOR = 0.2
EMOTION_CONFIDENCE_FACTOR = 0.2
COMPLETENESS_FACTOR = 0.1
MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 1.0


# ============================================================
# PURE SCORING FUNCTIONS
# ============================================================


def calculate_score(features: FeatureVector, config: RiskConfig) -> float:
    """clamp(sum(weight_i * feature_i), 0, 1) over the six canonical pairs."""
    weights = config.weights
    total = sum(getattr(features, name) * getattr(weights, name) for name in FEATURE_NAMES)
    return clamp(total)


def classify_score(score: float, thresholds: RiskThresholds) -> RiskTier:
    """
    Map a score to a tier.

    Comparisons are ``>=`` from the most severe tier down, so the
    mapping is non-decreasing in ``score``.
    """
    if score >= thresholds.viral_threat:
        return RiskTier.VIRAL_THREAT
    elif score >= thresholds.high:
        return RiskTier.HIGH
    elif score >= thresholds.medium:
        return RiskTier.MEDIUM
    else:
        return RiskTier.LOW


def data_completeness(item: ContentItem) -> float:
    """Fraction of the four optional signals present on ``item``."""
    present = [
        item.author.follower_count is not None,
        item.author.verified is not None,
        item.posted_at is not None,
        item.engagement.has_any,
    ]
    return sum(1 for p in present if p) / len(present)


def calculate_confidence(
    item: ContentItem,
    sentiment: SentimentResult,
    emotions: Sequence[EmotionScore],
) -> float:
    """Confidence in the prediction, independent of the score itself."""
    confidence = BASE_CONFIDENCE
    confidence += sentiment.confidence * SENTIMENT_CONFIDENCE_FACTOR

    if emotions:
        avg_emotion = sum(e.confidence for e in emotions) / len(emotions)
        confidence += avg_emotion * EMOTION_CONFIDENCE_FACTOR

    confidence += data_completeness(item) * COMPLETENESS_FACTOR

    return clamp(confidence, MIN_CONFIDENCE, MAX_CONFIDENCE)


def generate_reasoning(features: FeatureVector, score: float, tier: RiskTier) -> List[str]:
    """Ordered, templated explanation of a prediction."""
    reasoning = [f"Overall virality score: {score * 100:.1f}% ({tier.value} risk)"]

    if features.tone_severity > 0.7:
        reasoning.append("High tone severity detected - strong negative sentiment and emotions")
    elif features.tone_severity > 0.4:
        reasoning.append("Moderate tone severity - some concerning sentiment patterns")
    else:
        reasoning.append("Low tone severity - relatively neutral or positive sentiment")

    if features.engagement_velocity > 0.6:
        reasoning.append("High engagement velocity - content is gaining traction rapidly")
    elif features.engagement_velocity > 0.3:
        reasoning.append("Moderate engagement velocity - steady interaction growth")
    else:
        reasoning.append("Low engagement velocity - limited interaction so far")

    if features.user_influence > 0.6:
        reasoning.append("High user influence - author has significant reach and credibility")
    elif features.user_influence > 0.3:
        reasoning.append("Moderate user influence - author has some established presence")
    else:
        reasoning.append("Low user influence - author has limited reach")

    if features.time_decay < 0.5:
        reasoning.append("Content is aging - virality window is closing")
    elif features.time_decay > 0.8:
        reasoning.append("Fresh content - still within peak virality window")

    return reasoning


# ============================================================
# ENGINE
# ============================================================


class ViralityScoringEngine:
    """
    Extract -> score -> classify for one item or a batch.

    ============================================================
    CONFIGURATION
    ============================================================
    The engine holds a default config but every call may pass
    the config to use (current version or an A/B arm). The
    engine never mutates the config it is given.

    ============================================================
    """

    def __init__(
        self,
        config: Optional[RiskConfig] = None,
        extractor: Optional[FeatureExtractor] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        """
        Initialize the scoring engine.

        Args:
            config: Fallback configuration when a call passes none.
            extractor: Feature extractor (built around ``clock`` if omitted).
            clock: Clock used for posting-age features.
        """
        self.config = config or get_default_config()
        self._extractor = extractor or FeatureExtractor(clock=clock)

    @property
    def extractor(self) -> FeatureExtractor:
        return self._extractor

    def score(self, features: FeatureVector, config: Optional[RiskConfig] = None) -> float:
        return calculate_score(features, config or self.config)

    def classify(self, score: float, config: Optional[RiskConfig] = None) -> RiskTier:
        return classify_score(score, (config or self.config).thresholds)

    def predict(
        self,
        item: ContentItem,
        sentiment: SentimentResult,
        emotions: Sequence[EmotionScore],
        config: Optional[RiskConfig] = None,
        config_version: Optional[str] = None,
    ) -> Prediction:
        """
        Score a single item.

        Args:
            item: Content to score
            sentiment: Upstream sentiment result
            emotions: Upstream emotion results
            config: Configuration to score with (engine default if None)
            config_version: Version id or arm label recorded on the result

        Returns:
            Immutable Prediction
        """
        active = config or self.config

        features = self._extractor.extract(item, sentiment, emotions, active)
        score = calculate_score(features, active)
        tier = classify_score(score, active.thresholds)
        confidence = calculate_confidence(item, sentiment, emotions)
        reasoning = generate_reasoning(features, score, tier)

        logger.debug(
            f"Scored item {item.item_id}: score={score:.3f} tier={tier.value} "
            f"confidence={confidence:.2f} version={config_version}"
        )

        return Prediction(
            score=score,
            risk_tier=tier,
            features=features,
            confidence=confidence,
            reasoning=tuple(reasoning),
            config_version=config_version,
            predicted_at=self._extractor.clock.now(),
        )

    def predict_batch(
        self,
        requests: Iterable[PredictionRequest],
        config: Optional[RiskConfig] = None,
        config_version: Optional[str] = None,
    ) -> BatchPredictionResult:
        """
        Score many items; a failing item is recorded and skipped.

        Returns:
            BatchPredictionResult with per-item predictions and errors
        """
        result = BatchPredictionResult()

        for request in requests:
            result.processed += 1
            try:
                prediction = self.predict(
                    request.item,
                    request.sentiment,
                    request.emotions,
                    config=config,
                    config_version=config_version,
                )
            except (ViralityEngineError, ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Scoring failed for item {request.item.item_id}: {e}")
                result.failed += 1
                result.errors.append(BatchPredictionError(
                    item_id=request.item.item_id,
                    error=str(e),
                    error_type=type(e).__name__,
                ))
                continue

            result.successful += 1
            result.predictions[request.item.item_id] = prediction

        return result

    def get_config(self) -> RiskConfig:
        """Return the engine's fallback configuration."""
        return self.config


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================


def alert_severity_for(prediction: Prediction) -> AlertSeverity:
    """Severity to use when the alerting pipeline raises an alert."""
    return AlertSeverity.from_tier(prediction.risk_tier)


def format_prediction_summary(item: ContentItem, prediction: Prediction) -> str:
    """
    Format a one-line alert message.

    Useful for logging, alerts, and dashboards.
    """
    platform = item.platform.upper()
    score = f"{prediction.score * 100:.1f}"
    message = (
        f"{platform} content by @{item.author.username} has {prediction.risk_tier.value} "
        f"virality risk ({score}% score). "
    )

    key_factors = []
    if prediction.features.tone_severity > 0.6:
        key_factors.append("severe tone")
    if prediction.features.engagement_velocity > 0.6:
        key_factors.append("high engagement velocity")
    if prediction.features.user_influence > 0.6:
        key_factors.append("influential user")

    if key_factors:
        message += f"Key factors: {', '.join(key_factors)}."

    return message.strip()
