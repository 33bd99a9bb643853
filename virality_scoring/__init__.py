"""
Virality Scoring - Package.

============================================================
PURPOSE
============================================================
Converts a piece of content plus its sentiment/emotion
analysis into a bounded virality risk score and a risk tier.

============================================================
WHAT IT IS
============================================================
- Deterministic, weighted-sum scoring
- Configurable through an immutable RiskConfig
- Produces four ordered tiers: LOW < MEDIUM < HIGH < VIRAL_THREAT
- Stateless per call, safe under concurrency

============================================================
WHAT IT IS NOT
============================================================
- NOT a sentiment or emotion classifier (those are providers)
- NOT the alerting pipeline (it only reports severity)
- NOT responsible for storing configuration versions

============================================================
SIX FEATURES
============================================================
1. TONE SEVERITY: Sentiment polarity + weighted emotions
2. ENGAGEMENT VELOCITY: Weighted engagement per hour
3. USER INFLUENCE: Followers, verification, platform reach
4. CONTENT LENGTH: Bell-shaped length suitability
5. PLATFORM MULTIPLIER: Per-platform configured weight
6. TIME DECAY: Freshness of the post

============================================================
USAGE
============================================================
    from virality_scoring import (
        ViralityScoringEngine,
        ContentItem,
        ContentAuthor,
        EngagementMetrics,
        SentimentResult,
        SentimentLabel,
        EmotionScore,
    )

    engine = ViralityScoringEngine()

    item = ContentItem(
        item_id="c-1",
        platform="twitter",
        content="...",
        author=ContentAuthor(username="someone", follower_count=50_000, verified=True),
        engagement=EngagementMetrics(likes=200, shares=80, comments=40),
    )

    prediction = engine.predict(
        item,
        SentimentResult(label=SentimentLabel.NEGATIVE, confidence=0.9),
        [EmotionScore(emotion="anger", confidence=0.8)],
    )

    print(f"Tier: {prediction.risk_tier.value}")
    print(f"Score: {prediction.score:.3f}")

============================================================
"""

# Types
from .types import (
    # Constants
    FEATURE_NAMES,

    # Enums
    RiskTier,
    SentimentLabel,
    AlertSeverity,

    # Input types
    ContentAuthor,
    EngagementMetrics,
    ContentItem,
    SentimentResult,
    EmotionScore,
    PredictionRequest,

    # Output types
    FeatureVector,
    Prediction,
    BatchPredictionError,
    BatchPredictionResult,
    clamp,
)

# Configuration
from .config import (
    FeatureWeights,
    RiskThresholds,
    RiskConfig,
    DEFAULT_PLATFORM_MULTIPLIERS,
    DEFAULT_EMOTION_WEIGHTS,
    validate_config,
    ensure_valid,
    get_default_config,
    load_config_file,
)

# Features
from .features import (
    FeatureExtractor,
    extract_features,
)

# Engine
from .engine import (
    ViralityScoringEngine,
    calculate_score,
    classify_score,
    calculate_confidence,
    generate_reasoning,
    alert_severity_for,
    format_prediction_summary,
)

# Providers
from .providers import (
    SentimentProvider,
    EmotionProvider,
    StaticSentimentProvider,
    StaticEmotionProvider,
    analyze_content,
)


__all__ = [
    # Constants
    "FEATURE_NAMES",

    # Enums
    "RiskTier",
    "SentimentLabel",
    "AlertSeverity",

    # Input types
    "ContentAuthor",
    "EngagementMetrics",
    "ContentItem",
    "SentimentResult",
    "EmotionScore",
    "PredictionRequest",

    # Output types
    "FeatureVector",
    "Prediction",
    "BatchPredictionError",
    "BatchPredictionResult",
    "clamp",

    # Configuration
    "FeatureWeights",
    "RiskThresholds",
    "RiskConfig",
    "DEFAULT_PLATFORM_MULTIPLIERS",
    "DEFAULT_EMOTION_WEIGHTS",
    "validate_config",
    "ensure_valid",
    "get_default_config",
    "load_config_file",

    # Features
    "FeatureExtractor",
    "extract_features",

    # Engine
    "ViralityScoringEngine",
    "calculate_score",
    "classify_score",
    "calculate_confidence",
    "generate_reasoning",
    "alert_severity_for",
    "format_prediction_summary",

    # Providers
    "SentimentProvider",
    "EmotionProvider",
    "StaticSentimentProvider",
    "StaticEmotionProvider",
    "analyze_content",
]
