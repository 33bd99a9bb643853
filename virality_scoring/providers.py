"""
Provider Seams - Abstract sentiment and emotion classifiers.

The classifiers themselves are external collaborators. The engine only
needs confidence-scored labels, so the seam is a single ``analyze(text)``
call per provider.

FAILURE POLICY:
1. Sentiment failure aborts that item (UpstreamProviderError)
2. Emotion failure degrades to "no emotions detected"
3. Neither ever aborts a batch
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

from core.exceptions import UpstreamProviderError, ViralityEngineError

from .types import EmotionScore, SentimentLabel, SentimentResult


logger = logging.getLogger(__name__)


class SentimentProvider(ABC):
    """Produces a single polarity label with confidence."""

    name: str = "sentiment"

    @abstractmethod
    def analyze(self, text: str) -> SentimentResult:
        """
        Classify ``text``.

        Should raise on failure; callers translate the failure into
        an UpstreamProviderError.
        """
        pass


class EmotionProvider(ABC):
    """Produces zero or more emotion labels with confidence."""

    name: str = "emotion"

    @abstractmethod
    def analyze(self, text: str) -> List[EmotionScore]:
        pass


class StaticSentimentProvider(SentimentProvider):
    """Returns a fixed result. Used for dry runs and tests."""

    name = "static-sentiment"

    def __init__(self, label: SentimentLabel = SentimentLabel.NEUTRAL, confidence: float = 0.5):
        self._result = SentimentResult(label=label, confidence=confidence)

    def analyze(self, text: str) -> SentimentResult:
        return self._result


class StaticEmotionProvider(EmotionProvider):
    """Returns a fixed emotion list. Used for dry runs and tests."""

    name = "static-emotion"

    def __init__(self, emotions: Optional[Dict[str, float]] = None):
        self._emotions = [
            EmotionScore(emotion=emotion, confidence=confidence)
            for emotion, confidence in (emotions or {}).items()
        ]

    def analyze(self, text: str) -> List[EmotionScore]:
        return list(self._emotions)


def analyze_content(
    text: str,
    sentiment_provider: SentimentProvider,
    emotion_provider: EmotionProvider,
) -> Tuple[SentimentResult, Sequence[EmotionScore]]:
    """
    Run both providers over ``text``.

    Raises:
        UpstreamProviderError: if the sentiment provider fails
    """
    try:
        sentiment = sentiment_provider.analyze(text)
    except ViralityEngineError:
        raise
    except Exception as e:
        raise UpstreamProviderError(
            f"Sentiment provider failed: {e}",
            provider=sentiment_provider.name,
            cause=e,
        ) from e

    try:
        emotions = list(emotion_provider.analyze(text))
    except Exception as e:
        logger.warning(f"Emotion provider {emotion_provider.name} failed, continuing without emotions: {e}")
        emotions = []

    return sentiment, emotions
