"""
Multimodal stroke risk fusion.

Fusion strategy:
- Facial asymmetry is the base score (weight 1.0)
- Shoulder imbalance adds up to 0.3
- Slurred speech adds a flat 0.3
- Clarity and fluency deficits add up to 0.15 each
- The sum is clamped to [0, 1] and mapped to low / medium / high

Decision thresholds use strict comparison:
    score > 0.7 -> high
    score > 0.3 -> medium
    otherwise   -> low
so a score of exactly 0.7 is medium and exactly 0.3 is low.

The weights and thresholds are a fixed policy and are not configurable.
Every call is a fresh evaluation; the engine keeps no state between calls.
"""

import logging
from typing import Any, Mapping, Optional, Union

import numpy as np

from core.data_models import (
    FacialMetrics,
    PostureMetrics,
    SpeechMetrics,
    RiskAssessment,
    utc_now,
)
from core.enums import RiskLevel

logger = logging.getLogger(__name__)

FACIAL_WEIGHT = 1.0
SHOULDER_WEIGHT = 0.3
SLURRED_SPEECH_PENALTY = 0.3
CLARITY_WEIGHT = 0.15
FLUENCY_WEIGHT = 0.15

HIGH_RISK_THRESHOLD = 0.7
MEDIUM_RISK_THRESHOLD = 0.3

FacialInput = Union[FacialMetrics, Mapping[str, Any], None]
PostureInput = Union[PostureMetrics, Mapping[str, Any], None]
SpeechInput = Union[SpeechMetrics, Mapping[str, Any], None]

# Fields missing from a speech dict must add no risk
NEUTRAL_SPEECH = SpeechMetrics(
    slurred_speech=False,
    speech_coherence=1.0,
    possible_stroke_indicators=False,
    confidence=0,
    clarity=100,
    fluency=100,
)


def classify_score(score: float) -> RiskLevel:
    """
    Map a fused score to a risk level.

    Args:
        score: Fused score (0-1)

    Returns:
        RiskLevel
    """
    if score > HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if score > MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _finite(value: Any, default: float) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if not np.isfinite(result):
        return default
    return result


def speech_from_wire(data: Optional[Mapping[str, Any]]) -> Optional[SpeechMetrics]:
    """
    Parse a camelCase speech dict for fusion.

    Missing clarity/fluency read as 100 and a missing slurredSpeech as
    false, so absent fields contribute nothing to the score.
    """
    if not data:
        return None
    return SpeechMetrics.from_partial(data, NEUTRAL_SPEECH)


class RiskFusionEngine:
    """
    Stateless fusion engine for facial, posture and speech metrics.

    Usage:
        engine = RiskFusionEngine()
        assessment = engine.compute(facial, posture, speech)
    """

    def compute(
        self,
        facial: FacialInput,
        posture: PostureInput = None,
        speech: SpeechInput = None
    ) -> RiskAssessment:
        """
        Fuse the three modalities into a single risk assessment.

        Absent posture or speech inputs contribute nothing. Wire-format
        dicts are accepted in place of the dataclasses. Never raises.

        Args:
            facial: Facial asymmetry metrics
            posture: Posture metrics (optional)
            speech: Speech analysis metrics (optional)

        Returns:
            New RiskAssessment
        """
        facial = self._coerce(facial, FacialMetrics)
        posture = self._coerce(posture, PostureMetrics)
        speech = self._coerce_speech(speech)

        score = FACIAL_WEIGHT * _finite(facial.overall_asymmetry if facial else 0.0, 0.0)

        if posture is not None:
            score += _finite(posture.shoulder_imbalance, 0.0) * SHOULDER_WEIGHT

        if speech is not None:
            if speech.slurred_speech:
                score += SLURRED_SPEECH_PENALTY
            clarity = _finite(speech.clarity, 100.0)
            fluency = _finite(speech.fluency, 100.0)
            score += (100.0 - clarity) / 100.0 * CLARITY_WEIGHT
            score += (100.0 - fluency) / 100.0 * FLUENCY_WEIGHT

        score = float(np.clip(score, 0.0, 1.0))
        level = classify_score(score)

        logger.debug(f"Fused risk score={score:.3f} level={level.value}")

        return RiskAssessment(score=score, level=level, timestamp=utc_now())

    @staticmethod
    def _coerce(value, model):
        if value is None or isinstance(value, model):
            return value
        if isinstance(value, Mapping):
            try:
                return model.from_dict(value)
            except Exception as e:
                logger.warning(f"Ignoring malformed {model.__name__}: {e}")
                return None
        logger.warning(f"Ignoring unsupported {model.__name__} input of type {type(value).__name__}")
        return None

    @classmethod
    def _coerce_speech(cls, value):
        if isinstance(value, Mapping):
            try:
                return speech_from_wire(value)
            except Exception as e:
                logger.warning(f"Ignoring malformed SpeechMetrics: {e}")
                return None
        return cls._coerce(value, SpeechMetrics)


def compute_risk(
    facial: FacialInput,
    posture: PostureInput = None,
    speech: SpeechInput = None
) -> RiskAssessment:
    """
    Convenience function for one-off fusion.

    Args:
        facial: Facial asymmetry metrics
        posture: Posture metrics (optional)
        speech: Speech metrics (optional)

    Returns:
        RiskAssessment
    """
    return RiskFusionEngine().compute(facial, posture, speech)
