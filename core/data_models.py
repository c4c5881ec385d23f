"""
Core data models for the stroke screening system.

Wire format (HTTP bodies, stored records) uses the camelCase keys the
browser client sends; the Python side uses snake_case attributes.
"""

import logging
import math
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from .enums import RiskLevel

logger = logging.getLogger(__name__)


def _as_float(value: Any, default: float = 0.0) -> float:
    """Coerce a loosely typed metric to float, falling back to default."""
    if isinstance(value, bool) or value is None:
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def _as_number(value: Any) -> Optional[float]:
    """Return an int/float for numeric input, None when it is not a number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def _as_bool(value: Any) -> Optional[bool]:
    """Return a bool for boolean-like input, None otherwise."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return None


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


@dataclass(frozen=True)
class FacialMetrics:
    """Facial asymmetry measurements (0-1) from the face mesh detector."""
    eye_ratio: float = 0.0
    mouth_corner_ratio: float = 0.0
    overall_asymmetry: float = 0.0

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "FacialMetrics":
        if not data:
            return cls()
        return cls(
            eye_ratio=_as_float(_pick(data, "eyeRatio", "eye_ratio")),
            mouth_corner_ratio=_as_float(_pick(data, "mouthCornerRatio", "mouth_corner_ratio")),
            overall_asymmetry=_as_float(_pick(data, "overallAsymmetry", "overall_asymmetry")),
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "eyeRatio": self.eye_ratio,
            "mouthCornerRatio": self.mouth_corner_ratio,
            "overallAsymmetry": self.overall_asymmetry,
        }


@dataclass(frozen=True)
class PostureMetrics:
    """Posture imbalance measurements (0-1) from the pose detector."""
    shoulder_imbalance: float = 0.0
    arm_drop: float = 0.0

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["PostureMetrics"]:
        """Build from a wire dict; None or an empty dict means posture detection was inactive."""
        if not data:
            return None
        return cls(
            shoulder_imbalance=_as_float(_pick(data, "shoulderImbalance", "shoulder_imbalance")),
            arm_drop=_as_float(_pick(data, "armDrop", "arm_drop")),
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "shoulderImbalance": self.shoulder_imbalance,
            "armDrop": self.arm_drop,
        }


# snake_case attribute -> camelCase wire key
SPEECH_WIRE_KEYS = {
    "slurred_speech": "slurredSpeech",
    "speech_coherence": "speechCoherence",
    "possible_stroke_indicators": "possibleStrokeIndicators",
    "confidence": "confidence",
    "clarity": "clarity",
    "fluency": "fluency",
    "analysis": "analysis",
}

_BOOL_FIELDS = ("slurred_speech", "possible_stroke_indicators")
_NUMBER_FIELDS = ("speech_coherence", "confidence", "clarity", "fluency")


@dataclass(frozen=True)
class SpeechMetrics:
    """
    Speech analysis result.

    Every field always carries a value. Instances built from untrusted
    input go through from_partial(), which is the single place where
    per-field defaults are applied.

    Attributes:
        slurred_speech: Slurred speech detected
        speech_coherence: Coherence estimate (0-1)
        possible_stroke_indicators: Speech shows possible stroke signs
        confidence: Analysis confidence (0-100)
        clarity: Speech clarity (0-100, 100 = perfectly clear)
        fluency: Speech fluency (0-100, 100 = perfectly fluent)
        analysis: Short free-text explanation
    """
    slurred_speech: bool = False
    speech_coherence: float = 0.8
    possible_stroke_indicators: bool = False
    confidence: float = 50
    clarity: float = 80
    fluency: float = 80
    analysis: str = ""

    @classmethod
    def from_partial(
        cls,
        partial: Mapping[str, Any],
        defaults: "SpeechMetrics"
    ) -> "SpeechMetrics":
        """
        Merge a partial result over a complete default record.

        Keys may be snake_case attributes or camelCase wire keys. A key that
        is absent, null or of the wrong type takes the value from defaults;
        one bad field never invalidates the others.

        Args:
            partial: Possibly incomplete field values
            defaults: Complete record supplying missing fields

        Returns:
            Fully populated SpeechMetrics
        """
        values = {}
        for f in fields(cls):
            wire_key = SPEECH_WIRE_KEYS[f.name]
            raw = partial.get(f.name, partial.get(wire_key))
            fallback = getattr(defaults, f.name)

            if f.name in _BOOL_FIELDS:
                parsed = _as_bool(raw)
            elif f.name in _NUMBER_FIELDS:
                parsed = _as_number(raw)
            else:
                parsed = raw if isinstance(raw, str) and raw.strip() else None

            values[f.name] = fallback if parsed is None else parsed

        return cls(**values)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["SpeechMetrics"]:
        """Parse a wire dict; missing fields take the dataclass defaults."""
        if not data:
            return None
        return cls.from_partial(data, cls())

    def to_dict(self) -> Dict[str, Any]:
        return {wire: getattr(self, attr) for attr, wire in SPEECH_WIRE_KEYS.items()}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RiskAssessment:
    """Immutable result of one fusion evaluation."""
    score: float
    level: RiskLevel
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "level": self.level.value,
            "timestamp": self.timestamp.isoformat(),
        }
