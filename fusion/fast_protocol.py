"""
FAST protocol evaluation (Face, Arms, Speech, Time).

Turns the raw metrics and a fused assessment into per-letter findings and
the guidance shown next to the risk level.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from core.data_models import FacialMetrics, PostureMetrics, SpeechMetrics, RiskAssessment
from core.enums import RiskLevel

logger = logging.getLogger(__name__)

FACE_ASYMMETRY_THRESHOLD = 0.2
ARM_DROP_THRESHOLD = 0.2
SPEECH_SCORE_THRESHOLD = 70

RISK_MESSAGES = {
    RiskLevel.HIGH: "SEEK IMMEDIATE MEDICAL ATTENTION",
    RiskLevel.MEDIUM: "Contact a healthcare provider promptly",
    RiskLevel.LOW: "Low risk indicators",
}

DISCLAIMER = (
    "This is not a medical diagnosis. If you suspect a stroke, "
    "call emergency services immediately."
)


@dataclass(frozen=True)
class FastEvaluation:
    """Per-letter FAST findings for one assessment."""
    face_flagged: bool
    arms_flagged: bool
    speech_flagged: bool
    face_finding: str
    arms_finding: str
    speech_finding: str
    time_advice: str
    risk_message: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "face": {"flagged": self.face_flagged, "finding": self.face_finding},
            "arms": {"flagged": self.arms_flagged, "finding": self.arms_finding},
            "speech": {"flagged": self.speech_flagged, "finding": self.speech_finding},
            "time": {"advice": self.time_advice},
            "riskMessage": self.risk_message,
            "disclaimer": DISCLAIMER,
        }


def speech_abnormal(speech: Optional[SpeechMetrics]) -> bool:
    """Slurred speech, or clarity/fluency under 70."""
    if speech is None:
        return False
    return (
        speech.slurred_speech
        or speech.clarity < SPEECH_SCORE_THRESHOLD
        or speech.fluency < SPEECH_SCORE_THRESHOLD
    )


def evaluate_fast_protocol(
    facial: Optional[FacialMetrics],
    posture: Optional[PostureMetrics],
    speech: Optional[SpeechMetrics],
    assessment: RiskAssessment
) -> FastEvaluation:
    """
    Evaluate the FAST letters for a fused assessment.

    Args:
        facial: Facial metrics (None counts as no asymmetry)
        posture: Posture metrics (None counts as no arm drop)
        speech: Speech metrics (None counts as normal speech)
        assessment: Fused assessment the guidance refers to

    Returns:
        FastEvaluation
    """
    asymmetry = facial.overall_asymmetry if facial else 0.0
    arm_drop = posture.arm_drop if posture else 0.0

    face_flagged = asymmetry > FACE_ASYMMETRY_THRESHOLD
    arms_flagged = arm_drop > ARM_DROP_THRESHOLD
    speech_flagged = speech_abnormal(speech)

    return FastEvaluation(
        face_flagged=face_flagged,
        arms_flagged=arms_flagged,
        speech_flagged=speech_flagged,
        face_finding="Facial asymmetry detected" if face_flagged else "No significant asymmetry",
        arms_finding="Arm weakness detected" if arms_flagged else "No significant arm drop",
        speech_finding="Speech abnormalities detected" if speech_flagged else "No significant speech issues",
        time_advice=(
            "Call 911 immediately" if assessment.level == RiskLevel.HIGH
            else "Record time and monitor"
        ),
        risk_message=RISK_MESSAGES[assessment.level],
    )
