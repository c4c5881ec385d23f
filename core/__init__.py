"""
Shared data model for the stroke screening system.

FacialMetrics, PostureMetrics and SpeechMetrics are the three signal
streams of the FAST protocol (Face, Arms, Speech); RiskAssessment is the
fused result.
"""

from .data_models import (
    FacialMetrics,
    PostureMetrics,
    SpeechMetrics,
    RiskAssessment,
    utc_now,
)
from .enums import RiskLevel, SessionState, RecognitionEventType, ErrorKind
from .errors import (
    StrokeScreenError,
    RequestValidationError,
    UpstreamAnalysisFailure,
    ParseFailure,
    TransientRecognitionError,
    PermissionDeniedError,
    DeviceUnavailableError,
    SessionError,
    SessionBusyError,
    InvalidTransitionError,
    EmptyTranscriptError,
    AnalysisInProgressError,
)

__all__ = [
    'FacialMetrics',
    'PostureMetrics',
    'SpeechMetrics',
    'RiskAssessment',
    'utc_now',
    'RiskLevel',
    'SessionState',
    'RecognitionEventType',
    'ErrorKind',
    'StrokeScreenError',
    'RequestValidationError',
    'UpstreamAnalysisFailure',
    'ParseFailure',
    'TransientRecognitionError',
    'PermissionDeniedError',
    'DeviceUnavailableError',
    'SessionError',
    'SessionBusyError',
    'InvalidTransitionError',
    'EmptyTranscriptError',
    'AnalysisInProgressError',
]
