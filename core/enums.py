"""
Enumerations for the stroke screening system.
"""

from enum import Enum


class RiskLevel(str, Enum):
    """Three-level classification of the fused risk score."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SessionState(str, Enum):
    """States of a speech recording session."""
    IDLE = "idle"
    REQUESTING_PERMISSION = "requesting_permission"
    RECORDING = "recording"
    STOPPING = "stopping"
    RECORDED = "recorded"
    ERROR = "error"


class RecognitionEventType(str, Enum):
    """Kinds of events the recognition engine posts to the controller."""
    RESULT = "result"
    ERROR = "error"
    END = "end"


class ErrorKind(str, Enum):
    """Why a session ended up in the error state."""
    PERMISSION = "permission"  # Microphone denied or no device
    TRANSIENT = "transient"  # Retries exhausted
    RECOGNITION = "recognition"  # Non-transient engine failure
