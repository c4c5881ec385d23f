"""
Recording session value owned by the controller.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from core.data_models import SpeechMetrics
from core.enums import ErrorKind, SessionState

# States in which the record controls are disabled
ACTIVE_STATES = frozenset({
    SessionState.REQUESTING_PERMISSION,
    SessionState.RECORDING,
    SessionState.STOPPING,
})


@dataclass(frozen=True)
class RecordingSession:
    """
    Immutable snapshot of a recording session.

    The controller replaces the whole value on every transition; UI code
    renders from the latest snapshot and never keeps its own copy of the
    state.

    Attributes:
        session_id: Increments each time a recording starts
        state: Current state machine state
        transcript: Latest authoritative transcript text
        attempts: Transient recognition failures in this session
        has_final: A final result has arrived in this session
        error_kind: Why the session is in the error state
        error_message: User-facing error text
        analysis: Result of the last analysis for this session
    """
    session_id: int = 0
    state: SessionState = SessionState.IDLE
    transcript: str = ""
    attempts: int = 0
    has_final: bool = False
    error_kind: Optional[ErrorKind] = None
    error_message: str = ""
    analysis: Optional[SpeechMetrics] = None

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES

    @property
    def manual_entry_enabled(self) -> bool:
        return self.state == SessionState.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "state": self.state.value,
            "transcript": self.transcript,
            "attempts": self.attempts,
            "errorKind": self.error_kind.value if self.error_kind else None,
            "errorMessage": self.error_message,
            "manualEntryEnabled": self.manual_entry_enabled,
            "analysis": self.analysis.to_dict() if self.analysis else None,
        }
