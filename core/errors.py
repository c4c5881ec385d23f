"""
Error taxonomy for the stroke screening system.

Only request validation errors are surfaced to HTTP callers. Everything on
the speech-analysis path is absorbed and converted into default metrics.
"""


class StrokeScreenError(Exception):
    """Base class for all application errors."""


class RequestValidationError(StrokeScreenError):
    """A request to the storage boundary is missing required fields."""


class UpstreamAnalysisFailure(StrokeScreenError):
    """The external text-generation service failed or was unreachable."""


class ParseFailure(StrokeScreenError):
    """A structured response could not be parsed."""


class TransientRecognitionError(StrokeScreenError):
    """A retry-eligible failure from the speech recognition engine."""


class PermissionDeniedError(StrokeScreenError):
    """Microphone or recognition access was denied by the user."""


class DeviceUnavailableError(StrokeScreenError):
    """No usable microphone is connected."""


class SessionError(StrokeScreenError):
    """Invalid use of the recording session controller."""


class SessionBusyError(SessionError):
    """A recording session is already active."""


class InvalidTransitionError(SessionError):
    """The requested operation is not allowed in the current state."""


class EmptyTranscriptError(SessionError):
    """There is no speech to analyze."""


class AnalysisInProgressError(SessionError):
    """An analysis request for this controller is still outstanding."""
