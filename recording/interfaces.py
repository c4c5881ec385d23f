"""
Interface definitions for the recording collaborators.

The microphone and the speech recognition engine live outside this
package (browser APIs, sounddevice, a cloud recognizer). The controller
only talks to them through these interfaces.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from core.enums import RecognitionEventType


@dataclass(frozen=True)
class RecognitionEvent:
    """
    One callback from the recognition engine.

    Attributes:
        type: result, error or end
        text: Current transcript text carried by a result
        is_final: Whether the result is finalized
        error: Engine error code (e.g. "network", "not-allowed")
    """
    type: RecognitionEventType
    text: str = ""
    is_final: bool = False
    error: Optional[str] = None

    @classmethod
    def result(cls, text: str, is_final: bool) -> "RecognitionEvent":
        return cls(RecognitionEventType.RESULT, text=text, is_final=is_final)

    @classmethod
    def failure(cls, error: str) -> "RecognitionEvent":
        return cls(RecognitionEventType.ERROR, error=error)

    @classmethod
    def ended(cls) -> "RecognitionEvent":
        return cls(RecognitionEventType.END)


EventSink = Callable[[RecognitionEvent], None]


class Microphone(ABC):
    """Interface for the microphone resource."""

    @abstractmethod
    async def acquire(self) -> None:
        """
        Open the microphone.

        Raises:
            PermissionDeniedError: Access denied by the user
            DeviceUnavailableError: No microphone connected
        """
        pass

    @abstractmethod
    async def release(self) -> None:
        """Close the microphone. Must be safe to call once per acquire."""
        pass


class SpeechRecognizer(ABC):
    """Interface for the speech recognition engine."""

    @abstractmethod
    async def start(self, emit: EventSink) -> None:
        """Begin recognition, delivering events through emit."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stop recognition."""
        pass
