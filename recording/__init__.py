"""
Speech recording session management.

A single controller owns the authoritative RecordingSession and drives
the microphone and recognition engine through the record / stop /
analyze flow, with bounded retry on transient errors and manual text
entry as the fallback after a failure.
"""

from .controller import RecordingSessionController, adapter_sink, build_recording_controller
from .interfaces import EventSink, Microphone, RecognitionEvent, SpeechRecognizer
from .passages import READING_PASSAGES, PassageRotation, random_passage
from .session import RecordingSession

__all__ = [
    'RecordingSessionController',
    'adapter_sink',
    'build_recording_controller',
    'EventSink',
    'Microphone',
    'RecognitionEvent',
    'SpeechRecognizer',
    'READING_PASSAGES',
    'PassageRotation',
    'random_passage',
    'RecordingSession',
]
