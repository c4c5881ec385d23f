"""
Speech analysis adapter.

Turns a transcript (plus optional facial context) into a fully populated
SpeechMetrics record using an external text-generation service.

Failure handling:
- Empty transcript: fixed neutral record, no service call
- Service error of any kind: FAILURE_DEFAULTS
- Malformed or partial response: downgraded through the parser tiers

The caller never observes an exception.
"""

import logging
from typing import Any, Mapping, Optional, Protocol, Union

from core.data_models import FacialMetrics, SpeechMetrics
from core.errors import UpstreamAnalysisFailure

from .prompts import build_speech_analysis_prompt
from .response_parser import (
    FAILURE_DEFAULTS,
    NO_SPEECH_RESULT,
    parse_speech_response,
    snippet,
)

logger = logging.getLogger(__name__)


class TextGenerationClient(Protocol):
    """Anything that can turn a prompt into free-form text."""

    def generate(self, prompt: str) -> str:
        ...


class SpeechAnalysisAdapter:
    """
    Stateless transcript analyzer.

    Usage:
        adapter = SpeechAnalysisAdapter(GeminiTextClient())
        metrics = adapter.analyze("The sky is blue in Cincinnati")
    """

    def __init__(self, client: Optional[TextGenerationClient] = None):
        """
        Initialize adapter.

        Args:
            client: Text generation client. When None every non-empty
                transcript resolves to the failure defaults.
        """
        self.client = client

        if client is None:
            logger.warning("Speech analysis adapter has no text-generation client; analyses will use defaults")

    def analyze(
        self,
        transcript: Optional[str],
        facial_metrics: Union[FacialMetrics, Mapping[str, Any], None] = None,
        reading_passage: Optional[str] = None
    ) -> SpeechMetrics:
        """
        Analyze a transcript for stroke-related speech indicators.

        Args:
            transcript: Speech transcription
            facial_metrics: Facial asymmetry context (optional)
            reading_passage: Passage the user was asked to read (optional)

        Returns:
            Complete SpeechMetrics
        """
        if not isinstance(transcript, str) or not transcript.strip():
            logger.info("Empty transcript; returning neutral speech metrics")
            return NO_SPEECH_RESULT

        if facial_metrics is not None and not isinstance(facial_metrics, FacialMetrics):
            facial_metrics = FacialMetrics.from_dict(facial_metrics)

        prompt = build_speech_analysis_prompt(transcript, facial_metrics, reading_passage)

        try:
            raw_text = self._invoke(prompt)
        except Exception as e:
            logger.error(f"Speech analysis request failed at stage=invoke: {e}")
            return FAILURE_DEFAULTS

        try:
            metrics, tier = parse_speech_response(raw_text)
        except Exception as e:
            logger.error(f"Speech analysis failed at stage=parse: {e}")
            logger.error(f"Response text: {snippet(raw_text)}")
            return FAILURE_DEFAULTS

        logger.info(
            f"Speech analyzed via {tier} tier: slurred={metrics.slurred_speech}, "
            f"clarity={metrics.clarity}, fluency={metrics.fluency}"
        )

        return metrics

    def _invoke(self, prompt: str) -> str:
        if self.client is None:
            raise UpstreamAnalysisFailure("No text-generation client configured")
        return self.client.generate(prompt)


def analyze_speech(
    transcript: Optional[str],
    client: Optional[TextGenerationClient],
    facial_metrics: Union[FacialMetrics, Mapping[str, Any], None] = None,
    reading_passage: Optional[str] = None
) -> SpeechMetrics:
    """
    Convenience function for a one-off analysis.

    Args:
        transcript: Speech transcription
        client: Text generation client
        facial_metrics: Facial asymmetry context (optional)
        reading_passage: Passage the user was asked to read (optional)

    Returns:
        SpeechMetrics
    """
    return SpeechAnalysisAdapter(client).analyze(transcript, facial_metrics, reading_passage)
