"""
Prompt construction for speech analysis.
"""

from typing import Optional

from core.data_models import FacialMetrics

EXPECTED_KEYS = (
    "slurredSpeech",
    "clarity",
    "fluency",
    "possibleStrokeIndicators",
    "confidence",
    "analysis",
)


def _format_facial_context(facial_metrics: Optional[FacialMetrics]) -> str:
    if facial_metrics is None:
        return ""
    return (
        "Current facial asymmetry metrics:\n"
        f"- Eye asymmetry: {facial_metrics.eye_ratio}\n"
        f"- Mouth asymmetry: {facial_metrics.mouth_corner_ratio}\n"
        f"- Overall facial asymmetry: {facial_metrics.overall_asymmetry}\n"
    )


def _format_reading_context(reading_passage: Optional[str]) -> str:
    if not reading_passage or not reading_passage.strip():
        return ""
    return (
        "The speaker was asked to read this passage aloud:\n"
        f"\"{reading_passage.strip()}\"\n"
        "Compare the transcription against it when judging word-finding "
        "and completion problems.\n"
    )


def build_speech_analysis_prompt(
    transcript: str,
    facial_metrics: Optional[FacialMetrics] = None,
    reading_passage: Optional[str] = None
) -> str:
    """
    Build the stroke screening prompt for a transcript.

    Args:
        transcript: Text transcription of the user's speech
        facial_metrics: Facial asymmetry metrics to include as context
        reading_passage: Passage the user was asked to read

    Returns:
        Prompt string requesting a JSON answer
    """
    return f"""
As a medical AI assistant for stroke detection, analyze this speech transcription for signs of a stroke.

Speech transcription: "{transcript.strip()}"

{_format_reading_context(reading_passage)}
{_format_facial_context(facial_metrics)}
Focus on:
1. Slurred speech detection
2. Speech coherence
3. Word-finding difficulties
4. Sentence completion problems
5. Repetition or stuttering
6. Overall fluency

In your analysis, please provide:
- A boolean (true/false) indicator if slurred speech is detected
- A clarity score from 0-100 (where 100 is perfectly clear speech)
- A fluency score from 0-100 (where 100 is perfectly fluent speech)
- A boolean (true/false) for possible stroke indicators in speech
- A confidence score from 0-100
- A brief analysis (2-3 sentences maximum)

Format your response as JSON with the keys: {", ".join(EXPECTED_KEYS)}
"""
