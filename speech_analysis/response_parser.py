"""
Parser for Gemini speech analysis responses.

Parsing tiers, each a total fallback for the previous one:
1. Strict: the substring between the first '{' and the last '}' is parsed
   as JSON. Keys are read independently; a missing key takes its default.
2. Regex: only when tier 1 finds no braces or the substring does not parse
   to an object. Each field is scanned for separately with a loose
   key/value pattern; unmatched fields keep their defaults.

Service failures (tier 3) are handled by the adapter, which returns
FAILURE_DEFAULTS without calling this module.
"""

import json
import logging
import re
from typing import Any, Dict, Tuple

from core.data_models import SpeechMetrics
from core.errors import ParseFailure

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 200

CONSULT_NOTICE = "Please consult a medical professional for accurate assessment."

STRICT_DEFAULTS = SpeechMetrics(
    slurred_speech=False,
    speech_coherence=0.8,
    possible_stroke_indicators=False,
    confidence=50,
    clarity=80,
    fluency=80,
    analysis="Speech analysis completed.",
)

REGEX_DEFAULTS = SpeechMetrics(
    slurred_speech=False,
    speech_coherence=0.8,
    possible_stroke_indicators=False,
    confidence=50,
    clarity=80,
    fluency=80,
    analysis=f"Analysis extracted from partial data. {CONSULT_NOTICE}",
)

FAILURE_DEFAULTS = SpeechMetrics(
    slurred_speech=False,
    speech_coherence=0.8,
    possible_stroke_indicators=False,
    confidence=50,
    clarity=80,
    fluency=80,
    analysis=(
        "Unable to analyze speech due to a technical error. Please try again "
        "or consult a medical professional if you have concerns."
    ),
)

NO_SPEECH_RESULT = SpeechMetrics(
    slurred_speech=False,
    speech_coherence=1.0,
    possible_stroke_indicators=False,
    confidence=0,
    clarity=100,
    fluency=100,
    analysis="No speech detected to analyze.",
)

TIER_STRICT = "strict"
TIER_REGEX = "regex"

# Attribute name -> pattern; group 1 holds the raw value
_FIELD_PATTERNS = {
    "slurred_speech": re.compile(r'slurredSpeech["\s:]+([a-z]+)', re.IGNORECASE),
    "speech_coherence": re.compile(r'speechCoherence["\s:]+([0-9.]+)', re.IGNORECASE),
    "clarity": re.compile(r'clarity["\s:]+([0-9.]+)', re.IGNORECASE),
    "fluency": re.compile(r'fluency["\s:]+([0-9.]+)', re.IGNORECASE),
    "possible_stroke_indicators": re.compile(r'possibleStrokeIndicators["\s:]+([a-z]+)', re.IGNORECASE),
    "confidence": re.compile(r'confidence["\s:]+([0-9.]+)', re.IGNORECASE),
    "analysis": re.compile(r'analysis["\s:]+["\'](.+?)["\']', re.IGNORECASE),
}

_BOOLEAN_FIELDS = ("slurred_speech", "possible_stroke_indicators")
_TEXT_FIELDS = ("analysis",)


def snippet(text: Any, length: int = SNIPPET_LENGTH) -> str:
    """Truncated repr-safe preview of a raw response for log lines."""
    text = "" if text is None else str(text)
    return text if len(text) <= length else text[:length] + "..."


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Parse the span from the first '{' to the last '}' as a JSON object.

    Args:
        text: Raw response text

    Returns:
        Parsed dictionary

    Raises:
        ParseFailure: No braces, invalid JSON, or a non-object value
    """
    start = text.find('{')
    end = text.rfind('}')

    if start == -1 or end == -1 or end < start:
        raise ParseFailure("No JSON object found in response")

    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise ParseFailure(f"Invalid JSON in response: {e}") from e

    if not isinstance(data, dict):
        raise ParseFailure(f"Expected a JSON object, got {type(data).__name__}")

    return data


def parse_strict(text: str) -> SpeechMetrics:
    """
    Tier 1: structured parse with per-field defaults.

    Raises:
        ParseFailure: If no parseable object is present
    """
    return SpeechMetrics.from_partial(extract_json_object(text), STRICT_DEFAULTS)


def _extract_field(name: str, text: str) -> Any:
    match = _FIELD_PATTERNS[name].search(text)
    if not match:
        return None

    raw = match.group(1)
    if name in _BOOLEAN_FIELDS:
        return raw.lower() == "true"
    if name in _TEXT_FIELDS:
        return raw

    try:
        return float(raw)
    except ValueError:
        logger.debug(f"Unparseable numeric value for {name}: {raw!r}")
        return None


def parse_with_regex(text: str) -> SpeechMetrics:
    """
    Tier 2: scan for each field independently.

    Never raises; fields that do not match keep REGEX_DEFAULTS.
    """
    partial = {}
    for name in _FIELD_PATTERNS:
        value = _extract_field(name, text)
        if value is not None:
            partial[name] = value

    logger.debug(f"Regex tier matched fields: {sorted(partial)}")

    return SpeechMetrics.from_partial(partial, REGEX_DEFAULTS)


def parse_speech_response(text: Any) -> Tuple[SpeechMetrics, str]:
    """
    Parse a raw service response into SpeechMetrics.

    Args:
        text: Raw response text

    Returns:
        Tuple of (metrics, tier name that produced them)
    """
    text = "" if text is None else str(text)

    try:
        return parse_strict(text), TIER_STRICT
    except ParseFailure as e:
        logger.warning(f"Strict parse failed ({e}); falling back to regex extraction")
        logger.warning(f"Response text: {snippet(text)}")

    return parse_with_regex(text), TIER_REGEX
