"""
Speech analysis pipeline for stroke screening.

This package implements the transcript -> SpeechMetrics step:
1. Prompt construction (transcript, facial context, reading passage)
2. Gemini text generation
3. Tiered response parsing (strict JSON, regex, hard-failure defaults)
"""

from .adapter import SpeechAnalysisAdapter, TextGenerationClient, analyze_speech
from .prompts import build_speech_analysis_prompt
from .response_parser import (
    parse_speech_response,
    parse_strict,
    parse_with_regex,
    STRICT_DEFAULTS,
    REGEX_DEFAULTS,
    FAILURE_DEFAULTS,
    NO_SPEECH_RESULT,
)

__all__ = [
    'SpeechAnalysisAdapter',
    'TextGenerationClient',
    'analyze_speech',
    'build_speech_analysis_prompt',
    'parse_speech_response',
    'parse_strict',
    'parse_with_regex',
    'STRICT_DEFAULTS',
    'REGEX_DEFAULTS',
    'FAILURE_DEFAULTS',
    'NO_SPEECH_RESULT',
]
