"""
Assessment storage.

Stores saved FAST assessments and speech analyses behind a small
interface so the backend can be swapped (in-memory for development and
tests, SQLite for persistence) without touching the HTTP layer.
"""

import logging
import math
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from core.enums import RiskLevel
from core.errors import RequestValidationError

logger = logging.getLogger(__name__)

REQUIRED_ASSESSMENT_FIELDS = ('asymmetryMetrics', 'postureMetrics', 'riskLevel')
DEFAULT_RECENT_LIMIT = 10


def is_missing(value: Any) -> bool:
    return value is None or value == ""


def validate_assessment(record: Mapping[str, Any]) -> None:
    """
    Check that an assessment carries every required field.

    Raises:
        RequestValidationError: A required field is absent, null or empty
    """
    if not isinstance(record, Mapping):
        raise RequestValidationError("Missing required data")

    missing = [field for field in REQUIRED_ASSESSMENT_FIELDS if is_missing(record.get(field))]
    if missing:
        raise RequestValidationError(f"Missing required data: {', '.join(missing)}")


def parse_timestamp(value: Any) -> float:
    """
    Convert an ISO-8601 timestamp to epoch seconds for ordering.

    A trailing 'Z' is accepted and naive timestamps are taken as UTC.
    Anything unparsable maps to -inf so it sorts after every real timestamp
    in newest-first order.
    """
    if not isinstance(value, str) or not value:
        return -math.inf

    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return -math.inf

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def newest_first(records: List[Dict[str, Any]], limit: int) -> List[Dict[str, Any]]:
    ordered = sorted(records, key=lambda r: parse_timestamp(r.get('timestamp')), reverse=True)
    return ordered[:max(limit, 0)]


def compute_statistics(
    assessments: List[Mapping[str, Any]],
    speech_assessments: List[Mapping[str, Any]]
) -> Dict[str, int]:
    """Aggregate counts over stored assessments and speech analyses."""
    levels = [a.get('riskLevel') for a in assessments]

    indicators = 0
    for s in speech_assessments:
        analysis = s.get('analysis')
        if isinstance(analysis, Mapping) and analysis.get('possibleStrokeIndicators') is True:
            indicators += 1

    return {
        'totalAssessments': len(assessments),
        'highRiskCount': levels.count(RiskLevel.HIGH.value),
        'mediumRiskCount': levels.count(RiskLevel.MEDIUM.value),
        'lowRiskCount': levels.count(RiskLevel.LOW.value),
        'speechAssessmentCount': len(speech_assessments),
        'speechIndicatorsCount': indicators,
    }


class AssessmentStore(ABC):
    """Interface for assessment storage backends."""

    @abstractmethod
    def insert(self, record: Mapping[str, Any]) -> str:
        """
        Store a FAST assessment.

        Args:
            record: Dict with id, asymmetryMetrics, postureMetrics,
                riskLevel and timestamp

        Returns:
            Record id
        """
        pass

    @abstractmethod
    def list_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> List[Dict[str, Any]]:
        """Return at most `limit` assessments, newest first."""
        pass

    @abstractmethod
    def insert_speech_analysis(self, record: Mapping[str, Any]) -> str:
        """Store a speech analysis (id, transcript, analysis, timestamp)."""
        pass

    @abstractmethod
    def statistics(self) -> Dict[str, int]:
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every stored record."""
        pass


class InMemoryAssessmentStore(AssessmentStore):
    """
    Process-local store.

    Inserts append under a lock; reads copy the list before sorting so a
    concurrent insert never changes a snapshot that is being returned.
    """

    def __init__(self):
        self._assessments: List[Dict[str, Any]] = []
        self._speech_assessments: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def insert(self, record: Mapping[str, Any]) -> str:
        validate_assessment(record)
        stored = dict(record)
        with self._lock:
            self._assessments.append(stored)
        logger.debug(f"Stored assessment {stored.get('id')} ({stored.get('riskLevel')})")
        return stored.get('id')

    def list_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> List[Dict[str, Any]]:
        with self._lock:
            snapshot = [dict(a) for a in self._assessments]
        return newest_first(snapshot, limit)

    def insert_speech_analysis(self, record: Mapping[str, Any]) -> str:
        stored = dict(record)
        with self._lock:
            self._speech_assessments.append(stored)
        return stored.get('id')

    def statistics(self) -> Dict[str, int]:
        with self._lock:
            assessments = list(self._assessments)
            speech = list(self._speech_assessments)
        return compute_statistics(assessments, speech)

    def clear(self) -> None:
        with self._lock:
            self._assessments = []
            self._speech_assessments = []
        logger.info("Cleared in-memory assessment store")
