"""
SQLite assessment store.

Persists assessments and speech analyses in a single SQLite file. Metric
payloads are kept as JSON blobs; ordering uses a numeric sort key derived
from the record timestamp. Rows are keyed by a surrogate integer, so two
assessments saved in the same millisecond (same public id) are both kept.
"""

import json
import logging
import math
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .assessment_store import (
    DEFAULT_RECENT_LIMIT,
    AssessmentStore,
    parse_timestamp,
    validate_assessment,
)

logger = logging.getLogger(__name__)


class SQLiteAssessmentStore(AssessmentStore):
    """
    Assessment store backed by SQLite.

    Each call opens its own connection, so the store can be shared across
    request handler threads.
    """

    def __init__(self, db_path: str = "data/stroke_screen.db"):
        """
        Initialize database.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_database()

        logger.info(f"Assessment database initialized: {self.db_path}")

    def _init_database(self):
        """Create database tables if they don't exist."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS assessments (
                    pk INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL,
                    risk_level TEXT NOT NULL,
                    timestamp TEXT,
                    sort_key REAL,
                    asymmetry_metrics JSON NOT NULL,
                    posture_metrics JSON NOT NULL,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS speech_assessments (
                    pk INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL,
                    transcript TEXT,
                    timestamp TEXT,
                    possible_stroke_indicators INTEGER NOT NULL DEFAULT 0,
                    analysis JSON,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_assessments_sort
                ON assessments(sort_key)
            """)

            conn.commit()

    @staticmethod
    def _sort_key(timestamp: Any) -> Optional[float]:
        key = parse_timestamp(timestamp)
        return None if math.isinf(key) else key

    def insert(self, record: Mapping[str, Any]) -> str:
        validate_assessment(record)

        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT INTO assessments (
                    id, risk_level, timestamp, sort_key,
                    asymmetry_metrics, posture_metrics
                ) VALUES (?, ?, ?, ?, ?, ?)
            """, (
                str(record.get('id')),
                str(record['riskLevel']),
                record.get('timestamp'),
                self._sort_key(record.get('timestamp')),
                json.dumps(record['asymmetryMetrics']),
                json.dumps(record['postureMetrics']),
            ))
            conn.commit()

        logger.debug(f"Stored assessment {record.get('id')} ({record.get('riskLevel')})")
        return record.get('id')

    def list_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> List[Dict[str, Any]]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.cursor()

            # Unparsable timestamps (NULL sort key) go last; ties keep insertion order
            cursor.execute("""
                SELECT id, asymmetry_metrics, posture_metrics, risk_level, timestamp
                FROM assessments
                ORDER BY sort_key IS NULL, sort_key DESC, pk ASC
                LIMIT ?
            """, (max(limit, 0),))

            return [
                {
                    'id': row['id'],
                    'asymmetryMetrics': json.loads(row['asymmetry_metrics']),
                    'postureMetrics': json.loads(row['posture_metrics']),
                    'riskLevel': row['risk_level'],
                    'timestamp': row['timestamp'],
                }
                for row in cursor.fetchall()
            ]

    def insert_speech_analysis(self, record: Mapping[str, Any]) -> str:
        analysis = record.get('analysis')
        indicators = isinstance(analysis, Mapping) and analysis.get('possibleStrokeIndicators') is True

        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT INTO speech_assessments (
                    id, transcript, timestamp, possible_stroke_indicators, analysis
                ) VALUES (?, ?, ?, ?, ?)
            """, (
                str(record.get('id')),
                record.get('transcript'),
                record.get('timestamp'),
                int(indicators),
                json.dumps(analysis),
            ))
            conn.commit()

        return record.get('id')

    def statistics(self) -> Dict[str, int]:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()

            cursor.execute("""
                SELECT
                    COUNT(*),
                    SUM(CASE WHEN risk_level = 'high' THEN 1 ELSE 0 END),
                    SUM(CASE WHEN risk_level = 'medium' THEN 1 ELSE 0 END),
                    SUM(CASE WHEN risk_level = 'low' THEN 1 ELSE 0 END)
                FROM assessments
            """)
            total, high, medium, low = cursor.fetchone()

            cursor.execute("""
                SELECT COUNT(*), SUM(possible_stroke_indicators)
                FROM speech_assessments
            """)
            speech_total, speech_indicators = cursor.fetchone()

        return {
            'totalAssessments': total or 0,
            'highRiskCount': high or 0,
            'mediumRiskCount': medium or 0,
            'lowRiskCount': low or 0,
            'speechAssessmentCount': speech_total or 0,
            'speechIndicatorsCount': speech_indicators or 0,
        }

    def clear(self) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM assessments")
            conn.execute("DELETE FROM speech_assessments")
            conn.commit()
        logger.info(f"Cleared assessment database: {self.db_path}")
