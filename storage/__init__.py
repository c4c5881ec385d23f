"""
Assessment storage backends.

Both backends implement AssessmentStore; create_store() picks one from
the `storage` section of the configuration.
"""

from typing import Any, Dict, Optional

from .assessment_store import (
    AssessmentStore,
    InMemoryAssessmentStore,
    compute_statistics,
    parse_timestamp,
    validate_assessment,
)
from .sqlite_store import SQLiteAssessmentStore


def create_store(storage_config: Optional[Dict[str, Any]] = None) -> AssessmentStore:
    """
    Build the configured assessment store.

    Args:
        storage_config: `storage` config section (backend, sqlite_path)

    Returns:
        AssessmentStore instance
    """
    storage_config = storage_config or {}
    backend = storage_config.get('backend', 'memory')

    if backend == 'memory':
        return InMemoryAssessmentStore()
    if backend == 'sqlite':
        return SQLiteAssessmentStore(storage_config.get('sqlite_path', 'data/stroke_screen.db'))

    raise ValueError(f"Unknown storage backend: {backend}")


__all__ = [
    'AssessmentStore',
    'InMemoryAssessmentStore',
    'SQLiteAssessmentStore',
    'compute_statistics',
    'create_store',
    'parse_timestamp',
    'validate_assessment',
]
