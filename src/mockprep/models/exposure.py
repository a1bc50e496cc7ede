"""
Exposure records - which questions a learner has already seen.

Records are written by the caller after a test is presented; the engine only
reads them. Entries are inserted or overwritten, never deleted here.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set


@dataclass(frozen=True)
class ExposureRecord:
    """A learner saw a question at ``last_seen_at``."""

    user_id: str
    question_id: str
    last_seen_at: datetime


class ExposureStore(ABC):
    """Storage interface for exposure records."""

    @abstractmethod
    def record_seen(
        self, user_id: str, question_id: str, seen_at: Optional[datetime] = None
    ) -> ExposureRecord:
        """Insert or overwrite the exposure of ``question_id`` for ``user_id``."""

    @abstractmethod
    def seen_question_ids(self, user_id: str) -> Set[str]:
        """All question ids the user has an exposure record for."""

    @abstractmethod
    def last_seen(self, user_id: str, question_id: str) -> Optional[datetime]:
        """When the user last saw the question, if ever."""

    def record_many(
        self,
        user_id: str,
        question_ids: Iterable[str],
        seen_at: Optional[datetime] = None,
    ) -> List[ExposureRecord]:
        """Record several questions with one shared timestamp."""
        seen_at = seen_at or datetime.now(timezone.utc)
        return [self.record_seen(user_id, qid, seen_at) for qid in question_ids]


class InMemoryExposureStore(ExposureStore):
    """Thread-safe in-process exposure store keyed by (user_id, question_id)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[str, Dict[str, datetime]] = {}

    def record_seen(
        self, user_id: str, question_id: str, seen_at: Optional[datetime] = None
    ) -> ExposureRecord:
        seen_at = seen_at or datetime.now(timezone.utc)
        with self._lock:
            self._records.setdefault(user_id, {})[question_id] = seen_at
        return ExposureRecord(user_id, question_id, seen_at)

    def seen_question_ids(self, user_id: str) -> Set[str]:
        with self._lock:
            return set(self._records.get(user_id, {}))

    def last_seen(self, user_id: str, question_id: str) -> Optional[datetime]:
        with self._lock:
            return self._records.get(user_id, {}).get(question_id)

    def records_for(self, user_id: str) -> List[ExposureRecord]:
        """All exposure records for a user, most recent first."""
        with self._lock:
            seen = dict(self._records.get(user_id, {}))
        records = [ExposureRecord(user_id, qid, ts) for qid, ts in seen.items()]
        records.sort(key=lambda r: r.last_seen_at, reverse=True)
        return records
