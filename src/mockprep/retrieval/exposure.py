"""
Exposure tracking for retry tests - prefer questions a learner has not seen.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from ..models.exposure import ExposureRecord, ExposureStore
from ..models.question import Question
from ..models.results import InsufficientMatches, Result, RetrievalError
from ..utils.vector_store import VectorIndex
from .retriever import RetrievalEngine

logger = logging.getLogger(__name__)


class ExposureTracker:
    """Re-ranks retrieval so unseen questions come before seen ones."""

    def __init__(
        self,
        engine: RetrievalEngine,
        store: ExposureStore,
        index: Optional[VectorIndex] = None,
    ):
        self.engine = engine
        self.store = store
        self.index = engine.index if index is None else index

    def unseen_first(
        self, user_id: str, topics: Iterable[str], count: int
    ) -> Result[List[Question], RetrievalError]:
        """
        Retrieve ``count`` questions, filling from seen ones only when unseen run out.

        Returns:
            Result with ``count`` questions (all unseen ones first), or
            InsufficientMatches when the topics hold fewer than ``count``
            questions in total; other retrieval errors pass through.
        """
        topics = list(topics)
        seen = self.store.seen_question_ids(user_id)

        first = self.engine.retrieve(topics, count, exclude=seen)
        if first or not isinstance(first.error, InsufficientMatches):
            return first

        unseen = list(first.error.questions)
        logger.info(
            "User %s has %d unseen questions for %s; topping up with seen ones",
            user_id, len(unseen), topics,
        )

        second = self.engine.retrieve(topics, count)
        if second:
            rest = second.value
        elif isinstance(second.error, InsufficientMatches):
            rest = list(second.error.questions)
        else:
            return second

        merged: List[Question] = []
        ids = set()
        for question in unseen + rest:
            if question.id not in ids:
                ids.add(question.id)
                merged.append(question)

        if len(merged) < count:
            return Result.failure(
                InsufficientMatches(found=len(merged), requested=count, questions=tuple(merged))
            )
        return Result.success(merged[:count])

    def mark_seen(
        self,
        user_id: str,
        question_ids: Iterable[str],
        seen_at: Optional[datetime] = None,
    ) -> List[ExposureRecord]:
        """Record that a test containing ``question_ids`` was presented."""
        return self.store.record_many(user_id, question_ids, seen_at)

    def exposure_stats(self, user_id: str) -> Dict[str, Any]:
        """
        Summarize what a user has seen.

        Returns:
            Dict with ``total_seen``, ``by_topic`` (topic id -> seen count,
            from index metadata) and ``unindexed`` (seen ids not in the index)
        """
        seen = self.store.seen_question_ids(user_id)
        by_topic: Counter = Counter()
        unindexed = 0
        for question_id in seen:
            entry = self.index.get(question_id)
            if entry is None:
                unindexed += 1
            else:
                by_topic[entry.metadata.topic_id] += 1

        return {
            "total_seen": len(seen),
            "by_topic": dict(by_topic),
            "unindexed": unindexed,
        }
