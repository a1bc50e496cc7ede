"""
In-memory vector index for question embeddings.

Features:
- Insert or overwrite entries by id
- Exhaustive cosine-similarity search with predicate filtering
- Topic filtering helpers for maintenance
- Safe to share between threads
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

import numpy as np

from ..models.question import Question
from ..models.results import DimensionMismatchError


@dataclass(frozen=True)
class IndexMetadata:
    """
    Metadata attached to an index entry.

    Attributes:
        topic_id: Topic the entry belongs to
        question_id: Question id, when the entry represents a question
        payload: Materialized question, when available
    """
    topic_id: str
    question_id: Optional[str] = None
    payload: Optional[Question] = None


@dataclass(frozen=True, eq=False)
class IndexEntry:
    """An embedding stored in the index."""
    id: str
    embedding: np.ndarray
    metadata: IndexMetadata

    @classmethod
    def for_question(cls, question: Question, embedding) -> "IndexEntry":
        return cls(
            id=question.id,
            embedding=np.asarray(embedding, dtype=float),
            metadata=IndexMetadata(
                topic_id=question.topic_id,
                question_id=question.id,
                payload=question,
            ),
        )


@dataclass(frozen=True)
class SearchHit:
    """A search result with its cosine similarity to the query."""
    entry: IndexEntry
    similarity: float


EntryPredicate = Callable[[IndexEntry], bool]


class VectorIndex:
    """
    Exhaustive-scan vector index.

    A single lock guards the entry map. ``search`` scores a snapshot taken
    under the lock, so concurrent searches only contend for the copy and a
    concurrent ``add`` is either fully visible or not at all.
    """

    def __init__(self, dimension: int):
        """
        Initialize vector index.

        Args:
            dimension: Dimension every stored embedding must have
        """
        if dimension <= 0:
            raise ValueError(f"Index dimension must be > 0, got {dimension}")
        self.dimension = dimension
        self._lock = threading.Lock()
        self._entries: Dict[str, IndexEntry] = {}

    def _check_dimension(self, vector: np.ndarray, context: str) -> np.ndarray:
        v = np.asarray(vector, dtype=float)
        if v.ndim != 1 or v.shape[0] != self.dimension:
            actual = v.shape[0] if v.ndim == 1 else int(v.size)
            raise DimensionMismatchError(self.dimension, actual, context)
        return v

    def add(self, entry: IndexEntry) -> None:
        """Insert or overwrite an entry by id."""
        self._check_dimension(entry.embedding, f"entry '{entry.id}'")
        with self._lock:
            self._entries[entry.id] = entry

    def add_batch(self, entries: Iterable[IndexEntry]) -> int:
        """Add several entries; returns how many were added."""
        entries = list(entries)
        for entry in entries:
            self._check_dimension(entry.embedding, f"entry '{entry.id}'")
        with self._lock:
            for entry in entries:
                self._entries[entry.id] = entry
        return len(entries)

    def search(
        self,
        query,
        top_k: int = 10,
        min_similarity: float = 0.0,
        predicate: Optional[EntryPredicate] = None,
    ) -> List[SearchHit]:
        """
        Rank entries by cosine similarity to ``query``.

        Args:
            query: Query vector
            top_k: Maximum number of hits
            min_similarity: Drop hits below this similarity
            predicate: Only entries for which this returns True are scored

        Returns:
            Hits in non-increasing similarity order, ties in insertion order
        """
        query = self._check_dimension(query, "query")
        if top_k <= 0:
            return []

        with self._lock:
            snapshot = list(self._entries.values())

        candidates = [e for e in snapshot if predicate is None or predicate(e)]
        if not candidates:
            return []

        matrix = np.vstack([e.embedding for e in candidates])
        similarities = np.zeros(len(candidates), dtype=float)
        query_norm = np.linalg.norm(query)
        norms = np.linalg.norm(matrix, axis=1)
        nonzero = norms > 0
        if query_norm > 0 and nonzero.any():
            similarities[nonzero] = (matrix[nonzero] @ query) / (norms[nonzero] * query_norm)
        np.clip(similarities, -1.0, 1.0, out=similarities)

        hits = [
            SearchHit(entry, float(sim))
            for entry, sim in zip(candidates, similarities)
            if sim >= min_similarity
        ]
        # list.sort is stable, so equal similarities keep insertion order
        hits.sort(key=lambda h: h.similarity, reverse=True)
        return hits[:top_k]

    def get(self, entry_id: str) -> Optional[IndexEntry]:
        """Get entry by id."""
        with self._lock:
            return self._entries.get(entry_id)

    def remove(self, entry_id: str) -> bool:
        """Delete entry by id; returns whether it existed."""
        with self._lock:
            return self._entries.pop(entry_id, None) is not None

    def clear(self) -> int:
        """Remove all entries; returns how many were removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def size(self) -> int:
        """Number of entries in the index."""
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, entry_id: str) -> bool:
        with self._lock:
            return entry_id in self._entries

    def filter(self, predicate: EntryPredicate) -> List[IndexEntry]:
        """All entries matching a predicate, in insertion order."""
        with self._lock:
            snapshot = list(self._entries.values())
        return [e for e in snapshot if predicate(e)]

    def filter_by_topic(self, topic_ids: Iterable[str]) -> List[IndexEntry]:
        """All entries whose topic is in ``topic_ids``."""
        wanted = set(topic_ids)
        return self.filter(lambda e: e.metadata.topic_id in wanted)
