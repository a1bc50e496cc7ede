"""
Syllabus search - free-text lookup of syllabus topics.

Topics live in the same VectorIndex as questions, keyed ``syllabus:{topic_id}``
and carrying no question payload. Question retrieval filters by topic only, so
these entries compete for its top_k slots and are then skipped; the retrieval
over-fetch factor absorbs them.

Topics are embedded lazily: the first search over a curriculum / grade /
subject indexes whichever of its topics are missing.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

import numpy as np

from ..models.question import TopicContext, TopicRecord
from ..models.results import ProviderError, Result
from ..utils.catalog import QuestionCatalog
from ..utils.embeddings import EmbeddingProvider
from ..utils.vector_store import IndexEntry, IndexMetadata, VectorIndex
from .retriever import IndexingReport
from .topic_context import catalog_context

logger = logging.getLogger(__name__)

SYLLABUS_KEY_PREFIX = "syllabus:"


def syllabus_key(topic_id: str) -> str:
    """Index key of a syllabus topic entry."""
    return f"{SYLLABUS_KEY_PREFIX}{topic_id}"


def is_syllabus_entry(entry: IndexEntry) -> bool:
    return entry.id.startswith(SYLLABUS_KEY_PREFIX) and entry.metadata.question_id is None


class SyllabusSearch:
    """Semantic search over syllabus topics of one curriculum, grade and subject."""

    def __init__(
        self,
        catalog: QuestionCatalog,
        embedder: EmbeddingProvider,
        index: VectorIndex,
    ):
        """
        Initialize syllabus search.

        Args:
            catalog: Catalog the topics are read from
            embedder: Embedding provider (dimension must match the index)
            index: Shared vector index
        """
        if embedder.dimension != index.dimension:
            raise ValueError(
                f"Embedder dimension {embedder.dimension} does not match "
                f"index dimension {index.dimension}"
            )
        self.catalog = catalog
        self.embedder = embedder
        self.index = index

    def topics_with_content(
        self, curriculum: str, grade: int, subject: str
    ) -> List[TopicContext]:
        """
        All topics of a subject with their content, ordered by topic name.

        Raises:
            CatalogError: If the catalog cannot be read
        """
        records = self.catalog.find_topics(curriculum, grade, subject)
        return [catalog_context(record) for record in records]

    def index_topics(self, records: Iterable[TopicRecord]) -> IndexingReport:
        """Embed topics into the index as payload-less entries (overwrites by key)."""
        contexts = [catalog_context(record) for record in records]
        if not contexts:
            return IndexingReport()

        try:
            vectors = self.embedder.embed_batch([c.embedding_text() for c in contexts])
        except Exception as e:
            logger.warning("Embedding %d syllabus topics failed: %s", len(contexts), e)
            return IndexingReport(failed=[c.topic_id for c in contexts])

        indexed = self.index.add_batch(
            IndexEntry(
                id=syllabus_key(context.topic_id),
                embedding=np.asarray(vector, dtype=float),
                metadata=IndexMetadata(topic_id=context.topic_id),
            )
            for context, vector in zip(contexts, vectors)
        )
        logger.info("Indexed %d syllabus topics", indexed)
        return IndexingReport(indexed=indexed)

    def search(
        self,
        query: str,
        curriculum: str,
        grade: int,
        subject: str,
        limit: int = 5,
    ) -> Result[List[TopicContext], ProviderError]:
        """
        Find the syllabus topics closest in meaning to ``query``.

        Args:
            query: Free-text query
            curriculum: Curriculum code, e.g. "CBSE"
            grade: Grade / class number
            subject: Subject name as stored in the catalog
            limit: Maximum number of topics

        Returns:
            Result with topic contexts in non-increasing similarity order, or
            ProviderError if the catalog or embedder fails
        """
        if limit <= 0:
            return Result.success([])

        try:
            records = self.catalog.find_topics(curriculum, grade, subject)
        except Exception as e:
            logger.warning("Listing syllabus topics failed: %s", e)
            return Result.failure(ProviderError(f"Catalog lookup failed: {e}"))
        if not records:
            return Result.success([])

        missing = [r for r in records if syllabus_key(r.id) not in self.index]
        if missing:
            report = self.index_topics(missing)
            if report.failed:
                return Result.failure(
                    ProviderError(f"Embedding syllabus topics failed: {', '.join(report.failed)}")
                )

        try:
            query_vector = self.embedder.embed(query)
        except Exception as e:
            logger.warning("Embedding syllabus query failed: %s", e)
            return Result.failure(ProviderError(f"Embedding provider failed: {e}"))

        by_id = {record.id: record for record in records}
        hits = self.index.search(
            query_vector,
            top_k=limit,
            min_similarity=-1.0,
            predicate=lambda e: is_syllabus_entry(e) and e.metadata.topic_id in by_id,
        )
        return Result.success([catalog_context(by_id[h.entry.metadata.topic_id]) for h in hits])

    def remove_topic(self, topic_id: str) -> bool:
        """Drop a topic's entry so the next search re-embeds it."""
        return self.index.remove(syllabus_key(topic_id))
