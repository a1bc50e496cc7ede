"""
Retrieval Engine - selects questions for a set of topics by meaning.

Pipeline:
1. Resolve a TopicContext per topic
2. Embed each context
3. Average the topic vectors into one unit-length query
4. Search the index restricted to the topics, minus exclusions
5. Collect distinct questions in similarity order

An unsatisfied request is reported as InsufficientMatches, never as a
silently shorter list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ..config import config
from ..models.question import Question
from ..models.results import (
    InsufficientMatches,
    ProviderError,
    Result,
    RetrievalError,
    StoreUnavailable,
)
from ..utils.catalog import QuestionCatalog
from ..utils.embeddings import EmbeddingProvider, average_embeddings
from ..utils.vector_store import IndexEntry, VectorIndex
from .topic_context import TopicContextResolver

logger = logging.getLogger(__name__)


@dataclass
class IndexingReport:
    """Outcome of a bulk (re-)indexing run."""
    indexed: int = 0
    failed: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.indexed + len(self.failed)


class RetrievalEngine:
    """
    Semantic question retrieval over a shared VectorIndex.

    The index, embedder and resolver are injected by the composition root;
    the engine holds no global state of its own.
    """

    def __init__(
        self,
        index: VectorIndex,
        embedder: EmbeddingProvider,
        resolver: TopicContextResolver,
        over_fetch_factor: Optional[int] = None,
        min_similarity: Optional[float] = None,
    ):
        """
        Initialize retrieval engine.

        Args:
            index: Vector index holding question embeddings
            embedder: Embedding provider (dimension must match the index)
            resolver: Topic context resolver
            over_fetch_factor: Search top_k multiplier (default from config)
            min_similarity: Minimum similarity for hits (default from config)
        """
        if embedder.dimension != index.dimension:
            raise ValueError(
                f"Embedder dimension {embedder.dimension} does not match "
                f"index dimension {index.dimension}"
            )
        self.index = index
        self.embedder = embedder
        self.resolver = resolver
        self.over_fetch_factor = over_fetch_factor or config.retrieval.over_fetch_factor
        self.min_similarity = (
            config.retrieval.min_similarity if min_similarity is None else min_similarity
        )

    def retrieve(
        self,
        topics: Iterable[str],
        count: int,
        exclude: Iterable[str] = (),
    ) -> Result[List[Question], RetrievalError]:
        """
        Retrieve ``count`` questions for ``topics``, never returning excluded ids.

        Args:
            topics: Topic ids the questions must belong to
            count: Number of questions wanted
            exclude: Question ids that must not be returned

        Returns:
            Result with exactly ``count`` questions, or InsufficientMatches
            (carrying what was found), TopicNotFound or ProviderError

        Raises:
            ValueError: If no topics are given or count is negative
        """
        topic_ids = list(dict.fromkeys(topics))
        if not topic_ids:
            raise ValueError("At least one topic must be selected")
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        if count == 0:
            return Result.success([])

        contexts = []
        for topic_id in topic_ids:
            resolved = self.resolver.resolve(topic_id)
            if not resolved:
                return Result.failure(resolved.error)
            contexts.append(resolved.value)

        try:
            topic_vectors = self.embedder.embed_batch([c.embedding_text() for c in contexts])
        except Exception as e:
            logger.warning("Embedding topics %s failed: %s", topic_ids, e)
            return Result.failure(ProviderError(f"Embedding provider failed: {e}"))

        query = average_embeddings(topic_vectors)

        topic_set = set(topic_ids)
        excluded = set(exclude)

        def matches(entry: IndexEntry) -> bool:
            meta = entry.metadata
            return meta.topic_id in topic_set and meta.question_id not in excluded

        hits = self.index.search(
            query,
            top_k=count * self.over_fetch_factor,
            min_similarity=self.min_similarity,
            predicate=matches,
        )

        questions: List[Question] = []
        seen_ids = set()
        for hit in hits:
            payload = hit.entry.metadata.payload
            if payload is None or payload.id in seen_ids or payload.id in excluded:
                continue
            seen_ids.add(payload.id)
            questions.append(payload)
            if len(questions) >= count:
                break

        if len(questions) < count:
            logger.info(
                "Insufficient matches for topics %s: found %d of %d",
                topic_ids, len(questions), count,
            )
            return Result.failure(
                InsufficientMatches(
                    found=len(questions), requested=count, questions=tuple(questions)
                )
            )

        return Result.success(questions[:count])

    def index_question(self, question: Question) -> Result[None, StoreUnavailable]:
        """
        Embed a question and add it to the index (overwrites by id).

        The embedding is computed before the index is touched, so a failed
        embedding never leaves a partial entry behind.
        """
        try:
            embedding = self.embedder.embed_question(question)
        except Exception as e:
            logger.warning("Embedding question %s failed: %s", question.id, e)
            return Result.failure(StoreUnavailable(f"Embedding failed for {question.id}: {e}"))

        self.index.add(IndexEntry.for_question(question, embedding))
        return Result.success(None)

    def index_questions(self, questions: Iterable[Question]) -> IndexingReport:
        """
        Embed and index many questions, batching the embedding calls.

        A failed batch falls back to per-question indexing so one bad item
        only loses itself.
        """
        questions = list(questions)
        report = IndexingReport()
        batch_size = config.embedding.batch_size

        for start in range(0, len(questions), batch_size):
            batch = questions[start:start + batch_size]
            try:
                vectors = self.embedder.embed_batch([q.embedding_text() for q in batch])
            except Exception as e:
                logger.warning("Batch embedding failed (%s); indexing one by one", e)
                for question in batch:
                    if self.index_question(question):
                        report.indexed += 1
                    else:
                        report.failed.append(question.id)
                continue

            report.indexed += self.index.add_batch(
                IndexEntry.for_question(q, v) for q, v in zip(batch, vectors)
            )

        return report

    def rebuild_from_catalog(self, catalog: QuestionCatalog) -> Result[IndexingReport, StoreUnavailable]:
        """
        Re-embed every stored question into the index.

        Idempotent and restart-safe: entries are keyed by question id.
        """
        try:
            questions = catalog.load_all_questions()
        except Exception as e:
            logger.error("Loading questions from catalog failed: %s", e)
            return Result.failure(StoreUnavailable(f"Catalog unavailable: {e}"))

        report = self.index_questions(questions)
        logger.info(
            "Indexed %d/%d catalog questions (%d failed)",
            report.indexed, report.total, len(report.failed),
        )
        return Result.success(report)
