"""
Question Sourcing Service - the caller-facing entry point.

Combines the pieces into the two operations a test-generation flow needs:
1. get_questions: semantic retrieval, then generative fallback for any shortfall
2. retry_questions: the same, preferring questions the learner has not seen

``build_question_service`` is the composition root: it owns the single
VectorIndex instance and rebuilds it from the catalog at startup.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from .agents.alignment_validator import EmbeddingAlignmentValidator, LLMAlignmentValidator
from .agents.base import AlignmentValidator, QuestionGenerator
from .agents.question_generator import LLMQuestionGenerator
from .config import config
from .models.exposure import ExposureStore, InMemoryExposureStore
from .models.question import Question
from .models.results import (
    InsufficientMatches,
    Result,
    SourcingError,
    suggest_adjustments,
)
from .retrieval.exposure import ExposureTracker
from .retrieval.fallback import GenerativeFallbackOrchestrator
from .retrieval.retriever import RetrievalEngine
from .retrieval.syllabus import SyllabusSearch
from .retrieval.topic_context import TopicContextResolver
from .utils.catalog import JsonFileCatalog, QuestionCatalog
from .utils.embeddings import EmbeddingProvider, create_embedding_provider
from .utils.vector_store import VectorIndex

logger = logging.getLogger(__name__)


class QuestionSourcingService:
    """
    Sources exam questions for a topic selection.

    Retrieval runs first; when it reports InsufficientMatches and a fallback
    is configured, the shortfall is generated. Without a fallback the
    insufficiency is returned as-is.
    """

    def __init__(
        self,
        engine: RetrievalEngine,
        fallback: Optional[GenerativeFallbackOrchestrator] = None,
        exposure: Optional[ExposureTracker] = None,
        syllabus: Optional[SyllabusSearch] = None,
    ):
        """
        Initialize the service.

        Args:
            engine: Retrieval engine
            fallback: Generative fallback (None disables generation)
            exposure: Exposure tracker for retry tests (None disables retry_questions)
            syllabus: Syllabus topic search sharing the engine index
        """
        self.engine = engine
        self.fallback = fallback
        self.exposure = exposure
        self.syllabus = syllabus

    def get_questions(
        self,
        topics: Iterable[str],
        count: int,
        exclude: Iterable[str] = (),
        on_generated: Optional[Callable[[Question], None]] = None,
    ) -> Result[List[Question], SourcingError]:
        """
        Get ``count`` questions for ``topics``, generating any shortfall.

        Args:
            topics: Topic ids
            count: Number of questions wanted
            exclude: Question ids that must not be returned
            on_generated: Called for each generated question as it is accepted

        Returns:
            Result with exactly ``count`` questions (retrieved first, then
            generated), or the retrieval / generation error
        """
        topics = list(topics)
        retrieved = self.engine.retrieve(topics, count, exclude=exclude)
        return self._fill(topics, retrieved, on_generated)

    def retry_questions(
        self,
        user_id: str,
        topics: Iterable[str],
        count: int,
        on_generated: Optional[Callable[[Question], None]] = None,
    ) -> Result[List[Question], SourcingError]:
        """
        Get questions for a retry test: unseen first, then seen, then generated.

        Raises:
            RuntimeError: If the service was built without an exposure tracker
        """
        if self.exposure is None:
            raise RuntimeError("retry_questions requires an exposure tracker")
        topics = list(topics)
        retrieved = self.exposure.unseen_first(user_id, topics, count)
        return self._fill(topics, retrieved, on_generated)

    def check_availability(
        self, topics: Iterable[str], question_count: int, test_count: int = 1
    ) -> Dict[str, Any]:
        """
        Check whether the indexed questions can serve ``test_count`` tests.

        Returns:
            Dict with ``available``, ``requested``, ``sufficient`` and, when
            insufficient, a ``suggestion`` message
        """
        # Syllabus topic entries share the index but are not questions
        available = sum(
            1 for entry in self.engine.index.filter_by_topic(topics)
            if entry.metadata.payload is not None
        )
        requested = question_count * test_count
        report: Dict[str, Any] = {
            "available": available,
            "requested": requested,
            "sufficient": available >= requested,
        }
        if not report["sufficient"]:
            report["suggestion"] = suggest_adjustments(available, question_count, test_count)
        return report

    def _fill(
        self,
        topics: List[str],
        retrieved: Result,
        on_generated: Optional[Callable[[Question], None]],
    ) -> Result[List[Question], SourcingError]:
        if retrieved or self.fallback is None:
            return retrieved
        if not isinstance(retrieved.error, InsufficientMatches):
            return retrieved

        found = list(retrieved.error.questions)
        logger.info(
            "Retrieval short by %d question(s); invoking generative fallback",
            retrieved.error.shortfall,
        )
        generated = self.fallback.fill_shortfall(
            topics, retrieved.error.shortfall, existing=found, on_accepted=on_generated
        )
        if not generated:
            logger.warning("Generative fallback failed: %s", generated.error)
            return Result.failure(generated.error)
        return Result.success(found + generated.value)


def user_message(error: Any, question_count: Optional[int] = None, test_count: int = 1) -> str:
    """
    Turn an error variant into a message for the end user.

    For InsufficientMatches with a known ``question_count`` the message carries
    the suggested adjustments.
    """
    if isinstance(error, InsufficientMatches) and question_count:
        return suggest_adjustments(error.found, question_count, test_count)
    if hasattr(error, "user_message"):
        return error.user_message()
    return "Something went wrong while preparing questions. Please try again."


def build_question_service(
    catalog: Optional[QuestionCatalog] = None,
    embedder: Optional[EmbeddingProvider] = None,
    generator: Optional[QuestionGenerator] = None,
    validator: Optional[AlignmentValidator] = None,
    exposure_store: Optional[ExposureStore] = None,
    enable_fallback: Optional[bool] = None,
) -> QuestionSourcingService:
    """
    Wire up a QuestionSourcingService and index every catalog question.

    Args:
        catalog: Persistent catalog (default: JSON file from config paths)
        embedder: Embedding provider (default from config)
        generator: Question generator (default: LLM generator when an API key is set)
        validator: Alignment validator (default: LLM validator when an API key
            is set, embedding validator otherwise)
        exposure_store: Exposure store (default: in-memory)
        enable_fallback: Force generation on/off (default: on when a generator exists)

    Returns:
        Ready-to-use QuestionSourcingService
    """
    if catalog is None:
        catalog = JsonFileCatalog(config.paths.catalog_file)
    if embedder is None:
        embedder = create_embedding_provider()

    index = VectorIndex(embedder.dimension)
    resolver = TopicContextResolver(catalog)
    engine = RetrievalEngine(index, embedder, resolver)

    rebuilt = engine.rebuild_from_catalog(catalog)
    if not rebuilt:
        logger.error("Starting with an empty index: %s", rebuilt.error.reason)

    has_llm = bool(config.model.api_key)
    if generator is None and has_llm and enable_fallback is not False:
        generator = LLMQuestionGenerator()
    if validator is None:
        validator = LLMAlignmentValidator() if has_llm else EmbeddingAlignmentValidator(embedder)

    fallback = None
    if generator is not None and enable_fallback is not False:
        fallback = GenerativeFallbackOrchestrator(resolver, generator, validator, catalog, engine)
    else:
        logger.info("Generative fallback disabled")

    exposure = ExposureTracker(engine, exposure_store or InMemoryExposureStore(), index)
    syllabus = SyllabusSearch(catalog, embedder, index)
    return QuestionSourcingService(
        engine, fallback=fallback, exposure=exposure, syllabus=syllabus
    )
