"""
Generative fallback - fills a retrieval shortfall with new questions.

Candidates come from a QuestionGenerator, are scored by an AlignmentValidator
and are kept only when the score reaches the alignment threshold. Accepted
questions are written to the catalog and then to the index, so later
retrievals find them.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from typing import Callable, Iterable, List, Optional, Sequence

from ..agents.base import AlignmentValidator, QuestionGenerator
from ..config import config
from ..models.question import Question, TopicContext
from ..models.results import (
    GenerationError,
    GenerationFailed,
    Result,
    ValidationUnavailable,
)
from ..utils.catalog import QuestionCatalog
from .retriever import RetrievalEngine
from .topic_context import TopicContextResolver

logger = logging.getLogger(__name__)

AcceptedCallback = Callable[[Question], None]


def normalize_question_text(text: str) -> str:
    """Case- and whitespace-insensitive form used for duplicate detection."""
    return " ".join(text.lower().split())


class GenerativeFallbackOrchestrator:
    """
    Generates, validates and persists questions until a shortfall is met.

    The result is all-or-nothing: a partial run reports GenerationFailed.
    Questions accepted before a failure stay in the catalog and index and are
    reported through ``on_accepted`` as they happen.
    """

    def __init__(
        self,
        resolver: TopicContextResolver,
        generator: QuestionGenerator,
        validator: AlignmentValidator,
        catalog: QuestionCatalog,
        engine: RetrievalEngine,
        min_alignment_score: Optional[float] = None,
        max_rounds: Optional[int] = None,
    ):
        """
        Initialize the fallback.

        Args:
            resolver: Topic context resolver
            generator: Candidate question generator
            validator: Alignment validator
            catalog: Persistent catalog accepted questions are written to
            engine: Retrieval engine whose index receives accepted questions
            min_alignment_score: Acceptance threshold, inclusive (default from config)
            max_rounds: Round-robin passes over the topics (default from config)
        """
        self.resolver = resolver
        self.generator = generator
        self.validator = validator
        self.catalog = catalog
        self.engine = engine
        self.min_alignment_score = (
            config.fallback.min_alignment_score
            if min_alignment_score is None
            else min_alignment_score
        )
        self.max_rounds = max_rounds or config.fallback.max_rounds

    def fill_shortfall(
        self,
        topics: Iterable[str],
        shortfall: int,
        existing: Sequence[Question] = (),
        on_accepted: Optional[AcceptedCallback] = None,
    ) -> Result[List[Question], GenerationError]:
        """
        Produce exactly ``shortfall`` new, validated questions across ``topics``.

        Args:
            topics: Topic ids to spread generation over (round-robin)
            shortfall: Number of questions still needed
            existing: Questions already selected (shown to the generator, never duplicated)
            on_accepted: Called once per accepted question, in acceptance order

        Returns:
            Result with the accepted questions, or GenerationFailed /
            ValidationUnavailable

        Raises:
            ValueError: If no topics are given or shortfall is negative
        """
        topic_ids = list(dict.fromkeys(topics))
        if not topic_ids:
            raise ValueError("At least one topic must be selected")
        if shortfall < 0:
            raise ValueError(f"shortfall must be >= 0, got {shortfall}")
        if shortfall == 0:
            return Result.success([])

        contexts: List[TopicContext] = []
        for topic_id in topic_ids:
            resolved = self.resolver.resolve(topic_id)
            if not resolved:
                logger.warning(
                    "Skipping topic %s for generation: %s", topic_id, resolved.error.reason
                )
                continue
            contexts.append(resolved.value)

        if not contexts:
            return Result.failure(GenerationFailed("no topic could contribute"))

        existing = list(existing)
        accepted: List[Question] = []
        seen_ids = {q.id for q in existing}
        seen_texts = {normalize_question_text(q.text) for q in existing}

        for round_no in range(self.max_rounds):
            for i, context in enumerate(contexts):
                remaining = shortfall - len(accepted)
                if remaining <= 0:
                    break
                request = math.ceil(remaining / (len(contexts) - i))

                try:
                    candidates = self.generator.generate(context, request, existing + accepted)
                except Exception as e:
                    logger.error("Generation failed for topic %s: %s", context.topic_id, e)
                    return Result.failure(
                        GenerationFailed(f"generator failed for {context.topic_id}: {e}")
                    )

                for candidate in candidates:
                    if len(accepted) >= shortfall:
                        break

                    text_key = normalize_question_text(candidate.text)
                    if candidate.id in seen_ids or text_key in seen_texts:
                        logger.info("Dropping duplicate candidate %s", candidate.id)
                        continue

                    if candidate.topic_id != context.topic_id:
                        candidate = dataclasses.replace(candidate, topic_id=context.topic_id)

                    try:
                        alignment = self.validator.score(candidate, context)
                    except Exception as e:
                        logger.error("Alignment validation failed: %s", e)
                        return Result.failure(ValidationUnavailable(str(e)))

                    score = min(1.0, max(0.0, float(alignment.score)))
                    if score < self.min_alignment_score:
                        logger.info(
                            "Rejected candidate for %s (alignment %.2f < %.2f)",
                            context.topic_id, score, self.min_alignment_score,
                        )
                        continue

                    failure = self._persist(candidate)
                    if failure is not None:
                        return Result.failure(failure)

                    accepted.append(candidate)
                    seen_ids.add(candidate.id)
                    seen_texts.add(text_key)
                    if on_accepted is not None:
                        on_accepted(candidate)

            if len(accepted) >= shortfall:
                return Result.success(accepted)
            logger.info(
                "Fallback round %d accepted %d of %d questions",
                round_no + 1, len(accepted), shortfall,
            )

        return Result.failure(
            GenerationFailed(
                f"accepted {len(accepted)} of {shortfall} questions after "
                f"{self.max_rounds} round(s)"
            )
        )

    def _persist(self, question: Question) -> Optional[GenerationFailed]:
        """Write to the catalog, then the index. Returns the failure, if any."""
        try:
            self.catalog.insert_question(question)
        except Exception as e:
            logger.error("Catalog write failed for %s: %s", question.id, e)
            return GenerationFailed(f"catalog write failed for {question.id}: {e}")

        indexed = self.engine.index_question(question)
        if not indexed:
            return GenerationFailed(f"indexing failed for {question.id}: {indexed.error.reason}")
        return None
