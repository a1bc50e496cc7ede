"""
Topic context resolution.

A topic id is either a catalog identifier or a synthetic identifier created by
the syllabus API for topics that have no catalog row:

    llm-{curriculum}-{grade}-{subject words...}-{ordinal}
    e.g. llm-cbse-10-social-studies-3

Both paths produce a TopicContext of the same shape.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Union

from ..models.question import TopicContext, TopicRecord
from ..models.results import ProviderError, Result, TopicNotFound
from ..utils.catalog import QuestionCatalog

logger = logging.getLogger(__name__)

ResolveError = Union[TopicNotFound, ProviderError]

SYNTHETIC_PREFIX = "llm-"


@dataclass(frozen=True)
class SyntheticTopic:
    """Fields decoded from a synthetic topic id."""
    curriculum: str
    grade: int
    subject: str
    ordinal: int

    @property
    def topic_name(self) -> str:
        return f"{self.subject[:1].upper()}{self.subject[1:]} Topic {self.ordinal + 1}"


def is_synthetic_topic_id(topic_id: str) -> bool:
    """Whether a topic id uses the synthetic (catalog-less) format."""
    return topic_id.startswith(SYNTHETIC_PREFIX)


def parse_synthetic_topic_id(topic_id: str) -> SyntheticTopic:
    """
    Decode a synthetic topic id.

    Raises:
        ValueError: If the id does not follow the synthetic format
    """
    if not is_synthetic_topic_id(topic_id):
        raise ValueError(f"Not a synthetic topic id: {topic_id}")

    parts = topic_id[len(SYNTHETIC_PREFIX):].split("-")
    # curriculum, grade, at least one subject word, ordinal
    if len(parts) < 4 or not all(parts):
        raise ValueError(f"Invalid synthetic topic id format: {topic_id}")

    try:
        grade = int(parts[1])
        ordinal = int(parts[-1])
    except ValueError:
        raise ValueError(f"Invalid grade or ordinal in synthetic topic id: {topic_id}")

    return SyntheticTopic(
        curriculum=parts[0].upper(),
        grade=grade,
        subject=" ".join(parts[2:-1]),
        ordinal=ordinal,
    )


def synthesize_context(topic_id: str, topic: SyntheticTopic) -> TopicContext:
    """Build the generic context used for synthetic topics."""
    curriculum, grade, subject = topic.curriculum, topic.grade, topic.subject
    return TopicContext(
        topic_id=topic_id,
        descriptive_text=(
            f"{curriculum} Class {grade} {subject}: {topic.topic_name}. "
            f"Generate exam-realistic questions for this topic following the "
            f"official {curriculum} curriculum standards."
        ),
        related_concepts=(
            f"{curriculum} curriculum standards",
            f"Class {grade} level difficulty",
            f"{subject} fundamentals",
        ),
        curriculum=curriculum,
        grade=grade,
        subject=subject,
        topic_name=topic.topic_name,
        synthetic=True,
    )


def catalog_context(record: TopicRecord) -> TopicContext:
    """Build the context of a catalog topic from its stored syllabus row."""
    descriptive_text = f"{record.topic_name}: {record.official_content}".strip()
    if descriptive_text.endswith(":"):
        # No official content stored; the topic name alone still carries signal
        descriptive_text = record.topic_name

    return TopicContext(
        topic_id=record.id,
        descriptive_text=descriptive_text,
        related_concepts=tuple(record.learning_objectives),
        curriculum=record.curriculum,
        grade=record.grade,
        subject=record.subject,
        topic_name=record.topic_name,
    )


class TopicContextResolver:
    """Supplies the descriptive text and concept list for a topic."""

    def __init__(self, catalog: QuestionCatalog):
        self.catalog = catalog

    def resolve(self, topic_id: str) -> Result[TopicContext, ResolveError]:
        """
        Resolve a topic id to its context.

        Returns:
            Result holding the TopicContext, TopicNotFound for unknown ids, or
            ProviderError when the catalog lookup itself fails
        """
        if is_synthetic_topic_id(topic_id):
            try:
                topic = parse_synthetic_topic_id(topic_id)
            except ValueError as e:
                return Result.failure(TopicNotFound(topic_id, reason=str(e)))
            return Result.success(synthesize_context(topic_id, topic))

        try:
            record = self.catalog.find_topic(topic_id)
        except Exception as e:
            logger.warning("Catalog lookup for topic %s failed: %s", topic_id, e)
            return Result.failure(ProviderError(f"Catalog lookup failed for {topic_id}: {e}"))

        if record is None:
            return Result.failure(TopicNotFound(topic_id))
        return Result.success(catalog_context(record))

    def resolve_many(
        self, topic_ids: Iterable[str]
    ) -> Dict[str, Result[TopicContext, ResolveError]]:
        """Resolve several topics; each result is independent of the others."""
        return {topic_id: self.resolve(topic_id) for topic_id in topic_ids}
