"""
Question and topic models.

Questions are immutable once created; the engine keeps copies for ranking and
indexing while the persistent catalog owns the originals.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple


class QuestionType(str, Enum):
    """Supported question formats."""

    MULTIPLE_CHOICE = "MultipleChoice"
    SHORT_ANSWER = "ShortAnswer"
    NUMERICAL = "Numerical"


DEFAULT_DIFFICULTY = "ExamRealistic"


def new_question_id() -> str:
    """Generate a fresh question identifier."""
    return f"q-{uuid.uuid4()}"


@dataclass(frozen=True)
class Question:
    """
    A single exam question.

    Attributes:
        id: Unique identifier
        topic_id: Syllabus topic this question belongs to
        text: The question text
        question_type: Format of the question
        options: Answer options (MultipleChoice only)
        correct_answers: One or more accepted answers
        syllabus_reference: Syllabus section or concept the question tests
        difficulty_tier: Difficulty tier (always exam-realistic in practice)
        created_at: Creation timestamp
        solution_steps: Ordered worked-solution steps (may be empty)
    """

    id: str
    topic_id: str
    text: str
    question_type: QuestionType
    correct_answers: Tuple[str, ...]
    syllabus_reference: str = ""
    options: Optional[Tuple[str, ...]] = None
    difficulty_tier: str = DEFAULT_DIFFICULTY
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    solution_steps: Tuple[str, ...] = ()

    def validate(self) -> None:
        """
        Validate question integrity.

        Raises:
            ValueError: If validation fails
        """
        if not self.text or not self.text.strip():
            raise ValueError(f"Question {self.id} must have non-empty text")

        if not self.correct_answers:
            raise ValueError(f"Question {self.id} must have at least one correct answer")

        if self.question_type == QuestionType.MULTIPLE_CHOICE:
            if not self.options or len(self.options) < 2:
                raise ValueError(
                    f"MCQ question {self.id} must have at least 2 options, got {len(self.options or ())}"
                )
            missing = [a for a in self.correct_answers if a not in self.options]
            if missing:
                raise ValueError(
                    f"MCQ question {self.id} has correct answers not among its options: {missing}"
                )
        elif self.options:
            raise ValueError(
                f"{self.question_type.value} question {self.id} must not carry options"
            )

    def embedding_text(self) -> str:
        """Text used to embed this question for semantic search."""
        return f"{self.text} {self.syllabus_reference}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for persistence."""
        return {
            "id": self.id,
            "topic_id": self.topic_id,
            "text": self.text,
            "question_type": self.question_type.value,
            "options": list(self.options) if self.options is not None else None,
            "correct_answers": list(self.correct_answers),
            "syllabus_reference": self.syllabus_reference,
            "difficulty_tier": self.difficulty_tier,
            "created_at": self.created_at.isoformat(),
            "solution_steps": list(self.solution_steps),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        """Build a Question from its persisted dictionary form."""
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            # fromisoformat only accepts a trailing "Z" from Python 3.11 on
            if created_at.endswith("Z"):
                created_at = created_at[:-1] + "+00:00"
            created_at = datetime.fromisoformat(created_at)
        elif created_at is None:
            created_at = datetime.now(timezone.utc)

        answers = data.get("correct_answers")
        if answers is None and data.get("correct_answer") is not None:
            answers = [data["correct_answer"]]

        options = data.get("options")
        return cls(
            id=data["id"],
            topic_id=data["topic_id"],
            text=data["text"],
            question_type=QuestionType(data["question_type"]),
            options=tuple(options) if options else None,
            correct_answers=tuple(answers or ()),
            syllabus_reference=data.get("syllabus_reference", ""),
            difficulty_tier=data.get("difficulty_tier", DEFAULT_DIFFICULTY),
            created_at=created_at,
            solution_steps=tuple(data.get("solution_steps") or ()),
        )


@dataclass(frozen=True)
class TopicRecord:
    """A syllabus topic as stored in the persistent catalog."""

    id: str
    curriculum: str
    grade: int
    subject: str
    topic_name: str
    syllabus_section: str = ""
    official_content: str = ""
    learning_objectives: Tuple[str, ...] = ()
    parent_topic_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "curriculum": self.curriculum,
            "grade": self.grade,
            "subject": self.subject,
            "topic_name": self.topic_name,
            "syllabus_section": self.syllabus_section,
            "official_content": self.official_content,
            "learning_objectives": list(self.learning_objectives),
            "parent_topic_id": self.parent_topic_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TopicRecord":
        return cls(
            id=data["id"],
            curriculum=data["curriculum"],
            grade=int(data["grade"]),
            subject=data["subject"],
            topic_name=data["topic_name"],
            syllabus_section=data.get("syllabus_section", ""),
            official_content=data.get("official_content", ""),
            learning_objectives=tuple(data.get("learning_objectives") or ()),
            parent_topic_id=data.get("parent_topic_id"),
        )


@dataclass(frozen=True)
class TopicContext:
    """
    Descriptive text and key concepts for a curriculum topic.

    Catalog-backed and synthesized contexts share this shape; ``synthetic``
    marks the lower-fidelity ones built from a structured topic id.
    """

    topic_id: str
    descriptive_text: str
    related_concepts: Tuple[str, ...] = ()
    curriculum: Optional[str] = None
    grade: Optional[int] = None
    subject: Optional[str] = None
    topic_name: Optional[str] = None
    synthetic: bool = False

    def embedding_text(self) -> str:
        """Text used to embed this topic as a retrieval query."""
        return f"{self.descriptive_text} {' '.join(self.related_concepts)}"


def make_question(
    topic_id: str,
    text: str,
    question_type: QuestionType | str,
    correct_answers: Sequence[str] | str,
    options: Optional[Sequence[str]] = None,
    syllabus_reference: str = "",
    solution_steps: Sequence[str] = (),
    question_id: Optional[str] = None,
) -> Question:
    """Convenience constructor that normalizes sequences to tuples."""
    if isinstance(correct_answers, str):
        correct_answers = [correct_answers]
    return Question(
        id=question_id or new_question_id(),
        topic_id=topic_id,
        text=text,
        question_type=QuestionType(question_type),
        options=tuple(options) if options else None,
        correct_answers=tuple(correct_answers),
        syllabus_reference=syllabus_reference,
        solution_steps=tuple(solution_steps),
    )
