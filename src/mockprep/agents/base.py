"""
Collaborator interfaces used by the generative fallback.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from ..models.question import Question, TopicContext


@dataclass(frozen=True)
class AlignmentScore:
    """
    How well a question matches its syllabus topic.

    Attributes:
        score: Alignment in [0, 1]
        reasoning: Short explanation from the validator
        syllabus_references: Syllabus sections the validator matched
    """
    score: float
    reasoning: str = ""
    syllabus_references: Tuple[str, ...] = field(default=())

    def __post_init__(self):
        # Out-of-range scores from a collaborator are clamped, not rejected
        object.__setattr__(self, "score", min(1.0, max(0.0, float(self.score))))


class QuestionGenerator(ABC):
    """Produces candidate questions for a topic."""

    @abstractmethod
    def generate(
        self, context: TopicContext, count: int, existing: Sequence[Question]
    ) -> List[Question]:
        """
        Generate up to ``count`` candidates that differ from ``existing``.

        Raises:
            GenerationProviderError: If the collaborator fails
        """


class AlignmentValidator(ABC):
    """Scores how well a candidate question fits its topic."""

    @abstractmethod
    def score(self, question: Question, context: TopicContext) -> AlignmentScore:
        """
        Score one candidate against its topic context.

        Raises:
            ValidationProviderError: If the collaborator fails
        """
