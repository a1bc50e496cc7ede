"""
LLM collaborators for the generative fallback.

- question_generator: LLMQuestionGenerator (candidate questions per topic)
- alignment_validator: LLM and embedding-based alignment scoring
"""

from .base import AlignmentScore, AlignmentValidator, QuestionGenerator
from .question_generator import LLMQuestionGenerator, is_math_subject
from .alignment_validator import EmbeddingAlignmentValidator, LLMAlignmentValidator

__all__ = [
    "AlignmentScore",
    "AlignmentValidator",
    "QuestionGenerator",
    "LLMQuestionGenerator",
    "is_math_subject",
    "LLMAlignmentValidator",
    "EmbeddingAlignmentValidator",
]
