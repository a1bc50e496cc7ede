"""
Data models for the question engine.

This module contains core data models:
- Question / TopicRecord / TopicContext: curriculum content
- ExposureRecord / ExposureStore: which learner has seen which question
- Result and the typed error families returned by engine operations
"""

from .question import (
    Question,
    QuestionType,
    TopicRecord,
    TopicContext,
    make_question,
    new_question_id,
)
from .exposure import ExposureRecord, ExposureStore, InMemoryExposureStore
from .results import (
    Result,
    ResultError,
    InsufficientMatches,
    ProviderError,
    TopicNotFound,
    GenerationFailed,
    ValidationUnavailable,
    StoreUnavailable,
    DimensionMismatchError,
    CollaboratorError,
    EmbeddingProviderError,
    GenerationProviderError,
    ValidationProviderError,
    CatalogError,
    suggest_adjustments,
)

__all__ = [
    "Question",
    "QuestionType",
    "TopicRecord",
    "TopicContext",
    "make_question",
    "new_question_id",
    "ExposureRecord",
    "ExposureStore",
    "InMemoryExposureStore",
    "Result",
    "ResultError",
    "InsufficientMatches",
    "ProviderError",
    "TopicNotFound",
    "GenerationFailed",
    "ValidationUnavailable",
    "StoreUnavailable",
    "DimensionMismatchError",
    "CollaboratorError",
    "EmbeddingProviderError",
    "GenerationProviderError",
    "ValidationProviderError",
    "CatalogError",
    "suggest_adjustments",
]
