"""
Typed results and error families for the question engine.

Engine operations never raise for runtime failures: they return a ``Result``
holding either a value or one of the error variants below. Collaborator
failures (embedding, generation, validation, catalog) arrive as
``CollaboratorError`` exceptions and are converted at the engine boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Optional, Tuple, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


class Result(Generic[T, E]):
    """
    Outcome of an engine operation.

    Attributes:
        ok: Whether the operation succeeded
        value: The success value (None on failure)
        error: The error variant (None on success)

    Usage:
        result = engine.retrieve(["t1"], 5)
        if result:
            questions = result.value
        elif isinstance(result.error, InsufficientMatches):
            partial = result.error.questions
    """

    __slots__ = ("ok", "value", "error")

    def __init__(self, ok: bool, value: Optional[T] = None, error: Optional[E] = None):
        self.ok = ok
        self.value = value
        self.error = error

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T, E]":
        return cls(True, value=value)

    @classmethod
    def failure(cls, error: E) -> "Result[T, E]":
        return cls(False, error=error)

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.ok

    def __repr__(self) -> str:
        if self.ok:
            return f"Result.success({self.value!r})"
        return f"Result.failure({self.error!r})"

    def unwrap(self) -> T:
        """Return the value, raising ResultError if this is a failure."""
        if not self.ok:
            raise ResultError(self.error)
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return the value, or ``default`` if this is a failure."""
        return self.value if self.ok else default


class ResultError(RuntimeError):
    """Raised by Result.unwrap() on a failed result."""

    def __init__(self, error: Any):
        self.error = error
        message = error.user_message() if hasattr(error, "user_message") else repr(error)
        super().__init__(message)


# ─── Error variants ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class InsufficientMatches:
    """
    Fewer matching questions than requested.

    The questions that were found are carried explicitly so a caller that
    accepts a partial set has to opt in by reading them.
    """

    found: int
    requested: int
    questions: Tuple[Any, ...] = field(default=(), repr=False, compare=False)

    kind = "insufficient_matches"

    @property
    def shortfall(self) -> int:
        return max(0, self.requested - self.found)

    def user_message(self) -> str:
        return (
            "Not enough content available for this selection: "
            f"found {self.found} of {self.requested} questions."
        )


@dataclass(frozen=True)
class ProviderError:
    """Embedding provider or catalog lookup failure during retrieval."""

    message: str

    kind = "provider_error"

    @property
    def reason(self) -> str:
        return self.message

    def user_message(self) -> str:
        return "Question search is temporarily unavailable. Please try again."


@dataclass(frozen=True)
class TopicNotFound:
    """A topic id could not be resolved to a topic context."""

    topic_id: str
    reason: str = "not in catalog"

    kind = "topic_not_found"

    def user_message(self) -> str:
        return f"Topic '{self.topic_id}' is not part of the syllabus."


@dataclass(frozen=True)
class GenerationFailed:
    """The generative fallback could not produce enough accepted questions."""

    reason: str

    kind = "generation_failed"

    def user_message(self) -> str:
        return "New questions could not be generated for this selection."


@dataclass(frozen=True)
class ValidationUnavailable:
    """The alignment-validation collaborator could not be reached."""

    reason: str

    kind = "validation_unavailable"

    def user_message(self) -> str:
        return "Generated questions could not be checked against the syllabus."


@dataclass(frozen=True)
class StoreUnavailable:
    """A question could not be embedded or written to the index."""

    reason: str

    kind = "store_unavailable"

    def user_message(self) -> str:
        return "The question index is temporarily unavailable."


RetrievalError = Union[InsufficientMatches, ProviderError, TopicNotFound]
GenerationError = Union[InsufficientMatches, GenerationFailed, ValidationUnavailable]
IndexStoreError = StoreUnavailable
SourcingError = Union[
    InsufficientMatches,
    ProviderError,
    TopicNotFound,
    GenerationFailed,
    ValidationUnavailable,
]


# ─── Exceptions ──────────────────────────────────────────────────────────────


class DimensionMismatchError(ValueError):
    """Vector dimension differs from the index dimension (programming error)."""

    def __init__(self, expected: int, actual: int, context: str = "vector"):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{context} has dimension {actual}, index expects {expected}"
        )


class CollaboratorError(Exception):
    """Base class for failures raised by external collaborators."""


class EmbeddingProviderError(CollaboratorError):
    """Embedding provider unreachable or returned an unusable vector."""


class GenerationProviderError(CollaboratorError):
    """Generative collaborator failed to produce candidates."""


class ValidationProviderError(CollaboratorError):
    """Alignment-validation collaborator failed to score a candidate."""


class CatalogError(CollaboratorError):
    """Persistent catalog read or write failed."""


def suggest_adjustments(available: int, question_count: int, test_count: int = 1) -> str:
    """
    Build actionable advice for a selection that cannot be served.

    Args:
        available: Questions available for the selected topics
        question_count: Questions requested per test
        test_count: Number of tests requested

    Returns:
        Human-readable message with the available count and suggested actions
    """
    if available <= 0:
        return (
            "No questions available for the selected topics. "
            "Please select different topics or contact support."
        )

    requested = question_count * test_count
    shortfall = requested - available
    suggestions = [
        f"Available: {available} questions, Requested: {requested} questions ({shortfall} short).",
        "Suggested actions:",
    ]

    max_questions_per_test = available // test_count
    if 0 < max_questions_per_test < question_count:
        suggestions.append(
            f"• Reduce the number of questions per test to {max_questions_per_test} or fewer"
        )

    max_tests = available // question_count if question_count > 0 else 0
    if 0 < max_tests < test_count:
        suggestions.append(f"• Reduce the number of tests to {max_tests} or fewer")

    suggestions.append("• Select additional topics to expand the question pool")
    return " ".join(suggestions)
