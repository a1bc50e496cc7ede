"""
Unit tests for question models, results and error variants.
"""

from datetime import datetime, timezone

import pytest

from mockprep.models.question import (
    DEFAULT_DIFFICULTY,
    Question,
    QuestionType,
    TopicContext,
    make_question,
    new_question_id,
)
from mockprep.models.results import (
    GenerationFailed,
    InsufficientMatches,
    ProviderError,
    Result,
    ResultError,
    StoreUnavailable,
    TopicNotFound,
    ValidationUnavailable,
    suggest_adjustments,
)


class TestQuestion:
    """Test suite for Question."""

    def test_defaults(self):
        q = make_question("t1", "What is 3 x 4?", "Numerical", "12")
        assert q.correct_answers == ("12",)
        assert q.difficulty_tier == DEFAULT_DIFFICULTY
        assert q.options is None
        assert q.created_at.tzinfo is not None
        assert q.id.startswith("q-")

    def test_ids_are_unique(self):
        assert new_question_id() != new_question_id()

    def test_is_immutable(self):
        q = make_question("t1", "Q?", "ShortAnswer", ["A"])
        with pytest.raises(AttributeError):
            q.text = "changed"

    def test_valid_mcq(self):
        make_question("t1", "Pick", "MultipleChoice", ["b"], options=["a", "b"]).validate()

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"text": "  "}, "non-empty text"),
            ({"correct_answers": ()}, "at least one correct answer"),
            ({"options": ("only",)}, "at least 2 options"),
            ({"correct_answers": ("z",)}, "not among its options"),
        ],
    )
    def test_invalid_mcq(self, kwargs, message):
        fields = dict(
            id="q1",
            topic_id="t1",
            text="Pick one",
            question_type=QuestionType.MULTIPLE_CHOICE,
            correct_answers=("a",),
            options=("a", "b"),
        )
        fields.update(kwargs)
        with pytest.raises(ValueError, match=message):
            Question(**fields).validate()

    def test_non_mcq_must_not_have_options(self):
        q = Question("q1", "t1", "Q", QuestionType.SHORT_ANSWER, ("a",), options=("a", "b"))
        with pytest.raises(ValueError, match="must not carry options"):
            q.validate()

    def test_embedding_text(self):
        q = make_question("t1", "Define osmosis.", "ShortAnswer", ["..."], syllabus_reference="Transport")
        assert q.embedding_text() == "Define osmosis. Transport"

    def test_dict_round_trip(self):
        q = make_question(
            "t1", "Pick", "MultipleChoice", ["b"], options=["a", "b"],
            solution_steps=["Step 1", "Step 2"],
        )
        assert Question.from_dict(q.to_dict()) == q

    def test_from_dict_accepts_single_answer(self):
        q = Question.from_dict(
            {
                "id": "q1",
                "topic_id": "t1",
                "text": "2 + 2?",
                "question_type": "Numerical",
                "correct_answer": "4",
                "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc).isoformat(),
            }
        )
        assert q.correct_answers == ("4",)
        assert q.created_at.year == 2024

    def test_from_dict_accepts_utc_z_suffix(self):
        q = Question.from_dict(
            {
                "id": "q1",
                "topic_id": "t1",
                "text": "2 + 2?",
                "question_type": "Numerical",
                "correct_answers": ["4"],
                "created_at": "2024-01-01T08:00:00Z",
            }
        )
        assert q.created_at == datetime(2024, 1, 1, 8, tzinfo=timezone.utc)


class TestTopicContext:
    def test_embedding_text_joins_concepts(self):
        context = TopicContext("t1", "Fractions: adding fractions", ("Like denominators", "Unlike denominators"))
        assert context.embedding_text() == "Fractions: adding fractions Like denominators Unlike denominators"


class TestResult:
    """Test suite for Result."""

    def test_success(self):
        result = Result.success([1, 2])
        assert result
        assert result.unwrap() == [1, 2]
        assert result.error is None

    def test_failure(self):
        result = Result.failure(TopicNotFound("t9"))
        assert not result
        assert result.unwrap_or([]) == []
        with pytest.raises(ResultError, match="t9"):
            result.unwrap()

    def test_repr(self):
        assert "success" in repr(Result.success(1))
        assert "failure" in repr(Result.failure(ProviderError("x")))


class TestErrorVariants:
    """Test suite for error variants."""

    def test_insufficient_matches(self):
        error = InsufficientMatches(found=2, requested=5, questions=("a", "b"))
        assert error.shortfall == 3
        assert error.kind == "insufficient_matches"
        assert "found 2 of 5" in error.user_message()
        # The partial list is not part of equality
        assert error == InsufficientMatches(found=2, requested=5)

    @pytest.mark.parametrize(
        "error",
        [
            ProviderError("x"),
            TopicNotFound("t"),
            GenerationFailed("x"),
            ValidationUnavailable("x"),
            StoreUnavailable("x"),
        ],
    )
    def test_every_variant_has_kind_and_message(self, error):
        assert error.kind
        assert error.user_message()


class TestSuggestAdjustments:
    """Test suite for suggest_adjustments."""

    def test_nothing_available(self):
        assert "No questions available" in suggest_adjustments(0, 10)

    def test_fewer_questions_per_test(self):
        message = suggest_adjustments(7, 10)
        assert "Available: 7 questions, Requested: 10 questions (3 short)" in message
        assert "Reduce the number of questions per test to 7 or fewer" in message
        assert "Select additional topics" in message

    def test_fewer_tests(self):
        message = suggest_adjustments(25, 10, test_count=3)
        assert "Reduce the number of tests to 2 or fewer" in message
        assert "questions per test to 8 or fewer" in message
