"""
Unit tests for schema validation.

Tests:
- ValidationResult behaviour
- Generated-question and alignment-score schemas
- Catalog schema
- JSON extraction from LLM responses
"""

import json

import pytest

from mockprep.utils.validation import (
    SchemaValidator,
    ValidationResult,
    extract_json,
    validate_alignment_score,
    validate_catalog,
    validate_generated_questions,
)


class TestValidationResult:
    """Test suite for ValidationResult class."""

    def test_valid_result_is_truthy(self):
        assert bool(ValidationResult(valid=True, errors=[])) is True

    def test_invalid_result_is_falsy(self):
        assert bool(ValidationResult(valid=False, errors=["error"])) is False

    def test_str_representation_invalid(self):
        result = ValidationResult(valid=False, errors=["error1", "error2"])
        assert "✗" in str(result)
        assert "2" in str(result)
        assert "error1" in str(result)


class TestSchemaValidator:
    """Test suite for SchemaValidator."""

    def test_schema_from_file(self, temp_schema_file):
        validator = SchemaValidator(temp_schema_file)
        assert validator.validate({"test": "ok"})
        result = validator.validate({})
        assert not result
        assert "At 'root'" in result.errors[0]

    def test_error_message_has_path(self, temp_schema_file):
        result = SchemaValidator(temp_schema_file).validate({"test": 5})
        assert "At 'test'" in result.errors[0]
        assert "validator=type" in result.errors[0]


class TestGeneratedQuestionsSchema:
    """Test suite for the generator response schema."""

    def test_accepts_mixed_answer_shapes(self):
        data = {
            "questions": [
                {"questionText": "Q1", "questionType": "ShortAnswer", "correctAnswer": "a"},
                {"questionText": "Q2", "questionType": "Numerical", "correctAnswer": 3.5},
                {
                    "questionText": "Q3",
                    "questionType": "MultipleChoice",
                    "options": ["a", "b"],
                    "correctAnswer": ["a"],
                },
            ]
        }
        assert validate_generated_questions(data)

    def test_rejects_unknown_type(self):
        data = {"questions": [{"questionText": "Q", "questionType": "Essay", "correctAnswer": "a"}]}
        assert not validate_generated_questions(data)

    def test_rejects_missing_answer(self):
        data = {"questions": [{"questionText": "Q", "questionType": "ShortAnswer"}]}
        assert not validate_generated_questions(data)


class TestAlignmentScoreSchema:
    """Test suite for the alignment response schema."""

    @pytest.mark.parametrize("score", [0, 0.7, 1])
    def test_accepts_unit_interval(self, score):
        assert validate_alignment_score({"score": score})

    @pytest.mark.parametrize("score", [-0.1, 1.01, "high"])
    def test_rejects_out_of_range(self, score):
        assert not validate_alignment_score({"score": score})


class TestCatalogSchema:
    """Test suite for the catalog schema."""

    def test_round_trips_models(self, topic_records, sample_questions):
        data = {
            "topics": [t.to_dict() for t in topic_records],
            "questions": [q.to_dict() for q in sample_questions],
        }
        assert validate_catalog(json.loads(json.dumps(data)))

    def test_requires_answers(self, sample_questions):
        question = sample_questions[0].to_dict()
        question["correct_answers"] = []
        assert not validate_catalog({"topics": [], "questions": [question]})


class TestExtractJson:
    """Test suite for extract_json."""

    def test_plain(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_json_fence(self):
        assert extract_json('Sure!\n```json\n{"a": 1}\n```\nDone.') == {"a": 1}

    def test_bare_fence(self):
        assert extract_json('```\n{"a": [1, 2]}\n```') == {"a": [1, 2]}

    def test_invalid_raises(self):
        with pytest.raises(json.JSONDecodeError):
            extract_json("no json here")
