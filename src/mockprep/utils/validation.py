"""
Schema validation utilities for the question engine.

Provides JSON Schema validation with clear error messages for:
- LLM responses carrying generated question candidates
- LLM responses carrying alignment scores
- Catalog documents (topics and questions) read from or written to disk
"""

import json
from pathlib import Path
from typing import Any, Optional, Union

from jsonschema import Draft7Validator, FormatChecker, ValidationError

QUESTION_TYPES = ["MultipleChoice", "ShortAnswer", "Numerical"]


GENERATED_QUESTIONS_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["questions"],
    "properties": {
        "questions": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["questionText", "questionType", "correctAnswer"],
                "properties": {
                    "questionText": {"type": "string", "minLength": 1},
                    "questionType": {"type": "string", "enum": QUESTION_TYPES},
                    "options": {
                        "type": ["array", "null"],
                        "items": {"type": "string"},
                    },
                    "correctAnswer": {
                        "anyOf": [
                            {"type": "string", "minLength": 1},
                            {"type": "number"},
                            {
                                "type": "array",
                                "items": {"type": ["string", "number"]},
                                "minItems": 1,
                            },
                        ]
                    },
                    "syllabusReference": {"type": "string"},
                    "solutionSteps": {"type": "array", "items": {"type": "string"}},
                },
            },
        }
    },
}


ALIGNMENT_SCORE_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["score"],
    "properties": {
        "score": {"type": "number", "minimum": 0, "maximum": 1},
        "reasoning": {"type": "string"},
        "syllabusReferences": {"type": "array", "items": {"type": "string"}},
    },
}


CATALOG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["topics", "questions"],
    "properties": {
        "topics": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "curriculum", "grade", "subject", "topic_name"],
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    "curriculum": {"type": "string"},
                    "grade": {"type": "integer", "minimum": 1},
                    "subject": {"type": "string"},
                    "topic_name": {"type": "string"},
                    "syllabus_section": {"type": "string"},
                    "official_content": {"type": "string"},
                    "learning_objectives": {"type": "array", "items": {"type": "string"}},
                    "parent_topic_id": {"type": ["string", "null"]},
                },
            },
        },
        "questions": {
            "type": "array",
            "items": {
                "type": "object",
                "required": [
                    "id",
                    "topic_id",
                    "text",
                    "question_type",
                    "correct_answers",
                ],
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    "topic_id": {"type": "string", "minLength": 1},
                    "text": {"type": "string", "minLength": 1},
                    "question_type": {"type": "string", "enum": QUESTION_TYPES},
                    "options": {"type": ["array", "null"], "items": {"type": "string"}},
                    "correct_answers": {
                        "type": "array",
                        "items": {"type": "string"},
                        "minItems": 1,
                    },
                    "syllabus_reference": {"type": "string"},
                    "difficulty_tier": {"type": "string"},
                    "created_at": {"type": "string", "format": "date-time"},
                    "solution_steps": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
    },
}


class ValidationResult:
    """
    Result of a validation attempt.

    Attributes:
        valid: Whether data passed validation
        errors: List of error messages
        data: The validated data
    """

    def __init__(self, valid: bool, errors: list[str], data: Any = None):
        self.valid = valid
        self.errors = errors
        self.data = data

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.valid

    def __str__(self) -> str:
        """Human-readable representation."""
        if self.valid:
            return "✓ Validation passed"
        return f"✗ Validation failed with {len(self.errors)} error(s):\n" + "\n".join(
            f"  - {error}" for error in self.errors
        )


class SchemaValidator:
    """
    JSON Schema validator.

    Usage:
        validator = SchemaValidator(GENERATED_QUESTIONS_SCHEMA)
        result = validator.validate(data)
        if not result:
            print(result.errors)
    """

    def __init__(self, schema: Union[dict, Path, str]):
        """
        Initialize validator with a schema dict or schema file.

        Args:
            schema: JSON Schema as a dict, or a path to a JSON Schema file
        """
        if isinstance(schema, dict):
            self.schema = schema
        else:
            with open(Path(schema), "r", encoding="utf-8") as f:
                self.schema = json.load(f)
        # Use FormatChecker to validate datetime, etc.
        self.validator = Draft7Validator(self.schema, format_checker=FormatChecker())

    def validate(self, data: Any) -> ValidationResult:
        """
        Validate data against schema.

        Args:
            data: Data to validate

        Returns:
            ValidationResult with validation status and any errors
        """
        errors = [self._format_error(e) for e in self.validator.iter_errors(data)]
        if errors:
            return ValidationResult(valid=False, errors=errors, data=data)
        return ValidationResult(valid=True, errors=[], data=data)

    def _format_error(self, error: ValidationError) -> str:
        """
        Convert ValidationError to human-readable message with details.

        Args:
            error: jsonschema ValidationError

        Returns:
            Formatted error message with validator and schema path
        """
        path = " -> ".join(str(p) for p in error.path) if error.path else "root"
        validator_name = getattr(error, "validator", "unknown")
        schema_path = "/".join(str(p) for p in error.schema_path)
        return (
            f"At '{path}': {error.message} "
            f"[validator={validator_name}, schema_path=/{schema_path}]"
        )


def extract_json(response: str) -> Any:
    """
    Parse JSON from an LLM response, stripping markdown code fences if present.

    Raises:
        json.JSONDecodeError: If no valid JSON can be parsed
    """
    if "```json" in response:
        response = response.split("```json")[1].split("```")[0].strip()
    elif "```" in response:
        response = response.split("```")[1].split("```")[0].strip()
    return json.loads(response)


def validate_generated_questions(data: Any) -> ValidationResult:
    """Validate a parsed generator response."""
    return SchemaValidator(GENERATED_QUESTIONS_SCHEMA).validate(data)


def validate_alignment_score(data: Any) -> ValidationResult:
    """Validate a parsed alignment-validator response."""
    return SchemaValidator(ALIGNMENT_SCORE_SCHEMA).validate(data)


def validate_catalog(data: Any, schema_path: Optional[Path] = None) -> ValidationResult:
    """Validate a catalog document (optionally against a custom schema file)."""
    return SchemaValidator(schema_path or CATALOG_SCHEMA).validate(data)
