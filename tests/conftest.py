"""
Shared pytest fixtures and configuration for the question engine tests.

This file is automatically discovered by pytest and provides
fixtures available to all tests.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add src to path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from mockprep.models.question import QuestionType, TopicRecord, make_question  # noqa: E402
from mockprep.utils.embeddings import EmbeddingProvider, normalize  # noqa: E402

TEST_DIMENSION = 64

ALGEBRA = "cbse-10-math-quadratics"
BIOLOGY = "cbse-10-science-photosynthesis"


class LookupEmbeddingProvider(EmbeddingProvider):
    """
    Embedder with hand-picked vectors for exact texts.

    Unknown texts map to the zero vector unless a default is given.
    """

    def __init__(self, dimension, vectors=None, default=None):
        super().__init__(dimension)
        self.vectors = {k: normalize(v) for k, v in (vectors or {}).items()}
        self.default = default
        self.calls = []

    def set(self, text, vector):
        self.vectors[text] = normalize(vector)

    def embed(self, text):
        self.calls.append(text)
        if text in self.vectors:
            return self.vectors[text].copy()
        if self.default is not None:
            return normalize(self.default)
        return np.zeros(self.dimension)


@pytest.fixture
def lookup_embedder_cls():
    """The LookupEmbeddingProvider class, for tests that need known embeddings."""
    return LookupEmbeddingProvider


@pytest.fixture
def topic_records():
    """Two catalog topics from different subjects."""
    return [
        TopicRecord(
            id=ALGEBRA,
            curriculum="CBSE",
            grade=10,
            subject="Mathematics",
            topic_name="Quadratic Equations",
            syllabus_section="Unit 2: Algebra",
            official_content="Standard form of a quadratic equation, solving by factorisation and the quadratic formula, nature of roots.",
            learning_objectives=("Solve quadratic equations", "Determine the nature of roots"),
        ),
        TopicRecord(
            id=BIOLOGY,
            curriculum="CBSE",
            grade=10,
            subject="Science",
            topic_name="Photosynthesis",
            syllabus_section="Unit 1: Life Processes",
            official_content="Autotrophic nutrition, raw materials of photosynthesis, role of chlorophyll and sunlight.",
            learning_objectives=("Explain photosynthesis", "Identify the role of chlorophyll"),
        ),
    ]


@pytest.fixture
def sample_questions():
    """Three algebra questions and two biology questions."""
    return [
        make_question(
            ALGEBRA,
            "Solve x^2 - 5x + 6 = 0.",
            QuestionType.SHORT_ANSWER,
            ["x = 2 or x = 3"],
            syllabus_reference="Solving by factorisation",
            question_id="q-alg-1",
        ),
        make_question(
            ALGEBRA,
            "What is the discriminant of 2x^2 + 3x - 2 = 0?",
            QuestionType.NUMERICAL,
            ["25"],
            syllabus_reference="Nature of roots",
            question_id="q-alg-2",
        ),
        make_question(
            ALGEBRA,
            "Which equation has two equal real roots?",
            QuestionType.MULTIPLE_CHOICE,
            ["x^2 - 4x + 4 = 0"],
            options=["x^2 - 4x + 4 = 0", "x^2 + 1 = 0", "x^2 - 1 = 0", "x^2 - 3x = 0"],
            syllabus_reference="Nature of roots",
            question_id="q-alg-3",
        ),
        make_question(
            BIOLOGY,
            "Name the pigment that absorbs sunlight in leaves.",
            QuestionType.SHORT_ANSWER,
            ["Chlorophyll"],
            syllabus_reference="Role of chlorophyll",
            question_id="q-bio-1",
        ),
        make_question(
            BIOLOGY,
            "Which gas is released during photosynthesis?",
            QuestionType.MULTIPLE_CHOICE,
            ["Oxygen"],
            options=["Oxygen", "Carbon dioxide", "Nitrogen", "Hydrogen"],
            syllabus_reference="Raw materials of photosynthesis",
            question_id="q-bio-2",
        ),
    ]


@pytest.fixture
def catalog(topic_records, sample_questions):
    """In-memory catalog seeded with the sample topics and questions."""
    from mockprep.utils.catalog import InMemoryCatalog

    return InMemoryCatalog(topic_records, sample_questions)


@pytest.fixture
def hash_embedder():
    """Deterministic local embedder."""
    from mockprep.utils.embeddings import HashEmbeddingProvider

    return HashEmbeddingProvider(dimension=TEST_DIMENSION)


@pytest.fixture
def engine(catalog, hash_embedder):
    """Retrieval engine over a fresh index rebuilt from the sample catalog."""
    from mockprep.retrieval.retriever import RetrievalEngine
    from mockprep.retrieval.topic_context import TopicContextResolver
    from mockprep.utils.vector_store import VectorIndex

    engine = RetrievalEngine(
        VectorIndex(TEST_DIMENSION), hash_embedder, TopicContextResolver(catalog)
    )
    engine.rebuild_from_catalog(catalog)
    return engine


@pytest.fixture(autouse=True)
def reset_token_tracker():
    """
    Auto-fixture to reset token tracker before each test.

    This ensures tests don't interfere with each other.
    """
    from mockprep.config import token_tracker

    token_tracker.reset()
    yield
    token_tracker.reset()


@pytest.fixture
def temp_schema_file(tmp_path):
    """
    Fixture providing a temporary schema file for testing.

    Args:
        tmp_path: pytest's tmp_path fixture

    Returns:
        Path: Path to temporary schema file
    """
    import json

    schema = {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "type": "object",
        "properties": {"test": {"type": "string"}},
        "required": ["test"],
    }

    schema_file = tmp_path / "test.schema.json"
    with open(schema_file, "w") as f:
        json.dump(schema, f)

    return schema_file


# Pytest hooks for better test output


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark tests in unit/ directory as unit tests
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        # Mark tests in integration/ directory as integration tests
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
