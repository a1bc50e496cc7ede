"""
Unit tests for catalog adapters.
"""

import json
import threading
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from mockprep.models.question import QuestionType, TopicRecord, make_question
from mockprep.models.results import CatalogError
from mockprep.utils.catalog import InMemoryCatalog, JsonFileCatalog


class TestInMemoryCatalog:
    """Test suite for InMemoryCatalog."""

    def test_find_topic(self, catalog):
        assert catalog.find_topic("cbse-10-math-quadratics").topic_name == "Quadratic Equations"
        assert catalog.find_topic("missing") is None

    def test_insert_is_upsert(self, catalog, sample_questions):
        assert len(catalog.load_all_questions()) == 5
        catalog.insert_question(sample_questions[0])
        assert len(catalog.load_all_questions()) == 5

    def test_question_count_by_topic(self, catalog):
        assert catalog.question_count() == 5
        assert catalog.question_count(["cbse-10-science-photosynthesis"]) == 2
        assert catalog.question_count([]) == 0


class TestJsonFileCatalog:
    """Test suite for JsonFileCatalog."""

    def test_missing_file_starts_empty(self, tmp_path):
        catalog = JsonFileCatalog(tmp_path / "catalog.json")
        assert catalog.load_all_questions() == []
        assert not (tmp_path / "catalog.json").exists()

    def test_write_through_and_reload(self, tmp_path, topic_records, sample_questions):
        path = tmp_path / "nested" / "catalog.json"
        catalog = JsonFileCatalog(path)
        catalog.add_topic(topic_records[0])
        catalog.insert_question(sample_questions[2])

        reloaded = JsonFileCatalog(path)

        assert reloaded.find_topic(topic_records[0].id) == topic_records[0]
        question = reloaded.get_question("q-alg-3")
        assert question.options == sample_questions[2].options
        assert question.question_type == QuestionType.MULTIPLE_CHOICE
        assert question.created_at == sample_questions[2].created_at
        assert not path.with_suffix(".json.tmp").exists()

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text("{not json")
        with pytest.raises(CatalogError):
            JsonFileCatalog(path)

    def test_schema_violation_raises(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"topics": [{"id": "t1"}], "questions": []}))
        with pytest.raises(CatalogError, match="invalid"):
            JsonFileCatalog(path)

    def test_optional_question_fields_default(self, tmp_path):
        path = tmp_path / "catalog.json"
        data = {
            "topics": [],
            "questions": [
                {
                    "id": "q1",
                    "topic_id": "t1",
                    "text": "2 + 2?",
                    "question_type": "Numerical",
                    "correct_answers": ["4"],
                }
            ],
        }
        path.write_text(json.dumps(data))

        question = JsonFileCatalog(path).get_question("q1")

        assert question.correct_answers == ("4",)
        assert question.syllabus_reference == ""

    def test_unwritable_location_raises_catalog_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        catalog = JsonFileCatalog(blocker / "catalog.json")

        question = make_question("t1", "Q?", QuestionType.SHORT_ANSWER, ["A"])

        with pytest.raises(CatalogError):
            catalog.insert_question(question)

        assert catalog.get_question(question.id) is None
        assert catalog.question_count() == 0

    def test_catalog_is_a_topic_source(self, tmp_path):
        catalog = JsonFileCatalog(tmp_path / "c.json")
        catalog.add_topic(TopicRecord("t1", "CAMBRIDGE", 5, "English", "Adjectives"))
        assert isinstance(catalog, InMemoryCatalog)
        assert catalog.find_topic("t1").curriculum == "CAMBRIDGE"

    def test_failed_save_restores_previous_question(self, tmp_path, sample_questions):
        catalog = JsonFileCatalog(tmp_path / "catalog.json")
        original = sample_questions[0]
        catalog.insert_question(original)
        catalog.save = MagicMock(side_effect=CatalogError("disk full"))

        with pytest.raises(CatalogError):
            catalog.insert_question(replace(original, text="Edited text"))

        assert catalog.get_question(original.id) == original

    def test_failed_save_drops_new_topic(self, tmp_path, topic_records):
        catalog = JsonFileCatalog(tmp_path / "catalog.json")
        catalog.save = MagicMock(side_effect=CatalogError("disk full"))

        with pytest.raises(CatalogError):
            catalog.add_topic(topic_records[0])

        assert catalog.find_topic(topic_records[0].id) is None

    def test_concurrent_inserts_all_reach_disk(self, tmp_path):
        path = tmp_path / "catalog.json"
        catalog = JsonFileCatalog(path)
        errors = []

        def insert_many(worker):
            for i in range(30):
                question = make_question(
                    "t1", f"Worker {worker} question {i}?", QuestionType.SHORT_ANSWER, ["A"]
                )
                try:
                    catalog.insert_question(question)
                except CatalogError as e:
                    errors.append(e)

        threads = [threading.Thread(target=insert_many, args=(w,)) for w in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert JsonFileCatalog(path).question_count() == 240
        assert list(tmp_path.glob("*.tmp")) == []

    def test_utc_z_timestamps_load(self, tmp_path, sample_questions):
        question = sample_questions[0].to_dict()
        question["created_at"] = "2024-03-01T09:30:00Z"
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"topics": [], "questions": [question]}))

        loaded = JsonFileCatalog(path).get_question(question["id"])

        assert loaded.created_at.year == 2024
        assert loaded.created_at.utcoffset().total_seconds() == 0

    def test_unparseable_timestamp_raises_catalog_error(self, tmp_path, sample_questions):
        question = sample_questions[0].to_dict()
        question["created_at"] = "last tuesday"
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"topics": [], "questions": [question]}))

        with pytest.raises(CatalogError):
            JsonFileCatalog(path)
