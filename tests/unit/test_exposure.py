"""
Unit tests for exposure tracking and the exposure store.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from mockprep.models.exposure import InMemoryExposureStore
from mockprep.models.question import QuestionType, TopicRecord, make_question
from mockprep.models.results import InsufficientMatches, ProviderError, Result, TopicNotFound
from mockprep.retrieval.exposure import ExposureTracker
from mockprep.retrieval.retriever import RetrievalEngine
from mockprep.retrieval.topic_context import TopicContextResolver
from mockprep.utils.catalog import InMemoryCatalog
from mockprep.utils.embeddings import HashEmbeddingProvider
from mockprep.utils.vector_store import VectorIndex


@pytest.fixture
def store():
    return InMemoryExposureStore()


@pytest.fixture
def eight_question_engine():
    """Topic t1 with eight indexed questions u0-u4 and s0-s2."""
    topic = TopicRecord("t1", "CBSE", 7, "Science", "Magnets", official_content="Properties of magnets")
    ids = [f"u{i}" for i in range(5)] + [f"s{i}" for i in range(3)]
    questions = [
        make_question("t1", f"Magnet question {qid}", QuestionType.SHORT_ANSWER, ["a"], question_id=qid)
        for qid in ids
    ]
    catalog = InMemoryCatalog([topic], questions)
    embedder = HashEmbeddingProvider(dimension=32)
    engine = RetrievalEngine(VectorIndex(32), embedder, TopicContextResolver(catalog))
    engine.rebuild_from_catalog(catalog)
    return engine


class TestInMemoryExposureStore:
    """Test suite for the exposure store."""

    def test_record_and_read(self, store):
        store.record_seen("u1", "q1")
        store.record_seen("u1", "q2")
        store.record_seen("u2", "q3")

        assert store.seen_question_ids("u1") == {"q1", "q2"}
        assert store.seen_question_ids("nobody") == set()

    def test_overwrite_updates_timestamp(self, store):
        first = datetime(2024, 1, 1, tzinfo=timezone.utc)
        later = first + timedelta(days=3)
        store.record_seen("u1", "q1", first)
        store.record_seen("u1", "q1", later)

        assert store.last_seen("u1", "q1") == later
        assert len(store.records_for("u1")) == 1

    def test_record_many_shares_timestamp(self, store):
        records = store.record_many("u1", ["a", "b"])
        assert records[0].last_seen_at == records[1].last_seen_at

    def test_records_most_recent_first(self, store):
        base = datetime(2024, 5, 1, tzinfo=timezone.utc)
        store.record_seen("u1", "old", base)
        store.record_seen("u1", "new", base + timedelta(hours=1))

        assert [r.question_id for r in store.records_for("u1")] == ["new", "old"]


class TestUnseenFirst:
    """Test suite for ExposureTracker.unseen_first()."""

    def test_prefers_unseen(self, eight_question_engine, store):
        store.record_many("learner", ["s0", "s1", "s2"])
        tracker = ExposureTracker(eight_question_engine, store)

        result = tracker.unseen_first("learner", ["t1"], 4)

        assert result
        assert len(result.value) == 4
        assert all(q.id.startswith("u") for q in result.value)

    def test_tops_up_with_seen_when_unseen_run_out(self, eight_question_engine, store):
        store.record_many("learner", ["u0", "u1", "u2", "u3", "s0"])
        tracker = ExposureTracker(eight_question_engine, store)

        result = tracker.unseen_first("learner", ["t1"], 6)

        assert result
        ids = [q.id for q in result.value]
        assert len(ids) == len(set(ids)) == 6
        # Unseen questions come first
        assert set(ids[:3]) == {"u4", "s1", "s2"}
        assert set(ids[3:]) <= {"u0", "u1", "u2", "u3", "s0"}

    def test_new_user_gets_plain_retrieval(self, eight_question_engine, store):
        tracker = ExposureTracker(eight_question_engine, store)

        expected = eight_question_engine.retrieve(["t1"], 5).value
        result = tracker.unseen_first("fresh-user", ["t1"], 5)

        assert [q.id for q in result.value] == [q.id for q in expected]

    def test_insufficient_when_topic_too_small(self, eight_question_engine, store):
        store.record_many("learner", ["u0"])
        tracker = ExposureTracker(eight_question_engine, store)

        result = tracker.unseen_first("learner", ["t1"], 10)

        assert isinstance(result.error, InsufficientMatches)
        assert result.error.found == 8
        assert result.error.requested == 10
        assert result.error.questions[-1].id == "u0"

    def test_topic_errors_pass_through(self, eight_question_engine, store):
        tracker = ExposureTracker(eight_question_engine, store)

        result = tracker.unseen_first("learner", ["missing"], 2)

        assert isinstance(result.error, TopicNotFound)

    def test_provider_error_on_second_call_passes_through(self, store):
        engine = MagicMock()
        engine.retrieve.side_effect = [
            Result.failure(InsufficientMatches(found=0, requested=2)),
            Result.failure(ProviderError("embedder down")),
        ]
        tracker = ExposureTracker(engine, store, index=MagicMock())

        result = tracker.unseen_first("learner", ["t1"], 2)

        assert isinstance(result.error, ProviderError)


class TestExposureBookkeeping:
    """Test suite for mark_seen() and exposure_stats()."""

    def test_mark_seen_then_stats(self, eight_question_engine, store):
        tracker = ExposureTracker(eight_question_engine, store)

        tracker.mark_seen("learner", ["u0", "u1", "ghost"])
        stats = tracker.exposure_stats("learner")

        assert stats == {"total_seen": 3, "by_topic": {"t1": 2}, "unindexed": 1}

    def test_marked_questions_are_deprioritized(self, eight_question_engine, store):
        tracker = ExposureTracker(eight_question_engine, store)
        first = tracker.unseen_first("learner", ["t1"], 4).value
        tracker.mark_seen("learner", [q.id for q in first])

        second = tracker.unseen_first("learner", ["t1"], 4).value

        assert not {q.id for q in first} & {q.id for q in second}
