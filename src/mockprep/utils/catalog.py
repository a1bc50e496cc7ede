"""
Persistent catalog adapters (question bank + syllabus topics).

The engine reads every stored question at startup to rebuild its index,
writes newly generated questions, and looks topics up by id. The real catalog
is an external database; these adapters cover tests, scripts and small
deployments.
"""

from __future__ import annotations

import json
import logging
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..models.question import Question, TopicRecord
from ..models.results import CatalogError
from .validation import validate_catalog

logger = logging.getLogger(__name__)


class QuestionCatalog(ABC):
    """Read/write interface to the persistent question and topic repository."""

    @abstractmethod
    def load_all_questions(self) -> List[Question]:
        """Every stored question (used for re-indexing at startup)."""

    @abstractmethod
    def insert_question(self, question: Question) -> None:
        """
        Persist a newly generated question.

        Raises:
            CatalogError: If the write fails
        """

    @abstractmethod
    def find_topic(self, topic_id: str) -> Optional[TopicRecord]:
        """Topic by id, or None if it does not exist."""

    @abstractmethod
    def find_topics(
        self,
        curriculum: Optional[str] = None,
        grade: Optional[int] = None,
        subject: Optional[str] = None,
    ) -> List[TopicRecord]:
        """Topics matching every given filter, ordered by topic name."""


class InMemoryCatalog(QuestionCatalog):
    """Thread-safe catalog held in process memory."""

    def __init__(
        self,
        topics: Iterable[TopicRecord] = (),
        questions: Iterable[Question] = (),
    ):
        self._lock = threading.Lock()
        self._topics: Dict[str, TopicRecord] = {t.id: t for t in topics}
        self._questions: Dict[str, Question] = {q.id: q for q in questions}

    def load_all_questions(self) -> List[Question]:
        with self._lock:
            return list(self._questions.values())

    def insert_question(self, question: Question) -> None:
        with self._lock:
            # Upsert: ids are unique, a repeated insert keeps the latest copy
            self._questions[question.id] = question

    def find_topic(self, topic_id: str) -> Optional[TopicRecord]:
        with self._lock:
            return self._topics.get(topic_id)

    def find_topics(
        self,
        curriculum: Optional[str] = None,
        grade: Optional[int] = None,
        subject: Optional[str] = None,
    ) -> List[TopicRecord]:
        with self._lock:
            topics = [
                t for t in self._topics.values()
                if (curriculum is None or t.curriculum == curriculum)
                and (grade is None or t.grade == grade)
                and (subject is None or t.subject == subject)
            ]
        return sorted(topics, key=lambda t: t.topic_name)

    def add_topic(self, topic: TopicRecord) -> None:
        with self._lock:
            self._topics[topic.id] = topic

    def get_question(self, question_id: str) -> Optional[Question]:
        with self._lock:
            return self._questions.get(question_id)

    def question_count(self, topic_ids: Optional[Iterable[str]] = None) -> int:
        """Number of stored questions, optionally restricted to some topics."""
        with self._lock:
            if topic_ids is None:
                return len(self._questions)
            wanted = set(topic_ids)
            return sum(1 for q in self._questions.values() if q.topic_id in wanted)


class JsonFileCatalog(InMemoryCatalog):
    """
    Catalog backed by a JSON document on disk.

    Features:
    - Validate the document against the catalog schema on load and save
    - Write-through on every inserted question
    - Atomic replace of the file on save, one writer at a time
    - A write that fails to reach disk is rolled back in memory
    """

    def __init__(self, path: Path | str):
        """
        Initialize catalog from a JSON file (created empty if missing).

        Args:
            path: Location of the catalog JSON document

        Raises:
            CatalogError: If the file exists but cannot be read or is invalid
        """
        self.path = Path(path)
        # Serializes mutate+save so memory and disk change together
        self._write_lock = threading.RLock()
        topics: List[TopicRecord] = []
        questions: List[Question] = []

        if self.path.exists():
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise CatalogError(f"Failed to read catalog {self.path}: {e}") from e

            result = validate_catalog(data)
            if not result:
                raise CatalogError(
                    f"Catalog {self.path} is invalid: " + "; ".join(result.errors)
                )
            try:
                topics = [TopicRecord.from_dict(t) for t in data["topics"]]
                questions = [Question.from_dict(q) for q in data["questions"]]
            except (KeyError, TypeError, ValueError) as e:
                raise CatalogError(f"Catalog {self.path} has an unreadable record: {e}") from e
            logger.info(
                "Loaded catalog %s (%d topics, %d questions)",
                self.path, len(topics), len(questions),
            )

        super().__init__(topics, questions)

    def insert_question(self, question: Question) -> None:
        with self._write_lock:
            previous = self.get_question(question.id)
            super().insert_question(question)
            try:
                self.save()
            except CatalogError:
                with self._lock:
                    if previous is None:
                        self._questions.pop(question.id, None)
                    else:
                        self._questions[question.id] = previous
                raise

    def add_topic(self, topic: TopicRecord) -> None:
        with self._write_lock:
            previous = self.find_topic(topic.id)
            super().add_topic(topic)
            try:
                self.save()
            except CatalogError:
                with self._lock:
                    if previous is None:
                        self._topics.pop(topic.id, None)
                    else:
                        self._topics[topic.id] = previous
                raise

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "topics": [t.to_dict() for t in self._topics.values()],
                "questions": [q.to_dict() for q in self._questions.values()],
            }

    def save(self) -> None:
        """
        Write the catalog to disk.

        Each save writes a uniquely named temp file next to the catalog and
        renames it over the target.

        Raises:
            CatalogError: If the document is invalid or the write fails
        """
        with self._write_lock:
            data = self.to_dict()
            result = validate_catalog(data)
            if not result:
                raise CatalogError(
                    "Refusing to save invalid catalog: " + "; ".join(result.errors)
                )

            tmp_path: Optional[Path] = None
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with tempfile.NamedTemporaryFile(
                    "w",
                    encoding="utf-8",
                    dir=self.path.parent,
                    prefix=f"{self.path.name}.",
                    suffix=".tmp",
                    delete=False,
                ) as f:
                    tmp_path = Path(f.name)
                    json.dump(data, f, indent=2, ensure_ascii=False)
                tmp_path.replace(self.path)
            except OSError as e:
                if tmp_path is not None:
                    tmp_path.unlink(missing_ok=True)
                raise CatalogError(f"Failed to save catalog {self.path}: {e}") from e
