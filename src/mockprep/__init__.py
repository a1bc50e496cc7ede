"""
MockPrep question engine.

Selects exam questions for curriculum topics by meaning and generates
syllabus-aligned questions when the catalog runs short.
"""

from .models import Question, QuestionType, TopicContext, TopicRecord, Result
from .orchestrator import QuestionSourcingService, build_question_service, user_message

__version__ = "0.1.0"

__all__ = [
    "Question",
    "QuestionType",
    "TopicContext",
    "TopicRecord",
    "Result",
    "QuestionSourcingService",
    "build_question_service",
    "user_message",
]
