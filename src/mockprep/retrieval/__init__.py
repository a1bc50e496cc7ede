"""
Semantic retrieval, generative fallback and exposure tracking.
"""

from .topic_context import (
    TopicContextResolver,
    is_synthetic_topic_id,
    parse_synthetic_topic_id,
)
from .retriever import IndexingReport, RetrievalEngine
from .fallback import GenerativeFallbackOrchestrator
from .exposure import ExposureTracker
from .syllabus import SyllabusSearch

__all__ = [
    "TopicContextResolver",
    "is_synthetic_topic_id",
    "parse_synthetic_topic_id",
    "IndexingReport",
    "RetrievalEngine",
    "GenerativeFallbackOrchestrator",
    "ExposureTracker",
    "SyllabusSearch",
]
