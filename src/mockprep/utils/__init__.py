"""
Utility modules for the question engine.

This module contains utility functions:
- embeddings: Embedding providers and vector helpers
- vector_store: In-memory vector index with filtered similarity search
- validation: JSON Schema validation for LLM responses and catalog files
- catalog: Persistent catalog interface and adapters
"""

from .embeddings import (
    EmbeddingProvider,
    HashEmbeddingProvider,
    OpenAIEmbeddingProvider,
    SentenceTransformerEmbeddingProvider,
    CachingEmbeddingProvider,
    create_embedding_provider,
    cosine_similarity,
    average_embeddings,
    normalize,
)
from .vector_store import (
    VectorIndex,
    IndexEntry,
    IndexMetadata,
    SearchHit,
)
from .validation import (
    SchemaValidator,
    ValidationResult,
    extract_json,
)
from .catalog import (
    QuestionCatalog,
    InMemoryCatalog,
    JsonFileCatalog,
)

__all__ = [
    # Embeddings
    "EmbeddingProvider",
    "HashEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "SentenceTransformerEmbeddingProvider",
    "CachingEmbeddingProvider",
    "create_embedding_provider",
    "cosine_similarity",
    "average_embeddings",
    "normalize",
    # Vector index
    "VectorIndex",
    "IndexEntry",
    "IndexMetadata",
    "SearchHit",
    # Validation
    "SchemaValidator",
    "ValidationResult",
    "extract_json",
    # Catalog
    "QuestionCatalog",
    "InMemoryCatalog",
    "JsonFileCatalog",
]
