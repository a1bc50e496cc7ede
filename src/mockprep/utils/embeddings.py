"""
Embedding generation utilities for semantic question retrieval.

Supports multiple embedding providers:
- Deterministic hash embeddings (local, free, reproducible)
- OpenAI embeddings
- Sentence Transformers (local)
- In-process caching wrapper

Every provider returns L2-normalized numpy vectors of a fixed dimension.
Empty text maps to the zero vector ("no signal").
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..config import config
from ..models.question import Question, TopicContext
from ..models.results import EmbeddingProviderError

logger = logging.getLogger(__name__)


def normalize(vector: Sequence[float]) -> np.ndarray:
    """Scale a vector to unit length; the zero vector stays zero."""
    v = np.asarray(vector, dtype=float)
    norm = np.linalg.norm(v)
    if norm == 0:
        return np.zeros_like(v)
    return v / norm


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """
    Compute cosine similarity between two vectors.

    Args:
        vec1: First vector
        vec2: Second vector

    Returns:
        Cosine similarity in range [-1, 1]; 0.0 if either vector is zero
    """
    v1 = np.asarray(vec1, dtype=float)
    v2 = np.asarray(vec2, dtype=float)

    if v1.shape != v2.shape:
        raise ValueError(f"Vectors must have the same dimension: {v1.shape} vs {v2.shape}")

    norm1 = np.linalg.norm(v1)
    norm2 = np.linalg.norm(v2)

    if norm1 == 0 or norm2 == 0:
        return 0.0

    similarity = float(np.dot(v1, v2) / (norm1 * norm2))
    return max(-1.0, min(1.0, similarity))


def average_embeddings(vectors: Sequence[Sequence[float]]) -> np.ndarray:
    """
    Average vectors element-wise and re-normalize the result.

    Args:
        vectors: One or more vectors of equal dimension

    Returns:
        Unit-length mean vector (zero vector if the mean is zero)
    """
    if len(vectors) == 0:
        raise ValueError("Cannot average an empty list of embeddings")
    matrix = np.vstack([np.asarray(v, dtype=float) for v in vectors])
    return normalize(matrix.mean(axis=0))


class EmbeddingProvider(ABC):
    """Turns free text into a fixed-length unit vector."""

    def __init__(self, dimension: int):
        if dimension <= 0:
            raise ValueError(f"Embedding dimension must be > 0, got {dimension}")
        self.dimension = dimension

    @abstractmethod
    def embed(self, text: str) -> np.ndarray:
        """Embed a single text."""

    def embed_batch(self, texts: Sequence[str]) -> List[np.ndarray]:
        """Embed several texts (providers with a batch API override this)."""
        return [self.embed(text) for text in texts]

    def embed_question(self, question: Question) -> np.ndarray:
        return self.embed(question.embedding_text())

    def embed_context(self, context: TopicContext) -> np.ndarray:
        return self.embed(context.embedding_text())

    def _check(self, vector: Sequence[float]) -> np.ndarray:
        v = np.asarray(vector, dtype=float)
        if v.shape != (self.dimension,):
            raise EmbeddingProviderError(
                f"{type(self).__name__} returned shape {v.shape}, expected ({self.dimension},)"
            )
        return normalize(v)


class HashEmbeddingProvider(EmbeddingProvider):
    """
    Deterministic embeddings for tests and offline development.

    Each character adds ``ord(c) / 1000`` to bucket ``(ord(c) * (i + 1)) % dim``;
    the result is normalized.
    """

    def __init__(self, dimension: Optional[int] = None):
        super().__init__(dimension or config.embedding.dimension)

    def embed(self, text: str) -> np.ndarray:
        embedding = np.zeros(self.dimension, dtype=float)
        for i, char in enumerate(text):
            code = ord(char)
            embedding[(code * (i + 1)) % self.dimension] += code / 1000
        return normalize(embedding)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embeddings from the OpenAI embeddings API."""

    def __init__(
        self,
        model_name: str = "text-embedding-3-small",
        dimension: Optional[int] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client=None,
    ):
        super().__init__(dimension or config.embedding.dimension)
        self.model_name = model_name
        self.api_key = api_key or config.model.api_key
        self.base_url = base_url or config.model.base_url
        self._client = client

    def _get_client(self):
        """Lazy load the OpenAI client."""
        if self._client is None:
            import openai

            self._client = openai.OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=config.model.request_timeout,
            )
        return self._client

    def _request(self, texts: List[str]) -> List[List[float]]:
        kwargs = {"model": self.model_name, "input": texts}
        if self.model_name.startswith("text-embedding-3"):
            kwargs["dimensions"] = self.dimension
        try:
            response = self._get_client().embeddings.create(**kwargs)
        except Exception as e:
            raise EmbeddingProviderError(f"OpenAI embedding request failed: {e}") from e
        return [item.embedding for item in response.data]

    def embed(self, text: str) -> np.ndarray:
        if not text.strip():
            return np.zeros(self.dimension, dtype=float)
        return self._check(self._request([text])[0])

    def embed_batch(self, texts: Sequence[str]) -> List[np.ndarray]:
        results: List[Optional[np.ndarray]] = [None] * len(texts)
        pending = [i for i, text in enumerate(texts) if text.strip()]
        batch_size = config.embedding.batch_size

        for start in range(0, len(pending), batch_size):
            chunk = pending[start:start + batch_size]
            vectors = self._request([texts[i] for i in chunk])
            for i, vector in zip(chunk, vectors):
                results[i] = self._check(vector)

        return [
            r if r is not None else np.zeros(self.dimension, dtype=float)
            for r in results
        ]


class SentenceTransformerEmbeddingProvider(EmbeddingProvider):
    """Embeddings from a local sentence-transformers model."""

    def __init__(self, model_name: Optional[str] = None, dimension: Optional[int] = None):
        super().__init__(dimension or config.embedding.dimension)
        self.model_name = model_name or config.embedding.model_name
        self._model = None

    def _load_model(self):
        """Lazy load the embedding model."""
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError as e:
                raise EmbeddingProviderError(
                    "sentence-transformers not installed. "
                    "Install with: pip install 'mockprep-engine[local-embeddings]'"
                ) from e
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed(self, text: str) -> np.ndarray:
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: Sequence[str]) -> List[np.ndarray]:
        model = self._load_model()
        try:
            vectors = model.encode(
                list(texts),
                batch_size=config.embedding.batch_size,
                convert_to_numpy=True,
            )
        except Exception as e:
            raise EmbeddingProviderError(f"sentence-transformers encode failed: {e}") from e
        return [
            self._check(v) if text.strip() else np.zeros(self.dimension, dtype=float)
            for text, v in zip(texts, vectors)
        ]


class CachingEmbeddingProvider(EmbeddingProvider):
    """
    Memoizes another provider's embeddings for the lifetime of the process.

    Embeddings are process-local and never persisted.
    """

    def __init__(self, inner: EmbeddingProvider, max_entries: int = 50_000):
        super().__init__(inner.dimension)
        self.inner = inner
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._cache: Dict[str, np.ndarray] = {}

    def embed(self, text: str) -> np.ndarray:
        with self._lock:
            cached = self._cache.get(text)
        if cached is not None:
            return cached.copy()

        vector = self.inner.embed(text)
        self._store(text, vector)
        return vector.copy()

    def embed_batch(self, texts: Sequence[str]) -> List[np.ndarray]:
        with self._lock:
            cached = {t: self._cache[t] for t in texts if t in self._cache}
        missing = list(dict.fromkeys(t for t in texts if t not in cached))

        if missing:
            for text, vector in zip(missing, self.inner.embed_batch(missing)):
                self._store(text, vector)
                cached[text] = vector

        return [cached[t].copy() for t in texts]

    def _store(self, text: str, vector: np.ndarray) -> None:
        with self._lock:
            if len(self._cache) >= self.max_entries:
                # Drop the oldest entry (dicts keep insertion order)
                self._cache.pop(next(iter(self._cache)))
            self._cache[text] = vector

    def clear_cache(self) -> int:
        """Clear all cached embeddings and return how many were dropped."""
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
        return count


def create_embedding_provider(
    kind: Optional[str] = None,
    model_name: Optional[str] = None,
    dimension: Optional[int] = None,
    cache: Optional[bool] = None,
) -> EmbeddingProvider:
    """
    Build the configured embedding provider.

    Args:
        kind: "hash", "openai" or "sentence-transformers" (default from config)
        model_name: Model name for remote/local model providers
        dimension: Vector dimension (default from config)
        cache: Wrap in CachingEmbeddingProvider (default from config)

    Returns:
        EmbeddingProvider instance
    """
    kind = kind or config.embedding.provider
    cache = config.embedding.cache_embeddings if cache is None else cache

    if kind == "hash":
        provider: EmbeddingProvider = HashEmbeddingProvider(dimension)
    elif kind == "openai":
        provider = OpenAIEmbeddingProvider(
            model_name=model_name or "text-embedding-3-small", dimension=dimension
        )
    elif kind == "sentence-transformers":
        provider = SentenceTransformerEmbeddingProvider(model_name, dimension)
    else:
        raise ValueError(f"Unknown embedding provider: {kind}")

    logger.info("Using %s embedding provider (dimension=%d)", kind, provider.dimension)

    # Hash embeddings are cheap and already deterministic
    if cache and kind != "hash":
        return CachingEmbeddingProvider(provider)
    return provider
