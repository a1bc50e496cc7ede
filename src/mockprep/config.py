"""
Configuration management for the MockPrep question engine.

This module centralizes all configuration settings following 12-factor app principles:
- Secrets loaded from environment variables
- Sensible defaults for development
- Single source of truth for retrieval, fallback and embedding settings
- Thread-safe token tracking for LLM collaborators
"""

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


EMBEDDING_PROVIDERS = ("hash", "openai", "sentence-transformers")


@dataclass
class ModelConfig:
    """LLM model configuration with OpenAI API settings."""

    # OpenAI settings (env-driven for flexibility)
    api_key: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    model_name: str = field(
        default_factory=lambda: os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    )
    base_url: Optional[str] = field(
        default_factory=lambda: os.getenv("OPENAI_BASE_URL")
    )

    max_tokens: int = 4000

    # Collaborator-specific temperatures
    generation_temperature: float = 0.4
    validation_temperature: float = 0.3

    request_timeout: float = field(
        default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT", "60.0"))
    )

    # Reproducibility: DETERMINISTIC=1 forces every temperature to 0
    deterministic: bool = field(
        default_factory=lambda: os.getenv("DETERMINISTIC", "").lower() in ("1", "true", "yes")
    )

    def __post_init__(self):
        """Apply deterministic mode if enabled."""
        if self.deterministic:
            self.generation_temperature = 0.0
            self.validation_temperature = 0.0


@dataclass
class EmbeddingConfig:
    """Embedding provider configuration."""

    provider: str = field(
        default_factory=lambda: os.getenv("EMBEDDING_PROVIDER", "hash")
    )
    model_name: str = field(
        default_factory=lambda: os.getenv(
            "EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2"
        )
    )
    dimension: int = field(
        default_factory=lambda: int(os.getenv("EMBEDDING_DIMENSION", "384"))
    )

    # In-process memo of embeddings (never persisted)
    cache_embeddings: bool = True
    batch_size: int = 32


@dataclass
class RetrievalConfig:
    """Semantic retrieval configuration."""

    # Over-fetch factor tolerates entries without a materialized question payload
    over_fetch_factor: int = field(
        default_factory=lambda: int(os.getenv("RETRIEVAL_OVER_FETCH", "3"))
    )
    # Topic membership filters relevance; similarity only orders results
    min_similarity: float = 0.0


@dataclass
class FallbackConfig:
    """Generative fallback configuration."""

    min_alignment_score: float = field(
        default_factory=lambda: float(os.getenv("MIN_ALIGNMENT_SCORE", "0.7"))
    )
    max_rounds: int = field(
        default_factory=lambda: int(os.getenv("FALLBACK_MAX_ROUNDS", "1"))
    )
    # How many existing questions are quoted back to the LLM to avoid duplicates
    max_existing_in_prompt: int = 5
    # In-app exams only accept multiple choice questions
    mcq_only: bool = False


@dataclass
class PathConfig:
    """File system paths - single source of truth for all directories."""

    data_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv(
                "MOCKPREP_DATA_DIR",
                str(Path(__file__).resolve().parent.parent.parent / "data"),
            )
        )
    )

    catalog_file: Path = field(init=False)

    def __post_init__(self):
        """Initialize computed paths."""
        self.catalog_file = self.data_dir / "catalog.json"


@dataclass
class LoggingConfig:
    """Logging and metrics configuration with env-driven pricing."""

    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

    # Cost estimation (env-driven for easy model switching)
    cost_per_1k_input: float = field(
        default_factory=lambda: float(os.getenv("COST_PER_1K_INPUT", "0.00015"))
    )
    cost_per_1k_output: float = field(
        default_factory=lambda: float(os.getenv("COST_PER_1K_OUTPUT", "0.0006"))
    )


class Config:
    """
    Main configuration class. Singleton pattern.

    Usage:
        from mockprep.config import config

        over_fetch = config.retrieval.over_fetch_factor
        threshold = config.fallback.min_alignment_score
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance.paths = PathConfig()
            cls._instance.model = ModelConfig()
            cls._instance.embedding = EmbeddingConfig()
            cls._instance.retrieval = RetrievalConfig()
            cls._instance.fallback = FallbackConfig()
            cls._instance.logging = LoggingConfig()

        return cls._instance

    def validate(self, require_llm: bool = False) -> list[str]:
        """
        Validate configuration and return list of errors.

        Args:
            require_llm: Whether LLM collaborators will be used (needs an API key)

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if require_llm and not self.model.api_key:
            errors.append("OPENAI_API_KEY not set in environment")

        if self.model.max_tokens <= 0:
            errors.append(f"max_tokens must be > 0, got {self.model.max_tokens}")

        for name in ("generation_temperature", "validation_temperature"):
            value = getattr(self.model, name)
            if not (0 <= value <= 2):
                errors.append(f"{name} must be in [0, 2], got {value}")

        if self.embedding.provider not in EMBEDDING_PROVIDERS:
            errors.append(
                f"EMBEDDING_PROVIDER must be one of {EMBEDDING_PROVIDERS}, "
                f"got '{self.embedding.provider}'"
            )

        if self.embedding.dimension <= 0:
            errors.append(
                f"embedding dimension must be > 0, got {self.embedding.dimension}"
            )

        if self.retrieval.over_fetch_factor < 1:
            errors.append(
                f"retrieval over_fetch_factor must be >= 1, got {self.retrieval.over_fetch_factor}"
            )

        if not (-1 <= self.retrieval.min_similarity <= 1):
            errors.append(
                f"retrieval min_similarity must be in [-1, 1], got {self.retrieval.min_similarity}"
            )

        if not (0 <= self.fallback.min_alignment_score <= 1):
            errors.append(
                f"fallback min_alignment_score must be in [0, 1], got {self.fallback.min_alignment_score}"
            )

        if self.fallback.max_rounds < 1:
            errors.append(
                f"fallback max_rounds must be >= 1, got {self.fallback.max_rounds}"
            )

        return errors


# Global config instance
config = Config()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging from LoggingConfig. Call once from the entrypoint."""
    logging.basicConfig(
        level=(level or config.logging.log_level).upper(),
        format=config.logging.log_format,
    )


# Thread-safe token tracking utility
class TokenTracker:
    """
    Thread-safe tracker for token usage and estimated costs.

    Usage:
        from mockprep.config import token_tracker

        token_tracker.add_tokens(input_tokens=100, output_tokens=50)
        print(token_tracker.summary())
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.input_tokens = 0
        self.output_tokens = 0
        self.total_calls = 0

    def add_tokens(self, input_tokens: int, output_tokens: int):
        """Add tokens from an API call (thread-safe)."""
        with self._lock:
            self.input_tokens += input_tokens
            self.output_tokens += output_tokens
            self.total_calls += 1

    def total_tokens(self) -> int:
        """Get total tokens used (thread-safe)."""
        with self._lock:
            return self.input_tokens + self.output_tokens

    def estimated_cost(self) -> float:
        """Calculate estimated cost in USD (thread-safe)."""
        with self._lock:
            return self._cost(self.input_tokens, self.output_tokens)

    @staticmethod
    def _cost(input_tokens: int, output_tokens: int) -> float:
        input_cost = (input_tokens / 1000) * config.logging.cost_per_1k_input
        output_cost = (output_tokens / 1000) * config.logging.cost_per_1k_output
        return input_cost + output_cost

    def summary(self) -> str:
        """Get formatted summary of usage (thread-safe, no deadlock)."""
        stats = self.get_stats()
        return (
            "Token Usage Summary:\n"
            f"  API Calls: {stats['calls']}\n"
            f"  Input Tokens: {stats['input_tokens']:,}\n"
            f"  Output Tokens: {stats['output_tokens']:,}\n"
            f"  Total Tokens: {stats['total_tokens']:,}\n"
            f"  Estimated Cost: ${stats['estimated_cost']:.4f}"
        )

    def reset(self):
        """Reset counters (thread-safe)."""
        with self._lock:
            self.input_tokens = 0
            self.output_tokens = 0
            self.total_calls = 0

    def get_stats(self) -> dict:
        """Get current stats as dict (thread-safe, no deadlock)."""
        with self._lock:
            input_tokens = self.input_tokens
            output_tokens = self.output_tokens
            total_calls = self.total_calls

        return {
            "calls": total_calls,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
            "estimated_cost": self._cost(input_tokens, output_tokens),
        }


# Global token tracker instance
token_tracker = TokenTracker()


def record_llm_usage(response) -> None:
    """Feed LangChain usage metadata (if any) into the global token tracker."""
    usage = getattr(response, "usage_metadata", None)
    if isinstance(usage, dict):
        token_tracker.add_tokens(
            int(usage.get("input_tokens", 0)), int(usage.get("output_tokens", 0))
        )
