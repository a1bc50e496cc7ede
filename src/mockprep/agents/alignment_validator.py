"""
Alignment validators - score how well a generated question fits its topic.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from langchain_core.prompts import PromptTemplate
from langchain_openai import ChatOpenAI

from ..config import config, record_llm_usage
from ..models.question import Question, TopicContext
from ..models.results import ValidationProviderError
from ..utils.embeddings import EmbeddingProvider, cosine_similarity
from ..utils.validation import extract_json, validate_alignment_score
from .base import AlignmentScore, AlignmentValidator

logger = logging.getLogger(__name__)


class LLMAlignmentValidator(AlignmentValidator):
    """Asks an OpenAI chat model to grade syllabus alignment in [0, 1]."""

    SYSTEM_PROMPT = (
        "You are an expert educational content validator. "
        "Assess whether questions align with syllabus content."
    )

    def __init__(
        self,
        llm: Optional[Any] = None,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
    ):
        """
        Initialize alignment validator.

        Args:
            llm: Pre-built chat model (any object with ``invoke``); built from config if None
            model_name: LLM model name
            temperature: Sampling temperature (default from config)
        """
        self.model_name = model_name or config.model.model_name
        if llm is None:
            llm = ChatOpenAI(
                model=self.model_name,
                temperature=(
                    config.model.validation_temperature if temperature is None else temperature
                ),
                max_tokens=500,
                api_key=config.model.api_key,
                base_url=config.model.base_url,
                timeout=config.model.request_timeout,
                model_kwargs={"response_format": {"type": "json_object"}},
            )
        self.llm = llm

        self.validation_prompt = PromptTemplate(
            input_variables=["question", "question_type", "options", "answers", "content", "concepts"],
            template="""Validate whether this question aligns with the syllabus content:

Question:
{question}

Question Type: {question_type}
{options}Correct Answer: {answers}

Syllabus Content:
{content}

Key Concepts:
{concepts}

Assess the alignment and provide:
1. A score from 0 to 1 (0 = no alignment, 1 = perfect alignment)
2. Reasoning for the score
3. Specific syllabus references that the question addresses

Return a JSON object with this format:
{{
  "score": 0.95,
  "reasoning": "The question directly tests...",
  "syllabusReferences": ["concept1", "concept2"]
}}""",
        )

    def score(self, question: Question, context: TopicContext) -> AlignmentScore:
        """
        Score a candidate question against its topic.

        Raises:
            ValidationProviderError: If the LLM call fails or the response is unusable
        """
        prompt = self.validation_prompt.format(
            question=question.text,
            question_type=question.question_type.value,
            options=f"Options: {', '.join(question.options)}\n" if question.options else "",
            answers=", ".join(question.correct_answers),
            content=context.descriptive_text,
            concepts=", ".join(context.related_concepts),
        )

        try:
            response = self.llm.invoke([("system", self.SYSTEM_PROMPT), ("human", prompt)])
        except Exception as e:
            raise ValidationProviderError(f"LLM validation call failed: {e}") from e

        record_llm_usage(response)
        content = getattr(response, "content", response)

        try:
            data = extract_json(content)
        except (json.JSONDecodeError, TypeError, IndexError) as e:
            raise ValidationProviderError(f"Validation response is not valid JSON: {e}") from e

        # Tolerate slightly out-of-range scores; AlignmentScore clamps them
        if isinstance(data, dict) and isinstance(data.get("score"), (int, float)):
            data = {**data, "score": min(1.0, max(0.0, float(data["score"])))}

        result = validate_alignment_score(data)
        if not result:
            raise ValidationProviderError(
                "Validation response failed schema validation: " + "; ".join(result.errors[:3])
            )

        return AlignmentScore(
            score=data["score"],
            reasoning=data.get("reasoning") or "No reasoning provided",
            syllabus_references=tuple(data.get("syllabusReferences") or ()),
        )


class EmbeddingAlignmentValidator(AlignmentValidator):
    """
    Offline validator: cosine similarity between question and topic embeddings.

    Negative similarities are floored at 0. Useful without an LLM key and in tests.
    """

    def __init__(self, embedder: EmbeddingProvider):
        self.embedder = embedder

    def score(self, question: Question, context: TopicContext) -> AlignmentScore:
        try:
            q_vec = self.embedder.embed_question(question)
            c_vec = self.embedder.embed_context(context)
        except Exception as e:
            raise ValidationProviderError(f"Embedding for validation failed: {e}") from e

        similarity = max(0.0, cosine_similarity(q_vec, c_vec))
        return AlignmentScore(
            score=similarity,
            reasoning=f"Embedding similarity {similarity:.3f} to topic context",
            syllabus_references=(context.topic_name,) if context.topic_name else (),
        )
