"""
LLM Question Generator - synthesizes exam-realistic questions for a topic.

Used by the generative fallback when retrieval cannot find enough questions.
The topic context grounds every prompt; existing questions are quoted back so
the model avoids near-duplicates.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.prompts import PromptTemplate
from langchain_openai import ChatOpenAI

from ..config import config, record_llm_usage
from ..models.question import Question, QuestionType, TopicContext, make_question
from ..models.results import GenerationProviderError
from ..utils.validation import extract_json, validate_generated_questions
from .base import QuestionGenerator

logger = logging.getLogger(__name__)


# Subjects that call for quantitative, calculation-based problems
MATH_SUBJECTS = [
    "Mathematics",
    "Math",
    "Physics",
    "Chemistry",
    "Statistics",
    "Calculus",
    "Algebra",
    "Geometry",
    "Trigonometry",
    "Arithmetic",
]


def is_math_subject(subject: Optional[str]) -> bool:
    """Check whether a subject needs quantitative problems (substring match)."""
    if not subject:
        return False
    subject_lower = subject.lower()
    return any(math_subject.lower() in subject_lower for math_subject in MATH_SUBJECTS)


SYSTEM_PROMPT = """You are an expert educational content creator specializing in creating exam-realistic questions for CBSE and Cambridge curricula (grades 1-10).

CRITICAL ACCURACY REQUIREMENTS:
- You MUST verify that every correct answer is 100% accurate before including it
- Double-check all mathematical calculations, formulas, and solutions
- For multiple choice, ensure the correct option is unambiguously right and distractors are clearly wrong but plausible
- If you are not certain about an answer, do not include that question

Your task is to generate high-quality, exam-realistic questions that:
1. Strictly align with the provided syllabus content
2. Match the difficulty level of actual exams (no easier or harder)
3. Are clear, unambiguous, and age-appropriate
4. Include VERIFIED, accurate correct answers
5. Include step-by-step solution explanations
6. Do NOT duplicate or closely resemble existing questions

{question_types}

Response Format:
Return a JSON object with a "questions" array:
{{
  "questions": [
    {{
      "questionText": "The complete question text",
      "questionType": "{type_values}",
      "options": ["option1", "option2", "option3", "option4"],
      "correctAnswer": "The correct answer (must match one option exactly for MultipleChoice)",
      "syllabusReference": "Specific syllabus section or concept",
      "solutionSteps": ["Step 1: ...", "Step 2: ...", "Step 3: ..."]
    }}
  ]
}}
Only MultipleChoice questions carry "options"; use null otherwise."""

MIXED_TYPES = """Question Types:
- MultipleChoice: Include 4 options with exactly one correct answer
- ShortAnswer: Require a brief written response (1-3 sentences)
- Numerical: Require a numerical answer (with units if applicable)"""

MCQ_ONLY_TYPES = """Question Types (ONLINE EXAM MODE - ONLY MultipleChoice allowed):
- MultipleChoice: Include 4 options with EXACTLY ONE correct answer
- Do NOT generate ShortAnswer or Numerical questions
- All questions MUST be MultipleChoice with clear, distinct options"""

MCQ_ONLY_SECTION = """CRITICAL - ONLINE EXAM MODE:
- Generate ONLY MultipleChoice questions (no ShortAnswer or Numerical)
- Each question MUST have exactly 4 options
- The correctAnswer MUST match one of the options exactly

"""

MATH_SECTION = """IMPORTANT - MATH SUBJECT REQUIREMENTS:
- Generate ONLY quantitative, numerical, or calculation-based problems
- Do NOT generate explanatory, theoretical, or definition-based questions
- Each question MUST require mathematical computation or problem-solving
- Include numerical values in options/answers
- VERIFY all calculations are correct before including

"""


class LLMQuestionGenerator(QuestionGenerator):
    """
    Generates candidate questions with an OpenAI chat model.

    Features:
    - Grounds every prompt in the topic's descriptive text and key concepts
    - Quotes existing questions back to the model to avoid duplicates
    - MCQ-only mode for in-app exams
    - Quantitative-only instructions for math subjects
    - Validates the JSON response with jsonschema before building questions
    """

    def __init__(
        self,
        llm: Optional[Any] = None,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
        mcq_only: Optional[bool] = None,
        max_existing_in_prompt: Optional[int] = None,
    ):
        """
        Initialize question generator.

        Args:
            llm: Pre-built chat model (any object with ``invoke``); built from config if None
            model_name: LLM model name
            temperature: Sampling temperature (default from config)
            mcq_only: Only generate MultipleChoice questions (default from config)
            max_existing_in_prompt: Existing questions quoted in the prompt
        """
        self.model_name = model_name or config.model.model_name
        self.mcq_only = config.fallback.mcq_only if mcq_only is None else mcq_only
        self.max_existing_in_prompt = (
            max_existing_in_prompt or config.fallback.max_existing_in_prompt
        )

        if llm is None:
            llm = ChatOpenAI(
                model=self.model_name,
                temperature=(
                    config.model.generation_temperature if temperature is None else temperature
                ),
                max_tokens=config.model.max_tokens,
                api_key=config.model.api_key,
                base_url=config.model.base_url,
                timeout=config.model.request_timeout,
                model_kwargs={"response_format": {"type": "json_object"}},
            )
        self.llm = llm

        self.generation_prompt = PromptTemplate(
            input_variables=[
                "count",
                "topic",
                "content",
                "concepts",
                "constraints",
                "existing",
                "type_requirement",
            ],
            template="""Generate {count} exam-realistic questions based on the following syllabus content:

Topic: {topic}
Syllabus Content: {content}

{concepts}{constraints}{existing}Requirements:
- Generate exactly {count} questions
{type_requirement}
- Ensure all questions are exam-realistic in difficulty
- Each question must test understanding of the syllabus content
- VERIFY all correct answers are 100% accurate
- Include step-by-step solution explanations in the solutionSteps array
- Include specific syllabus references

Return the questions in the specified JSON format.""",
        )

    def system_prompt(self) -> str:
        if self.mcq_only:
            return SYSTEM_PROMPT.format(
                question_types=MCQ_ONLY_TYPES, type_values="MultipleChoice"
            )
        return SYSTEM_PROMPT.format(
            question_types=MIXED_TYPES,
            type_values="MultipleChoice | ShortAnswer | Numerical",
        )

    def build_prompt(
        self, context: TopicContext, count: int, existing: Sequence[Question]
    ) -> str:
        """Render the user prompt for one generation request."""
        topic = context.topic_name or context.descriptive_text.split(":")[0].strip()

        concepts = ""
        if context.related_concepts:
            concepts = "Key Concepts:\n" + "".join(
                f"- {c}\n" for c in context.related_concepts
            ) + "\n"

        constraints = ""
        if self.mcq_only:
            constraints += MCQ_ONLY_SECTION
        if is_math_subject(context.subject):
            constraints += MATH_SECTION

        existing_section = ""
        if existing:
            quoted = list(existing)[: self.max_existing_in_prompt]
            existing_section = (
                "IMPORTANT: Do NOT create questions similar to these existing questions:\n"
                + "".join(f"{i}. {q.text}\n" for i, q in enumerate(quoted, 1))
                + "\n"
            )

        type_requirement = (
            "- Generate ONLY MultipleChoice questions (mandatory for online exams)"
            if self.mcq_only
            else "- Mix question types (MultipleChoice, ShortAnswer, Numerical) appropriately for the topic"
        )

        return self.generation_prompt.format(
            count=count,
            topic=topic,
            content=context.descriptive_text,
            concepts=concepts,
            constraints=constraints,
            existing=existing_section,
            type_requirement=type_requirement,
        )

    def generate(
        self, context: TopicContext, count: int, existing: Sequence[Question]
    ) -> List[Question]:
        """
        Generate up to ``count`` candidate questions for a topic.

        Candidates that are structurally invalid (or not MCQ in MCQ-only mode)
        are dropped with a warning; the caller decides whether the rest suffice.

        Raises:
            GenerationProviderError: If the LLM call fails or the response is unusable
        """
        if count <= 0:
            return []

        prompt = self.build_prompt(context, count, existing)
        try:
            response = self.llm.invoke([("system", self.system_prompt()), ("human", prompt)])
        except Exception as e:
            raise GenerationProviderError(f"LLM generation call failed: {e}") from e

        record_llm_usage(response)
        content = getattr(response, "content", response)

        try:
            data = extract_json(content)
        except (json.JSONDecodeError, TypeError, IndexError) as e:
            raise GenerationProviderError(f"LLM response is not valid JSON: {e}") from e

        result = validate_generated_questions(data)
        if not result:
            raise GenerationProviderError(
                "LLM response failed schema validation: " + "; ".join(result.errors[:3])
            )

        questions = []
        for raw in data["questions"]:
            question = self._to_question(raw, context)
            if question is not None:
                questions.append(question)

        if len(questions) < count:
            logger.info(
                "Generator returned %d usable candidates for %s (requested %d)",
                len(questions), context.topic_id, count,
            )
        return questions[:count]

    def _to_question(self, raw: Dict[str, Any], context: TopicContext) -> Optional[Question]:
        question_type = QuestionType(raw["questionType"])
        if self.mcq_only and question_type != QuestionType.MULTIPLE_CHOICE:
            logger.warning("Dropping %s candidate in MCQ-only mode", question_type.value)
            return None

        options = raw.get("options") if question_type == QuestionType.MULTIPLE_CHOICE else None
        answers = raw["correctAnswer"]
        if not isinstance(answers, list):
            answers = [answers]
        answers = [str(a).strip() for a in answers]
        if options:
            answers = [_resolve_option_letter(a, options) for a in answers]

        try:
            question = make_question(
                topic_id=context.topic_id,
                text=raw["questionText"].strip(),
                question_type=question_type,
                correct_answers=answers,
                options=options,
                syllabus_reference=raw.get("syllabusReference") or context.descriptive_text[:50],
                solution_steps=raw.get("solutionSteps") or (),
            )
            question.validate()
        except ValueError as e:
            logger.warning("Dropping malformed candidate for %s: %s", context.topic_id, e)
            return None
        return question


def _resolve_option_letter(answer: str, options: Sequence[str]) -> str:
    """Map a bare option letter ("B") to the option text it names."""
    if answer in options:
        return answer
    letter = answer.rstrip(").").upper()
    if len(letter) == 1 and "A" <= letter < chr(ord("A") + len(options)):
        return options[ord(letter) - ord("A")]
    return answer
