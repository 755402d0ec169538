"""Prompt construction for test generation."""

from typing import Optional

from testgen.config import settings
from testgen.exceptions import RequestValidationException
from testgen.models.generation_models import AggregatedContent, Prompt

# Shape the model must answer with.
RESPONSE_FORMAT = (
    '{"questions":[{"question":"...","options":["A","B","C","D"],'
    '"correct_answer":0,"explanation":"..."}]}'
)

LANGUAGE_NAMES = {
    "es": "español",
    "en": "inglés",
    "fr": "francés",
    "pt": "portugués",
}

PROMPT_TEMPLATE = (
    "Genera {count} preguntas de opción múltiple en {language} basadas en este "
    "texto académico:\n{excerpt}\nFormato JSON exacto: {response_format}"
)


class PromptBuilder:
    """Builds the deterministic instruction sent to the LLM."""

    def __init__(
        self,
        max_excerpt_chars: Optional[int] = None,
        language: Optional[str] = None,
        min_questions: Optional[int] = None,
        max_questions: Optional[int] = None,
    ):
        self.max_excerpt_chars = max_excerpt_chars or settings.max_excerpt_chars
        self.language = language or settings.default_language
        self.min_questions = min_questions or settings.min_questions
        self.max_questions = max_questions or settings.max_questions

    def check_question_count(self, question_count: int) -> None:
        """
        Raises:
            RequestValidationException: If the count is outside the allowed range
        """
        if (
            isinstance(question_count, bool)
            or not isinstance(question_count, int)
            or not self.min_questions <= question_count <= self.max_questions
        ):
            raise RequestValidationException(
                f"num_questions must be between {self.min_questions} and "
                f"{self.max_questions}, got {question_count!r}",
                details={"num_questions": question_count},
            )

    def build(
        self, content: AggregatedContent, question_count: Optional[int] = None
    ) -> Prompt:
        """
        Build the generation prompt.

        The excerpt is a hard cut of the aggregated text at max_excerpt_chars.
        It may end mid-sentence; bounding the token cost takes priority over
        sending complete text.

        Args:
            content: Aggregated document text
            question_count: Number of questions to ask for (default from settings)

        Returns:
            Prompt with instruction and excerpt

        Raises:
            RequestValidationException: If question_count is out of range
        """
        if question_count is None:
            question_count = settings.default_num_questions
        self.check_question_count(question_count)

        excerpt = content.text[: self.max_excerpt_chars]
        instruction = PROMPT_TEMPLATE.format(
            count=question_count,
            language=LANGUAGE_NAMES.get(self.language, self.language),
            excerpt=excerpt,
            response_format=RESPONSE_FORMAT,
        )
        return Prompt(
            instruction=instruction, excerpt=excerpt, question_count=question_count
        )
