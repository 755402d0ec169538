"""Pydantic models for the generation pipeline."""

from typing import Annotated, List

from pydantic import BaseModel, ConfigDict, Field, model_validator

from testgen.config import settings


class Question(BaseModel):
    """A single validated multiple-choice question."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    # strict: no coercion, "1" is not an answer index and 1.5 is not an int
    question: str = Field(..., min_length=10, strict=True)
    options: List[Annotated[str, Field(min_length=1, strict=True)]] = Field(
        ..., min_length=4, max_length=4
    )
    correct_answer: int = Field(..., ge=0, le=3, strict=True)
    explanation: str = Field(..., min_length=15, strict=True)


class AggregatedContent(BaseModel):
    """Text merged from a batch of documents, with its provenance."""

    text: str
    source_names: List[str] = Field(default_factory=list)
    total_chars: int = Field(..., ge=0)

    @model_validator(mode="after")
    def check_total_chars(self) -> "AggregatedContent":
        if self.total_chars != len(self.text):
            raise ValueError("total_chars must equal len(text)")
        return self

    @classmethod
    def from_parts(cls, text: str, source_names: List[str]) -> "AggregatedContent":
        return cls(text=text, source_names=list(source_names), total_chars=len(text))


class Prompt(BaseModel):
    """Instruction sent to the LLM and the excerpt embedded in it."""

    model_config = ConfigDict(frozen=True)

    instruction: str
    excerpt: str
    question_count: int


class GenerateTestRequest(BaseModel):
    """Request body for test generation."""

    pdf_ids: List[str] = Field(
        ..., min_length=1, description="Ordered document ids to build the test from"
    )
    num_questions: int = Field(
        default=settings.default_num_questions,
        description="Number of questions to generate",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "pdf_ids": ["0b6c7a52-0d4f-4b7e-9a55-3f1f9a0b1c2d"],
                "num_questions": 10,
            }
        }
    }
