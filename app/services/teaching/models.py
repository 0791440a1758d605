"""Teaching aid models."""
from enum import Enum
from typing import Union
from pydantic import BaseModel, Field, field_validator


class Difficulty(str, Enum):
    """Difficulty marker passed to the content generator."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    def __str__(self) -> str:
        return self.value


class TeachingPrompt(BaseModel):
    """A conversation-starter suggestion for the teaching participant."""

    question: str = Field(min_length=1)
    context: str = ""
    difficulty: Difficulty = Difficulty.INTERMEDIATE

    @field_validator("question")
    @classmethod
    def question_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("question must not be blank")
        return value


class GenerationOk(BaseModel):
    """Validated generator output."""

    prompt: TeachingPrompt


class GenerationError(BaseModel):
    """Generator failure with a short reason for the logs."""

    reason: str


GenerationResult = Union[GenerationOk, GenerationError]


class FetchResult(BaseModel):
    """What the fetcher hands back to the session."""

    prompt: TeachingPrompt
    fallback: bool = False


def normalize_question(question: str) -> str:
    """Key used to compare questions for duplicates."""
    return " ".join(question.lower().split())
