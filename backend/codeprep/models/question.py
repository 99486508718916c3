"""Question and quiz models.

Questions are a discriminated union on ``type``; scoring code matches on the
concrete class so a new question kind cannot silently fall through.
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, model_validator

from codeprep.config import settings


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class TestCase(BaseModel):
    """One stdin/stdout pair used to grade a coding answer."""

    __test__ = False  # not a pytest class

    input: str = ""
    expected_output: str = ""
    is_hidden: bool = Field(default=False, description="Never shown to the candidate")


class BaseQuestion(BaseModel):
    id: str
    title: str
    description: str = ""
    difficulty: Difficulty = Difficulty.MEDIUM
    mark: float | None = Field(default=None, ge=0, description="None means type default")


class MCQQuestion(BaseQuestion):
    """Multiple choice question with exactly one correct option."""

    type: Literal["mcq"] = "mcq"
    options: list[str] = Field(min_length=1)
    correct_option_index: int

    @model_validator(mode="after")
    def _check_correct_index(self) -> "MCQQuestion":
        if not 0 <= self.correct_option_index < len(self.options):
            raise ValueError(
                f"correct_option_index {self.correct_option_index} out of range "
                f"for {len(self.options)} options"
            )
        return self

    @property
    def max_score(self) -> float:
        return self.mark if self.mark is not None else settings.default_mcq_mark


class CodingQuestion(BaseQuestion):
    """Coding question graded against stdin/stdout test cases."""

    type: Literal["coding"] = "coding"
    language: str = Field(min_length=1, description="Tag resolved by the language registry")
    starter_code: str = ""
    test_cases: list[TestCase] = Field(min_length=1)

    @property
    def max_score(self) -> float:
        return self.mark if self.mark is not None else settings.default_coding_mark

    @property
    def visible_test_cases(self) -> list[TestCase]:
        return [tc for tc in self.test_cases if not tc.is_hidden]


Question = Annotated[Union[MCQQuestion, CodingQuestion], Field(discriminator="type")]

question_adapter: TypeAdapter[Question] = TypeAdapter(Question)


class Quiz(BaseModel):
    """An ordered set of questions taken in one attempt."""

    id: str
    title: str
    description: str = ""
    question_ids: list[str] = Field(default_factory=list)
    duration_minutes: int = Field(default=0, ge=0, description="0 = unlimited")


def total_marks(questions: list[Question]) -> float:
    """Total achievable marks for a list of questions."""
    return sum(q.max_score for q in questions)
