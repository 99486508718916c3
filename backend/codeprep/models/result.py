"""Per-question and per-attempt result models."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from .execution import TestCaseResult


class QuestionStatus(str, Enum):
    CORRECT = "correct"
    PARTIAL = "partial"
    INCORRECT = "incorrect"
    UNANSWERED = "unanswered"


class QuestionResult(BaseModel):
    """Outcome of scoring one question."""

    model_config = ConfigDict(frozen=True)

    question_id: str
    score: float
    total: float = Field(description="Maximum possible score for this question")
    status: QuestionStatus
    user_answer: str = ""
    test_case_results: list[TestCaseResult] | None = None


class ResultStatus(str, Enum):
    COMPLETED = "completed"
    TERMINATED = "terminated"  # forced by proctoring


class QuizResult(BaseModel):
    """Terminal record of an attempt. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    session_id: str
    quiz_id: str
    quiz_title: str = ""
    candidate_id: str
    score: float
    total_score: float
    status: ResultStatus = ResultStatus.COMPLETED
    answers: dict[str, QuestionResult]
    started_at: datetime
    completed_at: datetime
    time_taken_seconds: int = 0
    violation_count: int = 0
    termination_reason: str | None = None

    def for_candidate(self) -> "QuizResult":
        """Copy with hidden test case details removed."""
        answers = {}
        for qid, result in self.answers.items():
            if result.test_case_results is None:
                answers[qid] = result
                continue
            visible = [r for r in result.test_case_results if not r.hidden]
            answers[qid] = result.model_copy(update={"test_case_results": visible})
        return self.model_copy(update={"answers": answers})
