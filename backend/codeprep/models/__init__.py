"""Pydantic models for the CodePrep backend."""

from .execution import (
    ExecutionResult,
    Judge0Status,
    Judge0Submission,
    SubmissionStatus,
    TestCaseResult,
)
from .question import (
    CodingQuestion,
    Difficulty,
    MCQQuestion,
    Question,
    Quiz,
    TestCase,
    question_adapter,
    total_marks,
)
from .result import QuestionResult, QuestionStatus, QuizResult, ResultStatus
from .session import (
    SessionSnapshot,
    SessionState,
    SubmitOptions,
    SubmitOutcome,
    SubmitOutcomeKind,
    SubmitRequest,
    ViolationKind,
)

__all__ = [
    "CodingQuestion",
    "Difficulty",
    "ExecutionResult",
    "Judge0Status",
    "Judge0Submission",
    "MCQQuestion",
    "Question",
    "QuestionResult",
    "QuestionStatus",
    "Quiz",
    "QuizResult",
    "ResultStatus",
    "SessionSnapshot",
    "SessionState",
    "SubmissionStatus",
    "SubmitOptions",
    "SubmitOutcome",
    "SubmitOutcomeKind",
    "SubmitRequest",
    "TestCase",
    "TestCaseResult",
    "ViolationKind",
    "question_adapter",
    "total_marks",
]
