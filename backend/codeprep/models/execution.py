"""Execution service wire models and grading verdicts."""

from enum import IntEnum

from pydantic import BaseModel, Field


class Judge0Status(IntEnum):
    """Status ids reported by the execution service."""

    CONFIGURATION_ERROR = -1  # local only, never sent by the service
    IN_QUEUE = 1
    PROCESSING = 2
    ACCEPTED = 3
    WRONG_ANSWER = 4
    TIME_LIMIT_EXCEEDED = 5
    COMPILATION_ERROR = 6
    INTERNAL_ERROR = 13


class SubmissionStatus(BaseModel):
    id: int
    description: str = ""


class Judge0Submission(BaseModel):
    """Decoded response for one submission.

    Text fields are already base64-decoded by the client.
    """

    status: SubmissionStatus
    stdout: str | None = None
    stderr: str | None = None
    compile_output: str | None = None
    message: str | None = None
    time: float = 0.0
    memory: int = 0

    @property
    def accepted(self) -> bool:
        return self.status.id == Judge0Status.ACCEPTED

    @property
    def compilation_failed(self) -> bool:
        return self.status.id == Judge0Status.COMPILATION_ERROR

    def output_text(self) -> str:
        """First non-empty output channel, trimmed."""
        for text in (self.stdout, self.stderr, self.compile_output, self.message):
            if text and text.strip():
                return text.strip()
        return ""


class TestCaseResult(BaseModel):
    """Verdict for one test case."""

    __test__ = False

    input: str
    expected: str
    actual: str
    passed: bool
    hidden: bool = False


class ExecutionResult(BaseModel):
    """Verdict for a whole submission."""

    status: SubmissionStatus
    compile_output: str | None = None
    stderr: str | None = None
    message: str | None = None
    time: float = 0.0
    memory: int = 0
    test_case_results: list[TestCaseResult] = Field(default_factory=list)
    passed_tests: int = 0
    total_tests: int = 0

    @property
    def accepted(self) -> bool:
        return self.status.id == Judge0Status.ACCEPTED
