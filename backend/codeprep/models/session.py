"""Proctored session state exposed to the host page."""

from enum import Enum

from pydantic import BaseModel, Field

from .result import QuizResult


class SessionState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    TERMINATED = "terminated"


class ViolationKind(str, Enum):
    FULLSCREEN_EXIT = "fullscreen_exit"
    TAB_HIDDEN = "tab_hidden"


class QuestionMarker(BaseModel):
    """Sidebar entry for one question."""

    question_id: str
    answered: bool
    flagged: bool


class SessionSnapshot(BaseModel):
    """Everything needed to render the attempt UI."""

    session_id: str
    quiz_id: str
    state: SessionState
    current_index: int
    question_count: int
    questions: list[QuestionMarker]
    violation_count: int
    max_violations: int
    fullscreen_overlay: bool
    warning: str | None = None
    submitting: bool


class SubmitOptions(BaseModel):
    """Internal submit options. Only proctoring sets ``termination_reason``."""

    confirm_unanswered: bool = False
    termination_reason: str | None = None


class SubmitRequest(BaseModel):
    """Body of the candidate's submit call."""

    confirm_unanswered: bool = False


class SubmitOutcomeKind(str, Enum):
    SUBMITTED = "submitted"
    NEEDS_CONFIRMATION = "needs_confirmation"
    IGNORED = "ignored"  # another submission already owns the write


class SubmitOutcome(BaseModel):
    kind: SubmitOutcomeKind
    answered_count: int = 0
    question_count: int = 0
    message: str | None = None
    result: QuizResult | None = None


class AnswerUpdate(BaseModel):
    answer: str


class NavigateRequest(BaseModel):
    index: int


class FullscreenEvent(BaseModel):
    is_fullscreen: bool


class VisibilityEvent(BaseModel):
    hidden: bool


class StartAttemptRequest(BaseModel):
    quiz_id: str
    candidate_id: str
    session_id: str | None = Field(default=None, description="Reuse to resume after reload")
    fullscreen_entered: bool = False


class RunCodeRequest(BaseModel):
    question_id: str
    source_code: str


class ProctoringEventResponse(BaseModel):
    snapshot: SessionSnapshot
    outcome: SubmitOutcome | None = None
