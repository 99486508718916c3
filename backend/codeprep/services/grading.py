"""Grading engine for coding and multiple choice questions.

Coding answers are run against every test case on the execution service:

1. A compilation probe (no stdin). A compile failure short-circuits the run.
2. All test cases are submitted concurrently. A failed call marks only that
   test case as failed.
3. Verdicts are aggregated: time is summed, memory is the maximum.

Transport and timeout errors never escape ``execute``; the caller always
receives an ExecutionResult. Only configuration errors are raised.
"""

import asyncio
import logging

from codeprep.config import settings
from codeprep.exceptions import ExecutionError, ExecutionTimeoutError
from codeprep.models.execution import (
    ExecutionResult,
    Judge0Status,
    Judge0Submission,
    SubmissionStatus,
    TestCaseResult,
)
from codeprep.models.question import CodingQuestion, MCQQuestion, Question, TestCase
from codeprep.models.result import QuestionResult, QuestionStatus

from .judge0 import Judge0Client
from .languages import LanguageRegistry

logger = logging.getLogger(__name__)

ACCEPTED = SubmissionStatus(id=Judge0Status.ACCEPTED, description="Accepted")
WRONG_ANSWER = SubmissionStatus(id=Judge0Status.WRONG_ANSWER, description="Wrong Answer")
COMPILATION_ERROR = SubmissionStatus(
    id=Judge0Status.COMPILATION_ERROR, description="Compilation Error"
)
INTERNAL_ERROR = SubmissionStatus(id=Judge0Status.INTERNAL_ERROR, description="Internal Error")
CONFIGURATION_ERROR = SubmissionStatus(
    id=Judge0Status.CONFIGURATION_ERROR, description="Configuration Error"
)

EXECUTION_FAILED = "Execution failed"
EXECUTION_TIMED_OUT = "Execution timed out"


def _failure_marker(error: ExecutionError) -> str:
    prefix = EXECUTION_TIMED_OUT if isinstance(error, ExecutionTimeoutError) else EXECUTION_FAILED
    return f"{prefix}: {error}"


def _failed_cases(test_cases: list[TestCase], actual: str) -> list[TestCaseResult]:
    return [
        TestCaseResult(
            input=tc.input,
            expected=tc.expected_output,
            actual=actual,
            passed=False,
            hidden=tc.is_hidden,
        )
        for tc in test_cases
    ]


class GradingEngine:
    """Runs code submissions and scores answers. Holds no per-call state."""

    def __init__(self, client: Judge0Client, languages: LanguageRegistry):
        self.client = client
        self.languages = languages

    async def execute(
        self,
        source_code: str,
        language: str,
        test_cases: list[TestCase],
    ) -> ExecutionResult:
        """Run ``source_code`` against ``test_cases``.

        Raises:
            UnsupportedLanguageError: before any network call
        """
        language_id = await self.languages.resolve(language)
        total = len(test_cases)

        if not self.client.configured:
            logger.error("Judge0 API key is not set; cannot execute code")
            return ExecutionResult(
                status=CONFIGURATION_ERROR,
                compile_output="Configuration Error",
                stderr="API Key not configured. Please contact the administrator.",
                message="API key missing.",
                test_case_results=_failed_cases(test_cases, "Execution service not configured"),
                total_tests=total,
            )

        # 1. Compilation probe
        try:
            probe = await self.client.submit(language_id, source_code)
        except ExecutionError as e:
            logger.error(f"Compilation probe failed for {language}: {e}")
            return ExecutionResult(
                status=INTERNAL_ERROR,
                stderr=str(e),
                message=_failure_marker(e),
                test_case_results=_failed_cases(test_cases, _failure_marker(e)),
                total_tests=total,
            )

        if probe.compilation_failed:
            diagnostic = (probe.compile_output or probe.output_text()).strip()
            logger.info(f"Compilation error for {language} submission; skipping {total} test cases")
            return ExecutionResult(
                status=COMPILATION_ERROR,
                compile_output=diagnostic,
                stderr=probe.stderr,
                message=probe.message,
                test_case_results=_failed_cases(test_cases, diagnostic or "Compilation Error"),
                total_tests=total,
            )

        # 2. All test cases at once
        outcomes = await asyncio.gather(
            *(self._run_case(language_id, source_code, tc) for tc in test_cases)
        )

        # 3. Verdict
        results: list[TestCaseResult] = []
        elapsed = 0.0
        memory = 0
        for tc, outcome in zip(test_cases, outcomes):
            if isinstance(outcome, Judge0Submission):
                elapsed += outcome.time
                memory = max(memory, outcome.memory)
                results.append(TestCaseResult(
                    input=tc.input,
                    expected=tc.expected_output,
                    actual=outcome.output_text() or ("" if outcome.accepted else EXECUTION_FAILED),
                    passed=outcome.accepted,
                    hidden=tc.is_hidden,
                ))
            else:
                results.append(TestCaseResult(
                    input=tc.input,
                    expected=tc.expected_output,
                    actual=outcome,
                    passed=False,
                    hidden=tc.is_hidden,
                ))

        passed = sum(1 for r in results if r.passed)
        all_passed = total > 0 and passed == total
        return ExecutionResult(
            status=ACCEPTED if all_passed else WRONG_ANSWER,
            compile_output=probe.compile_output,
            stderr=None if all_passed else "One or more test cases failed.",
            message=(ACCEPTED if all_passed else WRONG_ANSWER).description,
            time=round(elapsed, 3),
            memory=memory,
            test_case_results=results,
            passed_tests=passed,
            total_tests=total,
        )

    async def _run_case(
        self, language_id: int, source_code: str, test_case: TestCase
    ) -> Judge0Submission | str:
        """Submission on success, failure marker text otherwise."""
        try:
            return await self.client.submit(
                language_id,
                source_code,
                stdin=test_case.input,
                expected_output=test_case.expected_output,
            )
        except ExecutionError as e:
            logger.warning(f"Test case execution failed: {e}")
            return _failure_marker(e)

    async def run_visible(self, question: CodingQuestion, source_code: str) -> ExecutionResult:
        """Run against the test cases the candidate is allowed to see."""
        return await self.execute(source_code, question.language, question.visible_test_cases)

    async def score_question(self, question: Question, answer: str | None) -> QuestionResult:
        """Score one answer. Blank answers are never executed."""
        max_score = question.max_score
        user_answer = answer or ""
        if not user_answer.strip():
            return QuestionResult(
                question_id=question.id,
                score=0,
                total=max_score,
                status=QuestionStatus.UNANSWERED,
                user_answer=user_answer,
            )

        match question:
            case MCQQuestion():
                correct = user_answer == str(question.correct_option_index)
                return QuestionResult(
                    question_id=question.id,
                    score=max_score if correct else 0,
                    total=max_score,
                    status=QuestionStatus.CORRECT if correct else QuestionStatus.INCORRECT,
                    user_answer=user_answer,
                )
            case CodingQuestion():
                execution = await self.execute(user_answer, question.language, question.test_cases)
                passed = sum(1 for r in execution.test_case_results if r.passed)
                total = len(question.test_cases)
                score = 0.0
                if total > 0:
                    score = round(passed / total * max_score, settings.score_precision)
                if total > 0 and passed == total:
                    status = QuestionStatus.CORRECT
                elif passed > 0:
                    status = QuestionStatus.PARTIAL
                else:
                    status = QuestionStatus.INCORRECT
                return QuestionResult(
                    question_id=question.id,
                    score=score,
                    total=max_score,
                    status=status,
                    user_answer=user_answer,
                    test_case_results=execution.test_case_results,
                )
            case _:
                raise TypeError(f"Unknown question type: {type(question).__name__}")
