import httpx
import pytest

from codeprep.exceptions import UnsupportedLanguageError
from codeprep.models.execution import Judge0Status
from codeprep.models.question import CodingQuestion, MCQQuestion, TestCase
from codeprep.models.result import QuestionStatus
from codeprep.services.grading import EXECUTION_FAILED, EXECUTION_TIMED_OUT

from .conftest import FakeJudge0, judge0_response


def doubling(stdin: str, request: httpx.Request) -> httpx.Response:
    """Fake a program that prints 2 * n but gets n == 3 wrong."""
    n = int(stdin)
    if n == 3:
        return judge0_response(4, stdout="7", time="0.020", memory=900)
    return judge0_response(3, stdout=f"{n * 2}\n", time="0.010", memory=1000 + n)


async def test_all_cases_pass_is_accepted(make_grader, coding_question) -> None:
    fake = FakeJudge0()
    result = await make_grader(fake).execute("src", "python", coding_question.test_cases)

    assert result.status.id == Judge0Status.ACCEPTED
    assert result.status.description == "Accepted"
    assert result.passed_tests == result.total_tests == 4
    assert all(r.passed for r in result.test_case_results)
    assert len(fake.case_requests) == 4


async def test_partial_pass_is_wrong_answer_with_sum_time_and_max_memory(
    make_grader, coding_question
) -> None:
    fake = FakeJudge0(responder=doubling)
    result = await make_grader(fake).execute("src", "python", coding_question.test_cases)

    assert result.status.description == "Wrong Answer"
    assert result.passed_tests == 3
    assert result.total_tests == 4
    assert [r.passed for r in result.test_case_results] == [True, True, False, True]
    assert result.test_case_results[0].actual == "2"  # trimmed
    assert result.test_case_results[2].actual == "7"
    assert result.time == pytest.approx(0.05)
    assert result.memory == 1004


async def test_accepted_case_with_empty_output_is_not_reported_as_failure(make_grader) -> None:
    cases = [TestCase(input="5", expected_output="")]
    result = await make_grader(FakeJudge0()).execute("pass", "python", cases)
    assert result.status.description == "Accepted"
    assert result.test_case_results[0].passed
    assert result.test_case_results[0].actual == ""


async def test_results_keep_test_case_order_and_hidden_flag(make_grader, coding_question) -> None:
    result = await make_grader(FakeJudge0()).execute("src", "python", coding_question.test_cases)
    assert [r.input for r in result.test_case_results] == ["1", "2", "3", "4"]
    assert [r.hidden for r in result.test_case_results] == [False, False, True, True]


async def test_compilation_error_short_circuits(make_grader, coding_question) -> None:
    fake = FakeJudge0(
        probe=lambda request: judge0_response(6, compile_output="SyntaxError: invalid syntax\n")
    )
    result = await make_grader(fake).execute("def (", "python", coding_question.test_cases)

    assert result.status.description == "Compilation Error"
    assert result.compile_output == "SyntaxError: invalid syntax"
    assert result.passed_tests == 0
    assert result.total_tests == 4
    assert len(result.test_case_results) == 4
    assert not any(r.passed for r in result.test_case_results)
    assert all("SyntaxError" in r.actual for r in result.test_case_results)
    assert fake.case_requests == []
    assert len(fake.requests) == 1


async def test_runtime_error_on_probe_does_not_short_circuit(make_grader, coding_question) -> None:
    # Programs that need stdin may crash on an empty probe; only compile errors stop the run.
    fake = FakeJudge0(probe=lambda request: judge0_response(11, stderr="EOFError"))
    result = await make_grader(fake).execute("src", "python", coding_question.test_cases)
    assert result.status.description == "Accepted"
    assert len(fake.case_requests) == 4


async def test_one_transport_failure_is_isolated(make_grader, coding_question) -> None:
    def flaky(stdin: str, request: httpx.Request) -> httpx.Response:
        if stdin == "2":
            raise httpx.ConnectError("connection reset", request=request)
        return FakeJudge0.echo_expected(stdin, request)

    result = await make_grader(FakeJudge0(responder=flaky)).execute(
        "src", "python", coding_question.test_cases
    )

    assert result.passed_tests == 3
    assert result.status.description == "Wrong Answer"
    failed = result.test_case_results[1]
    assert failed.passed is False
    assert failed.actual.startswith(EXECUTION_FAILED)


async def test_timeout_marks_case_as_timed_out(make_grader, coding_question) -> None:
    def slow(stdin: str, request: httpx.Request) -> httpx.Response:
        if stdin == "4":
            raise httpx.ReadTimeout("deadline", request=request)
        return FakeJudge0.echo_expected(stdin, request)

    result = await make_grader(FakeJudge0(responder=slow)).execute(
        "src", "python", coding_question.test_cases
    )
    assert result.passed_tests == 3
    assert result.test_case_results[3].actual.startswith(EXECUTION_TIMED_OUT)


async def test_probe_transport_failure_returns_internal_error(make_grader, coding_question) -> None:
    def down(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("service down", request=request)

    fake = FakeJudge0(probe=down)
    result = await make_grader(fake).execute("src", "python", coding_question.test_cases)

    assert result.status.description == "Internal Error"
    assert result.passed_tests == 0
    assert len(result.test_case_results) == 4
    assert fake.case_requests == []


async def test_zero_test_cases_is_never_accepted(make_grader) -> None:
    result = await make_grader(FakeJudge0()).execute("src", "python", [])
    assert result.status.description == "Wrong Answer"
    assert result.passed_tests == 0
    assert result.total_tests == 0


async def test_unsupported_language_fails_before_any_call(make_grader) -> None:
    fake = FakeJudge0()
    with pytest.raises(UnsupportedLanguageError):
        await make_grader(fake).execute("src", "cobol", [TestCase(input="1", expected_output="1")])
    assert fake.requests == []


async def test_missing_api_key_returns_configuration_error(make_grader, coding_question) -> None:
    fake = FakeJudge0()
    result = await make_grader(fake, api_key="").execute("src", "python", coding_question.test_cases)
    assert result.status.id == Judge0Status.CONFIGURATION_ERROR
    assert result.passed_tests == 0
    assert fake.requests == []


async def test_run_visible_skips_hidden_cases(make_grader, coding_question) -> None:
    fake = FakeJudge0()
    result = await make_grader(fake).run_visible(coding_question, "src")
    assert result.total_tests == 2
    assert len(fake.case_requests) == 2
    assert not any(r.hidden for r in result.test_case_results)


# --- Scoring ---


async def test_mcq_correct_answer_scores_full_mark(grader, mcq_question) -> None:
    result = await grader.score_question(mcq_question, "1")
    assert result.status == QuestionStatus.CORRECT
    assert result.score == 2
    assert result.total == 2


async def test_mcq_wrong_answer_scores_zero(grader, mcq_question) -> None:
    result = await grader.score_question(mcq_question, "0")
    assert result.status == QuestionStatus.INCORRECT
    assert result.score == 0


@pytest.mark.parametrize("answer", [None, "", "   "])
async def test_blank_answer_is_unanswered_and_not_executed(
    make_grader, coding_question, answer
) -> None:
    fake = FakeJudge0()
    result = await make_grader(fake).score_question(coding_question, answer)
    assert result.status == QuestionStatus.UNANSWERED
    assert result.score == 0
    assert result.total == 10
    assert fake.requests == []


async def test_coding_partial_score(make_grader, coding_question) -> None:
    result = await make_grader(FakeJudge0(responder=doubling)).score_question(
        coding_question, "print(int(input()) * 2)"
    )
    assert result.status == QuestionStatus.PARTIAL
    assert result.score == pytest.approx(7.5)
    assert len(result.test_case_results) == 4


async def test_coding_full_and_zero_score(make_grader, coding_question) -> None:
    full = await make_grader(FakeJudge0()).score_question(coding_question, "src")
    assert full.status == QuestionStatus.CORRECT
    assert full.score == 10

    failing = FakeJudge0(responder=lambda stdin, request: judge0_response(4, stdout="nope"))
    zero = await make_grader(failing).score_question(coding_question, "src")
    assert zero.status == QuestionStatus.INCORRECT
    assert zero.score == 0


async def test_coding_compile_error_scores_incorrect(make_grader, coding_question) -> None:
    fake = FakeJudge0(probe=lambda request: judge0_response(6, compile_output="error"))
    result = await make_grader(fake).score_question(coding_question, "def (")
    assert result.status == QuestionStatus.INCORRECT
    assert result.score == 0
    assert all(not r.passed for r in result.test_case_results)


async def test_default_marks_by_type() -> None:
    mcq = MCQQuestion(id="m", title="t", options=["a", "b"], correct_option_index=0)
    code = CodingQuestion(
        id="c", title="t", language="java", test_cases=[TestCase(input="", expected_output="")]
    )
    assert mcq.max_score == 1
    assert code.max_score == 10
