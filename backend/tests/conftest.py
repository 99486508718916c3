import base64
import json
from collections.abc import Callable

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from codeprep.db.models import Base
from codeprep.models.question import CodingQuestion, MCQQuestion, Quiz, TestCase
from codeprep.services.checkpoint import MemoryCheckpointStore
from codeprep.services.document_store import DocumentStore
from codeprep.services.grading import GradingEngine
from codeprep.services.judge0 import Judge0Client
from codeprep.services.languages import LanguageRegistry


def b64(text: str | None) -> str | None:
    if text is None:
        return None
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def judge0_response(
    status_id: int,
    stdout: str | None = None,
    stderr: str | None = None,
    compile_output: str | None = None,
    time: str = "0.010",
    memory: int = 1024,
) -> httpx.Response:
    descriptions = {3: "Accepted", 4: "Wrong Answer", 6: "Compilation Error", 11: "Runtime Error (NZEC)"}
    return httpx.Response(
        200,
        json={
            "status": {"id": status_id, "description": descriptions.get(status_id, "Other")},
            "stdout": b64(stdout),
            "stderr": b64(stderr),
            "compile_output": b64(compile_output),
            "message": None,
            "time": time,
            "memory": memory,
        },
    )


class FakeJudge0:
    """Stands in for the execution service.

    ``responder(stdin, request)`` returns the response for a test case run;
    the compilation probe (no stdin) is answered by ``probe``.
    """

    def __init__(
        self,
        responder: Callable[[str, httpx.Request], httpx.Response] | None = None,
        probe: Callable[[httpx.Request], httpx.Response] | None = None,
    ):
        self.responder = responder or self.echo_expected
        self.probe = probe or (lambda request: judge0_response(3, stdout=""))
        self.requests: list[dict] = []

    @staticmethod
    def echo_expected(stdin: str, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        expected = base64.b64decode(payload.get("expected_output") or "").decode()
        return judge0_response(3, stdout=expected + "\n")

    @property
    def case_requests(self) -> list[dict]:
        return [r for r in self.requests if "stdin" in r]

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        if "stdin" not in payload:
            return self.probe(request)
        stdin = base64.b64decode(payload["stdin"]).decode()
        return self.responder(stdin, request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_judge0() -> FakeJudge0:
    return FakeJudge0()


@pytest.fixture
def make_grader():
    def _make(fake: FakeJudge0, api_key: str = "test-key") -> GradingEngine:
        client = Judge0Client(
            base_url="https://judge0.test",
            api_key=api_key,
            timeout=5.0,
            transport=fake.transport(),
        )
        return GradingEngine(client, LanguageRegistry())

    return _make


@pytest.fixture
def grader(make_grader, fake_judge0) -> GradingEngine:
    return make_grader(fake_judge0)


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def store(session_factory) -> DocumentStore:
    return DocumentStore(session_factory)


@pytest.fixture
def checkpoints() -> MemoryCheckpointStore:
    return MemoryCheckpointStore()


@pytest.fixture
def mcq_question() -> MCQQuestion:
    return MCQQuestion(
        id="q-mcq",
        title="Capital of France",
        options=["Berlin", "Paris", "Rome"],
        correct_option_index=1,
        mark=2,
    )


@pytest.fixture
def coding_question() -> CodingQuestion:
    return CodingQuestion(
        id="q-code",
        title="Double it",
        language="python",
        test_cases=[
            TestCase(input="1", expected_output="2"),
            TestCase(input="2", expected_output="4"),
            TestCase(input="3", expected_output="6", is_hidden=True),
            TestCase(input="4", expected_output="8", is_hidden=True),
        ],
        mark=10,
    )


@pytest.fixture
def quiz(mcq_question, coding_question) -> Quiz:
    return Quiz(
        id="quiz-1",
        title="Mixed quiz",
        question_ids=[mcq_question.id, coding_question.id],
        duration_minutes=30,
    )
