"""
Study AI - Client Tests
stream_chat and the buffered helpers, against a mocked endpoint and end to end.
"""
import json
from datetime import date

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

from conftest import completion, sse_line
from study_ai.ai.dispatcher import StudyAIDispatcher, get_dispatcher
from study_ai.client import StudyAIClient, StudyAIClientError, stream_chat
from study_ai.client.study_ai_client import (
    MISSING_BODY_MESSAGE,
    QUOTA_EXCEEDED_MESSAGE,
    RATE_LIMITED_MESSAGE,
)
from study_ai.core.errors import ErrorKind
from study_ai.main import app
from study_ai.schemas.chat import QuestionType, QuizQuestion


URL = "http://study.test/api/v1/study-ai"
MESSAGES = [{"role": "user", "content": "Explain deadlocks"}]


class Recorder:
    def __init__(self):
        self.deltas: list[str] = []
        self.done = 0
        self.errors: list[str] = []

    def on_delta(self, text: str):
        self.deltas.append(text)

    def on_done(self):
        self.done += 1

    def on_error(self, message: str):
        self.errors.append(message)


def mocked_client(handler) -> StudyAIClient:
    return StudyAIClient(url=URL, api_key="publishable", transport=httpx.MockTransport(handler))


async def run_stream(study_client: StudyAIClient, mode: str = "simple") -> Recorder:
    recorder = Recorder()
    await stream_chat(
        MESSAGES,
        mode,
        recorder.on_delta,
        recorder.on_done,
        recorder.on_error,
        subject="Operating Systems",
        topic="Deadlocks",
        client=study_client,
    )
    return recorder


@pytest_asyncio.fixture
async def app_client(gateway):
    """StudyAIClient talking to the real app, which talks to the fake gateway."""
    app.dependency_overrides[get_dispatcher] = lambda: StudyAIDispatcher(gateway=gateway)
    study_client = StudyAIClient(url="http://test/api/v1/study-ai", transport=ASGITransport(app=app))
    yield study_client
    await study_client.aclose()
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_stream_chat_sends_request_and_parses():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        body = sse_line("Four ") + ": ping\n" + sse_line("conditions.") + "data: [DONE]\n"
        return httpx.Response(200, content=body.encode(), headers={"content-type": "text/event-stream"})

    async with mocked_client(handler) as study_client:
        recorder = await run_stream(study_client)

    assert recorder.deltas == ["Four ", "conditions."]
    assert recorder.done == 1
    assert recorder.errors == []

    sent = json.loads(seen[0].content)
    assert sent == {
        "messages": MESSAGES,
        "mode": "simple",
        "subject": "Operating Systems",
        "topic": "Deadlocks",
    }
    assert seen[0].headers["authorization"] == "Bearer publishable"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status_code, message",
    [(429, RATE_LIMITED_MESSAGE), (402, QUOTA_EXCEEDED_MESSAGE)],
)
async def test_stream_chat_limit_errors(status_code, message):
    async with mocked_client(lambda request: httpx.Response(status_code, json={"error": "x"})) as study_client:
        recorder = await run_stream(study_client)

    assert recorder.errors == [message]
    assert recorder.deltas == []
    assert recorder.done == 0


@pytest.mark.asyncio
async def test_stream_chat_generic_error_uses_body():
    body = '{"error":"AI error","code":"upstream_error"}'
    async with mocked_client(lambda request: httpx.Response(500, text=body)) as study_client:
        recorder = await run_stream(study_client)
    assert recorder.errors == [body]
    assert recorder.done == 0


@pytest.mark.asyncio
async def test_stream_chat_generic_error_without_body():
    async with mocked_client(lambda request: httpx.Response(500)) as study_client:
        recorder = await run_stream(study_client)
    assert recorder.errors == ["Failed to get AI response"]


@pytest.mark.asyncio
async def test_stream_chat_missing_body():
    async with mocked_client(lambda request: httpx.Response(204)) as study_client:
        recorder = await run_stream(study_client)
    assert recorder.errors == [MISSING_BODY_MESSAGE]
    assert recorder.done == 0


@pytest.mark.asyncio
async def test_stream_chat_end_to_end(app_client, fake_gateway):
    body = (sse_line("Mutual ") + sse_line("exclusion") + "data: [DONE]\n").encode()
    fake_gateway.responder = lambda request: httpx.Response(200, content=body)

    recorder = await run_stream(app_client, mode="real-world")

    assert recorder.deltas == ["Mutual ", "exclusion"]
    assert recorder.done == 1
    assert "Current topic: Deadlocks" in fake_gateway.last_payload["messages"][0]["content"]


@pytest.mark.asyncio
async def test_stream_chat_end_to_end_rate_limited(app_client, fake_gateway):
    fake_gateway.responder = lambda request: httpx.Response(429)
    recorder = await run_stream(app_client)
    assert recorder.errors == [RATE_LIMITED_MESSAGE]


@pytest.mark.asyncio
async def test_generate_quiz(app_client, fake_gateway, sample_questions):
    fake_gateway.responder = lambda request: httpx.Response(
        200, json=completion("```json\n" + json.dumps(sample_questions) + "\n```")
    )

    questions = await app_client.generate_quiz(
        "Algorithms", "Greedy Algorithms", difficulty="hard", question_type=QuestionType.MCQ
    )

    assert len(questions) == 1
    assert questions[0].options[0] == "Greedy"
    assert questions[0].is_correct(" a ")

    sent_prompt = fake_gateway.last_payload["messages"][0]["content"]
    assert "Difficulty level: hard" in sent_prompt
    assert fake_gateway.last_payload["messages"][1]["content"] == "Generate quiz for Greedy Algorithms"


@pytest.mark.asyncio
async def test_generate_quiz_malformed(app_client, fake_gateway):
    fake_gateway.responder = lambda request: httpx.Response(200, json=completion("Sorry, no quiz today"))

    with pytest.raises(StudyAIClientError) as exc_info:
        await app_client.generate_quiz("DBMS", "Indexing")

    assert exc_info.value.kind is ErrorKind.MALFORMED_UPSTREAM_PAYLOAD
    assert exc_info.value.status_code == 500
    assert exc_info.value.raw == "Sorry, no quiz today"


@pytest.mark.asyncio
async def test_generate_notes(app_client, fake_gateway):
    fake_gateway.responder = lambda request: httpx.Response(200, json=completion("## Paging"))
    assert await app_client.generate_notes("Paging splits memory into frames.") == "## Paging"
    assert fake_gateway.last_payload["messages"][1]["content"] == "Paging splits memory into frames."


@pytest.mark.asyncio
async def test_generate_plan(app_client, fake_gateway):
    fake_gateway.responder = lambda request: httpx.Response(200, json=completion("Day 1: Sorting"))

    plan = await app_client.generate_plan(date(2026, 12, 1), 3, ["os", "algorithms", "unknown"])

    assert plan == "Day 1: Sorting"
    assert fake_gateway.last_payload["messages"][1]["content"] == (
        "Create a study plan. Exam date: 2026-12-01. Available study hours per day: 3. "
        "Subjects: Algorithms, Operating Systems."
    )


@pytest.mark.asyncio
async def test_buffered_quota_error(app_client, fake_gateway):
    fake_gateway.responder = lambda request: httpx.Response(402)

    with pytest.raises(StudyAIClientError) as exc_info:
        await app_client.generate_notes("text")

    assert exc_info.value.kind is ErrorKind.QUOTA_EXCEEDED
    assert exc_info.value.message == "Payment required"


def test_quiz_question_answer_check():
    question = QuizQuestion(
        question="Define a trie.",
        type="short",
        correct_answer="A prefix tree",
        explanation="Keys share prefixes.",
    )
    assert question.is_correct("  a PREFIX tree ")
    assert not question.is_correct("A suffix tree")
    assert question.options is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status_code, kind, message",
    [
        (429, ErrorKind.RATE_LIMITED, RATE_LIMITED_MESSAGE),
        (402, ErrorKind.QUOTA_EXCEEDED, QUOTA_EXCEEDED_MESSAGE),
        (503, ErrorKind.UPSTREAM_ERROR, "Failed to get AI response"),
    ],
)
async def test_buffered_empty_error_body_classified_by_status(status_code, kind, message):
    async with mocked_client(lambda request: httpx.Response(status_code)) as study_client:
        with pytest.raises(StudyAIClientError) as exc_info:
            await study_client.generate_notes("text")

    assert exc_info.value.kind is kind
    assert exc_info.value.message == message
    assert exc_info.value.status_code == status_code


@pytest.mark.asyncio
async def test_buffered_success_without_body_is_missing_body():
    async with mocked_client(lambda request: httpx.Response(200)) as study_client:
        with pytest.raises(StudyAIClientError) as exc_info:
            await study_client.generate_plan("2026-12-01", 2, ["os"])

    assert exc_info.value.kind is ErrorKind.MISSING_BODY
    assert exc_info.value.message == MISSING_BODY_MESSAGE


@pytest.mark.asyncio
async def test_notes_payload_without_notes_is_malformed():
    async with mocked_client(lambda request: httpx.Response(200, json={"plan": "wrong mode"})) as study_client:
        with pytest.raises(StudyAIClientError) as exc_info:
            await study_client.generate_notes("text")

    assert exc_info.value.kind is ErrorKind.MALFORMED_UPSTREAM_PAYLOAD
    assert json.loads(exc_info.value.raw) == {"plan": "wrong mode"}
