"""
Study AI - Test Configuration
Pytest fixtures and configuration for testing
"""
import json
from collections.abc import AsyncGenerator, Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from study_ai.ai.core.gateway import AIGatewayClient
from study_ai.ai.dispatcher import StudyAIDispatcher, get_dispatcher
from study_ai.main import app


GATEWAY_URL = "https://gateway.test/v1/chat/completions"


class FakeGateway:
    """
    Records requests sent to the upstream gateway and answers them with a
    canned httpx.Response built by ``responder``.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responder: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json=completion(""))
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def last_payload(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


def completion(content: str) -> dict[str, Any]:
    """Buffered chat completion body."""
    return {
        "model": "test-model",
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    }


def sse_line(content: str) -> str:
    """One streamed delta in the upstream's event stream framing."""
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]}, ensure_ascii=False) + "\n"


async def byte_chunks(*chunks: bytes):
    for chunk in chunks:
        yield chunk


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest_asyncio.fixture(scope="function")
async def gateway(fake_gateway: FakeGateway) -> AsyncGenerator[AIGatewayClient, None]:
    """Gateway client wired to the fake upstream."""
    client = AIGatewayClient(
        api_key="test-key",
        url=GATEWAY_URL,
        model="test-model",
        transport=httpx.MockTransport(fake_gateway.handler),
    )
    yield client
    await client.aclose()


@pytest_asyncio.fixture(scope="function")
async def client(gateway: AIGatewayClient) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with the dispatcher bound to the fake gateway."""

    def override_get_dispatcher() -> StudyAIDispatcher:
        return StudyAIDispatcher(gateway=gateway)

    app.dependency_overrides[get_dispatcher] = override_get_dispatcher

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def quiz_request_data() -> dict[str, Any]:
    """Quiz request as the practice page sends it."""
    return {
        "mode": "quiz",
        "subject": "Algorithms",
        "topic": "Greedy Algorithms",
        "difficulty": "medium",
        "questionType": "mcq",
        "messages": [{"role": "user", "content": "Generate quiz for Greedy Algorithms"}],
    }


@pytest.fixture
def sample_questions() -> dict[str, Any]:
    return {
        "questions": [
            {
                "question": "Which strategy does Kruskal's algorithm use?",
                "type": "mcq",
                "options": ["Greedy", "Dynamic programming", "Backtracking", "Brute force"],
                "correct_answer": "A",
                "explanation": "It always picks the cheapest safe edge.",
            }
        ]
    }
