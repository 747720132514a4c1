"""
Study AI - Mode Dispatcher
Routes a chat request to a buffered or streaming gateway call and shapes the response.
"""
import json
import logging
import re
from typing import Any, Callable, Dict, Optional

from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask
from starlette.responses import Response

from study_ai.ai.core.gateway import (
    AIGatewayClient,
    GatewayConfigError,
    QuotaExceededError,
    RateLimitedError,
    UpstreamError,
    get_gateway_client,
)
from study_ai.ai.core.telemetry import ai_span
from study_ai.ai.prompts import is_buffered, resolve_system_prompt
from study_ai.core.errors import ErrorKind, StudyAIError
from study_ai.schemas.chat import ChatRequest, Mode

logger = logging.getLogger(__name__)


_FENCE_OPEN = re.compile(r"^```(?:json)?\n?")
_FENCE_CLOSE = re.compile(r"\n?```$")


def strip_code_fence(text: str) -> str:
    """Remove one enclosing triple-backtick block (optionally tagged json)."""
    text = text.strip()
    if text.startswith("```"):
        text = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text, count=1), count=1)
    return text


def parse_quiz_payload(content: str) -> Any:
    """
    Parse the quiz completion as JSON.

    Raises:
        StudyAIError: MALFORMED_UPSTREAM_PAYLOAD with the raw text attached.
    """
    try:
        return json.loads(strip_code_fence(content))
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse quiz JSON: {e} Content: {content[:500]}")
        raise StudyAIError(
            ErrorKind.MALFORMED_UPSTREAM_PAYLOAD,
            "Failed to generate questions",
            raw=content,
        ) from e


class StudyAIDispatcher:
    """
    Serves one study-ai request per call.

    Buffered modes (quiz, notes, planner) wait for the whole completion and
    return JSON; every other mode passes the gateway's event stream through.
    """

    def __init__(self, gateway: Optional[AIGatewayClient] = None):
        self.gateway = gateway or get_gateway_client()

        self._shapers: Dict[Mode, Callable[[str], Any]] = {
            Mode.QUIZ: parse_quiz_payload,
            Mode.NOTES: lambda content: {"notes": content},
            Mode.PLANNER: lambda content: {"plan": content},
        }

    async def handle(self, request: ChatRequest) -> Response:
        """
        Serve a chat request.

        Args:
            request: Validated request body.

        Returns:
            JSONResponse for buffered modes, StreamingResponse otherwise.

        Raises:
            StudyAIError: for every failure in the taxonomy.
        """
        with ai_span("study_ai.dispatch", "StudyAIDispatcher", {"mode": request.mode.value}):
            try:
                system_prompt = resolve_system_prompt(
                    request.mode,
                    subject=request.subject,
                    topic=request.topic,
                    difficulty=request.difficulty,
                    question_type=request.question_type,
                )
                if is_buffered(request.mode):
                    return await self._buffered(request, system_prompt)
                return await self._streaming(request, system_prompt)
            except StudyAIError:
                raise
            except RateLimitedError as e:
                raise StudyAIError(ErrorKind.RATE_LIMITED, "Rate limited") from e
            except QuotaExceededError as e:
                raise StudyAIError(ErrorKind.QUOTA_EXCEEDED, "Payment required") from e
            except UpstreamError as e:
                raise StudyAIError(ErrorKind.UPSTREAM_ERROR, "AI error") from e
            except GatewayConfigError as e:
                logger.error(f"study-ai error: {e}")
                raise StudyAIError(ErrorKind.INTERNAL_ERROR, str(e)) from e
            except Exception as e:
                logger.exception("study-ai error")
                raise StudyAIError(ErrorKind.INTERNAL_ERROR, str(e) or "Unknown error") from e

    async def _buffered(self, request: ChatRequest, system_prompt: str) -> JSONResponse:
        completion = await self.gateway.complete(system_prompt, request.messages)
        content = completion.content
        logger.info(f"AI response mode: {request.mode.value} length: {len(content)}")

        shape = self._shapers[request.mode]
        return JSONResponse(content=shape(content))

    async def _streaming(self, request: ChatRequest, system_prompt: str) -> StreamingResponse:
        upstream = await self.gateway.open_stream(system_prompt, request.messages)
        return StreamingResponse(
            upstream.aiter_bytes(),
            media_type="text/event-stream",
            background=BackgroundTask(upstream.aclose),
        )


def get_dispatcher() -> StudyAIDispatcher:
    """FastAPI dependency returning a dispatcher on the default gateway client."""
    return StudyAIDispatcher()
