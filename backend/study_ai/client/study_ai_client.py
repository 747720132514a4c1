"""
Study AI - HTTP Client
Caller side of the study-ai endpoint: streaming explanations and the
buffered quiz / notes / planner requests.
"""
import json
import logging
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, ValidationError

from study_ai.catalog import subject_names
from study_ai.client.stream_parser import ChunkStreamParser, parse_stream
from study_ai.core.config import settings
from study_ai.core.errors import ErrorKind
from study_ai.schemas.chat import (
    Difficulty,
    ErrorResponse,
    Message,
    Mode,
    NotesResponse,
    PlanResponse,
    QuestionType,
    QuizQuestion,
    QuizResponse,
)

logger = logging.getLogger(__name__)


RATE_LIMITED_MESSAGE = "Too many requests. Please wait a moment and try again."
QUOTA_EXCEEDED_MESSAGE = "AI usage limit reached. Please try again later."
GENERIC_FAILURE_MESSAGE = "Failed to get AI response"
MISSING_BODY_MESSAGE = "No response body"

LIMIT_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.RATE_LIMITED: RATE_LIMITED_MESSAGE,
    ErrorKind.QUOTA_EXCEEDED: QUOTA_EXCEEDED_MESSAGE,
}

MessageLike = Union[Message, Dict[str, str]]
ResponseModel = TypeVar("ResponseModel", bound=BaseModel)


class StudyAIClientError(Exception):
    """A buffered request failed."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status_code: Optional[int] = None,
        raw: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.raw = raw


def kind_for_status(status_code: int) -> ErrorKind:
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    if status_code == 402:
        return ErrorKind.QUOTA_EXCEEDED
    return ErrorKind.UPSTREAM_ERROR


def _has_no_body(response: httpx.Response) -> bool:
    return response.status_code == 204 or response.headers.get("content-length") == "0"


class StudyAIClient:
    """
    Async client for the study-ai endpoint.

    Usage:
        async with StudyAIClient() as client:
            await client.stream_chat(messages, "simple", on_delta=print, on_done=lambda: None)
            questions = await client.generate_quiz("Algorithms", "Greedy Algorithms")
    """

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.STUDY_AI_URL
        self.api_key = api_key if api_key is not None else settings.STUDY_AI_PUBLISHABLE_KEY
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self._transport = transport

        self._http: Optional[httpx.AsyncClient] = None

    @property
    def http(self) -> httpx.AsyncClient:
        """Lazy-load the HTTP client."""
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "StudyAIClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @staticmethod
    def _body(messages: Sequence[MessageLike], mode: "Mode | str", **extras: Any) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "messages": [Message.model_validate(m).model_dump(mode="json") for m in messages],
            "mode": mode.value if isinstance(mode, Mode) else mode,
        }
        for key, value in extras.items():
            if value is not None:
                body[key] = value.value if isinstance(value, Enum) else value
        return body

    # =========================================================================
    # Streaming
    # =========================================================================

    async def stream_chat(
        self,
        messages: Sequence[MessageLike],
        mode: "Mode | str",
        on_delta: Callable[[str], None],
        on_done: Callable[[], None],
        on_error: Optional[Callable[[str], None]] = None,
        subject: Optional[str] = None,
        topic: Optional[str] = None,
    ) -> None:
        """
        Ask for a streamed explanation.

        Deltas are delivered to ``on_delta`` in order, then ``on_done`` once.
        A failed request calls ``on_error`` once instead and nothing else.
        """
        def report(message: str) -> None:
            logger.warning(f"study-ai stream failed: {message}")
            if on_error is not None:
                on_error(message)

        body = self._body(messages, mode, subject=subject, topic=topic)

        async with self.http.stream("POST", self.url, headers=self._headers(), json=body) as response:
            if not response.is_success:
                if response.status_code == 429:
                    report(RATE_LIMITED_MESSAGE)
                    return
                if response.status_code == 402:
                    report(QUOTA_EXCEEDED_MESSAGE)
                    return
                text = (await response.aread()).decode("utf-8", errors="replace")
                report(text or GENERIC_FAILURE_MESSAGE)
                return

            if _has_no_body(response):
                report(MISSING_BODY_MESSAGE)
                return

            await parse_stream(
                response.aiter_bytes(),
                on_delta=on_delta,
                on_done=on_done,
                on_error=on_error,
                parser=ChunkStreamParser(),
            )

    # =========================================================================
    # Buffered modes
    # =========================================================================

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        """Raise the StudyAIClientError for a failed buffered response."""
        try:
            error = ErrorResponse.model_validate(response.json())
        except ValueError:
            # Empty or foreign error bodies are classified by status alone
            kind = kind_for_status(response.status_code)
            raise StudyAIClientError(
                kind,
                LIMIT_MESSAGES.get(kind) or response.text or GENERIC_FAILURE_MESSAGE,
                status_code=response.status_code,
            ) from None

        try:
            kind = ErrorKind(error.code)
        except ValueError:
            kind = kind_for_status(response.status_code)
        raise StudyAIClientError(kind, error.error, status_code=response.status_code, raw=error.raw)

    @staticmethod
    def _validate(model: Type[ResponseModel], data: Dict[str, Any], message: str) -> ResponseModel:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise StudyAIClientError(
                ErrorKind.MALFORMED_UPSTREAM_PAYLOAD, message, raw=json.dumps(data)
            ) from e

    async def _post_buffered(self, body: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.http.post(self.url, headers=self._headers(), json=body)

        if not response.is_success:
            self._raise_for_error(response)

        if not response.content:
            raise StudyAIClientError(
                ErrorKind.MISSING_BODY, MISSING_BODY_MESSAGE, status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError:
            data = None

        if not isinstance(data, dict):
            raise StudyAIClientError(
                ErrorKind.MALFORMED_UPSTREAM_PAYLOAD,
                "Unexpected response payload",
                status_code=response.status_code,
                raw=response.text,
            )
        return data

    async def generate_quiz(
        self,
        subject: str,
        topic: str,
        difficulty: "Difficulty | str" = Difficulty.MEDIUM,
        question_type: "QuestionType | str" = QuestionType.MCQ,
    ) -> List[QuizQuestion]:
        """Generate a practice quiz for a topic."""
        body = self._body(
            [{"role": "user", "content": f"Generate quiz for {topic}"}],
            Mode.QUIZ,
            subject=subject,
            topic=topic,
            difficulty=difficulty,
            questionType=question_type,
        )
        data = await self._post_buffered(body)
        if "questions" not in data:
            raise StudyAIClientError(
                ErrorKind.MALFORMED_UPSTREAM_PAYLOAD,
                "Failed to generate questions",
                raw=json.dumps(data),
            )
        return self._validate(QuizResponse, data, "Failed to generate questions").questions

    async def generate_notes(self, text: str) -> str:
        """Turn lecture text into study notes."""
        data = await self._post_buffered(
            self._body([{"role": "user", "content": text}], Mode.NOTES)
        )
        return self._validate(NotesResponse, data, "Unexpected notes payload").notes

    async def generate_plan(
        self,
        exam_date: "date | str",
        daily_hours: "int | float | str",
        subject_ids: List[str],
    ) -> str:
        """Build a day-by-day study plan up to the exam date."""
        exam_day = exam_date.isoformat() if isinstance(exam_date, date) else exam_date
        content = (
            f"Create a study plan. Exam date: {exam_day}. "
            f"Available study hours per day: {daily_hours}. "
            f"Subjects: {', '.join(subject_names(subject_ids))}."
        )
        data = await self._post_buffered(
            self._body([{"role": "user", "content": content}], Mode.PLANNER)
        )
        return self._validate(PlanResponse, data, "Unexpected plan payload").plan


async def stream_chat(
    messages: Sequence[MessageLike],
    mode: "Mode | str",
    on_delta: Callable[[str], None],
    on_done: Callable[[], None],
    on_error: Optional[Callable[[str], None]] = None,
    subject: Optional[str] = None,
    topic: Optional[str] = None,
    client: Optional[StudyAIClient] = None,
) -> None:
    """Stream one explanation, using ``client`` or a short-lived default one."""
    if client is not None:
        await client.stream_chat(messages, mode, on_delta, on_done, on_error, subject, topic)
        return

    async with StudyAIClient() as default_client:
        await default_client.stream_chat(messages, mode, on_delta, on_done, on_error, subject, topic)
