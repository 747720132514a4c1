"""
Study AI - AI Gateway Client
Single-call access to the OpenAI-compatible chat completion gateway.
"""
import logging
from typing import Optional, Dict, Any, List, Sequence
from dataclasses import dataclass

import httpx

from study_ai.core.config import settings
from study_ai.ai.core.telemetry import ai_span, trace_llm_call
from study_ai.schemas.chat import Message

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base class for gateway failures."""


class GatewayConfigError(GatewayError):
    """The gateway credential is missing."""


class GatewayHTTPError(GatewayError):
    """The gateway answered with a non-success status."""

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"AI gateway returned {status_code}")
        self.status_code = status_code
        self.body = body


class RateLimitedError(GatewayHTTPError):
    """HTTP 429 from the gateway."""


class QuotaExceededError(GatewayHTTPError):
    """HTTP 402 from the gateway."""


class UpstreamError(GatewayHTTPError):
    """Any other non-2xx from the gateway."""


@dataclass
class GatewayCompletion:
    """Buffered completion returned by the gateway."""
    content: str
    model: str
    tokens_prompt: int = 0
    tokens_completion: int = 0
    tokens_total: int = 0
    raw_response: Any = None


def first_choice_content(data: Dict[str, Any]) -> str:
    """``choices[0].message.content``, or "" when any step is missing or not an object."""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    choice = choices[0]
    message = choice.get("message") if isinstance(choice, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) else ""


class AIGatewayClient:
    """
    Client for the upstream chat completion gateway.

    Features:
    - One POST per call, no retries
    - Buffered (``complete``) and pass-through streaming (``open_stream``) calls
    - Status-specific exceptions for 429 / 402 / other failures
    - OpenTelemetry spans with token usage
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the gateway client.

        Args:
            api_key: Bearer credential. Defaults to settings.
            url: Chat completions URL. Defaults to settings.
            model: Model identifier. Defaults to settings.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (tests use a MockTransport).
        """
        self.api_key = api_key if api_key is not None else settings.AI_GATEWAY_API_KEY
        self.url = url or settings.AI_GATEWAY_URL
        self.model = model or settings.AI_GATEWAY_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self._transport = transport

        self._http: Optional[httpx.AsyncClient] = None

    @property
    def http(self) -> httpx.AsyncClient:
        """Lazy-load the HTTP client."""
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise GatewayConfigError("AI_GATEWAY_API_KEY not configured")
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _payload(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        stream: bool,
    ) -> Dict[str, Any]:
        conversation: List[Dict[str, str]] = [{"role": "system", "content": system_prompt}]
        conversation.extend(message.model_dump(mode="json") for message in messages)
        return {
            "model": self.model,
            "messages": conversation,
            "stream": stream,
        }

    @staticmethod
    def _raise_for_status(status_code: int, body: str) -> None:
        if status_code == 429:
            raise RateLimitedError(status_code, body)
        if status_code == 402:
            raise QuotaExceededError(status_code, body)
        logger.error(f"AI gateway error: {status_code} {body}")
        raise UpstreamError(status_code, body)

    async def complete(
        self,
        system_prompt: str,
        messages: Sequence[Message],
    ) -> GatewayCompletion:
        """
        Request a whole completion (``stream: false``).

        Args:
            system_prompt: System prompt placed before the conversation.
            messages: Conversation history, oldest first.

        Returns:
            GatewayCompletion with the first choice's message content.
        """
        headers = self._headers()

        with ai_span("gateway.complete", "AIGatewayClient", {"llm.stream": False}) as span:
            span.set_attribute("llm.message_count", len(messages))

            response = await self.http.post(
                self.url,
                headers=headers,
                json=self._payload(system_prompt, messages, stream=False),
            )
            if not response.is_success:
                self._raise_for_status(response.status_code, response.text)

            data = response.json()
            if not isinstance(data, dict):
                data = {}
            content = first_choice_content(data)

            usage = data.get("usage") or {}
            tokens_prompt = usage.get("prompt_tokens", 0)
            tokens_completion = usage.get("completion_tokens", 0)
            tokens_total = usage.get("total_tokens", tokens_prompt + tokens_completion)
            trace_llm_call(self.model, tokens_prompt, tokens_completion, tokens_total)

            span.set_attribute("llm.response_length", len(content))

            return GatewayCompletion(
                content=content,
                model=data.get("model", self.model),
                tokens_prompt=tokens_prompt,
                tokens_completion=tokens_completion,
                tokens_total=tokens_total,
                raw_response=data,
            )

    async def open_stream(
        self,
        system_prompt: str,
        messages: Sequence[Message],
    ) -> httpx.Response:
        """
        Start a streaming completion (``stream: true``).

        The returned response has an unread body; the caller iterates it and
        must close it with ``aclose()``.
        """
        headers = self._headers()

        with ai_span("gateway.stream", "AIGatewayClient", {"llm.stream": True}) as span:
            span.set_attribute("llm.message_count", len(messages))

            request = self.http.build_request(
                "POST",
                self.url,
                headers=headers,
                json=self._payload(system_prompt, messages, stream=True),
            )
            response = await self.http.send(request, stream=True)

            if not response.is_success:
                try:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                finally:
                    await response.aclose()
                self._raise_for_status(response.status_code, body)

            span.set_attribute("http.status_code", response.status_code)
            return response


# Default client instance
_default_client: Optional[AIGatewayClient] = None


def get_gateway_client() -> AIGatewayClient:
    """Get the default gateway client instance."""
    global _default_client
    if _default_client is None:
        _default_client = AIGatewayClient()
    return _default_client


async def close_gateway_client() -> None:
    """Release the default client's connections."""
    global _default_client
    if _default_client is not None:
        await _default_client.aclose()
        _default_client = None
