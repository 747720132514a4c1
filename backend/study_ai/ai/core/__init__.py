# AI Core Module - gateway access and telemetry

from study_ai.ai.core.gateway import (
    AIGatewayClient,
    GatewayCompletion,
    GatewayError,
    GatewayConfigError,
    RateLimitedError,
    QuotaExceededError,
    UpstreamError,
    get_gateway_client,
)
from study_ai.ai.core.telemetry import init_telemetry, get_tracer, ai_span, trace_llm_call

__all__ = [
    # Gateway
    "AIGatewayClient", "GatewayCompletion", "get_gateway_client",
    "GatewayError", "GatewayConfigError", "RateLimitedError", "QuotaExceededError", "UpstreamError",
    # Telemetry
    "init_telemetry", "get_tracer", "ai_span", "trace_llm_call",
]
