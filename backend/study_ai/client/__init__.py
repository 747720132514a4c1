"""
Study AI - Client Module
Streaming parser and HTTP client for the study-ai endpoint.
"""
from study_ai.client.stream_parser import (
    ChunkStreamParser,
    EventType,
    ParserState,
    StreamEvent,
    StreamStallError,
    iter_stream_events,
    parse_stream,
)
from study_ai.client.study_ai_client import StudyAIClient, StudyAIClientError, stream_chat

__all__ = [
    "ChunkStreamParser",
    "EventType",
    "ParserState",
    "StreamEvent",
    "StreamStallError",
    "iter_stream_events",
    "parse_stream",
    "StudyAIClient",
    "StudyAIClientError",
    "stream_chat",
]
