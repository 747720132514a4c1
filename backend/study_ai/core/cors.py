"""
Study AI - CORS Middleware
Permissive cross-origin headers on every response, preflight answered inline.
"""
from typing import Awaitable, Callable

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse

from study_ai.core.config import settings


def cors_headers() -> dict[str, str]:
    """Headers stamped on every response."""
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": ", ".join(settings.CORS_ALLOW_HEADERS),
    }


async def cors_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """
    HTTP middleware that short-circuits OPTIONS preflights with a bare "ok"
    body and adds the CORS headers to everything else.
    """
    if request.method == "OPTIONS":
        return PlainTextResponse("ok", headers=cors_headers())

    response = await call_next(request)
    response.headers.update(cors_headers())
    return response
