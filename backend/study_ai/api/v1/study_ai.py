"""
Study AI - Proxy API Router
The single endpoint that forwards study requests to the AI gateway
"""
from typing import List

from fastapi import APIRouter, Depends
from starlette.responses import Response

from study_ai.ai.dispatcher import StudyAIDispatcher, get_dispatcher
from study_ai.catalog import SUBJECTS, Subject
from study_ai.schemas.chat import ChatRequest, ErrorResponse


router = APIRouter(tags=["Study AI"])


@router.post(
    "/study-ai",
    responses={
        402: {"model": ErrorResponse, "description": "AI usage quota exhausted"},
        429: {"model": ErrorResponse, "description": "Rate limited by the AI gateway"},
        500: {"model": ErrorResponse, "description": "Gateway, payload or request failure"},
    },
)
async def study_ai(
    request: ChatRequest,
    dispatcher: StudyAIDispatcher = Depends(get_dispatcher),
) -> Response:
    """
    Ask the study assistant.

    Explanation modes stream the gateway's event stream back unchanged.
    Quiz, notes and planner modes return a single JSON document.
    """
    return await dispatcher.handle(request)


@router.get("/subjects", response_model=List[Subject])
async def list_subjects():
    """List the subjects and topics the assistant covers."""
    return SUBJECTS
