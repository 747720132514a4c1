"""Study AI - API v1 Router."""
from fastapi import APIRouter

from study_ai.api.v1.study_ai import router as study_ai_router

api_router = APIRouter()

api_router.include_router(study_ai_router)
