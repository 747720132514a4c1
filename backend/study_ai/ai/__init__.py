"""
Study AI - AI Module Initialization
Prompt registry and mode dispatch over the AI gateway.
"""
from study_ai.ai.prompts import Delivery, MODE_DELIVERY, resolve_system_prompt, render_quiz_schema
from study_ai.ai.dispatcher import StudyAIDispatcher, get_dispatcher, strip_code_fence

__all__ = [
    "Delivery",
    "MODE_DELIVERY",
    "resolve_system_prompt",
    "render_quiz_schema",
    "StudyAIDispatcher",
    "get_dispatcher",
    "strip_code_fence",
]
