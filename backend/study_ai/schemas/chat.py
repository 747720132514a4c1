"""
Study AI - Chat Schemas
Pydantic schemas for the study-ai proxy endpoint and its clients
"""
import logging
from typing import Any, Optional, List
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class ChatRole(str, Enum):
    """Role in the conversation."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Mode(str, Enum):
    """The task the assistant is asked to perform."""
    SIMPLE = "simple"
    STEP_BY_STEP = "step-by-step"
    REAL_WORLD = "real-world"
    PROBLEM = "problem"
    QUIZ = "quiz"
    NOTES = "notes"
    PLANNER = "planner"

    @classmethod
    def resolve(cls, value: Any) -> "Mode":
        """Map a raw mode string to a Mode, falling back to SIMPLE."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            if value is not None:
                logger.warning(f"Unknown mode {value!r}, using {cls.SIMPLE.value}")
            return cls.SIMPLE


class Difficulty(str, Enum):
    """Difficulty levels for quiz questions."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionType(str, Enum):
    """Answer format of a quiz question."""
    MCQ = "mcq"
    SHORT = "short"
    LONG = "long"


# ============================================================================
# Request/Response Schemas
# ============================================================================

class Message(BaseModel):
    """A single chat message."""
    role: ChatRole
    content: str


class ChatRequest(BaseModel):
    """Request sent to the study-ai endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    messages: List[Message]
    mode: Mode = Mode.SIMPLE
    subject: Optional[str] = None
    topic: Optional[str] = None
    difficulty: Optional[str] = None
    question_type: Optional[str] = Field(default=None, alias="questionType")

    @field_validator("mode", mode="before")
    @classmethod
    def fallback_to_simple(cls, value: Any) -> Mode:
        return Mode.resolve(value)


class QuizQuestion(BaseModel):
    """One generated quiz question."""
    question: str
    type: QuestionType = QuestionType.MCQ
    options: Optional[List[str]] = None
    correct_answer: str
    explanation: str = ""

    def is_correct(self, answer: str) -> bool:
        """Compare an answer with the expected one, ignoring case and surrounding space."""
        return answer.strip().lower() == self.correct_answer.strip().lower()


class QuizResponse(BaseModel):
    """Buffered quiz payload."""
    questions: List[QuizQuestion] = Field(default_factory=list)


class NotesResponse(BaseModel):
    """Buffered notes payload."""
    notes: str


class PlanResponse(BaseModel):
    """Buffered study plan payload."""
    plan: str


class ErrorResponse(BaseModel):
    """Structured error returned for any failed request."""
    error: str
    code: str
    raw: Optional[str] = None
