"""
Study AI - Prompt Registry
System prompts per mode plus the subject/topic/difficulty and quiz-schema augmentation.
"""
import json
from enum import Enum
from typing import Any, Dict, Optional

from langchain_core.prompts import PromptTemplate

from study_ai.schemas.chat import Difficulty, Mode, QuestionType


class Delivery(str, Enum):
    """How a mode's completion reaches the caller."""
    BUFFERED = "buffered"
    STREAMING = "streaming"


MODE_DELIVERY: Dict[Mode, Delivery] = {
    Mode.SIMPLE: Delivery.STREAMING,
    Mode.STEP_BY_STEP: Delivery.STREAMING,
    Mode.REAL_WORLD: Delivery.STREAMING,
    Mode.PROBLEM: Delivery.STREAMING,
    Mode.QUIZ: Delivery.BUFFERED,
    Mode.NOTES: Delivery.BUFFERED,
    Mode.PLANNER: Delivery.BUFFERED,
}


SYSTEM_PROMPTS: Dict[Mode, PromptTemplate] = {
    Mode.SIMPLE: PromptTemplate.from_template(
        "You are a friendly CS tutor for university students. Explain concepts in simple, "
        "easy-to-understand language. Use analogies and avoid jargon. Keep explanations concise "
        "but thorough. Format using markdown with headers, bullet points, and code blocks where "
        "appropriate."
    ),
    Mode.STEP_BY_STEP: PromptTemplate.from_template(
        "You are a detailed CS tutor. Break down every concept into numbered steps. Show the "
        "reasoning process clearly. Include pseudocode or code snippets. Highlight key takeaways. "
        "Format using markdown."
    ),
    Mode.REAL_WORLD: PromptTemplate.from_template(
        "You are a practical CS tutor. Explain concepts through real-world examples and "
        "applications. Show how theory applies in industry. Include practical code examples. "
        "Format using markdown."
    ),
    Mode.PROBLEM: PromptTemplate.from_template(
        """You are a CS problem-solving tutor. When given a problem:
1. Clarify the problem statement
2. Discuss approach and reasoning
3. Show step-by-step solution
4. Highlight common mistakes to avoid
5. Suggest practice variations
Format using markdown with code blocks."""
    ),
    Mode.QUIZ: PromptTemplate.from_template(
        """You are a quiz generator for CS students. Generate exactly 5 questions based on the topic and difficulty. Return ONLY valid JSON (no markdown, no code fences) with this exact structure:
{schema}
For MCQs, correct_answer should be the letter (A, B, C, or D). For short/long questions, correct_answer should be the answer text."""
    ),
    Mode.NOTES: PromptTemplate.from_template(
        """You are a study notes generator. Convert the given text into clean, well-organized study notes. Include:
- Key concepts highlighted
- Important definitions
- Formulas or algorithms in code blocks
- Summary points
- Mnemonics or memory aids where helpful
Format using markdown with clear headers and bullet points."""
    ),
    Mode.PLANNER: PromptTemplate.from_template(
        """You are a study planner AI. Create a detailed daily study plan based on the user's exam date, available hours, and subjects. Include:
- Day-by-day breakdown
- Time allocation per subject
- Mix of learning and revision
- Break suggestions
- Weekly review sessions
- Tips for effective studying
Format as a clean markdown table and schedule."""
    ),
}


QUESTION_TYPE_LABELS: Dict[str, str] = {
    QuestionType.MCQ.value: "multiple choice (MCQ) with 4 options",
    QuestionType.SHORT.value: "short answer (1-2 sentences)",
    QuestionType.LONG.value: "long answer (detailed explanation required)",
}
DEFAULT_QUESTION_TYPE_LABEL = "multiple choice"


def _question_type_value(question_type: "Optional[QuestionType | str]") -> Optional[str]:
    if isinstance(question_type, QuestionType):
        return question_type.value
    return question_type or None


def question_type_label(question_type: "QuestionType | str") -> str:
    """Prompt wording for a question type; unrecognised types read as multiple choice."""
    return QUESTION_TYPE_LABELS.get(_question_type_value(question_type), DEFAULT_QUESTION_TYPE_LABEL)


def quiz_question_example(question_type: "Optional[QuestionType | str]" = None) -> Dict[str, Any]:
    """
    Example question object embedded in the quiz prompt.

    MCQ (or unset) carries four options and a letter answer; any other type
    drops the options and expects the answer text itself.
    """
    question_type = _question_type_value(question_type)
    if question_type in (None, QuestionType.MCQ.value):
        return {
            "question": "...",
            "type": QuestionType.MCQ.value,
            "options": ["opt1", "opt2", "opt3", "opt4"],
            "correct_answer": "A",
            "explanation": "...",
        }
    return {
        "question": "...",
        "type": question_type,
        "correct_answer": "the answer text",
        "explanation": "...",
    }


def render_quiz_schema(question_type: "Optional[QuestionType | str]" = None) -> str:
    """Compact JSON document the quiz prompt asks the model to reproduce."""
    return json.dumps(
        {"questions": [quiz_question_example(question_type)]},
        separators=(",", ":"),
    )


def is_buffered(mode: Mode) -> bool:
    return MODE_DELIVERY[mode] is Delivery.BUFFERED


def resolve_system_prompt(
    mode: "Mode | str",
    subject: Optional[str] = None,
    topic: Optional[str] = None,
    difficulty: "Optional[Difficulty | str]" = None,
    question_type: "Optional[QuestionType | str]" = None,
) -> str:
    """
    Build the system prompt for a request.

    Args:
        mode: Requested mode; unknown values fall back to simple.
        subject: Subject name appended as context.
        topic: Current topic appended as context.
        difficulty: Difficulty appended as context.
        question_type: Quiz answer format; only used in quiz mode.

    Returns:
        The complete system prompt text.
    """
    mode = Mode.resolve(mode)
    question_type = _question_type_value(question_type)

    if mode is Mode.QUIZ:
        prompt = SYSTEM_PROMPTS[mode].format(schema=render_quiz_schema(question_type))
    else:
        prompt = SYSTEM_PROMPTS[mode].format()

    if subject:
        prompt += f"\n\nSubject context: {subject}"
    if topic:
        prompt += f"\nCurrent topic: {topic}"
    if difficulty:
        diff_value = difficulty.value if isinstance(difficulty, Difficulty) else difficulty
        prompt += f"\nDifficulty level: {diff_value}"

    if mode is Mode.QUIZ and question_type:
        prompt += f"\nQuestion type: {question_type_label(question_type)}"

    return prompt
