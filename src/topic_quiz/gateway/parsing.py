"""Turn free-text model replies into validated domain objects.

Parsing happens in two stages: locate the outermost ``{...}`` span, then
decode and validate it. A failure in either stage is a
:class:`MalformedResponse`, which the gateway is allowed to retry.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List

from ..models import Question
from .errors import MalformedResponse

MAX_QUESTIONS = 10
OPTION_COUNT = 4
MIN_QUESTION_LENGTH = 10
MIN_FEEDBACK_LENGTH = 10

_BRACE_SPAN = re.compile(r"\{.*\}", re.DOTALL)


def extract_json(text: str) -> str:
    """Return the first ``{`` through the last ``}`` or ``text`` unchanged."""
    match = _BRACE_SPAN.search(text or "")
    return match.group(0) if match else (text or "")


def load_json_object(text: str) -> Any:
    # Deeply nested replies overflow the decoder instead of failing to parse.
    try:
        return json.loads(extract_json(text))
    except (ValueError, RecursionError) as exc:
        raise MalformedResponse("Failed to parse AI response as JSON") from exc


def validate_question(raw: Any, position: int) -> Question:
    """Validate one entry of the ``questions`` array.

    Raises ValueError naming the offending field and question position.
    """
    label = f"questions[{position}]"
    if not isinstance(raw, dict):
        raise ValueError(f"{label} must be an object")

    qid = raw.get("id")
    if not isinstance(qid, str) or not qid.strip():
        raise ValueError(f"{label}.id must be a non-empty string")

    text = raw.get("question")
    if not isinstance(text, str) or len(text) < MIN_QUESTION_LENGTH:
        raise ValueError(
            f"{label}.question must be at least "
            f"{MIN_QUESTION_LENGTH} characters"
        )

    options = raw.get("options")
    if not isinstance(options, list) or len(options) != OPTION_COUNT:
        raise ValueError(f"{label}.options must list exactly {OPTION_COUNT}")
    if not all(isinstance(option, str) for option in options):
        raise ValueError(f"{label}.options must all be strings")

    correct = raw.get("correctIndex")
    # bool is an int subclass; reject it explicitly.
    if isinstance(correct, bool) or not isinstance(correct, int):
        raise ValueError(f"{label}.correctIndex must be an integer")
    if not 0 <= correct < OPTION_COUNT:
        raise ValueError(f"{label}.correctIndex must be between 0 and 3")

    explanation = raw.get("explanation")
    if explanation is not None and not isinstance(explanation, str):
        raise ValueError(f"{label}.explanation must be a string")

    return Question(
        id=qid,
        question=text,
        options=tuple(options),
        correct_index=correct,
        explanation=explanation,
    )


def validate_quiz_payload(data: Any) -> List[Question]:
    if not isinstance(data, dict):
        raise ValueError("response must be a JSON object")
    raw_questions = data.get("questions")
    if not isinstance(raw_questions, list):
        raise ValueError("'questions' must be an array")
    if not 1 <= len(raw_questions) <= MAX_QUESTIONS:
        raise ValueError(
            f"'questions' must hold between 1 and {MAX_QUESTIONS} items"
        )
    return [
        validate_question(raw, position)
        for position, raw in enumerate(raw_questions)
    ]


def validate_feedback_payload(data: Any) -> str:
    if not isinstance(data, dict):
        raise ValueError("response must be a JSON object")
    feedback = data.get("feedback")
    if not isinstance(feedback, str) or len(feedback) < MIN_FEEDBACK_LENGTH:
        raise ValueError(
            f"'feedback' must be a string of at least "
            f"{MIN_FEEDBACK_LENGTH} characters"
        )
    return feedback


def parse_quiz_response(text: str) -> List[Question]:
    data = load_json_object(text)
    try:
        return validate_quiz_payload(data)
    except ValueError as exc:
        raise MalformedResponse(
            f"AI response did not match the quiz format: {exc}"
        ) from exc


def parse_feedback_response(text: str) -> str:
    data: Dict[str, Any] = load_json_object(text)
    try:
        return validate_feedback_payload(data)
    except ValueError as exc:
        raise MalformedResponse(
            f"AI response did not match the feedback format: {exc}"
        ) from exc
