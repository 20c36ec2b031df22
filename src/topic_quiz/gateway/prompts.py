"""Prompt templates sent to the text-completion model."""

from __future__ import annotations

from typing import Sequence

from ..models import WrongAnswer

__all__ = ["SYSTEM_PROMPT", "build_quiz_prompt", "build_feedback_prompt"]

SYSTEM_PROMPT = (
    "You write accurate multiple-choice quizzes and encouraging feedback. "
    "You always answer with a single bare JSON object."
)

_QUIZ_SHAPE = """{
  "questions": [
    {
      "id": "q1",
      "question": "Your question text here?",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctIndex": 0,
      "explanation": "Brief explanation of why this answer is correct"
    }
  ]
}"""

_FEEDBACK_SHAPE = """{
  "feedback": "Your personalized feedback message here"
}"""


def build_quiz_prompt(topic: str, count: int, difficulty: str) -> str:
    return (
        f'Generate exactly {count} multiple choice questions about "{topic}" '
        f"at {difficulty} difficulty level.\n\n"
        "Return ONLY a valid JSON object with this exact structure "
        "(no markdown, no code blocks):\n"
        f"{_QUIZ_SHAPE}\n\n"
        "Requirements:\n"
        "- Each question must have exactly 4 options\n"
        "- correctIndex is 0-based (0, 1, 2, or 3)\n"
        "- Questions should be educational and accurate\n"
        "- Explanations should be concise but helpful\n"
        "- Make questions progressively challenging\n"
        "- Ensure only one correct answer per question\n"
    )


def build_feedback_prompt(
    topic: str,
    score: int,
    total: int,
    percentage: int,
    wrong_answers: Sequence[WrongAnswer],
) -> str:
    if wrong_answers:
        lines = ["Questions answered incorrectly:"]
        for number, wrong in enumerate(wrong_answers, start=1):
            lines.append(f'{number}. "{wrong.question}"')
            lines.append(f'   - User answered: "{wrong.user_answer}"')
            lines.append(f'   - Correct answer: "{wrong.correct_answer}"')
        missed = "\n".join(lines)
    else:
        missed = "All questions were answered correctly!"
    return (
        "Generate personalized feedback for a quiz result.\n\n"
        f"Topic: {topic}\n"
        f"Score: {score}/{total} ({percentage}%)\n\n"
        f"{missed}\n\n"
        "Return ONLY a valid JSON object (no markdown, no code blocks):\n"
        f"{_FEEDBACK_SHAPE}\n\n"
        "Requirements:\n"
        "- Be encouraging and constructive\n"
        "- If score is high (>=80%), celebrate the achievement\n"
        "- If score is medium (50-79%), acknowledge effort and suggest areas "
        "to review\n"
        "- If score is low (<50%), be motivating and offer specific study "
        "tips\n"
        "- Reference the topic and specific concepts if possible\n"
        "- Keep feedback to 2-3 sentences, friendly tone\n"
        "- Use 1-2 relevant emojis\n"
    )
