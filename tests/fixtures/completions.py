"""Scripted text-completion clients and payload builders."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional, Sequence, Union

from topic_quiz.models import Question

Scripted = Union[str, Exception]


class ScriptedCompletionClient:
    """Return queued replies in order, raising queued exceptions."""

    def __init__(self, replies: Sequence[Scripted] = ()) -> None:
        self.replies: List[Scripted] = list(replies)
        self.prompts: List[str] = []

    def queue(self, *replies: Scripted) -> None:
        self.replies.extend(replies)

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise AssertionError("no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class RecordingSleep:
    """Async sleep replacement that only records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def question_payload(
    index: int,
    *,
    correct_index: int = 0,
    explanation: Optional[str] = "Because it is.",
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": f"q{index}",
        "question": f"Sample question number {index}?",
        "options": [f"Option {label}" for label in "ABCD"],
        "correctIndex": correct_index,
    }
    if explanation is not None:
        payload["explanation"] = explanation
    return payload


def quiz_json(count: int = 2, **overrides: Any) -> str:
    questions = [question_payload(i + 1) for i in range(count)]
    for question in questions:
        question.update(overrides)
    return json.dumps({"questions": questions})


def feedback_json(text: str = "Great work, keep practicing!") -> str:
    return json.dumps({"feedback": text})


def make_questions(correct: Sequence[int]) -> List[Question]:
    return [
        Question(
            id=f"q{number}",
            question=f"Sample question number {number}?",
            options=("Option A", "Option B", "Option C", "Option D"),
            correct_index=answer,
            explanation=f"Explanation {number}",
        )
        for number, answer in enumerate(correct, start=1)
    ]


class FakeGateway:
    """In-memory stand-in for ``QuizGateway`` used by controller tests.

    ``questions`` and ``feedback`` may be values or exceptions. When
    ``hold`` is set, question requests block until ``release()`` is called.
    """

    def __init__(
        self,
        questions: Union[Sequence[Question], Exception] = (),
        feedback: Union[str, Exception] = "Nice job on this quiz!",
        *,
        hold: bool = False,
    ) -> None:
        self.questions = questions
        self.feedback = feedback
        self.question_calls: List[tuple] = []
        self.feedback_calls: List[tuple] = []
        self._hold = hold
        self._gates: List[asyncio.Event] = []

    async def generate_questions(
        self, topic: str, count: int, difficulty: str
    ) -> List[Question]:
        self.question_calls.append((topic, count, difficulty))
        if self._hold:
            gate = asyncio.Event()
            self._gates.append(gate)
            await gate.wait()
        if isinstance(self.questions, Exception):
            raise self.questions
        return list(self.questions)

    async def generate_feedback(
        self, topic, score, total, percentage, wrong_answers
    ) -> str:
        self.feedback_calls.append(
            (topic, score, total, percentage, list(wrong_answers))
        )
        if isinstance(self.feedback, Exception):
            raise self.feedback
        return self.feedback

    def release(self) -> None:
        for gate in self._gates:
            gate.set()
        self._gates.clear()

    @property
    def waiting(self) -> int:
        return len(self._gates)
