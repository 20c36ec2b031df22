"""Domain objects for a quiz session.

Everything here is a frozen dataclass: the controller replaces the whole
``Session`` on each transition instead of mutating it, so listeners always
receive a consistent snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

NOT_ANSWERED = "Not answered"
OPTION_LABELS = ("A", "B", "C", "D")


class Screen(str, Enum):
    """The four states of the quiz lifecycle."""

    TOPIC = "topic"
    LOADING = "loading"
    QUIZ = "quiz"
    RESULT = "result"


@dataclass(frozen=True)
class Question:
    """A validated multiple-choice question with exactly four options."""

    id: str
    question: str
    options: tuple[str, ...]
    correct_index: int
    explanation: Optional[str] = None

    def option_text(self, index: Optional[int]) -> Optional[str]:
        if index is None or not 0 <= index < len(self.options):
            return None
        return self.options[index]

    @property
    def correct_text(self) -> str:
        return self.options[self.correct_index]


@dataclass(frozen=True)
class AnswerDetail:
    """How one question was answered, frozen at submission time."""

    question_id: str
    question: str
    selected_index: Optional[int]
    correct_index: int
    is_correct: bool
    explanation: Optional[str] = None


@dataclass(frozen=True)
class WrongAnswer:
    """A missed question as described to the feedback prompt."""

    question: str
    user_answer: str
    correct_answer: str


@dataclass(frozen=True)
class QuizResult:
    """Score summary for a submitted quiz.

    ``feedback`` starts empty and is the only field replaced after creation,
    once the feedback request completes.
    """

    score: int
    total: int
    percentage: int
    feedback: str
    answers: tuple[AnswerDetail, ...]
    time_taken: int

    @property
    def grade(self) -> str:
        if self.percentage >= 80:
            return "excellent"
        if self.percentage >= 60:
            return "good"
        if self.percentage >= 40:
            return "fair"
        return "needs work"

    @property
    def time_taken_label(self) -> str:
        minutes, seconds = divmod(self.time_taken, 60)
        return f"{minutes}m {seconds}s" if minutes else f"{seconds}s"


@dataclass(frozen=True)
class Session:
    """Single source of truth for one quiz attempt."""

    screen: Screen = Screen.TOPIC
    topic: str = ""
    questions: tuple[Question, ...] = ()
    current_index: int = 0
    answers: tuple[Optional[int], ...] = ()
    start_time: float = 0.0
    timer_enabled: bool = True
    error: Optional[str] = None
    is_loading_feedback: bool = False
    result: Optional[QuizResult] = field(default=None)

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Optional[Question]:
        if not self.questions:
            return None
        return self.questions[self.current_index]

    @property
    def selected_answer(self) -> Optional[int]:
        if not self.answers:
            return None
        return self.answers[self.current_index]

    @property
    def answered_count(self) -> int:
        return sum(1 for answer in self.answers if answer is not None)

    @property
    def is_first(self) -> bool:
        return self.current_index == 0

    @property
    def is_last(self) -> bool:
        return self.current_index >= len(self.questions) - 1
