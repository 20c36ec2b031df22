"""Scoring of a submitted quiz and the wrong-answer summary for feedback."""

from __future__ import annotations

import math
from typing import List, Optional, Sequence

from .models import (
    NOT_ANSWERED,
    AnswerDetail,
    Question,
    QuizResult,
    WrongAnswer,
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def score_answers(
    questions: Sequence[Question],
    answers: Sequence[Optional[int]],
    *,
    started_at: float,
    finished_at: float,
) -> QuizResult:
    """Build the result for a submission.

    ``answers`` is parallel to ``questions``; ``None`` marks an unanswered
    slot, which never counts as correct. Timestamps are in seconds.
    """
    details: List[AnswerDetail] = []
    for question, selected in zip(questions, answers):
        details.append(
            AnswerDetail(
                question_id=question.id,
                question=question.question,
                selected_index=selected,
                correct_index=question.correct_index,
                is_correct=selected == question.correct_index,
                explanation=question.explanation,
            )
        )
    score = sum(1 for detail in details if detail.is_correct)
    total = len(questions)
    percentage = round_half_up(score / total * 100) if total else 0
    elapsed = max(0, round_half_up(finished_at - started_at))
    return QuizResult(
        score=score,
        total=total,
        percentage=percentage,
        feedback="",
        answers=tuple(details),
        time_taken=elapsed,
    )


def collect_wrong_answers(
    questions: Sequence[Question], details: Sequence[AnswerDetail]
) -> List[WrongAnswer]:
    """Describe each missed question for the feedback prompt."""
    wrong: List[WrongAnswer] = []
    # Matched by position: ids come from the model and may repeat.
    for question, detail in zip(questions, details):
        if detail.is_correct:
            continue
        user_answer = question.option_text(detail.selected_index)
        wrong.append(
            WrongAnswer(
                question=detail.question,
                user_answer=user_answer or NOT_ANSWERED,
                correct_answer=question.correct_text,
            )
        )
    return wrong
