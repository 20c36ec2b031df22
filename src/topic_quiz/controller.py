"""Quiz session state machine.

``SessionController`` owns the only ``Session`` value and replaces it on
every transition::

    topic --select_topic--> loading --questions--> quiz --submit--> result
      ^                        |                                     |
      +-------- failure -------+          loading <----- retry ------+
      ^                                                              |
      +------------------------- new_topic --------------------------+

Every async call records the session *generation* that issued it. The
generation changes whenever the session is restarted, and completions that
arrive for an older generation are dropped instead of applied.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, Callable, List, Optional, Protocol, Sequence

from .gateway.errors import GatewayError
from .models import Question, QuizResult, Screen, Session, WrongAnswer
from .scoring import collect_wrong_answers, score_answers

__all__ = [
    "FEEDBACK_FALLBACK",
    "QUIZ_FALLBACK_ERROR",
    "QuestionSource",
    "SessionController",
    "SessionListener",
]

FEEDBACK_FALLBACK = (
    "Unable to generate feedback. Great effort completing the quiz!"
)
QUIZ_FALLBACK_ERROR = "Failed to generate quiz. Please try again."

SessionListener = Callable[[Session], None]

_LOGGER = logging.getLogger(__name__)


class QuestionSource(Protocol):
    """The subset of the AI gateway the controller depends on."""

    async def generate_questions(
        self, topic: str, count: int, difficulty: str
    ) -> List[Question]: ...

    async def generate_feedback(
        self,
        topic: str,
        score: int,
        total: int,
        percentage: int,
        wrong_answers: Sequence[WrongAnswer],
    ) -> str: ...


class SessionController:
    """Apply user intents to the session and talk to the gateway."""

    def __init__(
        self,
        gateway: QuestionSource,
        *,
        question_count: int = 5,
        difficulty: str = "medium",
        timer_enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._gateway = gateway
        self._question_count = question_count
        self._difficulty = difficulty
        self._default_timer = timer_enabled
        self._clock = clock
        self._logger = logger or _LOGGER
        self._session = Session(timer_enabled=timer_enabled)
        self._generation = 0
        self._listeners: List[SessionListener] = []
        self._feedback_task: Optional[asyncio.Task[Any]] = None

    @property
    def session(self) -> Session:
        return self._session

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Notify ``listener`` after every transition.

        Returns a callable that removes the listener again.
        """

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # -- topic / loading ---------------------------------------------------

    async def select_topic(
        self, topic: str, timer_enabled: bool = True
    ) -> None:
        if self._session.screen in (Screen.LOADING, Screen.QUIZ):
            self._ignore("select_topic")
            return
        topic = topic.strip()
        if not topic:
            raise ValueError("topic must not be empty")

        generation = self._restart()
        self._set(
            Session(
                screen=Screen.LOADING, topic=topic, timer_enabled=timer_enabled
            )
        )
        self._logger.info(
            "Generating quiz", extra={"topic": topic, "generation": generation}
        )

        try:
            questions = await self._gateway.generate_questions(
                topic, self._question_count, self._difficulty
            )
        except GatewayError as exc:
            self._fail_loading(generation, exc.message, kind=exc.kind.value)
            return
        except Exception:
            self._logger.exception("Unexpected failure generating quiz")
            self._fail_loading(
                generation, QUIZ_FALLBACK_ERROR, kind="unexpected"
            )
            return

        if self._is_stale(generation, "quiz"):
            return
        self._set(
            replace(
                self._session,
                screen=Screen.QUIZ,
                questions=tuple(questions),
                answers=(None,) * len(questions),
                current_index=0,
                start_time=self._clock(),
            )
        )

    def _fail_loading(
        self, generation: int, message: str, *, kind: str
    ) -> None:
        if self._is_stale(generation, "quiz"):
            return
        self._logger.warning(
            "Quiz generation failed: %s", message, extra={"error_kind": kind}
        )
        self._set(
            Session(
                screen=Screen.TOPIC,
                topic=self._session.topic,
                timer_enabled=self._session.timer_enabled,
                error=message,
            )
        )

    def set_timer_enabled(self, enabled: bool) -> None:
        if self._session.screen is not Screen.TOPIC:
            self._ignore("set_timer_enabled")
            return
        self._set(replace(self._session, timer_enabled=enabled))

    def dismiss_error(self) -> None:
        if self._session.error is None:
            return
        self._set(replace(self._session, error=None))

    # -- quiz --------------------------------------------------------------

    def select_answer(self, index: int) -> None:
        session = self._session
        if session.screen is not Screen.QUIZ:
            self._ignore("select_answer")
            return
        answers = list(session.answers)
        answers[session.current_index] = index
        self._set(replace(session, answers=tuple(answers)))

    def next(self) -> None:
        session = self._session
        if session.screen is not Screen.QUIZ:
            self._ignore("next")
            return
        last = len(session.questions) - 1
        self._move_to(min(session.current_index + 1, last))

    def prev(self) -> None:
        session = self._session
        if session.screen is not Screen.QUIZ:
            self._ignore("prev")
            return
        self._move_to(max(session.current_index - 1, 0))

    def time_up(self) -> None:
        """Advance past a timed-out question; never submits on the last one."""

        session = self._session
        if session.screen is not Screen.QUIZ or session.is_last:
            return
        self._move_to(session.current_index + 1)

    def _move_to(self, index: int) -> None:
        if index == self._session.current_index:
            return
        self._set(replace(self._session, current_index=index))

    def submit(self) -> Optional[QuizResult]:
        """Score the quiz, show the result and request feedback.

        Must be called from a running event loop; the feedback request is
        scheduled as a task and fills ``result.feedback`` when it completes.
        """

        session = self._session
        if session.screen is not Screen.QUIZ:
            self._ignore("submit")
            return None
        result = score_answers(
            session.questions,
            session.answers,
            started_at=session.start_time,
            finished_at=self._clock(),
        )
        wrong = collect_wrong_answers(session.questions, result.answers)
        self._set(
            replace(
                session,
                screen=Screen.RESULT,
                result=result,
                is_loading_feedback=True,
            )
        )
        self._logger.info(
            "Quiz submitted",
            extra={
                "topic": session.topic,
                "score": result.score,
                "total": result.total,
                "percentage": result.percentage,
            },
        )
        loop = asyncio.get_running_loop()
        self._feedback_task = loop.create_task(
            self._fill_feedback(self._generation, session.topic, result, wrong)
        )
        return result

    async def _fill_feedback(
        self,
        generation: int,
        topic: str,
        result: QuizResult,
        wrong: Sequence[WrongAnswer],
    ) -> None:
        try:
            feedback = await self._gateway.generate_feedback(
                topic, result.score, result.total, result.percentage, wrong
            )
        except GatewayError as exc:
            self._logger.warning(
                "Feedback generation failed: %s",
                exc.message,
                extra={"error_kind": exc.kind.value},
            )
            feedback = FEEDBACK_FALLBACK
        except Exception:
            self._logger.exception("Unexpected failure generating feedback")
            feedback = FEEDBACK_FALLBACK

        if self._is_stale(generation, "feedback"):
            return
        current = self._session
        if current.result is None:
            return
        self._set(
            replace(
                current,
                result=replace(current.result, feedback=feedback),
                is_loading_feedback=False,
            )
        )

    async def wait_for_feedback(self) -> None:
        task = self._feedback_task
        if task is not None and not task.done():
            await asyncio.shield(task)

    # -- result ------------------------------------------------------------

    async def retry(self) -> None:
        session = self._session
        if session.screen is not Screen.RESULT:
            self._ignore("retry")
            return
        await self.select_topic(session.topic, session.timer_enabled)

    def new_topic(self) -> None:
        self._restart()
        self._set(Session(timer_enabled=self._default_timer))

    async def aclose(self) -> None:
        task = self._feedback_task
        self._feedback_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # -- internals ---------------------------------------------------------

    def _restart(self) -> int:
        self._generation += 1
        return self._generation

    def _is_stale(self, generation: int, label: str) -> bool:
        if generation == self._generation:
            return False
        self._logger.debug(
            "Discarding stale %s completion",
            label,
            extra={"generation": generation, "current": self._generation},
        )
        return True

    def _ignore(self, intent: str) -> None:
        self._logger.debug(
            "Ignoring intent",
            extra={"intent": intent, "screen": self._session.screen.value},
        )

    def _set(self, session: Session) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(session)
