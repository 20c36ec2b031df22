"""Rich console front end for the quiz controller.

The renderer only reads ``Session`` snapshots and turns typed commands into
controller intents; all quiz rules live in :mod:`topic_quiz.controller`.
Input is read on a worker thread so the background feedback request keeps
running while the prompt waits.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Literal, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .controller import SessionController
from .models import OPTION_LABELS, Screen, Session
from .topics import PREDEFINED_TOPICS, resolve_topic

InputProvider = Callable[[], str]
Clock = Callable[[], float]

IntentName = Literal[
    "select_topic",
    "toggle_timer",
    "dismiss_error",
    "select_answer",
    "next",
    "prev",
    "submit",
    "retry",
    "new_topic",
    "quit",
]

_GRADE_STYLES = {
    "excellent": "bold green",
    "good": "bold cyan",
    "fair": "bold yellow",
    "needs work": "bold red",
}


@dataclass(frozen=True)
class Intent:
    """A user command parsed for the current screen."""

    name: IntentName
    topic: Optional[str] = None
    index: Optional[int] = None


def parse_command(raw: Optional[str], screen: Screen) -> Optional[Intent]:
    """Parse console input into an :class:`Intent` valid for ``screen``."""

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered in {"q", "quit", "exit"}:
        return Intent("quit")

    if screen is Screen.TOPIC:
        if lowered == "t":
            return Intent("toggle_timer")
        if lowered == "x":
            return Intent("dismiss_error")
        topic = resolve_topic(text)
        return Intent("select_topic", topic=topic) if topic else None

    if screen is Screen.QUIZ:
        if lowered in {"n", "next"}:
            return Intent("next")
        if lowered in {"p", "prev", "previous"}:
            return Intent("prev")
        if lowered in {"s", "submit"}:
            return Intent("submit")
        if len(lowered) == 1:
            if lowered in "abcd":
                return Intent("select_answer", index="abcd".index(lowered))
            if lowered in "1234":
                return Intent("select_answer", index=int(lowered) - 1)
        return None

    if screen is Screen.RESULT:
        if lowered in {"r", "retry"}:
            return Intent("retry")
        if lowered in {"t", "new", "topic"}:
            return Intent("new_topic")
    return None


class ConsoleRenderer:
    """Draw each screen of the session with Rich."""

    def __init__(self, console: Console, *, time_per_question: int) -> None:
        self.console = console
        self.time_per_question = time_per_question

    def render(self, session: Session) -> None:
        if session.screen is Screen.TOPIC:
            self.render_topic(session)
        elif session.screen is Screen.LOADING:
            self.render_loading(session)
        elif session.screen is Screen.QUIZ:
            self.render_quiz(session)
        elif session.screen is Screen.RESULT:
            self.render_result(session)

    def render_topic(self, session: Session) -> None:
        console = self.console
        console.print()
        console.rule(Text("Choose a topic", style="bold magenta"))
        if session.error:
            console.print(
                Panel(
                    session.error,
                    title="Error",
                    border_style="red",
                    subtitle="x to dismiss",
                )
            )
        table = Table(show_header=False, box=box.SIMPLE)
        table.add_column("#", justify="right", style="cyan")
        table.add_column("Topic")
        for number, topic in enumerate(PREDEFINED_TOPICS, start=1):
            table.add_row(str(number), f"{topic.icon} {topic.name}")
        console.print(table)
        timer = "on" if session.timer_enabled else "off"
        console.print(
            Text(
                f"Timer: {timer} ({self.time_per_question}s per question) | "
                "Commands: number or custom topic, t (toggle timer), quit",
                style="dim",
            )
        )

    def render_loading(self, session: Session) -> None:
        self.console.print(
            Text.assemble(
                ("Generating questions about ", "dim"),
                (session.topic, "bold"),
                ("...", "dim"),
            )
        )

    def render_quiz(self, session: Session) -> None:
        question = session.current_question
        if question is None:
            return
        console = self.console
        header = Text.assemble(
            (f"Question {session.current_index + 1}", "bold cyan"),
            (f" / {session.total_questions}", "dim"),
            (f"  {session.topic}", "magenta"),
        )
        console.print()
        console.rule(header)
        console.print(Text(question.question, style="bold"))

        table = Table(show_header=False, box=box.SIMPLE, expand=True)
        table.add_column("Key", justify="center", style="cyan")
        table.add_column("Option")
        selected = session.selected_answer
        for index, option in enumerate(question.options):
            marker = "•" if index == selected else " "
            label = Text(f"{marker} {option}")
            if index == selected:
                label.stylize("bold green")
            table.add_row(OPTION_LABELS[index], label)
        console.print(table)

        hints = [
            f"Answered {session.answered_count}/{session.total_questions}",
        ]
        if session.timer_enabled:
            hints.append(f"{self.time_per_question}s per question")
        hints.append("Commands: a-d, n (next), p (prev), submit, quit")
        console.print(Text(" | ".join(hints), style="dim"))

    def render_result(self, session: Session) -> None:
        result = session.result
        if result is None:
            return
        console = self.console
        console.print()
        console.rule(Text(f"Results: {session.topic}", style="bold magenta"))

        overview = Table(show_header=False, box=box.MINIMAL_DOUBLE_HEAD)
        overview.add_column("Metric", style="bold")
        overview.add_column("Value", justify="right")
        overview.add_row("Score", f"{result.score}/{result.total}")
        overview.add_row("Percentage", f"{result.percentage}%")
        overview.add_row(
            "Grade",
            Text(result.grade, style=_GRADE_STYLES.get(result.grade, "")),
        )
        overview.add_row("Time taken", result.time_taken_label)
        console.print(overview)

        self.render_feedback(session)

        details = Table(title="Answers", box=box.SIMPLE, expand=True)
        details.add_column("#", justify="right")
        details.add_column("Question", overflow="fold")
        details.add_column("Your answer")
        details.add_column("Correct answer")
        details.add_column("Result", justify="center")
        for number, (question, detail) in enumerate(
            zip(session.questions, result.answers), start=1
        ):
            yours = question.option_text(detail.selected_index) or "-"
            details.add_row(
                str(number),
                detail.question,
                yours,
                question.correct_text,
                "✅" if detail.is_correct else "❌",
            )
        console.print(details)

        for detail in result.answers:
            if not detail.explanation:
                continue
            console.print(
                Panel(
                    detail.explanation,
                    title=f"Explanation: {detail.question_id}",
                    border_style="green" if detail.is_correct else "red",
                )
            )
        console.print(
            Text("Commands: r (retry), t (new topic), quit", style="dim")
        )

    def render_feedback(self, session: Session) -> None:
        result = session.result
        if result is None:
            return
        if session.is_loading_feedback:
            self.console.print(
                Text("Generating personalized feedback...", style="dim italic")
            )
            return
        self.console.print(
            Panel(result.feedback, title="Feedback", border_style="cyan")
        )


def _read_line(provider: InputProvider) -> str:
    # StopIteration cannot cross into an asyncio future.
    try:
        return provider()
    except StopIteration as exc:
        raise EOFError from exc


async def run_console_app(
    controller: SessionController,
    console: Console,
    input_provider: InputProvider,
    *,
    time_per_question: int = 30,
    initial_topic: Optional[str] = None,
    clock: Clock = time.monotonic,
) -> Session:
    """Drive ``controller`` from console input until the user quits.

    With the timer on, each question's clock starts when it is first shown
    and keeps running across redraws. The first command typed after the
    limit emits ``time_up``. If that moved to the next question, the late
    command is dropped unless it is ``submit``; on the last question it is
    applied as typed. Returns the final session snapshot.
    """

    renderer = ConsoleRenderer(console, time_per_question=time_per_question)
    question_key: Optional[tuple[int, int]] = None
    started_at = 0.0
    expired = False

    feedback_pending = False

    def _on_change(session: Session) -> None:
        nonlocal feedback_pending
        if session.screen is Screen.LOADING:
            renderer.render_loading(session)
        elif (
            session.screen is Screen.RESULT
            and not session.is_loading_feedback
            and feedback_pending
        ):
            renderer.render_feedback(session)
        feedback_pending = session.is_loading_feedback

    unsubscribe = controller.subscribe(_on_change)
    try:
        if initial_topic:
            await controller.select_topic(
                initial_topic, controller.session.timer_enabled
            )
        while True:
            session = controller.session
            key = (
                (controller.generation, session.current_index)
                if session.screen is Screen.QUIZ
                else None
            )
            if key != question_key:
                question_key, started_at, expired = key, clock(), False
            renderer.render(session)
            try:
                raw = await asyncio.to_thread(_read_line, input_provider)
            except (EOFError, KeyboardInterrupt):
                console.print("\n[bold yellow]Session interrupted.[/]")
                break

            # The session may have changed while waiting (feedback arrived).
            session = controller.session
            intent = parse_command(raw, session.screen)
            if intent is None:
                console.print("[red]Unrecognized command. Try again.[/]")
                continue
            if intent.name == "quit":
                break
            if (
                session.screen is Screen.QUIZ
                and session.timer_enabled
                and not expired
                and clock() - started_at >= time_per_question
            ):
                expired = True
                console.print("[bold yellow]Time's up![/]")
                controller.time_up()
                index = controller.session.current_index
                if index != session.current_index and intent.name != "submit":
                    continue
            await _dispatch(controller, intent, console)
    finally:
        unsubscribe()
        await controller.aclose()
    return controller.session


async def _dispatch(
    controller: SessionController, intent: Intent, console: Console
) -> None:
    session = controller.session
    if intent.name == "select_topic" and intent.topic:
        await controller.select_topic(intent.topic, session.timer_enabled)
    elif intent.name == "toggle_timer":
        _toggle_timer(controller)
    elif intent.name == "dismiss_error":
        controller.dismiss_error()
    elif intent.name == "select_answer" and intent.index is not None:
        controller.select_answer(intent.index)
        console.print(f"Selected [bold]{OPTION_LABELS[intent.index]}[/].")
    elif intent.name == "next":
        controller.next()
    elif intent.name == "prev":
        controller.prev()
    elif intent.name == "submit":
        controller.submit()
    elif intent.name == "retry":
        await controller.retry()
    elif intent.name == "new_topic":
        controller.new_topic()


def _toggle_timer(controller: SessionController) -> None:
    controller.set_timer_enabled(not controller.session.timer_enabled)
