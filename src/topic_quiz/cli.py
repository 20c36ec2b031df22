"""Command-line entry point for topic-quiz."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Mapping, Optional, Sequence

from rich.console import Console
from rich.panel import Panel

from .controller import SessionController
from .core import ai as ai_mod
from .core import workspace as workspace_mod
from .core.logging import configure_logger
from .gateway import QuizGateway
from .settings import (
    CONFIG_FILENAME,
    LoadResult,
    SettingsError,
    load_settings,
    write_config_template,
)
from .topics import PREDEFINED_TOPICS
from .view import run_console_app

LOGGER_NAME = "topic_quiz"


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="topic-quiz",
        description="AI-generated multiple-choice quizzes in your terminal.",
        epilog=(
            "Run `topic-quiz config init` to scaffold the default "
            f"{CONFIG_FILENAME} template."
        ),
    )
    sub = parser.add_subparsers(dest="command", required=True)

    play = sub.add_parser("play", help="Start an interactive quiz session.")
    play.add_argument(
        "--topic",
        help="Skip the topic screen and start a quiz on this topic.",
    )
    play.add_argument(
        "--no-timer",
        dest="timer",
        action="store_false",
        default=None,
        help="Disable the per-question timer.",
    )
    play.add_argument(
        "--timer",
        dest="timer",
        action="store_true",
        help="Enable the per-question timer.",
    )
    _add_config_arguments(play)
    play.add_argument(
        "--log-level",
        help="Set the file logging level (defaults to INFO).",
    )
    play.add_argument(
        "--verbose",
        action="store_true",
        default=None,
        help="Also log to stderr at DEBUG level.",
    )

    sub.add_parser("topics", help="List the built-in topics.")

    doctor = sub.add_parser(
        "doctor", help="Check configuration and API credentials."
    )
    _add_config_arguments(doctor)

    config = sub.add_parser("config", help="Manage the configuration file.")
    config_sub = config.add_subparsers(dest="action", required=True)
    init = config_sub.add_parser(
        "init", help=f"Write the default {CONFIG_FILENAME} template."
    )
    init.add_argument(
        "--path",
        type=Path,
        help="Destination file (defaults to the workspace config directory).",
    )
    init.add_argument(
        "--workspace",
        type=Path,
        help="Workspace root used to resolve the default destination.",
    )
    init.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file.",
    )
    return parser


def _add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help=(
            "Path to a TOML config file (defaults to the workspace config "
            "directory)."
        ),
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root holding config and logs.",
    )


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
    env: Optional[Mapping[str, str]] = None,
) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    console = console or Console()

    if args.command == "topics":
        return _cmd_topics(console)
    if args.command == "config":
        return _cmd_config_init(args, console, env)
    if args.command == "doctor":
        return _cmd_doctor(args, console, env)
    if args.command == "play":
        return _cmd_play(args, console, env)
    parser.print_help()  # pragma: no cover - argparse enforces a command
    return 2


def _cmd_topics(console: Console) -> int:
    for number, topic in enumerate(PREDEFINED_TOPICS, start=1):
        console.print(f"{number}. {topic.icon} {topic.name} ({topic.id})")
    return 0


def _cmd_config_init(
    args: argparse.Namespace,
    console: Console,
    env: Optional[Mapping[str, str]],
) -> int:
    if args.path is not None:
        target = args.path.expanduser()
        if not target.is_absolute():
            target = (Path.cwd() / target).resolve()
    else:
        try:
            layout = workspace_mod.ensure_workspace(
                env=env, path=args.workspace
            )
        except workspace_mod.WorkspaceError as exc:
            console.print(f"[red]{exc}[/]")
            return 1
        target = layout.path_for("config") / CONFIG_FILENAME
    try:
        written = write_config_template(target, overwrite=args.force)
    except SettingsError as exc:
        console.print(f"[red]{exc}[/]")
        return 1
    console.print(f"Wrote {CONFIG_FILENAME} to {written}")
    return 0


def _load(
    args: argparse.Namespace,
    console: Console,
    env: Optional[Mapping[str, str]],
) -> Optional[LoadResult]:
    try:
        return load_settings(
            config_path=args.config,
            env=env,
            workspace_path=args.workspace,
            log_level=getattr(args, "log_level", None),
            verbose=getattr(args, "verbose", None),
        )
    except SettingsError as exc:
        console.print(f"[red]Error:[/] {exc}")
        return None


def _cmd_doctor(
    args: argparse.Namespace,
    console: Console,
    env: Optional[Mapping[str, str]],
) -> int:
    loaded = _load(args, console, env)
    if loaded is None:
        return 2
    status = ai_mod.check_credentials(env)
    settings = loaded.settings
    console.print(f"Workspace:   {loaded.layout.home}")
    console.print(f"Config file: {loaded.config_path or '(defaults)'}")
    console.print(f"Log dir:     {loaded.layout.path_for('logs')}")
    console.print(
        f"Model:       {settings.ai.model} "
        f"({settings.quiz.questions_per_quiz} questions, "
        f"{settings.quiz.difficulty})"
    )
    if status.configured:
        console.print(f"[green]OK[/] {status.describe()}")
        return 0
    console.print(f"[red]MISSING[/] {status.describe()}")
    return 1


def _cmd_play(
    args: argparse.Namespace,
    console: Console,
    env: Optional[Mapping[str, str]],
) -> int:
    topic = args.topic.strip() if args.topic is not None else None
    if args.topic is not None and not topic:
        console.print("[red]Error:[/] --topic must not be blank.")
        return 2
    loaded = _load(args, console, env)
    if loaded is None:
        return 2
    settings = loaded.settings
    logger, log_path = configure_logger(
        LOGGER_NAME,
        log_dir=loaded.layout.path_for("logs"),
        level=settings.logging.level,
        verbose=settings.logging.verbose,
    )
    logger.debug("play command invoked", extra={"log_path": log_path})

    status = ai_mod.check_credentials(env)
    if not status.configured:
        logger.warning("API credentials not configured: %s", status.reason)
        console.print(
            Panel(
                status.describe()
                + "\nQuiz generation will fail until a key is configured.",
                title="Configuration warning",
                border_style="yellow",
            )
        )

    timer_enabled = (
        settings.quiz.timer_enabled if args.timer is None else args.timer
    )
    gateway = QuizGateway.from_settings(settings, api_key=status.api_key)
    controller = SessionController(
        gateway,
        question_count=settings.quiz.questions_per_quiz,
        difficulty=settings.quiz.difficulty,
        timer_enabled=timer_enabled,
    )
    try:
        asyncio.run(
            run_console_app(
                controller,
                console,
                lambda: console.input("[bold cyan]> [/]"),
                time_per_question=settings.quiz.time_per_question,
                initial_topic=topic,
            )
        )
    except KeyboardInterrupt:
        console.print("\n[bold yellow]Goodbye.[/]")
    console.print(f"[dim]Log file: {log_path}[/]")
    return 0


def run() -> None:
    """Console-script entry point."""

    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    run()
