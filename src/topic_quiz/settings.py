"""Configuration loader for topic-quiz.

Values resolve with the precedence CLI overrides > environment > TOML file >
built-in defaults. The TOML file is merged onto the defaults table, so a file
only needs the keys it changes, and unknown keys are rejected.
"""

from __future__ import annotations

import copy
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

from .core import workspace as workspace_mod

__all__ = [
    "CONFIG_ENV",
    "CONFIG_FILENAME",
    "CONFIG_TEMPLATE",
    "DIFFICULTIES",
    "LOG_LEVEL_ENV",
    "AISettings",
    "LoadResult",
    "LoggingSettings",
    "QuizOptions",
    "QuizSettings",
    "RetrySettings",
    "SettingsError",
    "build_settings",
    "default_settings",
    "load_settings",
    "write_config_template",
]

CONFIG_FILENAME = "topic_quiz.toml"
CONFIG_ENV = "TOPIC_QUIZ_CONFIG"
LOG_LEVEL_ENV = "TOPIC_QUIZ_LOG_LEVEL"
DIFFICULTIES = ("easy", "medium", "hard")
MAX_QUESTIONS_PER_QUIZ = 10

_DEFAULTS: Mapping[str, Mapping[str, Any]] = {
    "ai": {
        "model": "gpt-4o-mini",
        "temperature": 0.7,
        "max_tokens": 2000,
        "request_timeout": 30,
    },
    "quiz": {
        "questions_per_quiz": 5,
        "difficulty": "medium",
        "time_per_question": 30,
        "timer_enabled": True,
    },
    "retry": {
        "max_attempts": 3,
        "base_delay_ms": 1000,
    },
    "logging": {
        "level": "INFO",
        "verbose": False,
    },
}

CONFIG_TEMPLATE = """\
# topic-quiz configuration
# Only keys you change need to be present; the rest use built-in defaults.

[ai]
model = "gpt-4o-mini"
temperature = 0.7
max_tokens = 2000
# Seconds to wait for a single completion request.
request_timeout = 30

[quiz]
questions_per_quiz = 5
# One of: easy, medium, hard
difficulty = "medium"
# Seconds allowed per question when the timer is on.
time_per_question = 30
timer_enabled = true

[retry]
max_attempts = 3
# Backoff doubles after each failed attempt: 1s, 2s, ...
base_delay_ms = 1000

[logging]
level = "INFO"
verbose = false
"""


class SettingsError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class AISettings:
    model: str
    temperature: float
    max_tokens: int
    request_timeout: int


@dataclass(frozen=True)
class QuizOptions:
    questions_per_quiz: int
    difficulty: str
    time_per_question: int
    timer_enabled: bool


@dataclass(frozen=True)
class RetrySettings:
    max_attempts: int
    base_delay_ms: int


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    verbose: bool


@dataclass(frozen=True)
class QuizSettings:
    ai: AISettings
    quiz: QuizOptions
    retry: RetrySettings
    logging: LoggingSettings


@dataclass(frozen=True)
class LoadResult:
    """Resolved settings plus the workspace and file they came from."""

    settings: QuizSettings
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def default_settings() -> QuizSettings:
    return build_settings(_defaults_table())


def load_settings(
    *,
    config_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
    log_level: Optional[str] = None,
    verbose: Optional[bool] = None,
) -> LoadResult:
    """Resolve settings from the CLI, environment and TOML file."""

    env_map = os.environ if env is None else env
    try:
        layout = workspace_mod.ensure_workspace(
            env=env_map, path=workspace_path
        )
    except workspace_mod.WorkspaceError as exc:
        raise SettingsError(str(exc)) from exc

    requested = _requested_path(config_path, env_map)
    target = requested or layout.path_for("config") / CONFIG_FILENAME

    table = _defaults_table()
    loaded_path: Optional[Path] = None
    if target.exists():
        _apply_file(table, _read_config_file(target))
        loaded_path = target
    elif requested is not None:
        raise SettingsError(f"Config file not found: {target}")

    env_level = (env_map.get(LOG_LEVEL_ENV) or "").strip()
    if env_level:
        table["logging"]["level"] = env_level
    if log_level:
        table["logging"]["level"] = log_level
    if verbose is not None:
        table["logging"]["verbose"] = verbose

    return LoadResult(
        settings=build_settings(table), layout=layout, config_path=loaded_path
    )


def build_settings(table: Mapping[str, Mapping[str, Any]]) -> QuizSettings:
    """Validate a merged settings table and freeze it into dataclasses."""

    ai = table["ai"]
    quiz = table["quiz"]
    retry = table["retry"]
    logging_table = table["logging"]

    questions = _positive_int(
        quiz["questions_per_quiz"], "quiz.questions_per_quiz"
    )
    if questions > MAX_QUESTIONS_PER_QUIZ:
        raise SettingsError(
            "'quiz.questions_per_quiz' must be at most "
            f"{MAX_QUESTIONS_PER_QUIZ}."
        )
    difficulty = _string(quiz["difficulty"], "quiz.difficulty").lower()
    if difficulty not in DIFFICULTIES:
        raise SettingsError(
            "'quiz.difficulty' must be one of: {0}.".format(
                ", ".join(DIFFICULTIES)
            )
        )

    temperature = ai["temperature"]
    if isinstance(temperature, bool) or not isinstance(
        temperature, (int, float)
    ):
        raise SettingsError("'ai.temperature' must be a number.")
    if not 0 <= temperature <= 2:
        raise SettingsError("'ai.temperature' must be between 0 and 2.")

    base_delay = retry["base_delay_ms"]
    if isinstance(base_delay, bool) or not isinstance(base_delay, int):
        raise SettingsError("'retry.base_delay_ms' must be an integer.")
    if base_delay < 0:
        raise SettingsError("'retry.base_delay_ms' must not be negative.")

    return QuizSettings(
        ai=AISettings(
            model=_string(ai["model"], "ai.model"),
            temperature=float(temperature),
            max_tokens=_positive_int(ai["max_tokens"], "ai.max_tokens"),
            request_timeout=_positive_int(
                ai["request_timeout"], "ai.request_timeout"
            ),
        ),
        quiz=QuizOptions(
            questions_per_quiz=questions,
            difficulty=difficulty,
            time_per_question=_positive_int(
                quiz["time_per_question"], "quiz.time_per_question"
            ),
            timer_enabled=_bool(quiz["timer_enabled"], "quiz.timer_enabled"),
        ),
        retry=RetrySettings(
            max_attempts=_positive_int(
                retry["max_attempts"], "retry.max_attempts"
            ),
            base_delay_ms=base_delay,
        ),
        logging=LoggingSettings(
            level=_string(logging_table["level"], "logging.level").upper(),
            verbose=_bool(logging_table["verbose"], "logging.verbose"),
        ),
    )


def write_config_template(path: Path, *, overwrite: bool = False) -> Path:
    """Write :data:`CONFIG_TEMPLATE` to ``path`` with owner-only access."""

    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists() and not overwrite:
        raise SettingsError(
            f"Config already exists: {path} (use --force to replace it)"
        )
    path.write_text(CONFIG_TEMPLATE, encoding="utf-8")
    try:
        path.chmod(0o600)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path


def _read_config_file(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise SettingsError(f"Failed to parse {path.name}: {exc}") from exc
    except OSError as exc:
        raise SettingsError(f"Cannot read config file {path}: {exc}") from exc


def _apply_file(
    table: MutableMapping[str, MutableMapping[str, Any]],
    document: Mapping[str, Any],
) -> None:
    """Overlay a parsed config file onto the defaults table.

    Every top-level entry must be one of the known sections and every key
    inside it must already exist there. A key whose type clearly differs
    from its default (a table where a value belongs, or the reverse) is
    reported with its dotted name; finer value checks live in
    :func:`build_settings`.
    """

    for section, values in document.items():
        if section not in table:
            raise SettingsError(
                "Unknown config section [{0}]; expected one of: {1}.".format(
                    section, ", ".join(f"[{name}]" for name in table)
                )
            )
        if not isinstance(values, Mapping):
            raise SettingsError(
                f"[{section}] must be a table, found "
                f"{type(values).__name__}."
            )
        defaults = table[section]
        for key, value in values.items():
            field = f"{section}.{key}"
            if key not in defaults:
                raise SettingsError(f"Unknown config key '{field}'.")
            if isinstance(value, Mapping):
                raise SettingsError(f"'{field}' must be a value, not a table.")
            defaults[key] = value


def _defaults_table() -> MutableMapping[str, MutableMapping[str, Any]]:
    return copy.deepcopy(_DEFAULTS)  # type: ignore[arg-type]


def _requested_path(
    config_path: Optional[Path], env: Mapping[str, str]
) -> Optional[Path]:
    if config_path is not None:
        return config_path.expanduser()
    candidate = (env.get(CONFIG_ENV) or "").strip()
    if candidate:
        return Path(candidate).expanduser()
    return None


def _positive_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise SettingsError(f"'{field}' must be a positive integer.")
    return value


def _string(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise SettingsError(f"'{field}' must be a non-empty string.")
    return value.strip()


def _bool(value: Any, field: str) -> bool:
    if not isinstance(value, bool):
        raise SettingsError(f"'{field}' must be true or false.")
    return value
