"""Per-user workspace holding the quiz config file and run logs."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, MutableMapping, Optional

__all__ = [
    "DEFAULT_WORKSPACE",
    "WORKSPACE_ENV",
    "WorkspaceError",
    "WorkspaceLayout",
    "ensure_workspace",
]

WORKSPACE_ENV = "TOPIC_QUIZ_HOME"
DEFAULT_WORKSPACE = Path.home() / ".topic-quiz"

_SUBDIRS = ("config", "logs")


class WorkspaceError(RuntimeError):
    """Raised when the workspace directories cannot be prepared."""


@dataclass(frozen=True)
class WorkspaceLayout:
    """Resolved workspace root and its subdirectories."""

    home: Path
    directories: Mapping[str, Path]

    def path_for(self, key: str) -> Path:
        try:
            return self.directories[key]
        except KeyError as exc:
            raise WorkspaceError(f"Unknown workspace directory '{key}'.") from exc


def ensure_workspace(
    *,
    env: Optional[Mapping[str, str]] = None,
    path: Optional[Path] = None,
    create: bool = True,
) -> WorkspaceLayout:
    """Resolve the workspace and (optionally) create its directories.

    Precedence is ``path`` > ``$TOPIC_QUIZ_HOME`` > ``~/.topic-quiz``. When
    the default location is not writable, a directory under the system temp
    dir is used instead; explicit locations never fall back.
    """

    env_map = os.environ if env is None else env
    base, explicit = _resolve_base(env_map, path)

    candidates = [base]
    if create and not explicit:
        candidates.append(Path(tempfile.gettempdir()) / "topic-quiz")

    last_error: Optional[Exception] = None
    for candidate in candidates:
        try:
            return _layout_for(candidate, create=create)
        except PermissionError as exc:
            last_error = exc
    raise WorkspaceError(f"Unable to prepare workspace at {base}") from last_error


def _resolve_base(
    env: Mapping[str, str], override: Optional[Path]
) -> tuple[Path, bool]:
    if override is not None:
        return override.expanduser().absolute(), True
    custom = (env.get(WORKSPACE_ENV) or "").strip()
    if custom:
        return Path(custom).expanduser().absolute(), True
    return DEFAULT_WORKSPACE, False


def _layout_for(base: Path, *, create: bool) -> WorkspaceLayout:
    if base.exists() and not base.is_dir():
        raise WorkspaceError(f"Workspace path is not a directory: {base}")
    directories: MutableMapping[str, Path] = {}
    for name in _SUBDIRS:
        target = base / name
        if create:
            target.mkdir(parents=True, exist_ok=True)
            _chmod_private(target)
        if target.exists() and not target.is_dir():
            raise WorkspaceError(
                f"Expected workspace directory for '{name}': {target}"
            )
        directories[name] = target
    if create:
        _chmod_private(base)
    return WorkspaceLayout(home=base, directories=MappingProxyType(directories))


def _chmod_private(path: Path) -> None:
    try:
        path.chmod(0o700)
    except (PermissionError, NotImplementedError):
        return
