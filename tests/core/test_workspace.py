from __future__ import annotations

import pytest

from topic_quiz.core import workspace


def test_ensure_workspace_creates_directories(tmp_path, monkeypatch):
    root = tmp_path / "data"
    monkeypatch.setenv(workspace.WORKSPACE_ENV, str(root))

    layout = workspace.ensure_workspace()

    assert layout.home == root
    assert layout.path_for("config") == root / "config"
    assert layout.path_for("logs").is_dir()


def test_ensure_workspace_is_idempotent(tmp_path):
    first = workspace.ensure_workspace(path=tmp_path / "again")
    second = workspace.ensure_workspace(path=tmp_path / "again")

    assert first.home == second.home
    assert dict(first.directories) == dict(second.directories)


def test_explicit_path_beats_environment(tmp_path, monkeypatch):
    monkeypatch.setenv(workspace.WORKSPACE_ENV, str(tmp_path / "env"))

    layout = workspace.ensure_workspace(path=tmp_path / "cli")

    assert layout.home == tmp_path / "cli"
    assert not (tmp_path / "env").exists()


def test_ensure_workspace_without_create(tmp_path):
    root = tmp_path / "deferred"

    layout = workspace.ensure_workspace(path=root, create=False)

    assert layout.home == root
    assert not root.exists()


def test_workspace_path_must_be_directory(tmp_path):
    target = tmp_path / "file"
    target.write_text("not a dir", encoding="utf-8")

    with pytest.raises(workspace.WorkspaceError):
        workspace.ensure_workspace(path=target)


def test_path_for_unknown_key(tmp_path):
    layout = workspace.ensure_workspace(path=tmp_path / "ws")

    with pytest.raises(workspace.WorkspaceError) as exc:
        layout.path_for("cache")
    assert "cache" in str(exc.value)
