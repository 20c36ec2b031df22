"""Shared helpers used across topic_quiz modules."""

from __future__ import annotations

from .ai import (
    API_KEY_ENV,
    CredentialStatus,
    check_credentials,
    is_usable_key,
    load_client,
)
from .logging import JsonLogFormatter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
)

__all__ = [
    "API_KEY_ENV",
    "CredentialStatus",
    "check_credentials",
    "is_usable_key",
    "load_client",
    "JsonLogFormatter",
    "configure_logger",
    "WORKSPACE_ENV",
    "WorkspaceError",
    "WorkspaceLayout",
    "ensure_workspace",
]
