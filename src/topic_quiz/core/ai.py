"""Credential discovery and OpenAI client construction."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv
from openai import OpenAI

__all__ = [
    "API_KEY_ENV",
    "PLACEHOLDER_KEYS",
    "CredentialStatus",
    "check_credentials",
    "is_usable_key",
    "load_client",
    "read_api_key",
]

API_KEY_ENV = "OPENAI_API_KEY"

# Values shipped in sample .env files that must never reach the provider.
PLACEHOLDER_KEYS = frozenset(
    {
        "your_api_key_here",
        "your-api-key-here",
        "sk-your-key-here",
        "changeme",
    }
)


@dataclass(frozen=True)
class CredentialStatus:
    """Outcome of inspecting the configured API key."""

    api_key: Optional[str]
    configured: bool
    reason: str

    def describe(self) -> str:
        if self.configured:
            return f"{API_KEY_ENV} is set."
        return self.reason


def is_usable_key(api_key: Optional[str]) -> bool:
    """Return ``True`` when ``api_key`` is present and not a placeholder."""

    if not api_key:
        return False
    candidate = api_key.strip()
    if not candidate:
        return False
    return candidate.lower() not in PLACEHOLDER_KEYS


def read_api_key(env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Read the API key from ``env`` (defaults to ``os.environ`` + ``.env``)."""

    if env is None:
        load_dotenv()
        env = os.environ
    value = env.get(API_KEY_ENV)
    if value is None:
        return None
    return value.strip() or None


def check_credentials(
    env: Optional[Mapping[str, str]] = None,
) -> CredentialStatus:
    """Inspect the environment and report whether the key looks usable."""

    api_key = read_api_key(env)
    if api_key is None:
        return CredentialStatus(
            api_key=None,
            configured=False,
            reason=(
                f"{API_KEY_ENV} not found in environment. Set it or add it "
                "to .env"
            ),
        )
    if not is_usable_key(api_key):
        return CredentialStatus(
            api_key=api_key,
            configured=False,
            reason=(
                f"{API_KEY_ENV} still holds a placeholder value. Replace it "
                "with a real key."
            ),
        )
    return CredentialStatus(api_key=api_key, configured=True, reason="")


def load_client(
    api_key: Optional[str] = None, *, timeout: Optional[float] = None
) -> OpenAI:
    """Initialize an OpenAI client from ``api_key`` or the environment."""

    if api_key is None:
        status = check_credentials()
        if not status.configured:
            raise RuntimeError(status.reason)
        api_key = status.api_key
    elif not is_usable_key(api_key):
        raise RuntimeError(f"{API_KEY_ENV} is missing or a placeholder.")
    if timeout is None:
        return OpenAI(api_key=api_key)
    return OpenAI(api_key=api_key, timeout=timeout)
