from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import OpenAIStubFactory  # noqa: E402
from topic_quiz.core import ai  # noqa: E402
from topic_quiz.core import workspace  # noqa: E402
from topic_quiz.settings import CONFIG_ENV, LOG_LEVEL_ENV  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_env(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    """Keep tests away from the real workspace, .env file and API key."""

    monkeypatch.setenv(workspace.WORKSPACE_ENV, str(tmp_path / "home"))
    for name in (ai.API_KEY_ENV, CONFIG_ENV, LOG_LEVEL_ENV):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(ai, "load_dotenv", lambda *args, **kwargs: False)
    yield
    logger = logging.getLogger("topic_quiz")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def openai_factory(monkeypatch: pytest.MonkeyPatch) -> OpenAIStubFactory:
    """Replace the ``OpenAI`` constructor with a recording stub factory."""

    factory = OpenAIStubFactory()
    monkeypatch.setattr(ai, "OpenAI", factory)
    return factory
