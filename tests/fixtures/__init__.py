"""Shared testing fixtures and stubs for the topic_quiz test suite."""

from .completions import (  # noqa: F401
    FakeGateway,
    RecordingSleep,
    ScriptedCompletionClient,
    feedback_json,
    make_questions,
    question_payload,
    quiz_json,
)
from .openai import OpenAIStub, OpenAIStubFactory, StatusError  # noqa: F401

__all__ = [
    "FakeGateway",
    "OpenAIStub",
    "OpenAIStubFactory",
    "RecordingSleep",
    "ScriptedCompletionClient",
    "StatusError",
    "feedback_json",
    "make_questions",
    "question_payload",
    "quiz_json",
]
