from __future__ import annotations

import asyncio

import pytest

from fixtures import (
    OpenAIStub,
    RecordingSleep,
    ScriptedCompletionClient,
    StatusError,
    feedback_json,
    quiz_json,
)
from topic_quiz.core import ai
from topic_quiz.gateway import (
    ExhaustedRetries,
    MalformedResponse,
    OpenAICompletionClient,
    ProviderError,
    QuizGateway,
    Unauthorized,
)
from topic_quiz.gateway.errors import ErrorKind, classify_failure
from topic_quiz.gateway.prompts import SYSTEM_PROMPT
from topic_quiz.models import WrongAnswer
from topic_quiz.settings import default_settings


def make_gateway(client, *, api_key="sk-test", sleep=None, attempts=3):
    return QuizGateway(
        client,
        api_key=api_key,
        max_attempts=attempts,
        base_delay_ms=1000,
        sleep=sleep or RecordingSleep(),
    )


def test_generate_questions_success() -> None:
    client = ScriptedCompletionClient([quiz_json(3)])
    gateway = make_gateway(client)

    questions = asyncio.run(gateway.generate_questions("Python", 3, "easy"))

    assert [q.id for q in questions] == ["q1", "q2", "q3"]
    assert client.calls == 1
    assert '"Python"' in client.prompts[0]
    assert "easy difficulty" in client.prompts[0]


def test_malformed_replies_exhaust_retries_with_backoff() -> None:
    client = ScriptedCompletionClient(["nope", "still nope", "{bad json}"])
    sleep = RecordingSleep()
    gateway = make_gateway(client, sleep=sleep)

    with pytest.raises(ExhaustedRetries) as exc:
        asyncio.run(gateway.generate_questions("Python", 5, "medium"))

    assert client.calls == 3
    assert sleep.delays == [1.0, 2.0]
    assert exc.value.attempts == 3
    assert isinstance(exc.value.last_error, MalformedResponse)
    assert exc.value.message == "Failed to parse AI response as JSON"
    assert exc.value.kind is ErrorKind.EXHAUSTED_RETRIES


def test_schema_violations_are_retried_with_backoff() -> None:
    three_options = quiz_json(1, options=["A", "B", "C"])
    client = ScriptedCompletionClient([three_options] * 3)
    sleep = RecordingSleep()
    gateway = make_gateway(client, sleep=sleep)

    with pytest.raises(ExhaustedRetries) as exc:
        asyncio.run(gateway.generate_questions("Python", 1, "medium"))

    assert client.calls == 3
    assert sleep.delays == [1.0, 2.0]
    assert isinstance(exc.value.last_error, MalformedResponse)
    assert "exactly 4" in exc.value.message


def test_deeply_nested_reply_is_retried_not_leaked() -> None:
    nested = '{"questions": ' + "[" * 100_000 + "]" * 100_000 + "}"
    client = ScriptedCompletionClient([nested, quiz_json(1)])
    gateway = make_gateway(client)

    questions = asyncio.run(gateway.generate_questions("Python", 1, "easy"))

    assert len(questions) == 1
    assert client.calls == 2


def test_success_after_retry() -> None:
    client = ScriptedCompletionClient(
        [ConnectionError("reset by peer"), feedback_json()]
    )
    sleep = RecordingSleep()
    gateway = make_gateway(client, sleep=sleep)

    wrong = [WrongAnswer("What does z-index do?", "Not answered", "Stacking")]
    feedback = asyncio.run(gateway.generate_feedback("CSS", 4, 5, 80, wrong))

    assert feedback == "Great work, keep practicing!"
    assert client.calls == 2
    assert sleep.delays == [1.0]
    assert client.prompts[0] == client.prompts[1]
    assert "Score: 4/5 (80%)" in client.prompts[1]
    assert "What does z-index do?" in client.prompts[1]


def test_provider_errors_are_wrapped() -> None:
    client = ScriptedCompletionClient([TimeoutError("slow")] * 2)
    gateway = make_gateway(client, attempts=2)

    with pytest.raises(ExhaustedRetries) as exc:
        asyncio.run(gateway.generate_questions("Go", 5, "medium"))

    last = exc.value.last_error
    assert isinstance(last, ProviderError)
    assert last.message == "Failed to generate quiz: slow"
    assert isinstance(last.__cause__, TimeoutError)


@pytest.mark.parametrize("api_key", [None, "", "your_api_key_here"])
def test_missing_or_placeholder_key_never_calls_provider(api_key) -> None:
    client = ScriptedCompletionClient([quiz_json()])
    sleep = RecordingSleep()
    gateway = make_gateway(client, api_key=api_key, sleep=sleep)

    assert gateway.is_configured is False
    with pytest.raises(Unauthorized) as exc:
        asyncio.run(gateway.generate_questions("Python", 5, "medium"))

    assert client.calls == 0
    assert sleep.delays == []
    assert "not configured" in exc.value.message


@pytest.mark.parametrize(
    "failure",
    [
        StatusError("Error code: 401", status_code=401),
        RuntimeError("Incorrect API key provided"),
    ],
)
def test_rejected_credentials_are_not_retried(failure) -> None:
    client = ScriptedCompletionClient([failure, quiz_json()])
    sleep = RecordingSleep()
    gateway = make_gateway(client, sleep=sleep)

    with pytest.raises(Unauthorized) as exc:
        asyncio.run(gateway.generate_questions("Python", 5, "medium"))

    assert exc.value.message == "Invalid OpenAI API key"
    assert client.calls == 1
    assert sleep.delays == []


def test_classify_failure_keeps_gateway_errors() -> None:
    error = MalformedResponse("bad")
    assert classify_failure(error, action="x") is error
    server = classify_failure(StatusError("boom", 500), action="generate quiz")
    assert isinstance(server, ProviderError)
    assert server.retryable is True


def test_max_attempts_must_be_positive() -> None:
    with pytest.raises(ValueError):
        QuizGateway(ScriptedCompletionClient(), api_key="k", max_attempts=0)


def test_openai_client_sends_system_and_user_messages() -> None:
    stub = OpenAIStub()
    stub.queue_response("  " + feedback_json() + "\n")
    client = OpenAICompletionClient(
        api_key="sk-test",
        model="gpt-test",
        temperature=0.2,
        max_tokens=500,
        request_timeout=9,
        client=stub,
    )

    reply = client.complete("hello")

    assert reply == feedback_json()
    (call,) = stub.calls
    assert call["model"] == "gpt-test"
    assert call["temperature"] == 0.2
    assert call["max_tokens"] == 500
    assert call["timeout"] == 9
    assert call["messages"] == [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "hello"},
    ]


def test_openai_client_treats_empty_content_as_blank() -> None:
    stub = OpenAIStub()
    stub.queue_response(None)
    client = OpenAICompletionClient(
        api_key="sk-test",
        model="m",
        temperature=0.7,
        max_tokens=10,
        request_timeout=5,
        client=stub,
    )
    assert client.complete("hi") == ""


def test_from_settings_creates_sdk_client_on_first_call(monkeypatch) -> None:
    created = []

    def _factory(**kwargs):
        stub = OpenAIStub(**kwargs)
        stub.queue_response(quiz_json(1))
        created.append(stub)
        return stub

    monkeypatch.setattr(ai, "OpenAI", _factory)
    gateway = QuizGateway.from_settings(
        default_settings(), api_key="sk-live", sleep=RecordingSleep()
    )
    assert gateway.is_configured is True
    assert created == []

    questions = asyncio.run(gateway.generate_questions("Python", 1, "medium"))

    assert len(questions) == 1
    (stub,) = created
    assert stub.init_kwargs == {"api_key": "sk-live", "timeout": 30}
    assert stub.calls[0]["model"] == "gpt-4o-mini"
    assert stub.calls[0]["max_tokens"] == 2000
