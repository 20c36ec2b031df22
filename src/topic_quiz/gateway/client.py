"""AI gateway: prompt, call, extract, validate, retry.

The gateway is the only code that talks to the model. Callers get validated
domain objects or a :class:`~topic_quiz.gateway.errors.GatewayError`; raw
JSON, validation and provider exceptions never escape.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Generic,
    List,
    Optional,
    Protocol,
    Sequence,
    TypeVar,
)

from ..core.ai import is_usable_key, load_client
from ..models import Question, WrongAnswer
from ..settings import QuizSettings
from .errors import (
    ExhaustedRetries,
    GatewayError,
    MalformedResponse,
    Unauthorized,
    classify_failure,
)
from .parsing import parse_feedback_response, parse_quiz_response
from .prompts import SYSTEM_PROMPT, build_feedback_prompt, build_quiz_prompt

__all__ = [
    "TextCompletionClient",
    "OpenAICompletionClient",
    "QuizGateway",
]

T = TypeVar("T")
Sleep = Callable[[float], Awaitable[Any]]

_LOGGER = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = (
    "OpenAI API key not configured. Add OPENAI_API_KEY to your environment "
    "or .env file."
)


class TextCompletionClient(Protocol):
    """Anything that turns a prompt into raw model text."""

    def complete(self, prompt: str) -> str:
        """Return the model's reply to ``prompt``."""


class OpenAICompletionClient:
    """Adapter for OpenAI chat completions.

    The SDK client is created on first use so a missing key is reported by
    the gateway's credential check rather than at construction time.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str],
        model: str,
        temperature: float,
        max_tokens: int,
        request_timeout: int,
        client: Any | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = request_timeout
        self._client = client

    def complete(self, prompt: str) -> str:
        if self._client is None:
            self._client = load_client(self._api_key, timeout=self._timeout)
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            timeout=self._timeout,
        )
        content = response.choices[0].message.content or ""
        return content.strip()


@dataclass(frozen=True)
class _Attempt(Generic[T]):
    value: Optional[T] = None
    error: Optional[GatewayError] = None


class QuizGateway:
    """Generate questions and feedback through a text-completion client."""

    def __init__(
        self,
        client: TextCompletionClient,
        *,
        api_key: Optional[str],
        max_attempts: int = 3,
        base_delay_ms: int = 1000,
        sleep: Sleep = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._client = client
        self._api_key = api_key
        self._max_attempts = max_attempts
        self._base_delay_ms = base_delay_ms
        self._sleep = sleep
        self._logger = logger or _LOGGER

    @classmethod
    def from_settings(
        cls,
        settings: QuizSettings,
        *,
        api_key: Optional[str],
        client: Optional[TextCompletionClient] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> "QuizGateway":
        if client is None:
            client = OpenAICompletionClient(
                api_key=api_key,
                model=settings.ai.model,
                temperature=settings.ai.temperature,
                max_tokens=settings.ai.max_tokens,
                request_timeout=settings.ai.request_timeout,
            )
        return cls(
            client,
            api_key=api_key,
            max_attempts=settings.retry.max_attempts,
            base_delay_ms=settings.retry.base_delay_ms,
            sleep=sleep,
        )

    @property
    def is_configured(self) -> bool:
        return is_usable_key(self._api_key)

    async def generate_questions(
        self, topic: str, count: int, difficulty: str
    ) -> List[Question]:
        prompt = build_quiz_prompt(topic, count, difficulty)
        return await self._run(
            prompt, parse_quiz_response, action="generate quiz", topic=topic
        )

    async def generate_feedback(
        self,
        topic: str,
        score: int,
        total: int,
        percentage: int,
        wrong_answers: Sequence[WrongAnswer],
    ) -> str:
        prompt = build_feedback_prompt(
            topic, score, total, percentage, wrong_answers
        )
        return await self._run(
            prompt,
            parse_feedback_response,
            action="generate feedback",
            topic=topic,
        )

    async def _run(
        self,
        prompt: str,
        parse: Callable[[str], T],
        *,
        action: str,
        topic: str,
    ) -> T:
        if not self.is_configured:
            self._logger.warning(
                "Refusing to call provider without credentials",
                extra={"action": action},
            )
            raise Unauthorized(MISSING_KEY_MESSAGE)

        last_error: Optional[GatewayError] = None
        for attempt in range(self._max_attempts):
            outcome = await self._attempt(prompt, parse, action=action)
            if outcome.error is None:
                self._logger.info(
                    "Provider call succeeded",
                    extra={
                        "action": action,
                        "topic": topic,
                        "attempt": attempt,
                    },
                )
                return outcome.value  # type: ignore[return-value]

            last_error = outcome.error
            self._logger.warning(
                "Provider attempt failed: %s",
                last_error.message,
                extra={
                    "action": action,
                    "attempt": attempt,
                    "error_kind": last_error.kind.value,
                },
            )
            if not last_error.retryable:
                raise last_error
            if attempt < self._max_attempts - 1:
                delay = self._base_delay_ms * (2**attempt) / 1000
                self._logger.debug(
                    "Retrying after backoff",
                    extra={"action": action, "delay_seconds": delay},
                )
                await self._sleep(delay)

        assert last_error is not None
        raise ExhaustedRetries(last_error, self._max_attempts) from last_error

    async def _attempt(
        self, prompt: str, parse: Callable[[str], T], *, action: str
    ) -> _Attempt[T]:
        try:
            raw = await asyncio.to_thread(self._client.complete, prompt)
        except Exception as exc:
            error = classify_failure(exc, action=action)
            if error is not exc:
                error.__cause__ = exc
            return _Attempt(error=error)
        try:
            return _Attempt(value=parse(raw))
        except MalformedResponse as exc:
            return _Attempt(error=exc)
