from .client import OpenAICompletionClient, QuizGateway, TextCompletionClient
from .errors import (
    ErrorKind,
    ExhaustedRetries,
    GatewayError,
    MalformedResponse,
    ProviderError,
    Unauthorized,
)
from .parsing import (
    extract_json,
    parse_feedback_response,
    parse_quiz_response,
    validate_feedback_payload,
    validate_quiz_payload,
)
from .prompts import build_feedback_prompt, build_quiz_prompt

__all__ = [
    "OpenAICompletionClient",
    "QuizGateway",
    "TextCompletionClient",
    "ErrorKind",
    "ExhaustedRetries",
    "GatewayError",
    "MalformedResponse",
    "ProviderError",
    "Unauthorized",
    "extract_json",
    "parse_feedback_response",
    "parse_quiz_response",
    "validate_feedback_payload",
    "validate_quiz_payload",
    "build_feedback_prompt",
    "build_quiz_prompt",
]
