"""Terminal quiz game with AI-generated multiple-choice questions."""

from .controller import FEEDBACK_FALLBACK, SessionController
from .gateway import GatewayError, QuizGateway
from .models import Question, QuizResult, Screen, Session
from .settings import QuizSettings, load_settings

__all__ = [
    "FEEDBACK_FALLBACK",
    "SessionController",
    "GatewayError",
    "QuizGateway",
    "Question",
    "QuizResult",
    "Screen",
    "Session",
    "QuizSettings",
    "load_settings",
]

__version__ = "0.1.0"
