"""
Common utilities shared across Jugaad Engineer modules.
"""

from .errors import (
    GENERIC_FAILURE_MESSAGE,
    ErrorKind,
    PlanParseError,
    UserFacingError,
    classify_error,
    describe_error,
    is_rate_limit_error,
)
from .llm import (
    ChatResult,
    CompletionCallable,
    SpeechCallable,
    call_chat_completion,
    call_speech,
    resolve_api_key,
)

__all__ = [
    "GENERIC_FAILURE_MESSAGE",
    "ChatResult",
    "CompletionCallable",
    "ErrorKind",
    "PlanParseError",
    "SpeechCallable",
    "UserFacingError",
    "call_chat_completion",
    "call_speech",
    "classify_error",
    "describe_error",
    "is_rate_limit_error",
    "resolve_api_key",
]
