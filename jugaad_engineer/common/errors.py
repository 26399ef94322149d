"""
Mapping from hosted-model failures to user-facing messages.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

import litellm
import requests
from replicate.exceptions import ReplicateError

GENERIC_FAILURE_MESSAGE = (
    "The engineering logic failed. Please try a clearer photo or check your connection."
)


class ErrorKind(str, Enum):
    QUOTA_EXCEEDED = "quota_exceeded"
    INVALID_KEY = "invalid_key"
    NETWORK = "network"
    SAFETY = "safety"
    UNKNOWN = "unknown"


_MESSAGES = {
    ErrorKind.QUOTA_EXCEEDED: (
        "Quota exceeded: the AI service is rate limiting this key. "
        "Wait a minute and retry, or enter a different API key."
    ),
    ErrorKind.INVALID_KEY: "API Key Error: The provided key is expired or invalid. Please renew it.",
    ErrorKind.NETWORK: (
        "Network failure: could not reach the AI service. Check your connection and retry."
    ),
    ErrorKind.SAFETY: (
        "The AI service blocked this request with its safety filter. "
        "Try a different photo or run the demo instead."
    ),
}

_QUOTA_PATTERN = re.compile(r"\b429\b|quota|resource_exhausted|rate limit", re.IGNORECASE)
_KEY_PATTERN = re.compile(r"api[ _-]?key|\b400\b|\b401\b|\b403\b", re.IGNORECASE)
_SAFETY_PATTERN = re.compile(r"safety|nsfw|sensitive|blocked", re.IGNORECASE)

_NETWORK_ERRORS: tuple[type[BaseException], ...] = (
    litellm.APIConnectionError,
    litellm.Timeout,
    requests.ConnectionError,
    requests.Timeout,
    ConnectionError,
    TimeoutError,
)


class PlanParseError(ValueError):
    """Raised when the analysis model returns something that is not a usable repair plan."""


@dataclass(frozen=True)
class UserFacingError:
    kind: ErrorKind
    message: str


def classify_error(exc: BaseException) -> ErrorKind:
    """
    Bucket an exception raised by a hosted call into one of the user-facing error kinds.
    """
    text = str(exc)

    if isinstance(exc, litellm.RateLimitError):
        return ErrorKind.QUOTA_EXCEEDED
    if isinstance(exc, ReplicateError) and getattr(exc, "status", None) == 429:
        return ErrorKind.QUOTA_EXCEEDED
    if isinstance(exc, (litellm.AuthenticationError, litellm.PermissionDeniedError)):
        return ErrorKind.INVALID_KEY
    if isinstance(exc, _NETWORK_ERRORS):
        return ErrorKind.NETWORK
    if _QUOTA_PATTERN.search(text):
        return ErrorKind.QUOTA_EXCEEDED
    if _SAFETY_PATTERN.search(text):
        return ErrorKind.SAFETY
    if _KEY_PATTERN.search(text):
        return ErrorKind.INVALID_KEY
    return ErrorKind.UNKNOWN


def describe_error(exc: BaseException) -> UserFacingError:
    kind = classify_error(exc)
    if kind is ErrorKind.UNKNOWN:
        message = str(exc).strip() or GENERIC_FAILURE_MESSAGE
    else:
        message = _MESSAGES[kind]
    return UserFacingError(kind=kind, message=message)


def is_rate_limit_error(exc: BaseException) -> bool:
    return classify_error(exc) is ErrorKind.QUOTA_EXCEEDED
