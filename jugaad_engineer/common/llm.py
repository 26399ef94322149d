"""
LiteLLM-powered chat completion and speech helpers shared by every hosted-model call.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Mapping, MutableMapping, Sequence

from litellm import completion, speech

ChatMessage = Mapping[str, Any]

API_KEY_ENV_VARS = ("JUGAAD_API_KEY", "GEMINI_API_KEY", "LITELLM_API_KEY")


@dataclass
class ChatResult:
    """
    Structured response returned from an LLM chat completion.
    """

    text: str
    raw: Any


CompletionCallable = Callable[..., ChatResult]
SpeechCallable = Callable[..., bytes]


def resolve_api_key(api_key: str | None = None) -> str | None:
    """Return the explicit key, or the first configured key from the environment."""
    if api_key:
        return api_key
    for name in API_KEY_ENV_VARS:
        value = os.getenv(name)
        if value:
            return value
    return None


def call_chat_completion(
    *,
    model: str,
    messages: Sequence[ChatMessage],
    temperature: float | None = None,
    max_tokens: int | None = None,
    api_key: str | None = None,
    **extra_kwargs: Any,
) -> ChatResult:
    """
    Invoke LiteLLM's `completion` API and return the consolidated text.
    """
    payload: MutableMapping[str, Any] = {
        "model": model,
        "messages": list(messages),
    }

    if temperature is not None:
        payload["temperature"] = temperature

    if max_tokens is not None:
        payload["max_tokens"] = max_tokens

    if api_key is not None:
        payload["api_key"] = api_key

    payload.update(extra_kwargs)

    response = completion(**payload)

    try:
        message = response["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise RuntimeError("Unexpected LiteLLM response format.") from exc

    text = "" if message is None else str(message).strip()
    return ChatResult(text=text, raw=response)


def call_speech(
    *,
    model: str,
    text: str,
    voice: str,
    api_key: str | None = None,
    response_format: str = "pcm",
    **extra_kwargs: Any,
) -> bytes:
    """
    Invoke LiteLLM's `speech` API and return the raw audio payload.
    """
    payload: MutableMapping[str, Any] = {
        "model": model,
        "input": text,
        "voice": voice,
        "response_format": response_format,
    }
    if api_key is not None:
        payload["api_key"] = api_key
    payload.update(extra_kwargs)

    response = speech(**payload)

    content = getattr(response, "content", response)
    if callable(content):
        content = content()
    if not isinstance(content, (bytes, bytearray)):
        raise RuntimeError("Unexpected LiteLLM speech response format.")
    return bytes(content)
