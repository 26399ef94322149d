"""
Follow-up conversation with the engineer, grounded in a generated repair guide.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from typing import Any, Literal

from jugaad_engineer.common import (
    ChatResult,
    CompletionCallable,
    call_chat_completion,
    resolve_api_key,
)
from jugaad_engineer.repair_planning import RepairGuide

logger = logging.getLogger(__name__)

DEFAULT_CHAT_MODEL = "gemini/gemini-2.5-flash"

EMPTY_REPLY_TEXT = "I didn't catch that. Could you rephrase?"
CONNECTION_ERROR_TEXT = "I'm having trouble connecting to the main server. Please try again."

Role = Literal["user", "model"]


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    text: str
    is_error: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


def build_chat_system_instruction(guide: RepairGuide) -> str:
    """
    Serialize the full guide into the system instruction for the chat model.
    """
    guide_json = json.dumps(guide.to_dict(), indent=2, ensure_ascii=False)
    return f"""You are "The Jugaad Engineer", the structural engineer who wrote the repair plan below.
The user is carrying out this plan and may ask follow-up questions.

Rules:
- Answer only about this repair, its materials, its steps, and the physics behind them.
- Be concise and practical; prefer short paragraphs or bullet points.
- Prefer solutions that use the scrap materials already identified in the plan.
- If a question would require materials or tools not in the plan, say so and suggest the closest improvised alternative.
- Flag anything that could be unsafe (electricity, heat, load-bearing parts) plainly.

Repair plan (JSON):
{guide_json}"""


def greeting_for(guide: RepairGuide) -> str:
    return (
        f"Hi! I'm the Engineer. I've analyzed your {guide.title}. "
        "Need clarification on any steps or physics principles?"
    )


class RepairChatSession:
    """
    Stateful chat about one guide.

    The transcript always opens with the engineer's greeting. Failed exchanges stay in the
    transcript for display but are not replayed to the model on later turns.
    """

    def __init__(
        self,
        guide: RepairGuide,
        *,
        api_key: str | None = None,
        model: str | None = None,
        completion_fn: CompletionCallable | None = None,
        temperature: float = 0.5,
        max_output_tokens: int = 1024,
    ) -> None:
        self._guide = guide
        self._api_key = resolve_api_key(api_key)
        self._model = (
            model
            or os.getenv("JUGAAD_CHAT_MODEL")
            or os.getenv("LITELLM_MODEL")
            or DEFAULT_CHAT_MODEL
        )
        self._completion_fn: CompletionCallable = completion_fn or call_chat_completion
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._system_instruction = build_chat_system_instruction(guide)
        self._messages: list[ChatMessage] = []
        self._excluded_ids: set[str] = set()
        self._start()

    @property
    def guide(self) -> RepairGuide:
        return self._guide

    @property
    def model(self) -> str:
        return self._model

    @property
    def api_key(self) -> str | None:
        return self._api_key

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def system_instruction(self) -> str:
        return self._system_instruction

    def update_api_key(self, api_key: str | None) -> bool:
        """
        Switch keys. A changed key starts a fresh conversation; returns whether it did.
        """
        if api_key == self._api_key:
            return False
        self._api_key = api_key
        self._start()
        logger.info("Chat session re-initialised after API key change")
        return True

    def send(self, text: str, **response_kwargs: Any) -> ChatMessage:
        """
        Send one user message and return the engineer's reply (also appended to the transcript).
        """
        if not text or not text.strip():
            raise ValueError("Chat message must be a non-empty string.")

        user_message = ChatMessage(role="user", text=text.strip())
        history = self._history_for_model()
        self._messages.append(user_message)

        messages = [{"role": "system", "content": self._system_instruction}]
        messages.extend(history)
        messages.append({"role": "user", "content": user_message.text})

        try:
            result: ChatResult = self._completion_fn(
                model=self._model,
                messages=messages,
                temperature=self._temperature,
                max_tokens=self._max_output_tokens,
                api_key=self._api_key,
                **response_kwargs,
            )
        except Exception:
            logger.exception("Chat request failed")
            self._excluded_ids.add(user_message.id)
            reply = ChatMessage(role="model", text=CONNECTION_ERROR_TEXT, is_error=True)
            self._messages.append(reply)
            return reply

        reply = ChatMessage(role="model", text=result.text or EMPTY_REPLY_TEXT)
        self._messages.append(reply)
        return reply

    def _start(self) -> None:
        greeting = ChatMessage(role="model", text=greeting_for(self._guide))
        self._messages = [greeting]
        # The greeting is display-only; model turns must start with the user.
        self._excluded_ids = {greeting.id}

    def _history_for_model(self) -> list[dict[str, str]]:
        history: list[dict[str, str]] = []
        for message in self._messages:
            if message.is_error or message.id in self._excluded_ids:
                continue
            role = "assistant" if message.role == "model" else "user"
            history.append({"role": role, "content": message.text})
        return history
