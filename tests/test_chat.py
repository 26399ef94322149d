"""
Tests for the follow-up chat session.
"""

from unittest.mock import MagicMock

import pytest

from jugaad_engineer.chat import RepairChatSession
from jugaad_engineer.chat.session import CONNECTION_ERROR_TEXT, EMPTY_REPLY_TEXT
from jugaad_engineer.common import ChatResult


def _reply(text):
    return ChatResult(text=text, raw=None)


@pytest.fixture
def completion_fn():
    return MagicMock(return_value=_reply("Use two bands, not one."))


@pytest.fixture
def chat(sample_guide, completion_fn):
    return RepairChatSession(sample_guide, api_key="key-1", completion_fn=completion_fn)


class TestRepairChatSession:
    """Tests for RepairChatSession history handling."""

    def test_opens_with_greeting(self, chat):
        greeting = chat.messages[0]

        assert greeting.role == "model"
        assert greeting.text == (
            "Hi! I'm the Engineer. I've analyzed your Coat Hanger Hinge Splint. "
            "Need clarification on any steps or physics principles?"
        )

    def test_system_instruction_embeds_guide(self, chat):
        assert '"title": "Coat Hanger Hinge Splint"' in chat.system_instruction
        assert "Lash It Tight" in chat.system_instruction

    def test_send_builds_messages(self, chat, completion_fn):
        reply = chat.send("  How tight should the wrap be?  ")

        assert reply.role == "model"
        assert reply.text == "Use two bands, not one."
        kwargs = completion_fn.call_args.kwargs
        assert kwargs["api_key"] == "key-1"
        assert kwargs["messages"][0]["role"] == "system"
        assert kwargs["messages"][1:] == [
            {"role": "user", "content": "How tight should the wrap be?"},
        ]
        assert [m.role for m in chat.messages] == ["model", "user", "model"]

    def test_history_is_replayed(self, chat, completion_fn):
        chat.send("First question")
        chat.send("Second question")

        messages = completion_fn.call_args.kwargs["messages"]
        assert messages[1:] == [
            {"role": "user", "content": "First question"},
            {"role": "assistant", "content": "Use two bands, not one."},
            {"role": "user", "content": "Second question"},
        ]

    def test_failure_returns_error_reply(self, chat, completion_fn):
        completion_fn.side_effect = [RuntimeError("connection reset"), _reply("Fine now.")]

        failed = chat.send("Will it hold?")
        chat.send("Try again?")

        assert failed.is_error
        assert failed.text == CONNECTION_ERROR_TEXT
        messages = completion_fn.call_args.kwargs["messages"]
        assert messages[1:] == [{"role": "user", "content": "Try again?"}]
        assert len(chat.messages) == 5

    def test_empty_reply_text(self, chat, completion_fn):
        completion_fn.return_value = _reply("")

        assert chat.send("Hello?").text == EMPTY_REPLY_TEXT

    def test_blank_message_rejected(self, chat, completion_fn):
        with pytest.raises(ValueError):
            chat.send("   ")
        completion_fn.assert_not_called()

    def test_key_change_restarts_conversation(self, chat):
        chat.send("Question")

        assert chat.update_api_key("key-1") is False
        assert len(chat.messages) == 3

        assert chat.update_api_key("key-2") is True
        assert chat.api_key == "key-2"
        assert len(chat.messages) == 1
        assert chat.messages[0].text.startswith("Hi! I'm the Engineer.")
