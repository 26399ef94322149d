"""
Conversational follow-up about a generated repair guide.
"""

from .session import (
    ChatMessage,
    RepairChatSession,
    build_chat_system_instruction,
    greeting_for,
)

__all__ = [
    "ChatMessage",
    "RepairChatSession",
    "build_chat_system_instruction",
    "greeting_for",
]
