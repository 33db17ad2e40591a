"""
The `ai` package talks to the completion service: the client wrapper and the
assistants built on top of it.
"""

from .llm import CompletionClient
from .assistants.agent import agent
from .assistants.chat import chat, chat_loop
from .assistants.edit import edit, edit_file, edit_loop


__all__ = [
    "CompletionClient",
    "agent",
    "chat",
    "chat_loop",
    "edit",
    "edit_file",
    "edit_loop",
]
