"""
ChatJPT - per-user chat sessions backed by Redis and answered by Gemini.

Stores each user's chat sessions and their ordered message logs, and
assembles recent history into prompts for the reply generator.
"""

__version__ = "0.1.0"

from .models.core import Identity, Message, MessageRole, Session

__all__ = [
    "Identity",
    "Message",
    "MessageRole",
    "Session",
]
