"""
Pydantic models for ChatJPT.
"""

from .core import Exchange, Identity, Message, MessageRole, Session

__all__ = [
    "Exchange",
    "Identity",
    "Message",
    "MessageRole",
    "Session",
]
