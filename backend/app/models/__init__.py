"""SQLAlchemy models."""

from app.models.conversation import Conversation, Message

__all__ = ["Conversation", "Message"]
