"""Services module exports."""

from app.services.conversation_log import ConversationLogService

__all__ = ["ConversationLogService"]
