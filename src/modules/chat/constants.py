"""Chat limits and user-facing messages."""

from src.config import settings

MESSAGE_MAX_LENGTH = settings.chat_message_max_length
NOTIFICATION_PREVIEW_CHARS = settings.chat_notification_preview_chars
NOTIFICATION_TITLE = "New Message"

CONVERSATION_NOT_FOUND = "Chat not found"
USER_NOT_FOUND = "User not found"
SELF_CONVERSATION = "Cannot create chat with yourself"
